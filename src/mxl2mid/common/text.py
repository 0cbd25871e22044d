from __future__ import annotations

import codecs
from typing import Protocol

from mxl2mid.common.errors import ConfigError, TranscodingError


class TextEncoder(Protocol):
    def encode(self, text: str) -> bytes: ...


class Utf8TextEncoder:
    """Passes text through as UTF-8 bytes."""

    name = "utf-8"

    def encode(self, text: str) -> bytes:
        return text.encode("utf-8")


class CodecTextEncoder:
    """Encodes text with a Python codec, failing on unmappable characters."""

    def __init__(self, charset: str) -> None:
        try:
            self.name = codecs.lookup(charset).name
        except LookupError as err:
            raise ConfigError(f"Unknown charset: {charset}") from err
        self.charset = charset

    def encode(self, text: str) -> bytes:
        try:
            return codecs.encode(text, self.name, "strict")
        except UnicodeEncodeError as err:
            raise TranscodingError(
                f"Cannot encode {text!r} as {self.charset}: {err.reason}"
            ) from err

    def __repr__(self) -> str:
        return f"CodecTextEncoder({self.charset!r})"


def resolve_text_encoder(charset: str | None) -> TextEncoder:
    if not charset:
        return Utf8TextEncoder()
    return CodecTextEncoder(charset)
