from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from mxl2mid.common.errors import ConfigError

DEFAULT_CHARSET = "Shift_JIS"


class AppConfig(BaseModel):
    # None keeps lyric text as raw UTF-8
    charset: str | None = DEFAULT_CHARSET
    jobs: int = Field(default=1, ge=1)
    skip_if_exists: bool = True


def load_yaml(path: str | Path) -> AppConfig:
    p = Path(path)
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping: {p}")
    try:
        return AppConfig(**data)
    except ValidationError as err:
        raise ConfigError(f"Invalid config {p}: {err}") from err
