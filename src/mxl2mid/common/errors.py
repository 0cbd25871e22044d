from __future__ import annotations


class Mxl2MidError(Exception):
    """Base class for conversion failures."""


class MalformedScoreError(Mxl2MidError):
    """The score is missing structure the converter needs."""


class MidiEncodingError(Mxl2MidError, ValueError):
    """A value cannot be represented in the MIDI byte layout."""


class TranscodingError(Mxl2MidError, UnicodeError):
    """Lyric text cannot be represented in the output charset."""


class ConfigError(Mxl2MidError):
    pass
