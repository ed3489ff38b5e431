"""Exception types raised by the pitch engine and the notation parser."""

from typing import Any


class ToneLangError(ValueError):
    """Base class for every error raised by tonelang."""


class _ValueError(ToneLangError):
    """An error that echoes the offending input value."""

    def __init__(self, message: str, value: Any) -> None:
        super().__init__(message)
        self.value = value


class InvalidPitchClass(_ValueError):
    """A pitch class name is not a recognised natural, sharp or flat spelling."""


class InvalidPitchClassNumber(_ValueError):
    """A pitch class number is not an integer in 0-11."""


class InvalidMidi(_ValueError):
    """A MIDI pitch is not an integer in 0-127."""


class InvalidPitchName(_ValueError):
    """A note name such as 'C3' or 'F#-1' could not be parsed."""


class OutOfRange(_ValueError):
    """A well-formed note name resolves to a MIDI pitch outside 0-127."""


class InvalidScaleMask(_ValueError):
    """A scale mask is not a non-empty 12-bit integer."""


class UnknownScale(_ValueError):
    """A scale name is not in the scale catalogue."""


class NotationSyntaxError(ToneLangError):
    """
    Raised by the notation parser for text that is not valid notation.

    Attributes:
        token:  The offending token (a single character for lexical errors).
        offset: Zero-based character offset into the source text.
        line:   One-based line number.
        column: One-based column number.
        hint:   Short explanation of what was expected instead.
    """

    def __init__(self, token: str, offset: int, line: int, column: int, hint: str) -> None:
        self.token = token
        self.offset = offset
        self.line = line
        self.column = column
        self.hint = hint
        super().__init__(
            f"syntax error at line {line}, column {column}: Unexpected '{token}'. {hint}"
        )
