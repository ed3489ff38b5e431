"""
Parser for the compact text notation, producing notation trees for NotationCompiler.

Syntax overview::

    C3 D#3 Bb-1          notes: letter, optional '#' or 'b' (or 'B'), signed octave
    C3v90n2t1            modifiers: v velocity, n duration, t time until next
    [C3 E3 G3]v80        chord; inner notes accept v and n
    R  R2  R.5           rest, optionally with a length in beats
    (C3 D3)v90           group; modifiers are inherited by the content
    C3*4  (C3 D3)*2      repetition
    C3 D3; G2n2          ';' separates simultaneous voices
"""

from __future__ import annotations

import logging
import re
from fractions import Fraction

from tonelang.errors import NotationSyntaxError
from tonelang.notation_models import (
    Chord,
    ChordNote,
    Grouping,
    Note,
    Repetition,
    Rest,
    Score,
    SequenceElement,
)
from tonelang.pitch import name_to_midi

logger = logging.getLogger(__name__)

_PITCH_RE = re.compile(r"[A-Ga-g][#bB]?-?[0-9]+")
_NUMBER_RE = re.compile(r"[0-9]+(?:\.[0-9]+)?|\.[0-9]+")
_INTEGER_RE = re.compile(r"[0-9]+")
_WHITESPACE_RE = re.compile(r"\s+")

NOTE_LETTERS = "ABCDEFGabcdefg"
MODIFIERS = "vnt"
CHORD_NOTE_MODIFIERS = "vn"
VELOCITY_MIN = 1
VELOCITY_MAX = 127

# Characters that may directly follow an element
_SEPARATORS = frozenset(" \t\r\n;)]")

HINT_NUMBER_WITHOUT_PREFIX = (
    "Numbers must follow a modifier: v (velocity), n (duration), "
    "t (time until next), R (rest length) or * (repeat count)."
)
HINT_BARE_DECIMAL = "A decimal point must be followed by digits, e.g. n0.5 or n.5."
HINT_UNEXPECTED = (
    "Expected a note (C3, F#4, Bb-1), a chord [C3 E3 G3], a rest (R, R2), "
    "a group (C3 D3), a repetition (*N), a modifier (v, n, t) or ';' between voices."
)


class _Parser:
    """Recursive-descent parser over a single notation string."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    # ------------------------------------------------------------------
    # Scanning helpers
    # ------------------------------------------------------------------

    def _peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def _skip_whitespace(self) -> None:
        match = _WHITESPACE_RE.match(self.text, self.pos)
        if match:
            self.pos = match.end()

    def _scan(self, pattern: re.Pattern[str]) -> str | None:
        match = pattern.match(self.text, self.pos)
        if match is None:
            return None
        self.pos = match.end()
        return match.group()

    def _error(self, hint: str, token: str | None = None, offset: int | None = None) -> NotationSyntaxError:
        offset = self.pos if offset is None else offset
        if token is None:
            token = self.text[offset] if offset < len(self.text) else "end of input"
        line = self.text.count("\n", 0, offset) + 1
        column = offset - (self.text.rfind("\n", 0, offset) + 1) + 1
        return NotationSyntaxError(token=token, offset=offset, line=line, column=column, hint=hint)

    def _unexpected(self) -> NotationSyntaxError:
        """Pick the hint that best explains the character at the cursor."""
        number = _NUMBER_RE.match(self.text, self.pos)
        if number:
            return self._error(HINT_NUMBER_WITHOUT_PREFIX, token=number.group())
        if self._peek() == ".":
            return self._error(HINT_BARE_DECIMAL)
        return self._error(HINT_UNEXPECTED)

    def _number(self, what: str) -> Fraction:
        start = self.pos
        text = self._scan(_NUMBER_RE)
        if text is None:
            if self._peek() == ".":
                raise self._error(HINT_BARE_DECIMAL)
            raise self._error(f"Expected a number for {what}.")
        value = Fraction(text)
        if value <= 0:
            raise self._error(f"{what.capitalize()} must be greater than 0.", token=text, offset=start)
        return value

    def _velocity(self) -> int:
        start = self.pos
        text = self._scan(_NUMBER_RE)
        if text is None:
            raise self._error("Expected a number for velocity.")
        if not _INTEGER_RE.fullmatch(text) or not VELOCITY_MIN <= int(text) <= VELOCITY_MAX:
            raise self._error(
                f"Velocity must be an integer in {VELOCITY_MIN}-{VELOCITY_MAX}.", token=text, offset=start
            )
        return int(text)

    def _modifiers(self, allowed: str) -> dict[str, object]:
        """Parse trailing v/n/t modifiers in any order, each at most once."""
        found: dict[str, object] = {}
        while self._peek() and self._peek() in MODIFIERS:
            letter = self._peek()
            if letter not in allowed:
                raise self._error(f"Modifier '{letter}' is not allowed here.")
            if letter in found:
                raise self._error(f"Duplicate modifier '{letter}'.")
            self.pos += 1
            if letter == "v":
                found["velocity"] = self._velocity()
            elif letter == "n":
                found["duration"] = self._number("duration")
            else:
                found["time_until_next"] = self._number("time until next")
        return found

    def _repeat_count(self) -> int | None:
        if self._peek() != "*":
            return None
        self.pos += 1
        start = self.pos
        text = self._scan(_INTEGER_RE)
        if text is None:
            raise self._error("A repetition needs a whole number of times, e.g. *2.")
        if int(text) < 1:
            raise self._error("A repetition count must be at least 1.", token=text, offset=start)
        return int(text)

    # ------------------------------------------------------------------
    # Grammar
    # ------------------------------------------------------------------

    def _pitch(self) -> int:
        text = self._scan(_PITCH_RE)
        if text is None:
            raise self._error("A note needs an octave number, e.g. C3 or Bb-1.")
        return name_to_midi(text)

    def _chord(self) -> Chord:
        start = self.pos
        self.pos += 1  # '['
        notes: list[ChordNote] = []
        while True:
            self._skip_whitespace()
            char = self._peek()
            if char == "]":
                self.pos += 1
                break
            if char == "":
                raise self._error("Missing ']' to close the chord.")
            if char not in NOTE_LETTERS:
                raise self._unexpected()
            pitch = self._pitch()
            notes.append(ChordNote(pitch=pitch, **self._modifiers(CHORD_NOTE_MODIFIERS)))
            self._expect_separator()
        if not notes:
            raise self._error("A chord needs at least one note.", token="[", offset=start)
        return Chord(notes=tuple(notes), **self._modifiers(MODIFIERS))

    def _rest(self) -> Rest:
        self.pos += 1  # 'R'
        if _NUMBER_RE.match(self.text, self.pos) or self._peek() == ".":
            return Rest(duration=self._number("rest length"))
        return Rest()

    def _group(self) -> list[SequenceElement]:
        self.pos += 1  # '('
        content = self._voice(in_group=True)
        if self._peek() != ")":
            raise self._error("Missing ')' to close the group.")
        self.pos += 1
        return content

    def _element(self) -> SequenceElement:
        char = self._peek()
        if char == "(":
            content = self._group()
            modifiers = self._modifiers(MODIFIERS)
            repeat = self._repeat_count()
            if repeat is None:
                return Grouping(content=tuple(content), **modifiers)
            return Repetition(content=tuple(content), repeat=repeat, **modifiers)

        if char == "[":
            element: SequenceElement = self._chord()
        elif char == "R":
            element = self._rest()
        elif char in NOTE_LETTERS and char:
            pitch = self._pitch()
            element = Note(pitch=pitch, **self._modifiers(MODIFIERS))
        else:
            raise self._unexpected()

        repeat = self._repeat_count()
        if repeat is not None:
            return Repetition(content=(element,), repeat=repeat)
        return element

    def _expect_separator(self) -> None:
        char = self._peek()
        if char and char not in _SEPARATORS:
            raise self._unexpected()

    def _voice(self, in_group: bool = False) -> list[SequenceElement]:
        elements: list[SequenceElement] = []
        while True:
            self._skip_whitespace()
            char = self._peek()
            if char == "" or char == ";" and not in_group:
                return elements
            if char == ")" and in_group:
                return elements
            if char in ";)]":
                raise self._error(HINT_UNEXPECTED)
            elements.append(self._element())
            self._expect_separator()

    def parse(self) -> list[list[SequenceElement]]:
        voices = [self._voice()]
        while self._peek() == ";":
            self.pos += 1
            voices.append(self._voice())
        return voices


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------

def parse_voices(text: str) -> list[list[SequenceElement]]:
    """
    Parse notation text into one element list per ';'-separated voice.

    Empty or whitespace-only text gives no voices.

    Raises:
        NotationSyntaxError: If the text is not valid notation.
        InvalidPitchName:    If a note name is malformed (e.g. "Cb3").
        OutOfRange:          If a note lies outside the MIDI range (e.g. "C9").
    """
    if not text or not text.strip():
        return []
    voices = _Parser(text).parse()
    logger.debug("Parsed %d voice(s) from %d character(s)", len(voices), len(text))
    return voices


def parse_notation(text: str) -> Score:
    """
    Parse notation text into a Score.

    A single voice is returned as a plain element list; several voices as a
    list of element lists.
    """
    voices = parse_voices(text)
    if len(voices) == 1:
        return voices[0]
    return voices
