"""Data models for notation trees (compiler input) and note events (compiler output)."""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Sequence, Union

#: Durations and times are exact rational numbers of beats.
Beats = Fraction


@dataclass(frozen=True)
class ChordNote:
    """One pitch inside a chord. Unset modifiers fall back to the chord's."""

    pitch: int
    duration: Beats | None = None
    velocity: int | None = None


@dataclass(frozen=True)
class Note:
    """A single pitch."""

    pitch: int
    duration: Beats | None = None
    velocity: int | None = None
    time_until_next: Beats | None = None


@dataclass(frozen=True)
class Chord:
    """Simultaneous pitches sharing one start time."""

    notes: tuple[ChordNote, ...]
    duration: Beats | None = None
    velocity: int | None = None
    time_until_next: Beats | None = None


@dataclass(frozen=True)
class Rest:
    """Silence that only advances time."""

    duration: Beats | None = None


@dataclass(frozen=True)
class Grouping:
    """
    A parenthesised run of elements.

    Its modifiers are inherited by the content. The time it occupies is
    always the natural span of the content; ``time_until_next`` is passed
    down to the content rather than overriding that span.
    """

    content: tuple[SequenceElement, ...]
    duration: Beats | None = None
    velocity: int | None = None
    time_until_next: Beats | None = None


@dataclass(frozen=True)
class Repetition:
    """Content played ``repeat`` times back to back."""

    content: tuple[SequenceElement, ...]
    repeat: int
    duration: Beats | None = None
    velocity: int | None = None
    time_until_next: Beats | None = None


SequenceElement = Union[Note, Chord, Rest, Grouping, Repetition]

#: One sequential musical line.
Voice = Sequence[SequenceElement]

#: A single voice, or several voices performed simultaneously.
Score = Union[Voice, Sequence[Voice]]


def _plain_number(value: Fraction) -> int | float:
    if value.denominator == 1:
        return int(value)
    return float(value)


@dataclass(frozen=True)
class Event:
    """
    A compiled note, ready for scheduling.

    Attributes:
        pitch:      MIDI pitch (0-127).
        start_time: Onset in beats from the start of the voice.
        duration:   Length in beats.
        velocity:   MIDI velocity (1-127).
    """

    pitch: int
    start_time: Beats
    duration: Beats
    velocity: int

    def shifted(self, offset: Beats) -> Event:
        """Return a copy of this event moved later by offset beats."""
        return Event(
            pitch=self.pitch,
            start_time=self.start_time + offset,
            duration=self.duration,
            velocity=self.velocity,
        )

    def to_dict(self) -> dict[str, int | float]:
        """Plain JSON-ready values; whole-beat times are ints."""
        return {
            "pitch": self.pitch,
            "start_time": _plain_number(self.start_time),
            "duration": _plain_number(self.duration),
            "velocity": self.velocity,
        }
