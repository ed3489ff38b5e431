"""NotationCompiler: resolves inherited modifiers and flattens notation trees into note events."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from fractions import Fraction
from typing import Any

from tonelang.notation_models import (
    Beats,
    Chord,
    Event,
    Grouping,
    Note,
    Repetition,
    Rest,
    Score,
    SequenceElement,
    Voice,
)
from tonelang.parser import parse_notation

logger = logging.getLogger(__name__)

_ELEMENT_TYPES = (Note, Chord, Rest, Grouping, Repetition)


def _first(*values: Any) -> Any:
    """Return the first value that is not None (or None)."""
    for value in values:
        if value is not None:
            return value
    return None


def _beats(value: Any) -> Beats | None:
    return None if value is None else Fraction(value)


@dataclass(frozen=True)
class Modifiers:
    """The modifier set a container hands down to its content."""

    velocity: int | None = None
    duration: Beats | None = None
    time_until_next: Beats | None = None

    def resolve(self, element: Note | Chord | Grouping | Repetition) -> Modifiers:
        """An element's own modifiers, falling back to these inherited ones."""
        return Modifiers(
            velocity=_first(element.velocity, self.velocity),
            duration=_first(element.duration, self.duration),
            time_until_next=_first(element.time_until_next, self.time_until_next),
        )


class NotationCompiler:
    """
    Compiles a notation tree into a flat, time-ordered list of Events.

    Compilation runs in two passes over each voice:

    1. **Modifier resolution** – a top-down fold that fills every unset
       velocity/duration/time-until-next with the nearest ancestor's value.
       A chord resolves its own modifiers first and its notes inherit the
       chord's resolved values. Groupings and repetitions pass their
       resolved set to their content.

    2. **Timeline flattening** – a cursor walks the resolved tree. Notes and
       chords emit events at the cursor and advance it by their
       time-until-next, or by their duration when none is set; chords use
       their longest note. Rests only advance. Groupings advance by the
       natural span of their content. Repetitions lay out the content once
       and replay it shifted by that span.

    Values still unset after pass 1 fall back to DEFAULT_DURATION and
    DEFAULT_VELOCITY. Pitches and velocities are not validated or clamped.
    """

    DEFAULT_DURATION = Fraction(1)  # beats
    DEFAULT_VELOCITY = 70

    def __init__(
        self,
        default_duration: Beats | int = DEFAULT_DURATION,
        default_velocity: int = DEFAULT_VELOCITY,
    ) -> None:
        """
        Args:
            default_duration: Duration for notes and rests with none set or inherited.
            default_velocity: Velocity for notes with none set or inherited.
        """
        self.default_duration = Fraction(default_duration)
        self.default_velocity = default_velocity

    # ------------------------------------------------------------------
    # Pass 1: modifier resolution
    # ------------------------------------------------------------------

    def _resolve_element(self, element: SequenceElement, inherited: Modifiers) -> SequenceElement:
        if isinstance(element, Note):
            own = inherited.resolve(element)
            return replace(
                element,
                duration=_beats(own.duration),
                velocity=own.velocity,
                time_until_next=_beats(own.time_until_next),
            )

        if isinstance(element, Rest):
            return replace(element, duration=_beats(_first(element.duration, inherited.duration)))

        if isinstance(element, Chord):
            own = inherited.resolve(element)
            notes = tuple(
                replace(
                    note,
                    duration=_beats(_first(note.duration, own.duration)),
                    velocity=_first(note.velocity, own.velocity),
                )
                for note in element.notes
            )
            return replace(
                element,
                notes=notes,
                duration=_beats(own.duration),
                velocity=own.velocity,
                time_until_next=_beats(own.time_until_next),
            )

        if isinstance(element, (Grouping, Repetition)):
            own = inherited.resolve(element)
            content = tuple(self._resolve_element(child, own) for child in element.content)
            return replace(
                element,
                content=content,
                duration=_beats(own.duration),
                velocity=own.velocity,
                time_until_next=_beats(own.time_until_next),
            )

        raise TypeError(f"Unsupported sequence element: {element!r}")

    def resolve_voice(self, voice: Voice) -> tuple[SequenceElement, ...]:
        """Return a copy of the voice with inherited modifiers filled in."""
        root = Modifiers()
        return tuple(self._resolve_element(element, root) for element in voice)

    # ------------------------------------------------------------------
    # Pass 2: timeline flattening
    # ------------------------------------------------------------------

    def _chord_events(self, chord: Chord, start: Beats) -> tuple[list[Event], Beats]:
        events: list[Event] = []
        spans: list[Beats] = []
        for note in chord.notes:
            duration = _first(note.duration, chord.duration, self.default_duration)
            velocity = _first(note.velocity, chord.velocity, self.default_velocity)
            events.append(Event(pitch=note.pitch, start_time=start, duration=duration, velocity=velocity))
            spans.append(duration)
        if chord.duration is not None:
            spans.append(chord.duration)

        advance = _first(chord.time_until_next, max(spans, default=self.default_duration))
        return events, start + advance

    def _flatten(self, elements: Sequence[SequenceElement], start: Beats) -> tuple[list[Event], Beats]:
        """Lay out resolved elements from start; return (events, end time)."""
        events: list[Event] = []
        cursor = start

        for element in elements:
            if isinstance(element, Rest):
                cursor += _first(element.duration, self.default_duration)

            elif isinstance(element, Note):
                duration = _first(element.duration, self.default_duration)
                events.append(
                    Event(
                        pitch=element.pitch,
                        start_time=cursor,
                        duration=duration,
                        velocity=_first(element.velocity, self.default_velocity),
                    )
                )
                cursor += _first(element.time_until_next, duration)

            elif isinstance(element, Chord):
                chord_events, cursor = self._chord_events(element, cursor)
                events.extend(chord_events)

            elif isinstance(element, Grouping):
                # The grouping's time_until_next was handed to its content in
                # pass 1; the cursor always moves by the natural span.
                group_events, cursor = self._flatten(element.content, cursor)
                events.extend(group_events)

            elif isinstance(element, Repetition):
                once, end = self._flatten(element.content, cursor)
                span = end - cursor
                for i in range(element.repeat):
                    offset = i * span
                    events.extend(event.shifted(offset) for event in once)
                cursor += element.repeat * span

            else:
                raise TypeError(f"Unsupported sequence element: {element!r}")

        return events, cursor

    def flatten_voice(self, resolved: Sequence[SequenceElement]) -> list[Event]:
        """Lay out an already-resolved voice starting at beat 0."""
        events, _end = self._flatten(resolved, Fraction(0))
        return events

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compile_voice(self, voice: Voice) -> list[Event]:
        """Compile one voice into events, in emission order."""
        return self.flatten_voice(self.resolve_voice(voice))

    def compile_voices(self, score: Score) -> list[list[Event]]:
        """
        Compile every voice of a score separately.

        Args:
            score: A single voice, or a sequence of voices.

        Returns:
            One event list per voice, each timed from beat 0.
        """
        voices = split_voices(score)
        compiled = [self.compile_voice(voice) for voice in voices]
        logger.debug(
            "Compiled %d voice(s) into %d event(s)",
            len(compiled),
            sum(len(events) for events in compiled),
        )
        return compiled

    def compile(self, score: Score) -> list[Event]:
        """Compile a score; multi-voice results are concatenated in voice order."""
        return [event for events in self.compile_voices(score) for event in events]


def split_voices(score: Score) -> list[Voice]:
    """
    Normalise a score to a list of voices.

    A sequence whose items are sequence elements is a single voice; a
    sequence of sequences is a list of voices. An empty score has no voices.
    """
    items = list(score)
    if not items:
        return []
    if all(isinstance(item, _ELEMENT_TYPES) for item in items):
        return [items]
    if all(isinstance(item, Sequence) and not isinstance(item, str) for item in items):
        return [list(voice) for voice in items]
    raise TypeError("A score must be a voice or a sequence of voices, not a mix of both")


_default_compiler = NotationCompiler()


def compile_score(score: Score) -> list[Event]:
    """Compile a score with the default settings."""
    return _default_compiler.compile(score)


def compile_voices(score: Score) -> list[list[Event]]:
    """Compile a score with the default settings, keeping voices separate."""
    return _default_compiler.compile_voices(score)


def compile_notation(text: str) -> list[Event]:
    """Parse notation text and compile it with the default settings."""
    return compile_score(parse_notation(text))
