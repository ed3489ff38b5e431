"""tonelang: compile compact note notation into timed MIDI note events."""

__version__ = "0.1.0"

from tonelang.compiler import NotationCompiler, compile_notation, compile_score, compile_voices  # noqa: E402
from tonelang.notation_models import Chord, ChordNote, Event, Grouping, Note, Repetition, Rest  # noqa: E402
from tonelang.parser import parse_notation, parse_voices  # noqa: E402

__all__ = [
    "Chord",
    "ChordNote",
    "Event",
    "Grouping",
    "NotationCompiler",
    "Note",
    "Repetition",
    "Rest",
    "compile_notation",
    "compile_score",
    "compile_voices",
    "parse_notation",
    "parse_voices",
]
