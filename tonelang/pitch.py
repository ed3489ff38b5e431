"""Pitch & scale engine: pitch-name/MIDI conversions and scale-aware quantization."""

import logging
import math
import re

from tonelang.errors import (
    InvalidMidi,
    InvalidPitchClass,
    InvalidPitchClassNumber,
    InvalidPitchName,
    InvalidScaleMask,
    OutOfRange,
    UnknownScale,
)

logger = logging.getLogger(__name__)

# ── Pitch constants ─────────────────────────────────────────────────────────
SEMITONES_PER_OCTAVE = 12
MIDI_MIN = 0
MIDI_MAX = 127
OCTAVE_OFFSET = 2  # MIDI 0 = C-2, MIDI 60 = C3

#: Bitmask with all 12 pitch classes set.
CHROMATIC_SCALE_MASK = 0xFFF

#: Canonical pitch class names (index = semitones above C). Output uses flats.
PITCH_CLASS_NAMES: tuple[str, ...] = (
    "C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B",
)

#: Accepted input spellings; sharps map onto the same semitone as their flat.
PITCH_CLASS_VALUES: dict[str, int] = {
    "C": 0, "C#": 1, "Db": 1,
    "D": 2, "D#": 3, "Eb": 3,
    "E": 4,
    "F": 5, "F#": 6, "Gb": 6,
    "G": 7, "G#": 8, "Ab": 8,
    "A": 9, "A#": 10, "Bb": 10,
    "B": 11,
}

_PITCH_CLASS_VALUES_LOWER: dict[str, int] = {
    name.lower(): value for name, value in PITCH_CLASS_VALUES.items()
}

# Letter, optional accidental, signed octave: "C3", "f#-1", "Bb8"
_NOTE_NAME_RE = re.compile(r"([A-Ga-g][#bB]?)(-?[0-9]+)")


# ── Scale catalogue ─────────────────────────────────────────────────────────

SCALES: dict[str, tuple[int, ...]] = {
    "major": (0, 2, 4, 5, 7, 9, 11),
    "minor": (0, 2, 3, 5, 7, 8, 10),
    "dorian": (0, 2, 3, 5, 7, 9, 10),
    "phrygian": (0, 1, 3, 5, 7, 8, 10),
    "lydian": (0, 2, 4, 6, 7, 9, 11),
    "mixolydian": (0, 2, 4, 5, 7, 9, 10),
    "aeolian": (0, 2, 3, 5, 7, 8, 10),
    "locrian": (0, 1, 3, 5, 6, 8, 10),
}


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


# ── Pitch class conversions ────────────────────────────────────────────────

def name_to_semitone(name: str) -> int:
    """
    Convert a pitch class name to its semitone number (0-11).

    Case-insensitive; surrounding whitespace is ignored. Both sharp and flat
    spellings are accepted ("C#" and "Db" both give 1).

    Raises:
        InvalidPitchClass: If the name is not a recognised spelling.
    """
    if isinstance(name, str):
        value = _PITCH_CLASS_VALUES_LOWER.get(name.strip().lower())
        if value is not None:
            return value
    valid = ", ".join(PITCH_CLASS_VALUES)
    raise InvalidPitchClass(f"Invalid pitch class {name!r}. Valid names: {valid}", name)


def semitone_to_name(number: int) -> str:
    """
    Convert a semitone number (0-11) to its canonical (flat) name.

    Raises:
        InvalidPitchClassNumber: If number is not an integer in 0-11.
    """
    if not _is_int(number) or not 0 <= number < SEMITONES_PER_OCTAVE:
        raise InvalidPitchClassNumber(
            f"Pitch class number must be an integer in 0-11, got {number!r}", number
        )
    return PITCH_CLASS_NAMES[number]


def intervals_to_pitch_classes(intervals: list[int], root: int) -> list[str]:
    """Name the pitch classes of a scale, e.g. ([0, 2, 4], 2) -> ["D", "E", "Gb"]."""
    return [PITCH_CLASS_NAMES[(root + interval) % SEMITONES_PER_OCTAVE] for interval in intervals]


# ── MIDI conversions ────────────────────────────────────────────────────────

def midi_to_name(midi: int) -> str:
    """
    Convert a MIDI pitch to a note name with octave, e.g. 60 -> "C3".

    Octave numbering puts MIDI 0 at C-2, so the highest pitch 127 is "G8".

    Raises:
        InvalidMidi: If midi is not an integer in 0-127.
    """
    if not _is_int(midi) or not MIDI_MIN <= midi <= MIDI_MAX:
        raise InvalidMidi(f"MIDI pitch must be an integer in 0-127, got {midi!r}", midi)
    octave = midi // SEMITONES_PER_OCTAVE - OCTAVE_OFFSET
    return f"{PITCH_CLASS_NAMES[midi % SEMITONES_PER_OCTAVE]}{octave}"


def name_to_midi(text: str) -> int:
    """
    Convert a note name such as "C3", "F#4" or "bb-1" to a MIDI pitch.

    Args:
        text: Letter A-G, optional '#' or 'b', then a signed octave number.

    Returns:
        MIDI pitch in 0-127.

    Raises:
        InvalidPitchName: If the text is not a well-formed note name.
        OutOfRange:       If the note name lies outside the MIDI range.
    """
    match = _NOTE_NAME_RE.fullmatch(text) if isinstance(text, str) else None
    # "Cb", "E#" etc. match the pattern but are not in the pitch class table
    pitch_class = _PITCH_CLASS_VALUES_LOWER.get(match.group(1).lower()) if match else None
    if match is None or pitch_class is None:
        raise InvalidPitchName(
            f"Invalid note name {text!r}. Expected <letter><accidental?><octave>, e.g. 'C3' or 'F#-1'",
            text,
        )

    octave = int(match.group(2))
    midi = (octave + OCTAVE_OFFSET) * SEMITONES_PER_OCTAVE + pitch_class
    if not MIDI_MIN <= midi <= MIDI_MAX:
        raise OutOfRange(
            f"Note {text!r} (MIDI {midi}) is outside valid range {MIDI_MIN}-{MIDI_MAX}", text
        )
    return midi


# ── Scale masks ─────────────────────────────────────────────────────────────

def build_scale_mask(root: int, intervals: list[int]) -> int:
    """
    Build a 12-bit pitch class mask from a root and semitone intervals.

    Bit N is set when pitch class N is in the scale. Intervals may be
    negative or exceed an octave; duplicates collapse.
    C major, build_scale_mask(0, [0, 2, 4, 5, 7, 9, 11]), gives 2741.

    Raises:
        InvalidPitchClassNumber: If root is not an integer in 0-11.
    """
    if not _is_int(root) or not 0 <= root < SEMITONES_PER_OCTAVE:
        raise InvalidPitchClassNumber(f"Scale root must be an integer in 0-11, got {root!r}", root)
    mask = 0
    for interval in intervals:
        mask |= 1 << ((root + interval) % SEMITONES_PER_OCTAVE)
    return mask


def _check_mask(mask: int) -> None:
    if not _is_int(mask) or not 0 < mask <= CHROMATIC_SCALE_MASK:
        raise InvalidScaleMask(
            f"Scale mask must be a non-empty 12-bit integer, got {mask!r}", mask
        )


def is_in_scale(pitch: int, mask: int) -> bool:
    """True if the pitch class of pitch is set in mask (works for negative pitches)."""
    return bool((mask >> (pitch % SEMITONES_PER_OCTAVE)) & 1)


def _clamp_to_scale_bounds(pitch: int, mask: int) -> int:
    # Above 127: highest in-scale pitch; below 0: lowest in-scale pitch.
    if pitch > MIDI_MAX:
        return next(p for p in range(MIDI_MAX, MIDI_MIN - 1, -1) if is_in_scale(p, mask))
    if pitch < MIDI_MIN:
        return next(p for p in range(MIDI_MIN, MIDI_MAX + 1) if is_in_scale(p, mask))
    return pitch


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _check_finite(value: float, what: str) -> None:
    if isinstance(value, float) and not math.isfinite(value):
        raise OutOfRange(f"{what.capitalize()} must be a finite number, got {value!r}", value)


def quantize_to_scale(pitch: float, mask: int) -> int:
    """
    Snap a pitch to the nearest in-scale MIDI pitch.

    The pitch is rounded (halves round up), then candidates are searched
    outward one semitone at a time. At each distance the higher candidate is
    tested first, so a pitch equidistant from two scale tones snaps upward.
    Results outside 0-127 are replaced by the nearest in-scale pitch inside
    the range.

    Args:
        pitch: Input pitch; may be fractional or outside the MIDI range.
        mask:  Non-empty 12-bit scale mask.

    Returns:
        In-scale MIDI pitch in 0-127.

    Raises:
        InvalidScaleMask: If mask is empty or wider than 12 bits.
        OutOfRange:       If pitch is NaN or infinite.
    """
    _check_mask(mask)
    _check_finite(pitch, "pitch")
    rounded = _round_half_up(pitch)

    for distance in range(SEMITONES_PER_OCTAVE):
        higher = rounded + distance
        if is_in_scale(higher, mask):
            return _clamp_to_scale_bounds(higher, mask)
        lower = rounded - distance
        if distance > 0 and is_in_scale(lower, mask):
            return _clamp_to_scale_bounds(lower, mask)

    # Unreachable for a non-empty mask: every pitch class lies within 11 semitones.
    raise InvalidScaleMask(f"No in-scale pitch found for mask {mask!r}", mask)


def step_in_scale(base_pitch: float, steps: int, mask: int) -> int:
    """
    Move a pitch by a number of scale steps.

    The base pitch is first quantized to the scale; positive steps walk up,
    negative steps walk down, counting only semitones that land in the scale.
    Walking past either end of the MIDI range stops at the outermost
    in-scale pitch.

    Raises:
        InvalidScaleMask: If mask is empty or wider than 12 bits.
        OutOfRange:       If base_pitch or steps is NaN or infinite.
    """
    _check_finite(steps, "step count")
    current = quantize_to_scale(base_pitch, mask)
    steps = _round_half_up(steps)
    if steps == 0:
        return current

    direction = 1 if steps > 0 else -1
    remaining = abs(steps)
    while remaining > 0:
        current += direction
        if current < MIDI_MIN or current > MIDI_MAX:
            return _clamp_to_scale_bounds(current, mask)
        if is_in_scale(current, mask):
            remaining -= 1
    return current


# ── Named scales ────────────────────────────────────────────────────────────

def scale_intervals(name: str) -> tuple[int, ...]:
    """
    Fetch the semitone intervals of a named scale (case-insensitive).

    Raises:
        UnknownScale: If the name is not in SCALES.
    """
    key = name.strip().lower()
    if key not in SCALES:
        valid = ", ".join(SCALES)
        raise UnknownScale(f"Unknown scale {name!r}. Valid options: {valid}", name)
    return SCALES[key]


def parse_scale(text: str) -> tuple[int, tuple[int, ...]]:
    """
    Parse a scale string such as "C major" or "Eb Dorian".

    Returns:
        (root pitch class, scale intervals)

    Raises:
        UnknownScale:      If the text has no scale name or the name is unknown.
        InvalidPitchClass: If the root is not a valid pitch class name.
    """
    parts = text.split()
    if len(parts) < 2:
        raise UnknownScale(f"Invalid scale {text!r}. Expected '<root> <scale>', e.g. 'C major'", text)
    root = name_to_semitone(parts[0])
    intervals = scale_intervals(" ".join(parts[1:]))
    logger.debug("Parsed scale %r as root=%d intervals=%s", text, root, intervals)
    return root, intervals


def scale_mask_from_string(text: str) -> int:
    """Build the scale mask for a string such as "D minor"."""
    root, intervals = parse_scale(text)
    return build_scale_mask(root, list(intervals))
