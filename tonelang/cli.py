"""tonelang CLI entry point."""

import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from tonelang import __version__
from tonelang.compiler import NotationCompiler
from tonelang.errors import ToneLangError
from tonelang.midi_exporter import MidiExporter
from tonelang.parser import parse_voices
from tonelang.pitch import midi_to_name, name_to_midi, quantize_to_scale, scale_mask_from_string, step_in_scale


def _fail(exc: Exception) -> NoReturn:
    click.echo(f"  ERROR: {exc}", err=True)
    sys.exit(1)


def _read_notation(notation: str | None, file: str | None) -> str:
    """Return notation text from the argument or from --file (exactly one)."""
    if (notation is None) == (file is None):
        raise click.UsageError("Pass exactly one of NOTATION or --file.")
    if file is None:
        return notation or ""
    try:
        return Path(file).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        _fail(exc)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="tonelang")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
def main(verbose: bool) -> None:
    """tonelang: compile compact note notation into timed MIDI note events."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


# ── compile subcommand ─────────────────────────────────────────────────────────

@main.command(name="compile")
@click.argument("notation", required=False)
@click.option(
    "--file",
    "-f",
    type=click.Path(exists=True, dir_okay=False, readable=True),
    default=None,
    help="Read notation from a text file instead of the argument.",
)
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Write JSON to this file instead of stdout.",
)
@click.option(
    "--voices",
    "split",
    is_flag=True,
    help="Emit one event list per voice instead of a single merged list.",
)
def compile_command(notation: str | None, file: str | None, output: str | None, split: bool) -> None:
    """
    Compile NOTATION into a JSON list of note events.

    \b
    Examples:
      tonelang compile "C3 E3 G3 [C3 E3 G3]n2"
      tonelang compile "(C3 D3)v90*2; G2n4" --voices
      tonelang compile -f melody.txt -o events.json
    """
    text = _read_notation(notation, file)
    try:
        voices = NotationCompiler().compile_voices(parse_voices(text))
    except ToneLangError as exc:
        _fail(exc)

    if split:
        payload = [[event.to_dict() for event in events] for events in voices]
    else:
        payload = [event.to_dict() for events in voices for event in events]
    content = json.dumps(payload, indent=2)

    if output is None:
        click.echo(content)
        return
    try:
        Path(output).write_text(content + "\n", encoding="utf-8")
    except OSError as exc:
        _fail(exc)
    click.echo(f"Wrote {sum(len(events) for events in voices)} event(s) → '{output}'")


# ── export subcommand ──────────────────────────────────────────────────────────

@main.command()
@click.argument("notation", required=False)
@click.option(
    "--file",
    "-f",
    type=click.Path(exists=True, dir_okay=False, readable=True),
    default=None,
    help="Read notation from a text file instead of the argument.",
)
@click.option(
    "--output",
    "-o",
    required=True,
    metavar="PATH",
    help="Destination MIDI file path.",
)
@click.option(
    "--tempo",
    type=click.IntRange(20, 300),
    default=MidiExporter.DEFAULT_TEMPO,
    show_default=True,
    help="Playback tempo in BPM.",
)
def export(notation: str | None, file: str | None, output: str, tempo: int) -> None:
    """
    Compile NOTATION and write it as a MIDI file, one track per voice.

    \b
    Examples:
      tonelang export "C3 D3 E3 F3 G3n4" -o scale.mid
      tonelang export "C3*8; (C1 R)*4" -o groove.mid --tempo 96
    """
    text = _read_notation(notation, file)
    try:
        voices = NotationCompiler().compile_voices(parse_voices(text))
    except ToneLangError as exc:
        _fail(exc)

    click.echo(f"[1/2] Compiled {len(voices)} voice(s), "
               f"{sum(len(events) for events in voices)} event(s)")
    click.echo(f"[2/2] Writing MIDI file → '{output}'...")
    try:
        MidiExporter(tempo=tempo).export(voices, output)
    except OSError as exc:
        _fail(exc)
    click.echo("Done!")


# ── pitch subcommands ──────────────────────────────────────────────────────────

@main.command()
@click.argument("midi", type=int)
def name(midi: int) -> None:
    """Print the note name of a MIDI pitch (60 → C3)."""
    try:
        click.echo(midi_to_name(midi))
    except ToneLangError as exc:
        _fail(exc)


@main.command()
@click.argument("note_name")
def midi(note_name: str) -> None:
    """Print the MIDI pitch of a note name (C3 → 60)."""
    try:
        click.echo(name_to_midi(note_name))
    except ToneLangError as exc:
        _fail(exc)


_SCALE_OPTION = click.option(
    "--scale",
    "-s",
    default="C major",
    show_default=True,
    metavar="'ROOT NAME'",
    help="Scale as root and name, e.g. 'Eb minor' or 'D dorian'.",
)


@main.command()
@click.argument("pitch", type=float)
@_SCALE_OPTION
def quantize(pitch: float, scale: str) -> None:
    """Snap PITCH to the nearest pitch in the scale (ties go up)."""
    try:
        result = quantize_to_scale(pitch, scale_mask_from_string(scale))
    except ToneLangError as exc:
        _fail(exc)
    click.echo(f"{result} ({midi_to_name(result)})")


@main.command()
@click.argument("pitch", type=float)
@click.argument("steps", type=int)
@_SCALE_OPTION
def step(pitch: float, steps: int, scale: str) -> None:
    """
    Move PITCH by STEPS scale degrees (negative STEPS move down).

    \b
    Example:
      tonelang step --scale "C major" -- 60 -2
    """
    try:
        result = step_in_scale(pitch, steps, scale_mask_from_string(scale))
    except ToneLangError as exc:
        _fail(exc)
    click.echo(f"{result} ({midi_to_name(result)})")
