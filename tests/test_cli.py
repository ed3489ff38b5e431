"""CLI tests using click's CliRunner."""

import json

import pytest
from click.testing import CliRunner

from tonelang import __version__
from tonelang.cli import main


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def test_version(runner: CliRunner) -> None:
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


# ── compile ────────────────────────────────────────────────────────────────────

def test_compile_prints_merged_events(runner: CliRunner) -> None:
    result = runner.invoke(main, ["compile", "C3 R D3n2; G3"])
    assert result.exit_code == 0
    assert json.loads(result.output) == [
        {"pitch": 60, "start_time": 0, "duration": 1, "velocity": 70},
        {"pitch": 62, "start_time": 2, "duration": 2, "velocity": 70},
        {"pitch": 67, "start_time": 0, "duration": 1, "velocity": 70},
    ]


def test_compile_voices_flag_keeps_voices_apart(runner: CliRunner) -> None:
    result = runner.invoke(main, ["compile", "C3n.5; G3", "--voices"])
    assert result.exit_code == 0
    assert json.loads(result.output) == [
        [{"pitch": 60, "start_time": 0, "duration": 0.5, "velocity": 70}],
        [{"pitch": 67, "start_time": 0, "duration": 1, "velocity": 70}],
    ]


def test_compile_reads_file_and_writes_output(runner: CliRunner, tmp_path: pytest.TempPathFactory) -> None:
    source = tmp_path / "melody.txt"  # type: ignore[operator]
    source.write_text("(C3 D3)*2\n", encoding="utf-8")
    out = tmp_path / "events.json"  # type: ignore[operator]

    result = runner.invoke(main, ["compile", "-f", str(source), "-o", str(out)])
    assert result.exit_code == 0
    assert "Wrote 4 event(s)" in result.output
    events = json.loads(out.read_text(encoding="utf-8"))
    assert [event["start_time"] for event in events] == [0, 1, 2, 3]


def test_compile_requires_exactly_one_source(runner: CliRunner, tmp_path: pytest.TempPathFactory) -> None:
    result = runner.invoke(main, ["compile"])
    assert result.exit_code == 2
    assert "Pass exactly one of NOTATION or --file." in result.output

    source = tmp_path / "melody.txt"  # type: ignore[operator]
    source.write_text("C3", encoding="utf-8")
    assert runner.invoke(main, ["compile", "C3", "-f", str(source)]).exit_code == 2


def test_compile_reports_undecodable_file(runner: CliRunner, tmp_path: pytest.TempPathFactory) -> None:
    source = tmp_path / "melody.txt"  # type: ignore[operator]
    source.write_bytes(b"C3 \xff")
    result = runner.invoke(main, ["compile", "-f", str(source)])
    assert result.exit_code == 1
    assert "ERROR:" in result.output
    assert not isinstance(result.exception, UnicodeDecodeError)


def test_compile_reports_syntax_errors(runner: CliRunner) -> None:
    result = runner.invoke(main, ["compile", "C3 X9"])
    assert result.exit_code == 1
    assert "ERROR" in result.output
    assert "Unexpected 'X'" in result.output


def test_compile_reports_out_of_range_notes(runner: CliRunner) -> None:
    result = runner.invoke(main, ["compile", "C9"])
    assert result.exit_code == 1
    assert "outside valid range" in result.output


# ── export ─────────────────────────────────────────────────────────────────────

@pytest.mark.integration
def test_export_writes_midi(runner: CliRunner, tmp_path: pytest.TempPathFactory) -> None:
    out = tmp_path / "song.mid"  # type: ignore[operator]
    result = runner.invoke(main, ["export", "C3 E3 G3; C2n3", "-o", str(out), "--tempo", "90"])
    assert result.exit_code == 0
    assert "Compiled 2 voice(s), 4 event(s)" in result.output
    assert "Done!" in result.output
    assert out.read_bytes()[:4] == b"MThd"


def test_export_requires_output(runner: CliRunner) -> None:
    assert runner.invoke(main, ["export", "C3"]).exit_code == 2


def test_export_rejects_tempo_out_of_range(runner: CliRunner, tmp_path: pytest.TempPathFactory) -> None:
    out = tmp_path / "song.mid"  # type: ignore[operator]
    result = runner.invoke(main, ["export", "C3", "-o", str(out), "--tempo", "5"])
    assert result.exit_code == 2
    assert not out.exists()


# ── pitch commands ─────────────────────────────────────────────────────────────

@pytest.mark.parametrize(("midi", "expected"), [("0", "C-2"), ("60", "C3"), ("127", "G8")])
def test_name(runner: CliRunner, midi: str, expected: str) -> None:
    result = runner.invoke(main, ["name", midi])
    assert result.exit_code == 0
    assert result.output.strip() == expected


def test_name_rejects_out_of_range(runner: CliRunner) -> None:
    result = runner.invoke(main, ["name", "200"])
    assert result.exit_code == 1
    assert "ERROR" in result.output


def test_midi(runner: CliRunner) -> None:
    result = runner.invoke(main, ["midi", "F#4"])
    assert result.exit_code == 0
    assert result.output.strip() == "78"


def test_midi_rejects_malformed_names(runner: CliRunner) -> None:
    assert runner.invoke(main, ["midi", "H3"]).exit_code == 1


def test_quantize_defaults_to_c_major(runner: CliRunner) -> None:
    result = runner.invoke(main, ["quantize", "61"])
    assert result.exit_code == 0
    assert result.output.strip() == "62 (D3)"


def test_quantize_with_named_scale(runner: CliRunner) -> None:
    result = runner.invoke(main, ["quantize", "64", "--scale", "Eb minor"])
    assert result.exit_code == 0
    assert result.output.strip() == "65 (F3)"


def test_quantize_rejects_unknown_scale(runner: CliRunner) -> None:
    result = runner.invoke(main, ["quantize", "60", "-s", "C blues"])
    assert result.exit_code == 1
    assert "ERROR" in result.output


@pytest.mark.parametrize(
    "args",
    [["quantize", "nan"], ["quantize", "--", "-inf"], ["step", "inf", "1"]],
)
def test_non_finite_pitches_are_reported(runner: CliRunner, args: list[str]) -> None:
    result = runner.invoke(main, args)
    assert result.exit_code == 1
    assert "ERROR:" in result.output
    assert "finite" in result.output


def test_step_down(runner: CliRunner) -> None:
    result = runner.invoke(main, ["step", "--scale", "C major", "--", "60", "-2"])
    assert result.exit_code == 0
    assert result.output.strip() == "57 (A2)"


def test_step_up(runner: CliRunner) -> None:
    result = runner.invoke(main, ["step", "60", "7"])
    assert result.exit_code == 0
    assert result.output.strip() == "72 (C4)"
