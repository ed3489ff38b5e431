"""MidiExporter: Writes compiled note events to a Standard MIDI File, one track per voice."""

import logging
from collections.abc import Sequence

from midiutil import MIDIFile

from tonelang.notation_models import Event

logger = logging.getLogger(__name__)

# midiutil's Format 1 files carry their own tempo (conductor) track ahead of
# the user tracks; tempo events always land there, whatever track is passed.
TRACK_CONDUCTOR = 0

# General MIDI reserves channel 10 (index 9) for percussion.
GM_DRUM_CHANNEL = 9
VOICE_CHANNELS = tuple(c for c in range(16) if c != GM_DRUM_CHANNEL)


class MidiExporter:
    """
    Writes a multi-track MIDI file from per-voice event lists.

    Track layout (Format 1)
    -----------------------
    Conductor track: tempo only, no notes (added by midiutil).

    Track N: "Voice N + 1", holding the events of voice N. Voices take
    channels 0-8 and 10-15 in turn; channel 9, the General MIDI drum
    channel, is never used. Keeping voices on separate tracks lets them be
    muted or assigned to different instruments in any MIDI player or DAW.

    Timing
    ------
    Event times are already in beats, which is midiutil's native unit, so
    they are written unchanged; the tempo only sets playback speed.
    """

    DEFAULT_TEMPO = 120  # BPM

    def __init__(self, tempo: int = DEFAULT_TEMPO) -> None:
        """
        Args:
            tempo: Playback tempo in beats per minute.
        """
        self.tempo = tempo

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build(self, voices: Sequence[Sequence[Event]]) -> MIDIFile:
        midi = MIDIFile(numTracks=max(1, len(voices)), removeDuplicates=False, deinterleave=False)
        midi.addTempo(TRACK_CONDUCTOR, 0, self.tempo)

        for track, events in enumerate(voices):
            channel = VOICE_CHANNELS[track % len(VOICE_CHANNELS)]
            midi.addTrackName(track, 0, f"Voice {track + 1}")
            for event in events:
                midi.addNote(
                    track=track,
                    channel=channel,
                    pitch=event.pitch,
                    time=float(event.start_time),
                    duration=float(event.duration),
                    volume=event.velocity,
                )
        return midi

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def export(self, voices: Sequence[Sequence[Event]], output_path: str) -> None:
        """
        Render compiled voices to a Standard MIDI File.

        Args:
            voices:      One event list per voice, as returned by compile_voices().
            output_path: Destination file path (e.g. "output.mid").

        Raises:
            OSError: If the output file cannot be opened for writing.
        """
        midi = self._build(voices)
        with open(output_path, "wb") as f:
            midi.writeFile(f)
        logger.debug("Wrote %d voice(s) to %s at %d BPM", len(voices), output_path, self.tempo)
