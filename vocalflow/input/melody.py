"""Melody loading - turns song files into the notes a singer practices.

Supported inputs:
- JSON songs: {"title": ..., "notes": [{"midi": 60, "lyric": "la", "duration": 4}]}
- MusicXML (.xml, .musicxml, .mxl) via music21
- Standard MIDI files (.mid, .midi) via pretty_midi
"""

import json
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..core import Note, Song, build_melody
from ..core.constants import DEFAULT_NOTE_DURATION


class MelodyLoader:
    """Loads a Song from disk, dispatching on file extension."""

    JSON_FORMATS = {".json"}
    MUSICXML_FORMATS = {".xml", ".musicxml", ".mxl"}
    MIDI_FORMATS = {".mid", ".midi"}

    def load(self, path: str) -> Song:
        """
        Load a melody file.

        Args:
            path: Path to a JSON, MusicXML or MIDI file

        Returns:
            Song (which may have no notes; callers decide whether that is an error)

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the format is unsupported or the content is invalid
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Melody file not found: {path}")

        suffix = path.suffix.lower()
        if suffix in self.JSON_FORMATS:
            return self.load_json(path)
        if suffix in self.MUSICXML_FORMATS:
            return self.load_musicxml(path)
        if suffix in self.MIDI_FORMATS:
            return self.load_midi(path)

        supported = sorted(self.JSON_FORMATS | self.MUSICXML_FORMATS | self.MIDI_FORMATS)
        raise ValueError(f"Unsupported format: {suffix}. Supported: {supported}")

    @staticmethod
    def from_codes(
        codes: Sequence[int],
        lyrics: Optional[Sequence[Optional[str]]] = None,
        title: str = "Melody",
    ) -> Song:
        """Build a song from a plain list of pitch codes."""
        return Song(title=title, notes=build_melody(codes, lyrics=lyrics))

    def load_json(self, path: Path) -> Song:
        """Load a JSON song description."""
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("notes"), list):
            raise ValueError(f"Expected an object with a 'notes' list in {path}")

        return self.parse_song_dict(data, default_title=Path(path).stem)

    @staticmethod
    def parse_song_dict(data: Dict, default_title: str = "Melody") -> Song:
        """Build a song from an already-decoded JSON object."""
        notes = []
        for i, entry in enumerate(data.get("notes", [])):
            midi = entry.get("midi") if isinstance(entry, dict) else None
            if isinstance(midi, bool) or not isinstance(midi, int):
                raise ValueError(f"Note {i} has no integer 'midi' value")

            notes.append(
                Note.from_midi(
                    midi,
                    duration=entry.get("duration") or DEFAULT_NOTE_DURATION,
                    lyric=entry.get("lyric") or None,
                    id=f"note-{i}",
                )
            )

        return Song(title=data.get("title") or default_title, notes=notes)

    def load_musicxml(self, path: Path) -> Song:
        """Load the first part of a MusicXML score as a melody."""
        try:
            from music21 import converter, chord
        except ImportError:
            raise ImportError("music21 is required for MusicXML input")

        try:
            score = converter.parse(str(path))
        except Exception as e:
            raise ValueError(f"Invalid MusicXML file {path}: {e}") from e

        parts = getattr(score, "parts", None)
        source = parts[0] if parts else score

        notes: List[Note] = []
        for element in source.flatten().notes:
            # Tied continuations extend the previous note rather than starting one
            if element.tie is not None and element.tie.type in ("continue", "stop"):
                if notes:
                    notes[-1] = replace(
                        notes[-1],
                        duration=notes[-1].duration + float(element.duration.quarterLength),
                    )
                continue

            if isinstance(element, chord.Chord):
                pitch = max(p.midi for p in element.pitches)
            else:
                pitch = element.pitch.midi

            notes.append(
                Note.from_midi(
                    pitch,
                    duration=float(element.duration.quarterLength),
                    lyric=element.lyric or None,
                    id=f"note-{len(notes)}",
                )
            )

        title = None
        if score.metadata is not None:
            title = score.metadata.title
        return Song(title=title or Path(path).stem, notes=notes)

    def load_midi(self, path: Path) -> Song:
        """Load the top line of the first pitched instrument in a MIDI file."""
        import pretty_midi

        try:
            pm = pretty_midi.PrettyMIDI(str(path))
        except Exception as e:
            raise ValueError(f"Invalid MIDI file {path}: {e}") from e

        instrument = next(
            (inst for inst in pm.instruments if not inst.is_drum and inst.notes),
            None,
        )
        if instrument is None:
            return Song(title=Path(path).stem, notes=[])

        # Keep the highest note of each onset
        by_onset: Dict[float, "pretty_midi.Note"] = {}
        for n in instrument.notes:
            onset = round(n.start, 3)
            if onset not in by_onset or n.pitch > by_onset[onset].pitch:
                by_onset[onset] = n

        lyrics = {round(lyric.time, 3): lyric.text.strip() for lyric in pm.lyrics}

        notes = []
        for i, onset in enumerate(sorted(by_onset)):
            n = by_onset[onset]
            notes.append(
                Note.from_midi(
                    n.pitch,
                    duration=n.end - n.start,
                    lyric=lyrics.get(onset) or None,
                    id=f"note-{i}",
                )
            )

        title = instrument.name.strip() or Path(path).stem
        return Song(title=title, notes=notes)
