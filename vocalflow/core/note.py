"""Note data class - one target pitch of a practice melody."""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .constants import (
    DEFAULT_NOTE_DURATION,
    PITCH_NAMES,
    REFERENCE_CODE,
    REFERENCE_FREQ,
)


@dataclass(frozen=True)
class Note:
    """Represents a target note in a melody."""

    pitch: int  # Pitch code (MIDI numbering, 69 = A4)
    frequency: float  # Hz
    duration: float = DEFAULT_NOTE_DURATION  # Beats or relative units
    lyric: Optional[str] = None
    id: str = ""

    @property
    def pitch_name(self) -> str:
        """Get note name (e.g., 'C4', 'A#3')."""
        return pitch_name(self.pitch)

    @classmethod
    def from_midi(
        cls,
        pitch: int,
        duration: float = DEFAULT_NOTE_DURATION,
        lyric: Optional[str] = None,
        id: str = "",
    ) -> "Note":
        """Build a note whose frequency is derived from its pitch code."""
        return cls(
            pitch=int(pitch),
            frequency=cls.midi_to_freq(pitch),
            duration=duration,
            lyric=lyric,
            id=id,
        )

    @staticmethod
    def freq_to_midi(
        freq: float,
        reference_freq: float = REFERENCE_FREQ,
        reference_code: int = REFERENCE_CODE,
    ) -> int:
        """Convert frequency (Hz) to the nearest MIDI pitch; half-way values round down."""
        if freq <= 0:
            return 0
        p = 12 * math.log2(freq / reference_freq) + reference_code
        return math.ceil(p - 0.5)

    @staticmethod
    def midi_to_freq(midi: float) -> float:
        """Convert MIDI pitch to frequency (Hz)."""
        return REFERENCE_FREQ * (2 ** ((midi - REFERENCE_CODE) / 12.0))


@dataclass
class Song:
    """A titled melody: the ordered notes a singer works through."""

    title: str
    notes: List[Note] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.notes)

    def __getitem__(self, index: int) -> Note:
        return self.notes[index]


def pitch_name(pitch: int) -> str:
    """Name of a pitch code, e.g. 60 -> 'C4'."""
    octave = (pitch // 12) - 1
    return f"{PITCH_NAMES[pitch % 12]}{octave}"


def build_melody(
    pitches: Sequence[int],
    lyrics: Optional[Sequence[Optional[str]]] = None,
    durations: Optional[Sequence[float]] = None,
    id_prefix: str = "note",
) -> List[Note]:
    """Build a list of notes from pitch codes with optional lyrics/durations."""
    notes = []
    for i, pitch in enumerate(pitches):
        lyric = lyrics[i] if lyrics is not None and i < len(lyrics) else None
        duration = (
            durations[i]
            if durations is not None and i < len(durations)
            else DEFAULT_NOTE_DURATION
        )
        notes.append(
            Note.from_midi(pitch, duration=duration, lyric=lyric, id=f"{id_prefix}-{i}")
        )
    return notes
