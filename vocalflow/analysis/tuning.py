"""Frequency to pitch-code classification and tuning error."""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .pitch import Detection
from ..core.constants import (
    CENTS_PER_SEMITONE,
    REFERENCE_CODE,
    REFERENCE_FREQ,
    VOCAL_MAX_HZ,
    VOCAL_MIN_HZ,
)


@dataclass(frozen=True)
class Observation:
    """What the singer produced during one tick."""

    pitch: Optional[int] = None  # Nearest pitch code, None if unvoiced/out of band
    cents: float = 0.0  # Tuning error in (-50, +50]
    frequency: Optional[float] = None  # Detected Hz, kept for display

    @property
    def voiced(self) -> bool:
        return self.pitch is not None


SILENCE = Observation()


class PitchClassifier:
    """Maps frequencies onto the equal-tempered grid."""

    def __init__(
        self,
        reference_freq: float = REFERENCE_FREQ,
        reference_code: int = REFERENCE_CODE,
        min_frequency: float = VOCAL_MIN_HZ,
        max_frequency: float = VOCAL_MAX_HZ,
    ):
        """
        Initialize PitchClassifier.

        Args:
            reference_freq: Frequency of the reference pitch (A4 = 440 Hz)
            reference_code: Pitch code of the reference pitch (69)
            min_frequency: Lowest accepted frequency (exclusive)
            max_frequency: Highest accepted frequency (exclusive)
        """
        self.reference_freq = reference_freq
        self.reference_code = reference_code
        self.min_frequency = min_frequency
        self.max_frequency = max_frequency

    def frequency_to_pitch(self, freq: float) -> float:
        """Continuous pitch value for a frequency (Hz > 0)."""
        return 12 * math.log2(freq / self.reference_freq) + self.reference_code

    def code_to_frequency(self, code: float) -> float:
        """Frequency of a pitch code; exact inverse of frequency_to_pitch."""
        return self.reference_freq * 2 ** ((code - self.reference_code) / 12)

    def classify(self, freq: float) -> Tuple[int, float]:
        """
        Round a frequency to the nearest pitch code.

        Returns:
            Tuple of (pitch code, cents error in (-50, +50])
        """
        p = self.frequency_to_pitch(freq)
        # Half-way values round down so the error stays in (-50, +50]
        code = math.ceil(p - 0.5)
        return code, (p - code) * CENTS_PER_SEMITONE

    def in_band(self, freq: float) -> bool:
        """Whether a frequency lies inside the supported vocal band."""
        return self.min_frequency < freq < self.max_frequency

    def observe(self, detection: Detection) -> Observation:
        """Turn a detection into an observation, rejecting out-of-band pitches."""
        freq = detection.frequency
        if freq is None or not math.isfinite(freq) or not self.in_band(freq):
            return SILENCE
        code, cents = self.classify(freq)
        return Observation(pitch=code, cents=cents, frequency=freq)


@dataclass(frozen=True)
class PitchReading:
    """Tuning meter value for display: how far off, and whether it counts."""

    cents: float  # Clamped to +/- display_range
    position: float  # 0.0 (flat edge) .. 1.0 (sharp edge), 0.5 = on target
    in_tolerance: bool

    @property
    def label(self) -> str:
        return "PERFECT" if self.in_tolerance else "SING"

    @classmethod
    def from_observation(
        cls,
        observation: Observation,
        tolerance_cents: float,
        display_range: float = 100.0,
    ) -> "PitchReading":
        clamped = max(-display_range, min(display_range, observation.cents))
        position = (clamped + display_range) / (2 * display_range)
        in_tolerance = observation.voiced and abs(observation.cents) <= tolerance_cents
        return cls(cents=clamped, position=position, in_tolerance=in_tolerance)
