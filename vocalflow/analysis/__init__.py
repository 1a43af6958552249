"""Analysis layer - Per-buffer signal analysis.

This layer turns raw audio into musical observations:
- Pitch detection (autocorrelation, one buffer at a time)
- Pitch classification (nearest pitch code plus tuning error in cents)
"""

from .pitch import PitchDetector, Detection, NO_PITCH
from .tuning import PitchClassifier, Observation, PitchReading, SILENCE

__all__ = [
    "PitchDetector",
    "Detection",
    "NO_PITCH",
    "PitchClassifier",
    "Observation",
    "PitchReading",
    "SILENCE",
]
