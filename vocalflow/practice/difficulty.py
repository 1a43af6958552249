"""Difficulty levels and their matching thresholds."""

from enum import Enum
from typing import Dict, Tuple


class Difficulty(Enum):
    """How strict the matcher is about tuning and how long a note must be held."""

    EASY = "easy"
    HARD = "hard"

    @property
    def tolerance_cents(self) -> float:
        """Largest tuning error (absolute, in cents) that still counts as in tune."""
        return _THRESHOLDS[self][0]

    @property
    def required_hold_ms(self) -> float:
        """Accumulated hold time that must be exceeded to advance."""
        return _THRESHOLDS[self][1]

    @classmethod
    def from_name(cls, name: str) -> "Difficulty":
        """Look up a difficulty by name, case-insensitively."""
        try:
            return cls(name.strip().lower())
        except ValueError:
            valid = ", ".join(d.value for d in cls)
            raise ValueError(f"Unknown difficulty '{name}'. Valid: {valid}") from None


# (tolerance_cents, required_hold_ms)
_THRESHOLDS: Dict[Difficulty, Tuple[float, float]] = {
    Difficulty.EASY: (50.0, 20.0),
    Difficulty.HARD: (25.0, 80.0),
}
