"""Note matching - decides when a target note has been held long enough.

The matcher keeps a position in the melody and a hold timer. Every tick it
receives one observation: a correct, in-tune pitch adds the tick duration to
the timer, anything else drains it by the same amount (never below zero).
When the timer exceeds the difficulty's required hold, the matcher advances
to the next note, or completes the melody after the last one.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from .difficulty import Difficulty
from ..analysis.tuning import Observation
from ..core import Note
from ..core.constants import DEFAULT_TICK_MS


@dataclass
class ProgressionState:
    """Where the singer is in the melody."""

    current_index: int = 0
    hold_ms: float = 0.0
    completed: bool = False


class Transition(Enum):
    """What a single tick did to the progression."""

    IGNORED = "ignored"  # Melody already completed
    STAY = "stay"
    ADVANCE = "advance"
    COMPLETE = "complete"


class NoteMatcher:
    """Hysteresis state machine over a fixed melody."""

    def __init__(self, melody: Sequence[Note], tick_ms: float = DEFAULT_TICK_MS):
        """
        Initialize NoteMatcher.

        Args:
            melody: Non-empty ordered sequence of target notes (read only)
            tick_ms: Nominal duration credited or drained per tick

        Raises:
            ValueError: If the melody is empty
        """
        if len(melody) == 0:
            raise ValueError("Melody must contain at least one note")
        self.melody = melody
        self.tick_ms = tick_ms
        self.state = ProgressionState()

    @property
    def target(self) -> Optional[Note]:
        """The note currently being sung, or None once completed."""
        if self.state.completed:
            return None
        return self.melody[self.state.current_index]

    def reset(self) -> None:
        """Return to the first note with an empty hold timer."""
        self.state = ProgressionState()

    def is_match(self, observation: Observation, difficulty: Difficulty) -> bool:
        """Whether an observation counts as holding the current target."""
        target = self.target
        if target is None or observation.pitch is None:
            return False
        return (
            observation.pitch == target.pitch
            and abs(observation.cents) <= difficulty.tolerance_cents
        )

    def update(
        self,
        observation: Observation,
        difficulty: Difficulty,
        tick_ms: Optional[float] = None,
    ) -> Transition:
        """
        Apply one tick.

        Args:
            observation: Pitch heard during this tick
            difficulty: Active difficulty (may differ from the previous tick)
            tick_ms: Time to credit for this tick (defaults to the nominal tick)

        Returns:
            The transition taken
        """
        state = self.state
        if state.completed:
            return Transition.IGNORED

        dt = self.tick_ms if tick_ms is None else tick_ms

        if self.is_match(observation, difficulty):
            state.hold_ms += dt
        else:
            state.hold_ms = max(0.0, state.hold_ms - dt)

        if state.hold_ms <= difficulty.required_hold_ms:
            return Transition.STAY

        state.hold_ms = 0.0
        if state.current_index >= len(self.melody) - 1:
            state.completed = True
            return Transition.COMPLETE

        state.current_index += 1
        return Transition.ADVANCE
