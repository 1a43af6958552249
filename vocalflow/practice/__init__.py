"""Practice layer - Matching a singer against a melody in real time.

- Difficulty levels (tolerance and hold time)
- NoteMatcher (hold-time hysteresis over the melody)
- Engine (one detect/classify/match pass per tick, owns the audio input)
- TickSource (cooperative frame driver)
"""

from .difficulty import Difficulty
from .matcher import NoteMatcher, ProgressionState, Transition
from .engine import Engine, EngineConfig, TickResult
from .scheduler import TickSource

__all__ = [
    "Difficulty",
    "NoteMatcher",
    "ProgressionState",
    "Transition",
    "Engine",
    "EngineConfig",
    "TickResult",
    "TickSource",
]
