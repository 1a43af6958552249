"""VocalFlow - Real-time vocal pitch training.

Architecture Layers:
    1. core/      - Note and Song types, pitch naming, constants
    2. analysis/  - Per-buffer pitch detection and classification
    3. practice/  - Note matching, practice engine, tick scheduling
    4. input/     - Audio files, frame sources, melody files
"""

__version__ = "0.1.0"

# Core types
from .core import Note, Song, SessionSetupError

# Analysis layer
from .analysis import PitchDetector, PitchClassifier, Detection, Observation

# Practice layer
from .practice import (
    Difficulty,
    NoteMatcher,
    ProgressionState,
    Engine,
    EngineConfig,
    TickResult,
    TickSource,
)

# Input layer
from .input import AudioLoader, MelodyLoader, FrameSource, ArrayFrameSource

__all__ = [
    # Core
    "Note",
    "Song",
    "SessionSetupError",
    # Analysis
    "PitchDetector",
    "PitchClassifier",
    "Detection",
    "Observation",
    # Practice
    "Difficulty",
    "NoteMatcher",
    "ProgressionState",
    "Engine",
    "EngineConfig",
    "TickResult",
    "TickSource",
    # Input
    "AudioLoader",
    "MelodyLoader",
    "FrameSource",
    "ArrayFrameSource",
]
