"""Input layer - Audio and melody acquisition."""

from .loader import AudioLoader
from .melody import MelodyLoader
from .source import FrameSource, ArrayFrameSource

__all__ = [
    "AudioLoader",
    "MelodyLoader",
    "FrameSource",
    "ArrayFrameSource",
]
