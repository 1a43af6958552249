"""Core types and constants for VocalFlow."""

from .note import Note, Song, pitch_name, build_melody
from .errors import SessionSetupError
from .constants import (
    PITCH_NAMES,
    REFERENCE_FREQ,
    REFERENCE_CODE,
    DEFAULT_SR,
    DEFAULT_BUFFER_SIZE,
    DEFAULT_TICK_MS,
    VOCAL_MIN_HZ,
    VOCAL_MAX_HZ,
)

__all__ = [
    "Note",
    "Song",
    "pitch_name",
    "build_melody",
    "SessionSetupError",
    "PITCH_NAMES",
    "REFERENCE_FREQ",
    "REFERENCE_CODE",
    "DEFAULT_SR",
    "DEFAULT_BUFFER_SIZE",
    "DEFAULT_TICK_MS",
    "VOCAL_MIN_HZ",
    "VOCAL_MAX_HZ",
]
