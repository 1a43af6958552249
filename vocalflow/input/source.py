"""Frame sources - where the engine gets one audio buffer per tick."""

from abc import ABC, abstractmethod
from typing import Optional
import numpy as np

from ..core.constants import DEFAULT_BUFFER_SIZE


class FrameSource(ABC):
    """Abstract base class for tick-by-tick audio input."""

    sample_rate: int
    buffer_size: int

    @abstractmethod
    def open(self) -> None:
        """Acquire the underlying input. Called once per session."""
        pass

    @abstractmethod
    def read(self) -> Optional[np.ndarray]:
        """
        Return the next buffer.

        Returns:
            A 1-D float array of ``buffer_size`` samples, or None once the
            source is exhausted
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the underlying input. Must be safe to call repeatedly."""
        pass

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class ArrayFrameSource(FrameSource):
    """Replays a preloaded signal as consecutive fixed-length buffers."""

    def __init__(
        self,
        audio: np.ndarray,
        sample_rate: int,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        hop_length: Optional[int] = None,
    ):
        """
        Initialize ArrayFrameSource.

        Args:
            audio: Mono signal
            sample_rate: Sample rate of the signal
            buffer_size: Samples per buffer
            hop_length: Samples to advance between buffers (default: buffer_size)
        """
        self.audio = np.asarray(audio, dtype=np.float32).ravel()
        self.sample_rate = sample_rate
        self.buffer_size = buffer_size
        self.hop_length = hop_length or buffer_size
        self._position = 0
        self.is_open = False

    @property
    def position(self) -> int:
        """Sample offset of the next buffer."""
        return self._position

    def open(self) -> None:
        self._position = 0
        self.is_open = True

    def read(self) -> Optional[np.ndarray]:
        if not self.is_open or self._position >= len(self.audio):
            return None

        frame = self.audio[self._position:self._position + self.buffer_size]
        if len(frame) < self.buffer_size:
            frame = np.pad(frame, (0, self.buffer_size - len(frame)))

        self._position += self.hop_length
        return frame

    def close(self) -> None:
        self.is_open = False
