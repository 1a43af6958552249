"""Live microphone input via sounddevice."""

import logging
import threading
from typing import Optional, Union
import numpy as np
import sounddevice as sd

from .source import FrameSource
from ..core import SessionSetupError
from ..core.constants import DEFAULT_BUFFER_SIZE, DEFAULT_SR

logger = logging.getLogger(__name__)


class MicrophoneSource(FrameSource):
    """Captures mono audio and serves the most recent buffer on each read.

    The stream callback runs on the audio thread and only copies samples into
    a ring; ``read`` hands the engine a snapshot of the latest
    ``buffer_size`` samples, so a read never blocks waiting for audio.
    """

    def __init__(
        self,
        sample_rate: int = DEFAULT_SR,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        device: Optional[Union[int, str]] = None,
    ):
        """
        Initialize MicrophoneSource.

        Args:
            sample_rate: Capture sample rate
            buffer_size: Samples per buffer handed to the engine
            device: sounddevice input device (index or name), None for default
        """
        self.sample_rate = sample_rate
        self.buffer_size = buffer_size
        self.device = device
        self._ring = np.zeros(buffer_size, dtype=np.float32)
        self._lock = threading.Lock()
        self._stream: Optional[sd.InputStream] = None

    @property
    def active(self) -> bool:
        return self._stream is not None

    def open(self) -> None:
        if self._stream is not None:
            return

        with self._lock:
            self._ring[:] = 0.0

        try:
            stream = sd.InputStream(
                device=self.device,
                samplerate=self.sample_rate,
                channels=1,
                dtype="float32",
                blocksize=self.buffer_size,
                callback=self._callback,
            )
            stream.start()
        except Exception as e:
            logger.error(f"Failed to open audio input: {e}")
            raise SessionSetupError(f"Could not access microphone: {e}") from e

        self._stream = stream
        logger.info(
            f"Microphone open: device={self.device if self.device is not None else 'default'}, "
            f"sample_rate={self.sample_rate}Hz, buffer_size={self.buffer_size}"
        )

    def read(self) -> Optional[np.ndarray]:
        if self._stream is None:
            return None
        with self._lock:
            return self._ring.copy()

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return

        try:
            if stream.active:
                stream.stop()
        finally:
            stream.close()
        logger.debug("Microphone stream stopped and closed")

    def _callback(self, indata: np.ndarray, frames: int, time_info, status) -> None:
        """Audio-thread callback: append new samples to the ring."""
        if status:
            logger.warning(f"Audio status: {status}")

        samples = indata[:, 0]
        n = len(samples)
        if n == 0:
            return
        with self._lock:
            if n >= self.buffer_size:
                self._ring[:] = samples[-self.buffer_size:]
            else:
                self._ring[:-n] = self._ring[n:]
                self._ring[-n:] = samples
