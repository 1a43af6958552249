"""Pitch detection by autocorrelation with parabolic peak refinement."""

from dataclasses import dataclass
from typing import Optional, Tuple
import numpy as np
import librosa

from ..core.constants import (
    DEFAULT_BUFFER_SIZE,
    NOISE_FLOOR_RMS,
    TRIM_THRESHOLD,
)


@dataclass(frozen=True)
class Detection:
    """Result of analysing one buffer: a frequency, or no pitch at all."""

    frequency: Optional[float] = None  # Hz, None when no pitch was found

    @property
    def has_pitch(self) -> bool:
        return self.frequency is not None


NO_PITCH = Detection()


class PitchDetector:
    """Estimates the fundamental frequency of a single audio buffer.

    The buffer is first gated on RMS energy, trimmed to the region where the
    signal is loud, and autocorrelated. The initial decline of the
    autocorrelation around lag 0 is skipped, the strongest remaining peak is
    taken as the period and refined to sub-sample precision by fitting a
    parabola through the peak and its neighbours.

    ``detect`` never raises for a non-empty buffer; anything it cannot
    resolve is reported as ``NO_PITCH``.
    """

    def __init__(
        self,
        noise_floor: float = NOISE_FLOOR_RMS,
        trim_threshold: float = TRIM_THRESHOLD,
    ):
        """
        Initialize PitchDetector.

        Args:
            noise_floor: Minimum RMS for a buffer to be analysed at all
            trim_threshold: Absolute amplitude that marks the active region
        """
        self.noise_floor = noise_floor
        self.trim_threshold = trim_threshold

    def detect(self, buffer: np.ndarray, sr: float) -> Detection:
        """
        Detect the pitch of one buffer.

        Args:
            buffer: Time-domain samples in [-1, 1]
            sr: Sample rate the buffer was captured at

        Returns:
            Detection with the frequency in Hz, or NO_PITCH
        """
        buf = np.asarray(buffer, dtype=np.float64).ravel()
        if buf.size == 0 or sr <= 0:
            return NO_PITCH

        if self.rms(buf) < self.noise_floor:
            return NO_PITCH

        region = self._trim(buf)
        if len(region) < 3:
            return NO_PITCH

        corr = librosa.autocorrelate(region)
        period = self._find_period(corr)
        if period is None:
            return NO_PITCH

        return Detection(frequency=float(sr / period))

    def contour(
        self,
        audio: np.ndarray,
        sr: int,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        hop_length: Optional[int] = None,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Run the detector over consecutive buffers of a recording.

        Returns:
            Tuple of (frame start times, frequencies) with NaN where no pitch
        """
        hop_length = hop_length or buffer_size
        audio = np.asarray(audio, dtype=np.float64)
        if len(audio) < buffer_size:
            audio = np.pad(audio, (0, buffer_size - len(audio)))

        frames = librosa.util.frame(
            audio, frame_length=buffer_size, hop_length=hop_length, axis=0
        )
        freqs = np.full(len(frames), np.nan)
        for i, frame in enumerate(frames):
            detection = self.detect(frame, sr)
            if detection.has_pitch:
                freqs[i] = detection.frequency

        times = librosa.frames_to_time(
            np.arange(len(frames)), sr=sr, hop_length=hop_length
        )
        return times, freqs

    @staticmethod
    def rms(buffer: np.ndarray) -> float:
        """Root-mean-square amplitude of a buffer."""
        if len(buffer) == 0:
            return 0.0
        return float(np.sqrt(np.mean(np.square(buffer))))

    def _trim(self, buf: np.ndarray) -> np.ndarray:
        """Cut low-energy tails, keeping the span between the first and last loud samples.

        Only the first half is searched for the start and the last half for
        the end. A side with no loud sample keeps its original boundary.
        """
        n = len(buf)
        half = n // 2
        loud = np.abs(buf) > self.trim_threshold

        head = np.flatnonzero(loud[:half])
        start = int(head[0]) if head.size else 0

        tail = np.flatnonzero(loud[n - half:])
        end = n - half + int(tail[-1]) if tail.size else n - 1

        return buf[start:end + 1]

    @staticmethod
    def _find_period(corr: np.ndarray) -> Optional[float]:
        """Locate the period (in samples) from an autocorrelation sequence."""
        n = len(corr)

        # Skip the decline away from the zero-lag peak
        d = 0
        while d < n - 1 and corr[d] > corr[d + 1]:
            d += 1
        if d >= n - 1:
            return None

        t0 = d + int(np.argmax(corr[d:]))
        if t0 <= 0:
            return None

        period = float(t0)
        if t0 < n - 1:
            x1, x2, x3 = corr[t0 - 1], corr[t0], corr[t0 + 1]
            a = (x1 + x3 - 2 * x2) / 2
            b = (x3 - x1) / 2
            if a != 0:
                period = t0 - b / (2 * a)

        if not np.isfinite(period) or period <= 0:
            return None
        return period
