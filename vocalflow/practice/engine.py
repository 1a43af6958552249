"""Practice engine - one tick of detect, classify and match.

The engine owns the progression state, the melody reference and the audio
input. A driver (see ``TickSource``) calls ``tick`` once per frame; nothing
else mutates the progression while a session is running.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .difficulty import Difficulty
from .matcher import NoteMatcher, ProgressionState, Transition
from ..analysis import PitchDetector, PitchClassifier, Detection, NO_PITCH
from ..analysis.tuning import Observation, SILENCE
from ..core import Note, SessionSetupError
from ..core.constants import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_SR,
    DEFAULT_TICK_MS,
    NOISE_FLOOR_RMS,
    REFERENCE_CODE,
    REFERENCE_FREQ,
    TRIM_THRESHOLD,
    VOCAL_MAX_HZ,
    VOCAL_MIN_HZ,
)
from ..input.source import FrameSource

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """Configuration for a practice engine.

    Attributes:
        tick_ms: Hold time credited per tick (default: 16, about 60 fps)
        sample_rate: Capture sample rate for sources the caller creates (default: 44100)
        buffer_size: Samples per analysed buffer (default: 2048)
        min_frequency: Lower edge of the accepted vocal band in Hz (default: 80)
        max_frequency: Upper edge of the accepted vocal band in Hz (default: 1200)
        reference_freq: Tuning reference frequency (default: 440)
        reference_code: Pitch code of the tuning reference (default: 69)
        noise_floor: RMS below which a buffer is treated as silence (default: 0.01)
        trim_threshold: Amplitude marking the active region of a buffer (default: 0.2)
        measure_tick_time: Credit measured wall-clock time instead of tick_ms (default: False)
    """

    tick_ms: float = DEFAULT_TICK_MS
    sample_rate: int = DEFAULT_SR
    buffer_size: int = DEFAULT_BUFFER_SIZE
    min_frequency: float = VOCAL_MIN_HZ
    max_frequency: float = VOCAL_MAX_HZ
    reference_freq: float = REFERENCE_FREQ
    reference_code: int = REFERENCE_CODE
    noise_floor: float = NOISE_FLOOR_RMS
    trim_threshold: float = TRIM_THRESHOLD
    measure_tick_time: bool = False


@dataclass(frozen=True)
class TickResult:
    """Snapshot of one tick for progression consumers."""

    detection: Detection
    observation: Observation
    target: Optional[Note]  # Note to sing next, None once completed
    current_index: int
    hold_ms: float
    transition: Transition

    @property
    def advanced(self) -> bool:
        return self.transition in (Transition.ADVANCE, Transition.COMPLETE)

    @property
    def completed(self) -> bool:
        return self.transition is Transition.COMPLETE or self.target is None


class Engine:
    """Runs a practice session over a melody."""

    def __init__(
        self,
        melody: Sequence[Note],
        source: FrameSource,
        difficulty: Difficulty = Difficulty.EASY,
        config: Optional[EngineConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize Engine.

        Args:
            melody: Ordered target notes; must be non-empty
            source: Audio input providing one buffer per tick
            difficulty: Initial difficulty
            config: Engine configuration
            clock: Monotonic time function used when measuring tick time

        Raises:
            SessionSetupError: If the melody is empty
        """
        self.config = config or EngineConfig()
        self.source = source
        self.difficulty = difficulty
        self._clock = clock

        self.detector = PitchDetector(
            noise_floor=self.config.noise_floor,
            trim_threshold=self.config.trim_threshold,
        )
        self.classifier = PitchClassifier(
            reference_freq=self.config.reference_freq,
            reference_code=self.config.reference_code,
            min_frequency=self.config.min_frequency,
            max_frequency=self.config.max_frequency,
        )

        self._matcher = self._new_matcher(melody)
        self._running = False
        self._source_open = False
        self._last_tick: Optional[float] = None
        self._detection: Detection = NO_PITCH
        self._observation: Observation = SILENCE

    # === Read-only views for consumers ===

    @property
    def melody(self) -> Sequence[Note]:
        return self._matcher.melody

    @property
    def state(self) -> ProgressionState:
        return self._matcher.state

    @property
    def target(self) -> Optional[Note]:
        return self._matcher.target

    @property
    def detection(self) -> Detection:
        return self._detection

    @property
    def observation(self) -> Observation:
        return self._observation

    @property
    def running(self) -> bool:
        return self._running

    @property
    def completed(self) -> bool:
        return self._matcher.state.completed

    # === Session control ===

    def start(self) -> None:
        """
        Validate the session, acquire the audio input and reset progression.

        Raises:
            SessionSetupError: If preconditions fail or the input can't be opened
        """
        if self._running:
            return

        self._validate()
        self._matcher.reset()
        self._reset_tick_state()

        try:
            self.source.open()
        except SessionSetupError:
            self._release_source(force=True)
            raise
        except Exception as e:
            logger.error(f"Failed to open audio input: {e}")
            self._release_source(force=True)
            raise SessionSetupError(f"Could not open audio input: {e}") from e

        self._source_open = True
        self._running = True
        logger.info(
            f"Session started: {len(self.melody)} notes, "
            f"difficulty={self.difficulty.value}, sample_rate={self.source.sample_rate}Hz"
        )

    def stop(self) -> None:
        """Stop ticking and release the audio input. Safe to call repeatedly."""
        self._running = False
        self._release_source()

    def restart(self) -> None:
        """Go back to the first note, reacquiring the input if it was released."""
        if self._running:
            self._matcher.reset()
            self._reset_tick_state()
            logger.info("Session restarted")
        else:
            self.start()

    def set_difficulty(self, difficulty: Difficulty) -> None:
        """Swap the difficulty; takes effect on the next tick."""
        self.difficulty = difficulty

    def load_melody(self, melody: Sequence[Note]) -> None:
        """Replace the melody, discarding all progression on the old one."""
        self._matcher = self._new_matcher(melody)
        self._reset_tick_state()

    def tick(self) -> Optional[TickResult]:
        """
        Run one detect -> classify -> match pass.

        Returns:
            TickResult, or None if the engine is not running or the input is exhausted
        """
        if not self._running:
            return None

        buffer = self.source.read()
        if buffer is None:
            logger.info("Audio input exhausted, stopping session")
            self.stop()
            return None

        if len(buffer) == 0:
            detection = NO_PITCH
        else:
            detection = self.detector.detect(buffer, self.source.sample_rate)
        observation = self.classifier.observe(detection)
        dt = self._tick_delta()

        transition = self._matcher.update(observation, self.difficulty, dt)
        self._detection = detection
        self._observation = observation

        state = self._matcher.state
        if transition is Transition.ADVANCE:
            logger.debug(f"Advanced to note {state.current_index}")
        elif transition is Transition.COMPLETE:
            logger.info("Melody completed")
            self.stop()

        return TickResult(
            detection=detection,
            observation=observation,
            target=self._matcher.target,
            current_index=state.current_index,
            hold_ms=state.hold_ms,
            transition=transition,
        )

    # === Internals ===

    def _new_matcher(self, melody: Sequence[Note]) -> NoteMatcher:
        if melody is None or len(melody) == 0:
            raise SessionSetupError("Melody has no notes")
        return NoteMatcher(melody, tick_ms=self.config.tick_ms)

    def _validate(self) -> None:
        if not self.source.sample_rate or self.source.sample_rate <= 0:
            raise SessionSetupError(
                f"Sample rate must be positive, got {self.source.sample_rate}"
            )
        if not self.source.buffer_size or self.source.buffer_size <= 0:
            raise SessionSetupError(
                f"Buffer size must be positive, got {self.source.buffer_size}"
            )

    def _reset_tick_state(self) -> None:
        self._last_tick = None
        self._detection = NO_PITCH
        self._observation = SILENCE

    def _tick_delta(self) -> float:
        """Time to credit for the current tick, in ms."""
        tick_ms = self.config.tick_ms
        if not self.config.measure_tick_time:
            return tick_ms

        now = self._clock()
        last, self._last_tick = self._last_tick, now
        if last is None:
            return tick_ms
        return min(max((now - last) * 1000.0, 0.0), 4 * tick_ms)

    def _release_source(self, force: bool = False) -> None:
        if not (self._source_open or force):
            return
        self._source_open = False
        self.source.close()
        logger.debug("Audio input released")

    def __enter__(self) -> "Engine":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
