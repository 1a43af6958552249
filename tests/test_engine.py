"""Tests for the practice engine and tick scheduling."""

from typing import List, Optional

import numpy as np
import pytest

from vocalflow.core import SessionSetupError, build_melody
from vocalflow.input import ArrayFrameSource, FrameSource
from vocalflow.practice import (
    Difficulty,
    Engine,
    EngineConfig,
    TickSource,
    Transition,
)

SR = 44100
A4 = 440.0
B4 = 493.883


def generate_tone(freq: float, sr: int = SR, n: int = 2048, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(n) / sr
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


class ScriptedSource(FrameSource):
    """Frame source replaying a fixed list of buffers, counting open/close calls."""

    def __init__(self, buffers: List[np.ndarray], sample_rate: int = SR, buffer_size: int = 2048):
        self.buffers = buffers
        self.sample_rate = sample_rate
        self.buffer_size = buffer_size
        self.open_count = 0
        self.close_count = 0
        self.fail_open: Optional[Exception] = None
        self._position = 0

    def open(self) -> None:
        self.open_count += 1
        if self.fail_open is not None:
            raise self.fail_open
        self._position = 0

    def read(self) -> Optional[np.ndarray]:
        if self._position >= len(self.buffers):
            return None
        buffer = self.buffers[self._position]
        self._position += 1
        return buffer

    def close(self) -> None:
        self.close_count += 1


@pytest.fixture
def melody():
    return build_melody([69, 71])


class TestSessionSetup:
    """Preconditions and resource acquisition."""

    def test_empty_melody(self):
        source = ScriptedSource([])
        with pytest.raises(SessionSetupError, match="no notes"):
            Engine([], source)
        assert source.open_count == 0

    def test_bad_sample_rate(self, melody):
        source = ScriptedSource([], sample_rate=0)
        engine = Engine(melody, source)

        with pytest.raises(SessionSetupError, match="Sample rate"):
            engine.start()
        assert source.open_count == 0
        assert not engine.running

    def test_bad_buffer_size(self, melody):
        engine = Engine(melody, ScriptedSource([], buffer_size=0))
        with pytest.raises(SessionSetupError, match="Buffer size"):
            engine.start()

    def test_open_failure_releases_input(self, melody):
        source = ScriptedSource([])
        source.fail_open = OSError("device busy")
        engine = Engine(melody, source)

        with pytest.raises(SessionSetupError, match="device busy"):
            engine.start()
        assert source.close_count == 1
        assert not engine.running
        assert engine.tick() is None

    def test_start_is_idempotent(self, melody):
        source = ScriptedSource([])
        engine = Engine(melody, source)
        engine.start()
        engine.start()
        assert source.open_count == 1


class TestTicking:
    """Per-tick detect, classify and match."""

    def test_tick_before_start(self, melody):
        engine = Engine(melody, ScriptedSource([generate_tone(A4)]))
        assert engine.tick() is None

    def test_sings_through_melody(self, melody):
        buffers = [generate_tone(A4)] * 2 + [generate_tone(B4)] * 2
        source = ScriptedSource(buffers)
        engine = Engine(melody, source, difficulty=Difficulty.EASY)
        engine.start()

        first = engine.tick()
        assert first.observation.pitch == 69
        assert first.detection.frequency == pytest.approx(A4, rel=0.02)
        assert first.hold_ms == 16
        assert first.transition is Transition.STAY

        second = engine.tick()
        assert second.transition is Transition.ADVANCE
        assert second.current_index == 1
        assert second.hold_ms == 0
        assert second.target.pitch == 71

        engine.tick()
        last = engine.tick()
        assert last.transition is Transition.COMPLETE
        assert last.completed
        assert last.target is None
        assert engine.completed

        # Completion releases the input exactly once
        assert not engine.running
        assert source.close_count == 1
        engine.stop()
        engine.stop()
        assert source.close_count == 1
        assert engine.tick() is None

    def test_silence_does_not_progress(self, melody):
        source = ScriptedSource([np.zeros(2048, dtype=np.float32)] * 3)
        engine = Engine(melody, source)
        engine.start()

        for _ in range(3):
            result = engine.tick()
            assert not result.observation.voiced
            assert result.hold_ms == 0
        assert engine.state.current_index == 0

    def test_empty_buffer_is_no_pitch(self, melody):
        engine = Engine(melody, ScriptedSource([np.array([], dtype=np.float32)]))
        engine.start()
        result = engine.tick()
        assert not result.detection.has_pitch

    def test_exhausted_input_stops(self, melody):
        source = ScriptedSource([generate_tone(A4)])
        engine = Engine(melody, source)
        engine.start()

        assert engine.tick() is not None
        assert engine.tick() is None
        assert not engine.running
        assert source.close_count == 1

    def test_difficulty_change_applies_next_tick(self, melody):
        engine = Engine(melody, ScriptedSource([generate_tone(A4)] * 3), difficulty=Difficulty.HARD)
        engine.start()
        engine.tick()
        engine.tick()
        assert engine.state.current_index == 0

        engine.set_difficulty(Difficulty.EASY)
        assert engine.tick().transition is Transition.ADVANCE

    def test_exposes_latest_observation(self, melody):
        engine = Engine(melody, ScriptedSource([generate_tone(A4)]))
        engine.start()
        engine.tick()
        assert engine.observation.pitch == 69
        assert engine.detection.has_pitch

    def test_measured_tick_time(self, melody):
        times = iter([100.0, 100.010, 100.200])
        config = EngineConfig(measure_tick_time=True)
        engine = Engine(
            melody,
            ScriptedSource([generate_tone(A4)] * 3),
            difficulty=Difficulty.HARD,
            config=config,
            clock=lambda: next(times),
        )
        engine.start()

        assert engine.tick().hold_ms == 16  # first tick uses the nominal time
        assert engine.tick().hold_ms == pytest.approx(26.0)
        # 190 ms gap is clamped to 4 ticks (64 ms), 90 > 80 advances
        assert engine.tick().transition is Transition.ADVANCE


class TestRestart:
    """Restart and melody replacement."""

    def test_restart_after_completion_reacquires_input(self):
        source = ScriptedSource([generate_tone(A4)] * 2)
        engine = Engine(build_melody([69]), source)
        engine.start()
        engine.tick()
        engine.tick()
        assert engine.completed
        assert source.close_count == 1

        engine.restart()
        assert engine.running
        assert source.open_count == 2
        assert engine.state.current_index == 0
        assert not engine.completed

    def test_restart_while_running(self, melody):
        source = ScriptedSource([generate_tone(A4)] * 4)
        engine = Engine(melody, source)
        engine.start()
        engine.tick()
        engine.tick()
        assert engine.state.current_index == 1

        engine.restart()
        assert engine.state.current_index == 0
        assert engine.state.hold_ms == 0
        assert source.open_count == 1

    def test_load_melody_replaces_progress(self, melody):
        engine = Engine(melody, ScriptedSource([generate_tone(A4)] * 2))
        engine.start()
        engine.tick()
        engine.tick()

        engine.load_melody(build_melody([60, 62, 64]))
        assert engine.state.current_index == 0
        assert engine.target.pitch == 60
        assert len(engine.melody) == 3

    def test_load_empty_melody(self, melody):
        engine = Engine(melody, ScriptedSource([]))
        with pytest.raises(SessionSetupError):
            engine.load_melody([])

    def test_context_manager_releases(self, melody):
        source = ScriptedSource([generate_tone(A4)])
        with Engine(melody, source) as engine:
            assert engine.running
        assert source.close_count == 1


class TestTickSource:
    """Cooperative driver."""

    def test_runs_until_complete(self, melody):
        buffers = [generate_tone(A4)] * 2 + [generate_tone(B4)] * 2 + [generate_tone(A4)] * 5
        engine = Engine(melody, ScriptedSource(buffers))
        results = []

        count = TickSource(interval_s=0, on_tick=results.append).run(engine)

        assert count == 4
        assert results[-1].completed
        assert not engine.running

    def test_max_ticks(self, melody):
        engine = Engine(melody, ScriptedSource([np.zeros(2048)] * 10))
        assert TickSource(interval_s=0).run(engine, max_ticks=3) == 3
        assert engine.running

    def test_stop_takes_effect_before_next_tick(self, melody):
        engine = Engine(melody, ScriptedSource([np.zeros(2048)] * 10))
        driver = TickSource(interval_s=0)
        driver.on_tick = lambda result: driver.stop()

        assert driver.run(engine) == 1
        assert not driver.running

    def test_stop_before_run_is_kept(self, melody):
        source = ScriptedSource([np.zeros(2048)] * 10)
        engine = Engine(melody, source)
        driver = TickSource(interval_s=0)

        driver.stop()
        assert driver.run(engine) == 0
        assert not engine.running
        assert source.open_count == 0

        # The request is consumed; the next run ticks normally
        assert driver.run(engine, max_ticks=2) == 2

    def test_stops_when_input_exhausted(self, melody):
        engine = Engine(melody, ScriptedSource([np.zeros(2048)] * 3))
        assert TickSource(interval_s=0).run(engine) == 3
        assert not engine.running

    def test_paces_ticks(self, melody):
        sleeps = []
        driver = TickSource(interval_s=0.016, clock=lambda: 0.0, sleep=sleeps.append)
        engine = Engine(melody, ScriptedSource([np.zeros(2048)] * 3))

        driver.run(engine)

        assert sleeps == pytest.approx([0.016, 0.032, 0.048])

    def test_replays_recording(self, melody):
        """A recording sliced at the tick rate completes the melody."""
        n = SR // 2
        t = np.arange(n) / SR
        audio = np.concatenate([0.5 * np.sin(2 * np.pi * A4 * t), 0.5 * np.sin(2 * np.pi * B4 * t)])
        hop = int(round(SR * 0.016))
        source = ArrayFrameSource(audio, SR, buffer_size=2048, hop_length=hop)
        engine = Engine(melody, source)

        TickSource(interval_s=0).run(engine)

        assert engine.completed
