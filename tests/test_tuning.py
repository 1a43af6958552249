"""Tests for notes, pitch classification and the tuning meter."""

import dataclasses

import numpy as np
import pytest

from vocalflow.analysis import (
    Detection,
    NO_PITCH,
    Observation,
    PitchClassifier,
    PitchReading,
    SILENCE,
)
from vocalflow.core import Note, build_melody, pitch_name


class TestNote:
    """Tests for Note dataclass."""

    def test_from_midi(self):
        note = Note.from_midi(69, lyric="la", id="n1")
        assert note.pitch == 69
        assert note.frequency == 440.0
        assert note.lyric == "la"
        assert note.id == "n1"

    def test_pitch_name(self):
        assert Note.from_midi(60).pitch_name == "C4"
        assert Note.from_midi(69).pitch_name == "A4"
        assert Note.from_midi(61).pitch_name == "C#4"
        assert pitch_name(48) == "C3"

    def test_immutable(self):
        note = Note.from_midi(60)
        with pytest.raises(dataclasses.FrozenInstanceError):
            note.pitch = 62

    def test_freq_to_midi(self):
        assert Note.freq_to_midi(440.0) == 69  # A4
        assert Note.freq_to_midi(261.63) == 60  # C4 (approx)
        assert Note.freq_to_midi(880.0) == 81  # A5

    def test_freq_to_midi_agrees_with_classifier(self):
        classifier = PitchClassifier()
        for code in range(48, 84):
            freq = classifier.code_to_frequency(code + 0.5)
            assert Note.freq_to_midi(freq) == classifier.classify(freq)[0]

    def test_freq_to_midi_reference(self):
        assert Note.freq_to_midi(432.0, reference_freq=432.0) == 69
        assert Note.freq_to_midi(440.0, reference_freq=415.3) == 70

    def test_build_melody(self):
        melody = build_melody([60, 62, 64], lyrics=["do", "re"])
        assert [n.pitch for n in melody] == [60, 62, 64]
        assert [n.lyric for n in melody] == ["do", "re", None]
        assert [n.id for n in melody] == ["note-0", "note-1", "note-2"]


class TestPitchClassifier:
    """Frequency to pitch code and cents."""

    @pytest.fixture
    def classifier(self):
        return PitchClassifier()

    def test_reference_pitch(self, classifier):
        code, cents = classifier.classify(440.0)
        assert code == 69
        assert cents == pytest.approx(0.0, abs=1e-9)

    def test_inverse_over_vocal_range(self, classifier):
        for code in range(48, 85):
            detected, cents = classifier.classify(classifier.code_to_frequency(code))
            assert detected == code
            assert cents == pytest.approx(0.0, abs=1e-6)

    def test_sharp_and_flat(self, classifier):
        code, cents = classifier.classify(classifier.code_to_frequency(60.3))
        assert code == 60
        assert cents == pytest.approx(30.0, abs=1e-6)

        code, cents = classifier.classify(classifier.code_to_frequency(59.8))
        assert code == 60
        assert cents == pytest.approx(-20.0, abs=1e-6)

    def test_cents_range(self, classifier):
        for freq in np.geomspace(80.0, 1200.0, 2000):
            _, cents = classifier.classify(freq)
            assert -50.0 < cents <= 50.0

    def test_custom_reference(self):
        classifier = PitchClassifier(reference_freq=442.0)
        code, cents = classifier.classify(442.0)
        assert code == 69
        assert cents == pytest.approx(0.0, abs=1e-9)
        assert classifier.code_to_frequency(69) == 442.0


class TestObserve:
    """Detections become observations."""

    @pytest.fixture
    def classifier(self):
        return PitchClassifier()

    def test_no_pitch(self, classifier):
        assert classifier.observe(NO_PITCH) == SILENCE
        assert not SILENCE.voiced

    def test_in_band(self, classifier):
        observation = classifier.observe(Detection(440.0))
        assert observation.pitch == 69
        assert observation.frequency == 440.0
        assert observation.voiced

    @pytest.mark.parametrize("freq", [50.0, 80.0, 1200.0, 3000.0, float("nan")])
    def test_out_of_band(self, classifier, freq):
        assert classifier.observe(Detection(freq)).pitch is None


class TestPitchReading:
    """Tuning meter values."""

    def test_centered_and_in_tolerance(self):
        reading = PitchReading.from_observation(Observation(pitch=60, cents=0.0), 50.0)
        assert reading.position == 0.5
        assert reading.in_tolerance
        assert reading.label == "PERFECT"

    def test_clamped(self):
        reading = PitchReading.from_observation(Observation(pitch=60, cents=-150.0), 50.0)
        assert reading.cents == -100.0
        assert reading.position == 0.0
        assert not reading.in_tolerance

    def test_unvoiced_never_in_tolerance(self):
        reading = PitchReading.from_observation(SILENCE, 50.0)
        assert not reading.in_tolerance
        assert reading.label == "SING"
