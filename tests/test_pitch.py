"""Tests for singscore/pitch.py and singscore/dsp.py."""
from __future__ import annotations

import numpy as np
import pytest

from singscore.config import AudioConfig
from singscore.dsp import cents_off, hz_to_midi, midi_to_hz, midi_to_note_name, semitone_distance
from singscore.pitch import MedianSmoother, PitchEstimator, autocorrelate

from conftest import SR, make_sine


class TestAutocorrelate:
    def test_a4_sine_within_one_percent(self, sine_440_frame):
        hz = autocorrelate(sine_440_frame, SR)
        assert hz == pytest.approx(440.0, rel=0.01)

    @pytest.mark.parametrize("freq", [220.0, 330.0, 880.0])
    def test_other_voice_frequencies(self, freq):
        hz = autocorrelate(make_sine(freq, 2048 / SR), SR)
        assert hz == pytest.approx(freq, rel=0.01)

    def test_silence_is_no_pitch(self):
        assert autocorrelate(np.zeros(2048, dtype=np.float32), SR) is None

    def test_quiet_signal_is_no_pitch(self):
        assert autocorrelate(make_sine(440.0, 2048 / SR, amplitude=0.005), SR) is None

    def test_empty_buffer(self):
        assert autocorrelate(np.zeros(0, dtype=np.float32), SR) is None

    def test_too_short_after_trim(self):
        # Loud everywhere: the trim finds no quiet sample and leaves one sample.
        assert autocorrelate(np.array([0.9, -0.9], dtype=np.float32), SR) is None


class TestMedianSmoother:
    def test_octave_jump_rejected(self):
        smoother = MedianSmoother(3)
        outputs = [smoother.push(v) for v in (60, 72, 61)]
        assert outputs[-1] == 61

    def test_keeps_only_latest_values(self):
        smoother = MedianSmoother(3)
        for value in (50, 51, 70, 71, 72):
            result = smoother.push(value)
        assert len(smoother) == 3
        assert result == 71

    def test_first_value_passes_through(self):
        assert MedianSmoother(3).push(64.2) == 64.2

    def test_clear(self):
        smoother = MedianSmoother(3)
        smoother.push(60)
        smoother.clear()
        assert len(smoother) == 0
        assert smoother.push(70) == 70


class TestPitchEstimator:
    def test_reading_for_a4(self, sine_440_frame):
        reading = PitchEstimator().estimate(sine_440_frame)
        assert reading.voiced
        assert reading.raw_midi == pytest.approx(69.0, abs=0.2)
        assert reading.note == "A"
        assert reading.volume == pytest.approx(0.5 / np.sqrt(2), rel=0.05)

    def test_calibration_offset_added(self, sine_440_frame):
        reading = PitchEstimator(calibration_offset=1.5).estimate(sine_440_frame)
        assert reading.midi == pytest.approx(reading.raw_midi + 1.5)

    def test_above_voice_band_is_dropped(self, sine_440_frame):
        estimator = PitchEstimator(AudioConfig())
        estimator.estimate(sine_440_frame)
        assert len(estimator.smoother) == 1

        reading = estimator.estimate(make_sine(2500.0, 2048 / SR))
        assert not reading.voiced
        assert reading.note == "-"
        assert len(estimator.smoother) == 0

    def test_silence_clears_smoothing(self, sine_440_frame):
        estimator = PitchEstimator()
        estimator.estimate(sine_440_frame)
        reading = estimator.estimate(np.zeros(2048, dtype=np.float32))
        assert reading.midi is None
        assert len(estimator.smoother) == 0

    def test_input_gain_lifts_quiet_microphone(self):
        quiet = make_sine(440.0, 2048 / SR, amplitude=0.005)
        assert not PitchEstimator().estimate(quiet).voiced

        reading = PitchEstimator(AudioConfig(input_gain=10.0)).estimate(quiet)
        assert reading.voiced
        assert reading.raw_midi == pytest.approx(69.0, abs=0.2)
        assert reading.volume == pytest.approx(0.05 / np.sqrt(2), rel=0.05)


class TestDsp:
    def test_midi_round_trip_a4(self):
        assert hz_to_midi(440.0) == pytest.approx(69.0)
        assert midi_to_hz(69.0) == pytest.approx(440.0)

    def test_hz_to_midi_rejects_non_positive(self):
        assert hz_to_midi(0.0) is None

    def test_note_names(self):
        assert midi_to_note_name(60) == "C"
        assert midi_to_note_name(61.2) == "C#"
        assert midi_to_note_name(71) == "B"

    def test_cents(self):
        assert cents_off(69.25) == 25
        assert cents_off(68.8) == -20

    @pytest.mark.parametrize(
        "a, b, expected",
        [(60, 60, 0), (72, 60, 0), (61, 60, 1), (59, 60, 1), (66, 60, 6), (71, 60, 1), (48.5, 60, 0.5)],
    )
    def test_semitone_distance_ignores_octave(self, a, b, expected):
        assert semitone_distance(a, b) == pytest.approx(expected)
