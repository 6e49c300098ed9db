"""Tests for singscore/calibration.py."""
from __future__ import annotations

import sys
import types

import numpy as np
import pytest

from singscore.calibration import CalibrationEstimator, run_guided_calibration
from singscore.config import AudioConfig, CalibrationConfig
from singscore.dsp import midi_to_hz
from singscore.pitch import PitchEstimator

from conftest import make_sine


class TestCalibrationEstimator:
    def test_mean_of_tone_offsets(self):
        calibration = CalibrationEstimator()
        for _ in range(5):
            calibration.add_sample(60, 59.5)
            calibration.add_sample(64, 63.5)
            calibration.add_sample(67, 66.8)
        assert calibration.tone_offset(60) == pytest.approx(0.5)
        assert calibration.offset() == 0.4

    def test_median_per_tone(self):
        calibration = CalibrationEstimator(CalibrationConfig(reference_tones=(60,)))
        for value in (59.0, 59.0, 59.0, 71.0, 59.2):
            calibration.add_sample(60, value)
        assert calibration.offset() == 1.0

    def test_tones_with_few_samples_ignored(self):
        calibration = CalibrationEstimator()
        for _ in range(5):
            calibration.add_sample(60, 61.0)
        calibration.add_sample(64, 50.0)
        assert calibration.tone_offset(64) is None
        assert calibration.offset() == -1.0

    def test_no_samples_gives_none(self):
        calibration = CalibrationEstimator()
        calibration.add_sample(60, None)
        assert calibration.offset() is None

    def test_frames_from_reference_sine(self):
        estimator = PitchEstimator()
        calibration = CalibrationEstimator(CalibrationConfig(reference_tones=(60,)))
        voiced = calibration.add_frames(60, make_sine(midi_to_hz(60), 1.0), estimator)
        assert voiced >= 5
        assert calibration.offset() == pytest.approx(0.0, abs=0.1)
        assert len(estimator.smoother) == 0

    def test_silent_recording_has_no_samples(self):
        calibration = CalibrationEstimator()
        voiced = calibration.add_frames(64, np.zeros(44100, dtype=np.float32), PitchEstimator())
        assert voiced == 0
        assert calibration.offset() is None


class TestGuidedCalibration:
    def test_flat_singer_gets_positive_offset(self, monkeypatch):
        config = CalibrationConfig()
        played = []

        def play(data, samplerate):
            played.append(float(np.max(data)))

        def rec(frames, samplerate, channels, dtype, device):
            tone = config.reference_tones[len(played) - 1]
            sung = make_sine(midi_to_hz(tone - 0.5), frames / samplerate, sr=samplerate)
            return sung.reshape(-1, channels)

        monkeypatch.setitem(sys.modules, "sounddevice", types.SimpleNamespace(play=play, rec=rec, wait=lambda: None))
        offset = run_guided_calibration(config, AudioConfig())
        assert len(played) == len(config.reference_tones)
        assert played[0] == pytest.approx(config.amplitude, abs=0.01)
        assert offset == pytest.approx(0.5, abs=0.1)

    def test_silent_microphone_gives_none(self, monkeypatch):
        def rec(frames, samplerate, channels, dtype, device):
            return np.zeros((frames, channels), dtype=np.float32)

        monkeypatch.setitem(
            sys.modules, "sounddevice", types.SimpleNamespace(play=lambda data, samplerate: None, rec=rec, wait=lambda: None)
        )
        assert run_guided_calibration() is None
