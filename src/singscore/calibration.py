from __future__ import annotations

import logging
import statistics
from typing import Dict, List, Optional

import numpy as np

from .config import AudioConfig, CalibrationConfig
from .dsp import midi_to_hz, sine
from .pitch import PitchEstimator

logger = logging.getLogger(__name__)


class CalibrationEstimator:
    """Fixed semitone offset from readings taken against known reference tones.

    A positive offset means the singer (or the microphone chain) reads flat,
    so it is added to every later estimate.
    """

    def __init__(self, config: Optional[CalibrationConfig] = None):
        self.config = config or CalibrationConfig()
        self.samples: Dict[int, List[float]] = {tone: [] for tone in self.config.reference_tones}

    def add_sample(self, target_midi: int, midi: Optional[float]) -> None:
        if midi is None:
            return
        self.samples.setdefault(target_midi, []).append(midi)

    def add_frames(self, target_midi: int, frames: np.ndarray, estimator: PitchEstimator) -> int:
        """Run a recording through ``estimator`` block by block; returns voiced count."""
        block = estimator.config.block_size
        voiced = 0
        estimator.reset()
        for start in range(0, len(frames) - block + 1, block):
            reading = estimator.estimate(frames[start:start + block])
            if reading.raw_midi is not None:
                self.add_sample(target_midi, reading.raw_midi)
                voiced += 1
        estimator.reset()
        return voiced

    def tone_offset(self, target_midi: int) -> Optional[float]:
        values = self.samples.get(target_midi, [])
        if len(values) < self.config.min_samples:
            return None
        return target_midi - statistics.median(values)

    def offset(self) -> Optional[float]:
        offsets = []
        for tone in self.samples:
            value = self.tone_offset(tone)
            if value is None:
                logger.warning("Poucas amostras para a nota %d, ignorando", tone)
                continue
            offsets.append(value)
        if not offsets:
            return None
        return round(sum(offsets) / len(offsets), 2)


def run_guided_calibration(
    config: Optional[CalibrationConfig] = None,
    audio: Optional[AudioConfig] = None,
    device=None,
) -> Optional[float]:
    """Play each reference tone, then record the user singing it back."""
    import sounddevice as sd

    config = config or CalibrationConfig()
    audio = audio or AudioConfig()
    estimator = PitchEstimator(audio)
    calibration = CalibrationEstimator(config)

    for tone in config.reference_tones:
        logger.info("Ouça a nota %d e depois cante junto", tone)
        reference = sine(midi_to_hz(tone), config.tone_s, audio.sample_rate, config.amplitude)
        sd.play(reference, samplerate=audio.sample_rate)
        sd.wait()

        recording = sd.rec(
            int(config.record_s * audio.sample_rate),
            samplerate=audio.sample_rate,
            channels=audio.channels,
            dtype="float32",
            device=device,
        )
        sd.wait()
        voiced = calibration.add_frames(tone, np.asarray(recording)[:, 0], estimator)
        logger.info("Nota %d: %d amostras com afinacao", tone, voiced)

    return calibration.offset()
