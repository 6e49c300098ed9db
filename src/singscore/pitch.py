from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional

import numpy as np

from .config import AudioConfig
from .dsp import cents_off, hz_to_midi, midi_to_note_name, rms


def autocorrelate(
    buf: np.ndarray,
    sample_rate: float,
    rms_threshold: float = 0.01,
    trim_threshold: float = 0.15,
) -> Optional[float]:
    """ACF2+ fundamental frequency estimate in Hz, or ``None`` for no pitch.

    The buffer is gated on RMS, trimmed to the first/last quiet samples so the
    correlation starts and ends near a zero crossing, then the first
    autocorrelation peak after the zero-lag descent is refined with a
    parabola through its neighbours.
    """
    x = np.asarray(buf, dtype=np.float64)
    size = x.size
    if size == 0 or rms(x) < rms_threshold:
        return None

    quiet = np.abs(x) < trim_threshold
    half = (size + 1) // 2
    front = np.flatnonzero(quiet[:half])
    r1 = int(front[0]) if front.size else 0
    back_idx = size - np.arange(1, half)
    back = np.flatnonzero(quiet[back_idx]) if back_idx.size else back_idx
    r2 = int(back_idx[back[0]]) if back.size else size - 1

    x = x[r1:r2]
    size = x.size
    if size < 2:
        return None

    # c[i] = sum_j x[j] * x[j + i]
    corr = np.correlate(x, x, mode="full")[size - 1:]

    rising = np.flatnonzero(np.diff(corr) >= 0)
    start = int(rising[0]) if rising.size else size - 1
    maxpos = start + int(np.argmax(corr[start:]))
    if maxpos < 1 or maxpos >= size - 1:
        return None

    period = float(maxpos)
    y0, y1, y2 = corr[maxpos - 1], corr[maxpos], corr[maxpos + 1]
    a = (y0 + y2 - 2.0 * y1) / 2.0
    b = (y2 - y0) / 2.0
    if a:
        period -= b / (2.0 * a)
    if period <= 0:
        return None
    return float(sample_rate / period)


class MedianSmoother:
    """Median of the last few MIDI values; rejects one-frame octave jumps."""

    def __init__(self, size: int = 3):
        self.values: Deque[float] = deque(maxlen=size)

    def push(self, midi: float) -> float:
        self.values.append(midi)
        ordered = sorted(self.values)
        return ordered[(len(ordered) - 1) // 2]

    def clear(self) -> None:
        self.values.clear()

    def __len__(self) -> int:
        return len(self.values)


@dataclass
class PitchReading:
    hz: Optional[float]
    raw_midi: Optional[float]
    midi: Optional[float]
    note: str
    cents: int
    volume: float

    @property
    def voiced(self) -> bool:
        return self.midi is not None


class PitchEstimator:
    def __init__(self, config: Optional[AudioConfig] = None, calibration_offset: float = 0.0):
        self.config = config or AudioConfig()
        self.calibration_offset = calibration_offset
        self.smoother = MedianSmoother(self.config.smoothing_size)

    def estimate(self, frame: np.ndarray) -> PitchReading:
        if self.config.input_gain != 1.0:
            frame = np.asarray(frame, dtype=np.float64) * self.config.input_gain
        volume = rms(frame)
        hz = autocorrelate(
            frame,
            self.config.sample_rate,
            rms_threshold=self.config.rms_threshold,
            trim_threshold=self.config.trim_threshold,
        )
        if hz is None or not (self.config.min_freq < hz < self.config.max_freq):
            self.smoother.clear()
            return PitchReading(None, None, None, "-", 0, volume)

        smoothed = self.smoother.push(hz_to_midi(hz))
        return PitchReading(
            hz=hz,
            raw_midi=smoothed,
            midi=smoothed + self.calibration_offset,
            note=midi_to_note_name(smoothed),
            cents=cents_off(smoothed),
            volume=volume,
        )

    def reset(self) -> None:
        self.smoother.clear()
