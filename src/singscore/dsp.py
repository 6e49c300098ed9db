import math
from typing import Optional

import numpy as np

NOTE_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")


def rms(frame: np.ndarray) -> float:
    if frame.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(frame.astype(np.float64) ** 2)))


def hz_to_midi(hz: float) -> Optional[float]:
    if hz <= 0:
        return None
    return 69.0 + 12.0 * math.log2(hz / 440.0)


def midi_to_hz(midi: float) -> float:
    return 440.0 * (2.0 ** ((midi - 69.0) / 12.0))


def midi_to_note_name(midi: float) -> str:
    return NOTE_NAMES[round(midi) % 12]


def cents_off(midi: float) -> int:
    """Detune from the nearest semitone, floored to whole cents."""
    return math.floor((midi - round(midi)) * 100)


def semitone_distance(a: float, b: float) -> float:
    """Pitch-class distance in semitones, ignoring the octave (0..6)."""
    diff = abs(a - b) % 12.0
    return min(diff, 12.0 - diff)


def sine(freq: float, duration_s: float, sample_rate: int, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(int(sample_rate * duration_s)) / sample_rate
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)
