from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Tuple

logger = logging.getLogger(__name__)


@dataclass
class AudioConfig:
    sample_rate: int = 44100
    block_size: int = 2048
    channels: int = 1
    min_freq: float = 50.0
    max_freq: float = 2000.0
    rms_threshold: float = 0.01
    trim_threshold: float = 0.15
    smoothing_size: int = 3
    input_gain: float = 1.0


@dataclass
class ScoringConfig:
    trailing_window_s: float = 0.15
    feedback_ttl_s: float = 1.0
    golden_pulse_s: float = 0.5
    zero_duration_fallback_s: float = 0.1


@dataclass
class ClockConfig:
    drift_threshold_s: float = 0.05


@dataclass
class CalibrationConfig:
    # C4, E4, G4
    reference_tones: Tuple[int, ...] = (60, 64, 67)
    tone_s: float = 2.0
    record_s: float = 3.0
    min_samples: int = 5
    amplitude: float = 0.3


@dataclass(frozen=True)
class Thresholds:
    ok: float
    good: float
    excellent: float


@dataclass(frozen=True)
class DifficultySettings:
    name: str
    points: int
    pitch_tolerance: float
    thresholds: Thresholds

    @property
    def is_freestyle(self) -> bool:
        return self.name == FREESTYLE


FREESTYLE = "Freestyle"
EASY = "Fácil"
NORMAL = "Normal"
HARD = "Difícil"
SINGSTAR = "SingStar!"

DIFFICULTIES: Dict[str, DifficultySettings] = {
    FREESTYLE: DifficultySettings(FREESTYLE, 0, 0.0, Thresholds(1.0, 1.0, 1.0)),
    EASY: DifficultySettings(EASY, 10, 2.0, Thresholds(0.20, 0.40, 0.60)),
    NORMAL: DifficultySettings(NORMAL, 20, 1.0, Thresholds(0.25, 0.50, 0.75)),
    HARD: DifficultySettings(HARD, 30, 0.5, Thresholds(0.40, 0.60, 0.85)),
    SINGSTAR: DifficultySettings(SINGSTAR, 30, 0.5, Thresholds(0.40, 0.60, 0.85)),
}

_ALIASES = {
    "freestyle": FREESTYLE,
    "fácil": EASY,
    "facil": EASY,
    "easy": EASY,
    "normal": NORMAL,
    "difícil": HARD,
    "dificil": HARD,
    "hard": HARD,
    "singstar!": SINGSTAR,
    "singstar": SINGSTAR,
}


def get_difficulty(name: str | DifficultySettings | None) -> DifficultySettings:
    if isinstance(name, DifficultySettings):
        return name
    key = _ALIASES.get((name or "").strip().lower())
    if key is None:
        logger.warning("Dificuldade desconhecida %r, usando %s", name, NORMAL)
        key = NORMAL
    return DIFFICULTIES[key]
