from __future__ import annotations

from dataclasses import replace
from typing import Optional, Union

import numpy as np

from .config import AudioConfig, DifficultySettings, ScoringConfig
from .pitch import PitchEstimator, PitchReading
from .scoring import ScoringEngine, SessionResult
from .ultrastar import Song


class KaraokeSession:
    """One play-through: pitch estimation feeding the scoring engine."""

    def __init__(
        self,
        song: Song,
        difficulty: Union[str, DifficultySettings, None] = None,
        player: Optional[int] = None,
        calibration_offset: float = 0.0,
        audio: Optional[AudioConfig] = None,
        scoring: Optional[ScoringConfig] = None,
    ):
        self.song = song
        self.audio = audio or AudioConfig()
        self.estimator = PitchEstimator(self.audio, calibration_offset=calibration_offset)
        self.engine = ScoringEngine(song, difficulty, player=player, config=scoring)
        self.reading: Optional[PitchReading] = None

    def process_frame(self, frame: np.ndarray) -> PitchReading:
        self.reading = self.estimator.estimate(frame)
        return self.reading

    def tick(self, time_s: float, playing: bool = True) -> None:
        pitch = self.reading.midi if self.reading is not None else None
        self.engine.update(time_s, pitch, playing=playing)

    def restart(self) -> None:
        self.estimator.reset()
        self.reading = None
        self.engine.reset()

    def stop(self) -> None:
        # Grades already given stay as they are.
        self.estimator.reset()
        self.reading = None

    def result(self) -> SessionResult:
        return self.engine.result()


def simulate_recording(
    song: Song,
    samples: np.ndarray,
    sample_rate: int,
    difficulty: Union[str, DifficultySettings, None] = None,
    player: Optional[int] = None,
    calibration_offset: float = 0.0,
    audio: Optional[AudioConfig] = None,
) -> SessionResult:
    """Score a recording that starts at song time zero, one tick per block."""
    audio = replace(audio or AudioConfig(), sample_rate=sample_rate)
    session = KaraokeSession(song, difficulty, player, calibration_offset, audio)
    block = audio.block_size
    mono = np.asarray(samples, dtype=np.float32)
    if mono.ndim > 1:
        mono = mono.mean(axis=1)

    for start in range(0, len(mono) - block + 1, block):
        session.process_frame(mono[start:start + block])
        session.tick((start + block) / sample_rate)

    # Let every remaining note age out.
    last_end = max((note.end_time for note in session.engine.notes), default=0.0)
    end = max(len(mono) / sample_rate, last_end) + session.engine.config.trailing_window_s + 1.0
    session.stop()
    session.tick(end)
    return session.result()
