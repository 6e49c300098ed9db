from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Union

from .config import DifficultySettings, ScoringConfig, get_difficulty
from .dsp import semitone_distance
from .ultrastar import Note, Song

logger = logging.getLogger(__name__)


class Grade(str, Enum):
    OK = "ok"
    GOOD = "good"
    EXCELLENT = "excellent"
    PERFECT = "perfect"


FEEDBACK_TEXT = {
    Grade.OK: "Ok",
    Grade.GOOD: "Bom",
    Grade.EXCELLENT: "Excelente",
    Grade.PERFECT: "Perfeito!",
}

RANK_BANDS = (
    (0.95, "SS"),
    (0.90, "S"),
    (0.80, "A"),
    (0.70, "B"),
    (0.60, "C"),
    (0.40, "D"),
)

FREESTYLE_RANK = "Freestyle"


@dataclass
class NoteScoreState:
    max_score: int
    sung_duration: float = 0.0
    is_scored: bool = False
    earned: int = 0
    grade: Optional[Grade] = None


@dataclass
class NoteStats:
    ok: int = 0
    good: int = 0
    excellent: int = 0
    perfect: int = 0

    def add(self, grade: Grade) -> None:
        setattr(self, grade.value, getattr(self, grade.value) + 1)


@dataclass(frozen=True)
class Feedback:
    text: str
    grade: Grade
    count: int
    time_s: float


@dataclass
class SessionResult:
    score: int
    total_max_score: int
    percentage: float
    rank: str
    stats: NoteStats
    golden_hit: int
    golden_total: int
    notes_total: int


def rank_for(percentage: float) -> str:
    for floor, rank in RANK_BANDS:
        if percentage >= floor:
            return rank
    return "F"


class ScoringEngine:
    """Grades every note once, from a stream of (song time, MIDI pitch) ticks.

    A note is open from its start until ``trailing_window_s`` after its end.
    While open, each tick whose pitch is within tolerance adds the time since
    the previous tick to the note's sung duration. Once the window has passed
    the note is finalized exactly once against the difficulty thresholds.
    """

    def __init__(
        self,
        song: Union[Song, Sequence[Note]],
        difficulty: Union[str, DifficultySettings, None] = None,
        player: Optional[int] = None,
        config: Optional[ScoringConfig] = None,
    ):
        self.config = config or ScoringConfig()
        self.difficulty = get_difficulty(difficulty)
        self.player = player
        if isinstance(song, Song):
            self.notes: List[Note] = song.notes(player)
        else:
            self.notes = sorted(
                (n for n in song if n.start_time is not None),
                key=lambda n: n.start_time,
            )
        self.total_max_score = 0
        if not self.difficulty.is_freestyle:
            self.total_max_score = sum(self._note_max(n) for n in self.notes)
        self.reset()

    def _note_max(self, note: Note) -> int:
        return self.difficulty.points * (2 if note.is_golden else 1)

    def reset(self) -> None:
        self.states: Dict[int, NoteScoreState] = {
            idx: NoteScoreState(max_score=self._note_max(note)) for idx, note in enumerate(self.notes)
        }
        self.score = 0
        self.current_max_score = 0
        self.stats = NoteStats()
        self.last_feedback: Optional[Feedback] = None
        self._feedback_count = 0
        self._golden_pulse_until: Optional[float] = None
        self._last_time = 0.0

    def state_for(self, note: Note) -> NoteScoreState:
        for idx, candidate in enumerate(self.notes):
            if candidate is note:
                return self.states[idx]
        raise KeyError(note)

    def update(self, current_time: float, pitch: Optional[float], playing: bool = True) -> List[Grade]:
        """Advance to ``current_time``; returns grades finalized on this tick."""
        if not playing:
            self._last_time = current_time
            return []

        dt = current_time - self._last_time
        self._last_time = current_time
        if dt <= 0:
            return []

        window = self.config.trailing_window_s
        finalized: List[Grade] = []
        for idx, note in enumerate(self.notes):
            state = self.states[idx]
            if state.is_scored:
                continue

            if note.start_time <= current_time <= note.end_time + window and pitch is not None:
                if self._is_hit(note, pitch):
                    length = max(0.0, note.end_time - note.start_time)
                    state.sung_duration = min(state.sung_duration + dt, length)

            if current_time > note.end_time + window:
                grade = self._finalize(note, state, current_time)
                if grade is not None:
                    finalized.append(grade)
        return finalized

    def _is_hit(self, note: Note, pitch: float) -> bool:
        if note.is_freestyle or self.difficulty.is_freestyle:
            return True
        return semitone_distance(pitch, note.pitch) <= self.difficulty.pitch_tolerance

    def _finalize(self, note: Note, state: NoteScoreState, now: float) -> Optional[Grade]:
        state.is_scored = True
        if self.difficulty.is_freestyle:
            return None

        length = note.end_time - note.start_time
        if length <= 0:
            length = self.config.zero_duration_fallback_s
        percent = state.sung_duration / length

        points = self.difficulty.points
        thresholds = self.difficulty.thresholds
        grade: Optional[Grade] = None
        earned = 0
        if percent >= thresholds.excellent:
            if note.is_golden:
                grade, earned = Grade.PERFECT, points * 2
                self._golden_pulse_until = now + self.config.golden_pulse_s
            else:
                grade, earned = Grade.EXCELLENT, points
        elif percent >= thresholds.good:
            grade, earned = Grade.GOOD, points * 2 // 3
        elif percent >= thresholds.ok:
            grade, earned = Grade.OK, points // 3

        self.current_max_score += state.max_score
        if grade is None:
            return None

        state.earned = earned
        state.grade = grade
        self.score += earned
        self.stats.add(grade)
        self._feedback_count += 1
        self.last_feedback = Feedback(FEEDBACK_TEXT[grade], grade, self._feedback_count, now)
        logger.debug("Nota %r: %.0f%% -> %s (+%d)", note.text, percent * 100, grade.value, earned)
        return grade

    def feedback_at(self, time_s: float) -> Optional[Feedback]:
        """Latest feedback while it is still fresh."""
        feedback = self.last_feedback
        if feedback is None or time_s - feedback.time_s > self.config.feedback_ttl_s:
            return None
        return feedback

    def golden_pulse_at(self, time_s: float) -> bool:
        return self._golden_pulse_until is not None and time_s <= self._golden_pulse_until

    @property
    def live_percentage(self) -> Optional[float]:
        if self.current_max_score == 0:
            return None
        return self.score / self.current_max_score

    @property
    def rating(self) -> str:
        if self.difficulty.is_freestyle:
            return FREESTYLE_RANK
        if self.total_max_score == 0:
            return "Vamos lá!"
        percentage = self.live_percentage
        if percentage is None:
            return "Preparar..."
        if percentage >= 0.9:
            return "SingStar!"
        if percentage > 0.8:
            return "Excelente!"
        if percentage > 0.6:
            return "Ótimo!"
        if percentage > 0.4:
            return "Bom"
        if percentage > 0.2:
            return "Ok"
        return "Melhore..."

    @property
    def golden_total(self) -> int:
        return sum(1 for note in self.notes if note.is_golden)

    def result(self) -> SessionResult:
        if self.difficulty.is_freestyle:
            percentage, rank = 0.0, FREESTYLE_RANK
        else:
            percentage = self.score / self.total_max_score if self.total_max_score else 0.0
            rank = rank_for(percentage)
        return SessionResult(
            score=self.score,
            total_max_score=self.total_max_score,
            percentage=percentage,
            rank=rank,
            stats=NoteStats(**vars(self.stats)),
            golden_hit=self.stats.perfect,
            golden_total=self.golden_total,
            notes_total=len(self.notes),
        )
