from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .config import ClockConfig

logger = logging.getLogger(__name__)


class SongClock:
    """Song time extrapolated from a wall-clock anchor.

    Playback backends report position coarsely, so between reports the clock
    runs on the wall clock from the last anchor. ``resync`` only moves the
    anchor when the extrapolation has drifted past the threshold, which keeps
    the display from stuttering on every small correction.
    """

    def __init__(self, config: Optional[ClockConfig] = None, time_fn: Callable[[], float] = time.perf_counter):
        self.config = config or ClockConfig()
        self.time_fn = time_fn
        self._anchor_song_s = 0.0
        self._anchor_wall_s: Optional[float] = None

    def anchor(self, song_time_s: float, wall_s: Optional[float] = None) -> None:
        self._anchor_song_s = song_time_s
        self._anchor_wall_s = self.time_fn() if wall_s is None else wall_s

    def now(self, wall_s: Optional[float] = None) -> float:
        if self._anchor_wall_s is None:
            return self._anchor_song_s
        wall = self.time_fn() if wall_s is None else wall_s
        return self._anchor_song_s + (wall - self._anchor_wall_s)

    def resync(self, song_time_s: float, wall_s: Optional[float] = None) -> bool:
        wall = self.time_fn() if wall_s is None else wall_s
        if self._anchor_wall_s is None:
            self.anchor(song_time_s, wall)
            return True
        drift = song_time_s - self.now(wall)
        if abs(drift) <= self.config.drift_threshold_s:
            return False
        logger.debug("Relogio ressincronizado, desvio de %.3fs", drift)
        self.anchor(song_time_s, wall)
        return True
