from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Tuple

from .ultrastar import Line, lines_match

LineMatcher = Callable[[Line, Line], bool]


def merge_duet_lines(lines: Sequence[Line], matcher: LineMatcher = lines_match) -> List[Line]:
    """Collapse adjacent P1/P2 lines that the matcher considers identical.

    The merged line keeps the first line's notes and has no player, so it is
    shown once for both singers. Lines without a player tag are never merged.
    """
    merged: List[Line] = []
    idx = 0
    while idx < len(lines):
        line = lines[idx]
        if idx + 1 < len(lines):
            other = lines[idx + 1]
            if {line.player, other.player} == {1, 2} and matcher(line, other):
                merged.append(
                    Line(
                        words=line.words,
                        player=None,
                        start_time=line.start_time,
                        end_time=line.end_time,
                    )
                )
                idx += 2
                continue
        merged.append(line)
        idx += 1
    return merged


class LyricCursor:
    def __init__(self, lines: Sequence[Line]):
        self.lines = sorted(
            (line for line in lines if line.start_time is not None),
            key=lambda x: x.start_time,
        )

    def current_and_next(self, time_s: float) -> Tuple[Optional[Line], Optional[Line]]:
        if not self.lines:
            return None, None
        idx = 0
        while idx + 1 < len(self.lines) and self.lines[idx + 1].start_time <= time_s:
            idx += 1
        current = self.lines[idx] if self.lines[idx].start_time <= time_s else None
        if current is None:
            return None, self.lines[0]
        next_line = self.lines[idx + 1] if idx + 1 < len(self.lines) else None
        return current, next_line
