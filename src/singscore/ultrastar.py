from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

TICKS_PER_BEAT = 4


class NoteType(str, Enum):
    REGULAR = ":"
    GOLDEN = "*"
    FREESTYLE = "F"
    RAP = "R"
    RAP_GOLDEN = "G"

    @property
    def is_golden(self) -> bool:
        return self in (NoteType.GOLDEN, NoteType.RAP_GOLDEN)

    @property
    def is_freestyle(self) -> bool:
        return self is NoteType.FREESTYLE


NOTE_MARKERS = tuple(kind.value for kind in NoteType)

# type, start beat, duration, pitch, then the raw lyric after one separator
NOTE_RE = re.compile(r"^(\S)\s+(-?\d+)\s+(-?\d+)\s+(-?\d+)(?:[ \t](.*))?$")


# eq=False keeps identity semantics: two identical syllables sung by
# different players are still different notes.
@dataclass(frozen=True, eq=False)
class Note:
    kind: NoteType
    start_beat: int
    duration: int
    pitch: int
    text: str
    is_extension: bool = False
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    @property
    def is_golden(self) -> bool:
        return self.kind.is_golden

    @property
    def is_freestyle(self) -> bool:
        return self.kind.is_freestyle

    @property
    def duration_s(self) -> Optional[float]:
        if self.start_time is None or self.end_time is None:
            return None
        return self.end_time - self.start_time


@dataclass(frozen=True)
class Word:
    notes: Tuple[Note, ...]

    @property
    def text(self) -> str:
        return "".join(note.text for note in self.notes)


@dataclass(frozen=True, eq=False)
class Line:
    words: Tuple[Word, ...]
    player: Optional[int] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    @property
    def notes(self) -> List[Note]:
        return [note for word in self.words for note in word.notes]

    @property
    def text(self) -> str:
        return " ".join(word.text for word in self.words if word.text)


@dataclass(frozen=True)
class SongMetadata:
    """Well-known chart headers as typed fields, everything else in ``extra``."""

    title: str = ""
    artist: str = ""
    bpm: float = 0.0
    gap: float = 0.0
    videogap: float = 0.0
    duet_singer_p1: Optional[str] = None
    duet_singer_p2: Optional[str] = None
    extra: Mapping[str, str] = field(default_factory=dict)
    raw: Mapping[str, str] = field(default_factory=dict)

    _KNOWN = ("TITLE", "ARTIST", "BPM", "GAP", "VIDEOGAP", "DUETSINGERP1", "DUETSINGERP2")

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "SongMetadata":
        return cls(
            title=headers.get("TITLE", ""),
            artist=headers.get("ARTIST", ""),
            bpm=parse_number(headers.get("BPM")),
            gap=parse_number(headers.get("GAP")),
            videogap=parse_number(headers.get("VIDEOGAP")),
            duet_singer_p1=headers.get("DUETSINGERP1"),
            duet_singer_p2=headers.get("DUETSINGERP2"),
            extra={k: v for k, v in headers.items() if k not in cls._KNOWN},
            raw=dict(headers),
        )

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.raw.get(key.upper(), default)


@dataclass(frozen=True)
class Song:
    metadata: SongMetadata
    lines: Tuple[Line, ...]

    @property
    def has_timing(self) -> bool:
        return self.metadata.bpm > 0

    @property
    def is_duet(self) -> bool:
        return {line.player for line in self.lines} >= {1, 2}

    def notes(self, player: Optional[int] = None) -> List[Note]:
        """Timed notes in start order; lines without a player belong to everyone."""
        notes: List[Note] = []
        for line in self.lines:
            if player is not None and line.player is not None and line.player != player:
                continue
            notes.extend(note for note in line.notes if note.start_time is not None)
        notes.sort(key=lambda n: n.start_time)
        return notes

    @property
    def first_note_time(self) -> float:
        if not self.lines or self.lines[0].start_time is None:
            return 0.0
        return self.lines[0].start_time

    @property
    def last_note_time(self) -> float:
        if not self.lines or self.lines[-1].end_time is None:
            return 0.0
        return self.lines[-1].end_time

    @property
    def intro_duration(self) -> float:
        start = self.first_note_time
        target = start * 0.75 if start > 5 else 5.0
        return min(target, max(0.0, start - 1))


@dataclass
class _Token:
    kind: NoteType
    start_beat: int
    duration: int
    pitch: int
    text: str
    is_extension: bool


@dataclass
class _LineBuffer:
    player: Optional[int]
    words: List[List[_Token]] = field(default_factory=list)


def load_chart(path: Path) -> Song:
    return parse_ultrastar(path.read_text(encoding="utf-8-sig", errors="ignore"))


def parse_ultrastar(text: str) -> Song:
    headers: Dict[str, str] = {}
    lines: List[_LineBuffer] = []
    player: Optional[int] = None
    line = _LineBuffer(player)
    word: List[_Token] = []
    previous_trailing_space = False

    def flush_word() -> None:
        nonlocal word
        if word:
            line.words.append(word)
            word = []

    def flush_line() -> None:
        nonlocal line
        flush_word()
        if line.words:
            lines.append(line)
        line = _LineBuffer(player)

    text = text.lstrip("\ufeff")
    for number, raw in enumerate(text.replace("\r", "").split("\n"), start=1):
        if not raw.strip():
            continue

        if raw.startswith("#"):
            key, sep, value = raw[1:].partition(":")
            if not sep or not key.strip():
                logger.debug("Linha %d: cabecalho invalido ignorado: %r", number, raw)
                continue
            headers[key.strip().upper()] = value.strip()
        elif raw.startswith("P"):
            tag = raw[1:].strip()
            if tag not in ("1", "2"):
                logger.debug("Linha %d: marcador de jogador ignorado: %r", number, raw)
                continue
            flush_line()
            player = int(tag)
            line = _LineBuffer(player)
        elif raw.startswith(NOTE_MARKERS):
            token, leading, trailing = _parse_note(raw)
            if token is None:
                logger.debug("Linha %d: nota invalida ignorada: %r", number, raw)
                continue
            if leading or previous_trailing_space or (not line.words and not word):
                flush_word()
            word.append(token)
            previous_trailing_space = trailing
        elif raw.startswith("-"):
            flush_line()
        elif raw.startswith("E"):
            break
        else:
            logger.debug("Linha %d: linha desconhecida ignorada: %r", number, raw)

    flush_line()

    metadata = SongMetadata.from_headers(headers)
    song_lines = [_build_line(buf, metadata.bpm, metadata.gap) for buf in lines]
    song_lines.sort(key=lambda ln: ln.start_time or 0.0)
    return Song(metadata=metadata, lines=tuple(song_lines))


def _parse_note(raw: str) -> Tuple[Optional[_Token], bool, bool]:
    match = NOTE_RE.match(raw)
    if match is None or match.group(1) not in NOTE_MARKERS:
        return None, False, False
    start, duration, pitch = (int(match.group(i)) for i in (2, 3, 4))
    if duration < 0:
        return None, False, False

    text = match.group(5) or ""
    leading = text.startswith(" ")
    trailing = text.endswith(" ")

    is_extension = text.startswith("~")
    if is_extension:
        text = text[1:]
    text = text.replace("~", "").strip()

    return _Token(NoteType(match.group(1)), start, duration, pitch, text, is_extension), leading, trailing


def _build_line(buf: _LineBuffer, bpm: float, gap_ms: float) -> Line:
    words: List[Word] = []
    starts: List[float] = []
    ends: List[float] = []
    for tokens in buf.words:
        notes = []
        for token in tokens:
            start_s = beats_to_seconds(token.start_beat, bpm, gap_ms)
            end_s = beats_to_seconds(token.start_beat + token.duration, bpm, gap_ms)
            if start_s is not None and end_s is not None:
                starts.append(start_s)
                ends.append(end_s)
            notes.append(
                Note(
                    kind=token.kind,
                    start_beat=token.start_beat,
                    duration=token.duration,
                    pitch=token.pitch,
                    text=token.text,
                    is_extension=token.is_extension,
                    start_time=start_s,
                    end_time=end_s,
                )
            )
        words.append(Word(tuple(notes)))
    return Line(
        words=tuple(words),
        player=buf.player,
        start_time=min(starts) if starts else None,
        end_time=max(ends) if ends else None,
    )


def beats_to_seconds(beat: int, bpm: float, gap_ms: float = 0.0) -> Optional[float]:
    """Chart beat to song seconds; ``None`` when the chart has no usable BPM."""
    if bpm <= 0:
        return None
    return (beat * 60.0) / (bpm * TICKS_PER_BEAT) + gap_ms / 1000.0


def parse_number(raw: Optional[str]) -> float:
    if raw is None:
        return 0.0
    value = raw.strip().replace(",", ".")
    if not value:
        return 0.0
    try:
        return float(value)
    except ValueError:
        return 0.0


def lines_match(a: Line, b: Line, tolerance: float = 0.1) -> bool:
    """Same rendered text and start/end within ``tolerance`` seconds."""
    if None in (a.start_time, a.end_time, b.start_time, b.end_time):
        return False
    return (
        abs(a.start_time - b.start_time) <= tolerance
        and abs(a.end_time - b.end_time) <= tolerance
        and a.text == b.text
    )


class ChartCache:
    """Parsed songs keyed by chart identity. Owned by the caller."""

    def __init__(self) -> None:
        self._songs: Dict[str, Song] = {}

    @staticmethod
    def key_for(text: str) -> str:
        return hashlib.sha1(text.encode("utf-8")).hexdigest()

    def get_or_parse(self, text: str, key: Optional[str] = None) -> Song:
        key = key or self.key_for(text)
        song = self._songs.get(key)
        if song is None:
            song = parse_ultrastar(text)
            self._songs[key] = song
        return song

    def invalidate(self, key: str) -> bool:
        return self._songs.pop(key, None) is not None

    def clear(self) -> None:
        self._songs.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._songs

    def __len__(self) -> int:
        return len(self._songs)
