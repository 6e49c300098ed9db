from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import Optional

from .capture import MicrophoneCapture
from .clock import SongClock
from .config import AudioConfig, NORMAL
from .lyrics import LyricCursor, merge_duet_lines
from .scoring import SessionResult
from .session import KaraokeSession
from .ui import PygameUI, UIState
from .ultrastar import Song, load_chart

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Karaoke com nota a partir de arquivos UltraStar")
    parser.add_argument("--chart", required=True, help="Arquivo .txt UltraStar")
    parser.add_argument("--audio", help="Arquivo de audio (padrao: #MP3/#AUDIO do arquivo)")
    parser.add_argument("--difficulty", default=NORMAL, help="Freestyle, Fácil, Normal, Difícil ou SingStar!")
    parser.add_argument("--player", type=int, choices=[1, 2], help="Cantar so a parte de um jogador (dueto)")
    parser.add_argument("--calibration", type=float, default=0.0, help="Ajuste de afinacao em semitons")
    parser.add_argument("--fullscreen", action="store_true", help="Tela cheia")
    parser.add_argument("--headless", action="store_true", help="Sem UI/sem playback")
    parser.add_argument("--device", help="Dispositivo de entrada de audio (indice ou nome)")
    parser.add_argument("--samplerate", type=int, default=44100, help="Sample rate")
    parser.add_argument("--blocksize", type=int, default=2048, help="Tamanho do bloco de audio")
    parser.add_argument("--gain", type=float, default=1.0, help="Ganho aplicado ao microfone antes da deteccao")
    parser.add_argument("--verbose", action="store_true", help="Log detalhado")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    chart_path = Path(args.chart)
    song = load_chart(chart_path)
    audio_path = resolve_audio(song, chart_path, args.audio)

    audio_cfg = AudioConfig(sample_rate=args.samplerate, block_size=args.blocksize, input_gain=args.gain)
    session = KaraokeSession(
        song,
        difficulty=args.difficulty,
        player=args.player,
        calibration_offset=args.calibration,
        audio=audio_cfg,
    )
    capture = MicrophoneCapture(audio_cfg, device=args.device)
    cursor = LyricCursor(merge_duet_lines(song.lines) if args.player is None else song.lines)
    clock = SongClock()

    ui: Optional[PygameUI] = None
    playback = False
    if not args.headless:
        ui = PygameUI(fullscreen=args.fullscreen)
        if audio_path is not None:
            import pygame

            pygame.mixer.init(frequency=audio_cfg.sample_rate)
            pygame.mixer.music.load(str(audio_path))
            playback = True

    if not capture.start():
        logger.warning("Sem microfone: as notas vao expirar sem pontos")

    finished_at = max(song.last_note_time, *(n.end_time for n in session.engine.notes), 0.0) + 2.0
    try:
        if playback:
            import pygame

            pygame.mixer.music.play()
        clock.anchor(0.0)

        running = True
        while running:
            position = _playback_position() if playback else None
            if position is not None:
                clock.resync(position)
            song_time = clock.now()

            frame = capture.latest()
            if frame is not None:
                session.process_frame(frame)
            session.tick(song_time)

            if ui:
                running = ui.update(_build_ui_state(song, session, cursor, song_time, args.player))
            else:
                time.sleep(1 / 60)

            if playback:
                import pygame

                if not pygame.mixer.music.get_busy():
                    running = False
            elif song_time > finished_at:
                running = False
    finally:
        capture.stop()
        session.stop()

    _print_final(session.result())
    if ui:
        ui.close()
    return 0


def resolve_audio(song: Song, chart_path: Path, explicit: Optional[str]) -> Optional[Path]:
    if explicit:
        path = Path(explicit)
        if not path.exists():
            raise FileNotFoundError(f"Nao achei {path}")
        return path
    name = song.metadata.get("MP3") or song.metadata.get("AUDIO")
    if not name:
        return None
    path = (chart_path.parent / name).resolve()
    if not path.exists():
        logger.warning("Audio %s nao encontrado, seguindo sem playback", path)
        return None
    return path


def _playback_position() -> Optional[float]:
    import pygame

    pos_ms = pygame.mixer.music.get_pos()
    if pos_ms < 0:
        return None
    return pos_ms / 1000.0


def _build_ui_state(
    song: Song,
    session: KaraokeSession,
    cursor: LyricCursor,
    song_time: float,
    player: Optional[int],
) -> UIState:
    current, next_line = cursor.current_and_next(song_time)
    engine = session.engine
    feedback = engine.feedback_at(song_time)
    meta = song.metadata
    label = ""
    if player == 1:
        label = meta.duet_singer_p1 or "P1"
    elif player == 2:
        label = meta.duet_singer_p2 or "P2"
    return UIState(
        title=meta.title or "Titulo desconhecido",
        artist=meta.artist or None,
        current_line=current.text if current else "",
        next_line=next_line.text if next_line else "",
        note=session.reading.note if session.reading else "-",
        score=engine.score,
        rating=engine.rating,
        feedback=feedback.text if feedback else "",
        golden_pulse=engine.golden_pulse_at(song_time),
        player_label=label,
    )


def _print_final(result: SessionResult) -> None:
    print("")
    print("Resultado final:")
    print(f"  Pontos:    {result.score}/{result.total_max_score}")
    print(f"  Rank:      {result.rank} ({result.percentage * 100:.1f}%)")
    print(
        f"  Notas:     ok {result.stats.ok}, bom {result.stats.good}, "
        f"excelente {result.stats.excellent}, perfeito {result.stats.perfect}"
    )
    print(f"  Douradas:  {result.golden_hit}/{result.golden_total}")


if __name__ == "__main__":
    raise SystemExit(main())
