#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

import soundfile as sf

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from singscore.config import NORMAL  # noqa: E402
from singscore.session import simulate_recording  # noqa: E402
from singscore.ultrastar import load_chart  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Pontua uma gravacao .wav contra um arquivo UltraStar.")
    parser.add_argument("--chart", required=True, help="Arquivo .txt UltraStar")
    parser.add_argument("--recording", required=True, help="Gravacao da voz, alinhada ao inicio da musica")
    parser.add_argument("--difficulty", default=NORMAL)
    parser.add_argument("--player", type=int, choices=[1, 2])
    parser.add_argument("--calibration", type=float, default=0.0)
    parser.add_argument("--json", action="store_true", help="Saida em JSON")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(message)s")

    song = load_chart(Path(args.chart))
    samples, sample_rate = sf.read(args.recording, dtype="float32", always_2d=False)
    result = simulate_recording(
        song,
        samples,
        sample_rate,
        difficulty=args.difficulty,
        player=args.player,
        calibration_offset=args.calibration,
    )

    if args.json:
        print(json.dumps(asdict(result), indent=2))
        return 0
    print(f"{song.metadata.artist} - {song.metadata.title}")
    print(f"Pontos: {result.score}/{result.total_max_score}  Rank: {result.rank}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
