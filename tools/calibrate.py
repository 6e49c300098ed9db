#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from singscore.calibration import run_guided_calibration  # noqa: E402
from singscore.config import AudioConfig, CalibrationConfig  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Calibra a afinacao cantando junto com notas de referencia.")
    parser.add_argument("--device", help="Dispositivo de entrada de audio (indice ou nome)")
    parser.add_argument("--samplerate", type=int, default=44100, help="Sample rate")
    parser.add_argument("--tone-seconds", type=float, default=2.0, help="Duracao de cada nota de referencia")
    parser.add_argument("--record-seconds", type=float, default=3.0, help="Tempo de gravacao por nota")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    offset = run_guided_calibration(
        CalibrationConfig(tone_s=args.tone_seconds, record_s=args.record_seconds),
        AudioConfig(sample_rate=args.samplerate),
        device=args.device,
    )
    if offset is None:
        print("Nao deu para calibrar: pouca voz detectada.")
        return 1
    print(f"Calibracao: {offset:+.2f} semitons (use --calibration {offset})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
