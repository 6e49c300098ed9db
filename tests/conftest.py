"""Shared test fixtures."""
from __future__ import annotations

import textwrap

import numpy as np
import pytest

from singscore.ultrastar import Song, parse_ultrastar

SR = 44100


def make_sine(freq: float, duration_s: float, sr: int = SR, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(int(sr * duration_s)) / sr
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def chart(text: str) -> Song:
    return parse_ultrastar(textwrap.dedent(text).lstrip("\n"))


@pytest.fixture
def sine_440_frame() -> np.ndarray:
    """One 2048-sample block of A4."""
    return make_sine(440.0, 2048 / SR)


@pytest.fixture
def one_second_song() -> Song:
    """A single regular 1 s note (pitch 60) from 0 s to 1 s."""
    return chart(
        """
        #TITLE:Um
        #BPM:60
        #GAP:0
        : 0 4 60 la
        E
        """
    )


@pytest.fixture
def golden_song() -> Song:
    return chart(
        """
        #BPM:60
        * 0 4 60 ouro
        E
        """
    )


@pytest.fixture
def duet_song() -> Song:
    return chart(
        """
        #TITLE:Dueto
        #BPM:100
        #GAP:0
        #DUETSINGERP1:Ana
        #DUETSINGERP2:Bia
        P1
        : 0 4 60 one
        - 8
        : 40 4 60 three
        P2
        : 20 4 62 two
        E
        """
    )
