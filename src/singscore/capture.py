from __future__ import annotations

import logging
import queue
from typing import Optional

import numpy as np

from .config import AudioConfig

logger = logging.getLogger(__name__)


class MicrophoneCapture:
    """Audio callback producer feeding a small queue; only the newest block matters."""

    def __init__(self, config: Optional[AudioConfig] = None, device=None, max_blocks: int = 4):
        self.config = config or AudioConfig()
        self.device = device
        self.frames: "queue.Queue[np.ndarray]" = queue.Queue(maxsize=max_blocks)
        self.stream = None

    @property
    def active(self) -> bool:
        return self.stream is not None

    def _callback(self, indata: np.ndarray, frames: int, time_info, status) -> None:
        if status:
            return
        self.push(indata[:, 0].copy())

    def push(self, frame: np.ndarray) -> None:
        try:
            self.frames.put_nowait(frame)
        except queue.Full:
            try:
                self.frames.get_nowait()
            except queue.Empty:
                pass
            self.frames.put_nowait(frame)

    def latest(self) -> Optional[np.ndarray]:
        frame = None
        while True:
            try:
                frame = self.frames.get_nowait()
            except queue.Empty:
                return frame

    def start(self) -> bool:
        if self.stream is not None:
            return True
        import sounddevice as sd

        try:
            stream = sd.InputStream(
                channels=self.config.channels,
                samplerate=self.config.sample_rate,
                blocksize=self.config.block_size,
                device=self.device,
                callback=self._callback,
            )
            stream.start()
        except (sd.PortAudioError, ValueError) as exc:
            logger.error("Microfone indisponivel: %s", exc)
            return False
        self.stream = stream
        return True

    def stop(self) -> None:
        if self.stream is not None:
            self.stream.stop()
            self.stream.close()
            self.stream = None
        self.latest()
