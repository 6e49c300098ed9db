from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import pygame

BACKGROUND = (12, 18, 32)
GOLD = (255, 205, 40)
LYRIC = (255, 236, 156)
UPCOMING = (150, 156, 170)
HIT = (140, 255, 170)
PANEL = (28, 38, 60)


@dataclass
class UIState:
    title: str
    artist: Optional[str]
    current_line: str
    next_line: str
    note: str
    score: int
    rating: str
    feedback: str = ""
    golden_pulse: bool = False
    player_label: str = ""


def header_text(state: UIState) -> str:
    parts = [state.title]
    if state.artist:
        parts.append(state.artist)
    text = " - ".join(parts)
    if state.player_label:
        text += f"  [{state.player_label}]"
    return text


def score_text(state: UIState) -> str:
    return f"{state.score:05d} pts  {state.rating}"


class PygameUI:
    """Single window: header, two lyric lines, feedback and a score panel."""

    def __init__(self, fullscreen: bool = False, size: tuple[int, int] | None = None):
        pygame.init()
        flags = pygame.FULLSCREEN if fullscreen else 0
        self.screen = pygame.display.set_mode(size or (0, 0), flags)
        pygame.display.set_caption("SingScore")
        self.clock = pygame.time.Clock()
        self.width, self.height = self.screen.get_size()

        self.fonts = {
            "header": pygame.font.SysFont("DejaVu Sans", 40, bold=True),
            "lyric": pygame.font.SysFont("DejaVu Sans", 56, bold=True),
            "small": pygame.font.SysFont("DejaVu Sans", 32),
            "panel": pygame.font.SysFont("DejaVu Sans", 26),
        }
        self.glow = pygame.Surface((self.width, self.height), pygame.SRCALPHA)
        self.glow.fill((*GOLD, 40))

    def update(self, state: UIState) -> bool:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False
            if event.type == pygame.KEYDOWN and event.key in (pygame.K_ESCAPE, pygame.K_q):
                return False

        self.screen.fill(BACKGROUND)
        if state.golden_pulse:
            self.screen.blit(self.glow, (0, 0))

        mid = self.height // 2
        self._text("header", header_text(state), (235, 235, 235), topleft=(32, 20))
        self._text("lyric", state.current_line, LYRIC, center=(self.width // 2, mid))
        self._text("small", state.next_line, UPCOMING, center=(self.width // 2, mid + 72))
        if state.feedback:
            self._text("small", state.feedback, GOLD if state.golden_pulse else HIT, center=(self.width // 2, mid - 84))
        self._draw_panel(state)

        pygame.display.flip()
        self.clock.tick(60)
        return True

    def _text(self, font: str, text: str, color, **anchor) -> None:
        if not text:
            return
        surf = self.fonts[font].render(text, True, color)
        self.screen.blit(surf, surf.get_rect(**anchor))

    def _draw_panel(self, state: UIState) -> None:
        panel = pygame.Rect(0, self.height - 96, self.width, 96)
        pygame.draw.rect(self.screen, PANEL, panel)
        self._text("panel", score_text(state), (180, 220, 255), midleft=(32, panel.centery))
        badge = pygame.Rect(0, 0, 96, 56)
        badge.midright = (self.width - 32, panel.centery)
        pygame.draw.rect(self.screen, BACKGROUND, badge, border_radius=12)
        self._text("small", state.note, LYRIC, center=badge.center)

    def close(self) -> None:
        pygame.quit()
