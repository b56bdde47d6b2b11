"""CHIP-8 monochrome framebuffer."""

from __future__ import annotations

from dataclasses import dataclass, field
import threading
from typing import List, Sequence, Tuple

WIDTH = 64
HEIGHT = 32
SPRITE_WIDTH = 8

Snapshot = Tuple[Tuple[int, ...], ...]


@dataclass
class Chip8Display:
    """64x32 one-bit framebuffer with XOR sprite drawing.

    Sprites that run past the right or bottom edge are clipped. All access
    goes through a single lock so a presentation thread can take snapshots
    while the CPU draws.
    """

    WIDTH: int = WIDTH
    HEIGHT: int = HEIGHT

    color_map: List[int] = field(default_factory=lambda: [0x000000, 0xFFFFFF])
    _pixels: List[List[int]] = field(default_factory=lambda: [[0] * WIDTH for _ in range(HEIGHT)])
    _dirty: bool = True

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Framebuffer operations
    # ------------------------------------------------------------------
    def clear(self) -> None:
        with self._lock:
            for row in self._pixels:
                row[:] = [0] * self.WIDTH
            self._dirty = True

    def draw(self, x: int, y: int, rows: Sequence[int]) -> bool:
        """XOR ``rows`` onto the grid at ``(x, y)`` and report collisions.

        Parameters
        ----------
        x, y:
            Top-left corner of the sprite.
        rows:
            One byte per sprite line, most significant bit leftmost.

        Returns
        -------
        bool
            True if any pixel was switched from set to unset.
        """

        collided = False
        with self._lock:
            for j, bits in enumerate(rows):
                row_index = y + j
                if not (0 <= row_index < self.HEIGHT):
                    continue
                row = self._pixels[row_index]
                for b in range(SPRITE_WIDTH):
                    column = x + b
                    if not (0 <= column < self.WIDTH):
                        continue
                    if not (bits >> (7 - b)) & 0x01:
                        continue
                    if row[column]:
                        collided = True
                    row[column] ^= 1
            self._dirty = True
        return collided

    def pixel(self, x: int, y: int) -> int:
        if not (0 <= x < self.WIDTH and 0 <= y < self.HEIGHT):
            raise ValueError("pixel coordinate out of range")
        with self._lock:
            return self._pixels[y][x]

    def snapshot(self) -> Snapshot:
        with self._lock:
            return tuple(tuple(row) for row in self._pixels)

    # ------------------------------------------------------------------
    # Change detection
    # ------------------------------------------------------------------
    @property
    def dirty(self) -> bool:
        return self._dirty

    def take_dirty(self) -> bool:
        """Return whether the grid changed since the last call and reset the flag."""

        with self._lock:
            dirty = self._dirty
            self._dirty = False
        return dirty

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def render_pixels(self) -> List[List[int]]:
        off, on = self.color_map
        return [[on if bit else off for bit in row] for row in self.snapshot()]

    def render_text(self) -> str:
        """Render the grid with unicode half blocks, two pixel rows per line."""

        grid = self.snapshot()
        lines: List[str] = []
        for top_index in range(0, self.HEIGHT, 2):
            top = grid[top_index]
            bottom = grid[top_index + 1] if top_index + 1 < self.HEIGHT else (0,) * self.WIDTH
            chars = []
            for upper, lower in zip(top, bottom):
                if upper and lower:
                    chars.append("█")
                elif upper:
                    chars.append("▀")
                elif lower:
                    chars.append("▄")
                else:
                    chars.append(" ")
            lines.append("".join(chars).rstrip())
        return "\n".join(lines)

    def render_pygame_surface(self, scaling: int = 1):
        """Render the framebuffer into a pygame Surface.

        Parameters
        ----------
        scaling:
            Integer scale factor applied to both axes.

        Returns
        -------
        pygame.Surface
            RGB surface representing the current screen.

        Raises
        ------
        RuntimeError
            If pygame is not available.
        """

        if scaling <= 0:
            raise ValueError("scaling factor must be positive")

        try:
            import pygame  # type: ignore
        except Exception as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pygame is required for render_pygame_surface") from exc

        surface = pygame.Surface((self.WIDTH * scaling, self.HEIGHT * scaling))
        off, on = self.color_map
        surface.fill(off)
        grid = self.snapshot()
        surface.lock()
        try:
            for y, row in enumerate(grid):
                for x, bit in enumerate(row):
                    if bit:
                        surface.fill(on, (x * scaling, y * scaling, scaling, scaling))
        finally:
            surface.unlock()
        return surface
