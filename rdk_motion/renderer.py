"""PsychoPy drawing for the kinematogram.

The engine works in surface pixels (origin top-left, ``y`` down) while a
PsychoPy window in ``pix`` units has its origin in the centre with ``y`` up.
:class:`PsychoPyRenderer` converts between the two and implements the
:class:`~rdk_motion.loop.Renderer` contract with PsychoPy stimuli.  The window
must be created with ``allowStencil=True`` so :class:`psychopy.visual.Aperture`
can clip the dots.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from psychopy import colors, visual

from .aperture import Aperture
from .dots import Dot
from .loop import DotStyle, FixationStyle

# Glyph height relative to the dot radius, so a character covers about as
# much area as the filled circle it replaces.
GLYPH_SCALE: float = 2.5


class PsychoPyRenderer:
    """Draw dots, fixation cross and border into a PsychoPy window."""

    def __init__(self, win: visual.Window, pixel_ratio: float = 1.0):
        self.win = win
        self.pixel_ratio = pixel_ratio
        width, height = win.size
        self.surface_size: Tuple[float, float] = (width / pixel_ratio, height / pixel_ratio)
        self._rgb_cache: Dict[str, List[float]] = {}
        self._background: Optional[str] = None
        self._dot_array: Optional[visual.ElementArrayStim] = None
        self._glyph: Optional[visual.TextStim] = None
        self._clip: Optional[visual.Aperture] = None
        self._border: Optional[visual.BaseShapeStim] = None
        self._fixation: Optional[Tuple[visual.Rect, visual.Rect]] = None

    # ------------------------------------------------------------------
    # Coordinate helpers
    # ------------------------------------------------------------------
    def to_window(self, x: float, y: float) -> Tuple[float, float]:
        """Convert surface pixels to centred, y-up window pixels."""

        width, height = self.surface_size
        return (x - width / 2) * self.pixel_ratio, (height / 2 - y) * self.pixel_ratio

    def _scaled(self, value: float) -> float:
        return value * self.pixel_ratio

    def _rgb(self, color: str) -> List[float]:
        if color not in self._rgb_cache:
            self._rgb_cache[color] = list(colors.Color(color).rgb)
        return self._rgb_cache[color]

    # ------------------------------------------------------------------
    # Renderer contract
    # ------------------------------------------------------------------
    def clear(self, color: str) -> None:
        # The window clears itself on flip; only push colour changes.
        if color != self._background:
            self.win.setColor(self._rgb(color), colorSpace="rgb")
            self._background = color

    def draw_dots(self, dots: Sequence[Dot], aperture: Aperture, style: DotStyle) -> None:
        if not dots:
            return
        clip = self._clip_for(aperture)
        clip.enabled = True
        try:
            if style.character:
                self._draw_glyphs(dots, style)
            else:
                self._draw_circles(dots, style)
        finally:
            clip.enabled = False

    def draw_fixation(self, center_x: float, center_y: float, style: FixationStyle) -> None:
        if self._fixation is None:
            horizontal = visual.Rect(
                self.win,
                units="pix",
                width=self._scaled(style.width * 2),
                height=self._scaled(style.thickness),
                fillColor=style.color,
                lineColor=None,
            )
            vertical = visual.Rect(
                self.win,
                units="pix",
                width=self._scaled(style.thickness),
                height=self._scaled(style.height * 2),
                fillColor=style.color,
                lineColor=None,
            )
            self._fixation = (horizontal, vertical)
        pos = self.to_window(center_x, center_y)
        for bar in self._fixation:
            bar.pos = pos
            bar.draw()

    def draw_border(self, aperture: Aperture, color: str, line_width: float) -> None:
        if self._border is None:
            outline = aperture.border_outline(line_width)
            pos = self.to_window(outline.center_x, outline.center_y)
            size = (self._scaled(outline.width), self._scaled(outline.height))
            if outline.kind == "ellipse":
                self._border = visual.Circle(
                    self.win,
                    units="pix",
                    radius=0.5,
                    size=size,
                    edges=128,
                    pos=pos,
                    lineWidth=self._scaled(outline.line_width),
                    lineColor=color,
                    fillColor=None,
                )
            else:
                self._border = visual.Rect(
                    self.win,
                    units="pix",
                    width=size[0],
                    height=size[1],
                    pos=pos,
                    lineWidth=self._scaled(outline.line_width),
                    lineColor=color,
                    fillColor=None,
                )
        self._border.draw()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _clip_for(self, aperture: Aperture) -> visual.Aperture:
        if self._clip is None:
            region = aperture.clip_region()
            self._clip = visual.Aperture(
                self.win,
                units="pix",
                size=(self._scaled(region.width), self._scaled(region.height)),
                pos=self.to_window(region.center_x, region.center_y),
                shape="circle" if region.kind == "ellipse" else "square",
            )
        return self._clip

    def _draw_circles(self, dots: Sequence[Dot], style: DotStyle) -> None:
        if self._dot_array is None or self._dot_array.nElements != len(dots):
            self._dot_array = visual.ElementArrayStim(
                self.win,
                units="pix",
                nElements=len(dots),
                elementTex=None,
                elementMask="circle",
                sizes=self._scaled(style.radius * 2),
                colorSpace="rgb",
            )
        self._dot_array.xys = [self.to_window(dot.x, dot.y) for dot in dots]
        self._dot_array.colors = [self._rgb(style.color_for(dot)) for dot in dots]
        self._dot_array.draw()

    def _draw_glyphs(self, dots: Sequence[Dot], style: DotStyle) -> None:
        if self._glyph is None:
            self._glyph = visual.TextStim(
                self.win,
                text=style.character,
                units="pix",
                height=self._scaled(style.radius * GLYPH_SCALE),
                font="Courier New",
                anchorHoriz="center",
                anchorVert="center",
            )
        for dot in dots:
            self._glyph.color = style.color_for(dot)
            self._glyph.pos = self.to_window(dot.x, dot.y)
            self._glyph.draw()


__all__ = ["GLYPH_SCALE", "PsychoPyRenderer"]
