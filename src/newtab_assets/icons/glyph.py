"""Deterministic initials-on-colour glyphs for icons that could not be resolved."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from xml.sax.saxutils import escape

from newtab_core.constants import GLYPH_PALETTE


@dataclass(frozen=True)
class Glyph:
    """Text tile shown in place of a missing favicon."""

    text: str
    background_color: str
    text_color: str = "#ffffff"

    def render_svg(self, size: int = 32, border_radius: int = 6) -> str:
        """Render the glyph as a standalone SVG document."""
        font_size = round(size * 0.6)
        return (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" '
            f'viewBox="0 0 {size} {size}">'
            f'<rect width="{size}" height="{size}" rx="{border_radius}" '
            f'fill="{self.background_color}"/>'
            f'<text x="50%" y="50%" dominant-baseline="central" text-anchor="middle" '
            f'font-family="sans-serif" font-weight="bold" font-size="{font_size}" '
            f'fill="{self.text_color}">{escape(self.text)}</text>'
            "</svg>"
        )


def glyph_text(label: str) -> str:
    """First character of the first word, uppercased; '?' for empty labels."""
    for word in label.split():
        for char in word:
            if char.isalnum():
                return char.upper()
    return "?"


def glyph_color(label: str) -> str:
    """Palette colour chosen by a stable hash of the label."""
    digest = hashlib.md5(label.strip().lower().encode("utf-8"), usedforsecurity=False)
    return GLYPH_PALETTE[int.from_bytes(digest.digest()[:4], "big") % len(GLYPH_PALETTE)]


def synthesize_glyph(label: str) -> Glyph:
    """Build the placeholder for ``label`` (a bookmark title or domain)."""
    return Glyph(text=glyph_text(label), background_color=glyph_color(label))
