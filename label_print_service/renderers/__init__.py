"""
Label Renderers
===============

Format-specific renderers turning label codes into payloads.
"""

from typing import Optional

from .base import BaseRenderer
from .zpl import ZplRenderer
from .raster import PdfRenderer, PngRenderer

__all__ = ['BaseRenderer', 'ZplRenderer', 'PdfRenderer', 'PngRenderer']

# Renderer registry
RENDERERS = {
    'zpl': ZplRenderer,
    'pdf': PdfRenderer,
    'png': PngRenderer,
}


def get_renderer(fmt: str) -> Optional[type]:
    """Get renderer class by format tag."""
    return RENDERERS.get((fmt or '').strip().lower())
