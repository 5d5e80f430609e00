"""
Base Renderer
=============

Abstract base class for label renderers and shared option parsing.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Tuple

from ..config import DEFAULT_DPI, DEFAULT_LABEL_SIZE

MM_PER_INCH = 25.4
_DEFAULT_SIZE_MM = (50.0, 30.0)


def parse_label_size(size: str) -> Tuple[float, float]:
    """
    Parse a label size like ``"50x30mm"`` into (width_mm, height_mm).

    Malformed values fall back to 50x30 mm.
    """
    text = str(size or '').lower().replace('mm', '').replace(' ', '')
    if 'x' not in text:
        return _DEFAULT_SIZE_MM
    width, _, height = text.partition('x')
    try:
        w, h = float(width), float(height)
    except ValueError:
        return _DEFAULT_SIZE_MM
    if w <= 0 or h <= 0:
        return _DEFAULT_SIZE_MM
    return w, h


def mm_to_dots(mm: float, dpi: int) -> int:
    return int(round(mm / MM_PER_INCH * dpi))


class BaseRenderer(ABC):
    """Abstract base class for label renderers."""

    #: Format tag this renderer produces (zpl, pdf, png)
    format: str = ''

    @abstractmethod
    def render(self, codes: List[str], options: Mapping[str, Any]) -> bytes:
        """
        Render one label per code.

        Args:
            codes: Printable codes, in order
            options: dpi, label_size, hri, copies

        Returns:
            Opaque payload bytes
        """
        pass

    def layout(self, options: Mapping[str, Any]) -> Dict[str, Any]:
        """Resolve common label options to concrete values."""
        try:
            dpi = int(options.get('dpi') or DEFAULT_DPI)
        except (TypeError, ValueError):
            dpi = DEFAULT_DPI
        width_mm, height_mm = parse_label_size(options.get('label_size') or DEFAULT_LABEL_SIZE)
        try:
            copies = max(1, int(options.get('copies') or 1))
        except (TypeError, ValueError):
            copies = 1
        return {
            'dpi': dpi,
            'width_mm': width_mm,
            'height_mm': height_mm,
            'hri': bool(options.get('hri', True)),
            'copies': copies,
        }
