"""
ZPL Renderer
============

Renders Code 128 labels as ZPL II for Zebra-compatible printers.

Each code becomes one ^XA ... ^XZ label:
- ^PW / ^LL  - print width and label length in dots
- ^BCN       - Code 128 barcode, no interpretation line (HRI is a separate field)
- ^A0N       - scalable font for the human readable code
- ^PQ        - quantity, only when more than one copy is requested
"""

from typing import Any, List, Mapping

from .base import BaseRenderer, mm_to_dots


def escape_field(value: str) -> str:
    """Strip ZPL control prefixes from field data."""
    return str(value).replace('^', '').replace('~', '')


class ZplRenderer(BaseRenderer):
    """Renderer producing ZPL text."""

    format = 'zpl'

    MARGIN_LEFT_MM = 3.0
    MARGIN_TOP_MM = 5.0
    HRI_FONT_MM = 3.0
    HRI_GAP_MM = 2.0

    def render(self, codes: List[str], options: Mapping[str, Any]) -> bytes:
        layout = self.layout(options)
        dpi = layout['dpi']

        pw = mm_to_dots(layout['width_mm'], dpi)
        ll = mm_to_dots(layout['height_mm'], dpi)
        left = mm_to_dots(self.MARGIN_LEFT_MM, dpi)
        top = mm_to_dots(self.MARGIN_TOP_MM, dpi)
        bar_height = mm_to_dots(max(10.0, layout['height_mm'] - 15.0), dpi)

        parts = []
        for code in codes:
            data = escape_field(code)
            zpl = f'^XA^PW{pw}^LL{ll}^LH0,0'
            zpl += f'^FO{left},{top}^BY2^BCN,{bar_height},N,N,N^FD{data}^FS'
            if layout['hri']:
                font = mm_to_dots(self.HRI_FONT_MM, dpi)
                text_top = top + bar_height + mm_to_dots(self.HRI_GAP_MM, dpi)
                zpl += f'^FO{left},{text_top}^A0N,{font},{font}^FD{data}^FS'
            if layout['copies'] > 1:
                zpl += f'^PQ{layout["copies"]}'
            zpl += '^XZ'
            parts.append(zpl)

        return ''.join(parts).encode('utf-8')
