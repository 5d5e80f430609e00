"""
Raster Renderers
================

PDF and PNG label renderers.

Each code is drawn as a Code 128 barcode by python-barcode's Pillow
``ImageWriter`` (with its human readable line when ``hri`` is on) and
centered on a canvas sized from the label dimensions and dpi.

Payloads are text-safe:
- pdf: base64 of a multipage PDF (one page per code)
- png: JSON array of base64 PNG images
"""

import base64
import json
from io import BytesIO
from typing import Any, Dict, List, Mapping

from barcode import Code128
from barcode.errors import BarcodeError
from barcode.writer import ImageWriter

from .base import MM_PER_INCH, BaseRenderer, mm_to_dots
from ..errors import LabelError


def draw_label(code: str, layout: Dict[str, Any]):
    """
    Draw one barcode label.

    Args:
        code: Value to encode
        layout: Resolved options from BaseRenderer.layout()

    Returns:
        PIL Image in mode "L"

    Raises:
        LabelError: code cannot be encoded as Code 128
    """
    try:
        from PIL import Image
    except ImportError:
        raise ImportError('PIL/Pillow required for raster label rendering')

    try:
        # sizing pass on its own instance; building mutates the charset state
        modules = len(Code128(code).build()[0])
        symbol = Code128(code, writer=ImageWriter())
    except BarcodeError as e:
        raise LabelError(f'Cannot encode {code!r} as Code 128: {e}') from e

    dpi = layout['dpi']
    width = mm_to_dots(layout['width_mm'], dpi)
    height = mm_to_dots(layout['height_mm'], dpi)
    margin = mm_to_dots(3.0, dpi)

    # whole dots per module keeps bar edges crisp
    module_dots = max(1, (width - 2 * margin) // modules)
    bar_mm = max(5.0, layout['height_mm'] - 6.0 - (5.0 if layout['hri'] else 0.0))
    barcode_img = symbol.render({
        'module_width': module_dots * MM_PER_INCH / dpi,
        'module_height': bar_mm,
        'quiet_zone': 1.0,
        'dpi': dpi,
        'write_text': bool(layout['hri']),
        'font_size': 8,
        'text_distance': 1.5,
    }).convert('L')

    img = Image.new('L', (width, height), 255)
    barcode_img.thumbnail((width, height), Image.NEAREST)
    img.paste(barcode_img, ((width - barcode_img.width) // 2, (height - barcode_img.height) // 2))
    return img


class PdfRenderer(BaseRenderer):
    """Renderer producing a base64 encoded multipage PDF."""

    format = 'pdf'

    def render(self, codes: List[str], options: Mapping[str, Any]) -> bytes:
        layout = self.layout(options)
        pages = []
        for code in codes:
            pages.extend([draw_label(code, layout).convert('RGB')] * layout['copies'])

        buf = BytesIO()
        pages[0].save(
            buf,
            format='PDF',
            save_all=True,
            append_images=pages[1:],
            resolution=float(layout['dpi']),
        )
        return base64.b64encode(buf.getvalue())


class PngRenderer(BaseRenderer):
    """Renderer producing a JSON list of base64 encoded PNG labels."""

    format = 'png'

    def render(self, codes: List[str], options: Mapping[str, Any]) -> bytes:
        layout = self.layout(options)
        images = []
        for code in codes:
            buf = BytesIO()
            draw_label(code, layout).save(buf, format='PNG', dpi=(layout['dpi'], layout['dpi']))
            images.append(base64.b64encode(buf.getvalue()).decode('ascii'))
        return json.dumps(images).encode('utf-8')
