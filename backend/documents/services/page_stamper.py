"""
Burn field placements onto PDF pages.

The work is split so that everything numeric is a pure function:

1. ``plan_field`` turns one placement into positioned draw operations.
2. ``render_overlay`` executes the draw operations on a ReportLab canvas the
   size of the target page.
3. ``stamp_document`` merges one overlay per touched page into a copy of the
   source PDF and returns the new bytes.

Field coordinates arrive in viewer space (origin top-left, y grows down);
PDF space has its origin bottom-left, so the anchor baseline is
``page_height - y``.
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, asdict
from io import BytesIO
from typing import NamedTuple, Optional

from django.conf import settings
from PyPDF2 import PdfReader, PdfWriter
from PyPDF2.errors import PdfReadError
from reportlab.pdfgen import canvas

from ..exceptions import RenderFailure
from .fonts import get_font_registry
from .glyph_layout import layout

logger = logging.getLogger(__name__)

BLACK = (0.0, 0.0, 0.0)

FIELD_TYPES = ('SIGNATURE', 'INITIAL', 'TEXT', 'DATE')


@dataclass(frozen=True)
class FieldPlacement:
    """One annotation to stamp: what to draw, where, and how."""
    field_type: str
    content: str
    x: float
    y: float
    page: int
    font_style: Optional[str] = None
    font_size: float = 18
    color: object = None

    @classmethod
    def from_dict(cls, data):
        font_size = data.get('font_size') or settings.DEFAULT_FIELD_FONT_SIZE
        return cls(
            field_type=str(data.get('field_type') or 'SIGNATURE').upper(),
            content=data['content'],
            x=float(data['x']),
            y=float(data['y']),
            page=int(data['page']),
            font_style=data.get('font_style'),
            font_size=float(font_size),
            color=data.get('color'),
        )

    def to_dict(self):
        return asdict(self)


class GlyphDraw(NamedTuple):
    """A single drawString call on the overlay canvas."""
    text: str
    x: float
    y: float
    font_name: str
    font_size: float
    color: tuple


def _channel(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or not 0 <= value <= 1:
        return None
    return float(value)


def normalize_color(value):
    """
    Coerce a client color to an (r, g, b) tuple of floats in [0, 1].

    Accepts ``{"r": .., "g": .., "b": ..}`` or a 3-item sequence; anything
    malformed is black.
    """
    if isinstance(value, dict):
        channels = [value.get(key) for key in ('r', 'g', 'b')]
    elif isinstance(value, (list, tuple)) and len(value) == 3:
        channels = list(value)
    else:
        return BLACK

    rgb = tuple(_channel(c) for c in channels)
    if any(c is None for c in rgb):
        return BLACK
    return rgb


def plan_field(field, page_height, registry=None):
    """
    Compute the draw operations for one field on a page of ``page_height``.

    Returns:
        list of GlyphDraw in left-to-right order
    """
    registry = registry or get_font_registry()
    font = registry.resolve(field.font_style)
    font_size = field.font_size if field.font_size and field.font_size > 0 \
        else settings.DEFAULT_FIELD_FONT_SIZE
    color = normalize_color(field.color)

    anchor_y = page_height - field.y
    current_x = field.x

    draws = []
    for glyph in layout(font, field.content, font_size):
        if glyph.text:
            draws.append(GlyphDraw(
                text=glyph.text,
                x=current_x + glyph.x_offset,
                y=anchor_y - glyph.y_offset,
                font_name=font.name,
                font_size=font_size,
                color=color,
            ))
        current_x += glyph.x_advance
    return draws


def render_overlay(page_width, page_height, draws) -> BytesIO:
    """Render draw operations onto a single transparent overlay page."""
    overlay_buffer = BytesIO()
    overlay_canvas = canvas.Canvas(overlay_buffer, pagesize=(page_width, page_height))

    for draw in draws:
        overlay_canvas.setFont(draw.font_name, draw.font_size)
        overlay_canvas.setFillColorRGB(*draw.color)
        overlay_canvas.drawString(draw.x, draw.y, draw.text)

    overlay_canvas.save()
    overlay_buffer.seek(0)
    return overlay_buffer


def _open_pdf(pdf_bytes):
    try:
        reader = PdfReader(BytesIO(pdf_bytes))
        page_count = len(reader.pages)
    except (PdfReadError, ValueError) as e:
        raise RenderFailure(f'Source PDF could not be read: {e}') from e
    if page_count == 0:
        raise RenderFailure('Source PDF has no pages')
    return reader, page_count


def validate_pages(fields, page_count):
    """Reject the whole batch if any field targets a missing page."""
    for field in fields:
        if field.page < 1 or field.page > page_count:
            raise RenderFailure(
                f'Page {field.page} is out of range; document has {page_count} page(s)'
            )


def stamp_document(pdf_bytes, fields, registry=None) -> bytes:
    """
    Stamp every field onto a copy of ``pdf_bytes``.

    Fields are drawn in submission order, so later fields sit on top of
    earlier ones where they overlap. Nothing is written anywhere; callers
    persist the returned bytes.

    Raises:
        RenderFailure: unreadable PDF or a field on a non-existent page
    """
    reader, page_count = _open_pdf(pdf_bytes)
    validate_pages(fields, page_count)

    draws_by_page = defaultdict(list)
    for field in fields:
        page = reader.pages[field.page - 1]
        page_height = float(page.mediabox.height)
        draws_by_page[field.page].extend(plan_field(field, page_height, registry))

    writer = PdfWriter()
    for page_number, page in enumerate(reader.pages, start=1):
        draws = draws_by_page.get(page_number)
        if draws:
            overlay = render_overlay(
                float(page.mediabox.width), float(page.mediabox.height), draws
            )
            page.merge_page(PdfReader(overlay).pages[0])
        writer.add_page(page)

    output_buffer = BytesIO()
    writer.write(output_buffer)

    logger.info(
        "Stamped %d field(s) onto %d page(s)", len(fields), len(draws_by_page)
    )
    return output_buffer.getvalue()
