"""
Glyph layout for stamped text.

Script fonts only look right when their own kerning, ligature and mark
positioning tables are applied, so TrueType programs are shaped with
HarfBuzz. The standard Helvetica fallback has no font program to shape with
and is laid out from its AFM widths, one glyph per character.

All positions are returned in PDF points: design units multiplied by
``point_size / units_per_em``.
"""

from dataclasses import dataclass

import uharfbuzz as hb
from reportlab.pdfbase import pdfmetrics


@dataclass(frozen=True)
class PositionedGlyph:
    """One drawable glyph and the source characters it stands for."""

    text: str
    """
    Source characters of the glyph's cluster. Empty for the second and later
    glyphs of a multi-glyph cluster, which are positioned but not drawn.
    """

    x_advance: float
    x_offset: float
    y_offset: float


def _cluster_extents(clusters, text_length):
    # cluster values are codepoint indexes; a cluster spans up to the next
    # larger cluster value (works for both LTR and RTL runs)
    starts = sorted(set(clusters))
    ends = starts[1:] + [text_length]
    return dict(zip(starts, ends))


def shape_run(font, text):
    """
    Shape ``text`` with HarfBuzz.

    Yields (text, x_advance, x_offset, y_offset) in font design units.
    """
    buf = hb.Buffer()
    # add_codepoints keeps cluster values equal to codepoint indexes
    buf.add_codepoints([ord(ch) for ch in text])
    buf.guess_segment_properties()
    hb.shape(font.hb_font, buf, font.features)

    infos = buf.glyph_infos
    positions = buf.glyph_positions
    extents = _cluster_extents([info.cluster for info in infos], len(text))

    emitted = set()
    for info, pos in zip(infos, positions):
        cluster = info.cluster
        if cluster in emitted:
            chars = ''
        else:
            chars = text[cluster:extents[cluster]]
            emitted.add(cluster)
        yield chars, pos.x_advance, pos.x_offset, pos.y_offset


def metric_run(font, text):
    """Lay out a standard font from its AFM widths (1000 units per em)."""
    for ch in text:
        width = pdfmetrics.stringWidth(ch, font.name, font.units_per_em)
        yield ch, width, 0, 0


def layout(font, text, point_size):
    """
    Position every glyph of ``text`` set in ``font`` at ``point_size``.

    Args:
        font: FontProgram from the font registry
        text: str to lay out
        point_size: font size in points

    Returns:
        tuple of PositionedGlyph, in visual order
    """
    if not text:
        return ()

    scale = point_size / font.units_per_em
    run = shape_run(font, text) if font.is_shaped else metric_run(font, text)

    return tuple(
        PositionedGlyph(
            text=chars,
            x_advance=x_advance * scale,
            x_offset=x_offset * scale,
            y_offset=y_offset * scale,
        )
        for chars, x_advance, x_offset, y_offset in run
    )


def text_width(glyphs):
    """Total advance of a laid-out run, in points."""
    return sum(glyph.x_advance for glyph in glyphs)
