"""
Font registry for stamped fields.

Maps the free-form style identifiers sent by the client (CSS font-family
strings such as ``"'Dancing Script', cursive"``) onto a small closed set of
font programs. TrueType programs are registered with ReportLab for drawing
and opened with HarfBuzz/fontTools for shaping; the default font is
ReportLab's built-in Helvetica.
"""

import logging
import threading
from io import BytesIO
from pathlib import Path

import uharfbuzz as hb
from django.conf import settings
from fontTools import ttLib
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont, TTFError

logger = logging.getLogger(__name__)

DEFAULT_FONT = 'Helvetica'

# Registry key -> file name inside SIGNATURE_FONT_DIR
SCRIPT_FONT_FILES = {
    'DancingScript': 'DancingScript-Regular.ttf',
    'DancingScript-Bold': 'DancingScript-Bold.ttf',
    'Pacifico': 'Pacifico-Regular.ttf',
    'Caveat': 'Caveat-Regular.ttf',
    'Sacramento': 'Sacramento-Regular.ttf',
}

# Checked top to bottom; the first rule whose substrings all occur wins.
STYLE_RULES = (
    (('pacifico',), 'Pacifico'),
    (('caveat',), 'Caveat'),
    (('sacramento',), 'Sacramento'),
    (('dancing script', 'bold'), 'DancingScript-Bold'),
    (('dancing script',), 'DancingScript'),
)


class FontProgram:
    """
    A drawable font plus whatever the layout engine needs to shape text.

    ``hb_font`` is None for the standard Type 1 fonts, which are laid out
    from their AFM widths instead.
    """

    def __init__(self, name, units_per_em, hb_font=None, features=None):
        self.name = name
        self.units_per_em = units_per_em
        self.hb_font = hb_font
        self.features = features

    @property
    def is_shaped(self):
        return self.hb_font is not None

    def __repr__(self):
        return f'<FontProgram {self.name} upem={self.units_per_em}>'


def load_standard_font(name=DEFAULT_FONT):
    # Raises KeyError for names ReportLab doesn't know
    pdfmetrics.getFont(name)
    return FontProgram(name, units_per_em=1000)


def load_truetype_font(pdf_name, font_path):
    """
    Open a TrueType file for both shaping and drawing.

    Raises:
        OSError, TTFError, ttLib.TTLibError on unreadable files
    """
    data = Path(font_path).read_bytes()

    tt = ttLib.TTFont(BytesIO(data))
    try:
        units_per_em = tt['head'].unitsPerEm
    except KeyError:
        units_per_em = 1000
    finally:
        tt.close()

    face = hb.Face(data)
    hb_font = hb.Font(face)

    pdfmetrics.registerFont(TTFont(pdf_name, str(font_path)))
    return FontProgram(pdf_name, units_per_em=units_per_em, hb_font=hb_font)


class FontRegistry:
    """
    Resolve style identifiers to loaded font programs.

    Programs are loaded on first use and then shared read-only across
    requests; only the load itself takes the lock.
    """

    def __init__(self, font_dir=None):
        self.font_dir = Path(font_dir or settings.SIGNATURE_FONT_DIR)
        self._programs = {}
        self._lock = threading.Lock()

    @staticmethod
    def match_style(style):
        """
        Map a style identifier to a registry key.

        Returns DEFAULT_FONT for None, non-strings and unknown styles.
        """
        if not isinstance(style, str) or not style.strip():
            return DEFAULT_FONT
        lowered = style.lower()
        for needles, key in STYLE_RULES:
            if all(needle in lowered for needle in needles):
                return key
        return DEFAULT_FONT

    def resolve(self, style) -> FontProgram:
        """Return the font program for a style. Never raises."""
        return self.get_program(self.match_style(style))

    def get_program(self, key) -> FontProgram:
        program = self._programs.get(key)
        if program is not None:
            return program

        with self._lock:
            program = self._programs.get(key)
            if program is None:
                program = self._load(key)
                self._programs[key] = program
        return program

    def _load(self, key):
        if key == DEFAULT_FONT or key not in SCRIPT_FONT_FILES:
            return load_standard_font(DEFAULT_FONT)

        font_path = self.font_dir / SCRIPT_FONT_FILES[key]
        try:
            program = load_truetype_font(f'Signature-{key}', font_path)
        except (OSError, TTFError, ttLib.TTLibError) as e:
            logger.warning(
                "Font %s unavailable at %s (%s: %s); using %s",
                key, font_path, type(e).__name__, e, DEFAULT_FONT
            )
            return self.get_default()
        logger.info("Loaded font %s from %s", key, font_path)
        return program

    def get_default(self) -> FontProgram:
        program = self._programs.get(DEFAULT_FONT)
        if program is None:
            program = load_standard_font(DEFAULT_FONT)
            self._programs[DEFAULT_FONT] = program
        return program


# Singleton instance
_font_registry = None


def get_font_registry() -> FontRegistry:
    """Get process-wide font registry."""
    global _font_registry
    if _font_registry is None:
        _font_registry = FontRegistry()
    return _font_registry
