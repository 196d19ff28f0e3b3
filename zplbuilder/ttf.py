# -*- coding: utf-8 -*-
"""
TrueType text rendered as a graphic field

Resident printer fonts cover a small character set. Any TrueType font
can be printed instead by rendering the string with FreeType-py into a
monochrome bitmap and sending it as a ^GFA graphic field.
"""
from .raster import Bitmap


def load_face(fontpath):
    """
    Freetype.Face is acquired using Freetype-py.

    In the windows environment, dll is required under the name "freetype.dll" in the execution directory.
    """
    import freetype
    return freetype.Face(fontpath)


def set_size(face, size, resolution):
    """Set the face size in points, rendered at the printer resolution"""
    face.set_char_size(0, int(size * 64), resolution, resolution)


def _mono_flags():
    import freetype
    return (freetype.FT_LOAD_FLAGS['FT_LOAD_RENDER']
            | freetype.FT_LOAD_FLAGS['FT_LOAD_MONOCHROME']
            | freetype.FT_LOAD_TARGETS['FT_LOAD_TARGET_MONO'])


class TtfGlyph:
    """
    Handle glyph data for one character of TrueType font.

    The glyph is rendered by FreeType-py as a 1 bpp monochrome bitmap.
    Spaces render no bitmap at all and only move the pen.

    :param c: The character to render. len(c)==1
    :type c: str
    :param face: freetype.Face with its size already set
    """

    def __init__(self, c, face, flags=None):
        self._c = c
        face.load_char(c, _mono_flags() if flags is None else flags)
        glyph = face.glyph
        bitmap = glyph.bitmap
        self._buffer = list(bitmap.buffer)
        self._width = bitmap.width              # logical width of the glyph bitmap
        self._rows = bitmap.rows                # height of the glyph bitmap
        self._pitch = abs(bitmap.pitch)         # byte length of each line
        self._bitmap_left = glyph.bitmap_left
        self._bitmap_top = glyph.bitmap_top     # offset from the baseline to the top row
        self._advance = glyph.advance.x >> 6    # 26.6 fixed point

    def width(self):
        return self._width

    def rows(self):
        return self._rows

    def left(self):
        return self._bitmap_left

    def top(self):
        return self._bitmap_top

    def advance(self):
        """Pen movement to the next character in dots"""
        return self._advance

    def is_set(self, row, col):
        return bool(self._buffer[row * self._pitch + col // 8] & (0x80 >> (col % 8)))


def render_text(face, text, pitch=0):
    """
    Render a string into one bitmap, all glyphs sharing a baseline.

    Line breaks are ignored. A string without any visible glyph gives a
    blank bitmap at least one dot wide and high.

    :param face: freetype.Face with its size already set
    :param text: The string to render
    :param pitch: Extra space between characters in dots
    :rtype: Bitmap
    """
    flags = _mono_flags()
    glyphs = [TtfGlyph(c, face, flags) for c in text if c not in '\r\n']

    ascent = max([g.top() for g in glyphs] + [0])
    descent = max([g.rows() - g.top() for g in glyphs] + [0])

    placed = []
    x = 0
    right = 0
    for g in glyphs:
        placed.append((x + g.left(), ascent - g.top(), g))
        right = max(right, x + g.left() + g.width(), x + g.advance())
        x += g.advance() + pitch

    width = max(right, 1)
    height = max(ascent + descent, 1)
    bitmap = Bitmap(width, height)
    for gx, gy, g in placed:
        for r in range(g.rows()):
            for c in range(g.width()):
                if not g.is_set(r, c):
                    continue
                px, py = gx + c, gy + r
                if 0 <= px < width and 0 <= py < height:
                    bitmap.set(py, px)
    return bitmap
