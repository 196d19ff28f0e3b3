# -*- coding: utf-8 -*-
"""
Graphic field encoding

The ^GF command embeds a monochrome raster image as ASCII hex. Every
byte holds 8 horizontal pixels, most significant bit first, and each row
is padded to a whole byte. The hex text is compressed with the Zebra
alternative compression scheme, which the printer expands on its own
when the field is sent in ASCII format (^GFA):

- ``G`` to ``Y`` repeat the following hex digit 1 to 19 times
- ``g`` to ``z`` repeat the following hex digit 20 to 400 times (steps of 20)
- ``,`` fills the rest of the row with ``0``
- ``!`` fills the rest of the row with ``F``
- ``:`` repeats the previous row
"""
import collections
import itertools
import logging

from .exceptions import BuilderError

logger = logging.getLogger(__name__)

HEX_DIGITS = '0123456789ABCDEF'
REPEAT_ROW = ':'
FILL_ZERO = ','
FILL_ONE = '!'

LOW_COUNTS = 'GHIJKLMNOPQRSTUVWXY'   # 1..19
HIGH_COUNTS = 'ghijklmnopqrstuvwxyz' # 20..400
MAX_REPEAT = 419
MIN_RUN = 3


class Bitmap:
    """
    A monochrome bitmap held in memory.

    ``is_set(row, col)`` is true where the printer should burn a dot.
    Any object with the same three methods (``width()``, ``height()``,
    ``is_set()``) can be given to :class:`RasterEncoder`.

    :param width: Width in dots, at least 1
    :param height: Height in dots, at least 1
    :param rows: (optional) ``height`` sequences of ``width`` truthy/falsy values
    """

    def __init__(self, width, height, rows=None):
        if width <= 0 or height <= 0:
            raise BuilderError('Bitmap size must be positive, got {0}x{1}'.format(width, height))
        self._width = width
        self._height = height
        if rows is None:
            self._rows = [[False] * width for _ in range(height)]
            return
        self._rows = [[bool(p) for p in row] for row in rows]
        if len(self._rows) != height or any(len(row) != width for row in self._rows):
            raise BuilderError('Bitmap rows do not match {0}x{1}'.format(width, height))

    @classmethod
    def from_strings(cls, lines, on='#'):
        """
        Build a bitmap from text art, one string per row.

        Every ``on`` character is a set pixel. Short rows are padded with clear pixels.
        """
        width = max([len(line) for line in lines] + [0])
        rows = [[c == on for c in line.ljust(width)] for line in lines]
        return cls(width, len(rows), rows)

    def width(self):
        return self._width

    def height(self):
        return self._height

    def is_set(self, row, col):
        return self._rows[row][col]

    def set(self, row, col, value=True):
        self._rows[row][col] = bool(value)


class RasterPayload(collections.namedtuple(
        'RasterPayload', 'byte_count field_byte_count bytes_per_row hex_payload')):
    """
    Result of :meth:`RasterEncoder.encode`.

    ``byte_count`` and ``field_byte_count`` are always the decompressed
    size, ``bytes_per_row * height``.
    """
    __slots__ = ()

    def field_data(self):
        """Parameters of ^GFA after the format letter"""
        return '{0},{1},{2},{3}'.format(
            self.byte_count, self.field_byte_count, self.bytes_per_row, self.hex_payload)


def repeat_count(n):
    """Returns the count characters for a run of 1 <= n <= 419 digits"""
    if n < 1 or n > MAX_REPEAT:
        raise BuilderError('Repeat count out of range: {0}'.format(n))
    s = ''
    if n >= 20:
        s += HIGH_COUNTS[n // 20 - 1]
        n %= 20
    if n:
        s += LOW_COUNTS[n - 1]
    return s


def compress_row(hexrow):
    """
    Compress the hex text of one row.

    A trailing run of ``0`` or ``F`` becomes ``,`` or ``!``. Other runs of
    at least three equal digits become a count prefix and the digit.
    """
    tail = ''
    last = hexrow[-1:]
    if last in ('0', 'F'):
        body = hexrow.rstrip(last)
        if len(hexrow) - len(body) >= 2:
            hexrow = body
            tail = FILL_ZERO if last == '0' else FILL_ONE

    out = []
    for digit, group in itertools.groupby(hexrow):
        run = len(list(group))
        while run >= MIN_RUN:
            chunk = min(run, MAX_REPEAT)
            out.append(repeat_count(chunk) + digit)
            run -= chunk
        out.append(digit * run)
    out.append(tail)
    return ''.join(out)


def decompress(payload, bytes_per_row):
    """
    Expand a compressed graphic field payload into raw rows.

    :param payload: The hex text as produced by :meth:`RasterEncoder.encode`
    :param bytes_per_row: Row width in bytes
    :rtype: list of bytes
    """
    if bytes_per_row <= 0:
        raise BuilderError('bytes_per_row must be positive, got {0}'.format(bytes_per_row))
    width = bytes_per_row * 2
    rows = []
    current = []
    count = 0

    def finish():
        rows.append(bytes.fromhex(''.join(current)))
        del current[:]

    for c in payload:
        if c in ' \r\n':
            continue
        if c == REPEAT_ROW:
            if current or count or not rows:
                raise BuilderError('Misplaced row repeat in graphic field')
            rows.append(rows[-1])
        elif c in (FILL_ZERO, FILL_ONE):
            if count:
                raise BuilderError('Repeat count before row fill in graphic field')
            current.extend(('0' if c == FILL_ZERO else 'F') * (width - len(current)))
            finish()
        elif c in LOW_COUNTS:
            count += LOW_COUNTS.index(c) + 1
        elif c in HIGH_COUNTS:
            count += (HIGH_COUNTS.index(c) + 1) * 20
        elif c.upper() in HEX_DIGITS:
            current.extend(c.upper() * (count or 1))
            count = 0
            if len(current) > width:
                raise BuilderError('Graphic field row overflows {0} bytes'.format(bytes_per_row))
            if len(current) == width:
                finish()
        else:
            raise BuilderError('Unexpected character {0!r} in graphic field'.format(c))

    if current or count:
        raise BuilderError('Graphic field ends inside a row')
    return rows


def unpack(rows, width):
    """Expand packed rows into lists of ``width`` booleans"""
    return [[bool(row[c // 8] & (0x80 >> (c % 8))) for c in range(width)] for row in rows]


class RasterEncoder:
    """
    Converts a monochrome bitmap into a compressed ^GFA payload.

    The encoder keeps no state between calls and never holds on to the bitmap.
    """

    def pack_row(self, bitmap, row, bytes_per_row):
        """
        Pack one row, 8 pixels per byte, most significant bit first.

        Padding bits after the last column stay clear.

        :rtype: bytearray
        """
        packed = bytearray(bytes_per_row)
        for col in range(bitmap.width()):
            if bitmap.is_set(row, col):
                packed[col // 8] |= 0x80 >> (col % 8)
        return packed

    def encode(self, bitmap):
        """
        Encode a bitmap as a graphic field.

        :param bitmap: :class:`Bitmap` or any object with ``width()``, ``height()`` and ``is_set(row, col)``
        :rtype: RasterPayload
        """
        width, height = bitmap.width(), bitmap.height()
        if width <= 0 or height <= 0:
            raise BuilderError('Bitmap size must be positive, got {0}x{1}'.format(width, height))

        bytes_per_row = (width + 7) // 8
        chunks = []
        previous = None
        for row in range(height):
            hexrow = self.pack_row(bitmap, row, bytes_per_row).hex().upper()
            if hexrow == previous:
                chunks.append(REPEAT_ROW)
            else:
                chunks.append(compress_row(hexrow))
            previous = hexrow

        byte_count = bytes_per_row * height
        payload = RasterPayload(byte_count, byte_count, bytes_per_row, ''.join(chunks))
        logger.debug('Encoded %dx%d bitmap: %d bytes, %d hex chars (%d uncompressed)',
                     width, height, byte_count, len(payload.hex_payload), byte_count * 2)
        return payload
