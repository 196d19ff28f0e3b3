# -*- coding: utf-8 -*-
"""
ZPL module for label printing

This builds label documents in ZPL (Zebra Programming Language), the
line-oriented command language of Zebra and compatible thermal/transfer
label printers.

Labels are described with drawing calls (text, lines, boxes, circles,
barcodes, QR codes, images) in dots or millimeters, and the builder
turns them into an ordered list of ZPL commands. The resulting text can
be sent as-is to the printer over a socket, a serial line or USB.

usage::

    builder = ZplBuilder('mm', 203)
    builder.set_font('0', 10)
    builder.draw_text(5, 10, 'Hello')
    builder.draw_code128(5, 15, 10, '0004693003005000')
    zpl = builder.to_zpl()
"""
import enum
import json
import logging
import math

from . import ttf
from .exceptions import BuilderError
from .raster import RasterEncoder

logger = logging.getLogger(__name__)

START_LABEL = '^XA'
END_LABEL = '^XZ'

DEFAULT_RESOLUTION = 203    # dpi
DEFAULT_THICKNESS = 3       # dots, used when a thickness of 0 is given
DEFAULT_FONT_SIZE = 12      # pt
CELL_INSET = 10             # dots
QR_MODULE_DOTS = 28
MM_PER_INCH = 25.4
POINTS_TO_DOTS = 0.014      # per dpi

# With ^FH the field data is hex-escaped with '_'
CONTROL_CHAR_HEX_MAPPINGS = {
    '^': '_5e',
    '~': '_7e',
    '_': '_5f',
}
_CONTROL_CHAR_TABLE = str.maketrans(CONTROL_CHAR_HEX_MAPPINGS)


class Unit(enum.Enum):
    DOTS = 'dots'
    MM = 'mm'


class Orientation(enum.Enum):
    NORMAL = 'N'
    ROTATED = 'R'       # 90 degrees
    INVERTED = 'I'      # 180 degrees
    BOTTOM_UP = 'B'     # 270 degrees, read from bottom up


class Justify(enum.Enum):
    LEFT = 0
    RIGHT = 1
    AUTO = 2


class Color(enum.Enum):
    BLACK = 'B'
    WHITE = 'W'


class Align(enum.Enum):
    LEFT = 'L'
    CENTER = 'C'
    RIGHT = 'R'
    JUSTIFIED = 'J'


def _coerce(kind, value):
    """Accept an enum member, its protocol value or its name"""
    if isinstance(value, kind):
        return value
    try:
        return kind(value)
    except ValueError:
        pass
    if isinstance(value, str) and value.upper() in kind.__members__:
        return kind[value.upper()]
    raise BuilderError('{0} {1!r} not recognized. Use one of: {2}'.format(
        kind.__name__, value, ', '.join(repr(m.value) for m in kind)))


def _dots(value):
    """Round half up to a whole number of dots"""
    return int(math.floor(value + 0.5))


def _yes_no(flag):
    return 'Y' if flag else 'N'


def escape_text(text):
    """Replace the characters ZPL reserves with their ^FH hex escapes"""
    return text.translate(_CONTROL_CHAR_TABLE)


class UnitConverter:
    """
    Converts lengths in the document unit to printer dots.

    :param unit: Unit.DOTS or Unit.MM (or 'dots' / 'mm')
    :param resolution: Printer resolution in dpi
    """

    def __init__(self, unit=Unit.DOTS, resolution=DEFAULT_RESOLUTION):
        self._unit = _coerce(Unit, unit)
        self._resolution = resolution

    def unit(self):
        return self._unit

    def resolution(self):
        return self._resolution

    def to_dots(self, value):
        if self._unit is Unit.MM:
            # 1 inch = 25.4 mm
            return value * self._resolution / MM_PER_INCH
        return value

    def font_size_to_dots(self, points):
        """Font sizes are always in points, whatever the document unit"""
        return points * self._resolution * POINTS_TO_DOTS


class CommandBuffer:
    """
    Ordered ZPL commands of one document.

    The document has three regions: commands sent once before the first
    label, the bodies of the labels, and commands sent once after the
    last label. Between two labels the post and pre commands are
    repeated so that every label starts from the same printer setup.

    :param start: Command that opens a label
    :param end: Command that closes a label
    """

    def __init__(self, start=START_LABEL, end=END_LABEL):
        self._start = start
        self._end = end
        self.clear()

    def clear(self):
        self._pre = []
        self._post = []
        self._segments = [[]]

    def append(self, command):
        """Add a command to the current label"""
        self._segments[-1].append(command)

    def prepend_global(self, command):
        """Add a command sent before the first label"""
        self._pre.append(command)

    def append_global(self, command):
        """Add a command sent after the last label"""
        self._post.append(command)

    def set_pre_commands(self, commands):
        self._pre = list(commands)

    def set_post_commands(self, commands):
        self._post = list(commands)

    def break_page(self):
        """Close the current label and start a new one"""
        self._segments.append([])

    def pages(self):
        return len(self._segments)

    def serialize(self):
        lines = list(self._pre)
        for i, segment in enumerate(self._segments):
            if i:
                lines.append(self._end)
                lines.extend(self._post)
                lines.extend(self._pre)
            lines.append(self._start)
            lines.extend(segment)
        lines.append(self._end)
        lines.extend(self._post)
        lines.append('')
        return '\n'.join(lines)


class ZplBuilder:
    """
    Generate a ZPL document to be printed.

    Drawing commands are held as methods, and executing them appends ZPL
    commands to the document. Positions and sizes are in the unit given at
    construction; font sizes are always in points.

    The builder also keeps a cursor (x, y) used by draw_line() and
    draw_cell(). After new_page() the cursor moves back to (margin, 0).

    An instance is not thread safe. Use one builder per document or
    serialize the calls yourself.

    :param unit: Unit.DOTS or Unit.MM (or 'dots' / 'mm')
    :param resolution: Resolution of the printer in dpi
    :param font_mapper: (optional) FontMapper consulted by set_font()
    """
    _encoder = RasterEncoder()
    _getfontpath = None
    _face = None
    _font = None

    def __init__(self, unit=Unit.DOTS, resolution=DEFAULT_RESOLUTION, font_mapper=None):
        if isinstance(resolution, bool) or not isinstance(resolution, int) or resolution < 1:
            raise BuilderError('Resolution must be a positive integer, got {0!r}'.format(resolution))
        self._converter = UnitConverter(unit, resolution)
        self._resolution = resolution
        self._font_mapper = font_mapper
        self._buffer = CommandBuffer()
        self._reset_state()

    def _reset_state(self):
        self._x = 0
        self._y = 0
        self._margin = 0
        self._width = 0
        self._height = 0
        self._font_size = DEFAULT_FONT_SIZE

    # -- units

    def unit(self):
        return self._converter.unit()

    def resolution(self):
        return self._resolution

    def to_dots(self, size):
        """Converts the size from the document unit to dots"""
        return self._converter.to_dots(size)

    def font_size_to_dots(self, size):
        """Converts the font size from points to dots"""
        return self._converter.font_size_to_dots(size)

    def _pos(self, value):
        return _dots(self.to_dots(value))

    def _thickness(self, thickness):
        return DEFAULT_THICKNESS if thickness == 0 else self._pos(thickness)

    # -- cursor and page

    def set_xy(self, x, y):
        self._x = x
        self._y = y
        return self

    def set_x(self, x):
        self._x = x
        return self

    def get_x(self):
        return self._x

    def set_y(self, y):
        self._y = y
        return self

    def get_y(self):
        return self._y

    def set_margin(self, margin):
        self._margin = margin
        return self

    def get_margin(self):
        return self._margin

    def set_width(self, width):
        self._width = width
        return self

    def get_width(self):
        return self._width

    def set_height(self, height):
        self._height = height
        return self

    def get_height(self):
        return self._height

    def set_page_size(self, height, width):
        self.set_height(height)
        self.set_width(width)
        return self

    # -- label setup

    def set_font_mapper(self, mapper):
        self._font_mapper = mapper
        return self

    def add_command(self, command):
        """Append a raw ZPL command to the current label"""
        self._buffer.append(command)
        return self

    def set_media_width(self, width):
        """
        Set the print width of the label.

        :param width: Width in user units
        """
        self._buffer.append('^PW{0}'.format(self._pos(width)))
        return self

    def set_font(self, font, size):
        """
        Set the default font of the following fields.

        :param font: Font name, looked up in the font mapper, or a ZPL font code
        :param size: The font's size in pt
        """
        code = self._font_mapper.get(font) if self._font_mapper is not None else None
        if code is None:
            code = font
        self._font_size = size
        self._buffer.append('^CF{0},{1}'.format(code, _dots(self.font_size_to_dots(size))))
        return self

    def set_encoding(self, code):
        """
        Select the character set of the field data.

        :param code: Value from 0 to 36 (28 is UTF-8)
        """
        if not 0 <= code <= 36:
            raise BuilderError('Encoding must be between 0 and 36, got {0}'.format(code))
        self._buffer.append('^CI{0}'.format(code))
        return self

    def set_orientation(self, orientation=Orientation.NORMAL, justification=Justify.LEFT):
        """Set the default orientation and justification of the following fields"""
        orientation = _coerce(Orientation, orientation)
        justification = _coerce(Justify, justification)
        self._buffer.append('^FW{0},{1}'.format(orientation.value, justification.value))
        return self

    def set_home(self, x, y):
        """Move the label origin to (x, y)"""
        self._buffer.append('^LH{0},{1}'.format(self._pos(x), self._pos(y)))
        return self

    # -- drawing

    def _field_origin(self, x, y):
        self._buffer.append('^FO{0},{1}'.format(self._pos(x), self._pos(y)))

    def draw_dot(self, x, y):
        self._buffer.append('^FO{0},{1}^GB2,2,2^FS'.format(self._pos(x), self._pos(y)))
        return self

    def draw_text(self, x, y, text, orientation=Orientation.NORMAL, justify=Justify.LEFT,
                  width=None, font_size=DEFAULT_FONT_SIZE, invert=False):
        """
        Insert a text into the document.

        The characters ^, ~ and _ are escaped, so any text can be given.

        :param x: X position of the baseline in user units
        :param y: Y position of the baseline in user units
        :param text: Text to be inserted
        :param orientation: Orientation member or N, R, I, B
        :param justify: Justify member or 0 (left), 1 (right), 2 (auto)
        :param width: (optional) Wrap the text in a block this wide, in user units
        :param font_size: Sets the line height of the block, in pt
        :param invert: Invert the color based on the background behind the text
        """
        orientation = _coerce(Orientation, orientation)
        justify = _coerce(Justify, justify)
        if width is not None and width < 0:
            raise BuilderError('Text block width must not be negative, got {0}'.format(width))
        self._buffer.append('^FW' + orientation.value)
        self._buffer.append('^FT{0},{1},{2}'.format(self._pos(x), self._pos(y), justify.value))
        if width:
            self._buffer.append('^TB,{0},{1}'.format(
                self._pos(width), _dots(self.font_size_to_dots(font_size))))
        if invert:
            self._buffer.append('^FR')
        self._buffer.append('^FH^FD' + escape_text(text) + '^FS')
        return self

    def draw_line(self, x1, y1, x2, y2, thickness=0):
        """
        Draw a horizontal or vertical line from the cursor.

        Only the deltas between the two points are used: the line is a box
        of abs(x2 - x1) by abs(y2 - y1) starting at the cursor. Diagonal
        lines can not be drawn.

        :param thickness: Thickness in user units or 0 for the default thickness
        """
        self._box(self._x, self._y, abs(x2 - x1), abs(y2 - y1),
                  self._thickness(thickness), Color.BLACK, 0)
        return self

    def draw_rect(self, x, y, width, height, thickness=0, color=Color.BLACK, rounding=0):
        """
        Draw a rectangle.

        :param x: X position in user units
        :param y: Y position in user units
        :param width: width of the rectangle in user units
        :param height: height of the rectangle in user units
        :param thickness: Thickness in user units or 0 for the default thickness
        :param color: Color.BLACK or Color.WHITE (or 'B' / 'W')
        :param rounding: 0 (no rounding) to 8 (heaviest rounding)
        """
        if width <= 0 or height <= 0:
            raise BuilderError('Rectangle size must be positive, got {0}x{1}'.format(width, height))
        if not 0 <= rounding <= 8:
            raise BuilderError('Rounding must be between 0 and 8, got {0}'.format(rounding))
        self._box(x, y, width, height, self._thickness(thickness), _coerce(Color, color), int(rounding))
        return self

    def _box(self, x, y, width, height, thickness, color, rounding):
        self._buffer.append('^FO{0},{1}^GB{2},{3},{4},{5},{6}^FS'.format(
            self._pos(x), self._pos(y), self._pos(width), self._pos(height),
            thickness, color.value, rounding))

    def draw_circle(self, x, y, diameter, thickness=0, color=Color.BLACK):
        """
        Draw a circle whose bounding box starts at (x, y).

        :param diameter: diameter of the circle in user units
        :param thickness: Thickness in user units or 0 for the default thickness
        :param color: Color.BLACK or Color.WHITE (or 'B' / 'W')
        """
        if diameter <= 0:
            raise BuilderError('Circle diameter must be positive, got {0}'.format(diameter))
        color = _coerce(Color, color)
        self._buffer.append('^FO{0},{1}^GC{2},{3},{4}^FS'.format(
            self._pos(x), self._pos(y), self._pos(diameter), self._thickness(thickness), color.value))
        return self

    def draw_cell(self, width, height, text, border=False, ln=False, align=None):
        """
        Draw a table cell at the cursor and move the cursor past it.

        The text starts 10 dots from the left edge and a quarter of the cell
        height from the top. Nothing checks that the cell fits on the label.

        :param width: width of the cell in user units
        :param height: height of the cell in user units
        :param text: Text to be drawn, may be empty
        :param border: Whether the cell has a border or not
        :param ln: Move to the start of the next row instead of the next cell
        :param align: (optional) Wrap the text in the cell with this Align (L, C, R, J)
        """
        if width <= 0 or height <= 0:
            raise BuilderError('Cell size must be positive, got {0}x{1}'.format(width, height))
        if align is not None:
            align = _coerce(Align, align)
        x, y = self._x, self._y
        if border:
            self.draw_rect(x, y, width, height)
        if text != '':
            offset_y = self.to_dots(height) / 4
            self._buffer.append('^FO{0},{1}'.format(
                _dots(self.to_dots(x) + CELL_INSET), _dots(self.to_dots(y) + offset_y)))
            if align is not None:
                line_height = self.font_size_to_dots(self._font_size)
                lines = max(1, int((self.to_dots(height) - offset_y) // line_height))
                self._buffer.append('^FB{0},{1},0,{2}'.format(
                    _dots(self.to_dots(width) - CELL_INSET), lines, align.value))
            self._buffer.append('^FH^FD' + escape_text(text) + '^FS')
        if ln:
            self._y = y + height
            self._x = self._margin
        else:
            self._x = x + width
        return self

    def _barcode_checks(self, height, size):
        if height <= 0:
            raise BuilderError('Barcode height must be positive, got {0}'.format(height))
        if not 1 <= size <= 10:
            raise BuilderError('Barcode module width must be between 1 and 10, got {0}'.format(size))

    def draw_code39(self, x, y, height, data, size=2, print_data=False, orientation=Orientation.NORMAL):
        """
        Output barcode of CODE 39 standard

        The data is sent verbatim; it must not contain ^ or ~.

        :param x: X position in user units
        :param y: Y position in user units
        :param height: height of the bars in user units
        :param data: Data to draw the barcode
        :param size: Module width of the barcode in dots (1-10)
        :param print_data: Whether to print the data under the bars or not
        :param orientation: Orientation member or N, R, I, B
        """
        self._barcode_checks(height, size)
        orientation = _coerce(Orientation, orientation)
        self._field_origin(x, y)
        self._buffer.append('^BY{0}'.format(size))
        self._buffer.append('^B3{0},N,{1},{2}'.format(orientation.value, self._pos(height), _yes_no(print_data)))
        self._buffer.append('^FD{0}^FS'.format(data))
        return self

    def draw_code128(self, x, y, height, data, size=2, print_data=False, orientation=Orientation.NORMAL):
        """
        Output barcode of CODE 128 standard

        Same parameters as draw_code39(). The data is sent verbatim, so subset
        invocation codes (>: >; >5 ...) can be used.
        """
        self._barcode_checks(height, size)
        orientation = _coerce(Orientation, orientation)
        self._field_origin(x, y)
        self._buffer.append('^BY{0}'.format(size))
        self._buffer.append('^BC{0},{1},{2}'.format(orientation.value, self._pos(height), _yes_no(print_data)))
        self._buffer.append('^FD{0}^FS'.format(data))
        return self

    def draw_qr_code(self, x, y, data, size=14):
        """
        Output a QR code (model 2)

        :param x: X position in user units
        :param y: Y position in user units
        :param data: Data of the code, sent verbatim
        :param size: Size of the code in user units, rounded to the closest magnification factor
        """
        if size <= 0:
            raise BuilderError('QR code size must be positive, got {0}'.format(size))
        scale = _dots(self.to_dots(size) / QR_MODULE_DOTS)
        self._field_origin(x, y)
        self._buffer.append('^BQN,2,{0}'.format(scale))
        self._buffer.append('^FDMA,{0}^FS'.format(data))
        return self

    def _graphic_field(self, x, y, bitmap):
        payload = self._encoder.encode(bitmap)
        self._field_origin(x, y)
        self._buffer.append('^GFA,{0}^FS'.format(payload.field_data()))
        return payload

    def draw_image(self, x, y, decoder, width=None, height=-1):
        """
        Print a monochrome image as a graphic field.

        :param x: X position in user units
        :param y: Y position in user units
        :param decoder: Bitmap source with width(), height(), is_set(row, col) and scale_image(width, height)
        :param width: (optional) Width in user units; the image is scaled only when given
        :param height: Height in user units, leave -1 to maintain aspect ratio
        """
        if width:
            target_height = -1 if height is None or height < 0 else self._pos(height)
            decoder.scale_image(self._pos(width), target_height)
        self._graphic_field(x, y, decoder)
        return self

    def set_font_path(self, getfontpath):
        """
        Resolve the PATH of the font file.

        If a font file exists other than the current directory,
        it is necessary to supplement this font path by calling this method beforehand.
        Give a function.

        :param getfontpath: Specify a function that takes str as an argument and returns str
        """
        self._getfontpath = getfontpath
        return self

    def ttf_face(self, font, size):
        """
        Freetype.Face for the font, cached while the same font is used.

        :param font: Path of a TrueType font, or an already loaded face
        :param size: Font size in pt
        """
        if not isinstance(font, str):
            face = font
        else:
            fontpath = self._getfontpath(font) if self._getfontpath else font
            if self._face is None or self._font != fontpath:
                self._face = ttf.load_face(fontpath)
                self._font = fontpath
            face = self._face
        ttf.set_size(face, size, self._resolution)
        return face

    def draw_ttf_text(self, x, y, text, font, size, pitch=0):
        """
        Print a string with a TrueType font as a graphic field.

        Line breaks are ignored.

        :param x: X position of the top-left corner in user units
        :param y: Y position of the top-left corner in user units
        :param font: Path of a TrueType font (see set_font_path()), or a loaded face
        :param size: Font size in pt
        :param pitch: Extra space between characters in dots
        """
        bitmap = ttf.render_text(self.ttf_face(font, size), text, pitch)
        self._graphic_field(x, y, bitmap)
        return self

    # -- document

    def add_pre_command(self, command):
        """Command inserted before the beginning of the document (^XA)"""
        self._buffer.prepend_global(command)
        return self

    def set_pre_commands(self, commands):
        self._buffer.set_pre_commands(commands)
        return self

    def add_post_command(self, command):
        """Command inserted after the end of the document (^XZ)"""
        self._buffer.append_global(command)
        return self

    def set_post_commands(self, commands):
        self._buffer.set_post_commands(commands)
        return self

    def new_page(self):
        """
        Adds a new label

        Post and pre commands are repeated between the two labels.
        """
        self._buffer.break_page()
        self._y = 0
        self._x = self._margin
        logger.debug('Started label %d', self._buffer.pages())
        return self

    def pages(self):
        return self._buffer.pages()

    def to_zpl(self):
        """
        Convert instance to ZPL.

        The builder is left untouched and can still be drawn on.

        :rtype: str
        """
        return self._buffer.serialize()

    def reset(self):
        """Drop every command and restore the cursor, margin and page size"""
        self._buffer.clear()
        self._reset_state()
        logger.debug('Builder reset')
        return self

    def __str__(self):
        return self.to_zpl()


class JsonParser:
    """
    Provide functions that can specify a label document with JSON.

    - The outside of JSON is always a list, and the inside is an object or list.
    - An object configures the document: ``pre_commands``, ``post_commands``,
      ``margin`` and ``page_size`` ([height, width]).
    - A list holds the commands of one label. A new label is started for every list after the first.
    - Each command is an object whose keys are ZplBuilder method names, run in order.
      A list value is passed as positional arguments, an object as keyword
      arguments, anything else as the single argument. ``comment`` is ignored.
    - ``draw_image`` takes a ``path`` instead of a decoder.

    for example::

        [
            {"pre_commands": ["^PW812", "^CI28"], "margin": 10},
            [
                {"comment": "==header=="},
                {"set_font": ["0", 14]},
                {"draw_text": {"x": 20, "y": 60, "text": "TEST CONCERT"}},
                {"draw_rect": [10, 10, 790, 300, 2]},
                {"set_xy": [10, 320], "draw_cell": [200, 40, "Seat", true]},
                {"draw_code128": [20, 400, 100, "0004693003005000", 3, true]},
                {"draw_qr_code": [600, 380, "https://example.com/t/1", 140]}
            ]
        ]

    usage::

        builder = ZplBuilder()
        parser = JsonParser(builder)
        parser.parse(json_str)
        zpl = builder.to_zpl()

    :param builder: Instances of ZplBuilder or its derived classes
    """
    _gen = None
    _operations = (
        'set_xy', 'set_x', 'set_y', 'set_margin', 'set_page_size',
        'set_media_width', 'set_font', 'set_encoding', 'set_orientation', 'set_home',
        'add_command', 'draw_dot', 'draw_text', 'draw_line', 'draw_rect', 'draw_circle',
        'draw_cell', 'draw_code39', 'draw_code128', 'draw_qr_code', 'draw_image',
        'draw_ttf_text',
    )

    def __init__(self, builder):
        self._gen = builder

    def parse(self, json_str):
        """
        Issue the ZPL commands while reading the contents of JSON.

        :param json_str: JSON which describes the labels. If a character string is given, it is passed to json.loads()
        :type json_str: str, or return value of json.loads()
        :rtype: ZplBuilder
        """
        document = json.loads(json_str) if isinstance(json_str, (str, bytes)) else json_str
        labels = 0
        for page in document:
            if isinstance(page, dict):
                self.parse_settings(page)
                continue
            if labels:
                self._gen.new_page()
            labels += 1
            logger.debug('Parsing label %d (%d commands)', labels, len(page))
            for line in page:
                self.parse_line(line)
        return self._gen

    def parse_settings(self, settings):
        if 'pre_commands' in settings:
            self._gen.set_pre_commands(settings['pre_commands'])
        if 'post_commands' in settings:
            self._gen.set_post_commands(settings['post_commands'])
        if 'margin' in settings:
            self._gen.set_margin(settings['margin'])
            self._gen.set_x(settings['margin'])
        if 'page_size' in settings:
            self._gen.set_page_size(*settings['page_size'])

    def parse_line(self, line):
        """
        Convert the instruction described in JSON to ZPL commands

        :param line: The dict expressing the instruction described in JSON
        """
        for name, args in line.items():
            if name == 'comment':
                continue
            if name not in self._operations:
                raise BuilderError('Unknown operation {0!r}'.format(name))
            if name == 'draw_image':
                args = self._image_args(args)
            method = getattr(self._gen, name)
            if isinstance(args, dict):
                method(**args)
            elif isinstance(args, list):
                method(*args)
            else:
                method(args)

    def _image_args(self, args):
        from .image import PillowDecoder
        if not isinstance(args, dict) or 'path' not in args:
            raise BuilderError('draw_image needs an object with a "path"')
        args = dict(args)
        path = args.pop('path')
        args['decoder'] = PillowDecoder(path, args.pop('threshold', 128))
        return args
