import pytest

from zplbuilder import Align, Color, Justify, Orientation, ZplBuilder
from zplbuilder.exceptions import BuilderError
from zplbuilder.fonts import default_mapper
from zplbuilder.raster import Bitmap


def body(builder):
    """Commands between the first ^XA and the last ^XZ"""
    lines = builder.to_zpl().split('\n')
    return lines[lines.index('^XA') + 1:len(lines) - 1 - lines[::-1].index('^XZ')]


#============================================
# text


def test_text_escapes_control_characters():
    builder = ZplBuilder()
    builder.draw_text(0, 0, 'A^B~C_D')
    assert body(builder)[-1] == '^FH^FDA_5eB_7eC_5fD^FS'


def test_text_with_block_and_inversion():
    builder = ZplBuilder('dots', 203)
    builder.draw_text(10, 20, 'Hi', 'R', 1, width=100, font_size=10, invert=True)
    assert body(builder) == ['^FWR', '^FT10,20,1', '^TB,100,28', '^FR', '^FH^FDHi^FS']


def test_text_defaults():
    builder = ZplBuilder()
    builder.draw_text(1, 2, 'x')
    assert body(builder) == ['^FWN', '^FT1,2,0', '^FH^FDx^FS']


def test_text_accepts_enum_members_and_names():
    builder = ZplBuilder()
    builder.draw_text(0, 0, 'a', Orientation.BOTTOM_UP, Justify.AUTO)
    builder.draw_text(0, 0, 'b', 'inverted', 'right')
    assert body(builder)[:2] == ['^FWB', '^FT0,0,2']
    assert body(builder)[3:5] == ['^FWI', '^FT0,0,1']


def test_text_rejects_unknown_orientation():
    builder = ZplBuilder()
    with pytest.raises(BuilderError):
        builder.draw_text(0, 0, 'x', 'X')
    assert body(builder) == []


#============================================
# shapes


def test_rect_in_millimeters():
    builder = ZplBuilder('mm', 203)
    builder.draw_rect(10, 10, 20, 5)
    assert body(builder) == ['^FO80,80^GB160,40,3,B,0^FS']


def test_rect_thickness_color_rounding():
    builder = ZplBuilder()
    builder.draw_rect(1, 2, 30, 40, 5, Color.WHITE, 8)
    assert body(builder) == ['^FO1,2^GB30,40,5,W,8^FS']


@pytest.mark.parametrize("width,height,rounding", [(0, 10, 0), (10, -1, 0), (10, 10, 9), (10, 10, -1)])
def test_rect_rejects_bad_geometry(width, height, rounding):
    with pytest.raises(BuilderError):
        ZplBuilder().draw_rect(0, 0, width, height, rounding=rounding)


def test_line_starts_at_cursor():
    builder = ZplBuilder()
    builder.set_xy(5, 6)
    builder.draw_line(0, 0, 100, 0)
    builder.draw_line(0, 50, 0, 10, 2)
    assert body(builder) == ['^FO5,6^GB100,0,3,B,0^FS', '^FO5,6^GB0,40,2,B,0^FS']


def test_circle():
    builder = ZplBuilder()
    builder.draw_circle(1, 2, 50, 4, 'W')
    builder.draw_circle(0, 0, 10)
    assert body(builder) == ['^FO1,2^GC50,4,W^FS', '^FO0,0^GC10,3,B^FS']


def test_circle_rejects_empty_diameter():
    with pytest.raises(BuilderError):
        ZplBuilder().draw_circle(0, 0, 0)


def test_dot():
    builder = ZplBuilder()
    builder.draw_dot(3, 4)
    assert body(builder) == ['^FO3,4^GB2,2,2^FS']


#============================================
# cells


def test_cell_advances_horizontally():
    builder = ZplBuilder()
    builder.set_margin(2)
    builder.set_xy(10, 5)
    builder.draw_cell(20, 8, 'X', ln=False)
    assert (builder.get_x(), builder.get_y()) == (30, 5)


def test_cell_line_break_returns_to_margin():
    builder = ZplBuilder()
    builder.set_margin(2)
    builder.set_xy(10, 5)
    builder.draw_cell(20, 8, 'X', ln=True)
    assert (builder.get_x(), builder.get_y()) == (2, 13)


def test_cell_commands():
    builder = ZplBuilder()
    builder.draw_cell(200, 40, 'Seat_1', border=True, align=Align.CENTER)
    assert body(builder) == [
        '^FO0,0^GB200,40,3,B,0^FS',
        '^FO10,10',
        '^FB190,1,0,C',
        '^FH^FDSeat_5f1^FS',
    ]


def test_cell_wraps_as_many_lines_as_fit():
    builder = ZplBuilder()
    builder.set_font('0', 5)
    builder.draw_cell(100, 80, 'long text', align='J')
    assert '^FB90,4,0,J' in body(builder)


def test_empty_cell_only_moves_cursor():
    builder = ZplBuilder()
    builder.draw_cell(15, 10, '')
    assert body(builder) == []
    assert builder.get_x() == 15


@pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (-5, 10)])
def test_cell_rejects_bad_geometry(width, height):
    builder = ZplBuilder()
    with pytest.raises(BuilderError):
        builder.draw_cell(width, height, 'x')
    assert builder.get_x() == 0


#============================================
# barcodes


def test_code39():
    builder = ZplBuilder()
    builder.draw_code39(10, 20, 50, 'ABC', 3, True)
    assert body(builder) == ['^FO10,20', '^BY3', '^B3N,N,50,Y', '^FDABC^FS']


def test_code128_data_is_verbatim():
    builder = ZplBuilder()
    builder.draw_code128(0, 0, 50, '>:A^B', orientation='R')
    assert body(builder) == ['^FO0,0', '^BY2', '^BCR,50,N', '^FD>:A^B^FS']


@pytest.mark.parametrize("height,size", [(0, 2), (10, 0), (10, 11)])
def test_barcode_rejects_bad_size(height, size):
    with pytest.raises(BuilderError):
        ZplBuilder().draw_code128(0, 0, height, '1', size)


def test_qr_code_magnification_in_dots():
    builder = ZplBuilder()
    builder.draw_qr_code(5, 6, 'x', 140)
    assert body(builder) == ['^FO5,6', '^BQN,2,5', '^FDMA,x^FS']


def test_qr_code_magnification_in_millimeters():
    builder = ZplBuilder('mm', 203)
    builder.draw_qr_code(0, 0, 'x', 14)
    assert '^BQN,2,4' in body(builder)


#============================================
# setup commands


def test_font_mapper_lookup_and_passthrough():
    builder = ZplBuilder(font_mapper=default_mapper())
    builder.set_font('OCR-B', 10)
    builder.set_font('P', 10)
    assert body(builder) == ['^CFE,28', '^CFP,28']


def test_font_without_mapper():
    builder = ZplBuilder()
    builder.set_font('ocr-b', 10)
    assert body(builder) == ['^CFocr-b,28']


def test_setup_commands():
    builder = ZplBuilder('mm', 203)
    builder.set_media_width(100)
    builder.set_encoding(28)
    builder.set_orientation('R', 1)
    builder.set_home(1, 2)
    builder.add_command('^PQ2')
    assert body(builder) == ['^PW799', '^CI28', '^FWR,1', '^LH8,16', '^PQ2']


def test_encoding_out_of_range():
    with pytest.raises(BuilderError):
        ZplBuilder().set_encoding(37)


#============================================
# images


def test_image_graphic_field():
    builder = ZplBuilder()
    builder.draw_image(5, 5, Bitmap.from_strings(['########', '']))
    assert body(builder) == ['^FO5,5', '^GFA,2,2,1,!,^FS']


def test_image_scaled_only_when_width_given():
    calls = []

    class Decoder:
        def width(self):
            return 8

        def height(self):
            return 1

        def is_set(self, row, col):
            return False

        def scale_image(self, width, height):
            calls.append((width, height))

    builder = ZplBuilder('mm', 203)
    builder.draw_image(0, 0, Decoder())
    builder.draw_image(0, 0, Decoder(), width=10)
    builder.draw_image(0, 0, Decoder(), width=10, height=5)
    assert calls == [(80, -1), (80, 40)]


#============================================
# document


def test_page_break_repeats_globals():
    builder = ZplBuilder()
    builder.add_pre_command('^A')
    builder.add_post_command('^B')
    builder.new_page()
    zpl = builder.to_zpl()
    assert zpl.count('^B\n^A') == 1
    assert zpl.index('^XZ') < zpl.index('^B\n^A') < zpl.rindex('^XA')


def test_new_page_resets_cursor():
    builder = ZplBuilder()
    builder.set_margin(3)
    builder.set_xy(40, 50)
    builder.new_page()
    assert (builder.get_x(), builder.get_y()) == (3, 0)
    assert builder.pages() == 2


def test_to_zpl_does_not_freeze_the_builder():
    builder = ZplBuilder()
    builder.draw_dot(0, 0)
    first = builder.to_zpl()
    assert str(builder) == first
    builder.draw_dot(1, 1)
    assert builder.to_zpl() != first


def test_set_pre_and_post_commands():
    builder = ZplBuilder()
    builder.set_pre_commands(['^A', '^B'])
    builder.set_post_commands(['^C'])
    assert builder.to_zpl() == '^A\n^B\n^XA\n^XZ\n^C\n'


def test_reset_matches_fresh_builder():
    builder = ZplBuilder('mm', 300)
    builder.add_pre_command('^PW800')
    builder.add_post_command('^XA^IDR:*.*^XZ')
    builder.set_margin(5)
    builder.set_page_size(50, 100)
    builder.draw_cell(20, 10, 'a', border=True, ln=True)
    builder.new_page()
    builder.draw_qr_code(0, 0, 'q')
    builder.reset()
    fresh = ZplBuilder('mm', 300)
    assert builder.to_zpl() == fresh.to_zpl()
    assert (builder.get_x(), builder.get_y(), builder.get_margin()) == (0, 0, 0)
    assert (builder.get_width(), builder.get_height()) == (0, 0)


def test_page_size():
    builder = ZplBuilder()
    builder.set_page_size(30, 60)
    assert (builder.get_height(), builder.get_width()) == (30, 60)


def test_text_rejects_negative_block_width():
    builder = ZplBuilder()
    with pytest.raises(BuilderError):
        builder.draw_text(0, 0, 'x', width=-10)
    assert body(builder) == []


def test_cell_with_unknown_alignment_writes_nothing():
    builder = ZplBuilder()
    before = builder.to_zpl()
    with pytest.raises(BuilderError):
        builder.draw_cell(100, 40, 'x', border=True, align='Q')
    assert builder.to_zpl() == before
    assert (builder.get_x(), builder.get_y()) == (0, 0)


def test_numeric_font_id_passes_through_mapper():
    builder = ZplBuilder(font_mapper=default_mapper())
    builder.set_font(0, 10)
    builder.set_font(7, 10)
    assert body(builder) == ['^CF0,28', '^CF7,28']
