import struct

import pytest
from hypothesis import given
from hypothesis import strategies as st

from camconv.formats import ConversionError, Frame, PixelFormat
from camconv.to_bmp import (
    BMP_HEADER_LEN,
    bmp_header,
    frame_to_bmp,
    image_to_bmp,
    image_to_rgb888,
)
from camconv.yuv import yuv2rgb

FIELDS = struct.Struct("<2sIIIIiiHHIIIIII")


def test_header_fields():
    header = bmp_header(4, 3, 24, 0, 36)
    assert len(header) == BMP_HEADER_LEN
    fields = FIELDS.unpack(header)
    assert fields[0] == b"BM"
    assert fields[1] == BMP_HEADER_LEN + 36
    assert fields[3] == BMP_HEADER_LEN
    assert fields[4] == 40
    assert fields[5:9] == (4, -3, 1, 24)
    assert fields[10] == 36
    assert fields[11] == fields[12] == 0x0B13


def test_rgb888_bmp_copies_pixels():
    src = bytes(range(2 * 2 * 3))
    bmp = image_to_bmp(src, 2, 2, PixelFormat.RGB888)
    assert bmp[BMP_HEADER_LEN:] == src
    assert FIELDS.unpack(bmp[:BMP_HEADER_LEN])[1] == len(bmp)


def test_grayscale_bmp_has_palette():
    src = bytes(range(6))
    bmp = image_to_bmp(src, 3, 2, PixelFormat.GRAYSCALE)
    palette_size = 4 * 256
    fields = FIELDS.unpack(bmp[:BMP_HEADER_LEN])
    assert fields[3] == BMP_HEADER_LEN + palette_size
    assert fields[8] == 8
    assert len(bmp) == BMP_HEADER_LEN + palette_size + 6
    palette = bmp[BMP_HEADER_LEN : BMP_HEADER_LEN + palette_size]
    assert palette[4 * 200 : 4 * 200 + 4] == bytes([200, 200, 200, 0])
    assert bmp[-6:] == src


def test_rgb565_bmp_is_bgr():
    bmp = image_to_bmp(bytes([0xF8, 0x00, 0x00, 0x1F]), 2, 1, PixelFormat.RGB565)
    assert bmp[BMP_HEADER_LEN:] == bytes([0, 0, 0xF8, 0xF8, 0, 0])


def test_yuv_bmp_matches_yuv2rgb():
    bmp = image_to_bmp(bytes([90, 100, 200, 150]), 2, 1, PixelFormat.YUV422)
    r0, g0, b0 = yuv2rgb(90, 100, 150)
    r1, g1, b1 = yuv2rgb(200, 100, 150)
    assert bmp[BMP_HEADER_LEN:] == bytes([b0, g0, r0, b1, g1, r1])


def test_jpeg_bmp_rejected():
    with pytest.raises(ConversionError):
        image_to_bmp(b"\xff\xd8", 1, 1, PixelFormat.JPEG)


def test_short_source_rejected():
    with pytest.raises(ConversionError):
        image_to_bmp(bytes(5), 2, 2, PixelFormat.RGB565)


def test_rgb888_conversion_is_copy():
    src = bytes(range(9))
    assert image_to_rgb888(src, PixelFormat.RGB888) == src


def test_rgb565_conversion_ignores_odd_byte():
    assert image_to_rgb888(bytes([0xF8, 0x00, 0x07]), PixelFormat.RGB565) == bytes([0, 0, 0xF8])


def test_yuv_conversion_order():
    r, g, b = yuv2rgb(128, 128, 128)
    assert image_to_rgb888(bytes([128] * 4), PixelFormat.YUV422) == bytes([b, g, r] * 2)


def test_jpeg_conversion_rejected():
    with pytest.raises(ConversionError):
        image_to_rgb888(b"\xff\xd8", PixelFormat.JPEG)


@given(st.binary(max_size=64))
def test_grayscale_conversion_triples(data):
    out = image_to_rgb888(data, PixelFormat.GRAYSCALE)
    assert len(out) == 3 * len(data)
    assert out[0::3] == out[1::3] == out[2::3] == data


@given(st.integers(0, 6), st.integers(0, 6))
def test_rgb888_bmp_size_invariant(width, height):
    bmp = image_to_bmp(bytes(width * height * 3), width, height, PixelFormat.RGB888)
    assert len(bmp) == BMP_HEADER_LEN + width * height * 3
    assert FIELDS.unpack(bmp[:BMP_HEADER_LEN])[5:7] == (width, -height)


def test_frame_to_bmp_matches_image():
    src = bytes(range(8))
    frame = Frame(src, 2, 2, PixelFormat.RGB565)
    assert frame_to_bmp(frame) == image_to_bmp(src, 2, 2, PixelFormat.RGB565)