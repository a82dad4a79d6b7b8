"""Convert raw camera images to RGB888 buffers and BMP files."""

from __future__ import annotations

import struct

from camconv.formats import ConversionError, Frame, PixelFormat
from camconv.yuv import iter_yuyv_rgb

BMP_HEADER_LEN = 54
_DIB_HEADER_SIZE = 40
_PIXELS_PER_METER = 0x0B13  # 72 DPI
_HEADER = struct.Struct("<2sIIIIiiHHIIIIII")
_GREY_PALETTE = bytes(v for i in range(256) for v in (i, i, i, 0))


def bmp_header(
    width: int, height: int, bits_per_pixel: int, palette_size: int, pixel_bytes: int
) -> bytes:
    """Build the 54-byte BMP file and info header for a top-down image."""
    return _HEADER.pack(
        b"BM",
        BMP_HEADER_LEN + palette_size + pixel_bytes,
        0,
        BMP_HEADER_LEN + palette_size,
        _DIB_HEADER_SIZE,
        width,
        -height,
        1,
        bits_per_pixel,
        0,
        pixel_bytes,
        _PIXELS_PER_METER,
        _PIXELS_PER_METER,
        0,
        0,
    )


def _rgb565_to_bgr(data: bytes, count: int) -> bytes:
    out = bytearray()
    end = count * 2
    for hb, lb in zip(data[0:end:2], data[1:end:2]):
        out += bytes(((lb & 0x1F) << 3, ((hb & 0x07) << 5) | ((lb & 0xE0) >> 3), hb & 0xF8))
    return bytes(out)


def _yuv_to_bgr(data: bytes) -> bytes:
    out = bytearray()
    for r, g, b in iter_yuyv_rgb(data):
        out += bytes((b, g, r))
    return bytes(out)


def image_to_rgb888(src: bytes, pixformat: PixelFormat) -> bytes:
    """Convert raw pixel data to three bytes per pixel.

    RGB888 data is copied unchanged; other formats come out in B, G, R order.
    """
    data = bytes(src)
    if pixformat is PixelFormat.RGB888:
        return data
    if pixformat is PixelFormat.RGB565:
        return _rgb565_to_bgr(data, len(data) // 2)
    if pixformat is PixelFormat.GRAYSCALE:
        return bytes(b for b in data for _ in range(3))
    if pixformat is PixelFormat.YUV422:
        return _yuv_to_bgr(data)
    raise ConversionError(f"cannot convert {pixformat.value} data to RGB888")


def image_to_bmp(src: bytes, width: int, height: int, pixformat: PixelFormat) -> bytes:
    """Wrap raw pixel data in a BMP file.

    Greyscale images become 8-bit paletted bitmaps, all others 24-bit.
    """
    if pixformat.is_compressed:
        raise ConversionError(f"cannot convert {pixformat.value} data to BMP")
    if width < 0 or height < 0:
        raise ValueError("image dimensions must not be negative")
    data = bytes(src)
    pix_count = width * height
    if len(data) < pix_count * (pixformat.bytes_per_pixel or 0):
        raise ConversionError("source buffer is too short for the image size")

    grey = pixformat is PixelFormat.GRAYSCALE
    bpp = 1 if grey else 3
    palette = _GREY_PALETTE if grey else b""
    pixel_bytes = pix_count * bpp

    if pixformat is PixelFormat.RGB888:
        pixels = data[: pix_count * 3]
    elif pixformat is PixelFormat.RGB565:
        pixels = _rgb565_to_bgr(data, pix_count)
    elif grey:
        pixels = data[:pix_count]
    else:
        pixels = _yuv_to_bgr(data[: (pix_count // 2) * 4])
    pixels = pixels.ljust(pixel_bytes, b"\x00")

    return bmp_header(width, height, bpp * 8, len(palette), pixel_bytes) + palette + pixels


def frame_to_bmp(frame: Frame) -> bytes:
    """Wrap a camera frame in a BMP file."""
    return image_to_bmp(frame.data, frame.width, frame.height, frame.pixformat)