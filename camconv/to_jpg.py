"""Encode raw camera images as JPEG, into memory or through a callback."""

from __future__ import annotations

from collections.abc import Callable

from camconv.encoder import JpegEncoder
from camconv.formats import ConversionError, Frame, PixelFormat
from camconv.jpeg_core import EncoderParams, Subsampling
from camconv.yuv import iter_yuyv_rgb

JPEG_BUFFER_SIZE = 128 * 1024
"""Largest JPEG kept by :func:`image_to_jpeg`; longer output is cut off."""

JpegCallback = Callable[[int, bytes], int]
"""Receives (offset, chunk) and returns how many bytes it accepted.

An empty chunk marks the end of the image.
"""


def _row(data: bytes, start: int, length: int) -> bytes:
    row = data[start : start + length]
    if len(row) < length:
        raise ConversionError("source buffer is too short for the image size")
    return row


def convert_line(src: bytes, pixformat: PixelFormat, width: int, line: int) -> bytes:
    """Return scanline ``line`` of ``src`` as encoder input.

    Greyscale rows are returned as they are; every other format becomes
    packed R, G, B bytes.
    """
    data = bytes(src)
    if pixformat is PixelFormat.GRAYSCALE:
        return _row(data, line * width, width)

    if pixformat is PixelFormat.RGB888:
        length = width * 3
        row = _row(data, line * length, length)
        out = bytearray(length)
        out[0::3] = row[2::3]
        out[1::3] = row[1::3]
        out[2::3] = row[0::3]
        return bytes(out)

    if pixformat is PixelFormat.RGB565:
        length = width * 2
        row = _row(data, line * length, length)
        out = bytearray()
        for hb, lb in zip(row[0::2], row[1::2]):
            out += bytes((hb & 0xF8, ((hb & 0x07) << 5) | ((lb & 0xE0) >> 3), (lb & 0x1F) << 3))
        return bytes(out)

    if pixformat is PixelFormat.YUV422:
        if width % 2:
            raise ConversionError("YUV422 rows must hold an even number of pixels")
        length = width * 2
        row = _row(data, line * length, length)
        out = bytearray()
        for rgb in iter_yuyv_rgb(row):
            out += bytes(rgb)
        return bytes(out)

    raise ConversionError(f"cannot encode {pixformat.value} data as JPEG")


def _encode(
    src: bytes,
    width: int,
    height: int,
    pixformat: PixelFormat,
    quality: int,
    stream: object,
) -> None:
    if pixformat.is_compressed:
        raise ConversionError(f"cannot encode {pixformat.value} data as JPEG")
    data = bytes(src)
    bpp = pixformat.bytes_per_pixel or 0
    if width > 0 and height > 0 and len(data) < width * height * bpp:
        raise ConversionError("source buffer is too short for the image size")

    if pixformat is PixelFormat.GRAYSCALE:
        channels, subsampling = 1, Subsampling.Y_ONLY
    else:
        channels, subsampling = 3, Subsampling.H2V2
    quality = min(max(int(quality), 1), 100)

    encoder = JpegEncoder(
        stream, width, height, channels, EncoderParams(quality=quality, subsampling=subsampling)
    )
    for line in range(height):
        encoder.process_scanline(convert_line(data, pixformat, width, line))
    encoder.finish()


class _CallbackStream:
    def __init__(self, callback: JpegCallback) -> None:
        self._callback = callback
        self.index = 0

    def write(self, data: bytes) -> bool:
        self.index += int(self._callback(self.index, data))
        return True


class _MemoryStream:
    def __init__(self, capacity: int) -> None:
        self._capacity = capacity
        self.buffer = bytearray()

    def write(self, data: bytes) -> bool:
        if data:
            room = self._capacity - len(self.buffer)
            self.buffer += data[:room]
        return True


def image_to_jpeg_cb(
    src: bytes,
    width: int,
    height: int,
    pixformat: PixelFormat,
    quality: int,
    callback: JpegCallback,
) -> int:
    """Encode an image, handing the JPEG bytes to ``callback`` in chunks.

    Returns the total of the byte counts the callback reported.
    """
    stream = _CallbackStream(callback)
    _encode(src, width, height, pixformat, quality, stream)
    return stream.index


def image_to_jpeg(
    src: bytes, width: int, height: int, pixformat: PixelFormat, quality: int
) -> bytes:
    """Encode an image and return the JPEG bytes (at most JPEG_BUFFER_SIZE)."""
    stream = _MemoryStream(JPEG_BUFFER_SIZE)
    _encode(src, width, height, pixformat, quality, stream)
    return bytes(stream.buffer)


def frame_to_jpeg(frame: Frame, quality: int) -> bytes:
    """Encode a camera frame as JPEG bytes."""
    return image_to_jpeg(frame.data, frame.width, frame.height, frame.pixformat, quality)


def frame_to_jpeg_cb(frame: Frame, quality: int, callback: JpegCallback) -> int:
    """Encode a camera frame, handing the bytes to ``callback``."""
    return image_to_jpeg_cb(
        frame.data, frame.width, frame.height, frame.pixformat, quality, callback
    )