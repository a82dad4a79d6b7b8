"""Pixel formats, camera frames and the conversion error type."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ConversionError(Exception):
    """Raised when an image cannot be converted."""


class PixelFormat(enum.Enum):
    """Layouts of the pixel data a camera frame can carry."""

    RGB565 = "rgb565"
    YUV422 = "yuv422"
    GRAYSCALE = "grayscale"
    JPEG = "jpeg"
    RGB888 = "rgb888"

    @property
    def bytes_per_pixel(self) -> int | None:
        """Bytes per pixel for raw formats, None for compressed ones."""
        return _BYTES_PER_PIXEL.get(self)

    @property
    def is_compressed(self) -> bool:
        """True when the data is not a plain pixel array."""
        return self.bytes_per_pixel is None


_BYTES_PER_PIXEL = {
    PixelFormat.RGB565: 2,
    PixelFormat.YUV422: 2,
    PixelFormat.GRAYSCALE: 1,
    PixelFormat.RGB888: 3,
}


@dataclass(frozen=True)
class Frame:
    """One captured image: its bytes, size and pixel format."""

    data: bytes
    width: int
    height: int
    pixformat: PixelFormat

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError("frame dimensions must not be negative")
        if not isinstance(self.pixformat, PixelFormat):
            raise TypeError("pixformat must be a PixelFormat")
        object.__setattr__(self, "data", bytes(self.data))

    def __len__(self) -> int:
        return len(self.data)

    @property
    def expected_length(self) -> int | None:
        """Size in bytes a raw frame of this geometry should have."""
        bpp = self.pixformat.bytes_per_pixel
        if bpp is None:
            return None
        return self.width * self.height * bpp