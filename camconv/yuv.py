"""YUV to RGB conversion using fixed-point lookup tables."""

from __future__ import annotations

from collections.abc import Iterator
from typing import NamedTuple


class _Row(NamedTuple):
    y: int
    vr: int
    vg: int
    ug: int
    ub: int


def _trunc_div(n: int, d: int) -> int:
    """Integer division rounding toward zero."""
    return n // d if n >= 0 else -((-n) // d)


def _build_table() -> tuple[_Row, ...]:
    rows = []
    for i in range(256):
        c = i - 128
        rows.append(
            _Row(
                y=_trunc_div(1164 * (i - 16), 1000),
                vr=_trunc_div(1596 * c, 1000),
                vg=_trunc_div(-391 * c, 1000),
                ug=_trunc_div(-813 * c, 1000),
                ub=_trunc_div(2018 * c, 1000),
            )
        )
    return tuple(rows)


_TABLE = _build_table()


def _clamp(value: int) -> int:
    return 0 if value < 0 else 255 if value > 255 else value


def _check_byte(name: str, value: int) -> None:
    if not 0 <= value <= 255:
        raise ValueError(f"{name} must be in 0..255, got {value}")


def yuv2rgb(y: int, u: int, v: int) -> tuple[int, int, int]:
    """Convert one YUV sample to an (r, g, b) tuple of bytes."""
    _check_byte("y", y)
    _check_byte("u", u)
    _check_byte("v", v)
    ty, tu, tv = _TABLE[y], _TABLE[u], _TABLE[v]
    r = ty.y + tv.vr
    g = ty.y + tu.ug + tv.vg
    b = ty.y + tu.ub
    return _clamp(r), _clamp(g), _clamp(b)


def iter_yuyv_rgb(data: bytes) -> Iterator[tuple[int, int, int]]:
    """Yield (r, g, b) per pixel from packed Y0 U Y1 V data.

    Each four-byte group gives two pixels; a trailing partial group is ignored.
    """
    view = memoryview(bytes(data))
    for offset in range(0, len(view) - len(view) % 4, 4):
        y0, u, y1, v = view[offset : offset + 4]
        yield yuv2rgb(y0, u, v)
        yield yuv2rgb(y1, u, v)