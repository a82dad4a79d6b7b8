"""Streaming baseline JPEG encoder that takes the image one scanline at a time."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from camconv.formats import ConversionError
from camconv.jpeg_core import (
    AC_CHROMA_BITS,
    AC_CHROMA_VALUES,
    AC_LUM_BITS,
    AC_LUM_VALUES,
    DC_CHROMA_BITS,
    DC_CHROMA_VALUES,
    DC_LUM_BITS,
    DC_LUM_VALUES,
    M_APP0,
    M_DHT,
    M_DQT,
    M_EOI,
    M_SOF0,
    M_SOI,
    M_SOS,
    STD_CHROMA_QUANT,
    STD_LUM_QUANT,
    EncoderParams,
    Subsampling,
    fdct_8x8,
    huffman_table,
    quant_table,
    quantize,
)

_OUT_BUF_SIZE = 512


class EncoderError(ConversionError):
    """Raised when the encoder cannot be set up or a stream write fails."""


class OutputStream(Protocol):
    """Where the encoder sends its bytes.

    ``write`` returning ``False`` marks the write as failed; any other
    return value counts as success. An empty write signals the end of
    the image.
    """

    def write(self, data: bytes) -> object: ...


# (bits, values) per table, indexed by component class: 0 luma, 1 chroma.
_DC_SPECS = ((DC_LUM_BITS, DC_LUM_VALUES), (DC_CHROMA_BITS, DC_CHROMA_VALUES))
_AC_SPECS = ((AC_LUM_BITS, AC_LUM_VALUES), (AC_CHROMA_BITS, AC_CHROMA_VALUES))
_DC_TABLES = tuple(huffman_table(bits, values) for bits, values in _DC_SPECS)
_AC_TABLES = tuple(huffman_table(bits, values) for bits, values in _AC_SPECS)

# Sampling factors per component and MCU size for each subsampling mode.
_LAYOUTS: dict[Subsampling, tuple[tuple[tuple[int, int], ...], int, int]] = {
    Subsampling.Y_ONLY: (((1, 1),), 8, 8),
    Subsampling.H1V1: (((1, 1), (1, 1), (1, 1)), 8, 8),
    Subsampling.H2V1: (((2, 1), (1, 1), (1, 1)), 16, 8),
    Subsampling.H2V2: (((2, 2), (1, 1), (1, 1)), 16, 16),
}


def _word(value: int) -> bytes:
    return bytes(((value >> 8) & 0xFF, value & 0xFF))


def _marker(marker: int) -> bytes:
    return bytes((0xFF, marker))


class JpegEncoder:
    """Encode an image row by row into a baseline JFIF stream.

    Headers are written when the encoder is created. Feed every scanline
    with :meth:`process_scanline`, then call :meth:`finish`. Each scanline
    holds ``width * channels`` bytes: grey (1), RGB (3) or four-byte pixels.
    """

    def __init__(
        self,
        stream: OutputStream,
        width: int,
        height: int,
        channels: int,
        params: EncoderParams | None = None,
    ) -> None:
        if params is None:
            params = EncoderParams()
        if stream is None:
            raise EncoderError("no output stream")
        if width < 1 or height < 1:
            raise EncoderError(f"invalid image size {width}x{height}")
        if channels not in (1, 3, 4):
            raise EncoderError(f"unsupported channel count {channels}")
        try:
            params.validate()
        except ValueError as exc:
            raise EncoderError(str(exc)) from exc

        self._stream = stream
        self._params = params
        self._width = width
        self._height = height
        self._channels = channels

        samples, mcu_x, mcu_y = _LAYOUTS[Subsampling(params.subsampling)]
        self._samples = samples
        self._components = len(samples)
        self._mcu_x = mcu_x
        self._mcu_y = mcu_y
        self._x_mcu = (width + mcu_x - 1) & ~(mcu_x - 1)
        self._bpl_mcu = self._x_mcu * self._components
        self._mcus_per_row = self._x_mcu // mcu_x
        self._lines: list[bytes] = [bytes(self._bpl_mcu)] * mcu_y
        self._y_ofs = 0
        self._last_dc = [0, 0, 0]
        self._quant = (
            quant_table(params.quality, STD_LUM_QUANT),
            quant_table(params.quality, STD_CHROMA_QUANT),
        )

        self._out = bytearray()
        self._bit_buffer = 0
        self._bits_in = 0
        self._ok = True
        self._active = True

        self._emit(_marker(M_SOI))
        self._emit_jfif_app0()
        self._emit_dqt()
        self._emit_sof()
        self._emit_dhts()
        self._emit_sos()
        if not self._ok:
            raise EncoderError("stream write failed while writing headers")

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def process_scanline(self, scanline: bytes) -> None:
        """Add one row of source pixels."""
        if not self._active:
            raise EncoderError("encoder has already finished")
        data = bytes(scanline)
        needed = self._width * self._channels
        if len(data) < needed:
            raise ValueError(f"scanline needs {needed} bytes, got {len(data)}")
        if self._ok:
            self._load_mcu(data)
        if not self._ok:
            raise EncoderError("stream write failed")

    def finish(self) -> None:
        """Flush the last rows, write the end-of-image marker and close the stream."""
        if not self._active:
            raise EncoderError("encoder has already finished")
        if self._ok:
            if self._y_ofs:
                last = self._lines[self._y_ofs - 1]
                for i in range(self._y_ofs, self._mcu_y):
                    self._lines[i] = last
                self._process_mcu_row()
            self._put_bits(0x7F, 7)
            self._emit(_marker(M_EOI))
            self._flush()
            self._write(b"")
        self._active = False
        if not self._ok:
            raise EncoderError("stream write failed")

    # Output plumbing.

    def _write(self, chunk: bytes) -> None:
        if self._ok:
            self._ok = self._stream.write(chunk) is not False

    def _emit(self, data: bytes | bytearray) -> None:
        self._out += data
        while len(self._out) >= _OUT_BUF_SIZE:
            chunk = bytes(self._out[:_OUT_BUF_SIZE])
            del self._out[:_OUT_BUF_SIZE]
            self._write(chunk)

    def _flush(self) -> None:
        if self._out:
            chunk = bytes(self._out)
            self._out.clear()
            self._write(chunk)

    def _put_bits(self, bits: int, length: int) -> None:
        self._bits_in += length
        self._bit_buffer |= (bits << (24 - self._bits_in)) & 0xFFFFFFFF
        out = bytearray()
        while self._bits_in >= 8:
            c = (self._bit_buffer >> 16) & 0xFF
            out.append(c)
            if c == 0xFF:
                out.append(0)
            self._bit_buffer = (self._bit_buffer << 8) & 0xFFFFFFFF
            self._bits_in -= 8
        if out:
            self._emit(out)

    # Headers.

    def _emit_jfif_app0(self) -> None:
        self._emit(
            _marker(M_APP0)
            + _word(16)
            + b"JFIF\x00"
            + bytes((1, 1, 0))
            + _word(1)
            + _word(1)
            + bytes((0, 0))
        )

    def _emit_dqt(self) -> None:
        for index in range(2 if self._components == 3 else 1):
            self._emit(
                _marker(M_DQT) + _word(64 + 1 + 2) + bytes((index,)) + bytes(self._quant[index])
            )

    def _emit_sof(self) -> None:
        out = bytearray(_marker(M_SOF0))
        out += _word(3 * self._components + 8)
        out.append(8)
        out += _word(self._height)
        out += _word(self._width)
        out.append(self._components)
        for i, (h, v) in enumerate(self._samples):
            out += bytes((i + 1, (h << 4) + v, 1 if i > 0 else 0))
        self._emit(out)

    def _emit_dht(self, bits: Sequence[int], values: Sequence[int], index: int, ac: bool) -> None:
        length = sum(bits[1:17])
        out = bytearray(_marker(M_DHT))
        out += _word(length + 2 + 1 + 16)
        out.append(index + (0x10 if ac else 0))
        out += bytes(bits[1:17])
        out += bytes(values[:length])
        self._emit(out)

    def _emit_dhts(self) -> None:
        self._emit_dht(*_DC_SPECS[0], 0, False)
        self._emit_dht(*_AC_SPECS[0], 0, True)
        if self._components == 3:
            self._emit_dht(*_DC_SPECS[1], 1, False)
            self._emit_dht(*_AC_SPECS[1], 1, True)

    def _emit_sos(self) -> None:
        out = bytearray(_marker(M_SOS))
        out += _word(2 * self._components + 6)
        out.append(self._components)
        for i in range(self._components):
            out += bytes((i + 1, 0x00 if i == 0 else 0x11))
        out += bytes((0, 63, 0))
        self._emit(out)

    # Pixel intake.

    def _load_mcu(self, data: bytes) -> None:
        from camconv.jpeg_core import rgb_to_y, rgb_to_ycc, y_to_ycc

        x = self._width
        if self._components == 1:
            line = rgb_to_y(data[: x * 3]) if self._channels == 3 else data[:x]
        else:
            line = rgb_to_ycc(data[: x * 3]) if self._channels == 3 else y_to_ycc(data[:x])
        line = line + line[-self._components :] * (self._x_mcu - x)
        self._lines[self._y_ofs] = line
        self._y_ofs += 1
        if self._y_ofs == self._mcu_y:
            self._process_mcu_row()
            self._y_ofs = 0

    # Block extraction.

    def _block_8x8(self, x: int, y: int, c: int) -> list[int]:
        stride = self._components
        start = x * 8 * stride + c
        stop = start + 8 * stride
        block: list[int] = []
        for row in self._lines[y * 8 : y * 8 + 8]:
            block.extend(p - 128 for p in row[start:stop:stride])
        return block

    def _block_16x16(self, x: int, c: int) -> list[int]:
        start = x * 48 + c
        a, b = 0, 2
        block: list[int] = []
        for i in range(0, 16, 2):
            r1, r2 = self._lines[i], self._lines[i + 1]
            for k in range(8):
                p = start + k * 6
                bias = a if k % 2 == 0 else b
                block.append(((r1[p] + r1[p + 3] + r2[p] + r2[p + 3] + bias) >> 2) - 128)
            a, b = b, a
        return block

    def _block_16x8(self, x: int, c: int) -> list[int]:
        start = x * 48 + c
        block: list[int] = []
        for row in self._lines[:8]:
            for k in range(8):
                p = start + k * 6
                block.append(((row[p] + row[p + 3]) >> 1) - 128)
        return block

    # Entropy coding.

    def _code_block(self, samples: list[int], component: int) -> None:
        kind = 1 if component > 0 else 0
        coefficients = quantize(fdct_8x8(samples), self._quant[kind])
        dc_codes, dc_sizes = _DC_TABLES[kind]
        ac_codes, ac_sizes = _AC_TABLES[kind]

        diff = coefficients[0] - self._last_dc[component]
        self._last_dc[component] = coefficients[0]
        value = diff - 1 if diff < 0 else diff
        nbits = abs(diff).bit_length()
        self._put_bits(dc_codes[nbits], dc_sizes[nbits])
        if nbits:
            self._put_bits(value & ((1 << nbits) - 1), nbits)

        run = 0
        for coefficient in coefficients[1:]:
            if coefficient == 0:
                run += 1
                continue
            while run >= 16:
                self._put_bits(ac_codes[0xF0], ac_sizes[0xF0])
                run -= 16
            value = coefficient - 1 if coefficient < 0 else coefficient
            nbits = max(abs(coefficient).bit_length(), 1)
            symbol = (run << 4) + nbits
            self._put_bits(ac_codes[symbol], ac_sizes[symbol])
            self._put_bits(value & ((1 << nbits) - 1), nbits)
            run = 0
        if run:
            self._put_bits(ac_codes[0], ac_sizes[0])

    def _process_mcu_row(self) -> None:
        h, v = self._samples[0]
        for i in range(self._mcus_per_row):
            if self._components == 1:
                self._code_block(self._block_8x8(i, 0, 0), 0)
            elif (h, v) == (1, 1):
                for c in range(3):
                    self._code_block(self._block_8x8(i, 0, c), c)
            elif (h, v) == (2, 1):
                self._code_block(self._block_8x8(i * 2, 0, 0), 0)
                self._code_block(self._block_8x8(i * 2 + 1, 0, 0), 0)
                self._code_block(self._block_16x8(i, 1), 1)
                self._code_block(self._block_16x8(i, 2), 2)
            else:
                self._code_block(self._block_8x8(i * 2, 0, 0), 0)
                self._code_block(self._block_8x8(i * 2 + 1, 0, 0), 0)
                self._code_block(self._block_8x8(i * 2, 1, 0), 0)
                self._code_block(self._block_8x8(i * 2 + 1, 1, 0), 0)
                self._code_block(self._block_16x16(i, 1), 1)
                self._code_block(self._block_16x16(i, 2), 2)