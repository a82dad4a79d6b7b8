import pytest
from hypothesis import given
from hypothesis import strategies as st

from camconv.jpeg_core import (
    AC_CHROMA_BITS,
    AC_CHROMA_VALUES,
    AC_LUM_BITS,
    AC_LUM_VALUES,
    DC_CHROMA_BITS,
    DC_CHROMA_VALUES,
    DC_LUM_BITS,
    DC_LUM_VALUES,
    STD_CHROMA_QUANT,
    STD_LUM_QUANT,
    ZIGZAG,
    EncoderParams,
    Subsampling,
    fdct_8x8,
    huffman_table,
    quant_table,
    quantize,
    rgb_to_y,
    rgb_to_ycc,
    y_to_ycc,
)

STANDARD_TABLES = [
    (DC_LUM_BITS, DC_LUM_VALUES),
    (AC_LUM_BITS, AC_LUM_VALUES),
    (DC_CHROMA_BITS, DC_CHROMA_VALUES),
    (AC_CHROMA_BITS, AC_CHROMA_VALUES),
]


def test_params_defaults():
    params = EncoderParams()
    assert params.quality == 85
    assert params.subsampling is Subsampling.H2V2
    params.validate()


@pytest.mark.parametrize("quality", [0, 101, -5])
def test_params_reject_bad_quality(quality):
    with pytest.raises(ValueError):
        EncoderParams(quality=quality).validate()


def test_params_reject_bad_subsampling():
    with pytest.raises(ValueError):
        EncoderParams(subsampling=7).validate()


@pytest.mark.parametrize(
    "value, mode",
    [
        (0, Subsampling.Y_ONLY),
        (1, Subsampling.H1V1),
        (2, Subsampling.H2V1),
        (3, Subsampling.H2V2),
    ],
)
def test_subsampling_values(value, mode):
    params = EncoderParams(subsampling=Subsampling(value))
    params.validate()
    assert params.subsampling is mode
    assert int(params.subsampling) == value


def test_black_and_white_ycc():
    assert rgb_to_ycc(bytes([0, 0, 0])) == bytes([0, 128, 128])
    assert rgb_to_ycc(bytes([255, 255, 255])) == bytes([255, 128, 128])


@given(st.integers(0, 255))
def test_grey_is_neutral(level):
    assert rgb_to_ycc(bytes([level] * 3)) == bytes([level, 128, 128])
    assert rgb_to_y(bytes([level] * 3)) == bytes([level])


@given(st.binary(max_size=60).map(lambda b: b[: len(b) - len(b) % 3]))
def test_y_matches_ycc_luma(pixels):
    assert rgb_to_y(pixels) == rgb_to_ycc(pixels)[0::3]


def test_rgb_rejects_partial_pixel():
    with pytest.raises(ValueError):
        rgb_to_ycc(b"\x01\x02")
    with pytest.raises(ValueError):
        rgb_to_y(b"\x01")


@given(st.binary(max_size=40))
def test_y_to_ycc(data):
    out = y_to_ycc(data)
    assert out[0::3] == data
    assert set(out[1::3]) <= {128}
    assert set(out[2::3]) <= {128}


def test_fdct_zero_block():
    assert fdct_8x8([0] * 64) == [0] * 64


@given(st.integers(-64, 63))
def test_fdct_constant_block_is_dc_only(level):
    out = fdct_8x8([level] * 64)
    assert out[1:] == [0] * 63
    assert out[0] == 2 * fdct_8x8([0] * 64)[0] + fdct_8x8([level] * 64)[0]
    assert fdct_8x8([2 * level] * 64)[0] == 2 * out[0]


def test_fdct_rejects_wrong_size():
    with pytest.raises(ValueError):
        fdct_8x8([0] * 63)


def test_quant_table_quality_50_is_base():
    assert quant_table(50, STD_LUM_QUANT) == list(STD_LUM_QUANT)
    assert quant_table(50, STD_CHROMA_QUANT) == list(STD_CHROMA_QUANT)


def test_quant_table_extremes():
    assert quant_table(100, STD_LUM_QUANT) == [1] * 64
    assert quant_table(1, STD_LUM_QUANT) == [255] * 64


@given(st.integers(1, 100))
def test_quant_table_in_range(quality):
    table = quant_table(quality, STD_LUM_QUANT)
    assert len(table) == 64
    assert all(1 <= q <= 255 for q in table)


@pytest.mark.parametrize("quality", [0, 101])
def test_quant_table_rejects_quality(quality):
    with pytest.raises(ValueError):
        quant_table(quality, STD_LUM_QUANT)


@given(st.lists(st.integers(-2000, 2000), min_size=64, max_size=64))
def test_quantize_unit_table_reorders(block):
    assert quantize(block, [1] * 64) == [block[pos] for pos in ZIGZAG]


@given(
    st.lists(st.integers(-2000, 2000), min_size=64, max_size=64),
    st.integers(1, 100),
)
def test_quantize_sign_symmetry(block, quality):
    table = quant_table(quality, STD_LUM_QUANT)
    assert quantize([-v for v in block], table) == [-v for v in quantize(block, table)]


def test_quantize_small_values_vanish():
    table = [16] * 64
    assert quantize([7] * 64, table) == [0] * 64
    assert quantize([-7] * 64, table) == [0] * 64


def test_quantize_rejects_wrong_size():
    with pytest.raises(ValueError):
        quantize([0] * 10, [1] * 64)


@pytest.mark.parametrize("bits,values", STANDARD_TABLES)
def test_huffman_sizes_match_bits(bits, values):
    codes, sizes = huffman_table(bits, values)
    for length in range(1, 17):
        assert sum(1 for s in sizes if s == length) == bits[length]


@pytest.mark.parametrize("bits,values", STANDARD_TABLES)
def test_huffman_prefix_free(bits, values):
    codes, sizes = huffman_table(bits, values)
    used = [
        format(codes[sym], f"0{sizes[sym]}b") for sym in values[: sum(bits[1:])]
    ]
    assert len(set(used)) == len(used)
    for a in used:
        for b in used:
            if a != b:
                assert not b.startswith(a)


@pytest.mark.parametrize("bits,values", STANDARD_TABLES)
def test_huffman_canonical_order(bits, values):
    codes, sizes = huffman_table(bits, values)
    n = sum(bits[1:])
    keyed = [(sizes[s], codes[s] << (16 - sizes[s])) for s in values[:n]]
    assert keyed == sorted(keyed)
    left_aligned = [k[1] for k in keyed]
    assert left_aligned == sorted(set(left_aligned))


def test_huffman_dc_luminance_first_code():
    codes, sizes = huffman_table(DC_LUM_BITS, DC_LUM_VALUES)
    assert (codes[0], sizes[0]) == (0, 2)


def test_huffman_rejects_bad_input():
    with pytest.raises(ValueError):
        huffman_table(DC_LUM_BITS[:16], DC_LUM_VALUES)
    with pytest.raises(ValueError):
        huffman_table(DC_LUM_BITS, DC_LUM_VALUES[:5])


def test_huffman_empty_table():
    codes, sizes = huffman_table([0] * 17, [])
    assert codes == [0] * 256
    assert sizes == [0] * 256