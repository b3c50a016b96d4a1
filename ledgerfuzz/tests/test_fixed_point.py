"""Tests for ledgerfuzz.core.fixed_point: bit-pattern decoding."""

from __future__ import annotations

from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from ledgerfuzz.core.errors import DecodeError
from ledgerfuzz.core.fixed_point import (
    Q128,
    U64F64,
    FixedPointFormat,
    FixedPointValue,
    decode_approx,
    decode_exact,
    encode,
    parse_bits,
    to_value,
)

u128_bits = st.integers(min_value=0, max_value=(1 << 128) - 1)


class TestParseBits:
    def test_int(self):
        assert parse_bits(42) == 42

    def test_hex_text(self):
        assert parse_bits("0x10000000000000000") == 1 << 64

    def test_decimal_text(self):
        assert parse_bits(" 18446744073709551616 ") == 1 << 64

    def test_struct_form(self):
        assert parse_bits({"bits": "0x2"}) == 2

    def test_struct_without_bits(self):
        with pytest.raises(DecodeError):
            parse_bits({"value": 1})

    @pytest.mark.parametrize("raw", ["0xZZ", "one", "", "1.5"])
    def test_invalid_text(self, raw):
        with pytest.raises(DecodeError):
            parse_bits(raw)

    def test_negative_rejected(self):
        with pytest.raises(DecodeError):
            parse_bits(-1)

    def test_bool_rejected(self):
        with pytest.raises(DecodeError):
            parse_bits(True)


class TestDecode:
    def test_one_in_u64f64(self):
        assert decode_approx(1 << 64, 64, 64) == 1.0
        assert decode_exact(1 << 64, 64, 64) == Decimal(1)

    def test_half(self):
        assert decode_exact(1 << 63, 64, 64) == Decimal("0.5")

    def test_integer_and_fraction(self):
        raw = (5 << 64) | (1 << 62)
        assert decode_exact(raw, 64, 64) == Decimal("5.25")
        assert decode_approx(raw, 64, 64) == 5.25

    def test_zero_frac_bits_is_integer_decoding(self):
        assert decode_exact(123456789, 128, 0) == Decimal(123456789)
        assert decode_approx(7, 128, 0) == 7.0

    def test_too_wide_rejected(self):
        with pytest.raises(DecodeError):
            decode_exact(1 << 128, 64, 64)

    def test_exact_keeps_smallest_fraction(self):
        assert decode_exact(1, 64, 64) == Decimal("5.42101086242752217003726400434970855712890625E-20")

    @given(u128_bits)
    def test_approx_agrees_with_exact(self, bits):
        exact = decode_exact(bits, 64, 64)
        approx = decode_approx(bits, 64, 64)
        # float64 carries 53 significant bits
        assert abs(Decimal(approx) - exact) <= exact * Decimal(2) ** -50 + Decimal(2) ** -60

    @given(u128_bits)
    def test_exact_is_lossless(self, bits):
        value = to_value(bits, U64F64)
        assert encode(value.to_decimal(), U64F64) == bits


class TestFixedPointValue:
    def test_parts(self):
        value = FixedPointValue((3 << 64) | 7, U64F64)
        assert value.integer_part == 3
        assert value.fractional_part == 7

    def test_is_zero(self):
        assert FixedPointValue(0, U64F64).is_zero()
        assert not FixedPointValue(1, U64F64).is_zero()

    def test_q128_unit(self):
        assert Q128.unit == 1
        assert str(Q128) == "Q128.0"

    def test_negative_format_rejected(self):
        with pytest.raises(ValueError):
            FixedPointFormat(-1, 64)


class TestEncode:
    def test_floors(self):
        assert encode(Decimal("0.1"), FixedPointFormat(0, 4)) == 1

    def test_negative_rejected(self):
        with pytest.raises(DecodeError):
            encode(-1, U64F64)
