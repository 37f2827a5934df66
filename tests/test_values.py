"""
Tests for the scalar and operator codecs

Every value crosses the query string as text. Inference on the way back
must be total: no input may raise.
"""

import pytest

from brunoquery.ir.model import QueryOperator
from brunoquery.ir.operators import decode_operator, encode_operator
from brunoquery.ir.values import decode_scalar, encode_scalar, escape, unescape


class TestEncodeScalar:
    """Test scalar → text."""

    def test_null(self):
        assert encode_scalar(None) == "null"

    def test_booleans(self):
        assert encode_scalar(True) == "true"
        assert encode_scalar(False) == "false"

    def test_numbers(self):
        assert encode_scalar(123) == "123"
        assert encode_scalar(1.5) == "1.5"

    def test_strings_are_percent_encoded(self):
        """Reserved characters are escaped like encodeURIComponent."""
        assert encode_scalar("John Doe") == "John%20Doe"
        assert encode_scalar("a&b=c") == "a%26b%3Dc"
        assert encode_scalar("[x]") == "%5Bx%5D"

    def test_unreserved_characters_kept(self):
        assert encode_scalar("publisher.books") == "publisher.books"
        assert escape("a-b_c~d*e'f(g)!") == "a-b_c~d*e'f(g)!"


class TestDecodeScalar:
    """Test text → scalar inference."""

    def test_null(self):
        assert decode_scalar("null") is None

    def test_booleans(self):
        assert decode_scalar("true") is True
        assert decode_scalar("false") is False

    def test_integer(self):
        value = decode_scalar("123")
        assert value == 123
        assert isinstance(value, int)

    def test_float(self):
        assert decode_scalar("1.5") == 1.5
        assert decode_scalar("-0.25") == -0.25
        assert decode_scalar("1e3") == 1000.0

    def test_surrounding_whitespace(self):
        """Numbers are recognized after trimming."""
        assert decode_scalar(" 42 ") == 42

    def test_plain_string(self):
        assert decode_scalar("abc") == "abc"

    def test_partial_number_stays_string(self):
        """Only a complete number is a number."""
        assert decode_scalar("12abc") == "12abc"
        assert decode_scalar("1_000") == "1_000"

    def test_non_finite_stays_string(self):
        assert decode_scalar("nan") == "nan"
        assert decode_scalar("Infinity") == "Infinity"

    def test_empty_string(self):
        assert decode_scalar("") == ""

    @pytest.mark.parametrize("value", [None, True, False, 0, 7, 2.5, "books"])
    def test_encode_path_matches_decode_path(self, value):
        """Encoded scalars are inferred back to the same value."""
        assert decode_scalar(unescape(encode_scalar(value))) == value


class TestUnescape:
    """Test percent-decoding."""

    def test_plus_is_space(self):
        assert unescape("a+b") == "a b"

    def test_percent_sequences(self):
        assert unescape("a%20b%26c") == "a b&c"


class TestOperatorCodec:
    """Test operator code mapping."""

    def test_every_operator_round_trips(self):
        for op in QueryOperator:
            assert decode_operator(encode_operator(op)) is op

    def test_codes(self):
        assert encode_operator(QueryOperator.CONTAINS) == "ct"
        assert encode_operator(QueryOperator.GREATER_THAN_OR_EQUAL) == "gte"
        assert encode_operator(QueryOperator.BETWEEN) == "bt"

    def test_unknown_code_falls_back_to_equals(self):
        """Unknown codes never raise."""
        assert decode_operator("zz") is QueryOperator.EQUALS

    def test_missing_code_falls_back_to_equals(self):
        assert decode_operator(None) is QueryOperator.EQUALS
        assert decode_operator("") is QueryOperator.EQUALS

    def test_named_operators(self):
        assert decode_operator("startsWith") is QueryOperator.STARTS_WITH
        assert decode_operator("lessThanEqual") is QueryOperator.LESS_THAN_OR_EQUAL
