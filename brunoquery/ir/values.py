"""
Scalar value codec.

Query strings carry only text, so every value crosses the wire as a string
and is inferred back into null, boolean, number or string on the way in.
Both functions are total: no input makes them raise.
"""

from __future__ import annotations

import math
import re
from typing import Any
from urllib.parse import quote, unquote_plus

from .model import Scalar

# Characters encodeURIComponent leaves alone, beyond letters and digits.
_SAFE = "-_.!~*'()"

_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_INTEGER = re.compile(r"^[+-]?\d+$")


def escape(text: str) -> str:
    """Percent-encode a URL component."""
    return quote(text, safe=_SAFE)


def unescape(text: str) -> str:
    """Decode a percent-encoded URL component (`+` is a space)."""
    return unquote_plus(text)


def encode_scalar(value: Any) -> str:
    """
    Render a scalar for the query string.

    None is `null` and booleans are `true`/`false`; everything else is
    percent-encoded text.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return escape(str(value))


def decode_scalar(text: str) -> Scalar:
    """
    Infer the scalar a query-string value stands for.

    Args:
        text: Already unescaped value text

    Returns:
        None, a bool, an int, a float, or the text unchanged
    """
    if text == "null":
        return None
    if text == "true":
        return True
    if text == "false":
        return False

    stripped = text.strip()
    if _NUMBER.match(stripped):
        if _INTEGER.match(stripped):
            return int(stripped)
        number = float(stripped)
        if math.isfinite(number):
            return number
    return text
