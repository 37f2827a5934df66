"""Bracket-indexed query string encoding and parsing."""

from .encoder import QueryStringEncoder, to_query_string, to_url
from .parser import QueryStringParser, from_query_string

__all__ = [
    "QueryStringEncoder",
    "QueryStringParser",
    "from_query_string",
    "to_query_string",
    "to_url",
]
