"""
BrunoQuery: query parameters for Bruno-style REST APIs

Builds, encodes and decodes the includes, sort rules, filter groups,
pagination and free-form parameters understood by the PHP `esbenp/bruno`
conventions, as a bracket-indexed query string or as a flat JSON document.
"""

from .builder import BrunoQuery, query
from .ir import (
    BrunoQueryValidationError,
    Filter,
    FilterGroup,
    InvalidJSONError,
    PaginationAliases,
    QueryDescription,
    QueryOperator,
    SortDirection,
    SortRule,
)

__version__ = "0.1.0"

__all__ = [
    "BrunoQuery",
    "BrunoQueryValidationError",
    "Filter",
    "FilterGroup",
    "InvalidJSONError",
    "PaginationAliases",
    "QueryDescription",
    "QueryOperator",
    "SortDirection",
    "SortRule",
    "query",
]
