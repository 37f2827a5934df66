"""BrunoQuery data model, normalization and JSON serialization."""

from .model import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    RESERVED_KEYS,
    Filter,
    FilterGroup,
    PaginationAliases,
    QueryDescription,
    QueryOperator,
    SortDirection,
    SortRule,
)
from .validation import BrunoQueryValidationError, validate_optional
from .operators import decode_operator, encode_operator
from .values import decode_scalar, encode_scalar
from .normalize import (
    deduplicate_filters,
    deduplicate_sort,
    normalize_filter,
    normalize_group,
)
from .serialize import (
    InvalidJSONError,
    to_object,
    to_json,
    from_json,
    from_dict,
)

__all__ = [
    "DEFAULT_LIMIT",
    "DEFAULT_PAGE",
    "RESERVED_KEYS",
    "BrunoQueryValidationError",
    "Filter",
    "FilterGroup",
    "InvalidJSONError",
    "PaginationAliases",
    "QueryDescription",
    "QueryOperator",
    "SortDirection",
    "SortRule",
    "validate_optional",
    # Codecs
    "decode_operator",
    "encode_operator",
    "decode_scalar",
    "encode_scalar",
    # Normalization
    "deduplicate_filters",
    "deduplicate_sort",
    "normalize_filter",
    "normalize_group",
    # Serialization
    "to_object",
    "to_json",
    "from_json",
    "from_dict",
]
