"""
BrunoQuery Data Model

The query description is the single value both wire formats are built from
and decoded into.

Properties of the model:
- Normalized: filters and sort rules are canonical once stored
- Deduplicated: sort by key (last wins), filters within a group
- Owned: one builder owns one description; sharing only via deep copy
- Wire-agnostic: no query-string or JSON shapes baked in
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

# Pagination values used when a negative number is supplied.
DEFAULT_LIMIT = 15
DEFAULT_PAGE = 1

# Top-level parameter names that never end up in the optional payload.
RESERVED_KEYS = (
    "includes",
    "sort",
    "limit",
    "offset",
    "perPage",
    "page",
    "filter_groups",
)


# ---------- Enums (closed-world) ----------


class QueryOperator(str, Enum):
    """Comparison applied by a filter. Values are the wire codes."""

    CONTAINS = "ct"
    STARTS_WITH = "sw"
    ENDS_WITH = "ew"
    EQUALS = "eq"
    GREATER_THAN = "gt"
    GREATER_THAN_OR_EQUAL = "gte"
    LESS_THAN = "lt"
    LESS_THAN_OR_EQUAL = "lte"
    IN = "in"
    BETWEEN = "bt"


class SortDirection(str, Enum):
    """Sort order of a single sort rule."""

    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def coerce(cls, value: Union["SortDirection", str, None]) -> "SortDirection":
        """Case-insensitive `asc` is ASC; anything else is DESC."""
        if isinstance(value, SortDirection):
            return value
        if isinstance(value, str) and value.strip().upper() == "ASC":
            return cls.ASC
        return cls.DESC


# ---------- Core structs ----------


Scalar = Union[None, bool, int, float, str]
FilterValue = Union[Scalar, List[Scalar]]
OptionalPayload = Union[Dict[str, Any], List[Dict[str, Any]]]


@dataclass(frozen=True)
class SortRule:
    """Order results by `key`."""

    key: str
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True)
class Filter:
    """
    A single comparison predicate.

    `not_` negates the comparison; on the wire it is the `not` field.
    """

    key: str
    operator: QueryOperator
    value: Any = None
    not_: bool = False


@dataclass
class FilterGroup:
    """
    Filters combined with AND, or with OR when `or_` is set.

    Groups themselves are always combined with AND.
    """

    filters: List[Filter] = field(default_factory=list)
    or_: bool = False


@dataclass
class PaginationAliases:
    """
    Wire-name overrides for the pagination fields.

    A backend expecting `per_page` instead of `limit` is served with
    `PaginationAliases(limit="per_page")`.
    """

    limit: Optional[str] = None
    offset: Optional[str] = None
    per_page: Optional[str] = None
    page: Optional[str] = None

    # field name -> default wire name
    WIRE_NAMES = {
        "limit": "limit",
        "offset": "offset",
        "per_page": "perPage",
        "page": "page",
    }

    def key_for(self, name: str) -> str:
        """Wire key used for the pagination field `name`."""
        return getattr(self, name) or self.WIRE_NAMES[name]

    def keys(self) -> List[str]:
        """All wire keys currently in use, in emission order."""
        return [self.key_for(name) for name in self.WIRE_NAMES]


# ---------- The query description ----------


@dataclass
class QueryDescription:
    """
    Everything a Bruno-style endpoint can be asked for.

    Pagination fields are absent (None) unless explicitly set. `optional`
    is either absent, one mapping, or a list of mappings; the two forms
    are never mixed.
    """

    includes: List[str] = field(default_factory=list)
    sort: List[SortRule] = field(default_factory=list)
    filter_groups: List[FilterGroup] = field(default_factory=list)
    limit: Optional[int] = None
    offset: Optional[int] = None
    per_page: Optional[int] = None
    page: Optional[int] = None
    optional: Optional[OptionalPayload] = None
    aliases: PaginationAliases = field(default_factory=PaginationAliases)

    def pagination(self) -> List[tuple]:
        """(wire key, value) pairs for the pagination fields that are set."""
        pairs = []
        for name in PaginationAliases.WIRE_NAMES:
            value = getattr(self, name)
            if value is not None:
                pairs.append((self.aliases.key_for(name), value))
        return pairs


def clamp_pagination(name: str, value: Optional[int]) -> Optional[int]:
    """
    Pagination value to store for field `name`.

    Negative values fall back to the defaults: `DEFAULT_LIMIT` for the
    size fields, `DEFAULT_PAGE` for the position fields.
    """
    if value is None or value >= 0:
        return value
    return DEFAULT_LIMIT if name in ("limit", "per_page") else DEFAULT_PAGE
