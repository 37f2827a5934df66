"""
QueryDescription → query string encoder.

Emits the bracket-indexed grammar understood by Bruno-style PHP APIs:

    includes[]=author
    sort[0][key]=name&sort[0][direction]=ASC
    filter_groups[0][or]=true
    filter_groups[0][filters][0][key]=age
    filter_groups[0][filters][0][value][]=18
    limit=20&page=1
    category=books&user[name]=John

Segment order is fixed: includes, sort, filter groups, pagination, optional.
Wire order does not matter to the parser, but a fixed order keeps encoded
strings comparable.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List

from brunoquery.ir.model import Filter, FilterGroup, QueryDescription
from brunoquery.ir.normalize import deduplicate_filters
from brunoquery.ir.values import encode_scalar, escape

logger = logging.getLogger(__name__)

_SCALARS = (type(None), bool, int, float, str)


class QueryStringEncoder:
    """
    Encodes a description into ordered `key=value` segments.

    Filters are deduplicated once more on the way out; nothing else is
    reordered.

    A list of optional mappings sends nested values as `key[i][name]`.
    The upstream PHP client sends `key[name]` there, which the server reads
    as a mapping rather than a list entry.

    The bracket grammar has no spelling for an empty list or an empty
    mapping, so those write no segments and read back as absent (a filter
    `value` of `[]` comes back as None). Values it cannot express at all,
    such as mappings inside a list, are dropped and logged at DEBUG.
    """

    def encode(self, desc: QueryDescription) -> List[str]:
        """Ordered query-string segments for `desc`."""
        segments: List[str] = []

        # ---- Phase 1: includes ----
        for include in desc.includes:
            segments.append(f"includes[]={escape(include)}")

        # ---- Phase 2: sort ----
        # Direction is a closed alphabet and goes out unescaped.
        for index, rule in enumerate(desc.sort):
            segments.append(f"sort[{index}][key]={escape(rule.key)}")
            segments.append(f"sort[{index}][direction]={rule.direction.value}")

        # ---- Phase 3: filter groups ----
        for index, group in enumerate(desc.filter_groups):
            self._encode_group(segments, group, index)

        # ---- Phase 4: pagination ----
        for key, value in desc.pagination():
            segments.append(f"{key}={value}")

        # ---- Phase 5: optional ----
        if isinstance(desc.optional, list):
            for index, item in enumerate(desc.optional):
                self._encode_optional(segments, item, index)
        elif desc.optional:
            self._encode_optional(segments, desc.optional, None)

        return segments

    def _encode_group(
        self, segments: List[str], group: FilterGroup, group_index: int
    ) -> None:
        if group.or_:
            segments.append(f"filter_groups[{group_index}][or]=true")

        for filter_index, f in enumerate(deduplicate_filters(group.filters)):
            prefix = f"filter_groups[{group_index}][filters][{filter_index}]"
            for name, value in _filter_fields(f):
                _encode_value(segments, f"{prefix}[{name}]", value)

    def _encode_optional(
        self, segments: List[str], item: Dict[str, Any], index: Any
    ) -> None:
        """
        One optional mapping.

        Inside a list payload (`index` is the list position), nested mappings
        go under `key[index][name]`, the array-of-objects shape the parser
        reads back into a list. Only scalar entries fit that shape.
        """
        for key, value in item.items():
            name = escape(key)
            if isinstance(value, dict) and index is not None:
                _encode_flat_mapping(segments, f"{name}[{index}]", value)
            elif isinstance(value, dict):
                _encode_mapping(segments, name, value)
            else:
                _encode_value(segments, name, value)


def _filter_fields(f: Filter) -> List[tuple]:
    fields = [
        ("key", f.key),
        ("operator", f.operator.value),
        ("value", f.value),
    ]
    if f.not_:
        fields.append(("not", True))
    return fields


def _encode_mapping(segments: List[str], prefix: str, mapping: Dict[str, Any]) -> None:
    if not mapping:
        logger.debug("Dropping empty mapping %s", prefix)
    for key, value in mapping.items():
        name = f"{prefix}[{escape(str(key))}]"
        if isinstance(value, dict):
            _encode_mapping(segments, name, value)
        else:
            _encode_value(segments, name, value)


def _encode_flat_mapping(segments: List[str], prefix: str, mapping: Dict[str, Any]) -> None:
    """`prefix[name]=value` for the scalar entries of a list-form mapping."""
    for key, value in mapping.items():
        name = f"{prefix}[{escape(str(key))}]"
        if isinstance(value, _SCALARS):
            segments.append(f"{name}={encode_scalar(value)}")
        else:
            logger.debug("Dropping non-scalar %s inside a list payload", name)


def _encode_value(segments: List[str], name: str, value: Any) -> None:
    if isinstance(value, (list, tuple)):
        if not value:
            logger.debug("Dropping empty list %s", name)
        for element in value:
            if isinstance(element, _SCALARS):
                segments.append(f"{name}[]={encode_scalar(element)}")
            else:
                logger.debug("Dropping non-scalar element of %s", name)
    elif isinstance(value, _SCALARS):
        segments.append(f"{name}={encode_scalar(value)}")
    else:
        logger.debug("Dropping %s of type %s", name, type(value).__name__)


def to_query_string(desc: QueryDescription) -> str:
    """Join the encoded segments with `&`. No leading `?`."""
    return "&".join(QueryStringEncoder().encode(desc))


def to_url(base_url: str, query_string: str) -> str:
    """
    Append a query string to a base URL.

    A base that already carries a `?` gets `&` instead; doubled `&` and
    `?&` left behind are collapsed.
    """
    separator = "&" if "?" in base_url else "?"
    url = f"{base_url}{separator}{query_string}"
    url = re.sub(r"&{2,}", "&", url)
    return url.replace("?&", "?")
