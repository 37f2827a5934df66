"""
Query string → QueryDescription parser.

Inverts the bracket-indexed grammar produced by `QueryStringEncoder`.
Each top-level key family is recognized by its literal prefix, so the
stages below are independent of one another and of parameter order.

The parser is lenient by contract: any query string is accepted. Fragments
that cannot be interpreted (a filter without an operator, an unparseable
page number, a half-written bracket path) are dropped and logged at DEBUG,
never raised. Round-trip fidelity is only promised for strings the encoder
produced.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from brunoquery.ir.model import (
    RESERVED_KEYS,
    Filter,
    FilterGroup,
    PaginationAliases,
    QueryDescription,
    SortDirection,
    SortRule,
    clamp_pagination,
)
from brunoquery.ir.normalize import deduplicate_filters, deduplicate_sort
from brunoquery.ir.operators import decode_operator
from brunoquery.ir.values import decode_scalar, unescape

logger = logging.getLogger(__name__)

_FILTER_KEY = re.compile(
    r"^filter_groups\[(\d+)\]\[filters\]\[(\d+)\]\[([^\]]+)\](\[\])?$"
)
_BRACKET_SEGMENT = re.compile(r"\[([^\[\]]*)\]")


class QueryParams:
    """Decoded `key=value` pairs with multi-value access."""

    def __init__(self, pairs: List[Tuple[str, str]]) -> None:
        self.pairs = pairs
        self._data: Dict[str, List[str]] = {}
        for key, value in pairs:
            self._data.setdefault(key, []).append(value)

    @classmethod
    def from_string(cls, raw: str) -> "QueryParams":
        pairs = []
        for chunk in raw.split("&"):
            if not chunk:
                continue
            key, _, value = chunk.partition("=")
            pairs.append((unescape(key), unescape(value)))
        return cls(pairs)

    def get(self, key: str) -> Optional[str]:
        """First value for key, or None."""
        values = self._data.get(key)
        return values[0] if values else None

    def getlist(self, key: str) -> List[str]:
        """All values for key."""
        return list(self._data.get(key, []))

    def keys(self) -> List[str]:
        """Distinct keys in encounter order."""
        return list(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data


class QueryStringParser:
    """
    Parses Bruno-style query strings.

    Args:
        aliases: Wire names of the pagination fields, when the API renames
            them (`per_page` instead of `limit`, ...). Aliased names are
            reserved and never land in the optional payload.
    """

    def __init__(self, aliases: Optional[PaginationAliases] = None) -> None:
        self.aliases = aliases or PaginationAliases()

    def parse(self, raw: str) -> QueryDescription:
        """Decode `raw` into a fresh description. Never raises."""
        desc = QueryDescription(aliases=replace(self.aliases))

        query = raw[1:] if raw.startswith("?") else raw
        if not query:
            return desc

        params = QueryParams.from_string(query)
        desc.includes = params.getlist("includes[]")
        desc.sort = self._parse_sort(params)
        self._parse_pagination(params, desc)
        desc.filter_groups = self._parse_filter_groups(params)
        desc.optional = self._parse_optional(params)
        return desc

    # ---------- sort ----------

    def _parse_sort(self, params: QueryParams) -> List[SortRule]:
        rules: List[SortRule] = []
        index = 0
        while True:
            key = params.get(f"sort[{index}][key]")
            direction = params.get(f"sort[{index}][direction]")
            if not key or not direction:
                break
            rules.append(SortRule(key=key, direction=SortDirection.coerce(direction)))
            index += 1
        return deduplicate_sort(rules)

    # ---------- pagination ----------

    def _parse_pagination(self, params: QueryParams, desc: QueryDescription) -> None:
        for name in PaginationAliases.WIRE_NAMES:
            key = self.aliases.key_for(name)
            text = params.get(key)
            if not text:
                continue
            try:
                value = int(text.strip())
            except ValueError:
                logger.debug("Ignoring non-integer %s=%r", key, text)
                continue
            setattr(desc, name, clamp_pagination(name, value))

    # ---------- filter groups ----------

    def _parse_filter_groups(self, params: QueryParams) -> List[FilterGroup]:
        buckets: Dict[int, Dict[int, Dict[str, Any]]] = {}

        for key, value in params.pairs:
            match = _FILTER_KEY.match(key)
            if not match:
                continue
            group_index, filter_index = int(match.group(1)), int(match.group(2))
            prop, is_list = match.group(3), bool(match.group(4))

            props = buckets.setdefault(group_index, {}).setdefault(filter_index, {})
            if is_list:
                current = props.get(prop)
                if not isinstance(current, list):
                    current = props[prop] = []
                current.append(value)
            else:
                props.setdefault(prop, value)

        groups: List[FilterGroup] = []
        for group_index in sorted(buckets):
            filters_map = buckets[group_index]
            filters: List[Filter] = []
            for filter_index in sorted(filters_map):
                props = filters_map[filter_index]
                f = _build_filter(props)
                if f is None:
                    logger.debug(
                        "Dropping filter_groups[%d][filters][%d]: missing key or operator",
                        group_index,
                        filter_index,
                    )
                    continue
                filters.append(f)

            if not filters:
                logger.debug("Dropping empty filter group %d", group_index)
                continue
            groups.append(FilterGroup(
                filters=deduplicate_filters(filters),
                or_=params.get(f"filter_groups[{group_index}][or]") == "true",
            ))
        return groups

    # ---------- optional ----------

    def _reserved(self) -> set:
        return set(RESERVED_KEYS) | set(self.aliases.keys())

    def _parse_optional(self, params: QueryParams) -> Optional[Any]:
        reserved = self._reserved()
        groups: Dict[str, List[str]] = {}
        for key in params.keys():
            root = key.split("[", 1)[0]
            if not root or root in reserved:
                continue
            groups.setdefault(root, []).append(key)

        entries: List[Tuple[str, Any]] = []
        indexed = False
        for root, keys in groups.items():
            if root in keys:
                entries.append((root, decode_scalar(params.get(root))))
                continue

            index_pattern = re.compile(rf"^{re.escape(root)}\[(\d+)\]")
            if any(index_pattern.match(key) for key in keys):
                value = self._parse_indexed(root, keys, params)
                if value:
                    entries.append((root, value))
                    indexed = True
                continue

            value = self._parse_nested(root, keys, params)
            if value is not None:
                entries.append((root, value))

        if not entries:
            return None
        if indexed:
            return [{root: value} for root, value in entries]
        return dict(entries)

    def _parse_indexed(
        self, root: str, keys: List[str], params: QueryParams
    ) -> Dict[str, Any]:
        """
        `root[0][name]=v` pairs, merged in index order.

        An index holding exactly the labelled-value pair
        `root[i][key]=K&root[i][value]=V` contributes `{K: V}`.
        """
        pattern = re.compile(rf"^{re.escape(root)}\[(\d+)\]\[([^\]]+)\]")
        by_index: Dict[int, Dict[str, str]] = {}
        for key in keys:
            match = pattern.match(key)
            if not match:
                logger.debug("Dropping optional fragment %r", key)
                continue
            by_index.setdefault(int(match.group(1)), {}).setdefault(
                match.group(2), params.get(key)
            )

        merged: Dict[str, Any] = {}
        for index in sorted(by_index):
            raw = by_index[index]
            if raw.get("key") and "value" in raw:
                merged[raw["key"]] = decode_scalar(raw["value"])
            else:
                merged.update((name, decode_scalar(value)) for name, value in raw.items())
        return merged

    def _parse_nested(
        self, root: str, keys: List[str], params: QueryParams
    ) -> Optional[Any]:
        """`root[a][b]=v` paths; an empty last segment collects a list."""
        result: Dict[str, Any] = {}
        top_list: Optional[List[Any]] = None

        for key in keys:
            path = _split_path(key[len(root):])
            if not path:
                logger.debug("Dropping optional fragment %r", key)
                continue
            values = [decode_scalar(v) for v in params.getlist(key)]

            if path == [""]:
                top_list = values
                continue
            if "" in path[:-1]:
                logger.debug("Dropping optional fragment %r", key)
                continue

            current = result
            for segment in path[:-2] if path[-1] == "" else path[:-1]:
                child = current.get(segment)
                if not isinstance(child, dict):
                    child = current[segment] = {}
                current = child

            if path[-1] == "":
                current[path[-2]] = values
            else:
                current[path[-1]] = values[0]

        if top_list is not None and not result:
            return top_list
        return result or None


def _split_path(rest: str) -> List[str]:
    """`[a][b]` → ["a", "b"]; anything that is not a clean bracket path → []."""
    segments = _BRACKET_SEGMENT.findall(rest)
    if not segments or "".join(f"[{s}]" for s in segments) != rest:
        return []
    return segments


def _build_filter(props: Dict[str, Any]) -> Optional[Filter]:
    key, operator = props.get("key"), props.get("operator")
    if not isinstance(key, str) or not key or not isinstance(operator, str) or not operator:
        return None

    raw_value = props.get("value")
    if isinstance(raw_value, list):
        value: Any = [decode_scalar(v) for v in raw_value]
    elif raw_value is None:
        value = None
    else:
        value = decode_scalar(raw_value)

    return Filter(
        key=key,
        operator=decode_operator(operator),
        value=value,
        not_=props.get("not") == "true",
    )


def from_query_string(
    raw: str, aliases: Optional[PaginationAliases] = None
) -> QueryDescription:
    """Parse a query string into a description."""
    return QueryStringParser(aliases).parse(raw)
