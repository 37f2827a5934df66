"""
Filter and sort normalization.

Everything the builder accepts is turned into canonical `Filter`,
`FilterGroup` and `SortRule` values here, and deduplicated, before it is
stored. Deduplication is idempotent so it can be re-applied freely.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, List, Mapping, Sequence, Union

from .model import Filter, FilterGroup, SortDirection, SortRule
from .operators import decode_operator
from .validation import BrunoQueryValidationError, validate_shorthand, validate_sort_key

FilterInput = Union[Filter, Sequence[Any], Mapping[str, Any]]
SortInput = Union[SortRule, Sequence[Any], Mapping[str, Any]]


# ---------- Filters ----------


def normalize_filter(item: FilterInput) -> Filter:
    """
    Canonical form of a filter.

    Accepts a `Filter`, a shorthand `[key, operator, value, not?]` or a
    mapping with `key`/`operator`/`value`/`not` entries.
    """
    if isinstance(item, Filter):
        return Filter(
            key=item.key,
            operator=decode_operator(item.operator),
            value=_copy_value(item.value),
            not_=bool(item.not_),
        )

    if isinstance(item, Mapping):
        key = item.get("key")
        if not isinstance(key, str) or not key:
            raise BrunoQueryValidationError(
                ["filter key must be a non-empty string."], item
            )
        return Filter(
            key=key,
            operator=decode_operator(item.get("operator")),
            value=_copy_value(item.get("value")),
            not_=bool(item.get("not", item.get("not_", False))),
        )

    if isinstance(item, (list, tuple)):
        validate_shorthand(item)
        return Filter(
            key=item[0],
            operator=decode_operator(item[1]),
            value=_copy_value(item[2]),
            not_=bool(item[3]) if len(item) > 3 else False,
        )

    raise BrunoQueryValidationError(
        [f"unsupported filter type {type(item).__name__}."], item
    )


def filter_identity(f: Filter) -> str:
    """`key:operator:value:not`, with the value compared structurally."""
    value = json.dumps(f.value, sort_keys=True, separators=(",", ":"), default=str)
    return f"{f.key}:{f.operator.value}:{value}:{str(f.not_).lower()}"


def deduplicate_filters(filters: Iterable[Filter]) -> List[Filter]:
    """Drop repeated filters, keeping the first occurrence of each."""
    seen = set()
    unique: List[Filter] = []
    for f in filters:
        identity = filter_identity(f)
        if identity not in seen:
            seen.add(identity)
            unique.append(f)
    return unique


def normalize_group(group: Union[FilterGroup, Mapping[str, Any]]) -> FilterGroup:
    """Canonical, deduplicated copy of a filter group."""
    if isinstance(group, FilterGroup):
        filters, or_ = group.filters, group.or_
    elif isinstance(group, Mapping):
        filters = group.get("filters") or []
        or_ = group.get("or", group.get("or_", False))
    else:
        raise BrunoQueryValidationError(
            [f"unsupported filter group type {type(group).__name__}."], group
        )

    return FilterGroup(
        filters=deduplicate_filters(normalize_filter(f) for f in filters),
        or_=bool(or_),
    )


def _copy_value(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return list(value)
    return value


# ---------- Sort ----------


def normalize_sort_rule(rule: SortInput) -> SortRule:
    """Canonical form of a sort rule; direction defaults to ASC."""
    if isinstance(rule, SortRule):
        key, direction = rule.key, rule.direction
    elif isinstance(rule, Mapping):
        key, direction = rule.get("key"), rule.get("direction", SortDirection.ASC)
    elif isinstance(rule, (list, tuple)) and 1 <= len(rule) <= 2:
        key = rule[0]
        direction = rule[1] if len(rule) > 1 else SortDirection.ASC
    else:
        raise BrunoQueryValidationError(
            [f"unsupported sort rule {rule!r}."], rule
        )

    validate_sort_key(key)
    return SortRule(key=key, direction=SortDirection.coerce(direction))


def deduplicate_sort(rules: Iterable[SortRule]) -> List[SortRule]:
    """
    One rule per key.

    The last rule for a key decides its direction; the key stays where it
    first appeared.

        [a ASC, b DESC, a DESC] -> [a DESC, b DESC]
    """
    positions: dict = {}
    result: List[SortRule] = []
    for rule in rules:
        if rule.key in positions:
            result[positions[rule.key]] = rule
        else:
            positions[rule.key] = len(result)
            result.append(rule)
    return result
