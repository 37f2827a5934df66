"""
BrunoQuery Fluent Query Builder

Provides a fluent API for building requests against APIs that follow the
Bruno query conventions (PHP `esbenp/bruno`).

The builder owns one `QueryDescription`. Everything passed in is
normalized on the way in, so the description is always deduplicated and
canonical, whichever output format is asked for.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Iterable, List, Optional, Union

from brunoquery.ir.model import (
    FilterGroup,
    OptionalPayload,
    PaginationAliases,
    QueryDescription,
    QueryOperator,
    SortRule,
    clamp_pagination,
)
from brunoquery.ir.normalize import (
    SortInput,
    deduplicate_sort,
    normalize_filter,
    normalize_group,
    normalize_sort_rule,
)
from brunoquery.ir.serialize import from_json, to_json, to_object
from brunoquery.ir.validation import validate_optional
from brunoquery.querystring.encoder import to_query_string, to_url
from brunoquery.querystring.parser import from_query_string

logger = logging.getLogger(__name__)

GroupInput = Union[FilterGroup, dict]


class BrunoQuery:
    """
    Fluent builder for Bruno query parameters.

    Usage:
        qs = (
            BrunoQuery()
            .add_includes("author", "publisher")
            .add_sort({"key": "name", "direction": "ASC"})
            .where("age", QueryOperator.GREATER_THAN, 18)
            .set_limit(20)
            .set_page(1)
            .to_query_string()
        )
    """

    def __init__(self) -> None:
        self._desc = QueryDescription()

    # ========== Includes ==========

    def add_includes(self, *includes: str) -> "BrunoQuery":
        """Load related resources, e.g. `"author"`, `"publisher.books"`."""
        return self.add_array_includes(includes)

    def add_array_includes(self, includes: Iterable[str]) -> "BrunoQuery":
        """Same as `add_includes`, from an iterable."""
        self._desc.includes.extend(includes)
        return self

    def set_includes(self, *includes: str) -> "BrunoQuery":
        """Replace the includes."""
        return self.set_array_includes(includes)

    def set_array_includes(self, includes: Iterable[str]) -> "BrunoQuery":
        self._desc.includes = list(includes)
        return self

    # ========== Sort ==========

    def add_sort(self, *rules: SortInput) -> "BrunoQuery":
        """
        Add sort rules.

        A rule for a key that is already sorted on replaces the earlier
        direction in place.
        """
        return self.add_array_sort(rules)

    def add_array_sort(self, rules: Iterable[SortInput]) -> "BrunoQuery":
        new_rules = [normalize_sort_rule(rule) for rule in rules]
        self._desc.sort = deduplicate_sort(self._desc.sort + new_rules)
        return self

    def set_sort(self, *rules: SortInput) -> "BrunoQuery":
        """Replace the sort rules."""
        return self.set_array_sort(rules)

    def set_array_sort(self, rules: Iterable[SortInput]) -> "BrunoQuery":
        self._desc.sort = deduplicate_sort(normalize_sort_rule(rule) for rule in rules)
        return self

    # ========== Filter groups ==========

    def add_filter_group(self, *groups: GroupInput) -> "BrunoQuery":
        """
        Add filter groups.

        Filters may be `Filter` values, mappings, or the shorthand
        `[key, operator, value, not?]`. Duplicates inside a group are
        dropped; groups are never merged with each other.
        """
        return self.add_array_filter_group(groups)

    def add_array_filter_group(self, groups: Iterable[GroupInput]) -> "BrunoQuery":
        self._desc.filter_groups.extend(normalize_group(g) for g in groups)
        return self

    def set_filter_group(self, *groups: GroupInput) -> "BrunoQuery":
        """Replace the filter groups."""
        return self.set_array_filter_group(groups)

    def set_array_filter_group(self, groups: Iterable[GroupInput]) -> "BrunoQuery":
        self._desc.filter_groups = [normalize_group(g) for g in groups]
        return self

    def where(
        self,
        key: str,
        operator: Union[QueryOperator, str],
        value: Any,
        not_: bool = False,
        or_: bool = False,
    ) -> "BrunoQuery":
        """Shorthand for a filter group holding a single filter."""
        f = normalize_filter([key, operator, value, not_])
        self._desc.filter_groups.append(FilterGroup(filters=[f], or_=or_))
        return self

    # ========== Pagination ==========

    def set_limit(self, limit: Optional[int], alias: Optional[str] = None) -> "BrunoQuery":
        """
        Set the number of resources to return.

        Negative values fall back to `DEFAULT_LIMIT`; None removes the
        parameter. `alias` renames the parameter on the wire.
        """
        return self._set_pagination("limit", limit, alias)

    def set_offset(self, offset: Optional[int], alias: Optional[str] = None) -> "BrunoQuery":
        """Set the offset. Negative values fall back to `DEFAULT_PAGE`."""
        return self._set_pagination("offset", offset, alias)

    def set_per_page(self, per_page: Optional[int], alias: Optional[str] = None) -> "BrunoQuery":
        """Same as limit, sent as `perPage`."""
        return self._set_pagination("per_page", per_page, alias)

    def set_page(self, page: Optional[int], alias: Optional[str] = None) -> "BrunoQuery":
        """Set the page number. Negative values fall back to `DEFAULT_PAGE`."""
        return self._set_pagination("page", page, alias)

    def _set_pagination(
        self, name: str, value: Optional[int], alias: Optional[str]
    ) -> "BrunoQuery":
        stored = clamp_pagination(name, value)
        if stored != value:
            logger.debug("Negative %s=%d replaced with %d", name, value, stored)
        setattr(self._desc, name, stored)
        if value is not None and alias:
            setattr(self._desc.aliases, name, alias)
        return self

    # ========== Optional parameters ==========

    def set_optional(self, optional: OptionalPayload) -> "BrunoQuery":
        """
        Replace the optional parameters.

        Accepts one mapping or a list of mappings, for custom endpoint
        parameters outside the Bruno conventions.
        """
        validate_optional(optional)
        self._desc.optional = copy.deepcopy(optional)
        return self

    def add_optional(self, optional: OptionalPayload) -> "BrunoQuery":
        """
        Merge optional parameters into the existing ones.

        Two mappings merge key by key. As soon as either side is a list,
        the result is a list of mappings, checked against the list-form
        rules before it is stored.
        """
        validate_optional(optional)
        optional = copy.deepcopy(optional)
        current = copy.deepcopy(self._desc.optional)

        if current is None:
            merged = optional
        elif isinstance(current, list):
            merged = current + (optional if isinstance(optional, list) else [optional])
        elif isinstance(optional, list):
            merged = [current] + optional
        else:
            merged = {**current, **optional}

        if isinstance(merged, list):
            validate_optional(merged)
        self._desc.optional = merged
        return self

    # ========== Accessors ==========

    @property
    def description(self) -> QueryDescription:
        """Deep copy of the underlying description."""
        return copy.deepcopy(self._desc)

    @property
    def includes(self) -> List[str]:
        return list(self._desc.includes)

    @property
    def sort(self) -> List[SortRule]:
        return list(self._desc.sort)

    @property
    def filter_groups(self) -> List[FilterGroup]:
        return copy.deepcopy(self._desc.filter_groups)

    @property
    def limit(self) -> Optional[int]:
        return self._desc.limit

    @property
    def offset(self) -> Optional[int]:
        return self._desc.offset

    @property
    def per_page(self) -> Optional[int]:
        return self._desc.per_page

    @property
    def page(self) -> Optional[int]:
        return self._desc.page

    @property
    def optional(self) -> Optional[OptionalPayload]:
        return copy.deepcopy(self._desc.optional)

    # ========== Output ==========

    def to_object(self) -> dict:
        """Plain-data view, with optional parameters under `optional`."""
        return to_object(self._desc)

    def to_query_string(self) -> str:
        """Bracket-indexed query string, without a leading `?`."""
        return to_query_string(self._desc)

    def get(self) -> str:
        """Alias of `to_query_string`."""
        return self.to_query_string()

    def to_url(self, base_url: str = "") -> str:
        """Base URL with the query string appended."""
        return to_url(base_url, self.to_query_string())

    def to_json(self, indent: Optional[int] = None) -> str:
        """Flat JSON document, optional parameters merged onto the root."""
        return to_json(self._desc, indent=indent)

    # ========== Lifecycle ==========

    def reset(self) -> "BrunoQuery":
        """Drop every parameter and pagination alias."""
        self._desc = QueryDescription()
        return self

    def clone(self) -> "BrunoQuery":
        """Independent copy; nothing is shared with this builder."""
        new_builder = BrunoQuery()
        new_builder._desc = copy.deepcopy(self._desc)
        return new_builder

    # ========== Construction ==========

    @classmethod
    def build(
        cls,
        filter_groups: Optional[Iterable[GroupInput]] = None,
        includes: Optional[Iterable[str]] = None,
        sort: Optional[Iterable[SortInput]] = None,
        limit: Optional[int] = None,
        page: Optional[int] = None,
    ) -> "BrunoQuery":
        """Build a query in one call."""
        instance = cls().set_limit(limit).set_page(page)
        if includes:
            instance.add_array_includes(includes)
        if sort:
            instance.add_array_sort(sort)
        if filter_groups:
            instance.add_array_filter_group(filter_groups)
        return instance

    @classmethod
    def from_query_string(
        cls, query_string: str, aliases: Optional[PaginationAliases] = None
    ) -> "BrunoQuery":
        """
        Parse a query string such as
        `includes[]=user&sort[0][key]=name&sort[0][direction]=ASC&limit=15`.

        Never raises: fragments that cannot be read are dropped.
        """
        instance = cls()
        instance._desc = from_query_string(query_string, aliases)
        return instance

    parse = from_query_string

    @classmethod
    def from_json(
        cls, json_str: str, aliases: Optional[PaginationAliases] = None
    ) -> "BrunoQuery":
        """
        Build from a flat JSON document; non-core keys become optional.

        Raises:
            InvalidJSONError: If the text is not a JSON object
        """
        instance = cls()
        instance._desc = from_json(json_str, aliases)
        return instance


# Convenience function for starting a query
def query() -> BrunoQuery:
    """Start building a new query."""
    return BrunoQuery()
