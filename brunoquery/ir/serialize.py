"""
BrunoQuery JSON Serialization

Two views of a description:
- the object view (`to_object`): core fields as plain keys, optional
  parameters kept under `optional`
- the flat JSON document (`to_json`): optional parameters merged onto the
  root, which is what JSON-bodied endpoints expect

`from_json` inverts the flat document: every key outside the core set is
collected into one optional mapping.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Dict, Optional

from .model import (
    PaginationAliases,
    QueryDescription,
    clamp_pagination,
)
from .normalize import (
    deduplicate_filters,
    deduplicate_sort,
    normalize_group,
    normalize_sort_rule,
)
from .validation import BrunoQueryValidationError

logger = logging.getLogger(__name__)

CORE_KEYS = ("includes", "sort", "filter_groups", "limit", "offset", "perPage", "page")


class InvalidJSONError(ValueError):
    """Raised when text handed to `from_json` is not a JSON object."""

    def __init__(self, message: str, text: Optional[str] = None):
        self.text = text
        super().__init__(f"Invalid JSON string: {message}")


def to_object(desc: QueryDescription) -> Dict[str, Any]:
    """
    Plain-data view of a description.

    Absent fields are left out. Filters are written as
    `{key, operator, value}` plus `not` when negated, and are deduplicated
    again on the way out.

    Returns:
        A new dictionary sharing nothing with `desc`
    """
    res: Dict[str, Any] = {}

    if desc.includes:
        res["includes"] = list(desc.includes)

    if desc.sort:
        res["sort"] = [
            {"key": rule.key, "direction": rule.direction.value}
            for rule in deduplicate_sort(desc.sort)
        ]

    if desc.filter_groups:
        groups = []
        for group in desc.filter_groups:
            filters = []
            for f in deduplicate_filters(group.filters):
                item = {
                    "key": f.key,
                    "operator": f.operator.value,
                    "value": copy.deepcopy(f.value),
                }
                if f.not_:
                    item["not"] = True
                filters.append(item)
            groups.append({"or": group.or_, "filters": filters})
        res["filter_groups"] = groups

    for key, value in desc.pagination():
        res[key] = value

    if desc.optional is not None:
        res["optional"] = copy.deepcopy(desc.optional)

    return res


def to_json(desc: QueryDescription, indent: Optional[int] = None) -> str:
    """
    Serialize a description to a flat JSON document.

    A single optional mapping is merged onto the root. A list of mappings is
    merged with every key suffixed by its list position (`name_0`, ...).

    Args:
        desc: The description to serialize
        indent: Indentation level for pretty-printing

    Returns:
        JSON string representation
    """
    obj = to_object(desc)
    optional = obj.pop("optional", None)
    if isinstance(optional, list):
        for index, item in enumerate(optional):
            for key, value in item.items():
                obj[f"{key}_{index}"] = value
    elif optional:
        obj.update(optional)
    return json.dumps(obj, indent=indent)


def from_json(json_str: str, aliases: Optional[PaginationAliases] = None) -> QueryDescription:
    """
    Deserialize a description from a flat JSON document.

    Args:
        json_str: JSON text holding one object
        aliases: Pagination wire names to read besides the core keys

    Returns:
        Reconstructed description

    Raises:
        InvalidJSONError: If the text is not valid JSON or not an object
        BrunoQueryValidationError: If a core field cannot be represented
    """
    try:
        data = json.loads(json_str)
    except (json.JSONDecodeError, TypeError) as e:
        raise InvalidJSONError(str(e), json_str) from e

    if not isinstance(data, dict):
        raise InvalidJSONError(
            f"expected an object, got {type(data).__name__}", json_str
        )
    return from_dict(data, aliases)


def from_dict(
    data: Dict[str, Any], aliases: Optional[PaginationAliases] = None
) -> QueryDescription:
    """
    Reconstruct a description from a flat mapping.

    Keys outside the core set (and the alias names) become the optional
    payload, always in mapping form. They are kept as decoded, whatever
    their shape; the query-string encoder drops what it cannot express.
    """
    aliases = aliases or PaginationAliases()
    desc = QueryDescription(aliases=copy.copy(aliases))

    try:
        if data.get("includes"):
            desc.includes = [str(name) for name in data["includes"]]
        if data.get("sort"):
            desc.sort = deduplicate_sort(
                normalize_sort_rule(rule) for rule in data["sort"]
            )
        if data.get("filter_groups"):
            desc.filter_groups = [normalize_group(g) for g in data["filter_groups"]]
    except (TypeError, AttributeError) as e:
        raise BrunoQueryValidationError([f"Invalid data format: {e}"], data) from e

    for name, default_key in PaginationAliases.WIRE_NAMES.items():
        for key in (aliases.key_for(name), default_key):
            if data.get(key) is None:
                continue
            try:
                value = int(data[key])
            except (TypeError, ValueError):
                logger.debug("Ignoring non-integer %s=%r", key, data[key])
                continue
            setattr(desc, name, clamp_pagination(name, value))
            break

    reserved = set(CORE_KEYS) | set(aliases.keys())
    optional = {key: value for key, value in data.items() if key not in reserved}
    if optional:
        desc.optional = copy.deepcopy(optional)

    return desc
