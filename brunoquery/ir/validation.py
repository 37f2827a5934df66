"""
BrunoQuery boundary validation.

Input handed to the builder is checked once, when it enters the model.
Nothing past this point branches on the shape of caller data: filters are
canonical, sort rules have keys, and the optional payload is either one
mapping or a list of mappings with string keys.
"""

from __future__ import annotations

from typing import Any, List, Optional


class BrunoQueryValidationError(ValueError):
    """Raised when builder input cannot be represented in the model."""

    def __init__(self, errors: List[str], value: Optional[Any] = None):
        self.errors = errors
        self.value = value
        msg = "Invalid query input:\n- " + "\n- ".join(errors)
        super().__init__(msg)


_SCALARS = (type(None), bool, int, float, str)


def validate_shorthand(item: Any) -> None:
    """
    Check a positional filter `[key, operator, value, not?]`.

    Raises:
        BrunoQueryValidationError: If the arity or key is wrong.
    """
    errors: List[str] = []
    if not 3 <= len(item) <= 4:
        errors.append(
            f"filter shorthand needs 3 or 4 elements, got {len(item)}."
        )
    elif not isinstance(item[0], str) or not item[0]:
        errors.append("filter shorthand key must be a non-empty string.")
    if errors:
        raise BrunoQueryValidationError(errors, item)


def validate_sort_key(key: Any) -> None:
    """Sort rules need a non-empty string key."""
    if not isinstance(key, str) or not key:
        raise BrunoQueryValidationError(
            [f"sort key must be a non-empty string, got {key!r}."], key
        )


def validate_optional(payload: Any) -> None:
    """
    Check an optional-parameter payload.

    The payload must be a mapping or a list of mappings. Keys are strings
    at every level; leaves are null, booleans, numbers, strings or lists
    of those. Inside a list of mappings a nested mapping may only hold
    scalars: the indexed `key[i][name]=value` form carries one level.

    Raises:
        BrunoQueryValidationError: Listing every offending path.
    """
    errors: List[str] = []

    if isinstance(payload, dict):
        _validate_mapping(payload, "optional", errors)
    elif isinstance(payload, list):
        for index, item in enumerate(payload):
            if isinstance(item, dict):
                _validate_mapping(item, f"optional[{index}]", errors, flat_nested=True)
            else:
                errors.append(f"optional[{index}] must be a mapping.")
    else:
        errors.append("optional must be a mapping or a list of mappings.")

    if errors:
        raise BrunoQueryValidationError(errors, payload)


def _validate_mapping(
    mapping: dict, path: str, errors: List[str], flat_nested: bool = False
) -> None:
    for key, value in mapping.items():
        if not isinstance(key, str):
            errors.append(f"{path}: key {key!r} must be a string.")
            continue
        current = f"{path}.{key}"
        if isinstance(value, dict):
            if flat_nested:
                _validate_flat(value, current, errors)
            else:
                _validate_mapping(value, current, errors)
        elif isinstance(value, (list, tuple)):
            for element in value:
                if not isinstance(element, _SCALARS):
                    errors.append(f"{current}: list elements must be scalars.")
                    break
        elif not isinstance(value, _SCALARS):
            errors.append(
                f"{current}: unsupported value type {type(value).__name__}."
            )


def _validate_flat(mapping: dict, path: str, errors: List[str]) -> None:
    for key, value in mapping.items():
        if not isinstance(key, str):
            errors.append(f"{path}: key {key!r} must be a string.")
        elif not isinstance(value, _SCALARS):
            errors.append(
                f"{path}.{key}: nested values in a list of mappings must be scalars."
            )
