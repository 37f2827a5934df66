"""
Operator codec.

Maps the short wire codes (`ct`, `gte`, ...) to `QueryOperator` members.
Decoding never fails: anything unrecognized is treated as `equals`, so a
malformed code does not survive a round trip.
"""

from __future__ import annotations

from typing import Dict, Optional, Union

from .model import QueryOperator

# Codes plus the camelCase names client code tends to send.
OPERATOR_CODES: Dict[str, QueryOperator] = {op.value: op for op in QueryOperator}
OPERATOR_CODES.update({
    "contains": QueryOperator.CONTAINS,
    "startsWith": QueryOperator.STARTS_WITH,
    "endsWith": QueryOperator.ENDS_WITH,
    "equals": QueryOperator.EQUALS,
    "greaterThan": QueryOperator.GREATER_THAN,
    "greaterThanOrEqual": QueryOperator.GREATER_THAN_OR_EQUAL,
    "greaterThanEqual": QueryOperator.GREATER_THAN_OR_EQUAL,
    "lessThan": QueryOperator.LESS_THAN,
    "lessThanOrEqual": QueryOperator.LESS_THAN_OR_EQUAL,
    "lessThanEqual": QueryOperator.LESS_THAN_OR_EQUAL,
    "between": QueryOperator.BETWEEN,
})


def decode_operator(code: Optional[Union[QueryOperator, str]]) -> QueryOperator:
    """Operator for a wire code; unknown or missing codes mean `equals`."""
    if isinstance(code, QueryOperator):
        return code
    if not code:
        return QueryOperator.EQUALS
    return OPERATOR_CODES.get(code, QueryOperator.EQUALS)


def encode_operator(operator: Union[QueryOperator, str]) -> str:
    """Wire code for an operator."""
    return decode_operator(operator).value
