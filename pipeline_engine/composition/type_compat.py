# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Type Compatibility

Primitive type compatibility and runtime value coercion.
Only string, number and boolean participate; every other type is
incompatible with everything, itself included.
"""

import math
from typing import Any, FrozenSet

PRIMITIVE_TYPES: FrozenSet[str] = frozenset({"string", "number", "boolean"})

# Unordered pairs that may feed each other
_COERCIBLE_PAIRS: FrozenSet[FrozenSet[str]] = frozenset({
    frozenset({"number", "string"}),
    frozenset({"boolean", "number"}),
})


def are_compatible(source_type: str, target_type: str) -> bool:
    """True if a value of source_type can feed a field of target_type (symmetric)"""
    if source_type not in PRIMITIVE_TYPES or target_type not in PRIMITIVE_TYPES:
        return False
    if source_type == target_type:
        return True
    return frozenset({source_type, target_type}) in _COERCIBLE_PAIRS


def _parse_number(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return int(number) if number.is_integer() else number


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def coerce(value: Any, from_type: str, to_type: str) -> Any:
    """
    Coerce value from from_type to to_type.

    Defined conversions:
    - same type: identity
    - number -> string: decimal string
    - string -> number: parsed; non-numeric input yields 0, never raises
    - number -> boolean: 0 is False, anything else True
    - boolean -> string: "true" / "false"
    - boolean -> number: 1 / 0

    Undefined conversions return the value unchanged.
    """
    if from_type == to_type:
        return value

    if from_type == "number" and to_type == "string":
        return _format_number(value)
    if from_type == "string" and to_type == "number":
        return _parse_number(value)
    if from_type == "number" and to_type == "boolean":
        return value != 0
    if from_type == "boolean" and to_type == "string":
        return "true" if value else "false"
    if from_type == "boolean" and to_type == "number":
        return 1 if value else 0

    return value


def runtime_type(value: Any) -> str:
    """Primitive type name of a runtime value"""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return "unknown"
