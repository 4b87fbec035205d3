"""
Mocku Resolved Values

The value model shared by the resolver, the converter and the template
engine. Resolved values are plain JSON-compatible Python objects; this
module classifies them into explicit variants and owns the JSON text
conventions (int64 fidelity, compact rendering, strict serialization).
"""

import json
from enum import Enum
from typing import Any, Optional

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class TemplateRenderError(ValueError):
    """Raised when a rendered JSON document cannot be serialized."""


class ValueKind(Enum):
    """Variants of a resolved template value."""

    NULL = 'null'
    BOOL = 'bool'
    INT = 'int'
    FLOAT = 'float'
    STRING = 'string'
    ARRAY = 'array'
    OBJECT = 'object'


class _NotFound:
    """Marker for a reference that did not resolve."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'NOT_FOUND'

    def __bool__(self) -> bool:
        return False


NOT_FOUND = _NotFound()


def kind_of(value: Any) -> ValueKind:
    """
    Classify a resolved value.

    Args:
        value: JSON-compatible Python value

    Returns:
        The matching ValueKind

    Raises:
        TypeError: If the value is not JSON-compatible
    """
    if value is None:
        return ValueKind.NULL
    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, int):
        return ValueKind.INT
    if isinstance(value, float):
        return ValueKind.FLOAT
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    if isinstance(value, dict):
        return ValueKind.OBJECT
    raise TypeError(f"Unsupported template value type: {type(value).__name__}")


def _parse_int(literal: str):
    number = int(literal)
    if INT64_MIN <= number <= INT64_MAX:
        return number
    return float(literal)


def _reject_constant(name: str):
    raise ValueError(f"Non-standard JSON constant: {name}")


def loads_json(text: str) -> Any:
    """
    Parse JSON text keeping integral numbers as int64 integers.

    Integral literals outside the int64 range become floats. NaN and
    Infinity literals are rejected.

    Raises:
        ValueError: If the text is not valid JSON (json.JSONDecodeError
            is a ValueError subclass)
    """
    return json.loads(text, parse_int=_parse_int, parse_constant=_reject_constant)


def number_text(value: Any) -> str:
    """JSON text form of an int or float (12 -> "12", 12.5 -> "12.5")."""
    return json.dumps(value)


def compact_json(value: Any) -> str:
    """Compact JSON text, as used for structured values inside strings."""
    return json.dumps(value, separators=(',', ':'), ensure_ascii=False)


def to_text(value: Any) -> str:
    """
    String form of a resolved value for partial-string substitution.

    Booleans are lower-case, null is the empty string and arrays/objects
    are rendered as compact JSON.
    """
    kind = kind_of(value)
    if kind is ValueKind.NULL:
        return ''
    if kind is ValueKind.BOOL:
        return 'true' if value else 'false'
    if kind in (ValueKind.INT, ValueKind.FLOAT):
        return number_text(value)
    if kind is ValueKind.STRING:
        return value
    return compact_json(value)


def dumps(value: Any, indent: Optional[int] = 2) -> str:
    """
    Serialize a rendered document.

    Raises:
        TemplateRenderError: If the document holds values JSON cannot
            represent (non-finite floats, foreign objects)
    """
    try:
        return json.dumps(value, indent=indent, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise TemplateRenderError(f"Rendered document is not serializable: {e}") from e
