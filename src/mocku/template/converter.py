"""
Mocku Type Converter

Named conversion functions usable in templates, e.g.
`{{toNumber(request.query.page)}}`. Conversions never raise: values that
cannot be converted degrade to a fixed default (0, 0.0, false, or a
wrapped object).
"""

import logging
import math
import re
from typing import Any, Callable, Dict, List, Optional

from .values import INT64_MAX, INT64_MIN, ValueKind, compact_json, kind_of, loads_json, number_text

logger = logging.getLogger("mocku.template")

TRUE_WORDS = frozenset({'true', '1', 'yes', 'on'})

_INT_RE = re.compile(r'^\s*[+-]?\d+\s*$')
_FLOAT_RE = re.compile(r'^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?\s*$')


def parse_int64(text: str) -> Optional[int]:
    """Parse a decimal integer that fits in int64, else None."""
    if not _INT_RE.match(text):
        return None
    number = int(text)
    if INT64_MIN <= number <= INT64_MAX:
        return number
    return None


def parse_float64(text: str) -> Optional[float]:
    """Parse a finite decimal float, else None."""
    if not _FLOAT_RE.match(text):
        return None
    number = float(text)
    return number if math.isfinite(number) else None


def truncate_to_int64(number: float) -> int:
    """Truncate toward zero, clamped into the int64 range; NaN/inf give 0."""
    if not math.isfinite(number):
        return 0
    return max(INT64_MIN, min(INT64_MAX, int(number)))


def to_bool(value: Any) -> bool:
    kind = kind_of(value)
    if kind is ValueKind.BOOL:
        return value
    if kind in (ValueKind.INT, ValueKind.FLOAT):
        return value != 0
    if kind is ValueKind.STRING:
        # "false", "0", "no", "off" and unrecognized text are all false
        return value.strip().lower() in TRUE_WORDS
    return False


def to_int(value: Any) -> int:
    kind = kind_of(value)
    if kind is ValueKind.BOOL:
        return 1 if value else 0
    if kind is ValueKind.INT:
        return value
    if kind is ValueKind.FLOAT:
        return truncate_to_int64(value)
    if kind is ValueKind.STRING:
        number = parse_int64(value)
        if number is not None:
            return number
        as_float = parse_float64(value)
        return truncate_to_int64(as_float) if as_float is not None else 0
    return 0


def to_float(value: Any) -> float:
    kind = kind_of(value)
    if kind is ValueKind.BOOL:
        return 1.0 if value else 0.0
    if kind is ValueKind.INT:
        return float(value)
    if kind is ValueKind.FLOAT:
        return value if math.isfinite(value) else 0.0
    if kind is ValueKind.STRING:
        number = parse_float64(value)
        return number if number is not None else 0.0
    return 0.0


def to_string(value: Any) -> str:
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


def to_array(value: Any) -> List[Any]:
    kind = kind_of(value)
    if kind is ValueKind.ARRAY:
        return list(value)
    if kind is ValueKind.STRING:
        return [piece.strip() for piece in value.split(',')]
    return [value]


def to_object(value: Any) -> Dict[str, Any]:
    kind = kind_of(value)
    if kind is ValueKind.OBJECT:
        return value
    if kind is ValueKind.STRING:
        try:
            parsed = loads_json(value)
        except ValueError:
            parsed = None
        if isinstance(parsed, dict):
            return parsed
    return {'value': value}


class TypeConverter:
    """
    Apply template conversion functions by name.

    Function names are matched case-insensitively. An unknown name returns
    the value unchanged.

    Example:
        converter = TypeConverter()
        converter.convert('toNumber', '12.9')   # 12
        converter.convert('toArray', 'a, b')    # ['a', 'b']
    """

    FUNCTIONS: Dict[str, Callable[[Any], Any]] = {
        'tobool': to_bool,
        'tonumber': to_int,
        'toint': to_int,
        'tofloat': to_float,
        'tostring': to_string,
        'toarray': to_array,
        'toobject': to_object,
    }

    @classmethod
    def is_function(cls, name: str) -> bool:
        """Check whether a name is a known conversion function."""
        return name.lower() in cls.FUNCTIONS

    def convert(self, function_name: str, value: Any) -> Any:
        """
        Convert a resolved value.

        Args:
            function_name: Conversion function name (e.g. toBool)
            value: Resolved value

        Returns:
            Converted value
        """
        function = self.FUNCTIONS.get(function_name.lower())
        if function is None:
            logger.debug(f"Unknown conversion function {function_name!r}, passing value through")
            return value
        return function(value)
