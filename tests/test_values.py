"""
Tests for Mocku resolved values.

Tests value classification, text rendering and strict JSON handling.
"""

import pytest

from mocku.template.values import (
    NOT_FOUND,
    TemplateRenderError,
    ValueKind,
    dumps,
    kind_of,
    loads_json,
    to_text
)


class TestKindOf:
    """Test value classification."""

    def test_scalar_kinds(self):
        """Test each scalar maps to its variant."""
        assert kind_of(None) is ValueKind.NULL
        assert kind_of(True) is ValueKind.BOOL
        assert kind_of(3) is ValueKind.INT
        assert kind_of(3.5) is ValueKind.FLOAT
        assert kind_of("x") is ValueKind.STRING

    def test_bool_is_not_int(self):
        """Test booleans are not classified as integers."""
        assert kind_of(False) is ValueKind.BOOL

    def test_structured_kinds(self):
        """Test arrays and objects."""
        assert kind_of([1, 2]) is ValueKind.ARRAY
        assert kind_of((1, 2)) is ValueKind.ARRAY
        assert kind_of({'a': 1}) is ValueKind.OBJECT

    def test_unsupported_type(self):
        """Test foreign objects are rejected."""
        with pytest.raises(TypeError):
            kind_of(object())


class TestNotFound:
    """Test the NOT_FOUND marker."""

    def test_distinct_from_null(self):
        """Test NOT_FOUND is not None and is falsy."""
        assert NOT_FOUND is not None
        assert not NOT_FOUND
        assert repr(NOT_FOUND) == 'NOT_FOUND'


class TestLoadsJson:
    """Test JSON parsing with int64 fidelity."""

    def test_integral_numbers_stay_int(self):
        """Test integral literals parse as int."""
        data = loads_json('{"id": 42, "price": 42.0}')

        assert data['id'] == 42
        assert isinstance(data['id'], int)
        assert isinstance(data['price'], float)

    def test_int64_boundary(self):
        """Test the int64 maximum stays an int."""
        assert loads_json('9223372036854775807') == 9223372036854775807

    def test_overflow_becomes_float(self):
        """Test integers beyond int64 become floats."""
        value = loads_json('9223372036854775808')

        assert isinstance(value, float)

    def test_rejects_nan(self):
        """Test non-standard constants are invalid."""
        with pytest.raises(ValueError):
            loads_json('{"x": NaN}')


class TestToText:
    """Test string forms used in partial substitution."""

    def test_scalars(self):
        """Test scalar text forms."""
        assert to_text(None) == ''
        assert to_text(True) == 'true'
        assert to_text(False) == 'false'
        assert to_text(7) == '7'
        assert to_text(2.5) == '2.5'
        assert to_text('abc') == 'abc'

    def test_structured_values_are_compact_json(self):
        """Test arrays and objects render as compact JSON."""
        assert to_text([1, "a"]) == '[1,"a"]'
        assert to_text({'k': True}) == '{"k":true}'


class TestDumps:
    """Test strict serialization."""

    def test_indented_output(self):
        """Test default indent of 2."""
        assert dumps({'a': 1}) == '{\n  "a": 1\n}'

    def test_compact_output(self):
        """Test indent None gives single-line JSON."""
        assert dumps({'a': [1, 2]}, indent=None) == '{"a": [1, 2]}'

    def test_unicode_preserved(self):
        """Test non-ASCII text is not escaped."""
        assert dumps('café', indent=None) == '"café"'

    def test_non_finite_float_raises(self):
        """Test infinity cannot be serialized."""
        with pytest.raises(TemplateRenderError):
            dumps({'x': float('inf')})

    def test_foreign_object_raises(self):
        """Test foreign objects cannot be serialized."""
        with pytest.raises(TemplateRenderError):
            dumps({'x': object()})
