"""
Tests for effect parameter descriptors.
"""

import pytest

from photoedits.core.errors import InvalidInput
from photoedits.core.parameters import (
    ParameterDescriptor,
    clone_parameters,
    coerce_value,
    parameter_values,
)


class TestParameterDescriptor:
    """Tests for ParameterDescriptor."""

    def test_numeric(self):
        descriptor = ParameterDescriptor(value=5, range=[0, 10], step=1)
        assert descriptor.is_numeric
        assert descriptor.range == (0, 10)

    def test_bad_range(self):
        with pytest.raises(InvalidInput, match="Invalid range"):
            ParameterDescriptor(value=1, range=(5, 0))

    def test_bool_drops_range(self):
        descriptor = ParameterDescriptor(value=True, range=(0, 1))
        assert descriptor.range is None
        assert not descriptor.is_numeric

    def test_colour_string(self):
        assert ParameterDescriptor(value="#aabbcc").is_colour
        assert not ParameterDescriptor(value="red").is_colour

    def test_long_string_rejected(self):
        with pytest.raises(InvalidInput, match="64 characters"):
            ParameterDescriptor(value="x" * 65)

    def test_unsupported_type(self):
        with pytest.raises(InvalidInput, match="Unsupported"):
            ParameterDescriptor(value=[1, 2])

    def test_from_any_forms(self):
        assert ParameterDescriptor.from_any(3).value == 3
        mapped = ParameterDescriptor.from_any({"value": 2, "range": [0, 4], "valueStep": 0.5})
        assert mapped == ParameterDescriptor(value=2, range=(0, 4), step=0.5)
        with pytest.raises(InvalidInput, match="requires a 'value'"):
            ParameterDescriptor.from_any({"range": [0, 1]})

    def test_to_dict(self):
        descriptor = ParameterDescriptor(value=1.5, range=(0, 2), step=0.1)
        assert descriptor.to_dict() == {"value": 1.5, "range": [0, 2], "step": 0.1}


class TestParameterMaps:
    """Tests for cloning and flattening parameter maps."""

    def test_clone_is_deep(self):
        original = {"a": ParameterDescriptor(value=1, range=(0, 2))}
        copy = clone_parameters(original)
        copy["a"].value = 2
        assert original["a"].value == 1

    def test_clone_empty(self):
        assert clone_parameters(None) == {}

    def test_values(self):
        params = {
            "a": ParameterDescriptor(value=1),
            "b": {"value": True},
            "c": "#ffffff",
        }
        assert parameter_values(params) == {"a": 1, "b": True, "c": "#ffffff"}


class TestCoerceValue:
    """Tests for coerce_value."""

    def test_numbers(self):
        descriptor = ParameterDescriptor(value=10, range=(0, 100))
        assert coerce_value(descriptor, "12") == 12
        assert isinstance(coerce_value(descriptor, 12.0), int)
        assert coerce_value(descriptor, 12.5) == 12.5

    def test_range_not_enforced(self):
        descriptor = ParameterDescriptor(value=10, range=(0, 100))
        assert coerce_value(descriptor, 500) == 500

    def test_number_rejects_bool_and_text(self):
        descriptor = ParameterDescriptor(value=1.0)
        with pytest.raises(InvalidInput, match="boolean"):
            coerce_value(descriptor, True)
        with pytest.raises(InvalidInput, match="Expected a number"):
            coerce_value(descriptor, "abc")

    def test_booleans(self):
        descriptor = ParameterDescriptor(value=False)
        assert coerce_value(descriptor, "true") is True
        assert coerce_value(descriptor, 0) is False

    def test_strings(self):
        descriptor = ParameterDescriptor(value="#000000")
        assert coerce_value(descriptor, "#ffffff") == "#ffffff"
        with pytest.raises(InvalidInput, match="Expected a string"):
            coerce_value(descriptor, 5)
