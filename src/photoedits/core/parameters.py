"""
Parameters - Effect parameter descriptors.

A layer's parameters are a mapping of name -> ParameterDescriptor. The
descriptor keeps the schema part (range, step) next to the bound value so
partial updates can change values without losing slider metadata.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, TypeAlias

from photoedits.core.errors import InvalidInput


ParameterValue: TypeAlias = float | int | bool | str

_HEX_COLOUR = re.compile(r"^#[0-9a-fA-F]{6}$")

MAX_STRING_LENGTH = 64


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(slots=True)
class ParameterDescriptor:
    """
    One effect parameter.

    Attributes:
        value: Number, boolean, ``#rrggbb`` colour or short string
        range: (min, max) for numeric values, otherwise None
        step: Slider step for numeric values
    """
    value: ParameterValue
    range: tuple[float, float] | None = None
    step: float | None = None

    def __post_init__(self) -> None:
        if _is_number(self.value):
            if self.range is not None:
                lo, hi = self.range
                if lo > hi:
                    raise InvalidInput(f"Invalid range {self.range}")
                self.range = (lo, hi)
        elif isinstance(self.value, bool):
            self.range = None
        elif isinstance(self.value, str):
            if len(self.value) > MAX_STRING_LENGTH:
                raise InvalidInput("Parameter strings are limited to 64 characters")
            self.range = None
        else:
            raise InvalidInput(f"Unsupported parameter value type: {type(self.value).__name__}")

    @property
    def is_numeric(self) -> bool:
        return _is_number(self.value)

    @property
    def is_colour(self) -> bool:
        return isinstance(self.value, str) and bool(_HEX_COLOUR.match(self.value))

    def copy(self) -> ParameterDescriptor:
        return ParameterDescriptor(value=self.value, range=self.range, step=self.step)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"value": self.value}
        if self.range is not None:
            data["range"] = list(self.range)
        if self.step is not None:
            data["step"] = self.step
        return data

    @classmethod
    def from_any(cls, config: Any) -> ParameterDescriptor:
        """
        Build a descriptor from a descriptor, a ``{value, range, step}``
        mapping, or a bare value.

        ``valueStep`` is accepted as an alias of ``step``.
        """
        if isinstance(config, ParameterDescriptor):
            return config.copy()
        if isinstance(config, Mapping):
            if "value" not in config:
                raise InvalidInput("Parameter descriptor requires a 'value'")
            rng = config.get("range")
            step = config.get("step", config.get("valueStep"))
            return cls(
                value=config["value"],
                range=tuple(rng) if rng is not None else None,
                step=step,
            )
        return cls(value=config)


Parameters: TypeAlias = dict[str, ParameterDescriptor]


def clone_parameters(parameters: Mapping[str, Any] | None) -> Parameters:
    """Deep copy a parameter map, normalising every entry to a descriptor."""
    if not parameters:
        return {}
    return {str(name): ParameterDescriptor.from_any(config) for name, config in parameters.items()}


def parameter_values(parameters: Mapping[str, Any] | None) -> dict[str, Any]:
    """Flatten descriptors to ``{name: value}`` as consumed by effect functions."""
    if not parameters:
        return {}
    values = {}
    for name, config in parameters.items():
        if isinstance(config, ParameterDescriptor):
            values[name] = config.value
        elif isinstance(config, Mapping):
            values[name] = config.get("value")
        else:
            values[name] = config
    return values


def coerce_value(descriptor: ParameterDescriptor, value: Any) -> ParameterValue:
    """
    Convert an incoming value to the descriptor's type.

    Numbers are accepted as int/float or numeric strings. The range is not
    enforced here: effects clamp to their own working domain.
    """
    current = descriptor.value
    if isinstance(current, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if _is_number(current):
        if isinstance(value, bool):
            raise InvalidInput("Expected a number, got a boolean")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise InvalidInput(f"Expected a number, got {value!r}") from None
        if isinstance(current, int) and number.is_integer():
            return int(number)
        return number
    if not isinstance(value, str):
        raise InvalidInput(f"Expected a string, got {value!r}")
    if len(value) > MAX_STRING_LENGTH:
        raise InvalidInput("Parameter strings are limited to 64 characters")
    return value
