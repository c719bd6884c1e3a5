"""
Layer Stack - Core data structures for the effect layer stack.

Layers are stored bottom -> top. Each layer optionally binds one effect
(by registry id) plus its parameter descriptors; composition folds the
visible layers over the base raster in stored order.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping

from photoedits.core.errors import InvalidInput
from photoedits.core.parameters import (
    Parameters,
    clone_parameters,
    coerce_value,
    parameter_values,
)


_layer_ids = itertools.count(1)


def next_layer_id() -> int:
    """Allocate the next layer id (monotonic for the process lifetime)."""
    return next(_layer_ids)


def reset_layer_ids() -> None:
    """Restart layer id allocation at 1 (for fresh sessions and tests)."""
    global _layer_ids
    _layer_ids = itertools.count(1)


def clamp_opacity(opacity: Any, fallback: float = 1.0) -> float:
    try:
        value = float(opacity)
    except (TypeError, ValueError):
        return fallback
    if value != value:  # NaN
        return fallback
    return min(max(value, 0.0), 1.0)


@dataclass(slots=True)
class Layer:
    """A single effect layer in the stack."""

    id: int
    name: str
    visible: bool = True
    opacity: float = 1.0
    effect_id: str | None = None
    parameters: Parameters = field(default_factory=dict)
    value_step: float = 0.01

    @classmethod
    def create(
        cls,
        *,
        name: str | None = None,
        visible: bool = True,
        opacity: float = 1.0,
    ) -> Layer:
        layer_id = next_layer_id()
        return cls(
            id=layer_id,
            name=name if name is not None else f"Layer {layer_id}",
            visible=bool(visible),
            opacity=clamp_opacity(opacity),
        )

    @property
    def has_effect(self) -> bool:
        return self.effect_id is not None

    @property
    def is_renderable(self) -> bool:
        """True if composition would apply this layer."""
        return self.visible and self.opacity > 0 and self.effect_id is not None

    @property
    def effect(self) -> Callable[..., None] | None:
        """Resolve the bound effect function through the registry."""
        if self.effect_id is None:
            return None
        from photoedits.effects.registry import get_effect

        spec = get_effect(self.effect_id)
        return spec.apply if spec is not None else None

    def parameter_values(self) -> dict[str, Any]:
        return parameter_values(self.parameters)

    def set_effect(
        self,
        effect_id: str | None,
        parameters: Mapping[str, Any] | None = None,
        value_step: float = 0.01,
    ) -> None:
        """Bind an effect, replacing (not merging) the parameter map."""
        self.effect_id = effect_id
        self.parameters = clone_parameters(parameters) if effect_id is not None else {}
        self.value_step = float(value_step)

    def set_effect_params(self, partial: Mapping[str, Any]) -> list[str]:
        """
        Update ``value`` for the named parameters.

        Accepts ``{name: {"value": v}}`` or ``{name: v}``. Unknown names are
        ignored. Returns the names that were updated. Nothing changes if any
        value fails to coerce.
        """
        coerced = {}
        for name, config in partial.items():
            descriptor = self.parameters.get(name)
            if descriptor is None:
                continue
            value = config.get("value") if isinstance(config, Mapping) else config
            coerced[name] = coerce_value(descriptor, value)
        for name, value in coerced.items():
            self.parameters[name].value = value
        return list(coerced)

    def clone(self) -> Layer:
        """Deep copy that keeps the same id."""
        return Layer(
            id=self.id,
            name=self.name,
            visible=self.visible,
            opacity=self.opacity,
            effect_id=self.effect_id,
            parameters=clone_parameters(self.parameters),
            value_step=self.value_step,
        )

    def to_payload(self) -> dict[str, Any]:
        """Plain-data form consumed by the render worker."""
        return {
            "effect_id": self.effect_id,
            "visible": self.visible,
            "opacity": self.opacity,
            "parameters": self.parameter_values(),
        }


class LayerManager:
    """An ordered stack of layers (bottom -> top) with a selection."""

    def __init__(self, layers: list[Layer] | None = None) -> None:
        self._layers: list[Layer] = list(layers) if layers else []
        self._selected_index: int | None = len(self._layers) - 1 if self._layers else None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def layers(self) -> list[Layer]:
        """Read-only view (a new list) of the stack, bottom first."""
        return list(self._layers)

    @property
    def renderable_layers(self) -> list[Layer]:
        return [layer for layer in self._layers if layer.is_renderable]

    @property
    def has_renderable_layers(self) -> bool:
        return any(layer.is_renderable for layer in self._layers)

    @property
    def selected_index(self) -> int | None:
        return self._selected_index

    @selected_index.setter
    def selected_index(self, index: int | None) -> None:
        self.set_selected(index)

    @property
    def selected_layer(self) -> Layer | None:
        if self._selected_index is None:
            return None
        return self._layers[self._selected_index]

    def __len__(self) -> int:
        return len(self._layers)

    def __iter__(self) -> Iterator[Layer]:
        yield from list(self._layers)

    def __getitem__(self, index: int) -> Layer:
        return self.get_layer(index)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LayerManager):
            return NotImplemented
        return self._layers == other._layers and self._selected_index == other._selected_index

    def __repr__(self) -> str:
        return f"LayerManager({len(self._layers)} layers, selected={self._selected_index})"

    def _index(self, index: Any) -> int:
        try:
            idx = int(index)
        except (TypeError, ValueError):
            raise InvalidInput(f"Invalid layer index: {index!r}") from None
        if idx < 0 or idx >= len(self._layers):
            raise InvalidInput(f"Layer index {index} does not exist")
        return idx

    def get_layer(self, index: int) -> Layer:
        return self._layers[self._index(index)]

    def get_by_id(self, layer_id: int) -> Layer | None:
        for layer in self._layers:
            if layer.id == layer_id:
                return layer
        return None

    def index_of(self, layer_id: int) -> int | None:
        for i, layer in enumerate(self._layers):
            if layer.id == layer_id:
                return i
        return None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_layer(self, name: str | None = None) -> Layer:
        """Append a layer on top and select it."""
        layer = Layer.create(name=name if name is not None else f"Layer {len(self._layers) + 1}")
        self._layers.append(layer)
        self._selected_index = len(self._layers) - 1
        return layer

    def delete_layer(self, index: int) -> Layer:
        """
        Remove a layer. The selection moves to the same position, clamped
        to the new top, or clears when the stack is empty.
        """
        idx = self._index(index)
        removed = self._layers.pop(idx)
        if not self._layers:
            self._selected_index = None
        else:
            self._selected_index = min(idx, len(self._layers) - 1)
        return removed

    def toggle_visibility(self, index: int) -> bool:
        layer = self.get_layer(index)
        layer.visible = not layer.visible
        return layer.visible

    def set_visibility(self, index: int, visible: bool) -> bool:
        layer = self.get_layer(index)
        layer.visible = bool(visible)
        return layer.visible

    def set_opacity(self, index: int, opacity: float) -> float:
        """Set opacity clamped to [0, 1]; non-numeric input keeps the old value."""
        layer = self.get_layer(index)
        layer.opacity = clamp_opacity(opacity, fallback=layer.opacity)
        return layer.opacity

    def add_layer_effect(
        self,
        index: int,
        effect_id: str,
        parameters: Mapping[str, Any] | None = None,
        value_step: float = 0.01,
    ) -> Layer:
        """
        Bind ``effect_id`` to a layer, replacing its parameters.

        When ``parameters`` is None the registry defaults are used.
        """
        from photoedits.effects.registry import default_parameters, get_effect

        layer = self.get_layer(index)
        spec = get_effect(effect_id)
        if spec is None:
            raise InvalidInput(f"Unknown effect: {effect_id}")
        if parameters is None:
            parameters = default_parameters(spec.id)
        layer.set_effect(spec.id, parameters, value_step)
        return layer

    def update_layer_parameters(self, index: int, partial: Mapping[str, Any]) -> Layer:
        layer = self.get_layer(index)
        layer.set_effect_params(partial)
        return layer

    def rename_layer(self, index: int, name: str) -> str:
        layer = self.get_layer(index)
        layer.name = str(name)
        return layer.name

    def move_layer(self, index: int, direction: int) -> int:
        """
        Swap a layer with its neighbour; the selection follows it.

        Raises:
            InvalidInput: If the move would leave the stack
        """
        idx = self._index(index)
        new_index = idx + int(direction)
        if new_index < 0 or new_index >= len(self._layers):
            raise InvalidInput(f"Cannot move layer {idx} by {direction}")
        self._layers[idx], self._layers[new_index] = self._layers[new_index], self._layers[idx]
        self._selected_index = new_index
        return new_index

    def move_layer_up(self, index: int) -> int:
        """Swap with the previous layer (index - 1)."""
        return self.move_layer(index, -1)

    def move_layer_down(self, index: int) -> int:
        """Swap with the next layer (index + 1)."""
        return self.move_layer(index, 1)

    def set_selected(self, index: int | None) -> int | None:
        if index is None:
            self._selected_index = None
            return None
        self._selected_index = self._index(index)
        return self._selected_index

    def clear(self) -> None:
        self._layers = []
        self._selected_index = None

    def clone(self) -> LayerManager:
        """Deep copy of every layer and the selection."""
        clone = LayerManager([layer.clone() for layer in self._layers])
        clone._selected_index = self._selected_index
        return clone

    def to_payload(self) -> list[dict[str, Any]]:
        return [layer.to_payload() for layer in self._layers]
