"""
Effect Registry - The eleven built-in effects with their parameter specs.

This module defines EffectSpec and EffectParam dataclasses describing each
effect and its default parameters. The registry maps a stable effect id to
the effect function; it is the only binding the render worker uses, since
jobs carry ``effect_id + params`` rather than callables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from photoedits.core.parameters import ParameterDescriptor, Parameters
from photoedits.effects.colour import film_effects, greyscale, hsv_adjustment, sepia
from photoedits.effects.edges import (
    prewitt_edges,
    prewitt_edges_coloured_directions,
    sobel_edges,
    sobel_edges_coloured_directions,
)
from photoedits.effects.stylize import painted_stylization, points_in_space, vectors_in_space


EffectFunction = Callable[..., None]


@dataclass
class EffectParam:
    """
    Specification for an effect parameter.

    Attributes:
        name: Parameter name as read by the effect function
        default: Default value (number, bool or string)
        min_value: Minimum slider value (numbers only)
        max_value: Maximum slider value (numbers only)
        step: Slider step (numbers only)
        description: Optional description for tooltips
    """
    name: str
    default: Any = 0
    min_value: float | None = None
    max_value: float | None = None
    step: float | None = None
    description: str = ""

    def to_descriptor(self) -> ParameterDescriptor:
        rng = None
        if self.min_value is not None and self.max_value is not None:
            rng = (self.min_value, self.max_value)
        return ParameterDescriptor(value=self.default, range=rng, step=self.step)


@dataclass
class EffectSpec:
    """
    Specification for an effect.

    Attributes:
        id: Stable effect identifier
        name: Display name, also the default layer name
        apply: ``(raster, params) -> None``, writes in place
        category: Effect category for grouping
        params: Parameter specifications
        description: Effect description
    """
    id: str
    name: str
    apply: EffectFunction
    category: str
    params: list[EffectParam] = field(default_factory=list)
    description: str = ""

    def default_parameters(self) -> Parameters:
        return {param.name: param.to_descriptor() for param in self.params}


_EFFECTS: dict[str, EffectSpec] = {}

# Alternate spellings accepted for effect ids
_ALIASES: dict[str, str] = {
    "prewittEdges": "prewireEdges",
    "prewittEdgesColouredDirections": "prewireEdgesColouredDirections",
}


def _register(spec: EffectSpec) -> EffectSpec:
    """Register an effect specification."""
    _EFFECTS[spec.id] = spec
    return spec


def get_effect_registry() -> dict[str, EffectSpec]:
    """Get the complete effect registry."""
    return _EFFECTS.copy()


def get_effect(effect_id: str | None) -> EffectSpec | None:
    """Get a specific effect by id (aliases resolved)."""
    if effect_id is None:
        return None
    return _EFFECTS.get(_ALIASES.get(effect_id, effect_id))


def default_parameters(effect_id: str) -> Parameters:
    """Fresh default descriptors for an effect; empty for unknown ids."""
    spec = get_effect(effect_id)
    return spec.default_parameters() if spec is not None else {}


def get_effects_by_category(category: str) -> list[EffectSpec]:
    """Get all effects in a category."""
    return [e for e in _EFFECTS.values() if e.category == category]


def get_categories() -> list[str]:
    """Get list of all effect categories."""
    return sorted(set(e.category for e in _EFFECTS.values()))


# =============================================================================
# COLOUR
# =============================================================================

_register(EffectSpec(
    id="greyscale",
    name="Greyscale",
    apply=greyscale,
    category="Colour",
    description="Average the red, green and blue channels",
))

_register(EffectSpec(
    id="sepia",
    name="Sepia",
    apply=sepia,
    category="Colour",
    description="Warm brown tone",
    params=[
        EffectParam("intensity", default=1, min_value=0, max_value=1, step=0.01,
                    description="Blend toward the sepia tone"),
    ],
))

_register(EffectSpec(
    id="filmEffects",
    name="Film Effects",
    apply=film_effects,
    category="Colour",
    description="Crushed shadows and a red/blue colour cast",
    params=[
        EffectParam("contrast", default=0, min_value=0, max_value=255, step=1,
                    description="Channels below this value become black"),
        EffectParam("colourPalette", default=0, min_value=-100, max_value=100, step=1,
                    description="Shift toward red (positive) or blue (negative)"),
    ],
))

_register(EffectSpec(
    id="hsvAdjustment",
    name="HSV Adjustment",
    apply=hsv_adjustment,
    category="Colour",
    description="Hue rotation with saturation and brightness scaling",
    params=[
        EffectParam("hue", default=0, min_value=-180, max_value=180, step=1,
                    description="Hue rotation in degrees"),
        EffectParam("saturation", default=100, min_value=0, max_value=200, step=1,
                    description="Saturation in percent"),
        EffectParam("brightness", default=100, min_value=0, max_value=200, step=1,
                    description="Brightness in percent"),
    ],
))

# =============================================================================
# STYLIZE
# =============================================================================

_register(EffectSpec(
    id="paintedStylization",
    name="Painted Stylization",
    apply=painted_stylization,
    category="Stylize",
    description="Short directional brush strokes that stop at edges",
    params=[
        EffectParam("width", default=5, min_value=1, max_value=150, step=1),
        EffectParam("length", default=5, min_value=1, max_value=250, step=1),
        EffectParam("angle", default=145, min_value=0, max_value=360, step=1),
        EffectParam("sampling", default=10, min_value=5, max_value=10000, step=1,
                    description="Pixels between stroke origins"),
        EffectParam("edgeThreshold", default=100, min_value=1, max_value=255, step=1),
        EffectParam("overwritePixels", default=False,
                    description="Let strokes paint over other sample points"),
        EffectParam("overwriteEdges", default=False,
                    description="Let strokes cross detected edges"),
    ],
))

_register(EffectSpec(
    id="pointsInSpace",
    name="Points In Space",
    apply=points_in_space,
    category="Stylize",
    description="White points on a regular grid",
    params=[
        EffectParam("sampling", default=10, min_value=2, max_value=100, step=1),
    ],
))

_register(EffectSpec(
    id="vectorsInSpace",
    name="Vectors In Space",
    apply=vectors_in_space,
    category="Stylize",
    description="Oriented line strokes of one colour",
    params=[
        EffectParam("width", default=1, min_value=1, max_value=500, step=1),
        EffectParam("length", default=3, min_value=1, max_value=1000, step=1),
        EffectParam("angle", default=0, min_value=0, max_value=360, step=1),
        EffectParam("sampling", default=10, min_value=2, max_value=1000000, step=1),
        EffectParam("R", default=255, min_value=0, max_value=255, step=1),
        EffectParam("G", default=255, min_value=0, max_value=255, step=1),
        EffectParam("B", default=255, min_value=0, max_value=255, step=1),
        EffectParam("A", default=255, min_value=0, max_value=255, step=1),
    ],
))

# =============================================================================
# EDGES
# =============================================================================


def _edge_params() -> list[EffectParam]:
    return [
        EffectParam("edgeThreshold", default=50, min_value=0, max_value=255, step=1),
        EffectParam("blackoutBackground", default=True),
        EffectParam("transparentBackground", default=False),
    ]


_register(EffectSpec(
    id="sobelEdges",
    name="Sobel Edges",
    apply=sobel_edges,
    category="Edges",
    description="White Sobel edges",
    params=_edge_params(),
))

_register(EffectSpec(
    id="sobelEdgesColouredDirections",
    name="Sobel Edges (Colour)",
    apply=sobel_edges_coloured_directions,
    category="Edges",
    description="Sobel edges coloured by gradient direction",
    params=_edge_params(),
))

_register(EffectSpec(
    id="prewireEdges",
    name="Prewitt Edges",
    apply=prewitt_edges,
    category="Edges",
    description="White Prewitt edges",
    params=_edge_params(),
))

_register(EffectSpec(
    id="prewireEdgesColouredDirections",
    name="Prewitt Edges (Colour)",
    apply=prewitt_edges_coloured_directions,
    category="Edges",
    description="Prewitt edges coloured by gradient direction",
    params=_edge_params(),
))
