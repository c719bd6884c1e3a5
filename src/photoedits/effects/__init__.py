"""
Effects module - In-place pixel effects and their registry.

Every effect has the signature ``apply(raster, params) -> None`` and
mutates the raster it is given.
"""

from photoedits.effects.registry import (
    EffectParam,
    EffectSpec,
    default_parameters,
    get_categories,
    get_effect,
    get_effect_registry,
    get_effects_by_category,
)

__all__ = [
    "EffectParam",
    "EffectSpec",
    "default_parameters",
    "get_categories",
    "get_effect",
    "get_effect_registry",
    "get_effects_by_category",
]
