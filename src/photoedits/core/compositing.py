"""
Compositing - Fold the effect layer stack over the base raster.

Each renderable layer runs its effect on a copy of the current result and
is blended back by opacity:

    out.rgb = out.rgb * (1 - opacity) + effected.rgb * opacity
    out.a   = 255   (only for layers actually blended)

The same function serves the in-process path, the render worker and the
preview pass. Layers may be live ``Layer`` objects or the plain dicts
produced by ``Layer.to_payload()``.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

import numpy as np

from photoedits.core.errors import RenderFailed
from photoedits.core.layers import Layer, clamp_opacity
from photoedits.core.raster import Raster


logger = logging.getLogger(__name__)


def _layer_fields(layer: Layer | Mapping[str, Any]) -> tuple[str | None, bool, float, dict[str, Any]]:
    if isinstance(layer, Layer):
        return layer.effect_id, layer.visible, layer.opacity, layer.parameter_values()
    params = layer.get("parameters") or {}
    values = {
        name: (config.get("value") if isinstance(config, Mapping) else config)
        for name, config in params.items()
    }
    return (
        layer.get("effect_id"),
        bool(layer.get("visible", True)),
        clamp_opacity(layer.get("opacity", 1.0)),
        values,
    )


def is_renderable(layer: Layer | Mapping[str, Any]) -> bool:
    effect_id, visible, opacity, _ = _layer_fields(layer)
    return visible and opacity > 0 and effect_id is not None


def has_renderable_layers(layers: Iterable[Layer | Mapping[str, Any]]) -> bool:
    """True if at least one layer would be applied by :func:`compose`."""
    return any(is_renderable(layer) for layer in layers)


def compose(
    base: Raster,
    layers: Iterable[Layer | Mapping[str, Any]],
    registry: Mapping[str, Any] | None = None,
    *,
    strict: bool = False,
    errors: list[tuple[int, str, Exception]] | None = None,
) -> Raster:
    """
    Composite ``layers`` (bottom -> top) over a copy of ``base``.

    Args:
        base: Source raster, never modified
        layers: Layer objects or payload dicts
        registry: Optional id -> EffectSpec mapping (defaults to the global one)
        strict: Raise RenderFailed on effect errors instead of skipping the layer
        errors: Optional list collecting (layer index, effect id, exception)
            for every skipped failing layer

    Returns:
        A new raster of the base's size. Alpha becomes 255 once any layer
        is blended; with nothing applied the result equals the base
    """
    from photoedits.effects.registry import get_effect

    out = base.clone()
    if out.is_empty:
        return out

    for index, layer in enumerate(layers):
        effect_id, visible, opacity, params = _layer_fields(layer)
        if not visible or opacity <= 0 or effect_id is None:
            continue

        spec = registry.get(effect_id) if registry is not None else get_effect(effect_id)
        if spec is None:
            logger.warning("Skipping layer %d: unknown effect '%s'", index, effect_id)
            continue

        effected = out.clone()
        try:
            spec.apply(effected, params)
        except Exception as e:
            if strict:
                raise RenderFailed(f"Effect '{effect_id}' failed: {e}") from e
            logger.error("Effect '%s' failed on layer %d: %s", effect_id, index, e)
            if errors is not None:
                errors.append((index, effect_id, e))
            continue

        if opacity >= 1.0:
            out.pixels[..., :3] = effected.pixels[..., :3]
        else:
            op = np.float32(opacity)
            blended = (
                out.pixels[..., :3].astype(np.float32) * (np.float32(1.0) - op)
                + effected.pixels[..., :3].astype(np.float32) * op
            )
            out.pixels[..., :3] = np.clip(np.rint(blended), 0, 255).astype(np.uint8)
        out.pixels[..., 3] = 255

    return out
