"""
Colour effects - per-pixel tone adjustments.

All functions take ``(raster, params)`` and write into ``raster.pixels``
in place. Alpha is left untouched.
"""

from __future__ import annotations

from typing import Any, Mapping

import numpy as np

from photoedits.core.raster import Raster
from photoedits.effects.common import clamp, number, round_half_up, saturate


SEPIA_MATRIX = np.array(
    [
        [0.393, 0.769, 0.189],
        [0.349, 0.686, 0.168],
        [0.272, 0.534, 0.131],
    ],
    dtype=np.float32,
)


def greyscale(raster: Raster, params: Mapping[str, Any] | None = None) -> None:
    """Replace RGB with the average of the three channels."""
    rgb = raster.pixels[..., :3].astype(np.float32)
    avg = rgb.sum(axis=-1, keepdims=True) / np.float32(3.0)
    raster.pixels[..., :3] = saturate(np.broadcast_to(avg, rgb.shape))


def sepia(raster: Raster, params: Mapping[str, Any] | None = None) -> None:
    """Blend toward the classic sepia matrix by ``intensity`` in [0, 1]."""
    params = params or {}
    intensity = np.float32(clamp(number(params, "intensity", 1.0), 0.0, 1.0))

    rgb = raster.pixels[..., :3].astype(np.float32)
    toned = np.minimum(rgb @ SEPIA_MATRIX.T, np.float32(255.0))
    raster.pixels[..., :3] = saturate(rgb * (np.float32(1.0) - intensity) + toned * intensity)


def film_effects(raster: Raster, params: Mapping[str, Any] | None = None) -> None:
    """
    Crush channels below ``contrast`` to zero, then push red up and blue
    down by ``colourPalette``.
    """
    params = params or {}
    contrast = clamp(number(params, "contrast", 0.0), 0.0, 255.0)
    palette = clamp(number(params, "colourPalette", 0.0), -100.0, 100.0)

    rgb = raster.pixels[..., :3].astype(np.float32)
    rgb[rgb < contrast] = 0.0
    rgb[..., 0] += palette
    rgb[..., 2] -= palette
    raster.pixels[..., :3] = saturate(rgb)


def hsv_adjustment(raster: Raster, params: Mapping[str, Any] | None = None) -> None:
    """
    Rotate hue by ``hue`` degrees and scale saturation and brightness by
    ``saturation`` / ``brightness`` percent.
    """
    params = params or {}
    hue_shift = number(params, "hue", 0.0)
    saturation_scale = number(params, "saturation", 100.0) / 100.0
    brightness_scale = number(params, "brightness", 100.0) / 100.0

    rgb = raster.pixels[..., :3].astype(np.float32) / np.float32(255.0)
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]

    cmax = rgb.max(axis=-1)
    cmin = rgb.min(axis=-1)
    delta = cmax - cmin
    safe_delta = np.where(delta == 0, np.float32(1.0), delta)

    hue = np.select(
        [cmax == r, cmax == g],
        [np.mod((g - b) / safe_delta, 6.0), (b - r) / safe_delta + 2.0],
        default=(r - g) / safe_delta + 4.0,
    )
    hue = np.where(delta == 0, 0.0, hue * 60.0).astype(np.float32)
    sat = np.where(cmax == 0, 0.0, delta / np.where(cmax == 0, 1.0, cmax)).astype(np.float32)
    val = cmax

    hue = np.mod(hue + hue_shift + 360.0, 360.0).astype(np.float32)
    sat = np.clip(sat * saturation_scale, 0.0, 1.0).astype(np.float32)
    val = np.clip(val * brightness_scale, 0.0, 1.0).astype(np.float32)

    c = val * sat
    x = c * (1.0 - np.abs(np.mod(hue / 60.0, 2.0) - 1.0))
    m = val - c
    zero = np.zeros_like(c)

    sector = np.clip((hue // 60.0).astype(np.int64), 0, 5)
    choices_r = [c, x, zero, zero, x, c]
    choices_g = [x, c, c, x, zero, zero]
    choices_b = [zero, zero, x, c, c, x]
    out_r = np.choose(sector, choices_r)
    out_g = np.choose(sector, choices_g)
    out_b = np.choose(sector, choices_b)

    out = np.stack([out_r, out_g, out_b], axis=-1) + m[..., None]
    raster.pixels[..., :3] = saturate(round_half_up(out * np.float32(255.0)))
