"""
Image Analysis - Histograms, statistics and pixel colour readouts.

All functions read a Raster (usually the editor's display) and ignore
fully transparent pixels. Luminance uses the Rec. 709 weights.
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np
from numpy.typing import NDArray

from photoedits.core.raster import Raster


LUMA_WEIGHTS = (0.2126, 0.7152, 0.0722)
CHANNELS = ("red", "green", "blue")


def _visible_pixels(raster: Raster) -> NDArray[np.uint8]:
    flat = raster.pixels.reshape(-1, 4)
    return flat[flat[:, 3] != 0]


def luminance(rgb: NDArray) -> NDArray[np.int64]:
    """Rec. 709 luma rounded half up to 0..255."""
    rgb = rgb.astype(np.float64)
    lum = LUMA_WEIGHTS[0] * rgb[..., 0] + LUMA_WEIGHTS[1] * rgb[..., 1] + LUMA_WEIGHTS[2] * rgb[..., 2]
    return np.clip(np.floor(lum + 0.5), 0, 255).astype(np.int64)


def _histogram(values: NDArray) -> NDArray[np.int64]:
    return np.bincount(values.astype(np.int64), minlength=256)[:256]


def calculate_histogram(raster: Raster) -> dict[str, Any]:
    """
    256-bin histograms for R, G, B and luminance plus simple channel stats.

    Averages are over visible (alpha > 0) pixels and rounded to integers.
    """
    visible = _visible_pixels(raster)
    count = len(visible)
    result: dict[str, Any] = {
        name: _histogram(visible[:, i]).tolist() for i, name in enumerate(CHANNELS)
    }
    result["luminance"] = _histogram(luminance(visible[:, :3])).tolist()

    stats: dict[str, int] = {"pixel_count": count}
    for i, key in enumerate("RGB"):
        channel = visible[:, i]
        if count:
            stats[f"avg{key}"] = math.floor(float(channel.mean()) + 0.5)
            stats[f"min{key}"] = int(channel.min())
            stats[f"max{key}"] = int(channel.max())
        else:
            stats[f"avg{key}"] = 0
            stats[f"min{key}"] = 255
            stats[f"max{key}"] = 0
    result["stats"] = stats
    return result


def _percentile(hist: NDArray[np.int64], percent: float, count: int) -> int:
    """Smallest level whose cumulative count reaches ``percent`` of ``count``."""
    target = percent / 100 * count
    reached = np.nonzero(np.cumsum(hist) >= target)[0]
    return int(reached[0]) if reached.size else 255


def _channel_stats(values: NDArray) -> dict[str, Any]:
    count = values.size
    if count == 0:
        return {"mean": 0.0, "std": 0.0, "min": 255, "max": 0, "range": 0, "p5": 0, "p95": 0}
    as_float = values.astype(np.float64)
    hist = _histogram(values)
    lo, hi = int(values.min()), int(values.max())
    return {
        "mean": round(float(as_float.mean()), 1),
        "std": round(float(as_float.std()), 1),
        "min": lo,
        "max": hi,
        "range": hi - lo,
        "p5": _percentile(hist, 5, count),
        "p95": _percentile(hist, 95, count),
    }


def calculate_image_stats(raster: Raster) -> dict[str, Any]:
    """
    Per-channel statistics and a few whole-image judgements.

    Returns a dict with ``dimensions``, ``channels`` (red, green, blue,
    luminance: mean, std, min, max, range, p5, p95) and ``analysis``
    (dynamic range in levels and stops, contrast ratio, high-contrast,
    low-key and high-key flags, dominant channel).
    """
    visible = _visible_pixels(raster)
    lum = luminance(visible[:, :3])

    channels = {name: _channel_stats(visible[:, i]) for i, name in enumerate(CHANNELS)}
    channels["luminance"] = _channel_stats(lum)

    lum_stats = channels["luminance"]
    min_lum = lum_stats["min"] if lum.size else 0
    max_lum = lum_stats["max"]
    dynamic_range = max(0, max_lum - min_lum)
    stops = math.log2(max(1, max_lum) / max(1, min_lum))
    contrast_ratio = (max_lum + 0.05) / (min_lum + 0.05)

    mean_r, mean_g, mean_b = (float(visible[:, i].mean()) if len(visible) else 0.0 for i in range(3))
    if mean_r > mean_g and mean_r > mean_b:
        dominant = "Red"
    elif mean_g > mean_r and mean_g > mean_b:
        dominant = "Green"
    else:
        dominant = "Blue"
    mean_lum = float(lum.mean()) if lum.size else 0.0

    return {
        "dimensions": {
            "width": raster.width,
            "height": raster.height,
            "pixels": raster.width * raster.height,
        },
        "channels": channels,
        "analysis": {
            "dynamic_range": dynamic_range,
            "dynamic_range_stops": round(stops, 2),
            "contrast_ratio": round(contrast_ratio, 2),
            "is_high_contrast": contrast_ratio > 4.5,
            "is_low_key": mean_lum < 85,
            "is_high_key": mean_lum > 170,
            "dominant_channel": dominant,
        },
    }


def rgb_to_hex(r: int, g: int, b: int) -> str:
    return f"#{r:02X}{g:02X}{b:02X}"


def rgb_to_hsl(r: int, g: int, b: int) -> tuple[int, int, int]:
    """HSL as (degrees, percent, percent), each rounded half up."""
    rf, gf, bf = r / 255, g / 255, b / 255
    hi, lo = max(rf, gf, bf), min(rf, gf, bf)
    lightness = (hi + lo) / 2
    if hi == lo:
        hue = sat = 0.0
    else:
        d = hi - lo
        sat = d / (2 - hi - lo) if lightness > 0.5 else d / (hi + lo)
        if hi == rf:
            hue = ((gf - bf) / d + (6 if gf < bf else 0)) / 6
        elif hi == gf:
            hue = ((bf - rf) / d + 2) / 6
        else:
            hue = ((rf - gf) / d + 4) / 6
    return (
        math.floor(hue * 360 + 0.5),
        math.floor(sat * 100 + 0.5),
        math.floor(lightness * 100 + 0.5),
    )


def color_info(raster: Raster, x: float, y: float) -> dict[str, Any] | None:
    """Colour readout at ``(x, y)``; ``None`` outside the raster."""
    if x < 0 or y < 0 or x >= raster.width or y >= raster.height:
        return None
    r, g, b, a = raster.pixel(int(math.floor(x)), int(math.floor(y)))
    return {
        "rgba": (r, g, b, a),
        "hex": rgb_to_hex(r, g, b),
        "hsl": rgb_to_hsl(r, g, b),
        "alpha_percent": math.floor(a / 255 * 100 + 0.5),
    }
