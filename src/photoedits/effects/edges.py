"""
Edge effects - Sobel and Prewitt edge detection.

Gradients are taken on the RGB sum of the input with clamp-to-border
sampling. Pixels whose scaled magnitude exceeds ``edgeThreshold`` are
painted white (or, for the coloured variants, with a colour encoding the
gradient direction).
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

import numpy as np
from numpy.typing import NDArray

from photoedits.core.raster import Raster
from photoedits.effects.common import flag, neighbourhood, number


Gradient = Callable[[dict[str, NDArray]], tuple[NDArray, NDArray]]


def sobel_gradient(n: dict[str, NDArray]) -> tuple[NDArray, NDArray]:
    gx = -n["p00"] + n["p02"] - 2 * n["p10"] + 2 * n["p12"] - n["p20"] + n["p22"]
    gy = -n["p00"] - 2 * n["p01"] - n["p02"] + n["p20"] + 2 * n["p21"] + n["p22"]
    return gx, gy


def prewitt_gradient(n: dict[str, NDArray]) -> tuple[NDArray, NDArray]:
    gx = -n["p00"] + n["p02"] - n["p10"] + n["p12"] - n["p20"] + n["p22"]
    gy = n["p00"] + n["p01"] + n["p02"] - n["p20"] - n["p21"] - n["p22"]
    return gx, gy


def _detect_edges(
    raster: Raster,
    params: Mapping[str, Any] | None,
    gradient: Gradient,
    coloured: bool,
) -> None:
    params = params or {}
    if raster.is_empty:
        return
    threshold = number(params, "edgeThreshold", 100)
    blackout = flag(params, "blackoutBackground", True)
    transparent = flag(params, "transparentBackground", False)

    pixels = raster.pixels
    intensity = pixels[..., :3].astype(np.float32).sum(axis=-1)
    gx, gy = gradient(neighbourhood(intensity))
    magnitude = np.sqrt(gx * gx + gy * gy) * np.float32(0.333333)
    edge = magnitude > threshold

    if blackout and not transparent:
        pixels[...] = (0, 0, 0, 255)

    if coloured:
        with np.errstate(divide="ignore", invalid="ignore"):
            inv = np.where(edge, np.float32(1.0) / (magnitude * np.float32(3.0)), np.float32(0.0))
        nx = np.abs(gx) * inv
        ny = np.abs(gy) * inv
        directions = np.stack([nx, ny, nx * ny], axis=-1) * np.float32(255.0)
        pixels[edge, :3] = np.trunc(directions[edge]).astype(np.uint8)
    else:
        pixels[edge, :3] = 255

    if transparent:
        pixels[~edge, 3] = 0


def sobel_edges(raster: Raster, params: Mapping[str, Any] | None = None) -> None:
    _detect_edges(raster, params, sobel_gradient, coloured=False)


def sobel_edges_coloured_directions(raster: Raster, params: Mapping[str, Any] | None = None) -> None:
    """Sobel edges coloured by |gx| (red), |gy| (green) and their product (blue)."""
    _detect_edges(raster, params, sobel_gradient, coloured=True)


def prewitt_edges(raster: Raster, params: Mapping[str, Any] | None = None) -> None:
    _detect_edges(raster, params, prewitt_gradient, coloured=False)


def prewitt_edges_coloured_directions(raster: Raster, params: Mapping[str, Any] | None = None) -> None:
    """Prewitt variant of :func:`sobel_edges_coloured_directions`."""
    _detect_edges(raster, params, prewitt_gradient, coloured=True)
