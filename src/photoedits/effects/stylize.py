"""
Stylize effects - grid-sampled strokes and points.

Samples are taken every ``sampling`` pixels in row-major order. Strokes
are drawn sample by sample, so a later sample's stroke wins wherever two
strokes overlap.
"""

from __future__ import annotations

import math
from typing import Any, Mapping

import numpy as np
from numpy.typing import NDArray

from photoedits.core.raster import Raster
from photoedits.effects.common import (
    clamp,
    flag,
    neighbourhood,
    number,
    sample_offsets,
    saturate,
    stroke_offsets,
)


def edge_magnitude_map(pixels: NDArray[np.uint8]) -> NDArray[np.uint8]:
    """Sobel magnitude of the RGB average, capped at 255 and truncated to 8 bits."""
    grey = pixels[..., :3].astype(np.float32).sum(axis=-1) * np.float32(0.333333)
    n = neighbourhood(grey)
    gx = -n["p00"] + n["p02"] - 2 * n["p10"] + 2 * n["p12"] - n["p20"] + n["p22"]
    gy = -n["p00"] - 2 * n["p01"] - n["p02"] + n["p20"] + 2 * n["p21"] + n["p22"]
    magnitude = np.minimum(np.sqrt(gx * gx + gy * gy), np.float32(255.0))
    return magnitude.astype(np.uint8)


def _stroke_geometry(
    raster: Raster,
    params: Mapping[str, Any],
    width_factor: float,
    length_factor: float,
    min_length_cap: int,
    default_width: int,
    default_length: int,
    default_angle: float,
) -> tuple[int, int, float, float]:
    min_dim = max(1, min(raster.width, raster.height))
    max_width = max(1, math.floor(min_dim * width_factor))
    max_length = max(min_length_cap, math.floor(min_dim * length_factor))

    stroke_width = int(clamp(number(params, "width", default_width), 1, max_width))
    stroke_length = int(clamp(number(params, "length", default_length), 1, max_length))
    sampling = clamp(number(params, "sampling", 10), 1, 2000)
    angle = number(params, "angle", default_angle)
    return stroke_width, stroke_length, sampling, math.radians(angle)


def painted_stylization(raster: Raster, params: Mapping[str, Any] | None = None) -> None:
    """
    Paint short oriented strokes in each sample's colour.

    Strokes stop at edges whose Sobel magnitude exceeds ``edgeThreshold``
    unless ``overwriteEdges`` is set, and avoid other sample points unless
    ``overwritePixels`` is set.
    """
    params = params or {}
    if raster.is_empty:
        return
    stroke_width, stroke_length, sampling, radians = _stroke_geometry(
        raster, params, 0.05, 0.15, 5, 5, 5, 45.0
    )
    threshold = number(params, "edgeThreshold", 100)
    overwrite_pixels = flag(params, "overwritePixels", False)
    overwrite_edges = flag(params, "overwriteEdges", False)

    height, width = raster.height, raster.width
    flat = raster.pixels.reshape(-1, 4)
    edges = edge_magnitude_map(raster.pixels).reshape(-1)

    samples = sample_offsets(flat.size, sampling) >> 2
    sample_x = samples % width
    sample_y = samples // width
    colours = flat[samples].copy()

    is_sample = np.zeros(width * height, dtype=bool)
    is_sample[samples] = True

    winner = np.full(width * height, -1, dtype=np.int64)
    order = np.arange(samples.size, dtype=np.int64)
    alive = np.ones(samples.size, dtype=bool)

    dxs, dys = stroke_offsets(stroke_length, stroke_width, radians)
    for dx, dy in zip(dxs, dys):
        if not alive.any():
            break
        x = sample_x + dx
        y = sample_y + dy
        candidate = alive & (x >= 0) & (x < width) & (y >= 0) & (y < height)
        target = np.where(candidate, y * width + x, 0)
        if not overwrite_pixels:
            candidate &= ~is_sample[target]
        if not overwrite_edges:
            hits_edge = candidate & (edges[target] > threshold)
            alive &= ~hits_edge
            candidate &= ~hits_edge
        if candidate.any():
            np.maximum.at(winner, target[candidate], order[candidate])

    painted = winner >= 0
    flat[painted, :3] = colours[winner[painted], :3]
    flat[painted, 3] = 255


def points_in_space(raster: Raster, params: Mapping[str, Any] | None = None) -> None:
    """Set R, G and B to white at every sample point."""
    params = params or {}
    sampling = number(params, "sampling", 10)
    data = raster.pixels.reshape(-1)
    offsets = sample_offsets(data.size, sampling)
    for channel in range(3):
        idx = offsets + channel
        data[idx[idx < data.size]] = 255


def vectors_in_space(raster: Raster, params: Mapping[str, Any] | None = None) -> None:
    """Draw oriented line strokes of one RGBA colour from every sample point."""
    params = params or {}
    if raster.is_empty:
        return
    stroke_width, stroke_length, sampling, radians = _stroke_geometry(
        raster, params, 0.03, 0.12, 3, 1, 3, 90.0
    )
    colour = saturate(np.array([
        number(params, "R", 255),
        number(params, "G", 255),
        number(params, "B", 255),
        number(params, "A", 255),
    ], dtype=np.float32))

    height, width = raster.height, raster.width
    flat = raster.pixels.reshape(-1, 4)
    samples = sample_offsets(flat.size, sampling) >> 2
    sample_x = samples % width
    sample_y = samples // width

    covered = np.zeros(width * height, dtype=bool)
    dxs, dys = stroke_offsets(stroke_length, stroke_width, radians)
    for dx, dy in zip(dxs, dys):
        x = sample_x + dx
        y = sample_y + dy
        inside = (x >= 0) & (x < width) & (y >= 0) & (y < height)
        covered[y[inside] * width + x[inside]] = True

    flat[covered] = colour
