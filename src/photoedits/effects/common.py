"""
Shared helpers for effect implementations.
"""

from __future__ import annotations

from typing import Any, Mapping

import numpy as np
from numpy.typing import NDArray


def number(params: Mapping[str, Any], name: str, default: float) -> float:
    """Read a numeric parameter, falling back to ``default`` when missing or invalid."""
    value = params.get(name)
    if value is None or isinstance(value, bool):
        return float(default)
    try:
        result = float(value)
    except (TypeError, ValueError):
        return float(default)
    if result != result:
        return float(default)
    return result


def flag(params: Mapping[str, Any], name: str, default: bool) -> bool:
    value = params.get(name)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


def saturate(values: NDArray) -> NDArray[np.uint8]:
    """Round half to even and clamp to [0, 255], as 8-bit clamped stores do."""
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def round_half_up(values: NDArray) -> NDArray:
    return np.floor(values + np.float32(0.5))


def sample_offsets(nbytes: int, sampling: float) -> NDArray[np.int64]:
    """
    Byte offsets of grid samples: every ``max(1, 4 * sampling)`` bytes.
    """
    stride = max(1, 4 * int(sampling))
    return np.arange(0, nbytes, stride, dtype=np.int64)


def stroke_offsets(
    length: int,
    width: int,
    radians: float,
) -> tuple[NDArray[np.int64], NDArray[np.int64]]:
    """
    Pixel offsets covered by one stroke, in drawing order.

    The stroke runs ``length`` pixels along ``radians`` and is ``width``
    pixels wide across it.
    """
    cos_a, sin_a = np.cos(radians), np.sin(radians)
    cos_p, sin_p = np.cos(radians + np.pi / 2), np.sin(radians + np.pi / 2)
    dxs, dys = [], []
    for along in range(int(length)):
        for across in range((-int(width)) >> 1, int(width) >> 1):
            dxs.append(cos_a * along + cos_p * across)
            dys.append(sin_a * along + sin_p * across)
    dx = np.floor(np.asarray(dxs, dtype=np.float64) + 0.5).astype(np.int64)
    dy = np.floor(np.asarray(dys, dtype=np.float64) + 0.5).astype(np.int64)
    return dx, dy


def neighbourhood(plane: NDArray[np.float32]) -> dict[str, NDArray[np.float32]]:
    """
    The eight 3x3 neighbours of every pixel, clamped to the border.

    Keys are ``pYX`` with Y/X in 0..2 (``p11`` is the centre).
    """
    padded = np.pad(plane, 1, mode="edge")
    h, w = plane.shape
    return {
        f"p{y}{x}": padded[y:y + h, x:x + w]
        for y in range(3)
        for x in range(3)
    }
