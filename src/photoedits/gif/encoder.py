"""
GIF Encoder - Write RGBA frames as an animated GIF89a.

Frames are palettized (exactly when they have at most 256 colours,
otherwise with Pillow's quantizer), LZW-compressed and written with a
graphic control extension per frame. The first frame's palette becomes
the global colour table; later frames carry local tables.

GIF has 1-bit transparency. When any frame has a pixel with alpha < 128,
every frame goes through :func:`prepare_frame_for_gif`: opaque pure black
is nudged to ``(1, 1, 1)`` and transparent pixels become ``(0, 0, 0)``,
the transparency key. Palette index 0 is reserved for the key and frames
are written with disposal 2.
"""

from __future__ import annotations

import logging
import struct
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Sequence

import numpy as np
from numpy.typing import NDArray
from PIL import Image

from photoedits.core.errors import InvalidInput
from photoedits.core.raster import Raster
from photoedits.gif.lzw import lzw_encode


logger = logging.getLogger(__name__)


TRANSPARENCY_KEY = (0, 0, 0)
ALPHA_THRESHOLD = 128
MAX_SUB_BLOCK = 255

ProgressCallback = Callable[[float], None]


@dataclass
class PalettizedFrame:
    """Palette (N x 3) plus one palette index per pixel."""
    palette: NDArray[np.uint8]
    indices: NDArray[np.uint8]
    transparent_index: int | None = None


def frames_have_transparency(frames: Sequence[Raster]) -> bool:
    return any(frame.has_transparency(ALPHA_THRESHOLD) for frame in frames)


def prepare_frame_for_gif(raster: Raster) -> Raster:
    """
    Map a frame onto the ``#000000`` transparency key.

    Returns a new raster: opaque black becomes ``(1, 1, 1)``, pixels with
    alpha < 128 become opaque ``(0, 0, 0)``.
    """
    out = raster.clone()
    px = out.pixels
    opaque = px[..., 3] >= ALPHA_THRESHOLD
    black = opaque & (px[..., :3] == 0).all(axis=-1)
    px[black, :3] = 1
    px[~opaque] = (0, 0, 0, 255)
    return out


def _exact_palette(rgb: NDArray[np.uint8], limit: int) -> tuple[NDArray[np.uint8], NDArray[np.int64]] | None:
    packed = (
        rgb[..., 0].astype(np.uint32) << 16
        | rgb[..., 1].astype(np.uint32) << 8
        | rgb[..., 2].astype(np.uint32)
    ).reshape(-1)
    unique, inverse = np.unique(packed, return_inverse=True)
    if unique.size > limit:
        return None
    palette = np.stack(
        [(unique >> 16) & 0xFF, (unique >> 8) & 0xFF, unique & 0xFF], axis=-1
    ).astype(np.uint8)
    return palette, inverse.reshape(-1)


def _quantized_palette(
    rgb: NDArray[np.uint8],
    limit: int,
    quality: int,
) -> tuple[NDArray[np.uint8], NDArray[np.int64]]:
    image = Image.fromarray(np.ascontiguousarray(rgb))
    kmeans = max(0, 10 - int(quality))
    quantized = image.quantize(
        colors=limit,
        method=Image.Quantize.MEDIANCUT,
        kmeans=kmeans,
        dither=Image.Dither.NONE,
    )
    indices = np.asarray(quantized, dtype=np.int64).reshape(-1)
    raw = quantized.getpalette() or []
    count = max(int(indices.max()) + 1 if indices.size else 1, 1)
    palette = np.asarray(raw[:3 * count], dtype=np.uint8).reshape(-1, 3)
    if len(palette) < count:
        palette = np.vstack([palette, np.zeros((count - len(palette), 3), dtype=np.uint8)])
    return palette, indices


def palettize(raster: Raster, keyed: bool = False, quality: int = 10) -> PalettizedFrame:
    """
    Build a palette and index map for one frame.

    When ``keyed`` the frame must already be prepared: ``(0, 0, 0)``
    pixels map to index 0, which is reserved as the transparent entry.
    """
    rgb = raster.pixels[..., :3]
    if not keyed:
        exact = _exact_palette(rgb, 256)
        palette, indices = exact if exact is not None else _quantized_palette(rgb, 256, quality)
        return PalettizedFrame(palette=palette, indices=indices.astype(np.uint8))

    flat = rgb.reshape(-1, 3)
    is_key = (flat == np.asarray(TRANSPARENCY_KEY, dtype=np.uint8)).all(axis=-1)
    indices = np.zeros(flat.shape[0], dtype=np.int64)
    palette = np.zeros((1, 3), dtype=np.uint8)

    visible = flat[~is_key]
    if visible.size:
        pixels = visible.reshape(1, -1, 3)
        exact = _exact_palette(pixels, 255)
        sub_palette, sub_indices = exact if exact is not None else _quantized_palette(pixels, 255, quality)
        palette = np.vstack([palette, sub_palette])
        indices[~is_key] = sub_indices + 1

    return PalettizedFrame(palette=palette, indices=indices.astype(np.uint8), transparent_index=0)


def _table_bits(entries: int) -> int:
    bits = 1
    while (1 << bits) < entries:
        bits += 1
    return bits


def _padded_table(palette: NDArray[np.uint8], bits: int) -> bytes:
    table = np.zeros((1 << bits, 3), dtype=np.uint8)
    table[:len(palette)] = palette
    return table.tobytes()


def _sub_blocks(data: bytes) -> bytes:
    out = bytearray()
    for i in range(0, len(data), MAX_SUB_BLOCK):
        chunk = data[i:i + MAX_SUB_BLOCK]
        out.append(len(chunk))
        out += chunk
    out.append(0)
    return bytes(out)


def _loop_extension(loop: int) -> bytes:
    return b"\x21\xff\x0bNETSCAPE2.0\x03\x01" + struct.pack("<H", loop & 0xFFFF) + b"\x00"


def _graphic_control(delay_ms: int, disposal: int, transparent_index: int | None) -> bytes:
    packed = (disposal & 0x07) << 2
    if transparent_index is not None:
        packed |= 0x01
    delay_cs = max(0, min(0xFFFF, round(delay_ms / 10)))
    return struct.pack("<BBBBHBB", 0x21, 0xF9, 4, packed, delay_cs, transparent_index or 0, 0)


def encode_gif(
    frames: Sequence[Raster],
    delays_ms: Sequence[int] | None = None,
    *,
    quality: int = 10,
    loop: int | None = 0,
    workers: int = 1,
    on_progress: ProgressCallback | None = None,
) -> bytes:
    """
    Encode frames into a GIF89a blob.

    Args:
        frames: Rasters, all the size of the first
        delays_ms: Per-frame delay (defaults to 100 ms each)
        quality: Palette quality for frames with more than 256 colours,
            1 (best) to 30 (fastest)
        loop: NETSCAPE2.0 loop count (0 = forever), or None to omit
        workers: Threads used to palettize frames
        on_progress: Called with a fraction in [0, 1] after each frame

    Raises:
        InvalidInput: If there are no frames or the sizes differ
    """
    if not frames:
        raise InvalidInput("No frames to export")
    width, height = frames[0].size
    if width < 1 or height < 1 or width > 0xFFFF or height > 0xFFFF:
        raise InvalidInput(f"Invalid GIF size {width}x{height}")
    for i, frame in enumerate(frames):
        if frame.size != (width, height):
            raise InvalidInput(f"Frame {i} is {frame.width}x{frame.height}, expected {width}x{height}")
    if delays_ms is None:
        delays_ms = [100] * len(frames)
    if len(delays_ms) != len(frames):
        raise InvalidInput("One delay per frame is required")

    keyed = frames_have_transparency(frames)
    prepared = [prepare_frame_for_gif(f) for f in frames] if keyed else list(frames)
    disposal = 2 if keyed else 0

    def convert(frame: Raster) -> PalettizedFrame:
        return palettize(frame, keyed=keyed, quality=quality)

    if workers > 1 and len(prepared) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            palettized = list(pool.map(convert, prepared))
    else:
        palettized = [convert(f) for f in prepared]

    first_bits = _table_bits(len(palettized[0].palette))
    out = bytearray(b"GIF89a")
    out += struct.pack("<HHBBB", width, height, 0x80 | 0x70 | (first_bits - 1), 0, 0)
    out += _padded_table(palettized[0].palette, first_bits)
    if loop is not None:
        out += _loop_extension(loop)

    total = len(palettized)
    for i, (frame, delay) in enumerate(zip(palettized, delays_ms)):
        out += _graphic_control(int(delay), disposal, frame.transparent_index)

        bits = first_bits if i == 0 else _table_bits(len(frame.palette))
        descriptor_packed = 0 if i == 0 else 0x80 | (bits - 1)
        out += struct.pack("<BHHHHB", 0x2C, 0, 0, width, height, descriptor_packed)
        if i > 0:
            out += _padded_table(frame.palette, bits)

        min_code_size = max(2, bits)
        out.append(min_code_size)
        out += _sub_blocks(lzw_encode(frame.indices, min_code_size))

        if on_progress is not None:
            on_progress((i + 1) / total)

    out.append(0x3B)
    logger.debug("Encoded %d frames %dx%d into %d bytes (keyed=%s)", total, width, height, len(out), keyed)
    return bytes(out)
