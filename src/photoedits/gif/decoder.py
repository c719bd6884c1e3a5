"""
GIF Decoder - Parse GIF87a/GIF89a streams into full-canvas frames.

Every image block is decoded, deinterlaced if needed, and drawn over a
master canvas (opaque pixels only). The master canvas is captured after
each block, so every returned frame is a complete logical-screen raster.
Disposal methods 2 (restore to background) and 3 (restore to previous)
are applied to the master canvas after capture.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from numpy.typing import NDArray

from photoedits.core.raster import Raster
from photoedits.gif.errors import InvalidFormat, Truncated
from photoedits.gif.lzw import lzw_decode


logger = logging.getLogger(__name__)


MIN_FRAME_DELAY_MS = 20
DEFAULT_FRAME_DELAY_MS = 100

INTERLACE_PASSES = ((0, 8), (4, 8), (2, 4), (1, 2))

EXTENSION_INTRODUCER = 0x21
IMAGE_SEPARATOR = 0x2C
TRAILER = 0x3B
GRAPHIC_CONTROL_LABEL = 0xF9


@dataclass
class DecodedFrame:
    """One composited frame and its display time."""
    raster: Raster
    delay_ms: int


@dataclass
class GraphicControl:
    disposal: int = 0
    transparent_index: int | None = None
    delay_ms: int = DEFAULT_FRAME_DELAY_MS


class _Reader:
    """Cursor over the stream; structural reads past the end raise Truncated."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.data)

    def u8(self) -> int:
        if self.pos >= len(self.data):
            raise Truncated(f"Unexpected end of GIF data at byte {self.pos}")
        value = self.data[self.pos]
        self.pos += 1
        return value

    def u16(self) -> int:
        lo = self.u8()
        return lo | (self.u8() << 8)

    def take(self, count: int) -> bytes:
        end = self.pos + count
        if end > len(self.data):
            raise Truncated(f"Needed {count} bytes at {self.pos}, only {len(self.data) - self.pos} left")
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def sub_blocks(self) -> bytes:
        """Concatenate data sub-blocks up to the zero-length terminator."""
        out = bytearray()
        while True:
            size = self.u8()
            if size == 0:
                return bytes(out)
            out += self.take(size)


def _colour_table(reader: _Reader, packed: int) -> NDArray[np.uint8]:
    entries = 1 << ((packed & 0x07) + 1)
    raw = reader.take(3 * entries)
    return np.frombuffer(raw, dtype=np.uint8).reshape(entries, 3)


def deinterlace(rows: NDArray, height: int) -> NDArray:
    """Reorder rows stored in the four interlace passes into display order."""
    out = np.empty_like(rows)
    src = 0
    for start, step in INTERLACE_PASSES:
        for y in range(start, height, step):
            out[y] = rows[src]
            src += 1
    return out


def _read_graphic_control(reader: _Reader) -> GraphicControl:
    block = reader.sub_blocks()
    if len(block) < 4:
        raise Truncated("Graphic control extension is too short")
    packed = block[0]
    delay_cs = block[1] | (block[2] << 8)
    return GraphicControl(
        disposal=(packed >> 2) & 0x07,
        transparent_index=block[3] if packed & 0x01 else None,
        delay_ms=max(delay_cs * 10, MIN_FRAME_DELAY_MS),
    )


def parse_gif(data: bytes) -> tuple[int, int, list[DecodedFrame]]:
    """
    Parse a GIF into composited frames.

    Returns:
        (width, height, frames)

    Raises:
        InvalidFormat: If the signature is not GIF87a/GIF89a
        Truncated: If the stream ends inside a header, table or block
    """
    data = bytes(data)
    signature = data[:6]
    if signature not in (b"GIF87a", b"GIF89a"):
        raise InvalidFormat("Invalid GIF file")

    reader = _Reader(data)
    reader.pos = 6
    width = reader.u16()
    height = reader.u16()
    packed = reader.u8()
    reader.u8()  # background colour index
    reader.u8()  # pixel aspect ratio

    global_table = _colour_table(reader, packed) if packed & 0x80 else None

    master = np.zeros((height, width, 4), dtype=np.uint8)
    frames: list[DecodedFrame] = []
    control: GraphicControl | None = None

    while not reader.at_end:
        block_type = reader.u8()

        if block_type == EXTENSION_INTRODUCER:
            label = reader.u8()
            if label == GRAPHIC_CONTROL_LABEL:
                control = _read_graphic_control(reader)
            else:
                reader.sub_blocks()

        elif block_type == IMAGE_SEPARATOR:
            left = reader.u16()
            top = reader.u16()
            frame_w = reader.u16()
            frame_h = reader.u16()
            img_packed = reader.u8()
            interlaced = bool(img_packed & 0x40)
            table = _colour_table(reader, img_packed) if img_packed & 0x80 else global_table

            min_code_size = reader.u8()
            lzw_data = reader.sub_blocks()
            if not 1 <= min_code_size <= 11:
                raise InvalidFormat(f"Invalid LZW minimum code size {min_code_size}")

            pixel_count = frame_w * frame_h
            indices = lzw_decode(lzw_data, min_code_size, pixel_count)
            if len(indices) < pixel_count:
                logger.debug("Frame %d: %d of %d pixels decoded", len(frames), len(indices), pixel_count)

            patch = _index_to_rgba(indices, pixel_count, table, control)
            patch = patch.reshape(frame_h, frame_w, 4)
            if interlaced:
                patch = deinterlace(patch, frame_h)

            disposal = control.disposal if control is not None else 0
            saved = master.copy() if disposal == 3 else None

            _draw_opaque(master, patch, left, top)
            frames.append(DecodedFrame(
                raster=Raster(pixels=master.copy()),
                delay_ms=control.delay_ms if control is not None else DEFAULT_FRAME_DELAY_MS,
            ))

            if disposal == 2:
                _clear_rect(master, left, top, frame_w, frame_h)
            elif disposal == 3 and saved is not None:
                master[...] = saved
            control = None

        elif block_type == TRAILER:
            break
        else:
            logger.debug("Unknown GIF block 0x%02x at byte %d, stopping", block_type, reader.pos - 1)
            break

    logger.debug("Parsed GIF %dx%d with %d frames", width, height, len(frames))
    return width, height, frames


def _index_to_rgba(
    indices: list[int],
    pixel_count: int,
    table: NDArray[np.uint8] | None,
    control: GraphicControl | None,
) -> NDArray[np.uint8]:
    """Map palette indices to RGBA; undecoded pixels stay fully transparent."""
    out = np.zeros((pixel_count, 4), dtype=np.uint8)
    if not indices:
        return out
    idx = np.asarray(indices, dtype=np.int64)
    n = idx.size

    if table is not None:
        in_range = idx < len(table)
        colours = np.zeros((n, 3), dtype=np.uint8)
        colours[in_range] = table[idx[in_range]]
        out[:n, :3] = colours
    out[:n, 3] = 255
    if control is not None and control.transparent_index is not None:
        out[:n, 3][idx == control.transparent_index] = 0
    return out


def _draw_opaque(master: NDArray[np.uint8], patch: NDArray[np.uint8], left: int, top: int) -> None:
    height, width = master.shape[:2]
    h = min(patch.shape[0], height - top)
    w = min(patch.shape[1], width - left)
    if h <= 0 or w <= 0:
        return
    region = master[top:top + h, left:left + w]
    src = patch[:h, :w]
    opaque = src[..., 3] > 0
    region[opaque] = src[opaque]


def _clear_rect(master: NDArray[np.uint8], left: int, top: int, width: int, height: int) -> None:
    master[top:top + height, left:left + width] = 0


def decode_gif(source: bytes | str | Path) -> list[DecodedFrame]:
    """Decode GIF bytes or a GIF file into frames."""
    if isinstance(source, (str, Path)):
        source = Path(source).read_bytes()
    _, _, frames = parse_gif(source)
    return frames
