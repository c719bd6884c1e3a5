"""
GIF Frames - Editable frame stack for animated GIFs.

This module provides:
- GifFrameStack: ordered frames with per-frame delays
- load/export helpers that move a stack to and from GIF bytes
- multi-image composition (a folder of stills into one stack)
- the bridge between a stack frame and an ImageEditor
- a coarse output size estimate for UI warnings
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Iterator

from PIL import Image

from photoedits.core.errors import InvalidInput
from photoedits.core.raster import Raster
from photoedits.gif.decoder import MIN_FRAME_DELAY_MS, DEFAULT_FRAME_DELAY_MS, parse_gif
from photoedits.gif.encoder import ProgressCallback, encode_gif
from photoedits.gif.errors import InvalidFormat

if TYPE_CHECKING:
    from photoedits.core.editor import ImageEditor


logger = logging.getLogger(__name__)


COMPRESSION_RATIO = 2
FRAME_OVERHEAD_BYTES = 800
HEADER_OVERHEAD_BYTES = 1000


@dataclass
class GifFrame:
    """One frame of the stack."""
    raster: Raster
    delay_ms: int = DEFAULT_FRAME_DELAY_MS


class GifFrameStack:
    """
    Ordered GIF frames.

    The stack's width and height come from the first frame added; every
    later frame must match them.
    """

    def __init__(self) -> None:
        self.frames: list[GifFrame] = []
        self.width = 0
        self.height = 0
        self.current_index = 0

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self) -> Iterator[GifFrame]:
        return iter(self.frames)

    @property
    def length(self) -> int:
        return len(self.frames)

    @property
    def current_frame(self) -> GifFrame | None:
        return self.get_frame(self.current_index)

    @property
    def delays(self) -> list[int]:
        return [frame.delay_ms for frame in self.frames]

    def _check_size(self, raster: Raster) -> None:
        if self.frames and raster.size != (self.width, self.height):
            raise InvalidInput(
                f"Frame is {raster.width}x{raster.height}, stack is {self.width}x{self.height}"
            )

    def add_frame(self, raster: Raster, delay_ms: int = DEFAULT_FRAME_DELAY_MS) -> GifFrame:
        self._check_size(raster)
        frame = GifFrame(raster=raster.clone(), delay_ms=max(int(delay_ms), MIN_FRAME_DELAY_MS))
        self.frames.append(frame)
        if len(self.frames) == 1:
            self.width, self.height = raster.size
        return frame

    def get_frame(self, index: int) -> GifFrame | None:
        if 0 <= index < len(self.frames):
            return self.frames[index]
        return None

    def set_frame(self, index: int, raster: Raster) -> bool:
        """Replace the pixels of one frame; returns False for a bad index."""
        frame = self.get_frame(index)
        if frame is None:
            return False
        self._check_size(raster)
        frame.raster = raster.clone()
        return True

    def set_delay(self, index: int, delay_ms: int) -> bool:
        frame = self.get_frame(index)
        if frame is None:
            return False
        frame.delay_ms = max(int(delay_ms), MIN_FRAME_DELAY_MS)
        return True

    def delete_frame(self, index: int) -> bool:
        if not 0 <= index < len(self.frames):
            return False
        del self.frames[index]
        if self.current_index >= len(self.frames):
            self.current_index = max(0, len(self.frames) - 1)
        if not self.frames:
            self.width = self.height = 0
        return True

    def duplicate_frame(self, index: int) -> bool:
        """Insert a copy of frame ``index`` right after it."""
        frame = self.get_frame(index)
        if frame is None:
            return False
        self.frames.insert(index + 1, GifFrame(raster=frame.raster.clone(), delay_ms=frame.delay_ms))
        return True

    def move_frame(self, from_index: int, to_index: int) -> bool:
        count = len(self.frames)
        if not (0 <= from_index < count and 0 <= to_index < count):
            return False
        frame = self.frames.pop(from_index)
        self.frames.insert(to_index, frame)
        return True

    def clear(self) -> None:
        self.frames = []
        self.width = 0
        self.height = 0
        self.current_index = 0

    def __repr__(self) -> str:
        return f"GifFrameStack({len(self.frames)} frames, {self.width}x{self.height})"


# Process-wide stack shared by the loaders and the editor bridge
gif_frame_stack = GifFrameStack()


# =============================================================================
# Load / export
# =============================================================================

def load_gif_frames(source: bytes | str | Path, stack: GifFrameStack | None = None) -> GifFrameStack:
    """
    Parse a GIF and replace the contents of ``stack`` with its frames.

    The stack is only touched once parsing has succeeded.

    Raises:
        InvalidFormat: If the data is not a GIF or holds no image blocks
        Truncated: If the stream ends inside a block
    """
    stack = gif_frame_stack if stack is None else stack
    if isinstance(source, (str, Path)):
        source = Path(source).read_bytes()

    width, height, frames = parse_gif(source)
    if not frames:
        raise InvalidFormat("GIF contains no frames")

    stack.clear()
    for frame in frames:
        stack.add_frame(frame.raster, frame.delay_ms)
    logger.info("Loaded %d GIF frames (%dx%d)", len(frames), width, height)
    return stack


def export_frame_stack(
    stack: GifFrameStack | None = None,
    *,
    quality: int = 10,
    workers: int = 2,
    loop: int | None = 0,
    on_progress: ProgressCallback | None = None,
) -> bytes:
    """
    Encode a frame stack as a GIF.

    ``on_progress`` receives whole percentages (0-100).

    Raises:
        InvalidInput: If the stack is empty
    """
    stack = gif_frame_stack if stack is None else stack
    if not stack.frames:
        raise InvalidInput("No frames to export")

    progress = None
    if on_progress is not None:
        def progress(fraction: float) -> None:
            on_progress(round(fraction * 100))

    return encode_gif(
        [frame.raster for frame in stack.frames],
        stack.delays,
        quality=quality,
        loop=loop,
        workers=workers,
        on_progress=progress,
    )


# =============================================================================
# Multi-image composition
# =============================================================================

_DIGITS = re.compile(r"(\d+)")


def natural_sort_key(name: str) -> list[tuple[int, int | str]]:
    """Sort key that orders ``frame2`` before ``frame10``."""
    key: list[tuple[int, int | str]] = []
    for part in _DIGITS.split(name):
        if not part:
            continue
        key.append((0, int(part)) if part.isdigit() else (1, part.lower()))
    return key


def fit_centered(raster: Raster, width: int, height: int) -> Raster:
    """Scale ``raster`` to fit ``width`` x ``height`` and centre it on opaque black."""
    scale = min(width / raster.width, height / raster.height)
    fit_w = max(1, round(raster.width * scale))
    fit_h = max(1, round(raster.height * scale))
    fitted = raster.scale_to(fit_w, fit_h)

    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 255))
    canvas.alpha_composite(fitted.to_pil(), dest=((width - fit_w) // 2, (height - fit_h) // 2))
    return Raster.from_pil(canvas)


def compose_frames_from_images(
    sources: Iterable[str | Path | Raster],
    delay_ms: int = DEFAULT_FRAME_DELAY_MS,
    stack: GifFrameStack | None = None,
) -> GifFrameStack:
    """
    Build a frame stack from still images.

    Paths are sorted by natural filename order (rasters keep their given
    order, after the paths). The first image sets the frame size; every
    other image is scaled to fit and centred on black.

    Raises:
        InvalidInput: If no images are given
    """
    items = list(sources)
    paths = sorted(
        (Path(s) for s in items if not isinstance(s, Raster)),
        key=lambda p: natural_sort_key(p.name),
    )
    rasters: list[Raster] = [Raster.from_file(p) for p in paths]
    rasters += [s for s in items if isinstance(s, Raster)]
    if not rasters:
        raise InvalidInput("No images to compose")

    width, height = rasters[0].size
    stack = GifFrameStack() if stack is None else stack
    stack.clear()
    for raster in rasters:
        if raster.size != (width, height):
            raster = fit_centered(raster, width, height)
        stack.add_frame(raster, delay_ms)
    logger.info("Composed %d images into %dx%d frames", len(rasters), width, height)
    return stack


# =============================================================================
# Size estimate
# =============================================================================

def estimate_gif_size(width: int, height: int, frame_count: int, ping_pong: bool = False) -> dict:
    """
    Rough output size of an animation, for warnings only.

    Assumes one byte per pixel compressed 2:1 plus fixed per-frame and
    header overheads.
    """
    total_frames = frame_count * 2 - 2 if ping_pong else frame_count
    raw_frame_size = width * height
    compressed = raw_frame_size / COMPRESSION_RATIO
    total = (compressed + FRAME_OVERHEAD_BYTES) * total_frames + HEADER_OVERHEAD_BYTES
    return {
        "bytes": total,
        "total_frames": total_frames,
        "raw_frame_size": raw_frame_size,
        "dimensions": (width, height),
    }


def format_file_size(size: float) -> str:
    if size < 1024:
        return f"{size:g} B"
    if size < 1024 ** 2:
        return f"{size / 1024:.1f} KB"
    if size < 1024 ** 3:
        return f"{size / 1024 ** 2:.1f} MB"
    return f"{size / 1024 ** 3:.2f} GB"


# =============================================================================
# Editor bridge
# =============================================================================

def load_frame_to_editor(editor: ImageEditor, index: int, stack: GifFrameStack | None = None) -> bool:
    """Make frame ``index`` the editor's base image (layers are kept)."""
    stack = gif_frame_stack if stack is None else stack
    frame = stack.get_frame(index)
    if frame is None:
        return False
    editor.replace_base(frame.raster.clone(), reason=f"Load frame {index + 1}")
    stack.current_index = index
    return True


def save_editor_to_frame(editor: ImageEditor, index: int, stack: GifFrameStack | None = None) -> bool:
    """Store the editor's rendered output into frame ``index``."""
    stack = gif_frame_stack if stack is None else stack
    if stack.get_frame(index) is None:
        return False
    display = editor.render_now()
    if display is None:
        return False
    return stack.set_frame(index, display)
