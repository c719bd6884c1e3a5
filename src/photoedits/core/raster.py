"""
Raster - RGBA8 pixel buffer shared by every part of the editor.

This module defines the Raster container that flows through the editor:
- the base image the effects read from
- the display buffer composition writes to
- GIF frames

Pixels are stored as a numpy array in HWC format, dtype uint8, channel
order R, G, B, A, not premultiplied. A Raster owns its array; ``clone()``
always allocates new backing memory.
"""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Any

import numpy as np
from numpy.typing import NDArray
from PIL import Image, UnidentifiedImageError

from photoedits.core.errors import DecodeFailed, InvalidInput


RESAMPLE_FILTERS = {
    "nearest": Image.Resampling.NEAREST,
    "bilinear": Image.Resampling.BILINEAR,
    "bicubic": Image.Resampling.BICUBIC,
    "lanczos": Image.Resampling.LANCZOS,
}


@dataclass(eq=False)
class Raster:
    """
    RGBA8 image buffer.

    Attributes:
        pixels: numpy array of shape (H, W, 4), dtype uint8
    """
    pixels: NDArray[np.uint8]

    def __post_init__(self) -> None:
        arr = self.pixels
        if arr.ndim != 3 or arr.shape[2] != 4:
            raise InvalidInput(f"Raster pixels must have shape (H, W, 4), got {arr.shape}")
        if arr.dtype != np.uint8:
            raise InvalidInput(f"Raster pixels must be uint8, got {arr.dtype}")

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def new(cls, width: int, height: int, fill: tuple[int, int, int, int] = (0, 0, 0, 0)) -> Raster:
        """Create a raster of the given size filled with one RGBA value."""
        width, height = int(width), int(height)
        if width < 0 or height < 0:
            raise InvalidInput(f"Invalid raster size {width}x{height}")
        arr = np.empty((height, width, 4), dtype=np.uint8)
        arr[...] = np.asarray(fill, dtype=np.uint8)
        return cls(pixels=arr)

    @classmethod
    def from_numpy(cls, array: NDArray) -> Raster:
        """
        Create a Raster from a numpy array.

        Handles various input formats:
        - float [0, 1] -> uint8 [0, 255]
        - HW (grayscale) -> HWC
        - RGB -> RGBA with opaque alpha
        """
        arr = np.asarray(array)

        if arr.dtype != np.uint8:
            if np.issubdtype(arr.dtype, np.floating):
                arr = np.rint(np.clip(arr, 0.0, 1.0) * 255.0)
            arr = np.clip(arr, 0, 255).astype(np.uint8)
        else:
            arr = arr.copy()

        if arr.ndim == 2:
            arr = np.stack([arr, arr, arr], axis=-1)
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise InvalidInput(f"Unsupported array shape {arr.shape}")
        if arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=-1)

        return cls(pixels=np.ascontiguousarray(arr))

    @classmethod
    def from_bytes(cls, width: int, height: int, data: bytes | bytearray | memoryview) -> Raster:
        """Create a Raster from packed RGBA bytes."""
        width, height = int(width), int(height)
        expected = 4 * width * height
        if width < 0 or height < 0 or len(data) != expected:
            raise InvalidInput(
                f"Expected {expected} bytes for a {width}x{height} raster, got {len(data)}"
            )
        arr = np.frombuffer(bytes(data), dtype=np.uint8).reshape((height, width, 4)).copy()
        return cls(pixels=arr)

    @classmethod
    def from_transferable(cls, payload: tuple[int, int, bytes]) -> Raster:
        """Rebuild a Raster from ``into_transferable()`` output."""
        width, height, data = payload
        return cls.from_bytes(width, height, data)

    @classmethod
    def from_pil(cls, image: Image.Image) -> Raster:
        """Create a Raster from a PIL Image (any mode)."""
        if not isinstance(image, Image.Image):
            raise TypeError(f"Expected PIL Image, got {type(image)}")
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return cls(pixels=np.array(image, dtype=np.uint8))

    @classmethod
    def decode(cls, blob: bytes, mime: str | None = None) -> Raster:
        """
        Decode encoded image bytes (PNG, JPEG, GIF, ...) into a Raster.

        Only the first frame of animated formats is returned.

        Raises:
            DecodeFailed: If Pillow cannot read the bytes
        """
        try:
            with Image.open(BytesIO(blob)) as image:
                image.load()
                return cls.from_pil(image)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise DecodeFailed(f"Could not decode {mime or 'image'} data: {e}") from e

    @classmethod
    def from_file(cls, path: str | Path) -> Raster:
        """Load and decode an image file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Image file not found: {path}")
        return cls.decode(path.read_bytes(), mime=path.suffix.lstrip(".") or None)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def size(self) -> tuple[int, int]:
        """Image size as (width, height)."""
        return (self.width, self.height)

    @property
    def data(self) -> bytes:
        """Packed RGBA bytes, length 4 * width * height."""
        return self.pixels.tobytes()

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def has_transparency(self, threshold: int = 128) -> bool:
        """True if any pixel has alpha below ``threshold``."""
        return bool((self.pixels[..., 3] < threshold).any())

    def pixel(self, x: int, y: int) -> tuple[int, int, int, int]:
        r, g, b, a = (int(v) for v in self.pixels[y, x])
        return (r, g, b, a)

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def clone(self) -> Raster:
        """Deep copy with new backing memory."""
        return Raster(pixels=self.pixels.copy())

    copy = clone

    def into_transferable(self) -> tuple[int, int, bytes]:
        """Plain-data form ``(width, height, rgba_bytes)`` for message passing."""
        return (self.width, self.height, self.pixels.tobytes())

    def to_pil(self) -> Image.Image:
        """Convert to an RGBA PIL Image."""
        return Image.fromarray(np.ascontiguousarray(self.pixels))

    def encode(self, fmt: str = "png", **save_kwargs: Any) -> bytes:
        """Encode the raster with Pillow (``png``, ``jpeg``, ``webp``, ...)."""
        fmt = fmt.lower()
        if fmt == "jpg":
            fmt = "jpeg"
        image = self.to_pil()
        if fmt in ("jpeg", "bmp"):
            image = image.convert("RGB")
        buffer = BytesIO()
        image.save(buffer, format=fmt.upper(), **save_kwargs)
        return buffer.getvalue()

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def scale_to(self, width: int, height: int, resample: str = "bilinear") -> Raster:
        """Resample to ``width`` x ``height`` (linear interpolation by default)."""
        width, height = int(width), int(height)
        if width < 1 or height < 1:
            raise InvalidInput(f"Invalid target size {width}x{height}")
        if (width, height) == self.size:
            return self.clone()
        if self.is_empty:
            return Raster.new(width, height)
        try:
            pil_filter = RESAMPLE_FILTERS[resample]
        except KeyError:
            raise InvalidInput(f"Unknown resample filter: {resample}") from None
        return Raster.from_pil(self.to_pil().resize((width, height), pil_filter))

    def draw_subregion(
        self,
        src: Raster,
        src_rect: tuple[int, int, int, int],
        dst_xy: tuple[int, int],
    ) -> None:
        """
        Copy ``src_rect`` = (x, y, w, h) of ``src`` into this raster at ``dst_xy``.

        The copy replaces pixels (no blending) and is clipped to both rasters.
        """
        sx, sy, sw, sh = (int(v) for v in src_rect)
        dx, dy = (int(v) for v in dst_xy)

        # Clip against the source
        if sx < 0:
            sw += sx
            dx -= sx
            sx = 0
        if sy < 0:
            sh += sy
            dy -= sy
            sy = 0
        sw = min(sw, src.width - sx)
        sh = min(sh, src.height - sy)

        # Clip against the destination
        if dx < 0:
            sw += dx
            sx -= dx
            dx = 0
        if dy < 0:
            sh += dy
            sy -= dy
            dy = 0
        sw = min(sw, self.width - dx)
        sh = min(sh, self.height - dy)

        if sw <= 0 or sh <= 0:
            return
        self.pixels[dy:dy + sh, dx:dx + sw] = src.pixels[sy:sy + sh, sx:sx + sw]

    def crop(self, y0: int, x0: int, y1: int, x1: int) -> Raster:
        """
        Return the region between two corners (in any order).

        Raises:
            InvalidInput: If the region is empty or leaves the raster
        """
        top, bottom = sorted((int(y0), int(y1)))
        left, right = sorted((int(x0), int(x1)))
        if top < 0 or left < 0 or bottom > self.height or right > self.width:
            raise InvalidInput(
                f"Crop ({top},{left})-({bottom},{right}) outside {self.width}x{self.height} image"
            )
        if bottom - top < 1 or right - left < 1:
            raise InvalidInput("Crop region is empty")
        return Raster(pixels=self.pixels[top:bottom, left:right].copy())

    def rotate(self, degrees: float) -> Raster:
        """
        Rotate clockwise by ``degrees``.

        Multiples of 90 are exact and swap width/height for 90/270. Other
        angles rotate around the centre inside the current canvas size, so
        corners are cropped and uncovered areas become transparent.
        """
        angle = float(degrees) % 360.0
        if angle % 90.0 == 0.0:
            quarter_turns = int(angle // 90.0)
            return Raster(pixels=np.ascontiguousarray(np.rot90(self.pixels, k=-quarter_turns)))
        rotated = self.to_pil().rotate(
            -angle,
            resample=Image.Resampling.BILINEAR,
            expand=False,
        )
        return Raster.from_pil(rotated)

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Raster):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and bool(
            np.array_equal(self.pixels, other.pixels)
        )

    def __repr__(self) -> str:
        return f"Raster({self.width}x{self.height})"
