"""
Tests for the Raster pixel buffer.
"""

import numpy as np
import pytest
from PIL import Image

from photoedits.core.errors import DecodeFailed, InvalidInput
from photoedits.core.raster import Raster


def numbered(width, height):
    """Raster whose red channel holds the pixel index."""
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[..., 0] = np.arange(width * height, dtype=np.uint8).reshape(height, width)
    pixels[..., 3] = 255
    return Raster(pixels=pixels)


class TestConstruction:
    """Tests for building rasters."""

    def test_new_fill(self):
        raster = Raster.new(3, 2, (1, 2, 3, 4))
        assert raster.size == (3, 2)
        assert raster.pixel(2, 1) == (1, 2, 3, 4)

    def test_new_negative_size(self):
        with pytest.raises(InvalidInput, match="Invalid raster size"):
            Raster.new(-1, 2)

    def test_rejects_bad_shape_and_dtype(self):
        with pytest.raises(InvalidInput, match="shape"):
            Raster(pixels=np.zeros((2, 2, 3), dtype=np.uint8))
        with pytest.raises(InvalidInput, match="uint8"):
            Raster(pixels=np.zeros((2, 2, 4), dtype=np.float32))

    def test_from_numpy_rgb_float(self):
        raster = Raster.from_numpy(np.ones((2, 2, 3), dtype=np.float32) * 0.5)
        assert raster.pixel(0, 0) == (128, 128, 128, 255)

    def test_from_numpy_greyscale(self):
        raster = Raster.from_numpy(np.full((1, 2), 7, dtype=np.uint8))
        assert raster.pixel(1, 0) == (7, 7, 7, 255)

    def test_from_bytes_length_checked(self):
        with pytest.raises(InvalidInput, match="Expected 16 bytes"):
            Raster.from_bytes(2, 2, b"\x00" * 15)

    def test_data_round_trip(self):
        raster = numbered(3, 2)
        assert Raster.from_bytes(3, 2, raster.data) == raster
        assert len(raster.data) == 4 * 3 * 2

    def test_transferable(self):
        raster = numbered(2, 2)
        payload = raster.into_transferable()
        assert payload[:2] == (2, 2)
        assert Raster.from_transferable(payload) == raster

    def test_pil_round_trip(self):
        raster = numbered(4, 3)
        assert Raster.from_pil(raster.to_pil()) == raster

    def test_from_pil_converts_mode(self):
        raster = Raster.from_pil(Image.new("RGB", (2, 1), (9, 8, 7)))
        assert raster.pixel(0, 0) == (9, 8, 7, 255)

    def test_encode_decode_png(self):
        raster = numbered(5, 4)
        assert Raster.decode(raster.encode("png")) == raster

    def test_decode_garbage(self):
        with pytest.raises(DecodeFailed):
            Raster.decode(b"not an image", mime="image/png")

    def test_from_file_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Raster.from_file(tmp_path / "missing.png")


class TestBuffer:
    """Tests for queries and copies."""

    def test_clone_has_own_memory(self):
        raster = numbered(2, 2)
        copy = raster.clone()
        copy.pixels[0, 0] = 0
        assert raster.pixel(0, 0) == (0, 0, 0, 255)
        assert raster.pixel(1, 0) == (1, 0, 0, 255)
        assert copy.pixels is not raster.pixels

    def test_has_transparency(self):
        raster = Raster.new(2, 2, (0, 0, 0, 255))
        assert not raster.has_transparency()
        raster.pixels[1, 1, 3] = 127
        assert raster.has_transparency()
        assert not raster.has_transparency(threshold=100)

    def test_equality(self):
        assert Raster.new(1, 2) == Raster.new(1, 2)
        assert Raster.new(1, 2) != Raster.new(2, 1)
        assert Raster.new(1, 1) != Raster.new(1, 1, (0, 0, 0, 1))

    def test_is_empty(self):
        assert Raster.new(0, 3).is_empty
        assert not Raster.new(1, 1).is_empty


class TestGeometry:
    """Tests for crop, rotate, scale and subregion copies."""

    def test_crop_inner_quadrant(self):
        raster = numbered(4, 4)
        cropped = raster.crop(1, 1, 3, 3)
        assert cropped.size == (2, 2)
        assert cropped.pixels[..., 0].tolist() == [[5, 6], [9, 10]]

    def test_crop_corners_any_order(self):
        raster = numbered(4, 4)
        assert raster.crop(3, 3, 1, 1) == raster.crop(1, 1, 3, 3)

    def test_crop_out_of_bounds(self):
        with pytest.raises(InvalidInput, match="outside"):
            numbered(4, 4).crop(0, 0, 5, 2)

    def test_crop_empty(self):
        with pytest.raises(InvalidInput, match="empty"):
            numbered(4, 4).crop(1, 1, 1, 3)

    def test_rotate_90_clockwise(self):
        raster = numbered(3, 2)
        rotated = raster.rotate(90)
        assert rotated.size == (2, 3)
        # Bottom-left pixel moves to the top-left
        assert rotated.pixels[..., 0].tolist() == [[3, 0], [4, 1], [5, 2]]

    def test_rotate_360_is_identity(self):
        raster = numbered(3, 2)
        assert raster.rotate(360) == raster
        assert raster.rotate(-90) == raster.rotate(270)

    def test_rotate_arbitrary_keeps_size(self):
        raster = numbered(6, 4)
        assert raster.rotate(30).size == (6, 4)

    def test_scale_to(self):
        raster = Raster.new(4, 4, (50, 60, 70, 255))
        scaled = raster.scale_to(2, 3)
        assert scaled.size == (2, 3)
        assert scaled.pixel(1, 1) == (50, 60, 70, 255)

    def test_scale_to_invalid(self):
        with pytest.raises(InvalidInput, match="Invalid target size"):
            Raster.new(2, 2).scale_to(0, 2)
        with pytest.raises(InvalidInput, match="Unknown resample"):
            Raster.new(2, 2).scale_to(3, 3, "cubicspline")

    def test_draw_subregion_clips(self):
        dst = Raster.new(3, 3)
        src = Raster.new(2, 2, (1, 1, 1, 1))
        dst.draw_subregion(src, (0, 0, 2, 2), (2, 2))
        assert dst.pixel(2, 2) == (1, 1, 1, 1)
        assert dst.pixel(1, 1) == (0, 0, 0, 0)
        assert int(dst.pixels[..., 3].sum()) == 1
