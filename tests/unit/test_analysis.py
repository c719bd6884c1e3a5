"""
Tests for histograms, image statistics and colour readouts.
"""

import numpy as np
import pytest

from photoedits.analysis import (
    calculate_histogram,
    calculate_image_stats,
    color_info,
    luminance,
    rgb_to_hex,
    rgb_to_hsl,
)
from photoedits.core.raster import Raster


def two_pixels():
    return Raster(pixels=np.array([[[255, 0, 0, 255], [0, 0, 255, 255]]], dtype=np.uint8))


class TestHistogram:
    """Tests for calculate_histogram()."""

    def test_counts(self):
        hist = calculate_histogram(two_pixels())
        assert hist["red"][255] == 1
        assert hist["red"][0] == 1
        assert hist["green"][0] == 2
        assert sum(hist["luminance"]) == 2
        assert len(hist["blue"]) == 256

    def test_transparent_pixels_ignored(self):
        pixels = np.array([[[10, 10, 10, 255], [200, 200, 200, 0]]], dtype=np.uint8)
        hist = calculate_histogram(Raster(pixels=pixels))
        assert hist["red"][200] == 0
        assert hist["stats"]["pixel_count"] == 1
        assert hist["stats"]["avgR"] == 10

    def test_stats(self):
        stats = calculate_histogram(two_pixels())["stats"]
        assert stats["avgR"] == 128
        assert stats["minR"] == 0
        assert stats["maxR"] == 255
        assert stats["avgG"] == 0

    def test_fully_transparent(self):
        stats = calculate_histogram(Raster.new(2, 2))["stats"]
        assert stats == {
            "pixel_count": 0,
            "avgR": 0, "minR": 255, "maxR": 0,
            "avgG": 0, "minG": 255, "maxG": 0,
            "avgB": 0, "minB": 255, "maxB": 0,
        }


class TestLuminance:
    """Tests for luminance()."""

    def test_rec709(self):
        values = luminance(np.array([[255, 0, 0], [0, 255, 0], [0, 0, 255], [255, 255, 255]]))
        assert values.tolist() == [54, 182, 18, 255]


class TestImageStats:
    """Tests for calculate_image_stats()."""

    def test_dimensions(self):
        stats = calculate_image_stats(two_pixels())
        assert stats["dimensions"] == {"width": 2, "height": 1, "pixels": 2}

    def test_channel_stats(self):
        red = calculate_image_stats(two_pixels())["channels"]["red"]
        assert red["mean"] == 127.5
        assert red["std"] == 127.5
        assert red["range"] == 255
        assert red["p5"] == 0
        assert red["p95"] == 255

    def test_black_and_white_contrast(self):
        pixels = np.array([[[0, 0, 0, 255], [255, 255, 255, 255]]], dtype=np.uint8)
        analysis = calculate_image_stats(Raster(pixels=pixels))["analysis"]
        assert analysis["dynamic_range"] == 255
        assert analysis["contrast_ratio"] == pytest.approx(5101.0)
        assert analysis["is_high_contrast"] is True
        assert analysis["dynamic_range_stops"] == pytest.approx(7.99, abs=0.01)

    def test_key_and_dominant_channel(self):
        dark_green = Raster.new(2, 2, (10, 60, 10, 255))
        analysis = calculate_image_stats(dark_green)["analysis"]
        assert analysis["is_low_key"] is True
        assert analysis["is_high_key"] is False
        assert analysis["dominant_channel"] == "Green"

    def test_tie_reports_blue(self):
        grey = Raster.new(1, 1, (200, 200, 200, 255))
        analysis = calculate_image_stats(grey)["analysis"]
        assert analysis["dominant_channel"] == "Blue"
        assert analysis["is_high_key"] is True


class TestColorInfo:
    """Tests for colour readouts."""

    def test_hex(self):
        assert rgb_to_hex(255, 171, 0) == "#FFAB00"

    @pytest.mark.parametrize("rgb,hsl", [
        ((255, 0, 0), (0, 100, 50)),
        ((0, 0, 255), (240, 100, 50)),
        ((128, 128, 128), (0, 0, 50)),
        ((255, 255, 255), (0, 0, 100)),
    ])
    def test_hsl(self, rgb, hsl):
        assert rgb_to_hsl(*rgb) == hsl

    def test_color_info(self):
        pixels = np.array([[[0, 0, 0, 255], [255, 0, 0, 128]]], dtype=np.uint8)
        info = color_info(Raster(pixels=pixels), 1.7, 0.2)
        assert info == {
            "rgba": (255, 0, 0, 128),
            "hex": "#FF0000",
            "hsl": (0, 100, 50),
            "alpha_percent": 50,
        }

    def test_outside_is_none(self):
        assert color_info(two_pixels(), 2, 0) is None
        assert color_info(two_pixels(), -0.5, 0) is None
