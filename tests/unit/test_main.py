"""
Tests for the command-line entry point.
"""

import argparse

import pytest

from photoedits.core.raster import Raster
from photoedits.gif.decoder import parse_gif
from photoedits.main import main, parse_effect, parse_value


@pytest.fixture
def image_path(tmp_path):
    path = tmp_path / "in.png"
    path.write_bytes(Raster.new(4, 4, (200, 100, 50, 255)).encode("png"))
    return path


class TestArgumentParsing:
    """Tests for effect option parsing."""

    @pytest.mark.parametrize("text,expected", [
        ("3", 3),
        ("0.5", 0.5),
        ("true", True),
        ("Off", False),
        ("red", "red"),
    ])
    def test_parse_value(self, text, expected):
        assert parse_value(text) == expected

    def test_parse_effect(self):
        assert parse_effect("sepia:intensity=0.5") == ("sepia", {"intensity": 0.5})
        assert parse_effect("greyscale") == ("greyscale", {})

    def test_parse_effect_needs_key_value(self):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_effect("sepia:intensity")


class TestCommands:
    """End-to-end runs of the subcommands."""

    def test_apply(self, image_path, tmp_path):
        out = tmp_path / "out.png"
        assert main(["apply", str(image_path), "-o", str(out), "-e", "greyscale"]) == 0
        r, g, b, _ = Raster.from_file(out).pixel(0, 0)
        assert r == g == b

    def test_apply_unknown_effect(self, image_path, tmp_path, capsys):
        out = tmp_path / "out.png"
        assert main(["apply", str(image_path), "-o", str(out), "-e", "nope"]) == 1
        assert "Unknown effect" in capsys.readouterr().err
        assert not out.exists()

    def test_missing_input(self, tmp_path, capsys):
        assert main(["apply", str(tmp_path / "missing.png"), "-o", str(tmp_path / "o.png")]) == 1
        assert "not found" in capsys.readouterr().err

    def test_gif_compose_and_info(self, tmp_path, capsys):
        for i, rgb in enumerate([(255, 0, 0), (0, 0, 255)]):
            (tmp_path / f"f{i}.png").write_bytes(Raster.new(3, 2, (*rgb, 255)).encode("png"))
        gif = tmp_path / "out.gif"
        args = ["gif-compose", str(tmp_path / "f0.png"), str(tmp_path / "f1.png"),
                "-o", str(gif), "--delay", "120", "-q"]
        assert main(args) == 0
        assert len(parse_gif(gif.read_bytes())[2]) == 2

        assert main(["gif-info", str(gif)]) == 0
        output = capsys.readouterr().out
        assert "Frames: 2" in output
        assert "Size: 3x2" in output
        assert "120, 120" in output

    def test_animate(self, image_path, tmp_path):
        gif = tmp_path / "anim.gif"
        args = ["animate", str(image_path), "-o", str(gif), "-e", "sepia", "-p", "intensity",
                "--start", "0", "--end", "1", "--frames", "3", "--ping-pong", "-q"]
        assert main(args) == 0
        assert len(parse_gif(gif.read_bytes())[2]) == 4
