"""
Tests for the GIF frame stack, multi-image composition and editor bridge.
"""

import pytest

from photoedits.core.editor import ImageEditor
from photoedits.core.errors import InvalidInput
from photoedits.core.raster import Raster
from photoedits.gif.encoder import encode_gif
from photoedits.gif.errors import InvalidFormat
from photoedits.gif.frames import (
    GifFrameStack,
    compose_frames_from_images,
    estimate_gif_size,
    export_frame_stack,
    fit_centered,
    format_file_size,
    load_frame_to_editor,
    load_gif_frames,
    natural_sort_key,
    save_editor_to_frame,
)


def solid(width, height, rgb):
    return Raster.new(width, height, (*rgb, 255))


@pytest.fixture
def stack():
    s = GifFrameStack()
    s.add_frame(solid(3, 3, (255, 0, 0)), 100)
    s.add_frame(solid(3, 3, (0, 255, 0)), 200)
    s.add_frame(solid(3, 3, (0, 0, 255)), 300)
    return s


class TestGifFrameStack:
    """Tests for GifFrameStack."""

    def test_first_frame_sets_size(self, stack):
        assert (stack.width, stack.height) == (3, 3)
        assert len(stack) == 3
        assert stack.length == 3
        assert stack.delays == [100, 200, 300]

    def test_add_frame_copies_raster(self):
        s = GifFrameStack()
        raster = solid(2, 2, (1, 2, 3))
        s.add_frame(raster)
        raster.pixels[...] = 0
        assert s.get_frame(0).raster.pixel(0, 0) == (1, 2, 3, 255)

    def test_add_frame_size_mismatch(self, stack):
        with pytest.raises(InvalidInput):
            stack.add_frame(solid(4, 3, (0, 0, 0)))

    def test_delay_is_clamped(self, stack):
        stack.add_frame(solid(3, 3, (9, 9, 9)), 5)
        assert stack.delays[-1] == 20
        assert stack.set_delay(0, 0) is True
        assert stack.delays[0] == 20

    def test_bad_indices_return_false(self, stack):
        assert stack.get_frame(7) is None
        assert stack.set_frame(7, solid(3, 3, (0, 0, 0))) is False
        assert stack.set_delay(-1, 100) is False
        assert stack.delete_frame(3) is False
        assert stack.duplicate_frame(3) is False
        assert stack.move_frame(0, 3) is False

    def test_duplicate_inserts_after(self, stack):
        assert stack.duplicate_frame(0) is True
        assert stack.delays == [100, 100, 200, 300]
        assert stack.frames[1].raster is not stack.frames[0].raster

    def test_move_frame(self, stack):
        assert stack.move_frame(2, 0) is True
        assert stack.delays == [300, 100, 200]

    def test_delete_clamps_current_index(self, stack):
        stack.current_index = 2
        stack.delete_frame(2)
        assert stack.current_index == 1
        assert stack.current_frame.delay_ms == 200

    def test_delete_last_resets_size(self):
        s = GifFrameStack()
        s.add_frame(solid(2, 2, (0, 0, 0)))
        s.delete_frame(0)
        assert (s.width, s.height) == (0, 0)
        s.add_frame(solid(5, 1, (0, 0, 0)))
        assert (s.width, s.height) == (5, 1)

    def test_clear(self, stack):
        stack.current_index = 1
        stack.clear()
        assert len(stack) == 0
        assert stack.current_index == 0
        assert stack.current_frame is None


class TestLoadExport:
    """Tests for moving stacks to and from GIF bytes."""

    def test_export_then_load(self, stack):
        percents = []
        data = export_frame_stack(stack, on_progress=percents.append)
        assert percents[-1] == 100

        loaded = load_gif_frames(data, GifFrameStack())
        assert loaded.delays == [100, 200, 300]
        assert loaded.get_frame(1).raster.pixel(1, 1) == (0, 255, 0, 255)

    def test_load_from_path(self, tmp_path, stack):
        path = tmp_path / "anim.gif"
        path.write_bytes(export_frame_stack(stack))
        assert len(load_gif_frames(path, GifFrameStack())) == 3

    def test_failed_load_keeps_stack(self, stack):
        with pytest.raises(InvalidFormat):
            load_gif_frames(b"not a gif", stack)
        assert len(stack) == 3

    def test_gif_without_frames(self):
        data = encode_gif([solid(1, 1, (0, 0, 0))])
        header_only = data[:data.index(b"\x21\xf9")] + b";"
        with pytest.raises(InvalidFormat, match="no frames"):
            load_gif_frames(header_only, GifFrameStack())

    def test_export_empty_stack(self):
        with pytest.raises(InvalidInput, match="No frames"):
            export_frame_stack(GifFrameStack())


class TestComposeFromImages:
    """Tests for building a stack from still images."""

    def test_natural_sort_key(self):
        names = ["frame10.png", "frame2.png", "Frame1.png"]
        assert sorted(names, key=natural_sort_key) == ["Frame1.png", "frame2.png", "frame10.png"]

    def test_paths_sorted_naturally(self, tmp_path):
        colours = {"img10.png": (0, 0, 255), "img2.png": (0, 255, 0), "img1.png": (255, 0, 0)}
        for name, rgb in colours.items():
            (tmp_path / name).write_bytes(solid(2, 2, rgb).encode("png"))

        result = compose_frames_from_images(sorted(tmp_path.iterdir()), delay_ms=150)
        firsts = [frame.raster.pixel(0, 0)[:3] for frame in result]
        assert firsts == [(255, 0, 0), (0, 255, 0), (0, 0, 255)]
        assert result.delays == [150, 150, 150]

    def test_other_sizes_are_fitted(self):
        result = compose_frames_from_images([solid(4, 4, (255, 255, 255)), solid(2, 1, (255, 0, 0))])
        fitted = result.get_frame(1).raster
        assert fitted.size == (4, 4)
        # 2x1 scales to 4x2 and sits in the middle rows on black
        assert fitted.pixel(0, 0) == (0, 0, 0, 255)
        assert fitted.pixel(0, 1) == (255, 0, 0, 255)
        assert fitted.pixel(3, 2) == (255, 0, 0, 255)
        assert fitted.pixel(3, 3) == (0, 0, 0, 255)

    def test_fit_centered_keeps_aspect(self):
        fitted = fit_centered(solid(1, 2, (9, 9, 9)), 6, 4)
        assert fitted.size == (6, 4)
        assert fitted.pixel(0, 0) == (0, 0, 0, 255)
        assert fitted.pixel(3, 2) == (9, 9, 9, 255)

    def test_no_images(self):
        with pytest.raises(InvalidInput, match="No images"):
            compose_frames_from_images([])


class TestSizeEstimate:
    """Tests for the output size estimate."""

    def test_estimate(self):
        estimate = estimate_gif_size(100, 50, 10)
        assert estimate["total_frames"] == 10
        assert estimate["raw_frame_size"] == 5000
        assert estimate["bytes"] == (2500 + 800) * 10 + 1000
        assert estimate["dimensions"] == (100, 50)

    def test_estimate_ping_pong(self):
        assert estimate_gif_size(10, 10, 10, ping_pong=True)["total_frames"] == 18

    @pytest.mark.parametrize("size,expected", [
        (512, "512 B"),
        (2048, "2.0 KB"),
        (5 * 1024 ** 2, "5.0 MB"),
        (3 * 1024 ** 3, "3.00 GB"),
    ])
    def test_format_file_size(self, size, expected):
        assert format_file_size(size) == expected


class TestEditorBridge:
    """Tests for moving frames in and out of an editor."""

    def test_load_frame_keeps_layers(self, stack):
        editor = ImageEditor(solid(3, 3, (5, 5, 5)))
        editor.add_effect_layer("Grey", "greyscale")
        assert load_frame_to_editor(editor, 2, stack) is True
        assert stack.current_index == 2
        assert len(editor.layers) == 1
        assert editor.base.pixel(0, 0) == (0, 0, 255, 255)

    def test_save_editor_to_frame(self, stack):
        editor = ImageEditor()
        load_frame_to_editor(editor, 0, stack)
        editor.add_effect_layer("Grey", "greyscale")
        assert save_editor_to_frame(editor, 0, stack) is True
        r, g, b, _ = stack.get_frame(0).raster.pixel(0, 0)
        assert r == g == b

    def test_bad_frame_index(self, stack):
        editor = ImageEditor()
        assert load_frame_to_editor(editor, 9, stack) is False
        assert save_editor_to_frame(editor, 0, stack) is False
