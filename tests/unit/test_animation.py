"""
Tests for easing curves and parameter-sweep animations.
"""

import pytest

from photoedits.core.editor import ImageEditor
from photoedits.core.errors import InvalidInput
from photoedits.core.raster import Raster
from photoedits.gif.animation import (
    EASINGS,
    ParameterSweep,
    available_easings,
    bounce,
    create_multi_parameter_animation,
    create_slider_animation,
    ease_in_out,
    frame_values,
    get_animatable_parameters,
    get_easing,
    linear,
)
from photoedits.gif.decoder import parse_gif


@pytest.fixture
def editor():
    ed = ImageEditor(Raster.new(4, 2, (200, 100, 50, 255)))
    ed.add_effect_layer("Sepia", "sepia")
    yield ed
    ed.close()


class TestEasings:
    """Tests for the easing curves."""

    @pytest.mark.parametrize("name", sorted(EASINGS))
    def test_endpoints(self, name):
        curve = EASINGS[name]
        assert curve(0.0) == pytest.approx(0.0)
        assert curve(1.0) == pytest.approx(1.0)

    def test_known_midpoints(self):
        assert EASINGS["easeIn"](0.5) == 0.25
        assert EASINGS["easeOut"](0.5) == 0.75
        assert ease_in_out(0.25) == 0.125
        assert EASINGS["easeInCubic"](0.5) == 0.125
        assert EASINGS["easeOutCubic"](0.5) == 0.875

    def test_bounce_segments(self):
        assert bounce(0.2) == pytest.approx(7.5625 * 0.04)
        assert bounce(0.5) == pytest.approx(7.5625 * (0.5 - 1.5 / 2.75) ** 2 + 0.75)

    def test_names(self):
        assert available_easings() == [
            "linear", "easeIn", "easeOut", "easeInOut",
            "easeInCubic", "easeOutCubic", "easeInOutCubic", "bounce",
        ]

    def test_unknown_falls_back_to_linear(self):
        assert get_easing("wobble") is linear
        assert get_easing(None) is linear


class TestFrameValues:
    """Tests for frame_values()."""

    def test_linear(self):
        assert frame_values(0, 10, 3) == [0, 5, 10]

    def test_eased(self):
        assert frame_values(0, 100, 3, "easeIn") == [0, 25, 100]

    def test_ping_pong_skips_endpoints(self):
        assert frame_values(0, 30, 4, ping_pong=True) == pytest.approx([0, 10, 20, 30, 20, 10])

    def test_single_frame(self):
        assert frame_values(3, 9, 1) == [3]
        assert frame_values(3, 9, 1, ping_pong=True) == [3]

    def test_two_frame_ping_pong(self):
        assert frame_values(0, 1, 2, ping_pong=True) == [0, 1]

    def test_frame_count_must_be_positive(self):
        with pytest.raises(InvalidInput):
            frame_values(0, 1, 0)


class TestParameterSweep:
    """Tests for ParameterSweep.from_any()."""

    def test_from_mapping(self):
        sweep = ParameterSweep.from_any({"parameter": "intensity", "start": 0, "end": "1"})
        assert sweep == ParameterSweep("intensity", 0.0, 1.0, "linear")

    def test_passthrough(self):
        sweep = ParameterSweep("intensity", 0, 1)
        assert ParameterSweep.from_any(sweep) is sweep

    def test_missing_key(self):
        with pytest.raises(InvalidInput):
            ParameterSweep.from_any({"parameter": "intensity"})


class TestAnimatableParameters:
    """Tests for get_animatable_parameters()."""

    def test_sepia_intensity(self, editor):
        params = get_animatable_parameters(editor.layers[0])
        assert params == [{"name": "intensity", "current_value": 1, "min": 0, "max": 1, "step": 0.01}]

    def test_no_layer(self):
        assert get_animatable_parameters(None) == []


class TestSliderAnimation:
    """Tests for create_slider_animation()."""

    def test_frames_and_restore(self, editor):
        percents = []
        data = create_slider_animation(
            editor, 0, "intensity", 0, 1, frame_count=4, ping_pong=True, delay=50,
            on_progress=percents.append,
        )
        width, height, frames = parse_gif(data)
        assert (width, height) == (4, 2)
        assert len(frames) == 6
        assert all(frame.delay_ms == 50 for frame in frames)
        # Intensity 0 leaves the base untouched
        assert frames[0].raster.pixel(0, 0) == (200, 100, 50, 255)
        assert frames[3].raster.pixel(0, 0) != (200, 100, 50, 255)

        assert editor.layers[0].parameters["intensity"].value == 1
        assert percents[-1] == 100
        assert percents == sorted(percents)

    def test_scaled_output(self, editor):
        data = create_slider_animation(editor, 0, "intensity", 0, 1, frame_count=2, scale=0.5)
        width, height, _ = parse_gif(data)
        assert (width, height) == (2, 1)

    def test_unknown_parameter(self, editor):
        with pytest.raises(InvalidInput, match='Parameter "radius" not found'):
            create_slider_animation(editor, 0, "radius", 0, 1)

    def test_unknown_layer(self, editor):
        with pytest.raises(InvalidInput, match="Layer at index 4 not found"):
            create_slider_animation(editor, 4, "intensity", 0, 1)

    def test_no_image(self):
        with pytest.raises(InvalidInput, match="No image loaded"):
            create_slider_animation(ImageEditor(), 0, "intensity", 0, 1)

    def test_invalid_scale(self, editor):
        with pytest.raises(InvalidInput):
            create_slider_animation(editor, 0, "intensity", 0, 1, scale=0)
        assert editor.layers[0].parameters["intensity"].value == 1


class TestMultiParameterAnimation:
    """Tests for create_multi_parameter_animation()."""

    def test_two_parameters(self):
        ed = ImageEditor(Raster.new(2, 2, (120, 60, 30, 255)))
        ed.add_effect_layer("HSV", "hsvAdjustment")
        names = [p["name"] for p in get_animatable_parameters(ed.layers[0])]
        assert "brightness" in names
        other = next(n for n in names if n != "brightness")
        before = ed.layers[0].parameter_values()

        data = create_multi_parameter_animation(
            ed, 0,
            [
                {"parameter": "brightness", "start": 50, "end": 150, "easing": "easeInOut"},
                ParameterSweep(other, 0, 0),
            ],
            frame_count=3,
        )
        assert len(parse_gif(data)[2]) == 3
        assert ed.layers[0].parameter_values() == before

    def test_requires_a_sweep(self, editor):
        with pytest.raises(InvalidInput, match="At least one"):
            create_multi_parameter_animation(editor, 0, [])

    def test_unknown_parameter(self, editor):
        with pytest.raises(InvalidInput, match="not found"):
            create_multi_parameter_animation(
                editor, 0, [{"parameter": "nope", "start": 0, "end": 1}]
            )
