"""
Tests for the effect registry.
"""

from photoedits.core.parameters import ParameterDescriptor
from photoedits.effects.registry import (
    EffectParam,
    default_parameters,
    get_categories,
    get_effect,
    get_effect_registry,
    get_effects_by_category,
)


EXPECTED_IDS = {
    "greyscale",
    "sepia",
    "filmEffects",
    "hsvAdjustment",
    "paintedStylization",
    "pointsInSpace",
    "vectorsInSpace",
    "sobelEdges",
    "sobelEdgesColouredDirections",
    "prewireEdges",
    "prewireEdgesColouredDirections",
}


class TestEffectRegistry:
    """Tests for effect lookup."""

    def test_all_effects_registered(self):
        assert set(get_effect_registry()) == EXPECTED_IDS

    def test_registry_copy_is_detached(self):
        registry = get_effect_registry()
        registry.pop("sepia")
        assert get_effect("sepia") is not None

    def test_unknown_and_none(self):
        assert get_effect("blur") is None
        assert get_effect(None) is None
        assert default_parameters("blur") == {}

    def test_prewitt_aliases(self):
        assert get_effect("prewittEdges").id == "prewireEdges"
        assert get_effect("prewittEdgesColouredDirections").id == "prewireEdgesColouredDirections"

    def test_categories(self):
        assert get_categories() == ["Colour", "Edges", "Stylize"]
        assert {e.id for e in get_effects_by_category("Edges")} == {
            "sobelEdges",
            "sobelEdgesColouredDirections",
            "prewireEdges",
            "prewireEdgesColouredDirections",
        }
        assert get_effects_by_category("Nope") == []

    def test_every_effect_is_callable(self):
        for spec in get_effect_registry().values():
            assert callable(spec.apply)
            assert spec.name


class TestDefaultParameters:
    """Tests for default parameter schemas."""

    def test_greyscale_has_no_parameters(self):
        assert default_parameters("greyscale") == {}

    def test_sepia_defaults(self):
        params = default_parameters("sepia")
        assert params["intensity"] == ParameterDescriptor(value=1, range=(0, 1), step=0.01)

    def test_hsv_defaults(self):
        params = default_parameters("hsvAdjustment")
        assert {k: v.value for k, v in params.items()} == {"hue": 0, "saturation": 100, "brightness": 100}
        assert params["hue"].range == (-180, 180)

    def test_painted_defaults(self):
        params = default_parameters("paintedStylization")
        assert params["angle"].value == 145
        assert params["sampling"].range == (5, 10000)
        assert params["overwritePixels"].value is False
        assert params["overwritePixels"].range is None

    def test_edge_defaults(self):
        params = default_parameters("sobelEdges")
        assert params["edgeThreshold"].value == 50
        assert params["blackoutBackground"].value is True
        assert params["transparentBackground"].value is False

    def test_defaults_are_fresh_copies(self):
        first = default_parameters("sepia")
        first["intensity"].value = 0.2
        assert default_parameters("sepia")["intensity"].value == 1

    def test_param_without_range(self):
        descriptor = EffectParam("flag", default=True).to_descriptor()
        assert descriptor.range is None
        assert descriptor.value is True
