"""
Animation Generator - Sweep effect parameters into an animated GIF.

A sweep interpolates one or more numeric layer parameters from a start to
an end value through an easing curve. For every frame the parameter is
set, the editor renders synchronously at full quality, and the display is
captured (optionally scaled). The original values are restored afterwards.

Progress callbacks receive whole percentages: 0-50 while capturing frames,
50-100 while encoding.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Mapping, Sequence

from photoedits.core.errors import InvalidInput
from photoedits.core.layers import Layer
from photoedits.core.raster import Raster
from photoedits.gif.decoder import DEFAULT_FRAME_DELAY_MS
from photoedits.gif.encoder import encode_gif

if TYPE_CHECKING:
    from photoedits.core.editor import ImageEditor


logger = logging.getLogger(__name__)


Easing = Callable[[float], float]
PercentCallback = Callable[[int], None]


# =============================================================================
# Easing curves
# =============================================================================

def linear(t: float) -> float:
    return t


def ease_in(t: float) -> float:
    return t * t


def ease_out(t: float) -> float:
    return t * (2 - t)


def ease_in_out(t: float) -> float:
    return 2 * t * t if t < 0.5 else -1 + (4 - 2 * t) * t


def ease_in_cubic(t: float) -> float:
    return t * t * t


def ease_out_cubic(t: float) -> float:
    t -= 1
    return t * t * t + 1


def ease_in_out_cubic(t: float) -> float:
    if t < 0.5:
        return 4 * t * t * t
    return (t - 1) * (2 * t - 2) * (2 * t - 2) + 1


def bounce(t: float) -> float:
    """Four-segment bounce-out curve."""
    n1 = 7.5625
    d1 = 2.75
    if t < 1 / d1:
        return n1 * t * t
    if t < 2 / d1:
        t -= 1.5 / d1
        return n1 * t * t + 0.75
    if t < 2.5 / d1:
        t -= 2.25 / d1
        return n1 * t * t + 0.9375
    t -= 2.625 / d1
    return n1 * t * t + 0.984375


EASINGS: dict[str, Easing] = {
    "linear": linear,
    "easeIn": ease_in,
    "easeOut": ease_out,
    "easeInOut": ease_in_out,
    "easeInCubic": ease_in_cubic,
    "easeOutCubic": ease_out_cubic,
    "easeInOutCubic": ease_in_out_cubic,
    "bounce": bounce,
}


def available_easings() -> list[str]:
    return list(EASINGS)


def get_easing(name: str | None) -> Easing:
    """Look up an easing by name; unknown names fall back to linear."""
    easing = EASINGS.get(name or "linear")
    if easing is None:
        logger.warning("Unknown easing %r, using linear", name)
        return linear
    return easing


# =============================================================================
# Frame values
# =============================================================================

def frame_values(
    start: float,
    end: float,
    frame_count: int,
    easing: str | None = "linear",
    ping_pong: bool = False,
) -> list[float]:
    """
    Parameter value for every frame of a sweep.

    With ``ping_pong`` the sequence is followed by its reverse without the
    two endpoints, so a looping GIF never shows an endpoint twice in a row.
    """
    if frame_count < 1:
        raise InvalidInput("frame_count must be at least 1")
    curve = get_easing(easing)
    values = []
    for i in range(frame_count):
        t = i / (frame_count - 1) if frame_count > 1 else 0.0
        values.append(start + (end - start) * curve(t))
    if ping_pong:
        values.extend(values[i] for i in range(frame_count - 2, 0, -1))
    return values


@dataclass
class ParameterSweep:
    """One parameter of a multi-parameter animation."""
    parameter: str
    start: float
    end: float
    easing: str = "linear"

    @classmethod
    def from_any(cls, config: ParameterSweep | Mapping[str, Any]) -> ParameterSweep:
        if isinstance(config, ParameterSweep):
            return config
        try:
            return cls(
                parameter=str(config["parameter"]),
                start=float(config["start"]),
                end=float(config["end"]),
                easing=str(config.get("easing", "linear")),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidInput(f"Invalid parameter sweep {config!r}: {e}") from e


def get_animatable_parameters(layer: Layer | None) -> list[dict[str, Any]]:
    """Numeric parameters with a range, i.e. the ones a sweep can drive."""
    if layer is None:
        return []
    result = []
    for name, descriptor in layer.parameters.items():
        if not descriptor.is_numeric or descriptor.range is None:
            continue
        result.append({
            "name": name,
            "current_value": descriptor.value,
            "min": descriptor.range[0],
            "max": descriptor.range[1],
            "step": descriptor.step or layer.value_step or 0.01,
        })
    return result


# =============================================================================
# GIF generation
# =============================================================================

def _resolve_layer(editor: ImageEditor, layer_index: int) -> Layer:
    if editor is None:
        raise InvalidInput("An ImageEditor instance is required")
    if editor.base is None:
        raise InvalidInput("No image loaded")
    if not 0 <= layer_index < len(editor.layers):
        raise InvalidInput(f"Layer at index {layer_index} not found")
    return editor.layers[layer_index]


def _capture(editor: ImageEditor, width: int, height: int) -> Raster:
    display = editor.render_now()
    if display is None:
        raise InvalidInput("Nothing to capture")
    if display.size != (width, height):
        return display.scale_to(width, height)
    return display.clone()


def _run_sweep(
    editor: ImageEditor,
    layer: Layer,
    tracks: dict[str, list[float]],
    *,
    scale: float,
    quality: int,
    delay: int,
    workers: int,
    on_progress: PercentCallback | None,
) -> bytes:
    if scale <= 0:
        raise InvalidInput(f"Invalid scale {scale}")
    width = max(1, round(editor.width * scale))
    height = max(1, round(editor.height * scale))
    total = len(next(iter(tracks.values())))

    originals = {name: layer.parameters[name].value for name in tracks}
    frames: list[Raster] = []
    try:
        for i in range(total):
            for name, values in tracks.items():
                layer.parameters[name].value = values[i]
            frames.append(_capture(editor, width, height))
            if on_progress is not None:
                on_progress(round((i + 1) / total * 50))
    finally:
        for name, value in originals.items():
            layer.parameters[name].value = value
        editor.render_now()

    logger.info("Captured %d animation frames at %dx%d", total, width, height)

    progress = None
    if on_progress is not None:
        def progress(fraction: float) -> None:
            on_progress(50 + round(fraction * 50))

    return encode_gif(
        frames,
        [delay] * total,
        quality=quality,
        workers=workers,
        on_progress=progress,
    )


def create_slider_animation(
    editor: ImageEditor,
    layer_index: int,
    parameter: str,
    start: float,
    end: float,
    *,
    frame_count: int = 10,
    easing: str = "linear",
    ping_pong: bool = False,
    scale: float = 1.0,
    quality: int = 10,
    delay: int = DEFAULT_FRAME_DELAY_MS,
    workers: int = 2,
    on_progress: PercentCallback | None = None,
) -> bytes:
    """
    Animate one layer parameter and return the GIF bytes.

    Raises:
        InvalidInput: If the layer or parameter does not exist
    """
    layer = _resolve_layer(editor, layer_index)
    if parameter not in layer.parameters:
        raise InvalidInput(f'Parameter "{parameter}" not found on layer')
    values = frame_values(start, end, frame_count, easing, ping_pong)
    return _run_sweep(
        editor, layer, {parameter: values},
        scale=scale, quality=quality, delay=delay, workers=workers, on_progress=on_progress,
    )


def create_multi_parameter_animation(
    editor: ImageEditor,
    layer_index: int,
    sweeps: Sequence[ParameterSweep | Mapping[str, Any]],
    *,
    frame_count: int = 10,
    ping_pong: bool = False,
    scale: float = 1.0,
    quality: int = 10,
    delay: int = DEFAULT_FRAME_DELAY_MS,
    workers: int = 2,
    on_progress: PercentCallback | None = None,
) -> bytes:
    """Animate several parameters of one layer together, each with its own easing."""
    layer = _resolve_layer(editor, layer_index)
    resolved = [ParameterSweep.from_any(s) for s in sweeps]
    if not resolved:
        raise InvalidInput("At least one parameter sweep is required")
    for sweep in resolved:
        if sweep.parameter not in layer.parameters:
            raise InvalidInput(f'Parameter "{sweep.parameter}" not found on layer')

    tracks = {
        sweep.parameter: frame_values(sweep.start, sweep.end, frame_count, sweep.easing, ping_pong)
        for sweep in resolved
    }
    return _run_sweep(
        editor, layer, tracks,
        scale=scale, quality=quality, delay=delay, workers=workers, on_progress=on_progress,
    )
