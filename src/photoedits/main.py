"""
PhotoEdits - Command-line entry point.

Subcommands:
    apply        Stack effects on an image and write the result
    gif-info     Print frame count, size and delays of a GIF
    gif-compose  Combine still images into an animated GIF
    animate      Sweep one effect parameter into an animated GIF
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any


logger = logging.getLogger(__name__)


def parse_value(text: str) -> Any:
    """Interpret a ``k=v`` value as bool, int, float or string."""
    lowered = text.strip().lower()
    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False
    for cast in (int, float):
        try:
            return cast(text)
        except ValueError:
            continue
    return text


def parse_effect(spec: str) -> tuple[str, dict[str, Any]]:
    """
    Parse ``id[:k=v,...]`` into an effect id and parameter values.

    Example: ``sepia:intensity=0.5``
    """
    effect_id, _, rest = spec.partition(":")
    params: dict[str, Any] = {}
    for item in filter(None, (p.strip() for p in rest.split(","))):
        key, sep, value = item.partition("=")
        if not sep:
            raise argparse.ArgumentTypeError(f"Expected k=v in effect options, got {item!r}")
        params[key.strip()] = parse_value(value)
    return effect_id.strip(), params


def _output_format(path: Path) -> str:
    return path.suffix.lstrip(".").lower() or "png"


def _build_editor(image: Path, effects: list[tuple[str, dict[str, Any]]]):
    from photoedits.core.editor import ImageEditor

    editor = ImageEditor(image)
    for effect_id, params in effects:
        layer = editor.add_effect_layer(effect_id, effect_id)
        if params:
            unknown = set(params) - set(layer.parameters)
            if unknown:
                logger.warning("Ignoring unknown %s parameters: %s", effect_id, ", ".join(sorted(unknown)))
            editor.update_layer_effect_parameters(len(editor.layers) - 1, params)
    return editor


def cmd_apply(args: argparse.Namespace) -> int:
    editor = _build_editor(args.input, args.effect)
    try:
        data = editor.export_image(_output_format(args.output))
    finally:
        editor.close()
    args.output.write_bytes(data)
    print(f"Wrote {args.output} ({len(editor.layers)} layers)")
    return 0


def cmd_gif_info(args: argparse.Namespace) -> int:
    from photoedits.gif.decoder import parse_gif
    from photoedits.gif.frames import format_file_size

    data = args.input.read_bytes()
    width, height, frames = parse_gif(data)
    print(f"File: {args.input} ({format_file_size(len(data))})")
    print(f"Size: {width}x{height}")
    print(f"Frames: {len(frames)}")
    if frames:
        delays = [frame.delay_ms for frame in frames]
        print(f"Delays (ms): {', '.join(str(d) for d in delays)}")
        print(f"Duration: {sum(delays)} ms")
    return 0


def _progress_printer(label: str):
    def report(percent: int) -> None:
        print(f"\r{label}: {percent:3d}%", end="", flush=True)
        if percent >= 100:
            print()
    return report


def cmd_gif_compose(args: argparse.Namespace) -> int:
    from photoedits.gif.frames import compose_frames_from_images, export_frame_stack, format_file_size

    stack = compose_frames_from_images(args.images, delay_ms=args.delay)
    data = export_frame_stack(
        stack,
        quality=args.quality,
        workers=args.workers,
        on_progress=None if args.quiet else _progress_printer("Encoding"),
    )
    args.output.write_bytes(data)
    print(f"Wrote {args.output}: {len(stack)} frames, {stack.width}x{stack.height}, {format_file_size(len(data))}")
    return 0


def cmd_animate(args: argparse.Namespace) -> int:
    from photoedits.gif.animation import create_slider_animation
    from photoedits.gif.frames import estimate_gif_size, format_file_size

    effect_id, params = args.effect
    editor = _build_editor(args.input, [(effect_id, params)])
    try:
        width = max(1, round(editor.width * args.scale))
        height = max(1, round(editor.height * args.scale))
        estimate = estimate_gif_size(width, height, args.frames, args.ping_pong)
        print(f"Estimated size: {format_file_size(estimate['bytes'])} ({estimate['total_frames']} frames)")

        data = create_slider_animation(
            editor,
            len(editor.layers) - 1,
            args.parameter,
            args.start,
            args.end,
            frame_count=args.frames,
            easing=args.easing,
            ping_pong=args.ping_pong,
            scale=args.scale,
            quality=args.quality,
            delay=args.delay,
            workers=args.workers,
            on_progress=None if args.quiet else _progress_printer("Animating"),
        )
    finally:
        editor.close()
    args.output.write_bytes(data)
    print(f"Wrote {args.output} ({format_file_size(len(data))})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    from photoedits.core.config import load_config
    from photoedits.gif.animation import available_easings

    config = load_config()

    parser = argparse.ArgumentParser(prog="photoedits", description="Layered raster image editing")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")
    sub = parser.add_subparsers(dest="command", required=True)

    apply_p = sub.add_parser("apply", help="Apply effect layers to an image")
    apply_p.add_argument("input", type=Path)
    apply_p.add_argument("-o", "--output", type=Path, required=True)
    apply_p.add_argument(
        "-e", "--effect", type=parse_effect, action="append", default=[],
        help="Effect as id[:k=v,...]; repeat to stack layers bottom to top",
    )
    apply_p.set_defaults(func=cmd_apply)

    info_p = sub.add_parser("gif-info", help="Describe a GIF")
    info_p.add_argument("input", type=Path)
    info_p.set_defaults(func=cmd_gif_info)

    compose_p = sub.add_parser("gif-compose", help="Combine images into a GIF")
    compose_p.add_argument("images", type=Path, nargs="+")
    compose_p.add_argument("-o", "--output", type=Path, required=True)
    compose_p.add_argument("--delay", type=int, default=config.gif_default_delay_ms)
    compose_p.add_argument("--quality", type=int, default=config.gif_default_quality)
    compose_p.add_argument("--workers", type=int, default=config.gif_workers)
    compose_p.add_argument("-q", "--quiet", action="store_true")
    compose_p.set_defaults(func=cmd_gif_compose)

    anim_p = sub.add_parser("animate", help="Sweep an effect parameter into a GIF")
    anim_p.add_argument("input", type=Path)
    anim_p.add_argument("-o", "--output", type=Path, required=True)
    anim_p.add_argument("-e", "--effect", type=parse_effect, required=True, help="Effect as id[:k=v,...]")
    anim_p.add_argument("-p", "--parameter", required=True, help="Parameter to animate")
    anim_p.add_argument("--start", type=float, required=True)
    anim_p.add_argument("--end", type=float, required=True)
    anim_p.add_argument("--frames", type=int, default=10)
    anim_p.add_argument("--easing", choices=available_easings(), default="linear")
    anim_p.add_argument("--ping-pong", action="store_true")
    anim_p.add_argument("--scale", type=float, default=1.0)
    anim_p.add_argument("--quality", type=int, default=config.gif_default_quality)
    anim_p.add_argument("--delay", type=int, default=config.gif_default_delay_ms)
    anim_p.add_argument("--workers", type=int, default=config.gif_workers)
    anim_p.add_argument("-q", "--quiet", action="store_true")
    anim_p.set_defaults(func=cmd_animate)

    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for PhotoEdits.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    if sys.version_info < (3, 11):
        print("Error: PhotoEdits requires Python 3.11 or later")
        return 1

    from photoedits.core.errors import EditorError

    args = build_parser().parse_args(argv)
    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        return args.func(args)
    except (EditorError, OSError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
