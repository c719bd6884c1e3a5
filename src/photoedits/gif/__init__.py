"""
GIF module - Codec, frame stack and animation generator.
"""

from photoedits.gif.errors import CodecError, InvalidFormat, Truncated
from photoedits.gif.decoder import DecodedFrame, decode_gif, parse_gif
from photoedits.gif.encoder import encode_gif, prepare_frame_for_gif
from photoedits.gif.frames import (
    GifFrame,
    GifFrameStack,
    compose_frames_from_images,
    estimate_gif_size,
    export_frame_stack,
    format_file_size,
    gif_frame_stack,
    load_frame_to_editor,
    load_gif_frames,
    save_editor_to_frame,
)
from photoedits.gif.animation import (
    available_easings,
    create_multi_parameter_animation,
    create_slider_animation,
    frame_values,
    get_animatable_parameters,
    get_easing,
)

__all__ = [
    # errors.py
    "CodecError",
    "InvalidFormat",
    "Truncated",
    # decoder.py / encoder.py
    "DecodedFrame",
    "decode_gif",
    "parse_gif",
    "encode_gif",
    "prepare_frame_for_gif",
    # frames.py
    "GifFrame",
    "GifFrameStack",
    "compose_frames_from_images",
    "estimate_gif_size",
    "export_frame_stack",
    "format_file_size",
    "gif_frame_stack",
    "load_frame_to_editor",
    "load_gif_frames",
    "save_editor_to_frame",
    # animation.py
    "available_easings",
    "create_multi_parameter_animation",
    "create_slider_animation",
    "frame_values",
    "get_animatable_parameters",
    "get_easing",
]
