"""
GIF codec errors.
"""

from __future__ import annotations

from photoedits.core.errors import EditorError


class CodecError(EditorError):
    """Base class for GIF parse failures."""
    pass


class InvalidFormat(CodecError):
    """The data is not a GIF87a/GIF89a stream."""
    pass


class Truncated(CodecError):
    """The stream ended inside a structural block."""
    pass
