"""
Errors - Exception taxonomy for the editing core.

Every failed editor operation raises one of these and leaves the editor
state unchanged. Render faults are the exception: they are recovered
internally and surfaced as ``render_failed`` on the next state event.
"""

from __future__ import annotations


class EditorError(Exception):
    """Base class for all editor errors."""
    pass


class InvalidInput(EditorError, ValueError):
    """Out-of-range dimensions, bad layer/frame indices, bad parameters."""
    pass


class DecodeFailed(EditorError):
    """Image bytes could not be decoded into a raster."""
    pass


class RenderFailed(EditorError):
    """A render (worker fault or effect failure) did not complete."""

    def __init__(self, message: str, job_id: int | None = None):
        super().__init__(message)
        self.job_id = job_id


class RenderCancelled(EditorError):
    """A render job was cancelled before its result was delivered."""

    def __init__(self, job_id: int | None = None):
        super().__init__(f"Render job {job_id} cancelled")
        self.job_id = job_id
