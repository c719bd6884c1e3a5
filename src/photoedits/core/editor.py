"""
Image Editor - Public facade over the editing core.

The facade owns the source image slots (original and current base), the
layer stack, the undo history and the render scheduler. Every mutating
operation follows the same sequence:

1. validate and mutate state (raising leaves state unchanged)
2. commit a history snapshot (unless ``snapshot=False`` or restoring)
3. request a render (immediate, or deferred through the preview tier)
4. emit a ``StateChangedEvent`` to subscribers
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping

from PIL import Image

from photoedits.core.base_cache import BaseImageCache
from photoedits.core.config import EditorConfig
from photoedits.core.errors import InvalidInput
from photoedits.core.history import HistoryManager, Snapshot
from photoedits.core.layers import Layer, LayerManager
from photoedits.core.raster import Raster
from photoedits.core.scheduler import RenderScheduler
from photoedits.core.worker import RenderWorkerBridge


logger = logging.getLogger(__name__)


RESIZE_MODES = ("Default", "Bilinear", "NearestNeighbour")

_RESIZE_ALIASES = {
    "default": "Default",
    "bilinear": "Bilinear",
    "nearestneighbour": "NearestNeighbour",
    "nearest neighbour": "NearestNeighbour",
    "nearest": "NearestNeighbour",
}


@dataclass(frozen=True)
class StateChangedEvent:
    """Broadcast after every mutation and after asynchronous renders finish."""
    reason: str
    undo_available: bool
    redo_available: bool
    is_rendering: bool
    render_failed: bool


StateListener = Callable[[StateChangedEvent], None]


class ImageEditor:
    """
    Layered raster editor.

    Args:
        source: Optional image to load immediately (see :meth:`load_image`)
        name: Document name used for exports
        extension: File extension used for exports
        config: Editor settings
    """

    def __init__(
        self,
        source: Any = None,
        *,
        name: str | None = None,
        extension: str | None = None,
        config: EditorConfig | None = None,
    ) -> None:
        self.config = config or EditorConfig()

        self.name = name or "untitled"
        self.extension = (extension or "png").lower()
        self.file_type = f"image/{self.extension}"

        self._original: Raster | None = None
        self._base: Raster | None = None
        self.layer_manager = LayerManager()
        self.history = HistoryManager(self.config.history_limit)

        self._listeners: list[StateListener] = []
        self._restoring = False

        self.base_cache = BaseImageCache(self._materialize_base)
        worker = RenderWorkerBridge() if self.config.use_worker else None
        self.scheduler = RenderScheduler(
            self.base_cache,
            lambda: self.layer_manager.layers,
            config=self.config,
            worker=worker,
            on_idle=self._on_render_idle,
        )

        if source is not None:
            self.load_image(source, name=name, extension=extension)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, reason: str) -> StateChangedEvent:
        event = StateChangedEvent(
            reason=reason,
            undo_available=self.history.can_undo(),
            redo_available=self.history.can_redo(),
            is_rendering=self.scheduler.is_rendering,
            render_failed=self.scheduler.consume_render_failure(),
        )
        for listener in list(self._listeners):
            listener(event)
        return event

    def _on_render_idle(self) -> None:
        self._emit("Render complete")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def display(self) -> Raster | None:
        """The most recently rendered display raster."""
        return self.scheduler.display

    @property
    def base(self) -> Raster | None:
        return self._base

    @property
    def original(self) -> Raster | None:
        return self._original

    @property
    def width(self) -> int:
        return self._base.width if self._base is not None else 0

    @property
    def height(self) -> int:
        return self._base.height if self._base is not None else 0

    @property
    def layers(self) -> list[Layer]:
        return self.layer_manager.layers

    @property
    def selected_index(self) -> int | None:
        return self.layer_manager.selected_index

    @property
    def selected_layer(self) -> Layer | None:
        return self.layer_manager.selected_layer

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo()

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo()

    @property
    def is_rendering(self) -> bool:
        return self.scheduler.is_rendering

    @property
    def export_name(self) -> str:
        return f"{self.name}_PhotoEditsExport.{self.extension}"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_image(self) -> Raster:
        if self._base is None:
            raise InvalidInput("No image loaded")
        return self._base

    def _materialize_base(self) -> Raster:
        if self._base is None:
            raise RuntimeError("No image loaded")
        return self._base.clone()

    def _commit(self, reason: str) -> None:
        if self._restoring:
            return
        self.history.push(Snapshot(
            reason=reason,
            base=self._base,
            canvas_width=self.width,
            canvas_height=self.height,
            layers=self.layer_manager.clone(),
            metadata={"name": self.name, "extension": self.extension, "file_type": self.file_type},
        ))

    def _finish(
        self,
        reason: str,
        *,
        snapshot: bool = True,
        render: bool = True,
        defer_render: bool = False,
    ) -> StateChangedEvent:
        if snapshot:
            self._commit(reason)
        if render and self._base is not None:
            self.scheduler.request_render(immediate=not defer_render)
        return self._emit(reason)

    def _set_base(self, raster: Raster) -> None:
        self._base = raster
        self.base_cache.invalidate()

    @staticmethod
    def _to_raster(source: Any, mime: str | None = None) -> Raster:
        if isinstance(source, Raster):
            return source.clone()
        if isinstance(source, Image.Image):
            return Raster.from_pil(source)
        if isinstance(source, (str, Path)):
            return Raster.from_file(source)
        if isinstance(source, tuple) and len(source) == 2 and isinstance(source[0], (bytes, bytearray)):
            return Raster.decode(bytes(source[0]), mime=source[1])
        if isinstance(source, (bytes, bytearray)):
            return Raster.decode(bytes(source), mime=mime)
        raise InvalidInput(f"Unsupported image source: {type(source).__name__}")

    # ------------------------------------------------------------------
    # Image operations
    # ------------------------------------------------------------------

    def load_image(
        self,
        source: Any,
        *,
        name: str | None = None,
        extension: str | None = None,
        mime: str | None = None,
    ) -> StateChangedEvent:
        """
        Load a new source image, replacing the document.

        Accepts a Raster, a PIL image, a file path, raw encoded bytes or a
        ``(bytes, mime)`` pair. Layers and history start fresh.

        Raises:
            DecodeFailed: If the bytes cannot be decoded (state unchanged)
        """
        raster = self._to_raster(source, mime)
        if raster.is_empty:
            raise InvalidInput("Cannot load an empty image")

        if isinstance(source, (str, Path)):
            path = Path(source)
            name = name or path.stem
            extension = extension or path.suffix.lstrip(".") or None

        self.scheduler.cancel()
        self._original = raster
        self._set_base(raster)
        if name:
            self.name = name
        if extension:
            self.extension = extension.lower()
            self.file_type = f"image/{self.extension}"
        self.layer_manager = LayerManager()
        self.history.clear()
        logger.info("Loaded image %s (%dx%d)", self.name, raster.width, raster.height)

        self.scheduler.request_render(immediate=True)
        self._commit("Initial load")
        return self._emit("Initial load")

    def reset_image(self) -> StateChangedEvent:
        """Restore the original source image (layers are kept)."""
        if self._original is None:
            raise InvalidInput("No image loaded")
        self._set_base(self._original)
        return self._finish("Reset image")

    def set_name(self, name: str) -> StateChangedEvent:
        self.name = str(name)
        return self._finish("Rename image", render=False)

    def set_extension(self, extension: str) -> StateChangedEvent:
        self.extension = str(extension).lower().lstrip(".")
        return self._finish("Change extension", render=False)

    def change_file_type(self, name: str, extension: str) -> StateChangedEvent:
        """Set name, extension and MIME type together."""
        self.name = str(name)
        self.extension = str(extension).lower().lstrip(".")
        self.file_type = f"image/{self.extension}"
        return self._finish("Change file type", render=False)

    def resize_canvas(
        self,
        width: int,
        height: int | None = None,
        maintain_aspect: bool = False,
        mode: str = "Default",
    ) -> StateChangedEvent:
        """
        Resample the base image to a new size.

        ``Bilinear`` and ``NearestNeighbour`` are accepted but currently
        resample with the default (bilinear) filter.

        Raises:
            InvalidInput: For non-positive sizes or an unknown mode
        """
        base = self._require_image()
        resolved = _RESIZE_ALIASES.get(str(mode).strip().lower())
        if resolved is None:
            raise InvalidInput(f"Unknown resize mode: {mode}")

        try:
            new_width = int(width)
            if maintain_aspect:
                new_height = max(1, round(new_width * base.height / base.width))
            else:
                new_height = int(height) if height is not None else base.height
        except (TypeError, ValueError):
            raise InvalidInput(f"Invalid size {width}x{height}") from None
        if new_width < 1 or new_height < 1:
            raise InvalidInput(f"Invalid size {new_width}x{new_height}")

        if resolved != "Default":
            logger.warning("%s resize is not implemented; using the default filter", resolved)
        self._set_base(base.scale_to(new_width, new_height, "bilinear"))
        return self._finish("Resize canvas")

    def crop(self, y0: int, x0: int, y1: int, x1: int) -> StateChangedEvent:
        """Crop to the rectangle between two corners (any order)."""
        base = self._require_image()
        self._set_base(base.crop(y0, x0, y1, x1))
        return self._finish("Crop")

    def rotate(self, degrees: float) -> StateChangedEvent:
        """Rotate clockwise; 90/270 swap the canvas dimensions."""
        base = self._require_image()
        self._set_base(base.rotate(degrees))
        return self._finish(f"Rotate {degrees:g}")

    def export_image(self, fmt: str | None = None) -> bytes:
        """Encode the current display (rendering it first if needed)."""
        self._require_image()
        display = self.display
        if display is None or self.scheduler.is_rendering:
            display = self.scheduler.render_sync()
        return display.encode(fmt or self.extension)

    def render_now(self) -> Raster | None:
        """Blocking full-quality render of the current state."""
        return self.scheduler.render_sync()

    def replace_base(self, raster: Raster, reason: str = "Replace image") -> StateChangedEvent:
        """
        Swap the base image while keeping layers and history.

        Used to step through GIF frames: the layer stack is applied to each
        frame in turn. No snapshot is taken.
        """
        if raster.is_empty:
            raise InvalidInput("Cannot load an empty image")
        if self._original is None:
            self._original = raster
        self._set_base(raster)
        return self._finish(reason, snapshot=False)

    # ------------------------------------------------------------------
    # Layer operations
    # ------------------------------------------------------------------

    def add_layer(
        self,
        name: str | None = None,
        *,
        snapshot: bool = True,
        defer_render: bool = False,
    ) -> Layer:
        layer = self.layer_manager.add_layer(name)
        self._finish("Add layer", snapshot=snapshot, defer_render=defer_render)
        return layer

    def delete_layer(self, index: int, *, snapshot: bool = True, defer_render: bool = False) -> Layer:
        layer = self.layer_manager.delete_layer(index)
        self._finish(f"Delete layer: {layer.name}", snapshot=snapshot, defer_render=defer_render)
        return layer

    def toggle_visibility(self, index: int, *, snapshot: bool = True, defer_render: bool = False) -> bool:
        visible = self.layer_manager.toggle_visibility(index)
        self._finish("Toggle visibility", snapshot=snapshot, defer_render=defer_render)
        return visible

    def set_opacity(
        self,
        index: int,
        opacity: float,
        *,
        snapshot: bool = True,
        defer_render: bool = False,
    ) -> float:
        value = self.layer_manager.set_opacity(index, opacity)
        self._finish("Set opacity", snapshot=snapshot, defer_render=defer_render)
        return value

    def add_layer_effect(
        self,
        index: int,
        effect_id: str,
        parameters: Mapping[str, Any] | None = None,
        value_step: float = 0.01,
        *,
        snapshot: bool = True,
        defer_render: bool = False,
    ) -> Layer:
        layer = self.layer_manager.add_layer_effect(index, effect_id, parameters, value_step)
        self._finish(f"Set effect: {layer.effect_id}", snapshot=snapshot, defer_render=defer_render)
        return layer

    def update_layer_effect_parameters(
        self,
        index: int,
        partial: Mapping[str, Any],
        *,
        snapshot: bool = True,
        defer_render: bool = False,
    ) -> Layer:
        """
        Update parameter values of one layer.

        Slider drags pass ``snapshot=False, defer_render=True``; the final
        ``change`` passes the defaults so a snapshot and full render follow.
        """
        layer = self.layer_manager.update_layer_parameters(index, partial)
        self._finish("Update parameters", snapshot=snapshot, defer_render=defer_render)
        return layer

    def rename_layer(self, index: int, name: str, *, snapshot: bool = True) -> str:
        new_name = self.layer_manager.rename_layer(index, name)
        self._finish("Rename layer", snapshot=snapshot, render=False)
        return new_name

    def move_layer_up(self, index: int, *, snapshot: bool = True, defer_render: bool = False) -> int:
        new_index = self.layer_manager.move_layer_up(index)
        self._finish("Move layer up", snapshot=snapshot, defer_render=defer_render)
        return new_index

    def move_layer_down(self, index: int, *, snapshot: bool = True, defer_render: bool = False) -> int:
        new_index = self.layer_manager.move_layer_down(index)
        self._finish("Move layer down", snapshot=snapshot, defer_render=defer_render)
        return new_index

    def set_selected_index(self, index: int | None) -> int | None:
        """Change the selection (no snapshot, no render)."""
        selected = self.layer_manager.set_selected(index)
        self._finish("Select layer", snapshot=False, render=False)
        return selected

    def add_effect_layer(
        self,
        name: str,
        effect_id: str,
        parameters: Mapping[str, Any] | None = None,
        value_step: float = 0.01,
    ) -> Layer:
        """
        Add a layer and bind an effect to it as one undoable step.

        Raises:
            InvalidInput: If ``effect_id`` is unknown (no layer is added)
        """
        from photoedits.effects.registry import get_effect

        if get_effect(effect_id) is None:
            raise InvalidInput(f"Unknown effect: {effect_id}")
        layer = self.layer_manager.add_layer(name)
        index = len(self.layer_manager) - 1
        try:
            self.layer_manager.add_layer_effect(index, effect_id, parameters, value_step)
        except InvalidInput:
            self.layer_manager.delete_layer(index)
            raise
        self._finish(f"Add layer: {layer.name}")
        return layer

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def _restore(self, snapshot: Snapshot) -> None:
        self._restoring = True
        try:
            if snapshot.base is not self._base:
                self._set_base(snapshot.base)
            self.layer_manager = snapshot.layers.clone()
            self.name = snapshot.metadata.get("name", self.name)
            self.extension = snapshot.metadata.get("extension", self.extension)
            self.file_type = snapshot.metadata.get("file_type", self.file_type)
            if self._base is not None:
                self.scheduler.request_render(immediate=True)
        finally:
            self._restoring = False

    def undo(self) -> StateChangedEvent:
        """
        Step back one snapshot.

        Raises:
            InvalidInput: If there is nothing to undo
        """
        if self._restoring:
            raise InvalidInput("Cannot undo while restoring")
        current = self.history.current
        snapshot = self.history.undo()
        if snapshot is None:
            raise InvalidInput("Nothing to undo")
        self._restore(snapshot)
        return self._emit(f"Undo: {current.reason}")

    def redo(self) -> StateChangedEvent:
        """
        Step forward one snapshot.

        Raises:
            InvalidInput: If there is nothing to redo
        """
        if self._restoring:
            raise InvalidInput("Cannot redo while restoring")
        snapshot = self.history.redo()
        if snapshot is None:
            raise InvalidInput("Nothing to redo")
        self._restore(snapshot)
        return self._emit(f"Redo: {snapshot.reason}")

    def close(self) -> None:
        self.scheduler.close()
