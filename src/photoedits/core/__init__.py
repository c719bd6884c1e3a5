"""
Core module - Image state, layer stack, compositing and rendering.

This module provides the building blocks of the editor:
- Raster: RGBA8 pixel buffer
- Layers: effect layers and the LayerManager
- Compositing: folding layers over the base image
- History: bounded undo/redo snapshots
- Scheduler: two-tier (preview, full quality) render scheduling
- ImageEditor: the public facade
"""

from photoedits.core.errors import (
    DecodeFailed,
    EditorError,
    InvalidInput,
    RenderCancelled,
    RenderFailed,
)

from photoedits.core.raster import Raster

from photoedits.core.parameters import (
    ParameterDescriptor,
    Parameters,
    clone_parameters,
    parameter_values,
)

from photoedits.core.layers import (
    Layer,
    LayerManager,
)

from photoedits.core.compositing import (
    compose,
    has_renderable_layers,
)

from photoedits.core.base_cache import BaseImageCache

from photoedits.core.history import (
    HISTORY_LIMIT,
    HistoryManager,
    Snapshot,
)

from photoedits.core.config import (
    EditorConfig,
    load_config,
    save_config,
)

from photoedits.core.scheduler import RenderScheduler
from photoedits.core.worker import RenderWorkerBridge

from photoedits.core.editor import (
    ImageEditor,
    StateChangedEvent,
)


__all__ = [
    # errors.py
    "DecodeFailed",
    "EditorError",
    "InvalidInput",
    "RenderCancelled",
    "RenderFailed",
    # raster.py
    "Raster",
    # parameters.py
    "ParameterDescriptor",
    "Parameters",
    "clone_parameters",
    "parameter_values",
    # layers.py
    "Layer",
    "LayerManager",
    # compositing.py
    "compose",
    "has_renderable_layers",
    # base_cache.py
    "BaseImageCache",
    # history.py
    "HISTORY_LIMIT",
    "HistoryManager",
    "Snapshot",
    # config.py
    "EditorConfig",
    "load_config",
    "save_config",
    # scheduler.py / worker.py
    "RenderScheduler",
    "RenderWorkerBridge",
    # editor.py
    "ImageEditor",
    "StateChangedEvent",
]
