"""
Base-image cache - Memoized full-resolution base raster for rendering.

The editor keeps its source image as an encoded blob (or any other slow
source). Rendering needs a decoded raster at canvas size; this cache
materializes it once and hands the same raster to every render until the
base is marked dirty (load, resize, crop, rotate, undo/redo).
"""

from __future__ import annotations

import logging
from typing import Callable

from photoedits.core.raster import Raster


logger = logging.getLogger(__name__)


BaseSource = Callable[[], Raster]


class BaseImageCache:
    """
    Lazily rebuilt copy of the base raster.

    Args:
        source: Callable producing the current base raster at canvas size
    """

    def __init__(self, source: BaseSource | None = None) -> None:
        self._source = source
        self._raster: Raster | None = None
        self._dirty = True
        self.rebuilds = 0

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def cached(self) -> Raster | None:
        """The cached raster if it is current, otherwise None."""
        return None if self._dirty else self._raster

    def set_source(self, source: BaseSource) -> None:
        self._source = source
        self.invalidate()

    def invalidate(self) -> None:
        """Mark the base dirty; the next ``ensure()`` rebuilds it."""
        self._dirty = True

    def ensure(self) -> Raster:
        """
        Return the base raster, rebuilding it if dirty.

        Raises:
            RuntimeError: If no source has been set
        """
        if self._dirty or self._raster is None:
            if self._source is None:
                raise RuntimeError("Base image cache has no source")
            self._raster = self._source()
            self._dirty = False
            self.rebuilds += 1
            logger.debug("Rebuilt base image %dx%d", self._raster.width, self._raster.height)
        return self._raster

    def clear(self) -> None:
        self._raster = None
        self._dirty = True
