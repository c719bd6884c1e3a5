"""
Render Scheduler - Two-tier preview / full-quality rendering.

Edits call ``request_render()``. On an asyncio event loop the request is
debounced: after ``preview_delay_ms`` a low-resolution preview is
composed and shown, then after ``full_quality_delay_ms`` a native
resolution pass replaces it. Immediate requests skip the preview.

Single-flight rules:
- one preview at a time; requests arriving meanwhile set ``preview_pending``
  and are served when the current preview finishes
- one full-quality job at a time plus at most one queued payload; a newer
  request overwrites the queued payload
- results are applied in increasing job id order and only if no newer job
  is queued; cancelled or superseded results are dropped

Without a running event loop every request renders synchronously at full
quality in-process.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from photoedits.core.base_cache import BaseImageCache
from photoedits.core.compositing import compose, has_renderable_layers
from photoedits.core.config import EditorConfig
from photoedits.core.errors import RenderCancelled, RenderFailed
from photoedits.core.layers import Layer
from photoedits.core.raster import Raster
from photoedits.core.worker import RenderWorkerBridge


logger = logging.getLogger(__name__)


@dataclass
class RenderJob:
    """A full-quality render request frozen at dispatch time."""
    job_id: int
    base: Raster
    layers: list[dict[str, Any]]


def render_preview(base: Raster, layers: list[dict[str, Any]], scale: float) -> Raster:
    """Compose at ``scale`` of the base size and upscale back with bilinear smoothing."""
    width = max(1, round(base.width * scale))
    height = max(1, round(base.height * scale))
    small = base.scale_to(width, height, "bilinear")
    composed = compose(small, layers)
    return composed.scale_to(base.width, base.height, "bilinear")


class RenderScheduler:
    """
    Drives rendering of the layer stack into the display raster.

    Args:
        base_cache: Source of the base raster
        layer_source: Callable returning the current layers, bottom first
        config: Timing and scale settings
        worker: Optional worker bridge for full-quality jobs
        on_display: Called with ``"preview"``, ``"full"`` or ``"base"``
            whenever the display raster changes
        on_idle: Called when an asynchronous render cycle finishes
    """

    def __init__(
        self,
        base_cache: BaseImageCache,
        layer_source: Callable[[], list[Layer]],
        config: EditorConfig | None = None,
        worker: RenderWorkerBridge | None = None,
        on_display: Callable[[str], None] | None = None,
        on_idle: Callable[[], None] | None = None,
    ) -> None:
        self.base_cache = base_cache
        self.layer_source = layer_source
        self.config = config or EditorConfig()
        self.worker = worker
        self.on_display = on_display
        self.on_idle = on_idle

        self.display: Raster | None = None
        self.render_failed = False

        self._job_ids = itertools.count(1)
        self._last_applied = 0
        self._latest_job = 0

        self._preview_handle: asyncio.TimerHandle | None = None
        self._full_handle: asyncio.TimerHandle | None = None
        self._preview_running = False
        self.preview_pending = False
        self._full_inflight: RenderJob | None = None
        self._full_queued: RenderJob | None = None
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_rendering(self) -> bool:
        return (
            self._preview_handle is not None
            or self._full_handle is not None
            or self._preview_running
            or self._full_inflight is not None
        )

    @property
    def in_flight_job(self) -> int | None:
        return self._full_inflight.job_id if self._full_inflight is not None else None

    @property
    def queued_job(self) -> int | None:
        return self._full_queued.job_id if self._full_queued is not None else None

    @property
    def last_applied_job(self) -> int:
        return self._last_applied

    def consume_render_failure(self) -> bool:
        """Return and clear the sticky ``render_failed`` flag."""
        failed, self.render_failed = self.render_failed, False
        return failed

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def request_render(self, immediate: bool = False) -> None:
        """
        Schedule a render of the current state.

        Immediate requests go straight to full quality; others are
        debounced through the preview tier.
        """
        self._cancel_timers()
        if not self._has_source():
            return

        layers = self.layer_source()
        if not has_renderable_layers(layers):
            self._show_base()
            return

        loop = self._running_loop()
        if loop is None:
            self.render_sync()
            return

        if immediate:
            self._dispatch_full()
        else:
            self._preview_handle = loop.call_later(
                self.config.preview_delay_ms / 1000.0, self._preview_tick
            )

    def render_sync(self) -> Raster | None:
        """Blocking full-quality render in-process, regardless of loop state."""
        self._cancel_timers()
        self._full_queued = None
        if not self._has_source():
            return self.display
        job = self._make_job()
        started = time.perf_counter()
        result = self._compose_job(job)
        logger.debug("Sync render job %d took %.1f ms", job.job_id, (time.perf_counter() - started) * 1000)
        self.apply_result(job.job_id, result, kind="full")
        return self.display

    def cancel(self) -> None:
        """Drop timers, the queued payload and any in-flight result."""
        self._cancel_timers()
        self._full_queued = None
        inflight = self._full_inflight
        self._supersede()
        if inflight is not None and self.worker is not None:
            self.worker.cancel(inflight.job_id)

    async def wait_idle(self, poll_interval: float = 0.005) -> None:
        """Resolve once no timer, preview or full-quality job is outstanding."""
        while self.is_rendering:
            await asyncio.sleep(poll_interval)

    def close(self) -> None:
        self.cancel()
        for task in list(self._tasks):
            task.cancel()
        if self.worker is not None:
            self.worker.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _running_loop() -> asyncio.AbstractEventLoop | None:
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def _has_source(self) -> bool:
        try:
            self.base_cache.ensure()
        except RuntimeError:
            return False
        return True

    def _cancel_timers(self) -> None:
        for handle in (self._preview_handle, self._full_handle):
            if handle is not None:
                handle.cancel()
        self._preview_handle = None
        self._full_handle = None

    def _supersede(self) -> int:
        """Allocate a job id that outranks everything issued so far."""
        job_id = next(self._job_ids)
        self._latest_job = job_id
        self._last_applied = max(self._last_applied, job_id)
        return job_id

    def _make_job(self) -> RenderJob:
        job_id = next(self._job_ids)
        self._latest_job = job_id
        return RenderJob(
            job_id=job_id,
            base=self.base_cache.ensure(),
            layers=[layer.to_payload() for layer in self.layer_source()],
        )

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _notify(self, kind: str) -> None:
        if self.on_display is not None:
            self.on_display(kind)

    def _maybe_idle(self) -> None:
        if not self.is_rendering and self.on_idle is not None:
            self.on_idle()

    def _show_base(self) -> None:
        """Skip-fast path: display the base as-is and drop pending full renders."""
        self._full_queued = None
        self._supersede()
        if not self._has_source():
            return
        base = self.base_cache.ensure()
        display = base.clone()
        display.pixels[..., 3] = 255
        self.display = display
        self._notify("base")

    def apply_result(self, job_id: int, raster: Raster | None, kind: str = "full") -> bool:
        """
        Write a full-quality result to the display if it is the newest.

        Returns:
            True if the display was updated
        """
        if raster is None or job_id <= self._last_applied:
            logger.debug("Dropping stale render result %d (last applied %d)", job_id, self._last_applied)
            return False
        self._last_applied = job_id
        self.display = raster
        self._notify(kind)
        return True

    # -- preview tier ---------------------------------------------------

    def _preview_tick(self) -> None:
        self._preview_handle = None
        if self._preview_running:
            self.preview_pending = True
            return
        self._spawn(self._run_preview())

    async def _run_preview(self) -> None:
        loop = asyncio.get_running_loop()
        self._preview_running = True
        try:
            while True:
                self.preview_pending = False
                if not self._has_source():
                    return
                base = self.base_cache.ensure()
                layers = [layer.to_payload() for layer in self.layer_source()]
                applied_before = self._last_applied
                started = time.perf_counter()
                result = await loop.run_in_executor(
                    None, render_preview, base, layers, self.config.preview_scale
                )
                if self.preview_pending:
                    continue
                if self._last_applied == applied_before:
                    self.display = result
                    self._notify("preview")
                    logger.debug("Preview render took %.1f ms", (time.perf_counter() - started) * 1000)
                break
        finally:
            self._preview_running = False

        if self._full_handle is not None:
            self._full_handle.cancel()
        self._full_handle = loop.call_later(
            self.config.full_quality_delay_ms / 1000.0, self._dispatch_full
        )

    # -- full-quality tier ----------------------------------------------

    def _dispatch_full(self) -> None:
        self._full_handle = None
        if not self._has_source():
            return
        job = self._make_job()
        if self._full_inflight is not None:
            self._full_queued = job
            return
        self._full_inflight = job
        self._spawn(self._run_full(job))

    async def _run_full(self, job: RenderJob) -> None:
        try:
            while True:
                self._full_inflight = job
                started = time.perf_counter()
                result = await self._execute(job)
                queued, self._full_queued = self._full_queued, None
                if queued is not None:
                    job = queued
                    continue
                if self.apply_result(job.job_id, result, kind="full"):
                    logger.debug(
                        "Full render job %d took %.1f ms", job.job_id, (time.perf_counter() - started) * 1000
                    )
                break
        finally:
            self._full_inflight = None
            self._maybe_idle()

    async def _execute(self, job: RenderJob) -> Raster | None:
        loop = asyncio.get_running_loop()
        if self.worker is not None:
            try:
                return await loop.run_in_executor(
                    None, self.worker.render, job.job_id, job.base, job.layers
                )
            except RenderCancelled:
                return None
            except RenderFailed as e:
                logger.warning("Worker render %d failed, rendering in-process: %s", job.job_id, e)
                self.render_failed = True
                self.worker.restart()
        return await loop.run_in_executor(None, self._compose_job, job)

    def _compose_job(self, job: RenderJob) -> Raster:
        errors: list = []
        result = compose(job.base, job.layers, errors=errors)
        if errors:
            self.render_failed = True
        return result
