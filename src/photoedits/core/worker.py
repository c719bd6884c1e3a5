"""
Render Worker - Full-quality composition in a separate process.

The worker is a "spawn" subprocess fed through a duplex Pipe. It receives
plain-data jobs ``{job_id, base, layers}`` and answers with either
``{type: "result", job_id, pixels}`` or ``{type: "error", job_id, error}``.
It never sees editor objects: the base travels as ``(width, height, bytes)``
and layers as ``Layer.to_payload()`` dicts resolved through the effect
registry on the worker side.

A subprocess can always be terminated, which is how in-flight jobs are
cancelled and how a faulted worker is replaced.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import threading
from typing import Any, Callable

from photoedits.core.errors import RenderCancelled, RenderFailed
from photoedits.core.raster import Raster


logger = logging.getLogger(__name__)


def _render_worker(conn) -> None:
    """Worker main loop: compose jobs until told to stop or the pipe closes."""
    from photoedits.core.compositing import compose

    try:
        while True:
            try:
                msg = conn.recv()
            except EOFError:
                break
            msg_type = msg.get("type")
            if msg_type == "shutdown":
                break
            if msg_type != "render":
                continue

            job_id = msg.get("job_id")
            try:
                base = Raster.from_transferable(msg["base"])
                result = compose(base, msg.get("layers", []), strict=True)
                conn.send({"type": "result", "job_id": job_id, "pixels": result.into_transferable()})
            except Exception as e:
                conn.send({"type": "error", "job_id": job_id, "error": str(e)})
    finally:
        conn.close()


class RenderWorkerBridge:
    """
    Owns the worker process and performs blocking job round-trips.

    ``render()`` blocks until the worker answers and is meant to run in a
    thread pool (``loop.run_in_executor``). ``cancel()`` and ``restart()``
    may be called from the event loop thread at any time.
    """

    def __init__(self, poll_interval: float = 0.05) -> None:
        self.poll_interval = poll_interval
        self._ctx = mp.get_context("spawn")
        self._proc = None
        self._conn = None
        self._lock = threading.Lock()
        self._cancelled: set[int] = set()
        self.restarts = 0

    @property
    def is_alive(self) -> bool:
        return self._proc is not None and self._proc.is_alive()

    def start(self) -> None:
        """Spawn the worker if it is not running."""
        with self._lock:
            if self._proc is not None and self._proc.is_alive():
                return
            parent_conn, child_conn = self._ctx.Pipe(duplex=True)
            proc = self._ctx.Process(target=_render_worker, args=(child_conn,), daemon=True)
            proc.start()
            child_conn.close()
            self._proc, self._conn = proc, parent_conn
            logger.debug("Render worker started (pid %s)", proc.pid)

    def _teardown(self) -> None:
        proc, conn = self._proc, self._conn
        self._proc, self._conn = None, None
        if conn is not None:
            try:
                conn.close()
            except OSError:
                pass
        if proc is not None:
            if proc.is_alive():
                proc.terminate()
            proc.join(timeout=1)

    def restart(self) -> None:
        """Tear down the worker; the next job spawns a fresh one."""
        with self._lock:
            self._teardown()
        self.restarts += 1
        logger.warning("Render worker restarted")

    def cancel(self, job_id: int) -> None:
        """Cancel an in-flight job by terminating the worker."""
        self._cancelled.add(job_id)
        with self._lock:
            self._teardown()

    def close(self) -> None:
        with self._lock:
            if self._conn is not None and self._proc is not None and self._proc.is_alive():
                try:
                    self._conn.send({"type": "shutdown"})
                except (OSError, BrokenPipeError):
                    pass
            self._teardown()

    def render(
        self,
        job_id: int,
        base: Raster,
        layers: list[dict[str, Any]],
        cancel_check: Callable[[], bool] | None = None,
    ) -> Raster:
        """
        Compose ``layers`` over ``base`` in the worker and wait for the answer.

        Raises:
            RenderCancelled: If the job was cancelled while in flight
            RenderFailed: If the worker reported an error or died
        """
        self.start()
        with self._lock:
            proc, conn = self._proc, self._conn
        if proc is None or conn is None:
            raise RenderCancelled(job_id)

        try:
            conn.send({
                "type": "render",
                "job_id": job_id,
                "base": base.into_transferable(),
                "layers": layers,
            })
        except (OSError, BrokenPipeError) as e:
            if job_id in self._cancelled:
                raise RenderCancelled(job_id) from e
            raise RenderFailed(f"Could not send job to worker: {e}", job_id) from e

        while True:
            if job_id in self._cancelled or (callable(cancel_check) and cancel_check()):
                self._cancelled.discard(job_id)
                raise RenderCancelled(job_id)

            try:
                ready = conn.poll(self.poll_interval)
            except (OSError, EOFError, ValueError):
                ready = False
                if job_id in self._cancelled:
                    continue

            if ready:
                try:
                    msg = conn.recv()
                except (OSError, EOFError) as e:
                    if job_id in self._cancelled:
                        continue
                    raise RenderFailed(f"Worker connection lost: {e}", job_id) from e

                if msg.get("job_id") != job_id:
                    # Answer for a superseded job
                    continue
                if msg.get("type") == "result":
                    return Raster.from_transferable(msg["pixels"])
                if msg.get("type") == "error":
                    raise RenderFailed(f"Worker render failed: {msg.get('error', 'unknown error')}", job_id)

            if not proc.is_alive():
                if job_id in self._cancelled:
                    continue
                raise RenderFailed("Render worker exited unexpectedly", job_id)
