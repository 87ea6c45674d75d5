"""
Keyed work queue driving a reconciler.

Watch handlers keep ``store`` up to date and call ``enqueue``; a bounded pool
of worker tasks pulls keys and reconciles the latest stored object. The queue
follows the usual controller semantics:

- a key is never reconciled by two workers at the same time
- triggers for a key that is already queued, or that arrives while the key
  is being reconciled, collapse into a single pending reconciliation
- keys absent from the store are skipped
- after a reconciliation the key is scheduled again after the delay returned
  by the reconciler or its error policy; a newer schedule replaces an older one
- objects removed from the watch are reconciled once as a tombstone and then
  forgotten
"""

import asyncio
import logging
from typing import Any

from ..models import ObjectKey
from ..observability.metrics import metrics_collector
from .base_reconciler import BaseReconciler

logger = logging.getLogger(__name__)


class ReconcileLoop:
    """Store, queue and worker pool for one resource kind."""

    def __init__(self, reconciler: BaseReconciler, workers: int = 10):
        """
        Args:
            reconciler: Reconciler invoked for every dequeued key
            workers: Maximum number of concurrent reconciliations
        """
        self.reconciler = reconciler
        self.resource_type = reconciler.resource_type
        self.workers = workers
        self.store: dict[ObjectKey, Any] = {}

        self._queue: asyncio.Queue[ObjectKey | None] = asyncio.Queue()
        self._dirty: set[ObjectKey] = set()
        self._processing: set[ObjectKey] = set()
        self._tombstones: dict[ObjectKey, Any] = {}
        self._timers: dict[ObjectKey, asyncio.TimerHandle] = {}
        self._tasks: list[asyncio.Task] = []
        self._stopping = False

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    def upsert(self, obj: Any) -> None:
        """Record the latest state of an object and enqueue it."""
        self._tombstones.pop(obj.key, None)
        self.store[obj.key] = obj
        self.enqueue(obj.key)

    def remove(self, obj: Any) -> None:
        """
        Record the final state of an object that left the watch.

        ``obj`` must carry a deletion marker; it is reconciled once more and
        then dropped from the store.
        """
        self._tombstones[obj.key] = obj
        self.store[obj.key] = obj
        self.enqueue(obj.key)

    def objects(self) -> list[Any]:
        return list(self.store.values())

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    @property
    def pending(self) -> int:
        """Number of keys waiting for a worker."""
        return len(self._dirty)

    def enqueue(self, key: ObjectKey) -> None:
        """Request a reconciliation of ``key`` as soon as possible."""
        if self._stopping or key in self._dirty:
            return

        self._dirty.add(key)
        if key not in self._processing:
            self._queue.put_nowait(key)
        metrics_collector.set_queue_depth(self.resource_type, self.pending)

    def enqueue_after(self, key: ObjectKey, delay: float) -> None:
        """Request a reconciliation of ``key`` in ``delay`` seconds."""
        if self._stopping:
            return

        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        self._timers[key] = asyncio.get_running_loop().call_later(
            delay, self._fire, key
        )

    def _fire(self, key: ObjectKey) -> None:
        self._timers.pop(key, None)
        self.enqueue(key)

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Spawn the worker tasks."""
        for index in range(self.workers):
            self._tasks.append(
                asyncio.create_task(
                    self._worker(), name=f"{self.resource_type}-worker-{index}"
                )
            )
        logger.info(
            f"Started {self.workers} {self.resource_type} workers",
            extra={"resource_type": self.resource_type},
        )

    async def run(self, stop_flag: asyncio.Event) -> None:
        """Process keys until ``stop_flag`` is set, then shut down gracefully."""
        self.start()
        await stop_flag.wait()
        await self.shutdown()

    async def shutdown(self) -> None:
        """
        Stop accepting work and wait for in-flight reconciliations.

        Scheduled requeues are cancelled and keys that were queued but not
        started are dropped.
        """
        self._stopping = True

        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
        self._dirty.clear()

        for _ in self._tasks:
            self._queue.put_nowait(None)
        await asyncio.gather(*self._tasks)
        self._tasks.clear()

        logger.info(
            f"Stopped {self.resource_type} workers",
            extra={"resource_type": self.resource_type},
        )

    async def _worker(self) -> None:
        while True:
            key = await self._queue.get()
            try:
                if key is None:
                    return
                await self._process(key)
            finally:
                self._queue.task_done()

    async def _process(self, key: ObjectKey) -> None:
        self._dirty.discard(key)
        metrics_collector.set_queue_depth(self.resource_type, self.pending)

        obj = self.store.get(key)
        if obj is None:
            return

        self._processing.add(key)
        try:
            requeue_after = await self._reconcile(obj)
        finally:
            self._processing.discard(key)
            if key in self._dirty and not self._stopping:
                self._queue.put_nowait(key)

        if self._tombstones.get(key) is obj:
            del self._tombstones[key]
            del self.store[key]
            timer = self._timers.pop(key, None)
            if timer is not None:
                timer.cancel()
            return

        self.enqueue_after(key, requeue_after)

    async def _reconcile(self, obj: Any) -> float:
        try:
            return await self.reconciler.reconcile(obj)
        except Exception as error:
            return self.reconciler.error_policy(obj, error)
