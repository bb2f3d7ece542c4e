"""Drains the offline queue through the collector client."""
import threading
from typing import Optional

from telemetry_relay.collector_client import CollectorClient
from telemetry_relay.errors import DeliveryError, PersistenceError
from telemetry_relay.logging_conf import logger
from telemetry_relay.queue.models import DrainResult, QueueItem
from telemetry_relay.queue.offline_queue import OfflineQueue


class FlushController:
    """Retries queued events whenever the collector may be reachable again.

    A drain pass walks a snapshot of the queue in enqueue order. Every
    delivered item is removed (and the removal persisted) before the next one
    is tried. The first failure ends the pass, so only a prefix of the
    snapshot is ever removed and later items keep their place behind it.

    At most one pass runs at a time. A trigger that arrives during a pass is
    coalesced into a single re-run once the current pass has finished.
    """

    def __init__(self, queue: OfflineQueue, client: CollectorClient):
        self.queue = queue
        self.client = client
        self._state_lock = threading.Lock()
        self._draining = False
        self._rerun = False
        self._reachable = False
        self._wakeup = threading.Event()
        self.running = False
        self.thread = None
        self.last_result: Optional[DrainResult] = None
        self.last_error: Optional[str] = None

    @property
    def draining(self) -> bool:
        return self._draining

    @property
    def reachable(self) -> bool:
        return self._reachable

    def on_reachability(self, reachable: bool) -> None:
        """Connectivity observer handler."""
        self._reachable = reachable
        if reachable:
            self.trigger()

    def on_enqueued(self, item: QueueItem) -> None:
        """Offline queue listener; new items are only retried while online."""
        if self._reachable:
            self.trigger()

    def trigger(self) -> None:
        """Ask for a drain pass.

        With the worker thread running the pass happens there; otherwise it
        runs right away in the calling thread.
        """
        if self.running:
            self._wakeup.set()
        else:
            self.drain_once()

    def drain_once(self) -> DrainResult:
        """Run a drain pass now, or schedule a re-run if one is in progress."""
        with self._state_lock:
            if self._draining:
                self._rerun = True
                logger.debug("Drain already in progress, re-run scheduled")
                return DrainResult(remaining=self.queue.size(), skipped=True)
            self._draining = True

        try:
            while True:
                result = self._drain_pass()
                with self._state_lock:
                    if not self._rerun:
                        self._draining = False
                        return result
                    self._rerun = False
                logger.debug("Running scheduled drain re-run")
        except BaseException:
            with self._state_lock:
                self._draining = False
                self._rerun = False
            raise

    def start(self):
        """Start the drain worker in a background thread."""
        if self.running:
            logger.warning("Flush controller is already running")
            return

        self.running = True
        self.thread = threading.Thread(target=self._run, daemon=True)
        self.thread.start()
        logger.info("Flush controller started")

    def stop(self):
        """Stop the drain worker."""
        if not self.running:
            return

        self.running = False
        self._wakeup.set()
        if self.thread:
            self.thread.join(timeout=10)
        logger.info("Flush controller stopped")

    def _run(self):
        while self.running:
            if not self._wakeup.wait(timeout=1):
                continue
            self._wakeup.clear()
            if not self.running:
                break

            try:
                self.drain_once()
            except Exception as e:
                logger.error(f"Flush controller error: {e}", exc_info=True)

    def _drain_pass(self) -> DrainResult:
        result = DrainResult()
        pending = self.queue.snapshot()
        if not pending:
            self.last_result = result
            return result

        logger.info(f"Draining offline queue ({len(pending)} pending)")

        for item in pending:
            result.attempted += 1
            try:
                self.client.deliver(item.payload)
            except DeliveryError as e:
                self._stop_pass(result, item, f"Delivery failed: {e}")
                break
            except Exception as e:
                logger.error(
                    f"Unexpected error delivering queued event: {e}",
                    exc_info=True,
                    extra={"queue_item_id": item.id},
                )
                self._stop_pass(result, item, f"Delivery failed: {e}")
                break

            try:
                self.queue.remove([item.id])
            except PersistenceError as e:
                # Delivered but still pending on disk; it will be sent again
                logger.error(f"Failed to persist removal of delivered event: {e}", extra={"queue_item_id": item.id})
                self._stop_pass(result, item, str(e))
                break
            result.delivered.append(item.id)

        result.remaining = self.queue.size()
        if not result.stopped_on_failure:
            self.last_error = None

        logger.info(
            f"Drain pass finished: delivered {len(result.delivered)}/{len(pending)}, "
            f"{result.remaining} still pending"
        )
        self.last_result = result
        return result

    def _stop_pass(self, result: DrainResult, item: QueueItem, error: str) -> None:
        result.stopped_on_failure = True
        result.error = error
        self.last_error = error
        logger.warning(
            f"Stopping drain: {error}",
            extra={"queue_item_id": item.id, "correlation_tag": item.payload.correlation_tag},
        )
