"""Lock-guarded owner of the pending delivery queue."""
import threading
from typing import Callable, Iterable, List

from telemetry_relay.logging_conf import logger
from telemetry_relay.queue.models import QueueItem
from telemetry_relay.queue.store import DurableQueueStore

EnqueueListener = Callable[[QueueItem], None]


class OfflineQueue:
    """Pending deliveries, kept in memory and written through to the store.

    `enqueue` and `remove` are the only mutations. Each one builds the new
    sequence from the current list, saves it, and only then swaps it in, all
    under one lock. If the save fails the in-memory list is left untouched.
    """

    def __init__(self, store: DurableQueueStore):
        self.store = store
        self._lock = threading.RLock()
        self._items: List[QueueItem] = []
        self._listeners: List[EnqueueListener] = []

    def load(self) -> int:
        """Replace the in-memory queue with what the store holds."""
        with self._lock:
            self._items = self.store.load()
            count = len(self._items)
        if count:
            logger.info(f"Restored {count} pending events from offline queue")
        return count

    def add_listener(self, listener: EnqueueListener) -> None:
        self._listeners.append(listener)

    def enqueue(self, item: QueueItem) -> None:
        """Append an item and persist the new snapshot.

        Raises PersistenceError if the snapshot could not be written; the item
        is then not part of the queue.
        """
        with self._lock:
            updated = self._items + [item]
            self.store.save(updated)
            self._items = updated
            size = len(updated)

        logger.info(
            f"Queued event {item.payload.event_code} for later delivery (pending: {size})",
            extra={"queue_item_id": item.id},
        )
        for listener in list(self._listeners):
            try:
                listener(item)
            except Exception as e:
                logger.error(f"Enqueue listener failed: {e}", exc_info=True)

    def remove(self, item_ids: Iterable[str]) -> int:
        """Drop delivered items by id and persist; returns the new size."""
        ids = set(item_ids)
        with self._lock:
            updated = [item for item in self._items if item.id not in ids]
            if len(updated) != len(self._items):
                self.store.save(updated)
                self._items = updated
            return len(self._items)

    def snapshot(self) -> List[QueueItem]:
        """Copy of the pending items in enqueue order."""
        with self._lock:
            return list(self._items)

    def size(self) -> int:
        with self._lock:
            return len(self._items)
