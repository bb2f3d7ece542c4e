"""Main application - relays peripheral events to the collector with offline queueing."""
import signal
import sys
from typing import Any, Dict, Iterable, Optional

from telemetry_relay.logging_conf import logger
from telemetry_relay import settings
from telemetry_relay.collector_client import CollectorClient
from telemetry_relay.connectivity import ConnectivityObserver
from telemetry_relay.flush_controller import FlushController
from telemetry_relay.ingestion import IngestionAdapter
from telemetry_relay.queue.offline_queue import OfflineQueue
from telemetry_relay.queue.store import DurableQueueStore


class Application:
    """Wires the queue, client, observer and controller together."""

    def __init__(
        self,
        store: Optional[DurableQueueStore] = None,
        client: Optional[CollectorClient] = None,
        observer: Optional[ConnectivityObserver] = None,
    ):
        self.store = store or DurableQueueStore()
        self.client = client or CollectorClient()
        self.observer = observer or ConnectivityObserver()
        self.queue = OfflineQueue(self.store)
        self.controller = FlushController(self.queue, self.client)
        self.ingestion = IngestionAdapter(self.client, self.queue)
        self.queue.add_listener(self.controller.on_enqueued)
        self._unsubscribe = None
        self.running = False

    def start(self, poll_connectivity: bool = True):
        """Restore the queue and begin watching connectivity."""
        logger.info("=" * 50)
        logger.info("Telemetry Relay")
        logger.info("=" * 50)
        logger.info(f"Device: {settings.DEVICE_NAME}")
        logger.info(f"Collector: {self.client.url}")
        logger.info(f"Queue store: {self.store.path}")
        logger.info("=" * 50)

        self.queue.load()
        self.controller.start()
        # The initial emission drains a restored backlog if we are already online
        self._unsubscribe = self.observer.subscribe(self.controller.on_reachability)
        if poll_connectivity:
            self.observer.start()
        self.running = True
        logger.info(f"Started - {self.queue.size()} events pending")

    def stop(self):
        """Stop the application."""
        if not self.running:
            return
        self.running = False
        self.observer.stop()
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        self.controller.stop()
        self.client.close()
        logger.info(f"Stopped - {self.queue.size()} events pending")

    def run(self, notifications: Iterable[str]):
        """Feed transport notifications (one value per line) into the relay."""
        self.start()
        try:
            for line in notifications:
                if not self.running:
                    break
                value = line.strip()
                if not value:
                    continue
                self.ingestion.on_event(value)
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()

    def status(self) -> Dict[str, Any]:
        """Backlog and last-error surface for whatever presents it."""
        return {
            "pending": self.queue.size(),
            "reachable": self.observer.reachable,
            "draining": self.controller.draining,
            "last_error": self.ingestion.last_error or self.controller.last_error,
            "last_category": self.ingestion.last_category,
        }


def main():
    """Entry point."""
    try:
        settings.validate_config()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    app = Application()

    def signal_handler(sig, frame):
        logger.info(f"Received signal {sig}")
        app.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    app.run(sys.stdin)


if __name__ == "__main__":
    main()
