"""Network reachability observer."""
import threading
import time
from typing import Callable, List, Optional

import requests

from telemetry_relay import settings
from telemetry_relay.logging_conf import logger

ReachabilityHandler = Callable[[bool], None]
Probe = Callable[[], bool]


def http_probe() -> bool:
    """Any HTTP answer from the probe URL counts as reachable."""
    try:
        requests.head(
            settings.CONNECTIVITY_PROBE_URL,
            timeout=settings.CONNECTIVITY_PROBE_TIMEOUT,
            allow_redirects=False,
        )
        return True
    except requests.exceptions.RequestException:
        return False


class ConnectivityObserver:
    """Reports internet reachability to subscribers.

    Each subscriber gets the current state when it subscribes and then every
    transition. States come either from `report()` (a platform network-state
    provider pushing updates) or from the polling thread started by `start()`.
    """

    def __init__(self, probe: Optional[Probe] = None, poll_interval: Optional[int] = None):
        self.probe = probe or http_probe
        self.poll_interval = poll_interval or settings.CONNECTIVITY_POLL_INTERVAL
        self._handlers: List[ReachabilityHandler] = []
        self._lock = threading.Lock()
        self._reachable: Optional[bool] = None
        self.running = False
        self.thread = None

    @property
    def reachable(self) -> Optional[bool]:
        return self._reachable

    def subscribe(self, handler: ReachabilityHandler) -> Callable[[], None]:
        """Register a handler and immediately tell it the current state.

        The handler only joins the transition list once the state it was last
        given is still current, so it never sees a stale state after a newer one.
        """
        with self._lock:
            current = self._reachable

        if current is None:
            probed = self._probe_safely()
            with self._lock:
                if self._reachable is None:
                    self._reachable = probed
                current = self._reachable

        while True:
            self._call(handler, current)
            with self._lock:
                if self._reachable == current:
                    self._handlers.append(handler)
                    break
                current = self._reachable

        return lambda: self.unsubscribe(handler)

    def unsubscribe(self, handler: ReachabilityHandler) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def report(self, reachable: bool) -> bool:
        """Record a reachability reading; notifies subscribers on a transition."""
        with self._lock:
            if self._reachable == reachable:
                return False
            self._reachable = reachable
            handlers = list(self._handlers)

        logger.info(f"Internet {'reachable' if reachable else 'unreachable'}")
        for handler in handlers:
            self._call(handler, reachable)
        return True

    def start(self):
        """Start polling the probe in a background thread."""
        if self.running:
            logger.warning("Connectivity observer is already running")
            return

        self.running = True
        self.thread = threading.Thread(target=self._run, daemon=True)
        self.thread.start()
        logger.info(f"Connectivity observer started (interval: {self.poll_interval}s)")

    def stop(self):
        if not self.running:
            return

        self.running = False
        if self.thread:
            self.thread.join(timeout=10)
        logger.info("Connectivity observer stopped")

    def _run(self):
        while self.running:
            self.report(self._probe_safely())

            for _ in range(self.poll_interval):
                if not self.running:
                    break
                time.sleep(1)

    def _probe_safely(self) -> bool:
        try:
            return bool(self.probe())
        except Exception as e:
            logger.warning(f"Connectivity probe failed: {e}")
            return False

    def _call(self, handler: ReachabilityHandler, reachable: bool) -> None:
        try:
            handler(reachable)
        except Exception as e:
            logger.error(f"Reachability handler failed: {e}", exc_info=True)
