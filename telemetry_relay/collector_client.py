"""Minimal client for the remote event collector."""
from typing import Optional

import requests

from telemetry_relay import settings
from telemetry_relay.errors import DeliveryError
from telemetry_relay.logging_conf import logger
from telemetry_relay.queue.models import EventRecord


class CollectorClient:
    """Posts one event per request to the collector endpoint."""

    def __init__(self, url: Optional[str] = None, session: Optional[requests.Session] = None):
        self.url = url or settings.COLLECTOR_URL
        self.timeout = (settings.DELIVERY_CONNECT_TIMEOUT, settings.DELIVERY_READ_TIMEOUT)
        self.session = session or requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    def deliver(self, record: EventRecord) -> None:
        """
        Make a single delivery attempt for one event.

        Args:
            record: The event to report

        Raises:
            DeliveryError: on connection failure, timeout or a non-2xx status
        """
        try:
            response = self.session.post(self.url, json=record.to_payload(), timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise DeliveryError(f"Collector timed out: {e}") from e
        except requests.exceptions.RequestException as e:
            raise DeliveryError(f"Collector unreachable: {e}") from e

        if not 200 <= response.status_code < 300:
            raise DeliveryError(f"HTTP {response.status_code}", status_code=response.status_code)

        logger.debug(f"Delivered event {record.correlation_tag}")

    def close(self) -> None:
        self.session.close()
