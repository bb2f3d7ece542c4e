"""Turns peripheral notifications into delivered (or queued) events."""
import base64
import binascii
from typing import Optional, Union

from telemetry_relay.collector_client import CollectorClient
from telemetry_relay.errors import DecodeError, DeliveryError, PersistenceError
from telemetry_relay.logging_conf import logger
from telemetry_relay.queue.models import DEFAULT_CATEGORY, EventRecord, QueueItem
from telemetry_relay.queue.offline_queue import OfflineQueue

RawNotification = Union[str, bytes, None]


def decode_notification(raw: RawNotification) -> str:
    """
    Extract the event code from a notification value.

    Args:
        raw: base64 text as handed over by the radio stack, or already
            decoded bytes

    Returns:
        The event code, e.g. "B"

    Raises:
        DecodeError: if the value is absent, not base64 or not text
    """
    if raw is None or len(raw) == 0:
        raise DecodeError("No data received")

    if isinstance(raw, str):
        try:
            data = base64.b64decode(raw.strip(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecodeError(f"Notification is not valid base64: {e}") from e
    else:
        data = bytes(raw)

    try:
        code = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Notification is not UTF-8 text: {e}") from e

    # Firmware pads short writes with NULs
    code = code.strip().strip("\x00")
    if not code:
        raise DecodeError("Notification decoded to an empty event code")
    return code


class IngestionAdapter:
    """Delivers each decoded event directly, queueing it when that fails."""

    def __init__(self, client: CollectorClient, queue: OfflineQueue):
        self.client = client
        self.queue = queue
        self.last_category = DEFAULT_CATEGORY
        self.last_error: Optional[str] = None

    def decode(self, raw: RawNotification) -> EventRecord:
        return EventRecord.create(decode_notification(raw))

    def on_event(self, raw: RawNotification) -> Optional[EventRecord]:
        """Handle one notification; malformed ones are logged and dropped."""
        try:
            record = self.decode(raw)
        except DecodeError as e:
            logger.warning(f"Dropping notification: {e}")
            return None

        self.last_category = record.category
        logger.info(f"Received event {record.event_code} ({record.category})", extra={"correlation_tag": record.correlation_tag})
        self.submit(record)
        return record

    def submit(self, record: EventRecord) -> bool:
        """Try a direct delivery; returns False if the event had to be queued."""
        try:
            self.client.deliver(record)
            self.last_error = None
            return True
        except DeliveryError as e:
            logger.info(f"Direct delivery failed ({e}), queueing", extra={"correlation_tag": record.correlation_tag})

        item = QueueItem.create(record)
        try:
            self.queue.enqueue(item)
            self.last_error = None
        except PersistenceError as e:
            self.last_error = str(e)
            logger.error(f"Event could not be queued: {e}", extra={"correlation_tag": record.correlation_tag})
        return False
