"""Queue data models."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional

# Event code -> presentation category. Unknown codes fall back to DEFAULT_CATEGORY.
EVENT_CATEGORIES = {
    "B": "blue",
    "R": "red",
    "G": "green",
}
DEFAULT_CATEGORY = "white"


def category_for(event_code: str) -> str:
    return EVENT_CATEGORIES.get(event_code, DEFAULT_CATEGORY)


@dataclass(frozen=True)
class EventRecord:
    """One decoded telemetry event, ready to be reported."""

    event_code: str
    timestamp: str  # ISO-8601, UTC
    correlation_tag: str  # "<code>_<epoch ms>", links the event to its image

    @classmethod
    def create(cls, event_code: str, now: Optional[datetime] = None):
        """Stamp a freshly decoded event code."""
        now = now or datetime.now(timezone.utc)
        millis = int(now.timestamp() * 1000)
        return cls(
            event_code=event_code,
            timestamp=now.isoformat(),
            correlation_tag=f"{event_code}_{millis}",
        )

    @property
    def category(self) -> str:
        return category_for(self.event_code)

    def to_payload(self) -> Dict[str, Any]:
        """Body expected by the collector."""
        return {
            "event": self.event_code,
            "ts": self.timestamp,
            "img_id": self.correlation_tag,
        }

    @classmethod
    def from_payload(cls, data: Dict[str, Any]):
        return cls(
            event_code=str(data["event"]),
            timestamp=str(data["ts"]),
            correlation_tag=str(data["img_id"]),
        )


@dataclass
class QueueItem:
    """A pending delivery in the offline queue."""

    id: str
    payload: EventRecord
    enqueued_at: str

    @classmethod
    def create(cls, payload: EventRecord):
        """Factory method to create a QueueItem with a fresh id."""
        return cls(
            id=str(uuid.uuid4()),
            payload=payload,
            enqueued_at=datetime.now(timezone.utc).isoformat(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "enqueued_at": self.enqueued_at,
            "payload": self.payload.to_payload(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        return cls(
            id=str(data["id"]),
            payload=EventRecord.from_payload(data["payload"]),
            enqueued_at=str(data.get("enqueued_at", "")),
        )


@dataclass
class DrainResult:
    """Outcome of one drain pass."""

    attempted: int = 0
    delivered: List[str] = field(default_factory=list)
    remaining: int = 0
    stopped_on_failure: bool = False
    error: Optional[str] = None
    skipped: bool = False
