"""Durable single-entry store for the offline queue snapshot."""
import json
import os
import re
from pathlib import Path
from typing import List, Optional

from telemetry_relay import settings
from telemetry_relay.errors import PersistenceError
from telemetry_relay.logging_conf import logger
from telemetry_relay.queue.models import QueueItem


class DurableQueueStore:
    """Persists the whole ordered queue under one logical key.

    Every save replaces the entire snapshot. Writes go to a temp file in the
    same directory and are renamed over the entry, so a crash leaves either
    the old snapshot or the new one, never a torn file.
    """

    def __init__(self, state_dir: Optional[Path] = None, key: Optional[str] = None):
        self.state_dir: Path = Path(state_dir or settings.STATE_DIR)
        self.key: str = key or settings.QUEUE_STORAGE_KEY
        self.state_dir.mkdir(parents=True, exist_ok=True)
        self.path: Path = self.state_dir / f"{self._safe_key(self.key)}.json"

    def load(self) -> List[QueueItem]:
        """Return the persisted queue, or an empty list if absent or unreadable."""
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error(f"Failed to read queue store {self.path}: {e}")
            return []

        if not raw.strip():
            return []

        try:
            data = json.loads(raw.decode("utf-8"))
            if not isinstance(data, list):
                raise ValueError(f"expected a list, got {type(data).__name__}")
            items = [QueueItem.from_dict(entry) for entry in data]
        except (ValueError, KeyError, TypeError, RecursionError) as e:
            # UnicodeDecodeError is a ValueError; RecursionError comes from deeply nested JSON
            logger.warning(f"Queue store {self.path} is corrupt, starting empty: {e}")
            self._quarantine()
            return []

        logger.debug(f"Loaded {len(items)} pending items from {self.path}")
        return items

    def save(self, items: List[QueueItem]) -> None:
        """Atomically replace the persisted queue with `items`."""
        data = self.serialize(items)
        tmp_path = self.path.with_name(f".tmp.{os.getpid()}.{self.path.name}")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                pass
            raise PersistenceError(f"Failed to write queue store {self.path}: {e}") from e
        logger.debug(f"Saved {len(items)} pending items to {self.path}")

    def clear(self) -> None:
        """Remove the persisted entry."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Failed to clear queue store {self.path}: {e}") from e

    @staticmethod
    def serialize(items: List[QueueItem]) -> str:
        # Stable key order keeps unchanged snapshots byte-identical
        return json.dumps([item.to_dict() for item in items], indent=2, sort_keys=True, ensure_ascii=False)

    def _quarantine(self) -> None:
        """Move an unparsable entry aside so the next save does not destroy it."""
        corrupt_path = self.path.with_suffix(".corrupt")
        try:
            os.replace(self.path, corrupt_path)
            logger.warning(f"Moved corrupt queue store to {corrupt_path}")
        except OSError as e:
            logger.error(f"Failed to move corrupt queue store aside: {e}")

    def _safe_key(self, value: str) -> str:
        """Make a safe filename from a storage key."""
        return re.sub(r"[^A-Za-z0-9._-]", "_", value)[:200]
