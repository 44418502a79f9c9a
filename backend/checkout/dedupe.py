"""Processed-webhook registry.

The remote tier lives in the order store (`webhook-events` collection); the
local tier is a JSON array on disk, loaded once and rewritten on every mark,
so a mark survives a restart even when the remote tier was unreachable.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from checkout.errors import RemoteError

log = logging.getLogger(__name__)


def dedupe_id(event_id: str | None, event_type: str | None, payment_id: str | None) -> str:
    if event_id:
        return str(event_id)
    return f"{event_type or 'event'}:{payment_id or ''}"


class DedupStore(ABC):
    @abstractmethod
    def is_processed(self, event_id: str) -> bool:
        ...

    @abstractmethod
    def mark_processed(self, event_id: str, raw_event: Any = None) -> None:
        ...


class LocalDedupStore(DedupStore):
    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
        self._ids = self._load()

    def _load(self) -> set:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return set()
        except (OSError, ValueError) as e:
            log.error("Could not read processed-webhook file %s (%s); starting empty", self.path, e)
            return set()
        if not isinstance(data, list):
            log.error("Processed-webhook file %s is not a JSON array; starting empty", self.path)
            return set()
        return {str(x) for x in data}

    def _flush(self) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".processed-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(sorted(self._ids), f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def is_processed(self, event_id: str) -> bool:
        return str(event_id) in self._ids

    def mark_processed(self, event_id: str, raw_event: Any = None) -> None:
        with self._lock:
            self._ids.add(str(event_id))
            self._flush()

    def __len__(self) -> int:
        return len(self._ids)


class RemoteDedupStore(DedupStore):
    def __init__(self, client):
        self.client = client

    def is_processed(self, event_id: str) -> bool:
        return bool(self.client.find_webhook_events(event_id))

    def mark_processed(self, event_id: str, raw_event: Any = None) -> None:
        self.client.create_webhook_event(event_id, raw_event, datetime.now(timezone.utc).isoformat())


class ChainedDedupStore(DedupStore):
    """Remote first, local as the durability backstop."""

    def __init__(self, local: LocalDedupStore, remote: DedupStore | None = None):
        self.local = local
        self.remote = remote

    def is_processed(self, event_id: str) -> bool:
        if self.remote is not None:
            try:
                if self.remote.is_processed(event_id):
                    return True
            except RemoteError as e:
                log.warning("Remote dedupe lookup failed for %s (%s); using local store", event_id, e.message)
        # Marks written during a remote outage only exist locally.
        return self.local.is_processed(event_id)

    def mark_processed(self, event_id: str, raw_event: Any = None) -> None:
        if self.remote is not None:
            try:
                self.remote.mark_processed(event_id, raw_event)
                return
            except RemoteError as e:
                log.warning("Remote dedupe mark failed for %s (%s); persisting locally", event_id, e.message)
        self.local.mark_processed(event_id, raw_event)
