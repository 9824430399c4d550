"""
Audit Trail
Append-only record of every content-affecting action.

Contract: ``AuditRecorder.append`` is called synchronously by the
operation it records, so ordering relative to the operation's result is
preserved, but it never raises. A failed audit write is logged and
dropped; it must not fail or roll back the primary operation. There is no
retry; durability is the backend's job.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from tamperseal.models import utcnow


logger = logging.getLogger(__name__)


class AuditAction(Enum):
    UPLOAD = "upload"
    DOWNLOAD = "download"
    SHARE = "share"
    UNSHARE = "unshare"
    DELETE = "delete"
    VERIFY = "verify"
    TAMPER = "tamper"
    TAMPER_SHARE_ATTEMPT = "tamper_share_attempt"


@dataclass(frozen=True)
class RequestContext:
    """Where a request came from; copied into audit events when known."""
    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class AuditEvent:
    """One immutable audit record."""
    object_id: str
    action: AuditAction
    actor_id: str
    target_principal_id: str | None = None
    timestamp: datetime = field(default_factory=utcnow)
    metadata: dict = field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None

    @classmethod
    def build(
        cls,
        object_id: str,
        action: AuditAction,
        actor_id: str,
        target_principal_id: str = None,
        metadata: dict = None,
        context: RequestContext = None,
    ) -> "AuditEvent":
        context = context or RequestContext()
        return cls(
            object_id=object_id,
            action=action,
            actor_id=actor_id,
            target_principal_id=target_principal_id,
            metadata=dict(metadata or {}),
            ip_address=context.ip_address,
            user_agent=context.user_agent,
        )

    def to_dict(self) -> dict:
        return {
            "object_id": self.object_id,
            "action": self.action.value,
            "actor_id": self.actor_id,
            "target_principal_id": self.target_principal_id,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AuditEvent":
        return cls(
            object_id=data["object_id"],
            action=AuditAction(data["action"]),
            actor_id=data["actor_id"],
            target_principal_id=data.get("target_principal_id"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            metadata=data.get("metadata") or {},
            ip_address=data.get("ip_address"),
            user_agent=data.get("user_agent"),
        )


class AuditRecorder(ABC):
    """
    Abstract audit sink.

    Subclasses implement ``_write`` and ``events_for``. Callers only ever
    use ``append``, which swallows backend failures.
    """

    def append(self, event: AuditEvent) -> None:
        try:
            self._write(event)
        except Exception:
            logger.exception(
                "Failed to record audit event %s for object %s",
                event.action.value, event.object_id,
            )

    @abstractmethod
    def _write(self, event: AuditEvent) -> None:
        """Persist one event. May raise; ``append`` absorbs it."""

    @abstractmethod
    def events_for(self, object_id: str) -> list[AuditEvent]:
        """All events for one object, newest first."""


class InMemoryAuditRecorder(AuditRecorder):
    """Keeps events in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []
        self._lock = threading.Lock()

    def _write(self, event: AuditEvent) -> None:
        with self._lock:
            self._events.append(event)

    def events_for(self, object_id: str) -> list[AuditEvent]:
        with self._lock:
            matching = [e for e in self._events if e.object_id == object_id]
        return list(reversed(matching))

    @property
    def events(self) -> list[AuditEvent]:
        """Every event, oldest first."""
        with self._lock:
            return list(self._events)


class JsonLinesAuditRecorder(AuditRecorder):
    """
    Appends one JSON object per line to a file.

    Lines that cannot be parsed (a write cut short by a crash) are logged
    and skipped when reading back.

    Args:
        path: Log file. Parent directories are created.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _write(self, event: AuditEvent) -> None:
        line = json.dumps(event.to_dict(), sort_keys=True)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")

    def events_for(self, object_id: str) -> list[AuditEvent]:
        if not self.path.exists():
            return []
        events = []
        with self._lock:
            with open(self.path, encoding="utf-8", errors="replace") as f:
                for number, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        data = json.loads(line)
                        if data["object_id"] != object_id:
                            continue
                        events.append(AuditEvent.from_dict(data))
                    except (ValueError, KeyError, TypeError) as e:
                        # Torn or hand-edited line
                        logger.warning("Skipping unreadable audit line %d in %s: %s", number, self.path, e)
        events.reverse()
        return events
