"""Job-scoped publish/subscribe bus for progress events."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """A progress notification for one job."""

    job_id: str
    type: str
    ts: float
    payload: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {"job_id": self.job_id, "type": self.type, "ts": self.ts, **self.payload}


EventHandler = Callable[[Event], None]


class EventBus:
    """Deliver events to handlers subscribed to a job, or to every job.

    Handlers run synchronously on the publishing thread.  A failing handler is
    logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_job: Dict[str, List[EventHandler]] = {}
        self._global: List[EventHandler] = []

    def subscribe(self, job_id: str, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler`` for ``job_id`` and return a callable that removes it."""

        with self._lock:
            self._by_job.setdefault(job_id, []).append(handler)

        def unsubscribe() -> None:
            with self._lock:
                handlers = self._by_job.get(job_id, [])
                if handler in handlers:
                    handlers.remove(handler)
                if not handlers:
                    self._by_job.pop(job_id, None)

        return unsubscribe

    def subscribe_all(self, handler: EventHandler) -> Callable[[], None]:
        with self._lock:
            self._global.append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._global:
                    self._global.remove(handler)

        return unsubscribe

    def subscriber_count(self, job_id: Optional[str] = None) -> int:
        with self._lock:
            if job_id is None:
                return len(self._global) + sum(len(handlers) for handlers in self._by_job.values())
            return len(self._by_job.get(job_id, []))

    def publish(self, job_id: str, type: str, **payload: Any) -> Event:
        event = Event(job_id=job_id, type=type, ts=time.time(), payload=dict(payload))
        with self._lock:
            handlers = [*self._by_job.get(job_id, []), *self._global]
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                LOGGER.exception("Event handler failed for %s event of job %s", type, job_id)
        return event


__all__ = ["Event", "EventBus", "EventHandler"]
