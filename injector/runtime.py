from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Condition

from .api_models import Outcome, ResourceID


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class LastOutcome:
    outcome: Outcome
    detail: str = ""
    updated_at: str = field(default_factory=utc_now)


class RuntimeState:
    """In-memory work queue and outcome bookkeeping for the dispatcher."""

    def __init__(self) -> None:
        self.cond = Condition()
        self.queue: deque[ResourceID] = deque()
        self.pending: set[ResourceID] = set()  # queued, not yet taken
        self.last: dict[ResourceID, LastOutcome] = {}

    def enqueue(self, rid: ResourceID) -> bool:
        """Queue *rid* unless it is already waiting. Returns True if queued."""
        with self.cond:
            if rid in self.pending:
                return False
            self.pending.add(rid)
            self.queue.append(rid)
            self.cond.notify()
            return True

    def take(self, timeout: float | None = None) -> ResourceID | None:
        with self.cond:
            if not self.queue:
                self.cond.wait(timeout)
            if not self.queue:
                return None
            rid = self.queue.popleft()
            self.pending.discard(rid)
            return rid

    def record(self, rid: ResourceID, outcome: Outcome, detail: str = "") -> None:
        with self.cond:
            self.last[rid] = LastOutcome(outcome=outcome, detail=detail)

    def snapshot(self) -> dict[ResourceID, LastOutcome]:
        with self.cond:
            return dict(self.last)

    def queued(self) -> list[ResourceID]:
        with self.cond:
            return list(self.queue)
