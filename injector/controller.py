from __future__ import annotations

import time
from threading import Thread, Timer
from typing import Callable, Iterable

from . import db
from .api_models import Outcome, ResourceID
from .reconciler import Reconciler
from .runtime import RuntimeState
from .settings import settings

EventSource = Callable[[], Iterable[ResourceID]]


class Controller:
    """Delivers Deployment ids to the Reconciler.

    One thread consumes the event source (the Kubernetes watch) and queues
    ids; another drains the queue one id at a time. Retry outcomes are
    re-queued after ``requeue_delay_s``; fatal errors are journaled and
    dropped until the next event for that Deployment.
    """

    def __init__(
        self,
        reconciler: Reconciler,
        runtime: RuntimeState,
        source: EventSource | None = None,
        requeue_delay_s: float | None = None,
    ):
        self.reconciler = reconciler
        self.runtime = runtime
        self.source = source
        self.requeue_delay_s = settings.requeue_delay_s if requeue_delay_s is None else requeue_delay_s
        self._stop = False
        self._threads: list[Thread] = []

    def start(self) -> None:
        if any(t.is_alive() for t in self._threads):
            return
        self._stop = False
        self._threads = [Thread(target=self._work_loop, daemon=True)]
        if self.source is not None:
            self._threads.append(Thread(target=self._watch_loop, daemon=True))
        for t in self._threads:
            t.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Stop both loops and wait for the worker to finish its current item.

        The watch thread is not joined: it may be blocked in the stream until
        the server-side watch timeout, and exits on its next event.
        """
        self._stop = True
        with self.runtime.cond:
            self.runtime.cond.notify_all()
        if self._threads:
            self._threads[0].join(timeout)

    def enqueue(self, rid: ResourceID) -> None:
        self.runtime.enqueue(rid)

    def _watch_loop(self) -> None:
        db.log_event("INFO", "Watch started")
        while not self._stop:
            try:
                for rid in self.source():
                    if self._stop:
                        return
                    self.enqueue(rid)
            except Exception as e:
                db.log_event("ERROR", f"Watch failed: {type(e).__name__}: {e}")
            time.sleep(1)

    def _work_loop(self) -> None:
        db.log_event("INFO", "Controller started")
        while not self._stop:
            self.process_one(timeout=1.0)

    def process_one(self, timeout: float | None = 0) -> Outcome | None:
        """Reconcile the next queued id. Returns None when the queue is empty."""
        rid = self.runtime.take(timeout)
        if rid is None:
            return None
        try:
            outcome = self.reconciler.reconcile(rid)
        except Exception as e:
            detail = f"{type(e).__name__}: {e}"
            db.log_event("ERROR", f"Reconcile failed: {detail}", namespace=rid.namespace, name=rid.name)
            self.runtime.record(rid, Outcome.FATAL, detail)
            return Outcome.FATAL

        self.runtime.record(rid, outcome)
        if outcome is Outcome.RETRY:
            self._requeue(rid)
        return outcome

    def _requeue(self, rid: ResourceID) -> None:
        db.log_event("WARN", f"Retrying in {self.requeue_delay_s}s", namespace=rid.namespace, name=rid.name)
        if self.requeue_delay_s <= 0:
            self.runtime.enqueue(rid)
            return
        t = Timer(self.requeue_delay_s, self.runtime.enqueue, args=(rid,))
        t.daemon = True
        t.start()
