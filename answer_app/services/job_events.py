"""Simple in-memory broker for solve job progress events."""

from __future__ import annotations

import json
import queue
import threading
from typing import Dict, Iterable


class JobEventBroker:
    def __init__(self, max_pending: int = 100) -> None:
        self.listeners: set[queue.Queue] = set()
        self.max_pending = max_pending
        self._lock = threading.Lock()

    def publish(self, payload: Dict) -> None:
        message = json.dumps(payload, ensure_ascii=False, default=str)
        with self._lock:
            listeners = list(self.listeners)
        for listener in listeners:
            try:
                listener.put_nowait(message)
            except queue.Full:
                continue

    def listen(self) -> Iterable[str]:
        q: queue.Queue[str] = queue.Queue(maxsize=self.max_pending)
        with self._lock:
            self.listeners.add(q)
        try:
            while True:
                data = q.get()
                yield data
        finally:
            with self._lock:
                self.listeners.discard(q)


job_event_broker = JobEventBroker()
