"""Fan-out of state-change notifications to every connected terminal.

Delivery is best-effort and at-most-once: there is no replay, no
acknowledgement and no per-terminal queue. A terminal that misses an
event re-fetches current state.
"""
from __future__ import annotations

import json
import logging
from threading import Lock
from typing import Any, List, Protocol, Set


class Subscriber(Protocol):
    @property
    def is_open(self) -> bool: ...

    def send(self, message: str) -> None: ...


class Broadcaster:
    def __init__(self) -> None:
        self._subscribers: Set[Subscriber] = set()
        self._lock = Lock()
        self._logger = logging.getLogger(__name__)

    def connect(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers.add(subscriber)
            count = len(self._subscribers)
        self._logger.info("terminal connected", extra={"subscribers": count})

    def disconnect(self, subscriber: Subscriber) -> None:
        with self._lock:
            if subscriber not in self._subscribers:
                return
            self._subscribers.discard(subscriber)
            count = len(self._subscribers)
        self._logger.info("terminal disconnected", extra={"subscribers": count})

    def subscribers(self) -> List[Subscriber]:
        with self._lock:
            return list(self._subscribers)

    @property
    def connection_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def broadcast(self, event_type: str, data: Any) -> int:
        message = json.dumps({"type": event_type, "data": data}, ensure_ascii=False, default=str)
        delivered = 0
        # Iterate over a snapshot so connect/disconnect never waits on a send
        for subscriber in self.subscribers():
            if not subscriber.is_open:
                continue
            try:
                subscriber.send(message)
            except Exception:
                self._logger.warning("dropping terminal after failed send", exc_info=True)
                self.disconnect(subscriber)
                continue
            delivered += 1
        self._logger.debug("broadcast %s", event_type, extra={"event_type": event_type, "subscribers": delivered})
        return delivered


broadcaster = Broadcaster()
