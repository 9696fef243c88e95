"""
Realtime push to connected clients.

Clients register by polling ``/realtime/poll``; events for users that have
never connected are dropped.
"""
from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime

from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.integrations.realtime")


class RealtimeHub(ABC):
    @abstractmethod
    def send_to_user(self, user_id: int, event: dict) -> None:
        ...

    @abstractmethod
    def send_to_role(self, role: str, event: dict) -> None:
        ...


class InMemoryRealtimeHub(RealtimeHub):
    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._lock = threading.Lock()
        self._queues: dict[int, deque] = {}
        self._roles: dict[int, str] = {}

    def connect(self, user_id: int, role: str) -> None:
        with self._lock:
            if user_id not in self._queues:
                self._queues[user_id] = deque(maxlen=self.queue_size)
                logger.debug(f"Realtime client connected: user {user_id} ({role})")
            self._roles[user_id] = role

    def disconnect(self, user_id: int) -> None:
        with self._lock:
            self._queues.pop(user_id, None)
            self._roles.pop(user_id, None)

    def is_connected(self, user_id: int) -> bool:
        return user_id in self._queues

    @staticmethod
    def _stamp(event: dict) -> dict:
        stamped = dict(event)
        stamped.setdefault("timestamp", datetime.utcnow().isoformat())
        return stamped

    def send_to_user(self, user_id, event):
        with self._lock:
            queue = self._queues.get(user_id)
            if queue is None:
                logger.debug(f"User {user_id} not connected, dropping {event.get('type')}")
                return
            queue.append(self._stamp(event))

    def send_to_role(self, role, event):
        stamped = self._stamp(event)
        with self._lock:
            targets = [uid for uid, r in self._roles.items() if r == role]
            for uid in targets:
                self._queues[uid].append(stamped)
        logger.debug(f"Realtime {event.get('type')} sent to {len(targets)} {role} client(s)")

    def drain(self, user_id: int) -> list[dict]:
        with self._lock:
            queue = self._queues.get(user_id)
            if not queue:
                return []
            events = list(queue)
            queue.clear()
            return events
