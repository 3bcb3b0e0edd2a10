"""
Real-time fan-out.

``ConnectionHub`` is the registry of connected subscribers and the class
groups they joined. ``Notifier`` decides which events go to whom. Group
membership is advisory: any client may join any class group, since acting on
a class is authorized separately by the validators.
"""
import asyncio
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from edupresence.utils.logger import get_logger

log = get_logger("realtime")

SESSION_STARTED = "session_started"
ATTENDANCE_MARKED = "attendance_marked"


def iso_timestamp(epoch_seconds: float) -> str:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).isoformat()


class Subscriber(ABC):
    """Anything with an id and an awaitable ``send_json``; a WebSocket wrapper in production."""

    id: str

    @abstractmethod
    async def send_json(self, message: Dict[str, Any]) -> None:
        ...


class ConnectionHub:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: Dict[str, Subscriber] = {}
        self._groups: Dict[str, Set[str]] = {}

    def connect(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers[subscriber.id] = subscriber
        log.info("User connected: %s", subscriber.id)

    def disconnect(self, subscriber_id: str) -> None:
        with self._lock:
            self._subscribers.pop(subscriber_id, None)
            for class_id in list(self._groups):
                members = self._groups[class_id]
                members.discard(subscriber_id)
                if not members:
                    del self._groups[class_id]
        log.info("User disconnected: %s", subscriber_id)

    def join_group(self, subscriber_id: str, class_id: str) -> bool:
        with self._lock:
            if subscriber_id not in self._subscribers:
                return False
            self._groups.setdefault(class_id, set()).add(subscriber_id)
        log.info("User %s joined class %s", subscriber_id, class_id)
        return True

    def leave_group(self, subscriber_id: str, class_id: str) -> bool:
        with self._lock:
            members = self._groups.get(class_id)
            if not members or subscriber_id not in members:
                return False
            members.discard(subscriber_id)
            if not members:
                del self._groups[class_id]
        log.info("User %s left class %s", subscriber_id, class_id)
        return True

    def members(self, class_id: str) -> Set[str]:
        with self._lock:
            return set(self._groups.get(class_id, ()))

    @property
    def connection_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    async def broadcast(self, event: str, data: Dict[str, Any]) -> int:
        """Sends to every connected subscriber. Returns the number of successful deliveries."""
        with self._lock:
            targets = list(self._subscribers.values())
        return await self._deliver(targets, event, data)

    async def publish(self, class_id: str, event: str, data: Dict[str, Any]) -> int:
        """Sends to the subscribers of one class group."""
        with self._lock:
            ids = self._groups.get(class_id, set())
            targets = [self._subscribers[i] for i in ids if i in self._subscribers]
        return await self._deliver(targets, event, data)

    async def _deliver(self, targets: List[Subscriber], event: str, data: Dict[str, Any]) -> int:
        if not targets:
            return 0
        message = {"event": event, "data": data}
        results = await asyncio.gather(
            *(subscriber.send_json(message) for subscriber in targets),
            return_exceptions=True,
        )
        delivered = 0
        for subscriber, result in zip(targets, results):
            if isinstance(result, BaseException):
                # Not retried; the subscriber is treated as gone.
                log.debug("Dropping subscriber %s after failed %s delivery: %s", subscriber.id, event, result)
                self.disconnect(subscriber.id)
            else:
                delivered += 1
        return delivered


class Notifier:
    """Turns domain outcomes into real-time events. Delivery failures never reach the caller."""

    def __init__(self, hub: ConnectionHub):
        self.hub = hub

    async def announce_session_started(
        self,
        class_id: str,
        class_name: Optional[str],
        teacher_id: str,
        token: str,
        issued_at: float,
    ) -> None:
        data = {
            "class_id": class_id,
            "class_name": class_name,
            "teacher_id": teacher_id,
            "session_token": token,
            "timestamp": iso_timestamp(issued_at),
        }
        await self._send(self.hub.broadcast(SESSION_STARTED, data), SESSION_STARTED, class_id)

    async def announce_attendance_marked(
        self,
        class_id: str,
        student_id: str,
        record: Dict[str, Any],
        timestamp: float,
    ) -> None:
        data = {
            "class_id": class_id,
            "student_id": student_id,
            "record": record,
            "timestamp": iso_timestamp(timestamp),
        }
        await self._send(self.hub.publish(class_id, ATTENDANCE_MARKED, data), ATTENDANCE_MARKED, class_id)

    async def _send(self, delivery, event: str, class_id: str) -> None:
        try:
            count = await delivery
        except Exception:
            log.exception("Fan-out of %s for class %s failed", event, class_id)
            return
        log.debug("Fan-out of %s for class %s reached %d subscriber(s)", event, class_id, count)
