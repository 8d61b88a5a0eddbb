"""Task lifecycle events and the bus that delivers them.

Events are plain frozen data (``{type, task_id, timestamp, payload}``)
so a transport can relay them anywhere. Listeners are called
synchronously, in emission order; a failing listener is logged and never
affects the task or other listeners.
"""

import asyncio
import logging
import threading
from datetime import datetime
from enum import Enum
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Tuple,
)

from pydantic import Field

from taskengine.core.models import StrictBaseModel

logger = logging.getLogger(__name__)


class TaskEventType(str, Enum):
    CREATED = "created"
    STARTED = "started"
    PROGRESS = "progress"
    APPROVAL_REQUIRED = "approvalRequired"
    TOOL_EXECUTED = "toolExecuted"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TaskEvent(StrictBaseModel):
    type: TaskEventType
    task_id: str
    timestamp: datetime = Field(default_factory=datetime.now)
    payload: Dict[str, Any] = Field(default_factory=dict)

    def to_message(self) -> Dict[str, Any]:
        """Transport-ready dict."""
        return {
            "type": self.type.value,
            "taskId": self.task_id,
            "timestamp": self.timestamp.isoformat(),
            "payload": self.payload,
        }


TaskEventListener = Callable[[TaskEvent], None]


class EventBus:
    """Fan-out of task events to subscribed listeners."""

    def __init__(self):
        self._subscribers: List[Tuple[TaskEventListener, Optional[FrozenSet[TaskEventType]]]] = []
        self._lock = threading.Lock()
        self._emitted = 0

    def subscribe(
        self, listener: TaskEventListener, event_types: Optional[Iterable[TaskEventType]] = None
    ) -> Callable[[], None]:
        """Register ``listener``; returns a function that unsubscribes it.

        Args:
            listener: Called with every matching event
            event_types: Restrict delivery to these types (default: all)
        """
        entry = (listener, frozenset(event_types) if event_types is not None else None)
        with self._lock:
            self._subscribers.append(entry)

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._subscribers:
                    self._subscribers.remove(entry)

        return unsubscribe

    def emit(self, event: TaskEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
            self._emitted += 1
        for listener, event_types in subscribers:
            if event_types is not None and event.type not in event_types:
                continue
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Event listener failed for {event.type.value} on task {event.task_id}: {e}")

    async def stream(
        self, event_types: Optional[Iterable[TaskEventType]] = None
    ) -> AsyncIterator[TaskEvent]:
        """Yield events as they are emitted until the consumer stops."""
        loop = asyncio.get_running_loop()
        queue: "asyncio.Queue[TaskEvent]" = asyncio.Queue()

        def enqueue(event: TaskEvent) -> None:
            try:
                running = asyncio.get_running_loop()
            except RuntimeError:
                running = None
            if running is loop:
                queue.put_nowait(event)
            else:
                loop.call_soon_threadsafe(queue.put_nowait, event)

        unsubscribe = self.subscribe(enqueue, event_types)
        try:
            while True:
                yield await queue.get()
        finally:
            unsubscribe()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {"subscribers": len(self._subscribers), "emitted": self._emitted}
