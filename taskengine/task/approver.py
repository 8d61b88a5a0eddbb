"""Answer approval requests through the Notification capability."""

import asyncio
import json
import logging
from typing import Callable, Optional, Set

from taskengine.core.errors import InvalidStateError
from taskengine.platform.interfaces import Notification
from taskengine.platform.models import NotificationLevel

from .events import TaskEvent, TaskEventType
from .manager import TaskManager

logger = logging.getLogger(__name__)

APPROVE = "Approve"
REJECT = "Reject"


class NotificationApprover:
    """Asks a human via ``Notification.show`` whenever a task needs approval.

    An unanswered prompt (timeout or dismissal) is a rejection.
    """

    def __init__(self, manager: TaskManager, notification: Notification, timeout: Optional[float] = None):
        self.manager = manager
        self.notification = notification
        self.timeout = timeout
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._pending: Set["asyncio.Task[None]"] = set()

    def attach(self) -> "NotificationApprover":
        if self._unsubscribe is None:
            self._unsubscribe = self.manager.subscribe(self._on_event, [TaskEventType.APPROVAL_REQUIRED])
        return self

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_event(self, event: TaskEvent) -> None:
        prompt = asyncio.get_running_loop().create_task(self.ask(event))
        self._pending.add(prompt)
        prompt.add_done_callback(self._pending.discard)

    async def ask(self, event: TaskEvent) -> None:
        payload = event.payload
        message = (
            f"Task {event.task_id} wants to run '{payload.get('tool_name')}' "
            f"({payload.get('side_effect_class')}) with {json.dumps(payload.get('parameters', {}), sort_keys=True)}"
        )
        choice = await self.notification.show(
            NotificationLevel.WARNING, message, APPROVE, REJECT, timeout=self.timeout
        )
        approved = choice == APPROVE
        reason = "Approved by user" if approved else ("Rejected by user" if choice == REJECT else "No answer")
        try:
            self.manager.resolve_approval(event.task_id, approved, reason)
        except InvalidStateError as e:
            # Cancelled or timed out while the prompt was open
            logger.debug(f"Approval for task {event.task_id} no longer needed: {e}")

    async def drain(self) -> None:
        """Wait for prompts still open."""
        if self._pending:
            await asyncio.gather(*list(self._pending))
