"""Task lifecycle: models, state machine, manager and events."""

from .approver import NotificationApprover
from .events import EventBus, TaskEvent, TaskEventListener, TaskEventType
from .manager import TaskManager
from .model_client import ModelClient, ModelRequest, ModelResponse
from .models import (
    TERMINAL_STATUSES,
    FailureReason,
    ModelTurn,
    PendingApproval,
    TaskConfig,
    TaskError,
    TaskImage,
    TaskInput,
    TaskSnapshot,
    TaskStatus,
    ToolResultTurn,
    Turn,
)
from .task import Task

__all__ = [
    "NotificationApprover",
    "EventBus",
    "TaskEvent",
    "TaskEventListener",
    "TaskEventType",
    "TaskManager",
    "ModelClient",
    "ModelRequest",
    "ModelResponse",
    "TERMINAL_STATUSES",
    "FailureReason",
    "ModelTurn",
    "PendingApproval",
    "TaskConfig",
    "TaskError",
    "TaskImage",
    "TaskInput",
    "TaskSnapshot",
    "TaskStatus",
    "ToolResultTurn",
    "Turn",
    "Task",
]
