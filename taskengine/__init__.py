"""Taskengine.

Host-independent task orchestration for an AI coding agent. A task takes
a user instruction and drives a bounded "ask the model, run a requested
tool, feed the result back" loop until the model answers, the task is
cancelled, or it fails.

Key pieces:
1. Platform capabilities that decouple the engine from its host
2. A tool registry with workspace sandboxing and approval gating
3. A task state machine and a manager enforcing one active task
4. Plain-data lifecycle events for any transport
"""

from taskengine.container import DependencyContainer
from taskengine.core.errors import (
    AlreadyRunningError,
    BaseError,
    EngineError,
    ErrorKind,
    InvalidStateError,
    SandboxViolation,
    TaskNotFoundError,
    ValidationError,
)
from taskengine.core.settings import EngineSettings, RejectionPolicy, setup_logging
from taskengine.engine import Engine
from taskengine.platform.interfaces import PlatformCapabilities
from taskengine.task import (
    FailureReason,
    ModelClient,
    ModelRequest,
    ModelResponse,
    TaskConfig,
    TaskEvent,
    TaskEventType,
    TaskInput,
    TaskManager,
    TaskSnapshot,
    TaskStatus,
)
from taskengine.tools import (
    ApprovalDecision,
    SideEffectClass,
    ToolCallRequest,
    ToolRegistry,
    ToolResult,
)

__version__ = "0.1.0"

__all__ = [
    "DependencyContainer",
    "AlreadyRunningError",
    "BaseError",
    "EngineError",
    "ErrorKind",
    "InvalidStateError",
    "SandboxViolation",
    "TaskNotFoundError",
    "ValidationError",
    "EngineSettings",
    "RejectionPolicy",
    "setup_logging",
    "Engine",
    "PlatformCapabilities",
    "FailureReason",
    "ModelClient",
    "ModelRequest",
    "ModelResponse",
    "TaskConfig",
    "TaskEvent",
    "TaskEventType",
    "TaskInput",
    "TaskManager",
    "TaskSnapshot",
    "TaskStatus",
    "ApprovalDecision",
    "SideEffectClass",
    "ToolCallRequest",
    "ToolRegistry",
    "ToolResult",
    "__version__",
]
