"""Task data models: status, input, exchange history and snapshots."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, FrozenSet, List, Literal, Optional, Tuple, Union

from pydantic import Field

from taskengine.core.errors import ErrorKind
from taskengine.core.models import StrictBaseModel
from taskengine.core.settings import RejectionPolicy
from taskengine.tools.models import SideEffectClass, ToolCallRequest


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    AWAITING_APPROVAL = "awaiting_approval"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: FrozenSet[TaskStatus] = frozenset(
    {TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED}
)

# Allowed transitions; terminal states have none
TRANSITIONS: Dict[TaskStatus, FrozenSet[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.RUNNING, TaskStatus.CANCELLED}),
    TaskStatus.RUNNING: frozenset(
        {TaskStatus.AWAITING_APPROVAL, TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED}
    ),
    TaskStatus.AWAITING_APPROVAL: frozenset({TaskStatus.RUNNING, TaskStatus.CANCELLED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
    TaskStatus.CANCELLED: frozenset(),
}


class FailureReason(str, Enum):
    """Why a task ended in ``failed``."""

    ITERATION_LIMIT_EXCEEDED = "iteration_limit_exceeded"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    SANDBOX_DENIED = "sandbox_denied"
    TOOL_FAILURE = "tool_failure"
    TOOL_DECLINED = "tool_declined"
    INTERNAL_ERROR = "internal_error"


class TaskImage(StrictBaseModel):
    """Image attached to the task input."""

    data: bytes = Field(..., description="Raw image bytes")
    mime_type: str = Field(default="image/png", description="Image media type")


class TaskInput(StrictBaseModel):
    """Immutable request a task was created from."""

    text: str = Field(..., description="User instruction")
    images: Tuple[TaskImage, ...] = Field(default=(), description="Attached images")


class ModelTurn(StrictBaseModel):
    """One model response: text and any requested tool calls."""

    kind: Literal["model"] = "model"
    text: str = ""
    tool_calls: Tuple[ToolCallRequest, ...] = ()
    iteration: int = Field(..., ge=1)
    created_at: datetime = Field(default_factory=datetime.now)


class ToolResultTurn(StrictBaseModel):
    """Outcome of one tool call, fed back to the model."""

    kind: Literal["tool_result"] = "tool_result"
    tool_name: str
    call_id: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    success: bool
    output: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    requested_at: datetime
    completed_at: datetime = Field(default_factory=datetime.now)

    @property
    def declined(self) -> bool:
        return self.error_kind == ErrorKind.DECLINED


Turn = Annotated[Union[ModelTurn, ToolResultTurn], Field(discriminator="kind")]


class TaskError(StrictBaseModel):
    """Failure detail of a task in ``failed``."""

    reason: FailureReason
    message: str
    error_kind: Optional[ErrorKind] = None
    tool_name: Optional[str] = None


class PendingApproval(StrictBaseModel):
    """The invocation a task in ``awaiting_approval`` is blocked on."""

    tool_name: str
    call_id: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    side_effect_class: SideEffectClass
    requested_at: datetime = Field(default_factory=datetime.now)


class TaskConfig(StrictBaseModel):
    """Per-task overrides of the engine settings."""

    workspace_root: Optional[str] = Field(default=None, description="Sandbox root for this task")
    max_iterations: Optional[int] = Field(default=None, ge=1, description="Model round-trip bound")
    rejection_policy: Optional[RejectionPolicy] = None
    approval_timeout_seconds: Optional[float] = Field(default=None, gt=0)
    auto_approve: Tuple[str, ...] = Field(default=(), description="Extra auto-approved tools or classes")


class TaskSnapshot(StrictBaseModel):
    """Read-only copy of a task's state at one instant."""

    id: str
    input: TaskInput
    status: TaskStatus
    workspace_root: str
    history: Tuple[Turn, ...] = ()
    iterations: int = 0
    max_iterations: int
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    pending_approval: Optional[PendingApproval] = None
    result: Optional[str] = None
    error: Optional[TaskError] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def model_turns(self) -> List[ModelTurn]:
        return [turn for turn in self.history if isinstance(turn, ModelTurn)]

    @property
    def tool_results(self) -> List[ToolResultTurn]:
        return [turn for turn in self.history if isinstance(turn, ToolResultTurn)]
