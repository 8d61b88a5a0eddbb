"""Base error classes with structured context.

Every failure the engine can report is a subclass of ``BaseError`` and
carries an ``ErrorKind``. Calling code branches on the kind, never on
message text.
"""

import traceback
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .models import (
    ConfigurationErrorContext,
    ErrorContextData,
    StateErrorContext,
    ValidationErrorDetail,
)

ContextValue = Union[str, int, float, bool, None]


class ErrorKind(str, Enum):
    """Machine-readable failure category."""

    VALIDATION = "validation"
    SANDBOX_VIOLATION = "sandbox_violation"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"
    DECLINED = "declined"
    INVALID_STATE = "invalid_state"
    INTERNAL = "internal"


class ErrorContext:
    """Structured error context wrapping an immutable ``ErrorContextData``."""

    def __init__(self, context_data: ErrorContextData):
        self._data = context_data

    @classmethod
    def create(
        cls,
        error_type: str,
        component: str,
        operation: str,
        task_id: Optional[str] = None,
    ) -> "ErrorContext":
        """Create a new error context.

        Args:
            error_type: Type of error
            component: Component raising error
            operation: Operation being performed
            task_id: Task the error belongs to

        Returns:
            New ErrorContext instance
        """
        context_data = ErrorContextData(
            error_type=error_type,
            error_location=f"{component}.{operation}",
            component=component,
            operation=operation,
            task_id=task_id,
        )
        return cls(context_data)

    @property
    def data(self) -> ErrorContextData:
        """Get the context data."""
        return self._data

    @property
    def timestamp(self) -> datetime:
        """Get the context creation timestamp."""
        return self._data.timestamp

    def __str__(self) -> str:
        return f"ErrorContext({self._data.model_dump()})"


class BaseError(Exception):
    """Base class for all framework errors.

    Provides structured context, cause tracking and a captured traceback
    so errors serialize cleanly for logging and for event payloads.
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, context: ErrorContext, cause: Optional[Exception] = None):
        self.message = message
        self.context = context
        self.cause = cause
        self.timestamp = datetime.now()
        self.traceback = self._capture_traceback()
        super().__init__(message)

    def _capture_traceback(self) -> str:
        """Capture the current traceback."""
        return traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary.

        Returns:
            Dictionary representation of error
        """
        return {
            "error_type": self.__class__.__name__,
            "error_kind": self.kind.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context.data.model_dump(mode="json"),
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        cause_str = f" (caused by: {self.cause})" if self.cause else ""
        return f"{self.__class__.__name__}: {self.message}{cause_str}"


class EngineError(BaseError):
    """Base error for engine components.

    Builds the ``ErrorContext`` from keyword arguments so call sites stay
    short; anything extra lands in ``additional_context``.
    """

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        component: str = "engine",
        operation: str = "unknown",
        task_id: Optional[str] = None,
        **context: ContextValue,
    ):
        error_context = ErrorContext.create(
            error_type=self.__class__.__name__,
            component=component,
            operation=operation,
            task_id=task_id,
        )
        super().__init__(message, error_context, cause)
        self.task_id = task_id
        self.additional_context: Dict[str, ContextValue] = dict(context)

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} (caused by: {self.cause})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["additional_context"] = self.additional_context
        return result


class ValidationError(EngineError):
    """Tool parameters do not satisfy the declared schema."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        validation_errors: Optional[List[ValidationErrorDetail]] = None,
        cause: Optional[Exception] = None,
        **kwargs: Any,
    ):
        self.validation_errors = validation_errors or []
        super().__init__(message, cause, **kwargs)

    def __str__(self) -> str:
        base_str = super().__str__()
        if self.validation_errors:
            errors_str = "; ".join(f"{e.location}: {e.message}" for e in self.validation_errors[:3])
            if len(self.validation_errors) > 3:
                errors_str += f" (and {len(self.validation_errors) - 3} more)"
            return f"{base_str} - {errors_str}"
        return base_str


class SandboxViolation(EngineError):
    """A tool invocation tried to leave the workspace or inject commands."""

    kind = ErrorKind.SANDBOX_VIOLATION


class NotFoundError(EngineError):
    """A file, directory or registered entity does not exist."""

    kind = ErrorKind.NOT_FOUND


class TaskNotFoundError(NotFoundError):
    """No task with the given id is held by the manager."""

    def __init__(self, task_id: str, operation: str = "get_task"):
        super().__init__(
            f"Task not found: {task_id}",
            component="task_manager",
            operation=operation,
            task_id=task_id,
        )


class ToolNotFoundError(NotFoundError):
    """No tool with the given name is registered."""

    def __init__(self, tool_name: str, task_id: Optional[str] = None):
        super().__init__(
            f"Tool not found: {tool_name}",
            component="tool_registry",
            operation="lookup",
            task_id=task_id,
            tool_name=tool_name,
        )
        self.tool_name = tool_name


class PermissionDeniedError(EngineError):
    """The host refused the operation."""

    kind = ErrorKind.PERMISSION_DENIED


class OperationTimeoutError(EngineError):
    """An operation did not finish within its time limit."""

    kind = ErrorKind.TIMEOUT


class UnavailableError(EngineError):
    """A capability or remote resource is not reachable."""

    kind = ErrorKind.UNAVAILABLE


class InvalidStateError(EngineError):
    """Misuse of the task manager API for the task's current state."""

    kind = ErrorKind.INVALID_STATE


class InvalidStateTransition(InvalidStateError):
    """A state-machine transition that the transition table forbids."""

    def __init__(
        self,
        message: str,
        state_context: StateErrorContext,
        **kwargs: Any,
    ):
        self.state_context = state_context
        super().__init__(message, **kwargs)


class AlreadyRunningError(InvalidStateError):
    """Another task is already running under the same manager."""

    def __init__(self, task_id: str, active_task_id: str):
        super().__init__(
            f"Cannot execute task {task_id}: task {active_task_id} is already active",
            component="task_manager",
            operation="execute_task",
            task_id=task_id,
            active_task_id=active_task_id,
        )
        self.active_task_id = active_task_id


class IterationLimitExceeded(EngineError):
    """The model/tool loop hit its iteration bound without finishing."""

    kind = ErrorKind.INTERNAL

    def __init__(self, task_id: str, max_iterations: int):
        super().__init__(
            f"Iteration limit exceeded: no final answer after {max_iterations} model round-trips",
            component="task",
            operation="run",
            task_id=task_id,
            max_iterations=max_iterations,
        )
        self.max_iterations = max_iterations


class ProviderError(EngineError):
    """The model collaborator failed or could not be reached."""

    kind = ErrorKind.UNAVAILABLE


class ConfigurationError(EngineError):
    """Invalid configuration value or missing required config."""

    def __init__(
        self,
        message: str,
        config_context: ConfigurationErrorContext,
        cause: Optional[Exception] = None,
        **kwargs: Any,
    ):
        self.config_context = config_context
        super().__init__(message, cause, **kwargs)
