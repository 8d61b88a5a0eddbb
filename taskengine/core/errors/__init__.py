"""Typed error hierarchy for the engine."""

from .errors import (
    AlreadyRunningError,
    BaseError,
    ConfigurationError,
    EngineError,
    ErrorContext,
    ErrorKind,
    InvalidStateError,
    InvalidStateTransition,
    IterationLimitExceeded,
    NotFoundError,
    OperationTimeoutError,
    PermissionDeniedError,
    ProviderError,
    SandboxViolation,
    TaskNotFoundError,
    ToolNotFoundError,
    UnavailableError,
    ValidationError,
)
from .models import (
    ConfigurationErrorContext,
    ErrorContextData,
    StateErrorContext,
    ValidationErrorDetail,
)

__all__ = [
    "AlreadyRunningError",
    "BaseError",
    "ConfigurationError",
    "ConfigurationErrorContext",
    "EngineError",
    "ErrorContext",
    "ErrorContextData",
    "ErrorKind",
    "InvalidStateError",
    "InvalidStateTransition",
    "IterationLimitExceeded",
    "NotFoundError",
    "OperationTimeoutError",
    "PermissionDeniedError",
    "ProviderError",
    "SandboxViolation",
    "StateErrorContext",
    "TaskNotFoundError",
    "ToolNotFoundError",
    "UnavailableError",
    "ValidationError",
    "ValidationErrorDetail",
]
