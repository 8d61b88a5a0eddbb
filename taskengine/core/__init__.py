"""Core building blocks shared by every engine component."""

from taskengine.core.errors import (
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
from taskengine.core.models import MutableStrictBaseModel, StrictBaseModel
from taskengine.core.settings import EngineSettings, RejectionPolicy, setup_logging

__all__ = [
    "AlreadyRunningError",
    "BaseError",
    "ConfigurationError",
    "EngineError",
    "EngineSettings",
    "ErrorContext",
    "ErrorKind",
    "InvalidStateError",
    "InvalidStateTransition",
    "IterationLimitExceeded",
    "MutableStrictBaseModel",
    "NotFoundError",
    "OperationTimeoutError",
    "PermissionDeniedError",
    "ProviderError",
    "RejectionPolicy",
    "SandboxViolation",
    "StrictBaseModel",
    "TaskNotFoundError",
    "ToolNotFoundError",
    "UnavailableError",
    "ValidationError",
    "setup_logging",
]
