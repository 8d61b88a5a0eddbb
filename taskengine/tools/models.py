"""Core models for the tool system.

Tools are flat data records (``ToolDescriptor``): a name, a Pydantic
parameter schema, a side-effect class and an async handler. There is no
per-tool class hierarchy.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    Optional,
    Tuple,
    Type,
    Union,
)

from pydantic import Field

from taskengine.core.errors import ErrorKind
from taskengine.core.models import StrictBaseModel
from taskengine.platform.interfaces import PlatformCapabilities

from .sandbox import Sandbox

if TYPE_CHECKING:
    from .approval import ApprovalPolicy


class SideEffectClass(str, Enum):
    """What a tool can do to the world; drives approval gating."""

    READ = "read"
    WRITE = "write"
    EXECUTE = "execute"
    NETWORK = "network"


class ToolParameters(StrictBaseModel):
    """Base class for all tool parameters.

    Strict validation, unknown fields rejected.
    """


class ToolCallRequest(StrictBaseModel):
    """A tool call as requested by the model collaborator."""

    tool_name: str = Field(..., description="Registered tool name")
    parameters: Dict[str, Any] = Field(default_factory=dict, description="Raw, unvalidated parameters")
    call_id: Optional[str] = Field(default=None, description="Provider-assigned call id, if any")


class ToolOutput(StrictBaseModel):
    """What a handler returns on success."""

    text: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ToolResult(StrictBaseModel):
    """Uniform outcome of a tool invocation; never raised, always returned."""

    tool_name: str
    success: bool
    output: Optional[str] = Field(default=None, description="Output on success")
    error_kind: Optional[ErrorKind] = Field(default=None, description="Failure category")
    message: Optional[str] = Field(default=None, description="Failure description")
    metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.now)

    @classmethod
    def ok(cls, tool_name: str, output: str, metadata: Optional[Dict[str, Any]] = None) -> "ToolResult":
        return cls(tool_name=tool_name, success=True, output=output, metadata=metadata or {})

    @classmethod
    def failure(
        cls,
        tool_name: str,
        kind: ErrorKind,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "ToolResult":
        return cls(
            tool_name=tool_name,
            success=False,
            error_kind=kind,
            message=message,
            metadata=metadata or {},
        )

    @property
    def declined(self) -> bool:
        return self.error_kind == ErrorKind.DECLINED

    def get_display_content(self) -> str:
        if self.success:
            return self.output or ""
        kind = self.error_kind.value if self.error_kind else "error"
        return f"[{kind}] {self.message or ''}"


class ToolSpec(StrictBaseModel):
    """Tool description published to the model collaborator."""

    name: str
    description: str
    side_effect_class: SideEffectClass
    parameters_schema: Dict[str, Any]


ToolHandler = Callable[[Any, "ToolCall"], Awaitable[Union[str, ToolOutput]]]


class ToolDescriptor(StrictBaseModel):
    """Registry entry for one tool."""

    name: str = Field(..., description="Unique tool name")
    description: str = Field(..., description="What the tool does, for the model")
    parameter_model: Type[ToolParameters] = Field(..., description="Parameter schema")
    side_effect_class: SideEffectClass
    handler: Callable[..., Awaitable[Any]]
    path_parameters: Tuple[str, ...] = Field(
        default=(), description="Parameters resolved against the workspace root"
    )
    command_parameter: Optional[str] = Field(
        default=None, description="Parameter holding a shell command to safety-check"
    )

    def spec(self) -> ToolSpec:
        return ToolSpec(
            name=self.name,
            description=self.description,
            side_effect_class=self.side_effect_class,
            parameters_schema=self.parameter_model.model_json_schema(),
        )


@dataclass(frozen=True)
class ToolContext:
    """Per-task environment a tool invocation runs in."""

    task_id: str
    workspace_root: str
    platform: PlatformCapabilities
    approval_policy: "ApprovalPolicy"
    allow_shell_operators: bool = False
    command_timeout_seconds: int = 30
    max_output_chars: int = 30000


@dataclass(frozen=True)
class ToolCall:
    """What a handler receives besides its validated parameters."""

    context: ToolContext
    sandbox: Sandbox
    paths: Dict[str, str] = field(default_factory=dict)

    @property
    def platform(self) -> PlatformCapabilities:
        return self.context.platform

    @property
    def workspace_root(self) -> str:
        return self.context.workspace_root

    def relative(self, path: str) -> str:
        """Path relative to the workspace root, for display."""
        relative = os.path.relpath(path, self.context.workspace_root)
        return "." if relative == os.curdir else relative


@dataclass
class ToolInvocation:
    """A validated, sandbox-checked call waiting to run.

    Ephemeral: lives only between ``ToolRegistry.prepare`` and the
    tool-result turn it produces.
    """

    descriptor: ToolDescriptor
    request: ToolCallRequest
    params: ToolParameters
    paths: Dict[str, str]
    requires_approval: bool
    requested_at: datetime = field(default_factory=datetime.now)
    outcome: Optional[ToolResult] = None

    @property
    def tool_name(self) -> str:
        return self.descriptor.name

    @property
    def parameters(self) -> Dict[str, Any]:
        return self.params.model_dump(mode="json")
