"""Tool registry, sandbox and approval policy."""

from .approval import (
    ApprovalDecision,
    ApprovalPolicy,
    PermissionLevel,
)
from .builtin import BUILTIN_TOOLS, create_default_registry, register_builtin_tools
from .models import (
    SideEffectClass,
    ToolCall,
    ToolCallRequest,
    ToolContext,
    ToolDescriptor,
    ToolInvocation,
    ToolOutput,
    ToolParameters,
    ToolResult,
    ToolSpec,
)
from .registry import ToolRegistry, truncate_output
from .sandbox import Sandbox

__all__ = [
    "ApprovalDecision",
    "ApprovalPolicy",
    "PermissionLevel",
    "BUILTIN_TOOLS",
    "create_default_registry",
    "register_builtin_tools",
    "SideEffectClass",
    "ToolCall",
    "ToolCallRequest",
    "ToolContext",
    "ToolDescriptor",
    "ToolInvocation",
    "ToolOutput",
    "ToolParameters",
    "ToolResult",
    "ToolSpec",
    "ToolRegistry",
    "truncate_output",
    "Sandbox",
]
