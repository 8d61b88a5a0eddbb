"""Approval policy for tool invocations.

Each tool resolves to one of three permission levels. Explicit per-tool
levels win, then auto-approve entries (tool names or side-effect class
names), then the per-side-effect-class defaults: read-only tools run
freely, everything else asks a human.
"""

from enum import Enum
from typing import Dict, Iterable, Optional

from pydantic import Field

from taskengine.core.models import StrictBaseModel

from .models import SideEffectClass, ToolDescriptor


class PermissionLevel(Enum):
    """Permission levels for tool invocations."""

    ALLOW = "allow"
    ASK = "ask"
    DENY = "deny"


DEFAULT_LEVELS: Dict[SideEffectClass, PermissionLevel] = {
    SideEffectClass.READ: PermissionLevel.ALLOW,
    SideEffectClass.WRITE: PermissionLevel.ASK,
    SideEffectClass.EXECUTE: PermissionLevel.ASK,
    SideEffectClass.NETWORK: PermissionLevel.ASK,
}


class ApprovalDecision(StrictBaseModel):
    """A host's answer to an approval request."""

    approved: bool = Field(..., description="Whether the invocation may run")
    reason: Optional[str] = Field(default=None, description="Reason for the decision")

    @classmethod
    def approve(cls, reason: Optional[str] = None) -> "ApprovalDecision":
        return cls(approved=True, reason=reason)

    @classmethod
    def reject(cls, reason: Optional[str] = None) -> "ApprovalDecision":
        return cls(approved=False, reason=reason)


class ApprovalPolicy:
    """Decides whether a tool runs, asks, or is refused."""

    def __init__(
        self,
        auto_approve: Optional[Iterable[str]] = None,
        permissions: Optional[Dict[str, PermissionLevel]] = None,
    ):
        self.auto_approve = set(auto_approve or ())
        self.permissions: Dict[str, PermissionLevel] = dict(permissions or {})

    def set_permission(self, tool_name: str, level: PermissionLevel) -> None:
        """Set an explicit permission level for one tool."""
        self.permissions[tool_name] = level

    def get_permission(self, descriptor: ToolDescriptor) -> PermissionLevel:
        if descriptor.name in self.permissions:
            return self.permissions[descriptor.name]
        if descriptor.name in self.auto_approve or descriptor.side_effect_class.value in self.auto_approve:
            return PermissionLevel.ALLOW
        return DEFAULT_LEVELS.get(descriptor.side_effect_class, PermissionLevel.ASK)

    def requires_approval(self, descriptor: ToolDescriptor) -> bool:
        return self.get_permission(descriptor) == PermissionLevel.ASK

    def is_denied(self, descriptor: ToolDescriptor) -> bool:
        return self.get_permission(descriptor) == PermissionLevel.DENY

    def with_auto_approve(self, extra: Iterable[str]) -> "ApprovalPolicy":
        """Copy of this policy with additional auto-approve entries."""
        return ApprovalPolicy(auto_approve=self.auto_approve | set(extra), permissions=self.permissions)
