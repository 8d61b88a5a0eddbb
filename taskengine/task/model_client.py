"""Contract with the model collaborator.

The engine does not talk to any model provider itself. A host supplies a
``ModelClient`` that turns a ``ModelRequest`` into a ``ModelResponse``;
any exception it raises fails the task with ``provider_unavailable``.
"""

from typing import Optional, Protocol, Tuple, runtime_checkable

from pydantic import Field

from taskengine.core.models import StrictBaseModel
from taskengine.platform.models import SystemSnapshot
from taskengine.tools.models import ToolCallRequest, ToolSpec

from .models import TaskInput, Turn


class ModelRequest(StrictBaseModel):
    """Everything the model needs for one round-trip."""

    task_id: str
    input: TaskInput
    history: Tuple[Turn, ...] = Field(default=(), description="Exchange history so far, oldest first")
    tools: Tuple[ToolSpec, ...] = Field(default=(), description="Tools the model may call")
    workspace_root: str
    iteration: int = Field(..., ge=1)
    max_iterations: int = Field(..., ge=1)
    system: Optional[SystemSnapshot] = None


class ModelResponse(StrictBaseModel):
    """Model output: plain text is a final answer, tool calls continue the loop."""

    text: str = ""
    tool_calls: Tuple[ToolCallRequest, ...] = ()

    @property
    def is_final(self) -> bool:
        return not self.tool_calls


@runtime_checkable
class ModelClient(Protocol):
    async def complete(self, request: ModelRequest) -> ModelResponse: ...
