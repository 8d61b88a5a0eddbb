"""Tool registry and the invocation pipeline.

Invocation runs in a fixed order:

1. the tool name is looked up
2. raw parameters are validated against the tool's schema
3. path parameters are resolved inside the workspace sandbox
4. command parameters are screened
5. the approval policy is consulted
6. the handler runs

Steps 1-5 happen in ``prepare``; step 6 in ``run``. Neither raises: every
failure becomes a ``ToolResult`` with an ``ErrorKind``.
"""

from typing import Callable, Dict, List, Optional, Sequence, Tuple, Type, Union

from pydantic import ValidationError as PydanticValidationError

from taskengine.core.errors import (
    BaseError,
    ErrorKind,
    SandboxViolation,
    ToolNotFoundError,
    ValidationError,
)
from taskengine.core.errors.models import ValidationErrorDetail
from taskengine.platform.interfaces import Logger
from taskengine.platform.local.logger import StdLogger

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
from .sandbox import Sandbox

TRUNCATION_MARKER = "\n... [output truncated: {omitted} characters omitted]"


def truncate_output(text: str, limit: int) -> Tuple[str, bool]:
    """Clip ``text`` to ``limit`` characters, marking what was dropped."""
    if len(text) <= limit:
        return text, False
    return text[:limit] + TRUNCATION_MARKER.format(omitted=len(text) - limit), True


def _validation_details(error: PydanticValidationError) -> List[ValidationErrorDetail]:
    return [
        ValidationErrorDetail(
            location=".".join(str(part) for part in item["loc"]) or "parameters",
            message=item["msg"],
            error_type=item["type"],
        )
        for item in error.errors()
    ]


class ToolRegistry:
    """Flat name-to-descriptor registry."""

    def __init__(self, logger: Optional[Logger] = None):
        self._tools: Dict[str, ToolDescriptor] = {}
        self.logger: Logger = logger or StdLogger("taskengine.tools")
        self.audit_logger: Logger = self.logger.child("audit")

    def register(self, descriptor: ToolDescriptor, replace: bool = False) -> None:
        if descriptor.name in self._tools and not replace:
            raise ValueError(f"Tool '{descriptor.name}' is already registered")
        self._tools[descriptor.name] = descriptor
        self.logger.debug(f"Registered tool: {descriptor.name} ({descriptor.side_effect_class.value})")

    def tool(
        self,
        name: str,
        parameters: Type[ToolParameters],
        side_effect: SideEffectClass,
        description: str = "",
        path_parameters: Sequence[str] = (),
        command_parameter: Optional[str] = None,
    ) -> Callable:
        """Decorator registering an async handler as a tool."""

        def decorator(handler: Callable) -> Callable:
            self.register(
                ToolDescriptor(
                    name=name,
                    description=description or (handler.__doc__ or "").strip(),
                    parameter_model=parameters,
                    side_effect_class=side_effect,
                    handler=handler,
                    path_parameters=tuple(path_parameters),
                    command_parameter=command_parameter,
                )
            )
            return handler

        return decorator

    def unregister(self, name: str) -> None:
        if self._tools.pop(name, None) is None:
            raise ToolNotFoundError(name)

    def get(self, name: str) -> ToolDescriptor:
        descriptor = self._tools.get(name)
        if descriptor is None:
            raise ToolNotFoundError(name)
        return descriptor

    def has(self, name: str) -> bool:
        return name in self._tools

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def list(self, side_effect: Optional[SideEffectClass] = None) -> List[ToolDescriptor]:
        return [d for d in self._tools.values() if side_effect is None or d.side_effect_class == side_effect]

    def specs(self) -> List[ToolSpec]:
        return [d.spec() for d in self._tools.values()]

    def _sandbox(self, context: ToolContext) -> Sandbox:
        return Sandbox(
            context.workspace_root,
            allow_shell_operators=context.allow_shell_operators,
            audit_logger=self.audit_logger,
            task_id=context.task_id,
        )

    def prepare(self, request: ToolCallRequest, context: ToolContext) -> Union[ToolInvocation, ToolResult]:
        """Validate, sandbox and gate a call; return a runnable invocation or a failure."""
        try:
            descriptor = self.get(request.tool_name)
        except ToolNotFoundError as e:
            return ToolResult.failure(request.tool_name, ErrorKind.NOT_FOUND, e.message)

        try:
            params = descriptor.parameter_model.model_validate(request.parameters)
        except PydanticValidationError as e:
            error = ValidationError(
                f"Invalid parameters for tool '{descriptor.name}'",
                validation_errors=_validation_details(e),
                component="tool_registry",
                operation="prepare",
                task_id=context.task_id,
            )
            return ToolResult.failure(descriptor.name, ErrorKind.VALIDATION, str(error))

        sandbox = self._sandbox(context)
        paths: Dict[str, str] = {}
        try:
            for parameter in descriptor.path_parameters:
                value = getattr(params, parameter)
                if value is not None:
                    paths[parameter] = sandbox.resolve_path(value, parameter)
            if descriptor.command_parameter:
                sandbox.check_command(getattr(params, descriptor.command_parameter))
        except SandboxViolation as e:
            return ToolResult.failure(descriptor.name, ErrorKind.SANDBOX_VIOLATION, e.message)

        policy = context.approval_policy
        if policy.is_denied(descriptor):
            return ToolResult.failure(
                descriptor.name, ErrorKind.DECLINED, f"Tool '{descriptor.name}' is denied by the approval policy"
            )

        return ToolInvocation(
            descriptor=descriptor,
            request=request,
            params=params,
            paths=paths,
            requires_approval=policy.requires_approval(descriptor),
        )

    async def run(self, invocation: ToolInvocation, context: ToolContext) -> ToolResult:
        """Run a prepared invocation's handler; errors become failure results."""
        name = invocation.tool_name
        try:
            call = ToolCall(context=context, sandbox=self._sandbox(context), paths=dict(invocation.paths))
            output = await invocation.descriptor.handler(invocation.params, call)
        except BaseError as e:
            if isinstance(e, SandboxViolation):
                self.audit_logger.warn(f"Sandbox violation in tool '{name}' task={context.task_id}: {e.message}")
            self.logger.debug(f"Tool '{name}' failed ({e.kind.value}): {e.message}")
            result = ToolResult.failure(name, e.kind, e.message)
        except Exception as e:
            self.logger.error(f"Tool '{name}' raised unexpectedly", exc=e)
            result = ToolResult.failure(name, ErrorKind.INTERNAL, f"{type(e).__name__}: {e}")
        else:
            if isinstance(output, str):
                output = ToolOutput(text=output)
            text, truncated = truncate_output(output.text, context.max_output_chars)
            metadata = dict(output.metadata)
            if truncated:
                metadata["truncated"] = True
            result = ToolResult.ok(name, text, metadata)

        invocation.outcome = result
        return result

    async def execute(self, request: ToolCallRequest, context: ToolContext) -> ToolResult:
        """Prepare and run without an approval round-trip.

        Invocations the policy wants approved are declined.
        """
        prepared = self.prepare(request, context)
        if isinstance(prepared, ToolResult):
            return prepared
        if prepared.requires_approval:
            return ToolResult.failure(
                prepared.tool_name, ErrorKind.DECLINED, f"Tool '{prepared.tool_name}' requires approval"
            )
        return await self.run(prepared, context)

