"""Shell command tool.

The command string has already passed the sandbox screen and ``cwd`` is
resolved inside the workspace by the time the handler runs.
"""

from typing import Optional

from pydantic import Field

from ..models import SideEffectClass, ToolCall, ToolDescriptor, ToolOutput, ToolParameters


class ExecuteCommandParameters(ToolParameters):
    command: str = Field(..., min_length=1, description="Shell command to run")
    cwd: str = Field(default=".", description="Working directory, relative to the workspace root")
    timeout: Optional[int] = Field(default=None, ge=1, le=600, description="Timeout in seconds")


async def execute_command(params: ExecuteCommandParameters, call: ToolCall) -> ToolOutput:
    """Run a shell command in the workspace and capture its output."""
    timeout = params.timeout or call.context.command_timeout_seconds
    result = await call.platform.terminal.run(params.command, cwd=call.paths["cwd"], timeout=timeout)

    sections = [f"Exit code: {result.exit_code}"]
    if result.stdout:
        sections.append(f"STDOUT:\n{result.stdout.rstrip()}")
    if result.stderr:
        sections.append(f"STDERR:\n{result.stderr.rstrip()}")
    if not result.stdout and not result.stderr:
        sections.append("(no output)")

    return ToolOutput(
        text="\n\n".join(sections),
        metadata={
            "exit_code": result.exit_code,
            "duration": round(result.duration, 3),
            "cwd": call.relative(result.cwd),
        },
    )


EXECUTE_COMMAND = ToolDescriptor(
    name="execute_command",
    description=(
        "Run a single shell command in the workspace. Command chaining, pipes and "
        "substitution are refused unless the engine allows shell operators."
    ),
    parameter_model=ExecuteCommandParameters,
    side_effect_class=SideEffectClass.EXECUTE,
    handler=execute_command,
    path_parameters=("cwd",),
    command_parameter="command",
)
