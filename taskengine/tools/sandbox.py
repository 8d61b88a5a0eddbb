"""Workspace sandbox: path containment and shell command screening.

Every path a tool touches is resolved (symlinks included) and must land
inside the task's workspace root. Commands are screened for chaining and
substitution operators and for a fixed list of destructive patterns.
Violations are logged to the audit logger before being raised.
"""

import os
import shlex
from typing import List, Optional

from taskengine.core.errors import SandboxViolation
from taskengine.platform.interfaces import Logger

# Always refused, even with shell operators allowed
DANGEROUS_PATTERNS = [
    "rm -rf /",
    ":(){ :|:& };:",
    "mkfs",
    "fdisk",
    "> /dev/sda",
    "dd if=",
    "chmod -R 777 /",
    "chown -R root /",
    "sudo rm -rf",
    "rm -rf ~",
    "rm -rf /*",
    "kill -9 -1",
    "shutdown",
    "reboot",
    "halt",
]

# Substitution is expanded by the shell even inside double quotes
RAW_OPERATORS = ["`", "$(", "\n", "\r"]

# Tokens produced by shlex punctuation splitting
SHELL_OPERATORS = {";", "&&", "||", "|", "&", ";;", "|&"}


class Sandbox:
    """Containment checks for one workspace root."""

    def __init__(
        self,
        workspace_root: str,
        allow_shell_operators: bool = False,
        audit_logger: Optional[Logger] = None,
        task_id: Optional[str] = None,
    ):
        self.workspace_root = os.path.realpath(workspace_root)
        self.allow_shell_operators = allow_shell_operators
        self.audit_logger = audit_logger
        self.task_id = task_id

    def audit(self, message: str, operation: str, **context: str) -> None:
        """Record a blocked access on the audit logger."""
        if self.audit_logger is not None:
            details = " ".join(f"{k}={v!r}" for k, v in context.items())
            self.audit_logger.warn(f"Sandbox violation [{operation}] task={self.task_id}: {message} {details}".rstrip())

    def _violation(self, message: str, operation: str, **context: str) -> SandboxViolation:
        self.audit(message, operation, **context)
        return SandboxViolation(
            message, component="sandbox", operation=operation, task_id=self.task_id, **context
        )

    def contains(self, path: str) -> bool:
        resolved = os.path.realpath(path)
        try:
            return os.path.commonpath([self.workspace_root, resolved]) == self.workspace_root
        except ValueError:
            # Different drives on Windows
            return False

    def resolve_path(self, path: str, parameter: str = "path") -> str:
        """Resolve ``path`` against the workspace root.

        Relative paths are joined to the root; absolute paths are taken
        as given. The fully resolved result must stay inside the root.

        Raises:
            SandboxViolation: If the path escapes the workspace
        """
        if "\x00" in path:
            raise self._violation("Path contains a NUL byte", "resolve_path", parameter=parameter)
        candidate = path if os.path.isabs(path) else os.path.join(self.workspace_root, path)
        resolved = os.path.realpath(candidate)
        if not self.contains(resolved):
            raise self._violation(
                f"Path '{path}' resolves outside the workspace root",
                "resolve_path",
                parameter=parameter,
                path=path,
                resolved=resolved,
            )
        return resolved

    def check_command(self, command: str) -> None:
        """Refuse destructive commands and, unless allowed, chaining.

        Raises:
            SandboxViolation: If the command is refused
        """
        if not command.strip():
            raise self._violation("Command is empty", "check_command", command=command)

        lowered = command.lower()
        for pattern in DANGEROUS_PATTERNS:
            if pattern.lower() in lowered:
                raise self._violation(
                    f"Command contains dangerous pattern: {pattern}",
                    "check_command",
                    command=command,
                    pattern=pattern,
                )

        if self.allow_shell_operators:
            return

        for operator in RAW_OPERATORS:
            if operator in command:
                raise self._violation(
                    f"Command contains disallowed operator: {operator!r}",
                    "check_command",
                    command=command,
                    operator=operator,
                )

        previous = ""
        for token in self._operator_tokens(command):
            # "2>&1" style descriptor duplication is not chaining
            redirect = token == "&" and previous.endswith((">", "<"))
            previous = token
            if token in SHELL_OPERATORS and not redirect:
                raise self._violation(
                    f"Command contains disallowed operator: {token!r}",
                    "check_command",
                    command=command,
                    operator=token,
                )

    def _operator_tokens(self, command: str) -> List[str]:
        lexer = shlex.shlex(command, posix=True, punctuation_chars=";&|")
        lexer.whitespace_split = True
        try:
            return list(lexer)
        except ValueError as e:
            raise self._violation(
                f"Command could not be parsed: {e}", "check_command", command=command
            ) from e
