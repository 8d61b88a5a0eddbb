"""Built-in tools."""

from typing import Optional

from ..registry import ToolRegistry
from .browser import BROWSER_ACTION
from .command import EXECUTE_COMMAND
from .filesystem import APPLY_DIFF, LIST_FILES, READ_FILE, SEARCH_FILES, WRITE_FILE

BUILTIN_TOOLS = (
    READ_FILE,
    LIST_FILES,
    SEARCH_FILES,
    WRITE_FILE,
    APPLY_DIFF,
    EXECUTE_COMMAND,
    BROWSER_ACTION,
)


def register_builtin_tools(registry: ToolRegistry) -> ToolRegistry:
    for descriptor in BUILTIN_TOOLS:
        registry.register(descriptor)
    return registry


def create_default_registry(registry: Optional[ToolRegistry] = None) -> ToolRegistry:
    """Registry holding every built-in tool."""
    return register_builtin_tools(registry or ToolRegistry())


__all__ = ["BUILTIN_TOOLS", "register_builtin_tools", "create_default_registry"]
