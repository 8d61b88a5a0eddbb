"""File tools: read, list, search, write and edit inside the workspace.

All I/O goes through the ``FileSystem`` capability; paths arrive already
resolved by the sandbox in ``call.paths``.
"""

import difflib
import fnmatch
import os
import re
from typing import AsyncIterator, Optional, Tuple

from pydantic import Field

from taskengine.core.errors import EngineError, NotFoundError, ValidationError
from taskengine.platform.interfaces import FileSystem

from ..models import SideEffectClass, ToolCall, ToolDescriptor, ToolOutput, ToolParameters
from ..sandbox import Sandbox

SKIPPED_DIRECTORIES = {".git", ".hg", ".svn", "__pycache__", "node_modules", ".venv", ".mypy_cache"}

MAX_LINE_LENGTH = 2000


async def walk(
    file_system: FileSystem,
    root: str,
    recursive: bool = True,
    show_hidden: bool = False,
    sandbox: Optional[Sandbox] = None,
) -> AsyncIterator[Tuple[str, bool]]:
    """Yield ``(path, is_directory)`` under ``root``, breadth first, sorted.

    With a ``sandbox``, entries whose real path leaves the workspace
    (symlinks pointing outside) are skipped before they are stat-ed.
    """
    queue = [root]
    while queue:
        directory = queue.pop(0)
        for name in await file_system.list_dir(directory):
            if not show_hidden and name.startswith("."):
                continue
            full = os.path.join(directory, name)
            if sandbox is not None and not sandbox.contains(full):
                sandbox.audit("Skipped link leaving the workspace", "walk", path=full)
                continue
            stat = await file_system.stat(full)
            yield full, stat.is_directory
            if stat.is_directory and recursive and name not in SKIPPED_DIRECTORIES:
                queue.append(full)


class ReadFileParameters(ToolParameters):
    path: str = Field(..., description="File to read, relative to the workspace root")
    offset: int = Field(default=0, ge=0, description="Line number to start reading from (0-based)")
    limit: int = Field(default=2000, ge=1, le=10000, description="Maximum number of lines to read")


async def read_file(params: ReadFileParameters, call: ToolCall) -> ToolOutput:
    """Read a text file and return it with line numbers."""
    path = call.paths["path"]
    content = await call.platform.file_system.read_file(path)
    lines = content.splitlines()
    selected = lines[params.offset:params.offset + params.limit]

    numbered = []
    for number, line in enumerate(selected, start=params.offset + 1):
        if len(line) > MAX_LINE_LENGTH:
            line = line[:MAX_LINE_LENGTH] + "..."
        numbered.append(f"{number:6d}\t{line}")

    text = "\n".join(numbered) if numbered else "(no lines in range)"
    if params.offset + params.limit < len(lines):
        text += f"\n\n(showing lines {params.offset + 1}-{params.offset + len(selected)} of {len(lines)})"
    return ToolOutput(
        text=text,
        metadata={"path": call.relative(path), "total_lines": len(lines), "lines_read": len(selected)},
    )


class ListFilesParameters(ToolParameters):
    path: str = Field(default=".", description="Directory to list, relative to the workspace root")
    recursive: bool = Field(default=False, description="Descend into subdirectories")
    show_hidden: bool = Field(default=False, description="Include dot-files")
    max_entries: int = Field(default=500, ge=1, le=10000, description="Maximum entries to return")


async def list_files(params: ListFilesParameters, call: ToolCall) -> ToolOutput:
    """List directory contents; directories end with a slash."""
    root = call.paths["path"]
    file_system = call.platform.file_system
    if not (await file_system.stat(root)).is_directory:
        raise NotFoundError(f"Not a directory: {params.path}", component="list_files", operation="run")

    entries = []
    truncated = False
    listing = walk(file_system, root, params.recursive, params.show_hidden, sandbox=call.sandbox)
    async for path, is_directory in listing:
        if len(entries) >= params.max_entries:
            truncated = True
            break
        relative = os.path.relpath(path, root)
        entries.append(relative + "/" if is_directory else relative)

    text = "\n".join(entries) if entries else "(empty directory)"
    if truncated:
        text += f"\n... (stopped after {params.max_entries} entries)"
    return ToolOutput(text=text, metadata={"count": len(entries), "truncated": truncated})


class SearchFilesParameters(ToolParameters):
    pattern: str = Field(..., min_length=1, description="Regular expression to search for")
    path: str = Field(default=".", description="Directory to search, relative to the workspace root")
    glob: Optional[str] = Field(default=None, description="Glob filter on file names, e.g. '*.py'")
    case_insensitive: bool = Field(default=False, description="Ignore case when matching")
    max_results: int = Field(default=100, ge=1, le=5000, description="Maximum matching lines")


async def search_files(params: SearchFilesParameters, call: ToolCall) -> ToolOutput:
    """Search file contents with a regular expression."""
    try:
        regex = re.compile(params.pattern, re.IGNORECASE if params.case_insensitive else 0)
    except re.error as e:
        raise ValidationError(
            f"Invalid regular expression: {e}", component="search_files", operation="run"
        ) from e

    root = call.paths["path"]
    file_system = call.platform.file_system
    matches = []
    files_with_matches = 0
    async for path, is_directory in walk(file_system, root, sandbox=call.sandbox):
        if is_directory:
            continue
        if params.glob and not fnmatch.fnmatch(os.path.basename(path), params.glob):
            continue
        try:
            content = await file_system.read_file(path)
        except EngineError:
            # Binary or unreadable
            continue
        found = False
        for number, line in enumerate(content.splitlines(), start=1):
            if regex.search(line):
                found = True
                matches.append(f"{call.relative(path)}:{number}: {line.strip()[:MAX_LINE_LENGTH]}")
                if len(matches) >= params.max_results:
                    break
        files_with_matches += found
        if len(matches) >= params.max_results:
            break

    if not matches:
        return ToolOutput(text=f"No matches for '{params.pattern}'", metadata={"matches": 0})
    return ToolOutput(
        text="\n".join(matches),
        metadata={"matches": len(matches), "files": files_with_matches},
    )


class WriteFileParameters(ToolParameters):
    path: str = Field(..., description="File to write, relative to the workspace root")
    content: str = Field(..., description="Full file content")
    create_directories: bool = Field(default=True, description="Create missing parent directories")


async def write_file(params: WriteFileParameters, call: ToolCall) -> ToolOutput:
    """Create or overwrite a file."""
    path = call.paths["path"]
    file_system = call.platform.file_system
    existed = await file_system.exists(path)
    parent = os.path.dirname(path)
    if not await file_system.exists(parent):
        if not params.create_directories:
            raise NotFoundError(f"Parent directory does not exist: {call.relative(parent)}",
                                component="write_file", operation="run")
        await file_system.mkdir(parent)
    await file_system.write_file(path, params.content)

    action = "Updated" if existed else "Created"
    size = len(params.content.encode("utf-8"))
    return ToolOutput(
        text=f"{action} {call.relative(path)} ({size} bytes)",
        metadata={"path": call.relative(path), "created": not existed, "bytes": size},
    )


class ApplyDiffParameters(ToolParameters):
    path: str = Field(..., description="File to edit, relative to the workspace root")
    old_text: str = Field(..., description="Exact text to replace")
    new_text: str = Field(..., description="Replacement text")
    replace_all: bool = Field(default=False, description="Replace every occurrence")


def unified_diff(name: str, old: str, new: str) -> str:
    diff = difflib.unified_diff(
        old.splitlines(keepends=True),
        new.splitlines(keepends=True),
        fromfile=f"a/{name}",
        tofile=f"b/{name}",
    )
    return "".join(diff) or "No changes"


async def apply_diff(params: ApplyDiffParameters, call: ToolCall) -> ToolOutput:
    """Replace exact text in a file and return the resulting diff."""
    if params.old_text == params.new_text:
        raise ValidationError("old_text and new_text must be different", component="apply_diff", operation="run")

    path = call.paths["path"]
    file_system = call.platform.file_system
    old_content = await file_system.read_file(path)

    if params.old_text == "":
        if old_content:
            raise ValidationError("Cannot use empty old_text on a non-empty file",
                                  component="apply_diff", operation="run")
        new_content = params.new_text
        replacements = 1
    else:
        occurrences = old_content.count(params.old_text)
        if occurrences == 0:
            raise ValidationError(f"Text not found in file: {params.old_text[:100]}",
                                  component="apply_diff", operation="run")
        if occurrences > 1 and not params.replace_all:
            raise ValidationError(
                f"Text occurs {occurrences} times in file. Set replace_all to replace every "
                "occurrence, or give a more specific old_text.",
                component="apply_diff",
                operation="run",
            )
        if params.replace_all:
            new_content = old_content.replace(params.old_text, params.new_text)
            replacements = occurrences
        else:
            new_content = old_content.replace(params.old_text, params.new_text, 1)
            replacements = 1

    await file_system.write_file(path, new_content)
    relative = call.relative(path)
    return ToolOutput(
        text=f"Edited {relative} ({replacements} replacement{'s' if replacements != 1 else ''})\n\n"
        + unified_diff(relative, old_content, new_content),
        metadata={"path": relative, "replacements": replacements},
    )


READ_FILE = ToolDescriptor(
    name="read_file",
    description="Read a text file from the workspace. Returns numbered lines.",
    parameter_model=ReadFileParameters,
    side_effect_class=SideEffectClass.READ,
    handler=read_file,
    path_parameters=("path",),
)

LIST_FILES = ToolDescriptor(
    name="list_files",
    description="List files and directories in the workspace.",
    parameter_model=ListFilesParameters,
    side_effect_class=SideEffectClass.READ,
    handler=list_files,
    path_parameters=("path",),
)

SEARCH_FILES = ToolDescriptor(
    name="search_files",
    description="Search workspace file contents with a regular expression.",
    parameter_model=SearchFilesParameters,
    side_effect_class=SideEffectClass.READ,
    handler=search_files,
    path_parameters=("path",),
)

WRITE_FILE = ToolDescriptor(
    name="write_file",
    description="Create or overwrite a file in the workspace.",
    parameter_model=WriteFileParameters,
    side_effect_class=SideEffectClass.WRITE,
    handler=write_file,
    path_parameters=("path",),
)

APPLY_DIFF = ToolDescriptor(
    name="apply_diff",
    description="Replace exact text in a workspace file. Returns a unified diff of the change.",
    parameter_model=ApplyDiffParameters,
    side_effect_class=SideEffectClass.WRITE,
    handler=apply_diff,
    path_parameters=("path",),
)
