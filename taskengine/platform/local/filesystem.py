"""Local disk implementation of the FileSystem capability."""

import asyncio
import os
import shutil
from pathlib import Path
from typing import AsyncIterator, Dict, List

from taskengine.core.errors import (
    EngineError,
    NotFoundError,
    PermissionDeniedError,
    UnavailableError,
)
from taskengine.platform.models import FileChangeEvent, FileChangeKind, FileStat


def _translate(exc: OSError, operation: str, path: str) -> EngineError:
    """Map an OSError to the typed platform error for it."""
    if isinstance(exc, FileNotFoundError):
        return NotFoundError(f"Path not found: {path}", cause=exc, component="file_system", operation=operation)
    if isinstance(exc, PermissionError):
        return PermissionDeniedError(
            f"Permission denied: {path}", cause=exc, component="file_system", operation=operation
        )
    if isinstance(exc, (IsADirectoryError, NotADirectoryError)):
        return NotFoundError(str(exc), cause=exc, component="file_system", operation=operation)
    return UnavailableError(
        f"File system error on {path}: {exc}", cause=exc, component="file_system", operation=operation
    )


class LocalFileSystem:
    """Performs I/O on the local disk through a worker thread.

    No sandbox validation happens here; callers pass already-validated
    absolute paths.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    async def read_file(self, path: str) -> str:
        try:
            return await asyncio.to_thread(Path(path).read_text, encoding=self.encoding)
        except UnicodeDecodeError as e:
            raise UnavailableError(
                f"File is not valid {self.encoding}: {path}", cause=e,
                component="file_system", operation="read_file",
            ) from e
        except OSError as e:
            raise _translate(e, "read_file", path) from e

    async def write_file(self, path: str, content: str) -> None:
        try:
            await asyncio.to_thread(Path(path).write_text, content, encoding=self.encoding)
        except OSError as e:
            raise _translate(e, "write_file", path) from e

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(os.path.exists, path)

    async def mkdir(self, path: str, recursive: bool = True) -> None:
        try:
            await asyncio.to_thread(Path(path).mkdir, parents=recursive, exist_ok=True)
        except OSError as e:
            raise _translate(e, "mkdir", path) from e

    async def list_dir(self, path: str) -> List[str]:
        try:
            return sorted(await asyncio.to_thread(os.listdir, path))
        except OSError as e:
            raise _translate(e, "list_dir", path) from e

    async def stat(self, path: str) -> FileStat:
        try:
            st = await asyncio.to_thread(os.stat, path)
        except OSError as e:
            raise _translate(e, "stat", path) from e
        return FileStat(
            is_file=os.path.isfile(path),
            is_directory=os.path.isdir(path),
            size=st.st_size,
            mtime=float(st.st_mtime),
            ctime=float(st.st_ctime),
        )

    async def delete(self, path: str, recursive: bool = False) -> None:
        def _delete() -> None:
            if os.path.isdir(path) and not os.path.islink(path):
                if recursive:
                    shutil.rmtree(path)
                else:
                    os.rmdir(path)
            else:
                os.remove(path)

        try:
            await asyncio.to_thread(_delete)
        except OSError as e:
            raise _translate(e, "delete", path) from e

    async def copy(self, source: str, target: str) -> None:
        def _copy() -> None:
            if os.path.isdir(source):
                shutil.copytree(source, target)
            else:
                shutil.copy2(source, target)

        try:
            await asyncio.to_thread(_copy)
        except OSError as e:
            raise _translate(e, "copy", source) from e

    async def move(self, source: str, target: str) -> None:
        try:
            await asyncio.to_thread(shutil.move, source, target)
        except OSError as e:
            raise _translate(e, "move", source) from e

    async def watch(
        self, path: str, recursive: bool = True, interval: float = 0.5
    ) -> AsyncIterator[FileChangeEvent]:
        """Poll ``path`` and yield created/changed/deleted events.

        The generator runs until the consumer stops iterating.
        """
        previous = await asyncio.to_thread(self._scan, path, recursive)
        while True:
            await asyncio.sleep(interval)
            current = await asyncio.to_thread(self._scan, path, recursive)
            for changed_path in sorted(current.keys() - previous.keys()):
                yield FileChangeEvent(kind=FileChangeKind.CREATED, path=changed_path)
            for changed_path in sorted(previous.keys() & current.keys()):
                if current[changed_path] != previous[changed_path]:
                    yield FileChangeEvent(kind=FileChangeKind.CHANGED, path=changed_path)
            for changed_path in sorted(previous.keys() - current.keys()):
                yield FileChangeEvent(kind=FileChangeKind.DELETED, path=changed_path)
            previous = current

    @staticmethod
    def _scan(path: str, recursive: bool) -> Dict[str, int]:
        snapshot: Dict[str, int] = {}
        if os.path.isfile(path):
            try:
                snapshot[path] = os.stat(path).st_mtime_ns
            except OSError:
                pass
            return snapshot
        if not os.path.isdir(path):
            return snapshot
        for dirpath, dirnames, filenames in os.walk(path):
            for name in dirnames + filenames:
                full = os.path.join(dirpath, name)
                try:
                    snapshot[full] = os.stat(full).st_mtime_ns
                except OSError:
                    # Vanished between walk and stat
                    continue
            if not recursive:
                break
        return snapshot
