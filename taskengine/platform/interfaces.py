"""Capability interfaces decoupling the engine from its host.

The engine core only talks to these protocols. A host (IDE extension,
standalone server, test harness) supplies concrete implementations
through ``PlatformCapabilities``; nothing in the core holds a global
reference to the host.

Error contract: implementations raise the typed errors from
``taskengine.core.errors`` (``NotFoundError``, ``PermissionDeniedError``,
``OperationTimeoutError``, ``UnavailableError``) rather than raw
``OSError`` or ``Exception``.
"""

from dataclasses import dataclass
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
    runtime_checkable,
)

from .models import (
    CommandResult,
    ConfigurationInspection,
    ConfigurationTarget,
    FileChangeEvent,
    FileStat,
    NotificationLevel,
    PageSnapshot,
    SystemSnapshot,
    WorkspaceFolder,
)


@runtime_checkable
class Logger(Protocol):
    """Leveled log sink. Implementations must never raise."""

    def debug(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def warn(self, message: str) -> None: ...

    def error(self, message: str, exc: Optional[BaseException] = None) -> None: ...

    def set_level(self, level: str) -> None: ...

    def child(self, prefix: str) -> "Logger": ...


@runtime_checkable
class FileSystem(Protocol):
    """Raw file I/O. Performs no sandbox validation."""

    async def read_file(self, path: str) -> str: ...

    async def write_file(self, path: str, content: str) -> None: ...

    async def exists(self, path: str) -> bool: ...

    async def mkdir(self, path: str, recursive: bool = True) -> None: ...

    async def list_dir(self, path: str) -> List[str]: ...

    async def stat(self, path: str) -> FileStat: ...

    async def delete(self, path: str, recursive: bool = False) -> None: ...

    async def copy(self, source: str, target: str) -> None: ...

    async def move(self, source: str, target: str) -> None: ...

    def watch(
        self, path: str, recursive: bool = True, interval: float = 0.5
    ) -> AsyncIterator[FileChangeEvent]: ...


ConfigurationListener = Callable[[str], None]


@runtime_checkable
class Configuration(Protocol):
    """Scoped key/value configuration (workspace overrides global)."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def has(self, key: str) -> bool: ...

    def inspect(self, key: str) -> ConfigurationInspection: ...

    async def update(
        self, key: str, value: Any, target: ConfigurationTarget = ConfigurationTarget.GLOBAL
    ) -> None: ...

    def keys(self) -> List[str]: ...

    def get_all(self) -> Dict[str, Any]: ...

    def on_did_change(self, listener: ConfigurationListener) -> Callable[[], None]: ...


@runtime_checkable
class Workspace(Protocol):
    """Active workspace roots and path conversion."""

    @property
    def folders(self) -> List[WorkspaceFolder]: ...

    @property
    def root_path(self) -> Optional[str]: ...

    def as_relative_path(self, path: str, include_folder_name: bool = False) -> str: ...

    def as_absolute_path(self, path: str) -> str: ...

    def get_workspace_folder(self, path: str) -> Optional[WorkspaceFolder]: ...

    async def find_files(
        self, include: str, exclude: Optional[str] = None, max_results: Optional[int] = None
    ) -> List[str]: ...

    def get_configuration(self, section: Optional[str] = None) -> Configuration: ...


@runtime_checkable
class Notification(Protocol):
    """Present a message to a human and optionally collect a choice."""

    async def show(
        self,
        level: NotificationLevel,
        message: str,
        *items: str,
        timeout: Optional[float] = None,
    ) -> Optional[str]: ...


@runtime_checkable
class Terminal(Protocol):
    """External process execution."""

    async def run(
        self,
        command: str,
        cwd: str,
        timeout: Optional[float] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult: ...


@runtime_checkable
class SystemInfo(Protocol):
    """Read-only host description."""

    def snapshot(self) -> SystemSnapshot: ...

    def get_env(self, name: str) -> Optional[str]: ...


@runtime_checkable
class Clipboard(Protocol):
    async def read_text(self) -> str: ...

    async def write_text(self, text: str) -> None: ...


@runtime_checkable
class ExternalApp(Protocol):
    async def open_external(self, url: str) -> bool: ...


@runtime_checkable
class Browser(Protocol):
    """Network page access for browser-automation tools."""

    async def navigate(self, url: str, timeout: float = 30.0) -> PageSnapshot: ...


@dataclass(frozen=True)
class PlatformCapabilities:
    """Bundle of host capabilities injected into the engine."""

    file_system: FileSystem
    workspace: Workspace
    notification: Notification
    logger: Logger
    terminal: Terminal
    system_info: SystemInfo
    browser: Browser
    clipboard: Optional[Clipboard] = None
    external_app: Optional[ExternalApp] = None

    def create_child_logger(self, prefix: str) -> Logger:
        return self.logger.child(prefix)
