"""Platform abstraction layer.

Capability interfaces the engine depends on, plus the local
implementations used when running as a standalone process.
"""

from .interfaces import (
    Browser,
    Clipboard,
    Configuration,
    ExternalApp,
    FileSystem,
    Logger,
    Notification,
    PlatformCapabilities,
    SystemInfo,
    Terminal,
    Workspace,
)
from .models import (
    CommandResult,
    ConfigurationInspection,
    ConfigurationTarget,
    FileChangeEvent,
    FileChangeKind,
    FileStat,
    NotificationLevel,
    PageSnapshot,
    SystemSnapshot,
    WorkspaceFolder,
)

__all__ = [
    "Browser",
    "Clipboard",
    "CommandResult",
    "Configuration",
    "ConfigurationInspection",
    "ConfigurationTarget",
    "ExternalApp",
    "FileChangeEvent",
    "FileChangeKind",
    "FileStat",
    "FileSystem",
    "Logger",
    "Notification",
    "NotificationLevel",
    "PageSnapshot",
    "PlatformCapabilities",
    "SystemInfo",
    "SystemSnapshot",
    "Terminal",
    "Workspace",
    "WorkspaceFolder",
]
