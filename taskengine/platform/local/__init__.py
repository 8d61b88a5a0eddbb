"""Local-process implementations of the platform capabilities."""

from .browser import HttpBrowser
from .clipboard import MemoryClipboard, SystemExternalApp
from .filesystem import LocalFileSystem
from .logger import StdLogger
from .notification import ConsoleNotification, HeadlessNotification
from .system_info import LocalSystemInfo
from .terminal import LocalTerminal
from .workspace import LocalWorkspace, YamlConfiguration

__all__ = [
    "ConsoleNotification",
    "HeadlessNotification",
    "HttpBrowser",
    "LocalFileSystem",
    "LocalSystemInfo",
    "LocalTerminal",
    "LocalWorkspace",
    "MemoryClipboard",
    "StdLogger",
    "SystemExternalApp",
    "YamlConfiguration",
]
