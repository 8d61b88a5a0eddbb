"""Dependency container assembling the platform capabilities.

Every capability can be overridden; anything not supplied gets its local
implementation.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from taskengine.platform.interfaces import (
    Browser,
    Clipboard,
    ExternalApp,
    FileSystem,
    Logger,
    Notification,
    PlatformCapabilities,
    SystemInfo,
    Terminal,
    Workspace,
)
from taskengine.platform.local import (
    ConsoleNotification,
    HttpBrowser,
    LocalFileSystem,
    LocalSystemInfo,
    LocalTerminal,
    LocalWorkspace,
    MemoryClipboard,
    StdLogger,
    SystemExternalApp,
)

logger = logging.getLogger(__name__)


class DependencyContainer:
    """Builds a ``PlatformCapabilities`` bundle for a local host."""

    def __init__(
        self,
        workspace_path: Optional[str] = None,
        config_home: Optional[Path] = None,
        config_defaults: Optional[Dict[str, Any]] = None,
        logger: Optional[Logger] = None,
        file_system: Optional[FileSystem] = None,
        workspace: Optional[Workspace] = None,
        notification: Optional[Notification] = None,
        system_info: Optional[SystemInfo] = None,
        terminal: Optional[Terminal] = None,
        browser: Optional[Browser] = None,
        clipboard: Optional[Clipboard] = None,
        external_app: Optional[ExternalApp] = None,
    ):
        self.logger: Logger = logger or StdLogger("taskengine")
        self.file_system: FileSystem = file_system or LocalFileSystem()
        self.system_info: SystemInfo = system_info or LocalSystemInfo()
        self.workspace: Workspace = workspace or LocalWorkspace(
            [workspace_path or os.getcwd()], config_home=config_home, config_defaults=config_defaults
        )
        self.notification: Notification = notification or ConsoleNotification()
        self.terminal: Terminal = terminal or LocalTerminal()
        self.browser: Browser = browser or HttpBrowser()
        self.clipboard: Clipboard = clipboard or MemoryClipboard()
        self.external_app: ExternalApp = external_app or SystemExternalApp()

        self._capabilities = PlatformCapabilities(
            file_system=self.file_system,
            workspace=self.workspace,
            notification=self.notification,
            logger=self.logger,
            terminal=self.terminal,
            system_info=self.system_info,
            browser=self.browser,
            clipboard=self.clipboard,
            external_app=self.external_app,
        )
        self.logger.info("Dependency container initialized")

    @classmethod
    def create_local(cls, workspace_path: Optional[str] = None, **overrides: Any) -> "DependencyContainer":
        return cls(workspace_path=workspace_path, **overrides)

    @property
    def capabilities(self) -> PlatformCapabilities:
        return self._capabilities

    def create_child_logger(self, prefix: str) -> Logger:
        return self.logger.child(prefix)

    async def shutdown(self) -> None:
        """Release capability resources (open HTTP sessions)."""
        close = getattr(self.browser, "close", None)
        if close is not None:
            try:
                await close()
            except Exception as e:
                logger.error(f"Error closing browser capability: {e}")
