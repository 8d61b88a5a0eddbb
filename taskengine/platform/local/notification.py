"""Notification capability: rich console and headless variants."""

import asyncio
import logging
from typing import List, Optional, Tuple

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt

from taskengine.platform.models import NotificationLevel

logger = logging.getLogger(__name__)

_STYLES = {
    NotificationLevel.INFO: "cyan",
    NotificationLevel.WARNING: "yellow",
    NotificationLevel.ERROR: "red",
}


class ConsoleNotification:
    """Interactive notifications rendered with rich."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    async def show(
        self,
        level: NotificationLevel,
        message: str,
        *items: str,
        timeout: Optional[float] = None,
    ) -> Optional[str]:
        panel = Panel(
            message,
            title=level.value.upper(),
            border_style=_STYLES[level],
            expand=False,
        )
        self.console.print(panel)
        if not items:
            return None

        def ask() -> str:
            return Prompt.ask("Select", choices=list(items), console=self.console)

        try:
            # The prompt thread cannot be interrupted; on timeout it is abandoned.
            return await asyncio.wait_for(asyncio.to_thread(ask), timeout=timeout)
        except asyncio.TimeoutError:
            logger.info(f"Notification timed out after {timeout}s without a selection")
            return None
        except (EOFError, KeyboardInterrupt):
            return None


class HeadlessNotification:
    """Non-interactive notifications for servers and tests.

    Records every message and answers choices with ``default_choice``
    when it is one of the offered items, otherwise ``None``.
    """

    def __init__(self, default_choice: Optional[str] = None):
        self.default_choice = default_choice
        self.messages: List[Tuple[NotificationLevel, str]] = []

    async def show(
        self,
        level: NotificationLevel,
        message: str,
        *items: str,
        timeout: Optional[float] = None,
    ) -> Optional[str]:
        self.messages.append((level, message))
        log_level = logging.ERROR if level == NotificationLevel.ERROR else logging.INFO
        logger.log(log_level, f"[{level.value}] {message}")
        if self.default_choice is not None and self.default_choice in items:
            return self.default_choice
        return None
