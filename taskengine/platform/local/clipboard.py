"""Clipboard and external-application capabilities."""

import asyncio
import logging
import webbrowser

logger = logging.getLogger(__name__)


class MemoryClipboard:
    """Process-local clipboard; hosts with a real clipboard inject their own."""

    def __init__(self) -> None:
        self._text = ""

    async def read_text(self) -> str:
        return self._text

    async def write_text(self, text: str) -> None:
        self._text = text


class SystemExternalApp:
    """Opens URLs with the system's default browser."""

    async def open_external(self, url: str) -> bool:
        opened = await asyncio.to_thread(webbrowser.open, url)
        if not opened:
            logger.warning(f"No browser available to open {url}")
        return opened
