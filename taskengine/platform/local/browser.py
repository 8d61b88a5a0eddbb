"""Browser capability backed by aiohttp.

Fetches a page and reduces it to readable text; enough for an agent to
inspect documentation or a locally served app.
"""

import asyncio
import logging
import re
from typing import Optional, Tuple

import aiohttp
from bs4 import BeautifulSoup, Comment

from taskengine.core.errors import OperationTimeoutError, UnavailableError
from taskengine.platform.models import PageSnapshot

logger = logging.getLogger(__name__)

_BLANK_RE = re.compile(r"\n\s*\n+")

DROPPED_TAGS = ("script", "style", "noscript")


def parse_html(markup: str) -> Tuple[Optional[str], str]:
    """Return ``(title, text)`` of an HTML document, without scripts and styles."""
    soup = BeautifulSoup(markup, "html.parser")
    for element in soup(list(DROPPED_TAGS)):
        element.decompose()
    for comment in soup.find_all(string=lambda node: isinstance(node, Comment)):
        comment.extract()

    title = None
    if soup.title is not None and soup.title.string:
        title = soup.title.string.strip()
    if soup.head is not None:
        soup.head.decompose()

    lines = (line.strip() for line in soup.get_text("\n").splitlines())
    return title, _BLANK_RE.sub("\n\n", "\n".join(lines)).strip()


class HttpBrowser:
    """Navigates with a shared aiohttp session."""

    def __init__(self, user_agent: str = "taskengine/0.1", headers: Optional[dict] = None):
        self.headers = {"User-Agent": user_agent, **(headers or {})}
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=self.headers)
        return self._session

    async def navigate(self, url: str, timeout: float = 30.0) -> PageSnapshot:
        session = await self._get_session()
        try:
            async with session.get(url, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
                body = await response.text(errors="replace")
                content_type = response.headers.get("Content-Type")
                status = response.status
        except asyncio.TimeoutError as e:
            raise OperationTimeoutError(
                f"Navigation to {url} timed out after {timeout} seconds", cause=e,
                component="browser", operation="navigate",
            ) from e
        except aiohttp.ClientError as e:
            raise UnavailableError(
                f"Failed to reach {url}: {e}", cause=e, component="browser", operation="navigate"
            ) from e

        title: Optional[str] = None
        text = body
        if content_type is None or "html" in content_type:
            title, text = parse_html(body)
        logger.debug(f"Navigated to {url} ({status})")
        return PageSnapshot(url=url, status=status, title=title, text=text, content_type=content_type)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
