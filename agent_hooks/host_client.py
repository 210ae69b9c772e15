"""HTTP client for the agent host's session and TUI API.

Wraps the three host calls the hooks need:
- GET  /session/{id}/todo      - todo list for a session
- POST /session/{id}/message   - inject a prompt into a session
- POST /tui/show-toast         - show a toast in the host TUI

Every failure (connection, timeout, non-2xx, undecodable body) is raised as
HostClientError so callers have a single thing to catch.
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp
from pydantic import ValidationError

from .errors import HostClientError
from .models import Todo, Toast

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "http://127.0.0.1:4096"
DEFAULT_TIMEOUT_SEC = 10.0


class HostClient:
    """Async client for the host server API."""

    def __init__(
        self,
        base_url: str = DEFAULT_SERVER_URL,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
    ) -> None:
        """Initialize the host client.

        Args:
            base_url: Root URL of the host server
            timeout_sec: Total timeout per request, except prompts
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_sec)
        # The message call can stay open for the whole agent turn it starts
        self.prompt_timeout = aiohttp.ClientTimeout(total=None, sock_connect=timeout_sec)
        self._session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> None:
        """Open the underlying HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            logger.info(f"Host client connected to {self.base_url}")

    async def stop(self) -> None:
        """Close the underlying HTTP session."""
        if self._session is not None:
            await self._session.close()
            self._session = None
            logger.info("Host client closed")

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: Optional[dict] = None,
        params: Optional[dict] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
    ) -> Any:
        if self._session is None:
            await self.start()

        url = f"{self.base_url}{path}"
        try:
            async with self._session.request(
                method, url, json=json_body, params=params, timeout=timeout or self.timeout
            ) as resp:
                if resp.status >= 400:
                    text = await resp.text()
                    raise HostClientError(
                        f"{method} {path} returned {resp.status}: {text[:200]}",
                        status=resp.status,
                    )
                if resp.content_length == 0:
                    return None
                return await resp.json(content_type=None)
        except HostClientError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise HostClientError(f"{method} {path} failed", cause=e) from e

    async def session_todo(self, session_id: str) -> list[Todo]:
        """Fetch the todo list of a session.

        The host answers either with a bare list or ``{"data": [...]}``.
        """
        data = await self._request("GET", f"/session/{session_id}/todo")
        if isinstance(data, dict):
            data = data.get("data")
        if data is None:
            return []
        if not isinstance(data, list):
            raise HostClientError(f"Unexpected todo payload for session {session_id}: {type(data).__name__}")

        try:
            return [Todo.model_validate(item) for item in data]
        except ValidationError as e:
            raise HostClientError(f"Invalid todo payload for session {session_id}", cause=e) from e

    async def session_prompt(self, session_id: str, text: str, directory: Optional[str] = None) -> None:
        """Send a text prompt into a session."""
        params = {"directory": directory} if directory else None
        body = {"parts": [{"type": "text", "text": text}]}
        await self._request(
            "POST",
            f"/session/{session_id}/message",
            json_body=body,
            params=params,
            timeout=self.prompt_timeout,
        )
        logger.debug(f"Prompted session {session_id} ({len(text)} chars)")

    async def show_toast(self, toast: Toast) -> None:
        """Show a toast in the host TUI."""
        await self._request("POST", "/tui/show-toast", json_body=toast.model_dump(mode="json"))
        logger.debug(f"Toast shown: {toast.title}")
