"""Shared HTTP plumbing for outbound chat channels."""

import asyncio
from typing import Any

import httpx
import structlog

from equiledger.config import get_settings

logger = structlog.get_logger(__name__)


class ChannelError(Exception):
    """Sending a message through a chat provider failed."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class ChannelClient:
    """Async HTTP client with retry on transport errors."""

    channel = "channel"

    def __init__(
        self,
        base_url: str,
        transport: httpx.AsyncBaseTransport | None = None,
        auth: tuple[str, str] | None = None,
    ):
        settings = get_settings()
        self.base_url = base_url.rstrip("/")
        self._timeout = settings.http_timeout
        self._max_retries = settings.http_max_retries
        self._transport = transport
        self._auth = auth
        self._client: httpx.AsyncClient | None = None
        self._logger = logger.bind(channel=self.channel)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
                auth=self._auth,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ChannelClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _post(
        self,
        path: str,
        *,
        data: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        retry_count: int = 0,
    ) -> dict[str, Any]:
        """POST with exponential backoff on connection errors."""
        client = await self._get_client()
        try:
            response = await client.post(path, data=data, json=json)
        except httpx.RequestError as e:
            if retry_count < self._max_retries:
                self._logger.warning("send_retry", attempt=retry_count + 1, error=str(e))
                await asyncio.sleep(2**retry_count)
                return await self._post(path, data=data, json=json, retry_count=retry_count + 1)
            raise ChannelError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            try:
                error_detail = response.json() if response.content else {}
            except ValueError:
                error_detail = {"raw": response.text[:500] if response.text else "empty response"}
            raise ChannelError(
                f"{self.channel} API error: {response.status_code}",
                status_code=response.status_code,
                details=error_detail,
            )

        return response.json() if response.content else {}
