"""Request manager for upstream HTTP calls.

AsyncRequestManager encapsulates the httpx client and converts transport
failures into the extraction error taxonomy:

- timeouts become RequestTimeoutError
- connection failures and non-2xx statuses become NetworkError
- bodies that should be JSON but aren't become ParseError

One manager is opened per adapter call; nothing is shared across requests.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from scrapify.common.exceptions import (
    NetworkError,
    ParseError,
    RequestTimeoutError,
)

logger = logging.getLogger(__name__)


class AsyncRequestManager:
    """Manages HTTP requests for adapters.

    Example::

        async with AsyncRequestManager(timeout=30.0, headers=headers) as manager:
            payload = await manager.fetch_json("GET", url)
    """

    def __init__(
        self,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
        source_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the request manager.

        Args:
            timeout: Request timeout in seconds. None means no timeout.
            headers: Headers sent with every request.
            source_id: Source the requests belong to, for error context.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self.timeout = timeout
        self.source_id = source_id
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers=dict(headers or {}),
            follow_redirects=True,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncRequestManager:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit - closes the client."""
        await self.close()

    async def fetch(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        data: Mapping[str, Any] | str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Perform one request and return the response.

        Args:
            method: HTTP method.
            url: Absolute URL.
            params: Query string parameters.
            data: Form fields, or a pre-encoded form body string.
            headers: Per-request headers merged over the client's.

        Returns:
            The 2xx httpx.Response.

        Raises:
            RequestTimeoutError: If the request times out.
            NetworkError: If the host is unreachable or the status is not 2xx.
        """
        logger.debug(f"{method} {url} (source={self.source_id})")
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                data=data if isinstance(data, Mapping) else None,
                content=data if isinstance(data, str) else None,
                headers=headers,
            )
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                url=url, timeout_seconds=self.timeout, source_id=self.source_id
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(
                f"Request to {url} failed: {e}",
                url=url,
                source_id=self.source_id,
            ) from e

        if not response.is_success:
            raise NetworkError(
                f"HTTP {response.status_code} from {url}",
                url=url,
                status_code=response.status_code,
                source_id=self.source_id,
            )
        return response

    async def fetch_text(self, method: str, url: str, **kwargs: Any) -> str:
        """Perform one request and return the decoded body."""
        response = await self.fetch(method, url, **kwargs)
        return response.text

    async def fetch_json(self, method: str, url: str, **kwargs: Any) -> Any:
        """Perform one request and decode the body as JSON.

        Raises:
            ParseError: If the body is not valid JSON.
        """
        response = await self.fetch(method, url, **kwargs)
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ParseError(
                f"Response from {url} is not valid JSON",
                source_id=self.source_id,
                context={"body_prefix": response.text[:200]},
            ) from e
