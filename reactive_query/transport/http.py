"""
aiohttp-backed transport.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Dict, Mapping, Optional

import aiohttp

from ..config.models import ClientConfig
from ..exceptions import (
    ContentError,
    ErrorHandler,
    QueryExecutionError,
)
from .base import Transport

logger = logging.getLogger(__name__)

USER_AGENT = "reactive-query/1.0"


class HTTPTransport(Transport):
    """
    Transport over a lazily created ``aiohttp.ClientSession``.

    The session is shared by every request of the transport and closed by
    ``close()``.
    """

    def __init__(self, config: ClientConfig) -> None:
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def closed(self) -> bool:
        return self._session is None or self._session.closed

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=100,
                limit_per_host=30,
                ttl_dns_cache=300,
                keepalive_timeout=30,
                enable_cleanup_closed=True,
            )
            timeout = aiohttp.ClientTimeout(
                total=self.config.timeout,
                connect=10.0,
            )
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                connector=connector,
                headers={"User-Agent": USER_AGENT},
                raise_for_status=False,
            )
        return self._session

    async def execute_query(
        self, query: str, headers: Optional[Mapping[str, str]] = None
    ) -> Dict[str, Any]:
        url = self.config.graphql_url
        envelope = await self._send("POST", url, {"query": query}, headers)

        if not isinstance(envelope, dict):
            raise ContentError("Expected a JSON object response", url=url)

        errors = envelope.get("errors")
        if errors and envelope.get("data") is None:
            error = QueryExecutionError(
                "Query execution failed", url=url, errors=errors, query=query
            )
            logger.warning(
                "Query against %s failed: %s", url, "; ".join(error.error_messages)
            )
            raise error

        return envelope

    async def request(
        self,
        method: str,
        path: str,
        payload: Optional[Any] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        url = f"{self.config.base_url}{path}"
        return await self._send(method.upper(), url, payload, headers)

    async def _send(
        self,
        method: str,
        url: str,
        payload: Optional[Any],
        headers: Optional[Mapping[str, str]],
    ) -> Any:
        request_headers = {**self.config.headers, "Content-Type": "application/json"}
        if headers:
            request_headers.update(headers)

        session = self._get_session()
        start_time = time.time()
        logger.debug("%s %s", method, url)

        try:
            async with session.request(
                method, url, json=payload, headers=request_headers
            ) as response:
                response_text = await response.text()
                status = response.status
                response_headers = dict(response.headers)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            error = ErrorHandler.handle_aiohttp_error(e, url)
            logger.warning("%s %s failed: %s", method, url, error)
            raise error from e

        logger.debug(
            "%s %s -> %d in %.3fs", method, url, status, time.time() - start_time
        )

        if status >= 400:
            status_error = ErrorHandler.handle_http_status_error(
                status,
                f"HTTP {status}",
                url,
                response_headers,
                response_text,
            )
            logger.warning("%s %s returned %d", method, url, status)
            raise status_error

        if not response_text.strip():
            return None

        try:
            return json.loads(response_text)
        except json.JSONDecodeError as e:
            raise ContentError(
                f"Invalid JSON response: {response_text[:200]}",
                url=url,
                content_type=response_headers.get("Content-Type"),
            ) from e

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
