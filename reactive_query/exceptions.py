"""
Exception hierarchy for reactive_query.

Transport failures are converted into these exceptions by the HTTP
transport. Query execution records them on the context instead of raising;
only the bounded-retry helper and the CRUD passthroughs propagate them.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Union

import aiohttp


class ReactiveQueryError(Exception):
    """
    Base exception for all reactive_query errors.

    Attributes:
        message: Human-readable error message
        url: URL that caused the error (if applicable)
        details: Additional error details as keyword arguments
    """

    def __init__(self, message: str, url: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.details = kwargs


class ConfigurationError(ReactiveQueryError):
    """Raised for invalid or unloadable client configuration."""

    pass


class NetworkError(ReactiveQueryError):
    """Raised for network-level failures below HTTP."""

    pass


class ConnectionError(NetworkError):
    """Raised when the API host cannot be reached."""

    pass


class TimeoutError(NetworkError):
    """
    Raised when a request times out.

    Attributes:
        timeout_value: The timeout value that was exceeded (in seconds)
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        timeout_value: Optional[float] = None,
    ) -> None:
        super().__init__(message, url)
        self.timeout_value = timeout_value


class ContentError(ReactiveQueryError):
    """Raised when a response body cannot be decoded."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> None:
        super().__init__(message, url)
        self.content_type = content_type


class HTTPError(ReactiveQueryError):
    """Raised for non-success HTTP statuses."""

    def __init__(
        self,
        message: str,
        status_code: int,
        url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        response_text: Optional[str] = None,
    ) -> None:
        super().__init__(message, url)
        self.status_code = status_code
        self.headers = headers or {}
        self.response_text = response_text


class AuthenticationError(HTTPError):
    """Raised for 401 and 403 responses."""

    pass


class NotFoundError(HTTPError):
    """Raised for 404 responses."""

    pass


class RateLimitError(HTTPError):
    """Raised for 429 responses."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        retry_after: Optional[Union[int, float]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(message, 429, url, headers)
        self.retry_after = retry_after


class ServerError(HTTPError):
    """Raised for 5xx responses."""

    pass


class QueryExecutionError(ReactiveQueryError):
    """
    Raised when the query endpoint answers with an error envelope.

    Attributes:
        errors: The ``errors`` list from the response envelope
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        query: Optional[str] = None,
    ) -> None:
        super().__init__(message, url)
        self.errors = errors or []
        self.query = query

    @property
    def error_messages(self) -> List[str]:
        """Messages of the individual envelope errors."""
        return [error.get("message", "Unknown error") for error in self.errors]


class ErrorHandler:
    """
    Converts aiohttp exceptions and HTTP statuses into ReactiveQueryError
    subclasses and decides which of them are worth retrying.
    """

    @staticmethod
    def handle_aiohttp_error(
        error: Exception, url: Optional[str] = None
    ) -> ReactiveQueryError:
        """
        Convert an aiohttp (or asyncio timeout) exception.

        Args:
            error: The original exception
            url: The URL that caused the error

        Returns:
            Appropriate ReactiveQueryError subclass
        """
        if isinstance(error, asyncio.TimeoutError):
            return TimeoutError(f"Request timed out: {error}", url=url)

        elif isinstance(error, aiohttp.ClientSSLError):
            return ConnectionError(f"SSL error: {error}", url=url)

        elif isinstance(error, aiohttp.ClientConnectorError):
            return ConnectionError(f"Connector error: {error}", url=url)

        elif isinstance(error, aiohttp.ClientConnectionError):
            return ConnectionError(f"Connection error: {error}", url=url)

        elif isinstance(error, aiohttp.ClientPayloadError):
            return ContentError(f"Payload error: {error}", url=url)

        elif isinstance(error, aiohttp.ClientResponseError):
            return ErrorHandler.handle_http_status_error(
                error.status, str(error), url, getattr(error, "headers", None)
            )

        else:
            return NetworkError(f"Unexpected network error: {error}", url=url)

    @staticmethod
    def handle_http_status_error(
        status_code: int,
        message: str,
        url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        response_text: Optional[str] = None,
    ) -> HTTPError:
        """
        Create the HTTPError subclass matching a status code.

        Args:
            status_code: HTTP status code
            message: Error message
            url: The URL that caused the error
            headers: Response headers
            response_text: Response body text

        Returns:
            Appropriate HTTPError subclass
        """
        if status_code in (401, 403):
            return AuthenticationError(
                f"Not authorized: {message}", status_code, url, headers, response_text
            )

        elif status_code == 404:
            return NotFoundError(
                f"Resource not found: {message}", status_code, url, headers, response_text
            )

        elif status_code == 429:
            retry_after = None
            if headers:
                retry_after_header = headers.get("Retry-After") or headers.get(
                    "retry-after"
                )
                if retry_after_header:
                    try:
                        retry_after = float(retry_after_header)
                    except ValueError:
                        pass

            return RateLimitError(
                f"Rate limit exceeded: {message}", url, retry_after, headers
            )

        elif 500 <= status_code < 600:
            return ServerError(
                f"Server error: {message}", status_code, url, headers, response_text
            )

        else:
            return HTTPError(message, status_code, url, headers, response_text)

    @staticmethod
    def is_retryable_error(error: Exception) -> bool:
        """
        Determine if an error is worth retrying.

        Network failures, timeouts, 5xx and 429 are retryable; client errors,
        authentication failures and malformed content are not.
        """
        if isinstance(error, NetworkError):
            return True

        if isinstance(error, (ServerError, RateLimitError)):
            return True

        if isinstance(error, HTTPError):
            return error.status_code in (408, 502, 503, 504)

        return False
