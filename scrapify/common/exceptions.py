"""Exception types for extraction errors.

Every failure that can cross the orchestrator boundary is a ScrapifyError.
Client errors (unknown source, unsupported format, bad options) are raised
before any adapter is invoked. NetworkError is transient and may succeed if
the caller retries; ParseError means the upstream payload no longer matches
what the adapter expects and someone needs to look at the adapter.
"""

from __future__ import annotations

from typing import Any


class ScrapifyError(Exception):
    """Base class for all extraction errors.

    Attributes:
        message: Human-readable description of the failure.
        source_id: The source the failure relates to, if known.
        context: Additional diagnostic context (selector, counts, url...).
    """

    is_client_error = False
    is_transient = False

    def __init__(
        self,
        message: str,
        source_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable description of the failure.
            source_id: The source the failure relates to.
            context: Optional dict of additional context.
        """
        self.message = message
        self.source_id = source_id
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with context.

        Returns:
            Formatted error message string.
        """
        parts = [self.message]
        if self.context:
            parts.append("Context:")
            for key, value in self.context.items():
                parts.append(f"  {key}: {value}")
        return "\n".join(parts)


class SourceNotFoundError(ScrapifyError):
    """Raised when a request names a source id that is not registered."""

    is_client_error = True

    def __init__(self, source_id: str) -> None:
        super().__init__(
            f"Scraping source '{source_id}' not found", source_id=source_id
        )


class UnsupportedFormatError(ScrapifyError):
    """Raised when the requested output format is not accepted by the source."""

    is_client_error = True

    def __init__(
        self,
        format: str,
        source_id: str | None = None,
        supported: list[str] | None = None,
    ) -> None:
        self.format = format
        self.supported = supported or []
        if source_id:
            message = (
                f"Format '{format}' not supported for source '{source_id}'"
            )
        else:
            message = f"Unknown output format '{format}'"
        context = {"supported": ", ".join(self.supported)} if supported else None
        super().__init__(message, source_id=source_id, context=context)


class ValidationError(ScrapifyError):
    """Raised when scrape options are invalid (e.g. a non-positive limit)."""

    is_client_error = True


class NetworkError(ScrapifyError):
    """Raised when an upstream call is unreachable, times out or is not 2xx.

    Network errors are transient: the caller may retry. Nothing inside the
    core retries on its own.

    Attributes:
        url: The URL of the failed call.
        status_code: The HTTP status received, or None when no response.
    """

    is_transient = True

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        source_id: str | None = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        context: dict[str, Any] = {}
        if url:
            context["url"] = url
        if status_code is not None:
            context["status_code"] = status_code
        super().__init__(message, source_id=source_id, context=context)


class RequestTimeoutError(NetworkError):
    """Raised when an upstream call exceeds its timeout.

    Attributes:
        timeout_seconds: The timeout that was exceeded.
    """

    def __init__(
        self,
        url: str,
        timeout_seconds: float | None,
        source_id: str | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Request to {url} timed out after {timeout_seconds}s",
            url=url,
            source_id=source_id,
        )


class ParseError(ScrapifyError):
    """Raised when an upstream payload doesn't match the adapter's expectations.

    For HTML sources this usually means the markup changed; the selector and
    the counts involved are kept on the exception.

    Attributes:
        selector: The selector that was used, if the failure is structural.
        expected_min: Minimum number of matches expected.
        actual_count: Number of matches actually found.
    """

    def __init__(
        self,
        message: str,
        source_id: str | None = None,
        selector: str | None = None,
        expected_min: int | None = None,
        actual_count: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.selector = selector
        self.expected_min = expected_min
        self.actual_count = actual_count
        merged: dict[str, Any] = dict(context or {})
        if selector is not None:
            merged["selector"] = selector
        if expected_min is not None:
            merged["expected_min"] = expected_min
        if actual_count is not None:
            merged["actual_count"] = actual_count
        super().__init__(message, source_id=source_id, context=merged)
