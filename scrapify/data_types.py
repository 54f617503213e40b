"""Data types shared by adapters, the catalog and the orchestrator.

These types are designed to be:

1. Immutable where they describe something fixed (SourceDescriptor, ActivityEntry)
2. Schema-less where the shape varies by source (records are plain dicts)
3. Serializable to the wire shapes the route layer expects (to_dict)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any

from scrapify.common.exceptions import ValidationError

Record = dict[str, Any]


class OutputFormat(str, Enum):
    """Output encodings a scrape result can be serialized into."""

    JSON = "json"
    CSV = "csv"
    XML = "xml"

    @classmethod
    def parse(cls, value: str | OutputFormat) -> OutputFormat | None:
        """Return the matching OutputFormat, or None for unknown values."""
        if isinstance(value, OutputFormat):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class SourceDescriptor:
    """Static description of one scraping source.

    Created once when the adapter is constructed and never mutated.

    Attributes:
        id: Unique key used to look the source up in the catalog.
        display_name: Human-readable name.
        description: What the source provides.
        source_url: Canonical URL of the upstream source.
        enabled: Whether the source is listed for discovery.
        supported_formats: Non-empty tuple of accepted output formats.
        default_format: Format used when the caller expresses no preference.
        estimated_record_count: Rough number of records a full scrape yields.
        timeout: Default upstream timeout in seconds.
        default_headers: Headers sent with every upstream call.
    """

    id: str
    display_name: str
    description: str
    source_url: str
    enabled: bool = True
    supported_formats: tuple[OutputFormat, ...] = (
        OutputFormat.JSON,
        OutputFormat.CSV,
    )
    default_format: OutputFormat = OutputFormat.JSON
    estimated_record_count: int | None = None
    timeout: float = 30.0
    default_headers: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({}),
        hash=False,
        compare=False,
    )

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "supported_formats", tuple(self.supported_formats)
        )
        if not self.supported_formats:
            raise ValueError(
                f"Source '{self.id}' must support at least one format"
            )
        if self.default_format not in self.supported_formats:
            raise ValueError(
                f"Default format '{self.default_format.value}' of source "
                f"'{self.id}' is not one of its supported formats"
            )
        object.__setattr__(
            self,
            "default_headers",
            MappingProxyType(dict(self.default_headers)),
        )

    def supports(self, fmt: OutputFormat) -> bool:
        return fmt in self.supported_formats

    def to_dict(self) -> dict[str, Any]:
        """Convert to the catalog listing shape."""
        return {
            "id": self.id,
            "name": self.display_name,
            "description": self.description,
            "url": self.source_url,
            "enabled": self.enabled,
            "supportedFormats": [f.value for f in self.supported_formats],
            "defaultFormat": self.default_format.value,
            "estimatedRecords": self.estimated_record_count,
        }


@dataclass
class ScrapeOptions:
    """Per-call options supplied by the caller.

    Attributes:
        limit: Maximum number of records to return (must be positive).
        timeout: Upstream timeout override in seconds.
        headers: Extra headers merged over the descriptor's defaults.
    """

    limit: int | None = None
    timeout: float | None = None
    headers: dict[str, str] = field(default_factory=dict)

    def validate(self) -> None:
        """Check the options, raising ValidationError when they are invalid."""
        if self.limit is not None:
            if isinstance(self.limit, bool) or not isinstance(self.limit, int):
                raise ValidationError(
                    f"Limit must be an integer, got {self.limit!r}",
                    context={"limit": self.limit},
                )
            if self.limit <= 0:
                raise ValidationError(
                    "Limit must be greater than 0",
                    context={"limit": self.limit},
                )
        if self.timeout is not None and (
            isinstance(self.timeout, bool)
            or not isinstance(self.timeout, (int, float))
            or self.timeout <= 0
        ):
            raise ValidationError(
                "Timeout must be a positive number",
                context={"timeout": self.timeout},
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ScrapeOptions:
        """Build options from the wire shape ``{limit?, timeout?, headers?}``.

        Timeouts on the wire are expressed in milliseconds.

        Raises:
            ValidationError: If ``data`` or its ``headers`` is not a mapping.
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValidationError(
                f"Options must be an object, got {type(data).__name__}",
                context={"options": data},
            )
        headers = data.get("headers")
        if headers is None:
            headers = {}
        if not isinstance(headers, Mapping):
            raise ValidationError(
                f"Headers must be an object, got {type(headers).__name__}",
                context={"headers": headers},
            )
        timeout = data.get("timeout")
        if isinstance(timeout, (int, float)) and not isinstance(timeout, bool):
            timeout = timeout / 1000.0
        return cls(
            limit=data.get("limit"),
            timeout=timeout,
            headers={str(k): str(v) for k, v in headers.items()},
        )


@dataclass
class ScrapeRequest:
    """A caller's request to extract records from one source.

    ``format`` is kept as the caller supplied it so an unknown value can be
    reported back verbatim.
    """

    source_id: str
    format: str = OutputFormat.JSON.value
    options: ScrapeOptions = field(default_factory=ScrapeOptions)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ScrapeRequest:
        """Build a request from the wire shape ``{source, format, options?}``.

        Raises:
            ValidationError: If ``data`` is not a mapping or its options are
                malformed.
        """
        if not isinstance(data, Mapping):
            raise ValidationError(
                f"Request must be an object, got {type(data).__name__}",
                context={"request": data},
            )
        fmt = data.get("format", OutputFormat.JSON.value)
        if isinstance(fmt, OutputFormat):
            fmt = fmt.value
        return cls(
            source_id=data.get("source", ""),
            format=fmt,
            options=ScrapeOptions.from_dict(data.get("options")),
        )


@dataclass
class ScrapeResult:
    """Records produced by one adapter call.

    Attributes:
        records: Ordered flat key/value records; shape depends on the source.
        duration: Seconds spent inside the adapter.
        source_url: URL the records were extracted from.
        timestamp: When the extraction finished (UTC).
    """

    records: list[Record]
    duration: float = 0.0
    source_url: str = ""
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def record_count(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class ActivityEntry:
    """One past extraction attempt, kept in the activity log.

    Attributes:
        id: Unique entry id.
        source_id: Source that was requested.
        format: Output format that was requested.
        timestamp: When the attempt finished (UTC).
        duration: Milliseconds spent on the attempt.
        record_count: Records returned (0 on failure).
        success: Whether the attempt succeeded.
    """

    id: str
    source_id: str
    format: str
    timestamp: datetime
    duration: int
    record_count: int
    success: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "source": self.source_id,
            "format": self.format,
            "timestamp": self.timestamp.isoformat(),
            "duration": self.duration,
            "recordCount": self.record_count,
            "success": self.success,
        }
