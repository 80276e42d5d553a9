from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path


class ProviderStatus(str, Enum):
    ACTIVE = "active"
    UNAVAILABLE = "unavailable"
    NOT_APPLICABLE = "not_applicable"
    ERROR = "error"


class Capability(str, Enum):
    TOKENS = "tokens"
    REQUESTS = "requests"


class SourceKind(str, Enum):
    LOG_FILES = "log_files"
    DATABASE = "database"
    BLOB = "blob"
    REMOTE_API = "remote_api"
    LINK_ONLY = "link_only"


TOKENS_AND_REQUESTS = frozenset({Capability.TOKENS, Capability.REQUESTS})
REQUESTS_ONLY = frozenset({Capability.REQUESTS})


@dataclass(frozen=True, slots=True)
class ProviderDescriptor:
    name: str
    display_name: str
    capabilities: frozenset[Capability]
    source_kind: SourceKind
    default_timeout: float | None = None

    @property
    def is_remote(self) -> bool:
        return self.source_kind is SourceKind.REMOTE_API


@dataclass(frozen=True, slots=True)
class SourceLocator:
    paths: tuple[Path, ...] = ()
    endpoint: str | None = None
    credential_names: tuple[str, ...] = ()

    def existing(self) -> list[Path]:
        return [p for p in self.paths if p.exists()]

    def describe(self) -> str:
        if self.paths:
            return ", ".join(str(p) for p in self.paths)
        return self.endpoint or ""


@dataclass(frozen=True, slots=True)
class UsageEvent:
    timestamp: datetime | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None
    cached_tokens: int | None = None
    total_tokens: int | None = None
    request_count: int = 1

    @classmethod
    def create(
        cls,
        timestamp: datetime | None = None,
        input_tokens: int | None = None,
        output_tokens: int | None = None,
        cached_tokens: int | None = None,
        total_tokens: int | None = None,
        request_count: int = 1,
    ) -> UsageEvent:
        """Build an event, deriving ``total_tokens`` from whatever the source gave.

        Both sides present wins over a source-reported total; a lone total is
        kept verbatim; otherwise the present side stands in. Nothing is
        estimated, so an event with no token fields keeps a null total.
        """
        if input_tokens is not None and output_tokens is not None:
            total = input_tokens + output_tokens
        elif total_tokens is not None:
            total = total_tokens
        elif input_tokens is not None or output_tokens is not None:
            total = (input_tokens or 0) + (output_tokens or 0)
        else:
            total = None
        return cls(
            timestamp=timestamp,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cached_tokens=cached_tokens,
            total_tokens=total,
            request_count=request_count,
        )


@dataclass(frozen=True, slots=True)
class UsageWindow:
    input_tokens: int | None = 0
    output_tokens: int | None = 0
    total_tokens: int | None = 0
    cached_tokens: int | None = 0
    request_count: int = 0


@dataclass(frozen=True, slots=True)
class UsageStats:
    today: UsageWindow = field(default_factory=UsageWindow)
    this_week: UsageWindow = field(default_factory=UsageWindow)
    this_month: UsageWindow = field(default_factory=UsageWindow)
    total: UsageWindow = field(default_factory=UsageWindow)


@dataclass
class ProviderReport:
    name: str
    display_name: str
    status: ProviderStatus
    usage: UsageStats = field(default_factory=UsageStats)
    data_source: str | None = None
    diagnostic: str | None = None
    details: dict[str, object] = field(default_factory=dict)

    @classmethod
    def active(
        cls,
        descriptor: ProviderDescriptor,
        usage: UsageStats,
        data_source: str | None,
        diagnostic: str | None = None,
        details: dict[str, object] | None = None,
    ) -> ProviderReport:
        return cls(
            name=descriptor.name,
            display_name=descriptor.display_name,
            status=ProviderStatus.ACTIVE,
            usage=usage,
            data_source=data_source,
            diagnostic=diagnostic,
            details=details or {},
        )

    @classmethod
    def degraded(
        cls,
        descriptor: ProviderDescriptor,
        status: ProviderStatus,
        diagnostic: str,
        data_source: str | None = None,
    ) -> ProviderReport:
        return cls(
            name=descriptor.name,
            display_name=descriptor.display_name,
            status=status,
            data_source=data_source,
            diagnostic=diagnostic,
        )


@dataclass
class AggregateReport:
    generated_at: datetime
    providers: list[ProviderReport]

    def get(self, name: str) -> ProviderReport | None:
        for report in self.providers:
            if report.name == name:
                return report
        return None
