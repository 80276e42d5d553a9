from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Iterable
import asyncio

import httpx

from aiusage.config import Credentials, ProviderConfig
from aiusage.errors import CredentialMissing, SourceNotFound
from aiusage.models import ProviderDescriptor, ProviderReport, ProviderStatus, SourceLocator, UsageEvent
from aiusage.sources.records import ParseStats
from aiusage.sources.remote import make_client
from aiusage.windows import summarize


class ProviderAdapter(ABC):
    descriptor: ProviderDescriptor

    def __init__(
        self,
        locator: SourceLocator | None = None,
        credentials: Credentials | None = None,
        timeout: float | None = None,
    ) -> None:
        self.locator = locator or self.default_locator()
        self.credentials = credentials or Credentials()
        self.timeout = timeout if timeout is not None else self.descriptor.default_timeout

    @classmethod
    def build(cls, pc: ProviderConfig, credentials: Credentials, default_timeout: float) -> ProviderAdapter:
        locator = None
        if pc.paths:
            base = cls.default_locator()
            locator = SourceLocator(
                paths=tuple(Path(p).expanduser() for p in pc.paths),
                endpoint=base.endpoint,
                credential_names=base.credential_names,
            )
        timeout = None
        if cls.descriptor.is_remote:
            timeout = pc.timeout_seconds or cls.descriptor.default_timeout or default_timeout
        return cls(locator=locator, credentials=credentials, timeout=timeout)

    @property
    def name(self) -> str:
        return self.descriptor.name

    @classmethod
    @abstractmethod
    def default_locator(cls) -> SourceLocator:
        raise NotImplementedError

    @abstractmethod
    def collect(self, now: datetime) -> ProviderReport:
        raise NotImplementedError

    async def acollect(self, now: datetime) -> ProviderReport:
        return await asyncio.to_thread(self.collect, now)


class FileAdapter(ProviderAdapter):
    """Providers that read local files: logs, JSON documents, databases and blobs."""

    def locate(self) -> list[Path]:
        found = self.locator.existing()
        if not found:
            raise SourceNotFound(self.locator.describe())
        return found

    @abstractmethod
    def read_events(self, sources: list[Path], stats: ParseStats) -> Iterable[UsageEvent]:
        raise NotImplementedError

    def data_source(self, sources: list[Path]) -> str:
        return str(sources[0])

    def collect(self, now: datetime) -> ProviderReport:
        sources = self.locate()
        stats = ParseStats()
        events = list(self.read_events(sources, stats))
        stats.events = len(events)
        return ProviderReport.active(
            self.descriptor,
            summarize(events, now),
            data_source=self.data_source(sources),
            diagnostic=_diagnostic(stats),
            details=stats.as_details(),
        )


class RemoteAdapter(ProviderAdapter):
    """Providers backed by an HTTP API, run natively on the event loop."""

    credential_field: str

    def credential(self) -> str:
        value = getattr(self.credentials, self.credential_field, None)
        if not value:
            raise CredentialMissing(self.locator.credential_names)
        return value

    @abstractmethod
    def headers(self, credential: str) -> dict[str, str]:
        raise NotImplementedError

    @abstractmethod
    async def fetch_events(self, client: httpx.AsyncClient, now: datetime, stats: ParseStats) -> list[UsageEvent]:
        raise NotImplementedError

    async def acollect(self, now: datetime) -> ProviderReport:
        credential = self.credential()
        stats = ParseStats()
        async with make_client(self.timeout or 10.0, self.headers(credential)) as client:
            events = await self.fetch_events(client, now, stats)
        stats.events = len(events)
        return ProviderReport.active(
            self.descriptor,
            summarize(events, now),
            data_source=self.locator.endpoint,
            diagnostic=_diagnostic(stats),
            details=stats.as_details(),
        )

    def collect(self, now: datetime) -> ProviderReport:
        return asyncio.run(self.acollect(now))


class LinkAdapter(ProviderAdapter):
    """Tools whose usage is only visible on a vendor web page."""

    def collect(self, now: datetime) -> ProviderReport:
        return ProviderReport.degraded(
            self.descriptor,
            ProviderStatus.NOT_APPLICABLE,
            f"usage is only available at {self.locator.endpoint}",
            data_source=self.locator.endpoint,
        )

    async def acollect(self, now: datetime) -> ProviderReport:
        return self.collect(now)


def _diagnostic(stats: ParseStats) -> str | None:
    parts = list(stats.notes)
    if stats.malformed:
        parts.append(f"skipped {stats.malformed} malformed record(s)")
    if stats.unreadable:
        parts.append(f"{stats.unreadable} file(s) could not be read")
    return "; ".join(parts) or None
