from __future__ import annotations

from datetime import datetime
import asyncio

import structlog

from aiusage.errors import InternalFault, ProviderTimeout, UsageError
from aiusage.models import AggregateReport, ProviderReport, ProviderStatus
from aiusage.providers.base import ProviderAdapter
from aiusage.registry import Registry

logger = structlog.get_logger()


async def _run_provider(adapter: ProviderAdapter, now: datetime) -> ProviderReport:
    """Collect one provider, turning every failure into a row instead of raising."""
    log = logger.bind(provider=adapter.name)
    data_source = adapter.locator.describe() or None
    try:
        if adapter.descriptor.is_remote and adapter.timeout is not None:
            return await _with_timeout(adapter, now, adapter.timeout)
        return await adapter.acollect(now)
    except UsageError as exc:
        err: UsageError = exc
        log.info("provider_degraded", status=exc.status.value, error=str(exc))
    except Exception as exc:
        err = InternalFault(f"internal error: {exc}")
        log.exception("provider_collect_error", error=str(exc))
    return ProviderReport.degraded(adapter.descriptor, err.status, str(err), data_source=data_source)


async def _with_timeout(adapter: ProviderAdapter, now: datetime, seconds: float) -> ProviderReport:
    try:
        return await asyncio.wait_for(adapter.acollect(now), timeout=seconds)
    except TimeoutError as exc:
        logger.warning("provider_timeout", provider=adapter.name, timeout=seconds)
        raise ProviderTimeout(seconds) from exc


async def collect_report(registry: Registry, now: datetime) -> AggregateReport:
    """Run every provider concurrently and join the rows in registry order."""
    adapters = list(registry)
    results = await asyncio.gather(*(_run_provider(a, now) for a in adapters))
    report = AggregateReport(generated_at=now, providers=list(results))
    logger.debug(
        "report_done",
        providers=len(report.providers),
        active=sum(1 for r in report.providers if r.status is ProviderStatus.ACTIVE),
    )
    return report


def build_report(registry: Registry, now: datetime) -> AggregateReport:
    return asyncio.run(collect_report(registry, now))
