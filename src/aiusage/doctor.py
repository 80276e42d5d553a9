from __future__ import annotations

from dataclasses import dataclass, field

from aiusage.models import SourceKind
from aiusage.providers.base import ProviderAdapter, RemoteAdapter
from aiusage.registry import Registry


@dataclass
class DoctorResult:
    name: str
    display_name: str
    source_kind: SourceKind
    reachable: bool
    resolved: str | None = None
    checks: list[tuple[str, bool]] = field(default_factory=list)


def diagnose(adapter: ProviderAdapter) -> DoctorResult:
    """Report where a provider looks for data and what exists, without parsing anything."""
    descriptor = adapter.descriptor
    locator = adapter.locator
    checks = [(str(p), p.exists()) for p in locator.paths]

    if descriptor.source_kind is SourceKind.LINK_ONLY:
        return DoctorResult(
            name=descriptor.name,
            display_name=descriptor.display_name,
            source_kind=descriptor.source_kind,
            reachable=True,
            resolved=locator.endpoint,
        )

    if isinstance(adapter, RemoteAdapter):
        present = adapter.credentials.present(adapter.credential_field)
        names = " | ".join(locator.credential_names) or adapter.credential_field
        checks.append((names, present))
        return DoctorResult(
            name=descriptor.name,
            display_name=descriptor.display_name,
            source_kind=descriptor.source_kind,
            reachable=present,
            resolved=locator.endpoint if present else None,
            checks=checks,
        )

    found = [target for target, exists in checks if exists]
    return DoctorResult(
        name=descriptor.name,
        display_name=descriptor.display_name,
        source_kind=descriptor.source_kind,
        reachable=bool(found),
        resolved=found[0] if found else None,
        checks=checks,
    )


def run_doctor(registry: Registry) -> list[DoctorResult]:
    return [diagnose(adapter) for adapter in registry]
