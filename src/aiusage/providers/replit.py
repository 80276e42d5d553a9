from __future__ import annotations

from aiusage.models import TOKENS_AND_REQUESTS, ProviderDescriptor, SourceKind, SourceLocator
from aiusage.providers.base import LinkAdapter

REPLIT_USAGE_URL = "https://replit.com/usage"


class ReplitAdapter(LinkAdapter):
    descriptor = ProviderDescriptor(
        name="replit",
        display_name="Replit",
        capabilities=TOKENS_AND_REQUESTS,
        source_kind=SourceKind.LINK_ONLY,
    )

    @classmethod
    def default_locator(cls) -> SourceLocator:
        return SourceLocator(endpoint=REPLIT_USAGE_URL)
