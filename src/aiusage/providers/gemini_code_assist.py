from __future__ import annotations

from datetime import datetime

from aiusage import paths
from aiusage.errors import SourceNotFound, SourceUnreadable
from aiusage.models import TOKENS_AND_REQUESTS, ProviderDescriptor, ProviderReport, SourceKind, SourceLocator
from aiusage.providers.base import ProviderAdapter

EXTENSION_ID = "google.geminicodeassist"


class GeminiCodeAssistAdapter(ProviderAdapter):
    descriptor = ProviderDescriptor(
        name="gemini-code-assist",
        display_name="Gemini Code Assist",
        capabilities=TOKENS_AND_REQUESTS,
        source_kind=SourceKind.BLOB,
    )

    @classmethod
    def default_locator(cls) -> SourceLocator:
        return SourceLocator(paths=(paths.vscode_global_storage() / EXTENSION_ID,))

    def collect(self, now: datetime) -> ProviderReport:
        found = self.locator.existing()
        if not found:
            raise SourceNotFound(self.locator.describe())
        # the extension state has no documented usage format
        raise SourceUnreadable(f"extension state in {found[0]} holds no readable usage; see Google Cloud Console")
