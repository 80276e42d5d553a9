from __future__ import annotations

from datetime import datetime

import httpx

from aiusage import paths
from aiusage.config import GITHUB_TOKEN_VARS
from aiusage.models import REQUESTS_ONLY, ProviderDescriptor, SourceKind, SourceLocator, UsageEvent
from aiusage.providers.base import RemoteAdapter
from aiusage.sources.records import ParseStats, as_count
from aiusage.sources.remote import get_json

COPILOT_USER_URL = "https://api.github.com/copilot_internal/user"


class GithubCopilotAdapter(RemoteAdapter):
    descriptor = ProviderDescriptor(
        name="github-copilot",
        display_name="GitHub Copilot",
        capabilities=REQUESTS_ONLY,
        source_kind=SourceKind.REMOTE_API,
        default_timeout=10.0,
    )
    credential_field = "github_token"

    @classmethod
    def default_locator(cls) -> SourceLocator:
        return SourceLocator(
            paths=(paths.home() / ".config/github-copilot/hosts.json",),
            endpoint=COPILOT_USER_URL,
            credential_names=GITHUB_TOKEN_VARS,
        )

    def headers(self, credential: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {credential}"}

    async def fetch_events(self, client: httpx.AsyncClient, now: datetime, stats: ParseStats) -> list[UsageEvent]:
        data = await get_json(client, COPILOT_USER_URL)
        used = as_count(data.get("limited_user_usage"))
        if used is None:
            stats.notes.append("no usage counter in response")
            return []
        # a running counter for the quota period, with no per-request times
        note = "request counter for the current quota period"
        reset = data.get("limited_user_reset_date")
        if reset:
            note += f" (resets {reset})"
        stats.notes.append(note)
        return [UsageEvent.create(request_count=used)]
