from __future__ import annotations

from datetime import datetime

import httpx
import structlog

from aiusage.config import OPENAI_KEY_VARS
from aiusage.models import TOKENS_AND_REQUESTS, ProviderDescriptor, SourceKind, SourceLocator, UsageEvent
from aiusage.providers.base import RemoteAdapter
from aiusage.sources.records import ParseStats, as_count, parse_timestamp
from aiusage.sources.remote import get_json
from aiusage.windows import WindowBounds

logger = structlog.get_logger()

OPENAI_BASE_URL = "https://api.openai.com/v1/organization"
COMPLETIONS_USAGE_URL = f"{OPENAI_BASE_URL}/usage/completions"

# one bucket per day, enough for any month plus a leading partial week
BUCKET_LIMIT = 31 + 7


class OpenAICodexAdapter(RemoteAdapter):
    """
    OpenAI API usage for the organization the admin key belongs to. Buckets
    are fetched from the earlier of the current week or month start, so the
    total window covers that span rather than all time.
    """

    descriptor = ProviderDescriptor(
        name="openai-codex",
        display_name="OpenAI Codex",
        capabilities=TOKENS_AND_REQUESTS,
        source_kind=SourceKind.REMOTE_API,
        default_timeout=15.0,
    )
    credential_field = "openai_key"

    @classmethod
    def default_locator(cls) -> SourceLocator:
        return SourceLocator(endpoint=COMPLETIONS_USAGE_URL, credential_names=OPENAI_KEY_VARS)

    def headers(self, credential: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {credential}"}

    async def fetch_events(self, client: httpx.AsyncClient, now: datetime, stats: ParseStats) -> list[UsageEvent]:
        bounds = WindowBounds.at(now)
        start = min(bounds.week_start, bounds.month_start)
        params: dict[str, object] = {
            "start_time": int(start.timestamp()),
            "end_time": int(bounds.day_end.timestamp()),
            "bucket_width": "1d",
            "limit": BUCKET_LIMIT,
        }
        events: list[UsageEvent] = []

        # follow pagination until no more pages are available
        while True:
            data = await get_json(client, COMPLETIONS_USAGE_URL, params=params)
            for bucket in data.get("data", []):
                if not isinstance(bucket, dict):
                    stats.malformed += 1
                    continue
                ts = parse_timestamp(bucket.get("start_time"))
                for result in bucket.get("results", []):
                    if not isinstance(result, dict):
                        stats.malformed += 1
                        continue
                    events.append(
                        UsageEvent.create(
                            timestamp=ts,
                            input_tokens=as_count(result.get("input_tokens")),
                            output_tokens=as_count(result.get("output_tokens")),
                            cached_tokens=as_count(result.get("input_cached_tokens")),
                            request_count=as_count(result.get("num_model_requests")) or 0,
                        )
                    )
            if not data.get("has_more") or not data.get("next_page"):
                break
            params["page"] = data["next_page"]

        stats.notes.append(f"totals cover usage since {start.date().isoformat()}")
        logger.debug("openai_usage_done", buckets=len(events))
        return events
