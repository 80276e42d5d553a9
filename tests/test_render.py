from datetime import datetime
import csv
import io
import json

from aiusage.models import AggregateReport, ProviderReport, ProviderStatus, UsageEvent
from aiusage.providers.github_copilot import GithubCopilotAdapter
from aiusage.providers.replit import ReplitAdapter
from aiusage.providers.tabnine import TabnineAdapter
from aiusage.render import render_table, report_to_csv, report_to_json
from aiusage.windows import summarize


def _report(now: datetime) -> AggregateReport:
    usage = summarize([UsageEvent.create(timestamp=now, total_tokens=42, request_count=2)], now)
    return AggregateReport(
        generated_at=now,
        providers=[
            ProviderReport.active(TabnineAdapter.descriptor, usage, data_source="/logs", details={"events": 1}),
            ProviderReport.degraded(GithubCopilotAdapter.descriptor, ProviderStatus.UNAVAILABLE, "credential not set"),
            ProviderReport.degraded(ReplitAdapter.descriptor, ProviderStatus.NOT_APPLICABLE, "usage is only available at https://replit.com/usage"),
        ],
    )


def test_json_keeps_nulls_and_statuses(now: datetime) -> None:
    data = json.loads(report_to_json(_report(now)))

    tabnine = data["providers"][0]
    assert tabnine["usage"]["today"]["total_tokens"] == 42
    assert tabnine["usage"]["today"]["input_tokens"] is None
    assert tabnine["details"] == {"events": 1}
    assert [p["status"] for p in data["providers"]] == ["active", "unavailable", "not_applicable"]


def test_csv_has_row_per_window(now: datetime) -> None:
    rows = list(csv.DictReader(io.StringIO(report_to_csv(_report(now)))))

    assert len(rows) == 12
    today = rows[0]
    assert today["provider"] == "tabnine"
    assert today["window"] == "today"
    assert today["input_tokens"] == ""
    assert today["total_tokens"] == "42"
    assert today["request_count"] == "2"
    assert rows[4]["status"] == "unavailable"
    assert rows[4]["diagnostic"] == "credential not set"


def test_table_has_row_per_provider(now: datetime) -> None:
    table = render_table(_report(now), verbose=True)

    assert table.row_count == 3
    assert len(table.columns) == 8
