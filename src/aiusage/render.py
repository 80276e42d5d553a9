from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from enum import Enum
import csv
import io
import json

from rich.table import Table
from rich.text import Text

from aiusage.doctor import DoctorResult
from aiusage.models import AggregateReport, ProviderStatus, UsageWindow

WINDOWS = ("today", "this_week", "this_month", "total")

STATUS_STYLES = {
    ProviderStatus.ACTIVE: "green",
    ProviderStatus.UNAVAILABLE: "yellow",
    ProviderStatus.NOT_APPLICABLE: "dim",
    ProviderStatus.ERROR: "red",
}


def _fmt_num(value: int | None) -> str:
    if value is None:
        return "-"
    return f"{value:,}"


def _fmt_window(window: UsageWindow) -> str:
    return f"{_fmt_num(window.total_tokens)} tok / {window.request_count:,} req"


def render_table(report: AggregateReport, verbose: bool = False) -> Table:
    table = Table(title=f"AI usage  ({report.generated_at.strftime('%Y-%m-%d %H:%M %Z').strip()})")
    table.add_column("Tool", style="bold bright_white", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Today", justify="right")
    table.add_column("This week", justify="right")
    table.add_column("This month", justify="right")
    table.add_column("Total", justify="right")
    if verbose:
        table.add_column("Source", style="dim")
        table.add_column("Notes", style="dim italic")

    for p in report.providers:
        style = STATUS_STYLES.get(p.status, "white")
        row: list[str | Text] = [p.display_name, Text(p.status.value, style=style)]
        if p.status is ProviderStatus.ACTIVE:
            row.extend(_fmt_window(getattr(p.usage, w)) for w in WINDOWS)
        else:
            row.extend(Text("-", style="dim") for _ in WINDOWS)
        if verbose:
            row.append(p.data_source or "-")
            row.append(p.diagnostic or "")
        table.add_row(*row)
    return table


def render_doctor(results: list[DoctorResult]) -> Table:
    table = Table(title="aiusage doctor")
    table.add_column("Tool", style="bold bright_white", no_wrap=True)
    table.add_column("Kind", style="dim")
    table.add_column("Reachable", no_wrap=True)
    table.add_column("Checked")
    for r in results:
        reachable = Text("yes", style="green") if r.reachable else Text("no", style="yellow")
        checked = Text()
        for i, (target, found) in enumerate(r.checks):
            if i:
                checked.append("\n")
            checked.append("✓ " if found else "✗ ", style="green" if found else "red")
            checked.append(target)
        if not r.checks and r.resolved:
            checked.append(r.resolved, style="dim")
        table.add_row(r.display_name, r.source_kind.value, reachable, checked)
    return table


def _json_default(obj):
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    raise TypeError(f"not serializable: {type(obj)!r}")


def report_to_json(report: AggregateReport) -> str:
    return json.dumps(asdict(report), default=_json_default, indent=2)


def doctor_to_json(results: list[DoctorResult]) -> str:
    return json.dumps([asdict(r) for r in results], default=_json_default, indent=2)


def report_to_csv(report: AggregateReport) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(
        [
            "provider",
            "status",
            "window",
            "input_tokens",
            "output_tokens",
            "cached_tokens",
            "total_tokens",
            "request_count",
            "data_source",
            "diagnostic",
        ]
    )
    for p in report.providers:
        for name in WINDOWS:
            w = getattr(p.usage, name)
            writer.writerow(
                [
                    p.name,
                    p.status.value,
                    name,
                    "" if w.input_tokens is None else w.input_tokens,
                    "" if w.output_tokens is None else w.output_tokens,
                    "" if w.cached_tokens is None else w.cached_tokens,
                    "" if w.total_tokens is None else w.total_tokens,
                    w.request_count,
                    p.data_source or "",
                    p.diagnostic or "",
                ]
            )
    return buf.getvalue()
