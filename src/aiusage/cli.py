from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path

from rich.console import Console
from rich.table import Table

from aiusage.config import CONFIG_PATH, load_config, resolve_credentials, save_config, set_config_value
from aiusage.doctor import run_doctor
from aiusage.engine import build_report
from aiusage.logging import setup_logging
from aiusage.registry import PROVIDER_CLASSES, default_registry
from aiusage.render import doctor_to_json, render_doctor, render_table, report_to_csv, report_to_json


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="aiusage", description="Token and request usage across AI coding tools")
    parser.add_argument("--config", type=Path, default=CONFIG_PATH, help="path to config.toml")
    parser.add_argument("--log-level", choices=["debug", "info", "warning", "error"], default=None)
    sub = parser.add_subparsers(dest="cmd")

    usage = sub.add_parser("usage", help="show usage per tool (default)")
    usage.add_argument("--tool", help="only tools whose name contains this text")
    usage.add_argument("--format", choices=["table", "json", "csv"], default="table")
    usage.add_argument("--verbose", action="store_true", help="show data sources and diagnostics")

    doctor = sub.add_parser("doctor", help="check where each tool's data would be read from")
    doctor.add_argument("--tool")
    doctor.add_argument("--format", choices=["table", "json"], default="table")

    sub.add_parser("list", help="list supported tools")

    config = sub.add_parser("config")
    config_sub = config.add_subparsers(dest="config_cmd")
    config_sub.add_parser("show")
    config_set = config_sub.add_parser("set")
    config_set.add_argument("key")
    config_set.add_argument("value")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args.config)
    except ValueError as exc:
        print(f"aiusage: {exc}", file=sys.stderr)
        sys.exit(2)

    setup_logging(args.log_level or cfg.general.log_level)
    cmd = args.cmd or "usage"
    console = Console()

    if cmd == "usage":
        registry = default_registry(cfg, resolve_credentials()).select(getattr(args, "tool", None))
        report = build_report(registry, cfg.reference_now())
        fmt = getattr(args, "format", "table")
        if fmt == "json":
            print(report_to_json(report))
        elif fmt == "csv":
            sys.stdout.write(report_to_csv(report))
        else:
            console.print(render_table(report, verbose=getattr(args, "verbose", False)))
        return

    if cmd == "doctor":
        registry = default_registry(cfg, resolve_credentials()).select(args.tool)
        results = run_doctor(registry)
        if args.format == "json":
            print(doctor_to_json(results))
        else:
            console.print(render_doctor(results))
        return

    if cmd == "list":
        table = Table(title="Supported tools")
        table.add_column("Name", style="bold")
        table.add_column("Tool")
        table.add_column("Source")
        table.add_column("Reports")
        table.add_column("Enabled")
        for cls in PROVIDER_CLASSES:
            d = cls.descriptor
            caps = ", ".join(sorted(c.value for c in d.capabilities))
            enabled = "yes" if cfg.provider(d.name).enabled else "no"
            table.add_row(d.name, d.display_name, d.source_kind.value, caps, enabled)
        console.print(table)
        return

    if cmd == "config":
        if args.config_cmd == "show":
            print(json.dumps(asdict(cfg), indent=2, default=str))
            return
        if args.config_cmd == "set":
            try:
                set_config_value(cfg, args.key, args.value)
            except ValueError as exc:
                parser.error(str(exc))
            save_config(cfg, args.config)
            print(f"updated {args.key}")
            return
        parser.error("config requires show or set")

    parser.error("unknown command")


if __name__ == "__main__":
    main()
