"""Incident Triage — CLI runner.

Runs the full pipeline against one incident description and renders the
classification and report in the terminal using Rich.

Usage:
    uv run python cli.py incident.json
    uv run python cli.py --text "Got a 503 from anthropic/claude-3.5-sonnet"
    pbpaste | uv run python cli.py -
    uv run python cli.py incident.json --json --no-history
"""

import argparse
import asyncio
import dataclasses
import json
import logging
import pathlib
import sys

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from config import Settings
from core.factory import build_runtime
from core.guard import InputRejectedError
from schemas.classification import Severity
from schemas.report import AnalysisResult

console = Console()

LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"

_SEVERITY_COLORS = {
    Severity.LOW: "dim",
    Severity.MEDIUM: "yellow",
    Severity.HIGH: "red",
    Severity.CRITICAL: "bold red",
}


# ── Rendering ─────────────────────────────────────────────────────────────────

def _bullets(items: list[str]) -> str:
    return "\n".join(f"• {escape(item)}" for item in items) or "[dim]none[/dim]"


def _print_result(result: AnalysisResult) -> None:
    """Render the classification table followed by one panel per report section."""
    incident, classification, report = result.incident, result.classification, result.report
    sev_color = _SEVERITY_COLORS[classification.severity]

    table = Table(title="Classification", show_header=False, border_style="bright_black")
    table.add_column("Field", style="dim", width=14)
    table.add_column("Value", style="bold")
    table.add_row("Input", incident.input_type.value)
    table.add_row("Model", incident.model or "-")
    table.add_row("Status", str(incident.error.code or "-"))
    table.add_row("Category", classification.error_category.value)
    table.add_row("Fault domain", classification.fault_domain.value)
    table.add_row("Severity", f"[{sev_color}]{classification.severity.value}[/{sev_color}]")
    table.add_row("Provider", classification.provider or "-")
    console.print()
    console.print(table)

    console.print(Panel(escape(report.root_cause), title="Root cause", border_style="cyan"))
    console.print(Panel(_bullets(report.evidence), title="Evidence", border_style="bright_black"))
    console.print(Panel(escape(report.customer_impact), title="Customer impact", border_style="bright_black"))
    console.print(Panel(_bullets(report.mitigation), title="Mitigation", border_style="green"))
    console.print(Panel(escape(report.reproduction_script), title="Reproduction", border_style="bright_black"))
    escalation_style = "red" if classification.severity.rank >= Severity.HIGH.rank else "bright_black"
    console.print(Panel(escape(report.escalation_notes), title="Escalation notes", border_style=escalation_style))

    if report.similar_incidents:
        similar = Table(title="Similar incidents", border_style="bright_black")
        similar.add_column("When", style="dim")
        similar.add_column("Message", max_width=60)
        similar.add_column("Fault domain")
        similar.add_column("Severity")
        for match in report.similar_incidents:
            similar.add_row(match.created_at, escape(match.error_message), match.fault_domain, match.severity)
        console.print(similar)


# ── Entry point ───────────────────────────────────────────────────────────────

def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Classify a failed API call and write an incident report.")
    parser.add_argument("source", nargs="?", default="-",
                        help="File holding the incident description, or '-' for stdin (default).")
    parser.add_argument("--text", help="Incident description given inline instead of a file.")
    parser.add_argument("--json", action="store_true", help="Print the raw JSON result.")
    parser.add_argument("--no-history", action="store_true", help="Skip the similar-incident lookup.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr.")
    return parser.parse_args(argv)


def _read_input(args: argparse.Namespace) -> str:
    if args.text is not None:
        return args.text
    if args.source == "-":
        return sys.stdin.read()
    return pathlib.Path(args.source).read_text(encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )

    settings = Settings.from_env()
    if args.no_history:
        settings = dataclasses.replace(settings, history_enabled=False)

    try:
        runtime = build_runtime(settings)
    except KeyError as exc:
        console.print(f"[red]Missing environment variable {exc}. Add it to .env.[/red]")
        return 1

    try:
        raw = _read_input(args)
    except OSError as exc:
        console.print(f"[red]Could not read {args.source}: {exc}[/red]")
        return 1

    try:
        result = asyncio.run(runtime.analyze(raw))
    except InputRejectedError as exc:
        console.print(f"[red]{exc}[/red]")
        return 2

    if args.json:
        print(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2))
    else:
        _print_result(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
