"""
Command-line interface for the DIAN tax calendar.

Provides subcommands to compute a client's obligation calendar, list
upcoming and overdue deadlines, inspect the rule tables, run the alert
job and serve the HTTP trigger.
"""

from __future__ import annotations

import argparse
import sys
from datetime import date
from typing import Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
import uvicorn

from tax_calendar.api import build_scheduler, create_app
from tax_calendar.config import Settings, get_settings
from tax_calendar.deadlines import (
    ClientTaxProfile,
    DeadlineEngine,
    EventType,
    TaxEvent,
)
from tax_calendar.logging_config import setup_logging
from tax_calendar.notifications import (
    ConsoleSender,
    ResendEmailSender,
    event_icon,
    format_nit,
)
from tax_calendar.profiles import PROFILE_FLAGS, ClientRecord
from tax_calendar.queries import by_type, days_until, event_status, overdue, upcoming
from tax_calendar.report_generator import ReportGenerator
from tax_calendar.rule_tables import CalendarError, DigitKey, RuleTableRegistry
from tax_calendar.scheduler import AlertScheduler
from tax_calendar.store import ClientStoreError, JsonFileClientStore

console = Console()

_STATUS_STYLE = {"overdue": "red", "due_soon": "yellow", "pending": ""}


def _parse_date(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError:
        console.print(f"[red]Invalid date: {value} (expected YYYY-MM-DD)[/red]")
        sys.exit(1)


def _load_profile(args: argparse.Namespace) -> tuple[str, ClientTaxProfile]:
    """Build a profile from --client (clients file) or the inline options."""
    if args.client:
        store = JsonFileClientStore(args.clients_file or get_settings().CLIENTS_FILE)
        try:
            rows = store.load_all()
        except ClientStoreError as e:
            console.print(f"[red]{e}[/red]")
            sys.exit(1)
        for row in rows:
            if isinstance(row, dict) and str(row.get("id")) == args.client:
                record = ClientRecord.from_dict(row)
                break
        else:
            console.print(f"[red]Unknown client: {args.client}[/red]")
            sys.exit(1)
    else:
        if not args.classification:
            console.print("[red]Provide --classification, or --client[/red]")
            sys.exit(1)
        row = {
            "id": "cli",
            "name": args.name or "",
            "nit": args.nit,
            "classification": args.classification,
            "tax_regime": args.regime,
            "iva_periodicity": args.iva,
        }
        row.update({flag: True for flag in args.flag or []})
        record = ClientRecord.from_dict(row)

    try:
        return record.name, record.to_profile()
    except CalendarError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


def _compute(profile: ClientTaxProfile, year: int) -> list[TaxEvent]:
    try:
        return DeadlineEngine().compute_obligations(profile, year)
    except CalendarError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


def _compute_window(profile: ClientTaxProfile, reference: date) -> list[TaxEvent]:
    """Obligations around the reference date, including last year's spill-over."""
    try:
        return DeadlineEngine().compute_window(profile, reference)
    except CalendarError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


def _events_table(title: str, events: list[TaxEvent], reference: date) -> Table:
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Date", style="bold")
    table.add_column("Obligation")
    table.add_column("Type", style="dim")
    table.add_column("Days", justify="right")
    table.add_column("Status")

    for e in events:
        status = event_status(e, reference).value
        table.add_row(
            e.due_date.isoformat(),
            f"{event_icon(e.event_type.value)} {e.title}",
            e.event_type.value,
            str(days_until(e.due_date, reference)),
            status.replace("_", " "),
            style=_STATUS_STYLE[status],
        )
    return table


# -----------------------------------------------------------------------
# Subcommand: calendar
# -----------------------------------------------------------------------


def cmd_calendar(args: argparse.Namespace) -> None:
    """Show the full obligation calendar for a client profile."""
    name, profile = _load_profile(args)
    reference = _parse_date(args.date)
    year = args.year or reference.year
    events = _compute(profile, year)
    if args.type:
        events = by_type(events, args.type)

    console.print(
        Panel(
            f"[bold]Client:[/bold] {name or '-'}\n"
            f"[bold]NIT:[/bold] {format_nit(profile.nit) or '-'}\n"
            f"[bold]Classification:[/bold] {profile.classification.value}\n"
            f"[bold]Regime:[/bold] {profile.tax_regime.value}\n"
            f"[bold]IVA:[/bold] {profile.iva_periodicity.value}",
            title=f"Tax Calendar {year}",
            border_style="cyan",
        )
    )
    console.print(_events_table(f"Obligations {year}", events, reference))

    if args.export_json or args.export_csv:
        rg = ReportGenerator(args.output_dir or "reports")
        report = rg.calendar_report(profile, year, events, reference, client_name=name)
        if args.export_json:
            rg.to_json(report, args.export_json)
            console.print(f"[green]JSON exported to {args.export_json}[/green]")
        if args.export_csv:
            rg.to_csv(report, args.export_csv, section="events")
            console.print(f"[green]CSV exported to {args.export_csv}[/green]")


# -----------------------------------------------------------------------
# Subcommands: upcoming / overdue
# -----------------------------------------------------------------------


def cmd_upcoming(args: argparse.Namespace) -> None:
    """List obligations due within the next N days."""
    _, profile = _load_profile(args)
    reference = _parse_date(args.date)
    events = _compute_window(profile, reference)
    window = upcoming(events, reference, args.days)

    if not window:
        console.print(f"[green]Nothing due in the next {args.days} days.[/green]")
        return
    console.print(_events_table(f"Due within {args.days} days", window, reference))


def cmd_overdue(args: argparse.Namespace) -> None:
    """List obligations due earlier in the reference year that have passed."""
    _, profile = _load_profile(args)
    reference = _parse_date(args.date)
    events = [
        e
        for e in overdue(_compute_window(profile, reference), reference)
        if e.due_date.year == reference.year
    ]

    if not events:
        console.print("[green]No overdue obligations.[/green]")
        return
    console.print(_events_table(f"Overdue as of {reference.isoformat()}", events, reference))


# -----------------------------------------------------------------------
# Subcommand: rules
# -----------------------------------------------------------------------


def cmd_rules(args: argparse.Namespace) -> None:
    """Inspect the due-date rule tables."""
    registry = RuleTableRegistry()

    if not args.year:
        years = ", ".join(str(y) for y in registry.supported_years())
        console.print(f"[bold]Supported years:[/bold] {years}")
        return

    try:
        table_data = registry.get(args.year)
        schedules = (
            {args.schedule: table_data.schedule(args.schedule)}
            if args.schedule
            else table_data.schedules
        )
    except CalendarError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    for key, rules in schedules.items():
        table = Table(title=f"{key} ({args.year})", box=box.SIMPLE)
        table.add_column("Installment", style="bold")
        table.add_column("Key", style="dim")
        if args.schedule:
            table.add_column("Due dates")
        for rule in rules:
            cells = [rule.label, rule.digit_key.value]
            if args.schedule:
                if rule.digit_key == DigitKey.LAST_TWO_DIGITS:
                    dates = "; ".join(
                        f"{low:02d}-{high % 100:02d}: {mmdd}" for low, high, mmdd in rule.bands
                    )
                else:
                    dates = " ".join(rule.dates)
                if rule.year_offset:
                    dates += f" (+{rule.year_offset}y)"
                cells.append(dates)
            table.add_row(*cells)
        console.print(table)


# -----------------------------------------------------------------------
# Subcommand: alerts
# -----------------------------------------------------------------------


def cmd_alerts(args: argparse.Namespace) -> None:
    """Run the alert job once against a clients file."""
    settings = get_settings()
    if args.test_email:
        _send_test_email(settings, args.test_email)
        return

    if args.send:
        scheduler = build_scheduler(settings)
        if args.clients_file:
            scheduler.store = JsonFileClientStore(args.clients_file)
    else:
        scheduler = AlertScheduler(
            store=JsonFileClientStore(args.clients_file or settings.CLIENTS_FILE),
            sender=ConsoleSender(),
            horizon_days=settings.UPCOMING_HORIZON_DAYS,
            dispatch_timeout=settings.DISPATCH_TIMEOUT_SECONDS,
            tz=settings.TIMEZONE,
        )

    try:
        run = scheduler.run(_parse_date(args.date) if args.date else None)
    except ClientStoreError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    rg = ReportGenerator(args.output_dir or "reports")
    report = rg.alert_run_report(run)
    console.print(rg.format_text(report), markup=False)

    if args.export_json:
        rg.to_json(report, args.export_json)
        console.print(f"[green]Report exported to {args.export_json}[/green]")


def _send_test_email(settings: Settings, to: str) -> None:
    if not settings.RESEND_API_KEY:
        console.print("[red]RESEND_API_KEY is not configured[/red]")
        sys.exit(1)
    sender = ResendEmailSender(
        api_key=settings.RESEND_API_KEY,
        from_email=settings.RESEND_FROM_EMAIL,
        base_url=settings.RESEND_BASE_URL,
        timeout=settings.DISPATCH_TIMEOUT_SECONDS,
    )
    try:
        result = sender.send_test(to)
    finally:
        sender.close()
    if not result.ok:
        console.print(f"[red]Test email failed: {result.error}[/red]")
        sys.exit(1)
    console.print(f"[green]Test email sent to {to} ({result.message_id or 'no id'})[/green]")


# -----------------------------------------------------------------------
# Subcommand: serve
# -----------------------------------------------------------------------


def cmd_serve(args: argparse.Namespace) -> None:
    """Serve the HTTP cron trigger."""
    uvicorn.run(create_app(), host=args.host, port=args.port)


# -----------------------------------------------------------------------
# Argument parser
# -----------------------------------------------------------------------


def _profile_parent() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument("--client", help="Client id to load from the clients file")
    parent.add_argument("--clients-file", help="JSON file with client records")
    parent.add_argument("--name", help="Client display name")
    parent.add_argument("--nit", default="", help="Taxpayer NIT, e.g. 900123456-7")
    parent.add_argument(
        "--classification",
        choices=["NATURAL", "JURIDICA", "GRAN_CONTRIBUYENTE"],
        type=str.upper,
    )
    parent.add_argument(
        "--regime", choices=["ORDINARIO", "SIMPLE", "ESPECIAL"], type=str.upper
    )
    parent.add_argument(
        "--iva", choices=["BIMESTRAL", "CUATRIMESTRAL", "NONE"], type=str.upper
    )
    parent.add_argument(
        "--flag",
        action="append",
        choices=PROFILE_FLAGS,
        help="Optional obligation flag (repeatable)",
    )
    parent.add_argument("--date", help="Reference date YYYY-MM-DD (default: today)")
    return parent


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tax-calendar",
        description="DIAN Tax Calendar - obligation deadlines and client alerts",
    )
    parser.add_argument("--log-level", default=None, help="Logging level")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    profile = _profile_parent()

    # calendar
    cal_p = subparsers.add_parser(
        "calendar", parents=[profile], help="Show a client's obligation calendar"
    )
    cal_p.add_argument("--year", type=int, help="Calendar year (default: reference year)")
    cal_p.add_argument(
        "--type", choices=[t.value for t in EventType], help="Only one obligation type"
    )
    cal_p.add_argument("--export-json", help="Export calendar to JSON file")
    cal_p.add_argument("--export-csv", help="Export calendar to CSV file")
    cal_p.add_argument("--output-dir", help="Output directory for exports")
    cal_p.set_defaults(func=cmd_calendar)

    # upcoming
    up_p = subparsers.add_parser(
        "upcoming", parents=[profile], help="Obligations due soon"
    )
    up_p.add_argument("--days", type=int, default=30, help="Horizon in days (default: 30)")
    up_p.set_defaults(func=cmd_upcoming)

    # overdue
    over_p = subparsers.add_parser(
        "overdue", parents=[profile], help="Obligations past due"
    )
    over_p.set_defaults(func=cmd_overdue)

    # rules
    rules_p = subparsers.add_parser("rules", help="Inspect due-date rule tables")
    rules_p.add_argument("--year", type=int, help="Calendar year")
    rules_p.add_argument("--schedule", "-s", help="Schedule key, e.g. iva_bimestral")
    rules_p.set_defaults(func=cmd_rules)

    # alerts
    alerts_p = subparsers.add_parser("alerts", help="Run the daily alert job once")
    alerts_p.add_argument("--clients-file", help="JSON file with client records")
    alerts_p.add_argument("--date", help="Run date YYYY-MM-DD (default: today)")
    alerts_p.add_argument(
        "--send", action="store_true", help="Deliver via Resend instead of logging"
    )
    alerts_p.add_argument("--export-json", help="Export run report to JSON")
    alerts_p.add_argument(
        "--test-email", metavar="ADDRESS", help="Only send a configuration test email"
    )
    alerts_p.add_argument("--output-dir", help="Output directory")
    alerts_p.set_defaults(func=cmd_alerts)

    # serve
    serve_p = subparsers.add_parser("serve", help="Serve the HTTP cron trigger")
    serve_p.add_argument("--host", default="127.0.0.1")
    serve_p.add_argument("--port", type=int, default=8000)
    serve_p.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    setup_logging(args.log_level or get_settings().LOG_LEVEL)
    args.func(args)
