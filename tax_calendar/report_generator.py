"""
Tax calendar report generator.

Produces:
- Per-client obligation calendars with status against a reference date
- Alert run summaries with per-client outcomes
- CSV and JSON export
"""

from __future__ import annotations

import csv
import io
import json
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from tax_calendar.deadlines import ClientTaxProfile, TaxEvent
from tax_calendar.queries import days_until, event_status
from tax_calendar.scheduler import (
    AlertRun,
    AlertSent,
    ClientFailed,
    ClientSkipped,
    NothingDue,
)


class _CalendarEncoder(json.JSONEncoder):
    """JSON encoder that handles date and Enum values."""

    def default(self, o: Any) -> Any:
        if isinstance(o, date):
            return o.isoformat()
        if isinstance(o, Enum):
            return o.value
        return super().default(o)


class ReportGenerator:
    """
    Builds calendar and alert-run reports as structured dicts, renders
    them to console-friendly text, and exports them to CSV/JSON.
    """

    def __init__(self, output_dir: Optional[str] = None) -> None:
        self.output_dir = Path(output_dir) if output_dir else Path("reports")

    # ------------------------------------------------------------------
    # Obligation calendar
    # ------------------------------------------------------------------

    def calendar_report(
        self,
        profile: ClientTaxProfile,
        year: int,
        events: list[TaxEvent],
        reference: Optional[date] = None,
        client_name: str = "",
    ) -> dict[str, Any]:
        reference = reference or date.today()
        rows = [
            {
                "event_id": e.event_id,
                "title": e.title,
                "type": e.event_type.value,
                "due_date": e.due_date.isoformat(),
                "days_until": days_until(e.due_date, reference),
                "status": event_status(e, reference).value,
                "description": e.description,
            }
            for e in events
        ]
        by_type: dict[str, int] = {}
        for e in events:
            by_type[e.event_type.value] = by_type.get(e.event_type.value, 0) + 1

        return {
            "report_type": "tax_calendar",
            "period": str(year),
            "generated_date": reference.isoformat(),
            "client": {
                "name": client_name,
                "nit": profile.nit,
                "classification": profile.classification.value,
                "tax_regime": profile.tax_regime.value,
                "iva_periodicity": profile.iva_periodicity.value,
            },
            "summary": {
                "total_obligations": len(rows),
                "overdue": sum(1 for r in rows if r["status"] == "overdue"),
                "due_soon": sum(1 for r in rows if r["status"] == "due_soon"),
                "pending": sum(1 for r in rows if r["status"] == "pending"),
            },
            "type_breakdown": by_type,
            "events": rows,
        }

    # ------------------------------------------------------------------
    # Alert run
    # ------------------------------------------------------------------

    def alert_run_report(self, run: AlertRun) -> dict[str, Any]:
        outcomes: list[dict[str, Any]] = []
        for o in run.outcomes:
            row = {
                "client_id": o.client_id,
                "client": o.client_name,
                "outcome": "",
                "events": 0,
                "detail": "",
            }
            if isinstance(o, AlertSent):
                row["outcome"] = "sent"
                row["events"] = len(o.events)
                row["detail"] = ", ".join(o.destinations)
            elif isinstance(o, NothingDue):
                row["outcome"] = "nothing_due"
            elif isinstance(o, ClientSkipped):
                row["outcome"] = "skipped"
                row["detail"] = o.reason
            elif isinstance(o, ClientFailed):
                row["outcome"] = "failed"
                row["detail"] = f"{o.stage}: {o.error}"
            outcomes.append(row)

        return {
            "report_type": "alert_run",
            "generated_date": run.run_date.isoformat(),
            "summary": {
                "clients_checked": run.clients_checked,
                "alerts_sent": len(run.alerts_sent),
                "skipped": len(run.skipped),
                "failures": len(run.failures),
            },
            "outcomes": outcomes,
            "alerts": [
                {
                    "client": sent.client_name,
                    "title": m.event.title,
                    "due_date": m.event.due_date.isoformat(),
                    "days_until": m.days_until,
                }
                for sent in run.alerts_sent
                for m in sent.events
            ],
        }

    # ------------------------------------------------------------------
    # Export methods
    # ------------------------------------------------------------------

    def _write(self, filename: str, text: str) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        (self.output_dir / filename).write_text(text, encoding="utf-8")

    def to_json(
        self,
        report: dict[str, Any],
        filename: Optional[str] = None,
    ) -> str:
        """Export a report to JSON. Returns the JSON string."""
        json_str = json.dumps(report, indent=2, ensure_ascii=False, cls=_CalendarEncoder)
        if filename:
            self._write(filename, json_str)
        return json_str

    def to_csv(
        self,
        report: dict[str, Any],
        filename: Optional[str] = None,
        section: str = "events",
    ) -> str:
        """
        Export a report section to CSV. Returns the CSV string.

        The section parameter names the list/dict in the report to
        export as rows.
        """
        data = report.get(section, [])
        if not data:
            return ""

        output = io.StringIO()
        if isinstance(data, list) and isinstance(data[0], dict):
            writer = csv.DictWriter(output, fieldnames=list(data[0].keys()))
            writer.writeheader()
            writer.writerows(data)
        elif isinstance(data, dict):
            writer = csv.writer(output)
            writer.writerow(["key", "value"])
            for k, v in data.items():
                writer.writerow([k, v])

        csv_str = output.getvalue()
        if filename:
            self._write(filename, csv_str)
        return csv_str

    # ------------------------------------------------------------------
    # Console-formatted text output
    # ------------------------------------------------------------------

    def format_text(self, report: dict[str, Any]) -> str:
        """Format a report as human-readable text for console output."""
        lines: list[str] = []
        report_type = report.get("report_type", "report").replace("_", " ").title()
        lines.append("=" * 60)
        lines.append(f"  {report_type}")
        lines.append(f"  Generated: {report.get('generated_date', '')}")
        if report.get("period"):
            lines.append(f"  Period: {report['period']}")
        client = report.get("client")
        if client:
            name = client.get("name") or client.get("nit", "")
            lines.append(
                f"  Client: {name} ({client['classification']}, {client['tax_regime']})"
            )
        lines.append("=" * 60)
        lines.append("")

        summary = report.get("summary", {})
        if summary:
            lines.append("SUMMARY")
            lines.append("-" * 40)
            for key, value in summary.items():
                lines.append(f"  {key.replace('_', ' ').title()}: {value}")
            lines.append("")

        events = report.get("events", [])
        if events:
            lines.append("OBLIGATIONS")
            lines.append("-" * 40)
            for e in events:
                marker = {"overdue": "!", "due_soon": "*"}.get(e["status"], " ")
                lines.append(f" {marker} {e['due_date']}  {e['title']}")
            lines.append("")

        outcomes = report.get("outcomes", [])
        if outcomes:
            lines.append("CLIENTS")
            lines.append("-" * 40)
            for o in outcomes:
                detail = f" - {o['detail']}" if o["detail"] else ""
                lines.append(f"  [{o['outcome'].upper()}] {o['client']}{detail}")
            lines.append("")

        alerts = report.get("alerts", [])
        if alerts:
            lines.append("ALERTS")
            lines.append("-" * 40)
            for a in alerts:
                lines.append(
                    f"  {a['client']}: {a['title']} on {a['due_date']} "
                    f"({a['days_until']} days)"
                )
            lines.append("")

        return "\n".join(lines)
