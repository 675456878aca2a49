"""
DIAN Tax Calendar
=================

Colombian tax-deadline calendar and client alerting: computes every
statutory filing obligation for a client profile and runs a daily job
that reminds clients a configurable number of days before each one.

Modules:
    rule_tables      - Year-versioned DIAN due-date tables keyed by NIT digits
    deadlines        - Rule engine: client tax profile -> dated obligations
    queries          - Filters over obligations (type, upcoming, overdue)
    profiles         - Client record validation and defaults
    store            - Client profile store adapters
    notifications    - Alert email rendering and delivery
    cache            - Run-scoped calendar cache
    scheduler        - Daily alert job
    api              - HTTP cron trigger (FastAPI)
    report_generator - Calendar and alert-run reports with CSV/JSON export
    cli              - Command-line interface
"""

__version__ = "1.0.0"

from tax_calendar.rule_tables import RuleTableRegistry
from tax_calendar.deadlines import (
    ClientTaxProfile,
    DeadlineEngine,
    TaxEvent,
    compute_obligations,
)
from tax_calendar.scheduler import AlertScheduler
from tax_calendar.report_generator import ReportGenerator

__all__ = [
    "RuleTableRegistry",
    "ClientTaxProfile",
    "DeadlineEngine",
    "TaxEvent",
    "compute_obligations",
    "AlertScheduler",
    "ReportGenerator",
]
