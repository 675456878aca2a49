#!/usr/bin/env python3
"""
Quick Start Example
===================

Computes the 2026 obligation calendar for a bimonthly-VAT legal entity
whose NIT ends in 9, then lists what is due in the 30 days after
March 1st.

Usage:
    python examples/quick_start.py
"""

from datetime import date

from tax_calendar.deadlines import (
    Classification,
    ClientTaxProfile,
    DeadlineEngine,
    IvaPeriodicity,
)
from tax_calendar.queries import days_until, upcoming


def main() -> None:
    engine = DeadlineEngine()

    profile = ClientTaxProfile(
        nit="900123456-9",
        classification=Classification.JURIDICA,
        iva_periodicity=IvaPeriodicity.BIMESTRAL,
        is_retention_agent=True,
    )

    events = engine.compute_obligations(profile, 2026)
    print(f"{len(events)} obligations in 2026\n")
    for e in events:
        print(f"  {e.due_date.isoformat()}  {e.title}")

    reference = date(2026, 3, 1)
    print(f"\n--- Due within 30 days of {reference.isoformat()} ---")
    for e in upcoming(events, reference, 30):
        print(f"  {e.title}: {days_until(e.due_date, reference)} days")


if __name__ == "__main__":
    main()
