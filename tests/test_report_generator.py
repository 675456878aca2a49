"""Tests for calendar and alert-run reports."""

import json
from datetime import date

import pytest

from tax_calendar.deadlines import (
    Classification,
    ClientTaxProfile,
    DeadlineEngine,
    IvaPeriodicity,
)
from tax_calendar.notifications import DeliveryResult
from tax_calendar.report_generator import ReportGenerator
from tax_calendar.scheduler import AlertScheduler
from tax_calendar.store import InMemoryClientStore


class OkSender:
    def send(self, notification):
        return DeliveryResult(ok=True)


@pytest.fixture
def rg(tmp_path) -> ReportGenerator:
    return ReportGenerator(str(tmp_path))


@pytest.fixture
def profile() -> ClientTaxProfile:
    return ClientTaxProfile(
        nit="900123456-9",
        classification=Classification.JURIDICA,
        iva_periodicity=IvaPeriodicity.BIMESTRAL,
        is_retention_agent=True,
    )


@pytest.fixture
def calendar(rg: ReportGenerator, profile: ClientTaxProfile) -> dict:
    events = DeadlineEngine().compute_obligations(profile, 2026)
    return rg.calendar_report(profile, 2026, events, date(2026, 3, 13), client_name="Andina SAS")


def test_calendar_summary(calendar: dict):
    summary = calendar["summary"]
    assert summary["total_obligations"] == 20
    assert summary["overdue"] + summary["due_soon"] + summary["pending"] == 20
    assert calendar["type_breakdown"] == {"RENTA": 2, "IVA": 6, "RETENCION": 12}
    assert calendar["client"]["classification"] == "JURIDICA"


def test_calendar_event_rows(calendar: dict):
    ene_feb = next(e for e in calendar["events"] if e["title"] == "IVA Bimestral Ene-Feb")
    assert ene_feb["due_date"] == "2026-03-20"
    assert ene_feb["days_until"] == 7
    assert ene_feb["status"] == "due_soon"


def test_to_json_writes_file(rg: ReportGenerator, calendar: dict, tmp_path):
    text = rg.to_json(calendar, "calendar.json")
    assert json.loads(text)["period"] == "2026"
    assert (tmp_path / "calendar.json").read_text(encoding="utf-8") == text


def test_to_csv_events(rg: ReportGenerator, calendar: dict):
    text = rg.to_csv(calendar, section="events")
    header = text.splitlines()[0]
    assert header == "event_id,title,type,due_date,days_until,status,description"
    assert len(text.strip().splitlines()) == 21


def test_to_csv_dict_section(rg: ReportGenerator, calendar: dict):
    text = rg.to_csv(calendar, section="type_breakdown")
    assert text.splitlines()[0] == "key,value"


def test_to_csv_missing_section(rg: ReportGenerator, calendar: dict):
    assert rg.to_csv(calendar, section="nope") == ""


def test_alert_run_report(rg: ReportGenerator):
    rows = [
        {
            "id": "c-1",
            "name": "Andina SAS",
            "nit": "900123456-9",
            "classification": "JURIDICA",
            "iva_periodicity": "BIMESTRAL",
            "email_alert": True,
            "target_emails": ["conta@andina.example.com"],
        },
        {"id": "c-2", "name": "Rota", "classification": "X", "email_alert": True,
         "target_emails": ["x@example.com"]},
    ]
    run = AlertScheduler(InMemoryClientStore(rows), OkSender()).run(date(2026, 3, 13))
    report = rg.alert_run_report(run)

    assert report["summary"] == {
        "clients_checked": 2,
        "alerts_sent": 1,
        "skipped": 0,
        "failures": 1,
    }
    assert [o["outcome"] for o in report["outcomes"]] == ["sent", "failed"]
    assert report["alerts"][0]["days_until"] == 7

    text = rg.format_text(report)
    assert "Alert Run" in text
    assert "[SENT] Andina SAS" in text
    assert "[FAILED] Rota" in text


def test_format_text_calendar(rg: ReportGenerator, calendar: dict):
    text = rg.format_text(calendar)
    assert "Tax Calendar" in text
    assert "Client: Andina SAS (JURIDICA, ORDINARIO)" in text
    assert "2026-03-20  IVA Bimestral Ene-Feb" in text
