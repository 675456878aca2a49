"""Tests for the HTTP cron trigger."""

import json
from datetime import date

import pytest
from fastapi.testclient import TestClient

from tax_calendar.api import build_scheduler, create_app, get_scheduler
from tax_calendar.config import Settings
from tax_calendar.notifications import ConsoleSender, DeliveryResult, ResendEmailSender
from tax_calendar.scheduler import AlertScheduler
from tax_calendar.store import InMemoryClientStore, JsonFileClientStore

ENDPOINT = "/api/cron/check-deadlines"


class OkSender:
    def send(self, notification):
        return DeliveryResult(ok=True)


class FixedDayScheduler(AlertScheduler):
    def today(self) -> date:
        return date(2026, 3, 13)


class BrokenScheduler(AlertScheduler):
    def run(self, today=None):
        raise RuntimeError("unexpected")


class FailingStore:
    def fetch_alert_clients(self):
        raise OSError("store offline")


ROWS = [
    {
        "id": "c-1",
        "name": "Andina SAS",
        "nit": "900123456-9",
        "classification": "JURIDICA",
        "iva_periodicity": "BIMESTRAL",
        "email_alert": True,
        "target_emails": ["conta@andina.example.com"],
    },
    {
        "id": "c-2",
        "name": "Sin correo",
        "nit": "900123456-9",
        "classification": "JURIDICA",
        "iva_periodicity": "BIMESTRAL",
        "email_alert": True,
        "target_emails": [],
    },
]


def _client(settings: Settings, scheduler: AlertScheduler) -> TestClient:
    app = create_app(settings)
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    return TestClient(app)


@pytest.fixture
def scheduler() -> AlertScheduler:
    return FixedDayScheduler(InMemoryClientStore(ROWS), OkSender())


@pytest.fixture
def secured(scheduler: AlertScheduler) -> TestClient:
    return _client(Settings(CRON_SECRET="s3cret"), scheduler)


# ── Authentication ───────────────────────────────────────────────────


def test_missing_token_rejected(secured: TestClient):
    resp = secured.get(ENDPOINT)
    assert resp.status_code == 401


def test_wrong_token_rejected(secured: TestClient):
    resp = secured.get(ENDPOINT, headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401


def test_correct_token_accepted(secured: TestClient):
    resp = secured.get(ENDPOINT, headers={"Authorization": "Bearer s3cret"})
    assert resp.status_code == 200


def test_no_secret_means_open_endpoint(scheduler: AlertScheduler):
    resp = _client(Settings(CRON_SECRET=""), scheduler).get(ENDPOINT)
    assert resp.status_code == 200


# ── Response contract ────────────────────────────────────────────────


def test_success_body(secured: TestClient):
    body = secured.get(ENDPOINT, headers={"Authorization": "Bearer s3cret"}).json()
    assert body["success"] is True
    assert body["runDate"] == "2026-03-13"
    assert body["clientsChecked"] == 2
    assert body["alertsTriggered"] == [
        {
            "clientId": "c-1",
            "client": "Andina SAS",
            "emails": ["conta@andina.example.com"],
            "events": 1,
        }
    ]
    assert body["failures"] == 0


def test_store_failure_returns_500():
    scheduler = FixedDayScheduler(FailingStore(), OkSender())
    resp = _client(Settings(CRON_SECRET=""), scheduler).get(ENDPOINT)
    assert resp.status_code == 500
    assert "store offline" in resp.json()["error"]


def test_escaped_exception_returns_500():
    scheduler = BrokenScheduler(InMemoryClientStore([]), OkSender())
    resp = _client(Settings(CRON_SECRET=""), scheduler).get(ENDPOINT)
    assert resp.status_code == 500
    assert "error" in resp.json()


def test_health(scheduler: AlertScheduler):
    resp = _client(Settings(), scheduler).get("/health")
    assert resp.json() == {"status": "ok"}


# ── Wiring ───────────────────────────────────────────────────────────


def test_build_scheduler_dry_run_without_api_key():
    scheduler = build_scheduler(Settings(RESEND_API_KEY="", CLIENTS_FILE="clients.json"))
    assert isinstance(scheduler.sender, ConsoleSender)
    assert isinstance(scheduler.store, JsonFileClientStore)


def test_build_scheduler_uses_resend_with_api_key():
    settings = Settings(RESEND_API_KEY="re_live", DRY_RUN=False, DISPATCH_TIMEOUT_SECONDS=3, UPCOMING_HORIZON_DAYS=20)
    scheduler = build_scheduler(settings)
    try:
        assert isinstance(scheduler.sender, ResendEmailSender)
        assert scheduler.dispatch_timeout == 3
        assert scheduler.horizon_days == 20
    finally:
        scheduler.sender.close()


def test_json_store_wired_end_to_end(tmp_path):
    path = tmp_path / "clients.json"
    path.write_text(json.dumps(ROWS), encoding="utf-8")
    scheduler = FixedDayScheduler(JsonFileClientStore(path), OkSender())
    body = _client(Settings(CRON_SECRET=""), scheduler).get(ENDPOINT).json()
    assert body["clientsChecked"] == 2
