"""Tests for the tax-calendar command line."""

import json

import pytest

from tax_calendar import cli
from tax_calendar.cli import build_parser, main
from tax_calendar.config import Settings
from tax_calendar.notifications import DeliveryResult

PROFILE_ARGS = [
    "--classification", "juridica",
    "--nit", "900123456-9",
    "--iva", "bimestral",
    "--date", "2026-03-13",
]


@pytest.fixture
def clients_file(tmp_path):
    path = tmp_path / "clients.json"
    path.write_text(
        json.dumps(
            {
                "clients": [
                    {
                        "id": "c-1",
                        "name": "Andina SAS",
                        "nit": "900123456-9",
                        "classification": "JURIDICA",
                        "iva_periodicity": "BIMESTRAL",
                        "email_alert": True,
                        "target_emails": ["conta@andina.example.com"],
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    return path


def test_parser_uppercases_choices():
    args = build_parser().parse_args(["upcoming", *PROFILE_ARGS, "--days", "10"])
    assert args.classification == "JURIDICA"
    assert args.iva == "BIMESTRAL"
    assert args.days == 10


def test_no_command_prints_help():
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 0


def test_rules_lists_years(capsys):
    main(["rules"])
    assert "Supported years: 2025, 2026" in capsys.readouterr().out


def test_rules_unknown_year_exits(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["rules", "--year", "2019"])
    assert exc.value.code == 1


def test_calendar_json_export(tmp_path):
    main(["calendar", *PROFILE_ARGS, "--export-json", "cal.json", "--output-dir", str(tmp_path)])
    report = json.loads((tmp_path / "cal.json").read_text(encoding="utf-8"))
    assert report["period"] == "2026"
    assert report["summary"]["total_obligations"] == 8
    assert report["events"][0]["title"] == "IVA Bimestral Ene-Feb"


def test_calendar_type_filter(tmp_path):
    main(
        [
            "calendar", *PROFILE_ARGS,
            "--type", "RENTA",
            "--export-csv", "renta.csv",
            "--output-dir", str(tmp_path),
        ]
    )
    lines = (tmp_path / "renta.csv").read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 3
    assert all(",RENTA," in line for line in lines[1:])


def test_calendar_from_clients_file(tmp_path, clients_file):
    main(
        [
            "calendar",
            "--client", "c-1",
            "--clients-file", str(clients_file),
            "--date", "2026-03-13",
            "--export-json", "c1.json",
            "--output-dir", str(tmp_path),
        ]
    )
    report = json.loads((tmp_path / "c1.json").read_text(encoding="utf-8"))
    assert report["client"]["name"] == "Andina SAS"


def test_upcoming_in_january_includes_previous_year_filings(capsys):
    main(
        [
            "upcoming",
            "--classification", "JURIDICA",
            "--iva", "BIMESTRAL",
            "--nit", "900123456-9",
            "--date", "2026-01-17",
            "--days", "10",
        ]
    )
    out = capsys.readouterr().out
    assert "Nothing due" not in out
    assert "Nov-Dic" in out
    assert "2026-01-24" in out


def test_overdue_in_january_lists_only_current_year_dates(capsys):
    main(
        [
            "overdue",
            "--classification", "JURIDICA",
            "--iva", "BIMESTRAL",
            "--nit", "900123456-9",
            "--date", "2026-01-30",
        ]
    )
    out = capsys.readouterr().out
    assert "No overdue obligations" not in out
    assert "Nov-Dic" in out
    assert "Renta" not in out


def test_unknown_client_exits(clients_file):
    with pytest.raises(SystemExit) as exc:
        main(["upcoming", "--client", "nope", "--clients-file", str(clients_file)])
    assert exc.value.code == 1


def test_missing_classification_exits():
    with pytest.raises(SystemExit) as exc:
        main(["overdue", "--nit", "9"])
    assert exc.value.code == 1


def test_alerts_dry_run(tmp_path, clients_file, capsys):
    main(
        [
            "alerts",
            "--clients-file", str(clients_file),
            "--date", "2026-03-13",
            "--export-json", "run.json",
            "--output-dir", str(tmp_path),
        ]
    )
    report = json.loads((tmp_path / "run.json").read_text(encoding="utf-8"))
    assert report["summary"]["alerts_sent"] == 1
    assert report["alerts"][0]["title"] == "IVA Bimestral Ene-Feb"
    assert "[SENT] Andina SAS" in capsys.readouterr().out


def test_alerts_missing_file_exits(tmp_path):
    with pytest.raises(SystemExit) as exc:
        main(["alerts", "--clients-file", str(tmp_path / "missing.json")])
    assert exc.value.code == 1


# ── Test email ───────────────────────────────────────────────────────


class FakeResendSender:
    sent_to: list = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs

    def send_test(self, to):
        FakeResendSender.sent_to.append(to)
        return DeliveryResult(ok=True, message_id="m-test")

    def close(self):
        pass


def test_test_email_requires_api_key(monkeypatch):
    monkeypatch.setattr(cli, "get_settings", lambda: Settings(RESEND_API_KEY=""))
    with pytest.raises(SystemExit) as exc:
        main(["alerts", "--test-email", "ops@example.com"])
    assert exc.value.code == 1


def test_test_email_sent(monkeypatch, capsys):
    monkeypatch.setattr(cli, "get_settings", lambda: Settings(RESEND_API_KEY="re_live"))
    monkeypatch.setattr(cli, "ResendEmailSender", FakeResendSender)
    FakeResendSender.sent_to = []

    main(["alerts", "--test-email", "ops@example.com"])

    assert FakeResendSender.sent_to == ["ops@example.com"]
    assert "Test email sent" in capsys.readouterr().out
