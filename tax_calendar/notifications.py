"""
Alert notifications.

- AlertNotification: one consolidated message per client
- ResendEmailSender: HTML email through the Resend HTTP API (httpx), plus a
  one-off configuration check email
- ConsoleSender: dry-run sender that only logs
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Protocol

import httpx

logger = logging.getLogger("tax_calendar.notifications")

RESEND_BASE_URL = "https://api.resend.com"
DEFAULT_FROM_EMAIL = "Alertas Tributarias <alertas@example.com>"
TEST_SUBJECT = "✅ Alertas Tributarias - Prueba de notificaciones"

_MONTHS_ES = (
    "enero", "febrero", "marzo", "abril", "mayo", "junio", "julio",
    "agosto", "septiembre", "octubre", "noviembre", "diciembre",
)
_WEEKDAYS_ES = ("lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo")

_EVENT_ICONS = {
    "IVA": "📊",
    "RENTA": "📋",
    "RETENCION": "💰",
    "SIMPLE": "📝",
    "PATRIMONIO": "🏛️",
    "EXOGENA": "📁",
    "GMF": "🏦",
    "EXTERIOR": "🌎",
    "GASOLINA": "⛽",
    "BEBIDAS": "🥤",
    "PLASTICOS": "♻️",
    "CARBONO": "🌿",
}

# (max days until, label, text colour, background)
_URGENCY = (
    (3, "URGENTE", "#dc2626", "#fef2f2"),
    (7, "PRONTO", "#ea580c", "#fff7ed"),
    (15, "PRÓXIMO", "#ca8a04", "#fefce8"),
)
_SCHEDULED = ("PROGRAMADO", "#16a34a", "#f0fdf4")


@dataclass(frozen=True)
class EventLine:
    title: str
    due_date: date
    event_type: str
    days_until: int
    description: str = ""


@dataclass(frozen=True)
class AlertNotification:
    destinations: tuple[str, ...]
    client_name: str
    client_id: str
    events: tuple[EventLine, ...]
    client_nit: str = ""
    run_date: Optional[date] = None


@dataclass(frozen=True)
class DeliveryResult:
    ok: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class NotificationSender(Protocol):
    def send(self, notification: AlertNotification) -> DeliveryResult:
        ...


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def event_icon(event_type: str) -> str:
    return _EVENT_ICONS.get(event_type, "📅")


def _urgency(days: int) -> tuple[str, str, str]:
    for limit, label, colour, background in _URGENCY:
        if days <= limit:
            return label, colour, background
    return _SCHEDULED


def urgency_label(days: int) -> str:
    return _urgency(days)[0]


def format_nit(nit: str) -> str:
    """900123456-7 style: thousands dots, then the check digit."""
    digits = re.sub(r"\D", "", nit or "")
    if len(digits) <= 1:
        return digits
    body, check = digits[:-1], digits[-1]
    return f"{int(body):,}".replace(",", ".") + f"-{check}"


def format_long_date(value: date, weekday: bool = True) -> str:
    text = f"{value.day} de {_MONTHS_ES[value.month - 1]} de {value.year}"
    if weekday:
        text = f"{_WEEKDAYS_ES[value.weekday()]}, {text}"
    return text


def _plural(count: int, word: str) -> str:
    return word if count == 1 else f"{word}s"


def render_subject(notification: AlertNotification) -> str:
    count = len(notification.events)
    return (
        f"⚠️ {count} {_plural(count, 'vencimiento')} "
        f"{_plural(count, 'próximo')} - {notification.client_name}"
    )


def _render_event(line: EventLine) -> str:
    label, colour, background = _urgency(line.days_until)
    days = f"{line.days_until} {_plural(line.days_until, 'día')}"
    description = (
        f'<p style="color:#6b7280;font-size:13px;margin:8px 0 0">'
        f"{html.escape(line.description)}</p>"
        if line.description
        else ""
    )
    return (
        '<div style="border:1px solid #e5e7eb;border-radius:12px;'
        'padding:16px 20px;margin-bottom:16px">'
        f'<p style="font-size:16px;font-weight:600;margin:0">'
        f"{event_icon(line.event_type)} {html.escape(line.title)}</p>"
        f'<span style="display:inline-block;margin-top:12px;padding:6px 14px;'
        f"border-radius:20px;font-size:12px;font-weight:700;"
        f'color:{colour};background:{background}">{label} · {days}</span>'
        f'<p style="color:#4b5563;font-size:14px;margin:12px 0 0">'
        f"📅 {format_long_date(line.due_date)}</p>"
        f"{description}"
        "</div>"
    )


def render_html(notification: AlertNotification, today: Optional[date] = None) -> str:
    today = today or notification.run_date or date.today()
    count = len(notification.events)
    nit = (
        f'<p style="color:#6b7280;margin:4px 0 0">NIT: {format_nit(notification.client_nit)}</p>'
        if notification.client_nit
        else ""
    )
    cards = "".join(_render_event(line) for line in notification.events)
    return (
        "<!DOCTYPE html>"
        '<html><head><meta charset="utf-8"><title>Alertas Tributarias</title></head>'
        '<body style="font-family:Arial,sans-serif;background:#f3f4f6;margin:0;padding:40px 20px">'
        '<div style="max-width:600px;margin:0 auto;background:#fff;border-radius:16px;padding:32px">'
        '<h1 style="font-size:22px;margin:0">Alertas Tributarias</h1>'
        f'<p style="color:#71717a;font-size:12px">{format_long_date(today, weekday=False)}</p>'
        f'<h2 style="font-size:18px;margin:24px 0 0">{html.escape(notification.client_name)}</h2>'
        f"{nit}"
        f'<p style="font-weight:600">⚠️ {count} {_plural(count, "vencimiento")}</p>'
        "<p>Te recordamos las siguientes obligaciones tributarias próximas a vencer:</p>"
        f"{cards}"
        "</div></body></html>"
    )


def render_test_html() -> str:
    return (
        "<!DOCTYPE html>"
        '<html><head><meta charset="utf-8"></head>'
        '<body style="font-family:Arial,sans-serif;background:#f3f4f6;margin:0;padding:40px 20px">'
        '<div style="max-width:500px;margin:0 auto;background:#fff;border-radius:16px;'
        'padding:40px 32px;text-align:center">'
        '<p style="font-size:36px;margin:0">✓</p>'
        '<h2 style="color:#1f2937;font-size:22px">¡Configuración exitosa!</h2>'
        '<p style="color:#6b7280;font-size:15px">'
        "Las notificaciones por email están funcionando correctamente.<br>"
        "Recibirás alertas cuando tus obligaciones tributarias estén próximas a vencer."
        "</p></div></body></html>"
    )


# ---------------------------------------------------------------------------
# Senders
# ---------------------------------------------------------------------------


class ResendEmailSender:
    """
    Delivers notifications through the Resend email API.

    The httpx client is injectable so tests can mount a MockTransport.
    """

    def __init__(
        self,
        api_key: str,
        from_email: str = DEFAULT_FROM_EMAIL,
        base_url: str = RESEND_BASE_URL,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.api_key = api_key
        self.from_email = from_email
        self.client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def build_payload(self, notification: AlertNotification) -> dict:
        return {
            "from": self.from_email,
            "to": list(notification.destinations),
            "subject": render_subject(notification),
            "html": render_html(notification),
        }

    def send(self, notification: AlertNotification) -> DeliveryResult:
        if not notification.destinations:
            logger.info("No recipients for %s; skipping email", notification.client_id)
            return DeliveryResult(ok=False, error="no recipients")
        return self._post(self.build_payload(notification), notification.client_id)

    def send_test(self, to: str) -> DeliveryResult:
        """Send a configuration check email to a single address."""
        payload = {
            "from": self.from_email,
            "to": [to],
            "subject": TEST_SUBJECT,
            "html": render_test_html(),
        }
        return self._post(payload, to)

    def _post(self, payload: dict, label: str) -> DeliveryResult:
        try:
            resp = self.client.post(
                "/emails",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as exc:
            logger.error("Resend request failed for %s: %s", label, exc)
            return DeliveryResult(ok=False, error=str(exc))

        if resp.status_code >= 400:
            logger.error("Resend error %s for %s: %s", resp.status_code, label, resp.text)
            return DeliveryResult(ok=False, error=f"HTTP {resp.status_code}: {resp.text}")

        # The email is accepted at this point; a missing id is not a failure
        try:
            body = resp.json()
        except ValueError:
            body = None
        message_id = body.get("id") if isinstance(body, dict) else None
        logger.info("Email %s sent to %s", message_id, ", ".join(payload["to"]))
        return DeliveryResult(ok=True, message_id=message_id)

    def close(self) -> None:
        self.client.close()


@dataclass
class ConsoleSender:
    """Dry-run sender: records and logs notifications instead of delivering."""

    sent: list[AlertNotification] = field(default_factory=list)

    def send(self, notification: AlertNotification) -> DeliveryResult:
        self.sent.append(notification)
        logger.info("[dry-run] %s", render_subject(notification))
        for line in notification.events:
            logger.info(
                "[dry-run]   %s %s (%s, %d days)",
                event_icon(line.event_type),
                line.title,
                line.due_date.isoformat(),
                line.days_until,
            )
        return DeliveryResult(ok=True)
