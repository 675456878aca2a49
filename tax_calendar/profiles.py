"""
Client record boundary.

Loosely-typed rows from the client store are parsed into ClientRecord
and converted to the engine's ClientTaxProfile here, so that every
default lives in one place:
- unset optional flag        -> False
- unset regime               -> ORDINARIO
- unset IVA periodicity      -> NONE
- unset/malformed alert days -> (15, 7, 1)
- unset NIT                  -> ""
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from tax_calendar.deadlines import (
    Classification,
    ClientTaxProfile,
    IvaPeriodicity,
    ProfileError,
    TaxRegime,
)

DEFAULT_ALERT_DAYS: tuple[int, ...] = (15, 7, 1)
DEFAULT_REGIME = TaxRegime.ORDINARIO
DEFAULT_IVA_PERIODICITY = IvaPeriodicity.NONE

# Optional boolean columns, named as on ClientTaxProfile
PROFILE_FLAGS: tuple[str, ...] = (
    "is_retention_agent",
    "has_gmf",
    "requires_exogena",
    "has_patrimony_tax",
    "has_foreign_assets",
    "has_carbon_tax",
    "has_beverage_tax",
    "has_fuel_tax",
    "has_plastic_tax",
    "requires_rub",
    "requires_transfer_pricing",
    "requires_country_report",
)

_TRUTHY = {"true", "1", "yes", "y", "si", "sí", "on"}


def as_flag(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def _as_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def parse_alert_days(value: Any) -> tuple[int, ...]:
    """
    Normalize an alert-day list: de-duplicated, descending, non-negative.

    None or a malformed value falls back to DEFAULT_ALERT_DAYS; an
    explicit empty list means no alerts.
    """
    if value is None or isinstance(value, (str, bytes)):
        return DEFAULT_ALERT_DAYS
    try:
        days = {int(v) for v in value}
    except (TypeError, ValueError):
        return DEFAULT_ALERT_DAYS
    return tuple(sorted((d for d in days if d >= 0), reverse=True))


def parse_destinations(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    try:
        items = [_as_text(v) for v in value]
    except TypeError:
        return ()
    seen: list[str] = []
    for item in items:
        if item and item not in seen:
            seen.append(item)
    return tuple(seen)


def _parse_enum(enum_cls, value: Any, default=None, label: str = ""):
    text = _as_text(value).upper()
    if not text:
        if default is None:
            raise ProfileError(f"Missing {label}")
        return default
    try:
        return enum_cls(text)
    except ValueError:
        raise ProfileError(f"Unknown {label}: {value!r}") from None


@dataclass(frozen=True)
class AlertConfig:
    """Day offsets at which a reminder fires, and where it goes."""

    alert_days: tuple[int, ...] = DEFAULT_ALERT_DAYS
    destinations: tuple[str, ...] = ()

    @property
    def has_destinations(self) -> bool:
        return len(self.destinations) > 0


@dataclass(frozen=True)
class ClientRecord:
    """A client row as read from the store, before validation."""

    client_id: str
    name: str
    nit: str = ""
    classification: Optional[str] = None
    tax_regime: Optional[str] = None
    iva_periodicity: Optional[str] = None
    flags: dict[str, bool] = field(default_factory=dict)
    email_alert: bool = False
    alert_config: AlertConfig = field(default_factory=AlertConfig)

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> "ClientRecord":
        client_id = _as_text(row.get("id", row.get("client_id")))
        return cls(
            client_id=client_id,
            name=_as_text(row.get("name")) or client_id,
            nit=_as_text(row.get("nit")),
            classification=row.get("classification"),
            tax_regime=row.get("tax_regime"),
            iva_periodicity=row.get("iva_periodicity"),
            flags={name: as_flag(row.get(name)) for name in PROFILE_FLAGS},
            email_alert=as_flag(row.get("email_alert")),
            alert_config=AlertConfig(
                alert_days=parse_alert_days(row.get("alert_days")),
                destinations=parse_destinations(row.get("target_emails")),
            ),
        )

    def to_profile(self) -> ClientTaxProfile:
        """Validate the raw fields; unknown enum values raise ProfileError."""
        return ClientTaxProfile(
            nit=self.nit,
            classification=_parse_enum(
                Classification, self.classification, label="classification"
            ),
            tax_regime=_parse_enum(
                TaxRegime, self.tax_regime, DEFAULT_REGIME, label="tax regime"
            ),
            iva_periodicity=_parse_enum(
                IvaPeriodicity,
                self.iva_periodicity,
                DEFAULT_IVA_PERIODICITY,
                label="IVA periodicity",
            ),
            **{name: self.flags.get(name, False) for name in PROFILE_FLAGS},
        )
