"""
Deadline rule engine.

Maps a client's tax profile to the dated list of DIAN obligations for a
calendar year:
- Income tax by classification (or the SIMPLE regime's own schedule)
- VAT by periodicity
- Flag-gated obligations: withholding, GMF, exogenous information,
  net-worth tax, foreign assets, the 2026 levies and the reporting
  obligations (RUB, transfer pricing, country-by-country)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from tax_calendar import rule_tables as rt
from tax_calendar.rule_tables import (
    CalendarError,
    CalendarTable,
    RuleTableRegistry,
)


class ProfileError(CalendarError):
    """A tax profile has an unknown or inconsistent classification/regime."""


class Classification(Enum):
    NATURAL = "NATURAL"
    JURIDICA = "JURIDICA"
    GRAN_CONTRIBUYENTE = "GRAN_CONTRIBUYENTE"


class TaxRegime(Enum):
    ORDINARIO = "ORDINARIO"
    SIMPLE = "SIMPLE"
    ESPECIAL = "ESPECIAL"


class IvaPeriodicity(Enum):
    BIMESTRAL = "BIMESTRAL"
    CUATRIMESTRAL = "CUATRIMESTRAL"
    NONE = "NONE"


class EventType(Enum):
    """Obligation categories, in same-day priority order."""

    RENTA = "RENTA"
    SIMPLE = "SIMPLE"
    IVA = "IVA"
    RETENCION = "RETENCION"
    GMF = "GMF"
    PATRIMONIO = "PATRIMONIO"
    EXTERIOR = "EXTERIOR"
    EXOGENA = "EXOGENA"
    CARBONO = "CARBONO"
    BEBIDAS = "BEBIDAS"
    GASOLINA = "GASOLINA"
    PLASTICOS = "PLASTICOS"
    RUB = "RUB"
    PRECIOS_TRANSFERENCIA = "PRECIOS_TRANSFERENCIA"
    INFORME_PAIS = "INFORME_PAIS"
    REGISTRO_RTE = "REGISTRO_RTE"


_TYPE_PRIORITY: dict[EventType, int] = {t: i for i, t in enumerate(EventType)}


@dataclass(frozen=True)
class ClientTaxProfile:
    """Immutable tax profile evaluated by the engine."""

    nit: str
    classification: Classification
    tax_regime: TaxRegime = TaxRegime.ORDINARIO
    iva_periodicity: IvaPeriodicity = IvaPeriodicity.NONE
    is_retention_agent: bool = False
    has_gmf: bool = False
    requires_exogena: bool = False
    has_patrimony_tax: bool = False
    has_foreign_assets: bool = False
    has_carbon_tax: bool = False
    has_beverage_tax: bool = False
    has_fuel_tax: bool = False
    has_plastic_tax: bool = False
    requires_rub: bool = False
    requires_transfer_pricing: bool = False
    requires_country_report: bool = False


@dataclass(frozen=True)
class TaxEvent:
    """A single dated obligation. Recomputed on every engine call."""

    event_id: str
    title: str
    due_date: date
    event_type: EventType
    description: str = ""

    @property
    def sort_key(self) -> tuple[date, int, str]:
        return (self.due_date, _TYPE_PRIORITY[self.event_type], self.title)


# Flag-gated obligations that resolve straight from one schedule:
# (profile flag, event type, schedule key, title prefix, description)
_FLAG_OBLIGATIONS: list[tuple[str, EventType, str, str, str]] = [
    (
        "is_retention_agent",
        EventType.RETENCION,
        rt.RETENCION,
        "Retención Fuente",
        "Declaración y pago retención en la fuente del mes",
    ),
    (
        "has_gmf",
        EventType.GMF,
        rt.GMF,
        "GMF (4x1000)",
        "Declaración y pago Gravamen a los Movimientos Financieros",
    ),
    (
        "has_patrimony_tax",
        EventType.PATRIMONIO,
        rt.PATRIMONIO,
        "Patrimonio -",
        "Impuesto al patrimonio",
    ),
    (
        "has_carbon_tax",
        EventType.CARBONO,
        rt.CARBONO,
        "Impuesto al Carbono",
        "Declaración y pago impuesto nacional al carbono",
    ),
    (
        "has_beverage_tax",
        EventType.BEBIDAS,
        rt.BEBIDAS,
        "Bebidas Ultraprocesadas",
        "Impuesto a bebidas azucaradas y comestibles ultraprocesados",
    ),
    (
        "has_fuel_tax",
        EventType.GASOLINA,
        rt.GASOLINA,
        "Impuesto Gasolina y ACPM",
        "Declaración y pago impuesto nacional a la gasolina y ACPM",
    ),
    (
        "has_plastic_tax",
        EventType.PLASTICOS,
        rt.PLASTICOS,
        "Plásticos de Un Solo Uso",
        "Impuesto nacional al consumo de plásticos de un solo uso",
    ),
    (
        "requires_rub",
        EventType.RUB,
        rt.RUB,
        "Registro Único de Beneficiarios (RUB)",
        "Reporte y actualización de beneficiarios finales",
    ),
    (
        "requires_transfer_pricing",
        EventType.PRECIOS_TRANSFERENCIA,
        rt.PRECIOS_TRANSFERENCIA,
        "Precios de Transferencia",
        "Declaración informativa y documentación comprobatoria",
    ),
    (
        "requires_country_report",
        EventType.INFORME_PAIS,
        rt.INFORME_PAIS,
        "Informe País por País",
        "Informe país por país del grupo multinacional",
    ),
]

_RENTA_SCHEDULE = {
    Classification.GRAN_CONTRIBUYENTE: (rt.RENTA_GC, "Renta Gran Contribuyente"),
    Classification.JURIDICA: (rt.RENTA_PJ, "Renta PJ"),
    Classification.NATURAL: (rt.RENTA_PN, "Renta Persona Natural"),
}

# Installment carrying the annual income-tax return itself
_DECLARATION_INSTALLMENT = {
    Classification.GRAN_CONTRIBUYENTE: 1,
    Classification.JURIDICA: 0,
    Classification.NATURAL: 0,
}

_EXOGENA_SCHEDULE = {
    Classification.GRAN_CONTRIBUYENTE: rt.EXOGENA_GC,
    Classification.JURIDICA: rt.EXOGENA_PJ,
    Classification.NATURAL: rt.EXOGENA_PN,
}


def _check_profile(profile: ClientTaxProfile) -> None:
    if not isinstance(profile.classification, Classification):
        raise ProfileError(f"Unknown classification: {profile.classification!r}")
    if not isinstance(profile.tax_regime, TaxRegime):
        raise ProfileError(f"Unknown tax regime: {profile.tax_regime!r}")
    if not isinstance(profile.iva_periodicity, IvaPeriodicity):
        raise ProfileError(f"Unknown IVA periodicity: {profile.iva_periodicity!r}")

    if (
        profile.tax_regime == TaxRegime.SIMPLE
        and profile.classification == Classification.GRAN_CONTRIBUYENTE
    ):
        raise ProfileError("Grandes contribuyentes cannot file under SIMPLE")
    if (
        profile.tax_regime == TaxRegime.ESPECIAL
        and profile.classification == Classification.NATURAL
    ):
        raise ProfileError("Régimen especial applies to legal entities only")


class DeadlineEngine:
    """
    Computes the obligation calendar for a client profile.

    Stateless apart from the (immutable) rule tables, so one engine can
    serve any number of concurrent evaluations.
    """

    def __init__(self, tables: Optional[RuleTableRegistry] = None) -> None:
        self.tables = tables or RuleTableRegistry()

    def applicable_types(self, profile: ClientTaxProfile) -> set[EventType]:
        """Obligation types a profile triggers, independent of year."""
        _check_profile(profile)
        types: set[EventType] = set()

        if profile.tax_regime == TaxRegime.SIMPLE:
            types.add(EventType.SIMPLE)
        else:
            types.add(EventType.RENTA)
        if profile.iva_periodicity != IvaPeriodicity.NONE:
            types.add(EventType.IVA)
        if profile.tax_regime == TaxRegime.ESPECIAL:
            types.add(EventType.REGISTRO_RTE)
        if profile.requires_exogena:
            types.add(EventType.EXOGENA)
        if profile.has_foreign_assets:
            types.add(EventType.EXTERIOR)
        for flag, event_type, *_ in _FLAG_OBLIGATIONS:
            if getattr(profile, flag):
                types.add(event_type)
        return types

    def window_years(self, reference: date) -> list[int]:
        """The reference year, plus neighbours whose filings may spill into it."""
        years = [reference.year]
        for year in (reference.year - 1, reference.year + 1):
            if self.tables.has_year(year):
                years.append(year)
        return sorted(years)

    def compute_window(
        self, profile: ClientTaxProfile, reference: date
    ) -> list[TaxEvent]:
        """
        Obligations around a reference date, across every year in
        window_years().

        A November-December filing from last year's table is due in
        January, so a single-year calendar misses it. The reference year
        itself must have a table.
        """
        events: list[TaxEvent] = []
        for year in self.window_years(reference):
            events.extend(self.compute_obligations(profile, year))
        return sorted(events, key=lambda e: e.sort_key)

    def compute_obligations(
        self, profile: ClientTaxProfile, year: int
    ) -> list[TaxEvent]:
        """
        Generate every obligation for the profile in a calendar year.

        Sorted by due date, then type priority, then title. Raises
        UnsupportedYearError, ProfileError or RuleTableError rather than
        silently omitting an obligation.
        """
        _check_profile(profile)
        table = self.tables.get(year)
        events: list[TaxEvent] = []

        if profile.tax_regime == TaxRegime.SIMPLE:
            events.extend(self._simple_events(profile, table))
        else:
            events.extend(self._renta_events(profile, table))
            events.extend(self._iva_events(profile, table))

        if profile.tax_regime == TaxRegime.ESPECIAL:
            events.extend(
                self._schedule_events(
                    profile,
                    table,
                    rt.REGISTRO_RTE,
                    EventType.REGISTRO_RTE,
                    "Actualización Registro Web RTE",
                    "Actualización anual del registro web del régimen especial",
                    with_label=False,
                )
            )

        if profile.requires_exogena:
            key = _EXOGENA_SCHEDULE[profile.classification]
            events.extend(
                self._schedule_events(
                    profile,
                    table,
                    key,
                    EventType.EXOGENA,
                    "Información Exógena",
                    "Presentación información exógena año gravable anterior",
                    with_label=False,
                )
            )

        if profile.has_foreign_assets:
            key, _ = _RENTA_SCHEDULE[profile.classification]
            rule = table.schedule(key)[_DECLARATION_INSTALLMENT[profile.classification]]
            events.append(
                TaxEvent(
                    event_id=f"{year}-exterior",
                    title="Activos en el Exterior",
                    due_date=rule.resolve(year, profile.nit),
                    event_type=EventType.EXTERIOR,
                    description="Declaración anual de activos en el exterior",
                )
            )

        for flag, event_type, key, title, description in _FLAG_OBLIGATIONS:
            if getattr(profile, flag):
                events.extend(
                    self._schedule_events(
                        profile, table, key, event_type, title, description
                    )
                )

        return sorted(events, key=lambda e: e.sort_key)

    # ------------------------------------------------------------------
    # Obligation families
    # ------------------------------------------------------------------

    def _renta_events(
        self, profile: ClientTaxProfile, table: CalendarTable
    ) -> list[TaxEvent]:
        key, title = _RENTA_SCHEDULE[profile.classification]
        if profile.classification == Classification.NATURAL:
            return self._schedule_events(
                profile,
                table,
                key,
                EventType.RENTA,
                title,
                "Declaración anual de renta personas naturales",
                with_label=False,
            )
        return self._schedule_events(
            profile,
            table,
            key,
            EventType.RENTA,
            f"{title} -",
            "Declaración y pago impuesto de renta",
        )

    def _iva_events(
        self, profile: ClientTaxProfile, table: CalendarTable
    ) -> list[TaxEvent]:
        if profile.iva_periodicity == IvaPeriodicity.BIMESTRAL:
            return self._schedule_events(
                profile,
                table,
                rt.IVA_BIMESTRAL,
                EventType.IVA,
                "IVA Bimestral",
                "Declaración y pago IVA período",
            )
        if profile.iva_periodicity == IvaPeriodicity.CUATRIMESTRAL:
            return self._schedule_events(
                profile,
                table,
                rt.IVA_CUATRIMESTRAL,
                EventType.IVA,
                "IVA Cuatrimestral",
                "Declaración y pago IVA período",
            )
        return []

    def _simple_events(
        self, profile: ClientTaxProfile, table: CalendarTable
    ) -> list[TaxEvent]:
        events = self._schedule_events(
            profile,
            table,
            rt.SIMPLE_ANUAL,
            EventType.SIMPLE,
            "Declaración Anual SIMPLE",
            f"Declaración anual consolidada Régimen Simple (año gravable {table.year})",
            with_label=False,
        )
        events.extend(
            self._schedule_events(
                profile,
                table,
                rt.SIMPLE_ANTICIPOS,
                EventType.SIMPLE,
                "Anticipo SIMPLE",
                "Pago anticipo bimestral SIMPLE",
            )
        )
        if profile.iva_periodicity != IvaPeriodicity.NONE:
            events.extend(
                self._schedule_events(
                    profile,
                    table,
                    rt.IVA_SIMPLE,
                    EventType.IVA,
                    "IVA Anual SIMPLE",
                    f"Declaración anual de IVA contribuyentes SIMPLE (año {table.year})",
                    with_label=False,
                )
            )
        return events

    def _schedule_events(
        self,
        profile: ClientTaxProfile,
        table: CalendarTable,
        key: str,
        event_type: EventType,
        title: str,
        description: str,
        with_label: bool = True,
    ) -> list[TaxEvent]:
        events: list[TaxEvent] = []
        for idx, rule in enumerate(table.schedule(key), start=1):
            events.append(
                TaxEvent(
                    event_id=f"{table.year}-{key}-{idx}",
                    title=f"{title} {rule.label}" if with_label else title,
                    due_date=rule.resolve(table.year, profile.nit),
                    event_type=event_type,
                    description=(
                        f"{description} {rule.label}" if with_label else description
                    ),
                )
            )
        return events


def compute_obligations(
    profile: ClientTaxProfile,
    year: int,
    tables: Optional[RuleTableRegistry] = None,
) -> list[TaxEvent]:
    """Convenience wrapper around DeadlineEngine.compute_obligations."""
    return DeadlineEngine(tables).compute_obligations(profile, year)
