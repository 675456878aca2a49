"""Tests for the DeadlineEngine (obligation composition and ordering)."""

from collections import Counter
from datetime import date

import pytest

from tax_calendar import rule_tables as rt
from tax_calendar.deadlines import (
    Classification,
    ClientTaxProfile,
    DeadlineEngine,
    EventType,
    IvaPeriodicity,
    ProfileError,
    TaxRegime,
    compute_obligations,
)
from tax_calendar.queries import by_type
from tax_calendar.rule_tables import RuleTableError, RuleTableRegistry, UnsupportedYearError

ALL_FLAGS = {
    "is_retention_agent": EventType.RETENCION,
    "has_gmf": EventType.GMF,
    "requires_exogena": EventType.EXOGENA,
    "has_patrimony_tax": EventType.PATRIMONIO,
    "has_foreign_assets": EventType.EXTERIOR,
    "has_carbon_tax": EventType.CARBONO,
    "has_beverage_tax": EventType.BEBIDAS,
    "has_fuel_tax": EventType.GASOLINA,
    "has_plastic_tax": EventType.PLASTICOS,
    "requires_rub": EventType.RUB,
    "requires_transfer_pricing": EventType.PRECIOS_TRANSFERENCIA,
    "requires_country_report": EventType.INFORME_PAIS,
}


@pytest.fixture(scope="module")
def engine() -> DeadlineEngine:
    return DeadlineEngine()


@pytest.fixture
def juridica() -> ClientTaxProfile:
    return ClientTaxProfile(
        nit="900123456-9",
        classification=Classification.JURIDICA,
        tax_regime=TaxRegime.ORDINARIO,
        iva_periodicity=IvaPeriodicity.BIMESTRAL,
    )


def _with_all_flags(**kwargs) -> ClientTaxProfile:
    base = dict(
        nit="900123456-9",
        classification=Classification.JURIDICA,
        iva_periodicity=IvaPeriodicity.BIMESTRAL,
    )
    base.update({flag: True for flag in ALL_FLAGS})
    base.update(kwargs)
    return ClientTaxProfile(**base)


# ── Baseline composition ─────────────────────────────────────────────


def test_baseline_is_income_tax_and_vat(engine: DeadlineEngine, juridica: ClientTaxProfile):
    events = engine.compute_obligations(juridica, 2026)
    counts = Counter(e.event_type for e in events)
    assert counts == {EventType.RENTA: 2, EventType.IVA: 6}


def test_large_taxpayer_has_three_installments(engine: DeadlineEngine):
    profile = ClientTaxProfile(
        nit="860000123-4",
        classification=Classification.GRAN_CONTRIBUYENTE,
        iva_periodicity=IvaPeriodicity.CUATRIMESTRAL,
    )
    counts = Counter(e.event_type for e in engine.compute_obligations(profile, 2026))
    assert counts == {EventType.RENTA: 3, EventType.IVA: 3}


def test_natural_person_single_return_by_two_digits(engine: DeadlineEngine):
    profile = ClientTaxProfile(nit="52987657", classification=Classification.NATURAL)
    events = engine.compute_obligations(profile, 2026)
    assert len(events) == 1
    assert events[0].event_type == EventType.RENTA
    assert events[0].due_date == date(2026, 9, 22)


def test_applicable_types_baseline(engine: DeadlineEngine, juridica: ClientTaxProfile):
    assert engine.applicable_types(juridica) == {EventType.RENTA, EventType.IVA}


# ── VAT periodicity ──────────────────────────────────────────────────


@pytest.mark.parametrize("regime", [TaxRegime.ORDINARIO, TaxRegime.SIMPLE, TaxRegime.ESPECIAL])
def test_vat_none_suppresses_all_vat_events(engine: DeadlineEngine, regime: TaxRegime):
    profile = _with_all_flags(tax_regime=regime, iva_periodicity=IvaPeriodicity.NONE)
    for year in (2025, 2026):
        assert by_type(engine.compute_obligations(profile, year), EventType.IVA) == []


def test_bimonthly_vat_dates(engine: DeadlineEngine, juridica: ClientTaxProfile):
    iva = by_type(engine.compute_obligations(juridica, 2026), EventType.IVA)
    assert [e.title for e in iva] == [
        "IVA Bimestral Ene-Feb",
        "IVA Bimestral Mar-Abr",
        "IVA Bimestral May-Jun",
        "IVA Bimestral Jul-Ago",
        "IVA Bimestral Sep-Oct",
        "IVA Bimestral Nov-Dic",
    ]
    assert iva[0].due_date == date(2026, 3, 20)
    assert iva[-1].due_date == date(2027, 1, 25)


def test_four_monthly_vat(engine: DeadlineEngine, juridica: ClientTaxProfile):
    profile = ClientTaxProfile(
        nit=juridica.nit,
        classification=Classification.JURIDICA,
        iva_periodicity=IvaPeriodicity.CUATRIMESTRAL,
    )
    iva = by_type(engine.compute_obligations(profile, 2026), EventType.IVA)
    assert [e.title for e in iva] == [
        "IVA Cuatrimestral Ene-Abr",
        "IVA Cuatrimestral May-Ago",
        "IVA Cuatrimestral Sep-Dic",
    ]


# ── Regimes ──────────────────────────────────────────────────────────


def test_simple_regime_replaces_income_tax(engine: DeadlineEngine):
    profile = ClientTaxProfile(
        nit="901555222-1",
        classification=Classification.JURIDICA,
        tax_regime=TaxRegime.SIMPLE,
        iva_periodicity=IvaPeriodicity.BIMESTRAL,
    )
    events = engine.compute_obligations(profile, 2026)
    counts = Counter(e.event_type for e in events)
    assert counts == {EventType.SIMPLE: 7, EventType.IVA: 1}
    assert by_type(events, EventType.IVA)[0].title == "IVA Anual SIMPLE"
    annual = [e for e in events if e.title == "Declaración Anual SIMPLE"]
    assert annual[0].due_date.year == 2027


def test_special_regime_adds_web_registry(engine: DeadlineEngine):
    profile = ClientTaxProfile(
        nit="800765432-0",
        classification=Classification.JURIDICA,
        tax_regime=TaxRegime.ESPECIAL,
    )
    rte = by_type(engine.compute_obligations(profile, 2026), EventType.REGISTRO_RTE)
    assert len(rte) == 1
    assert rte[0].due_date == date(2026, 3, 31)


def test_large_taxpayer_cannot_be_simple(engine: DeadlineEngine):
    profile = ClientTaxProfile(
        nit="1",
        classification=Classification.GRAN_CONTRIBUYENTE,
        tax_regime=TaxRegime.SIMPLE,
    )
    with pytest.raises(ProfileError):
        engine.compute_obligations(profile, 2026)


def test_natural_person_cannot_be_special(engine: DeadlineEngine):
    profile = ClientTaxProfile(
        nit="1", classification=Classification.NATURAL, tax_regime=TaxRegime.ESPECIAL
    )
    with pytest.raises(ProfileError):
        engine.compute_obligations(profile, 2026)


def test_unknown_classification_is_hard_failure(engine: DeadlineEngine):
    profile = ClientTaxProfile(nit="1", classification="SOCIEDAD")
    with pytest.raises(ProfileError, match="classification"):
        engine.compute_obligations(profile, 2026)


def test_unknown_regime_is_hard_failure(engine: DeadlineEngine):
    profile = ClientTaxProfile(
        nit="1", classification=Classification.JURIDICA, tax_regime="MONOTRIBUTO"
    )
    with pytest.raises(ProfileError, match="regime"):
        engine.compute_obligations(profile, 2026)


# ── Flags ────────────────────────────────────────────────────────────


@pytest.mark.parametrize("flag,event_type", list(ALL_FLAGS.items()))
def test_each_flag_adds_its_obligation(
    engine: DeadlineEngine, juridica: ClientTaxProfile, flag: str, event_type: EventType
):
    profile = ClientTaxProfile(
        nit=juridica.nit,
        classification=juridica.classification,
        iva_periodicity=juridica.iva_periodicity,
        **{flag: True},
    )
    types = {e.event_type for e in engine.compute_obligations(profile, 2026)}
    assert types == {EventType.RENTA, EventType.IVA, event_type}


def test_withholding_has_twelve_periods(engine: DeadlineEngine):
    profile = ClientTaxProfile(
        nit="900123456-9",
        classification=Classification.JURIDICA,
        is_retention_agent=True,
    )
    retencion = by_type(engine.compute_obligations(profile, 2026), EventType.RETENCION)
    assert len(retencion) == 12
    assert retencion[0].title == "Retención Fuente Ene"
    assert retencion[-1].due_date == date(2027, 1, 25)


def test_foreign_assets_on_declaration_date(engine: DeadlineEngine, juridica: ClientTaxProfile):
    profile = ClientTaxProfile(
        nit=juridica.nit,
        classification=Classification.JURIDICA,
        has_foreign_assets=True,
    )
    events = engine.compute_obligations(profile, 2026)
    exterior = by_type(events, EventType.EXTERIOR)[0]
    renta = by_type(events, EventType.RENTA)[0]
    assert exterior.due_date == renta.due_date == date(2026, 5, 25)


def test_large_taxpayer_foreign_assets_use_second_installment(engine: DeadlineEngine):
    profile = ClientTaxProfile(
        nit="860000123-9",
        classification=Classification.GRAN_CONTRIBUYENTE,
        has_foreign_assets=True,
    )
    exterior = by_type(engine.compute_obligations(profile, 2026), EventType.EXTERIOR)[0]
    assert exterior.due_date == date(2026, 4, 23)


def test_exogena_by_classification(engine: DeadlineEngine):
    natural = ClientTaxProfile(
        nit="52987650", classification=Classification.NATURAL, requires_exogena=True
    )
    exogena = by_type(engine.compute_obligations(natural, 2026), EventType.EXOGENA)
    assert len(exogena) == 1
    assert exogena[0].due_date == date(2026, 6, 9)


# ── Determinism and ordering ─────────────────────────────────────────


def test_deterministic(engine: DeadlineEngine):
    profile = _with_all_flags()
    assert engine.compute_obligations(profile, 2026) == engine.compute_obligations(profile, 2026)
    assert compute_obligations(profile, 2026) == engine.compute_obligations(profile, 2026)


@pytest.mark.parametrize("year", [2025, 2026])
def test_sorted_by_date_then_type_priority_then_title(engine: DeadlineEngine, year: int):
    events = engine.compute_obligations(_with_all_flags(), year)
    keys = [e.sort_key for e in events]
    assert keys == sorted(keys)


def test_same_day_tie_break(engine: DeadlineEngine):
    events = engine.compute_obligations(_with_all_flags(), 2026)
    same_day = [e for e in events if e.due_date == date(2026, 3, 20)]
    assert [e.event_type for e in same_day] == [
        EventType.IVA,
        EventType.RETENCION,
        EventType.CARBONO,
        EventType.BEBIDAS,
        EventType.GASOLINA,
    ]


def test_event_ids_unique(engine: DeadlineEngine):
    events = engine.compute_obligations(_with_all_flags(), 2026)
    assert len({e.event_id for e in events}) == len(events)


def test_same_composition_across_years(engine: DeadlineEngine):
    profile = _with_all_flags()
    e2025 = engine.compute_obligations(profile, 2025)
    e2026 = engine.compute_obligations(profile, 2026)
    assert Counter(e.event_type for e in e2025) == Counter(e.event_type for e in e2026)
    assert [e.due_date for e in e2025] != [e.due_date for e in e2026]


# ── Multi-year window ────────────────────────────────────────────────


def test_window_years_include_neighbours_with_tables(engine: DeadlineEngine):
    assert engine.window_years(date(2026, 1, 17)) == [2025, 2026]
    assert engine.window_years(date(2025, 6, 1)) == [2025, 2026]
    assert engine.window_years(date(2027, 1, 19)) == [2026, 2027]


def test_window_includes_previous_year_spill_over(
    engine: DeadlineEngine, juridica: ClientTaxProfile
):
    events = engine.compute_window(juridica, date(2026, 1, 17))
    assert len(events) == 16
    assert events == sorted(events, key=lambda e: e.sort_key)
    nov_dic = [e for e in events if e.title == "IVA Bimestral Nov-Dic"]
    assert len(nov_dic) == 2
    assert nov_dic[0].due_date == date(2026, 1, 24)
    assert nov_dic[1].due_date.year == 2027


def test_window_requires_reference_year_table(
    engine: DeadlineEngine, juridica: ClientTaxProfile
):
    with pytest.raises(UnsupportedYearError):
        engine.compute_window(juridica, date(2027, 1, 19))


# ── Table failures ───────────────────────────────────────────────────


def test_unsupported_year(engine: DeadlineEngine, juridica: ClientTaxProfile):
    with pytest.raises(UnsupportedYearError):
        engine.compute_obligations(juridica, 2030)


def test_missing_schedule_is_hard_failure(juridica: ClientTaxProfile):
    dates = tuple(f"05-{d:02d}" for d in range(11, 21))
    registry = RuleTableRegistry(
        {2026: {rt.RENTA_PJ: [{"label": "Cuota 1", "dates": dates}]}}
    )
    with pytest.raises(RuleTableError, match="iva_bimestral"):
        DeadlineEngine(registry).compute_obligations(juridica, 2026)
