"""
DIAN due-date rule tables, versioned by calendar year.

Each table maps an obligation schedule to its installments, and each
installment resolves a due date from the taxpayer's NIT:

- LAST_DIGIT       - ten dates, indexed by the last NIT digit (0-9)
- LAST_TWO_DIGITS  - bands over the last two digits (01-02 ... 99-00)
- UNIFORM          - a single date for every taxpayer

Dates are stored as "MM-DD" relative to the table year, shifted by
``year_offset`` for filings that fall in the following year (the
Nov-Dec VAT period, December withholding, annual SIMPLE returns).

Sources: DIAN national tax calendar decrees for 2025 and 2026.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, Union


class CalendarError(ValueError):
    """Base class for calendar configuration and data errors."""


class UnsupportedYearError(CalendarError):
    """No rule table exists for the requested year."""


class RuleTableError(CalendarError):
    """A rule table is incomplete or cannot resolve a digit group."""


class DigitKey(Enum):
    LAST_DIGIT = "last_digit"
    LAST_TWO_DIGITS = "last_two_digits"
    UNIFORM = "uniform"


# Schedule keys
RENTA_GC = "renta_gran_contribuyente"
RENTA_PJ = "renta_persona_juridica"
RENTA_PN = "renta_persona_natural"
IVA_BIMESTRAL = "iva_bimestral"
IVA_CUATRIMESTRAL = "iva_cuatrimestral"
IVA_SIMPLE = "iva_simple_anual"
SIMPLE_ANUAL = "simple_anual"
SIMPLE_ANTICIPOS = "simple_anticipos"
RETENCION = "retencion"
GMF = "gmf"
EXOGENA_GC = "exogena_gran_contribuyente"
EXOGENA_PJ = "exogena_persona_juridica"
EXOGENA_PN = "exogena_persona_natural"
PATRIMONIO = "patrimonio"
CARBONO = "carbono"
BEBIDAS = "bebidas_ultraprocesadas"
GASOLINA = "gasolina_acpm"
PLASTICOS = "plasticos_un_solo_uso"
RUB = "rub"
PRECIOS_TRANSFERENCIA = "precios_transferencia"
INFORME_PAIS = "informe_pais_por_pais"
REGISTRO_RTE = "registro_rte"

_MMDD = re.compile(r"^(\d{2})-(\d{2})$")


def nit_digits(nit: Optional[str]) -> str:
    """Strip every non-digit character from a NIT."""
    return re.sub(r"\D", "", nit or "")


def last_digit(nit: Optional[str]) -> int:
    """Last NIT digit; a NIT without digits resolves to 0."""
    digits = nit_digits(nit)
    return int(digits[-1]) if digits else 0


def last_two_digits(nit: Optional[str]) -> int:
    """Last two NIT digits as an int (0-99); no digits resolves to 0."""
    digits = nit_digits(nit)
    return int(digits[-2:]) if digits else 0


def _parse_mmdd(year: int, mmdd: str) -> date:
    match = _MMDD.match(mmdd)
    if match is None:
        raise RuleTableError(f"Malformed table date: {mmdd!r}")
    try:
        return date(year, int(match.group(1)), int(match.group(2)))
    except ValueError as exc:
        raise RuleTableError(f"Invalid table date {mmdd!r} for {year}") from exc


@dataclass(frozen=True)
class DueDateRule:
    """One installment of an obligation schedule."""

    label: str
    digit_key: DigitKey
    dates: tuple[str, ...] = ()
    bands: tuple[tuple[int, int, str], ...] = ()
    year_offset: int = 0

    def resolve(self, year: int, nit: Optional[str]) -> date:
        """
        Return the due date for a taxpayer in the table year.

        Raises RuleTableError when the NIT's digit group has no entry.
        """
        target_year = year + self.year_offset

        if self.digit_key == DigitKey.UNIFORM:
            return _parse_mmdd(target_year, self.dates[0])

        if self.digit_key == DigitKey.LAST_DIGIT:
            digit = last_digit(nit)
            if digit >= len(self.dates):
                raise RuleTableError(
                    f"{self.label}: no due date for NIT digit {digit}"
                )
            return _parse_mmdd(target_year, self.dates[digit])

        # DIAN pairs the last two digits as 01-02, ..., 99-00
        group = last_two_digits(nit) or 100
        for low, high, mmdd in self.bands:
            if low <= group <= high:
                return _parse_mmdd(target_year, mmdd)
        raise RuleTableError(
            f"{self.label}: no due date for NIT digits {group % 100:02d}"
        )

    def validate(self, year: int) -> None:
        """Check that the rule is total over its digit domain."""
        if self.digit_key == DigitKey.UNIFORM:
            if len(self.dates) != 1:
                raise RuleTableError(f"{self.label}: uniform rule needs one date")
        elif self.digit_key == DigitKey.LAST_DIGIT:
            if len(self.dates) != 10:
                raise RuleTableError(
                    f"{self.label}: expected 10 dates, got {len(self.dates)}"
                )
        else:
            expected = 1
            for low, high, _ in sorted(self.bands):
                if low != expected or high < low:
                    raise RuleTableError(
                        f"{self.label}: digit bands are not contiguous at {low}"
                    )
                expected = high + 1
            if expected != 101:
                raise RuleTableError(f"{self.label}: digit bands do not reach 00")

        target_year = year + self.year_offset
        for mmdd in self.dates:
            _parse_mmdd(target_year, mmdd)
        for _, _, mmdd in self.bands:
            _parse_mmdd(target_year, mmdd)


@dataclass(frozen=True)
class CalendarTable:
    """All obligation schedules for one calendar year."""

    year: int
    schedules: dict[str, tuple[DueDateRule, ...]] = field(default_factory=dict)

    def schedule(self, key: str) -> tuple[DueDateRule, ...]:
        try:
            return self.schedules[key]
        except KeyError:
            raise RuleTableError(
                f"Calendar {self.year} has no schedule for {key!r}"
            ) from None

    def validate(self) -> None:
        for key, rules in self.schedules.items():
            if not rules:
                raise RuleTableError(f"Calendar {self.year}: {key} is empty")
            for rule in rules:
                rule.validate(self.year)


# ---------------------------------------------------------------------------
# 2025 calendar
# ---------------------------------------------------------------------------
# Ten-date tuples are indexed by last NIT digit: position 0 is digit 0,
# which DIAN schedules last.

_MAR_2025 = ("03-25", "03-11", "03-12", "03-13", "03-14", "03-17", "03-18", "03-19", "03-20", "03-21")
_MAY_2025 = ("05-23", "05-12", "05-13", "05-14", "05-15", "05-16", "05-19", "05-20", "05-21", "05-22")
_JUL_2025 = ("07-18", "07-11", "07-12", "07-15", "07-16", "07-17", "07-18", "07-21", "07-22", "07-23")
_SEP_2025 = ("09-18", "09-09", "09-10", "09-11", "09-12", "09-15", "09-16", "09-17", "09-18", "09-19")
_NOV_2025 = ("11-20", "11-11", "11-12", "11-13", "11-14", "11-17", "11-18", "11-19", "11-20", "11-21")
_JAN_2026 = ("01-23", "01-14", "01-15", "01-16", "01-17", "01-20", "01-21", "01-22", "01-23", "01-24")
_FEB_2026 = ("02-23", "02-10", "02-11", "02-12", "02-13", "02-16", "02-17", "02-18", "02-19", "02-20")

_RETENCION_2025 = [
    ("Ene", ("02-21", "02-10", "02-11", "02-12", "02-13", "02-14", "02-17", "02-18", "02-19", "02-20"), 0),
    ("Feb", ("03-21", "03-10", "03-11", "03-12", "03-13", "03-14", "03-17", "03-18", "03-19", "03-20"), 0),
    ("Mar", ("04-23", "04-08", "04-09", "04-10", "04-11", "04-14", "04-15", "04-16", "04-17", "04-18"), 0),
    ("Abr", ("05-22", "05-12", "05-13", "05-14", "05-15", "05-16", "05-19", "05-20", "05-21", "05-22"), 0),
    ("May", ("06-20", "06-09", "06-10", "06-11", "06-12", "06-13", "06-16", "06-17", "06-18", "06-19"), 0),
    ("Jun", ("07-17", "07-10", "07-11", "07-14", "07-15", "07-16", "07-17", "07-18", "07-21", "07-22"), 0),
    ("Jul", ("08-21", "08-08", "08-11", "08-12", "08-13", "08-14", "08-15", "08-18", "08-19", "08-20"), 0),
    ("Ago", ("09-17", "09-08", "09-09", "09-10", "09-11", "09-12", "09-15", "09-16", "09-17", "09-18"), 0),
    ("Sep", ("10-21", "10-08", "10-09", "10-10", "10-13", "10-14", "10-15", "10-16", "10-17", "10-20"), 0),
    ("Oct", ("11-20", "11-10", "11-11", "11-12", "11-13", "11-14", "11-17", "11-18", "11-19", "11-20"), 0),
    ("Nov", ("12-19", "12-09", "12-10", "12-11", "12-12", "12-15", "12-16", "12-17", "12-18", "12-19"), 0),
    ("Dic", _JAN_2026, 1),
]

_RENTA_PN_2025 = (
    (1, 2, "08-12"), (3, 4, "08-13"), (5, 6, "08-14"), (7, 8, "08-15"),
    (9, 10, "08-19"), (11, 12, "08-20"), (13, 14, "08-21"), (15, 16, "08-22"),
    (17, 18, "08-25"), (19, 20, "08-26"), (21, 22, "08-27"), (23, 24, "08-28"),
    (25, 26, "08-29"), (27, 28, "09-01"), (29, 30, "09-02"), (31, 32, "09-03"),
    (33, 34, "09-04"), (35, 36, "09-05"), (37, 38, "09-08"), (39, 40, "09-09"),
    (41, 42, "09-10"), (43, 44, "09-11"), (45, 46, "09-12"), (47, 48, "09-15"),
    (49, 50, "09-16"), (51, 52, "09-17"), (53, 54, "09-18"), (55, 56, "09-19"),
    (57, 58, "09-22"), (59, 60, "09-23"), (61, 62, "09-24"), (63, 64, "09-25"),
    (65, 66, "09-26"), (67, 68, "09-29"), (69, 70, "09-30"), (71, 72, "10-01"),
    (73, 74, "10-02"), (75, 76, "10-03"), (77, 78, "10-06"), (79, 80, "10-07"),
    (81, 82, "10-08"), (83, 84, "10-09"), (85, 86, "10-10"), (87, 88, "10-14"),
    (89, 90, "10-15"), (91, 92, "10-16"), (93, 94, "10-17"), (95, 96, "10-20"),
    (97, 98, "10-21"), (99, 100, "10-22"),
)

_GMF_2025 = [
    ("Ene", "01-15"), ("Feb", "02-17"), ("Mar", "03-17"), ("Abr", "04-15"),
    ("May", "05-15"), ("Jun", "06-16"), ("Jul", "07-15"), ("Ago", "08-15"),
    ("Sep", "09-15"), ("Oct", "10-15"), ("Nov", "11-18"), ("Dic", "12-15"),
]

_BIMESTRES = ("Ene-Feb", "Mar-Abr", "May-Jun", "Jul-Ago", "Sep-Oct", "Nov-Dic")
_CUATRIMESTRES = ("Ene-Abr", "May-Ago", "Sep-Dic")

_CALENDAR_DATA: dict[int, dict[str, list[dict]]] = {
    2025: {
        RENTA_GC: [
            {"label": "Cuota 1", "dates": ("02-24", "02-11", "02-12", "02-13", "02-14", "02-17", "02-18", "02-19", "02-20", "02-21")},
            {"label": "Declaración y Cuota 2", "dates": ("04-24", "04-09", "04-10", "04-11", "04-14", "04-15", "04-16", "04-21", "04-22", "04-23")},
            {"label": "Cuota 3", "dates": ("06-24", "06-10", "06-11", "06-12", "06-13", "06-16", "06-17", "06-18", "06-19", "06-20")},
        ],
        RENTA_PJ: [
            {"label": "Cuota 1", "dates": _MAY_2025},
            {"label": "Cuota 2", "dates": _JUL_2025},
        ],
        RENTA_PN: [{"label": "Declaración anual", "bands": _RENTA_PN_2025}],
        IVA_BIMESTRAL: [
            {"label": _BIMESTRES[0], "dates": _MAR_2025},
            {"label": _BIMESTRES[1], "dates": _MAY_2025},
            {"label": _BIMESTRES[2], "dates": _JUL_2025},
            {"label": _BIMESTRES[3], "dates": _SEP_2025},
            {"label": _BIMESTRES[4], "dates": _NOV_2025},
            {"label": _BIMESTRES[5], "dates": _JAN_2026, "year_offset": 1},
        ],
        IVA_CUATRIMESTRAL: [
            {"label": _CUATRIMESTRES[0], "dates": _MAY_2025},
            {"label": _CUATRIMESTRES[1], "dates": _SEP_2025},
            {"label": _CUATRIMESTRES[2], "dates": _JAN_2026, "year_offset": 1},
        ],
        IVA_SIMPLE: [{"label": "Anual", "dates": _FEB_2026, "year_offset": 1}],
        SIMPLE_ANUAL: [
            {"label": "Anual", "dates": ("04-30", "04-15", "04-16", "04-21", "04-22", "04-23", "04-24", "04-25", "04-28", "04-29"), "year_offset": 1},
        ],
        SIMPLE_ANTICIPOS: [
            {"label": "Bimestre 1", "dates": _MAY_2025},
            {"label": "Bimestre 2", "dates": _JUL_2025},
            {"label": "Bimestre 3", "dates": ("09-22", "09-08", "09-09", "09-10", "09-11", "09-12", "09-15", "09-16", "09-17", "09-18")},
            {"label": "Bimestre 4", "dates": ("11-18", "11-10", "11-11", "11-12", "11-13", "11-14", "11-18", "11-19", "11-20", "11-21")},
            {"label": "Bimestre 5", "dates": _JAN_2026, "year_offset": 1},
            {"label": "Bimestre 6", "dates": ("03-20", "03-10", "03-11", "03-12", "03-13", "03-14", "03-17", "03-18", "03-19", "03-20"), "year_offset": 1},
        ],
        RETENCION: [
            {"label": label, "dates": dates, "year_offset": offset}
            for label, dates, offset in _RETENCION_2025
        ],
        GMF: [{"label": label, "date": mmdd} for label, mmdd in _GMF_2025],
        EXOGENA_GC: [
            {"label": "Grandes contribuyentes", "dates": ("05-12", "04-28", "04-29", "04-30", "05-02", "05-05", "05-06", "05-07", "05-08", "05-09")},
        ],
        EXOGENA_PJ: [
            {"label": "Personas jurídicas", "dates": ("05-05", "05-06", "05-07", "05-08", "05-09", "05-12", "05-13", "05-14", "05-15", "05-16")},
        ],
        EXOGENA_PN: [
            {"label": "Personas naturales", "dates": ("05-19", "05-20", "05-21", "05-22", "05-23", "05-26", "05-27", "05-28", "05-29", "05-30")},
        ],
        PATRIMONIO: [
            {"label": "Cuota 1", "dates": _MAY_2025},
            {"label": "Cuota 2", "dates": _SEP_2025},
        ],
        CARBONO: [
            {"label": label, "dates": dates, "year_offset": offset}
            for label, dates, offset in zip(
                _BIMESTRES,
                (_MAR_2025, _MAY_2025, _JUL_2025, _SEP_2025, _NOV_2025, _JAN_2026),
                (0, 0, 0, 0, 0, 1),
            )
        ],
        BEBIDAS: [
            {"label": label, "dates": dates, "year_offset": offset}
            for label, dates, offset in zip(
                _BIMESTRES,
                (_MAR_2025, _MAY_2025, _JUL_2025, _SEP_2025, _NOV_2025, _JAN_2026),
                (0, 0, 0, 0, 0, 1),
            )
        ],
        GASOLINA: [
            {"label": label, "dates": dates, "year_offset": offset}
            for label, dates, offset in _RETENCION_2025
        ],
        PLASTICOS: [{"label": "Anual", "dates": _FEB_2026, "year_offset": 1}],
        RUB: [{"label": "Actualización anual", "date": "07-31"}],
        PRECIOS_TRANSFERENCIA: [{"label": "Declaración informativa", "dates": _SEP_2025}],
        INFORME_PAIS: [{"label": "Reporte anual", "date": "12-12"}],
        REGISTRO_RTE: [{"label": "Actualización anual", "date": "03-31"}],
    },
}

# ---------------------------------------------------------------------------
# 2026 calendar
# ---------------------------------------------------------------------------

_MAR_2026 = ("03-24", "03-10", "03-11", "03-12", "03-13", "03-16", "03-17", "03-18", "03-19", "03-20")
_APR_2026 = ("04-24", "04-13", "04-14", "04-15", "04-16", "04-17", "04-20", "04-21", "04-22", "04-23")
_MAY_2026 = ("05-26", "05-12", "05-13", "05-14", "05-15", "05-19", "05-20", "05-21", "05-22", "05-25")
_JUN_2026 = ("06-23", "06-09", "06-10", "06-11", "06-12", "06-16", "06-17", "06-18", "06-19", "06-22")
_JUL_2026 = ("07-23", "07-09", "07-10", "07-13", "07-14", "07-15", "07-16", "07-17", "07-21", "07-22")
_AUG_2026 = ("08-25", "08-11", "08-12", "08-13", "08-14", "08-18", "08-19", "08-20", "08-21", "08-24")
_SEP_2026 = ("09-21", "09-08", "09-09", "09-10", "09-11", "09-14", "09-15", "09-16", "09-17", "09-18")
_OCT_2026 = ("10-22", "10-08", "10-09", "10-13", "10-14", "10-15", "10-16", "10-19", "10-20", "10-21")
_NOV_2026 = ("11-24", "11-10", "11-11", "11-12", "11-13", "11-17", "11-18", "11-19", "11-20", "11-23")
_DEC_2026 = ("12-22", "12-09", "12-10", "12-11", "12-14", "12-15", "12-16", "12-17", "12-18", "12-21")
_JAN_2027 = ("01-26", "01-13", "01-14", "01-15", "01-18", "01-19", "01-20", "01-21", "01-22", "01-25")
_FEB_2027 = ("02-22", "02-09", "02-10", "02-11", "02-12", "02-15", "02-16", "02-17", "02-18", "02-19")
_MAR_2027 = ("03-23", "03-09", "03-10", "03-11", "03-12", "03-15", "03-16", "03-17", "03-18", "03-19")
_APR_2027 = ("04-27", "04-14", "04-15", "04-16", "04-19", "04-20", "04-21", "04-22", "04-23", "04-26")

_RETENCION_2026 = [
    ("Ene", _FEB_2026, 0),
    ("Feb", _MAR_2026, 0),
    ("Mar", _APR_2026, 0),
    ("Abr", _MAY_2026, 0),
    ("May", _JUN_2026, 0),
    ("Jun", _JUL_2026, 0),
    ("Jul", _AUG_2026, 0),
    ("Ago", _SEP_2026, 0),
    ("Sep", _OCT_2026, 0),
    ("Oct", _NOV_2026, 0),
    ("Nov", _DEC_2026, 0),
    ("Dic", _JAN_2027, 1),
]

_RENTA_PN_2026 = (
    (1, 2, "08-12"), (3, 4, "08-13"), (5, 6, "08-14"), (7, 8, "08-18"),
    (9, 10, "08-19"), (11, 12, "08-20"), (13, 14, "08-21"), (15, 16, "08-24"),
    (17, 18, "08-25"), (19, 20, "08-26"), (21, 22, "08-27"), (23, 24, "08-28"),
    (25, 26, "08-31"), (27, 28, "09-01"), (29, 30, "09-02"), (31, 32, "09-03"),
    (33, 34, "09-04"), (35, 36, "09-07"), (37, 38, "09-08"), (39, 40, "09-09"),
    (41, 42, "09-10"), (43, 44, "09-11"), (45, 46, "09-14"), (47, 48, "09-15"),
    (49, 50, "09-16"), (51, 52, "09-17"), (53, 54, "09-18"), (55, 56, "09-21"),
    (57, 58, "09-22"), (59, 60, "09-23"), (61, 62, "09-24"), (63, 64, "09-25"),
    (65, 66, "09-28"), (67, 68, "09-29"), (69, 70, "09-30"), (71, 72, "10-01"),
    (73, 74, "10-02"), (75, 76, "10-05"), (77, 78, "10-06"), (79, 80, "10-07"),
    (81, 82, "10-08"), (83, 84, "10-09"), (85, 86, "10-13"), (87, 88, "10-14"),
    (89, 90, "10-15"), (91, 92, "10-16"), (93, 94, "10-19"), (95, 96, "10-20"),
    (97, 98, "10-21"), (99, 100, "10-22"),
)

_GMF_2026 = [
    ("Ene", "01-15"), ("Feb", "02-16"), ("Mar", "03-16"), ("Abr", "04-15"),
    ("May", "05-15"), ("Jun", "06-16"), ("Jul", "07-15"), ("Ago", "08-18"),
    ("Sep", "09-15"), ("Oct", "10-15"), ("Nov", "11-17"), ("Dic", "12-15"),
]

_BIMONTHLY_2026 = (_MAR_2026, _MAY_2026, _JUL_2026, _SEP_2026, _NOV_2026, _JAN_2027)

_CALENDAR_DATA[2026] = {
    RENTA_GC: [
        {"label": "Cuota 1", "dates": _FEB_2026},
        {"label": "Declaración y Cuota 2", "dates": _APR_2026},
        {"label": "Cuota 3", "dates": ("06-30", "06-16", "06-17", "06-18", "06-19", "06-22", "06-23", "06-24", "06-25", "06-26")},
    ],
    RENTA_PJ: [
        {"label": "Cuota 1", "dates": _MAY_2026},
        {"label": "Cuota 2", "dates": _JUL_2026},
    ],
    RENTA_PN: [{"label": "Declaración anual", "bands": _RENTA_PN_2026}],
    IVA_BIMESTRAL: [
        {"label": label, "dates": dates, "year_offset": 1 if label == "Nov-Dic" else 0}
        for label, dates in zip(_BIMESTRES, _BIMONTHLY_2026)
    ],
    IVA_CUATRIMESTRAL: [
        {"label": _CUATRIMESTRES[0], "dates": _MAY_2026},
        {"label": _CUATRIMESTRES[1], "dates": _SEP_2026},
        {"label": _CUATRIMESTRES[2], "dates": _JAN_2027, "year_offset": 1},
    ],
    IVA_SIMPLE: [{"label": "Anual", "dates": _FEB_2027, "year_offset": 1}],
    SIMPLE_ANUAL: [{"label": "Anual", "dates": _APR_2027, "year_offset": 1}],
    SIMPLE_ANTICIPOS: [
        {"label": "Bimestre 1", "dates": _MAY_2026},
        {"label": "Bimestre 2", "dates": _JUL_2026},
        {"label": "Bimestre 3", "dates": _SEP_2026},
        {"label": "Bimestre 4", "dates": _NOV_2026},
        {"label": "Bimestre 5", "dates": _JAN_2027, "year_offset": 1},
        {"label": "Bimestre 6", "dates": _MAR_2027, "year_offset": 1},
    ],
    RETENCION: [
        {"label": label, "dates": dates, "year_offset": offset}
        for label, dates, offset in _RETENCION_2026
    ],
    GMF: [{"label": label, "date": mmdd} for label, mmdd in _GMF_2026],
    EXOGENA_GC: [
        {"label": "Grandes contribuyentes", "dates": ("05-08", "04-24", "04-27", "04-28", "04-29", "04-30", "05-04", "05-05", "05-06", "05-07")},
    ],
    EXOGENA_PJ: [
        {"label": "Personas jurídicas", "dates": ("05-25", "05-11", "05-12", "05-13", "05-14", "05-15", "05-19", "05-20", "05-21", "05-22")},
    ],
    EXOGENA_PN: [
        {"label": "Personas naturales", "dates": ("06-09", "05-26", "05-27", "05-28", "05-29", "06-01", "06-02", "06-03", "06-04", "06-05")},
    ],
    PATRIMONIO: [
        {"label": "Cuota 1", "dates": _MAY_2026},
        {"label": "Cuota 2", "dates": _SEP_2026},
    ],
    CARBONO: [
        {"label": label, "dates": dates, "year_offset": 1 if label == "Nov-Dic" else 0}
        for label, dates in zip(_BIMESTRES, _BIMONTHLY_2026)
    ],
    BEBIDAS: [
        {"label": label, "dates": dates, "year_offset": 1 if label == "Nov-Dic" else 0}
        for label, dates in zip(_BIMESTRES, _BIMONTHLY_2026)
    ],
    GASOLINA: [
        {"label": label, "dates": dates, "year_offset": offset}
        for label, dates, offset in _RETENCION_2026
    ],
    PLASTICOS: [{"label": "Anual", "dates": _FEB_2027, "year_offset": 1}],
    RUB: [{"label": "Actualización anual", "date": "07-31"}],
    PRECIOS_TRANSFERENCIA: [{"label": "Declaración informativa", "dates": _SEP_2026}],
    INFORME_PAIS: [{"label": "Reporte anual", "date": "12-14"}],
    REGISTRO_RTE: [{"label": "Actualización anual", "date": "03-31"}],
}


def _build_rule(entry: dict) -> DueDateRule:
    year_offset = entry.get("year_offset", 0)
    if "bands" in entry:
        return DueDateRule(
            label=entry["label"],
            digit_key=DigitKey.LAST_TWO_DIGITS,
            bands=tuple(entry["bands"]),
            year_offset=year_offset,
        )
    if "date" in entry:
        return DueDateRule(
            label=entry["label"],
            digit_key=DigitKey.UNIFORM,
            dates=(entry["date"],),
            year_offset=year_offset,
        )
    return DueDateRule(
        label=entry["label"],
        digit_key=DigitKey.LAST_DIGIT,
        dates=tuple(entry["dates"]),
        year_offset=year_offset,
    )


class RuleTableRegistry:
    """
    Year-keyed collection of validated calendar tables.

    Lookups for a year without a table raise UnsupportedYearError; there
    is no fallback to a neighbouring year.
    """

    def __init__(
        self, data: Optional[dict[int, dict[str, list[dict]]]] = None
    ) -> None:
        self._tables: dict[int, CalendarTable] = {}
        self._load_tables(_CALENDAR_DATA if data is None else data)

    def _load_tables(self, data: dict[int, dict[str, list[dict]]]) -> None:
        for year, schedules in data.items():
            table = CalendarTable(
                year=year,
                schedules={
                    key: tuple(_build_rule(entry) for entry in entries)
                    for key, entries in schedules.items()
                },
            )
            table.validate()
            self._tables[year] = table

    def supported_years(self) -> list[int]:
        return sorted(self._tables)

    def has_year(self, year: int) -> bool:
        return year in self._tables

    def get(self, year: Union[int, str]) -> CalendarTable:
        """Return the table for a year or raise UnsupportedYearError."""
        try:
            return self._tables[int(year)]
        except (KeyError, ValueError):
            raise UnsupportedYearError(
                f"No tax calendar for {year}; supported years: "
                f"{', '.join(str(y) for y in self.supported_years())}"
            ) from None
