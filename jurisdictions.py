"""
Validated jurisdiction configuration for the true-wage engine.

Turns the raw tables in ``config.py`` into immutable objects. Every check
happens here, at load time: a malformed schedule raises ``ConfigError``
before any calculation sees it.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Iterable, Optional, Sequence, Tuple

import config as cfg

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when static tax configuration is malformed."""


class Region(str, enum.Enum):
    ENGLAND = "england"
    WALES = "wales"
    SCOTLAND = "scotland"
    NORTHERN_IRELAND = "northern_ireland"


class LoanPlan(str, enum.Enum):
    PLAN1 = "plan1"
    PLAN2 = "plan2"
    PLAN4 = "plan4"
    PLAN5 = "plan5"
    POSTGRAD = "postgrad"


def _parse_enum(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        options = ", ".join(m.value for m in enum_cls)
        raise ValueError(f"Unknown {enum_cls.__name__} {value!r} (choose from: {options})") from None


def parse_region(value) -> Region:
    return _parse_enum(Region, value)


def parse_loan_plan(value) -> LoanPlan:
    return _parse_enum(LoanPlan, value)


# ─── Bracket schedule ────────────────────────────────────────────────

@dataclass(frozen=True)
class BracketSchedule:
    """Marginal bands as ascending ``(floor, rate)`` pairs.

    The rate of band *i* applies to the slice between its floor and the
    next floor; the last band is unbounded.
    """

    bands: Tuple[Tuple[float, float], ...]

    def __post_init__(self) -> None:
        if not self.bands:
            raise ConfigError("Bracket schedule needs at least one band")
        first_floor = self.bands[0][0]
        if first_floor != 0 and first_floor != -math.inf:
            raise ConfigError(f"Lowest band must start at 0, got {first_floor}")
        previous = None
        for floor, rate in self.bands:
            if math.isnan(floor) or (math.isinf(floor) and floor > 0):
                raise ConfigError(f"Band floor must be finite, got {floor}")
            if not 0.0 <= rate <= 1.0:
                raise ConfigError(f"Band rate must be within [0, 1], got {rate}")
            if previous is not None and floor <= previous:
                raise ConfigError(
                    f"Band floors must be strictly increasing ({previous} then {floor})"
                )
            previous = floor

    @classmethod
    def from_pairs(cls, pairs: Iterable[Sequence[float]]) -> "BracketSchedule":
        try:
            bands = tuple((float(floor), float(rate)) for floor, rate in pairs)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Malformed band table: {exc}") from exc
        return cls(bands)

    @property
    def floors(self) -> Tuple[float, ...]:
        return tuple(floor for floor, _ in self.bands)

    @property
    def rates(self) -> Tuple[float, ...]:
        return tuple(rate for _, rate in self.bands)

    def rate_at(self, amount: float) -> float:
        """Nominal rate of the band containing *amount*."""
        rate = self.bands[0][1]
        for floor, band_rate in self.bands:
            if amount >= floor:
                rate = band_rate
        return rate


# ─── Allowance taper ─────────────────────────────────────────────────

@dataclass(frozen=True)
class AllowanceTaperRule:
    """Tax-free allowance withdrawn at ``taper_ratio`` per unit of income.

    The ratio must exhaust the allowance exactly at ``taper_end``; this is
    checked rather than assumed.
    """

    allowance_base: float
    taper_start: float
    taper_end: float
    taper_ratio: float

    def __post_init__(self) -> None:
        if self.allowance_base < 0:
            raise ConfigError("Allowance base cannot be negative")
        if self.taper_end <= self.taper_start:
            raise ConfigError(
                f"Taper end ({self.taper_end}) must exceed taper start ({self.taper_start})"
            )
        if self.taper_ratio <= 0:
            raise ConfigError("Taper ratio must be positive")
        exhausted_at = self.taper_start + self.allowance_base / self.taper_ratio
        if abs(exhausted_at - self.taper_end) > 1.0:
            raise ConfigError(
                f"Taper ratio {self.taper_ratio} exhausts the allowance at "
                f"{exhausted_at:,.2f}, not at the configured taper end {self.taper_end:,.2f}"
            )


# ─── Student loan plan terms ─────────────────────────────────────────

@dataclass(frozen=True)
class LoanPlanTerms:
    plan: LoanPlan
    name: str
    threshold: float
    rate: float
    interest_rate: float
    write_off_years: int
    interest_spread: float = 0.0
    interest_upper_threshold: Optional[float] = None

    def __post_init__(self) -> None:
        if self.threshold < 0:
            raise ConfigError(f"{self.name}: repayment threshold cannot be negative")
        if not 0.0 <= self.rate <= 1.0:
            raise ConfigError(f"{self.name}: repayment rate must be within [0, 1]")
        if self.interest_rate < 0:
            raise ConfigError(f"{self.name}: interest rate cannot be negative")
        if self.write_off_years <= 0:
            raise ConfigError(f"{self.name}: write-off years must be positive")
        if self.interest_spread and self.interest_upper_threshold is None:
            raise ConfigError(f"{self.name}: interest spread needs an upper threshold")
        if (
            self.interest_upper_threshold is not None
            and self.interest_upper_threshold <= self.threshold
        ):
            raise ConfigError(f"{self.name}: interest upper threshold must exceed repayment threshold")


# ─── Jurisdiction ────────────────────────────────────────────────────

@dataclass(frozen=True)
class Jurisdiction:
    """Everything the deduction calculator needs for one region and tax year."""

    region: Region
    tax_year: int
    income_tax: BracketSchedule
    social_insurance: BracketSchedule
    allowance_taper: AllowanceTaperRule

    @property
    def label(self) -> str:
        name = self.region.value.replace("_", " ").title()
        return f"{name} {self.tax_year}/{(self.tax_year + 1) % 100:02d}"


def _check_tax_year(tax_year: int) -> int:
    if tax_year not in cfg.SUPPORTED_TAX_YEARS:
        years = ", ".join(str(y) for y in cfg.SUPPORTED_TAX_YEARS)
        raise ValueError(f"Unsupported tax year {tax_year} (choose from: {years})")
    return tax_year


@lru_cache(maxsize=None)
def _load(region: Region, tax_year: int) -> Jurisdiction:
    try:
        bands = cfg.REGION_INCOME_TAX_BANDS[region.value][tax_year]
        ni_bands = cfg.NI_BANDS[tax_year]
        allowance = cfg.PERSONAL_ALLOWANCE[tax_year]
    except KeyError as exc:
        raise ConfigError(f"No configuration for {region.value} {tax_year}: missing {exc}") from exc

    jurisdiction = Jurisdiction(
        region=region,
        tax_year=tax_year,
        income_tax=BracketSchedule.from_pairs(bands),
        social_insurance=BracketSchedule.from_pairs(ni_bands),
        allowance_taper=AllowanceTaperRule(
            allowance_base=float(allowance),
            taper_start=float(cfg.PA_TAPER_THRESHOLD),
            taper_end=float(cfg.PA_TAPER_END),
            taper_ratio=cfg.PA_TAPER_RATIO,
        ),
    )
    logger.debug("Loaded jurisdiction %s", jurisdiction.label)
    return jurisdiction


def load_jurisdiction(region="england", tax_year: int = cfg.BASE_TAX_YEAR) -> Jurisdiction:
    """Return the validated configuration for *region* in *tax_year*."""
    return _load(parse_region(region), _check_tax_year(int(tax_year)))


@lru_cache(maxsize=None)
def _load_plans(tax_year: int) -> Dict[LoanPlan, LoanPlanTerms]:
    try:
        raw = cfg.STUDENT_LOAN_PLANS[tax_year]
    except KeyError as exc:
        raise ConfigError(f"No student loan plans for tax year {tax_year}") from exc

    plans: Dict[LoanPlan, LoanPlanTerms] = {}
    for key, terms in raw.items():
        try:
            plan = LoanPlan(key)
        except ValueError:
            raise ConfigError(f"Unknown loan plan key {key!r} in {tax_year} configuration") from None
        upper = terms.get("interest_upper_threshold")
        try:
            plans[plan] = LoanPlanTerms(
                plan=plan,
                name=terms["name"],
                threshold=float(terms["threshold"]),
                rate=float(terms["rate"]),
                interest_rate=float(terms["interest_rate"]),
                write_off_years=int(terms["write_off_years"]),
                interest_spread=float(terms.get("interest_spread", 0.0)),
                interest_upper_threshold=float(upper) if upper is not None else None,
            )
        except KeyError as exc:
            raise ConfigError(f"{key} ({tax_year}) is missing {exc}") from exc
    logger.debug("Loaded %d student loan plans for %d", len(plans), tax_year)
    return plans


def loan_plans(tax_year: int = cfg.BASE_TAX_YEAR) -> Dict[LoanPlan, LoanPlanTerms]:
    """All configured student loan plans for *tax_year*."""
    return dict(_load_plans(_check_tax_year(int(tax_year))))


def loan_plan_terms(plan, tax_year: int = cfg.BASE_TAX_YEAR) -> LoanPlanTerms:
    return _load_plans(_check_tax_year(int(tax_year)))[parse_loan_plan(plan)]


def validate_all() -> None:
    """Load every configured region/year combination, failing fast on errors."""
    for tax_year in cfg.SUPPORTED_TAX_YEARS:
        for region in Region:
            load_jurisdiction(region, tax_year)
        loan_plans(tax_year)
