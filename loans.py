"""
Student loan amortisation for the true-wage engine.

Each loan is run as a small state machine (active -> repaid | written off)
against a shared salary path. Several loans can be active at once; each
one compares income with its own threshold, so repayments stack.

The year loop is a plain Python loop: horizons are at most a few decades.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np

import config as cfg
import tax
from jurisdictions import loan_plan_terms, parse_loan_plan
from numeric import bounded_years, finite, non_negative

logger = logging.getLogger(__name__)


# ─── Data Classes ─────────────────────────────────────────────────────

class LoanState(str, enum.Enum):
    ACTIVE = "active"
    REPAID = "repaid"
    WRITTEN_OFF = "written_off"


@dataclass
class LoanInstrument:
    """One debt and its repayment terms."""

    id: str
    balance: float
    annual_interest_rate: float
    repayment_threshold: float
    repayment_rate: float
    write_off_years: int = cfg.DEFAULT_LOAN_YEARS
    years_elapsed: int = 0               # years already repaid before the simulation
    threshold_growth: float = 0.0        # yearly indexing of the threshold; 0 keeps it flat
    interest_spread: float = 0.0         # extra interest at/above the upper threshold
    interest_upper_threshold: Optional[float] = None
    annual_overpayment: float = 0.0      # voluntary payment on top of the mandatory one
    enabled: bool = True

    @classmethod
    def from_plan(
        cls,
        plan,
        balance: float,
        tax_year: int = cfg.BASE_TAX_YEAR,
        **overrides,
    ) -> "LoanInstrument":
        """Build an instrument from a configured plan (``'plan2'``, ``'postgrad'``...)."""
        terms = loan_plan_terms(plan, tax_year)
        fields = dict(
            id=terms.plan.value,
            balance=balance,
            annual_interest_rate=terms.interest_rate,
            repayment_threshold=terms.threshold,
            repayment_rate=terms.rate,
            write_off_years=terms.write_off_years,
            interest_spread=terms.interest_spread,
            interest_upper_threshold=terms.interest_upper_threshold,
        )
        fields.update(overrides)
        return cls(**fields)

    @property
    def remaining_years(self) -> int:
        """Years left until write-off."""
        total = bounded_years(self.write_off_years, cfg.DEFAULT_LOAN_YEARS)
        return max(total - max(int(finite(self.years_elapsed)), 0), 0)


@dataclass(frozen=True)
class IncomeYear:
    year: int
    gross_income: float


@dataclass(frozen=True)
class AmortizationYear:
    year: int
    income: float
    threshold: float
    interest_rate: float
    opening_balance: float
    interest: float
    repayment: float
    closing_balance: float
    state: LoanState


@dataclass
class AmortizationResult:
    """Outcome for a single instrument."""

    instrument_id: str
    state: LoanState
    starting_balance: float
    closing_balance: float
    years_to_repay: Optional[int]     # None unless repaid
    written_off: float
    total_repaid: float
    total_interest: float
    years_simulated: int
    horizon_years: int
    schedule: List[AmortizationYear] = field(default_factory=list, repr=False)

    @property
    def first_year_repayment(self) -> float:
        return self.schedule[0].repayment if self.schedule else 0.0

    @property
    def monthly_repayment(self) -> float:
        return self.first_year_repayment / cfg.MONTHS_PER_YEAR

    def repayment_in(self, year: int) -> float:
        for row in self.schedule:
            if row.year == year:
                return row.repayment
        return 0.0

    def balance_after(self, year: int) -> float:
        """Closing balance at the end of *year*; a written-off loan reads 0 from its write-off year."""
        balance = self.starting_balance
        for row in self.schedule:
            if row.year > year:
                break
            balance = row.closing_balance
        if self.state is LoanState.WRITTEN_OFF and self.schedule and year >= self.schedule[-1].year:
            return 0.0
        return balance


# ─── Income timeline ──────────────────────────────────────────────────

def income_timeline(starting_income: float, growth_rate: float, years: int) -> List[IncomeYear]:
    """Salary path: year 1 earns *starting_income*, then grows at a fixed rate."""
    n = bounded_years(years, cfg.DEFAULT_LOAN_YEARS, cfg.MAX_PROJECTION_YEARS)
    growth = max(finite(growth_rate), -0.99)
    incomes = non_negative(starting_income) * (1 + growth) ** np.arange(n)
    return [IncomeYear(year=i + 1, gross_income=float(income)) for i, income in enumerate(incomes)]


# ─── Single-loan amortiser ────────────────────────────────────────────

def amortize_loan(instrument: LoanInstrument, timeline: Sequence[IncomeYear]) -> AmortizationResult:
    """Simulate one loan year by year until repaid, written off or out of timeline.

    Per year: interest accrues on the opening balance, the repayment is
    ``rate * max(0, income - threshold)`` plus any overpayment, capped so
    the balance cannot go below zero.
    """
    balance = non_negative(instrument.balance)
    horizon = instrument.remaining_years
    overpayment = non_negative(instrument.annual_overpayment)
    threshold_growth = max(finite(instrument.threshold_growth), -0.99)
    repayment_rate = non_negative(instrument.repayment_rate)
    base_rate = non_negative(instrument.annual_interest_rate)

    result = AmortizationResult(
        instrument_id=instrument.id,
        state=LoanState.ACTIVE,
        starting_balance=balance,
        closing_balance=balance,
        years_to_repay=None,
        written_off=0.0,
        total_repaid=0.0,
        total_interest=0.0,
        years_simulated=0,
        horizon_years=horizon,
    )

    if balance <= 0:
        result.state = LoanState.REPAID
        result.years_to_repay = 0
        return result
    if horizon == 0:
        result.state = LoanState.WRITTEN_OFF
        result.written_off = balance
        return result

    state = LoanState.ACTIVE
    for entry in timeline:
        year = entry.year
        income = non_negative(entry.gross_income)
        index = (1 + threshold_growth) ** (year - 1)
        threshold = non_negative(instrument.repayment_threshold) * index
        upper = instrument.interest_upper_threshold
        rate = float(tax.student_loan_interest_rate(
            income,
            base_rate,
            spread=non_negative(instrument.interest_spread),
            threshold=threshold,
            upper_threshold=upper * index if upper is not None else None,
        ))

        due = float(tax.student_loan_repayment(income, threshold, repayment_rate)) + overpayment
        interest = balance * rate
        repayment = min(due, balance * (1 + rate))
        closing = max(0.0, balance + interest - repayment)

        if closing <= 0.005:
            closing = 0.0
            state = LoanState.REPAID
        elif year >= horizon:
            state = LoanState.WRITTEN_OFF

        result.schedule.append(AmortizationYear(
            year=year,
            income=income,
            threshold=threshold,
            interest_rate=rate,
            opening_balance=balance,
            interest=interest,
            repayment=repayment,
            closing_balance=closing,
            state=state,
        ))
        result.total_repaid += repayment
        result.total_interest += interest
        result.years_simulated = year
        balance = closing

        if state is LoanState.REPAID:
            result.years_to_repay = year
            logger.debug("%s repaid in year %d", instrument.id, year)
            break
        if state is LoanState.WRITTEN_OFF:
            result.written_off = closing
            logger.debug("%s written off in year %d with %.2f outstanding", instrument.id, year, closing)
            break

    result.state = state
    result.closing_balance = balance
    return result


# ─── Multi-loan stacker ───────────────────────────────────────────────

@dataclass(frozen=True)
class StackYear:
    year: int
    income: float
    total_repayment: float
    repayments: Dict[str, float]
    balances: Dict[str, float]


@dataclass(frozen=True)
class StackSummary:
    total_repaid: float
    total_interest_paid: float
    total_written_off: float
    annual_repayment: float        # year-one total across loans
    monthly_repayment: float
    effective_tax_rate: float      # annual repayment as % of gross; not a real tax rate
    years_to_repay: Optional[int]  # None unless every loan is repaid
    all_repaid: bool


@dataclass
class StackedLoanResult:
    per_instrument: Dict[str, AmortizationResult]
    summary: StackSummary
    yearly: List[StackYear] = field(default_factory=list, repr=False)


def _default_years(instruments: Sequence[LoanInstrument]) -> int:
    horizons = [i.remaining_years for i in instruments]
    return max(horizons) if horizons and max(horizons) > 0 else cfg.DEFAULT_LOAN_YEARS


def amortize_loans(
    instruments: Iterable[LoanInstrument],
    starting_income: float,
    salary_growth_rate: float = 0.0,
    years: Optional[int] = None,
) -> StackedLoanResult:
    """Run every enabled loan against the same salary path and aggregate.

    Parameters
    ----------
    instruments : iterable of LoanInstrument
        Disabled or zero-balance loans are ignored.
    starting_income : float
        Gross income in year 1.
    salary_growth_rate : float
        Fixed annual salary growth.
    years : int, optional
        Simulation length. Missing or zero uses the longest write-off horizon.

    Returns
    -------
    StackedLoanResult
        Per-instrument results keyed by id, a summary and yearly totals.
    """
    active = [i for i in instruments if i.enabled and non_negative(i.balance) > 0]
    ids = [i.id for i in active]
    if len(ids) != len(set(ids)):
        raise ValueError(f"Loan instrument ids must be unique, got {ids}")

    n_years = bounded_years(years, _default_years(active), cfg.MAX_PROJECTION_YEARS)
    timeline = income_timeline(starting_income, salary_growth_rate, n_years)
    per_instrument = {i.id: amortize_loan(i, timeline) for i in active}

    yearly: List[StackYear] = []
    for entry in timeline:
        repayments = {k: r.repayment_in(entry.year) for k, r in per_instrument.items()}
        balances = {k: r.balance_after(entry.year) for k, r in per_instrument.items()}
        yearly.append(StackYear(
            year=entry.year,
            income=entry.gross_income,
            total_repayment=sum(repayments.values()),
            repayments=repayments,
            balances=balances,
        ))

    results = list(per_instrument.values())
    annual = yearly[0].total_repayment if yearly else 0.0
    gross = non_negative(starting_income)
    all_repaid = bool(results) and all(r.state is LoanState.REPAID for r in results)

    summary = StackSummary(
        total_repaid=sum(r.total_repaid for r in results),
        total_interest_paid=sum(r.total_interest for r in results),
        total_written_off=sum(r.written_off for r in results),
        annual_repayment=annual,
        monthly_repayment=annual / cfg.MONTHS_PER_YEAR,
        effective_tax_rate=annual / gross * 100 if gross > 0 else 0.0,
        years_to_repay=max(r.years_to_repay for r in results) if all_repaid else None,
        all_repaid=all_repaid,
    )
    return StackedLoanResult(per_instrument=per_instrument, summary=summary, yearly=yearly)


def instruments_for_plans(
    balances: Mapping[str, float],
    tax_year: int = cfg.BASE_TAX_YEAR,
    **overrides,
) -> List[LoanInstrument]:
    """Instruments for ``{plan: balance}``, e.g. ``{'plan2': 45_000, 'postgrad': 12_000}``."""
    return [
        LoanInstrument.from_plan(parse_loan_plan(plan), balance, tax_year, **overrides)
        for plan, balance in balances.items()
    ]


# ─── Voluntary overpayment ────────────────────────────────────────────

@dataclass(frozen=True)
class OverpaymentBenefit:
    """Effect of paying an extra amount each month into one loan."""

    instrument_id: str
    monthly_extra: float
    interest_saved: float
    extra_paid: float              # change in total paid; positive = costs more overall
    written_off_change: float
    years_saved: Optional[int]     # None when neither path repays the loan


def overpayment_benefit(
    instruments: Sequence[LoanInstrument],
    starting_income: float,
    salary_growth_rate: float = 0.0,
    monthly_extra: float = 100.0,
    target_id: Optional[str] = None,
    years: Optional[int] = None,
) -> OverpaymentBenefit:
    """Compare minimum repayments with a monthly overpayment on *target_id*."""
    active = [i for i in instruments if i.enabled and non_negative(i.balance) > 0]
    if not active:
        return OverpaymentBenefit(target_id or "", non_negative(monthly_extra), 0.0, 0.0, 0.0, None)
    target = target_id or active[0].id
    if target not in {i.id for i in active}:
        raise ValueError(f"No active loan with id {target!r}")
    extra = non_negative(monthly_extra)

    boosted = [
        replace(i, annual_overpayment=non_negative(i.annual_overpayment) + extra * cfg.MONTHS_PER_YEAR)
        if i.id == target else i
        for i in active
    ]
    base = amortize_loans(active, starting_income, salary_growth_rate, years).per_instrument[target]
    with_extra = amortize_loans(boosted, starting_income, salary_growth_rate, years).per_instrument[target]

    if with_extra.years_to_repay is None:
        years_saved = None
    elif base.years_to_repay is None:
        years_saved = base.horizon_years - with_extra.years_to_repay
    else:
        years_saved = base.years_to_repay - with_extra.years_to_repay

    return OverpaymentBenefit(
        instrument_id=target,
        monthly_extra=extra,
        interest_saved=base.total_interest - with_extra.total_interest,
        extra_paid=with_extra.total_repaid - base.total_repaid,
        written_off_change=with_extra.written_off - base.written_off,
        years_saved=years_saved,
    )
