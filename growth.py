"""
Compounding projections: savings pots, FIRE timelines, opportunity cost
and fee drag.

Contributions are a share of a growing salary, so they grow each year
along with it. All rates are fractions (0.07 = 7%).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional

import config as cfg
from numeric import bounded_years, finite, non_negative, safe_div


# ─── Growth projector ─────────────────────────────────────────────────

@dataclass(frozen=True)
class GrowthYear:
    year: int
    balance: float        # end of year
    contribution: float
    growth: float


@dataclass
class ProjectionResult:
    rows: List[GrowthYear] = field(default_factory=list, repr=False)
    starting_balance: float = 0.0
    final_balance: float = 0.0
    years_simulated: int = 0
    target_balance: Optional[float] = None
    years_to_target: Optional[float] = None   # fractional, interpolated within the crossing year
    target_year: Optional[int] = None         # first whole year ending at or above target

    @property
    def total_contributions(self) -> float:
        return sum(r.contribution for r in self.rows)

    @property
    def total_growth(self) -> float:
        return sum(r.growth for r in self.rows)

    @property
    def reached_target(self) -> bool:
        return self.years_to_target is not None

    def balance_at(self, year: int) -> float:
        """Balance at the end of *year*; year 0 is the starting balance."""
        if year <= 0 or not self.rows:
            return self.starting_balance
        return self.rows[min(year, len(self.rows)) - 1].balance


def project_growth(
    starting_balance: float,
    annual_contribution: float,
    annual_return_rate: float,
    salary_growth_rate: float = 0.0,
    years: Optional[int] = None,
    target_balance: Optional[float] = None,
) -> ProjectionResult:
    """Compound a pot forward one year at a time.

    Each year: ``balance = balance * (1 + r) + contribution``, then the
    contribution grows with salary.

    Parameters
    ----------
    years : int, optional
        Fixed horizon. Without it the run stops once *target_balance* is
        reached (FIRE mode), or after 30 years when no target is given.
    target_balance : float, optional
        Balance to reach. ``years_to_target`` is linearly interpolated
        inside the crossing year for a one-decimal "years to FIRE".

    Returns
    -------
    ProjectionResult
        Never runs more than 80 years.
    """
    balance = non_negative(starting_balance)
    contribution = non_negative(annual_contribution)
    rate = max(finite(annual_return_rate), -0.99)
    growth_rate = max(finite(salary_growth_rate), -0.99)
    target = non_negative(target_balance) if target_balance is not None else None

    stop_at_target = years is None and target is not None
    fallback = cfg.MAX_PROJECTION_YEARS if stop_at_target else cfg.DEFAULT_LOAN_YEARS
    limit = bounded_years(years, fallback, cfg.MAX_PROJECTION_YEARS)

    result = ProjectionResult(starting_balance=balance, final_balance=balance, target_balance=target)
    if target is not None and balance >= target:
        result.years_to_target = 0.0
        result.target_year = 0
        if stop_at_target:
            return result

    for year in range(1, limit + 1):
        growth = balance * rate
        new_balance = max(balance + growth + contribution, 0.0)
        result.rows.append(GrowthYear(year=year, balance=new_balance, contribution=contribution, growth=growth))

        if target is not None and result.years_to_target is None and new_balance >= target:
            result.years_to_target = (year - 1) + (target - balance) / (new_balance - balance)
            result.target_year = year

        balance = new_balance
        contribution *= 1 + growth_rate
        if stop_at_target and result.target_year is not None:
            break

    result.final_balance = balance
    result.years_simulated = len(result.rows)
    return result


# ─── FIRE ─────────────────────────────────────────────────────────────

def fire_number(annual_expenses: float, multiple: float = cfg.FIRE_MULTIPLE) -> float:
    """Pot that sustains *annual_expenses* at a 4% withdrawal rate."""
    return non_negative(annual_expenses) * multiple


@dataclass(frozen=True)
class FireProjection:
    fire_number: float
    years_to_fire: Optional[float]
    fire_age: Optional[float]
    projection: ProjectionResult


def project_fire(
    current_savings: float,
    annual_savings: float,
    annual_expenses: float,
    annual_return_rate: float = cfg.REAL_MARKET_RETURN,
    salary_growth_rate: float = 0.0,
    current_age: Optional[float] = None,
) -> FireProjection:
    target = fire_number(annual_expenses)
    projection = project_growth(
        current_savings,
        annual_savings,
        annual_return_rate,
        salary_growth_rate,
        target_balance=target,
    )
    years = projection.years_to_target
    age = None
    if years is not None and current_age is not None:
        age = finite(current_age) + years
    return FireProjection(fire_number=target, years_to_fire=years, fire_age=age, projection=projection)


@dataclass(frozen=True)
class Milestone:
    name: str
    target: float


@dataclass(frozen=True)
class FireProgress:
    fire_number: float
    percent_complete: float
    amount_remaining: float
    current_passive_income: float
    savings_rate_needed: float      # % of annual expenses to save to reach FI in 15 years
    milestones: List[Milestone]
    achieved: List[Milestone]
    next_milestone: Optional[Milestone]
    zone: str


FIRE_ZONES = (
    (100, "Financially Independent!"),
    (75, "Almost There"),
    (50, "Halfway"),
    (25, "Building"),
    (0, "Starting Out"),
)


def fire_progress(
    current_savings: float,
    annual_expenses: float,
    years_to_fi: int = 15,
    annual_return_rate: float = cfg.REAL_MARKET_RETURN,
) -> FireProgress:
    """Where *current_savings* sits on the road to the FIRE number."""
    savings = non_negative(current_savings)
    expenses = non_negative(annual_expenses)
    target = fire_number(expenses)

    ratio = safe_div(savings, target)
    percent = min(ratio * 100, 100.0) if ratio is not None else 100.0

    # Level annual saving that closes the gap in years_to_fi years.
    years = bounded_years(years_to_fi, 15, cfg.MAX_PROJECTION_YEARS)
    rate = max(finite(annual_return_rate), -0.99)
    growth_factor = (1 + rate) ** years
    gap = target - savings * growth_factor
    if gap > 0 and rate != 0:
        annual_needed = gap * rate / (growth_factor - 1)
    elif gap > 0:
        annual_needed = gap / years
    else:
        annual_needed = 0.0
    rate_needed = safe_div(annual_needed * 100, expenses) or 0.0

    milestones = [
        Milestone("First £10K", 10_000),
        Milestone("£25K", 25_000),
        Milestone("£50K", 50_000),
        Milestone("£100K", 100_000),
        Milestone("Coast FI", target * 0.5),
        Milestone("Lean FI", target * 0.75),
        Milestone("Full FI", target),
    ]
    achieved = [m for m in milestones if savings >= m.target]
    upcoming = [m for m in milestones if savings < m.target]
    zone = next(name for floor, name in FIRE_ZONES if percent >= floor)

    return FireProgress(
        fire_number=target,
        percent_complete=percent,
        amount_remaining=max(0.0, target - savings),
        current_passive_income=savings * cfg.SAFE_WITHDRAWAL_RATE,
        savings_rate_needed=max(0.0, rate_needed),
        milestones=milestones,
        achieved=achieved,
        next_milestone=upcoming[0] if upcoming else None,
        zone=zone,
    )


# ─── Opportunity cost ─────────────────────────────────────────────────

@dataclass(frozen=True)
class OpportunityCost:
    today_cost: float
    future_value: float
    growth_multiplier: float
    years_to_grow: int
    annual_retirement_income: float
    hours_of_life: Optional[float]   # purchase price in hours at the true hourly wage


def opportunity_cost(
    amount: float,
    current_age: int,
    retire_age: int,
    true_hourly_rate: Optional[float] = None,
    annual_return_rate: float = cfg.REAL_MARKET_RETURN,
) -> OpportunityCost:
    """What *amount* spent today would have grown to by retirement."""
    amount = non_negative(amount)
    years = max(int(finite(retire_age)) - int(finite(current_age)), 0)
    future = amount * (1 + annual_return_rate) ** years
    hours = safe_div(amount, true_hourly_rate) if true_hourly_rate else None
    return OpportunityCost(
        today_cost=amount,
        future_value=future,
        growth_multiplier=safe_div(future, amount) or 1.0,
        years_to_grow=years,
        annual_retirement_income=future * cfg.SAFE_WITHDRAWAL_RATE,
        hours_of_life=hours,
    )


# ─── Fee drag ─────────────────────────────────────────────────────────

def fee_impact(
    starting_pot: float,
    annual_contribution: float,
    years: int,
    annual_return_rate: float,
    fee_rate: float,
) -> float:
    """Final pot when *fee_rate* comes straight off the return each year."""
    projection = project_growth(
        starting_pot,
        annual_contribution,
        annual_return_rate - non_negative(fee_rate),
        years=years,
    )
    return projection.final_balance


@dataclass(frozen=True)
class FeeComparison:
    low_fee: float
    high_fee: float
    difference: float
    percent_lost: float


def compare_fees(
    starting_pot: float,
    annual_contribution: float,
    years: int,
    annual_return_rate: float,
    low_fee_rate: float = 0.002,
    high_fee_rate: float = 0.01,
) -> FeeComparison:
    low = fee_impact(starting_pot, annual_contribution, years, annual_return_rate, low_fee_rate)
    high = fee_impact(starting_pot, annual_contribution, years, annual_return_rate, high_fee_rate)
    difference = low - high
    lost = safe_div(difference * 100, low)
    return FeeComparison(
        low_fee=low,
        high_fee=high,
        difference=difference,
        percent_lost=lost if lost is not None and not math.isnan(lost) else 0.0,
    )
