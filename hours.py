"""
Time model: how many hours a job really takes.

Contracted hours plus commute, unpaid breaks and preparation, spread over
the weeks actually worked once holidays are taken.
"""

from __future__ import annotations

from dataclasses import dataclass

import config as cfg
from numeric import clamp, non_negative


@dataclass(frozen=True)
class TimeBudget:
    contract_hours_per_week: float = 37.5
    commute_minutes_per_day: float = 0.0      # round trip
    unpaid_break_minutes_per_day: float = 0.0
    prep_minutes_per_day: float = 0.0
    work_days_per_week: float = 5.0
    holiday_days_per_year: float = 28.0


@dataclass(frozen=True)
class TimeBreakdown:
    weekly_contract_hours: float
    weekly_commute_hours: float
    weekly_break_hours: float
    weekly_prep_hours: float
    weekly_total_hours: float
    working_weeks: float
    annual_contract_hours: float
    annual_total_hours: float

    @property
    def weekly_unpaid_hours(self) -> float:
        return self.weekly_total_hours - self.weekly_contract_hours

    @property
    def annual_unpaid_hours(self) -> float:
        return self.annual_total_hours - self.annual_contract_hours


def true_hours(budget: TimeBudget) -> TimeBreakdown:
    """Weekly and annual hours genuinely spent on work.

    Zero work days means no working weeks (and no hours) rather than a
    division error.
    """
    days = clamp(budget.work_days_per_week, 0.0, 7.0)
    contract = non_negative(budget.contract_hours_per_week)

    commute = non_negative(budget.commute_minutes_per_day) * days / 60
    breaks = non_negative(budget.unpaid_break_minutes_per_day) * days / 60
    prep = non_negative(budget.prep_minutes_per_day) * days / 60
    weekly_total = contract + commute + breaks + prep

    if days > 0:
        holiday_weeks = non_negative(budget.holiday_days_per_year) / days
        working_weeks = max(cfg.WEEKS_PER_YEAR - holiday_weeks, 0.0)
    else:
        working_weeks = 0.0

    return TimeBreakdown(
        weekly_contract_hours=contract,
        weekly_commute_hours=commute,
        weekly_break_hours=breaks,
        weekly_prep_hours=prep,
        weekly_total_hours=weekly_total,
        working_weeks=working_weeks,
        annual_contract_hours=contract * working_weeks,
        annual_total_hours=weekly_total * working_weeks,
    )
