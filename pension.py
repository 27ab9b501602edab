"""
Workplace pension projection with employer matching.

Tax and NI savings come from running the deduction calculator with and
without the contribution, so they follow the same bands, taper and pension
mode as take-home pay.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import config as cfg
from jurisdictions import Jurisdiction
from numeric import clamp, finite, non_negative, safe_div
from tax import PensionConfig, PensionMode, compute_deductions


@dataclass(frozen=True)
class PensionInputs:
    gross_salary: float
    employee_percent: float
    employer_match_percent: float
    employer_match_cap: float          # highest employee % the employer will match
    current_age: int
    retirement_age: int
    current_pot: float = 0.0
    expected_return: float = 0.05
    salary_growth: float = 0.03
    include_state_pension: bool = True
    mode: PensionMode = PensionMode.SALARY_SACRIFICE


@dataclass(frozen=True)
class PensionYear:
    year: int
    age: int
    salary: float
    employee_contribution: float
    employer_contribution: float
    total_contribution: float
    pot_start: float
    growth: float
    pot_end: float
    tax_saved: float
    ni_saved: float


@dataclass
class PensionProjection:
    rows: List[PensionYear] = field(default_factory=list, repr=False)
    total_employee: float = 0.0
    total_employer: float = 0.0
    total_tax_saved: float = 0.0
    total_ni_saved: float = 0.0
    pot_at_retirement: float = 0.0
    pot_without_match: float = 0.0
    state_pension_annual: float = 0.0

    @property
    def employer_match_value(self) -> float:
        return self.pot_at_retirement - self.pot_without_match

    @property
    def monthly_income(self) -> float:
        """Pot drawn at the safe withdrawal rate, per month."""
        return self.pot_at_retirement * cfg.SAFE_WITHDRAWAL_RATE / cfg.MONTHS_PER_YEAR

    @property
    def total_annual_income(self) -> float:
        return self.pot_at_retirement * cfg.SAFE_WITHDRAWAL_RATE + self.state_pension_annual

    @property
    def effective_return(self) -> Optional[float]:
        """Pot value per pound the employee actually gave up after tax and NI relief."""
        net_cost = self.total_employee - self.total_tax_saved - self.total_ni_saved
        return safe_div(self.pot_at_retirement, net_cost)


def project_pension(inputs: PensionInputs, jurisdiction: Jurisdiction) -> PensionProjection:
    """Project a workplace pension pot to retirement.

    Contributions arrive through the year, so they earn half a year's
    return in the year they are paid.
    """
    years = max(int(finite(inputs.retirement_age)) - int(finite(inputs.current_age)), 0)
    years = min(years, cfg.MAX_PROJECTION_YEARS)
    employee_pct = clamp(inputs.employee_percent, 0.0, 100.0)
    matched = min(employee_pct, non_negative(inputs.employer_match_cap))
    employer_pct = min(non_negative(inputs.employer_match_percent), matched)
    rate = max(finite(inputs.expected_return), -0.99)
    growth_rate = max(finite(inputs.salary_growth), -0.99)
    pension = PensionConfig(employee_pct, inputs.mode)

    result = PensionProjection()
    pot = non_negative(inputs.current_pot)
    pot_without_match = pot
    salary = non_negative(inputs.gross_salary)

    for year in range(years):
        employee = salary * employee_pct / 100
        employer = salary * employer_pct / 100
        total = employee + employer

        without = compute_deductions(salary, jurisdiction)
        with_pension = compute_deductions(salary, jurisdiction, pension)
        tax_saved = without.tax_owed - (with_pension.tax_owed - with_pension.tax_relief)
        ni_saved = without.social_insurance_owed - with_pension.social_insurance_owed

        growth = (pot + total / 2) * rate
        pot_end = pot + total + growth
        pot_without_match += employee + (pot_without_match + employee / 2) * rate

        result.rows.append(PensionYear(
            year=year + 1,
            age=int(finite(inputs.current_age)) + year,
            salary=salary,
            employee_contribution=employee,
            employer_contribution=employer,
            total_contribution=total,
            pot_start=pot,
            growth=growth,
            pot_end=pot_end,
            tax_saved=tax_saved,
            ni_saved=ni_saved,
        ))
        result.total_employee += employee
        result.total_employer += employer
        result.total_tax_saved += tax_saved
        result.total_ni_saved += ni_saved

        pot = pot_end
        salary *= 1 + growth_rate

    result.pot_at_retirement = pot
    result.pot_without_match = pot_without_match
    if inputs.include_state_pension and inputs.retirement_age >= cfg.STATE_PENSION_AGE:
        result.state_pension_annual = cfg.STATE_PENSION_WEEKLY * cfg.WEEKS_PER_YEAR
    return result
