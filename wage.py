"""
True hourly wage: net pay left after every deduction and work cost,
divided by every hour the job really takes.

``calculate`` runs the whole pipeline (deductions, stacked student loans,
time model) from one ``CalculationInputs`` value; the CLI and web API both
go through it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional

import config as cfg
from hours import TimeBreakdown, TimeBudget, true_hours
from jurisdictions import load_jurisdiction, parse_loan_plan, parse_region
from loans import StackedLoanResult, amortize_loans, instruments_for_plans
from numeric import clamp, finite, non_negative, safe_div
from tax import DeductionResult, PensionConfig, compute_deductions, parse_pension_mode


# ─── Data Classes ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class WorkCosts:
    """Cash spent because of the job (time is handled by the time model)."""

    commute_cost_monthly: float = 0.0
    work_clothes_annual: float = 0.0
    other_annual: float = 0.0
    stress_tax_percent: float = 0.0   # share of net pay written off to stress

    @property
    def annual_total(self) -> float:
        return (
            non_negative(self.commute_cost_monthly) * cfg.MONTHS_PER_YEAR
            + non_negative(self.work_clothes_annual)
            + non_negative(self.other_annual)
        )


@dataclass(frozen=True)
class TrueWageResult:
    """``None`` rates mean "not applicable" (no hours, no contract)."""

    true_hourly_rate: Optional[float]
    assumed_hourly_rate: Optional[float]
    percent_of_assumed: Optional[float]
    net_after_costs: float
    annual_work_costs: float
    loan_repayment: float
    time: TimeBreakdown


def compute_true_hourly_wage(
    deductions: DeductionResult,
    budget: TimeBudget,
    costs: Optional[WorkCosts] = None,
    loan_repayment: float = 0.0,
) -> TrueWageResult:
    """Compare the hourly rate a salary suggests with the one it really pays.

    The assumed rate divides gross pay by contract hours over a full
    52-week year. The true rate divides what is left after deductions,
    student loans, work costs and the stress discount by annual true hours.
    """
    costs = costs or WorkCosts()
    time = true_hours(budget)
    loan_repayment = non_negative(loan_repayment)

    annual_costs = costs.annual_total
    net_after_costs = deductions.net_income - loan_repayment - annual_costs
    stress = clamp(costs.stress_tax_percent, 0.0, 100.0)
    adjusted = net_after_costs * (1 - stress / 100)

    assumed = safe_div(deductions.gross, time.weekly_contract_hours * cfg.WEEKS_PER_YEAR)
    true_rate = safe_div(adjusted, time.annual_total_hours)
    if assumed is not None and assumed <= 0:
        assumed = None
    percent = safe_div(true_rate * 100, assumed) if true_rate is not None and assumed else None

    return TrueWageResult(
        true_hourly_rate=true_rate,
        assumed_hourly_rate=assumed,
        percent_of_assumed=percent,
        net_after_costs=net_after_costs,
        annual_work_costs=annual_costs,
        loan_repayment=loan_repayment,
        time=time,
    )


# ─── Full calculation ─────────────────────────────────────────────────

def _flag(value: Any) -> bool:
    """Form checkboxes arrive as strings; JSON as real booleans."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass(frozen=True)
class CalculationInputs:
    """Everything the calculator form collects."""

    salary: float = cfg.DEFAULT_INPUTS["salary"]
    region: str = cfg.DEFAULT_INPUTS["region"]
    tax_year: int = cfg.BASE_TAX_YEAR
    pension_percent: float = cfg.DEFAULT_INPUTS["pension_percent"]
    pension_mode: str = cfg.DEFAULT_INPUTS["pension_mode"]
    loans: Mapping[str, float] = field(default_factory=dict)   # plan -> balance
    salary_growth: float = cfg.DEFAULT_INPUTS["salary_growth"]
    contract_hours: float = cfg.DEFAULT_INPUTS["contract_hours"]
    commute_minutes: float = cfg.DEFAULT_INPUTS["commute_minutes"]
    unpaid_break: float = cfg.DEFAULT_INPUTS["unpaid_break"]
    prep_time: float = cfg.DEFAULT_INPUTS["prep_time"]
    work_days: float = cfg.DEFAULT_INPUTS["work_days"]
    holiday_days: float = cfg.DEFAULT_INPUTS["holiday_days"]
    commute_cost: float = cfg.DEFAULT_INPUTS["commute_cost"]
    work_clothes: float = cfg.DEFAULT_INPUTS["work_clothes"]
    stress_tax: float = cfg.DEFAULT_INPUTS["stress_tax"]
    pre_tax_deductions: float = 0.0
    wfh_relief: bool = False        # claim the HMRC home-working allowance

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CalculationInputs":
        """Build inputs from loosely-typed form/JSON data.

        Numbers fall back to defaults when missing or unreadable; unknown
        region, pension mode or loan plan names raise ``ValueError``.
        """
        defaults = cls()

        def number(key: str) -> float:
            return finite(data.get(key), getattr(defaults, key))

        loans = data.get("loans") or {}
        if not isinstance(loans, Mapping):
            raise ValueError("'loans' must map plan names to balances")
        parsed_loans = {parse_loan_plan(plan).value: non_negative(balance) for plan, balance in loans.items()}

        return cls(
            salary=number("salary"),
            region=parse_region(data.get("region", defaults.region)).value,
            tax_year=int(number("tax_year")),
            pension_percent=number("pension_percent"),
            pension_mode=parse_pension_mode(data.get("pension_mode", defaults.pension_mode)).value,
            loans=parsed_loans,
            salary_growth=number("salary_growth"),
            contract_hours=number("contract_hours"),
            commute_minutes=number("commute_minutes"),
            unpaid_break=number("unpaid_break"),
            prep_time=number("prep_time"),
            work_days=number("work_days"),
            holiday_days=number("holiday_days"),
            commute_cost=number("commute_cost"),
            work_clothes=number("work_clothes"),
            stress_tax=number("stress_tax"),
            pre_tax_deductions=number("pre_tax_deductions"),
            wfh_relief=_flag(data.get("wfh_relief", False)),
        )

    @property
    def time_budget(self) -> TimeBudget:
        return TimeBudget(
            contract_hours_per_week=self.contract_hours,
            commute_minutes_per_day=self.commute_minutes,
            unpaid_break_minutes_per_day=self.unpaid_break,
            prep_minutes_per_day=self.prep_time,
            work_days_per_week=self.work_days,
            holiday_days_per_year=self.holiday_days,
        )

    @property
    def work_costs(self) -> WorkCosts:
        return WorkCosts(
            commute_cost_monthly=self.commute_cost,
            work_clothes_annual=self.work_clothes,
            stress_tax_percent=self.stress_tax,
        )

    @property
    def pension(self) -> PensionConfig:
        return PensionConfig(self.pension_percent, parse_pension_mode(self.pension_mode))

    @property
    def allowable_expenses(self) -> float:
        """Annual expenses taken off taxable pay."""
        relief = cfg.WFH_RELIEF_WEEKLY * cfg.WEEKS_PER_YEAR if self.wfh_relief else 0.0
        return non_negative(self.pre_tax_deductions) + relief


@dataclass
class CalculationResults:
    inputs: CalculationInputs
    deductions: DeductionResult
    loans: StackedLoanResult
    wage: TrueWageResult

    @property
    def time(self) -> TimeBreakdown:
        return self.wage.time

    @property
    def true_hourly_rate(self) -> Optional[float]:
        return self.wage.true_hourly_rate


def calculate(inputs: CalculationInputs) -> CalculationResults:
    """Run deductions, student loans and the time model for one set of inputs.

    Student loan repayments are assessed on the same pay as NI, so salary
    sacrifice lowers them too.
    """
    jurisdiction = load_jurisdiction(inputs.region, inputs.tax_year)
    deductions = compute_deductions(
        inputs.salary,
        jurisdiction,
        inputs.pension,
        pre_tax_deductions=inputs.allowable_expenses,
    )
    instruments = instruments_for_plans(inputs.loans, inputs.tax_year)
    loan_result = amortize_loans(
        instruments,
        deductions.social_insurance_base,
        inputs.salary_growth,
    )
    wage = compute_true_hourly_wage(
        deductions,
        inputs.time_budget,
        inputs.work_costs,
        loan_repayment=loan_result.summary.annual_repayment,
    )
    return CalculationResults(inputs=inputs, deductions=deductions, loans=loan_result, wage=wage)


# ─── What-if scenarios ────────────────────────────────────────────────

WHAT_IF_LABELS = {
    "wfh2": "WFH 2 days/week",
    "wfh3": "WFH 3 days/week",
    "raise10": "10% raise",
    "raise20": "20% raise",
}


@dataclass(frozen=True)
class WhatIfScenario:
    key: str
    label: str
    true_hourly_rate: Optional[float]
    difference: Optional[float]
    percent_change: Optional[float]


def what_if(
    scenario: str,
    inputs: CalculationInputs,
    current: Optional[CalculationResults] = None,
) -> WhatIfScenario:
    """Re-run the calculation with one change applied."""
    if scenario not in WHAT_IF_LABELS:
        options = ", ".join(WHAT_IF_LABELS)
        raise ValueError(f"Unknown scenario {scenario!r} (choose from: {options})")

    if scenario in cfg.WFH_COMMUTE_SHARE:
        share = cfg.WFH_COMMUTE_SHARE[scenario]
        modified = replace(
            inputs,
            commute_minutes=inputs.commute_minutes * share,
            commute_cost=inputs.commute_cost * share,
        )
    else:
        modified = replace(inputs, salary=inputs.salary * cfg.RAISE_FACTOR[scenario])

    current = current or calculate(inputs)
    before = current.true_hourly_rate
    after = calculate(modified).true_hourly_rate

    difference = after - before if after is not None and before is not None else None
    ratio = safe_div(after, before) if after is not None and before is not None else None

    return WhatIfScenario(
        key=scenario,
        label=WHAT_IF_LABELS[scenario],
        true_hourly_rate=after,
        difference=difference,
        percent_change=(ratio - 1) * 100 if ratio is not None else None,
    )


def all_what_ifs(inputs: CalculationInputs) -> List[WhatIfScenario]:
    current = calculate(inputs)
    return [what_if(key, inputs, current) for key in WHAT_IF_LABELS]


def summary_dict(results: CalculationResults) -> Dict[str, Any]:
    """Headline numbers, rounded for display."""

    def r2(value: Optional[float]) -> Optional[float]:
        return None if value is None else round(value, 2)

    d = results.deductions
    return {
        "true_hourly_rate": r2(results.wage.true_hourly_rate),
        "assumed_hourly_rate": r2(results.wage.assumed_hourly_rate),
        "percent_of_assumed": r2(results.wage.percent_of_assumed),
        "net_income": r2(d.net_income),
        "monthly_net": r2(d.monthly_net),
        "student_loan_annual": r2(results.loans.summary.annual_repayment),
        "effective_rate_pct": r2(d.effective_rate * 100),
        "marginal_rate_pct": r2(d.marginal_rate * 100),
        "annual_true_hours": r2(results.time.annual_total_hours),
    }
