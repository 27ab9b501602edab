"""
UK tax calculation functions for the true-wage engine.

The band and taper helpers accept numpy arrays so a whole income range can
be evaluated at once (charts, monotonicity checks). Scalar inputs work too
(promoted internally). ``compute_deductions`` works on one salary and
returns an immutable ``DeductionResult``.
"""

from __future__ import annotations

import abc
import enum
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional

import numpy as np

from jurisdictions import AllowanceTaperRule, BracketSchedule, Jurisdiction, LoanPlanTerms
from numeric import clamp, non_negative


# ─── Bracket schedule ────────────────────────────────────────────────

def band_tax(amount: np.ndarray, schedule: BracketSchedule) -> np.ndarray:
    """Tax owed on *amount* under marginal banding.

    Parameters
    ----------
    amount : array_like
        Income the schedule applies to (taxable income, or pay for NI).
    schedule : BracketSchedule
        Ascending ``(floor, rate)`` bands; the last band is unbounded.

    Returns
    -------
    np.ndarray
        Amount owed for each input value. Non-positive amounts owe 0.
    """
    amount = np.asarray(amount, dtype=float)
    amount = np.where(np.isfinite(amount), amount, 0.0)

    owed = np.zeros_like(amount)
    floors = schedule.floors
    for i, (floor, rate) in enumerate(schedule.bands):
        lower = max(floor, 0.0)
        upper = floors[i + 1] if i + 1 < len(floors) else np.inf
        in_band = np.clip(amount - lower, 0.0, upper - lower)
        owed += in_band * rate
    return owed


# ─── Personal Allowance ─────────────────────────────────────────────

def effective_allowance(income: np.ndarray, rule: AllowanceTaperRule) -> np.ndarray:
    """Tax-free allowance after the high-income taper.

    For the UK rule the allowance drops by £1 for every £2 above £100,000
    and reaches zero at £125,140. The reduction is floored to whole pence
    so the allowance never dips below zero by a fraction.
    """
    income = np.asarray(income, dtype=float)
    excess = np.maximum(income - rule.taper_start, 0.0)
    reduction = np.floor(excess * rule.taper_ratio * 100 + 1e-6) / 100
    allowance = np.clip(rule.allowance_base - reduction, 0.0, rule.allowance_base)
    return np.where(income >= rule.taper_end, 0.0, allowance)


# ─── Income Tax & National Insurance ────────────────────────────────

def income_tax(
    income: np.ndarray,
    jurisdiction: Jurisdiction,
    pre_tax_deductions: float = 0.0,
) -> np.ndarray:
    """Income tax on *income* after allowable expenses and the allowance."""
    income = np.asarray(income, dtype=float)
    assessable = np.maximum(income - pre_tax_deductions, 0.0)
    allowance = effective_allowance(assessable, jurisdiction.allowance_taper)
    return band_tax(np.maximum(assessable - allowance, 0.0), jurisdiction.income_tax)


def national_insurance(pay: np.ndarray, jurisdiction: Jurisdiction) -> np.ndarray:
    """Employee Class 1 contributions on *pay*."""
    return band_tax(pay, jurisdiction.social_insurance)


# ─── Student Loan ───────────────────────────────────────────────────

def student_loan_repayment(income: np.ndarray, threshold: float, rate: float) -> np.ndarray:
    """Mandatory annual repayment: *rate* on income above *threshold*."""
    income = np.asarray(income, dtype=float)
    return np.maximum(income - threshold, 0.0) * rate


def student_loan_interest_rate(
    income: np.ndarray,
    base_rate: float,
    spread: float = 0.0,
    threshold: float = 0.0,
    upper_threshold: Optional[float] = None,
) -> np.ndarray:
    """Income-contingent interest (Plan 2 style sliding scale).

    At or below *threshold*: *base_rate*. At or above *upper_threshold*:
    ``base_rate + spread``. Linearly interpolated in between. Plans
    without a spread just get *base_rate*.
    """
    income = np.asarray(income, dtype=float)
    if not spread or upper_threshold is None:
        return np.full_like(income, base_rate)
    fraction = np.clip((income - threshold) / (upper_threshold - threshold), 0.0, 1.0)
    return base_rate + fraction * spread


# ─── Pension adjustment strategies ──────────────────────────────────

class PensionMode(str, enum.Enum):
    SALARY_SACRIFICE = "salary_sacrifice"
    NET_PAY = "net_pay"


class PensionAdjustment(abc.ABC):
    """How a pension contribution interacts with tax and NI."""

    mode: PensionMode

    @abc.abstractmethod
    def taxable_base(self, gross: float, pension: float) -> float:
        """Income that income tax is charged on."""

    @abc.abstractmethod
    def social_insurance_base(self, gross: float, pension: float) -> float:
        """Pay that NI and student loans are assessed on."""

    @abc.abstractmethod
    def tax_relief(self, gross: float, pension: float, tax_on: Callable[[float], float]) -> float:
        """Income tax saved by the contribution."""

    @abc.abstractmethod
    def take_home_adjustment(self, pension: float, relief: float) -> float:
        """Change applied to take-home pay after tax and NI."""


class SalarySacrifice(PensionAdjustment):
    """Contribution leaves pay before tax and NI are worked out."""

    mode = PensionMode.SALARY_SACRIFICE

    def taxable_base(self, gross, pension):
        return gross - pension

    def social_insurance_base(self, gross, pension):
        return gross - pension

    def tax_relief(self, gross, pension, tax_on):
        return 0.0

    def take_home_adjustment(self, pension, relief):
        return 0.0


class NetPay(PensionAdjustment):
    """Contribution taken after tax and NI; income tax relief credited back."""

    mode = PensionMode.NET_PAY

    def taxable_base(self, gross, pension):
        return gross

    def social_insurance_base(self, gross, pension):
        return gross

    def tax_relief(self, gross, pension, tax_on):
        if pension <= 0:
            return 0.0
        return max(0.0, tax_on(gross) - tax_on(gross - pension))

    def take_home_adjustment(self, pension, relief):
        return relief - pension


PENSION_ADJUSTMENTS: Dict[PensionMode, PensionAdjustment] = {
    PensionMode.SALARY_SACRIFICE: SalarySacrifice(),
    PensionMode.NET_PAY: NetPay(),
}


def parse_pension_mode(value) -> PensionMode:
    if isinstance(value, PensionMode):
        return value
    try:
        return PensionMode(str(value).strip().lower())
    except ValueError:
        options = ", ".join(m.value for m in PensionMode)
        raise ValueError(f"Unknown pension mode {value!r} (choose from: {options})") from None


@dataclass(frozen=True)
class PensionConfig:
    """Employee pension contribution as a percentage of gross pay."""

    percent: float = 0.0
    mode: PensionMode = PensionMode.SALARY_SACRIFICE

    @property
    def clamped_percent(self) -> float:
        return clamp(self.percent, 0.0, 100.0)

    @property
    def adjustment(self) -> PensionAdjustment:
        return PENSION_ADJUSTMENTS[parse_pension_mode(self.mode)]

    def contribution(self, gross: float) -> float:
        return gross * self.clamped_percent / 100


NO_PENSION = PensionConfig()


# ─── Deduction calculator ───────────────────────────────────────────

@dataclass(frozen=True)
class DeductionResult:
    """Tax, NI and pension for one gross salary. All amounts annual."""

    gross: float
    allowance_used: float
    tax_owed: float
    social_insurance_owed: float
    pension_amount: float
    net_income: float
    effective_rate: float
    marginal_rate: float
    marginal_income_tax_rate: float
    taxable_base: float
    social_insurance_base: float
    tax_relief: float
    pre_tax_deductions: float
    pension_mode: PensionMode

    @property
    def total_deductions(self) -> float:
        return self.gross - self.net_income

    @property
    def monthly_net(self) -> float:
        return self.net_income / 12


def _evaluate(
    gross: float,
    jurisdiction: Jurisdiction,
    pension: PensionConfig,
    pre_tax_deductions: float,
) -> Dict[str, float]:
    strategy = pension.adjustment
    pension_amount = pension.contribution(gross)

    taxable_base = strategy.taxable_base(gross, pension_amount)
    ni_base = strategy.social_insurance_base(gross, pension_amount)

    def tax_on(income: float) -> float:
        return float(income_tax(income, jurisdiction, pre_tax_deductions))

    assessable = max(taxable_base - pre_tax_deductions, 0.0)
    allowance = float(effective_allowance(assessable, jurisdiction.allowance_taper))
    allowance_used = min(allowance, assessable)

    tax = tax_on(taxable_base)
    ni = float(national_insurance(ni_base, jurisdiction))
    relief = strategy.tax_relief(gross, pension_amount, tax_on)

    net = taxable_base - tax - ni + strategy.take_home_adjustment(pension_amount, relief)

    return {
        "pension_amount": pension_amount,
        "taxable_base": taxable_base,
        "social_insurance_base": ni_base,
        "allowance_used": allowance_used,
        "tax": tax,
        "ni": ni,
        "relief": relief,
        "net": net,
    }


def compute_deductions(
    gross_income: float,
    jurisdiction: Jurisdiction,
    pension: Optional[PensionConfig] = None,
    pre_tax_deductions: float = 0.0,
) -> DeductionResult:
    """Turn a gross annual salary into take-home pay.

    Parameters
    ----------
    gross_income : float
        Annual gross salary. Negative or non-finite values are treated as 0.
    jurisdiction : Jurisdiction
        Income tax bands, allowance taper and NI schedule.
    pension : PensionConfig, optional
        Employee contribution and how it is relieved.
    pre_tax_deductions : float
        Allowable work expenses (e.g. the WFH allowance) taken off income
        for income tax only.

    Returns
    -------
    DeductionResult
        The marginal rate is measured by re-running the calculation at
        ``gross + £1``, so taper spikes come straight out of the band and
        allowance maths.
    """
    gross = non_negative(gross_income)
    pension = pension or NO_PENSION
    expenses = non_negative(pre_tax_deductions)

    now = _evaluate(gross, jurisdiction, pension, expenses)
    step = _evaluate(gross + 1.0, jurisdiction, pension, expenses)

    owed_now = now["tax"] - now["relief"] + now["ni"]
    owed_step = step["tax"] - step["relief"] + step["ni"]

    effective = (gross - now["net"]) / gross if gross > 0 else 0.0

    return DeductionResult(
        gross=gross,
        allowance_used=now["allowance_used"],
        tax_owed=now["tax"],
        social_insurance_owed=now["ni"],
        pension_amount=now["pension_amount"],
        net_income=now["net"],
        effective_rate=effective,
        marginal_rate=owed_step - owed_now,
        marginal_income_tax_rate=(step["tax"] - step["relief"]) - (now["tax"] - now["relief"]),
        taxable_base=now["taxable_base"],
        social_insurance_base=now["social_insurance_base"],
        tax_relief=now["relief"],
        pre_tax_deductions=expenses,
        pension_mode=pension.adjustment.mode,
    )


# ─── Marginal Rate Breakdown ────────────────────────────────────────

def marginal_rate_breakdown(
    salary: float,
    jurisdiction: Jurisdiction,
    pension: Optional[PensionConfig] = None,
    loan_terms: Iterable[LoanPlanTerms] = (),
) -> Dict[str, float]:
    """Marginal and effective rate breakdown for a single salary.

    Uses a £1 delta to compute the marginal rate of each component.
    Student loan repayments are assessed on the same pay as NI.

    Returns
    -------
    dict
        Keys: ``'income_tax_pct'``, ``'ni_pct'``, ``'sl_pct'``,
        ``'total_marginal_pct'``, ``'effective_pct'``.
    """
    loan_terms = list(loan_terms)
    d0 = compute_deductions(salary, jurisdiction, pension)
    d1 = compute_deductions(d0.gross + 1.0, jurisdiction, pension)

    def loans_on(pay: float) -> float:
        return sum(float(student_loan_repayment(pay, t.threshold, t.rate)) for t in loan_terms)

    sl0 = loans_on(d0.social_insurance_base)
    sl1 = loans_on(d1.social_insurance_base)

    it_marginal = (d1.tax_owed - d1.tax_relief) - (d0.tax_owed - d0.tax_relief)
    ni_marginal = d1.social_insurance_owed - d0.social_insurance_owed
    sl_marginal = sl1 - sl0
    total_marginal = it_marginal + ni_marginal + sl_marginal

    total_deductions = d0.tax_owed - d0.tax_relief + d0.social_insurance_owed + sl0
    effective = total_deductions / d0.gross if d0.gross > 0 else 0.0

    return {
        "income_tax_pct": round(it_marginal * 100, 2),
        "ni_pct": round(ni_marginal * 100, 2),
        "sl_pct": round(sl_marginal * 100, 2),
        "total_marginal_pct": round(total_marginal * 100, 2),
        "effective_pct": round(effective * 100, 2),
    }
