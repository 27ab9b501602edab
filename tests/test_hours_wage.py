"""Unit tests for the time model, true hourly wage and the full pipeline."""
import pytest

from hours import TimeBudget, true_hours
from loans import LoanInstrument, amortize_loans
from tax import PensionConfig, compute_deductions
from wage import (
    CalculationInputs,
    WorkCosts,
    all_what_ifs,
    calculate,
    compute_true_hourly_wage,
    summary_dict,
    what_if,
)

DEFAULT_BUDGET = TimeBudget(
    contract_hours_per_week=37.5,
    commute_minutes_per_day=56,
    unpaid_break_minutes_per_day=30,
    prep_minutes_per_day=30,
    work_days_per_week=5,
    holiday_days_per_year=28,
)


class TestTrueHours:
    """Contract hours plus the unpaid time around them."""

    def test_weekly_components(self):
        t = true_hours(DEFAULT_BUDGET)
        assert t.weekly_commute_hours == pytest.approx(56 * 5 / 60)
        assert t.weekly_break_hours == pytest.approx(2.5)
        assert t.weekly_prep_hours == pytest.approx(2.5)
        assert t.weekly_total_hours == pytest.approx(37.5 + 56 * 5 / 60 + 5)

    def test_working_weeks(self):
        t = true_hours(DEFAULT_BUDGET)
        assert t.working_weeks == pytest.approx(52 - 28 / 5)
        assert t.annual_total_hours == pytest.approx(t.weekly_total_hours * t.working_weeks)

    def test_unpaid_hours(self):
        t = true_hours(DEFAULT_BUDGET)
        assert t.weekly_unpaid_hours == pytest.approx(t.weekly_total_hours - 37.5)
        assert t.annual_unpaid_hours > 0

    def test_zero_work_days(self):
        t = true_hours(TimeBudget(work_days_per_week=0))
        assert t.working_weeks == 0
        assert t.annual_total_hours == 0

    def test_negative_inputs_clamped(self):
        t = true_hours(TimeBudget(contract_hours_per_week=-10, commute_minutes_per_day=-30))
        assert t.weekly_contract_hours == 0
        assert t.weekly_commute_hours == 0


class TestTrueHourlyWage:

    def test_45k_round_trip(self, england):
        """£45k, 5% salary sacrifice, Plan 2 at £45k balance, default week."""
        deductions = compute_deductions(45_000, england, PensionConfig(5))
        loan = LoanInstrument("plan2", 45_000, 0.043, 27_295, 0.09, 30)
        loans = amortize_loans([loan], deductions.social_insurance_base, years=30)
        assert loans.summary.annual_repayment == pytest.approx(1_390.95)

        result = compute_true_hourly_wage(
            deductions, DEFAULT_BUDGET, loan_repayment=loans.summary.annual_repayment
        )
        annual_hours = (37.5 + 56 * 5 / 60 + 5) * (52 - 28 / 5)
        assert result.assumed_hourly_rate == pytest.approx(45_000 / (37.5 * 52))
        assert result.true_hourly_rate == pytest.approx((34_299.60 - 1_390.95) / annual_hours)
        assert result.true_hourly_rate == pytest.approx(15.04, abs=0.01)
        assert result.percent_of_assumed == pytest.approx(65.16, abs=0.01)

    def test_work_costs(self, england):
        deductions = compute_deductions(30_000, england)
        costs = WorkCosts(commute_cost_monthly=100, work_clothes_annual=300)
        result = compute_true_hourly_wage(deductions, DEFAULT_BUDGET, costs)
        assert result.annual_work_costs == 1_500
        assert result.net_after_costs == pytest.approx(deductions.net_income - 1_500)

    def test_stress_tax(self, england):
        deductions = compute_deductions(30_000, england)
        plain = compute_true_hourly_wage(deductions, DEFAULT_BUDGET)
        stressed = compute_true_hourly_wage(deductions, DEFAULT_BUDGET, WorkCosts(stress_tax_percent=10))
        assert stressed.true_hourly_rate == pytest.approx(plain.true_hourly_rate * 0.9)

    def test_no_hours_is_not_applicable(self, england):
        deductions = compute_deductions(30_000, england)
        result = compute_true_hourly_wage(deductions, TimeBudget(work_days_per_week=0))
        assert result.true_hourly_rate is None
        assert result.percent_of_assumed is None

    def test_no_contract_hours(self, england):
        deductions = compute_deductions(30_000, england)
        result = compute_true_hourly_wage(deductions, TimeBudget(contract_hours_per_week=0))
        assert result.assumed_hourly_rate is None
        assert result.percent_of_assumed is None

    def test_true_rate_below_assumed(self, england):
        deductions = compute_deductions(60_000, england)
        result = compute_true_hourly_wage(deductions, DEFAULT_BUDGET)
        assert result.true_hourly_rate < result.assumed_hourly_rate


class TestCalculationInputs:

    def test_from_mapping_defaults(self):
        inputs = CalculationInputs.from_mapping({})
        assert inputs == CalculationInputs()

    def test_from_mapping_values(self):
        inputs = CalculationInputs.from_mapping({
            "salary": "52000",
            "region": "Scotland",
            "pension_mode": "net_pay",
            "loans": {"Plan2": 30_000},
        })
        assert inputs.salary == 52_000
        assert inputs.region == "scotland"
        assert inputs.pension_mode == "net_pay"
        assert inputs.loans == {"plan2": 30_000}

    def test_unreadable_number_falls_back(self):
        assert CalculationInputs.from_mapping({"salary": "lots"}).salary == 35_000

    def test_unknown_region(self):
        with pytest.raises(ValueError):
            CalculationInputs.from_mapping({"region": "mars"})

    def test_loans_must_be_mapping(self):
        with pytest.raises(ValueError, match="loans"):
            CalculationInputs.from_mapping({"loans": [1, 2]})

    def test_wfh_relief_flag(self):
        assert CalculationInputs.from_mapping({"wfh_relief": "on"}).wfh_relief is True
        assert CalculationInputs.from_mapping({"wfh_relief": "false"}).wfh_relief is False
        assert CalculationInputs.from_mapping({"wfh_relief": True}).allowable_expenses == 6 * 52


class TestCalculate:
    """The pipeline the CLI and API share."""

    def test_loans_assessed_on_sacrificed_pay(self):
        inputs = CalculationInputs(salary=45_000, pension_percent=5, loans={"plan2": 45_000})
        results = calculate(inputs)
        assert results.loans.summary.annual_repayment == pytest.approx((42_750 - 28_470) * 0.09)
        assert results.wage.loan_repayment == pytest.approx(results.loans.summary.annual_repayment)

    def test_no_loans(self):
        results = calculate(CalculationInputs(salary=30_000))
        assert results.loans.summary.annual_repayment == 0
        assert results.true_hourly_rate is not None

    def test_wfh_relief_saves_basic_rate_tax(self):
        """£6 a week off taxable pay at 20%."""
        base = calculate(CalculationInputs(salary=30_000, pension_percent=0))
        relieved = calculate(CalculationInputs(salary=30_000, pension_percent=0, wfh_relief=True))
        assert base.deductions.tax_owed - relieved.deductions.tax_owed == pytest.approx(312 * 0.20)
        assert relieved.deductions.social_insurance_owed == pytest.approx(base.deductions.social_insurance_owed)

    def test_summary_dict_rounded(self):
        """Default 5% sacrifice scales the 28% basic marginal rate."""
        summary = summary_dict(calculate(CalculationInputs(salary=45_000)))
        assert summary["true_hourly_rate"] == round(summary["true_hourly_rate"], 2)
        assert summary["marginal_rate_pct"] == pytest.approx(26.6)


class TestWhatIf:

    def test_raise_increases_rate(self):
        scenario = what_if("raise10", CalculationInputs(salary=40_000))
        assert scenario.difference > 0
        assert scenario.percent_change > 0

    def test_wfh_cuts_commute(self):
        inputs = CalculationInputs(salary=40_000, commute_minutes=90, commute_cost=150)
        two = what_if("wfh2", inputs)
        three = what_if("wfh3", inputs)
        assert 0 < two.difference < three.difference

    def test_wfh_without_commute_changes_nothing(self):
        scenario = what_if("wfh2", CalculationInputs(commute_minutes=0, commute_cost=0))
        assert scenario.difference == pytest.approx(0)

    def test_all_scenarios(self):
        keys = [s.key for s in all_what_ifs(CalculationInputs())]
        assert keys == ["wfh2", "wfh3", "raise10", "raise20"]

    def test_unknown_scenario(self):
        with pytest.raises(ValueError, match="Unknown scenario"):
            what_if("lottery", CalculationInputs())
