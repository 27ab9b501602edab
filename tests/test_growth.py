"""Unit tests for growth projections, FIRE, opportunity cost and fees."""
import math

import pytest

from growth import (
    compare_fees,
    fee_impact,
    fire_number,
    fire_progress,
    opportunity_cost,
    project_fire,
    project_growth,
)


class TestProjectGrowth:
    """balance = balance * (1 + r) + contribution, year by year."""

    def test_fixed_horizon(self):
        result = project_growth(1_000, 100, 0.10, years=2)
        assert [r.balance for r in result.rows] == pytest.approx([1_200, 1_420])
        assert result.final_balance == pytest.approx(1_420)
        assert result.years_simulated == 2

    def test_contribution_grows_with_salary(self):
        result = project_growth(0, 100, 0.0, salary_growth_rate=0.10, years=3)
        assert [r.contribution for r in result.rows] == pytest.approx([100, 110, 121])

    def test_totals(self):
        result = project_growth(1_000, 100, 0.10, years=2)
        assert result.total_contributions == pytest.approx(200)
        assert result.total_growth == pytest.approx(220)

    def test_interpolated_years_to_target(self):
        result = project_growth(0, 100, 0.0, target_balance=250)
        assert result.years_to_target == pytest.approx(2.5)
        assert result.target_year == 3
        assert result.years_simulated == 3

    def test_crossing_year_brackets_target(self):
        result = project_growth(5_000, 6_000, 0.07, salary_growth_rate=0.03, target_balance=250_000)
        year = result.target_year
        assert result.balance_at(year - 1) < 250_000 <= result.balance_at(year)
        assert year - 1 < result.years_to_target <= year

    def test_already_at_target(self):
        result = project_growth(1_000_000, 0, 0.05, target_balance=500_000)
        assert result.years_to_target == 0
        assert result.rows == []

    def test_defaults_to_30_years(self):
        assert project_growth(0, 1_000, 0.05).years_simulated == 30

    def test_unreachable_target_capped(self):
        result = project_growth(0, 0, 0.0, target_balance=1_000)
        assert result.years_simulated == 80
        assert not result.reached_target

    def test_years_capped(self):
        assert project_growth(0, 1, 0.0, years=500).years_simulated == 80

    def test_bad_inputs_sanitised(self):
        result = project_growth(float("nan"), -500, float("inf"), years=3)
        assert result.final_balance == 0

    def test_balance_at_zero_is_start(self):
        assert project_growth(1_234, 0, 0.1, years=5).balance_at(0) == 1_234


class TestFire:

    def test_fire_number(self):
        assert fire_number(40_000) == 1_000_000

    def test_project_fire(self):
        fire = project_fire(100_000, 30_000, 40_000, 0.07, current_age=30)
        assert fire.fire_number == 1_000_000
        assert fire.years_to_fire is not None
        assert fire.fire_age == pytest.approx(30 + fire.years_to_fire)
        projection = fire.projection
        assert projection.balance_at(projection.target_year) >= 1_000_000

    def test_no_age(self):
        assert project_fire(0, 10_000, 20_000).fire_age is None

    def test_progress_halfway(self):
        progress = fire_progress(500_000, 40_000)
        assert progress.percent_complete == pytest.approx(50)
        assert progress.zone == "Halfway"
        assert progress.amount_remaining == 500_000
        assert progress.current_passive_income == pytest.approx(20_000)
        assert "Coast FI" in [m.name for m in progress.achieved]
        assert progress.next_milestone.name == "Lean FI"

    def test_progress_complete(self):
        progress = fire_progress(2_000_000, 40_000)
        assert progress.percent_complete == 100
        assert progress.next_milestone is None
        assert progress.savings_rate_needed == 0

    def test_progress_no_expenses(self):
        assert fire_progress(0, 0).zone == "Financially Independent!"

    def test_savings_rate_needed_positive(self):
        assert fire_progress(0, 30_000).savings_rate_needed > 0

    def test_zero_years_uses_default_horizon(self):
        progress = fire_progress(10_000, 20_000, years_to_fi=0)
        assert math.isfinite(progress.savings_rate_needed)
        assert progress.savings_rate_needed > 0
        assert progress.savings_rate_needed == pytest.approx(
            fire_progress(10_000, 20_000).savings_rate_needed
        )

    def test_non_finite_return_treated_as_zero(self):
        # 490k gap over 15 years with no growth, against 20k expenses
        for rate in (float("nan"), float("inf")):
            progress = fire_progress(10_000, 20_000, annual_return_rate=rate)
            assert progress.savings_rate_needed == pytest.approx(490_000 / 15 / 20_000 * 100)


class TestOpportunityCost:

    def test_future_value(self):
        cost = opportunity_cost(1_000, 30, 40, true_hourly_rate=20, annual_return_rate=0.07)
        assert cost.future_value == pytest.approx(1_000 * 1.07 ** 10)
        assert cost.years_to_grow == 10
        assert cost.hours_of_life == pytest.approx(50)
        assert cost.annual_retirement_income == pytest.approx(cost.future_value * 0.04)

    def test_no_wage(self):
        assert opportunity_cost(1_000, 30, 40).hours_of_life is None

    def test_retired_already(self):
        cost = opportunity_cost(500, 70, 65)
        assert cost.years_to_grow == 0
        assert cost.future_value == 500


class TestFees:

    def test_fee_drag(self):
        assert fee_impact(10_000, 1_000, 30, 0.07, 0.01) < fee_impact(10_000, 1_000, 30, 0.07, 0.0)

    def test_compare(self):
        comparison = compare_fees(10_000, 1_000, 30, 0.07)
        assert comparison.low_fee > comparison.high_fee
        assert comparison.difference == pytest.approx(comparison.low_fee - comparison.high_fee)
        assert 0 < comparison.percent_lost < 100

    def test_compare_empty_pot(self):
        assert compare_fees(0, 0, 10, 0.07).percent_lost == 0
