"""Unit tests for the loan amortiser, stacking and overpayment comparison."""
import pytest

from loans import (
    LoanInstrument,
    LoanState,
    amortize_loan,
    amortize_loans,
    income_timeline,
    instruments_for_plans,
    overpayment_benefit,
)


def make_loan(**overrides) -> LoanInstrument:
    """Plan 2 style loan: 9% over £27,295 at 4.3%, 30 years."""
    fields = dict(
        id="plan2",
        balance=45_000,
        annual_interest_rate=0.043,
        repayment_threshold=27_295,
        repayment_rate=0.09,
        write_off_years=30,
    )
    fields.update(overrides)
    return LoanInstrument(**fields)


class TestIncomeTimeline:

    def test_flat(self):
        timeline = income_timeline(40_000, 0.0, 3)
        assert [y.year for y in timeline] == [1, 2, 3]
        assert all(y.gross_income == 40_000 for y in timeline)

    def test_growth(self):
        timeline = income_timeline(40_000, 0.05, 3)
        assert timeline[2].gross_income == pytest.approx(40_000 * 1.05 ** 2)

    def test_missing_years_default_to_30(self):
        assert len(income_timeline(40_000, 0.0, 0)) == 30

    def test_capped(self):
        assert len(income_timeline(40_000, 0.0, 500)) == 80


class TestAmortizeLoan:
    """Single-loan state machine: ACTIVE to REPAID or WRITTEN_OFF."""

    def test_plan2_45k_written_off(self):
        """Repayments never catch up with interest on a £42,750 salary."""
        loan = make_loan()
        result = amortize_loan(loan, income_timeline(42_750, 0.0, 30))
        assert result.first_year_repayment == pytest.approx(1_390.95)
        assert result.monthly_repayment == pytest.approx(115.9125)
        assert result.state is LoanState.WRITTEN_OFF
        assert result.years_simulated == 30
        assert result.years_to_repay is None
        assert result.total_repaid == pytest.approx(30 * 1_390.95)
        assert result.written_off == pytest.approx(result.closing_balance)
        assert result.written_off > 45_000

    def test_write_off_exactly_at_horizon_with_zero_rate(self):
        loan = make_loan(repayment_rate=0.0, annual_interest_rate=0.0, write_off_years=25)
        result = amortize_loan(loan, income_timeline(80_000, 0.0, 60))
        assert result.state is LoanState.WRITTEN_OFF
        assert result.years_simulated == 25
        assert result.written_off == pytest.approx(45_000)
        assert result.total_repaid == 0

    def test_years_elapsed_shortens_horizon(self):
        loan = make_loan(repayment_rate=0.0, years_elapsed=10)
        assert loan.remaining_years == 20
        result = amortize_loan(loan, income_timeline(30_000, 0.0, 40))
        assert result.years_simulated == 20

    def test_horizon_already_passed(self):
        loan = make_loan(years_elapsed=35)
        result = amortize_loan(loan, income_timeline(30_000, 0.0, 10))
        assert result.state is LoanState.WRITTEN_OFF
        assert result.written_off == 45_000
        assert result.schedule == []

    def test_final_repayment_capped(self):
        """The last payment clears balance plus interest and no more."""
        loan = make_loan(balance=1_000)
        result = amortize_loan(loan, income_timeline(50_000, 0.0, 30))
        assert result.state is LoanState.REPAID
        assert result.years_to_repay == 1
        assert result.total_repaid == pytest.approx(1_043)
        assert result.closing_balance == 0

    def test_zero_balance_already_repaid(self):
        result = amortize_loan(make_loan(balance=0), income_timeline(50_000, 0.0, 5))
        assert result.state is LoanState.REPAID
        assert result.years_to_repay == 0

    def test_balance_never_negative(self):
        result = amortize_loan(make_loan(balance=10_000), income_timeline(90_000, 0.04, 30))
        assert all(row.closing_balance >= 0 for row in result.schedule)

    def test_threshold_growth(self):
        loan = make_loan(threshold_growth=0.02)
        result = amortize_loan(loan, income_timeline(40_000, 0.0, 3))
        assert result.schedule[2].threshold == pytest.approx(27_295 * 1.02 ** 2)
        assert result.schedule[2].repayment < result.schedule[0].repayment

    def test_sliding_interest(self):
        loan = make_loan(interest_spread=0.03, interest_upper_threshold=49_130)
        result = amortize_loan(loan, income_timeline(60_000, 0.0, 1))
        assert result.schedule[0].interest_rate == pytest.approx(0.073)

    def test_balance_after_write_off_reads_zero(self):
        loan = make_loan(repayment_rate=0.0, write_off_years=5)
        result = amortize_loan(loan, income_timeline(30_000, 0.0, 10))
        assert result.balance_after(4) > 0
        assert result.balance_after(5) == 0
        assert result.balance_after(0) == 45_000


class TestAmortizeLoans:
    """Several loans run side by side against one salary path."""

    def test_single_instrument_matches_amortizer(self):
        loan = make_loan()
        stacked = amortize_loans([loan], 42_750, years=30)
        single = amortize_loan(loan, income_timeline(42_750, 0.0, 30))
        assert stacked.per_instrument["plan2"].total_repaid == pytest.approx(single.total_repaid)
        assert stacked.summary.total_repaid == pytest.approx(single.total_repaid)
        assert stacked.summary.total_written_off == pytest.approx(single.written_off)

    def test_thresholds_assessed_independently(self):
        plan2 = make_loan()
        postgrad = make_loan(id="postgrad", balance=12_000, repayment_threshold=21_000,
                             repayment_rate=0.06, annual_interest_rate=0.073)
        stacked = amortize_loans([plan2, postgrad], 42_750, years=30)
        expected = (42_750 - 27_295) * 0.09 + (42_750 - 21_000) * 0.06
        assert stacked.summary.annual_repayment == pytest.approx(expected)
        assert stacked.summary.monthly_repayment == pytest.approx(expected / 12)
        assert stacked.yearly[0].repayments == pytest.approx({
            "plan2": (42_750 - 27_295) * 0.09,
            "postgrad": (42_750 - 21_000) * 0.06,
        })

    def test_effective_tax_rate(self):
        stacked = amortize_loans([make_loan()], 42_750, years=30)
        assert stacked.summary.effective_tax_rate == pytest.approx(1_390.95 / 42_750 * 100)

    def test_default_years_use_longest_horizon(self):
        short = make_loan(id="a", repayment_rate=0.0, write_off_years=25)
        long = make_loan(id="b", repayment_rate=0.0, write_off_years=40)
        stacked = amortize_loans([short, long], 30_000)
        assert len(stacked.yearly) == 40
        assert stacked.yearly[30].balances["a"] == 0

    def test_all_repaid(self):
        stacked = amortize_loans([make_loan(balance=2_000)], 60_000, years=10)
        assert stacked.summary.all_repaid
        assert stacked.summary.years_to_repay == 1

    def test_disabled_and_empty_ignored(self):
        stacked = amortize_loans([make_loan(enabled=False), make_loan(id="x", balance=0)], 50_000)
        assert stacked.per_instrument == {}
        assert stacked.summary.annual_repayment == 0
        assert not stacked.summary.all_repaid

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError, match="unique"):
            amortize_loans([make_loan(), make_loan()], 50_000)

    def test_zero_income(self):
        stacked = amortize_loans([make_loan()], 0)
        assert stacked.summary.effective_tax_rate == 0


class TestInstrumentsForPlans:

    def test_builds_from_config(self):
        instruments = instruments_for_plans({"plan2": 45_000, "postgrad": 12_000}, 2024)
        by_id = {i.id: i for i in instruments}
        assert by_id["plan2"].repayment_threshold == 27_295
        assert by_id["plan2"].interest_upper_threshold == 49_130
        assert by_id["postgrad"].repayment_rate == 0.06

    def test_overrides(self):
        (loan,) = instruments_for_plans({"plan1": 5_000}, years_elapsed=3)
        assert loan.years_elapsed == 3

    def test_unknown_plan(self):
        with pytest.raises(ValueError):
            instruments_for_plans({"plan9": 1_000})


class TestOverpaymentBenefit:

    def test_overpaying_saves_interest(self):
        loan = make_loan(balance=20_000, annual_interest_rate=0.05)
        benefit = overpayment_benefit([loan], 40_000, monthly_extra=200)
        assert benefit.instrument_id == "plan2"
        assert benefit.interest_saved > 0
        assert benefit.years_saved is not None and benefit.years_saved > 0

    def test_no_loans(self):
        benefit = overpayment_benefit([], 40_000)
        assert benefit.interest_saved == 0
        assert benefit.years_saved is None

    def test_unknown_target(self):
        with pytest.raises(ValueError, match="No active loan"):
            overpayment_benefit([make_loan()], 40_000, target_id="plan5")
