"""
CLI interface and shared display-data computation for the
true hourly wage calculator.
"""

from __future__ import annotations

import math
import sys
from typing import Any, Callable, Dict, List, Optional

import config as cfg
from jurisdictions import LoanPlan, Region, load_jurisdiction, loan_plan_terms
from tax import PensionMode, marginal_rate_breakdown
from wage import CalculationInputs, CalculationResults, all_what_ifs, calculate


# ═══════════════════════════════════════════════════════════════════
# Formatting helpers
# ═══════════════════════════════════════════════════════════════════

def fmt(val: Optional[float], decimals: int = 0) -> str:
    """Format number as £X,XXX."""
    if val is None:
        return "n/a"
    if decimals > 0:
        return f"£{val:,.{decimals}f}"
    return f"£{val:,.0f}"


def pct(val: Optional[float], decimals: int = 1) -> str:
    if val is None:
        return "n/a"
    return f"{val:.{decimals}f}%"


def hours(val: float) -> str:
    """Format hours as ``Xh Ym``."""
    h = int(val)
    m = int(round((val - h) * 60))
    if m == 60:
        h, m = h + 1, 0
    if m == 0:
        return f"{h}h"
    if h == 0:
        return f"{m}m"
    return f"{h}h {m}m"


# ═══════════════════════════════════════════════════════════════════
# Input collection (CLI)
# ═══════════════════════════════════════════════════════════════════

def _strip_currency(s: str) -> str:
    """Drop the pound sign, thousands separators, spaces and a trailing %."""
    return s.replace("£", "").replace(",", "").replace(" ", "").rstrip("%")


def _range_problem(val: float, min_val: Optional[float], max_val: Optional[float]) -> Optional[str]:
    if min_val is not None and val < min_val:
        return f"Minimum is {min_val}"
    if max_val is not None and val > max_val:
        return f"Maximum is {max_val}"
    return None


def _prompt_number(
    label: str,
    default: Any,
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
    cast: Callable[[float], Any] = float,
) -> Any:
    """Ask until the answer parses and sits in range; blank takes *default*.

    *default* may be a display string such as ``"£35,000"``.
    """
    while True:
        raw = input(f"  {label} [{default}]: ").strip() or str(default)
        try:
            number = float(_strip_currency(raw))
            if not math.isfinite(number):
                raise ValueError(raw)
            val = cast(number)
        except ValueError:
            print(f"    {raw!r} is not a number.")
            continue
        problem = _range_problem(val, min_val, max_val)
        if problem is None:
            return val
        print(f"    {problem}.")


def _prompt_choice(label: str, options: List[str], default: str) -> str:
    listed = "/".join(options)
    while True:
        answer = input(f"  {label} ({listed}) [{default}]: ").strip().lower() or default
        if answer in options:
            return answer
        print(f"    Options: {listed}")


def collect_inputs() -> CalculationInputs:
    """Prompt the user for every calculator input."""
    d = cfg.DEFAULT_INPUTS
    print("\n  Enter your details (press Enter for defaults):\n")

    salary = _prompt_number("Annual gross salary", f"£{d['salary']:,}", 0)
    region = _prompt_choice("Region", [r.value for r in Region], d["region"])
    tax_year = _prompt_number("Tax year (2025 = 2025/26)", cfg.BASE_TAX_YEAR,
                              min(cfg.SUPPORTED_TAX_YEARS), max(cfg.SUPPORTED_TAX_YEARS), cast=int)
    pension_pct = _prompt_number("Pension contribution %", d["pension_percent"], 0, 100)
    pension_mode = _prompt_choice("Pension mode", [m.value for m in PensionMode], d["pension_mode"])

    loans: Dict[str, float] = {}
    print("\n  Student loans (balance, 0 if none):")
    for plan in LoanPlan:
        name = loan_plan_terms(plan, tax_year).name
        balance = _prompt_number(f"  {name} balance", "£0", 0)
        if balance > 0:
            loans[plan.value] = balance
    growth = _prompt_number("Expected salary growth %/yr", d["salary_growth"] * 100, -5, 20) / 100

    print("\n  Your working week:")
    contract = _prompt_number("Contract hours per week", d["contract_hours"], 0, 100)
    commute = _prompt_number("Commute minutes per day (round trip)", d["commute_minutes"], 0, 600)
    unpaid_break = _prompt_number("Unpaid break minutes per day", d["unpaid_break"], 0, 240)
    prep = _prompt_number("Prep/wind-down minutes per day", d["prep_time"], 0, 240)
    days = _prompt_number("Work days per week", d["work_days"], 1, 7)
    holidays = _prompt_number("Holiday days per year (incl. bank holidays)", d["holiday_days"], 0, 100)

    print("\n  Costs of working:")
    commute_cost = _prompt_number("Commute cost per month", "£0", 0)
    clothes = _prompt_number("Work clothes per year", "£0", 0)
    stress = _prompt_number("Stress tax % of net pay", d["stress_tax"], 0, 100)

    return CalculationInputs(
        salary=salary,
        region=region,
        tax_year=tax_year,
        pension_percent=pension_pct,
        pension_mode=pension_mode,
        loans=loans,
        salary_growth=growth,
        contract_hours=contract,
        commute_minutes=commute,
        unpaid_break=unpaid_break,
        prep_time=prep,
        work_days=days,
        holiday_days=holidays,
        commute_cost=commute_cost,
        work_clothes=clothes,
        stress_tax=stress,
    )


# ═══════════════════════════════════════════════════════════════════
# Shared display-data computation (used by CLI and web app)
# ═══════════════════════════════════════════════════════════════════

def compute_display_data(inputs: CalculationInputs, results: CalculationResults) -> Dict[str, Any]:
    """Extract every metric needed for the output sections."""
    d = results.deductions
    t = results.time
    w = results.wage
    s = results.loans.summary

    jurisdiction = load_jurisdiction(inputs.region, inputs.tax_year)
    terms = [loan_plan_terms(plan, inputs.tax_year) for plan in inputs.loans]
    marginal = marginal_rate_breakdown(inputs.salary, jurisdiction, inputs.pension, terms)

    loans = []
    for plan_id, r in results.loans.per_instrument.items():
        loans.append({
            "name": loan_plan_terms(plan_id, inputs.tax_year).name,
            "balance": r.starting_balance,
            "monthly": r.monthly_repayment,
            "total_repaid": r.total_repaid,
            "interest": r.total_interest,
            "written_off": r.written_off,
            "years_to_repay": r.years_to_repay,
            "state": r.state.value,
        })

    return {
        # Inputs echo
        "salary": inputs.salary,
        "region": jurisdiction.label,
        "pension_percent": inputs.pension_percent,
        "pension_mode": d.pension_mode.value.replace("_", " "),
        # Section 1: deductions
        "pension": d.pension_amount,
        "income_tax": d.tax_owed - d.tax_relief,
        "ni": d.social_insurance_owed,
        "allowance": d.allowance_used,
        "net_income": d.net_income,
        "monthly_net": d.monthly_net,
        "effective_pct": d.effective_rate * 100,
        "marginal": marginal,
        # Section 2: student loans
        "loans": loans,
        "sl_annual": s.annual_repayment,
        "sl_monthly": s.monthly_repayment,
        "sl_burden_pct": s.effective_tax_rate,
        "sl_total_repaid": s.total_repaid,
        "sl_written_off": s.total_written_off,
        "sl_years": s.years_to_repay,
        # Section 3: time
        "weekly_contract": t.weekly_contract_hours,
        "weekly_commute": t.weekly_commute_hours,
        "weekly_break": t.weekly_break_hours,
        "weekly_prep": t.weekly_prep_hours,
        "weekly_total": t.weekly_total_hours,
        "working_weeks": t.working_weeks,
        "annual_unpaid": t.annual_unpaid_hours,
        # Section 4: the verdict
        "work_costs": w.annual_work_costs,
        "net_after_costs": w.net_after_costs,
        "assumed_rate": w.assumed_hourly_rate,
        "true_rate": w.true_hourly_rate,
        "percent_of_assumed": w.percent_of_assumed,
        # Section 5: what if
        "what_ifs": all_what_ifs(inputs),
    }


def generate_verdict_text(d: Dict[str, Any]) -> str:
    """Build a 2-3 sentence plain-English verdict."""
    if d["true_rate"] is None or d["assumed_rate"] is None:
        return (
            "There are no working hours to divide your pay by, so a true "
            "hourly wage can't be worked out. Check your hours and work days."
        )
    lost = 100 - d["percent_of_assumed"]
    text = (
        f"You think you earn {fmt(d['assumed_rate'], 2)}/hour, but after tax, "
        f"NI, pension, student loans and {hours(d['weekly_total'] - d['weekly_contract'])} "
        f"of unpaid time each week you really keep {fmt(d['true_rate'], 2)}/hour "
        f"which is {pct(d['percent_of_assumed'], 0)} of what you assumed."
    )
    if d["marginal"]["total_marginal_pct"] >= 60:
        text += (
            f" Your next pound is taxed at {pct(d['marginal']['total_marginal_pct'], 0)}: "
            f"salary sacrifice into your pension is the cheapest way out of this trap."
        )
    elif lost > 50:
        text += " More than half of your apparent rate disappears before it reaches you."
    return text


# ═══════════════════════════════════════════════════════════════════
# Box-drawing CLI output
# ═══════════════════════════════════════════════════════════════════

W = 78  # box width (characters)
H_LINE = "═"


def _box_top(title: str) -> str:
    inner = W - 2
    return (
        f"╔{H_LINE * inner}╗\n"
        f"║  {title:<{inner - 2}}║\n"
        f"╠{H_LINE * inner}╣"
    )


def _box_line(text: str = "") -> str:
    inner = W - 4
    if len(text) > inner:
        text = text[:inner]
    return f"║  {text:<{inner}}║"


def _box_row(label: str, value: str, lw: int = 38) -> str:
    return _box_line(f"{label:<{lw}}{value}")


def _box_bottom() -> str:
    return f"╚{H_LINE * (W - 2)}╝"


def _wrap(text: str, width: int = W - 6) -> List[str]:
    lines, line = [], ""
    for word in text.split():
        if len(line) + len(word) + 1 <= width:
            line = f"{line} {word}" if line else word
        else:
            lines.append(line)
            line = word
    if line:
        lines.append(line)
    return lines


def _print_section(title: str, rows: List[str]) -> None:
    """Print a titled box with content rows."""
    print(_box_top(title))
    for r in rows:
        print(r)
    print(_box_bottom())
    print()


# ═══════════════════════════════════════════════════════════════════
# CLI Section Printers
# ═══════════════════════════════════════════════════════════════════

def _print_section_1(d: Dict[str, Any]) -> None:
    m = d["marginal"]
    marginal_breakdown = (
        f"{pct(m['income_tax_pct'])} IT + "
        f"{pct(m['ni_pct'])} NI + "
        f"{pct(m['sl_pct'])} SL"
    )
    rows = [
        _box_row("Salary", fmt(d["salary"])),
        _box_row("Tax region", d["region"]),
        _box_row("Pension", f"{pct(d['pension_percent'])} ({d['pension_mode']})"),
        _box_line(),
        _box_row("Personal allowance used", fmt(d["allowance"])),
        _box_row("Income tax", fmt(d["income_tax"])),
        _box_row("National Insurance", fmt(d["ni"])),
        _box_row("Pension contribution", fmt(d["pension"])),
        _box_line(),
        _box_row("Take-home pay (annual)", fmt(d["net_income"])),
        _box_row("Take-home pay (monthly)", fmt(d["monthly_net"])),
        _box_row("Effective deduction rate", pct(d["effective_pct"])),
        _box_row("Marginal rate", pct(m["total_marginal_pct"])),
        _box_row("  Breakdown", marginal_breakdown),
    ]
    _print_section("YOUR PAY", rows)


def _print_section_2(d: Dict[str, Any]) -> None:
    if not d["loans"]:
        _print_section("STUDENT LOANS", [_box_line("No student loans entered.")])
        return

    h1 = f"{'Plan':<18}  {'Balance':>9}  {'Monthly':>8}  {'Repaid':>9}  {'Outcome':>14}"
    rows = [_box_line(h1), _box_line("─" * (W - 6))]
    for loan in d["loans"]:
        if loan["years_to_repay"] is not None:
            outcome = f"clear in {loan['years_to_repay']}y"
        elif loan["written_off"] > 0:
            outcome = f"{fmt(loan['written_off'])} w/off"
        else:
            outcome = "still owed"
        rows.append(_box_line(
            f"{loan['name']:<18}  {fmt(loan['balance']):>9}  {fmt(loan['monthly']):>8}  "
            f"{fmt(loan['total_repaid']):>9}  {outcome:>14}"
        ))
    rows.append(_box_line())
    rows.append(_box_row("Monthly repayment (all loans)", fmt(d["sl_monthly"])))
    rows.append(_box_row("Extra 'tax' on gross pay", pct(d["sl_burden_pct"])))
    rows.append(_box_row("Lifetime repayments", fmt(d["sl_total_repaid"])))
    rows.append(_box_row("Projected write-off", fmt(d["sl_written_off"])))
    if len(d["loans"]) > 1:
        rows.append(_box_line())
        rows.extend(_box_line(line) for line in _wrap(
            f"You have {len(d['loans'])} loans running at once. Each one takes "
            f"its own cut of income above its own threshold."
        ))
    _print_section("STUDENT LOANS", rows)


def _print_section_3(d: Dict[str, Any]) -> None:
    rows = [
        _box_row("Contract hours / week", hours(d["weekly_contract"])),
        _box_row("Commuting / week", hours(d["weekly_commute"])),
        _box_row("Unpaid breaks / week", hours(d["weekly_break"])),
        _box_row("Getting ready & winding down / week", hours(d["weekly_prep"])),
        _box_line(),
        _box_row("True hours / week", hours(d["weekly_total"])),
        _box_row("Working weeks / year", f"{d['working_weeks']:.1f}"),
        _box_row("Unpaid hours / year", f"{d['annual_unpaid']:,.0f}"),
    ]
    _print_section("YOUR TIME", rows)


def _print_section_4(d: Dict[str, Any]) -> None:
    rows = [
        _box_row("Assumed hourly rate", fmt(d["assumed_rate"], 2)),
        _box_row("True hourly rate", fmt(d["true_rate"], 2)),
        _box_row("You keep", pct(d["percent_of_assumed"])),
        _box_line(),
        _box_row("Work costs / year", fmt(d["work_costs"])),
        _box_row("Left after loans & costs", fmt(d["net_after_costs"])),
        _box_line(),
    ]
    rows.extend(_box_line(line) for line in _wrap(generate_verdict_text(d)))
    _print_section("THE VERDICT", rows)


def _print_section_5(d: Dict[str, Any]) -> None:
    h1 = f"{'Scenario':<20}  {'True rate':>10}  {'Change':>10}  {'%':>8}"
    rows = [_box_line(h1), _box_line("─" * (W - 6))]
    for s in d["what_ifs"]:
        change = fmt(s.difference, 2) if s.difference is not None else "n/a"
        rows.append(_box_line(
            f"{s.label:<20}  {fmt(s.true_hourly_rate, 2):>10}  {change:>10}  "
            f"{pct(s.percent_change):>8}"
        ))
    _print_section("WHAT IF?", rows)


# ═══════════════════════════════════════════════════════════════════
# Main CLI entry point
# ═══════════════════════════════════════════════════════════════════

def run_cli() -> None:
    """Run the full CLI workflow."""
    # Box-drawing characters need a UTF-8 console (Windows defaults to cp1252)
    if (getattr(sys.stdout, "encoding", None) or "").lower().replace("-", "") != "utf8":
        try:
            sys.stdout.reconfigure(encoding="utf-8")
        except (AttributeError, OSError):
            pass
    print()
    print("=" * W)
    print("  True Hourly Wage Calculator")
    print("=" * W)

    inputs = collect_inputs()
    results = calculate(inputs)
    d = compute_display_data(inputs, results)

    print()
    _print_section_1(d)
    _print_section_2(d)
    _print_section_3(d)
    _print_section_4(d)
    _print_section_5(d)


if __name__ == "__main__":
    run_cli()
