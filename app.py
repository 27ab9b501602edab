"""
Flask JSON API for the true hourly wage calculator.

Every endpoint takes a JSON body and answers with the engine's result
dataclasses serialised through ``dataclasses.asdict``. Run via
``python main.py`` which starts the dev server on localhost:5000.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import asdict, fields, is_dataclass
from typing import Any, Dict, List, Mapping, Optional

from flask import Flask, jsonify, request

import config as cfg
from cli import compute_display_data, generate_verdict_text
from growth import compare_fees, fire_progress, project_fire, project_growth
from hours import TimeBudget
from jurisdictions import Region, load_jurisdiction, loan_plans
from loans import LoanInstrument, amortize_loans, instruments_for_plans, overpayment_benefit
from pension import PensionInputs, project_pension
from tax import PensionConfig, compute_deductions, marginal_rate_breakdown, parse_pension_mode
from wage import (
    CalculationInputs,
    WorkCosts,
    calculate,
    compute_true_hourly_wage,
    summary_dict,
)

logger = logging.getLogger(__name__)

app = Flask(__name__)


# ═══════════════════════════════════════════════════════════════════
# Request parsing
# ═══════════════════════════════════════════════════════════════════

def _parse_currency(s: str) -> str:
    return s.replace("£", "").replace(",", "").replace(" ", "")


def _number(data: Mapping[str, Any], key: str, default: Optional[float] = 0.0) -> Optional[float]:
    """Read a numeric field; present but unreadable values are a 400."""
    value = data.get(key)
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValueError(f"'{key}' must be a number")
    if isinstance(value, str):
        value = _parse_currency(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"'{key}' must be a number, got {data.get(key)!r}") from None
    if not math.isfinite(number):
        raise ValueError(f"'{key}' must be a finite number, got {data.get(key)!r}")
    return number


def _int(data: Mapping[str, Any], key: str, default: Optional[int] = None) -> Optional[int]:
    value = _number(data, key, None)
    return default if value is None else int(value)


def _body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        if request.get_data():
            raise ValueError("Request body must be valid JSON")
        return {}
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def _check_numbers(data: Mapping[str, Any], keys) -> None:
    for key in keys:
        _number(data, key, None)


def _calculation_inputs(data: Mapping[str, Any]) -> CalculationInputs:
    """Validate numbers strictly, then let the inputs clamp ranges."""
    _check_numbers(data, [
        "salary", "tax_year", "pension_percent", "salary_growth", "contract_hours",
        "commute_minutes", "unpaid_break", "prep_time", "work_days", "holiday_days",
        "commute_cost", "work_clothes", "stress_tax", "pre_tax_deductions",
    ])
    loans = data.get("loans") or {}
    if isinstance(loans, Mapping):
        _check_numbers(loans, loans.keys())
    return CalculationInputs.from_mapping(data)


def _instrument(entry: Mapping[str, Any], index: int) -> LoanInstrument:
    if not isinstance(entry, Mapping):
        raise ValueError(f"instruments[{index}] must be an object")
    upper = _number(entry, "interest_upper_threshold", None)
    return LoanInstrument(
        id=str(entry.get("id") or f"loan{index + 1}"),
        balance=_number(entry, "balance"),
        annual_interest_rate=_number(entry, "annual_interest_rate"),
        repayment_threshold=_number(entry, "repayment_threshold"),
        repayment_rate=_number(entry, "repayment_rate"),
        write_off_years=_int(entry, "write_off_years", cfg.DEFAULT_LOAN_YEARS),
        years_elapsed=_int(entry, "years_elapsed", 0),
        threshold_growth=_number(entry, "threshold_growth"),
        interest_spread=_number(entry, "interest_spread"),
        interest_upper_threshold=upper,
        annual_overpayment=_number(entry, "annual_overpayment"),
        enabled=bool(entry.get("enabled", True)),
    )


def _instruments(data: Mapping[str, Any]) -> List[LoanInstrument]:
    """Explicit ``instruments`` and/or configured ``plans`` (``{plan: balance}``)."""
    entries = data.get("instruments") or []
    if not isinstance(entries, list):
        raise ValueError("'instruments' must be a list")
    instruments = [_instrument(e, n) for n, e in enumerate(entries)]

    plans = data.get("plans") or {}
    if not isinstance(plans, Mapping):
        raise ValueError("'plans' must map plan names to balances")
    _check_numbers(plans, plans.keys())
    tax_year = _int(data, "tax_year", cfg.BASE_TAX_YEAR)
    instruments += instruments_for_plans(
        {plan: _number(plans, plan) for plan in plans},
        tax_year,
        years_elapsed=_int(data, "years_elapsed", 0),
    )
    return instruments


# ═══════════════════════════════════════════════════════════════════
# Serialisation
# ═══════════════════════════════════════════════════════════════════

def to_json(obj: Any) -> Any:
    """``asdict`` with enums flattened to their values."""
    if is_dataclass(obj) and not isinstance(obj, type):
        return to_json(asdict(obj))
    if isinstance(obj, enum.Enum):
        return obj.value
    if isinstance(obj, dict):
        return {to_json(k): to_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_json(v) for v in obj]
    return obj


@app.errorhandler(ValueError)
def bad_request(exc: ValueError):
    logger.info("Rejected %s %s: %s", request.method, request.path, exc)
    return jsonify({"error": str(exc)}), 400


# ═══════════════════════════════════════════════════════════════════
# Routes
# ═══════════════════════════════════════════════════════════════════

@app.route("/")
def index():
    return jsonify({
        "name": "True Hourly Wage Calculator",
        "endpoints": sorted(
            str(rule) for rule in app.url_map.iter_rules() if str(rule).startswith("/api/")
        ),
    })


@app.route("/api/jurisdictions", methods=["GET"])
def jurisdictions():
    out = {}
    for year in cfg.SUPPORTED_TAX_YEARS:
        out[str(year)] = {
            "regions": {r.value: to_json(load_jurisdiction(r, year)) for r in Region},
            "loan_plans": {p.value: to_json(t) for p, t in loan_plans(year).items()},
        }
    return jsonify(out)


@app.route("/api/deductions", methods=["POST"])
def deductions():
    data = _body()
    gross = _number(data, "gross_income", None)
    if gross is None:
        gross = _number(data, "salary", 0.0)
    jurisdiction = load_jurisdiction(
        data.get("region", "england"), _int(data, "tax_year", cfg.BASE_TAX_YEAR)
    )
    pension = PensionConfig(
        _number(data, "pension_percent"),
        parse_pension_mode(data.get("pension_mode", "salary_sacrifice")),
    )
    result = compute_deductions(gross, jurisdiction, pension, _number(data, "pre_tax_deductions"))
    out = to_json(result)
    out["total_deductions"] = result.total_deductions
    out["monthly_net"] = result.monthly_net
    out["marginal_breakdown"] = marginal_rate_breakdown(gross, jurisdiction, pension)
    return jsonify(out)


@app.route("/api/loans", methods=["POST"])
def loans():
    data = _body()
    instruments = _instruments(data)
    income = _number(data, "starting_income", None)
    if income is None:
        income = _number(data, "salary", 0.0)
    growth = _number(data, "salary_growth_rate", 0.0)
    years = _int(data, "years")

    result = amortize_loans(instruments, income, growth, years)
    out = to_json(result)
    monthly_extra = _number(data, "monthly_extra", None)
    if monthly_extra and result.per_instrument:
        benefit = overpayment_benefit(
            instruments, income, growth, monthly_extra, data.get("target_id"), years
        )
        out["overpayment"] = to_json(benefit)
    return jsonify(out)


@app.route("/api/true-wage", methods=["POST"])
def true_wage():
    data = _body()
    if "deductions" in data or "budget" in data:
        # Low-level form: net pay and hours supplied directly.
        deductions_data = data.get("deductions") or {}
        budget_data = data.get("budget") or {}
        costs_data = data.get("costs") or {}
        jurisdiction = load_jurisdiction(
            data.get("region", "england"), _int(data, "tax_year", cfg.BASE_TAX_YEAR)
        )
        deductions = compute_deductions(
            _number(deductions_data, "gross_income"),
            jurisdiction,
            PensionConfig(
                _number(deductions_data, "pension_percent"),
                parse_pension_mode(deductions_data.get("pension_mode", "salary_sacrifice")),
            ),
        )
        budget = TimeBudget(**{
            f.name: _number(budget_data, f.name, f.default) for f in fields(TimeBudget)
        })
        costs = WorkCosts(**{
            f.name: _number(costs_data, f.name) for f in fields(WorkCosts)
        })
        result = compute_true_hourly_wage(deductions, budget, costs, _number(data, "loan_repayment"))
        return jsonify(to_json(result))

    inputs = _calculation_inputs(data)
    results = calculate(inputs)
    out = to_json(results.wage)
    out["summary"] = summary_dict(results)
    return jsonify(out)


@app.route("/api/growth", methods=["POST"])
def growth():
    data = _body()
    starting = _number(data, "starting_balance")
    contribution = _number(data, "annual_contribution")
    rate = _number(data, "annual_return_rate", cfg.REAL_MARKET_RETURN)
    salary_growth = _number(data, "salary_growth_rate")

    expenses = _number(data, "annual_expenses", None)
    if expenses is not None:
        fire = project_fire(starting, contribution, expenses, rate, salary_growth,
                            _number(data, "current_age", None))
        out = to_json(fire)
        out["progress"] = to_json(fire_progress(starting, expenses, annual_return_rate=rate))
        return jsonify(out)

    result = project_growth(
        starting,
        contribution,
        rate,
        salary_growth,
        years=_int(data, "years"),
        target_balance=_number(data, "target_balance", None),
    )
    out = to_json(result)
    out["total_contributions"] = result.total_contributions
    out["total_growth"] = result.total_growth
    if "fee_rate" in data:
        out["fees"] = to_json(compare_fees(
            starting, contribution, result.years_simulated, rate,
            high_fee_rate=_number(data, "fee_rate"),
        ))
    return jsonify(out)


@app.route("/api/pension", methods=["POST"])
def pension():
    data = _body()
    inputs = PensionInputs(
        gross_salary=_number(data, "gross_salary", _number(data, "salary")),
        employee_percent=_number(data, "employee_percent", 5.0),
        employer_match_percent=_number(data, "employer_match_percent", 3.0),
        employer_match_cap=_number(data, "employer_match_cap", 5.0),
        current_age=_int(data, "current_age", 30),
        retirement_age=_int(data, "retirement_age", cfg.STATE_PENSION_AGE),
        current_pot=_number(data, "current_pot"),
        expected_return=_number(data, "expected_return", 0.05),
        salary_growth=_number(data, "salary_growth", 0.03),
        include_state_pension=bool(data.get("include_state_pension", True)),
        mode=parse_pension_mode(data.get("mode", "salary_sacrifice")),
    )
    jurisdiction = load_jurisdiction(
        data.get("region", "england"), _int(data, "tax_year", cfg.BASE_TAX_YEAR)
    )
    result = project_pension(inputs, jurisdiction)
    out = to_json(result)
    out["employer_match_value"] = result.employer_match_value
    out["monthly_income"] = result.monthly_income
    out["total_annual_income"] = result.total_annual_income
    return jsonify(out)


@app.route("/api/calculate", methods=["POST"])
def calculate_all():
    data = _body()
    inputs = _calculation_inputs(data)
    results = calculate(inputs)
    display = compute_display_data(inputs, results)
    logger.debug("Calculated true rate %s for salary %.0f", results.true_hourly_rate, inputs.salary)
    return jsonify({
        "inputs": to_json(inputs),
        "summary": summary_dict(results),
        "deductions": to_json(results.deductions),
        "marginal": display["marginal"],
        "loans": to_json(results.loans),
        "wage": to_json(results.wage),
        "what_ifs": to_json(display["what_ifs"]),
        "verdict": generate_verdict_text(display),
    })


def run_web(debug: bool = True, port: int = 5000) -> None:
    """Start the Flask development server."""
    print(f"Starting API at http://localhost:{port}")
    app.run(host="127.0.0.1", port=port, debug=debug)


if __name__ == "__main__":
    run_web()
