"""
UK tax, National Insurance and student loan constants for the true-wage engine.

All monetary values in GBP. Data is keyed by tax year, where 2025 means
2025/26. Income tax bands are expressed on *taxable* income, i.e. after
the personal allowance has been deducted, as (lower floor, rate) pairs.
Nothing in here is read directly by the calculators; ``jurisdictions.py``
validates it and turns it into immutable objects.
"""

# ── General assumptions ──────────────────────────────────────────────
BASE_TAX_YEAR = 2025     # 2025 means 2025/26
SUPPORTED_TAX_YEARS = (2024, 2025)

WEEKS_PER_YEAR = 52
MONTHS_PER_YEAR = 12

DEFAULT_LOAN_YEARS = 30         # used when a write-off bound is missing or zero
MAX_PROJECTION_YEARS = 80       # hard ceiling for growth projections

FIRE_MULTIPLE = 25              # FIRE number = 25x annual expenses
SAFE_WITHDRAWAL_RATE = 0.04
REAL_MARKET_RETURN = 0.07       # long-run S&P 500 return after inflation

# ── Personal Allowance ───────────────────────────────────────────────
PERSONAL_ALLOWANCE = {
    2024: 12_570,
    2025: 12_570,
}
PA_TAPER_THRESHOLD = 100_000    # PA reduces £1 per £2 above this
PA_TAPER_END = 125_140          # PA fully withdrawn here
PA_TAPER_RATIO = 0.5

# ── Income Tax (England, Wales, Northern Ireland) ───────────────────
# (floor on taxable income, rate). Last band has no upper limit.
INCOME_TAX_BANDS_RUK = {
    2024: [
        (0, 0.20),         # basic rate
        (37_700, 0.40),    # higher rate
        (125_140, 0.45),   # additional rate
    ],
    2025: [
        (0, 0.20),
        (37_700, 0.40),
        (125_140, 0.45),
    ],
}

# ── Income Tax (Scotland) ────────────────────────────────────────────
INCOME_TAX_BANDS_SCOTLAND = {
    2024: [
        (0, 0.19),         # starter rate
        (2_306, 0.20),     # basic rate
        (13_991, 0.21),    # intermediate rate
        (31_092, 0.42),    # higher rate
        (62_430, 0.45),    # advanced rate
        (125_140, 0.48),   # top rate
    ],
    2025: [
        (0, 0.19),
        (2_827, 0.20),
        (14_921, 0.21),
        (31_092, 0.42),
        (62_430, 0.45),
        (125_140, 0.48),
    ],
}

REGION_INCOME_TAX_BANDS = {
    "england": INCOME_TAX_BANDS_RUK,
    "wales": INCOME_TAX_BANDS_RUK,
    "northern_ireland": INCOME_TAX_BANDS_RUK,
    "scotland": INCOME_TAX_BANDS_SCOTLAND,
}

# ── National Insurance (Employee Class 1) ────────────────────────────
# (floor on pay, rate), same shape as the income tax bands.
NI_BANDS = {
    2024: [
        (0, 0.00),         # below primary threshold
        (12_570, 0.08),    # main rate
        (50_270, 0.02),    # upper rate
    ],
    2025: [
        (0, 0.00),
        (12_570, 0.08),
        (50_270, 0.02),
    ],
}

# ── Student Loans ────────────────────────────────────────────────────
# interest_spread / interest_upper_threshold describe Plan 2's sliding
# scale: base rate at the repayment threshold, base + spread at the upper
# threshold, linear in between.
STUDENT_LOAN_PLANS = {
    2024: {
        "plan1": {
            "name": "Plan 1",
            "threshold": 24_990,
            "rate": 0.09,
            "interest_rate": 0.043,
            "write_off_years": 25,
        },
        "plan2": {
            "name": "Plan 2",
            "threshold": 27_295,
            "rate": 0.09,
            "interest_rate": 0.043,
            "interest_spread": 0.03,
            "interest_upper_threshold": 49_130,
            "write_off_years": 30,
        },
        "plan4": {
            "name": "Plan 4",
            "threshold": 31_395,
            "rate": 0.09,
            "interest_rate": 0.043,
            "write_off_years": 30,
        },
        "plan5": {
            "name": "Plan 5",
            "threshold": 25_000,
            "rate": 0.09,
            "interest_rate": 0.043,
            "write_off_years": 40,
        },
        "postgrad": {
            "name": "Postgraduate Loan",
            "threshold": 21_000,
            "rate": 0.06,
            "interest_rate": 0.073,
            "write_off_years": 30,
        },
    },
    2025: {
        "plan1": {
            "name": "Plan 1",
            "threshold": 26_065,
            "rate": 0.09,
            "interest_rate": 0.032,
            "write_off_years": 25,
        },
        "plan2": {
            "name": "Plan 2",
            "threshold": 28_470,
            "rate": 0.09,
            "interest_rate": 0.032,
            "interest_spread": 0.03,
            "interest_upper_threshold": 51_245,
            "write_off_years": 30,
        },
        "plan4": {
            "name": "Plan 4",
            "threshold": 32_745,
            "rate": 0.09,
            "interest_rate": 0.032,
            "write_off_years": 30,
        },
        "plan5": {
            "name": "Plan 5",
            "threshold": 25_000,
            "rate": 0.09,
            "interest_rate": 0.032,
            "write_off_years": 40,
        },
        "postgrad": {
            "name": "Postgraduate Loan",
            "threshold": 21_000,
            "rate": 0.06,
            "interest_rate": 0.062,
            "write_off_years": 30,
        },
    },
}

# ── Workplace pension ────────────────────────────────────────────────
STATE_PENSION_WEEKLY = 230.25
STATE_PENSION_AGE = 67

# ── Home-working relief ──────────────────────────────────────────────
# HMRC flat-rate allowance for employees required to work from home,
# taken off taxable pay. No receipts needed at this rate.
WFH_RELIEF_WEEKLY = 6

# ── What-if scenarios ────────────────────────────────────────────────
# Remaining share of commute time/cost when working from home N days.
WFH_COMMUTE_SHARE = {
    "wfh2": 0.6,
    "wfh3": 0.4,
}
RAISE_FACTOR = {
    "raise10": 1.10,
    "raise20": 1.20,
}

# ── CLI / web defaults ───────────────────────────────────────────────
DEFAULT_INPUTS = {
    "salary": 35_000,
    "region": "england",
    "pension_percent": 5.0,
    "pension_mode": "salary_sacrifice",
    "contract_hours": 37.5,
    "commute_minutes": 56,
    "unpaid_break": 30,
    "prep_time": 30,
    "work_days": 5,
    "holiday_days": 28,
    "commute_cost": 0.0,     # per month
    "work_clothes": 0.0,     # per year
    "stress_tax": 0.0,       # percent of net pay
    "salary_growth": 0.03,
}
