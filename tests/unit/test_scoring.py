"""Unit tests for risk scoring logic"""

import uuid
from decimal import Decimal

import pytest

from loan_underwriting.domain.models import (
    CustomerFinancials,
    LoanApplication,
    LoanCategory,
    RiskCategory,
)
from loan_underwriting.domain.policy import DEFAULT_POLICY
from loan_underwriting.domain.scoring import (
    assess,
    calculate_risk_score,
    categorize,
    credit_score_risk,
    ratio_risk,
)

WEIGHTS = DEFAULT_POLICY.weights


def make_application(**overrides) -> LoanApplication:
    fields = dict(
        id=uuid.uuid4(),
        application_number="LN-2026-0001",
        customer_ref="cust",
        loan_category=LoanCategory.PERSONAL,
        requested_amount=Decimal("500000"),
        requested_term_months=12,
        declared_income=Decimal("2000000"),
        existing_debt=Decimal("0"),
        collateral_value=Decimal("1000000"),
    )
    fields.update(overrides)
    return LoanApplication(**fields)


def customer(credit_score=800, monthly_income=None, existing_debt=None) -> CustomerFinancials:
    return CustomerFinancials("cust", credit_score, monthly_income, existing_debt)


def test_credit_score_risk_endpoints():
    """Best score is zero risk, worst score is full risk, out-of-range is clamped"""
    assert credit_score_risk(850, WEIGHTS) == Decimal("0")
    assert credit_score_risk(300, WEIGHTS) == Decimal("100")
    assert credit_score_risk(900, WEIGHTS) == Decimal("0")
    assert credit_score_risk(100, WEIGHTS) == Decimal("100")


def test_ratio_risk_curve_points():
    knee, full, knee_risk = Decimal("0.4"), Decimal("1.0"), Decimal("40")

    assert ratio_risk(Decimal("0"), knee, full, knee_risk) == Decimal("0")
    assert ratio_risk(Decimal("0.2"), knee, full, knee_risk) == Decimal("20")
    assert ratio_risk(knee, knee, full, knee_risk) == Decimal("40")
    assert ratio_risk(Decimal("0.7"), knee, full, knee_risk) == Decimal("70")
    assert ratio_risk(full, knee, full, knee_risk) == Decimal("100")
    assert ratio_risk(Decimal("5"), knee, full, knee_risk) == Decimal("100")


def test_ratio_risk_penalizes_past_knee():
    """LTV curve: slope above the 0.8 knee is steeper than below it"""
    knee, full, knee_risk = WEIGHTS.ltv_knee, WEIGHTS.ltv_full, WEIGHTS.knee_risk
    below = ratio_risk(Decimal("0.6"), knee, full, knee_risk) - ratio_risk(Decimal("0.5"), knee, full, knee_risk)
    above = ratio_risk(Decimal("1.0"), knee, full, knee_risk) - ratio_risk(Decimal("0.9"), knee, full, knee_risk)
    assert below == Decimal("5")
    assert above == Decimal("15")


@pytest.mark.parametrize(
    "score,expected",
    [
        (Decimal("0"), RiskCategory.LOW),
        (Decimal("29.99"), RiskCategory.LOW),
        (Decimal("30"), RiskCategory.MEDIUM),
        (Decimal("69.99"), RiskCategory.MEDIUM),
        (Decimal("70"), RiskCategory.HIGH),
        (Decimal("100"), RiskCategory.HIGH),
    ],
)
def test_categorize_thresholds(score, expected):
    assert categorize(score) == expected


def test_calculate_risk_score_renormalizes_missing_components():
    """A single present component is the score, whatever its weight"""
    assert calculate_risk_score({"credit_score": Decimal("50")}, WEIGHTS) == Decimal("50.00")
    assert calculate_risk_score({}, WEIGHTS) == Decimal("0")


def test_assess_low_risk_applicant():
    """
    Credit 800, DTI 0.25, LTV 0.5, amount 5% of the PERSONAL max:
    0.35*9.09 + 0.30*25 + 0.20*25 + 0.15*2.22 = 16.02
    """
    assessment = assess(make_application(), customer(800))

    assert assessment.category == RiskCategory.LOW
    assert assessment.score == Decimal("16.02")
    assert assessment.debt_to_income == Decimal("0.2500")
    assert assessment.loan_to_value == Decimal("0.5000")
    assert assessment.amount_ratio == Decimal("0.0500")
    assert not assessment.incomplete


def test_assess_high_risk_applicant():
    application = make_application(
        requested_amount=Decimal("2000000"),
        declared_income=Decimal("1000000"),
        existing_debt=Decimal("2000000"),
        collateral_value=Decimal("1000000"),
    )

    assessment = assess(application, customer(400))

    assert assessment.category == RiskCategory.HIGH
    assert assessment.score >= Decimal("70")


def test_assess_missing_inputs_are_reported_not_zeroed():
    application = make_application(declared_income=None, existing_debt=None, collateral_value=None)

    assessment = assess(application, customer(credit_score=None))

    assert assessment.incomplete
    assert assessment.missing_inputs == ("credit_score", "declared_income", "collateral_value")
    assert assessment.debt_to_income is None
    assert assessment.loan_to_value is None
    assert set(assessment.components) == {"amount_ratio"}
    assert "missing" in assessment.notes


def test_assess_falls_back_to_customer_income_and_debt():
    application = make_application(declared_income=None, existing_debt=None)

    assessment = assess(
        application,
        customer(800, monthly_income=Decimal("1000000"), existing_debt=Decimal("500000")),
    )

    assert assessment.debt_to_income == Decimal("1.0000")
    assert "declared_income" not in assessment.missing_inputs


def test_assess_without_customer_record():
    assessment = assess(make_application(), None)
    assert assessment.missing_inputs == ("credit_score",)


def test_risk_monotonic_in_debt_to_income():
    """Raising existing debt never lowers the score"""
    scores = [
        assess(make_application(existing_debt=Decimal(debt)), customer(700)).score
        for debt in ("0", "300000", "800000", "1500000", "3000000", "10000000")
    ]
    assert scores == sorted(scores)


def test_risk_monotonic_in_loan_to_value():
    """Shrinking collateral (raising LTV) never lowers the score"""
    scores = [
        assess(make_application(collateral_value=Decimal(value)), customer(700)).score
        for value in ("5000000", "1000000", "625000", "500000", "400000", "100000")
    ]
    assert scores == sorted(scores)


def test_risk_never_increases_with_credit_score():
    scores = [assess(make_application(), customer(score)).score for score in (300, 450, 600, 700, 800, 850)]
    assert scores == sorted(scores, reverse=True)


def test_score_is_bounded():
    worst = make_application(
        requested_amount=Decimal("10000000"),
        declared_income=Decimal("1"),
        existing_debt=Decimal("99999999"),
        collateral_value=Decimal("1"),
    )
    assessment = assess(worst, customer(300))
    assert assessment.score == Decimal("100.00")
    assert assessment.category == RiskCategory.HIGH
