"""Risk classifier - core business logic for underwriting risk"""

from decimal import Decimal
from typing import Dict, List, Optional

from loan_underwriting.domain.eligibility import (
    amount_to_max_ratio,
    applicant_debt_to_income,
    loan_to_value_ratio,
)
from loan_underwriting.domain.models import (
    CustomerFinancials,
    LoanApplication,
    RiskAssessment,
    RiskCategory,
)
from loan_underwriting.domain.policy import DEFAULT_POLICY, PolicyTable, RiskWeights
from loan_underwriting.utils.decimal_utils import HUNDRED, ZERO, clamp, quantize_money

HIGH_RISK_THRESHOLD = Decimal("70")
MEDIUM_RISK_THRESHOLD = Decimal("30")


def credit_score_risk(credit_score: int, weights: RiskWeights) -> Decimal:
    """
    Invert the normalized credit score: 300 -> 100 risk, 850 -> 0 risk.
    Scores outside the range are clamped.
    """
    low = Decimal(weights.min_credit_score)
    high = Decimal(weights.max_credit_score)
    normalized = clamp((Decimal(credit_score) - low) / (high - low), ZERO, Decimal("1")) * HUNDRED
    return HUNDRED - normalized


def ratio_risk(ratio: Decimal, knee: Decimal, full: Decimal, knee_risk: Decimal) -> Decimal:
    """
    Piecewise-linear penalty curve, non-decreasing in `ratio`.

    0 -> 0, knee -> knee_risk, full -> 100, capped at 100. The slope past
    the knee is what penalizes ratios above the policy threshold.
    """
    if ratio <= ZERO:
        return ZERO
    if ratio <= knee:
        return ratio / knee * knee_risk
    if ratio >= full:
        return HUNDRED
    return knee_risk + (ratio - knee) / (full - knee) * (HUNDRED - knee_risk)


def categorize(score: Decimal) -> RiskCategory:
    """
    Map score to category:
    - score >= 70: HIGH
    - 30 <= score < 70: MEDIUM
    - score < 30: LOW
    """
    if score >= HIGH_RISK_THRESHOLD:
        return RiskCategory.HIGH
    if score >= MEDIUM_RISK_THRESHOLD:
        return RiskCategory.MEDIUM
    return RiskCategory.LOW


def calculate_risk_score(components: Dict[str, Decimal], weights: RiskWeights) -> Decimal:
    """
    Weighted mean of the components that are present, renormalized over their
    weights so a missing input neither inflates nor deflates the score.
    """
    weight_by_name = {
        "credit_score": weights.credit_score,
        "debt_to_income": weights.debt_to_income,
        "loan_to_value": weights.loan_to_value,
        "amount_ratio": weights.amount_ratio,
    }
    total_weight = sum((weight_by_name[name] for name in components), ZERO)
    if total_weight == ZERO:
        return ZERO

    weighted = sum((weight_by_name[name] * value for name, value in components.items()), ZERO)
    return clamp(quantize_money(weighted / total_weight), ZERO, HUNDRED)


def _build_notes(score: Decimal, category: RiskCategory, missing: List[str]) -> str:
    notes = f"Risk {category.value} (score {score})"
    if missing:
        notes += "; assessment incomplete, missing: " + ", ".join(missing)
    return notes


def assess(
    application: LoanApplication,
    financials: Optional[CustomerFinancials],
    policy: PolicyTable = DEFAULT_POLICY,
) -> RiskAssessment:
    """
    Main entry point: combine applicant financials and requested terms into a
    bounded risk score (0 = lowest risk, 100 = highest).

    Components (weights from the policy table):
    - credit score, normalized to [0, 100] and inverted
    - debt-to-income, penalized above its knee (0.4 by default)
    - loan-to-value, penalized above its knee (0.8 by default)
    - requested amount / category max, penalized above its knee (0.9 by default)

    Missing credit score, income or collateral are excluded and listed in
    `missing_inputs`; they never crash the classifier or count as zero.
    """
    weights = policy.weights
    components: Dict[str, Decimal] = {}
    missing: List[str] = []

    credit_score = financials.credit_score if financials else None
    if credit_score is None:
        missing.append("credit_score")
    else:
        components["credit_score"] = credit_score_risk(credit_score, weights)

    dti = applicant_debt_to_income(application, financials)
    if dti is None:
        missing.append("declared_income")
    else:
        components["debt_to_income"] = ratio_risk(dti, weights.dti_knee, weights.dti_full, weights.knee_risk)

    ltv = loan_to_value_ratio(application.requested_amount, application.collateral_value)
    if ltv is None:
        missing.append("collateral_value")
    else:
        components["loan_to_value"] = ratio_risk(ltv, weights.ltv_knee, weights.ltv_full, weights.knee_risk)

    amount_ratio = amount_to_max_ratio(application.loan_category, application.requested_amount, policy)
    components["amount_ratio"] = ratio_risk(
        amount_ratio, weights.amount_ratio_knee, weights.amount_ratio_full, weights.knee_risk
    )

    score = calculate_risk_score(components, weights)
    category = categorize(score)

    return RiskAssessment(
        score=score,
        category=category,
        components={name: quantize_money(value) for name, value in components.items()},
        missing_inputs=tuple(missing),
        debt_to_income=dti,
        loan_to_value=ltv,
        amount_ratio=amount_ratio,
        notes=_build_notes(score, category, missing),
    )
