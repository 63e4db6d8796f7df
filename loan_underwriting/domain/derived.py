"""Derived figures, computed once after every state change"""

from typing import Optional

from loan_underwriting.domain.eligibility import (
    amount_to_max_ratio,
    applicant_debt_to_income,
    loan_to_value_ratio,
)
from loan_underwriting.domain.models import CustomerFinancials, DerivedFigures, LoanApplication
from loan_underwriting.domain.payments import summarize
from loan_underwriting.domain.policy import DEFAULT_POLICY, PolicyTable


def derive(
    application: LoanApplication,
    policy: PolicyTable = DEFAULT_POLICY,
    financials: Optional[CustomerFinancials] = None,
) -> DerivedFigures:
    """
    Ratios use the same income/debt resolution as the risk classifier: declared
    figures first, then the customer record when one was fetched for this call.
    """
    total_payment = None
    total_interest = None
    if application.approved_amount is not None:
        summary = summarize(
            application.approved_amount,
            application.approved_term_months,
            application.approved_rate,
        )
        total_payment = summary.total_payment
        total_interest = summary.total_interest

    return DerivedFigures(
        debt_to_income=applicant_debt_to_income(application, financials),
        loan_to_value=loan_to_value_ratio(application.requested_amount, application.collateral_value),
        amount_to_max_ratio=amount_to_max_ratio(
            application.loan_category, application.requested_amount, policy
        ),
        total_payment=total_payment,
        total_interest=total_interest,
    )
