"""Eligibility rules - per-category bounds and derived ratios

Pure functions. Nothing here raises: a ratio that cannot be computed is None,
which callers must read as "insufficient data".
"""

from decimal import Decimal
from typing import List, Optional

from loan_underwriting.domain.models import (
    BoundViolation,
    CategoryBounds,
    CustomerFinancials,
    LoanApplication,
    LoanCategory,
)
from loan_underwriting.domain.policy import DEFAULT_POLICY, PolicyTable
from loan_underwriting.utils.decimal_utils import ZERO, quantize_ratio, to_decimal


def bounds_for(category: LoanCategory, policy: PolicyTable = DEFAULT_POLICY) -> CategoryBounds:
    return policy.for_category(category).bounds


def check_bounds(
    category: LoanCategory,
    amount: Decimal,
    term_months: int,
    policy: PolicyTable = DEFAULT_POLICY,
) -> List[BoundViolation]:
    """Return every violated bound (empty list when both values are admissible)"""
    bounds = bounds_for(category, policy)
    amount = to_decimal(amount)
    term = Decimal(term_months)
    violations = []

    if amount < bounds.min_amount:
        violations.append(BoundViolation("amount", amount, bounds.min_amount, "minimum", category))
    elif amount > bounds.max_amount:
        violations.append(BoundViolation("amount", amount, bounds.max_amount, "maximum", category))

    if term < bounds.min_term_months:
        violations.append(
            BoundViolation("term_months", term, Decimal(bounds.min_term_months), "minimum", category)
        )
    elif term > bounds.max_term_months:
        violations.append(
            BoundViolation("term_months", term, Decimal(bounds.max_term_months), "maximum", category)
        )

    return violations


def is_within_bounds(
    category: LoanCategory,
    amount: Decimal,
    term_months: int,
    policy: PolicyTable = DEFAULT_POLICY,
) -> bool:
    return not check_bounds(category, amount, term_months, policy)


def debt_to_income_ratio(
    requested_amount: Decimal,
    existing_debt: Optional[Decimal],
    declared_income: Optional[Decimal],
) -> Optional[Decimal]:
    """(requested + existing debt) / income, 4 dp half-up; None without income"""
    if declared_income is None or to_decimal(declared_income) == ZERO:
        return None
    debt = ZERO if existing_debt is None else to_decimal(existing_debt)
    return quantize_ratio((to_decimal(requested_amount) + debt) / to_decimal(declared_income))


def resolve_income(application: LoanApplication, financials: Optional[CustomerFinancials]) -> Optional[Decimal]:
    """Declared income, else the customer record's monthly income"""
    if application.declared_income is not None:
        return application.declared_income
    return financials.monthly_income if financials else None


def resolve_debt(application: LoanApplication, financials: Optional[CustomerFinancials]) -> Optional[Decimal]:
    if application.existing_debt is not None:
        return application.existing_debt
    return financials.existing_debt if financials else None


def applicant_debt_to_income(
    application: LoanApplication,
    financials: Optional[CustomerFinancials] = None,
) -> Optional[Decimal]:
    return debt_to_income_ratio(
        application.requested_amount,
        resolve_debt(application, financials),
        resolve_income(application, financials),
    )


def loan_to_value_ratio(
    requested_amount: Decimal,
    collateral_value: Optional[Decimal],
) -> Optional[Decimal]:
    """requested / collateral, 4 dp half-up; None without collateral"""
    if collateral_value is None or to_decimal(collateral_value) == ZERO:
        return None
    return quantize_ratio(to_decimal(requested_amount) / to_decimal(collateral_value))


def amount_to_max_ratio(
    category: LoanCategory,
    amount: Decimal,
    policy: PolicyTable = DEFAULT_POLICY,
) -> Decimal:
    return quantize_ratio(to_decimal(amount) / bounds_for(category, policy).max_amount)


def is_auto_approvable(
    category: LoanCategory,
    amount: Decimal,
    policy: PolicyTable = DEFAULT_POLICY,
) -> bool:
    limit = policy.for_category(category).auto_approval_limit
    return limit is not None and to_decimal(amount) <= limit
