"""
Application workflow - pure transition functions.

Each function takes the current LoanApplication and returns the next one
(or raises). Nothing is mutated in place, so a rejected transition always
leaves the caller's application exactly as it was. Legality of every status
change comes from the TRANSITIONS table in domain/status.py.
"""

import re
import uuid
from dataclasses import replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from loan_underwriting.domain.eligibility import check_bounds, is_auto_approvable
from loan_underwriting.domain.exceptions import (
    DocumentsIncompleteError,
    EligibilityError,
    IllegalTransitionError,
    ValidationError,
)
from loan_underwriting.domain.models import (
    LoanApplication,
    LoanCategory,
    RiskAssessment,
    RiskCategory,
)
from loan_underwriting.domain.payments import monthly_payment
from loan_underwriting.domain.policy import DEFAULT_POLICY, PolicyTable
from loan_underwriting.domain.status import (
    ApplicationStatus,
    ensure_transition,
    is_review_state,
    next_review_state,
)
from loan_underwriting.utils.decimal_utils import ZERO, to_decimal

APPLICATION_NUMBER_PATTERN = re.compile(r"^LN-\d{4}-\d{4,}$")

_FINANCIALS_EDITABLE = frozenset(
    {ApplicationStatus.DRAFT, ApplicationStatus.PENDING, ApplicationStatus.PENDING_INFO}
)


def format_application_number(year: int, sequence: int) -> str:
    """LN-YYYY-NNNN, zero-padded to at least four digits"""
    return f"LN-{year:04d}-{sequence:04d}"


def _require_text(value: Optional[str], field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", field=field)
    return value.strip()


def parse_category(value, field: str = "loan_category") -> LoanCategory:
    """Coerce a category name or enum member, refusing unknown values"""
    try:
        return LoanCategory(value)
    except ValueError:
        known = ", ".join(c.value for c in LoanCategory)
        raise ValidationError(f"{field} {value!r} is not one of {known}", field=field) from None


def parse_decimal(value, field: str) -> Decimal:
    """Coerce a money or rate input to a finite Decimal"""
    try:
        result = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number, got {value!r}", field=field) from None
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number, got {value!r}", field=field)
    return result


def require_positive(value, field: str) -> Decimal:
    if value is None:
        raise ValidationError(f"{field} is required", field=field)
    value = parse_decimal(value, field)
    if value <= ZERO:
        raise ValidationError(f"{field} must be positive, got {value}", field=field)
    return value


def require_positive_term(value, field: str) -> int:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a positive number of months, got {value!r}", field=field)
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(f"{field} must be a whole number of months, got {value!r}", field=field)
    try:
        term = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{field} must be a positive number of months, got {value!r}", field=field) from None
    if term <= 0:
        raise ValidationError(f"{field} must be a positive number of months, got {value!r}", field=field)
    return term


def _optional_non_negative(value, field: str) -> Optional[Decimal]:
    if value is None:
        return None
    value = parse_decimal(value, field)
    if value < ZERO:
        raise ValidationError(f"{field} must not be negative, got {value}", field=field)
    return value


def _ensure_bounds(category: LoanCategory, amount: Decimal, term_months: int, policy: PolicyTable) -> None:
    violations = check_bounds(category, amount, term_months, policy)
    if violations:
        raise EligibilityError(violations)


def _ensure_documents(application: LoanApplication, documents_satisfied: bool) -> None:
    if application.status == ApplicationStatus.DOCUMENT_REVIEW and not documents_satisfied:
        raise DocumentsIncompleteError(application.id)


def create_application(
    *,
    application_number: str,
    customer_ref: str,
    category: LoanCategory,
    requested_amount,
    requested_term_months: int,
    now: datetime,
    declared_income=None,
    existing_debt=None,
    collateral_value=None,
    purpose: Optional[str] = None,
    application_id: Optional[uuid.UUID] = None,
    policy: PolicyTable = DEFAULT_POLICY,
) -> LoanApplication:
    """Build a new DRAFT application; raises before anything exists if inputs are inadmissible"""
    customer_ref = _require_text(customer_ref, "customer_ref")
    amount = require_positive(requested_amount, "requested_amount")
    term = require_positive_term(requested_term_months, "requested_term_months")
    category = parse_category(category)
    _ensure_bounds(category, amount, term, policy)

    return LoanApplication(
        id=application_id or uuid.uuid4(),
        application_number=application_number,
        customer_ref=customer_ref,
        loan_category=category,
        requested_amount=amount,
        requested_term_months=term,
        status=ApplicationStatus.DRAFT,
        purpose=purpose,
        declared_income=_optional_non_negative(declared_income, "declared_income"),
        existing_debt=_optional_non_negative(existing_debt, "existing_debt"),
        collateral_value=_optional_non_negative(collateral_value, "collateral_value"),
        created_at=now,
    )


def update_draft(
    application: LoanApplication,
    *,
    category: Optional[LoanCategory] = None,
    requested_amount=None,
    requested_term_months: Optional[int] = None,
    purpose: Optional[str] = None,
    declared_income=None,
    existing_debt=None,
    collateral_value=None,
    policy: PolicyTable = DEFAULT_POLICY,
) -> LoanApplication:
    """Edit the loan request and its financials; only while DRAFT"""
    if application.status != ApplicationStatus.DRAFT:
        raise IllegalTransitionError("edit the loan request of", application.status)

    category = parse_category(category) if category is not None else application.loan_category
    amount = (
        require_positive(requested_amount, "requested_amount")
        if requested_amount is not None
        else application.requested_amount
    )
    term = (
        require_positive_term(requested_term_months, "requested_term_months")
        if requested_term_months is not None
        else application.requested_term_months
    )
    _ensure_bounds(category, amount, term, policy)

    edited = replace(
        application,
        loan_category=category,
        requested_amount=amount,
        requested_term_months=term,
        purpose=purpose if purpose is not None else application.purpose,
    )
    return update_financials(
        edited,
        declared_income=declared_income,
        existing_debt=existing_debt,
        collateral_value=collateral_value,
    )


def update_financials(
    application: LoanApplication,
    *,
    declared_income=None,
    existing_debt=None,
    collateral_value=None,
) -> LoanApplication:
    """
    Replace applicant-declared financials (None leaves a value unchanged).

    A risk assessment computed from the previous figures is dropped when any
    figure changes; the caller re-assesses when it needs a current score.
    """
    if application.status not in _FINANCIALS_EDITABLE:
        raise IllegalTransitionError("update financials of", application.status)

    income = _optional_non_negative(declared_income, "declared_income")
    debt = _optional_non_negative(existing_debt, "existing_debt")
    collateral = _optional_non_negative(collateral_value, "collateral_value")

    updated = replace(
        application,
        declared_income=income if income is not None else application.declared_income,
        existing_debt=debt if debt is not None else application.existing_debt,
        collateral_value=collateral if collateral is not None else application.collateral_value,
    )
    changed = (
        updated.declared_income != application.declared_income
        or updated.existing_debt != application.existing_debt
        or updated.collateral_value != application.collateral_value
    )
    return clear_assessment(updated) if changed else updated


def clear_assessment(application: LoanApplication) -> LoanApplication:
    """Remove a stored risk assessment"""
    return replace(
        application,
        risk_score=None,
        risk_category=None,
        assessment_notes=None,
        assessment_incomplete=False,
        missing_inputs=(),
        assessed_at=None,
    )


def submit(application: LoanApplication, *, now: datetime, policy: PolicyTable = DEFAULT_POLICY) -> LoanApplication:
    """DRAFT -> SUBMITTED; bounds are re-checked since the draft may have been edited"""
    ensure_transition("submit", application.status, ApplicationStatus.SUBMITTED)
    if not APPLICATION_NUMBER_PATTERN.match(application.application_number or ""):
        raise ValidationError(
            f"Application number {application.application_number!r} does not match LN-YYYY-NNNN",
            field="application_number",
        )
    _ensure_bounds(
        application.loan_category,
        application.requested_amount,
        application.requested_term_months,
        policy,
    )
    return replace(application, status=ApplicationStatus.SUBMITTED, submitted_at=now)


def accept(application: LoanApplication) -> LoanApplication:
    """SUBMITTED -> PENDING: the application enters the review queue"""
    ensure_transition("accept", application.status, ApplicationStatus.PENDING)
    return replace(application, status=ApplicationStatus.PENDING)


def advance(application: LoanApplication, *, documents_satisfied: bool = True) -> LoanApplication:
    """Move to the next review stage"""
    target = next_review_state(application.status)
    if target is None:
        raise IllegalTransitionError("advance", application.status)
    ensure_transition("advance", application.status, target)
    _ensure_documents(application, documents_satisfied)
    return replace(application, status=target)


def request_info(application: LoanApplication, note: str) -> LoanApplication:
    """Review state -> PENDING_INFO, remembering where to return"""
    note = _require_text(note, "note")
    if not is_review_state(application.status):
        raise IllegalTransitionError("request info", application.status, ApplicationStatus.PENDING_INFO)
    ensure_transition("request info", application.status, ApplicationStatus.PENDING_INFO)
    return replace(
        application,
        status=ApplicationStatus.PENDING_INFO,
        info_requested_from=application.status,
        info_request_note=note,
    )


def resolve_info(application: LoanApplication) -> LoanApplication:
    """PENDING_INFO -> the review state that requested the information"""
    if application.status != ApplicationStatus.PENDING_INFO or application.info_requested_from is None:
        raise IllegalTransitionError("resolve info", application.status)
    target = application.info_requested_from
    ensure_transition("resolve info", application.status, target)
    return replace(application, status=target, info_requested_from=None, info_request_note=None)


def record_assessment(application: LoanApplication, assessment: RiskAssessment, *, now: datetime) -> LoanApplication:
    """Attach a risk assessment; status is unchanged"""
    if not is_review_state(application.status):
        raise IllegalTransitionError("assess", application.status)
    return replace(
        application,
        risk_score=assessment.score,
        risk_category=assessment.category,
        assessment_notes=assessment.notes,
        assessment_incomplete=assessment.incomplete,
        missing_inputs=assessment.missing_inputs,
        assessed_at=now,
    )


def qualifies_for_auto_approval(
    application: LoanApplication,
    assessment: RiskAssessment,
    policy: PolicyTable = DEFAULT_POLICY,
) -> bool:
    """LOW risk, complete assessment and amount within the category's auto-approval limit"""
    return (
        assessment.category == RiskCategory.LOW
        and not assessment.incomplete
        and is_auto_approvable(application.loan_category, application.requested_amount, policy)
    )


def approve(
    application: LoanApplication,
    *,
    approved_amount,
    approved_term_months: int,
    approved_rate,
    reason: Optional[str],
    approved_by: Optional[str],
    now: datetime,
    documents_satisfied: bool = True,
    policy: PolicyTable = DEFAULT_POLICY,
) -> LoanApplication:
    """Review state -> APPROVED; the monthly payment is stored with the status change"""
    ensure_transition("approve", application.status, ApplicationStatus.APPROVED)
    amount = require_positive(approved_amount, "approved_amount")
    term = require_positive_term(approved_term_months, "approved_term_months")
    if approved_rate is None:
        raise ValidationError("approved_rate is required", field="approved_rate")
    rate = parse_decimal(approved_rate, "approved_rate")
    if rate < ZERO:
        raise ValidationError(f"approved_rate must not be negative, got {rate}", field="approved_rate")
    _ensure_bounds(application.loan_category, amount, term, policy)
    _ensure_documents(application, documents_satisfied)

    return replace(
        application,
        status=ApplicationStatus.APPROVED,
        approved_amount=amount,
        approved_term_months=term,
        approved_rate=rate,
        monthly_payment=monthly_payment(amount, term, rate),
        approved_by=approved_by,
        decision_reason=reason,
        approved_at=now,
    )


def auto_approve(
    application: LoanApplication,
    assessment: RiskAssessment,
    *,
    now: datetime,
    documents_satisfied: bool = True,
    policy: PolicyTable = DEFAULT_POLICY,
) -> LoanApplication:
    """Fast-forward an assessed application to APPROVED at the requested terms"""
    if not qualifies_for_auto_approval(application, assessment, policy):
        raise ValidationError(
            f"Application {application.application_number} does not qualify for auto-approval",
            field="risk_category",
        )
    assessed = record_assessment(application, assessment, now=now)
    return approve(
        assessed,
        approved_amount=application.requested_amount,
        approved_term_months=application.requested_term_months,
        approved_rate=policy.for_category(application.loan_category).default_rate,
        reason=f"Auto-approved: {assessment.notes}",
        approved_by="auto-approval",
        now=now,
        documents_satisfied=documents_satisfied,
        policy=policy,
    )


def reject(
    application: LoanApplication,
    *,
    reason: str,
    now: datetime,
    rejected_by: Optional[str] = None,
) -> LoanApplication:
    """Any non-terminal state -> REJECTED; the reason is mandatory"""
    ensure_transition("reject", application.status, ApplicationStatus.REJECTED)
    reason = _require_text(reason, "reason")
    return replace(
        application,
        status=ApplicationStatus.REJECTED,
        decision_reason=reason,
        rejected_by=rejected_by,
        rejected_at=now,
    )


def disburse(application: LoanApplication, *, disbursed_amount, now: datetime) -> LoanApplication:
    """APPROVED -> DISBURSED; cannot pay out more than was approved"""
    ensure_transition("disburse", application.status, ApplicationStatus.DISBURSED)
    amount = require_positive(disbursed_amount, "disbursed_amount")
    if amount > application.approved_amount:
        raise ValidationError(
            f"disbursed_amount {amount} exceeds approved_amount {application.approved_amount}",
            field="disbursed_amount",
        )
    return replace(
        application,
        status=ApplicationStatus.DISBURSED,
        disbursed_amount=amount,
        disbursed_at=now,
    )


def cancel(application: LoanApplication, *, now: datetime, reason: Optional[str] = None) -> LoanApplication:
    """Any non-terminal state -> CANCELLED"""
    ensure_transition("cancel", application.status, ApplicationStatus.CANCELLED)
    return replace(
        application,
        status=ApplicationStatus.CANCELLED,
        decision_reason=reason if reason else application.decision_reason,
        cancelled_at=now,
    )
