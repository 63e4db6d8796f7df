"""Unit tests for the pure application workflow"""

from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from loan_underwriting.domain import workflow
from loan_underwriting.domain.exceptions import (
    DocumentsIncompleteError,
    EligibilityError,
    IllegalTransitionError,
    ValidationError,
)
from loan_underwriting.domain.models import LoanCategory, RiskAssessment, RiskCategory
from loan_underwriting.domain.status import ApplicationStatus

NOW = datetime(2026, 3, 15, 10, 0, tzinfo=timezone.utc)


def draft(**overrides):
    fields = dict(
        application_number="LN-2026-0001",
        customer_ref="cust_good",
        category=LoanCategory.PERSONAL,
        requested_amount=Decimal("2000000"),
        requested_term_months=24,
        now=NOW,
    )
    fields.update(overrides)
    return workflow.create_application(**fields)


def in_status(status, **overrides):
    return replace(draft(), status=status, **overrides)


def low_risk_assessment(**overrides):
    fields = dict(
        score=Decimal("16.02"),
        category=RiskCategory.LOW,
        components={},
        missing_inputs=(),
        debt_to_income=Decimal("0.25"),
        loan_to_value=Decimal("0.5"),
        amount_ratio=Decimal("0.05"),
        notes="Risk LOW (score 16.02)",
    )
    fields.update(overrides)
    return RiskAssessment(**fields)


def test_create_application_starts_in_draft():
    application = draft(declared_income=3000000, purpose="Home renovation")

    assert application.status == ApplicationStatus.DRAFT
    assert application.requested_amount == Decimal("2000000")
    assert application.declared_income == Decimal("3000000")
    assert application.created_at == NOW
    assert application.version == 0


def test_create_application_over_category_max_fails():
    with pytest.raises(EligibilityError) as exc_info:
        draft(requested_amount=Decimal("50000000"))

    assert exc_info.value.field == "amount"
    assert "10000000" in str(exc_info.value)


@pytest.mark.parametrize(
    "overrides,field",
    [
        ({"customer_ref": "  "}, "customer_ref"),
        ({"requested_amount": Decimal("0")}, "requested_amount"),
        ({"requested_term_months": 0}, "requested_term_months"),
        ({"declared_income": Decimal("-1")}, "declared_income"),
        ({"customer_ref": None}, "customer_ref"),
        ({"category": "LOANSHARK"}, "loan_category"),
        ({"requested_amount": "abc"}, "requested_amount"),
        ({"requested_amount": "NaN"}, "requested_amount"),
        ({"requested_amount": float("inf")}, "requested_amount"),
        ({"requested_amount": None}, "requested_amount"),
        ({"requested_amount": [2000000]}, "requested_amount"),
        ({"requested_term_months": "twelve"}, "requested_term_months"),
        ({"requested_term_months": 12.5}, "requested_term_months"),
        ({"requested_term_months": None}, "requested_term_months"),
        ({"existing_debt": "lots"}, "existing_debt"),
        ({"collateral_value": "-Infinity"}, "collateral_value"),
    ],
)
def test_create_application_rejects_bad_input(overrides, field):
    with pytest.raises(ValidationError) as exc_info:
        draft(**overrides)
    assert exc_info.value.field == field


def test_create_application_accepts_category_name_and_numeric_strings():
    application = draft(category="CAR", requested_amount="2500000.50", requested_term_months="24")

    assert application.loan_category == LoanCategory.CAR
    assert application.requested_amount == Decimal("2500000.50")
    assert application.requested_term_months == 24


def test_format_application_number():
    assert workflow.format_application_number(2026, 7) == "LN-2026-0007"
    assert workflow.format_application_number(2026, 12345) == "LN-2026-12345"


def test_submit_moves_draft_to_submitted():
    submitted = workflow.submit(draft(), now=NOW)

    assert submitted.status == ApplicationStatus.SUBMITTED
    assert submitted.submitted_at == NOW


def test_submit_rejects_malformed_number():
    with pytest.raises(ValidationError):
        workflow.submit(draft(application_number="APP-1"), now=NOW)


def test_disburse_on_submitted_is_illegal():
    submitted = workflow.submit(draft(), now=NOW)

    with pytest.raises(IllegalTransitionError):
        workflow.disburse(submitted, disbursed_amount=Decimal("1000000"), now=NOW)

    assert submitted.status == ApplicationStatus.SUBMITTED


def test_update_draft_only_in_draft():
    updated = workflow.update_draft(draft(), requested_amount=Decimal("3000000"), requested_term_months=36)
    assert (updated.requested_amount, updated.requested_term_months) == (Decimal("3000000"), 36)

    with pytest.raises(IllegalTransitionError):
        workflow.update_draft(in_status(ApplicationStatus.PENDING), requested_amount=Decimal("3000000"))


def test_update_draft_edits_financials():
    updated = workflow.update_draft(draft(), declared_income=Decimal("4000000"), purpose="Wedding")

    assert updated.declared_income == Decimal("4000000")
    assert updated.purpose == "Wedding"
    assert updated.requested_amount == Decimal("2000000")


def test_update_draft_rechecks_bounds_for_new_category():
    with pytest.raises(EligibilityError):
        workflow.update_draft(draft(), category=LoanCategory.MORTGAGE)


def test_update_draft_refuses_unknown_category():
    with pytest.raises(ValidationError) as exc_info:
        workflow.update_draft(draft(), category="YACHT")

    assert exc_info.value.field == "loan_category"
    assert "PERSONAL" in str(exc_info.value)


def test_update_financials_allowed_while_pending_info():
    application = in_status(ApplicationStatus.PENDING_INFO, declared_income=Decimal("1000000"))

    updated = workflow.update_financials(application, collateral_value=Decimal("4000000"))

    assert updated.collateral_value == Decimal("4000000")
    assert updated.declared_income == Decimal("1000000")


def test_update_financials_refused_after_review_starts():
    with pytest.raises(IllegalTransitionError):
        workflow.update_financials(in_status(ApplicationStatus.CREDIT_CHECK), declared_income=Decimal("1"))


def test_changed_financials_drop_the_stored_assessment():
    assessed = workflow.record_assessment(in_status(ApplicationStatus.PENDING), low_risk_assessment(), now=NOW)
    waiting = workflow.request_info(assessed, "Provide bank statements")

    updated = workflow.update_financials(waiting, existing_debt=Decimal("5000000"))

    assert updated.existing_debt == Decimal("5000000")
    assert updated.risk_score is None
    assert updated.risk_category is None
    assert updated.assessed_at is None
    assert updated.missing_inputs == ()


def test_unchanged_financials_keep_the_stored_assessment():
    assessed = workflow.record_assessment(
        in_status(ApplicationStatus.PENDING, declared_income=Decimal("2000000")), low_risk_assessment(), now=NOW
    )

    updated = workflow.update_financials(assessed, declared_income=Decimal("2000000.00"))

    assert updated.risk_score == Decimal("16.02")
    assert updated.assessed_at == NOW


def test_advance_walks_review_stages():
    application = in_status(ApplicationStatus.PENDING)
    visited = []
    while application.status != ApplicationStatus.MANAGER_REVIEW:
        application = workflow.advance(application)
        visited.append(application.status)

    assert visited == [
        ApplicationStatus.DOCUMENT_REVIEW,
        ApplicationStatus.CREDIT_CHECK,
        ApplicationStatus.RISK_ASSESSMENT,
        ApplicationStatus.MANAGER_REVIEW,
    ]
    with pytest.raises(IllegalTransitionError):
        workflow.advance(application)


def test_advance_out_of_document_review_needs_documents():
    with pytest.raises(DocumentsIncompleteError):
        workflow.advance(in_status(ApplicationStatus.DOCUMENT_REVIEW), documents_satisfied=False)


def test_info_request_returns_to_origin():
    application = in_status(ApplicationStatus.CREDIT_CHECK)

    waiting = workflow.request_info(application, "Latest payslip")
    assert waiting.status == ApplicationStatus.PENDING_INFO
    assert waiting.info_requested_from == ApplicationStatus.CREDIT_CHECK

    resumed = workflow.resolve_info(waiting)
    assert resumed.status == ApplicationStatus.CREDIT_CHECK
    assert resumed.info_requested_from is None
    assert resumed.info_request_note is None


def test_request_info_outside_review_is_illegal():
    with pytest.raises(IllegalTransitionError):
        workflow.request_info(draft(), "Anything")


def test_request_info_needs_a_note():
    with pytest.raises(ValidationError):
        workflow.request_info(in_status(ApplicationStatus.PENDING), "")


def test_approve_stores_monthly_payment():
    approved = workflow.approve(
        in_status(ApplicationStatus.MANAGER_REVIEW),
        approved_amount=Decimal("5000000"),
        approved_term_months=24,
        approved_rate=Decimal("12.0"),
        reason="ok",
        approved_by="manager-1",
        now=NOW,
    )

    assert approved.status == ApplicationStatus.APPROVED
    assert approved.monthly_payment == Decimal("235367.36")
    assert approved.approved_at == NOW
    assert approved.decision_reason == "ok"


@pytest.mark.parametrize("rate", ["abc", "NaN", "Infinity", None])
def test_approve_refuses_malformed_rate(rate):
    with pytest.raises(ValidationError) as exc_info:
        workflow.approve(
            in_status(ApplicationStatus.MANAGER_REVIEW),
            approved_amount=Decimal("5000000"),
            approved_term_months=24,
            approved_rate=rate,
            reason="ok",
            approved_by="manager-1",
            now=NOW,
        )

    assert exc_info.value.field == "approved_rate"


def test_approve_outside_bounds_fails():
    with pytest.raises(EligibilityError):
        workflow.approve(
            in_status(ApplicationStatus.MANAGER_REVIEW),
            approved_amount=Decimal("20000000"),
            approved_term_months=24,
            approved_rate=Decimal("12"),
            reason=None,
            approved_by=None,
            now=NOW,
        )


def test_approve_during_document_review_needs_documents():
    with pytest.raises(DocumentsIncompleteError):
        workflow.approve(
            in_status(ApplicationStatus.DOCUMENT_REVIEW),
            approved_amount=Decimal("1000000"),
            approved_term_months=12,
            approved_rate=Decimal("12"),
            reason=None,
            approved_by=None,
            now=NOW,
            documents_satisfied=False,
        )


def test_approve_from_draft_is_illegal():
    with pytest.raises(IllegalTransitionError):
        workflow.approve(
            draft(),
            approved_amount=Decimal("1000000"),
            approved_term_months=12,
            approved_rate=Decimal("12"),
            reason=None,
            approved_by=None,
            now=NOW,
        )


def test_reject_requires_reason():
    with pytest.raises(ValidationError):
        workflow.reject(in_status(ApplicationStatus.PENDING), reason=" ", now=NOW)

    rejected = workflow.reject(in_status(ApplicationStatus.PENDING_INFO), reason="No response", now=NOW)
    assert rejected.status == ApplicationStatus.REJECTED
    assert rejected.rejected_at == NOW


def test_disburse_cannot_exceed_approved_amount():
    approved = in_status(ApplicationStatus.APPROVED, approved_amount=Decimal("1000000"))

    with pytest.raises(ValidationError):
        workflow.disburse(approved, disbursed_amount=Decimal("1000000.01"), now=NOW)

    disbursed = workflow.disburse(approved, disbursed_amount=Decimal("1000000"), now=NOW)
    assert disbursed.status == ApplicationStatus.DISBURSED


def test_cancel_from_approved_is_illegal():
    with pytest.raises(IllegalTransitionError):
        workflow.cancel(in_status(ApplicationStatus.APPROVED), now=NOW)


def test_record_assessment_keeps_status():
    application = in_status(ApplicationStatus.RISK_ASSESSMENT)

    assessed = workflow.record_assessment(application, low_risk_assessment(), now=NOW)

    assert assessed.status == ApplicationStatus.RISK_ASSESSMENT
    assert assessed.risk_category == RiskCategory.LOW
    assert assessed.assessed_at == NOW


def test_auto_approve_uses_requested_terms_and_default_rate():
    application = in_status(ApplicationStatus.PENDING, requested_amount=Decimal("500000"), requested_term_months=12)

    approved = workflow.auto_approve(application, low_risk_assessment(), now=NOW)

    assert approved.status == ApplicationStatus.APPROVED
    assert approved.approved_amount == Decimal("500000")
    assert approved.approved_term_months == 12
    assert approved.approved_rate == Decimal("12.0")
    assert approved.approved_by == "auto-approval"
    assert approved.risk_category == RiskCategory.LOW


@pytest.mark.parametrize(
    "amount,assessment",
    [
        (Decimal("2000000"), low_risk_assessment()),
        (Decimal("500000"), low_risk_assessment(category=RiskCategory.MEDIUM)),
        (Decimal("500000"), low_risk_assessment(missing_inputs=("collateral_value",))),
    ],
)
def test_auto_approve_refuses_non_qualifying(amount, assessment):
    application = in_status(ApplicationStatus.PENDING, requested_amount=amount)

    assert not workflow.qualifies_for_auto_approval(application, assessment)
    with pytest.raises(ValidationError):
        workflow.auto_approve(application, assessment, now=NOW)
