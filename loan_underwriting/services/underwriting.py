"""
Underwriting service - orchestrates the pure workflow against collaborators.

Every operation follows the same flow:
1. Load current state (optionally checking the caller's expected status)
2. Consult eligibility / risk / payment rules through the pure workflow
3. Compare-and-swap the new state through the repository
4. Derive computed figures once
5. Record metrics and logs, then hand the notification to a background
   executor (delivery never blocks the caller and failures never roll back)

The service holds no application state between calls.
"""

import logging
import time
import uuid
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import replace
from datetime import date
from typing import Callable, List, Optional, Tuple

from loan_underwriting.config import settings
from loan_underwriting.domain import workflow
from loan_underwriting.domain.derived import derive
from loan_underwriting.domain.eligibility import check_bounds
from loan_underwriting.domain.exceptions import (
    ConflictError,
    CustomerLookupError,
    DomainException,
    DuplicateApplicationNumberError,
    EligibilityError,
    IllegalTransitionError,
    ValidationError,
)
from loan_underwriting.domain.models import (
    CustomerFinancials,
    LoanApplication,
    LoanCategory,
    PaymentSummary,
    RiskAssessment,
    ScheduleRow,
    TransitionResult,
)
from loan_underwriting.domain.payments import amortization_schedule, summarize
from loan_underwriting.domain.policy import DEFAULT_POLICY, PolicyTable
from loan_underwriting.domain.scoring import assess as classify
from loan_underwriting.domain.status import ApplicationStatus, is_review_state
from loan_underwriting.infrastructure.observability.logging import log_rejected_operation, log_transition
from loan_underwriting.infrastructure.observability.metrics import (
    customer_lookup_failures_counter,
    record_approval,
    record_assessment,
    record_eligibility_violations,
    record_transition,
)
from loan_underwriting.services.ports import (
    ApplicationRepository,
    CustomerDirectory,
    DocumentChecklist,
    NotificationSink,
)
from loan_underwriting.utils.date_utils import utc_now

logger = logging.getLogger(__name__)

EVENT_CREATED = "LOAN_APPLICATION_CREATED"
EVENT_STATUS_CHANGED = "LOAN_STATUS_CHANGED"


class UnderwritingService:
    """Entry point for every mutation of a loan application"""

    def __init__(
        self,
        repository: ApplicationRepository,
        customers: CustomerDirectory,
        documents: DocumentChecklist,
        notifier: NotificationSink,
        policy: PolicyTable = DEFAULT_POLICY,
        auto_approval_enabled: Optional[bool] = None,
        clock: Callable = utc_now,
        notification_executor: Optional[Executor] = None,
    ):
        self.repository = repository
        self.customers = customers
        self.documents = documents
        self.notifier = notifier
        self.policy = policy
        self.auto_approval_enabled = (
            settings.auto_approval_enabled if auto_approval_enabled is None else auto_approval_enabled
        )
        self.clock = clock
        self.notification_executor = notification_executor or ThreadPoolExecutor(
            max_workers=settings.notification_workers, thread_name_prefix="loan-notify"
        )

    def close(self, wait: bool = True) -> None:
        """Stop accepting notifications; by default waits for queued deliveries"""
        self.notification_executor.shutdown(wait=wait)

    # Queries

    def get(self, application_id: uuid.UUID) -> LoanApplication:
        return self.repository.load(application_id)

    def quote(
        self,
        category: LoanCategory,
        amount,
        term_months: int,
        annual_rate_percent=None,
        start_date: Optional[date] = None,
    ) -> PaymentSummary:
        """Payment preview with full schedule; defaults to the category rate"""
        category = workflow.parse_category(category)
        amount = workflow.require_positive(amount, "amount")
        term_months = workflow.require_positive_term(term_months, "term_months")
        violations = check_bounds(category, amount, term_months, self.policy)
        if violations:
            raise EligibilityError(violations)
        if annual_rate_percent is None:
            rate = self.policy.for_category(category).default_rate
        else:
            rate = workflow.parse_decimal(annual_rate_percent, "annual_rate_percent")
        if rate < 0:
            raise ValidationError(f"annual rate must not be negative, got {rate}", field="annual_rate_percent")
        return summarize(amount, term_months, rate, include_schedule=True, start_date=start_date)

    def repayment_schedule(self, application_id: uuid.UUID, start_date: Optional[date] = None) -> List[ScheduleRow]:
        """Schedule for the approved figures of an APPROVED or DISBURSED application"""
        application = self.repository.load(application_id)
        if application.approved_amount is None:
            raise ValidationError(
                f"Application {application.application_number} has no approved terms",
                field="approved_amount",
            )
        return amortization_schedule(
            application.approved_amount,
            application.approved_term_months,
            application.approved_rate,
            start_date,
        )

    # Creation and draft edits

    def create_application(
        self,
        customer_ref: str,
        category: LoanCategory,
        requested_amount,
        requested_term_months: int,
        declared_income=None,
        existing_debt=None,
        collateral_value=None,
        purpose: Optional[str] = None,
    ) -> TransitionResult:
        """Validate the request, confirm the customer exists, then persist a DRAFT"""
        start_time = time.time()
        now = self.clock()
        application_number = workflow.format_application_number(
            now.year, self.repository.next_sequence(now.year)
        )

        application = self._guard(
            "create",
            None,
            lambda: workflow.create_application(
                application_number=application_number,
                customer_ref=customer_ref,
                category=category,
                requested_amount=requested_amount,
                requested_term_months=requested_term_months,
                declared_income=declared_income,
                existing_debt=existing_debt,
                collateral_value=collateral_value,
                purpose=purpose,
                now=now,
                policy=self.policy,
            ),
        )
        financials = self._guard("create", None, lambda: self._lookup_customer(application.customer_ref))

        saved = self.repository.insert(application)
        self._finish("create", None, saved, start_time, EVENT_CREATED)
        return self._result(saved, financials=financials)

    def update_draft(
        self,
        application_id: uuid.UUID,
        category: Optional[LoanCategory] = None,
        requested_amount=None,
        requested_term_months: Optional[int] = None,
        purpose: Optional[str] = None,
        declared_income=None,
        existing_debt=None,
        collateral_value=None,
        expected_status: Optional[ApplicationStatus] = None,
    ) -> TransitionResult:
        start_time = time.time()
        current = self._load(application_id, expected_status)
        updated = self._guard(
            "update_draft",
            current,
            lambda: workflow.update_draft(
                current,
                category=category,
                requested_amount=requested_amount,
                requested_term_months=requested_term_months,
                purpose=purpose,
                declared_income=declared_income,
                existing_debt=existing_debt,
                collateral_value=collateral_value,
                policy=self.policy,
            ),
        )
        saved = self._commit(current, updated)
        self._finish("update_draft", current, saved, start_time)
        return self._result(saved)

    def update_financials(
        self,
        application_id: uuid.UUID,
        declared_income=None,
        existing_debt=None,
        collateral_value=None,
        expected_status: Optional[ApplicationStatus] = None,
    ) -> TransitionResult:
        """Replace declared financials; an assessed application is re-classified, or cleared outside review"""
        start_time = time.time()
        current = self._load(application_id, expected_status)
        updated = self._guard(
            "update_financials",
            current,
            lambda: workflow.update_financials(
                current,
                declared_income=declared_income,
                existing_debt=existing_debt,
                collateral_value=collateral_value,
            ),
        )

        assessment = None
        financials = None
        warnings: List[str] = []
        if current.risk_score is not None and updated.risk_score is None:
            if is_review_state(updated.status):
                assessment, financials = self._classify(updated, warnings)
                updated = workflow.record_assessment(updated, assessment, now=self.clock())
            else:
                warnings.append("risk assessment cleared: re-assess after resuming review")

        saved = self._commit(current, updated)
        self._finish("update_financials", current, saved, start_time)
        return self._result(saved, assessment=assessment, financials=financials, warnings=warnings)

    # Lifecycle transitions

    def submit(
        self, application_id: uuid.UUID, expected_status: Optional[ApplicationStatus] = None
    ) -> TransitionResult:
        start_time = time.time()
        current = self._load(application_id, expected_status)

        def step() -> LoanApplication:
            submitted = workflow.submit(current, now=self.clock(), policy=self.policy)
            if self.repository.application_number_taken(current.application_number, current.id):
                raise DuplicateApplicationNumberError(current.application_number)
            return submitted

        updated = self._guard("submit", current, step)
        saved = self._commit(current, updated)
        self._finish("submit", current, saved, start_time, EVENT_STATUS_CHANGED)
        return self._result(saved)

    def accept(
        self, application_id: uuid.UUID, expected_status: Optional[ApplicationStatus] = None
    ) -> TransitionResult:
        return self._simple_transition("accept", application_id, expected_status, workflow.accept)

    def advance(
        self, application_id: uuid.UUID, expected_status: Optional[ApplicationStatus] = None
    ) -> TransitionResult:
        return self._simple_transition(
            "advance",
            application_id,
            expected_status,
            lambda app: workflow.advance(app, documents_satisfied=self._documents_satisfied(app)),
        )

    def request_info(
        self, application_id: uuid.UUID, note: str, expected_status: Optional[ApplicationStatus] = None
    ) -> TransitionResult:
        return self._simple_transition(
            "request_info", application_id, expected_status, lambda app: workflow.request_info(app, note)
        )

    def resolve_info(
        self, application_id: uuid.UUID, expected_status: Optional[ApplicationStatus] = None
    ) -> TransitionResult:
        return self._simple_transition("resolve_info", application_id, expected_status, workflow.resolve_info)

    def assess(
        self, application_id: uuid.UUID, expected_status: Optional[ApplicationStatus] = None
    ) -> TransitionResult:
        """
        Run the risk classifier and attach the outcome.

        Status is unchanged unless auto-approval is enabled and the application
        qualifies (LOW risk, complete inputs, amount within the category limit),
        in which case it is fast-forwarded to APPROVED at the requested terms.
        """
        start_time = time.time()
        current = self._load(application_id, expected_status)
        if not is_review_state(current.status):
            self._refuse("assess", current, IllegalTransitionError("assess", current.status))

        warnings: List[str] = []
        assessment, financials = self._classify(current, warnings)
        now = self.clock()

        auto_approved = False
        payment = None
        if self.auto_approval_enabled and workflow.qualifies_for_auto_approval(current, assessment, self.policy):
            if self._documents_satisfied(current):
                updated = workflow.auto_approve(current, assessment, now=now, policy=self.policy)
                auto_approved = True
                payment = summarize(updated.approved_amount, updated.approved_term_months, updated.approved_rate)
            else:
                warnings.append("auto-approval skipped: required documents not satisfied")
                updated = workflow.record_assessment(current, assessment, now=now)
        else:
            updated = workflow.record_assessment(current, assessment, now=now)

        saved = self._commit(current, updated)
        if auto_approved:
            record_approval(saved.approved_amount, automatic=True)
            self._finish("auto_approve", current, saved, start_time, EVENT_STATUS_CHANGED)
        else:
            self._finish("assess", current, saved, start_time)

        return self._result(
            saved,
            assessment=assessment,
            financials=financials,
            payment=payment,
            auto_approved=auto_approved,
            warnings=warnings,
        )

    def approve(
        self,
        application_id: uuid.UUID,
        approved_amount,
        approved_term_months: int,
        approved_rate,
        reason: Optional[str] = None,
        approved_by: Optional[str] = None,
        expected_status: Optional[ApplicationStatus] = None,
    ) -> TransitionResult:
        start_time = time.time()
        current = self._load(application_id, expected_status)
        updated = self._guard(
            "approve",
            current,
            lambda: workflow.approve(
                current,
                approved_amount=approved_amount,
                approved_term_months=approved_term_months,
                approved_rate=approved_rate,
                reason=reason,
                approved_by=approved_by,
                now=self.clock(),
                documents_satisfied=self._documents_satisfied(current),
                policy=self.policy,
            ),
        )
        saved = self._commit(current, updated)
        record_approval(saved.approved_amount)
        self._finish("approve", current, saved, start_time, EVENT_STATUS_CHANGED)
        payment = summarize(saved.approved_amount, saved.approved_term_months, saved.approved_rate)
        return self._result(saved, payment=payment)

    def reject(
        self,
        application_id: uuid.UUID,
        reason: str,
        rejected_by: Optional[str] = None,
        expected_status: Optional[ApplicationStatus] = None,
    ) -> TransitionResult:
        return self._simple_transition(
            "reject",
            application_id,
            expected_status,
            lambda app: workflow.reject(app, reason=reason, now=self.clock(), rejected_by=rejected_by),
        )

    def disburse(
        self,
        application_id: uuid.UUID,
        disbursed_amount,
        expected_status: Optional[ApplicationStatus] = None,
    ) -> TransitionResult:
        return self._simple_transition(
            "disburse",
            application_id,
            expected_status,
            lambda app: workflow.disburse(app, disbursed_amount=disbursed_amount, now=self.clock()),
        )

    def cancel(
        self,
        application_id: uuid.UUID,
        reason: Optional[str] = None,
        expected_status: Optional[ApplicationStatus] = None,
    ) -> TransitionResult:
        return self._simple_transition(
            "cancel",
            application_id,
            expected_status,
            lambda app: workflow.cancel(app, now=self.clock(), reason=reason),
        )

    # Internals

    def _simple_transition(
        self,
        action: str,
        application_id: uuid.UUID,
        expected_status: Optional[ApplicationStatus],
        step: Callable[[LoanApplication], LoanApplication],
    ) -> TransitionResult:
        start_time = time.time()
        current = self._load(application_id, expected_status)
        updated = self._guard(action, current, lambda: step(current))
        saved = self._commit(current, updated)
        self._finish(action, current, saved, start_time, EVENT_STATUS_CHANGED)
        return self._result(saved)

    def _load(self, application_id: uuid.UUID, expected_status: Optional[ApplicationStatus]) -> LoanApplication:
        application = self.repository.load(application_id)
        if expected_status is not None and application.status != expected_status:
            record_transition("load", "conflict")
            error = ConflictError(application_id, expected_status, application.status)
            logger.warning(str(error), extra={"application_id": str(application_id)})
            raise error
        return application

    def _guard(self, action: str, current: Optional[LoanApplication], step: Callable[[], LoanApplication]):
        """Run a pure step, recording metrics/logs for refused operations before re-raising"""
        try:
            return step()
        except DomainException as e:
            self._refuse(action, current, e)

    def _refuse(self, action: str, current: Optional[LoanApplication], error: DomainException):
        if isinstance(error, EligibilityError):
            record_eligibility_violations(error.violations)
        if isinstance(error, IllegalTransitionError):
            outcome = "illegal_transition"
        elif isinstance(error, ValidationError):
            outcome = "validation_error"
        else:
            outcome = "error"
        record_transition(action, outcome)
        log_rejected_operation(str(current.id) if current else None, action, error)
        raise error

    def _commit(self, current: LoanApplication, updated: LoanApplication) -> LoanApplication:
        new_state = replace(updated, version=current.version + 1)
        swapped = self.repository.compare_and_swap(current.id, current.status, current.version, new_state)
        if not swapped:
            record_transition("commit", "conflict")
            logger.warning(
                f"Conflict writing application {current.id}",
                extra={"application_id": str(current.id), "expected_status": current.status.value},
            )
            raise ConflictError(current.id, current.status)
        return new_state

    def _lookup_customer(self, customer_ref: str) -> CustomerFinancials:
        try:
            return self.customers.get_customer(customer_ref)
        except CustomerLookupError:
            customer_lookup_failures_counter.inc()
            raise

    def _classify(
        self, application: LoanApplication, warnings: List[str]
    ) -> Tuple[RiskAssessment, CustomerFinancials]:
        financials = self._lookup_customer(application.customer_ref)
        assessment = classify(application, financials, self.policy)
        record_assessment(assessment.category.value, assessment.incomplete)
        if assessment.incomplete:
            warnings.append("assessment incomplete: missing " + ", ".join(assessment.missing_inputs))
            logger.warning(
                "Risk assessment incomplete",
                extra={
                    "application_id": str(application.id),
                    "missing_inputs": list(assessment.missing_inputs),
                },
            )
        return assessment, financials

    def _documents_satisfied(self, application: LoanApplication) -> bool:
        if application.status != ApplicationStatus.DOCUMENT_REVIEW:
            return True
        return self.documents.required_docs_satisfied(application.id)

    def _finish(
        self,
        action: str,
        previous: Optional[LoanApplication],
        saved: LoanApplication,
        start_time: float,
        event: Optional[str] = None,
    ) -> None:
        duration_ms = (time.time() - start_time) * 1000
        record_transition(action)
        log_transition(
            str(saved.id),
            saved.application_number,
            action,
            previous.status.value if previous else None,
            saved.status.value,
            duration_ms,
        )
        if event is not None:
            self._notify(event, saved)

    def _notify(self, event: str, application: LoanApplication) -> None:
        """Queue delivery on the notification executor; the transition is already committed"""
        try:
            self.notification_executor.submit(self._deliver, event, application)
        except RuntimeError as e:
            logger.error(
                f"Notification {event} not queued: {e}",
                extra={"application_id": str(application.id), "event": event},
            )

    def _deliver(self, event: str, application: LoanApplication) -> None:
        try:
            self.notifier.notify(event, application)
        except Exception as e:
            logger.error(
                f"Notification {event} failed: {e}",
                extra={"application_id": str(application.id), "event": event},
            )

    def _result(
        self,
        application: LoanApplication,
        assessment: Optional[RiskAssessment] = None,
        payment: Optional[PaymentSummary] = None,
        auto_approved: bool = False,
        warnings: Optional[List[str]] = None,
        financials: Optional[CustomerFinancials] = None,
    ) -> TransitionResult:
        return TransitionResult(
            application=application,
            derived=derive(application, self.policy, financials),
            assessment=assessment,
            payment=payment,
            auto_approved=auto_approved,
            warnings=warnings or [],
        )
