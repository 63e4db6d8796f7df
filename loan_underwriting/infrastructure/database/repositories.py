"""Data access layer for loan applications"""

import uuid
from typing import Any, Dict

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from loan_underwriting.domain.exceptions import (
    ApplicationNotFoundError,
    DuplicateApplicationNumberError,
    PersistenceError,
)
from loan_underwriting.domain.models import LoanApplication, LoanCategory, RiskCategory
from loan_underwriting.domain.status import ApplicationStatus
from loan_underwriting.infrastructure.database.models import LoanApplicationRecord

_ENUM_COLUMNS = ("loan_category", "status", "risk_category", "info_requested_from")


def to_columns(application: LoanApplication) -> Dict[str, Any]:
    """Flatten a domain application into column values"""
    values = {
        column.name: getattr(application, column.name)
        for column in LoanApplicationRecord.__table__.columns
    }
    for name in _ENUM_COLUMNS:
        if values[name] is not None:
            values[name] = values[name].value
    values["missing_inputs"] = list(application.missing_inputs)
    return values


def to_domain(record: LoanApplicationRecord) -> LoanApplication:
    return LoanApplication(
        id=record.id,
        application_number=record.application_number,
        customer_ref=record.customer_ref,
        loan_category=LoanCategory(record.loan_category),
        requested_amount=record.requested_amount,
        requested_term_months=record.requested_term_months,
        status=ApplicationStatus(record.status),
        purpose=record.purpose,
        declared_income=record.declared_income,
        existing_debt=record.existing_debt,
        collateral_value=record.collateral_value,
        approved_amount=record.approved_amount,
        approved_term_months=record.approved_term_months,
        approved_rate=record.approved_rate,
        monthly_payment=record.monthly_payment,
        approved_by=record.approved_by,
        risk_score=record.risk_score,
        risk_category=RiskCategory(record.risk_category) if record.risk_category else None,
        assessment_notes=record.assessment_notes,
        assessment_incomplete=bool(record.assessment_incomplete),
        missing_inputs=tuple(record.missing_inputs or ()),
        assessed_at=record.assessed_at,
        info_requested_from=(
            ApplicationStatus(record.info_requested_from) if record.info_requested_from else None
        ),
        info_request_note=record.info_request_note,
        decision_reason=record.decision_reason,
        rejected_by=record.rejected_by,
        disbursed_amount=record.disbursed_amount,
        created_at=record.created_at,
        submitted_at=record.submitted_at,
        approved_at=record.approved_at,
        rejected_at=record.rejected_at,
        disbursed_at=record.disbursed_at,
        cancelled_at=record.cancelled_at,
        version=record.version,
    )


class SqlApplicationRepository:
    """Repository for loan applications with an optimistic compare-and-swap write"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def load(self, application_id: uuid.UUID) -> LoanApplication:
        try:
            with self.session_factory() as session:
                record = session.get(LoanApplicationRecord, application_id)
                if record is None:
                    raise ApplicationNotFoundError(application_id)
                return to_domain(record)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load application {application_id}: {e}") from e

    def insert(self, application: LoanApplication) -> LoanApplication:
        try:
            with self.session_factory.begin() as session:
                session.add(LoanApplicationRecord(**to_columns(application)))
        except IntegrityError as e:
            raise DuplicateApplicationNumberError(application.application_number) from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to insert application {application.id}: {e}") from e
        return application

    def compare_and_swap(
        self,
        application_id: uuid.UUID,
        expected_status: ApplicationStatus,
        expected_version: int,
        new_state: LoanApplication,
    ) -> bool:
        """Single conditional UPDATE; False means another writer got there first"""
        values = to_columns(new_state)
        values.pop("id")
        stmt = (
            update(LoanApplicationRecord)
            .where(
                LoanApplicationRecord.id == application_id,
                LoanApplicationRecord.status == expected_status.value,
                LoanApplicationRecord.version == expected_version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            with self.session_factory.begin() as session:
                result = session.execute(stmt)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to write application {application_id}: {e}") from e
        return result.rowcount == 1

    def application_number_taken(self, application_number: str, exclude_id: uuid.UUID) -> bool:
        stmt = select(func.count()).select_from(LoanApplicationRecord).where(
            LoanApplicationRecord.application_number == application_number,
            LoanApplicationRecord.id != exclude_id,
        )
        with self.session_factory() as session:
            return session.scalar(stmt) > 0

    def next_sequence(self, year: int) -> int:
        """Next LN-YYYY-NNNN sequence; the unique index catches concurrent allocations"""
        stmt = select(func.count()).select_from(LoanApplicationRecord).where(
            LoanApplicationRecord.application_number.like(f"LN-{year:04d}-%")
        )
        with self.session_factory() as session:
            return session.scalar(stmt) + 1
