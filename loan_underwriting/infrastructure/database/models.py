"""SQLAlchemy ORM models for loan application state"""

import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

MONEY = Numeric(20, 2)


class LoanApplicationRecord(Base):
    """Persisted loan application; `version` backs the compare-and-swap write"""

    __tablename__ = "loan_application"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    application_number = Column(String(32), nullable=False, unique=True, index=True)
    customer_ref = Column(Text, nullable=False, index=True)
    loan_category = Column(String(16), nullable=False)
    status = Column(String(32), nullable=False, index=True)
    purpose = Column(Text, nullable=True)

    requested_amount = Column(MONEY, nullable=False)
    requested_term_months = Column(Integer, nullable=False)
    declared_income = Column(MONEY, nullable=True)
    existing_debt = Column(MONEY, nullable=True)
    collateral_value = Column(MONEY, nullable=True)

    approved_amount = Column(MONEY, nullable=True)
    approved_term_months = Column(Integer, nullable=True)
    approved_rate = Column(Numeric(7, 4), nullable=True)
    monthly_payment = Column(MONEY, nullable=True)
    approved_by = Column(Text, nullable=True)

    risk_score = Column(Numeric(5, 2), nullable=True)
    risk_category = Column(String(8), nullable=True)
    assessment_notes = Column(Text, nullable=True)
    assessment_incomplete = Column(Boolean, nullable=False, default=False)
    missing_inputs = Column(JSON, nullable=False, default=list)
    assessed_at = Column(DateTime(timezone=True), nullable=True)

    info_requested_from = Column(String(32), nullable=True)
    info_request_note = Column(Text, nullable=True)

    decision_reason = Column(Text, nullable=True)
    rejected_by = Column(Text, nullable=True)
    disbursed_amount = Column(MONEY, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    disbursed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False, default=0)
