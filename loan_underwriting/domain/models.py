"""Domain models - pure Python dataclasses representing business entities"""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from loan_underwriting.domain.status import ApplicationStatus


class LoanCategory(str, enum.Enum):
    PERSONAL = "PERSONAL"
    BUSINESS = "BUSINESS"
    MORTGAGE = "MORTGAGE"
    CAR = "CAR"
    CONSUMER = "CONSUMER"
    EDUCATION = "EDUCATION"
    MEDICAL = "MEDICAL"


class RiskCategory(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class CategoryBounds:
    """Closed intervals for amount and term of one loan category"""

    min_amount: Decimal
    max_amount: Decimal
    min_term_months: int
    max_term_months: int


@dataclass(frozen=True)
class BoundViolation:
    """One violated bound, kept so rejections can say exactly what failed"""

    field: str  # "amount" or "term_months"
    value: Decimal
    limit: Decimal
    side: str  # "minimum" or "maximum"
    category: LoanCategory

    def describe(self) -> str:
        relation = "below" if self.side == "minimum" else "exceeds"
        return f"{self.field} {self.value} {relation} {self.category.value} {self.side} of {self.limit}"


@dataclass(frozen=True)
class CustomerFinancials:
    """Customer data from the external customer directory"""

    customer_ref: str
    credit_score: Optional[int] = None
    monthly_income: Optional[Decimal] = None
    existing_debt: Optional[Decimal] = None


@dataclass(frozen=True)
class RiskAssessment:
    """Output of the risk classifier"""

    score: Decimal
    category: RiskCategory
    components: Dict[str, Decimal]
    missing_inputs: Tuple[str, ...]
    debt_to_income: Optional[Decimal]
    loan_to_value: Optional[Decimal]
    amount_ratio: Decimal
    notes: str

    @property
    def incomplete(self) -> bool:
        return bool(self.missing_inputs)


@dataclass(frozen=True)
class ScheduleRow:
    """Single payment in an amortization schedule"""

    month: int
    payment: Decimal
    principal_portion: Decimal
    interest_portion: Decimal
    remaining_balance: Decimal
    due_date: Optional[date] = None


@dataclass(frozen=True)
class PaymentSummary:
    """Payment figures for a principal/term/rate triple"""

    principal: Decimal
    term_months: int
    annual_rate_percent: Decimal
    monthly_payment: Decimal
    total_payment: Decimal
    total_interest: Decimal
    schedule: Tuple[ScheduleRow, ...] = ()


@dataclass(frozen=True)
class LoanApplication:
    """Aggregate root. Transitions return a new instance via dataclasses.replace"""

    id: uuid.UUID
    application_number: str
    customer_ref: str
    loan_category: LoanCategory
    requested_amount: Decimal
    requested_term_months: int
    status: ApplicationStatus = ApplicationStatus.DRAFT
    purpose: Optional[str] = None

    # Applicant-declared financials
    declared_income: Optional[Decimal] = None
    existing_debt: Optional[Decimal] = None
    collateral_value: Optional[Decimal] = None

    # Set once by approval
    approved_amount: Optional[Decimal] = None
    approved_term_months: Optional[int] = None
    approved_rate: Optional[Decimal] = None
    monthly_payment: Optional[Decimal] = None
    approved_by: Optional[str] = None

    # Risk assessment
    risk_score: Optional[Decimal] = None
    risk_category: Optional[RiskCategory] = None
    assessment_notes: Optional[str] = None
    assessment_incomplete: bool = False
    missing_inputs: Tuple[str, ...] = ()
    assessed_at: Optional[datetime] = None

    # Info requests
    info_requested_from: Optional[ApplicationStatus] = None
    info_request_note: Optional[str] = None

    # Audit trail
    decision_reason: Optional[str] = None
    rejected_by: Optional[str] = None
    disbursed_amount: Optional[Decimal] = None
    created_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    disbursed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    version: int = 0


@dataclass(frozen=True)
class DerivedFigures:
    """Computed figures; None means no data, never zero"""

    debt_to_income: Optional[Decimal]
    loan_to_value: Optional[Decimal]
    amount_to_max_ratio: Decimal
    total_payment: Optional[Decimal] = None
    total_interest: Optional[Decimal] = None


@dataclass(frozen=True)
class TransitionResult:
    """What the workflow hands back after a successful operation"""

    application: LoanApplication
    derived: DerivedFigures
    assessment: Optional[RiskAssessment] = None
    payment: Optional[PaymentSummary] = None
    auto_approved: bool = False
    warnings: List[str] = field(default_factory=list)
