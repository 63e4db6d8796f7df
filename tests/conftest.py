"""Pytest fixtures for testing"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from loan_underwriting.domain.models import CustomerFinancials, LoanApplication, LoanCategory
from loan_underwriting.infrastructure.database.models import Base
from loan_underwriting.infrastructure.database.repositories import SqlApplicationRepository
from loan_underwriting.infrastructure.database.session import create_session_factory
from loan_underwriting.services.underwriting import UnderwritingService
from tests.fakes import FakeCustomerDirectory, FakeDocumentChecklist, InlineExecutor, RecordingNotifier

FIXED_NOW = datetime(2026, 3, 15, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    """In-memory SQLite database shared across one test"""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def repository(session_factory) -> SqlApplicationRepository:
    return SqlApplicationRepository(session_factory)


@pytest.fixture
def customers() -> FakeCustomerDirectory:
    """
    Customer personas:
    - cust_good: strong credit, high income, no debt
    - cust_risky: weak credit, heavy existing debt
    - cust_thin: no credit history and no income on file
    """
    return FakeCustomerDirectory(
        {
            "cust_good": CustomerFinancials(
                customer_ref="cust_good",
                credit_score=800,
                monthly_income=Decimal("2000000"),
                existing_debt=Decimal("0"),
            ),
            "cust_risky": CustomerFinancials(
                customer_ref="cust_risky",
                credit_score=400,
                monthly_income=Decimal("1000000"),
                existing_debt=Decimal("2000000"),
            ),
            "cust_thin": CustomerFinancials(customer_ref="cust_thin"),
        }
    )


@pytest.fixture
def documents() -> FakeDocumentChecklist:
    return FakeDocumentChecklist()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def service(repository, customers, documents, notifier, clock) -> UnderwritingService:
    return UnderwritingService(
        repository=repository,
        customers=customers,
        documents=documents,
        notifier=notifier,
        auto_approval_enabled=False,
        clock=clock,
        notification_executor=InlineExecutor(),
    )


@pytest.fixture
def auto_service(repository, customers, documents, notifier, clock) -> UnderwritingService:
    """Same collaborators with auto-approval switched on"""
    return UnderwritingService(
        repository=repository,
        customers=customers,
        documents=documents,
        notifier=notifier,
        auto_approval_enabled=True,
        clock=clock,
        notification_executor=InlineExecutor(),
    )


@pytest.fixture
def pending_application(service):
    """Factory: create, submit and accept an application, returning it in PENDING"""

    def make(
        customer_ref: str = "cust_good",
        category: LoanCategory = LoanCategory.PERSONAL,
        amount: str = "500000",
        term_months: int = 12,
        **financials,
    ) -> LoanApplication:
        created = service.create_application(customer_ref, category, Decimal(amount), term_months, **financials)
        service.submit(created.application.id)
        return service.accept(created.application.id).application

    return make
