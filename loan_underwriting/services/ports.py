"""Collaborator interfaces the underwriting service depends on"""

import uuid
from typing import Protocol

from loan_underwriting.domain.models import CustomerFinancials, LoanApplication
from loan_underwriting.domain.status import ApplicationStatus


class ApplicationRepository(Protocol):
    def load(self, application_id: uuid.UUID) -> LoanApplication:
        """Raise ApplicationNotFoundError when absent"""
        ...

    def insert(self, application: LoanApplication) -> LoanApplication:
        ...

    def compare_and_swap(
        self,
        application_id: uuid.UUID,
        expected_status: ApplicationStatus,
        expected_version: int,
        new_state: LoanApplication,
    ) -> bool:
        """Write `new_state` only if the stored row still has the expected status and version"""
        ...

    def application_number_taken(self, application_number: str, exclude_id: uuid.UUID) -> bool:
        ...

    def next_sequence(self, year: int) -> int:
        ...


class CustomerDirectory(Protocol):
    def get_customer(self, customer_ref: str) -> CustomerFinancials:
        ...


class DocumentChecklist(Protocol):
    def required_docs_satisfied(self, application_id: uuid.UUID) -> bool:
        ...


class NotificationSink(Protocol):
    def notify(self, event: str, application: LoanApplication) -> None:
        ...
