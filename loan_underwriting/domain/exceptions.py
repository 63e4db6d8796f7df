"""Domain-specific exceptions"""

from typing import Iterable, Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Caller-correctable input problem (bad amount, missing reason, ...)"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class EligibilityError(ValidationError):
    """Requested or approved figures fall outside the category bounds"""

    def __init__(self, violations: Iterable):
        self.violations = list(violations)
        message = "; ".join(v.describe() for v in self.violations) or "Eligibility check failed"
        field = self.violations[0].field if self.violations else None
        super().__init__(message, field=field)


class DuplicateApplicationNumberError(ValidationError):
    """Application number is already used by another application"""

    def __init__(self, application_number: str):
        super().__init__(
            f"Application number {application_number} is already in use",
            field="application_number",
        )
        self.application_number = application_number


class DocumentsIncompleteError(ValidationError):
    """Required documents are not satisfied, so document review cannot be left"""

    def __init__(self, application_id):
        super().__init__(
            f"Required documents are not satisfied for application {application_id}",
            field="documents",
        )
        self.application_id = application_id


class IllegalTransitionError(DomainException):
    """Requested transition is not reachable from the current status"""

    def __init__(self, action: str, current, target=None):
        if target is None:
            message = f"Cannot {action} an application in status {current.value}"
        else:
            message = f"Cannot {action}: transition {current.value} -> {target.value} is not allowed"
        super().__init__(message)
        self.action = action
        self.current = current
        self.target = target


class ConflictError(DomainException):
    """Optimistic write lost the race; reload and retry"""

    def __init__(self, application_id, expected_status, actual_status=None):
        message = f"Application {application_id} is no longer in status {expected_status.value}"
        if actual_status is not None:
            message += f" (found {actual_status.value})"
        super().__init__(message)
        self.application_id = application_id
        self.expected_status = expected_status
        self.actual_status = actual_status


class ApplicationNotFoundError(DomainException):
    """No application with the given id"""

    def __init__(self, application_id):
        super().__init__(f"Loan application {application_id} not found")
        self.application_id = application_id


class CollaboratorError(DomainException):
    """An external collaborator failed or is unavailable"""

    pass


class CustomerLookupError(CollaboratorError):
    """Customer API returned an error or is unavailable"""

    pass


class CustomerNotFoundError(CustomerLookupError):
    """Customer reference is unknown to the customer API"""

    pass


class DocumentServiceError(CollaboratorError):
    """Document completeness check could not be performed"""

    pass


class PersistenceError(CollaboratorError):
    """Application store is unavailable or rejected the write"""

    pass


class NotificationError(CollaboratorError):
    """Notification sink could not deliver an event"""

    pass
