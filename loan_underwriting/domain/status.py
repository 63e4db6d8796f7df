"""Application lifecycle states and the transition table that governs them"""

import enum
from typing import Dict, FrozenSet, Optional

from loan_underwriting.domain.exceptions import IllegalTransitionError


class ApplicationStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    PENDING = "PENDING"
    DOCUMENT_REVIEW = "DOCUMENT_REVIEW"
    CREDIT_CHECK = "CREDIT_CHECK"
    RISK_ASSESSMENT = "RISK_ASSESSMENT"
    MANAGER_REVIEW = "MANAGER_REVIEW"
    PENDING_INFO = "PENDING_INFO"
    APPROVED = "APPROVED"
    DISBURSED = "DISBURSED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


# Ordered: advance() walks this sequence
REVIEW_SEQUENCE = (
    ApplicationStatus.PENDING,
    ApplicationStatus.DOCUMENT_REVIEW,
    ApplicationStatus.CREDIT_CHECK,
    ApplicationStatus.RISK_ASSESSMENT,
    ApplicationStatus.MANAGER_REVIEW,
)

REVIEW_STATES: FrozenSet[ApplicationStatus] = frozenset(REVIEW_SEQUENCE)

TERMINAL_STATES: FrozenSet[ApplicationStatus] = frozenset(
    {ApplicationStatus.DISBURSED, ApplicationStatus.REJECTED, ApplicationStatus.CANCELLED}
)

_EXITS = frozenset({ApplicationStatus.REJECTED, ApplicationStatus.CANCELLED})


def _review_targets(next_status: Optional[ApplicationStatus]) -> FrozenSet[ApplicationStatus]:
    targets = {ApplicationStatus.PENDING_INFO, ApplicationStatus.APPROVED} | _EXITS
    if next_status is not None:
        targets.add(next_status)
    return frozenset(targets)


TRANSITIONS: Dict[ApplicationStatus, FrozenSet[ApplicationStatus]] = {
    ApplicationStatus.DRAFT: frozenset({ApplicationStatus.SUBMITTED}) | _EXITS,
    ApplicationStatus.SUBMITTED: frozenset({ApplicationStatus.PENDING}) | _EXITS,
    ApplicationStatus.PENDING: _review_targets(ApplicationStatus.DOCUMENT_REVIEW),
    ApplicationStatus.DOCUMENT_REVIEW: _review_targets(ApplicationStatus.CREDIT_CHECK),
    ApplicationStatus.CREDIT_CHECK: _review_targets(ApplicationStatus.RISK_ASSESSMENT),
    ApplicationStatus.RISK_ASSESSMENT: _review_targets(ApplicationStatus.MANAGER_REVIEW),
    ApplicationStatus.MANAGER_REVIEW: _review_targets(None),
    # Resolution is further restricted to the review state that requested info
    ApplicationStatus.PENDING_INFO: REVIEW_STATES | _EXITS,
    ApplicationStatus.APPROVED: frozenset({ApplicationStatus.DISBURSED}),
    ApplicationStatus.DISBURSED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
    ApplicationStatus.CANCELLED: frozenset(),
}


def allowed_targets(current: ApplicationStatus) -> FrozenSet[ApplicationStatus]:
    return TRANSITIONS[current]


def can_transition(current: ApplicationStatus, target: ApplicationStatus) -> bool:
    return target in TRANSITIONS[current]


def ensure_transition(action: str, current: ApplicationStatus, target: ApplicationStatus) -> None:
    """Raise IllegalTransitionError unless current -> target is in the table"""
    if not can_transition(current, target):
        raise IllegalTransitionError(action, current, target)


def is_terminal(status: ApplicationStatus) -> bool:
    return status in TERMINAL_STATES


def is_review_state(status: ApplicationStatus) -> bool:
    return status in REVIEW_STATES


def next_review_state(current: ApplicationStatus) -> Optional[ApplicationStatus]:
    """Following review state, or None from MANAGER_REVIEW / non-review states"""
    if current not in REVIEW_STATES:
        return None
    index = REVIEW_SEQUENCE.index(current)
    if index + 1 >= len(REVIEW_SEQUENCE):
        return None
    return REVIEW_SEQUENCE[index + 1]
