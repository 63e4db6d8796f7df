"""Prometheus metrics for monitoring transitions, risk mix and collaborator health"""

from decimal import Decimal

from prometheus_client import Counter, Histogram

# Workflow metrics
transition_counter = Counter(
    "loan_transition_total",
    "Workflow operations by action and outcome",
    ["action", "outcome"],  # ok | validation_error | illegal_transition | conflict
)

eligibility_violation_counter = Counter(
    "loan_eligibility_violation_total",
    "Bound violations by category and field",
    ["category", "field"],
)

approved_amount_bucket_counter = Counter(
    "loan_approved_amount_bucket",
    "Approved amounts by bucket",
    ["bucket"],  # <1M, 1M-10M, 10M-100M, 100M+
)

auto_approval_counter = Counter(
    "loan_auto_approval_total",
    "Applications fast-forwarded to APPROVED by assessment",
)

# Risk metrics
risk_category_counter = Counter(
    "loan_risk_category_total",
    "Risk assessments by category",
    ["category"],
)

incomplete_assessment_counter = Counter(
    "loan_assessment_incomplete_total",
    "Risk assessments run with missing inputs",
)

# Notification metrics
notification_latency_histogram = Histogram(
    "notification_latency_seconds",
    "Notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

notification_failure_counter = Counter(
    "notification_failures_total",
    "Failed notification deliveries",
)

# Collaborator metrics
customer_lookup_failures_counter = Counter(
    "customer_lookup_failures_total",
    "Failed customer API calls",
)


def record_transition(action: str, outcome: str = "ok") -> None:
    transition_counter.labels(action=action, outcome=outcome).inc()


def record_eligibility_violations(violations) -> None:
    for violation in violations:
        eligibility_violation_counter.labels(
            category=violation.category.value, field=violation.field
        ).inc()


def record_assessment(category: str, incomplete: bool) -> None:
    risk_category_counter.labels(category=category).inc()
    if incomplete:
        incomplete_assessment_counter.inc()


def record_approval(approved_amount: Decimal, automatic: bool = False) -> None:
    """Bucket approved amounts for distribution analysis"""
    if approved_amount < Decimal("1000000"):
        bucket = "<1M"
    elif approved_amount < Decimal("10000000"):
        bucket = "1M-10M"
    elif approved_amount < Decimal("100000000"):
        bucket = "10M-100M"
    else:
        bucket = "100M+"

    approved_amount_bucket_counter.labels(bucket=bucket).inc()
    if automatic:
        auto_approval_counter.inc()
