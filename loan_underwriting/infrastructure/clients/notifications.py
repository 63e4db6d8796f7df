"""Notification webhook client with exponential backoff retry logic"""

import time
from typing import Any, Callable, Dict

import httpx

from loan_underwriting.config import settings
from loan_underwriting.domain.exceptions import NotificationError
from loan_underwriting.domain.models import LoanApplication
from loan_underwriting.infrastructure.observability.metrics import (
    notification_failure_counter,
    notification_latency_histogram,
)


def _money(value) -> str | None:
    return str(value) if value is not None else None


def build_event_payload(event: str, application: LoanApplication) -> Dict[str, Any]:
    """Event body; amounts are strings so no precision is lost in JSON"""
    return {
        "event": event,
        "application_id": str(application.id),
        "application_number": application.application_number,
        "customer_ref": application.customer_ref,
        "loan_category": application.loan_category.value,
        "status": application.status.value,
        "requested_amount": _money(application.requested_amount),
        "requested_term_months": application.requested_term_months,
        "approved_amount": _money(application.approved_amount),
        "approved_term_months": application.approved_term_months,
        "approved_rate": _money(application.approved_rate),
        "monthly_payment": _money(application.monthly_payment),
        "risk_category": application.risk_category.value if application.risk_category else None,
        "decision_reason": application.decision_reason,
        "version": application.version,
    }


class WebhookNotifier:
    """Delivers lifecycle events to the notification webhook"""

    def __init__(
        self,
        webhook_url: str | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.webhook_url = webhook_url or settings.notification_webhook_url
        self.max_retries = max_retries if max_retries is not None else settings.webhook_max_retries
        self.backoff_base = backoff_base if backoff_base is not None else settings.webhook_backoff_base
        self.transport = transport
        self.sleep = sleep

    def notify(self, event: str, application: LoanApplication) -> None:
        """
        Send a lifecycle event with retry logic.

        Retry strategy:
        - Exponential backoff: base * 2^(attempt - 1)
        - Retries on non-2xx responses and network failures
        - Tracks latency histogram and failure counter

        Raises:
            NotificationError: After the final failed attempt
        """
        payload = build_event_payload(event, application)
        attempt = 0
        with httpx.Client(transport=self.transport) as client:
            while attempt < self.max_retries:
                try:
                    with notification_latency_histogram.time():
                        response = client.post(
                            self.webhook_url,
                            json=payload,
                            timeout=settings.http_timeout_seconds,
                        )
                        response.raise_for_status()
                        return

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    notification_failure_counter.inc()

                    if attempt >= self.max_retries:
                        raise NotificationError(
                            f"{event} for {application.application_number} failed after {attempt} attempts: {e}"
                        ) from e

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    self.sleep(backoff)
