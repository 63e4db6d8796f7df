"""Customer directory HTTP client for fetching credit and income data"""

import httpx

from loan_underwriting.config import settings
from loan_underwriting.domain.exceptions import CustomerLookupError, CustomerNotFoundError
from loan_underwriting.domain.models import CustomerFinancials
from loan_underwriting.utils.decimal_utils import optional_decimal


class CustomerClient:
    """Client for the external customer directory API"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url or settings.customer_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    def get_customer(self, customer_ref: str) -> CustomerFinancials:
        """
        Fetch credit score, monthly income and existing debt for a customer.

        Absent fields come back as None so the classifier can mark the
        assessment incomplete instead of guessing.

        Raises:
            CustomerNotFoundError: When the directory has no such customer
            CustomerLookupError: On timeout, HTTP errors, or invalid response
        """
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = client.get(f"{self.base_url}/customers/{customer_ref}")
                if response.status_code == 404:
                    raise CustomerNotFoundError(f"Customer {customer_ref} not found")
                response.raise_for_status()
                data = response.json()

                credit_score = data.get("credit_score")
                return CustomerFinancials(
                    customer_ref=customer_ref,
                    credit_score=int(credit_score) if credit_score is not None else None,
                    monthly_income=optional_decimal(data.get("monthly_income")),
                    existing_debt=optional_decimal(data.get("existing_debt")),
                )

            except httpx.TimeoutException as e:
                raise CustomerLookupError(f"Customer API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise CustomerLookupError(f"Customer API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise CustomerLookupError(f"Customer API unreachable: {e}") from e
            except (AttributeError, KeyError, ValueError, TypeError, ArithmeticError) as e:
                raise CustomerLookupError(f"Invalid customer data: {e}") from e
