"""Fixed-rate amortization: monthly payment, totals and full schedule"""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from loan_underwriting.domain.models import PaymentSummary, ScheduleRow
from loan_underwriting.utils.date_utils import add_months
from loan_underwriting.utils.decimal_utils import HUNDRED, ZERO, clamp, quantize_money, to_decimal

MONTHS_PER_YEAR = Decimal("12")


def _validate(principal: Decimal, term_months: int, annual_rate_percent: Decimal) -> None:
    if principal <= ZERO:
        raise ValueError(f"principal must be positive, got {principal}")
    if term_months <= 0:
        raise ValueError(f"term_months must be positive, got {term_months}")
    if annual_rate_percent < ZERO:
        raise ValueError(f"annual rate must not be negative, got {annual_rate_percent}")


def monthly_rate(annual_rate_percent: Decimal) -> Decimal:
    return to_decimal(annual_rate_percent) / HUNDRED / MONTHS_PER_YEAR


def monthly_payment(principal: Decimal, term_months: int, annual_rate_percent: Decimal) -> Decimal:
    """
    Level monthly payment that retires `principal` over `term_months`.

    P * r / (1 - (1 + r)^-n), or P / n when the rate is exactly zero.
    Rounded half-up to cents.

    Example:
        5,000,000 over 24 months at 12% -> 235,367.36
    """
    principal = to_decimal(principal)
    annual_rate_percent = to_decimal(annual_rate_percent)
    _validate(principal, term_months, annual_rate_percent)

    rate = monthly_rate(annual_rate_percent)
    if rate == ZERO:
        return quantize_money(principal / term_months)

    discount = 1 - (1 + rate) ** -term_months
    return quantize_money(principal * rate / discount)


def total_payment(principal: Decimal, term_months: int, annual_rate_percent: Decimal) -> Decimal:
    return quantize_money(monthly_payment(principal, term_months, annual_rate_percent) * term_months)


def total_interest(principal: Decimal, term_months: int, annual_rate_percent: Decimal) -> Decimal:
    return quantize_money(
        total_payment(principal, term_months, annual_rate_percent) - to_decimal(principal)
    )


def amortization_schedule(
    principal: Decimal,
    term_months: int,
    annual_rate_percent: Decimal,
    start_date: Optional[date] = None,
) -> List[ScheduleRow]:
    """
    Month-by-month breakdown of a fixed-rate loan.

    - interest = balance before payment * monthly rate (rounded to cents)
    - principal portion = payment - interest, never more than the remaining
      balance (a rounded-up payment on a tiny principal pays it off early and
      later rows are zero)
    - Last row absorbs the rounding remainder so the balance ends at exactly 0
      and the principal column sums to `principal`

    Args:
        start_date: first due date; subsequent rows fall on the same day of
            each following month. Rows carry no due date when omitted.
    """
    principal = to_decimal(principal)
    annual_rate_percent = to_decimal(annual_rate_percent)
    payment = monthly_payment(principal, term_months, annual_rate_percent)
    rate = monthly_rate(annual_rate_percent)

    balance = principal
    rows = []
    for month in range(1, term_months + 1):
        interest = quantize_money(balance * rate)
        if month == term_months:
            principal_portion = balance
        else:
            principal_portion = clamp(payment - interest, ZERO, balance)
        row_payment = principal_portion + interest
        balance = balance - principal_portion

        rows.append(
            ScheduleRow(
                month=month,
                payment=row_payment,
                principal_portion=principal_portion,
                interest_portion=interest,
                remaining_balance=balance,
                due_date=add_months(start_date, month - 1) if start_date else None,
            )
        )

    return rows


def summarize(
    principal: Decimal,
    term_months: int,
    annual_rate_percent: Decimal,
    include_schedule: bool = False,
    start_date: Optional[date] = None,
) -> PaymentSummary:
    principal = to_decimal(principal)
    annual_rate_percent = to_decimal(annual_rate_percent)
    payment = monthly_payment(principal, term_months, annual_rate_percent)
    total = quantize_money(payment * term_months)
    schedule = ()
    if include_schedule:
        schedule = tuple(amortization_schedule(principal, term_months, annual_rate_percent, start_date))

    return PaymentSummary(
        principal=principal,
        term_months=term_months,
        annual_rate_percent=annual_rate_percent,
        monthly_payment=payment,
        total_payment=total,
        total_interest=quantize_money(total - principal),
        schedule=schedule,
    )
