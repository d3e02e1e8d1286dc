"""Layaway money arithmetic - markup, balances, penalties, refunds and trust stars

All amounts are whole currency units. Percentages are integers so that stored
totals never depend on float rounding.
"""

from datetime import datetime

from layaway_hub.domain.models import FinancingRequest, PaymentSummary
from layaway_hub.utils.date_utils import months_between


def normalize_email(email: str) -> str:
    """Trust ledger key: trimmed, lower-cased email"""
    return email.strip().lower()


def total_with_interest(total_amount: int, interest_rate_percent: int) -> int:
    """
    Apply the markup once, rounding half up to the nearest currency unit.

    Example:
        100000 at 5% -> 105000
        999 at 5%    -> 1048.95 -> 1049
    """
    return (total_amount * (100 + interest_rate_percent) + 50) // 100


def balance(request: FinancingRequest) -> int:
    """Amount still owed, floored at zero when the customer over-paid"""
    return max(0, request.total_with_interest - request.amount_paid)


def is_fully_paid(request: FinancingRequest) -> bool:
    return request.amount_paid >= request.total_with_interest


def late_penalty(outstanding: int, months_elapsed: int, basis_points_per_month: int) -> int:
    """
    Penalty on the outstanding balance for every calendar month since submission.

    0.5% per month is 50 basis points. Rounded down.
    """
    if outstanding <= 0 or months_elapsed <= 0:
        return 0
    return outstanding * basis_points_per_month * months_elapsed // 10_000


def refund_amount(amount_paid: int, service_charge_percent: int) -> int:
    """What is returned on cancellation after the service charge is withheld"""
    return amount_paid * (100 - service_charge_percent) // 100


def trust_stars(success_count: int, cap: int = 5) -> int:
    return max(0, min(success_count, cap))


def summarize_payments(
    request: FinancingRequest,
    now: datetime,
    basis_points_per_month: int,
) -> PaymentSummary:
    """Build the balance/penalty/progress view shown next to a request"""
    outstanding = balance(request)
    # Closed requests stop accruing
    months_elapsed = 0 if request.is_closed else months_between(request.created_at, now)
    total = request.total_with_interest

    if total > 0:
        progress = min(100, request.amount_paid * 100 // total)
    else:
        progress = 100

    return PaymentSummary(
        balance=outstanding,
        months_elapsed=months_elapsed,
        late_penalty=late_penalty(outstanding, months_elapsed, basis_points_per_month),
        monthly_installment=round(total / request.plan_months) if request.plan_months > 0 else total,
        progress_percent=progress,
    )
