"""Monthly installment schedule for layaway repayment"""

from datetime import date
from typing import List, Optional
from layaway_hub.domain.models import Installment
from layaway_hub.utils.date_utils import add_months


def generate_layaway_schedule(
    total_with_interest: int,
    plan_months: int,
    start_date: Optional[date] = None,
) -> List[Installment]:
    """
    Split the marked-up total into equal monthly installments.

    Requirements:
    - One installment per month of the plan (3, 6 or 12 by default)
    - First installment due one month after start_date
    - Last installment absorbs rounding remainder so the schedule sums exactly

    Args:
        total_with_interest: Amount frozen on the request at submission
        plan_months: Number of monthly payments
        start_date: Submission date (default: today)

    Returns:
        List of Installment objects with due dates and amounts

    Example:
        100001 over 3 months -> [33333, 33333, 33335]
    """
    if total_with_interest <= 0 or plan_months <= 0:
        return []

    if start_date is None:
        start_date = date.today()

    base_amount = total_with_interest // plan_months
    remainder = total_with_interest % plan_months

    installments = []
    for i in range(plan_months):
        due_date = add_months(start_date, i + 1)
        amount = base_amount + (remainder if i == plan_months - 1 else 0)
        installments.append(Installment(due_date=due_date, amount=amount))

    return installments
