"""Fold shared expenses into one net balance per member."""

import logging
from collections.abc import Iterable
from decimal import Decimal

from ..models import Expense

logger = logging.getLogger(__name__)


def compute_balances(expenses: Iterable[Expense]) -> dict[str, Decimal]:
    """
    Compute each member's net balance across a set of expenses.

    The payer is credited with the full expense amount and every split
    participant is debited with their split amount. Positive means the group
    owes the member, negative means the member owes the group.

    Members that never appear in an expense are absent from the result.
    No validation is performed: an expense whose splits do not add up to its
    amount simply makes the balances stop summing to zero.

    Args:
        expenses: Expenses with their resolved splits

    Returns:
        A new dict of member id to signed balance, in first-seen order
    """
    balances: dict[str, Decimal] = {}

    for expense in expenses:
        balances[expense.paid_by] = (
            balances.get(expense.paid_by, Decimal("0")) + expense.amount
        )
        for split in expense.splits:
            balances[split.user_id] = (
                balances.get(split.user_id, Decimal("0")) - split.amount
            )

    logger.debug(f"Computed balances for {len(balances)} members")
    return balances
