"""Expense ledger and settlement engine."""

from .balances import compute_balances
from .money import SETTLED_TOLERANCE, to_cents
from .settlement import (
    apply_settlements,
    compute_plan_hash,
    mark_splits_settled,
    resolve_settlements,
    settlements_for_user,
    unsettled_split_ids,
)
from .splitter import split_equally
from .summary import (
    expenses_by_category,
    format_currency,
    has_unsettled_debt,
    total_expenses,
    user_balance,
)

__all__ = [
    "SETTLED_TOLERANCE",
    "to_cents",
    "compute_balances",
    "split_equally",
    "resolve_settlements",
    "apply_settlements",
    "settlements_for_user",
    "unsettled_split_ids",
    "mark_splits_settled",
    "compute_plan_hash",
    "total_expenses",
    "expenses_by_category",
    "user_balance",
    "has_unsettled_debt",
    "format_currency",
]
