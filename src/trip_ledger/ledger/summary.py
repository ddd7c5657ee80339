"""Aggregate views over a trip's expenses."""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from ..models import Expense
from .balances import compute_balances

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
    "CAD": "CA$",
    "AUD": "A$",
    "MXN": "MX$",
}


def total_expenses(expenses: Iterable[Expense]) -> Decimal:
    """Sum of all expense amounts."""
    return sum((expense.amount for expense in expenses), Decimal("0"))


def expenses_by_category(expenses: Iterable[Expense]) -> dict[str, Decimal]:
    """Sum of expense amounts per category, in first-seen order."""
    by_category: dict[str, Decimal] = {}
    for expense in expenses:
        by_category[expense.category] = (
            by_category.get(expense.category, Decimal("0")) + expense.amount
        )
    return by_category


def user_balance(user_id: str, expenses: Iterable[Expense]) -> Decimal:
    """A single member's net balance, zero if they are not involved."""
    return compute_balances(expenses).get(user_id, Decimal("0"))


def has_unsettled_debt(user_id: str, expenses: Iterable[Expense]) -> bool:
    """
    Check whether a member still has an open split.

    This looks only at the split-level is_settled flags, not at the sign of
    the member's computed balance.
    """
    for expense in expenses:
        for split in expense.splits:
            if split.user_id == user_id and not split.is_settled and split.amount > 0:
                return True
    return False


def format_currency(amount: Decimal, currency_code: str = "USD") -> str:
    """
    Format an amount for display in en-US style.

    Examples:
        Decimal("1234.5")        -> "$1,234.50"
        Decimal("-20")           -> "-$20.00"
        Decimal("12"), "CHF"     -> "CHF 12.00"

    Display only; never parse the result back into arithmetic.
    """
    quantized = Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    code = currency_code.upper()
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} ")
    sign = "-" if quantized < 0 else ""
    return f"{sign}{symbol}{abs(quantized):,.2f}"
