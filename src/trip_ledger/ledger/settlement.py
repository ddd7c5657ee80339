"""Greedy debt simplification for a group's shared expenses.

The resolver matches the largest remaining creditor against the largest
remaining debtor until one side runs out. It always clears every balance to
within a cent, but it does not guarantee the fewest possible payments.
"""

import hashlib
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from ..models import Expense, Profile, Settlement
from .balances import compute_balances
from .money import SETTLED_TOLERANCE, to_cents

logger = logging.getLogger(__name__)


@dataclass
class _Party:
    """A creditor or debtor with the amount still to be matched."""

    user_id: str
    remaining: Decimal


def resolve_settlements(
    expenses: Iterable[Expense],
    profiles: Mapping[str, Profile] | None = None,
) -> list[Settlement]:
    """
    Reduce a group's debts to a short list of debtor-pays-creditor payments.

    Steps:
    1. Compute net balances and round them to cents
    2. Drop balances within one cent of zero
    3. Sort creditors and debtors by amount, largest first (stable, so equal
       amounts keep first-seen order)
    4. Repeatedly pay the smaller of the two current amounts from the
       current debtor to the current creditor, moving past whichever side
       is cleared

    Args:
        expenses: Expenses with their resolved splits
        profiles: Optional member profiles to attach to each settlement

    Returns:
        Settlements in the order they were matched. Empty when everyone is
        already square.
    """
    balances = compute_balances(expenses)

    creditors: list[_Party] = []
    debtors: list[_Party] = []
    for user_id, balance in balances.items():
        rounded = to_cents(balance)
        if rounded > SETTLED_TOLERANCE:
            creditors.append(_Party(user_id, rounded))
        elif rounded < -SETTLED_TOLERANCE:
            debtors.append(_Party(user_id, -rounded))
        elif rounded != 0:
            logger.debug(f"Ignoring rounding noise of {rounded} for {user_id}")

    creditors.sort(key=lambda party: party.remaining, reverse=True)
    debtors.sort(key=lambda party: party.remaining, reverse=True)

    settlements: list[Settlement] = []
    creditor_idx = 0
    debtor_idx = 0

    while creditor_idx < len(creditors) and debtor_idx < len(debtors):
        creditor = creditors[creditor_idx]
        debtor = debtors[debtor_idx]

        amount = min(creditor.remaining, debtor.remaining)
        rounded_amount = to_cents(amount)

        if rounded_amount > 0:
            settlements.append(
                Settlement(
                    from_user_id=debtor.user_id,
                    to_user_id=creditor.user_id,
                    amount=rounded_amount,
                    from_user=profiles.get(debtor.user_id) if profiles else None,
                    to_user=profiles.get(creditor.user_id) if profiles else None,
                )
            )

        creditor.remaining -= amount
        debtor.remaining -= amount

        if creditor.remaining < SETTLED_TOLERANCE:
            creditor_idx += 1
        if debtor.remaining < SETTLED_TOLERANCE:
            debtor_idx += 1

    logger.debug(
        f"Resolved {len(creditors)} creditors and {len(debtors)} debtors "
        f"into {len(settlements)} settlements"
    )
    return settlements


def apply_settlements(
    balances: Mapping[str, Decimal], settlements: Iterable[Settlement]
) -> dict[str, Decimal]:
    """
    Apply settlements to a balance map, returning a new map.

    Paying moves the debtor's balance up and the creditor's balance down by
    the settlement amount. Applying the output of resolve_settlements() to
    the balances it was computed from leaves every balance within a cent of
    zero.
    """
    result = dict(balances)
    for settlement in settlements:
        result[settlement.from_user_id] = (
            result.get(settlement.from_user_id, Decimal("0")) + settlement.amount
        )
        result[settlement.to_user_id] = (
            result.get(settlement.to_user_id, Decimal("0")) - settlement.amount
        )
    return result


def settlements_for_user(
    user_id: str, settlements: Iterable[Settlement]
) -> tuple[list[Settlement], list[Settlement]]:
    """
    Split settlements into what a user owes and what is owed to them.

    Returns:
        Tuple of (payments the user makes, payments the user receives)
    """
    owes: list[Settlement] = []
    owed: list[Settlement] = []
    for settlement in settlements:
        if settlement.from_user_id == user_id:
            owes.append(settlement)
        elif settlement.to_user_id == user_id:
            owed.append(settlement)
    return owes, owed


def unsettled_split_ids(
    user_id: str, to_user_id: str, expenses: Iterable[Expense]
) -> list[str]:
    """
    Find the user's unsettled splits on expenses paid by another member.

    Splits without an id cannot be referenced by a caller; they are skipped
    with a warning.
    """
    split_ids = []
    for expense in expenses:
        if expense.paid_by != to_user_id:
            continue
        for split in expense.splits:
            if split.user_id != user_id or split.is_settled:
                continue
            if not split.id:
                logger.warning(
                    f"Skipping open split of {split.amount} for {user_id} on "
                    f"expense {expense.id}: split has no id"
                )
                continue
            split_ids.append(split.id)
    return split_ids


def mark_splits_settled(
    expenses: Iterable[Expense],
    split_ids: Iterable[str],
    settled_at: datetime | None = None,
) -> list[Expense]:
    """
    Return copies of the expenses with the given splits flagged as settled.

    Expenses that contain none of the splits are returned unchanged.
    """
    targets = set(split_ids)
    settled_at = settled_at or datetime.now()

    updated = []
    for expense in expenses:
        if not any(split.id in targets for split in expense.splits):
            updated.append(expense)
            continue
        splits = [
            split.model_copy(update={"is_settled": True, "settled_at": settled_at})
            if split.id in targets
            else split
            for split in expense.splits
        ]
        updated.append(expense.model_copy(update={"splits": splits}))
    return updated


def compute_plan_hash(trip_id: str, settlements: Sequence[Settlement]) -> str:
    """
    Compute a deterministic identifier for a set of settlement payments.

    Args:
        trip_id: Trip the settlements belong to
        settlements: Settlement payments

    Returns:
        SHA256 hash as hex string
    """
    parts = sorted(
        f"{s.from_user_id}:{s.to_user_id}:{to_cents(s.amount)}" for s in settlements
    )
    combined = f"{trip_id}|" + "|".join(parts)
    return hashlib.sha256(combined.encode()).hexdigest()
