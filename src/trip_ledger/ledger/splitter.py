"""Remainder-safe equal splitting of an expense amount."""

from collections.abc import Sequence
from decimal import ROUND_FLOOR, Decimal

from ..models import SplitShare
from .money import CENT, to_cents


def split_equally(amount: Decimal, participant_ids: Sequence[str]) -> list[SplitShare]:
    """
    Divide an amount equally so that the shares add back up exactly.

    Steps:
    1. Truncate the per-person share to whole cents
    2. Compute the remainder left over after n truncated shares
    3. Give every participant the truncated share, and the first
       participant the truncated share plus the remainder

    Args:
        amount: Amount to split (two decimal places)
        participant_ids: Participants in display order; the first one
                         absorbs any remainder

    Returns:
        One share per participant, in input order. Empty when there are
        no participants.
    """
    if not participant_ids:
        return []

    amount = Decimal(amount)
    count = len(participant_ids)

    per_person = (amount * 100 / count).to_integral_value(rounding=ROUND_FLOOR) * CENT
    remainder = to_cents(amount - per_person * count)

    return [
        SplitShare(
            user_id=user_id,
            amount=per_person + remainder if index == 0 else per_person,
        )
        for index, user_id in enumerate(participant_ids)
    ]
