"""Pydantic domain models for Trip Ledger."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ExpenseCategory = Literal["food", "transport", "housing", "activity", "other"]


# ============================================================================
# Member Models
# ============================================================================


class Profile(BaseModel):
    """A trip member's public profile."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str | None = None
    email: str | None = None
    avatar_url: str | None = None

    @property
    def display_name(self) -> str:
        """Name, else the local part of the email, else "Unknown"."""
        if self.name:
            return self.name
        if self.email:
            return self.email.split("@")[0]
        return "Unknown"


# ============================================================================
# Expense Models
# ============================================================================


class ExpenseSplit(BaseModel):
    """One participant's portion of an expense."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    user_id: str
    amount: Decimal
    is_settled: bool = False
    settled_at: datetime | None = None


class Expense(BaseModel):
    """A shared cost paid by one member and split across others.

    Amounts are not validated here: the splits are expected to sum to the
    expense amount (within a cent), but bad data is passed through to the
    balance sheet unchanged.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    amount: Decimal
    paid_by: str
    category: ExpenseCategory = "other"
    description: str = ""
    expense_date: date | None = None
    splits: list[ExpenseSplit] = Field(default_factory=list)


class SplitShare(BaseModel):
    """A single participant's share produced by an equal split."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    amount: Decimal


class Settlement(BaseModel):
    """A suggested payment from a debtor to a creditor."""

    model_config = ConfigDict(frozen=True)

    from_user_id: str  # debtor
    to_user_id: str  # creditor
    amount: Decimal  # always positive
    from_user: Profile | None = None
    to_user: Profile | None = None


class TripLedger(BaseModel):
    """All expenses of one trip, in a single currency."""

    model_config = ConfigDict(frozen=True)

    trip_id: str
    currency_code: str = "USD"
    members: list[Profile] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)

    def profile_map(self) -> dict[str, Profile]:
        """Map member ids to profiles."""
        return {member.id: member for member in self.members}


# ============================================================================
# Settlement Plan Models
# ============================================================================


class SettlementPlan(BaseModel):
    """A computed settlement plan for a trip, ready for review.

    plan_hash: SHA256 of the settlements (debtor:creditor:amount triples,
    sorted). Two plans with the same payments hash equal regardless of the
    order the settlements were produced in.
    """

    model_config = ConfigDict(frozen=True)

    trip_id: str
    currency_code: str
    balances: dict[str, Decimal]
    settlements: list[Settlement]
    total_expenses: Decimal
    expenses_by_category: dict[str, Decimal]
    plan_hash: str
    created_at: datetime = Field(default_factory=datetime.now)


class RecordedSettlement(BaseModel):
    """A record of a settlement plan the group has agreed to."""

    id: int | None = None
    trip_id: str
    plan_hash: str  # Hash of the settlement payments for duplicate detection
    settlement_count: int
    total_amount: Decimal
    created_at: datetime = Field(default_factory=datetime.now)
