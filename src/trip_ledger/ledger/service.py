"""Service layer that composes ledger files, the engine, and the database.

This module provides a higher-level API over the pure ledger functions. The
engine itself never touches storage; reading ledger files and recording
settlement plans happens here.
"""

import json
import logging
import uuid
from collections.abc import Sequence
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from pydantic import ValidationError

from ..config import Settings
from ..db import Database
from ..exceptions import (
    ConfigurationError,
    ExpenseNotFoundError,
    InvalidExpenseError,
    LedgerFileError,
    SettlementAlreadyRecordedError,
)
from ..models import (
    Expense,
    ExpenseSplit,
    RecordedSettlement,
    SettlementPlan,
    TripLedger,
)
from .balances import compute_balances
from .settlement import (
    compute_plan_hash,
    mark_splits_settled,
    resolve_settlements,
    unsettled_split_ids,
)
from .splitter import split_equally
from .summary import expenses_by_category, total_expenses

logger = logging.getLogger(__name__)


class LedgerService:
    """Service for turning trip ledgers into settlement plans."""

    def __init__(self, settings: Settings, database: Database | None = None):
        """Initialize the ledger service.

        The database is only needed for recording plans and reading history;
        file and plan operations work without one.
        """
        self.settings = settings
        self.db = database

    def _require_db(self) -> Database:
        if self.db is None:
            raise ConfigurationError("This operation needs a settlement database")
        return self.db

    def load_ledger(self, path: Path) -> TripLedger:
        """
        Read a trip ledger from a JSON file.

        Args:
            path: Path to the ledger file

        Returns:
            Parsed trip ledger

        Raises:
            LedgerFileError: If the file is missing or malformed
        """
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise LedgerFileError(f"Could not read ledger file {path}: {e}") from e

        if isinstance(data, dict):
            data.setdefault("currency_code", self.settings.default_currency)

        try:
            ledger = TripLedger.model_validate(data)
        except ValidationError as e:
            raise LedgerFileError(f"Invalid ledger file {path}:\n{e}") from e

        logger.info(
            f"Loaded {len(ledger.expenses)} expenses for trip {ledger.trip_id} "
            f"({len(ledger.members)} members)"
        )
        return ledger

    def save_ledger(self, path: Path, ledger: TripLedger) -> None:
        """Write a trip ledger back to a JSON file."""
        try:
            path.write_text(ledger.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            raise LedgerFileError(f"Could not write ledger file {path}: {e}") from e

        logger.info(f"Saved trip {ledger.trip_id} to {path}")

    def create_plan(self, ledger: TripLedger) -> SettlementPlan:
        """
        Compute a settlement plan for a trip.

        This is a pure function of the ledger; nothing is persisted.

        Args:
            ledger: The trip ledger

        Returns:
            Settlement plan ready for review
        """
        settlements = resolve_settlements(ledger.expenses, ledger.profile_map())

        plan = SettlementPlan(
            trip_id=ledger.trip_id,
            currency_code=ledger.currency_code,
            balances=compute_balances(ledger.expenses),
            settlements=settlements,
            total_expenses=total_expenses(ledger.expenses),
            expenses_by_category=expenses_by_category(ledger.expenses),
            plan_hash=compute_plan_hash(ledger.trip_id, settlements),
        )

        logger.info(
            f"Created plan with {len(settlements)} settlements, "
            f"total expenses: {plan.total_expenses}"
        )
        return plan

    def check_if_already_recorded(
        self, plan: SettlementPlan
    ) -> RecordedSettlement | None:
        """
        Check if a plan has already been recorded (idempotency check).

        Args:
            plan: The settlement plan to check

        Returns:
            Recorded settlement if already recorded, None otherwise
        """
        db = self._require_db()
        existing = db.get_recorded_settlement_by_hash(plan.plan_hash)

        if existing:
            logger.info(f"Plan already recorded on {existing.created_at.date()}")

        return existing

    def record_plan(self, plan: SettlementPlan) -> int:
        """
        Record a settlement plan so the same plan is not recorded twice.

        Args:
            plan: The settlement plan to record

        Returns:
            Database id of the new record

        Raises:
            SettlementAlreadyRecordedError: If the same plan was recorded before
        """
        existing = self.check_if_already_recorded(plan)
        if existing:
            logger.warning(f"Plan already recorded on {existing.created_at.date()}")
            raise SettlementAlreadyRecordedError(
                plan.plan_hash,
                f"This settlement plan was already recorded on "
                f"{existing.created_at.date()}",
            )

        record = RecordedSettlement(
            trip_id=plan.trip_id,
            plan_hash=plan.plan_hash,
            settlement_count=len(plan.settlements),
            total_amount=sum(
                (settlement.amount for settlement in plan.settlements), Decimal("0")
            ),
        )
        db = self._require_db()
        record_id = db.save_recorded_settlement(record)
        db.set_last_recorded_trip(plan.trip_id)

        logger.info(f"Recorded settlement plan (hash: {plan.plan_hash[:8]}...)")
        return record_id

    def settle_with_user(
        self,
        ledger: TripLedger,
        user_id: str,
        to_user_id: str,
        settled_at: datetime | None = None,
    ) -> tuple[TripLedger, int]:
        """
        Mark every open split the user owes on another member's expenses.

        Args:
            ledger: The trip ledger
            user_id: Member who paid back
            to_user_id: Member who fronted the expenses

        Returns:
            Tuple of (updated ledger, number of splits marked settled)
        """
        split_ids = unsettled_split_ids(user_id, to_user_id, ledger.expenses)
        if not split_ids:
            logger.info(f"Nothing to settle between {user_id} and {to_user_id}")
            return ledger, 0

        expenses = mark_splits_settled(ledger.expenses, split_ids, settled_at)
        logger.info(
            f"Marked {len(split_ids)} splits settled from {user_id} to {to_user_id}"
        )
        return ledger.model_copy(update={"expenses": expenses}), len(split_ids)

    def add_expense(
        self,
        ledger: TripLedger,
        amount: Decimal,
        paid_by: str,
        participant_ids: Sequence[str],
        category: str = "other",
        description: str = "",
        expense_date: date | None = None,
        expense_id: str | None = None,
    ) -> TripLedger:
        """
        Add an expense split equally between participants.

        The first participant absorbs any cent remainder, so the splits always
        add up to the amount.

        Args:
            ledger: The trip ledger
            amount: Positive amount with at most two decimal places
            paid_by: Member who paid
            participant_ids: Members sharing the cost, in display order
            category: Expense category
            description: Free-text description
            expense_date: Date of the expense, today if omitted
            expense_id: Id for the new expense, generated if omitted

        Returns:
            A new ledger with the expense appended

        Raises:
            InvalidExpenseError: If the amount or participants are invalid
        """
        amount = Decimal(amount)
        if not amount.is_finite() or amount <= 0:
            raise InvalidExpenseError(f"Amount must be positive, got {amount}")
        if amount != amount.quantize(Decimal("0.01")):
            raise InvalidExpenseError(
                f"Amount must have at most two decimal places, got {amount}"
            )
        if not participant_ids:
            raise InvalidExpenseError("An expense needs at least one participant")

        expense_id = expense_id or uuid.uuid4().hex
        if any(expense.id == expense_id for expense in ledger.expenses):
            raise InvalidExpenseError(f"Expense {expense_id} already exists")

        splits = [
            ExpenseSplit(
                id=f"{expense_id}-{index}", user_id=share.user_id, amount=share.amount
            )
            for index, share in enumerate(split_equally(amount, participant_ids))
        ]

        try:
            expense = Expense(
                id=expense_id,
                amount=amount,
                paid_by=paid_by,
                category=category,
                description=description,
                expense_date=expense_date or date.today(),
                splits=splits,
            )
        except ValidationError as e:
            raise InvalidExpenseError(f"Invalid expense:\n{e}") from e

        logger.info(
            f"Added expense {expense_id} of {amount} paid by {paid_by}, "
            f"split {len(splits)} ways"
        )
        return ledger.model_copy(update={"expenses": [*ledger.expenses, expense]})

    def remove_expense(self, ledger: TripLedger, expense_id: str) -> TripLedger:
        """
        Remove an expense and its splits.

        Raises:
            ExpenseNotFoundError: If no expense has that id
        """
        expenses = [expense for expense in ledger.expenses if expense.id != expense_id]
        if len(expenses) == len(ledger.expenses):
            raise ExpenseNotFoundError(expense_id)

        logger.info(f"Removed expense {expense_id}")
        return ledger.model_copy(update={"expenses": expenses})

    def get_recorded_settlements(
        self, trip_id: str | None = None
    ) -> list[RecordedSettlement]:
        """List recorded settlement plans, newest first."""
        return self._require_db().get_recorded_settlements(trip_id)
