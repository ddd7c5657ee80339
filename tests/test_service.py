"""Tests for LedgerService layer."""

import json
from datetime import date, datetime
from decimal import Decimal

import pytest

from trip_ledger.config import Settings
from trip_ledger.db import Database
from trip_ledger.exceptions import (
    ConfigurationError,
    ExpenseNotFoundError,
    InvalidExpenseError,
    LedgerFileError,
    SettlementAlreadyRecordedError,
)
from trip_ledger.ledger.balances import compute_balances
from trip_ledger.ledger.service import LedgerService
from trip_ledger.ledger.settlement import compute_plan_hash
from trip_ledger.models import Profile, TripLedger


@pytest.fixture
def mock_settings(tmp_path):
    """Create settings pointing at a temporary database."""
    return Settings(database_path=tmp_path / "test.db", default_currency="EUR")


@pytest.fixture
def mock_db(mock_settings):
    """Create a temporary database."""
    db = Database(mock_settings.database_path)
    yield db
    db.close()


@pytest.fixture
def service(mock_settings, mock_db):
    """Create a LedgerService instance."""
    return LedgerService(mock_settings, mock_db)


@pytest.fixture
def ledger_data():
    """Raw ledger document as it would appear on disk."""
    return {
        "trip_id": "lisbon-2025",
        "currency_code": "USD",
        "members": [
            {"id": "alice", "name": "Alice"},
            {"id": "bob", "email": "bob@example.com"},
            {"id": "carol"},
        ],
        "expenses": [
            {
                "id": "e1",
                "amount": "90.00",
                "paid_by": "alice",
                "category": "food",
                "description": "Dinner",
                "expense_date": "2025-05-02",
                "splits": [
                    {"id": "s1", "user_id": "alice", "amount": "30.00"},
                    {"id": "s2", "user_id": "bob", "amount": "30.00"},
                    {"id": "s3", "user_id": "carol", "amount": "30.00"},
                ],
            },
            {
                "id": "e2",
                "amount": "40.00",
                "paid_by": "bob",
                "category": "transport",
                "description": "Train",
                "splits": [
                    {"id": "s4", "user_id": "alice", "amount": "20.00"},
                    {"id": "s5", "user_id": "bob", "amount": "20.00"},
                ],
            },
        ],
    }


@pytest.fixture
def ledger_file(tmp_path, ledger_data):
    """Write the ledger document to a temporary file."""
    path = tmp_path / "trip.json"
    path.write_text(json.dumps(ledger_data))
    return path


class TestLoadLedger:
    """Reading ledger files."""

    def test_load_ledger(self, service, ledger_file):
        ledger = service.load_ledger(ledger_file)

        assert ledger.trip_id == "lisbon-2025"
        assert ledger.currency_code == "USD"
        assert len(ledger.expenses) == 2
        assert ledger.expenses[0].amount == Decimal("90.00")
        assert ledger.expenses[0].splits[1].user_id == "bob"

    def test_default_currency_from_settings(self, service, tmp_path, ledger_data):
        """A ledger without a currency uses the configured default."""
        del ledger_data["currency_code"]
        path = tmp_path / "no_currency.json"
        path.write_text(json.dumps(ledger_data))

        assert service.load_ledger(path).currency_code == "EUR"

    def test_missing_file(self, service, tmp_path):
        with pytest.raises(LedgerFileError, match="Could not read"):
            service.load_ledger(tmp_path / "missing.json")

    def test_invalid_json(self, service, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(LedgerFileError, match="Could not read"):
            service.load_ledger(path)

    def test_unknown_category(self, service, tmp_path, ledger_data):
        ledger_data["expenses"][0]["category"] = "souvenirs"
        path = tmp_path / "bad_category.json"
        path.write_text(json.dumps(ledger_data))

        with pytest.raises(LedgerFileError, match="Invalid ledger file"):
            service.load_ledger(path)

    def test_save_and_reload(self, service, ledger_file, tmp_path):
        ledger = service.load_ledger(ledger_file)
        path = tmp_path / "copy.json"

        service.save_ledger(path, ledger)

        assert service.load_ledger(path) == ledger


class TestCreatePlan:
    """Composing the engine into a plan."""

    def test_create_plan(self, service, ledger_file):
        ledger = service.load_ledger(ledger_file)

        plan = service.create_plan(ledger)

        # alice +90 -30 -20 = +40, bob +40 -30 -20 = -10, carol -30
        assert plan.balances == {
            "alice": Decimal("40.00"),
            "bob": Decimal("-10.00"),
            "carol": Decimal("-30.00"),
        }
        assert [(s.from_user_id, s.to_user_id, s.amount) for s in plan.settlements] == [
            ("carol", "alice", Decimal("30.00")),
            ("bob", "alice", Decimal("10.00")),
        ]
        assert plan.total_expenses == Decimal("130.00")
        assert plan.expenses_by_category == {
            "food": Decimal("90.00"),
            "transport": Decimal("40.00"),
        }
        assert plan.currency_code == "USD"

    def test_plan_profiles(self, service, ledger_file):
        plan = service.create_plan(service.load_ledger(ledger_file))

        first = plan.settlements[0]
        assert first.to_user == Profile(id="alice", name="Alice")
        assert first.from_user is not None
        assert first.from_user.display_name == "Unknown"
        assert plan.settlements[1].from_user.display_name == "bob"

    def test_plan_hash(self, service, ledger_file):
        plan = service.create_plan(service.load_ledger(ledger_file))

        assert plan.plan_hash == compute_plan_hash("lisbon-2025", plan.settlements)

    def test_empty_ledger(self, service):
        plan = service.create_plan(TripLedger(trip_id="empty"))

        assert plan.settlements == []
        assert plan.balances == {}
        assert plan.total_expenses == Decimal("0")


class TestRecordPlan:
    """Recording plans with idempotency."""

    def test_record_plan(self, service, mock_db, ledger_file):
        plan = service.create_plan(service.load_ledger(ledger_file))

        record_id = service.record_plan(plan)

        recorded = service.check_if_already_recorded(plan)
        assert recorded is not None
        assert recorded.id == record_id
        assert recorded.trip_id == "lisbon-2025"
        assert recorded.settlement_count == 2
        assert recorded.total_amount == Decimal("40.00")
        assert mock_db.get_last_recorded_trip() == "lisbon-2025"

    def test_not_recorded(self, service, ledger_file):
        plan = service.create_plan(service.load_ledger(ledger_file))

        assert service.check_if_already_recorded(plan) is None

    def test_record_twice_raises(self, service, ledger_file):
        plan = service.create_plan(service.load_ledger(ledger_file))
        service.record_plan(plan)

        with pytest.raises(SettlementAlreadyRecordedError) as exc_info:
            service.record_plan(plan)

        assert exc_info.value.plan_hash == plan.plan_hash

    def test_recorded_history(self, service, ledger_file):
        ledger = service.load_ledger(ledger_file)
        service.record_plan(service.create_plan(ledger))
        other = ledger.model_copy(update={"trip_id": "porto-2025"})
        service.record_plan(service.create_plan(other))

        assert len(service.get_recorded_settlements()) == 2
        porto = service.get_recorded_settlements("porto-2025")
        assert [entry.trip_id for entry in porto] == ["porto-2025"]


class TestSettleWithUser:
    """Marking splits settled through the service."""

    def test_settle_with_user(self, service, ledger_file):
        ledger = service.load_ledger(ledger_file)
        settled_at = datetime(2025, 5, 10, 9, 30)

        updated, count = service.settle_with_user(ledger, "bob", "alice", settled_at)

        assert count == 1
        split = updated.expenses[0].splits[1]
        assert split.id == "s2"
        assert split.is_settled is True
        assert split.settled_at == settled_at
        assert ledger.expenses[0].splits[1].is_settled is False

    def test_nothing_to_settle(self, service, ledger_file):
        ledger = service.load_ledger(ledger_file)

        updated, count = service.settle_with_user(ledger, "carol", "bob")

        assert count == 0
        assert updated is ledger


class TestAddExpense:
    """Creating expenses with equal splits."""

    def test_add_expense(self, service, ledger_file):
        ledger = service.load_ledger(ledger_file)

        updated = service.add_expense(
            ledger,
            amount=Decimal("10.00"),
            paid_by="carol",
            participant_ids=["alice", "bob", "carol"],
            category="activity",
            description="Museum",
            expense_date=date(2025, 5, 3),
            expense_id="e3",
        )

        expense = updated.expenses[-1]
        assert expense.id == "e3"
        assert expense.paid_by == "carol"
        assert expense.category == "activity"
        assert expense.expense_date == date(2025, 5, 3)
        assert [(s.id, s.user_id, s.amount) for s in expense.splits] == [
            ("e3-0", "alice", Decimal("3.34")),
            ("e3-1", "bob", Decimal("3.33")),
            ("e3-2", "carol", Decimal("3.33")),
        ]
        assert len(ledger.expenses) == 2

    def test_splits_sum_and_balances_zero(self, service, ledger_file):
        """New splits add up to the amount and balances still sum to zero."""
        ledger = service.load_ledger(ledger_file)

        updated = service.add_expense(
            ledger, Decimal("100.00"), "bob", ["alice", "bob", "carol"]
        )

        expense = updated.expenses[-1]
        assert sum(s.amount for s in expense.splits) == Decimal("100.00")
        balances = compute_balances(updated.expenses)
        assert sum(balances.values(), Decimal("0")) == 0

    def test_generated_ids_and_default_date(self, service, ledger_file):
        ledger = service.load_ledger(ledger_file)

        updated = service.add_expense(ledger, Decimal("5.00"), "alice", ["bob"])

        expense = updated.expenses[-1]
        assert expense.id
        assert expense.splits[0].id == f"{expense.id}-0"
        assert expense.expense_date == date.today()

    @pytest.mark.parametrize("amount", ["0", "-5.00", "NaN", "Infinity"])
    def test_rejects_bad_amounts(self, service, ledger_file, amount):
        ledger = service.load_ledger(ledger_file)

        with pytest.raises(InvalidExpenseError):
            service.add_expense(ledger, Decimal(amount), "alice", ["bob"])

    def test_rejects_sub_cent_amount(self, service, ledger_file):
        ledger = service.load_ledger(ledger_file)

        with pytest.raises(InvalidExpenseError, match="two decimal places"):
            service.add_expense(ledger, Decimal("10.005"), "alice", ["bob"])

    def test_rejects_no_participants(self, service, ledger_file):
        ledger = service.load_ledger(ledger_file)

        with pytest.raises(InvalidExpenseError, match="at least one participant"):
            service.add_expense(ledger, Decimal("10.00"), "alice", [])

    def test_rejects_unknown_category(self, service, ledger_file):
        ledger = service.load_ledger(ledger_file)

        with pytest.raises(InvalidExpenseError, match="Invalid expense"):
            service.add_expense(
                ledger, Decimal("10.00"), "alice", ["bob"], category="souvenirs"
            )

    def test_rejects_duplicate_id(self, service, ledger_file):
        ledger = service.load_ledger(ledger_file)

        with pytest.raises(InvalidExpenseError, match="already exists"):
            service.add_expense(
                ledger, Decimal("10.00"), "alice", ["bob"], expense_id="e1"
            )


class TestRemoveExpense:
    """Deleting expenses."""

    def test_remove_expense(self, service, ledger_file):
        ledger = service.load_ledger(ledger_file)

        updated = service.remove_expense(ledger, "e1")

        assert [expense.id for expense in updated.expenses] == ["e2"]
        assert len(ledger.expenses) == 2

    def test_remove_missing_expense(self, service, ledger_file):
        ledger = service.load_ledger(ledger_file)

        with pytest.raises(ExpenseNotFoundError) as exc_info:
            service.remove_expense(ledger, "nope")

        assert exc_info.value.expense_id == "nope"


class TestServiceWithoutDatabase:
    """File and plan operations don't need the settlement database."""

    def test_no_database_file_created(self, tmp_path, ledger_file):
        db_path = tmp_path / "state" / "trip_ledger.db"
        service = LedgerService(Settings(database_path=db_path))

        service.create_plan(service.load_ledger(ledger_file))

        assert not db_path.parent.exists()

    def test_recording_needs_database(self, tmp_path, ledger_file):
        service = LedgerService(Settings(database_path=tmp_path / "unused.db"))
        plan = service.create_plan(service.load_ledger(ledger_file))

        with pytest.raises(ConfigurationError):
            service.record_plan(plan)

    def test_database_creates_parent_directory(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "trip_ledger.db"

        db = Database(db_path)
        db.close()

        assert db_path.exists()
