"""Custom exceptions for Trip Ledger."""


class TripLedgerError(Exception):
    """Base exception for all Trip Ledger errors."""

    pass


class ConfigurationError(TripLedgerError):
    """Raised when configuration is invalid or missing."""

    pass


class LedgerFileError(TripLedgerError):
    """Raised when a ledger file cannot be read, parsed, or written."""

    pass


class SettlementAlreadyRecordedError(TripLedgerError):
    """Raised when attempting to record a settlement plan that already exists."""

    def __init__(self, plan_hash: str, message: str | None = None):
        self.plan_hash = plan_hash
        super().__init__(
            message or f"Settlement plan {plan_hash[:8]} has already been recorded"
        )


class InvalidExpenseError(TripLedgerError):
    """Raised when a new expense has a bad amount, no participants, or bad fields."""

    pass


class ExpenseNotFoundError(TripLedgerError):
    """Raised when an expense id is not in the ledger."""

    def __init__(self, expense_id: str):
        self.expense_id = expense_id
        super().__init__(f"Expense {expense_id} not found")
