"""Trip Ledger - Shared trip expenses, balances, and settle-up plans."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .db import Database
from .ledger import (
    compute_balances,
    format_currency,
    resolve_settlements,
    split_equally,
)
from .ledger.service import LedgerService
from .models import (
    Expense,
    ExpenseSplit,
    Profile,
    Settlement,
    SettlementPlan,
    SplitShare,
    TripLedger,
)

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "Expense",
    "ExpenseSplit",
    "Profile",
    "Settlement",
    "SettlementPlan",
    "SplitShare",
    "TripLedger",
    "compute_balances",
    "split_equally",
    "resolve_settlements",
    "format_currency",
    "LedgerService",
]
