"""Public interface for the ``expense_ledger`` package.

Re-exports the ledger's operations and public models/types as the stable
import surface. There is no runtime logic here, only symbol re-exports.
"""

from .aggregation import (
    CategoryShare,
    LedgerSummary,
    expense_by_category,
    net_balance,
    percent_of_total,
    summarize,
    total_expense,
    total_income,
)
from .authz import Access, authorize, require_owner
from .errors import (
    ConflictError,
    LedgerError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
    ValidationError,
)
from .models import (
    CreateResult,
    ListFilters,
    Principal,
    Transaction,
    TransactionFields,
    TransactionPatch,
)
from .money import InvalidMoneyError, Money, parse_amount, parse_decimal, parse_money
from .query import browse, display_order, matches_text, search
from .store import (
    create_transaction,
    delete_transaction,
    get_transaction,
    list_transactions,
    update_transaction,
)

__all__ = [
    # Store
    "create_transaction",
    "update_transaction",
    "delete_transaction",
    "get_transaction",
    "list_transactions",
    # Authorization
    "Access",
    "authorize",
    "require_owner",
    # Query
    "browse",
    "display_order",
    "matches_text",
    "search",
    # Aggregation
    "CategoryShare",
    "LedgerSummary",
    "expense_by_category",
    "net_balance",
    "percent_of_total",
    "summarize",
    "total_expense",
    "total_income",
    # Money
    "InvalidMoneyError",
    "Money",
    "parse_amount",
    "parse_decimal",
    "parse_money",
    # Models / types
    "CreateResult",
    "ListFilters",
    "Principal",
    "Transaction",
    "TransactionFields",
    "TransactionPatch",
    # Errors
    "LedgerError",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "ConflictError",
    "StorageError",
]
