from .aggregate import build_dashboard, resolve_token_map
from .models import AccountEntry, DashboardExport, DashboardSummary, MonthRange, TransactionView
from .snapshot import export_dashboard, import_dashboard
from .summary import summarize_dashboard
from .transactions import build_transaction_view

__all__ = [
    "build_dashboard",
    "resolve_token_map",
    "build_transaction_view",
    "summarize_dashboard",
    "export_dashboard",
    "import_dashboard",
    "AccountEntry",
    "DashboardExport",
    "DashboardSummary",
    "MonthRange",
    "TransactionView",
]
