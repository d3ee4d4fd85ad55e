from __future__ import annotations

import json
from datetime import date
from typing import Any

from pydantic import TypeAdapter, ValidationError

from ..errors import ImportFailedError
from .models import AccountEntry, DashboardExport, MonthRange

_ENTRIES = TypeAdapter(list[AccountEntry])


def export_filename(today: date | None = None) -> str:
    today = today or date.today()
    return f"kiwi-data-{today.isoformat()}.json"


def _with_balance(dumped: list[dict[str, Any]]) -> list[dict[str, Any]]:
    # a failed balance fetch is an explicit null, other empty optionals are omitted
    for entry in dumped:
        entry.setdefault("balance", None)
    return dumped


def dump_entries(entries: list[AccountEntry]) -> list[dict[str, Any]]:
    return _with_balance(_ENTRIES.dump_python(entries, mode="json", by_alias=True, exclude_none=True))


def export_dashboard(entries: list[AccountEntry], date_range: MonthRange | None) -> str:
    payload = {
        "accounts": dump_entries(entries),
        "dateRange": date_range.model_dump(mode="json", by_alias=True) if date_range is not None else None,
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


def _usable_range(raw: Any) -> MonthRange | None:
    if not isinstance(raw, dict):
        return None
    if not raw.get("startMonth") or not raw.get("endMonth"):
        return None
    return MonthRange.model_validate(raw)


def import_dashboard(raw: str | bytes) -> DashboardExport:
    """
    Decode an exported dashboard.

    Accepts {"accounts": [...], "dateRange": {...} | null} and the older bare
    array of account entries. A date range missing either month is dropped.
    """
    try:
        parsed = json.loads(raw)
    except ValueError as e:
        raise ImportFailedError("Import failed: invalid JSON file.") from e

    try:
        if isinstance(parsed, list):
            return DashboardExport(accounts=_ENTRIES.validate_python(parsed))

        if isinstance(parsed, dict) and isinstance(parsed.get("accounts"), list):
            return DashboardExport(
                accounts=_ENTRIES.validate_python(parsed["accounts"]),
                date_range=_usable_range(parsed.get("dateRange")),
            )
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ()))
        raise ImportFailedError(f"Import failed: {where}: {first.get('msg')}") from e

    raise ImportFailedError("Import failed: Expected dashboard export JSON with accounts array.")
