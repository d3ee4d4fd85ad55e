import json
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from kiwi_dashboard.dashboard.models import AccountEntry, MonthRange
from kiwi_dashboard.dashboard.snapshot import dump_entries, export_dashboard, export_filename, import_dashboard
from kiwi_dashboard.errors import ImportFailedError
from kiwi_dashboard.truelayer.models import TrueLayerAccount, TrueLayerBalance, TrueLayerTransaction


def _entries() -> list[AccountEntry]:
    return [
        AccountEntry(
            account=TrueLayerAccount(account_id="a1", currency="GBP", display_name="Current"),
            balance=TrueLayerBalance(current=Decimal("250.5"), currency="GBP"),
            transactions=[
                TrueLayerTransaction(
                    transaction_id="t1",
                    timestamp=datetime(2024, 3, 5, 15, tzinfo=timezone.utc),
                    description="Tesco",
                    amount=Decimal("-40"),
                    currency="GBP",
                )
            ],
            is_income_account=True,
        ),
        AccountEntry(
            account=TrueLayerAccount(account_id="a2", currency="EUR"),
            fetch_error="Could not fetch balance & transactions",
        ),
    ]


def test_export_then_import():
    rng = MonthRange(start_month="2024-01", end_month="2024-03")
    doc = import_dashboard(export_dashboard(_entries(), rng))

    assert doc.date_range == rng
    assert doc.accounts == _entries()


def test_export_uses_wire_names_and_numbers():
    payload = json.loads(export_dashboard(_entries(), None))

    assert payload["dateRange"] is None
    first = payload["accounts"][0]
    assert first["isIncomeAccount"] is True
    assert first["transactions"][0]["amount"] == -40
    assert first["balance"]["current"] == 250.5
    assert payload["accounts"][1]["fetchError"] == "Could not fetch balance & transactions"


def test_bare_array_is_accepted():
    raw = json.dumps(
        [
            {
                "account": {"account_id": "a1", "currency": "GBP"},
                "balance": None,
                "transactions": [],
            }
        ]
    )
    doc = import_dashboard(raw)

    assert [e.account.account_id for e in doc.accounts] == ["a1"]
    assert doc.date_range is None


def test_incomplete_date_range_is_dropped():
    raw = json.dumps({"accounts": [], "dateRange": {"startMonth": "2024-01", "endMonth": ""}})
    assert import_dashboard(raw).date_range is None


def test_invalid_json():
    with pytest.raises(ImportFailedError) as excinfo:
        import_dashboard(b"{not json")
    assert str(excinfo.value) == "Import failed: invalid JSON file."


def test_wrong_shape():
    for raw in ('{"foo": 1}', '"text"', '{"accounts": {}}'):
        with pytest.raises(ImportFailedError) as excinfo:
            import_dashboard(raw)
        assert str(excinfo.value) == "Import failed: Expected dashboard export JSON with accounts array."


def test_schema_error_names_the_field():
    raw = json.dumps({"accounts": [{"account": {"account_id": "a1"}}]})

    with pytest.raises(ImportFailedError) as excinfo:
        import_dashboard(raw)

    message = str(excinfo.value)
    assert message.startswith("Import failed: ")
    assert "currency" in message


def test_export_filename():
    assert export_filename(date(2024, 3, 5)) == "kiwi-data-2024-03-05.json"


def test_missing_balance_is_written_as_null():
    payload = json.loads(export_dashboard(_entries(), None))

    assert payload["accounts"][1]["balance"] is None
    assert "fetchError" not in payload["accounts"][0]

    assert dump_entries(_entries())[1]["balance"] is None
