import sys
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from kiwi_dashboard.cli import main
from kiwi_dashboard.config import load_settings
from kiwi_dashboard.dashboard.models import AccountEntry, MonthRange
from kiwi_dashboard.dashboard.snapshot import export_dashboard
from kiwi_dashboard.truelayer.models import TrueLayerAccount, TrueLayerTransaction


@pytest.fixture(autouse=True)
def cli_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("DISPLAY_TZ", "UTC")
    load_settings.cache_clear()
    yield tmp_path
    load_settings.cache_clear()


def _main(monkeypatch, *argv) -> int:
    monkeypatch.setattr(sys, "argv", ["kiwi-dashboard", *argv])
    return main()


def _export(path):
    entry = AccountEntry(
        account=TrueLayerAccount(account_id="a1", currency="GBP", display_name="Current"),
        transactions=[
            TrueLayerTransaction(
                transaction_id="t1",
                timestamp=datetime(2024, 3, 5, 10, tzinfo=timezone.utc),
                description="Tesco",
                amount=Decimal("-40"),
            )
        ],
    )
    path.write_text(
        export_dashboard([entry], MonthRange(start_month="2024-01", end_month="2024-03")),
        encoding="utf-8",
    )
    return path


@pytest.mark.parametrize("command", ["summary", "view"])
def test_malformed_export_prints_message(monkeypatch, capsys, tmp_path, command):
    bad = tmp_path / "bad.json"
    bad.write_text("not json", encoding="utf-8")

    assert _main(monkeypatch, command, "--file", str(bad)) == 2
    assert "Import failed: invalid JSON file." in capsys.readouterr().out


def test_missing_export_file(monkeypatch, capsys, tmp_path):
    assert _main(monkeypatch, "summary", "--file", str(tmp_path / "nope.json")) == 2
    assert "nope.json" in capsys.readouterr().out


def test_summary(monkeypatch, capsys, tmp_path):
    path = _export(tmp_path / "kiwi-data.json")

    assert _main(monkeypatch, "summary", "--file", str(path)) == 0
    assert "Total Expenses = 40.00 GBP" in capsys.readouterr().out


def test_view_normalises_inverted_window(monkeypatch, capsys, tmp_path):
    path = _export(tmp_path / "kiwi-data.json")

    assert _main(monkeypatch, "view", "--file", str(path), "--from", "2024-03", "--to", "2024-01") == 0
    out = capsys.readouterr().out
    assert "range = 2024-03 .. 2024-03" in out
    assert "Tue 5 Mar 2024" in out
    assert "Tesco" in out


def test_unknown_display_tz_falls_back(monkeypatch, capsys):
    monkeypatch.setenv("DISPLAY_TZ", "Mars/Olympus_Mons")

    assert _main(monkeypatch, "range", "--start", "2024-01", "--end", "2024-02") == 0
    out = capsys.readouterr().out
    assert "from = 2024-01-01T00:00:00.000Z" in out
    assert "to   = 2024-02-29T23:59:59.999Z" in out
