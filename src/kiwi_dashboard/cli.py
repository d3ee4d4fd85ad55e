import argparse
import logging
import uuid
from pathlib import Path

from dotenv import load_dotenv

from . import __version__
from .config import load_settings
from .core.time_ranges import load_tz, order_month_window
from .errors import ImportFailedError
from .logging_setup import setup_logging


def mask(value: str | None, show: int = 4) -> str:
    if not value:
        return "None"
    if len(value) <= show:
        return "*" * len(value)
    return value[:show] + "*" * (len(value) - show)


def _load_export(path: Path):
    from .dashboard.snapshot import import_dashboard

    return import_dashboard(path.read_bytes())


def main() -> int:
    parser = argparse.ArgumentParser(prog="kiwi-dashboard")
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument(
        "command",
        nargs="?",
        default="health",
        choices=["health", "status-env", "range", "auth-url", "view", "summary", "serve"],
        help="Command to run",
    )

    parser.add_argument("--start", type=str, default=None, help="Start month YYYY-MM (used with range)")
    parser.add_argument("--end", type=str, default=None, help="End month YYYY-MM (used with range)")

    parser.add_argument(
        "--file",
        type=Path,
        default=None,
        help="Dashboard export JSON (used with view / summary)",
    )
    parser.add_argument("--from", dest="from_month", default=None, help="Feed start month YYYY-MM (view)")
    parser.add_argument("--to", dest="to_month", default=None, help="Feed end month YYYY-MM (view)")
    parser.add_argument("--search", default="", help="Comma-separated search terms (view)")
    parser.add_argument("--account", default="*", help="Account id, or * for all accounts (view)")

    parser.add_argument("--host", default="127.0.0.1", help="Bind address (serve)")
    parser.add_argument("--port", type=int, default=8000, help="Bind port (serve)")

    args = parser.parse_args()

    if args.version:
        print(__version__)
        return 0

    load_dotenv()
    settings = load_settings()
    setup_logging(settings.log_level)

    logger = logging.getLogger(__name__)
    tz = load_tz(settings.display_tz)

    if args.command == "health":
        logger.info("Application started successfully.")
        print("ok")
        return 0

    if args.command == "status-env":
        print("TRUELAYER_ENV =", settings.truelayer_env)
        print("TRUELAYER_CLIENT_ID =", mask(settings.truelayer_client_id))
        print("TRUELAYER_CLIENT_SECRET =", mask(settings.truelayer_client_secret))
        print("TRUELAYER_REDIRECT_URI =", settings.truelayer_redirect_uri)
        print("TRUELAYER_SCOPES =", " ".join(settings.scopes))
        print("MASTER_KEY =", mask(settings.master_key))
        print("DISPLAY_TZ =", settings.display_tz)
        print("LOG_LEVEL =", settings.log_level)
        return 0

    if args.command == "range":
        from .core.time_ranges import default_build_range, parse_month_range

        default_start, default_end = default_build_range(tz)
        start = args.start or default_start
        end = args.end or default_end

        dr = parse_month_range(start, end)
        if dr is None:
            print(f"invalid range: {start} .. {end}")
            return 2

        date_from, date_to = dr.to_query()
        print("start_month =", start)
        print("end_month   =", end)
        print("from =", date_from)
        print("to   =", date_to)
        return 0

    if args.command == "auth-url":
        import asyncio

        from .truelayer import TrueLayerClient

        client = TrueLayerClient(settings)
        try:
            print(client.create_auth_url(state=str(uuid.uuid4())))
        finally:
            asyncio.run(client.aclose())
        return 0

    if args.command == "view":
        from .core.time_ranges import default_view_range
        from .dashboard.transactions import build_transaction_view

        if args.file is None:
            parser.error("view requires --file")

        try:
            doc = _load_export(args.file)
        except (ImportFailedError, OSError) as e:
            print(e)
            return 2

        stored = (doc.date_range.start_month, doc.date_range.end_month) if doc.date_range else None
        default_from, default_to = default_view_range(
            (tx.timestamp for e in doc.accounts for tx in e.transactions),
            tz,
            stored=stored,
        )
        from_month, to_month = order_month_window(
            args.from_month or default_from,
            args.to_month or default_to,
        )

        view = build_transaction_view(
            doc.accounts,
            from_month,
            to_month,
            tz=tz,
            search=args.search,
            account_selector=args.account,
        )

        print(f"range = {from_month} .. {to_month}")
        for cur, t in view.display_totals(settings.default_currency).items():
            print(f"{cur}: income={t.income:.2f} expenses={t.expenses:.2f}")

        for group in view.groups:
            print(f"\n{group.label}")
            for item in group.items:
                desc = (item.description or "Transaction").replace("\n", " ").strip()
                if len(desc) > 60:
                    desc = desc[:57] + "..."
                local = item.timestamp.astimezone(tz)
                print(f"  {local:%H:%M}  {item.amount:>12.2f} {item.currency}  {item.account_number.label()}  {desc}")

        if not view.groups:
            print("No transactions for this period.")
        return 0

    if args.command == "summary":
        from .dashboard.summary import summarize_dashboard

        if args.file is None:
            parser.error("summary requires --file")

        try:
            doc = _load_export(args.file)
        except (ImportFailedError, OSError) as e:
            print(e)
            return 2

        summary = summarize_dashboard(doc.accounts)

        for title, total in (
            ("Total Balance", summary.balance),
            ("Total Income", summary.income),
            ("Total Expenses", summary.expenses),
        ):
            amounts = total.totals or {settings.default_currency: 0}
            print(title, "=", " / ".join(f"{v:.2f} {cur}" for cur, v in amounts.items()))

        for e in doc.accounts:
            if e.fetch_error:
                print(f"warning: {e.account.label()}: {e.fetch_error}")
        return 0

    if args.command == "serve":
        import uvicorn

        from .api.app import create_app

        uvicorn.run(create_app(settings), host=args.host, port=args.port, log_config=None)
        return 0

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
