from __future__ import annotations

import argparse
import json
from datetime import date
from pathlib import Path

from perfboard.config.loader import ConfigLoader
from perfboard.config.log_setup import setup_logging
from perfboard.config.schemas import Standards
from perfboard.core.aggregation import SortDirection, SortKey, SortState
from perfboard.core.dashboard import DashboardQuery, build_dashboard
from perfboard.core.entry_service import ActionResult, EntryService, LoadStatus, NoticeLevel

DEFAULT_CONFIG = Path("config") / "dashboard.yaml"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="perfboard performance dashboard")
    parser.add_argument("--config", default=str(DEFAULT_CONFIG), help="Path to dashboard.yaml")
    commands = parser.add_subparsers(dest="command", required=True)

    summary = commands.add_parser("summary", help="Show merged, filtered and sorted records")
    summary.add_argument("--name", default="", help="Case-insensitive name substring")
    summary.add_argument("--date", type=date.fromisoformat, default=None, help="Exact date, YYYY-MM-DD")
    summary.add_argument("--sort", choices=[item.value for item in SortKey], default=None)
    summary.add_argument("--desc", action="store_true", help="Sort descending")
    summary.add_argument("--json", action="store_true", help="Output result as JSON")

    add = commands.add_parser("add", help="Submit one entry")
    add.add_argument("--name", required=True)
    add.add_argument("--date", type=date.fromisoformat, default=None, help="Defaults to today")
    add.add_argument("--websites", type=int, default=0)
    add.add_argument("--orders", type=int, default=0)
    add.add_argument("--main-products", type=int, default=0)
    add.add_argument("--ac-count", type=int, default=0)
    add.add_argument("--tbt-amount", type=float, default=0.0)

    delete = commands.add_parser("delete", help="Delete every entry for a name and date")
    delete.add_argument("--name", required=True)
    delete.add_argument("--date", type=date.fromisoformat, required=True)

    clear = commands.add_parser("clear", help="Delete all entries")
    clear.add_argument("--code", required=True, help="Confirmation code")

    load = commands.add_parser("import", help="Append entries from a JSON file")
    load.add_argument("file", help="JSON array (or single object) of entries")

    return parser


def _report(result: ActionResult) -> int:
    print(result.notice.message)
    return 0 if result.ok or result.notice.level != NoticeLevel.ERROR else 1


def _run_summary(service: EntryService, args: argparse.Namespace, standards: Standards) -> int:
    loaded = service.load()
    if loaded.notice is not None:
        print(loaded.notice.message)
    if loaded.status == LoadStatus.FAILED:
        return 1

    sort = None
    if args.sort:
        sort = SortState(SortKey(args.sort), SortDirection.DESC if args.desc else SortDirection.ASC)
    view = build_dashboard(loaded.entries, DashboardQuery(name=args.name, date=args.date, sort=sort), standards)

    if args.json:
        print(
            json.dumps(
                {
                    "summary": view.summary.as_dict(),
                    "rows": [
                        {
                            **row.record.to_wire(),
                            "cr": round(row.metrics.cr, 1),
                            "ac": round(row.metrics.ac_ratio, 1),
                            "crMet": row.classification.cr_met,
                            "acMet": row.classification.ac_met,
                            "amountMet": row.classification.amount_met,
                        }
                        for row in view.rows
                    ],
                },
                ensure_ascii=False,
                indent=2,
            )
        )
        return 0

    for row in view.rows:
        record = row.record
        print(
            f"{record.name}\t{record.date.isoformat()}\t{record.websites}\t{record.orders}\t"
            f"{row.metrics.cr:.1f}%\t{row.metrics.ac_ratio:.1f}%\t{record.tbt_amount:,.2f}"
        )
    summary = view.summary
    print(
        f"total users={summary.total_users} websites={summary.total_websites} orders={summary.total_orders} "
        f"avg CR={summary.avg_cr:.1f}% avg AC={summary.avg_ac:.1f}% BTB={summary.total_amount:,.2f}"
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = ConfigLoader.load_or_default(args.config)
    setup_logging(config.logging)
    service = EntryService.from_config(config)

    if args.command == "summary":
        return _run_summary(service, args, config.standards)

    if args.command == "add":
        return _report(
            service.submit(
                {
                    "name": args.name,
                    "date": args.date or date.today(),
                    "websites": args.websites,
                    "orders": args.orders,
                    "mainProducts": args.main_products,
                    "acCount": args.ac_count,
                    "tbtAmount": args.tbt_amount,
                }
            )
        )

    if args.command == "delete":
        return _report(service.delete(args.name, args.date))

    if args.command == "clear":
        return _report(service.clear_all(args.code))

    if args.command == "import":
        return _report(service.import_payload(Path(args.file).read_text(encoding="utf-8")))

    raise ValueError(f"Unknown command: {args.command}")


if __name__ == "__main__":
    raise SystemExit(main())
