import argparse

from loguru import logger

from app.db import init_db
from ingestion.opensea_sync import sync_opensea_orders
from ingestion.seaport_sync import sync_seaport_orders, sync_seaport_window


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync OpenSea orders into the relayer database")
    subparsers = parser.add_subparsers(dest="command", required=True)

    opensea = subparsers.add_parser("opensea", help="Offset sync of Wyvern v2.3 orders")
    opensea.add_argument("--listed-after", type=int, default=0, help="Unix seconds lower bound")
    opensea.add_argument("--listed-before", type=int, default=0, help="Unix seconds upper bound (0 = open)")
    opensea.add_argument("--backfill", action="store_true", help="Walk the whole window; errors abort")
    opensea.add_argument("--once", action="store_true", help="Fetch a single page of the latest listings")
    opensea.add_argument("--offset", type=int, default=0, help="Starting offset")
    opensea.add_argument("--limit", type=int, default=None, help="Override the page size")

    subparsers.add_parser("seaport", help="Drain Seaport listings until stored history is reached")

    window = subparsers.add_parser("seaport-window", help="Fetch Seaport listings inside a time window")
    window.add_argument("--from-timestamp", type=int, default=None)
    window.add_argument("--to-timestamp", type=int, default=None)
    window.add_argument("--cursor", default=None, help="Resume from a previous run's cursor")
    window.add_argument(
        "--follow",
        action="store_true",
        help="Keep fetching pages until the window returns no next cursor",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    init_db()

    if args.command == "opensea":
        last_created_date = sync_opensea_orders(
            args.listed_after,
            args.listed_before,
            backfill=args.backfill,
            once=args.once,
            offset=args.offset,
            limit=args.limit,
        )
        logger.info("OpenSea sync reached created_date={}", last_created_date or "<none>")
    elif args.command == "seaport":
        sync_seaport_orders()
    else:
        cursor = args.cursor
        while True:
            cursor = sync_seaport_window(args.from_timestamp, args.to_timestamp, cursor)
            if not args.follow or not cursor:
                break
        logger.info("Seaport window next cursor={}", cursor)


if __name__ == "__main__":
    main()
