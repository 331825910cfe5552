"""Command line entrypoint for the weekly newsletter job."""
from __future__ import annotations

import argparse
import json
import logging
import sys

from .config import Settings, load_env
from .service import build_service, build_store
from .storage import SQLiteStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--database",
        default=None,
        help="Path to the SQLite contact/log store."
        " Can be set via NEWSLETTER_DATABASE.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch, render and log the run without sending any mail.",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Serve the HTTP trigger and tracking endpoint instead of running once.",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind address for --serve.")
    parser.add_argument("--port", type=int, default=8000, help="Port for --serve.")
    parser.add_argument(
        "--dump-logs",
        action="store_true",
        help="Print the email log to stdout instead of running.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Optional limit when dumping the email log.",
    )
    parser.add_argument(
        "--add-contact",
        metavar="EMAIL",
        help="Add a contact to the local store and exit.",
    )
    parser.add_argument("--first-name", default=None, help="First name for --add-contact.")
    parser.add_argument("--last-name", default=None, help="Last name for --add-contact.")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO).",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    load_env()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    settings = Settings.from_env()
    if args.database:
        settings.database_path = args.database

    if args.add_contact:
        store = build_store(settings)
        if not isinstance(store, SQLiteStore):
            parser.error("--add-contact only works with the local SQLite store.")
        contact = store.add_contact(args.add_contact, args.first_name, args.last_name)
        print(f"Added contact {contact.id}: {contact.email}")
        return 0

    if not settings.resend_api_key and not (args.dry_run or args.dump_logs):
        parser.error("RESEND_API_KEY is required unless --dry-run is given.")

    if args.serve:
        import uvicorn

        from .api import create_app

        uvicorn.run(create_app(settings, dry_run=args.dry_run), host=args.host, port=args.port)
        return 0

    service = build_service(settings, dry_run=args.dry_run or args.dump_logs)

    if args.dump_logs:
        for line in service.dump_logs(limit=args.limit):
            print(line)
        return 0

    summary = service.run_once()
    print(json.dumps(summary.to_payload()))
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    sys.exit(main())
