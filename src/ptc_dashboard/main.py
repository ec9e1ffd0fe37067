import argparse
import json
import logging
import os
import sys

from ptc_dashboard import constants, dashboard
from ptc_dashboard.auth import resolve_identity
from ptc_dashboard.errors import DashboardError
from ptc_dashboard.file_io import load_csv
from ptc_dashboard.logging_config import configure_root_logger, get_logger
from ptc_dashboard.managers import DbManager
from ptc_dashboard.reconcile import run_import, sync_sheet
from ptc_dashboard.sheets import SheetFetcher
from ptc_dashboard.status import StatusOverlay


def _print_json(data):
    print(json.dumps(data, indent=2))


def import_csv(db_path, csv_path, dry_run=False, logger=None):
    """
    Reconcile a CSV export into the database.

    Returns:
        The reconcile result dict, or None if the file does not exist
    """
    if logger is None:
        logger = get_logger("ptc_dashboard.import", "import", console_output=False)

    if not os.path.exists(csv_path):
        logger.error(f"CSV file not found: {csv_path}")
        return None

    logger.info(f"Importing {csv_path} into {db_path}{' (dry run)' if dry_run else ''}")
    with DbManager(db_path) as db:
        db.init_schema()
        result = run_import(db, load_csv(csv_path), dry_run=dry_run)
    return result.to_dict()


def build_parser():
    default_db = os.getenv("PTC_DB_PATH", constants.DEFAULT_DB_PATH)

    parser = argparse.ArgumentParser(description="PTC sign-up dashboard CLI")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose (DEBUG) logging")
    parser.add_argument("--db", default=default_db, help=f"SQLite database path (default: {default_db})")

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("init-db", help="Create the database schema")

    import_parser = subparsers.add_parser("import-csv", help="Reconcile a CSV export into the database")
    import_parser.add_argument("csv_path", help="Path to the sign-up CSV export")
    import_parser.add_argument("--dry-run", action="store_true", help="Report counts without writing")

    sync_parser = subparsers.add_parser("sync", help="Pull the Google Sheet export and reconcile it")
    sync_parser.add_argument("--sheet-id", default=constants.GOOGLE_SHEET_ID, help="Google Sheet id")
    sync_parser.add_argument("--dry-run", action="store_true", help="Report counts without writing")

    list_parser = subparsers.add_parser("list", help="List slots with their status")
    list_parser.add_argument("--grade", help="Only this grade (Item)")

    summary_parser = subparsers.add_parser("summary", help="Show per-grade status counts")
    summary_parser.add_argument("--grade", help="Only this grade (Item)")

    status_parser = subparsers.add_parser("set-status", help="Set the live status of one slot")
    status_parser.add_argument("slot_key", help="Slot key as shown by 'list'")
    status_parser.add_argument("status", choices=constants.VALID_STATUSES)
    status_parser.add_argument("--as", dest="as_email", required=True, help="Email of the acting user")

    serve_parser = subparsers.add_parser("serve", help="Run the web dashboard")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "3000")))

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_root_logger(level="DEBUG" if args.verbose else None, log_subdir="cli")
    logger = logging.getLogger("ptc_dashboard.cli")

    try:
        if args.command == "init-db":
            with DbManager(args.db) as db:
                db.init_schema()
                count = db.count_signups()
            logger.info(f"Schema ready in {args.db} ({count} signup row(s))")
        elif args.command == "import-csv":
            result = import_csv(args.db, args.csv_path, dry_run=args.dry_run, logger=logger)
            if result is None:
                return 1
            _print_json(result)
        elif args.command == "sync":
            with DbManager(args.db) as db:
                db.init_schema()
                result = sync_sheet(db, SheetFetcher(args.sheet_id), dry_run=args.dry_run)
            _print_json(result.to_dict())
        elif args.command == "list":
            with DbManager(args.db) as db:
                db.init_schema()
                _print_json(dashboard.list_signups(db, args.grade))
        elif args.command == "summary":
            with DbManager(args.db) as db:
                db.init_schema()
                _print_json(dashboard.get_summary(db, args.grade))
        elif args.command == "set-status":
            identity = resolve_identity(args.as_email, constants.ADMIN_EMAIL)
            with DbManager(args.db) as db:
                db.init_schema()
                StatusOverlay(db).set_status(identity, args.slot_key, args.status)
            logger.info(f"{args.slot_key} -> {args.status}")
        elif args.command == "serve":
            import uvicorn

            os.environ["PTC_DB_PATH"] = args.db
            uvicorn.run(
                "ptc_dashboard.webapp.main:create_app",
                factory=True,
                host=args.host,
                port=args.port,
            )
        else:
            parser.print_help()
            return 1
    except DashboardError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
