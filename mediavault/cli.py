from __future__ import annotations

import argparse
import sys

from .blobstore import BlobStore
from .config import as_dict, get_settings
from .db import Database
from .locked import LockedFolderManager
from .logging_config import setup_logging
from .quota import QuotaCalculator, format_storage_size
from .reaper import TrashReaper
from .security import create_token

def _open_database() -> Database:
    settings = get_settings()
    database = Database(settings.database_url, echo=settings.database_echo)
    database.create_all()
    return database

def _open_blob_store():
    return BlobStore.from_settings(get_settings())

def init_db():
    database = _open_database()
    try:
        print(f"Tables ready at {database.url}")
    finally:
        database.dispose()

def reap_trash():
    """Run one trash cleanup pass, for deployments that schedule it with cron instead of the in-process thread."""
    database = _open_database()
    try:
        report = TrashReaper(database, _open_blob_store()).run_once()
        print(f"Scanned {report.scanned}, deleted {report.deleted}, failed {report.failed}")
        if report.failed:
            sys.exit(1)
    finally:
        database.dispose()

def show_storage_usage(user_id: int):
    settings = get_settings()
    database = _open_database()
    try:
        with database.reader() as db:
            quota = QuotaCalculator(settings.storage_plan_bytes).compute(db, user_id)
        print(f"Storage usage for user {user_id}:")
        print(f"  Used: {format_storage_size(quota.used_bytes)} ({quota.used_gb} GB)")
        print(f"  Total: {format_storage_size(quota.total_bytes)} ({quota.total_gb} GB)")
        print(f"  Available: {format_storage_size(quota.available_bytes)}")
        print(f"  Usage: {quota.percentage:.1f}%")
    finally:
        database.dispose()

def clear_locked_access(user_id: int):
    settings = get_settings()
    database = _open_database()
    try:
        LockedFolderManager(database, reference_secret=settings.locked_reference_secret).clear_access(user_id)
        print(f"Locked folder access cleared for user {user_id}")
    finally:
        database.dispose()

def issue_token(user_id: int):
    print(create_token(user_id))

def show_config():
    for key, value in sorted(as_dict().items()):
        print(f"{key} = {value}")

def _help(parser, cmd_parsers, command=None):
    if not command:
        parser.print_help()
        return
    sp = cmd_parsers.get(command)
    if sp is None:
        print(f"Unknown command: {command}", file=sys.stderr)
        parser.print_help()
        sys.exit(1)
    sp.print_help()

def main(argv=None):
    parser = argparse.ArgumentParser(prog="mediavault", description="mediavault – operations CLI")
    parser.add_argument("--log-level", dest="log_level", help="Override the configured log level")
    sub = parser.add_subparsers(dest="cmd", required=True)
    cmd_parsers = {}

    p_init = sub.add_parser("init-db", help="Create database tables"); cmd_parsers['init-db'] = p_init
    p_init.set_defaults(func=lambda a: init_db())

    p_reap = sub.add_parser("reap-trash", help="Permanently delete trash past its grace period"); cmd_parsers['reap-trash'] = p_reap
    p_reap.set_defaults(func=lambda a: reap_trash())

    p_usage = sub.add_parser("show-storage-usage", help="Show storage usage for a user"); cmd_parsers['show-storage-usage'] = p_usage
    p_usage.add_argument("--user-id", dest="user_id", type=int, required=True)
    p_usage.set_defaults(func=lambda a: show_storage_usage(a.user_id))

    p_clear = sub.add_parser("clear-locked-access", help="Close a user's locked folder session"); cmd_parsers['clear-locked-access'] = p_clear
    p_clear.add_argument("--user-id", dest="user_id", type=int, required=True)
    p_clear.set_defaults(func=lambda a: clear_locked_access(a.user_id))

    p_tok = sub.add_parser("issue-token", help="Issue a bearer token for a user (development)"); cmd_parsers['issue-token'] = p_tok
    p_tok.add_argument("--user-id", dest="user_id", type=int, required=True)
    p_tok.set_defaults(func=lambda a: issue_token(a.user_id))

    p_cfg = sub.add_parser("show-config", help="Print the effective configuration"); cmd_parsers['show-config'] = p_cfg
    p_cfg.set_defaults(func=lambda a: show_config())

    p_help = sub.add_parser("help", help="Show help or help for a command"); cmd_parsers['help'] = p_help
    p_help.add_argument("command", nargs="?")
    p_help.set_defaults(func=lambda a: _help(parser, cmd_parsers, a.command))

    args = parser.parse_args(argv)
    setup_logging(args.log_level)
    args.func(args)

if __name__ == "__main__":
    main()
