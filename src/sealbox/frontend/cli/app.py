"""Command line front end for SealBox.

Every command prints JSON on stdout; errors go to stderr with exit status 1.
The master secret is taken from ``ENCRYPTION_PASSWORD`` and never accepted as
an argument so it does not end up in shell history.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional, Sequence

from sealbox.core.exceptions import SealBoxError
from sealbox.core.models import FileType
from sealbox.frontend.cli.context import AppContext, build_context, load_settings
from sealbox.frontend.cli.logging_config import configure_logging
from sealbox.security.kdf import kdf_params

logger = logging.getLogger(__name__)


def _emit(payload) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def cmd_upload(ctx: AppContext, args) -> None:
    record = ctx.fm.add_file(
        args.path, owner_id=args.owner, account_id=args.account, name=args.name, mime=args.mime
    )
    _emit(record.to_dict())


def cmd_download(ctx: AppContext, args) -> None:
    path = ctx.fm.get_file(args.file_id, args.destination)
    _emit({"file_id": args.file_id, "path": path})


def cmd_list(ctx: AppContext, args) -> None:
    records = ctx.fm.get_files(
        args.owner,
        email=args.email,
        types=args.type or (),
        search_text=args.search,
        sort=args.sort,
        limit=args.limit,
    )
    _emit([r.to_dict() for r in records])


def cmd_rename(ctx: AppContext, args) -> None:
    record = ctx.fm.rename_file(args.file_id, args.name, args.extension)
    _emit(record.to_dict())


def cmd_share(ctx: AppContext, args) -> None:
    record = ctx.fm.update_file_users(args.file_id, args.emails)
    _emit(record.to_dict())


def cmd_delete(ctx: AppContext, args) -> None:
    _emit({"file_id": args.file_id, "deleted": ctx.fm.delete_file(args.file_id)})


def cmd_usage(ctx: AppContext, args) -> None:
    _emit(ctx.fm.get_total_space_used(args.owner))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sealbox", description="SealBox encrypted file store")
    parser.add_argument("--db", dest="db_path", default=None, help="metadata database path")
    parser.add_argument("--storage-root", default=None, help="blob storage directory")
    parser.add_argument("--log-level", default=None)

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("upload", help="encrypt and store a file")
    p.add_argument("path")
    p.add_argument("--owner", required=True)
    p.add_argument("--account", required=True)
    p.add_argument("--name", default=None)
    p.add_argument("--mime", default=None)
    p.set_defaults(func=cmd_upload)

    p = sub.add_parser("download", help="decrypt a stored file to a path")
    p.add_argument("file_id")
    p.add_argument("destination")
    p.set_defaults(func=cmd_download)

    p = sub.add_parser("list", help="list files owned by or shared with a user")
    p.add_argument("--owner", required=True)
    p.add_argument("--email", default=None)
    p.add_argument(
        "--type", action="append", choices=[t.value for t in FileType], default=None
    )
    p.add_argument("--search", default="")
    p.add_argument("--sort", default="created_at-desc")
    p.add_argument("--limit", type=int, default=None)
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("rename", help="rename a file")
    p.add_argument("file_id")
    p.add_argument("name")
    p.add_argument("--extension", default="")
    p.set_defaults(func=cmd_rename)

    p = sub.add_parser("share", help="replace the emails a file is shared with")
    p.add_argument("file_id")
    p.add_argument("emails", nargs="*")
    p.set_defaults(func=cmd_share)

    p = sub.add_parser("delete", help="delete a file and its blob")
    p.add_argument("file_id")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("usage", help="storage used per file type")
    p.add_argument("--owner", required=True)
    p.set_defaults(func=cmd_usage)

    p = sub.add_parser("info", help="show the fixed key derivation parameters")
    p.set_defaults(func=None)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except SealBoxError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    configure_logging(args.log_level or settings.log_level)

    if args.command == "info":
        _emit(kdf_params())
        return 0

    try:
        ctx = build_context(
            db_path=args.db_path, storage_root=args.storage_root, settings=settings
        )
        try:
            args.func(ctx, args)
        finally:
            ctx.db.close()
    except SealBoxError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
