#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
import uuid
from dataclasses import asdict
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from trrcms_import.app import create_application
from trrcms_import.common.logging import configure_logging
from trrcms_import.domain.model import ConflictStatus, ImportMethod

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from trrcms_import.app import ImportApplication


def _uuid(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(value.strip())
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid UUID: {value}") from exc


def _add_actor(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--actor",
        type=_uuid,
        required=True,
        help="UUID of the operator performing the action",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import offline .uhc survey packages")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    upload = commands.add_parser("upload", help="Register a .uhc file as an import package")
    upload.add_argument("file", type=Path, help="Path to the .uhc package")
    upload.add_argument(
        "--method",
        choices=[method.value for method in ImportMethod],
        default=ImportMethod.CLI.value,
        help="How the package arrived (default: %(default)s)",
    )
    _add_actor(upload)

    for name, help_text in (
        ("stage", "Unpack a validated package into staging and run validation"),
        ("detect", "Run duplicate detection against production data"),
        ("commit", "Commit approved staging records to production"),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("package", type=_uuid, help="Import package id or manifest package id")
        _add_actor(command)

    approve = commands.add_parser("approve", help="Approve staged records for commit")
    approve.add_argument("package", type=_uuid)
    approve.add_argument(
        "--record",
        dest="records",
        type=_uuid,
        action="append",
        help="Approve only this staging record (repeatable); default approves all",
    )
    _add_actor(approve)

    listing = commands.add_parser("conflicts", help="List conflicts for a package")
    listing.add_argument("package", type=_uuid)
    listing.add_argument("--type", dest="conflict_type", help="Conflict type family filter")
    listing.add_argument(
        "--status", choices=[status.value for status in ConflictStatus], help="Status filter"
    )

    show = commands.add_parser("conflict", help="Show one conflict")
    show.add_argument("conflict_id", type=_uuid)

    merge = commands.add_parser("merge", help="Resolve a conflict by merging the two records")
    merge.add_argument("conflict_id", type=_uuid)
    merge.add_argument("--master", type=_uuid, help="Record to keep (default: the first)")
    merge.add_argument("--reason", default="")
    _add_actor(merge)

    for name, help_text in (
        ("keep-separate", "Resolve a conflict by keeping both records"),
        ("escalate", "Escalate a conflict for senior review"),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("conflict_id", type=_uuid)
        command.add_argument("--reason", default="")
        _add_actor(command)

    cancel = commands.add_parser("cancel", help="Cancel a package and discard its staging rows")
    cancel.add_argument("package", type=_uuid)
    cancel.add_argument("--reason", default="")
    _add_actor(cancel)

    quarantine = commands.add_parser("quarantine", help="Quarantine a package for review")
    quarantine.add_argument("package", type=_uuid)
    quarantine.add_argument("--reason", required=True)
    _add_actor(quarantine)

    status = commands.add_parser("status", help="Show a package's state and counters")
    status.add_argument("package", type=_uuid)

    return parser.parse_args(list(argv))


def _dispatch(app: ImportApplication, args: argparse.Namespace) -> object:
    handlers: dict[str, Callable[[], object]] = {
        "upload": lambda: app.upload(
            args.file, args.actor, import_method=ImportMethod(args.method)
        ),
        "stage": lambda: app.stage(args.package, args.actor),
        "detect": lambda: app.detect(args.package, args.actor),
        "conflicts": lambda: app.conflicts(
            args.package,
            conflict_type=args.conflict_type,
            status=ConflictStatus(args.status) if args.status else None,
        ),
        "conflict": lambda: app.conflict(args.conflict_id),
        "merge": lambda: app.merge(
            args.conflict_id, args.actor, master_entity_id=args.master, reason=args.reason
        ),
        "keep-separate": lambda: app.keep_separate(
            args.conflict_id, args.actor, reason=args.reason
        ),
        "escalate": lambda: app.escalate(args.conflict_id, args.actor, reason=args.reason),
        "approve": lambda: app.approve(args.package, args.actor, record_ids=args.records),
        "commit": lambda: app.commit(args.package, args.actor),
        "cancel": lambda: app.cancel(args.package, args.actor, reason=args.reason),
        "quarantine": lambda: app.quarantine(args.package, args.actor, reason=args.reason),
        "status": lambda: app.status(args.package),
    }
    return handlers[args.command]()


def _to_json(result: object) -> str:
    payload: Any
    if isinstance(result, list):
        payload = [asdict(item) for item in result]  # type: ignore[arg-type]
    else:
        payload = asdict(result)  # type: ignore[arg-type]
    return json.dumps(payload, indent=2, default=str)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(argv or sys.argv[1:])
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        app = create_application()
        result = _dispatch(app, parsed_args)
    except Exception as e:  # noqa: BLE001
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(_to_json(result))


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()
