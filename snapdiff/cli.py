"""Command line interface for SnapDiff."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import load_config
from .engine import SnapDiffEngine
from .exceptions import SnapDiffError, ValidationError
from .models import EngineConfig, LogLevel
from .registry import load_registry
from .render import format_report
from .storage import SnapshotStore, read_json, write_json

DEFAULT_STORE = ".snapdiff"

_LOG_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snapdiff",
        description="Save and compare server configuration snapshots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  snapdiff save export-a.json --server https://iris-a:52773
  snapdiff compare export-b.json --server https://iris-b:52773
  snapdiff compare export-b.json --against export-a.json --json report.json
  snapdiff show
        """
    )
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Log more detail (repeat for debug output)")
    parser.add_argument("--store", default=DEFAULT_STORE,
                        help=f"Directory for the saved snapshot and report (default: {DEFAULT_STORE})")
    parser.add_argument("--registry", help="Path to a YAML/JSON entity registry")
    parser.add_argument("--config", help="Path to a YAML/JSON engine config")

    commands = parser.add_subparsers(dest="command", required=True)

    save = commands.add_parser("save", help="Save a snapshot for later comparison")
    save.add_argument("snapshot", help="Path to a snapshot export (JSON)")
    save.add_argument("--server", help="Name or URL of the server the export came from")
    save.set_defaults(func=_cmd_save)

    compare = commands.add_parser("compare", help="Compare a snapshot with the saved one")
    compare.add_argument("current", help="Path to the current snapshot export (JSON)")
    compare.add_argument("--against", help="Compare with this export instead of the saved snapshot (the report is still stored for show)")
    compare.add_argument("--server", help="Name or URL of the current server")
    compare.add_argument("--json", dest="json_path", help="Also write the report as JSON to this path")
    compare.add_argument("-q", "--quiet", action="store_true", help="Do not print the report")
    compare.set_defaults(func=_cmd_compare)

    show = commands.add_parser("show", help="Print the last stored report")
    show.set_defaults(func=_cmd_show)

    clear = commands.add_parser("clear", help="Remove the saved snapshot and report")
    clear.set_defaults(func=_cmd_clear)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Run the command line.

    Returns:
        0 when in sync (or the command succeeded), 1 when differences were
        found, 2 on errors
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config) if args.config else EngineConfig()
        _setup_logging(args.verbose, config)
        return args.func(args, config)
    except SnapDiffError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


def _setup_logging(verbose: int, config: EngineConfig):
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = _LOG_LEVELS[config.log_level]
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _read_snapshot(path: str) -> dict:
    snapshot = read_json(path)
    if not isinstance(snapshot, dict):
        raise ValidationError(
            f"Snapshot {path} must be a JSON object",
            {"path": path, "type": type(snapshot).__name__}
        )
    return snapshot


def _cmd_save(args, config: EngineConfig) -> int:
    store = SnapshotStore(args.store)
    server = args.server or str(Path(args.snapshot).resolve())
    store.save_snapshot(_read_snapshot(args.snapshot), server)
    print(f"Data saved from {server}")
    return 0


def _cmd_compare(args, config: EngineConfig) -> int:
    registry = load_registry(args.registry) if args.registry else None
    engine = SnapDiffEngine(registry, config)
    store = SnapshotStore(args.store)

    current = _read_snapshot(args.current)
    current_server = args.server or args.current

    if args.against:
        report = engine.compare(_read_snapshot(args.against), current)
        report.saved_server = args.against
        report.current_server = current_server
    else:
        saved = store.load_snapshot()
        if saved is None:
            print("No saved data found. Save a server first.", file=sys.stderr)
            return 2
        report = engine.compare_saved(saved, current, current_server)

    store.save_report(report)

    if args.json_path:
        write_json(args.json_path, report.to_dict())

    if not args.quiet:
        print(format_report(report), end="")

    return 0 if report.is_in_sync else 1


def _cmd_show(args, config: EngineConfig) -> int:
    report = SnapshotStore(args.store).load_report()
    if report is None:
        print("No comparison data found. Run a comparison first.", file=sys.stderr)
        return 2
    print(format_report(report), end="")
    return 0


def _cmd_clear(args, config: EngineConfig) -> int:
    SnapshotStore(args.store).clear()
    print("All saved data has been cleared.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
