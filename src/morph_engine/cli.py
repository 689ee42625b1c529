"""Command-line front end: reformat files on disk through the buffer pipeline."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

from morph_engine.buffer import Buffer
from morph_engine.runtime import Regulator, Settings, telemetry
from morph_engine.session import Session, create_default_session


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="morph-engine",
        description="Run external formatters over files and patch only changed lines.",
    )
    parser.add_argument("files", nargs="*", type=Path, help="Files to reformat in place")
    parser.add_argument("--kind", help="Content kind (detected from the extension by default)")
    parser.add_argument("--profile", help="Profile name (default: %(default)s)", default=None)
    parser.add_argument(
        "--list-profiles",
        metavar="KIND",
        help="Print the profiles registered for KIND and exit",
    )
    parser.add_argument(
        "--log-preset",
        choices=telemetry.PRESETS,
        help="Telemetry preset to install before running",
    )
    return parser


def run(argv: Optional[Sequence[str]] = None, *, session: Optional[Session] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_preset:
        telemetry.configure(preset=args.log_preset)

    if session is None:
        # Each file is its own buffer; the cooldown only matters inside an editor.
        session = create_default_session(Settings.from_env(), regulator=Regulator(0))

    if args.list_profiles:
        for name in sorted(session.available_profiles(args.list_profiles)):
            print(name)
        return 0

    if not args.files:
        build_parser().print_usage()
        return 2

    failures = 0
    try:
        for path in args.files:
            try:
                buffer = session.open(Buffer.from_file(path, filetype=args.kind))
            except (OSError, UnicodeDecodeError) as exc:
                print(f"{path}: cannot read: {exc}")
                failures += 1
                continue
            result = session.reformat(buffer, args.kind, args.profile)
            session.close(buffer)
            print(f"{path}: {result.status} {result.message}".rstrip())
            if result.outcome is not None and result.outcome.output:
                print(result.outcome.output)
            if result.failed:
                failures += 1
    finally:
        session.shutdown()
    return 1 if failures else 0


def main() -> None:  # pragma: no cover - console entry point
    raise SystemExit(run())


__all__ = ["build_parser", "run", "main"]
