"""CLI entry point — ``scopecodecs compare`` and ``scopecodecs list``."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from pydantic import ValidationError

from scopecodecs import __version__
from scopecodecs.codecs import CANDIDATE_CODECS, REFERENCE_CODECS, get_codec
from scopecodecs.config import Settings
from scopecodecs.constants import SCOPE_FIELDS, SizesMode
from scopecodecs.driver import describe_codecs, format_vlq_histograms, run
from scopecodecs.logging_config import setup_logging
from scopecodecs.stats import SizesStats


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"scopecodecs {__version__}")
        return

    if args.command == "list":
        _run_list()
    elif args.command == "compare":
        _run_compare(parser, args)
    else:
        parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="scopecodecs",
        description=(
            "Compare experimental encodings of source map scope "
            "information by size."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser(
        "list",
        help="List available codecs",
    )

    compare = sub.add_parser(
        "compare",
        help="Re-encode source maps with candidate codecs",
    )
    compare.add_argument(
        "files",
        nargs="+",
        type=Path,
        help="Source map files carrying scope information",
    )
    compare.add_argument(
        "--codec",
        "-c",
        action="append",
        choices=list(CANDIDATE_CODECS),
        default=None,
        help="Candidate codec key; repeatable (default: from settings)",
    )
    compare.add_argument(
        "--all",
        action="store_true",
        help="Compare every candidate codec",
    )
    compare.add_argument(
        "--verify",
        action="store_true",
        default=None,
        help="Decode every encoded map again and check the round trip",
    )
    compare.add_argument(
        "--csv",
        action="store_true",
        help="Print sizes as CSV instead of a table",
    )
    compare.add_argument(
        "--vlq-histograms",
        action="store_true",
        help="Print VLQ run-length histograms after the report",
    )
    compare.add_argument(
        "--sizes",
        choices=[m.value for m in SizesMode],
        default=None,
        help=(
            "Measure only the scope fields or the whole map "
            "(default: scopes)"
        ),
    )
    compare.add_argument(
        "--sizes-reference",
        choices=list(REFERENCE_CODECS),
        default=None,
        help=(
            "Codec producing the map deltas are relative to "
            "(default: base)"
        ),
    )
    compare.add_argument(
        "--log-level",
        default=None,
        help="Root log level (default: WARNING)",
    )

    return parser


def _load_settings(args: argparse.Namespace) -> Settings:
    """Settings from the environment, overridden by explicit flags."""
    overrides = {
        "codecs": list(CANDIDATE_CODECS) if args.all else args.codec,
        "verify": args.verify,
        "sizes": args.sizes,
        "sizes_reference": args.sizes_reference,
        "log_level": args.log_level,
    }
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def _run_list() -> None:
    """Print every codec key with its name."""
    print("Candidate codecs:")
    for key, codec in CANDIDATE_CODECS.items():
        print(f"  {key:<30} {codec.name}")
    print("\nSize references:")
    for key, codec in REFERENCE_CODECS.items():
        print(f"  {key:<30} {codec.name}")


def _run_compare(
    parser: argparse.ArgumentParser, args: argparse.Namespace
) -> None:
    """Execute the compare command."""
    try:
        settings = _load_settings(args)
    except ValidationError as exc:
        parser.error(str(exc))
    setup_logging(settings.log_level)

    if not settings.codecs:
        parser.error("no codecs selected; pass --codec KEY or --all")

    reference = get_codec(settings.sizes_reference)
    # Candidates never include the reference itself.
    candidates = [
        get_codec(key) for key in settings.codecs if key != reference.key
    ]
    filter_props = SCOPE_FIELDS if settings.sizes is SizesMode.SCOPES else None
    stats = SizesStats(reference.name, filter_props)

    failures = run(
        args.files, candidates, reference, stats, verify=settings.verify
    )

    if args.csv:
        print(stats.format_csv())
    else:
        print(describe_codecs([reference, *candidates]))
        print()
        print(stats.format_table())

    if args.vlq_histograms:
        histograms = format_vlq_histograms(candidates)
        if histograms:
            print()
            print(histograms)

    if failures:
        print(
            f"\n{failures} of {len(args.files)} file(s) failed",
            file=sys.stderr,
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
