"""CLI entrypoints for sma commands."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from .errors import SMAError
from .logging import configure_logging
from .orchestrator import Orchestrator


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_revision_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the repository root (defaults to current directory).",
    )
    parser.add_argument(
        "--current",
        default=None,
        help="Revision being built (defaults to $GIT_COMMIT, then HEAD).",
    )
    parser.add_argument(
        "--previous",
        default=None,
        help="Last successfully built revision (defaults to $GIT_PREVIOUS_SUCCESSFUL_COMMIT).",
    )
    parser.add_argument(
        "--force-initial",
        action="store_true",
        help="Ignore the previous revision and deploy every file.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sma",
        description="Generate deployment and rollback manifests from git history.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write log records to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build",
        help="Stage the deployment package for a revision.",
    )
    _add_verbose_option(build_parser, suppress_default=True)
    _add_revision_options(build_parser)
    build_parser.add_argument(
        "--rollback-dir",
        type=Path,
        default=None,
        help="Directory that receives the zipped rollback package.",
    )
    build_parser.add_argument(
        "--rollback-name",
        default=None,
        help="Archive name for the rollback package (defaults to $BUILD_TAG).",
    )
    build_parser.add_argument(
        "--update-package",
        action="store_true",
        default=None,
        help="Commit a refreshed package.xml when members were added or deleted.",
    )

    changes_parser = subparsers.add_parser(
        "changes",
        help="Print the added, deleted and modified paths for a revision.",
    )
    _add_verbose_option(changes_parser, suppress_default=True)
    _add_revision_options(changes_parser)

    manifest_parser = subparsers.add_parser(
        "manifest",
        help="Print the manifest synthesized for a list of paths.",
    )
    _add_verbose_option(manifest_parser, suppress_default=True)
    manifest_parser.add_argument("paths", nargs="+", help="Repository-relative paths.")
    manifest_parser.add_argument(
        "--destructive",
        action="store_true",
        help="Build a destructive manifest (members to delete).",
    )
    manifest_parser.add_argument(
        "--repo",
        default=".",
        help="Repository root whose .sma.yml selects the registry.",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for sma commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    orchestrator = Orchestrator()

    try:
        if args.command == "build":
            outcome = orchestrator.run_build(
                args.path,
                _current_revision(args),
                _previous_revision(args),
                rollback_dir=args.rollback_dir,
                rollback_name=args.rollback_name or os.environ.get("BUILD_TAG"),
                update_package=args.update_package,
                force_initial=bool(args.force_initial),
            )
            print(f"SMA_DEPLOY={outcome.package.source_dir}")
            if outcome.rollback_archive is not None:
                print(f"SMA_ROLLBACK={outcome.rollback_archive}")
            print("Deploying the following metadata:")
            for member in outcome.members:
                print(f"\t{member.full_name}")
        elif args.command == "changes":
            resolver = orchestrator.resolve(
                args.path,
                _current_revision(args),
                _previous_revision(args),
                force_initial=bool(args.force_initial),
            )
            _print_paths("Additions", resolver.additions())
            _print_paths("Deletions", resolver.deletions())
            _print_paths("Modified (old)", resolver.modifications_old())
            _print_paths("Modified (new)", resolver.modifications_new())
        elif args.command == "manifest":
            result = orchestrator.synthesize(
                args.paths, destructive=bool(args.destructive), path=args.repo
            )
            sys.stdout.write(result.document.decode("utf-8"))
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except SMAError as exc:
        parser.exit(1, f"sma {args.command} failed: {exc}\nRun with --verbose for more details.\n")


def _current_revision(args: argparse.Namespace) -> str:
    return args.current or os.environ.get("GIT_COMMIT") or "HEAD"


def _previous_revision(args: argparse.Namespace) -> str | None:
    return args.previous or os.environ.get("GIT_PREVIOUS_SUCCESSFUL_COMMIT") or None


def _print_paths(title: str, paths: list[str]) -> None:
    print(f"{title} ({len(paths)}):")
    for path in paths:
        print(f"\t{path}")


if __name__ == "__main__":
    main(sys.argv[1:])
