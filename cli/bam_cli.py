"""Command-line interface for BAM."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from pydantic import ValidationError

from bam import __version__
from bam.config import Settings
from bam.exceptions import LayoutMarkerError, LayoutMissingError, PagesRootMissingError
from bam.main import configure_logging, create_app, create_static_app, run_server
from bam.services.generator import generate_site
from bam.services.scaffold import DEFAULT_TEMPLATE, TEMPLATES, create_project

USAGE_EXAMPLES = """\
Usage:
  bam new [foo] [template]
  cd [foo]

  # run in dev mode
  bam run

  # generate site
  bam gen

  # test gen site
  bam serve
"""


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all subcommands."""
    parser = argparse.ArgumentParser(
        prog="bam",
        description="Easiest Static Site Generator on the Planet",
        epilog=USAGE_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-C",
        "--project",
        default=".",
        help="Project directory (default: current directory)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command")

    new_parser = subparsers.add_parser("new", help="Create a new project")
    new_parser.add_argument("name", help="Project name (directory to create)")
    new_parser.add_argument(
        "template",
        nargs="?",
        default=DEFAULT_TEMPLATE,
        choices=sorted(TEMPLATES),
        help=f"Project template (default: {DEFAULT_TEMPLATE})",
    )
    new_parser.add_argument(
        "--force", action="store_true", help="Replace an existing non-empty directory"
    )

    run_parser = subparsers.add_parser("run", help="Run the development server")
    run_parser.add_argument("port", nargs="?", type=int, default=None, help="Port (default: 3000)")

    subparsers.add_parser("gen", help="Generate the static site into gen/")

    serve_parser = subparsers.add_parser("serve", help="Serve the generated site")
    serve_parser.add_argument(
        "port", nargs="?", type=int, default=None, help="Port (default: 3000)"
    )

    subparsers.add_parser("version", help="Show version number")
    subparsers.add_parser("help", help="Show this help")
    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    """Build settings from the environment, overridden by command-line flags."""
    overrides: dict[str, object] = {"project_dir": Path(args.project)}
    if args.debug:
        overrides["debug"] = True
    port = getattr(args, "port", None)
    if port is not None:
        overrides["port"] = port
    return Settings(**overrides)  # type: ignore[arg-type]


def _cmd_new(args: argparse.Namespace) -> int:
    target = Path(args.project) / args.name
    try:
        create_project(target, args.template, force=args.force)
    except (ValueError, OSError) as exc:
        print(f"Error creating project: {exc}", file=sys.stderr)
        return 1
    print(f"Created project in {target}")
    print("Done....")
    return 0


def _cmd_gen(settings: Settings) -> int:
    try:
        result = asyncio.run(generate_site(settings))
    except (LayoutMissingError, LayoutMarkerError, PagesRootMissingError) as exc:
        print(f"Error generating site: {exc}", file=sys.stderr)
        print("Are you in a BAM project directory?", file=sys.stderr)
        return 1
    except (ValueError, OSError) as exc:
        print(f"Error generating site: {exc}", file=sys.stderr)
        return 1

    if not result.ok:
        print(
            f"Generated {len(result.pages)} pages in {result.output_root}, "
            f"{len(result.failures)} failed:",
            file=sys.stderr,
        )
        for failure in result.failures:
            print(f"  ! {failure.relative_path}: {failure.error}", file=sys.stderr)
        return 1
    print(f"Successfully Generated Static Site in {result.output_root}")
    return 0


def _cmd_run(settings: Settings) -> int:
    run_server(create_app(settings), settings)
    return 0


def _cmd_serve(settings: Settings) -> int:
    try:
        app = create_static_app(settings)
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    run_server(app, settings)
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1
    if args.command == "help":
        parser.print_help()
        return 0
    if args.command == "version":
        print(f"BAM v{__version__}")
        return 0

    configure_logging(args.debug)

    if args.command == "new":
        return _cmd_new(args)

    try:
        settings = load_settings(args)
    except ValidationError as exc:
        print(f"Error: invalid configuration: {exc}", file=sys.stderr)
        return 1

    if args.command == "gen":
        return _cmd_gen(settings)
    if args.command == "run":
        return _cmd_run(settings)
    if args.command == "serve":
        return _cmd_serve(settings)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
