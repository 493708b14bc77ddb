"""Command line interface for cepack."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Iterable
import sys

from .command_runner import RecordingCommandRunner, SubprocessCommandRunner
from .config_loader import ProjectConfiguration, find_config_file
from .console import Console
from .packager import Packager


def _emit_dry_run_output(runner: RecordingCommandRunner) -> None:
    for line in runner.iter_formatted():
        print(line)


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(prog="cepack", description="Build, launch and package CEP extensions")
    parser.add_argument("-c", "--config", help="Configuration file (defaults to cepack.toml in the current directory)")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument("--dry-run", action="store_true", help="Print commands without executing them")
    subparsers = parser.add_subparsers(dest="command", required=True)

    decorate_parser = subparsers.add_parser(
        "decorate", aliases=["compile"], help="Write manifests into the build source folders"
    )
    decorate_parser.add_argument("build", nargs="?", help="Build to decorate; omit to decorate all")
    decorate_parser.add_argument("-d", "--debug", action="store_true", help="Decorate for debugging")

    launch_parser = subparsers.add_parser("launch", help="Install a build and relaunch its host application")
    launch_parser.add_argument("build", help="Build to launch")
    launch_parser.add_argument("-d", "--debug", action="store_true", help="Launch the debug variant")
    launch_parser.add_argument("-p", "--product", help="Host product (defaults to the build's first product)")
    launch_parser.add_argument("-f", "--family", help="Host family (defaults to the build's earliest family)")

    pack_parser = subparsers.add_parser("pack", aliases=["package"], help="Sign and bundle every build")
    pack_parser.add_argument("-d", "--debug", action="store_true", help="Package the debug variants")

    return parser.parse_args(list(argv))


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    console = Console.from_flags(verbose=args.verbose, dry_run=args.dry_run)

    runner: SubprocessCommandRunner | RecordingCommandRunner
    if args.dry_run:
        runner = RecordingCommandRunner()
    else:
        runner = SubprocessCommandRunner()

    try:
        config_path = Path(args.config) if args.config else find_config_file(Path.cwd())
        config = ProjectConfiguration.from_file(config_path)
        packager = Packager(config, runner, console)
        status = _dispatch(args, packager, console)
    except Exception as exc:
        console.error(f"error: {exc}")
        status = 1

    if args.dry_run and isinstance(runner, RecordingCommandRunner):
        _emit_dry_run_output(runner)
    return status


def _dispatch(args: Namespace, packager: Packager, console: Console) -> int:
    if args.command in {"decorate", "compile"}:
        return _handle_decorate(args, packager, console)
    if args.command == "launch":
        packager.launch(args.build, args.product, args.family, debug=args.debug)
        return 0
    if args.command in {"pack", "package"}:
        output = packager.pack(debug=args.debug)
        console.info(f"Package written to {output}")
        return 0
    raise ValueError(f"Unknown command: {args.command}")


def _handle_decorate(args: Namespace, packager: Packager, console: Console) -> int:
    if args.build:
        packager.decorate(args.build, debug=args.debug)
        return 0
    failed = packager.decorate_all(debug=args.debug)
    if failed:
        console.error(f"Failed to decorate: {', '.join(failed)}")
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
