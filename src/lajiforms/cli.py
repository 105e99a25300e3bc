"""CLI entry point for lajiforms."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from lajiforms import __version__, logger
from lajiforms.async_runner import run_async
from lajiforms.dependencies import ensure_cli_dependencies
from lajiforms.exceptions import PackageError
from lajiforms.logging import configure_logging
from lajiforms.services.forms import create_forms_service
from lajiforms.settings import get_settings
from lajiforms.typing.enums import Format, Lang

if TYPE_CHECKING:
    from lajiforms.settings import Settings


def _format_from_cli(value: str) -> Format:
    """Convert `--format` CLI value into an output format.

    Raises:
        argparse.ArgumentTypeError: If value is not supported.

    Returns:
        Format: Selected format.
    """
    try:
        return Format.from_str(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line parser.

    Returns:
        argparse.ArgumentParser: The configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="lajiforms")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command")
    languages = [lang.value for lang in Lang]

    compile_parser = subparsers.add_parser("compile", help="Compile a master JSON file")
    compile_parser.add_argument("--input", required=True, type=Path, dest="input_path")
    compile_parser.add_argument("--format", default=Format.SCHEMA, type=_format_from_cli, dest="fmt")
    compile_parser.add_argument("--lang", default=None, choices=languages)
    compile_parser.add_argument("--output", type=Path, default=None, dest="output_path")

    get_parser = subparsers.add_parser("get", help="Fetch and compile a stored form")
    get_parser.add_argument("--id", required=True, dest="form_id")
    get_parser.add_argument("--format", default=Format.JSON, type=_format_from_cli, dest="fmt")
    get_parser.add_argument("--lang", default=None, choices=languages)
    get_parser.add_argument("--no-expand", action="store_true", dest="no_expand")
    get_parser.add_argument("--output", type=Path, default=None, dest="output_path")

    return parser


def load_master(path: Path) -> dict[str, Any]:
    """Read a master JSON file.

    Raises:
        ValueError: If the file does not hold a JSON object.

    Returns:
        dict[str, Any]: The master.
    """
    master = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(master, dict):
        raise ValueError("Master must be a JSON object")  # noqa: TRY003
    return master


def persist_output(payload: dict[str, Any], path: Path | None) -> None:
    """Write a compiled form as JSON to `path`, or to stdout when no path is given."""
    text = json.dumps(payload, ensure_ascii=False, indent=2)
    if path is None:
        sys.stdout.write(f"{text}\n")
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


async def _run_command(args: argparse.Namespace, settings: Settings) -> dict[str, Any]:
    forms_service = create_forms_service(settings)
    try:
        if args.command == "compile":
            master = load_master(args.input_path)
            return await forms_service.field_service.convert(master, args.fmt, args.lang)
        return await forms_service.get_form(args.form_id, args.lang, args.fmt, expand=not args.no_expand)
    finally:
        await forms_service.aclose()


def main() -> int:
    """Run the CLI.

    Returns:
        int: Exit code (0 for success, 1 for error).
    """
    settings = get_settings()
    configure_logging(settings=settings)

    parser = build_parser()
    args = parser.parse_args()

    if args.command not in {"compile", "get"}:
        parser.print_help()
        return 0

    ensure_cli_dependencies(args.command)

    try:
        result = run_async(_run_command(args, settings))
    except PackageError as exc:
        logger.exception("Compilation failed", extra={"status": exc.http_status})
        return 1
    except KeyboardInterrupt:
        logger.info("Compilation aborted by user")
        return 130
    except Exception:
        logger.exception("Unexpected error during compilation")
        return 1

    persist_output(result, args.output_path)
    logger.info("Compilation completed", extra={"command": args.command, "output_path": str(args.output_path)})
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
