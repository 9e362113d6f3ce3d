"""
CLI for Agentic Sequencer.

Provides the command-line interface using argparse.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .browser_manager import LazyBrowserManager
from .config import DEFAULTS, EngineConfig, env_debug
from .engine import TaskEngine, split_loop
from .errors import PreconditionError, TaskConfigError
from .logger import RunLogger, redact_task_config
from .sequence_store import JsonSequenceStore, dump_tasks_file, load_tasks_file
from .task_store import TaskStore
from .types import Task


logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="agentic-seq",
        description="Agentic Sequencer - run saved browser task sequences.",
        epilog="""
Examples:
  # Run a saved sequence
  agentic-seq run "morning news"

  # Run a sequence file without a visible window
  agentic-seq run ./login.json --headless

  # Save a sequence file under a name
  agentic-seq import "morning news" ./news.json

  # List saved sequences
  agentic-seq list
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Agentic Sequencer {__version__}",
    )

    parser.add_argument(
        "--sequences-file",
        type=Path,
        default=None,
        help="Saved sequences file (default: ~/.agentic_sequencer/sequences.json)",
    )

    parser.add_argument(
        "-d", "--debug",
        action="store_true",
        default=False,
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser(
        "run",
        help="Run a saved sequence or a sequence file",
    )

    run_parser.add_argument(
        "sequence",
        type=str,
        help="Saved sequence name, or path to a .json sequence file",
    )

    run_parser.add_argument(
        "--headless",
        action="store_true",
        default=DEFAULTS["headless"],
        help="Run browser in headless mode",
    )

    run_parser.add_argument(
        "--fast",
        action="store_true",
        default=False,
        help="Enable fast mode: blocks images, fonts, and media for faster page loads",
    )

    run_parser.add_argument(
        "--start-url",
        type=str,
        default=None,
        help="Page to open before the first task",
    )

    run_parser.add_argument(
        "--no-humanize",
        action="store_true",
        default=False,
        help="Skip randomized human-like delays",
    )

    run_parser.add_argument(
        "--no-log",
        action="store_true",
        default=False,
        help="Do not write a steps.jsonl log for this run",
    )

    # Sequence management commands
    subparsers.add_parser("list", help="List saved sequences")

    show_parser = subparsers.add_parser("show", help="Show the tasks of a saved sequence")
    show_parser.add_argument("name", type=str, help="Sequence name")

    import_parser = subparsers.add_parser("import", help="Save a sequence file under a name")
    import_parser.add_argument("name", type=str, help="Sequence name")
    import_parser.add_argument("file", type=Path, help="Sequence .json file")

    export_parser = subparsers.add_parser("export", help="Write a saved sequence to a file")
    export_parser.add_argument("name", type=str, help="Sequence name")
    export_parser.add_argument("file", type=Path, help="Destination .json file")

    delete_parser = subparsers.add_parser("delete", help="Delete a saved sequence")
    delete_parser.add_argument("name", type=str, help="Sequence name")

    return parser


def configure_logging(debug: bool) -> None:
    """Route module loggers through rich."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False)],
    )


def _resolve_sequence(target: str, store: JsonSequenceStore) -> tuple[str, list[Task]]:
    """Load a sequence from a file path or by saved name.

    Raises:
        PreconditionError: If the name is not saved or the file is unusable
    """
    path = Path(target)
    if path.suffix == ".json" and path.is_file():
        try:
            return path.stem, load_tasks_file(path)
        except (ValueError, KeyError, TypeError, TaskConfigError) as e:
            raise PreconditionError(f"Cannot read {path}: {e}") from e

    result = store.load_sequence(target)
    if not result["success"]:
        raise PreconditionError(result["error"])
    return target, result["sequence"]


async def run_sequence(
    name: str,
    tasks: list[Task],
    config: EngineConfig,
    run_logger: RunLogger,
) -> int:
    """Open a browser and execute one sequence.

    Returns:
        Exit code (0 on success, 1 on a failed run)

    Raises:
        PreconditionError: If the sequence cannot run; no browser is launched
    """
    if not tasks:
        raise PreconditionError("No tasks to execute")

    store = TaskStore()
    try:
        store.load_sequence(tasks)
    except ValueError as e:
        raise PreconditionError(str(e)) from e

    def echo_log(event: str, payload: Any) -> None:
        if event == "log":
            run_logger.print_log_line(payload)

    store.add_listener(echo_log)

    runnable, loop_count, _ = split_loop(tasks)
    run_logger.print_header(len(runnable), loop_count)

    async with LazyBrowserManager(config) as manager:
        page_view = await manager.get_page_view()
        engine = TaskEngine(store, page_view, config, run_logger=run_logger)
        result = await engine.run()

    extracted = store.execution_status.extracted_data
    if extracted:
        run_logger.print_extracted(extracted)
    if not result.success:
        run_logger.print_error(result.error or "Task failed")
    run_logger.print_summary(result.success, store.tasks)

    logger.debug(f"Run of {name!r} finished: success={result.success}")
    return 0 if result.success else 1


def run_command(args: argparse.Namespace, store: JsonSequenceStore) -> int:
    """Execute the run command.

    Args:
        args: Parsed command line arguments
        store: Saved sequence store

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    console = Console()

    try:
        config = EngineConfig.from_cli_args(
            headless=args.headless,
            fast=args.fast,
            start_url=args.start_url,
            no_humanize=args.no_humanize,
            no_log=args.no_log,
            debug=args.debug,
        )
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 2

    try:
        name, tasks = _resolve_sequence(args.sequence, store)
        run_logger = RunLogger(name, write_files=config.log_to_disk)
        return asyncio.run(run_sequence(name, tasks, config, run_logger))
    except PreconditionError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 2
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return 130
    except Exception as e:
        console.print(f"[bold red]Fatal error: {e}[/bold red]")
        return 1


def list_command(store: JsonSequenceStore) -> int:
    """Print saved sequences, most recently updated first."""
    console = Console()
    sequences = store.get_all_sequences()["sequences"]
    if not sequences:
        console.print("[dim]No saved sequences.[/dim]")
        return 0

    table = Table(title="Saved Sequences")
    table.add_column("Name", style="cyan")
    table.add_column("Tasks", justify="right")
    table.add_column("Updated", style="dim")
    for seq in sequences:
        table.add_row(seq["name"], str(len(seq.get("tasks", []))), seq.get("updated_at", ""))
    console.print(table)
    return 0


def show_command(args: argparse.Namespace, store: JsonSequenceStore) -> int:
    """Print the tasks of one saved sequence."""
    console = Console()
    result = store.load_sequence(args.name)
    if not result["success"]:
        console.print(f"[bold red]Error:[/bold red] {result['error']}")
        return 2

    table = Table(title=args.name)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("Config")
    for i, task in enumerate(result["sequence"], start=1):
        table.add_row(str(i), task.type.value, json.dumps(redact_task_config(task)))
    console.print(table)
    return 0


def import_command(args: argparse.Namespace, store: JsonSequenceStore) -> int:
    """Save a sequence file under a name."""
    console = Console()
    try:
        tasks = load_tasks_file(args.file)
    except (OSError, ValueError, KeyError, TypeError, TaskConfigError) as e:
        console.print(f"[bold red]Error:[/bold red] Cannot read {args.file}: {e}")
        return 2

    result = store.save_sequence(args.name, tasks)
    if not result["success"]:
        console.print(f"[bold red]Error:[/bold red] {result['error']}")
        return 2
    console.print(f"[green]✓ Saved {len(tasks)} task(s) as {args.name!r}[/green]")
    return 0


def export_command(args: argparse.Namespace, store: JsonSequenceStore) -> int:
    """Write a saved sequence to a file."""
    console = Console()
    result = store.load_sequence(args.name)
    if not result["success"]:
        console.print(f"[bold red]Error:[/bold red] {result['error']}")
        return 2
    try:
        dump_tasks_file(args.file, result["sequence"])
    except OSError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1
    console.print(f"[green]✓ Exported {args.name!r} to {args.file}[/green]")
    return 0


def delete_command(args: argparse.Namespace, store: JsonSequenceStore) -> int:
    """Delete a saved sequence."""
    console = Console()
    result = store.delete_sequence(args.name)
    if not result["success"]:
        console.print(f"[bold red]Error:[/bold red] {result['error']}")
        return 2
    console.print(f"[green]✓ Deleted {args.name!r}[/green]")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point.

    Args:
        argv: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging(args.debug or env_debug())
    store = JsonSequenceStore(args.sequences_file)

    if args.command == "run":
        return run_command(args, store)
    if args.command == "list":
        return list_command(store)
    if args.command == "show":
        return show_command(args, store)
    if args.command == "import":
        return import_command(args, store)
    if args.command == "export":
        return export_command(args, store)
    if args.command == "delete":
        return delete_command(args, store)

    # Unknown command
    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
