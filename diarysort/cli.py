"""
Command-line interface for diarysort.
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import Config, RunConfig
from .constants import PROGRAM, TRANSCODE_PRESETS, get_console, get_logger
from .core import DiarySorter
from .history import HistoryManager


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD command line date."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date (expected YYYY-MM-DD): {value}")


def parse_jobs(value: str) -> int:
    try:
        jobs = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid job count: {value}")
    if jobs < 1:
        raise argparse.ArgumentTypeError(f"Job count must be at least 1: {value}")
    return jobs


def setup_logging(console: Console, verbose: bool = False) -> logging.Logger:
    """Route the program logger to the console through rich."""
    logger = get_logger()
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    console_handler = RichHandler(console=console, rich_tracebacks=True, show_path=False)
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(console_handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger


def create_parser(config: Config) -> argparse.ArgumentParser:
    """Create argument parser with dynamic defaults from config."""
    last_source = config.get_last_source()
    last_dest = config.get_last_dest()

    source_help = "Flat directory of photos, videos and dated notes to add"
    dest_help = "Diary directory organized as YEAR/MONTH/DAY"
    if last_source:
        source_help += f" (default: {last_source})"
    if last_dest:
        dest_help += f" (default: {last_dest})"

    parser = argparse.ArgumentParser(
        prog=PROGRAM,
        description="Sort photos, videos and dated notes into a per-day diary",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  {PROGRAM} ~/Phone/DCIM ~/Diary
  {PROGRAM} --dry-run --from 2018-01-01 --to 2018-01-31
  {PROGRAM} --copy --on 2018-01-01 ~/Phone/DCIM ~/Diary
        """
    )

    parser.add_argument("source", nargs="?", help=source_help)
    parser.add_argument("dest", nargs="?", help=dest_help)
    parser.add_argument(
        "--source", "-s", dest="source_override",
        help="Override source directory"
    )
    parser.add_argument(
        "--dest", "-d", dest="dest_override",
        help="Override diary directory"
    )
    parser.add_argument(
        "--yes", "-y", action="store_true",
        help="Auto-confirm processing for saved source/dest paths"
    )
    parser.add_argument(
        "--dry-run", "-n", action="store_true",
        help="Preview operations without making changes"
    )
    parser.add_argument(
        "--copy", "-c", action="store_true",
        help="Copy files into the diary and keep the sources"
    )
    parser.add_argument(
        "--note-ext", metavar="EXT",
        help=f"Extension of dated notes (default: {config.get_note_extension()})"
    )
    parser.add_argument(
        "--preset", choices=sorted(TRANSCODE_PRESETS),
        help=f"Video transcoding preset (default: {config.get_preset()})"
    )
    parser.add_argument(
        "--timezone", "--tz", metavar="TIMEZONE",
        help="Timezone for metadata timestamps that carry an offset "
             f"(default: {config.get_timezone() or 'system local time'})"
    )
    parser.add_argument(
        "--on", type=parse_date, metavar="DATE",
        help="Only add files captured on this day"
    )
    parser.add_argument(
        "--from", dest="date_from", type=parse_date, metavar="DATE",
        help="Only add files captured on or after this day"
    )
    parser.add_argument(
        "--to", dest="date_to", type=parse_date, metavar="DATE",
        help="Only add files captured on or before this day (requires --from)"
    )
    parser.add_argument(
        "--jobs", "-j", type=parse_jobs, default=1, metavar="N",
        help="Read metadata with N parallel workers (default: 1)"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable verbose logging"
    )
    parser.add_argument(
        "--version", "-V", action="store_true",
        help=f"Display the version number of {PROGRAM} and exit"
    )

    return parser


def show_processing_plan(run_config: RunConfig, console: Console) -> None:
    """Display the processing plan before execution."""
    mode = "DRY RUN" if run_config.dry_run else ("MOVE" if run_config.move_files else "COPY")

    console.print("\n[bold]Processing Plan:[/bold]")
    console.print(f"  Source:          [blue]{run_config.source}[/blue]")
    console.print(f"  Diary:           [blue]{run_config.dest}[/blue]")
    console.print(f"  Processing Mode: [cyan]{mode}[/cyan]")
    console.print(f"  Note Extension:  [cyan]{run_config.note_extension}[/cyan]")
    console.print(f"  Video Preset:    [cyan]{run_config.preset}[/cyan]")
    console.print(f"  Timezone:        [cyan]{run_config.timezone or 'local'}[/cyan]")
    if run_config.on:
        console.print(f"  Only Day:        [cyan]{run_config.on}[/cyan]")
    if run_config.date_from:
        until = run_config.date_to or "..."
        console.print(f"  Date Range:      [cyan]{run_config.date_from} to {until}[/cyan]")
    console.print()


def confirm_processing(console: Console) -> bool:
    """Ask for confirmation when using saved configuration."""
    console.print("[yellow]Confirm processing plan with saved configuration.[/yellow]")

    try:
        response = console.input("Continue? [y/N]: ").strip().lower()
        return response in ['y', 'yes']
    except (EOFError, KeyboardInterrupt):
        console.print("\n[red]Operation cancelled[/red]")
        return False


def main(argv: Optional[List[str]] = None, config_path: Optional[Path] = None) -> int:
    """Main entry point.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])
        config_path: Optional path to config file (for testing)
    """
    config = Config(config_path=config_path)
    parser = create_parser(config)
    args = parser.parse_args(argv)
    console = get_console()

    if args.version:
        from . import __version__
        print(__version__)
        return 0

    # Detect if running with no positional arguments (using saved config)
    using_saved_config = args.source is None and args.dest is None and \
                         args.source_override is None and args.dest_override is None

    source_path = args.source_override or args.source or config.get_last_source()
    dest_path = args.dest_override or args.dest or config.get_last_dest()
    if not source_path or not dest_path:
        parser.error("Source and diary directories are required")

    source = Path(source_path).expanduser().resolve()
    dest = Path(dest_path).expanduser().resolve()

    if not source.is_dir():
        console.print(f"[red]Error: Source directory does not exist: {source}[/red]")
        return 1

    if source == dest or source in dest.parents or dest in source.parents:
        console.print("[red]Error: Identical or overlapping source/diary folders[/red]")
        return 1

    try:
        run_config = RunConfig(
            source=source,
            dest=dest,
            note_extension=args.note_ext or config.get_note_extension(),
            preset=args.preset or config.get_preset(),
            timezone=args.timezone or config.get_timezone(),
            move_files=not args.copy,
            dry_run=args.dry_run,
            on=args.on,
            date_from=args.date_from,
            date_to=args.date_to,
            jobs=args.jobs,
        )
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    config.update_paths(str(source), str(dest))
    config.update(note_extension=args.note_ext, preset=args.preset, timezone=args.timezone)

    logger = setup_logging(console, verbose=args.verbose)
    show_processing_plan(run_config, console)

    # Show confirmation when using saved config without --yes flag
    if using_saved_config and not args.yes:
        if not confirm_processing(console):
            return 0

    history = HistoryManager(dest, config.program_root, dry_run=args.dry_run)
    history.attach(logger)
    try:
        sorter = DiarySorter(run_config, console=console)
        report = sorter.run()
        sorter.print_summary()
        history.log_run_summary(source, report)

        if report.ok:
            console.print("\n[green]✓ Processing completed successfully![/green]")
        else:
            console.print(f"\n[green]✓ Processing completed[/green] "
                          f"[yellow]({len(report.failures)} files need attention)[/yellow]")
        return 0

    except KeyboardInterrupt:
        console.print("\n[red]Operation cancelled by user[/red]")
        return 1
    except Exception as e:
        logger.debug("Fatal error", exc_info=True)
        console.print(f"\n[red]Fatal error: {e}[/red]")
        return 1
    finally:
        history.detach(logger)


if __name__ == "__main__":
    sys.exit(main())
