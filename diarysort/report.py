"""
End-of-run report: counters, warnings and every per-item or per-day failure.
"""

from datetime import date
from typing import Dict, Iterable, List

from rich.console import Console
from rich.table import Table

from .errors import ClassificationWarning, DiarySortError
from .models import MoveRename, PlacementOp, RemoveSource, Transcode, WriteIndex

COUNTER_LABELS = (
    ("found", "Files Found", "Files Found"),
    ("moved", "Photos Placed", "Photos To Place"),
    ("transcoded", "Videos Transcoded", "Videos To Transcode"),
    ("indexes", "Index Notes Written", "Index Notes To Write"),
    ("removed", "Sources Removed", "Sources To Remove"),
    ("unchanged", "Already In Diary", "Already In Diary"),
    ("motion", "Live Photo Clips Skipped", "Live Photo Clips To Skip"),
)


class RunReport:
    """Aggregates the outcome of a run."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run
        self.operations: List[PlacementOp] = []
        self.warnings: List[ClassificationWarning] = []
        self.failures: List[DiarySortError] = []
        self.days: List[date] = []
        self._stats: Dict[str, int] = {key: 0 for key, _, _ in COUNTER_LABELS}

    @property
    def ok(self) -> bool:
        return not self.failures

    def increment(self, key: str, count: int = 1) -> None:
        self._stats[key] += count

    def get(self, key: str) -> int:
        return self._stats[key]

    def get_stats(self) -> Dict[str, int]:
        """Get a copy of current statistics."""
        return self._stats.copy()

    def add_failures(self, failures: Iterable[DiarySortError]) -> None:
        self.failures.extend(failures)

    def record_applied(self, op: PlacementOp) -> None:
        if isinstance(op, MoveRename):
            self.increment("moved")
        elif isinstance(op, Transcode):
            self.increment("transcoded")
        elif isinstance(op, WriteIndex):
            self.increment("indexes")
        elif isinstance(op, RemoveSource):
            self.increment("removed")

    def failures_of(self, kind: type) -> List[DiarySortError]:
        return [failure for failure in self.failures if isinstance(failure, kind)]

    def summary_line(self) -> str:
        """One-line digest for the runs log."""
        status = "SUCCESS" if self.ok else "PARTIAL"
        counts = ", ".join(f"{key}={value}" for key, value in self._stats.items())
        return f"{status} | {counts} | warnings={len(self.warnings)} | failures={len(self.failures)}"

    def print_summary(self, console: Console) -> None:
        """Print processing summary."""
        table = Table(title="Dry Run Summary" if self.dry_run else "Processing Summary")
        table.add_column("Category", style="cyan")
        table.add_column("Count", style="green")

        for key, label, dry_label in COUNTER_LABELS:
            table.add_row(dry_label if self.dry_run else label, str(self._stats[key]))
        table.add_row("Unrecognized", str(len(self.warnings)))
        table.add_row("Failures", str(len(self.failures)))
        console.print(table)

        for warning in self.warnings:
            console.print(f"[yellow]! {warning.kind}[/yellow] {warning.path}")
        for failure in self.failures:
            console.print(f"[red]✗ {failure.kind}[/red] {failure}")
