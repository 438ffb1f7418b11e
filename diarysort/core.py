"""
Core diary sorting pipeline.

classify -> resolve capture times -> bucket by day -> plan -> apply
"""

from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Set

from rich.console import Console
from rich.progress import Progress

from .bucketing import build_buckets
from .classifier import classify_all
from .config import RunConfig
from .constants import check_tool_availability, get_console, get_logger
from .conversion import FfmpegTranscoder, Transcoder
from .diary import DiaryTree
from .errors import DiarySortError
from .file_operations import FileOperations
from .models import DayBucket, MoveRename, PlacementOp, Transcode, WriteIndex
from .planner import PlacementPlanner
from .report import RunReport
from .timestamps import ExiftoolReader, MetadataReader, resolve_all


class DiarySorter:
    """Main class for sorting a flat folder of media and notes into the diary."""

    def __init__(self, config: RunConfig, reader: Optional[MetadataReader] = None,
                 transcoder: Optional[Transcoder] = None, console: Optional[Console] = None):
        self.config = config
        self.console = console or get_console()
        self.logger = get_logger()

        if reader is None:
            reader = ExiftoolReader(timezone=config.timezone)
            if not check_tool_availability(reader.command):
                self.logger.warning("exiftool unavailable: only file name timestamps can be used")
        if transcoder is None:
            transcoder = FfmpegTranscoder(preset=config.preset)
            if not check_tool_availability(transcoder.command):
                self.logger.warning("ffmpeg unavailable: videos will fail to transcode")
        self.reader = reader
        self.transcoder = transcoder

        self.tree = DiaryTree(config.dest)
        self.file_ops = FileOperations(self.transcoder, dry_run=config.dry_run,
                                       move_files=config.move_files)
        self.planner = PlacementPlanner(self.tree, self.reader, config.note_extension,
                                        move_files=config.move_files)
        self.report = RunReport(dry_run=config.dry_run)
        self.buckets: Dict[date, DayBucket] = {}

    def find_source_files(self) -> List[Path]:
        """Visible regular files directly inside the source directory, by name."""
        source = self.config.source
        if not source.is_dir():
            raise DiarySortError(f"Source directory not found: {source}", source)
        return sorted(path for path in source.iterdir()
                      if path.is_file() and not path.name.startswith("."))

    def plan(self) -> List[PlacementOp]:
        """Run every pure stage and the planner; nothing is written."""
        paths = self.find_source_files()
        self.report.increment("found", len(paths))
        self.logger.info(f"Found {len(paths)} files in {self.config.source}")
        for path in paths:
            self.logger.debug(f"Found: {path.name}")

        items, warnings = classify_all(paths, self.config.note_extension)
        self.report.warnings.extend(warnings)

        timed, resolution_failures = resolve_all(items, self.reader, jobs=self.config.jobs)
        self.report.add_failures(resolution_failures)

        selected = [item for item in timed if self.config.accepts(item.day)]
        if len(selected) < len(timed):
            self.logger.info(f"Date filter kept {len(selected)} of {len(timed)} files")

        buckets, collisions = build_buckets(selected, self.config.note_extension)
        self.report.add_failures(collisions)
        self.buckets = {bucket.day: bucket for bucket in buckets}
        self.report.days = [bucket.day for bucket in buckets]

        ops, placement_failures = self.planner.plan(buckets)
        self.report.add_failures(placement_failures)
        self.report.increment("unchanged", self.planner.already_placed)
        self.report.increment("motion", self.planner.motion_clips)
        self.report.operations = ops
        return ops

    def execute(self, ops: List[PlacementOp]) -> None:
        """Apply operations in order; one failure never stops the others."""
        failed_days: Set[date] = set()
        action = "Planning" if self.config.dry_run else "Placing"

        with Progress(console=self.console, transient=True) as progress:
            task = progress.add_task(f"{action} files...", total=len(ops))
            for op in ops:
                progress.update(task, description=f"{op.verb}: {self._label(op)}")
                try:
                    self.file_ops.apply(op)
                except DiarySortError as e:
                    self.logger.error(str(e))
                    self.report.add_failures([e])
                    if isinstance(op, (MoveRename, Transcode)):
                        failed_days.add(self.tree_day(op.dst))
                else:
                    self.report.record_applied(op)
                    if self.config.dry_run:
                        self.logger.info(f"DRY RUN: {op.verb} {self._label(op)}")
                progress.advance(task)

        for day in sorted(failed_days):
            self._reconcile_index(day)

    def _reconcile_index(self, day: date) -> None:
        """Regenerate a day's listing after some of its media failed to land."""
        bucket = self.buckets.get(day)
        if bucket is None:
            return

        media_only = DayBucket(day=day, items=bucket.media, basenames=dict(bucket.basenames))
        ops, _ = self.planner.index_writer.plan_day(media_only, placed_names=[])
        for op in ops:
            if not isinstance(op, WriteIndex):
                continue
            try:
                self.file_ops.apply(op)
            except DiarySortError as e:
                self.logger.error(str(e))
                self.report.add_failures([e])

    def tree_day(self, path: Path) -> date:
        year, month, day = path.parent.relative_to(self.tree.root).parts
        return date(int(year), int(month), int(day))

    def _label(self, op: PlacementOp) -> str:
        if isinstance(op, WriteIndex):
            return self.tree.display(op.path)
        if isinstance(op, (MoveRename, Transcode)):
            return f"{op.src.name} -> {self.tree.display(op.dst)}"
        return f"{op.src.name} ({op.reason})"

    def run(self) -> RunReport:
        """Plan and apply a full run, returning the aggregated report."""
        mode = "DRY RUN" if self.config.dry_run else "MOVE" if self.config.move_files else "COPY"
        self.logger.info(f"Starting run: {self.config.source} -> {self.config.dest} ({mode})")

        ops = self.plan()
        self.execute(ops)

        self.logger.info(f"Run finished with {len(self.report.failures)} failures")
        return self.report

    def print_summary(self) -> None:
        self.report.print_summary(self.console)


def organize(config: RunConfig, reader: Optional[MetadataReader] = None,
             transcoder: Optional[Transcoder] = None) -> RunReport:
    """Convenience entry point: run the whole pipeline for one configuration."""
    return DiarySorter(config, reader=reader, transcoder=transcoder).run()
