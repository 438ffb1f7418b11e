"""
Turn named day buckets into the operations that bring the diary up to date.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from .constants import get_logger
from .diary import DiaryTree
from .errors import DestinationConflict, DiarySortError, PlacementError, ResolutionError
from .file_operations import FileOperations
from .index import IndexNoteWriter
from .livephoto import find_motion_clips
from .models import (DayBucket, MediaKind, MoveRename, PlacementOp, RemoveSource, TimedItem,
                     Transcode)
from .timestamps import MetadataReader, parse_filename_stamp


class PlacementPlanner:
    """Plans moves, transcodes and index writes against the existing tree.

    A destination that already exists is never overwritten: it is either the
    same source placed by an earlier run (nothing to do) or a conflict.
    """

    def __init__(self, tree: DiaryTree, reader: MetadataReader, note_extension: str,
                 move_files: bool = True):
        self.tree = tree
        self.reader = reader
        self.move_files = move_files
        self.index_writer = IndexNoteWriter(tree, note_extension, move_files=move_files)
        self.logger = get_logger("planner")
        self.already_placed = 0
        self.motion_clips = 0

    def is_same_source(self, item: TimedItem, dst: Path) -> bool:
        """Check whether dst was produced from this item by an earlier run."""
        if FileOperations.is_duplicate(item.path, dst):
            return True
        if item.kind is not MediaKind.VIDEO:
            return False

        # Transcoded output differs byte-wise but carries the capture time over
        placed_at = self.read_video_timestamp(dst)
        if placed_at is not None:
            return placed_at.replace(microsecond=0) == item.captured_at
        return self.dated_by_file_name(item)

    def read_video_timestamp(self, path: Path) -> Optional[datetime]:
        try:
            return self.reader.read_timestamp(path, MediaKind.VIDEO)
        except ResolutionError:
            return None

    def dated_by_file_name(self, item: TimedItem) -> bool:
        """True when the item's time came from its file name, not its metadata.

        Such a video leaves no capture time in its transcode, so a destination
        without one is taken as the earlier output for the same item.
        """
        if parse_filename_stamp(item.path) != item.captured_at:
            return False
        return self.read_video_timestamp(item.path) is None

    def plan_media(self, bucket: DayBucket, item: TimedItem) -> Optional[PlacementOp]:
        """Plan one photo or video; returns None when it is already in place.

        Raises:
            DestinationConflict: dst holds content from another source
        """
        dst = self.tree.file(bucket.day, bucket.basename(item))
        if dst.exists():
            if not self.is_same_source(item, dst):
                raise DestinationConflict(item.path, dst)
            if self.move_files:
                return RemoveSource(item.path, "already in the diary")
            return None

        if item.kind is MediaKind.VIDEO:
            return Transcode(item.path, dst)
        return MoveRename(item.path, dst)

    def plan_day(self, bucket: DayBucket) -> Tuple[List[PlacementOp], List[DiarySortError]]:
        ops: List[PlacementOp] = []
        failures: List[DiarySortError] = []
        placed_names = []

        try:
            existing_names = self.tree.list_day(bucket.day)
        except OSError:
            # The index writer reports the unreadable day directory
            existing_names = []
        motion_clips = find_motion_clips(bucket, existing_names)

        for item in bucket.media:
            if item.path in motion_clips:
                continue
            try:
                op = self.plan_media(bucket, item)
            except DestinationConflict as e:
                self.logger.warning(str(e))
                failures.append(e)
                continue
            except OSError as e:
                error = PlacementError(item.path, self.tree.file(bucket.day, bucket.basename(item)),
                                       f"could not compare with existing file: {e}")
                self.logger.error(str(error))
                failures.append(error)
                continue
            if op is None or isinstance(op, RemoveSource):
                self.logger.debug(f"Already in the diary: {item.path}")
                self.already_placed += 1
                if op is None:
                    continue
            else:
                placed_names.append(bucket.basename(item))
            ops.append(op)

        # A clip leaves the source only once its photo is already in the diary
        for item in bucket.media:
            photo_name = motion_clips.get(item.path)
            if photo_name is None:
                continue
            self.motion_clips += 1
            if self.move_files and photo_name in existing_names:
                ops.append(RemoveSource(item.path, "already in the diary as a photo"))

        index_ops, index_failures = self.index_writer.plan_day(bucket, placed_names)
        for failure in index_failures:
            self.logger.warning(str(failure))

        return ops + index_ops, failures + index_failures

    def plan(self, buckets: List[DayBucket]) -> Tuple[List[PlacementOp], List[DiarySortError]]:
        """Plan every bucket in date order; days are independent of each other."""
        ops: List[PlacementOp] = []
        failures: List[DiarySortError] = []
        for bucket in buckets:
            day_ops, day_failures = self.plan_day(bucket)
            ops.extend(day_ops)
            failures.extend(day_failures)
        self.logger.info(f"Planned {len(ops)} operations for {len(buckets)} days")
        return ops, failures
