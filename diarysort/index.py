"""
Per-day index notes: the day's own note text followed by a media listing.

The listing is always recomputed from the day directory as it will look after
placement, so re-running never duplicates it.
"""

import re
from pathlib import Path
from typing import Iterable, List, Optional, Pattern, Tuple

from .bucketing import index_basename
from .constants import (DEFAULT_LISTING_FORMAT, MOVIE_EXTENSIONS, NOTE_LISTING_FORMATS,
                        PHOTO_EXTENSIONS, get_logger)
from .diary import DiaryTree
from .errors import DestinationConflict, DiarySortError, PlacementError
from .models import DayBucket, PlacementOp, RemoveSource, WriteIndex

logger = get_logger("index")


def listing_format(note_extension: str) -> Tuple[str, str]:
    return NOTE_LISTING_FORMATS.get(note_extension, DEFAULT_LISTING_FORMAT)


def normalize_body(text: str) -> str:
    """Drop trailing blank lines so bodies compare equal across rewrites."""
    return text.rstrip("\n \t")


def listing_line_pattern(template: str) -> Pattern[str]:
    """Regex matching one generated listing line, capturing the file name."""
    first, _, rest = template.partition("{name}")
    tail = "(?P=name)".join(re.escape(part) for part in rest.split("{name}"))
    return re.compile(f"{re.escape(first)}(?P<name>[^/\\n]+?){tail}$")


def split_note(text: str, note_extension: str) -> Tuple[str, Optional[str]]:
    """Split an index note into (body, listing).

    The listing starts at the last marker line, and only counts as one when
    every non-blank line after the marker is a generated listing line. A
    heading the user wrote with the same title stays part of the body.
    """
    marker, template = listing_format(note_extension)
    pattern = listing_line_pattern(template)
    lines = text.splitlines()
    for idx in range(len(lines) - 1, -1, -1):
        if lines[idx].rstrip() != marker:
            continue
        entries = [line for line in lines[idx + 1:] if line.strip()]
        if entries and all(pattern.match(line.rstrip()) for line in entries):
            return normalize_body("\n".join(lines[:idx])), "\n".join(lines[idx:])
        break
    return normalize_body(text), None


def render_note(body: str, media_names: Iterable[str], note_extension: str) -> str:
    marker, template = listing_format(note_extension)
    sections = []
    body = normalize_body(body)
    if body:
        sections.append(body)

    names = sorted(set(media_names))
    if names:
        lines = [marker] + [template.format(name=name) for name in names]
        sections.append("\n".join(lines))

    if not sections:
        return ""
    return "\n\n".join(sections) + "\n"


def is_media_name(name: str) -> bool:
    suffix = Path(name).suffix.lower()
    return suffix in PHOTO_EXTENSIONS or suffix in MOVIE_EXTENSIONS


class IndexNoteWriter:
    """Computes the WriteIndex operation for one day."""

    def __init__(self, tree: DiaryTree, note_extension: str, move_files: bool = True):
        self.tree = tree
        self.note_extension = note_extension
        self.move_files = move_files

    @property
    def index_name(self) -> str:
        return index_basename(self.note_extension)

    def media_after_placement(self, bucket_day, placed_names: Iterable[str]) -> List[str]:
        existing = [name for name in self.tree.list_day(bucket_day) if is_media_name(name)]
        return sorted(set(existing) | set(placed_names))

    def plan_day(self, bucket: DayBucket, placed_names: Iterable[str]
                 ) -> Tuple[List[PlacementOp], List[DiarySortError]]:
        """Plan the index note of a day.

        Args:
            bucket: the named bucket for the day
            placed_names: basenames of media this run will add to the day

        Returns:
            operations (RemoveSource for an already-merged note, then at most
            one WriteIndex) and per-note failures
        """
        day = bucket.day
        index_path = self.tree.file(day, self.index_name)
        try:
            existing_text = self.tree.read_text(day, self.index_name)
            media_names = self.media_after_placement(day, placed_names)
        except (OSError, UnicodeDecodeError) as e:
            # Leave an unreadable index alone rather than replace it
            error = PlacementError(None, index_path, f"could not read existing index: {e}")
            logger.error(str(error))
            return [], [error]

        existing_body = ""
        if existing_text is not None:
            existing_body, _ = split_note(existing_text, self.note_extension)

        ops: List[PlacementOp] = []
        failures: List[DiarySortError] = []
        body = existing_body
        sources: Tuple[Path, ...] = ()

        for note in bucket.notes:
            try:
                note_body = normalize_body(note.path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError) as e:
                failures.append(PlacementError(note.path, index_path, str(e)))
                continue

            if existing_body and note_body != existing_body:
                failures.append(DestinationConflict(
                    note.path, index_path, "already holds a different note"))
                continue

            if existing_body and note_body == existing_body:
                if self.move_files:
                    ops.append(RemoveSource(note.path, "already in the diary"))
                continue

            body = note_body
            sources = (note.path,)

        content = render_note(body, media_names, self.note_extension)
        if not content or content == existing_text:
            # Nothing new, but a consumed note still has to leave the source
            if sources and self.move_files:
                ops.append(RemoveSource(sources[0], "already in the diary"))
            return ops, failures

        ops.append(WriteIndex(day=day, path=index_path, content=content, sources=sources))
        return ops, failures
