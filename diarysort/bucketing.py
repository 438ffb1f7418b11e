"""
Group resolved items into calendar days and name them.
"""

from collections import defaultdict
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from .constants import INDEX_STEM, get_logger
from .errors import NamingCollision
from .models import DayBucket, MediaKind, TimedItem

logger = get_logger("bucketing")


def media_basename(item: TimedItem) -> str:
    """HH-MM-SS.<ext> from the time of day and the original extension."""
    return f"{item.captured_at.strftime('%H-%M-%S')}{item.item.extension}"


def index_basename(note_extension: str) -> str:
    return f"{INDEX_STEM}{note_extension}"


def assign_basename(item: TimedItem, note_extension: str) -> str:
    if item.kind is MediaKind.NOTE:
        return index_basename(note_extension)
    return media_basename(item)


def name_bucket(bucket: DayBucket, note_extension: str) -> None:
    """Fill in the bucket's basenames, refusing to disambiguate clashes."""
    taken: Dict[str, Path] = {}
    for item in bucket.items:
        name = assign_basename(item, note_extension)
        if name in taken:
            raise NamingCollision(bucket.day, taken[name], item.path, name)
        taken[name] = item.path
        bucket.basenames[item.path] = name


def build_buckets(items: Iterable[TimedItem], note_extension: str
                  ) -> Tuple[List[DayBucket], List[NamingCollision]]:
    """Partition items into per-day buckets sorted by date.

    Within a day items are ordered by time of day, then by file name. A day
    with a naming collision is dropped from the result and reported.
    """
    by_day: Dict[date, List[TimedItem]] = defaultdict(list)
    for item in items:
        by_day[item.day].append(item)

    buckets = []
    collisions = []
    for day in sorted(by_day):
        bucket = DayBucket(day=day, items=sorted(by_day[day], key=TimedItem.sort_key))
        try:
            name_bucket(bucket, note_extension)
        except NamingCollision as e:
            logger.error(str(e))
            collisions.append(e)
            continue
        buckets.append(bucket)

    return buckets, collisions
