"""Capture time resolution for photos, videos and dated notes."""

import json
import re
import subprocess
import zoneinfo
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from .constants import EMPTY_EXIF_DATES, PHOTO_DATE_TAGS, VIDEO_DATE_TAGS, get_logger
from .errors import InvalidNoteName, MissingTimestamp, ResolutionError
from .models import MediaKind, SourceItem, TimedItem

logger = get_logger("timestamps")

NOTE_NAME = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
FILENAME_STAMP = re.compile(r"^(\d{4})-(\d{2})-(\d{2})_(\d{2})-(\d{2})-(\d{2})(?:\D|$)")
EXIF_DATETIME = re.compile(
    r'(\d{4}[-:]\d{2}[-:]\d{2})[T ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:?\d{2})?')


class MetadataReader(Protocol):
    """Reads the embedded capture time of a photo or video."""

    def read_timestamp(self, path: Path, kind: MediaKind) -> Optional[datetime]:
        ...


def to_local(aware_dt: datetime, timezone: Optional[str] = None) -> datetime:
    """Convert an aware datetime to naive wall-clock time in the given zone."""
    if timezone:
        local_dt = aware_dt.astimezone(zoneinfo.ZoneInfo(timezone))
    else:
        local_dt = aware_dt.astimezone()
    return local_dt.replace(tzinfo=None)


def parse_exif_datetime(value: str, timezone: Optional[str] = None) -> Optional[datetime]:
    """Parse an exiftool or ISO 8601 date-time string to local wall-clock time.

    Handles raw EXIF (2018:01:01 12:34:56.745+01:00) and ISO 8601
    (2018-01-01T12:34:56Z) forms. Sub-second digits are dropped. A value
    without an offset is already local time and is returned unchanged.
    """
    value = value.strip()
    if value in EMPTY_EXIF_DATES:
        return None

    match = EXIF_DATETIME.match(value)
    if not match:
        return None

    date_part = match.group(1).replace(':', '-')
    try:
        base_dt = datetime.strptime(f"{date_part} {match.group(2)}", "%Y-%m-%d %H:%M:%S")
    except ValueError:
        return None

    offset = match.group(4)
    if not offset:
        return base_dt
    if offset == 'Z':
        offset = '+00:00'
    elif ':' not in offset:
        offset = f"{offset[:-2]}:{offset[-2:]}"

    aware_dt = datetime.fromisoformat(f"{base_dt.isoformat()}{offset}")
    return to_local(aware_dt, timezone)


class ExiftoolReader:
    """MetadataReader backed by the exiftool command line program."""

    def __init__(self, timezone: Optional[str] = None, command: str = "exiftool"):
        self.timezone = timezone
        self.command = command

    def build_command(self, path: Path, kind: MediaKind) -> List[str]:
        tags = VIDEO_DATE_TAGS if kind is MediaKind.VIDEO else PHOTO_DATE_TAGS
        cmd = [self.command, "-q", "-json"]
        if kind is MediaKind.VIDEO:
            # QuickTime stamps are UTC; have exiftool report them with an offset
            cmd += ["-api", "QuickTimeUTC"]
        cmd += [f"-{tag}" for tag in tags]
        cmd.append(str(path))
        return cmd

    def read_timestamp(self, path: Path, kind: MediaKind) -> Optional[datetime]:
        try:
            result = subprocess.run(self.build_command(path, kind),
                                    capture_output=True, text=True, check=True)
        except FileNotFoundError:
            raise MissingTimestamp(f"{self.command} is not installed", path)
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise MissingTimestamp(
                f"{self.command} failed for {path.name}: {stderr or f'exit status {e.returncode}'}",
                path)

        try:
            records = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise MissingTimestamp(f"Could not parse {self.command} output for {path.name}: {e}",
                                   path)

        if not records:
            return None
        tags = VIDEO_DATE_TAGS if kind is MediaKind.VIDEO else PHOTO_DATE_TAGS
        return canonical_exif_date(records[0], tags, self.timezone)


def canonical_exif_date(values: Dict[str, object], tags: Sequence[str],
                        timezone: Optional[str] = None) -> Optional[datetime]:
    """Return the first parseable capture time among the tags, in priority order."""
    for tag in tags:
        value = values.get(tag)
        if value is None:
            continue
        parsed = parse_exif_datetime(str(value), timezone)
        if parsed:
            logger.debug(f"{values.get('SourceFile', '?')}[{tag}] = {parsed}")
            return parsed
    return None


def parse_note_name(path: Path) -> datetime:
    """Dated notes are named YYYY-MM-DD; they sort first within their day."""
    match = NOTE_NAME.match(path.stem)
    if not match:
        raise InvalidNoteName(path)
    year, month, day = (int(part) for part in match.groups())
    try:
        return datetime(year, month, day)
    except ValueError:
        raise InvalidNoteName(path)


def parse_filename_stamp(path: Path) -> Optional[datetime]:
    """Parse a YYYY-MM-DD_HH-MM-SS prefix as written by phone cameras and exports."""
    match = FILENAME_STAMP.match(path.stem)
    if not match:
        return None
    try:
        return datetime(*(int(part) for part in match.groups()))
    except ValueError:
        return None


def resolve(item: SourceItem, reader: MetadataReader) -> TimedItem:
    """Resolve the capture time of a classified item.

    Raises:
        MissingTimestamp: photo/video without a usable capture time
        InvalidNoteName: note whose name is not a date
    """
    if item.kind is MediaKind.NOTE:
        return TimedItem(item, parse_note_name(item.path))

    if not item.kind.is_media:
        raise ResolutionError(f"cannot resolve {item.kind.value} file", item.path)

    try:
        captured_at = reader.read_timestamp(item.path, item.kind)
    except ResolutionError:
        captured_at = parse_filename_stamp(item.path)
        if captured_at is None:
            raise
        logger.debug(f"Metadata unreadable, using file name timestamp for {item.path.name}")

    if captured_at is None:
        captured_at = parse_filename_stamp(item.path)
        if captured_at is not None:
            logger.debug(f"Using file name timestamp for {item.path.name}")
    if captured_at is None:
        raise MissingTimestamp(f"no capture timestamp in {item.path.name}", item.path)

    return TimedItem(item, captured_at.replace(microsecond=0))


def resolve_all(items: Iterable[SourceItem], reader: MetadataReader, jobs: int = 1
                ) -> Tuple[List[TimedItem], List[ResolutionError]]:
    """Resolve every item; failures are collected rather than raised.

    With jobs > 1 the (read-only) lookups run on a thread pool. The result is
    sorted so it does not depend on completion order.
    """
    items = list(items)

    def attempt(item: SourceItem):
        try:
            return resolve(item, reader)
        except ResolutionError as e:
            return e

    if jobs > 1 and len(items) > 1:
        with ThreadPoolExecutor(max_workers=jobs) as executor:
            outcomes = list(executor.map(attempt, items))
    else:
        outcomes = [attempt(item) for item in items]

    timed = []
    failures = []
    for outcome in outcomes:
        if isinstance(outcome, ResolutionError):
            logger.warning(str(outcome))
            failures.append(outcome)
        else:
            timed.append(outcome)

    timed.sort(key=lambda t: (t.captured_at, t.path.name, str(t.path)))
    return timed, failures
