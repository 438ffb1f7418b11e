"""
Records passed between the pipeline stages.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Tuple, Union


class MediaKind(Enum):
    PHOTO = "photo"
    VIDEO = "video"
    NOTE = "note"
    UNKNOWN = "unknown"

    @property
    def is_media(self) -> bool:
        return self in (MediaKind.PHOTO, MediaKind.VIDEO)


@dataclass(frozen=True)
class SourceItem:
    """A classified input file."""
    path: Path
    kind: MediaKind

    @property
    def extension(self) -> str:
        return self.path.suffix.lower()


@dataclass(frozen=True)
class TimedItem:
    """A source item with its resolved local capture time."""
    item: SourceItem
    captured_at: datetime

    @property
    def path(self) -> Path:
        return self.item.path

    @property
    def kind(self) -> MediaKind:
        return self.item.kind

    @property
    def extension(self) -> str:
        return self.item.extension

    @property
    def day(self) -> date:
        return self.captured_at.date()

    def sort_key(self) -> Tuple[datetime, str]:
        return self.captured_at, self.path.name


@dataclass
class DayBucket:
    """Items captured on one calendar day, ordered by time of day.

    `basenames` maps each item's source path to its name inside the day
    directory; it is filled in by the bucketing engine.
    """
    day: date
    items: List[TimedItem] = field(default_factory=list)
    basenames: Dict[Path, str] = field(default_factory=dict)

    @property
    def media(self) -> List[TimedItem]:
        return [item for item in self.items if item.kind.is_media]

    @property
    def notes(self) -> List[TimedItem]:
        return [item for item in self.items if item.kind is MediaKind.NOTE]

    def basename(self, item: TimedItem) -> str:
        return self.basenames[item.path]


@dataclass(frozen=True)
class MoveRename:
    src: Path
    dst: Path

    verb = "Move"


@dataclass(frozen=True)
class Transcode:
    src: Path
    dst: Path

    verb = "Transcode"


@dataclass(frozen=True)
class WriteIndex:
    day: date
    path: Path
    content: str
    sources: Tuple[Path, ...] = ()  # note inputs merged into the content

    verb = "Write index"


@dataclass(frozen=True)
class RemoveSource:
    """Drop a source whose content is already present in the diary."""
    src: Path
    reason: str

    verb = "Remove"


PlacementOp = Union[MoveRename, Transcode, WriteIndex, RemoveSource]
