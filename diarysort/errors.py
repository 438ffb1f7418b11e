"""
Exception hierarchy for diarysort.

Every per-item or per-day problem is one of these; the pipeline stages raise
them for a single item, the caller records them in the run report and moves on.
"""

from datetime import date
from pathlib import Path
from typing import Optional


class DiarySortError(Exception):
    """Base exception for all diarysort errors."""
    kind = "Error"

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class ClassificationWarning(DiarySortError):
    """Raised for files of an unrecognized type; never fatal."""
    kind = "Unrecognized"

    def __init__(self, path: Path):
        super().__init__(f"unrecognized file type: {path.name}", path)


class ResolutionError(DiarySortError):
    """Raised when an item's capture time cannot be determined."""
    kind = "ResolutionError"


class MissingTimestamp(ResolutionError):
    kind = "MissingTimestamp"


class InvalidNoteName(ResolutionError):
    kind = "InvalidNoteName"

    def __init__(self, path: Path):
        super().__init__(f"note name is not a YYYY-MM-DD date: {path.name}", path)


class NamingCollision(DiarySortError):
    """Two items of one day would be placed under the same name."""
    kind = "NamingCollision"

    def __init__(self, day: date, first: Path, second: Path, basename: str):
        super().__init__(
            f"{first.name} and {second.name} both map to "
            f"{day.isoformat()}/{basename}", second)
        self.day = day
        self.first = first
        self.second = second
        self.basename = basename


class DestinationConflict(DiarySortError):
    """The destination already holds content from a different source."""
    kind = "DestinationConflict"

    def __init__(self, src: Path, dst: Path, detail: str = "holds different content"):
        super().__init__(f"cannot place {src.name}: {dst} {detail}", src)
        self.dst = dst


class TranscodeError(DiarySortError):
    kind = "TranscodeError"

    def __init__(self, src: Path, dst: Path, reason: str):
        super().__init__(f"transcoding {src.name} -> {dst} failed: {reason}", src)
        self.dst = dst


class PlacementError(DiarySortError):
    """An operating system error while applying an operation."""
    kind = "PlacementError"

    def __init__(self, src: Optional[Path], dst: Path, reason: str):
        name = src.name if src else dst.name
        super().__init__(f"could not place {name} at {dst}: {reason}", src or dst)
        self.dst = dst
