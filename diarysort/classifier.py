"""
Map input files to the kinds of content diarysort understands.
"""

from pathlib import Path
from typing import Iterable, List, Tuple

from .constants import MOVIE_EXTENSIONS, PHOTO_EXTENSIONS, get_logger
from .errors import ClassificationWarning
from .models import MediaKind, SourceItem

logger = get_logger("classifier")


def classify(path: Path, note_extension: str) -> SourceItem:
    """Classify a file by its lowercase extension."""
    ext = path.suffix.lower()
    if ext == note_extension:
        kind = MediaKind.NOTE
    elif ext in PHOTO_EXTENSIONS:
        kind = MediaKind.PHOTO
    elif ext in MOVIE_EXTENSIONS:
        kind = MediaKind.VIDEO
    else:
        kind = MediaKind.UNKNOWN
    return SourceItem(path=path, kind=kind)


def classify_all(paths: Iterable[Path], note_extension: str
                 ) -> Tuple[List[SourceItem], List[ClassificationWarning]]:
    """Classify every path, splitting off unrecognized files as warnings."""
    items = []
    warnings = []
    for path in paths:
        item = classify(path, note_extension)
        if item.kind is MediaKind.UNKNOWN:
            warning = ClassificationWarning(path)
            logger.warning(str(warning))
            warnings.append(warning)
        else:
            logger.debug(f"Found {item.kind.value}: {path}")
            items.append(item)
    return items, warnings
