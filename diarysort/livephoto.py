"""
Live Photo detection.

A Live Photo arrives as a still image plus a short motion clip. The still is
what belongs in the diary; the clip is skipped, and in move mode removed once
its photo is already in the day directory.
"""

from pathlib import Path
from typing import Dict, Iterable

from .constants import get_logger
from .models import DayBucket, MediaKind

LIVEPHOTO_IMAGE_EXTENSIONS = (".heic", ".jpeg", ".jpg")
LIVEPHOTO_VIDEO_EXTENSIONS = (".mov", ".mp4")

logger = get_logger("livephoto")


def find_motion_clips(bucket: DayBucket, existing_names: Iterable[str]) -> Dict[Path, str]:
    """Map the day's motion clips to the diary name of their photo.

    A video is paired with a photo when both share a source file name stem
    (IMG_1234.HEIC + IMG_1234.MOV), or when a photo already in the day
    directory or planned for it has the video's HH-MM-SS name.
    """
    photos = [item for item in bucket.media
              if item.kind is MediaKind.PHOTO and item.extension in LIVEPHOTO_IMAGE_EXTENSIONS]
    by_source_stem = {item.path.stem.lower(): bucket.basename(item) for item in photos}
    by_name_stem = {Path(name).stem: name for name in existing_names
                    if Path(name).suffix.lower() in LIVEPHOTO_IMAGE_EXTENSIONS}
    by_name_stem.update((Path(bucket.basename(item)).stem, bucket.basename(item))
                        for item in photos)

    clips = {}
    for item in bucket.media:
        if item.kind is not MediaKind.VIDEO or item.extension not in LIVEPHOTO_VIDEO_EXTENSIONS:
            continue
        photo_name = by_source_stem.get(item.path.stem.lower()) or \
            by_name_stem.get(Path(bucket.basename(item)).stem)
        if photo_name:
            logger.debug(f"Live Photo motion clip: {item.path.name} (photo {photo_name})")
            clips[item.path] = photo_name
    return clips
