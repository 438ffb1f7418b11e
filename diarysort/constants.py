"""
File extension constants, tool presets and shared accessors for diarysort.
"""

import logging
import shutil
from functools import lru_cache
from typing import Dict, Optional, Tuple

from rich.console import Console

PROGRAM = "diarysort"

# File extension constants
JPG_EXTENSIONS = (".jpg", ".jpeg", ".jpe")
RAW_EXTENSIONS = (
    ".3fr", ".arw", ".cr2", ".cr3", ".crw", ".dcr", ".dng", ".erf", ".heic",
    ".heif", ".kdc", ".mef", ".mos", ".mrw", ".nef", ".nrw", ".orf", ".pef",
    ".raf", ".raw", ".rw2", ".rwl", ".sr2", ".srf", ".srw", ".x3f",
)
IMAGE_EXTENSIONS = (".png", ".webp", ".gif", ".tif", ".tiff", ".bmp")
PHOTO_EXTENSIONS = JPG_EXTENSIONS + RAW_EXTENSIONS + IMAGE_EXTENSIONS
MOVIE_EXTENSIONS = (
    ".3g2", ".3gp", ".avi", ".flv", ".m2ts", ".m4v", ".mkv", ".mov", ".mp4",
    ".mpeg", ".mpg", ".mts", ".ogv", ".ts", ".webm", ".wmv",
)
DEFAULT_NOTE_EXTENSION = ".org"

INDEX_STEM = "index"

# Note listing syntax, keyed by note extension: (marker line, line template)
NOTE_LISTING_FORMATS: Dict[str, Tuple[str, str]] = {
    ".org": ("* Media", "- [[file:{name}][{name}]]"),
    ".md": ("## Media", "- [{name}]({name})"),
}
DEFAULT_LISTING_FORMAT = ("Media:", "- {name}")

# ffmpeg argument presets placed between the input and output paths
TRANSCODE_PRESETS: Dict[str, Tuple[str, ...]] = {
    "hevc": (
        "-c:v", "libx265",          # H.265 video codec
        "-c:a", "aac",              # AAC audio codec
        "-preset", "medium",        # Encoding speed/quality balance
        "-movflags", "+faststart+use_metadata_tags",
        "-map_metadata", "0:g",     # Global metadata only
        "-pix_fmt", "yuv420p",      # QuickTime/macOS compatibility
        "-crf", "28",
        "-tag:v", "hvc1",           # Correct fourCC code for H.265/MP4
    ),
    "h264": (
        "-c:v", "libx264",
        "-c:a", "aac",
        "-preset", "medium",
        "-movflags", "+faststart+use_metadata_tags",
        "-map_metadata", "0:g",
        "-pix_fmt", "yuv420p",
        "-crf", "23",
    ),
    "remux": (
        "-c", "copy",
        "-map_metadata", "0:g",
    ),
}
DEFAULT_PRESET = "hevc"

# Containers that can hold the HEVC/H.264 + AAC presets; other videos are remuxed
REENCODE_CONTAINERS = (".mp4", ".mov", ".m4v")

# exiftool tags holding the capture time, in priority order
PHOTO_DATE_TAGS = ("DateTimeOriginal", "SubSecDateTimeOriginal", "CreateDate")
VIDEO_DATE_TAGS = ("CreationDate", "MediaCreateDate", "CreateDate")
EMPTY_EXIF_DATES = ("", "-", "0000:00:00 00:00:00")


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the program logger or one of its children."""
    if name is None or name == PROGRAM:
        return logging.getLogger(PROGRAM)
    return logging.getLogger(f"{PROGRAM}.{name}")


@lru_cache(maxsize=None)
def get_console() -> Console:
    """Shared rich console for progress bars, tables and log output."""
    return Console()


def check_tool_availability(cmd: str) -> bool:
    """Check whether an external command can be found on PATH."""
    return shutil.which(cmd) is not None
