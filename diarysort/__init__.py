"""
diarysort - Sort photos, videos and dated notes into a per-day diary.

Files from a flat folder are placed under YEAR/MONTH/DAY by capture time,
renamed to HH-MM-SS.<ext>, and every day gets an index note that keeps the
day's own note text followed by a listing of its media. MIT License.
"""

__version__ = "1.0.0"
__copyright__ = "Copyright (c) 2025 The diarysort developers"


# Public API
from .cli import main
from .config import Config, RunConfig
from .conversion import FfmpegTranscoder
from .core import DiarySorter, organize
from .file_operations import FileOperations
from .planner import PlacementPlanner
from .report import RunReport
from .timestamps import ExiftoolReader

__all__ = [ "main", "Config", "RunConfig", "FfmpegTranscoder", "DiarySorter", "organize",
            "FileOperations", "PlacementPlanner", "RunReport", "ExiftoolReader" ]
