"""
Read-only view of the destination diary tree.
"""

from datetime import date
from pathlib import Path
from typing import List, Optional


class DiaryTree:
    """Path arithmetic and lookups for a <year>/<month>/<day>/ tree."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def day_dir(self, day: date) -> Path:
        return self.root / f"{day.year:04d}" / f"{day.month:02d}" / f"{day.day:02d}"

    def file(self, day: date, name: str) -> Path:
        return self.day_dir(day) / name

    def has(self, day: date, name: str) -> bool:
        return self.file(day, name).exists()

    def list_day(self, day: date) -> List[str]:
        """Names of the visible files already in a day directory, sorted."""
        directory = self.day_dir(day)
        if not directory.is_dir():
            return []
        return sorted(entry.name for entry in directory.iterdir()
                      if entry.is_file() and not entry.name.startswith("."))

    def read_text(self, day: date, name: str) -> Optional[str]:
        path = self.file(day, name)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    def display(self, path: Path) -> str:
        """Short diary:YYYY/MM/DD/name form for log and report output."""
        try:
            return f"diary:{path.relative_to(self.root)}"
        except ValueError:
            return str(path)
