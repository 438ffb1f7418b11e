"""
Run history: a log file per run and a global audit log of run summaries.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from .report import RunReport


class HistoryManager:
    """Manages per-run log files under <root>/history and the runs.log digest."""

    def __init__(self, dest_path: Path, root_dir: Path, dry_run: bool = False):
        self.dest_path = dest_path
        self.root_dir = root_dir
        self.dry_run = dry_run
        self.history_dir = self.root_dir / "history"
        self.runs_audit_log = self.root_dir / "runs.log"
        self.run_folder: Optional[Path] = None
        self.run_log: Optional[Path] = None
        self._handler: Optional[logging.Handler] = None

    def _sanitize_dest_name(self, dest_path: Path) -> str:
        """Convert destination path to safe folder name."""
        name = dest_path.name
        sanitized = re.sub(r'[^\w\-_]', '-', name)
        sanitized = re.sub(r'-+', '-', sanitized)
        return sanitized.strip('-') or "diary"

    def _create_run_folder(self) -> Path:
        timestamp = datetime.now().strftime("%Y-%m-%d")
        base_name = f"{timestamp}+{self._sanitize_dest_name(self.dest_path)}"

        # Handle collisions with an earlier run of the same day
        folder = self.history_dir / base_name
        counter = 1
        while folder.exists() and any(folder.iterdir()):
            folder = self.history_dir / f"{base_name}-{counter:02d}"
            counter += 1

        folder.mkdir(parents=True, exist_ok=True)
        return folder

    def attach(self, logger: logging.Logger) -> None:
        """Configure logger to also write to this run's log file."""
        if self.dry_run:
            return

        self.run_folder = self._create_run_folder()
        self.run_log = self.run_folder / "run.log"

        file_handler = logging.FileHandler(self.run_log, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s [%(name)s] %(levelname)s: %(message)s'))
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)
        self._handler = file_handler

    def detach(self, logger: logging.Logger) -> None:
        if self._handler is not None:
            logger.removeHandler(self._handler)
            self._handler.close()
            self._handler = None

    def log_run_summary(self, source: Path, report: RunReport) -> None:
        """Append a one-line record of the run to runs.log."""
        if self.dry_run:
            return

        self.root_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        folder = self.run_folder.name if self.run_folder else "-"
        summary = (f"{timestamp} | Source: {source} | Dest: {self.dest_path} | "
                   f"{report.summary_line()} | History: {folder}\n")

        with open(self.runs_audit_log, 'a', encoding='utf-8') as f:
            f.write(summary)
