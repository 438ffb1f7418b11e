"""
Apply placement operations to the diary tree.

Sources are only removed once their destination is verified, so an
interrupted run can always be repeated.
"""

import hashlib
import os
import shutil
import tempfile
from pathlib import Path

from .constants import get_logger
from .conversion import Transcoder
from .errors import DestinationConflict, PlacementError, TranscodeError
from .models import MoveRename, PlacementOp, RemoveSource, Transcode, WriteIndex


class FileOperations:
    """Executes PlacementOps with dry-run and move/copy support."""

    def __init__(self, transcoder: Transcoder, dry_run: bool = False, move_files: bool = True):
        self.transcoder = transcoder
        self.dry_run = dry_run
        self.move_files = move_files
        self.logger = get_logger("file_operations")

    @staticmethod
    def is_duplicate(source_file: Path, dest_file: Path) -> bool:
        """Check if files are duplicates based on size and content."""
        if not dest_file.exists():
            return False

        # Quick size check
        if source_file.stat().st_size != dest_file.stat().st_size:
            return False

        return FileOperations.sha256(source_file) == FileOperations.sha256(dest_file)

    @staticmethod
    def sha256(path: Path) -> str:
        digest = hashlib.sha256()
        with open(path, 'rb') as f:
            for chunk in iter(lambda: f.read(1024 * 1024), b""):
                digest.update(chunk)
        return digest.hexdigest()

    def ensure_directory(self, directory: Path) -> None:
        """Create directory and parents if needed, with dry-run support."""
        if not self.dry_run:
            directory.mkdir(parents=True, exist_ok=True)

    def apply(self, op: PlacementOp) -> None:
        """Apply one operation, raising a DiarySortError on failure."""
        if self.dry_run:
            return

        if isinstance(op, MoveRename):
            self.move_file_safely(op.src, op.dst)
        elif isinstance(op, Transcode):
            self.transcode_safely(op.src, op.dst)
        elif isinstance(op, WriteIndex):
            self.write_index(op)
        elif isinstance(op, RemoveSource):
            self.remove_source(op.src)
        else:
            raise TypeError(f"Unknown operation: {op!r}")

    def move_file_safely(self, source: Path, dest: Path) -> None:
        """Move or copy a file without ever overwriting the destination."""
        if dest.exists():
            raise DestinationConflict(source, dest, "appeared during the run")

        try:
            self.ensure_directory(dest.parent)

            if self.move_files:
                shutil.move(str(source), str(dest))
            else:
                shutil.copy2(str(source), str(dest))

            # Verify the operation
            if not dest.exists():
                raise FileNotFoundError(f"File not found after move: {dest}")
            if self.move_files and source.exists():
                raise FileExistsError(f"Source file still exists after move: {source}")

        except OSError as e:
            raise PlacementError(source, dest, str(e)) from e

        self.logger.info(f"{source} -> {dest}")

    def transcode_safely(self, source: Path, dest: Path) -> None:
        """Transcode into the diary and drop the source only on success."""
        if dest.exists():
            raise DestinationConflict(source, dest, "appeared during the run")

        try:
            self.ensure_directory(dest.parent)
        except OSError as e:
            raise PlacementError(source, dest, str(e)) from e

        try:
            succeeded = self.transcoder.transcode(source, dest)
        except OSError as e:
            raise TranscodeError(source, dest, str(e)) from e
        if not succeeded:
            raise TranscodeError(source, dest, "transcoder reported failure")
        if not dest.exists():
            raise TranscodeError(source, dest, "no output was written")

        self.logger.info(f"{source} => {dest}")
        if self.move_files:
            self.remove_source(source)

    def write_index(self, op: WriteIndex) -> None:
        """Atomically replace the day's index note, then drop merged note sources."""
        try:
            self.ensure_directory(op.path.parent)
            fd, temp_name = tempfile.mkstemp(dir=op.path.parent, prefix=f".{op.path.name}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(op.content)
                os.replace(temp_name, op.path)
            except BaseException:
                if os.path.exists(temp_name):
                    os.unlink(temp_name)
                raise
        except OSError as e:
            raise PlacementError(op.sources[0] if op.sources else None, op.path, str(e)) from e

        self.logger.info(f"Wrote {op.path}")
        if self.move_files:
            for source in op.sources:
                self.remove_source(source)

    def remove_source(self, source: Path) -> None:
        if not self.move_files:
            return
        try:
            source.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise PlacementError(source, source, f"could not remove source: {e}") from e
        self.logger.info(f"Removed {source}")
