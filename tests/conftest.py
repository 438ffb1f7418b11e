"""
pytest configuration and fixtures for diarysort tests.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from diarysort.config import RunConfig
from diarysort.core import DiarySorter
from diarysort.errors import MissingTimestamp
from diarysort.models import MediaKind


class FakeMetadataReader:
    """Capture times keyed by file name instead of embedded metadata."""

    def __init__(self, timestamps: Optional[Dict[str, datetime]] = None,
                 broken: Optional[List[str]] = None):
        self.timestamps = dict(timestamps or {})
        self.broken = set(broken or [])
        self.calls: List[Path] = []

    def read_timestamp(self, path: Path, kind: MediaKind) -> Optional[datetime]:
        self.calls.append(path)
        if path.name in self.broken:
            raise MissingTimestamp(f"unreadable metadata in {path.name}", path)
        return self.timestamps.get(path.name)


class FakeTranscoder:
    """Writes prefix + input bytes to the output, or fails on request."""

    def __init__(self, fail: bool = False, prefix: bytes = b""):
        self.fail = fail
        self.prefix = prefix
        self.calls: List[tuple] = []

    def transcode(self, src: Path, dst: Path) -> bool:
        self.calls.append((src, dst))
        if self.fail:
            return False
        dst.write_bytes(self.prefix + src.read_bytes())
        return True


@dataclass
class CliResult:
    """Result from running CLI command."""
    exit_code: int
    output: str


@pytest.fixture
def source_dir(tmp_path):
    path = tmp_path / "source"
    path.mkdir()
    return path


@pytest.fixture
def diary_dir(tmp_path):
    path = tmp_path / "diary"
    path.mkdir()
    return path


@pytest.fixture
def create_test_files(source_dir):
    """Helper to create test files with specific properties."""

    def create_files(file_specs: List[dict], directory: Optional[Path] = None) -> Path:
        """Create test files based on specifications.

        Args:
            file_specs: List of dicts with keys:
                - name: filename (may contain subdirectories)
                - content: file content (optional)
                - mtime: modification time as datetime (optional)
            directory: where to create them (default: the source folder)
        """
        test_dir = directory or source_dir
        for spec in file_specs:
            file_path = test_dir / spec['name']
            file_path.parent.mkdir(parents=True, exist_ok=True)

            content = spec.get('content', f"content of {spec['name']}".encode())
            if isinstance(content, str):
                file_path.write_text(content)
            else:
                file_path.write_bytes(content)

            if 'mtime' in spec:
                mtime = spec['mtime'].timestamp()
                os.utime(file_path, (mtime, mtime))

        return test_dir

    return create_files


@pytest.fixture
def reader():
    return FakeMetadataReader({
        "IMG_1234.jpg": datetime(2018, 1, 1, 12, 34, 56),
        "IMG_1235.jpg": datetime(2018, 1, 2, 21, 37, 0),
    })


@pytest.fixture
def transcoder():
    return FakeTranscoder()


@pytest.fixture
def make_sorter(source_dir, diary_dir, reader, transcoder):
    """Build a DiarySorter over the test folders with fake external tools."""

    def build(reader_override=None, **overrides) -> DiarySorter:
        settings = dict(source=source_dir, dest=diary_dir)
        settings.update(overrides)
        return DiarySorter(RunConfig(**settings),
                           reader=reader_override or reader,
                           transcoder=transcoder)

    return build


@pytest.fixture
def diary_files():
    """Relative paths of every file in a diary tree, sorted."""

    def list_files(root: Path) -> List[str]:
        return sorted(str(path.relative_to(root)) for path in root.rglob("*") if path.is_file())

    return list_files


@pytest.fixture
def snapshot():
    """Byte-level snapshot of a directory tree."""

    def take(root: Path) -> Dict[str, bytes]:
        return {str(path.relative_to(root)): path.read_bytes()
                for path in sorted(root.rglob("*")) if path.is_file()}

    return take


@pytest.fixture
def test_config_path(tmp_path):
    return tmp_path / "config" / "config.yml"


@pytest.fixture
def cli_runner(monkeypatch, capsys, reader, transcoder):
    """Run the CLI with fake external tools and capture its output."""

    def run_cli(*args, config_path=None) -> CliResult:
        from diarysort import cli

        def sorter_with_fakes(run_config, console=None):
            return DiarySorter(run_config, reader=reader, transcoder=transcoder, console=console)

        monkeypatch.setattr(cli, "DiarySorter", sorter_with_fakes)
        try:
            exit_code = cli.main([str(a) for a in args], config_path=config_path)
        except SystemExit as e:
            exit_code = e.code if e.code is not None else 0

        captured = capsys.readouterr()
        return CliResult(exit_code=exit_code, output=captured.out + captured.err)

    return run_cli
