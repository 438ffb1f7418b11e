"""
Test applying operations: move/copy, transcode discipline, index writes.
"""

import os
import subprocess
from datetime import date
from pathlib import Path

import pytest

from diarysort.conversion import FfmpegTranscoder, partial_path
from diarysort.errors import DestinationConflict, TranscodeError
from diarysort.file_operations import FileOperations
from diarysort.models import MoveRename, RemoveSource, Transcode, WriteIndex

from conftest import FakeTranscoder


class TestFileOperations:
    """Test the executor's safety rules."""

    def test_move_creates_day_directory(self, source_dir, diary_dir, create_test_files):
        """Test that moving creates the day directory."""
        create_test_files([{"name": "IMG_1.jpg", "content": b"photo"}])
        dst = diary_dir / "2018" / "01" / "01" / "12-34-56.jpg"

        FileOperations(FakeTranscoder()).apply(MoveRename(source_dir / "IMG_1.jpg", dst))

        assert dst.read_bytes() == b"photo"
        assert not (source_dir / "IMG_1.jpg").exists()

    def test_copy_keeps_source(self, source_dir, diary_dir, create_test_files):
        """Test that copy mode leaves the source in place."""
        create_test_files([{"name": "IMG_1.jpg", "content": b"photo"}])
        dst = diary_dir / "2018" / "01" / "01" / "12-34-56.jpg"

        FileOperations(FakeTranscoder(), move_files=False).apply(
            MoveRename(source_dir / "IMG_1.jpg", dst))

        assert dst.exists()
        assert (source_dir / "IMG_1.jpg").exists()

    def test_never_overwrites(self, source_dir, diary_dir, create_test_files):
        """Test that an existing destination is never replaced."""
        create_test_files([{"name": "IMG_1.jpg", "content": b"new"}])
        create_test_files([{"name": "2018/01/01/12-34-56.jpg", "content": b"old"}],
                          directory=diary_dir)
        dst = diary_dir / "2018" / "01" / "01" / "12-34-56.jpg"

        with pytest.raises(DestinationConflict):
            FileOperations(FakeTranscoder()).apply(MoveRename(source_dir / "IMG_1.jpg", dst))

        assert dst.read_bytes() == b"old"
        assert (source_dir / "IMG_1.jpg").exists()

    def test_dry_run_changes_nothing(self, source_dir, diary_dir, create_test_files):
        """Test that dry run applies nothing."""
        create_test_files([{"name": "IMG_1.jpg"}])
        dst = diary_dir / "2018" / "01" / "01" / "12-34-56.jpg"
        ops = FileOperations(FakeTranscoder(), dry_run=True)

        ops.apply(MoveRename(source_dir / "IMG_1.jpg", dst))
        ops.apply(WriteIndex(date(2018, 1, 1), dst.with_name("index.org"), "x\n"))

        assert not (diary_dir / "2018").exists()
        assert (source_dir / "IMG_1.jpg").exists()

    def test_transcode_removes_source_after_success(self, source_dir, diary_dir,
                                                    create_test_files):
        """Test that the source goes only after a successful transcode."""
        create_test_files([{"name": "clip.mov", "content": b"video"}])
        transcoder = FakeTranscoder()
        dst = diary_dir / "2018" / "01" / "01" / "13-00-00.mov"

        FileOperations(transcoder).apply(Transcode(source_dir / "clip.mov", dst))

        assert transcoder.calls == [(source_dir / "clip.mov", dst)]
        assert dst.read_bytes() == b"video"
        assert not (source_dir / "clip.mov").exists()

    def test_failed_transcode_keeps_source(self, source_dir, diary_dir, create_test_files):
        """Test that a failed transcode keeps the source and leaves no output."""
        create_test_files([{"name": "clip.mov", "content": b"video"}])
        dst = diary_dir / "2018" / "01" / "01" / "13-00-00.mov"

        with pytest.raises(TranscodeError):
            FileOperations(FakeTranscoder(fail=True)).apply(
                Transcode(source_dir / "clip.mov", dst))

        assert (source_dir / "clip.mov").read_bytes() == b"video"
        assert not dst.exists()

    def test_transcoder_os_error_is_transcode_error(self, source_dir, diary_dir):
        """Test that an OSError inside the transcoder becomes a TranscodeError."""
        dst = diary_dir / "2018" / "01" / "01" / "13-00-00.mov"

        with pytest.raises(TranscodeError):
            FileOperations(FakeTranscoder()).apply(Transcode(source_dir / "gone.mov", dst))

        assert not dst.exists()

    def test_write_index_replaces_and_consumes_note(self, source_dir, diary_dir,
                                                    create_test_files):
        """Test the atomic index write and removal of the merged note."""
        create_test_files([{"name": "2018-01-01.org", "content": "note"}])
        create_test_files([{"name": "2018/01/01/index.org", "content": "old\n"}],
                          directory=diary_dir)
        path = diary_dir / "2018" / "01" / "01" / "index.org"

        FileOperations(FakeTranscoder()).apply(
            WriteIndex(date(2018, 1, 1), path, "note\n", sources=(source_dir / "2018-01-01.org",)))

        assert path.read_text() == "note\n"
        assert not (source_dir / "2018-01-01.org").exists()
        assert sorted(p.name for p in path.parent.iterdir()) == ["index.org"]

    def test_remove_source_is_noop_in_copy_mode(self, source_dir, create_test_files):
        """Test that copy mode never deletes sources."""
        create_test_files([{"name": "IMG_1.jpg"}])

        FileOperations(FakeTranscoder(), move_files=False).apply(
            RemoveSource(source_dir / "IMG_1.jpg", "already in the diary"))

        assert (source_dir / "IMG_1.jpg").exists()

    def test_is_duplicate(self, source_dir, create_test_files):
        """Test duplicate detection by size and content."""
        create_test_files([{"name": "a.jpg", "content": b"same"},
                           {"name": "b.jpg", "content": b"same"},
                           {"name": "c.jpg", "content": b"diff"}])

        assert FileOperations.is_duplicate(source_dir / "a.jpg", source_dir / "b.jpg")
        assert not FileOperations.is_duplicate(source_dir / "a.jpg", source_dir / "c.jpg")
        assert not FileOperations.is_duplicate(source_dir / "a.jpg", source_dir / "missing.jpg")


class TestFfmpegTranscoder:
    """Test the ffmpeg wrapper with a stubbed subprocess."""

    def test_success_renames_work_file(self, monkeypatch, source_dir, diary_dir,
                                       create_test_files):
        """Test that the work file is renamed into place on success."""
        create_test_files([{"name": "clip.mov", "content": b"video"}])
        dst = diary_dir / "13-00-00.mov"
        commands = []

        def fake_run(cmd, **kwargs):
            commands.append(cmd)
            Path(cmd[-1]).write_bytes(b"encoded")
            return subprocess.CompletedProcess(cmd, 0, b"", b"")

        monkeypatch.setattr(subprocess, "run", fake_run)

        assert FfmpegTranscoder("hevc").transcode(source_dir / "clip.mov", dst)

        assert dst.read_bytes() == b"encoded"
        assert not partial_path(dst).exists()
        assert commands[0][0] == "ffmpeg"
        assert "libx265" in commands[0]
        assert commands[0][-1] == str(partial_path(dst))

    def test_failure_leaves_no_output(self, monkeypatch, source_dir, diary_dir,
                                      create_test_files):
        """Test that a failing ffmpeg leaves neither output nor work file."""
        create_test_files([{"name": "clip.mov", "content": b"video"}])
        dst = diary_dir / "13-00-00.mov"

        def fake_run(cmd, **kwargs):
            Path(cmd[-1]).write_bytes(b"half")
            raise subprocess.CalledProcessError(1, cmd, output=b"", stderr=b"broken input")

        monkeypatch.setattr(subprocess, "run", fake_run)

        assert not FfmpegTranscoder("h264").transcode(source_dir / "clip.mov", dst)
        assert not dst.exists()
        assert not partial_path(dst).exists()

    def test_empty_output_is_failure(self, monkeypatch, source_dir, diary_dir,
                                     create_test_files):
        """Test that an empty output file counts as a failure."""
        create_test_files([{"name": "clip.mov", "content": b"video"}])
        dst = diary_dir / "13-00-00.mov"

        def fake_run(cmd, **kwargs):
            Path(cmd[-1]).write_bytes(b"")
            return subprocess.CompletedProcess(cmd, 0, b"", b"")

        monkeypatch.setattr(subprocess, "run", fake_run)

        assert not FfmpegTranscoder("remux").transcode(source_dir / "clip.mov", dst)
        assert not dst.exists()

    def test_unknown_preset(self):
        """Test that an unknown preset is rejected."""
        with pytest.raises(ValueError):
            FfmpegTranscoder("vhs")

    def test_other_containers_are_remuxed(self):
        """Test that containers without HEVC/AAC support keep their streams."""
        transcoder = FfmpegTranscoder("hevc")

        webm = transcoder.build_command(Path("clip.webm"), Path("/d/.08-00-00.partial.webm"))
        mov = transcoder.build_command(Path("clip.mov"), Path("/d/.08-00-00.partial.mov"))

        assert webm[webm.index("-c") + 1] == "copy"
        assert "libx265" not in webm
        assert "hvc1" not in webm
        assert "libx265" in mov

    def test_os_error_after_encoding_is_failure(self, monkeypatch, source_dir, diary_dir,
                                                create_test_files):
        """Test that an error while finishing the work file leaves nothing behind."""
        create_test_files([{"name": "clip.mov", "content": b"video"}])
        dst = diary_dir / "13-00-00.mov"

        def fake_run(cmd, **kwargs):
            Path(cmd[-1]).write_bytes(b"encoded")
            return subprocess.CompletedProcess(cmd, 0, b"", b"")

        def fail_utime(*args, **kwargs):
            raise PermissionError("read-only file system")

        monkeypatch.setattr(subprocess, "run", fake_run)
        monkeypatch.setattr(os, "utime", fail_utime)

        assert not FfmpegTranscoder("hevc").transcode(source_dir / "clip.mov", dst)
        assert not dst.exists()
        assert not partial_path(dst).exists()

    def test_missing_source_is_failure(self, diary_dir):
        """Test that a source that vanished is a failure, not a crash."""
        assert not FfmpegTranscoder("hevc").transcode(diary_dir / "gone.mov",
                                                      diary_dir / "13-00-00.mov")
