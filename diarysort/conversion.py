"""
Video transcoding using ffmpeg.
"""

import os
import subprocess
from pathlib import Path
from typing import List, Protocol

from .constants import DEFAULT_PRESET, REENCODE_CONTAINERS, TRANSCODE_PRESETS, get_logger


class Transcoder(Protocol):
    """Transcodes a video to a destination path; returns True on success."""

    def transcode(self, src: Path, dst: Path) -> bool:
        ...


def partial_path(dst: Path) -> Path:
    """Hidden work file next to the destination, keeping its extension for ffmpeg."""
    return dst.with_name(f".{dst.stem}.partial{dst.suffix}")


class FfmpegTranscoder:
    """Handles video re-encoding with a fixed ffmpeg preset."""

    def __init__(self, preset: str = DEFAULT_PRESET, command: str = "ffmpeg"):
        if preset not in TRANSCODE_PRESETS:
            raise ValueError(f"Unknown transcoding preset: {preset}")
        self.preset = preset
        self.command = command
        self.logger = get_logger("conversion")

    def preset_for(self, output: Path) -> str:
        """Only MP4-family containers take the re-encoding presets; others are remuxed."""
        if output.suffix.lower() in REENCODE_CONTAINERS:
            return self.preset
        return "remux"

    def build_command(self, src: Path, output: Path) -> List[str]:
        return [
            self.command, "-nostdin", "-i", str(src),
            *TRANSCODE_PRESETS[self.preset_for(output)],
            "-y",                       # Overwrite the work file
            str(output),
        ]

    def transcode(self, src: Path, dst: Path) -> bool:
        """Encode src into dst; dst only appears once ffmpeg has succeeded."""
        work_path = partial_path(dst)
        preset = self.preset_for(dst)
        if preset != self.preset:
            self.logger.debug(f"{dst.suffix} cannot hold {self.preset} output, remuxing {src.name}")

        try:
            original_stat = src.stat()
            subprocess.run(self.build_command(src, work_path), capture_output=True, check=True)

            # Verify the converted file exists and has content
            if not work_path.exists() or work_path.stat().st_size == 0:
                self.logger.error(f"ffmpeg produced no output for {src}")
                return False

            os.utime(work_path, (original_stat.st_atime, original_stat.st_mtime))
            work_path.rename(dst)
            return True

        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode("utf-8", errors="replace") if e.stderr else ""
            self.logger.error(f"ffmpeg conversion failed for {src}: {stderr.strip()}")
            return False
        except FileNotFoundError as e:
            if e.filename in (None, self.command):
                self.logger.error(f"{self.command} is not installed")
            else:
                self.logger.error(f"Video conversion failed for {src}: {e}")
            return False
        except OSError as e:
            self.logger.error(f"Video conversion failed for {src}: {e}")
            return False
        finally:
            if work_path.exists():
                work_path.unlink()
