"""
Configuration management for diarysort.
"""

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Dict, Optional

import yaml

from .constants import (DEFAULT_NOTE_EXTENSION, DEFAULT_PRESET, PROGRAM,
                        TRANSCODE_PRESETS, get_logger)


def normalize_extension(ext: str) -> str:
    """Lowercase an extension and make sure it has its leading dot."""
    ext = ext.strip().lower()
    if not ext.startswith("."):
        ext = f".{ext}"
    return ext


@dataclass(frozen=True)
class RunConfig:
    """Immutable settings for a single run of the pipeline."""
    source: Path
    dest: Path
    note_extension: str = DEFAULT_NOTE_EXTENSION
    preset: str = DEFAULT_PRESET
    timezone: Optional[str] = None
    move_files: bool = True
    dry_run: bool = False
    on: Optional[date] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    jobs: int = 1

    def __post_init__(self):
        object.__setattr__(self, "source", Path(self.source))
        object.__setattr__(self, "dest", Path(self.dest))
        object.__setattr__(self, "note_extension", normalize_extension(self.note_extension))

        if self.note_extension == ".":
            raise ValueError("Note extension must not be empty")
        if self.preset not in TRANSCODE_PRESETS:
            raise ValueError(f"Unknown transcoding preset: {self.preset} "
                             f"(choose from {', '.join(sorted(TRANSCODE_PRESETS))})")
        if self.on and (self.date_from or self.date_to):
            raise ValueError("'on' cannot be combined with a date range")
        if self.date_to and not self.date_from:
            raise ValueError("'date_to' requires 'date_from'")
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError(f"Empty date range: {self.date_from} > {self.date_to}")
        if self.jobs < 1:
            raise ValueError(f"jobs must be at least 1, got {self.jobs}")

    def accepts(self, day: date) -> bool:
        """Check a bucket date against the date filters."""
        if self.on is not None:
            return day == self.on
        if self.date_from is not None and day < self.date_from:
            return False
        if self.date_to is not None and day > self.date_to:
            return False
        return True


class Config:
    """Manages configuration file for storing user preferences."""

    def __init__(self, config_path: Optional[Path] = None):
        # Default config location: ~/.<PROGRAM>/config.yml
        if config_path:
            self.config_path = Path(config_path)
        else:
            self.config_path = Path.home() / f".{PROGRAM}" / "config.yml"
        self.program_root = self.config_path.parent
        self.data = self._load_config()

    def _load_config(self) -> Dict:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            return {}

        try:
            with open(self.config_path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            get_logger("config").warning(f"Could not load config: {e}")
            return {}

        if not isinstance(data, dict):
            get_logger("config").warning(f"Ignoring malformed config: {self.config_path}")
            return {}
        return data

    def save_config(self) -> None:
        """Save current configuration to file."""
        try:
            self.program_root.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, 'w') as f:
                yaml.safe_dump(self.data, f, default_flow_style=False)
        except OSError as e:
            get_logger("config").error(f"Could not save config: {e}")

    def get_last_source(self) -> Optional[str]:
        """Get the last used source directory."""
        return self.data.get('last_source')

    def get_last_dest(self) -> Optional[str]:
        """Get the last used diary directory."""
        return self.data.get('last_dest')

    def get_note_extension(self) -> str:
        return self.data.get('note_extension', DEFAULT_NOTE_EXTENSION)

    def get_preset(self) -> str:
        return self.data.get('preset', DEFAULT_PRESET)

    def get_timezone(self) -> Optional[str]:
        """Get the saved timezone setting."""
        return self.data.get('timezone')

    def update_paths(self, source: str, dest: str) -> None:
        """Update and save the last used paths."""
        self.data['last_source'] = source
        self.data['last_dest'] = dest
        self.save_config()

    def update(self, **settings: Optional[str]) -> None:
        """Store the given non-empty settings and save."""
        changed = False
        for key, value in settings.items():
            if value is not None and self.data.get(key) != value:
                self.data[key] = value
                changed = True
        if changed:
            self.save_config()
