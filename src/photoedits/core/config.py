"""
Editor Configuration - Tunables for rendering, history and GIF export.

This module provides the EditorConfig dataclass plus JSON persistence in
the user's config directory.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from photoedits.core.errors import InvalidInput


# Config storage location
CONFIG_DIR = Path.home() / ".config" / "photoedits"
CONFIG_FILE = CONFIG_DIR / "config.json"


@dataclass
class EditorConfig:
    """
    Editor-wide settings.

    Attributes:
        preview_scale: Downscale factor for the preview render tier
        preview_delay_ms: Quiet period before a preview render
        full_quality_delay_ms: Quiet period after a preview before the full render
        history_limit: Maximum number of undo snapshots
        gif_min_delay_ms: Lower bound for frame delays
        gif_default_quality: Palette quality (1 = best, 30 = fastest)
        gif_workers: Encoder parallelism hint
        gif_default_delay_ms: Delay for frames without timing
        use_worker: Render full-quality passes in a background process
    """
    # Rendering
    preview_scale: float = 0.25
    preview_delay_ms: int = 60
    full_quality_delay_ms: int = 150
    use_worker: bool = False

    # History
    history_limit: int = 50

    # GIF
    gif_min_delay_ms: int = 20
    gif_default_quality: int = 10
    gif_workers: int = 2
    gif_default_delay_ms: int = 100

    def __post_init__(self) -> None:
        if not 0 < self.preview_scale <= 1:
            raise InvalidInput(f"preview_scale must be in (0, 1], got {self.preview_scale}")
        for name in ("preview_delay_ms", "full_quality_delay_ms", "gif_min_delay_ms"):
            if getattr(self, name) < 0:
                raise InvalidInput(f"{name} must not be negative")
        for name in ("history_limit", "gif_default_quality", "gif_workers", "gif_default_delay_ms"):
            if getattr(self, name) < 1:
                raise InvalidInput(f"{name} must be at least 1")

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary for serialization."""
        return {
            "preview_scale": self.preview_scale,
            "preview_delay_ms": self.preview_delay_ms,
            "full_quality_delay_ms": self.full_quality_delay_ms,
            "use_worker": self.use_worker,
            "history_limit": self.history_limit,
            "gif_min_delay_ms": self.gif_min_delay_ms,
            "gif_default_quality": self.gif_default_quality,
            "gif_workers": self.gif_workers,
            "gif_default_delay_ms": self.gif_default_delay_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EditorConfig:
        """
        Create settings from dictionary.

        Missing keys keep their defaults; unknown keys are ignored.

        Raises:
            InvalidInput: If a value has the wrong type or is out of range
        """
        defaults = cls()
        values: dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            default = getattr(defaults, f.name)
            value = data[f.name]
            try:
                if isinstance(default, bool):
                    if not isinstance(value, bool):
                        raise TypeError(value)
                elif isinstance(default, int):
                    if isinstance(value, bool) or int(value) != value:
                        raise TypeError(value)
                    value = int(value)
                else:
                    if isinstance(value, bool):
                        raise TypeError(value)
                    value = float(value)
            except (TypeError, ValueError):
                raise InvalidInput(f"Invalid value for {f.name}: {value!r}") from None
            values[f.name] = value
        return cls(**values)


def load_config(path: Path | None = None) -> EditorConfig:
    """
    Load settings from disk, or defaults if the file does not exist.

    Raises:
        InvalidInput: If the file is not a valid config
    """
    path = Path(path) if path is not None else CONFIG_FILE
    if not path.exists():
        return EditorConfig()

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidInput(f"Invalid config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise InvalidInput(f"Invalid config format: {path}")
    return EditorConfig.from_dict(data)


def save_config(config: EditorConfig, path: Path | None = None) -> Path:
    """Write settings as JSON, creating the directory if needed."""
    path = Path(path) if path is not None else CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)
    return path
