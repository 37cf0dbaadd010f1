"""Configuration persistence using JSON format.

User settings live at ``~/.vocaroll/config.json``.  Values missing from
the file fall back to ``DEFAULT_CONFIG``; :class:`EditorSettings` is the
typed snapshot the editing session reads.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .constants import DEFAULT_MEASURES, MAX_CONTROL_POINTS

log = logging.getLogger(__name__)

DESYNC_POLICIES = ("raise", "resync")

# Default configuration schema
DEFAULT_CONFIG = {
    "version": "1.0",
    "editor": {
        "default_duration_ms": 480,
        "default_lyric": "a",
        "desync_policy": "raise",  # "raise" or "resync"
        "max_control_points": MAX_CONTROL_POINTS,
    },
    "view": {
        "scale_x": 0.2,  # px per ms
        "scale_y": 1.0,  # px per row unit
        "min_measures": DEFAULT_MEASURES,
    },
    "portamento": {
        "start_offset_ms": -25.0,
        "width_ms": 50.0,
    },
    "envelope": {
        "preutterance_ms": 0.0,
    },
}



def _deep_merge(base: dict, override: dict) -> dict:
    """Copy of *base* with *override* laid over it, nested sections merged key by key."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """Manages user configuration with JSON persistence."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize config manager.

        Args:
            config_dir: Custom config directory. If None, uses ~/.vocaroll/
        """
        if config_dir is None:
            config_dir = Path.home() / ".vocaroll"
        self.config_dir = config_dir
        self.config_file = config_dir / "config.json"
        self._config: dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        """Load config from disk or create default."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

        if self.config_file.exists():
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    loaded = json.load(f)
                # Merge with defaults (in case new keys were added)
                self._config = _deep_merge(DEFAULT_CONFIG, loaded)
            except (json.JSONDecodeError, OSError) as e:
                log.warning("Failed to load config: %s. Using defaults.", e)
                self._config = copy.deepcopy(DEFAULT_CONFIG)
        else:
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            self._save()

    def _save(self) -> None:
        """Write config to disk."""
        try:
            with open(self.config_file, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2, ensure_ascii=False)
        except OSError as e:
            log.warning("Failed to save config: %s", e)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get config value using dot notation.

        Example:
            config.get("editor.desync_policy")
            config.get("view.scale_x", 0.2)
        """
        keys = key_path.split(".")
        value = self._config
        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default
        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set config value using dot notation and save.

        Example:
            config.set("editor.default_lyric", "la")
        """
        keys = key_path.split(".")
        target = self._config
        for key in keys[:-1]:
            if key not in target or not isinstance(target[key], dict):
                target[key] = {}
            target = target[key]
        target[keys[-1]] = value
        self._save()


@dataclass(frozen=True)
class EditorSettings:
    """Typed view of the settings the editing engine uses."""

    default_duration_ms: int = 480
    default_lyric: str = "a"
    desync_policy: str = "raise"
    max_control_points: int = MAX_CONTROL_POINTS
    scale_x: float = 0.2
    scale_y: float = 1.0
    min_measures: int = DEFAULT_MEASURES
    portamento_offset_ms: float = -25.0
    portamento_width_ms: float = 50.0
    preutterance_ms: float = 0.0

    def __post_init__(self) -> None:
        if self.desync_policy not in DESYNC_POLICIES:
            raise ValueError(f"Unknown desync policy: {self.desync_policy!r}")

    @classmethod
    def from_config(cls, config: ConfigManager) -> EditorSettings:
        d = cls()
        return cls(
            default_duration_ms=int(config.get("editor.default_duration_ms", d.default_duration_ms)),
            default_lyric=config.get("editor.default_lyric", d.default_lyric),
            desync_policy=config.get("editor.desync_policy", d.desync_policy),
            max_control_points=int(config.get("editor.max_control_points", d.max_control_points)),
            scale_x=float(config.get("view.scale_x", d.scale_x)),
            scale_y=float(config.get("view.scale_y", d.scale_y)),
            min_measures=int(config.get("view.min_measures", d.min_measures)),
            portamento_offset_ms=float(config.get("portamento.start_offset_ms", d.portamento_offset_ms)),
            portamento_width_ms=float(config.get("portamento.width_ms", d.portamento_width_ms)),
            preutterance_ms=float(config.get("envelope.preutterance_ms", d.preutterance_ms)),
        )


# Global singleton instance
_global_config: ConfigManager | None = None


def get_config() -> ConfigManager:
    """Get global config instance (singleton pattern)."""
    global _global_config
    if _global_config is None:
        _global_config = ConfigManager()
    return _global_config
