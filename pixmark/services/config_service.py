"""
Configuration service for PixMark.

This module handles loading, saving, and managing application settings.
Configuration is stored as JSON in ~/.config/pixmark/config.json following
the XDG Base Directory Specification.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from pixmark.services.logging_service import get_logger

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "pixmark"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

MARKUP_COLORS: List[str] = [
    "#ef4444",
    "#f97316",
    "#eab308",
    "#22c55e",
    "#3b82f6",
    "#ffffff",
    "#000000",
]

MIN_ERASER_SIZE = 2
MAX_ERASER_SIZE = 100

DEFAULT_CONFIG: Dict[str, Any] = {
    # Where exported images are offered to be saved
    "default_save_folder": str(Path.home() / "Pictures" / "PixMark"),
    "markup_colors": list(MARKUP_COLORS),
    "default_color": MARKUP_COLORS[0],
    # Stroke width of new erase strokes, in image pixels
    "eraser_size": 20,
    "default_tool": "rectangle",
    # Lossy export quality, 0-100
    "jpeg_quality": 90,
    # Opaque fill behind lossy exports
    "export_background": "#ffffff",
}


class ConfigService:
    """
    Service for managing application configuration.

    Handles loading, saving, and accessing configuration values.
    Provides sensible defaults when config file is missing or corrupted.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Initialize the ConfigService.

        Args:
            config_path: Optional path to config file. Defaults to
                        ~/.config/pixmark/config.json
        """
        self._logger = get_logger(__name__)
        self._config_path = config_path or DEFAULT_CONFIG_FILE
        self._config: Dict[str, Any] = {}

        self._load()

    @property
    def config_path(self) -> Path:
        return self._config_path

    def _load(self) -> None:
        """Load configuration from file, using defaults if needed."""
        self._config = copy.deepcopy(DEFAULT_CONFIG)

        if not self._config_path.exists():
            self._logger.info(
                f"Config file not found at {self._config_path}. Using defaults."
            )
            self._save_to_file()
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded_config = json.load(f)

            if isinstance(loaded_config, dict):
                self._deep_merge(self._config, loaded_config)
                self._logger.info(f"Configuration loaded from {self._config_path}")
                # Persist any new default keys
                self._save_to_file()
            else:
                raise ValueError("Config file does not contain a valid JSON object")

        except (json.JSONDecodeError, ValueError) as e:
            self._logger.warning(
                f"Config file corrupted or invalid: {e}. Recreating with defaults."
            )
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            self._save_to_file()

        except OSError as e:
            self._logger.warning(f"Could not read config file: {e}. Using defaults.")

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Recursively merge override dict into base dict."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _save_to_file(self) -> None:
        """Save current configuration to file."""
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self._config_path, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2)

            self._logger.debug(f"Configuration saved to {self._config_path}")

        except OSError as e:
            self._logger.error(f"Could not save config file: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: The configuration key to retrieve.
            default: Default value if key doesn't exist.
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value (in memory only).

        Call save() to persist changes to disk.
        """
        self._config[key] = value
        self._logger.debug(f"Config key '{key}' set to '{value}'")

    def save(self) -> None:
        """Persist current configuration to disk."""
        self._save_to_file()

    # ─── Markup Settings ──────────────────────────────────────────────────

    @property
    def markup_colors(self) -> List[str]:
        colors = self.get("markup_colors")
        if not isinstance(colors, list) or not colors:
            return list(MARKUP_COLORS)
        return [str(c) for c in colors]

    @property
    def default_color(self) -> str:
        return self.get("default_color", MARKUP_COLORS[0])

    @property
    def eraser_size(self) -> int:
        """Eraser stroke width, clamped to the slider range."""
        try:
            size = int(self.get("eraser_size", 20))
        except (TypeError, ValueError):
            size = 20
        return max(MIN_ERASER_SIZE, min(MAX_ERASER_SIZE, size))

    @property
    def default_tool(self) -> str:
        return self.get("default_tool", "rectangle")

    # ─── Export Settings ──────────────────────────────────────────────────

    @property
    def default_save_folder(self) -> str:
        return self.get("default_save_folder", str(Path.home() / "Pictures" / "PixMark"))

    @property
    def jpeg_quality(self) -> int:
        try:
            quality = int(self.get("jpeg_quality", 90))
        except (TypeError, ValueError):
            quality = 90
        return max(0, min(100, quality))

    @property
    def export_background(self) -> str:
        return self.get("export_background", "#ffffff")
