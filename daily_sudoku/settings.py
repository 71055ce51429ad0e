"""
Settings for the daily Sudoku game.

Settings are read from a JSON file (config.json in the working directory,
or the path in DAILY_SUDOKU_CONFIG) and merged over DEFAULT_SETTINGS.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "DAILY_SUDOKU_CONFIG"
SETTINGS_FILE = Path("config.json")

DEFAULT_SETTINGS: Dict[str, Any] = {
    "database_path": "daily_sudoku.db",
    "default_player": "player",
    "max_history": 50,
    "hint_penalty": 0.5,
    "mistake_time_penalty": 30,
    "auto_candidate_difficulties": ["medium", "hard"],
    "leaderboard_limit": 10,
    "api_host": "0.0.0.0",
    "api_port": 8000,
    "remote_api_url": None,
}


def settings_path() -> Path:
    env = os.environ.get(CONFIG_ENV_VAR)
    return Path(env) if env else SETTINGS_FILE


def load_settings(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load settings from the JSON settings file.

    Returns:
        Settings dictionary. Returns defaults if file missing or invalid.
    """
    path = Path(path) if path is not None else settings_path()
    if not path.exists():
        logger.debug(f"Settings file {path} not found, using defaults")
        return DEFAULT_SETTINGS.copy()

    try:
        with open(path, "r", encoding="utf-8") as f:
            settings = json.load(f)
        if not isinstance(settings, dict):
            raise ValueError("settings file must hold a JSON object")

        # Merge with defaults to handle missing keys
        result = DEFAULT_SETTINGS.copy()
        result.update(settings)
        logger.debug(f"Settings loaded from {path}: {result}")
        return result

    except (json.JSONDecodeError, ValueError, OSError) as e:
        logger.warning(f"Failed to load settings from {path}: {e}, using defaults")
        return DEFAULT_SETTINGS.copy()


def save_settings(settings: Dict[str, Any], path: Optional[Path] = None) -> None:
    """
    Save settings to the JSON settings file.

    Args:
        settings: Settings dictionary to save
        path: Target file, defaults to settings_path()
    """
    path = Path(path) if path is not None else settings_path()
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(settings, f, indent=2)
        logger.debug(f"Settings saved to {path}")
    except OSError as e:
        logger.error(f"Failed to save settings to {path}: {e}")
