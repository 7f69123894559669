import os
from pathlib import Path
from typing import Optional

# --- Configuration ---
GAME_TITLE = "TERMINAL ESCAPE"
TAGLINE = "A Linux Terminal Escape Room Game"
VERSION = "1.0.0"

DATA_DIR_ENV = "TERMINAL_ESCAPE_HOME"
SAVES_DIRNAME = "saves"
LEADERBOARD_FILE = "leaderboard.json"
PROFILE_SUFFIX = "_profile.json"

# Achievement thresholds
SPEED_DEMON_MS = 60_000
COMMAND_MASTER_DISTINCT = 10
PERSISTENCE_TOTAL = 20

# UI
MAX_HISTORY_SIZE = 50
LEADERBOARD_SHOWN = 10
FUZZY_CONFIDENCE = 80
DEFAULT_THEME = "hacker"

# Animation delays (seconds)
TYPE_DELAY = 0.01
BOOT_STEP_DELAY = 0.25
LOADING_DELAY = 0.6


def resolve_data_dir(override: Optional[str] = None) -> Path:
    """Where saves, profiles and the leaderboard live."""
    if override:
        return Path(override).expanduser()
    env = os.environ.get(DATA_DIR_ENV)
    if env:
        return Path(env).expanduser()
    return Path.home() / ".terminal_escape"
