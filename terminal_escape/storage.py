import json
import logging
import re
import time
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def read_json(path: Path, default: Any = None) -> Any:
    """Load a JSON document, falling back to *default* if it is missing or unreadable."""
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return default


def write_json(path: Path, payload: Any) -> bool:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    except (OSError, TypeError, ValueError) as e:
        logger.warning("Could not write %s: %s", path, e)
        return False
    return True


def safe_filename(name: str) -> str:
    """Player names go into file names; keep them to one path component."""
    cleaned = re.sub(r"[^\w.-]+", "_", name.strip()).strip("._")
    return cleaned or "player"
