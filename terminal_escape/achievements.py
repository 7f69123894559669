import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from terminal_escape.config import COMMAND_MASTER_DISTINCT, PERSISTENCE_TOTAL, SPEED_DEMON_MS
from terminal_escape.storage import now_ms

logger = logging.getLogger(__name__)

# --- Events ---
LEVEL_COMPLETED = "level_completed"
HINT_USED = "hint_used"
COMMAND_USED = "command_used"
EASTER_EGG_FOUND = "easter_egg_found"
ALL_DIRECTORIES_VISITED = "all_directories_visited"

EVENTS = (LEVEL_COMPLETED, HINT_USED, COMMAND_USED, EASTER_EGG_FOUND, ALL_DIRECTORIES_VISITED)


@dataclass
class Achievement:
    id: str
    name: str
    description: str
    icon: str
    secret: bool = False
    unlocked: bool = False
    unlocked_at: Optional[int] = None


def catalog() -> List[Achievement]:
    """Fresh, all-locked copy of every achievement in the game."""
    return [
        Achievement("first_steps", "First Steps", "Complete your first level", "🏆"),
        Achievement("speed_demon", "Speed Demon", "Complete a level in under 60 seconds", "⚡"),
        Achievement("no_hints", "Solo Hacker", "Complete a level without using hints", "🧠"),
        Achievement("command_master", "Command Master", "Use at least 10 different commands in one level", "💻"),
        Achievement("persistence", "Persistence", "Try at least 20 commands in a single level", "🔨"),
        Achievement("explorer", "Explorer", "Visit all directories in a file system level", "🧭"),
        Achievement("easter_egg_hunter", "Easter Egg Hunter", "Find a hidden secret", "🥚", secret=True),
        Achievement("master_hacker", "Master Hacker", "Complete the game", "👑"),
    ]


def merge_with_catalog(stored: List[Achievement]) -> List[Achievement]:
    """Catalog order and wording, with unlock state carried over from *stored*."""
    by_id = {a.id: a for a in stored}
    merged = []
    for entry in catalog():
        old = by_id.get(entry.id)
        if old is not None and old.unlocked:
            entry.unlocked = True
            entry.unlocked_at = old.unlocked_at
        merged.append(entry)
    return merged


class AchievementTracker:
    """Turns game events into unlocked achievements.

    The tracker owns no state of its own: unlock flags live in the list it is
    given (the player profile's), and ``persist`` is called after every
    unlock so the profile on disk stays current.
    """

    def __init__(
        self,
        achievements: List[Achievement],
        persist: Callable[[], object],
        on_unlock: Optional[Callable[[Achievement], None]] = None,
    ):
        self.achievements = achievements
        self.persist = persist
        self.on_unlock = on_unlock

    def get(self, achievement_id: str) -> Optional[Achievement]:
        return next((a for a in self.achievements if a.id == achievement_id), None)

    def unlock(self, achievement_id: str) -> bool:
        achievement = self.get(achievement_id)
        if achievement is None or achievement.unlocked:
            return False

        achievement.unlocked = True
        achievement.unlocked_at = now_ms()
        self.persist()
        logger.info("Achievement unlocked: %s", achievement_id)
        if self.on_unlock:
            self.on_unlock(achievement)
        return True

    def notify(self, event: str, **data) -> List[str]:
        """Handle one game event. Returns the ids unlocked by it."""
        if event not in EVENTS:
            logger.warning("Ignoring unknown achievement event %r", event)
            return []

        candidates: List[str] = []
        if event == LEVEL_COMPLETED:
            candidates.append("first_steps")
            time_spent = data.get("time_spent_ms")
            if time_spent is not None and time_spent < SPEED_DEMON_MS:
                candidates.append("speed_demon")
            if not data.get("used_hint", False):
                candidates.append("no_hints")
            if data.get("final", False):
                candidates.append("master_hacker")
        elif event == COMMAND_USED:
            if data.get("distinct_commands", 0) >= COMMAND_MASTER_DISTINCT:
                candidates.append("command_master")
            if data.get("command_count", 0) >= PERSISTENCE_TOTAL:
                candidates.append("persistence")
        elif event == EASTER_EGG_FOUND:
            candidates.append("easter_egg_hunter")
        elif event == ALL_DIRECTORIES_VISITED:
            candidates.append("explorer")
        # HINT_USED only matters through the level stats the session keeps

        return [a for a in candidates if self.unlock(a)]

    def unlocked(self) -> List[Achievement]:
        return [a for a in self.achievements if a.unlocked]

    def locked(self, include_secret: bool = False) -> List[Achievement]:
        return [a for a in self.achievements if not a.unlocked and (include_secret or not a.secret)]

    def hidden(self) -> List[Achievement]:
        return [a for a in self.achievements if not a.unlocked and a.secret]
