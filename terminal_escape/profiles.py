import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List, Optional

from terminal_escape.achievements import Achievement, catalog, merge_with_catalog
from terminal_escape.config import PROFILE_SUFFIX
from terminal_escape.storage import now_ms, read_json, safe_filename, write_json

logger = logging.getLogger(__name__)


@dataclass
class PlayerProfile:
    player_name: str
    achievements: List[Achievement] = field(default_factory=catalog)
    last_played: int = field(default_factory=now_ms)
    total_play_time: int = 0
    completed_levels: List[int] = field(default_factory=list)

    def mark_completed(self, level_id: int) -> None:
        if level_id not in self.completed_levels:
            self.completed_levels.append(level_id)

    def add_play_time(self, ms: int) -> None:
        self.total_play_time += max(0, ms)
        self.last_played = now_ms()


class ProfileStore:
    """One JSON file per player, ``<lowercased name>_profile.json``."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, player_name: str) -> Path:
        return self.directory / f"{safe_filename(player_name.lower())}{PROFILE_SUFFIX}"

    def load(self, player_name: str) -> Optional[PlayerProfile]:
        data = read_json(self.path_for(player_name))
        if not isinstance(data, dict):
            return None
        try:
            stored = [Achievement(**a) for a in data.get("achievements", [])]
            return PlayerProfile(
                player_name=str(data["player_name"]),
                achievements=merge_with_catalog(stored),
                last_played=int(data.get("last_played", 0)),
                total_play_time=int(data.get("total_play_time", 0)),
                completed_levels=[int(x) for x in data.get("completed_levels", [])],
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring malformed profile for %s: %s", player_name, e)
            return None

    def save(self, profile: PlayerProfile) -> bool:
        return write_json(self.path_for(profile.player_name), asdict(profile))

    def create(self, player_name: str) -> PlayerProfile:
        profile = PlayerProfile(player_name=player_name)
        self.save(profile)
        logger.info("Created profile for %s", player_name)
        return profile

    def ensure(self, player_name: str) -> PlayerProfile:
        return self.load(player_name) or self.create(player_name)

    def list_profiles(self) -> List[str]:
        if not self.directory.is_dir():
            return []
        return sorted(p.name[: -len(PROFILE_SUFFIX)] for p in self.directory.glob(f"*{PROFILE_SUFFIX}"))
