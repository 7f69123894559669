import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from terminal_escape.storage import read_json, write_json

logger = logging.getLogger(__name__)


@dataclass
class LeaderboardEntry:
    player_name: str
    completion_time: int  # ms
    completion_date: str

    def to_dict(self) -> dict:
        return {
            "playerName": self.player_name,
            "completionTime": self.completion_time,
            "completionDate": self.completion_date,
        }


class Leaderboard:
    """``{"players": [...]}`` document, kept sorted fastest first."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def ensure(self) -> None:
        if not self.path.exists():
            write_json(self.path, {"players": []})

    def entries(self) -> List[LeaderboardEntry]:
        data = read_json(self.path)
        raw_entries = data.get("players", []) if isinstance(data, dict) else []
        if not isinstance(raw_entries, list):
            logger.warning("Ignoring malformed leaderboard %s", self.path)
            raw_entries = []
        entries = []
        for raw in raw_entries:
            try:
                entries.append(LeaderboardEntry(
                    player_name=str(raw["playerName"]),
                    completion_time=int(raw["completionTime"]),
                    completion_date=str(raw.get("completionDate", "")),
                ))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping bad leaderboard entry %r: %s", raw, e)
        return sorted(entries, key=lambda e: e.completion_time)

    def record(self, player_name: str, completion_time: int) -> bool:
        entries = self.entries()
        entries.append(LeaderboardEntry(
            player_name=player_name,
            completion_time=completion_time,
            completion_date=datetime.now(timezone.utc).isoformat(),
        ))
        entries.sort(key=lambda e: e.completion_time)
        return write_json(self.path, {"players": [e.to_dict() for e in entries]})


def format_time(ms: int) -> str:
    seconds = ms // 1000
    minutes = seconds // 60
    hours = minutes // 60
    return f"{hours}h {minutes % 60}m {seconds % 60}s"
