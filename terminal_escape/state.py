import logging
from dataclasses import asdict, dataclass, field
from typing import Any, ClassVar, Dict, List, Type

from terminal_escape.storage import now_ms

logger = logging.getLogger(__name__)


# --- Level State (tagged union) ---

class LevelState:
    """Base for the per-level state records.

    Each level declares a dataclass subclass with a unique ``kind`` tag. The
    tag travels with the serialized dict so a save can be decoded back into
    the exact record type.
    """

    kind: ClassVar[str] = ""
    _kinds: ClassVar[Dict[str, Type["LevelState"]]] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if cls.kind:
            LevelState._kinds[cls.kind] = cls

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "LevelState":
        payload = dict(data)
        kind = payload.pop("kind", None)
        state_cls = LevelState._kinds.get(kind)
        if state_cls is None:
            raise ValueError(f"Unknown level state kind: {kind!r}")
        return state_cls.decode(payload)

    @classmethod
    def decode(cls, payload: Dict[str, Any]) -> "LevelState":
        return cls(**payload)


@dataclass
class LevelStats:
    """What the player did inside one level; feeds the achievement rules."""

    commands: List[str] = field(default_factory=list)
    command_count: int = 0
    used_hint: bool = False
    hint_index: int = 0
    started_at: int = field(default_factory=now_ms)

    def record_command(self, command: str) -> None:
        if command and command not in self.commands:
            self.commands.append(command)
        self.command_count += 1

    @property
    def distinct_commands(self) -> int:
        return len(self.commands)


# --- Game State ---

@dataclass
class GameState:
    player_name: str
    current_level: int = 1
    start_time: int = field(default_factory=now_ms)
    last_save_time: int = field(default_factory=now_ms)
    completed_levels: List[int] = field(default_factory=list)
    inventory: List[str] = field(default_factory=list)
    level_states: Dict[int, LevelState] = field(default_factory=dict)
    level_stats: Dict[int, LevelStats] = field(default_factory=dict)

    def mark_completed(self, level_id: int) -> bool:
        """Add *level_id* to the completed list. Returns False if it was already there."""
        if level_id in self.completed_levels:
            return False
        self.completed_levels.append(level_id)
        return True

    def stats_for(self, level_id: int) -> LevelStats:
        stats = self.level_stats.get(level_id)
        if stats is None:
            stats = self.level_stats[level_id] = LevelStats()
        return stats

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_name": self.player_name,
            "current_level": self.current_level,
            "start_time": self.start_time,
            "last_save_time": self.last_save_time,
            "completed_levels": list(self.completed_levels),
            "inventory": list(self.inventory),
            "level_states": {str(k): v.to_dict() for k, v in self.level_states.items()},
            "level_stats": {str(k): asdict(v) for k, v in self.level_stats.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GameState":
        name = str(data["player_name"]).strip()
        if not name:
            raise ValueError("Save has an empty player name")

        raw_states = data.get("level_states") or {}
        raw_stats = data.get("level_stats") or {}
        if not isinstance(raw_states, dict) or not isinstance(raw_stats, dict):
            raise ValueError("Save has malformed level records")

        level_states: Dict[int, LevelState] = {}
        for key, raw in raw_states.items():
            try:
                level_states[int(key)] = LevelState.from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                # The level re-initializes its state on next entry.
                logger.warning("Dropping unreadable state for level %s: %s", key, e)

        level_stats = {
            int(key): LevelStats(**raw) for key, raw in raw_stats.items()
        }

        completed: List[int] = []
        for level_id in data.get("completed_levels", []):
            if int(level_id) not in completed:
                completed.append(int(level_id))

        return cls(
            player_name=name,
            current_level=max(1, int(data.get("current_level", 1))),
            start_time=int(data["start_time"]),
            last_save_time=int(data.get("last_save_time", data["start_time"])),
            completed_levels=completed,
            inventory=[str(item) for item in data.get("inventory", [])],
            level_states=level_states,
            level_stats=level_stats,
        )
