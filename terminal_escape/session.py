import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from terminal_escape.achievements import (
    COMMAND_USED,
    HINT_USED,
    LEVEL_COMPLETED,
    Achievement,
    AchievementTracker,
)
from terminal_escape.config import LEADERBOARD_FILE, PROFILE_SUFFIX, SAVES_DIRNAME
from terminal_escape.errors import NoActiveGameError
from terminal_escape.history import CommandHistory
from terminal_escape.leaderboard import Leaderboard
from terminal_escape.levels import Level, LevelRegistry, LevelResult, NextAction, build_registry
from terminal_escape.profiles import PlayerProfile, ProfileStore
from terminal_escape.state import GameState
from terminal_escape.storage import now_ms, read_json, safe_filename, write_json

logger = logging.getLogger(__name__)


@dataclass
class SaveResult:
    success: bool
    message: str


class GameSession:
    """Owns the active game state and everything that persists around it.

    The UI holds exactly one session and drives it one line at a time. Levels
    never see the session: they get their own state record and hand back a
    ``LevelResult``; the session applies the consequences (achievements,
    completion, saving).
    """

    def __init__(
        self,
        data_dir: Path,
        registry: Optional[LevelRegistry] = None,
        on_unlock: Optional[Callable[[Achievement], None]] = None,
    ):
        self.data_dir = Path(data_dir)
        self.saves_dir = self.data_dir / SAVES_DIRNAME
        self.registry = registry if registry is not None else build_registry()
        self.profiles = ProfileStore(self.saves_dir)
        self.leaderboard = Leaderboard(self.data_dir / LEADERBOARD_FILE)
        self.history = CommandHistory()
        self.on_unlock = on_unlock

        self.state: Optional[GameState] = None
        self.profile: Optional[PlayerProfile] = None
        self.tracker: Optional[AchievementTracker] = None
        self._clock = now_ms()

    def initialize_storage(self) -> None:
        try:
            self.saves_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Failed to create save directory %s: %s", self.saves_dir, e)
        self.leaderboard.ensure()

    # --- Helpers ---

    def save_path(self, name: str) -> Path:
        return self.saves_dir / f"{safe_filename(name)}.json"

    def list_saves(self) -> List[str]:
        if not self.saves_dir.is_dir():
            return []
        return sorted(
            p.stem for p in self.saves_dir.glob("*.json") if not p.name.endswith(PROFILE_SUFFIX)
        )

    def require_state(self, action: str = "continue") -> GameState:
        if self.state is None:
            raise NoActiveGameError(action)
        return self.state

    @property
    def current_level(self) -> Optional[Level]:
        if self.state is None:
            return None
        return self.registry.get(self.state.current_level)

    @property
    def is_finished(self) -> bool:
        return self.state is not None and self.state.current_level > self.registry.last_id

    def _attach_profile(self, player_name: str) -> None:
        self.profile = self.profiles.ensure(player_name)
        self.tracker = AchievementTracker(
            self.profile.achievements,
            persist=lambda: self.profiles.save(self.profile),
            on_unlock=self._announce,
        )
        self._clock = now_ms()

    def _announce(self, achievement: Achievement) -> None:
        if self.on_unlock:
            self.on_unlock(achievement)

    def _checkpoint_play_time(self) -> None:
        now = now_ms()
        if self.profile is not None:
            self.profile.add_play_time(now - self._clock)
        self._clock = now

    # --- Lifecycle ---

    def create_new_game(self, player_name: str) -> GameState:
        name = player_name.strip()
        if not name:
            raise ValueError("Player name cannot be empty")

        self.state = GameState(player_name=name)
        self.history.clear(name)
        self._attach_profile(name)
        logger.info("New game for %s", name)
        self.start_level(self.state.current_level)
        return self.state

    def save(self) -> SaveResult:
        if self.state is None:
            logger.error("No active game to save")
            return SaveResult(False, "No active game to save.")

        name = self.state.player_name
        previous = self.state.last_save_time
        self.state.last_save_time = max(previous, now_ms())
        if not write_json(self.save_path(name), self.state.to_dict()):
            self.state.last_save_time = previous
            return SaveResult(False, f"Failed to save game for {name}.")

        self._checkpoint_play_time()
        if self.profile is not None:
            self.profiles.save(self.profile)
        return SaveResult(True, f"Game saved as {name}")

    def autosave(self) -> SaveResult:
        result = self.save()
        if not result.success:
            logger.warning("Autosave failed: %s", result.message)
        return result

    def load(self, name: str) -> SaveResult:
        data = read_json(self.save_path(name))
        if not isinstance(data, dict):
            return SaveResult(False, f"No readable save found for {name}.")
        try:
            state = GameState.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Corrupt save for %s: %s", name, e)
            return SaveResult(False, f"Save for {name} is corrupt.")

        state.current_level = min(state.current_level, self.registry.last_id + 1)
        if self.state is not None:
            self._checkpoint_play_time()
        self.state = state
        self._attach_profile(state.player_name)
        level = self.current_level
        if level is not None:
            level.initialize(state)
            state.stats_for(level.id)
        logger.info("Game loaded: %s", name)
        return SaveResult(True, f"Game loaded: {state.player_name}")

    def start_level(self, level_id: int) -> bool:
        state = self.require_state("start a level")
        level = self.registry.get(level_id)
        if level is None:
            logger.error("Level %s not found", level_id)
            return False
        if level_id < state.current_level:
            logger.error("Refusing to move back from level %s to %s", state.current_level, level_id)
            return False

        state.current_level = level_id
        level.initialize(state)
        state.stats_for(level_id)
        self.autosave()
        return True

    def complete_current_level(self) -> Optional[Level]:
        """Record the current level as done and move on. Returns the next level, if any."""
        state = self.require_state("complete a level")
        level_id = state.current_level
        if level_id not in self.registry:
            logger.warning("Level %s is not registered, nothing to complete", level_id)
            return None

        newly_completed = state.mark_completed(level_id)
        if self.profile is not None:
            self.profile.mark_completed(level_id)

        stats = state.stats_for(level_id)
        self.tracker.notify(
            LEVEL_COMPLETED,
            level_id=level_id,
            time_spent_ms=now_ms() - stats.started_at,
            used_hint=stats.used_hint,
            final=level_id == self.registry.last_id,
        )

        if newly_completed and all(level.id in state.completed_levels for level in self.registry):
            total = now_ms() - state.start_time
            if not self.leaderboard.record(state.player_name, total):
                logger.error("Failed to update leaderboard for %s", state.player_name)

        state.current_level = level_id + 1
        next_level = self.registry.get(state.current_level)
        if next_level is not None:
            self.start_level(next_level.id)
        else:
            self.save()
        return next_level

    # --- Turns ---

    def current_view(self) -> List[str]:
        """Rendered lines for the active level. Re-creates a missing level state first."""
        state = self.require_state("render a level")
        level = self.current_level
        if level is None:
            raise NoActiveGameError("render a level")
        return level.render(level.initialize(state))

    def submit(self, line: str) -> LevelResult:
        state = self.require_state("play")
        level = self.current_level
        if level is None:
            return LevelResult(
                message="You have already escaped. Start a new game to play again.",
                next_action=NextAction.MAIN_MENU,
            )

        level_state = level.initialize(state)
        self.history.add(state.player_name, line)

        words = line.lower().split()
        if words:
            stats = state.stats_for(level.id)
            # distinct = distinct recognised command lines; unknown words only add to the total
            stats.record_command(" ".join(words) if words[0] in level.cmds else "")
            self.tracker.notify(
                COMMAND_USED,
                level_id=level.id,
                distinct_commands=stats.distinct_commands,
                command_count=stats.command_count,
            )

        result = level.handle_input(level_state, line)
        for event in result.events:
            self.tracker.notify(event, level_id=level.id)
        if result.completed:
            self.complete_current_level()
        return result

    def request_hint(self) -> Optional[str]:
        state = self.require_state("get a hint")
        level = self.current_level
        if level is None:
            return None
        stats = state.stats_for(level.id)
        if stats.hint_index >= len(level.hints):
            return None

        hint = level.hints[stats.hint_index]
        stats.hint_index += 1
        stats.used_hint = True
        self.tracker.notify(HINT_USED, level_id=level.id)
        return hint
