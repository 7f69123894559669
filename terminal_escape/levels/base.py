import enum
import logging
from dataclasses import dataclass
from typing import Callable, ClassVar, Dict, Iterator, List, Optional, Tuple, Type

from thefuzz import process

from terminal_escape.config import FUZZY_CONFIDENCE
from terminal_escape.state import GameState, LevelState

logger = logging.getLogger(__name__)


class NextAction(enum.Enum):
    CONTINUE = "continue"
    NEXT_LEVEL = "next_level"
    MAIN_MENU = "main_menu"


@dataclass(frozen=True)
class LevelResult:
    """Outcome of one line of input. ``message`` is plain text, never markup."""

    completed: bool = False
    message: Optional[str] = None
    next_action: NextAction = NextAction.CONTINUE
    events: Tuple[str, ...] = ()


def reply(message: str, *events: str) -> LevelResult:
    return LevelResult(completed=False, message=message, events=events)


def solved(message: str, next_action: NextAction = NextAction.NEXT_LEVEL) -> LevelResult:
    return LevelResult(completed=True, message=message, next_action=next_action)


Handler = Callable[[LevelState, List[str]], LevelResult]


class Level:
    """One puzzle stage.

    Subclasses set the class attributes, fill ``self.cmds`` with their
    command table and implement ``render``. Instances are registered once and
    never mutated afterwards; everything that changes lives in the level's
    ``state_type`` record inside the game state.
    """

    id: ClassVar[int]
    name: ClassVar[str]
    description: ClassVar[str]
    hints: ClassVar[Tuple[str, ...]] = ()
    state_type: ClassVar[Type[LevelState]]

    def __init__(self):
        self.cmds: Dict[str, Handler] = {}

    def initialize(self, game: GameState) -> LevelState:
        """Return the level's state, creating it only if missing or of the wrong kind."""
        state = game.level_states.get(self.id)
        if not isinstance(state, self.state_type):
            if state is not None:
                logger.warning("Level %s had a %s state, resetting", self.id, type(state).__name__)
            state = game.level_states[self.id] = self.state_type()
        return state

    def render(self, state: LevelState) -> List[str]:
        raise NotImplementedError

    def handle_input(self, state: LevelState, line: str) -> LevelResult:
        parts = line.strip().split()
        if not parts:
            return reply("Type a command. Use /help to see the game commands.")

        cmd, args = parts[0].lower(), parts[1:]
        handler = self.cmds.get(cmd)
        if handler is None:
            return self.unknown(cmd)
        return handler(state, args)

    def unknown(self, cmd: str) -> LevelResult:
        msg = f"Unknown command: '{cmd}'."
        suggestion = suggest(cmd, self.cmds)
        if suggestion:
            msg += f" Did you mean '{suggestion}'?"
        return reply(msg)


def suggest(word: str, vocabulary) -> Optional[str]:
    choices = list(vocabulary)
    if not word or not choices:
        return None
    match = process.extractOne(word, choices)
    if match and match[1] >= FUZZY_CONFIDENCE:
        return match[0]
    return None


def parse_int(text: str) -> Optional[int]:
    try:
        return int(text)
    except ValueError:
        return None


# --- Registry ---

class LevelRegistry:
    def __init__(self):
        self._levels: Dict[int, Level] = {}

    def register(self, level: Level) -> None:
        if level.id in self._levels:
            logger.debug("Level %s registered twice, keeping the latest", level.id)
        self._levels[level.id] = level
        logger.debug("Registered level %s - %s", level.id, level.name)

    def get(self, level_id: int) -> Optional[Level]:
        return self._levels.get(level_id)

    def all(self) -> List[Level]:
        return [self._levels[k] for k in sorted(self._levels)]

    @property
    def last_id(self) -> int:
        return max(self._levels) if self._levels else 0

    def __len__(self) -> int:
        return len(self._levels)

    def __contains__(self, level_id: object) -> bool:
        return level_id in self._levels

    def __iter__(self) -> Iterator[Level]:
        return iter(self.all())
