from typing import Dict, List

from terminal_escape.config import MAX_HISTORY_SIZE


class CommandHistory:
    """Per-player list of recent commands, newest first."""

    def __init__(self, max_size: int = MAX_HISTORY_SIZE):
        self.max_size = max_size
        self._histories: Dict[str, List[str]] = {}

    def add(self, player: str, command: str) -> None:
        command = command.strip()
        history = self._histories.setdefault(player, [])
        # skip blanks and an immediate repeat
        if not command or (history and history[0] == command):
            return
        history.insert(0, command)
        del history[self.max_size:]

    def get(self, player: str) -> List[str]:
        return list(self._histories.get(player, []))

    def clear(self, player: str) -> None:
        self._histories[player] = []
