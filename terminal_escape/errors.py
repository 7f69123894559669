class TerminalEscapeError(Exception):
    """Base class for errors raised by the game core."""


class NoActiveGameError(TerminalEscapeError):
    """An operation needed a game in progress and there was none."""

    def __init__(self, action: str = "continue"):
        super().__init__(f"No active game to {action}.")
        self.action = action
