"""Terminal Escape: a Linux-themed escape room played in the terminal."""

from terminal_escape.config import VERSION as __version__
from terminal_escape.session import GameSession, SaveResult

__all__ = ["GameSession", "SaveResult", "__version__"]
