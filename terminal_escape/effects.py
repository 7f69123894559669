import time
from typing import Dict

import pyfiglet
from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.theme import Theme

from terminal_escape.config import (
    BOOT_STEP_DELAY,
    DEFAULT_THEME,
    GAME_TITLE,
    LOADING_DELAY,
    TAGLINE,
    TYPE_DELAY,
    VERSION,
)

# --- Themes ---

THEMES: Dict[str, Dict[str, str]] = {
    "hacker": {
        "accent": "bold green",
        "border": "green",
        "command": "bold bright_green",
        "path": "cyan",
        "info": "green",
        "success": "bold bright_green",
        "warning": "yellow",
        "error": "bold red",
        "dim": "dim green",
    },
    "cyberpunk": {
        "accent": "bold magenta",
        "border": "magenta",
        "command": "bold cyan",
        "path": "bright_cyan",
        "info": "cyan",
        "success": "bold bright_magenta",
        "warning": "yellow",
        "error": "bold red",
        "dim": "dim magenta",
    },
    "retro": {
        "accent": "bold yellow",
        "border": "yellow",
        "command": "bold white",
        "path": "bright_yellow",
        "info": "yellow",
        "success": "bold bright_yellow",
        "warning": "bright_red",
        "error": "bold red",
        "dim": "dim yellow",
    },
}


def make_theme(name: str) -> Theme:
    return Theme(THEMES.get(name, THEMES[DEFAULT_THEME]))


def make_console(theme: str = DEFAULT_THEME, no_color: bool = False) -> Console:
    return Console(theme=make_theme(theme), no_color=no_color, highlight=False)


# --- Audio / Visual Engine ---

class SoundEngine:
    enabled = False

    @staticmethod
    def play():
        if not SoundEngine.enabled:
            return
        print("\a", end="", flush=True)

    @staticmethod
    def error(): SoundEngine.play()

    @staticmethod
    def success(): SoundEngine.play()

    @staticmethod
    def achievement(): SoundEngine.play()


class VisualFX:
    """Blocking terminal animations. ``enabled = False`` turns every delay off."""

    enabled = True

    @staticmethod
    def pause(seconds: float):
        if VisualFX.enabled and seconds > 0:
            time.sleep(seconds)

    @staticmethod
    def banner(console: Console, title: str = GAME_TITLE):
        art = pyfiglet.figlet_format(title, font="small")
        body = f"[accent]{art}[/]\n[dim]{TAGLINE} v{VERSION}[/]"
        console.print(Panel(Align.center(body), border_style="border"))

    @staticmethod
    def typewriter(console: Console, text: str, style: str = "info", delay: float = TYPE_DELAY):
        if not VisualFX.enabled:
            console.print(text, style=style, markup=False)
            return
        for ch in text:
            console.print(ch, style=style, end="", markup=False)
            time.sleep(delay)
        console.print()

    @staticmethod
    def loading(console: Console, message: str = "Loading"):
        with console.status(f"[info]{message}...[/]", spinner="dots"):
            VisualFX.pause(LOADING_DELAY)

    @staticmethod
    def boot(console: Console):
        steps = [
            "Initializing kernel",
            "Mounting virtual file system",
            "Starting process table",
            "Applying permission masks",
            "Bringing up network stack",
        ]
        console.clear()
        for step in steps:
            console.print(f"[dim][    OK    ][/] {step}")
            VisualFX.pause(BOOT_STEP_DELAY)
        VisualFX.typewriter(console, "System ready. You are locked in.", style="success")
        VisualFX.pause(BOOT_STEP_DELAY)
