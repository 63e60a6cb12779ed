"""
Rich-based terminal rendering for story play.

Pure presentation: every function takes plain engine values and prints
them. Nothing here mutates the engine.
"""

from rich.box import ROUNDED
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..state.schema import NARRATOR, Choice, GameState, StoryNode
from ..systems.enhancement import strip_markers
from ..tools.dice import SkillCheckResult


# Shared console instance
console = Console()

THEME = {
    "primary": "steel_blue",
    "secondary": "grey70",
    "warning": "dark_goldenrod",
    "danger": "dark_red",
    "accent": "cyan",
    "success": "green3",
    "dim": "dim",
    "text": "grey85",
}


def show_title(title: str, author: str = "", description: str = "") -> None:
    """Story title card."""
    body = f"[bold {THEME['primary']}]{escape(title or 'Untitled story')}[/bold {THEME['primary']}]"
    if author:
        body += f"\n[{THEME['dim']}]by {escape(author)}[/{THEME['dim']}]"
    if description:
        body += f"\n\n[{THEME['text']}]{escape(description)}[/{THEME['text']}]"
    console.print(Panel(body, border_style=THEME["primary"], box=ROUNDED, padding=(1, 2)))


def render_node(node: StoryNode, location: str = "") -> None:
    """Render a node's text in a panel titled with its speaker."""
    if node.speaker == NARRATOR:
        title = escape(node.title or "")
        color = THEME["primary"]
    else:
        title = escape(node.speaker)
        color = THEME["accent"]

    if location:
        title = f"{title} - {location}" if title else location

    console.print(Panel(
        escape(strip_markers(node.text)) or f"[{THEME['dim']}](silence)[/{THEME['dim']}]",
        title=f"[bold {color}]{title}[/bold {color}]" if title else None,
        title_align="left",
        border_style=color,
        box=ROUNDED,
        padding=(0, 1),
    ))


def render_choices(choices: list[tuple[int, Choice, bool]]) -> None:
    """Numbered choices; locked ones are dimmed and tagged."""
    if not choices:
        console.print(f"[{THEME['dim']}]The story rests here. (/load, /quit)[/{THEME['dim']}]")
        return

    lines = []
    for index, choice, available in choices:
        number = index + 1
        if available:
            lines.append(f"[{THEME['accent']}]{number}.[/{THEME['accent']}] {escape(choice.text)}")
        else:
            lines.append(
                f"[{THEME['dim']}]{number}. {escape(choice.text)} (locked: {escape(choice.condition or '')})[/{THEME['dim']}]"
            )
    console.print(Panel("\n".join(lines), border_style=THEME["primary"], padding=(0, 1)))


def render_check(result: SkillCheckResult) -> None:
    color = THEME["success"] if result.success else THEME["warning"]
    console.print(
        f"[{color}]{result.skill.title()} check: {result.skill_value} + d20({result.roll}) "
        f"= {result.total} vs {result.difficulty} - {result.narrative}[/{color}]"
    )


def render_state(state: GameState) -> None:
    """Stats, inventory and set flags."""
    table = Table(show_header=False, box=None)
    table.add_column("Key", style=THEME["dim"])
    table.add_column("Value", style=THEME["secondary"])

    for name, value in sorted(state.stats.items()):
        table.add_row(name, str(value))
    table.add_row("inventory", ", ".join(state.inventory) or "-")
    flags = [name for name, value in sorted(state.flags.items()) if value]
    table.add_row("flags", ", ".join(flags) or "-")
    for name, value in sorted(state.variables.items()):
        table.add_row(f"var {name}", str(value))

    console.print(Panel(table, title="State", title_align="left", border_style=THEME["secondary"]))


def render_saves(saves: list[dict]) -> None:
    if not saves:
        console.print(f"[{THEME['dim']}]No saves yet[/{THEME['dim']}]")
        return

    table = Table(box=None)
    table.add_column("Slot", style=THEME["accent"])
    table.add_column("Story", style=THEME["secondary"])
    table.add_column("Node", style=THEME["secondary"])
    table.add_column("Saved", style=THEME["dim"])
    for save in saves:
        table.add_row(
            save["slot"],
            save["story_title"],
            save["current_node"],
            save["timestamp"].strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


def render_error(message: str) -> None:
    console.print(f"[{THEME['danger']}]{escape(message)}[/{THEME['danger']}]")


def render_system(message: str) -> None:
    console.print(f"[{THEME['dim']}]* {escape(message)}[/{THEME['dim']}]")


def show_help() -> None:
    """Show available commands."""
    help_text = """
## Commands

| Command | Description |
|---------|-------------|
| `1`, `2`, ... | Pick a choice |
| `/save [slot]` | Save progress (default slot `quick`) |
| `/load [slot]` | Load a save |
| `/saves` | List saves |
| `/state` | Show stats, inventory and flags |
| `/help` | Show this help |
| `/quit` | Exit |
"""
    console.print(Markdown(help_text))
