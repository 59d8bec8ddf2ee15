from rich.console import Console
from rich.table import Table
from rich.theme import Theme

from .registry import WorkspaceState

# Define a custom theme for consistent output styles
custom_theme = Theme(
    {
        "info": "dim cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "header": "bold magenta",
    }
)

# Shared console instance
console = Console(theme=custom_theme)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]✔ {message}[/success]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[error]✖ {message}[/error]")


def print_info(message: str) -> None:
    """Print an informational message."""
    console.print(f"[info]ℹ {message}[/info]")


def print_workspace(conversation_id: str, state: WorkspaceState, on_disk: bool) -> None:
    """Print a workspace as a two-column table."""
    table = Table(title=f"Workspace: {conversation_id}", show_header=False)
    table.add_column("Field", style="header")
    table.add_column("Value")
    table.add_row("Path", str(state.local_path))
    table.add_row("Branch", state.branch_name)
    table.add_row("On disk", "yes" if on_disk else "no")
    console.print(table)
