from rich.console import Console
from rich.markup import escape
from rich.theme import Theme

custom_theme = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
    "command": "bold white on blue",
})

console = Console(theme=custom_theme)
err_console = Console(theme=custom_theme, stderr=True)


def print_output(text: str) -> None:
    """Writes command output verbatim: no markup, highlighting or wrapping."""
    console.print(text, markup=False, highlight=False, soft_wrap=True)


def print_success(message: str) -> None:
    err_console.print(f"[success]✔ {escape(message)}[/success]")


def print_warning(message: str) -> None:
    err_console.print(f"[warning]! {escape(message)}[/warning]")


def print_error(message: str) -> None:
    err_console.print(f"[error]✘ {escape(message)}[/error]")
