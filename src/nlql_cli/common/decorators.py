from functools import wraps
import sys
import traceback

from nlql.common.errors import FailureCategory, NlqlError
from rich.markup import escape

from nlql_cli.console import err_console, print_error

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_EXTERNAL_SERVICE = 3
EXIT_DATABASE = 4
EXIT_INTERRUPTED = 130

_EXIT_CODES = {
    FailureCategory.USAGE: EXIT_USAGE,
    FailureCategory.EXTERNAL_SERVICE: EXIT_EXTERNAL_SERVICE,
    FailureCategory.DATABASE: EXIT_DATABASE,
}


def exit_code_for(error: NlqlError) -> int:
    return _EXIT_CODES.get(error.category, EXIT_FAILURE)


def handle_cli_errors(func):
    """
    Decorator to wrap CLI commands with unified error handling.

    - NlqlError: Prints the error kind and message, exits with the category's code.
    - KeyboardInterrupt: Exits with 130.
    - Unexpected Exception: Prints stack trace and error, exits with 1.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except NlqlError as e:
            print_error(f"{e.stage.value} failed ({e.kind}): {e.message}")
            if e.sql:
                err_console.print(f"[dim]sql: {escape(e.sql)}[/dim]", highlight=False)
            sys.exit(exit_code_for(e))
        except KeyboardInterrupt:
            err_console.print("\n[yellow]Operation cancelled by user.[/yellow]")
            sys.exit(EXIT_INTERRUPTED)
        except Exception as e:
            print_error(f"Unexpected Error: {e}")
            err_console.print(traceback.format_exc(), markup=False)
            sys.exit(EXIT_FAILURE)

    return wrapper
