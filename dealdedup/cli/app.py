"""Main CLI application."""

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from .check import check_command
from .cleanup import cleanup_command, preview_command
from .init import init_command

app = typer.Typer(
    name="dealdedup",
    help="Duplicate detection and cleanup for deal news articles",
    no_args_is_help=True,
)

# Register commands
app.command("init")(init_command)
app.command("preview")(preview_command)
app.command("cleanup")(cleanup_command)
app.command("check")(check_command)


if __name__ == "__main__":
    app()
