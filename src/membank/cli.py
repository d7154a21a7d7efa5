"""membank command-line entry point."""

import typer

from .commands import init as init_cmd
from .commands import update as update_cmd
from .commands import restore as restore_cmd
from .commands import guide as guide_cmd
from .commands import status as status_cmd
from .commands import config_cmd
from .commands import logs as logs_cmd

app = typer.Typer(
    name="membank",
    help="Keep an AI assistant's memory bank current without touching your project notes",
    no_args_is_help=True,
)


@app.callback()
def main() -> None:
    """membank - memory bank manager for AI coding assistants."""
    from .logging import log_from_cli

    log_from_cli()


# Setup and updates
app.command(name="init")(init_cmd.init)
app.add_typer(update_cmd.app, name="update")
app.command(name="restore")(restore_cmd.restore)
app.command(name="backups")(restore_cmd.backups)

# Stack guide, also reachable as a question
app.command(name="guide")(guide_cmd.guide)
app.command(name="help-me-choose")(guide_cmd.guide)

# Inspection
app.command(name="status")(status_cmd.status)
app.command(name="classify")(status_cmd.classify_cmd)

# Settings and logs
app.add_typer(config_cmd.app, name="config")
app.add_typer(logs_cmd.app, name="logs")


if __name__ == "__main__":
    app()
