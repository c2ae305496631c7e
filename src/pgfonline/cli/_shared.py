"""
Shared CLI state: Typer apps, console, options, and utilities.
"""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape

from ..exceptions import EngineLogError, PgfOnlineError
from ..logging_config import setup_cli_logging

# Main app
app = typer.Typer(
    name="pgfonline",
    help="Render PGF diagrams and measure text with a live TeX process",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Config subcommand group
config_app = typer.Typer(
    name="config",
    help="Manage configuration",
    no_args_is_help=False,
    invoke_without_command=True,
)
app.add_typer(config_app, name="config")

# Console for rich output
console = Console()
err_console = Console(stderr=True)

FormatOption = Annotated[
    Optional[str],
    typer.Option(
        "--format", "-f",
        help="TeX format: l(atex), c(ontext) or p(lain)/t(ex)",
    ),
]

CommandOption = Annotated[
    Optional[str],
    typer.Option(
        "--command", "-c",
        metavar="PATH",
        help="Engine command to run instead of the format's default",
    ),
]


def resolve_surface(tex_format: Optional[str], command: Optional[str]):
    """Surface from CLI options, falling back to the user's configuration."""
    from ..config import get_default_surface
    from ..surface import parse_format, surface_for_format

    if tex_format is None:
        try:
            surface = get_default_surface()
        except ValueError as e:
            raise typer.BadParameter(
                f"{e} (from the config file or PGFONLINE_FORMAT)", param_hint="--format"
            ) from e
    else:
        try:
            surface = surface_for_format(parse_format(tex_format))
        except ValueError as e:
            raise typer.BadParameter(str(e), param_hint="--format") from e
    if command:
        surface = surface.with_command(command)
    return surface


def session_options() -> dict:
    """Session limits from the user's configuration."""
    from ..config import get_engine_config

    engine = get_engine_config()
    return {
        "timeout": engine["timeout"],
        "max_lines": engine["max_lines"],
        "max_shipouts": engine["max_shipouts"],
        "grace_period": engine["grace_period"],
    }


def fail(error: PgfOnlineError) -> None:
    """Print an engine failure with its log and exit 1."""
    # str() of an engine error only shows the log tail; the full log follows
    message = error.message if isinstance(error, EngineLogError) else str(error)
    err_console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
    log = getattr(error, "log", "")
    if log:
        err_console.rule("[dim]engine log[/dim]", style="dim")
        err_console.print(log, markup=False, highlight=False)
    raise typer.Exit(1)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log engine traffic to stderr")
    ] = False,
    log_file: Annotated[
        Optional[Path],
        typer.Option("--log-file", metavar="FILE", help="Also write the log to FILE"),
    ] = None,
):
    """Render PGF diagrams and measure text with a live TeX process."""
    setup_cli_logging(verbose=verbose, log_file=log_file)
