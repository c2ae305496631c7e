"""
Config commands: init, show, path.
"""

from typing import Annotated

import typer
from rich import print as rprint

from ._shared import config_app


CONFIG_TEMPLATE = """\
# pgfonline configuration
# Location: {path}

# engine:
#   format: latex        # l(atex), c(ontext), p(lain)
#   command: lualatex    # run this instead of the format's default command
#   timeout: 30          # seconds per measurement round-trip
#   max_lines: 2000      # engine output lines read per measurement
#   max_shipouts: 0      # pages a measurement may ship out
#   grace_period: 5      # seconds to wait for the engine to exit
"""


@config_app.callback(invoke_without_command=True)
def config_default(ctx: typer.Context):
    """Show current configuration (default when no subcommand given)."""
    if ctx.invoked_subcommand is None:
        _config_show()


@config_app.command("init")
def config_init(
    force: Annotated[
        bool, typer.Option("--force", help="Overwrite existing config file")
    ] = False,
):
    """Create a config file with documented defaults.

    Creates ~/.pgfonline/config.yaml with all options commented out.
    Use --force to overwrite an existing config file.
    """
    from ..config import CONFIG_PATH

    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)

    if CONFIG_PATH.exists() and not force:
        rprint(f"[yellow]Config file already exists:[/yellow] {CONFIG_PATH}")
        rprint("[dim]Use --force to overwrite[/dim]")
        raise typer.Exit(1)

    CONFIG_PATH.write_text(CONFIG_TEMPLATE.format(path=CONFIG_PATH))
    rprint(f"[green]✓[/green] Created config file: [bold]{CONFIG_PATH}[/bold]")
    rprint("[dim]Edit to customize your settings[/dim]")


@config_app.command("show")
def config_show():
    """Show current configuration."""
    _config_show()


def _config_show():
    """Display the effective engine settings and where they came from."""
    from ..config import CONFIG_PATH, get_engine_config, load_config

    if CONFIG_PATH.exists():
        source = str(CONFIG_PATH)
        if not load_config():
            rprint(f"[dim]Config file is empty: {CONFIG_PATH}[/dim]")
    else:
        source = "defaults and environment"
        rprint(f"[dim]No config file found at {CONFIG_PATH}[/dim]")
        rprint("[dim]Run 'pgfonline config init' to create one[/dim]")

    rprint(f"[bold]Engine settings[/bold] ({source}):\n")
    for key, value in get_engine_config().items():
        rprint(f"  {key}: {value if value is not None else '[dim](surface default)[/dim]'}")


@config_app.command("path")
def config_path():
    """Show the config file path."""
    from ..config import CONFIG_PATH
    print(CONFIG_PATH)
