"""
Engine commands: surface, measure, check.
"""

from typing import Annotated

import typer
from rich import print as rprint
from rich.table import Table

from ..exceptions import PgfOnlineError
from ._shared import CommandOption, FormatOption, app, console, fail, resolve_surface, session_options


@app.command()
def surface(
    tex_format: FormatOption = None,
    command: CommandOption = None,
):
    """Show how a surface lays out a standalone document."""
    from ..surface import sample_surface_output

    surf = resolve_surface(tex_format, command)
    console.print(sample_surface_output(surf), markup=False, highlight=False)


@app.command()
def measure(
    text: Annotated[str, typer.Argument(help="TeX to typeset in an hbox")],
    tex_format: FormatOption = None,
    command: CommandOption = None,
):
    """Measure TEXT with a live engine and print its size in bp."""
    from ..dependency_check import require_engine
    from ..session import OnlineSession

    surf = resolve_surface(tex_format, command)
    try:
        require_engine(surf)
        with OnlineSession.open(surf, **session_options()) as session:
            result = session.hbox(text)
    except PgfOnlineError as e:
        fail(e)

    rprint(f"[bold]width[/bold]:  {result.width:.4f}bp")
    rprint(f"[bold]height[/bold]: {result.height:.4f}bp")
    rprint(f"[bold]depth[/bold]:  {result.depth:.4f}bp")


@app.command()
def check():
    """Report which TeX engines are installed."""
    from ..dependency_check import check_engine
    from ..surface import LATEX_SURFACE, CONTEXT_SURFACE, PLAINTEX_SURFACE

    table = Table(title="TeX engines")
    table.add_column("Format")
    table.add_column("Command")
    table.add_column("Status")
    table.add_column("Version", style="dim")

    any_missing = False
    for surf in (LATEX_SURFACE, CONTEXT_SURFACE, PLAINTEX_SURFACE):
        available, path, version = check_engine(surf.command)
        if available:
            status = f"[green]✓[/green] {path}"
        else:
            status = "[red]✗ not found[/red]"
            any_missing = True
        table.add_row(str(surf.tex_format), surf.command, status, version or "")

    console.print(table)
    if any_missing:
        rprint("[dim]Missing engines can be installed with TeX Live or MiKTeX[/dim]")
