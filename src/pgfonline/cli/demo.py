"""
Demo command: render the sums diagram.
"""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich import print as rprint

from ..exceptions import PgfOnlineError
from ._shared import CommandOption, FormatOption, app, fail, resolve_surface, session_options


@app.command()
def demo(
    output: Annotated[Path, typer.Argument(help="Output file (.tex or .pdf)")],
    tex_format: FormatOption = None,
    command: CommandOption = None,
    width: Annotated[
        Optional[float], typer.Option("--width", help="Output width in bp")
    ] = None,
    height: Annotated[
        Optional[float], typer.Option("--height", help="Output height in bp")
    ] = None,
):
    """Render the partial sums diagram, measuring every label with TeX."""
    from ..demo import sums_diagram
    from ..dependency_check import require_engine
    from ..driver import render_online_pgf

    surf = resolve_surface(tex_format, command)
    size = (width, height) if width is not None or height is not None else None
    try:
        require_engine(surf)
        outcome = render_online_pgf(output, sums_diagram, surf, size, **session_options())
    except PgfOnlineError as e:
        fail(e)

    rprint(
        f"[green]✓[/green] Wrote [bold]{output}[/bold] "
        f"[dim]({outcome.queries} measurements with {surf.command})[/dim]"
    )
