"""
Render scenes to .tex files or PDFs.

A ``.pdf`` target is compiled by a one-shot engine run in a temporary
directory; any other extension gets the PGF code itself. The online
variants first run a builder program (so every text is measured), then
render its scene the same way.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Optional, Union

from .builder import OnlineTex, run_online
from .exceptions import NoOutputError
from .render import RenderOptions, SizeSpec, render_document
from .runner import run_tex, search_dirs_for
from .scene import Node
from .surface import Surface

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _is_pdf(out_file: PathLike) -> bool:
    return Path(out_file).suffix.lower() == ".pdf"


def default_options(out_file: PathLike, surface: Surface, size: Optional[SizeSpec] = None) -> RenderOptions:
    """PDF targets get compact standalone code; others readable markup."""
    options = RenderOptions(surface=surface, size=size)
    if _is_pdf(out_file):
        options = options.with_readable(False).with_standalone(True)
    return options


def write_tex_file(out_file: PathLike, options: RenderOptions, scene: Node) -> None:
    """Write the rendered scene to out_file, ignoring the extension."""
    with open(out_file, "w", encoding="utf-8") as f:
        f.write(render_document(scene, options))
    logger.info("Wrote %s", out_file)


def write_pdf(out_file: PathLike, options: RenderOptions, scene: Node,
              timeout: Optional[float] = None) -> None:
    """Compile scene as a standalone document and copy the PDF to out_file.

    Raises:
        NoOutputError: The engine produced no PDF (carries the engine log)
    """
    options = options.with_standalone(True)
    source = render_document(scene, options)
    surface = options.surface
    run = run_tex(
        surface.command,
        surface.arguments,
        search_dirs_for(out_file),
        source,
        timeout=timeout,
    )
    if run.pdf is None:
        raise NoOutputError(
            f"{surface.command} produced no PDF for {out_file} (exit code {run.exit_code})",
            run.log,
        )
    Path(out_file).write_bytes(run.pdf)
    logger.info("Wrote %s", out_file)


def render_pgf_with_options(out_file: PathLike, options: RenderOptions, scene: Node) -> None:
    if _is_pdf(out_file):
        write_pdf(out_file, options, scene)
    else:
        write_tex_file(out_file, options, scene)


def render_pgf(out_file: PathLike, scene: Node, surface: Surface,
               size: Optional[SizeSpec] = None) -> None:
    """Render scene to a .tex or .pdf file."""
    render_pgf_with_options(out_file, default_options(out_file, surface, size), scene)


def render_online_pgf_with_options(
    out_file: PathLike,
    options: RenderOptions,
    program: Callable[[OnlineTex], Node],
    **session_options: Any,
):
    """Run program against an online session, then render its scene.

    The session is closed before the PDF is compiled; the compile is a fresh
    run on the complete document.

    Returns:
        The SessionOutcome of the builder run
    """
    scene, outcome = run_online(options.surface, program, **session_options)
    logger.debug("Scene built with %d measurements", outcome.queries)
    render_pgf_with_options(out_file, options, scene)
    return outcome


def render_online_pgf(
    out_file: PathLike,
    program: Callable[[OnlineTex], Node],
    surface: Surface,
    size: Optional[SizeSpec] = None,
    **session_options: Any,
):
    """Online counterpart of render_pgf."""
    return render_online_pgf_with_options(
        out_file, default_options(out_file, surface, size), program, **session_options
    )
