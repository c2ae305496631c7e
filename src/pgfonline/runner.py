"""
One-shot TeX runs for final documents.

The source is written to texrunner.tex inside a fresh temporary directory
and the engine is run on it once. Whatever PDF it leaves behind is read
back before the directory is removed.
"""

import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from .channel import texinputs_env
from .exceptions import SpawnFailedError, TexTimeoutError

logger = logging.getLogger(__name__)

JOB_NAME = "texrunner"


@dataclass
class TexRun:
    """Outcome of a one-shot run."""

    exit_code: int
    log: str
    pdf: Optional[bytes] = None

    @property
    def succeeded(self) -> bool:
        return self.pdf is not None


def run_tex(
    command: str,
    arguments: Sequence[str],
    search_dirs: Sequence[Union[str, Path]],
    source: Union[str, bytes],
    timeout: Optional[float] = None,
) -> TexRun:
    """Run the engine once on source.

    Args:
        command: Engine executable
        arguments: Extra arguments placed before the job file
        search_dirs: Directories added to TEXINPUTS
        source: Complete document
        timeout: Seconds the run may take (None waits forever)

    Returns:
        TexRun with the exit code, the log and the PDF bytes when one was made

    Raises:
        SpawnFailedError: The engine could not be started
        TexTimeoutError: The run took longer than timeout
    """
    if isinstance(source, str):
        source = source.encode("utf-8")

    with tempfile.TemporaryDirectory(prefix="pgfonline-") as tmp:
        workdir = Path(tmp)
        tex_file = workdir / f"{JOB_NAME}.tex"
        tex_file.write_bytes(source)

        argv = [command, *arguments, tex_file.name]
        logger.debug("Running %s in %s", " ".join(argv), workdir)
        try:
            result = subprocess.run(
                argv,
                cwd=workdir,
                env=texinputs_env(search_dirs),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                timeout=timeout,
            )
        except FileNotFoundError as e:
            raise SpawnFailedError(command, "executable not found") from e
        except subprocess.TimeoutExpired as e:
            output = (e.output or b"").decode("utf-8", errors="replace")
            raise TexTimeoutError(timeout, output) from e
        except OSError as e:
            raise SpawnFailedError(command, str(e)) from e

        log_file = workdir / f"{JOB_NAME}.log"
        if log_file.exists():
            log = log_file.read_text(encoding="utf-8", errors="replace")
        else:
            log = result.stdout.decode("utf-8", errors="replace")

        pdf_file = workdir / f"{JOB_NAME}.pdf"
        pdf = pdf_file.read_bytes() if pdf_file.exists() else None

    logger.info(
        "%s exited with code %d (%s)",
        command,
        result.returncode,
        "pdf written" if pdf is not None else "no pdf",
    )
    return TexRun(exit_code=result.returncode, log=log, pdf=pdf)


def search_dirs_for(out_file: Union[str, Path]) -> list:
    """The caller's cwd and the canonical directory of out_file."""
    target_dir = Path(out_file).parent.resolve()
    return [os.getcwd(), str(target_dir)]
