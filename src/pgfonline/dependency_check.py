"""
Dependency checking for TeX engines.

Provides functions to check whether the command of a surface is installed
and to fail early with a helpful message when it is not.
"""

import shutil
import subprocess
from typing import Optional, Tuple

from .exceptions import EngineNotFoundError
from .surface import Surface


def find_executable(name: str) -> Optional[str]:
    """Find the path to an executable.

    Args:
        name: Name of the executable

    Returns:
        Full path to executable, or None if not found
    """
    return shutil.which(name)


def check_engine(command: str) -> Tuple[bool, Optional[str], Optional[str]]:
    """Check if a TeX engine is available and get its version.

    Args:
        command: Engine command, e.g. "pdflatex"

    Returns:
        Tuple of (is_available, path, version)
    """
    path = find_executable(command)
    if not path:
        return False, None, None

    try:
        result = subprocess.run(
            [command, "--version"],
            capture_output=True,
            text=True,
            timeout=10
        )
        if result.returncode == 0 and result.stdout.strip():
            # First line looks like "pdfTeX 3.141592653-2.6-1.40.25 (TeX Live 2023)"
            version = result.stdout.strip().splitlines()[0]
            return True, path, version
        return True, path, None
    except (subprocess.SubprocessError, OSError):
        return True, path, None


def require_engine(surface: Surface) -> str:
    """Ensure the surface's command is available, raise if not.

    Returns:
        Path to the engine executable

    Raises:
        EngineNotFoundError: If the command is not found
    """
    available, path, _ = check_engine(surface.command)
    if not available:
        raise EngineNotFoundError(surface.command)
    return path
