"""
CLI interface for pgfonline using Typer.
"""

from ._shared import app, main_callback  # noqa: F401

# Import submodules to register their commands with the Typer app
from . import engine  # noqa: F401
from . import demo  # noqa: F401
from . import config  # noqa: F401


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
