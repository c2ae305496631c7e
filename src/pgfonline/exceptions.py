"""
Exception hierarchy for pgfonline.

Every failure of the external engine is fatal to the session that saw it.
Nothing here is retried: resending input to a confused TeX interpreter is
not safe, so errors carry whatever log was captured and propagate up.
"""

from typing import Optional


class PgfOnlineError(Exception):
    """Base class for all pgfonline errors."""


class EngineLogError(PgfOnlineError):
    """An error that comes with the engine output captured so far."""

    def __init__(self, message: str, log: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.log = log or ""

    def __str__(self) -> str:
        message = self.message
        if not self.log:
            return message
        tail = "\n".join(self.log.rstrip().splitlines()[-10:])
        return f"{message}\n--- engine log (tail) ---\n{tail}"


class SpawnFailedError(PgfOnlineError):
    """The engine process could not be started."""

    def __init__(self, command: str, reason: str = ""):
        self.command = command
        self.reason = reason
        message = f"Could not start '{command}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class EngineNotFoundError(SpawnFailedError):
    """The engine executable is not on PATH."""

    def __init__(self, command: str):
        super().__init__(
            command,
            "executable not found. Install a TeX distribution "
            "(e.g. TeX Live) or pass --command",
        )


class ProcessExitedError(EngineLogError):
    """The engine process exited while the session still needed it."""

    def __init__(self, message: str = "TeX process exited unexpectedly",
                 log: Optional[str] = None, exit_code: Optional[int] = None):
        super().__init__(message, log)
        self.exit_code = exit_code


class TexTimeoutError(EngineLogError):
    """No matching output arrived from the engine within the time bound."""

    def __init__(self, timeout: float, log: Optional[str] = None):
        super().__init__(f"TeX did not respond within {timeout:g} seconds", log)
        self.timeout = timeout


class NoMeasurementError(EngineLogError):
    """The engine answered but no usable measurement line was found."""


class EngineReportedError(EngineLogError):
    """The engine reported an error (a line starting with '!')."""

    def __init__(self, error_line: str, log: Optional[str] = None):
        super().__init__(f"TeX reported an error: {error_line}", log)
        self.error_line = error_line


class SessionStateError(PgfOnlineError):
    """An operation was attempted in the wrong session state."""

    def __init__(self, operation: str, state: str):
        super().__init__(f"Cannot {operation} while session is {state}")
        self.operation = operation
        self.state = state


class NoOutputError(EngineLogError):
    """The engine finished but did not produce the requested document."""


class InvalidFormatError(PgfOnlineError, ValueError):
    """A TeX format name could not be resolved."""

    def __init__(self, value: str):
        super().__init__(
            f"Unknown format '{value}' (use l for LaTeX, c for ConTeXt, p for plain TeX)"
        )
        self.value = value
