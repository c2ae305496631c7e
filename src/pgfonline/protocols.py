"""
Protocol definitions for external dependencies.

These interfaces allow dependency injection for testing, enabling us to
swap the real engine process with scripted channels in tests.
"""

from typing import Optional, Protocol, Union, runtime_checkable


@runtime_checkable
class ChannelInterface(Protocol):
    """Interface for a line-oriented conversation with an engine process."""

    def write_line(self, data: Union[str, bytes]) -> None:
        """Write one line (a newline is appended) and flush it.

        Raises:
            ProcessExitedError: If the process no longer accepts input
        """
        ...

    def read_line(self, timeout: Optional[float] = None) -> bytes:
        """Read one line of engine output, without the line terminator.

        Raises:
            TexTimeoutError: If nothing arrives within timeout seconds
            ProcessExitedError: If the output stream ended
        """
        ...

    def shutdown(self, end_text: str = "", grace_period: float = 5.0) -> Optional[int]:
        """Send end_text, stop the process and release its resources.

        Idempotent. Returns the exit code when known.
        """
        ...

    def captured_log(self) -> str:
        """All output read so far, decoded."""
        ...

    @property
    def is_alive(self) -> bool:
        """Whether the process is still running."""
        ...
