"""
Process channel: owns one running engine process.

The channel spawns the surface's command with piped standard streams and
offers line-oriented access to them. A daemon thread drains stdout into a
queue so a chatty engine can never block on a full pipe while we are busy
writing. Reads are bounded by a timeout; shutdown always releases the
process, first politely (end-of-document text, closed stdin), then with
terminate and kill.
"""

import logging
import os
import queue
import subprocess
import threading
import time
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .exceptions import ProcessExitedError, SpawnFailedError, TexTimeoutError
from .surface import Surface

logger = logging.getLogger(__name__)

# Marks the end of the output stream in the line queue.
_EOF = object()


def texinputs_env(search_dirs: Sequence[Union[str, Path]], base_env: Optional[dict] = None) -> dict:
    """Environment with TEXINPUTS extended by search_dirs.

    The trailing separator keeps the engine's default search path.
    """
    env = dict(os.environ if base_env is None else base_env)
    dirs = [str(d) for d in search_dirs]
    existing = env.get("TEXINPUTS", "")
    if existing:
        dirs.append(existing.rstrip(os.pathsep))
    env["TEXINPUTS"] = os.pathsep.join(dirs) + os.pathsep
    return env


class ProcessChannel:
    """Line-oriented access to a running TeX process."""

    def __init__(self, process: subprocess.Popen, name: str = "tex"):
        self.process = process
        self.name = name
        self._lines: "queue.Queue" = queue.Queue()
        self._log: List[str] = []
        self._log_lock = threading.Lock()
        self._closed = False
        self._eof = False
        self.exit_code: Optional[int] = None
        self._reader = threading.Thread(
            target=self._read_output, name=f"{name}-output", daemon=True
        )
        self._reader.start()

    @classmethod
    def start(
        cls,
        surface: Surface,
        cwd: Optional[Union[str, Path]] = None,
        search_dirs: Sequence[Union[str, Path]] = (),
    ) -> "ProcessChannel":
        """Spawn the surface's engine.

        Args:
            surface: Provides command and arguments
            cwd: Working directory for the process (output files land here)
            search_dirs: Extra directories the engine should search for input

        Raises:
            SpawnFailedError: If the process could not be started
        """
        argv = surface.argv
        env = texinputs_env(search_dirs) if search_dirs else None
        logger.debug("Starting %s in %s", " ".join(argv), cwd or os.getcwd())
        try:
            process = subprocess.Popen(
                argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                cwd=str(cwd) if cwd is not None else None,
                env=env,
                bufsize=0,
            )
        except FileNotFoundError as e:
            raise SpawnFailedError(surface.command, "executable not found") from e
        except OSError as e:
            raise SpawnFailedError(surface.command, str(e)) from e
        return cls(process, name=surface.command)

    def __enter__(self) -> "ProcessChannel":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    @property
    def is_alive(self) -> bool:
        return self.process.poll() is None

    def _read_output(self) -> None:
        """Thread routine: copy stdout lines into the queue until EOF."""
        stdout = self.process.stdout
        try:
            while True:
                line = stdout.readline()
                if not line:
                    break
                line = line.rstrip(b"\r\n")
                with self._log_lock:
                    self._log.append(line.decode("utf-8", errors="replace"))
                self._lines.put(line)
        except (OSError, ValueError):
            # Stream closed underneath us during shutdown.
            pass
        finally:
            self._lines.put(_EOF)

    def write_line(self, data: Union[str, bytes]) -> None:
        """Write one line to the engine's stdin and flush it."""
        if self._closed:
            raise ProcessExitedError("Channel is closed", self.captured_log())
        if isinstance(data, str):
            data = data.encode("utf-8")
        try:
            self.process.stdin.write(data + b"\n")
            self.process.stdin.flush()
        except (BrokenPipeError, OSError, ValueError) as e:
            raise ProcessExitedError(
                f"{self.name} stopped accepting input: {e}",
                self.captured_log(),
                self.process.poll(),
            ) from e

    def read_line(self, timeout: Optional[float] = None) -> bytes:
        """Read one line of output.

        Raises:
            TexTimeoutError: Nothing arrived within timeout seconds
            ProcessExitedError: Output ended (process exited)
        """
        if self._eof:
            raise ProcessExitedError(
                f"{self.name} exited", self.captured_log(), self.process.poll()
            )
        try:
            line = self._lines.get(timeout=timeout)
        except queue.Empty:
            raise TexTimeoutError(timeout, self.captured_log()) from None
        if line is _EOF:
            self._eof = True
            code = self.process.wait()
            raise ProcessExitedError(
                f"{self.name} exited with code {code}", self.captured_log(), code
            )
        return line

    def captured_log(self) -> str:
        with self._log_lock:
            return "\n".join(self._log)

    def shutdown(self, end_text: str = "", grace_period: float = 5.0) -> Optional[int]:
        """Finish the conversation and release the process.

        Sends end_text (if any), closes stdin and waits up to grace_period
        seconds for the engine to exit; then terminates, then kills. Always
        closes the streams. Safe to call more than once.

        Returns:
            The process exit code
        """
        if self._closed:
            return self.exit_code
        self._closed = True

        if end_text and self.is_alive:
            try:
                self.process.stdin.write(end_text.encode("utf-8") + b"\n")
                self.process.stdin.flush()
            except (BrokenPipeError, OSError, ValueError):
                pass
        try:
            self.process.stdin.close()
        except (BrokenPipeError, OSError, ValueError):
            pass

        deadline = time.monotonic() + grace_period
        for stop in (None, self.process.terminate, self.process.kill):
            if stop is not None:
                logger.warning("%s did not exit in time, sending %s", self.name, stop.__name__)
                stop()
            try:
                self.exit_code = self.process.wait(timeout=max(deadline - time.monotonic(), 0.1))
                break
            except subprocess.TimeoutExpired:
                deadline = time.monotonic() + 1.0
        else:
            self.exit_code = self.process.wait()

        self._reader.join(timeout=1.0)
        try:
            self.process.stdout.close()
        except (OSError, ValueError):
            pass
        logger.debug("%s exited with code %s", self.name, self.exit_code)
        return self.exit_code
