"""
Test fixtures and factories for pgfonline unit tests.

ScriptedChannel stands in for a running engine: every line written to it is
passed to a responder that decides which output lines the "engine" prints
in reply. Reads never block; an empty output queue behaves like a timeout.
"""

import re
import sys
from collections import deque
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from pgfonline.exceptions import ProcessExitedError, TexTimeoutError
from pgfonline.surface import PLAINTEX_SURFACE, Surface

MOCK_TEX = Path(__file__).parent / "mock_tex.py"

Responder = Callable[[str], List[str]]

_HBOX = re.compile(r"\\hbox\{(.*)\}%\s*$")


def fake_size(content: str) -> Tuple[float, float, float]:
    """Same fake metrics as mock_tex.py: 5pt per character, 7pt high, 2pt deep."""
    return (5.0 * len(content), 7.0, 2.0)


class MeasuringResponder:
    """Answers the ready marker and measurement fragments.

    Args:
        sizes: Optional content -> (width, height, depth) in pt
        before_answer: Extra lines printed before each measurement answer
    """

    def __init__(self, sizes: Optional[Dict[str, Tuple[float, float, float]]] = None,
                 before_answer: Optional[List[str]] = None):
        self.sizes = sizes or {}
        self.before_answer = before_answer or []
        self.measured: List[str] = []
        self._content: Optional[str] = None

    def __call__(self, line: str) -> List[str]:
        if "PGF\\string-READY" in line:
            return ["PGF-READY"]
        match = _HBOX.search(line)
        if match:
            self._content = match.group(1)
            self.measured.append(self._content)
            return []
        if "!PGF-PARSE:" in line and self._content is not None:
            w, h, d = self.sizes.get(self._content, fake_size(self._content))
            self._content = None
            return [*self.before_answer, f"!PGF-PARSE:{w}pt,{h}pt,{d}pt"]
        return []


def replying(*lines: str, ready: bool = True) -> Responder:
    """Responder that answers the ready marker, then prints lines once."""
    queued = list(lines)

    def responder(line: str) -> List[str]:
        if "PGF\\string-READY" in line:
            return ["PGF-READY"] if ready else []
        if "!PGF-PARSE:" in line:
            out, queued[:] = list(queued), []
            return out
        return []

    return responder


class ScriptedChannel:
    """In-memory ChannelInterface driven by a responder."""

    def __init__(self, responder: Optional[Responder] = None):
        self.responder = responder or MeasuringResponder()
        self.written: List[str] = []
        self.shutdown_calls: List[str] = []
        self._pending: deque = deque()
        self._log: List[str] = []
        self._alive = True
        self.exit_after_write = False

    @property
    def is_alive(self) -> bool:
        return self._alive

    def write_line(self, data) -> None:
        if not self._alive:
            raise ProcessExitedError("Channel is closed", self.captured_log())
        text = data.decode("utf-8") if isinstance(data, bytes) else data
        self.written.append(text)
        for line in text.split("\n"):
            self._pending.extend(self.responder(line))
        if self.exit_after_write:
            self._alive = False

    def read_line(self, timeout: Optional[float] = None) -> bytes:
        if self._pending:
            line = self._pending.popleft()
            self._log.append(line)
            return line.encode("utf-8")
        if not self._alive:
            raise ProcessExitedError("tex exited", self.captured_log(), 1)
        raise TexTimeoutError(timeout or 0.0, self.captured_log())

    def shutdown(self, end_text: str = "", grace_period: float = 5.0) -> Optional[int]:
        self.shutdown_calls.append(end_text)
        self._alive = False
        return 0

    def captured_log(self) -> str:
        return "\n".join(self._log)


def scripted_factory(channel: ScriptedChannel) -> Callable[[Surface], ScriptedChannel]:
    """channel_factory for OnlineSession.open that hands out channel."""
    def factory(surface: Surface) -> ScriptedChannel:
        return channel
    return factory


def mock_tex_surface(preamble: str = "\\input pgfcore") -> Surface:
    """Plain TeX surface whose command runs tests/mock_tex.py."""
    return (
        PLAINTEX_SURFACE
        .with_command(sys.executable)
        .with_arguments([str(MOCK_TEX)])
        .with_preamble(preamble)
    )
