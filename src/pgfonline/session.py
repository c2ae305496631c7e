"""
Online measurement session.

An OnlineSession keeps one TeX process in a "mid-document, ready for more
input" state: the preamble and begin-document text have been consumed, the
end-document text has not. Each measurement writes one hbox fragment that
makes the engine print a tagged line with the box dimensions, then reads
output until that line appears.

The protocol is strictly request/response. TeX is a stream interpreter
with no request ids, so exactly one measurement may be outstanding and
every request must be answered (or the session torn down) before the next
one is sent.
"""

import logging
import threading
import time
from enum import Enum
from typing import Callable, Optional

from .channel import ProcessChannel
from .exceptions import (
    EngineReportedError,
    NoMeasurementError,
    ProcessExitedError,
    SessionStateError,
    TexTimeoutError,
)
from .logging_config import get_structured_logger
from .log_parser import (
    FatalError,
    LogParser,
    MalformedMeasurement,
    MeasurementReported,
    PageShipped,
    TexWarning,
)
from .models import MeasurementRequest, MeasurementResult
from .protocols import ChannelInterface
from .surface import Surface, TexFormat

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_LINES = 2000
DEFAULT_MAX_SHIPOUTS = 0
DEFAULT_GRACE_PERIOD = 5.0

# Interaction mode: errors are reported and TeX carries on reading stdin.
# (nonstopmode would abort as soon as TeX wants terminal input, and all our
# input is terminal input.)
INTERACTION_MODE = "\\scrollmode"

# \string splits the marker so the echo of our own input can never match.
READY_MARKER = "PGF-READY"
READY_COMMAND = "\\immediate\\write16{PGF\\string-READY}"

# Box register used for measuring; ConTeXt reserves box 0 for itself.
_HBOX_TEMPLATES = {
    TexFormat.LATEX: (
        "\\setbox0=\\hbox{{{content}}}%\n"
        "\\immediate\\write16{{{tag}\\the\\wd0,\\the\\ht0,\\the\\dp0}}%"
    ),
    TexFormat.PLAINTEX: (
        "\\setbox0=\\hbox{{{content}}}%\n"
        "\\immediate\\write16{{{tag}\\the\\wd0,\\the\\ht0,\\the\\dp0}}%"
    ),
    TexFormat.CONTEXT: (
        "\\setbox\\scratchbox=\\hbox{{{content}}}%\n"
        "\\immediate\\write16{{{tag}\\the\\wd\\scratchbox,"
        "\\the\\ht\\scratchbox,\\the\\dp\\scratchbox}}%"
    ),
}


def hbox_fragment(tex_format: TexFormat, content: str, tag: str) -> str:
    """TeX input that typesets content in an hbox and reports its size.

    Nothing is shipped out; the box only lives in a scratch register.
    """
    return _HBOX_TEMPLATES[tex_format].format(content=content, tag=tag)


class SessionState(Enum):
    IDLE = "idle"
    AWAITING_REPLY = "awaiting reply"
    CLOSED = "closed"


ChannelFactory = Callable[[Surface], ChannelInterface]


class OnlineSession:
    """A live conversation with one TeX process used for measurements."""

    def __init__(
        self,
        surface: Surface,
        channel: ChannelInterface,
        timeout: float = DEFAULT_TIMEOUT,
        max_lines: int = DEFAULT_MAX_LINES,
        max_shipouts: int = DEFAULT_MAX_SHIPOUTS,
        grace_period: float = DEFAULT_GRACE_PERIOD,
        parser: Optional[LogParser] = None,
    ):
        """Wrap an already started channel. Use OnlineSession.open instead.

        Args:
            surface: Surface the channel was started from
            channel: Running engine channel
            timeout: Seconds a single round-trip may take
            max_lines: Output lines read per measurement before giving up
            max_shipouts: Pages a measurement may ship out before giving up
            grace_period: Seconds to wait for the engine to exit on close
            parser: LogParser to classify output (defaults to a new one)
        """
        self.surface = surface
        self.channel = channel
        self.timeout = timeout
        self.max_lines = max_lines
        self.max_shipouts = max_shipouts
        self.grace_period = grace_period
        self.parser = parser or LogParser()
        self.state = SessionState.IDLE
        self.queries = 0
        self.exit_code: Optional[int] = None
        self._lock = threading.Lock()
        self._patterns = self.parser.patterns
        self._log = get_structured_logger("session", command=surface.command)

    @classmethod
    def open(
        cls,
        surface: Surface,
        channel_factory: Optional[ChannelFactory] = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_lines: int = DEFAULT_MAX_LINES,
        max_shipouts: int = DEFAULT_MAX_SHIPOUTS,
        grace_period: float = DEFAULT_GRACE_PERIOD,
    ) -> "OnlineSession":
        """Start the engine and bring it to the mid-document state.

        Raises:
            SpawnFailedError: The engine could not be started
            EngineReportedError: The preamble produced a TeX error
            TexTimeoutError, ProcessExitedError: The engine never got ready
        """
        factory = channel_factory or ProcessChannel.start
        channel = factory(surface)
        session = cls(
            surface,
            channel,
            timeout=timeout,
            max_lines=max_lines,
            max_shipouts=max_shipouts,
            grace_period=grace_period,
        )
        try:
            session._start_document()
        except BaseException:
            session.close()
            raise
        return session

    def __enter__(self) -> "OnlineSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def captured_log(self) -> str:
        return self.channel.captured_log()

    def _start_document(self) -> None:
        self.channel.write_line(INTERACTION_MODE)
        if self.surface.preamble:
            self.channel.write_line(self.surface.preamble)
        if self.surface.begin_doc:
            self.channel.write_line(self.surface.begin_doc)
        self.channel.write_line(READY_COMMAND)

        deadline = time.monotonic() + self.timeout
        while True:
            raw = self.channel.read_line(timeout=self._remaining(deadline))
            if READY_MARKER in raw.decode("utf-8", errors="replace"):
                break
            event = self.parser.classify(raw)
            if isinstance(event, FatalError):
                raise EngineReportedError(event.text, self.captured_log())
            if isinstance(event, TexWarning):
                logger.warning("%s: %s", self.surface.command, event.text)
        logger.info("%s ready for measurements", self.surface.command)

    def _remaining(self, deadline: float) -> float:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TexTimeoutError(self.timeout, self.captured_log())
        return remaining

    def hbox(self, content: str) -> MeasurementResult:
        """Measure content typeset in an hbox."""
        return self.measure(MeasurementRequest(content))

    def measure(self, request: MeasurementRequest) -> MeasurementResult:
        """Typeset request.content and return its size in big points.

        Any failure closes the session before the error propagates.

        Raises:
            SessionStateError: Session is not idle
            EngineReportedError: TeX reported an error for this fragment
            NoMeasurementError: Too many lines or pages without a measurement,
                or a malformed measurement line
            TexTimeoutError: No answer within the timeout
            ProcessExitedError: The engine died
        """
        if not self._lock.acquire(blocking=False):
            raise SessionStateError("measure", SessionState.AWAITING_REPLY.value)
        try:
            if self.state is not SessionState.IDLE:
                raise SessionStateError("measure", self.state.value)
            self.state = SessionState.AWAITING_REPLY
            self.queries += 1
            try:
                result = self._round_trip(request)
            except BaseException:
                self.close()
                raise
            self.state = SessionState.IDLE
            return result
        finally:
            self._lock.release()

    def _round_trip(self, request: MeasurementRequest) -> MeasurementResult:
        fragment = hbox_fragment(
            self.surface.tex_format, request.content, self._patterns.measurement_tag
        )
        self._log.debug(f"Sending {request.content!r}", query=self.queries)
        self.channel.write_line(fragment)

        deadline = time.monotonic() + self.timeout
        shipouts = 0
        for _ in range(self.max_lines):
            raw = self.channel.read_line(timeout=self._remaining(deadline))
            event = self.parser.classify(raw)
            if isinstance(event, MeasurementReported):
                result = event.result.to_big_points()
                if not request.with_depth:
                    result = MeasurementResult(
                        result.width, result.height, 0.0, result.extra, result.unit
                    )
                self._log.debug(
                    f"Measured {result.width:g}x{result.height:g}+{result.depth:g}bp",
                    query=self.queries,
                )
                return result
            if isinstance(event, MalformedMeasurement):
                raise NoMeasurementError(
                    f"Malformed measurement for {request.content!r}: {event.text}",
                    self.captured_log(),
                )
            if isinstance(event, FatalError):
                raise EngineReportedError(event.text, self.captured_log())
            if isinstance(event, PageShipped):
                shipouts += 1
                if shipouts > self.max_shipouts:
                    raise NoMeasurementError(
                        f"Page {event.page} shipped out without a measurement "
                        f"for {request.content!r}",
                        self.captured_log(),
                    )
            elif isinstance(event, TexWarning):
                logger.warning("%s: %s", self.surface.command, event.text)
        raise NoMeasurementError(
            f"No measurement for {request.content!r} within {self.max_lines} lines",
            self.captured_log(),
        )

    def close(self) -> None:
        """End the document and stop the engine. Idempotent, never raises."""
        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED
        try:
            self.exit_code = self.channel.shutdown(
                self.surface.end_doc, grace_period=self.grace_period
            )
        except (OSError, ProcessExitedError) as e:
            logger.warning("Error while closing %s: %s", self.surface.command, e)
        logger.info(
            "%s session closed after %d queries", self.surface.command, self.queries
        )
