"""
Builder programs: scene construction that can stop to measure text.

A builder program is a plain function taking an OnlineTex handle. Wherever
it calls ``online.hbox(...)`` it blocks until the engine has measured the
text, then carries on with a Text node of the real size. The program runs on
its own thread; the thread that called run_online owns the session and
answers the program's requests one at a time, in the order they are made.

    def program(online):
        label = online.hbox("$\\\\sum_i i$")
        return frame(center_xy(label), 10)

    scene, outcome = run_online(LATEX_SURFACE, program)
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, TypeVar

from .exceptions import PgfOnlineError, SessionStateError
from .models import MeasurementRequest, MeasurementResult
from .scene import Text
from .session import OnlineSession
from .surface import Surface

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Messages on the request queue / reply queues.
_DONE = object()
_ABORT = object()


class BuildAborted(PgfOnlineError):
    """Raised inside a builder program when the session failed.

    The error that caused it is re-raised by run_online once the program
    has unwound.
    """


@dataclass
class SessionOutcome:
    """What the session did while a builder program ran."""

    queries: int
    log: str
    exit_code: Optional[int] = None


class OnlineTex:
    """Handle a builder program uses to reach the session."""

    def __init__(self, requests: "queue.Queue"):
        self._requests = requests
        self._finished = False

    def measure(self, request: MeasurementRequest) -> MeasurementResult:
        """Block until the session has measured request."""
        if self._finished:
            raise SessionStateError("measure", "finished")
        reply: "queue.Queue" = queue.Queue(1)
        self._requests.put((request, reply))
        answer = reply.get()
        if answer is _ABORT:
            raise BuildAborted("Measurement failed; aborting builder program")
        return answer

    def hbox(self, content: str) -> Text:
        """Text node sized by the engine."""
        result = self.measure(MeasurementRequest(content))
        return Text(content, width=result.width, height=result.height, depth=result.depth)


def hbox(content: str) -> Text:
    """Text node without a measured size, for offline scenes."""
    return Text(content)


def _serve(session: OnlineSession, requests: "queue.Queue") -> Optional[BaseException]:
    """Answer requests until the program is done.

    Returns the measurement error that aborted the program, if any. Every
    request gets a reply, so the program thread can always finish.
    """
    failure = None
    while True:
        item = requests.get()
        if item is _DONE:
            return failure
        request, reply = item
        if failure is not None:
            reply.put(_ABORT)
            continue
        try:
            reply.put(session.measure(request))
        except BaseException as e:
            logger.error("Measurement of %r failed: %s", request.content, e)
            failure = e
            reply.put(_ABORT)


def run_online(
    surface: Surface,
    program: Callable[[OnlineTex], T],
    session_factory: Optional[Callable[..., OnlineSession]] = None,
    **session_options: Any,
) -> Tuple[T, SessionOutcome]:
    """Run program against one online session for surface.

    Args:
        surface: Surface used to start the engine
        program: Builder program; receives an OnlineTex
        session_factory: Called as factory(surface, **session_options)
            (defaults to OnlineSession.open)
        **session_options: timeout, max_lines, max_shipouts, grace_period

    Returns:
        (program result, SessionOutcome)

    Raises:
        The session error that aborted the program, or whatever the program
        itself raised. The session is closed either way.
    """
    factory = session_factory or OnlineSession.open
    session = factory(surface, **session_options)

    requests: "queue.Queue" = queue.Queue()
    online = OnlineTex(requests)
    outcome: dict = {}

    def target():
        try:
            outcome["result"] = program(online)
        except BaseException as e:
            outcome["error"] = e
        finally:
            online._finished = True
            requests.put(_DONE)

    thread = threading.Thread(target=target, name="pgfonline-builder", daemon=True)
    try:
        thread.start()
        failure = _serve(session, requests)
        thread.join()
    finally:
        session.close()

    summary = SessionOutcome(
        queries=session.queries,
        log=session.captured_log(),
        exit_code=session.exit_code,
    )
    logger.info("Builder finished after %d queries", summary.queries)

    if failure is not None:
        raise failure
    if "error" in outcome:
        raise outcome["error"]
    return outcome["result"], summary


def surf_online_tex(surface: Surface, program: Callable[[OnlineTex], T], **session_options: Any) -> T:
    """Run program and return only its result."""
    result, _ = run_online(surface, program, **session_options)
    return result
