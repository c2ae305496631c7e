"""
Streaming parser for TeX terminal output.

TeX was never meant to be an RPC server: its terminal output mixes file
loading chatter, page shipouts, warnings, errors and whatever our own
``\\write16`` commands print. This module turns that stream into a
sequence of LogEvent values, one per line.

Classification is an ordered list of small classifier functions. Each one
looks at a cleaned line and either returns an event or None to let the next
classifier try. Supporting a new tag means appending a classifier, not
editing a regex blob. The parser never raises on unexpected input; the
worst case is a stream of Unrecognized events and a caller that times out.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, List, Optional, Union

from .models import MeasurementResult

MEASUREMENT_TAG = "!PGF-PARSE:"

# A TeX dimension as printed by \the: "17.07227pt", "-3.0pt", ".5pt"
DIMENSION_PATTERN = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+))\s*(?:pt)?\s*$")


@dataclass
class TexPatterns:
    """All patterns used for TeX log classification."""

    # Prefix of the line our measurement fragment writes.
    measurement_tag: str = MEASUREMENT_TAG

    # Minimum number of values after the tag: width, height, depth.
    min_measurement_values: int = 3

    # Errors: TeX prints "! Undefined control sequence." and friends.
    # ConTeXt wraps them in its own reporting format.
    error_prefixes: List[str] = field(default_factory=lambda: [
        "!",
    ])
    error_patterns: List[str] = field(default_factory=lambda: [
        r"^tex error\s+>",
        r"^lua error\s+>",
    ])

    # Warnings are reported but never stop a session.
    warning_patterns: List[str] = field(default_factory=lambda: [
        r"^(?:LaTeX|Package \S+|Class \S+) Warning",
        r"^(?:Over|Under)full \\[hv]box",
        r"^pdfTeX warning",
        r"^\S+(?:\s\S+)?\s+>\s+warning",
    ])

    # Page shipouts: "[1]" / "[1.1{...map}]" from TeX,
    # "pages > flushing realpage 1, userpage 1" from ConTeXt.
    shipout_patterns: List[str] = field(default_factory=lambda: [
        r"(?:^|\s)\[(\d+)(?:\.\d+)*(?=[\]\s{<]|$)",
        r"^pages\s+>\s+flushing realpage (\d+)",
    ])

    # Characters TeX prints as input prompts ("*" and "**") which end up
    # glued to the front of the next output line.
    prompt_chars: str = "*"


DEFAULT_PATTERNS = TexPatterns()


def get_patterns() -> TexPatterns:
    """Get the default TeX log patterns."""
    return DEFAULT_PATTERNS


# Log events ----------------------------------------------------------


@dataclass(frozen=True)
class LogEvent:
    """One logical unit of engine output."""

    text: str


@dataclass(frozen=True)
class PageShipped(LogEvent):
    page: int = 0


@dataclass(frozen=True)
class MeasurementReported(LogEvent):
    result: MeasurementResult = None


@dataclass(frozen=True)
class TexWarning(LogEvent):
    pass


@dataclass(frozen=True)
class FatalError(LogEvent):
    pass


@dataclass(frozen=True)
class Unrecognized(LogEvent):
    pass


@dataclass(frozen=True)
class MalformedMeasurement(Unrecognized):
    """A line carrying the measurement tag whose values do not parse."""


# Helpers -------------------------------------------------------------


def parse_dimension(value: str) -> Optional[float]:
    """Parse a TeX dimension in points.

    Args:
        value: e.g. "17.07227pt", "0.0pt", "-2pt", ".5pt"

    Returns:
        The number of points, or None if the value is not a dimension
    """
    match = DIMENSION_PATTERN.match(value)
    if not match:
        return None
    return float(match.group(1))


def clean_line(line: str, patterns: TexPatterns = None) -> str:
    """Strip prompt characters and surrounding whitespace from a line."""
    patterns = patterns or DEFAULT_PATTERNS
    return line.strip().lstrip(patterns.prompt_chars).strip()


def decode_line(line: Union[str, bytes]) -> str:
    if isinstance(line, bytes):
        return line.decode("utf-8", errors="replace")
    return line


# Classifiers ---------------------------------------------------------

LineClassifier = Callable[[str, TexPatterns], Optional[LogEvent]]


def classify_measurement(line: str, patterns: TexPatterns) -> Optional[LogEvent]:
    """Measurement lines: tag followed by comma-separated point values.

    A line carrying the tag but not parseable numbers is a
    MalformedMeasurement rather than an error, even though it starts with "!".
    """
    pos = line.find(patterns.measurement_tag)
    if pos == -1:
        return None
    payload = line[pos + len(patterns.measurement_tag):]
    values = [parse_dimension(part) for part in payload.split(",")]
    if len(values) < patterns.min_measurement_values or any(v is None for v in values):
        return MalformedMeasurement(line)
    width, height, depth = values[0], values[1], values[2]
    if width < 0 or height < 0:
        return MalformedMeasurement(line)
    result = MeasurementResult(
        width=width,
        height=height,
        depth=depth,
        extra=tuple(values[3:]),
    )
    return MeasurementReported(line, result=result)


def classify_error(line: str, patterns: TexPatterns) -> Optional[LogEvent]:
    if any(line.startswith(prefix) for prefix in patterns.error_prefixes):
        return FatalError(line)
    if any(re.search(p, line) for p in patterns.error_patterns):
        return FatalError(line)
    return None


def classify_warning(line: str, patterns: TexPatterns) -> Optional[LogEvent]:
    if any(re.search(p, line) for p in patterns.warning_patterns):
        return TexWarning(line)
    return None


def classify_shipout(line: str, patterns: TexPatterns) -> Optional[LogEvent]:
    for p in patterns.shipout_patterns:
        match = re.search(p, line)
        if match:
            return PageShipped(line, page=int(match.group(1)))
    return None


DEFAULT_CLASSIFIERS: List[LineClassifier] = [
    classify_measurement,
    classify_error,
    classify_warning,
    classify_shipout,
]


def classify_line(
    line: Union[str, bytes],
    patterns: TexPatterns = None,
    classifiers: List[LineClassifier] = None,
) -> LogEvent:
    """Classify a single line of engine output.

    Args:
        line: Raw line, with or without its terminator
        patterns: TexPatterns to use (defaults to DEFAULT_PATTERNS)
        classifiers: Ordered classifiers (defaults to DEFAULT_CLASSIFIERS)

    Returns:
        The first event a classifier produced, or Unrecognized
    """
    patterns = patterns or DEFAULT_PATTERNS
    classifiers = classifiers if classifiers is not None else DEFAULT_CLASSIFIERS
    cleaned = clean_line(decode_line(line), patterns)
    if not cleaned:
        return Unrecognized(cleaned)
    for classifier in classifiers:
        event = classifier(cleaned, patterns)
        if event is not None:
            return event
    return Unrecognized(cleaned)


class LogParser:
    """Incremental line splitter and classifier.

    Feed it chunks as they arrive; chunk boundaries may fall anywhere,
    including inside a multi-byte character or between "\\r" and "\\n".
    """

    def __init__(self, patterns: TexPatterns = None, classifiers: List[LineClassifier] = None):
        self.patterns = patterns or DEFAULT_PATTERNS
        self.classifiers = classifiers if classifiers is not None else list(DEFAULT_CLASSIFIERS)
        self._buffer = b""

    def reset(self) -> None:
        """Drop any buffered partial line."""
        self._buffer = b""

    def add_classifier(self, classifier: LineClassifier, first: bool = False) -> None:
        if first:
            self.classifiers.insert(0, classifier)
        else:
            self.classifiers.append(classifier)

    def classify(self, line: Union[str, bytes]) -> LogEvent:
        return classify_line(line, self.patterns, self.classifiers)

    def feed(self, chunk: Union[str, bytes]) -> List[LogEvent]:
        """Consume a chunk and return events for every completed line."""
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        # Normalise after joining so a "\r\n" split across chunks still folds.
        self._buffer = (self._buffer + chunk).replace(b"\r\n", b"\n")
        *lines, self._buffer = self._buffer.split(b"\n")
        events = []
        for line in lines:
            for part in line.split(b"\r"):
                events.append(self.classify(part))
        return events

    def finish(self) -> List[LogEvent]:
        """Flush a trailing line that had no terminator."""
        rest, self._buffer = self._buffer, b""
        rest = rest.rstrip(b"\r")
        if not rest:
            return []
        return [self.classify(rest)]


def iter_events(
    chunks: Iterable[Union[str, bytes]],
    patterns: TexPatterns = None,
) -> Iterator[LogEvent]:
    """Lazily parse a stream of chunks into events.

    Each call builds a fresh parser, so iterating the same source again
    starts over from a clean state.
    """
    parser = LogParser(patterns)
    for chunk in chunks:
        yield from parser.feed(chunk)
    yield from parser.finish()
