"""
A small immutable scene tree.

Just enough geometry for diagrams whose layout depends on measured text:
text boxes, straight-line paths and groups, all with axis-aligned
envelopes. Coordinates are big points with y pointing up. Every operation
returns a new node.
"""

import math
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Sequence, Tuple, Union

Point = Tuple[float, float]


@dataclass(frozen=True)
class BoundingBox:
    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    @property
    def center(self) -> Point:
        return ((self.x0 + self.x1) / 2, (self.y0 + self.y1) / 2)

    def translate(self, dx: float, dy: float) -> "BoundingBox":
        return BoundingBox(self.x0 + dx, self.y0 + dy, self.x1 + dx, self.y1 + dy)

    def union(self, other: Optional["BoundingBox"]) -> "BoundingBox":
        if other is None:
            return self
        return BoundingBox(
            min(self.x0, other.x0),
            min(self.y0, other.y0),
            max(self.x1, other.x1),
            max(self.y1, other.y1),
        )

    def expand(self, margin: float) -> "BoundingBox":
        return BoundingBox(
            self.x0 - margin, self.y0 - margin, self.x1 + margin, self.y1 + margin
        )

    def boundary_point(self, direction: Point) -> Point:
        """Where a ray from the center in direction leaves the box."""
        cx, cy = self.center
        dx, dy = direction
        scales = []
        if dx:
            scales.append((self.width / 2) / abs(dx))
        if dy:
            scales.append((self.height / 2) / abs(dy))
        if not scales:
            return (cx, cy)
        t = min(scales)
        return (cx + dx * t, cy + dy * t)


def union_all(boxes: Iterable[Optional[BoundingBox]]) -> Optional[BoundingBox]:
    result = None
    for box in boxes:
        if box is None:
            continue
        result = box if result is None else result.union(box)
    return result


@dataclass(frozen=True)
class Style:
    """Stroke and fill attributes. None means "inherit"."""

    stroke: Optional[str] = None
    fill: Optional[str] = None
    line_width: Optional[float] = None

    def merged(self, parent: "Style") -> "Style":
        return Style(
            stroke=self.stroke if self.stroke is not None else parent.stroke,
            fill=self.fill if self.fill is not None else parent.fill,
            line_width=self.line_width if self.line_width is not None else parent.line_width,
        )


@dataclass(frozen=True)
class Text:
    """Typeset TeX content with its baseline-left corner at (x, y).

    A text without a measured size (width None) has an empty envelope:
    offline layouts cannot know how big TeX will make it.
    """

    content: str
    width: Optional[float] = None
    height: float = 0.0
    depth: float = 0.0
    x: float = 0.0
    y: float = 0.0
    name: Optional[str] = None

    @property
    def measured(self) -> bool:
        return self.width is not None

    def translate(self, dx: float, dy: float) -> "Text":
        return replace(self, x=self.x + dx, y=self.y + dy)

    def envelope(self) -> Optional[BoundingBox]:
        if self.width is None:
            return None
        return BoundingBox(self.x, self.y - self.depth, self.x + self.width, self.y + self.height)


@dataclass(frozen=True)
class Path:
    """A polyline, optionally closed."""

    points: Tuple[Point, ...]
    closed: bool = False
    style: Style = field(default_factory=Style)
    name: Optional[str] = None

    def translate(self, dx: float, dy: float) -> "Path":
        return replace(self, points=tuple((x + dx, y + dy) for x, y in self.points))

    def envelope(self) -> Optional[BoundingBox]:
        if not self.points:
            return None
        xs = [p[0] for p in self.points]
        ys = [p[1] for p in self.points]
        return BoundingBox(min(xs), min(ys), max(xs), max(ys))


@dataclass(frozen=True)
class Group:
    """Children drawn in a scope shifted by offset.

    bounds, when set, replaces the children's envelope (see frame).
    """

    children: Tuple["Node", ...] = ()
    style: Style = field(default_factory=Style)
    offset: Point = (0.0, 0.0)
    bounds: Optional[BoundingBox] = None
    name: Optional[str] = None

    def translate(self, dx: float, dy: float) -> "Group":
        ox, oy = self.offset
        return replace(self, offset=(ox + dx, oy + dy))

    def envelope(self) -> Optional[BoundingBox]:
        inner = self.bounds
        if inner is None:
            inner = union_all(child.envelope() for child in self.children)
        if inner is None:
            return None
        return inner.translate(*self.offset)

    def find(self, name: str) -> Optional["Node"]:
        """First node called name, with the group offsets applied."""
        for child in self.children:
            if getattr(child, "name", None) == name:
                return child.translate(*self.offset)
            if isinstance(child, Group):
                found = child.find(name)
                if found is not None:
                    return found.translate(*self.offset)
        return None


Node = Union[Text, Path, Group]


def group(nodes: Iterable[Node], style: Optional[Style] = None, name: Optional[str] = None) -> Group:
    return Group(children=tuple(nodes), style=style or Style(), name=name)


def rect(width: float, height: float, style: Optional[Style] = None) -> Path:
    """Closed rectangle centered on the origin."""
    w, h = width / 2, height / 2
    return Path(
        points=((-w, -h), (w, -h), (w, h), (-w, h)),
        closed=True,
        style=style or Style(),
    )


def line(start: Point, end: Point, style: Optional[Style] = None) -> Path:
    return Path(points=(start, end), style=style or Style())


def arrow(start: Point, end: Point, head_length: float = 5.0,
          style: Optional[Style] = None) -> Group:
    """Shaft from start to end with an open head at end."""
    (x0, y0), (x1, y1) = start, end
    length = math.hypot(x1 - x0, y1 - y0)
    if length == 0:
        return group([line(start, end, style)])
    ux, uy = (x1 - x0) / length, (y1 - y0) / length
    # Head arms sit 30 degrees either side of the shaft.
    cos30, sin30 = math.cos(math.pi / 6), math.sin(math.pi / 6)
    arms = []
    for sign in (1, -1):
        ax = -(ux * cos30 - sign * uy * sin30) * head_length
        ay = -(uy * cos30 + sign * ux * sin30) * head_length
        arms.append((x1 + ax, y1 + ay))
    head = Path(points=(arms[0], end, arms[1]), style=style or Style())
    return group([line(start, end, style), head])


def connect_outside(a: Node, b: Node, gap: float = 0.0, head_length: float = 5.0,
                    style: Optional[Style] = None) -> Group:
    """Arrow between the envelopes of a and b, center to center.

    Raises:
        ValueError: If either node has an empty envelope
    """
    box_a, box_b = a.envelope(), b.envelope()
    if box_a is None or box_b is None:
        raise ValueError("Cannot connect nodes without an envelope")
    (ax, ay), (bx, by) = box_a.center, box_b.center
    direction = (bx - ax, by - ay)
    start = box_a.boundary_point(direction)
    end = box_b.boundary_point((-direction[0], -direction[1]))
    length = math.hypot(*direction)
    if length and gap:
        ux, uy = direction[0] / length, direction[1] / length
        start = (start[0] + ux * gap, start[1] + uy * gap)
        end = (end[0] - ux * gap, end[1] - uy * gap)
    return arrow(start, end, head_length=head_length, style=style)


def center_xy(node: Node) -> Node:
    """Translate node so its envelope is centered on the origin."""
    box = node.envelope()
    if box is None:
        return node
    cx, cy = box.center
    return node.translate(-cx, -cy)


def frame(node: Node, margin: float) -> Group:
    """Grow node's envelope by margin on every side."""
    box = node.envelope()
    bounds = box.expand(margin) if box is not None else None
    return Group(children=(node,), bounds=bounds)


def distrib(nodes: Sequence[Node], direction: Point, spacing: float) -> Group:
    """Place node origins spacing apart along direction."""
    dx, dy = direction
    length = math.hypot(dx, dy)
    if length == 0:
        raise ValueError("direction must be non-zero")
    ux, uy = dx / length, dy / length
    placed: List[Node] = [
        node.translate(ux * spacing * i, uy * spacing * i) for i, node in enumerate(nodes)
    ]
    return group(placed)


def vcat(nodes: Sequence[Node], sep: float = 0.0) -> Group:
    """Stack nodes top to bottom, sep apart, left edges aligned at x=0."""
    placed: List[Node] = []
    y = 0.0
    for node in nodes:
        box = node.envelope()
        if box is None:
            placed.append(node.translate(0.0, y))
            continue
        placed.append(node.translate(-box.x0, y - box.y1))
        y -= box.height + sep
    return group(placed)
