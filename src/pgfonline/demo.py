"""
Example online diagram: partial sums of 1..n linked by arrows.

Each label is measured by the engine so the spacing between them and the
arrow end points follow the real typeset sizes.
"""

from typing import List

from .builder import OnlineTex
from .scene import Node, Style, center_xy, connect_outside, distrib, frame, group

MAX_SUM = 6

ARROW_STYLE = Style(line_width=0.4)
ARROW_GAP = 3.0
ARROW_HEAD = 5.0
FRAME_MARGIN = 20.0


def sum_to(n: int) -> str:
    return str(n * (n + 1) // 2)


def display_style(tex: str) -> str:
    return f"$\\displaystyle {tex}$"


def sum_label(n: int, max_sum: int = MAX_SUM) -> str:
    """TeX for the n-th step: the partial sum plus what is left to add."""
    if n == max_sum:
        return display_style(sum_to(max_sum))
    return display_style(f"{sum_to(n)} + \\sum_{{i={n + 1}}}^{{{max_sum}}} i")


def sums_diagram(online: OnlineTex, max_sum: int = MAX_SUM) -> Node:
    """Builder program for the sums diagram."""
    labels: List[Node] = []
    for n in range(max_sum + 1):
        label = online.hbox(sum_label(n, max_sum))
        labels.append(center_xy(label))

    max_height = max(label.envelope().height for label in labels)
    placed = distrib(labels, (1.0, -2.0), max_height * 2)

    arrows = [
        connect_outside(a, b, gap=ARROW_GAP, head_length=ARROW_HEAD, style=ARROW_STYLE)
        for a, b in zip(placed.children, placed.children[1:])
    ]
    return frame(group([placed, *arrows]), FRAME_MARGIN)
