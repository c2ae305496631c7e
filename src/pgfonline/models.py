"""
Measurement request/result types exchanged between builder and session.
"""

from dataclasses import dataclass, replace
from typing import Tuple

# TeX points per big point (PostScript point).
PT_PER_BP = 72.27 / 72.0


@dataclass(frozen=True)
class MeasurementRequest:
    """Text to be typeset in an hbox and measured."""

    content: str
    # Report depth below the baseline as well as the size.
    with_depth: bool = True


@dataclass(frozen=True)
class MeasurementResult:
    """Size of a typeset box.

    Values from the engine log are in TeX points ("pt"); sessions hand out
    big points ("bp"), which is the unit of the PGF output.
    """

    width: float
    height: float
    depth: float = 0.0
    # Further box-edge offsets when the engine reports more than three values.
    extra: Tuple[float, ...] = ()
    unit: str = "pt"

    def to_big_points(self) -> "MeasurementResult":
        if self.unit == "bp":
            return self
        return replace(
            self,
            width=self.width / PT_PER_BP,
            height=self.height / PT_PER_BP,
            depth=self.depth / PT_PER_BP,
            extra=tuple(v / PT_PER_BP for v in self.extra),
            unit="bp",
        )

    @property
    def total_height(self) -> float:
        return self.height + self.depth

    def bounding_box(self) -> Tuple[float, float, float, float]:
        """(x0, y0, x1, y1) with the baseline at y=0."""
        return (0.0, -self.depth, self.width, self.height)
