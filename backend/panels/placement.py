"""Grid placement for newly added visualizations.

Visualizations are always stacked vertically: a new one starts at column 0
right below the lowest existing rectangle, so it can never overlap anything
already on the grid. Whitespace to the right of the last row is not reused.
"""

from typing import Iterable, Mapping, NamedTuple

COLS = 12
DEFAULT_W = 6
DEFAULT_H = 4


class Geometry(NamedTuple):
    x: int
    y: int
    w: int
    h: int

    def as_dict(self) -> dict:
        return {'x': self.x, 'y': self.y, 'w': self.w, 'h': self.h}


def geometry_of(visualization: Mapping) -> Geometry:
    return Geometry(
        int(visualization.get('x', 0)),
        int(visualization.get('y', 0)),
        int(visualization.get('w', DEFAULT_W)),
        int(visualization.get('h', DEFAULT_H)),
    )


def max_bottom(visualizations: Iterable[Mapping]) -> int:
    bottom = 0
    for viz in visualizations:
        g = geometry_of(viz)
        bottom = max(bottom, g.y + g.h)
    return bottom


def place(existing: Iterable[Mapping]) -> Geometry:
    """Return the rectangle for a new visualization given the ones already placed."""
    return Geometry(0, max_bottom(existing), min(DEFAULT_W, COLS), DEFAULT_H)


def overlaps(a: Geometry, b: Geometry) -> bool:
    return a.x < b.x + b.w and b.x < a.x + a.w and a.y < b.y + b.h and b.y < a.y + a.h
