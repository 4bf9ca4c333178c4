"""Layout grid engine for a panel.

Reconciles the persisted visualization list with the live grid layout.

- view mode: cells are static and mirror the persisted geometry
- edit mode: the grid host reports live geometry through
  `on_layout_change`; leaving edit mode diffs it against the persisted list
  and saves through `PanelRepository.update_layout` only when something moved

Container resizes never touch persisted data, they only recompute pixel boxes.
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Mapping, NamedTuple

from .exceptions import PanelsError
from .placement import COLS, Geometry, geometry_of

logger = logging.getLogger(__name__)

VIEW = 'view'
EDIT = 'edit'

BREAKPOINTS = (('lg', 1200), ('md', 996), ('sm', 768), ('xs', 480), ('xxs', 0))
BREAKPOINT_COLS = {'lg': COLS, 'md': COLS, 'sm': COLS, 'xs': 1, 'xxs': 1}
ROW_HEIGHT = 150
MARGIN = 10


@dataclass
class GridCell:
    i: str
    x: int
    y: int
    w: int
    h: int
    static: bool = True
    moved: bool = False

    @classmethod
    def from_mapping(cls, cell: Mapping) -> 'GridCell':
        return cls(
            i=str(cell['i']),
            x=int(cell['x']),
            y=int(cell['y']),
            w=int(cell['w']),
            h=int(cell['h']),
            static=bool(cell.get('static', False)),
            moved=bool(cell.get('moved', False)),
        )

    @property
    def geometry(self) -> Geometry:
        return Geometry(self.x, self.y, self.w, self.h)

    def params(self) -> Dict:
        """Persistable cell: transient grid state (static/moved) stripped."""
        return {'i': self.i, 'x': self.x, 'y': self.y, 'w': self.w, 'h': self.h}


class PixelBox(NamedTuple):
    i: str
    left: float
    top: float
    width: float
    height: float


def breakpoint_for(width: float) -> str:
    for name, min_width in BREAKPOINTS:
        if width >= min_width:
            return name
    return BREAKPOINTS[-1][0]


class PanelGrid:

    def __init__(self, panel_id: str, visualizations: Iterable[Mapping], repository):
        self.panel_id = panel_id
        self.repository = repository
        self.mode = VIEW
        self.visualizations: List[Dict] = [dict(v) for v in visualizations]
        self.layout: List[GridCell] = []
        self.edited_layout: List[GridCell] = []
        self.mounted = True
        self.reload_layout()

    def _cells(self, static: bool) -> List[GridCell]:
        cells = []
        for viz in self.visualizations:
            g = geometry_of(viz)
            cells.append(GridCell(viz['id'], g.x, g.y, g.w, g.h, static=static))
        return cells

    def reload_layout(self) -> None:
        self.layout = self._cells(static=self.mode == VIEW)

    def enter_edit(self) -> None:
        if self.mode == EDIT:
            return
        self.mode = EDIT
        self.reload_layout()
        self.edited_layout = [replace(c) for c in self.layout]

    def on_layout_change(self, cells: Iterable[Mapping]) -> None:
        if self.mode != EDIT:
            return
        self.edited_layout = [GridCell.from_mapping(c) for c in cells]
        self.layout = [replace(c, static=False) for c in self.edited_layout]

    def has_changes(self) -> bool:
        persisted = {v['id']: geometry_of(v) for v in self.visualizations}
        for cell in self.edited_layout:
            if cell.i in persisted and cell.geometry != persisted[cell.i]:
                return True
        return False

    def exit_edit(self) -> List[Dict]:
        if self.mode != EDIT:
            return self.visualizations
        changed = self.has_changes()
        params = [c.params() for c in self.edited_layout]
        self.mode = VIEW
        self.edited_layout = []
        if not changed:
            self.reload_layout()
            return self.visualizations
        try:
            result = self.repository.update_layout(self.panel_id, params)
        except PanelsError as e:
            logger.error('Failed to save layout of panel %s: %s', self.panel_id, e)
            self.reload_layout()
            raise
        self.apply_visualizations(result)
        return self.visualizations

    def apply_visualizations(self, visualizations: Iterable[Mapping]) -> None:
        """Apply an authoritative list returned by the server."""
        if not self.mounted:
            logger.debug('Dropping stale visualization list for unmounted panel %s', self.panel_id)
            return
        self.set_visualizations(visualizations)

    def set_visualizations(self, visualizations: Iterable[Mapping]) -> None:
        self.visualizations = [dict(v) for v in visualizations]
        if self.mode == VIEW:
            self.reload_layout()
            return
        # edit mode: keep in-progress geometry for cells that still exist
        edited = {c.i: c for c in self.edited_layout}
        self.edited_layout = [edited.get(c.i, c) for c in self._cells(static=False)]
        self.layout = [replace(c, static=False) for c in self.edited_layout]

    def resize(self, container_width: float) -> List[PixelBox]:
        """Pixel boxes for the current layout at `container_width`."""
        cols = BREAKPOINT_COLS[breakpoint_for(container_width)]
        col_width = (container_width - MARGIN * (cols + 1)) / cols
        cells = self.layout
        if cols < COLS:
            # narrow screens: one full-width column, stacked in reading order
            stacked, y = [], 0
            for c in sorted(cells, key=lambda c: (c.y, c.x)):
                stacked.append(replace(c, x=0, y=y, w=cols))
                y += c.h
            cells = stacked
        boxes = []
        for c in cells:
            boxes.append(PixelBox(
                c.i,
                MARGIN + c.x * (col_width + MARGIN),
                MARGIN + c.y * (ROW_HEIGHT + MARGIN),
                c.w * col_width + (c.w - 1) * MARGIN,
                c.h * ROW_HEIGHT + (c.h - 1) * MARGIN,
            ))
        return boxes

    def unmount(self) -> None:
        self.mounted = False
