"""Flyout for adding (or replacing) a visualization from the saved catalog.

States::

    idle -> selecting -> previewing -> preview_ready | preview_error
                      \\-> committing -> closed

`close()` is allowed from any state and drops everything transient; a
commit either lands completely (the panel list comes back from the server)
or leaves the flyout open with the error.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from ppl.composer import build_visualization_query
from ppl.dates import parse_date_time

from .exceptions import InvalidTimeRange, MissingSelection, PanelsError, ValidationError

logger = logging.getLogger(__name__)

IDLE = 'idle'
SELECTING = 'selecting'
PREVIEWING = 'previewing'
PREVIEW_READY = 'preview_ready'
PREVIEW_ERROR = 'preview_error'
COMMITTING = 'committing'
CLOSED = 'closed'


class VisualizationFlyout:

    def __init__(self, panel_id: str, lifecycle, catalog, query_service, start, end,
                 replace_visualization_id: Optional[str] = None,
                 on_commit: Optional[Callable[[List[Dict]], None]] = None):
        self.panel_id = panel_id
        self.lifecycle = lifecycle
        self.catalog = catalog
        self.query_service = query_service
        self.start = start
        self.end = end
        self.replace_visualization_id = replace_visualization_id
        self.on_commit = on_commit
        self.state = IDLE
        self.busy = False
        self.saved_visualizations: List[Dict] = []
        self.selected: Optional[Dict] = None
        self.preview_data: Optional[Dict] = None
        self.preview_error = ''
        self.error = ''

    @property
    def is_replacement(self) -> bool:
        return bool(self.replace_visualization_id)

    @property
    def title(self) -> str:
        return 'Replace Visualization' if self.is_replacement else 'Select Existing Visualization'

    def _ensure_open(self):
        if self.state == CLOSED:
            raise ValidationError('Flyout is closed')

    def _ensure_idle_request(self):
        if self.busy:
            raise ValidationError('A request is already in progress')

    def open(self) -> List[Dict]:
        """Load the saved catalog for this flyout session."""
        self._ensure_open()
        self.saved_visualizations = self.catalog.list()
        return self.saved_visualizations

    def select(self, saved_id: str) -> Dict:
        self._ensure_open()
        for saved in self.saved_visualizations:
            if saved.get('id') == saved_id:
                self.selected = saved
                self.state = SELECTING
                self.preview_data = None
                self.preview_error = ''
                return saved
        raise MissingSelection(f'Saved visualization {saved_id} is not available')

    def set_time_range(self, start, end) -> None:
        self._ensure_open()
        self.start = start
        self.end = end

    def validate(self, now=None) -> None:
        """Guards shared by preview and commit; nothing is discarded on failure."""
        start = parse_date_time(self.start, now=now)
        end = parse_date_time(self.end, round_up=True, now=now)
        if end < start:
            raise InvalidTimeRange()
        if self.selected is None:
            raise MissingSelection()

    def preview(self) -> Optional[Dict]:
        self._ensure_open()
        self._ensure_idle_request()
        # one clock reading for both the guard and the query window
        now = datetime.now(timezone.utc)
        self.validate(now=now)
        selected = self.selected
        self.state = PREVIEWING
        self.busy = True
        try:
            query = build_visualization_query(
                selected.get('query') or '',
                selected.get('timeField') or '',
                self.start,
                self.end,
                now=now,
            )
            data = self.query_service.fetch(query)
        except PanelsError as e:
            if self.state != CLOSED:
                self.state = PREVIEW_ERROR
                self.preview_error = e.message
            logger.warning('Preview failed for panel %s: %s', self.panel_id, e.message)
            return None
        finally:
            self.busy = False
        if self.state == CLOSED:
            return None
        self.preview_data = data
        self.state = PREVIEW_READY
        return data

    def commit(self) -> List[Dict]:
        self._ensure_open()
        self._ensure_idle_request()
        self.validate()
        previous_state = self.state
        selected = self.selected
        self.state = COMMITTING
        self.busy = True
        try:
            if self.is_replacement:
                result = self.lifecycle.replace(self.panel_id, self.replace_visualization_id, {
                    'title': selected.get('name') or selected.get('title'),
                    'query': selected.get('query'),
                    'type': selected.get('type'),
                    'timeField': selected.get('timeField') or '',
                })
            else:
                result = self.lifecycle.add_from_saved(self.panel_id, selected)
        except PanelsError as e:
            self.state = previous_state
            self.error = f"Error in adding {selected.get('name')} visualization to the panel: {e.message}"
            logger.error('Commit failed for panel %s: %s', self.panel_id, e.message)
            raise
        finally:
            self.busy = False
        logger.info('Visualization %s successfully added to panel %s', selected.get('name'), self.panel_id)
        self.close()
        if self.on_commit is not None:
            self.on_commit(result)
        return result

    def close(self) -> None:
        self.state = CLOSED
        self.busy = False
        self.saved_visualizations = []
        self.selected = None
        self.preview_data = None
        self.preview_error = ''
        self.error = ''
