"""Panel repository: owns persisted panel documents.

All mutating calls stamp `dateModified`. Updates are partial (read-merge-write
in the store) and unguarded: two writers racing on the same panel resolve as
last-writer-wins.
"""

import copy
import logging
from typing import Dict, Iterable, List, Mapping

from django.utils import timezone

from .exceptions import ValidationError
from .models import default_query_filter, default_refresh_config, default_time_range
from .placement import COLS

logger = logging.getLogger(__name__)


def _require_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError('Panel name must not be empty')
    return name.strip()


def validate_geometry(cell: Mapping) -> Dict:
    """Return `{x, y, w, h}` from a grid cell or raise ValidationError."""
    out = {}
    for key in ('x', 'y', 'w', 'h'):
        value = cell.get(key)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f'Invalid layout for {cell.get("i")}: {key} must be an integer')
        out[key] = value
    if out['x'] < 0 or out['y'] < 0:
        raise ValidationError(f'Invalid layout for {cell.get("i")}: x and y must be >= 0')
    if out['w'] <= 0 or out['h'] <= 0:
        raise ValidationError(f'Invalid layout for {cell.get("i")}: w and h must be > 0')
    if out['x'] + out['w'] > COLS:
        raise ValidationError(f'Invalid layout for {cell.get("i")}: exceeds {COLS} columns')
    return out


class PanelRepository:

    def __init__(self, store):
        self.store = store

    def list(self) -> List[Dict]:
        return self.store.list_documents()

    def get(self, panel_id: str) -> Dict:
        return self.store.get_document(panel_id)

    def create(self, name: str) -> str:
        name = _require_name(name)
        now = timezone.now()
        panel_id = self.store.create_document({
            'name': name,
            'visualizations': [],
            'timeRange': default_time_range(),
            'queryFilter': default_query_filter(),
            'refreshConfig': default_refresh_config(),
            'dateCreated': now,
            'dateModified': now,
        })
        logger.info('Created panel id=%s name=%s', panel_id, name)
        return panel_id

    def rename(self, panel_id: str, name: str) -> None:
        name = _require_name(name)
        self.store.update_document(panel_id, {'name': name, 'dateModified': timezone.now()})
        logger.info('Renamed panel id=%s to %s', panel_id, name)

    def clone(self, panel_id: str, new_name: str) -> Dict:
        new_name = _require_name(new_name)
        # NotFound propagates: a vanished source is never recreated
        source = self.store.get_document(panel_id)
        now = timezone.now()
        clone_id = self.store.create_document({
            'name': new_name,
            'visualizations': copy.deepcopy(source.get('visualizations') or []),
            'timeRange': copy.deepcopy(source.get('timeRange') or default_time_range()),
            'queryFilter': copy.deepcopy(source.get('queryFilter') or default_query_filter()),
            'refreshConfig': copy.deepcopy(source.get('refreshConfig') or default_refresh_config()),
            'dateCreated': now,
            'dateModified': now,
        })
        logger.info('Cloned panel id=%s into id=%s', panel_id, clone_id)
        return {'id': clone_id, 'dateCreated': now, 'dateModified': now}

    def delete(self, panel_id: str) -> None:
        self.store.delete_document(panel_id)
        logger.info('Deleted panel id=%s', panel_id)

    def set_filter(self, panel_id: str, query: str, language: str, start: str, end: str) -> None:
        self.store.update_document(panel_id, {
            'queryFilter': {'query': query, 'language': language},
            'timeRange': {'from': start, 'to': end},
            'dateModified': timezone.now(),
        })
        logger.info('Updated filter of panel id=%s', panel_id)

    def save_visualizations(self, panel_id: str, visualizations: List[Dict]) -> List[Dict]:
        """Overwrite the visualization list of a panel; returns the stored list."""
        doc = self.store.update_document(panel_id, {
            'visualizations': visualizations,
            'dateModified': timezone.now(),
        })
        return doc.get('visualizations') or []

    def update_layout(self, panel_id: str, params: Iterable[Mapping]) -> List[Dict]:
        """Apply grid geometry `{i, x, y, w, h}` to the matching visualizations.

        Visualizations without a cell keep their geometry; cells for unknown
        ids are ignored.
        """
        geometry = {}
        for cell in params:
            geometry[str(cell.get('i'))] = validate_geometry(cell)
        panel = self.store.get_document(panel_id)
        updated = []
        for viz in panel.get('visualizations') or []:
            new_viz = dict(viz)
            if viz.get('id') in geometry:
                new_viz.update(geometry[viz['id']])
            updated.append(new_viz)
        unknown = set(geometry) - {v.get('id') for v in updated}
        if unknown:
            logger.warning('Ignoring layout for unknown visualizations %s on panel %s', sorted(unknown), panel_id)
        return self.save_visualizations(panel_id, updated)
