"""Visualization lifecycle on a panel: add, replace, clone, remove, and the
PPL each visualization runs under the panel filter.

Each operation reads the panel, computes the new visualization list and
writes the whole list back through the repository. There is no concurrency
token, so two operations interleaving on one panel lose the earlier write.
"""

import logging
import uuid
from typing import Dict, List, Mapping

from ppl.composer import build_visualization_query

from .exceptions import NotFound, ValidationError
from .models import default_time_range
from .placement import geometry_of, place

logger = logging.getLogger(__name__)

VISUALIZATION_ID_PREFIX = 'panelViz_'
CONTENT_FIELDS = ('title', 'query', 'type', 'timeField')


def generate_visualization_id(taken=()) -> str:
    taken = set(taken)
    while True:
        viz_id = VISUALIZATION_ID_PREFIX + uuid.uuid4().hex
        if viz_id not in taken:
            return viz_id


def _content(visualization: Mapping) -> Dict:
    if not isinstance(visualization, Mapping):
        raise ValidationError('Visualization must be an object')
    content = {
        'title': visualization.get('title') or '',
        'query': visualization.get('query') or '',
        'type': visualization.get('type') or '',
        'timeField': visualization.get('timeField') or '',
    }
    if not content['query']:
        raise ValidationError('Visualization query must not be empty')
    return content


def _find(visualizations: List[Dict], visualization_id: str) -> int:
    for index, viz in enumerate(visualizations):
        if viz.get('id') == visualization_id:
            return index
    return -1


class VisualizationLifecycle:

    def __init__(self, repository):
        self.repository = repository

    def _visualizations(self, panel_id: str) -> List[Dict]:
        panel = self.repository.get(panel_id)
        return [dict(v) for v in panel.get('visualizations') or []]

    def _append(self, panel_id: str, content: Dict) -> List[Dict]:
        visualizations = self._visualizations(panel_id)
        viz_id = generate_visualization_id(v.get('id') for v in visualizations)
        geometry = place(visualizations)
        visualizations.append({'id': viz_id, **content, **geometry.as_dict()})
        saved = self.repository.save_visualizations(panel_id, visualizations)
        logger.info('Added visualization %s to panel %s at %s', viz_id, panel_id, tuple(geometry))
        return saved

    def add_new(self, panel_id: str, visualization: Mapping) -> List[Dict]:
        return self._append(panel_id, _content(visualization))

    def add_from_saved(self, panel_id: str, saved: Mapping) -> List[Dict]:
        """Seed a visualization from a saved catalog entry; an empty time field is kept as-is."""
        if not isinstance(saved, Mapping):
            raise ValidationError('Saved visualization must be an object')
        time_field = saved.get('timeField')
        if time_field is None:
            time_field = saved.get('time_field')
        content = _content({
            'title': saved.get('name') or saved.get('title'),
            'query': saved.get('query'),
            'type': saved.get('type'),
            'timeField': time_field,
        })
        return self._append(panel_id, content)

    def replace(self, panel_id: str, old_visualization_id: str, new_visualization: Mapping) -> List[Dict]:
        visualizations = self._visualizations(panel_id)
        index = _find(visualizations, old_visualization_id)
        if index < 0:
            raise NotFound(f'Visualization {old_visualization_id} not found in panel {panel_id}')
        old = visualizations[index]
        viz_id = generate_visualization_id(v.get('id') for v in visualizations)
        visualizations[index] = {
            'id': viz_id,
            **_content(new_visualization),
            **geometry_of(old).as_dict(),
        }
        saved = self.repository.save_visualizations(panel_id, visualizations)
        logger.info('Replaced visualization %s with %s on panel %s', old_visualization_id, viz_id, panel_id)
        return saved

    def clone(self, panel_id: str, visualization_id: str) -> List[Dict]:
        visualizations = self._visualizations(panel_id)
        index = _find(visualizations, visualization_id)
        if index < 0:
            raise NotFound(f'Visualization {visualization_id} not found in panel {panel_id}')
        source = visualizations[index]
        content = {field: source.get(field) or '' for field in CONTENT_FIELDS}
        content['title'] = f"{content['title']} (copy)"
        return self._append(panel_id, content)

    def remove(self, panel_id: str, visualization_id: str) -> List[Dict]:
        visualizations = self._visualizations(panel_id)
        remaining = [v for v in visualizations if v.get('id') != visualization_id]
        if len(remaining) == len(visualizations):
            logger.debug('Visualization %s already absent from panel %s', visualization_id, panel_id)
            return visualizations
        saved = self.repository.save_visualizations(panel_id, remaining)
        logger.info('Removed visualization %s from panel %s', visualization_id, panel_id)
        return saved

    def visualization_query(self, panel_id: str, visualization_id: str, now=None) -> str:
        """PPL for one visualization under the panel's stored filter and time range."""
        panel = self.repository.get(panel_id)
        visualization = next(
            (v for v in panel.get('visualizations') or [] if v.get('id') == visualization_id),
            None,
        )
        if visualization is None:
            raise NotFound(f'Visualization {visualization_id} not found in panel {panel_id}')
        time_range = {**default_time_range(), **(panel.get('timeRange') or {})}
        query_filter = panel.get('queryFilter') or {}
        return build_visualization_query(
            visualization.get('query') or '',
            visualization.get('timeField') or '',
            time_range['from'],
            time_range['to'],
            panel_filter=query_filter.get('query') or '',
            now=now,
        )
