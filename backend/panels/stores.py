"""Document store adaptors for panel documents.

Both adaptors expose the same small contract used by `PanelRepository`:

- `list_documents()` / `get_document(id)` return camelCase panel dicts
- `create_document(doc)` returns the new id
- `update_document(id, fields)` reads the stored document, merges the given
  top-level fields and writes it back (no version check: last writer wins)
- `delete_document(id)`

Missing documents raise `NotFound`; store failures raise `UpstreamFailure`.
"""

import logging
import uuid
from datetime import datetime
from typing import Dict, List

from django.conf import settings
from django.db import DatabaseError, transaction
from elasticsearch import ApiError, Elasticsearch, TransportError

from .exceptions import NotFound, UpstreamFailure
from .models import Panel
from .serializers import PanelSerializer

logger = logging.getLogger(__name__)

# camelCase document key -> Panel model attribute
FIELD_MAP = {
    'name': 'name',
    'visualizations': 'visualizations',
    'timeRange': 'time_range',
    'queryFilter': 'query_filter',
    'refreshConfig': 'refresh_config',
    'dateCreated': 'date_created',
    'dateModified': 'date_modified',
}


def _panel_to_document(panel: Panel) -> Dict:
    return dict(PanelSerializer(panel).data)


class OrmPanelStore:
    """Panels stored as rows of the `Panel` model with JSON columns."""

    def list_documents(self) -> List[Dict]:
        try:
            return [_panel_to_document(p) for p in Panel.objects.all().order_by('-date_modified')]
        except DatabaseError as e:
            logger.exception('Failed to list panels: %s', e)
            raise UpstreamFailure(str(e))

    def _get(self, panel_id: str) -> Panel:
        try:
            panel = Panel.objects.filter(id=panel_id).first()
        except DatabaseError as e:
            logger.exception('Failed to read panel %s: %s', panel_id, e)
            raise UpstreamFailure(str(e))
        if panel is None:
            raise NotFound(f'Panel {panel_id} not found')
        return panel

    def get_document(self, panel_id: str) -> Dict:
        return _panel_to_document(self._get(panel_id))

    def create_document(self, doc: Dict) -> str:
        values = {FIELD_MAP[k]: v for k, v in doc.items() if k in FIELD_MAP}
        try:
            panel = Panel.objects.create(**values)
        except DatabaseError as e:
            logger.exception('Failed to create panel: %s', e)
            raise UpstreamFailure(str(e))
        return panel.id

    def update_document(self, panel_id: str, fields: Dict) -> Dict:
        panel = self._get(panel_id)
        update_fields = []
        for key, value in fields.items():
            attr = FIELD_MAP.get(key)
            if attr is None:
                continue
            setattr(panel, attr, value)
            update_fields.append(attr)
        try:
            with transaction.atomic():
                panel.save(update_fields=update_fields)
        except DatabaseError as e:
            logger.exception('Failed to update panel %s: %s', panel_id, e)
            raise UpstreamFailure(str(e))
        return _panel_to_document(panel)

    def delete_document(self, panel_id: str) -> None:
        try:
            deleted, _ = Panel.objects.filter(id=panel_id).delete()
        except DatabaseError as e:
            logger.exception('Failed to delete panel %s: %s', panel_id, e)
            raise UpstreamFailure(str(e))
        if not deleted:
            raise NotFound(f'Panel {panel_id} not found')


def _body(resp):
    return getattr(resp, 'body', resp)


def _serialize_dates(doc: Dict) -> Dict:
    out = dict(doc)
    for key in ('dateCreated', 'dateModified'):
        if isinstance(out.get(key), datetime):
            out[key] = out[key].isoformat().replace('+00:00', 'Z')
    return out


class ElasticsearchPanelStore:
    """Panels stored as documents of a search index."""

    LIST_SIZE = 1000

    def __init__(self, client: Elasticsearch, index: str):
        self.client = client
        self.index = index

    @classmethod
    def from_settings(cls, cfg: Dict) -> 'ElasticsearchPanelStore':
        hosts = [h.strip() for h in (cfg.get('ES_HOSTS') or '').split(',') if h.strip()]
        init_args = {'verify_certs': bool(cfg.get('ES_VERIFY_CERTS', True))}
        if cfg.get('ES_USERNAME'):
            init_args['basic_auth'] = (cfg.get('ES_USERNAME'), cfg.get('ES_PASSWORD') or '')
        client = Elasticsearch(hosts=hosts, **init_args)
        return cls(client, cfg.get('ES_INDEX') or '.operational-panels')

    def _call(self, what: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ApiError as e:
            logger.error('Elasticsearch %s failed (status=%s index=%s): %s', what, e.status_code, self.index, e)
            raise UpstreamFailure(str(e), status_code=e.status_code)
        except TransportError as e:
            logger.error('Elasticsearch %s transport error (index=%s): %s', what, self.index, e)
            raise UpstreamFailure(str(e), status_code=502)

    def list_documents(self) -> List[Dict]:
        resp = self._call(
            'search',
            self.client.options(ignore_status=404).search,
            index=self.index,
            query={'match_all': {}},
            sort=[{'dateModified': {'order': 'desc', 'unmapped_type': 'date'}}],
            size=self.LIST_SIZE,
            track_total_hits=True,
        )
        hits = _body(resp).get('hits', {})
        total = hits.get('total') or {}
        total = total.get('value', 0) if isinstance(total, dict) else int(total)
        if total > self.LIST_SIZE:
            logger.warning('Index %s holds %d panels; listing only the %d most recently modified',
                           self.index, total, self.LIST_SIZE)
        return [{**h.get('_source', {}), 'id': h.get('_id')} for h in hits.get('hits', [])]

    def get_document(self, panel_id: str) -> Dict:
        resp = _body(self._call('get', self.client.options(ignore_status=404).get, index=self.index, id=panel_id))
        if not resp.get('found'):
            raise NotFound(f'Panel {panel_id} not found')
        return {**resp.get('_source', {}), 'id': resp.get('_id', panel_id)}

    def create_document(self, doc: Dict) -> str:
        panel_id = uuid.uuid4().hex
        source = _serialize_dates({k: v for k, v in doc.items() if k in FIELD_MAP})
        self._call('index', self.client.index, index=self.index, id=panel_id, document=source, refresh='wait_for')
        return panel_id

    def update_document(self, panel_id: str, fields: Dict) -> Dict:
        current = self.get_document(panel_id)
        current.pop('id', None)
        current.update({k: v for k, v in fields.items() if k in FIELD_MAP})
        source = _serialize_dates(current)
        self._call('index', self.client.index, index=self.index, id=panel_id, document=source, refresh='wait_for')
        return {**source, 'id': panel_id}

    def delete_document(self, panel_id: str) -> None:
        resp = _body(self._call(
            'delete',
            self.client.options(ignore_status=404).delete,
            index=self.index,
            id=panel_id,
            refresh='wait_for',
        ))
        if resp.get('result') != 'deleted':
            raise NotFound(f'Panel {panel_id} not found')


def get_panel_store():
    cfg = getattr(settings, 'PANELS', {}) or {}
    if cfg.get('STORE') == 'elasticsearch':
        return ElasticsearchPanelStore.from_settings(cfg)
    return OrmPanelStore()
