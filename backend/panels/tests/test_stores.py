from datetime import datetime, timezone
from unittest import mock

from django.test import SimpleTestCase, override_settings
from elasticsearch import ApiError, ConnectionError as ESConnectionError

from panels.exceptions import NotFound, UpstreamFailure
from panels.stores import ElasticsearchPanelStore, OrmPanelStore, get_panel_store


def _client():
    client = mock.MagicMock()
    # options(ignore_status=404) returns a client with the same methods
    client.options.return_value = client
    return client


class ElasticsearchPanelStoreTests(SimpleTestCase):
    def setUp(self):
        self.client = _client()
        self.store = ElasticsearchPanelStore(self.client, '.operational-panels')

    def test_list_documents_sorted_by_server(self):
        self.client.search.return_value = {'hits': {'total': {'value': 2, 'relation': 'eq'}, 'hits': [
            {'_id': 'p2', '_source': {'name': 'New', 'dateModified': '2024-02-01T00:00:00Z'}},
            {'_id': 'p1', '_source': {'name': 'Old', 'dateModified': '2024-01-01T00:00:00Z'}},
        ]}}
        docs = self.store.list_documents()
        self.assertEqual([d['id'] for d in docs], ['p2', 'p1'])
        self.client.options.assert_called_with(ignore_status=404)
        kwargs = self.client.search.call_args.kwargs
        self.assertEqual(kwargs['index'], '.operational-panels')
        self.assertEqual(kwargs['query'], {'match_all': {}})
        self.assertEqual(kwargs['sort'], [{'dateModified': {'order': 'desc', 'unmapped_type': 'date'}}])
        self.assertEqual(kwargs['size'], ElasticsearchPanelStore.LIST_SIZE)

    def test_list_documents_warns_when_truncated(self):
        total = ElasticsearchPanelStore.LIST_SIZE + 5
        self.client.search.return_value = {'hits': {'total': {'value': total, 'relation': 'eq'}, 'hits': [
            {'_id': 'p1', '_source': {'name': 'Sales'}},
        ]}}
        with self.assertLogs('panels.stores', level='WARNING') as logs:
            docs = self.store.list_documents()
        self.assertEqual(len(docs), 1)
        self.assertIn(str(total), logs.output[0])

    def test_get_document(self):
        self.client.get.return_value = {'_id': 'p1', 'found': True, '_source': {'name': 'Sales'}}
        self.assertEqual(self.store.get_document('p1'), {'name': 'Sales', 'id': 'p1'})

    def test_get_missing_document(self):
        self.client.get.return_value = {'_id': 'p1', 'found': False}
        with self.assertRaises(NotFound):
            self.store.get_document('p1')

    def test_create_document_serializes_dates(self):
        now = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        panel_id = self.store.create_document({'name': 'Sales', 'visualizations': [],
                                               'dateCreated': now, 'dateModified': now, 'bogus': 1})
        kwargs = self.client.index.call_args.kwargs
        self.assertEqual(kwargs['id'], panel_id)
        self.assertEqual(kwargs['refresh'], 'wait_for')
        self.assertEqual(kwargs['document'], {'name': 'Sales', 'visualizations': [],
                                              'dateCreated': '2024-01-02T03:04:05Z',
                                              'dateModified': '2024-01-02T03:04:05Z'})

    def test_update_document_merges_top_level_fields(self):
        self.client.get.return_value = {'_id': 'p1', 'found': True, '_source': {
            'name': 'Sales', 'visualizations': [{'id': 'panelViz_a'}], 'timeRange': {'from': 'now-1d', 'to': 'now'},
        }}
        doc = self.store.update_document('p1', {'name': 'Revenue'})
        document = self.client.index.call_args.kwargs['document']
        self.assertEqual(document['name'], 'Revenue')
        self.assertEqual(document['visualizations'], [{'id': 'panelViz_a'}])
        self.assertNotIn('id', document)
        self.assertEqual(doc['id'], 'p1')

    def test_update_missing_document_does_not_write(self):
        self.client.get.return_value = {'_id': 'p1', 'found': False}
        with self.assertRaises(NotFound):
            self.store.update_document('p1', {'name': 'Revenue'})
        self.client.index.assert_not_called()

    def test_delete_document(self):
        self.client.delete.return_value = {'result': 'deleted'}
        self.store.delete_document('p1')
        self.client.delete.return_value = {'result': 'not_found'}
        with self.assertRaises(NotFound):
            self.store.delete_document('p1')

    def test_api_error_keeps_status(self):
        meta = mock.Mock(status=403)
        self.client.index.side_effect = ApiError('security_exception', meta=meta, body={})
        with self.assertRaises(UpstreamFailure) as ctx:
            self.store.create_document({'name': 'Sales'})
        self.assertEqual(ctx.exception.status_code, 403)

    def test_transport_error_is_bad_gateway(self):
        self.client.search.side_effect = ESConnectionError('connection refused')
        with self.assertRaises(UpstreamFailure) as ctx:
            self.store.list_documents()
        self.assertEqual(ctx.exception.status_code, 502)


class PanelStoreSelectionTests(SimpleTestCase):
    @override_settings(PANELS={'STORE': 'orm'})
    def test_orm_store(self):
        self.assertIsInstance(get_panel_store(), OrmPanelStore)

    @override_settings(PANELS={'STORE': 'elasticsearch', 'ES_HOSTS': 'http://es1:9200, http://es2:9200',
                               'ES_INDEX': 'panels-test', 'ES_USERNAME': 'admin', 'ES_PASSWORD': 'pw',
                               'ES_VERIFY_CERTS': False})
    @mock.patch('panels.stores.Elasticsearch')
    def test_elasticsearch_store(self, es_cls):
        store = get_panel_store()
        self.assertIsInstance(store, ElasticsearchPanelStore)
        self.assertEqual(store.index, 'panels-test')
        es_cls.assert_called_once_with(hosts=['http://es1:9200', 'http://es2:9200'],
                                       verify_certs=False, basic_auth=('admin', 'pw'))
