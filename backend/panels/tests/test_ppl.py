from datetime import datetime
from unittest import mock

import requests
from django.test import SimpleTestCase, override_settings

from panels.exceptions import UpstreamFailure, ValidationError
from ppl.composer import (
    build_visualization_query,
    compose_effective_query,
    compose_time_only_query,
    filter_clause,
    quote_value,
    validate_filter,
)
from ppl.dates import convert_date_time, parse_date_time
from ppl.service import PPLService, shape_response

NOW = datetime(2024, 3, 15, 10, 30, 45)


class DateTests(SimpleTestCase):
    def test_iso_strings(self):
        self.assertEqual(convert_date_time('2024-01-02'), '2024-01-02 00:00:00')
        self.assertEqual(convert_date_time('2024-01-02T10:00:00Z'), '2024-01-02 10:00:00')
        self.assertEqual(convert_date_time('2024-01-02T10:00:00+02:00'), '2024-01-02 08:00:00')

    def test_datemath(self):
        self.assertEqual(convert_date_time('now', now=NOW), '2024-03-15 10:30:45')
        self.assertEqual(convert_date_time('now-15m', now=NOW), '2024-03-15 10:15:45')
        self.assertEqual(convert_date_time('now-1d/d', now=NOW), '2024-03-14 00:00:00')
        self.assertEqual(convert_date_time('now-1d/d', round_up=True, now=NOW), '2024-03-14 23:59:59')
        self.assertEqual(convert_date_time('now-1M', now=NOW), '2024-02-15 10:30:45')
        self.assertEqual(convert_date_time('now+1y/y', now=NOW), '2025-01-01 00:00:00')

    def test_month_shift_clamps_day(self):
        self.assertEqual(
            convert_date_time('now-1M', now=datetime(2024, 3, 31, 0, 0, 0)),
            '2024-02-29 00:00:00',
        )

    def test_invalid_dates(self):
        for value in ('', None, 'yesterday', 'now-1q'):
            with self.assertRaises(ValidationError):
                parse_date_time(value)


class ComposerTests(SimpleTestCase):
    def test_quote_value(self):
        self.assertEqual(quote_value(3), '3')
        self.assertEqual(quote_value(True), 'true')
        self.assertEqual(quote_value("o'neil"), "'o\\'neil'")

    def test_filter_clause(self):
        self.assertEqual(filter_clause('where status = 200'), '(status = 200)')
        self.assertEqual(filter_clause('  '), '')
        self.assertEqual(filter_clause({'field': 'region', 'value': 'eu'}), "region = 'eu'")
        self.assertEqual(filter_clause({'field': 'region', 'operator': 'like', 'value': 'eu'}), '')
        self.assertEqual(filter_clause({'value': 'eu'}), '')

    def test_validate_filter(self):
        validate_filter('status = 200')
        validate_filter({'field': 'region', 'operator': '!=', 'value': 'eu'})
        for bad in ({'value': 'eu'}, {'field': 'region', 'operator': 'like'}, 42):
            with self.assertRaises(ValidationError):
                validate_filter(bad)

    def test_malformed_filters_are_dropped_not_raised(self):
        query = compose_effective_query(
            [{'value': 'eu'}, {'field': 'region', 'operator': 'like', 'value': 'eu'}, 'status = 200'],
            '', '2024-01-01', '2024-01-02',
        )
        self.assertEqual(
            query,
            "where (status = 200) and "
            "timestamp >= '2024-01-01 00:00:00' and timestamp <= '2024-01-02 00:00:00'",
        )

    def test_relative_bounds_are_deterministic_for_a_given_now(self):
        first = compose_effective_query([], '', 'now-15m', 'now', now=NOW)
        self.assertEqual(first, compose_effective_query([], '', 'now-15m', 'now', now=NOW))
        self.assertEqual(
            first,
            "where timestamp >= '2024-03-15 10:15:45' and timestamp <= '2024-03-15 10:30:45'",
        )
        later = NOW.replace(second=46)
        self.assertNotEqual(first, compose_effective_query([], '', 'now-15m', 'now', now=later))
        self.assertEqual(
            compose_time_only_query('now-1d/d', 'now-1d/d', now=NOW),
            "where timestamp >= '2024-03-14 00:00:00' and timestamp <= '2024-03-14 23:59:59'",
        )

    def test_effective_query_is_deterministic(self):
        args = ([{'field': 'region', 'value': 'eu'}], 'status = 200', '2024-01-01', '2024-01-02')
        first = compose_effective_query(*args)
        self.assertEqual(first, compose_effective_query(*args))
        self.assertEqual(
            first,
            "where region = 'eu' and (status = 200) and "
            "timestamp >= '2024-01-01 00:00:00' and timestamp <= '2024-01-02 00:00:00'",
        )

    def test_time_window_survives_added_filters(self):
        window = compose_time_only_query('2024-01-01', '2024-01-02')
        with_filters = compose_effective_query(['a = 1', 'b = 2'], 'c = 3', '2024-01-01', '2024-01-02')
        self.assertTrue(with_filters.endswith(window[len('where '):]))

    def test_empty_time_field_drops_time_clause(self):
        self.assertEqual(compose_effective_query([], '', '2024-01-01', '2024-01-02', time_field=''), '')
        self.assertEqual(compose_effective_query([], 'a = 1', 'x', 'y', time_field=''), 'where (a = 1)')

    def test_build_visualization_query_splices_after_source(self):
        query = build_visualization_query(
            'source=orders | stats count() by span(timestamp, 1d)',
            'timestamp',
            '2024-01-01',
            '2024-01-02',
        )
        self.assertEqual(
            query,
            "source=orders | where timestamp >= '2024-01-01 00:00:00' and "
            "timestamp <= '2024-01-02 00:00:00' | stats count() by span(timestamp, 1d)",
        )

    def test_build_visualization_query_without_clauses_is_unchanged(self):
        self.assertEqual(
            build_visualization_query('source=orders | head 5', '', '2024-01-01', '2024-01-02'),
            'source=orders | head 5',
        )

    def test_build_visualization_query_requires_source(self):
        with self.assertRaises(ValidationError):
            build_visualization_query('stats count()', 'timestamp', 'now-1d', 'now')


def _response(status_code=200, payload=None, text=''):
    resp = mock.Mock()
    resp.status_code = status_code
    resp.text = text
    resp.json.return_value = payload
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(response=resp)
    else:
        resp.raise_for_status.return_value = None
    return resp


@mock.patch.dict('os.environ', {'PPL_HTTP_RETRIES': '1'})
@mock.patch('ppl.service.time.sleep')
class PPLServiceTests(SimpleTestCase):
    def _service(self, session):
        return PPLService('localhost:9200', username='admin', password='secret', session=session)

    def test_url_and_shape(self, _sleep):
        session = mock.Mock()
        session.post.return_value = _response(payload={
            'schema': [{'name': 'region', 'type': 'string'}, {'name': 'count()', 'type': 'integer'}],
            'datarows': [['eu', 3], ['us', 5]],
            'size': 2,
            'status': 200,
        })
        result = self._service(session).fetch('source=orders | stats count() by region')

        args, kwargs = session.post.call_args
        self.assertEqual(args[0], 'http://localhost:9200/_plugins/_ppl')
        self.assertEqual(kwargs['json'], {'query': 'source=orders | stats count() by region'})
        self.assertEqual(kwargs['auth'], ('admin', 'secret'))
        self.assertEqual(result['data'], {'region': ['eu', 'us'], 'count()': [3, 5]})
        self.assertEqual(result['size'], 2)

    def test_http_error_keeps_status(self, _sleep):
        session = mock.Mock()
        session.post.return_value = _response(status_code=400, text='SyntaxCheckException')
        with self.assertRaises(UpstreamFailure) as ctx:
            self._service(session).fetch('source=')
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertIn('SyntaxCheckException', ctx.exception.message)
        self.assertEqual(session.post.call_count, 1)

    def test_timeouts_are_retried_then_fail(self, _sleep):
        session = mock.Mock()
        session.post.side_effect = requests.Timeout('read timed out')
        with self.assertRaises(UpstreamFailure) as ctx:
            self._service(session).fetch('source=orders')
        self.assertEqual(ctx.exception.status_code, 502)
        self.assertEqual(session.post.call_count, 2)

    def test_retry_recovers(self, _sleep):
        session = mock.Mock()
        session.post.side_effect = [
            requests.ConnectionError('refused'),
            _response(payload={'schema': [], 'datarows': []}),
        ]
        result = self._service(session).fetch('source=orders')
        self.assertEqual(result['size'], 0)

    def test_shape_response_pads_short_rows(self, _sleep):
        shaped = shape_response({'schema': [{'name': 'a'}, {'name': 'b'}], 'datarows': [[1]]})
        self.assertEqual(shaped['data'], {'a': [1], 'b': [None]})
        self.assertEqual(shaped['status'], 200)


class PPLServiceSettingsTests(SimpleTestCase):
    @override_settings(PANELS={'PPL_HOST': 'https://search.internal:9200/', 'ES_USERNAME': 'admin',
                               'ES_PASSWORD': 'pw', 'ES_VERIFY_CERTS': False})
    def test_from_settings(self):
        service = PPLService.from_settings()
        self.assertEqual(service.url, 'https://search.internal:9200/_plugins/_ppl')
        self.assertEqual(service.auth, ('admin', 'pw'))
        self.assertFalse(service.verify)

    @override_settings(PANELS={})
    def test_from_settings_defaults(self):
        service = PPLService.from_settings()
        self.assertEqual(service.url, 'http://localhost:9200/_plugins/_ppl')
        self.assertIsNone(service.auth)
