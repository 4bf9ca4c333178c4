"""PPL query execution over the search backend's `_plugins/_ppl` endpoint.

Uses `requests` with explicit (connect, read) timeouts and a small retry loop
for timeouts/connection errors. HTTP errors are not retried.
"""

import logging
import os
import time
from typing import Dict, List, Optional, Tuple

import requests
from django.conf import settings

from panels.exceptions import UpstreamFailure

logger = logging.getLogger(__name__)

PPL_PATH = '/_plugins/_ppl'


def _get_http_timeouts(default_read_timeout: int) -> Tuple[float, float]:
    """Return (connect_timeout, read_timeout) for requests."""
    try:
        connect_timeout = float(os.getenv('PPL_HTTP_CONNECT_TIMEOUT_SECONDS', '5'))
    except ValueError:
        connect_timeout = 5.0
    try:
        read_timeout = float(os.getenv('PPL_HTTP_READ_TIMEOUT_SECONDS', str(default_read_timeout)))
    except ValueError:
        read_timeout = float(default_read_timeout)
    return connect_timeout, read_timeout


def _get_retries() -> int:
    try:
        return int(os.getenv('PPL_HTTP_RETRIES', '2'))
    except ValueError:
        return 2


def shape_response(res: Dict) -> Dict:
    """Turn `{schema, datarows, size, status}` into column-oriented preview data."""
    schema: List[Dict] = res.get('schema') or []
    rows = res.get('datarows') or []
    columns = [c.get('name') for c in schema]
    data = {name: [row[i] if i < len(row) else None for row in rows] for i, name in enumerate(columns)}
    return {
        'data': data,
        'metadata': {'fields': schema},
        'size': res.get('size', len(rows)),
        'status': res.get('status', 200),
    }


class PPLService:

    def __init__(self, host: str, username: Optional[str] = None, password: Optional[str] = None,
                 verify: bool = True, session: Optional[requests.Session] = None):
        if not host.startswith('http'):
            host = 'http://' + host
        self.url = host.rstrip('/') + PPL_PATH
        self.auth = (username, password or '') if username else None
        self.verify = verify
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls) -> 'PPLService':
        cfg = getattr(settings, 'PANELS', {}) or {}
        return cls(
            cfg.get('PPL_HOST') or 'http://localhost:9200',
            username=cfg.get('ES_USERNAME') or None,
            password=cfg.get('ES_PASSWORD') or None,
            verify=bool(cfg.get('ES_VERIFY_CERTS', True)),
        )

    def fetch(self, query: str, timeout: int = 30) -> Dict:
        connect_timeout, read_timeout = _get_http_timeouts(timeout)
        retries = _get_retries()
        last_exc: Exception | None = None
        for attempt in range(retries + 1):
            try:
                resp = self.session.post(
                    self.url,
                    json={'query': query},
                    auth=self.auth,
                    timeout=(connect_timeout, read_timeout),
                    verify=self.verify,
                )
                resp.raise_for_status()
                result = shape_response(resp.json())
                logger.info('PPL query succeeded (attempt=%d url=%s), returned %d rows', attempt + 1, self.url, result['size'])
                return result
            except requests.HTTPError as e:
                status_code = getattr(e.response, 'status_code', None) or 500
                body = (getattr(e.response, 'text', '') or '')[:2000]
                logger.error('PPL query failed (status=%s url=%s): %s', status_code, self.url, body)
                raise UpstreamFailure(body or str(e), status_code=status_code)
            except (requests.Timeout, requests.ConnectionError) as e:
                last_exc = e
                logger.warning('PPL query request error (attempt=%d/%d url=%s): %s', attempt + 1, retries + 1, self.url, e)
            except ValueError as e:
                logger.error('PPL query returned invalid JSON (url=%s): %s', self.url, e)
                raise UpstreamFailure('Invalid response from query service', status_code=502)

            # small backoff between retries
            if attempt < retries:
                time.sleep(min(0.5 * (attempt + 1), 2.0))

        logger.error('PPL query failed after retries (url=%s): %s', self.url, last_exc)
        raise UpstreamFailure(f'Query service unavailable: {last_exc}', status_code=502)
