"""Compose the effective PPL query for a visualization.

`compose_effective_query` turns saved filters, a free-text filter and a time
window into one `where` command. It is pure and total: relative bounds are
resolved against the `now` it is given, malformed saved filters are dropped
and unparseable bounds are passed through. It never checks that `start`
precedes `end`; callers (the flyout, `validate_filter`) check input before
asking for a query.

`build_visualization_query` splices that `where` command right after the
`source=<index>` command of a stored visualization query:

    source=orders | stats count() by span(timestamp, 1d)
    -> source=orders | where timestamp >= '...' and timestamp <= '...' | stats ...
"""

import logging
import re
from numbers import Number
from typing import Iterable, Mapping, Union

from panels.exceptions import ValidationError
from .dates import convert_date_time

logger = logging.getLogger(__name__)

DEFAULT_TIME_FIELD = 'timestamp'
OPERATORS = ('=', '!=', '>', '>=', '<', '<=')

PPL_SOURCE_RE = re.compile(r'^\s*(?:search\s+)?source\s*=\s*([^|\s]+)', re.IGNORECASE)
_LEADING_WHERE_RE = re.compile(r'^\s*\|?\s*where\s+', re.IGNORECASE)

Filter = Union[str, Mapping]


def quote_value(value) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, Number):
        return str(value)
    text = str(value).replace('\\', '\\\\').replace("'", "\\'")
    return f"'{text}'"


def _time_literal(value, round_up: bool, now=None) -> str:
    try:
        return convert_date_time(value, round_up=round_up, now=now)
    except ValidationError:
        # left for the query service to reject
        return str(value).replace("'", "\\'")


def validate_filter(base_filter: Filter) -> None:
    """Raise ValidationError for a saved filter the composer would drop."""
    if isinstance(base_filter, str):
        return
    if not isinstance(base_filter, Mapping):
        raise ValidationError('Filter must be a PPL expression or a {field, operator, value} object')
    if not base_filter.get('field'):
        raise ValidationError('Filter field must not be empty')
    operator = base_filter.get('operator') or '='
    if operator not in OPERATORS:
        raise ValidationError(f'Unsupported filter operator: {operator}')


def filter_clause(base_filter: Filter) -> str:
    """One boolean clause for a saved filter; '' when the filter is blank or malformed."""
    if isinstance(base_filter, str):
        expr = _LEADING_WHERE_RE.sub('', base_filter).strip()
        return f'({expr})' if expr else ''
    try:
        validate_filter(base_filter)
    except ValidationError as e:
        logger.warning('Dropping saved filter %r: %s', base_filter, e.message)
        return ''
    operator = base_filter.get('operator') or '='
    return f"{base_filter['field']} {operator} {quote_value(base_filter.get('value'))}"


def time_clause(time_field: str, start, end, now=None) -> str:
    return (
        f"{time_field} >= '{_time_literal(start, round_up=False, now=now)}'"
        f" and {time_field} <= '{_time_literal(end, round_up=True, now=now)}'"
    )


def compose_effective_query(
    base_filters: Iterable[Filter],
    free_text_query: str,
    start,
    end,
    time_field: str = DEFAULT_TIME_FIELD,
    now=None,
) -> str:
    clauses = [c for c in (filter_clause(f) for f in base_filters or ()) if c]
    free_text = filter_clause(free_text_query or '')
    if free_text:
        clauses.append(free_text)
    if time_field:
        clauses.append(time_clause(time_field, start, end, now=now))
    if not clauses:
        return ''
    return 'where ' + ' and '.join(clauses)


def compose_time_only_query(start, end, time_field: str = DEFAULT_TIME_FIELD, now=None) -> str:
    """Time window only: ad hoc search-bar filters are not applied."""
    return compose_effective_query([], '', start, end, time_field, now=now)


def build_visualization_query(
    query: str,
    time_field: str,
    start,
    end,
    panel_filter: str = '',
    base_filters: Iterable[Filter] = (),
    now=None,
) -> str:
    m = PPL_SOURCE_RE.match(query or '')
    if not m:
        raise ValidationError('PPL query must start with a source command')
    where = compose_effective_query(base_filters, panel_filter, start, end, time_field, now=now)
    if not where:
        return query
    head, rest = query[:m.end()], query[m.end():]
    return f'{head.strip()} | {where}{rest}'
