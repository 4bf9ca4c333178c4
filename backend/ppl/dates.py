"""Normalize panel time bounds into PPL timestamp literals.

Accepts datetimes, ISO strings (`2024-01-02`, `2024-01-02T10:00:00Z`) and
datemath relative to now (`now`, `now-15m`, `now-1d/d`, units s m h d w M y).
Aware values are converted to UTC; output is `YYYY-MM-DD HH:MM:SS`.
"""

from __future__ import annotations

import calendar
import re
from datetime import datetime, timedelta, timezone

from panels.exceptions import ValidationError

PPL_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

_DATEMATH_RE = re.compile(r'^now(?P<ops>(?:[+-]\d+[smhdwMy])*)(?:/(?P<round>[smhdwMy]))?$')
_OP_RE = re.compile(r'([+-])(\d+)([smhdwMy])')

_FIXED_UNITS = {
    's': timedelta(seconds=1),
    'm': timedelta(minutes=1),
    'h': timedelta(hours=1),
    'd': timedelta(days=1),
    'w': timedelta(weeks=1),
}


def _add_months(dt: datetime, months: int) -> datetime:
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def _shift(dt: datetime, amount: int, unit: str) -> datetime:
    if unit == 'M':
        return _add_months(dt, amount)
    if unit == 'y':
        return _add_months(dt, amount * 12)
    return dt + amount * _FIXED_UNITS[unit]


def _floor(dt: datetime, unit: str) -> datetime:
    dt = dt.replace(microsecond=0)
    if unit == 's':
        return dt
    if unit == 'm':
        return dt.replace(second=0)
    if unit == 'h':
        return dt.replace(minute=0, second=0)
    dt = dt.replace(hour=0, minute=0, second=0)
    if unit == 'd':
        return dt
    if unit == 'w':
        return dt - timedelta(days=dt.weekday())
    if unit == 'M':
        return dt.replace(day=1)
    return dt.replace(month=1, day=1)


def _to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_date_time(value, round_up: bool = False, now: datetime | None = None) -> datetime:
    """Resolve `value` to a naive UTC datetime or raise ValidationError."""
    if isinstance(value, datetime):
        return _to_utc_naive(value)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'Invalid date: {value!r}')
    raw = value.strip()
    m = _DATEMATH_RE.match(raw)
    if m:
        current = _to_utc_naive(now or datetime.now(timezone.utc))
        for sign, amount, unit in _OP_RE.findall(m.group('ops') or ''):
            current = _shift(current, int(amount) if sign == '+' else -int(amount), unit)
        unit = m.group('round')
        if unit:
            current = _floor(current, unit)
            if round_up:
                current = _shift(current, 1, unit) - timedelta(seconds=1)
        return current.replace(microsecond=0)
    if raw.endswith('Z'):
        raw = raw[:-1] + '+00:00'
    try:
        return _to_utc_naive(datetime.fromisoformat(raw)).replace(microsecond=0)
    except ValueError:
        raise ValidationError(f'Invalid date: {value!r}')


def convert_date_time(value, round_up: bool = False, now: datetime | None = None) -> str:
    return parse_date_time(value, round_up=round_up, now=now).strftime(PPL_DATE_FORMAT)
