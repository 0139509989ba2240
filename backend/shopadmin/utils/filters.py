from __future__ import annotations
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional
from flask import abort
from sqlalchemy import or_


def apply_filters(query, specs: Dict[str, Dict[str, Any]], params: Dict[str, Any]):
    """Generic filter builder.

    specs: { param_name: { 'op': callable(query, value)->query, 'coerce': type/func, 'validate': callable(optional) } }
    Empty string params are ignored like missing ones.
    """
    for name, meta in specs.items():
        if name not in params or params[name] in (None, ''):
            continue
        val = params[name]
        if 'coerce' in meta:
            try:
                val = meta['coerce'](val)
            except (TypeError, ValueError):
                abort(400, description=f'{name} invalid')
        if 'validate' in meta and not meta['validate'](val):
            abort(400, description=f'{name} invalid')
        query = meta['op'](query, val)
    return query


def search_filter(columns: Iterable):
    """Build an 'op' doing case-insensitive substring match over columns."""
    cols = list(columns)

    def op(query, value):
        term = f'%{value.strip()}%'
        return query.filter(or_(*[c.ilike(term) for c in cols]))
    return op


def parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    for fmt in ('%Y-%m-%d', '%Y-%m-%dT%H:%M:%S', '%Y-%m-%dT%H:%M:%S.%f'):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    try:
        dt = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None
    if dt.tzinfo is not None:
        dt = dt.replace(tzinfo=None) - (dt.utcoffset() or timedelta(0))
    return dt


def coerce_date(value: str) -> datetime:
    dt = parse_date(value)
    if dt is None:
        raise ValueError(value)
    return dt


def end_of_day(value: str) -> datetime:
    """Date-only upper bounds include the whole day."""
    dt = coerce_date(value)
    if len(value) == 10:
        dt = dt + timedelta(days=1) - timedelta(microseconds=1)
    return dt


def date_range_specs(column, start_param: str = 'start_date', end_param: str = 'end_date'):
    return {
        start_param: {'coerce': coerce_date, 'op': lambda qu, v: qu.filter(column >= v)},
        end_param: {'coerce': end_of_day, 'op': lambda qu, v: qu.filter(column <= v)},
    }


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')
