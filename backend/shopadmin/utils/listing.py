from __future__ import annotations
import math
from typing import Tuple
from flask import request, abort
from sqlalchemy.orm import Query
from shopadmin.config.pagination import normalize_pagination


def apply_pagination(q: Query) -> Tuple[Query, int, int, int]:
    try:
        page, limit = normalize_pagination(request.args.get('page'), request.args.get('limit'))
    except ValueError as e:
        abort(400, description=str(e))
    total = q.count()
    return q.offset((page - 1) * limit).limit(limit), total, page, limit


def build_pagination(total: int, page: int, limit: int):
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        'page': page,
        'limit': limit,
        'total': total,
        'total_pages': total_pages,
        'has_next': page < total_pages,
        'has_prev': page > 1,
    }


def build_list_payload(rows: list, total: int, page: int, limit: int, **extra):
    payload = {
        'data': rows,
        'pagination': build_pagination(total, page, limit),
    }
    payload.update(extra)
    return payload
