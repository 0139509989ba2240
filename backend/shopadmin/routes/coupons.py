from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select, and_, or_
from shopadmin import get_db
from shopadmin.models.authz import utcnow
from shopadmin.models.marketing import Coupon
from shopadmin.decorators.auth import require_permission
from shopadmin.decorators.audit import audit_log
from shopadmin.utils.listing import apply_pagination, build_list_payload
from shopadmin.utils.filters import apply_filters, search_filter, parse_date, parse_bool
from shopadmin.utils.sorting import apply_multi_sort, sort_params_to_expr
from shopadmin.utils.validation import validate_status, require_fields, parse_number, parse_int, parse_id_list

coupons_bp = Blueprint('coupons', __name__)

SORTABLE = {
    'code': Coupon.code,
    'name': Coupon.name,
    'value': Coupon.value,
    'usage_count': Coupon.usage_count,
    'starts_at': Coupon.starts_at,
    'expires_at': Coupon.expires_at,
    'created_at': Coupon.created_at,
}


def _status_filter(query, value):
    now = utcnow()
    not_expired = or_(Coupon.expires_at.is_(None), Coupon.expires_at >= now)
    if value == 'active':
        return query.filter(and_(Coupon.status==Coupon.STATUS_ACTIVE, not_expired))
    if value == 'inactive':
        return query.filter(Coupon.status==Coupon.STATUS_INACTIVE)
    return query.filter(Coupon.expires_at < now)  # expired


@coupons_bp.get('')
@require_permission('COUPONS', 'READ')
def list_coupons():
    session = get_db()
    q = session.query(Coupon)
    filter_specs = {
        'search': {'op': search_filter([Coupon.code, Coupon.name, Coupon.description])},
        'status': {'coerce': str.lower, 'op': _status_filter, 'validate': lambda v: v in ('active', 'inactive', 'expired')},
        'type': {'op': lambda qu, v: qu.filter(Coupon.type==v), 'validate': lambda v: v in Coupon.ALL_TYPES},
    }
    q = apply_filters(q, filter_specs, request.args)
    sort_expr = request.args.get('sort') or sort_params_to_expr(request.args.get('sort_by'), request.args.get('sort_order'))
    q = apply_multi_sort(q, sort_expr, SORTABLE, Coupon.id, default=Coupon.created_at.desc())
    paged_q, total, page, limit = apply_pagination(q)
    rows = [_coupon_json(c) for c in paged_q.all()]
    return build_list_payload(rows, total, page, limit)


@coupons_bp.post('')
@require_permission('COUPONS', 'CREATE')
@audit_log('COUPON.CREATE', entity='Coupon', entity_id_key='id', meta_keys=['code', 'type', 'value'])
def create_coupon():
    session = get_db()
    data = request.json or {}
    require_fields(data, 'code', 'name', 'type', 'value')
    code = str(data['code']).strip().upper()
    if session.execute(select(Coupon).where(Coupon.code==code)).scalar_one_or_none():
        abort(400, description='code exists')
    c = Coupon(code=code, usage_count=0)
    _apply_fields(c, data, creating=True)
    session.add(c)
    session.commit()
    return _coupon_json(c), 201


@coupons_bp.get('/<int:coupon_id>')
@require_permission('COUPONS', 'READ')
def get_coupon(coupon_id: int):
    return _coupon_json(_get_or_404(coupon_id))


@coupons_bp.put('/<int:coupon_id>')
@require_permission('COUPONS', 'UPDATE')
@audit_log(
    'COUPON.UPDATE',
    entity='Coupon',
    entity_id_key='id',
    diff_keys=['status', 'value', 'expires_at', 'usage_limit'],
    pre_fetch=lambda a, kw: _prefetch_coupon(kw.get('coupon_id')),
)
def update_coupon(coupon_id: int):
    session = get_db()
    c = _get_or_404(coupon_id)
    data = request.json or {}
    if 'code' in data:
        code = str(data['code'] or '').strip().upper()
        if not code:
            abort(400, description='code cannot be empty')
        if session.execute(select(Coupon).where(Coupon.code==code, Coupon.id!=c.id)).first():
            abort(400, description='code exists')
        c.code = code
    _apply_fields(c, data, creating=False)
    session.commit()
    return _coupon_json(c)


@coupons_bp.delete('/<int:coupon_id>')
@require_permission('COUPONS', 'DELETE')
@audit_log('COUPON.DELETE', entity='Coupon', entity_id_arg='coupon_id', meta_keys=['status'])
def delete_coupon(coupon_id: int):
    session = get_db()
    c = _get_or_404(coupon_id)
    if c.usage_count:
        # used coupons stay for order history
        c.status = Coupon.STATUS_INACTIVE
        session.commit()
        return {'status': 'deactivated'}
    session.delete(c)
    session.commit()
    return {'status': 'deleted'}


def _apply_fields(c: Coupon, data: dict, creating: bool):
    if 'name' in data:
        if not data['name']:
            abort(400, description='name cannot be empty')
        c.name = data['name']
    if 'description' in data:
        c.description = data['description']
    if 'type' in data:
        c.type = validate_status(data['type'], Coupon.ALL_TYPES, 'type')
    if 'value' in data:
        c.value = parse_number(data['value'], 'value')
    if c.type == Coupon.TYPE_PERCENTAGE and (c.value or 0) > 100:
        abort(400, description='percentage value must be <= 100')
    if 'minimum_amount' in data:
        c.minimum_amount = parse_number(data['minimum_amount'], 'minimum_amount', allow_none=True)
    if 'maximum_discount' in data:
        c.maximum_discount = parse_number(data['maximum_discount'], 'maximum_discount', allow_none=True)
    if 'usage_limit' in data:
        c.usage_limit = parse_int(data['usage_limit'], 'usage_limit', minimum=1, allow_none=True)
    if 'status' in data:
        c.status = validate_status(str(data['status']).upper(), Coupon.ALL_STATUSES)
    if 'is_active' in data:
        c.status = Coupon.STATUS_ACTIVE if parse_bool(data['is_active']) else Coupon.STATUS_INACTIVE
    elif creating and 'status' not in data:
        c.status = Coupon.STATUS_ACTIVE
    if 'starts_at' in data:
        c.starts_at = _date_field(data['starts_at'], 'starts_at') or utcnow()
    elif creating:
        c.starts_at = utcnow()
    if 'expires_at' in data:
        c.expires_at = _date_field(data['expires_at'], 'expires_at')
    if 'applicable_products' in data:
        c.applicable_products = parse_id_list(data['applicable_products'], 'applicable_products')
    if 'applicable_categories' in data:
        c.applicable_categories = parse_id_list(data['applicable_categories'], 'applicable_categories')
    if c.expires_at and c.starts_at and c.expires_at <= c.starts_at:
        abort(400, description='expires_at must be after starts_at')


def _date_field(raw, field: str):
    if raw in (None, ''):
        return None
    dt = parse_date(str(raw))
    if dt is None:
        abort(400, description=f'{field} invalid')
    return dt


def _get_or_404(coupon_id: int) -> Coupon:
    c = get_db().get(Coupon, coupon_id)
    if not c:
        abort(404)
    return c


def _coupon_json(c: Coupon):
    expired = c.is_expired()
    return {
        'id': c.id,
        'code': c.code,
        'name': c.name,
        'description': c.description,
        'type': c.type,
        'value': c.value,
        'minimum_amount': c.minimum_amount,
        'maximum_discount': c.maximum_discount,
        'usage_limit': c.usage_limit,
        'usage_count': c.usage_count,
        'status': c.status,
        'is_active': c.status == Coupon.STATUS_ACTIVE and not expired,
        'is_expired': expired,
        'starts_at': c.starts_at.isoformat() if c.starts_at else None,
        'expires_at': c.expires_at.isoformat() if c.expires_at else None,
        'applicable_products': c.applicable_products,
        'applicable_categories': c.applicable_categories,
        'created_at': c.created_at.isoformat() if c.created_at else None,
    }


def _prefetch_coupon(coupon_id: int):
    c = get_db().get(Coupon, coupon_id)
    if not c:
        return {}
    return {
        'status': c.status,
        'value': c.value,
        'expires_at': c.expires_at.isoformat() if c.expires_at else None,
        'usage_limit': c.usage_limit,
    }
