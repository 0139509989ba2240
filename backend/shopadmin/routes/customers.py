from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select, func
from shopadmin import get_db
from shopadmin.models.customer import Customer
from shopadmin.models.order import Order
from shopadmin.decorators.auth import require_permission
from shopadmin.decorators.audit import audit_log
from shopadmin.utils.listing import apply_pagination, build_list_payload
from shopadmin.utils.filters import apply_filters, search_filter, date_range_specs
from shopadmin.utils.sorting import apply_multi_sort
from shopadmin.utils.validation import validate_status, require_fields, is_valid_email, parse_str

customers_bp = Blueprint('customers', __name__)

# Orders in these states don't count toward spend
EXCLUDED_FROM_SPEND = (Order.STATUS_CANCELLED, Order.STATUS_REFUNDED)

SORTABLE = {
    'first_name': Customer.first_name,
    'last_name': Customer.last_name,
    'email': Customer.email,
    'created_at': Customer.created_at,
}


@customers_bp.get('')
@require_permission('CUSTOMERS', 'READ')
def list_customers():
    session = get_db()
    q = session.query(Customer)
    filter_specs = {
        'search': {'op': search_filter([Customer.first_name, Customer.last_name, Customer.email, Customer.phone])},
        'status': {'op': lambda qu, v: qu.filter(Customer.status==v), 'validate': lambda v: v in Customer.ALL_STATUSES},
        'segment': {'op': lambda qu, v: qu.filter(Customer.segment==v), 'validate': lambda v: v in Customer.ALL_SEGMENTS},
    }
    filter_specs.update(date_range_specs(Customer.created_at))
    q = apply_filters(q, filter_specs, request.args)
    q = apply_multi_sort(q, request.args.get('sort'), SORTABLE, Customer.id, default=Customer.created_at.desc())
    paged_q, total, page, limit = apply_pagination(q)
    rows = paged_q.all()
    stats = order_stats([c.id for c in rows])
    data = []
    for c in rows:
        body = _customer_json(c)
        body.update(stats.get(c.id, _empty_stats()))
        data.append(body)
    return build_list_payload(data, total, page, limit)


@customers_bp.post('')
@require_permission('CUSTOMERS', 'CREATE')
@audit_log('CUSTOMER.CREATE', entity='Customer', entity_id_key='id', meta_keys=['email'])
def create_customer():
    session = get_db()
    data = request.json or {}
    require_fields(data, 'first_name', 'last_name', 'email')
    email = parse_str(data['email'], 'email').lower()
    if not is_valid_email(email):
        abort(400, description='email invalid')
    if session.execute(select(Customer).where(Customer.email==email)).scalar_one_or_none():
        abort(400, description='email exists')
    c = Customer(
        first_name=parse_str(data['first_name'], 'first_name'),
        last_name=parse_str(data['last_name'], 'last_name'),
        email=email,
        phone=data.get('phone'),
        status=validate_status(data.get('status') or Customer.STATUS_ACTIVE, Customer.ALL_STATUSES),
        segment=validate_status(data.get('segment') or 'REGULAR', Customer.ALL_SEGMENTS, 'segment'),
        notes=data.get('notes'),
    )
    session.add(c)
    session.commit()
    return _customer_json(c), 201


@customers_bp.get('/<int:customer_id>')
@require_permission('CUSTOMERS', 'READ')
def get_customer(customer_id: int):
    session = get_db()
    c = _get_or_404(customer_id)
    body = _customer_json(c)
    body.update(order_stats([c.id]).get(c.id, _empty_stats()))
    orders = session.execute(
        select(Order).where(Order.customer_id==c.id).order_by(Order.created_at.desc(), Order.id.desc())
    ).scalars().all()
    body['orders'] = [
        {
            'id': o.id,
            'order_number': o.order_number,
            'status': o.status,
            'total_amount': o.total_amount,
            'created_at': o.created_at.isoformat() if o.created_at else None,
        }
        for o in orders
    ]
    return body


@customers_bp.put('/<int:customer_id>')
@require_permission('CUSTOMERS', 'UPDATE')
@audit_log(
    'CUSTOMER.UPDATE',
    entity='Customer',
    entity_id_key='id',
    diff_keys=['email', 'status', 'segment'],
    pre_fetch=lambda a, kw: _prefetch_customer(kw.get('customer_id')),
)
def update_customer(customer_id: int):
    session = get_db()
    c = _get_or_404(customer_id)
    data = request.json or {}
    for field in ('first_name', 'last_name'):
        if field in data:
            value = parse_str(data[field], field, allow_none=True)
            if not value:
                abort(400, description=f'{field} cannot be empty')
            setattr(c, field, value)
    if 'email' in data:
        email = (parse_str(data['email'], 'email', allow_none=True) or '').lower()
        if not is_valid_email(email):
            abort(400, description='email invalid')
        if session.execute(select(Customer).where(Customer.email==email, Customer.id!=c.id)).first():
            abort(400, description='email exists')
        c.email = email
    if 'status' in data:
        c.status = validate_status(data['status'], Customer.ALL_STATUSES)
    if 'segment' in data:
        c.segment = validate_status(data['segment'], Customer.ALL_SEGMENTS, 'segment')
    for field in ('phone', 'notes'):
        if field in data:
            setattr(c, field, data[field])
    session.commit()
    return _customer_json(c)


@customers_bp.delete('/<int:customer_id>')
@require_permission('CUSTOMERS', 'DELETE')
@audit_log('CUSTOMER.DELETE', entity='Customer', entity_id_arg='customer_id')
def delete_customer(customer_id: int):
    session = get_db()
    c = _get_or_404(customer_id)
    has_orders = session.execute(select(func.count(Order.id)).where(Order.customer_id==c.id)).scalar_one()
    if has_orders:
        abort(400, description='Cannot delete customer with existing orders')
    session.delete(c)
    session.commit()
    return {'status': 'deleted'}


def order_stats(customer_ids):
    """customer id -> {total_spent, total_orders, last_order_date}."""
    if not customer_ids:
        return {}
    rows = get_db().execute(
        select(
            Order.customer_id,
            func.coalesce(func.sum(Order.total_amount), 0),
            func.count(Order.id),
            func.max(Order.created_at),
        )
        .where(Order.customer_id.in_(customer_ids), Order.status.notin_(EXCLUDED_FROM_SPEND))
        .group_by(Order.customer_id)
    ).all()
    out = {}
    for cid, spent, count, last in rows:
        out[cid] = {
            'total_spent': round(float(spent or 0), 2),
            'total_orders': int(count),
            'last_order_date': last.isoformat() if hasattr(last, 'isoformat') else last,
        }
    return out


def _empty_stats():
    return {'total_spent': 0, 'total_orders': 0, 'last_order_date': None}


def _get_or_404(customer_id: int) -> Customer:
    c = get_db().get(Customer, customer_id)
    if not c:
        abort(404)
    return c


def _customer_json(c: Customer):
    return {
        'id': c.id,
        'first_name': c.first_name,
        'last_name': c.last_name,
        'name': c.full_name,
        'email': c.email,
        'phone': c.phone,
        'status': c.status,
        'segment': c.segment,
        'notes': c.notes,
        'created_at': c.created_at.isoformat() if c.created_at else None,
    }


def _prefetch_customer(customer_id: int):
    c = get_db().get(Customer, customer_id)
    if not c:
        return {}
    return {'email': c.email, 'status': c.status, 'segment': c.segment}
