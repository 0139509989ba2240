from __future__ import annotations
from flask import Blueprint, request, abort
from flask_jwt_extended import get_jwt_identity
from sqlalchemy import select, or_
from shopadmin import get_db
from shopadmin.models.order import Order
from shopadmin.models.customer import Customer
from shopadmin.decorators.auth import require_permission
from shopadmin.decorators.audit import audit_log
from shopadmin.services.orders import place_order, restock_order
from shopadmin.utils.listing import apply_pagination, build_list_payload
from shopadmin.utils.filters import apply_filters, date_range_specs
from shopadmin.utils.fsm import TransitionValidator
from shopadmin.utils.sorting import apply_multi_sort
from shopadmin.utils.validation import validate_status

orders_bp = Blueprint('orders', __name__)

# Order lifecycle graph:
# PENDING -> CONFIRMED -> PROCESSING -> SHIPPED -> DELIVERED -> COMPLETED
# any state before SHIPPED -> CANCELLED
# DELIVERED -> REFUNDED
ORDER_FSM = TransitionValidator({
    Order.STATUS_PENDING: {Order.STATUS_CONFIRMED, Order.STATUS_PROCESSING, Order.STATUS_CANCELLED},
    Order.STATUS_CONFIRMED: {Order.STATUS_PROCESSING, Order.STATUS_SHIPPED, Order.STATUS_CANCELLED},
    Order.STATUS_PROCESSING: {Order.STATUS_SHIPPED, Order.STATUS_CANCELLED},
    Order.STATUS_SHIPPED: {Order.STATUS_DELIVERED},
    Order.STATUS_DELIVERED: {Order.STATUS_COMPLETED, Order.STATUS_REFUNDED},
    Order.STATUS_COMPLETED: set(),
    Order.STATUS_CANCELLED: set(),
    Order.STATUS_REFUNDED: set(),
})

DELETABLE_STATUSES = (Order.STATUS_PENDING, Order.STATUS_CANCELLED)

SORTABLE = {
    'order_number': Order.order_number,
    'status': Order.status,
    'total_amount': Order.total_amount,
    'created_at': Order.created_at,
}


def _search(query, value):
    term = f'%{value.strip()}%'
    return query.join(Customer, Order.customer_id==Customer.id).filter(or_(
        Order.order_number.ilike(term),
        Customer.first_name.ilike(term),
        Customer.last_name.ilike(term),
        Customer.email.ilike(term),
    ))


@orders_bp.get('')
@require_permission('ORDERS', 'READ')
def list_orders():
    session = get_db()
    q = session.query(Order)
    filter_specs = {
        'search': {'op': _search},
        'status': {'op': lambda qu, v: qu.filter(Order.status==v), 'validate': lambda v: v in Order.ALL_STATUSES},
        'customer_id': {'coerce': int, 'op': lambda qu, v: qu.filter(Order.customer_id==v)},
    }
    filter_specs.update(date_range_specs(Order.created_at))
    q = apply_filters(q, filter_specs, request.args)
    q = apply_multi_sort(q, request.args.get('sort'), SORTABLE, Order.id, default=Order.created_at.desc())
    paged_q, total, page, limit = apply_pagination(q)
    rows = [_order_json(o) for o in paged_q.all()]
    return build_list_payload(rows, total, page, limit)


@orders_bp.post('')
@require_permission('ORDERS', 'CREATE')
@audit_log('ORDER.CREATE', entity='Order', entity_id_key='id', meta_keys=['order_number', 'total_amount'])
def create_order():
    data = request.json or {}
    ident = get_jwt_identity()
    o = place_order(data, int(ident) if ident is not None else None)
    return _order_json(o, with_items=True), 201


@orders_bp.get('/<int:order_id>')
@require_permission('ORDERS', 'READ')
def get_order(order_id: int):
    return _order_json(_get_or_404(order_id), with_items=True)


@orders_bp.put('/<int:order_id>')
@require_permission('ORDERS', 'UPDATE')
@audit_log(
    'ORDER.UPDATE',
    entity='Order',
    entity_id_key='id',
    diff_keys=['status', 'notes', 'tracking_number'],
    pre_fetch=lambda a, kw: _prefetch_order(kw.get('order_id')),
)
def update_order(order_id: int):
    session = get_db()
    o = _get_or_404(order_id)
    if o.status in Order.FINAL_STATUSES:
        abort(400, description=f'Cannot modify an order that is {o.status}')
    data = request.json or {}
    if 'status' in data:
        target = validate_status(data['status'], Order.ALL_STATUSES)
        ORDER_FSM.assert_can_transition(o.status, target)
        if target == Order.STATUS_CANCELLED and o.status != Order.STATUS_CANCELLED:
            restock_order(session, o)
        o.status = target
    if 'notes' in data:
        o.notes = data['notes']
    if 'tracking_number' in data:
        o.tracking_number = data['tracking_number'] or None
    if 'shipping_address' in data:
        o.shipping_address = data['shipping_address']
    session.commit()
    return _order_json(o, with_items=True)


@orders_bp.delete('/<int:order_id>')
@require_permission('ORDERS', 'DELETE')
@audit_log('ORDER.DELETE', entity='Order', entity_id_arg='order_id')
def delete_order(order_id: int):
    session = get_db()
    o = _get_or_404(order_id)
    if o.status not in DELETABLE_STATUSES:
        abort(400, description='Only PENDING or CANCELLED orders can be deleted')
    if o.status == Order.STATUS_PENDING:
        restock_order(session, o)
    session.delete(o)
    session.commit()
    return {'status': 'deleted'}


def _get_or_404(order_id: int) -> Order:
    o = get_db().get(Order, order_id)
    if not o:
        abort(404)
    return o


def _order_json(o: Order, with_items: bool = False):
    body = {
        'id': o.id,
        'order_number': o.order_number,
        'customer_id': o.customer_id,
        'customer_name': o.customer.full_name if o.customer else None,
        'customer_email': o.customer_email,
        'status': o.status,
        'subtotal': o.subtotal,
        'discount_amount': o.discount_amount,
        'tax_amount': o.tax_amount,
        'shipping_amount': o.shipping_amount,
        'total_amount': o.total_amount,
        'coupon_id': o.coupon_id,
        'notes': o.notes,
        'tracking_number': o.tracking_number,
        'shipping_address': o.shipping_address,
        'created_by_id': o.created_by_id,
        'item_count': len(o.items),
        'created_at': o.created_at.isoformat() if o.created_at else None,
        'updated_at': o.updated_at.isoformat() if o.updated_at else None,
    }
    if with_items:
        body['items'] = [
            {
                'id': i.id,
                'product_id': i.product_id,
                'product_name': i.product_name,
                'product_sku': i.product_sku,
                'quantity': i.quantity,
                'price': i.price,
                'total_amount': i.total_amount,
            }
            for i in o.items
        ]
    return body


def _prefetch_order(order_id: int):
    o = get_db().get(Order, order_id)
    if not o:
        return {}
    return {'status': o.status, 'notes': o.notes, 'tracking_number': o.tracking_number}
