from __future__ import annotations
from flask import Blueprint, request, abort, current_app
from sqlalchemy import select, func, case, update
from shopadmin import get_db
from shopadmin.models.product import Product
from shopadmin.decorators.auth import require_permission
from shopadmin.decorators.audit import audit_log
from shopadmin.utils.listing import apply_pagination, build_list_payload
from shopadmin.utils.filters import apply_filters, search_filter, parse_bool
from shopadmin.utils.validation import parse_int

inv_bp = Blueprint('inventory', __name__)

CRITICAL_STOCK = 5
MEDIUM_STOCK = 20


def stock_level(quantity: int, low_threshold: int = 10) -> str:
    if quantity <= CRITICAL_STOCK:
        return 'critical'
    if quantity <= low_threshold:
        return 'low'
    if quantity <= MEDIUM_STOCK:
        return 'medium'
    return 'high'


@inv_bp.get('')
@require_permission('INVENTORY', 'READ')
def list_inventory():
    session = get_db()
    low = current_app.config['LOW_STOCK_THRESHOLD']
    q = session.query(Product).filter(Product.track_quantity.is_(True))
    filter_specs = {
        'search': {'op': search_filter([Product.name, Product.sku, Product.barcode])},
        'category_id': {'coerce': int, 'op': lambda qu, v: qu.filter(Product.category_id==v)},
        'low_stock': {'coerce': parse_bool, 'op': lambda qu, v: qu.filter(Product.quantity <= low) if v else qu},
    }
    q = apply_filters(q, filter_specs, request.args)
    stats = _stats(q, low)
    q = q.order_by(Product.quantity.asc(), Product.id.asc())
    paged_q, total, page, limit = apply_pagination(q)
    rows = [_inventory_json(p, low) for p in paged_q.all()]
    return build_list_payload(rows, total, page, limit, stats=stats)


@inv_bp.put('/<int:product_id>/adjust')
@require_permission('INVENTORY', 'UPDATE')
@audit_log(
    'INVENTORY.ADJUST',
    entity='Product',
    entity_id_key='id',
    diff_keys=['quantity'],
    pre_fetch=lambda a, kw: _prefetch_stock(kw.get('product_id')),
    meta_builder=lambda data, rv, a, kw: {'reason': data.get('reason')},
)
def adjust_stock(product_id: int):
    session = get_db()
    p = session.get(Product, product_id)
    if not p:
        abort(404)
    data = request.json or {}
    if 'quantity' in data:
        new_qty = parse_int(data['quantity'], 'quantity', minimum=None)
        delta = new_qty - p.quantity
    elif 'delta' in data:
        delta = parse_int(data['delta'], 'delta', minimum=None)
    else:
        abort(400, description='delta or quantity required')
    if p.quantity + delta < 0:
        abort(400, description='stock cannot go negative')
    res = session.execute(
        update(Product)
        .where(Product.id==p.id, Product.quantity + delta >= 0)
        .values(quantity=Product.quantity + delta)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        session.rollback()
        abort(409, description='stock changed concurrently, retry')
    session.commit()
    session.refresh(p)
    current_app.logger.info('stock of product %s adjusted by %+d to %s', p.id, delta, p.quantity)
    body = _inventory_json(p, current_app.config['LOW_STOCK_THRESHOLD'])
    body['delta'] = delta
    body['reason'] = data.get('reason')
    return body


def _stats(q, low: int):
    sub = q.with_entities(Product.quantity.label('qty')).subquery()
    row = get_db().execute(select(
        func.count(),
        func.sum(case((sub.c.qty <= CRITICAL_STOCK, 1), else_=0)),
        func.sum(case((sub.c.qty <= low, 1), else_=0)),
        func.avg(sub.c.qty),
    ).select_from(sub)).one()
    total, critical, low_count, avg = row
    return {
        'total_products': int(total or 0),
        'critical_stock': int(critical or 0),
        'low_stock': int(low_count or 0),
        'average_stock': round(float(avg or 0), 2),
    }


def _inventory_json(p: Product, low: int):
    return {
        'id': p.id,
        'name': p.name,
        'sku': p.sku,
        'barcode': p.barcode,
        'quantity': p.quantity,
        'price': p.price,
        'status': p.status,
        'category_id': p.category_id,
        'stock_level': stock_level(p.quantity, low),
        'stock_value': round((p.price or 0) * p.quantity, 2),
    }


def _prefetch_stock(product_id: int):
    p = get_db().get(Product, product_id)
    if not p:
        return {}
    return {'quantity': p.quantity}
