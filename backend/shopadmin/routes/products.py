from __future__ import annotations
import time
from flask import Blueprint, request, abort
from sqlalchemy import select, func
from shopadmin import get_db
from shopadmin.models.product import Product
from shopadmin.models.catalog import Category, Brand
from shopadmin.models.order import OrderItem
from shopadmin.decorators.auth import require_permission
from shopadmin.decorators.audit import audit_log
from shopadmin.utils.listing import apply_pagination, build_list_payload
from shopadmin.utils.filters import apply_filters, search_filter, date_range_specs, parse_bool
from shopadmin.utils.sorting import apply_multi_sort
from shopadmin.utils.validation import validate_status, require_fields, parse_number, parse_int, parse_str, slugify

products_bp = Blueprint('products', __name__)

SORTABLE = {
    'name': Product.name,
    'sku': Product.sku,
    'price': Product.price,
    'quantity': Product.quantity,
    'status': Product.status,
    'created_at': Product.created_at,
}


@products_bp.get('')
@require_permission('PRODUCTS', 'READ')
def list_products():
    session = get_db()
    q = session.query(Product)
    filter_specs = {
        'search': {'op': search_filter([Product.name, Product.description, Product.sku])},
        'status': {'op': lambda qu, v: qu.filter(Product.status==v), 'validate': lambda v: v in Product.ALL_STATUSES},
        'category_id': {'coerce': int, 'op': lambda qu, v: qu.filter(Product.category_id==v)},
        'brand_id': {'coerce': int, 'op': lambda qu, v: qu.filter(Product.brand_id==v)},
    }
    filter_specs.update(date_range_specs(Product.created_at))
    q = apply_filters(q, filter_specs, request.args)
    q = apply_multi_sort(q, request.args.get('sort'), SORTABLE, Product.id, default=Product.created_at.desc())
    paged_q, total, page, limit = apply_pagination(q)
    rows = [_product_json(p) for p in paged_q.all()]
    return build_list_payload(rows, total, page, limit)


@products_bp.post('')
@require_permission('PRODUCTS', 'CREATE')
@audit_log('PRODUCT.CREATE', entity='Product', entity_id_key='id', meta_keys=['name', 'sku', 'price'])
def create_product():
    session = get_db()
    data = request.json or {}
    require_fields(data, 'name', 'sku', 'price')
    sku = str(data['sku']).strip()
    if session.execute(select(Product).where(Product.sku==sku)).scalar_one_or_none():
        abort(400, description='sku exists')
    name = parse_str(data['name'], 'name')
    status = validate_status(data.get('status') or Product.STATUS_DRAFT, Product.ALL_STATUSES)
    p = Product(
        name=name,
        slug=_unique_slug(name),
        description=data.get('description'),
        sku=sku,
        barcode=data.get('barcode') or None,
        price=parse_number(data['price'], 'price'),
        cost_price=parse_number(data.get('cost_price'), 'cost_price', allow_none=True),
        compare_price=parse_number(data.get('compare_price'), 'compare_price', allow_none=True),
        quantity=parse_int(data.get('quantity', 0), 'quantity'),
        track_quantity=parse_bool(data.get('track_quantity', True)),
        status=status,
        category_id=_existing_id(Category, data.get('category_id'), 'category_id'),
        brand_id=_existing_id(Brand, data.get('brand_id'), 'brand_id'),
    )
    session.add(p)
    session.commit()
    return _product_json(p), 201


@products_bp.get('/<int:product_id>')
@require_permission('PRODUCTS', 'READ')
def get_product(product_id: int):
    p = _get_or_404(product_id)
    body = _product_json(p)
    body['category'] = {'id': p.category.id, 'name': p.category.name} if p.category else None
    body['brand'] = {'id': p.brand.id, 'name': p.brand.name} if p.brand else None
    return body


@products_bp.put('/<int:product_id>')
@require_permission('PRODUCTS', 'UPDATE')
@audit_log(
    'PRODUCT.UPDATE',
    entity='Product',
    entity_id_key='id',
    diff_keys=['name', 'sku', 'price', 'quantity', 'status'],
    pre_fetch=lambda a, kw: _prefetch_product(kw.get('product_id')),
)
def update_product(product_id: int):
    session = get_db()
    p = _get_or_404(product_id)
    data = request.json or {}
    if 'name' in data:
        name = parse_str(data['name'], 'name')
        if not name:
            abort(400, description='name cannot be empty')
        p.name = name
    if 'sku' in data:
        sku = str(data['sku'] or '').strip()
        if not sku:
            abort(400, description='sku cannot be empty')
        if sku != p.sku and session.execute(select(Product).where(Product.sku==sku, Product.id!=p.id)).scalar_one_or_none():
            abort(400, description='sku exists')
        p.sku = sku
    if 'price' in data:
        p.price = parse_number(data['price'], 'price')
    for field in ('cost_price', 'compare_price'):
        if field in data:
            setattr(p, field, parse_number(data[field], field, allow_none=True))
    if 'quantity' in data:
        p.quantity = parse_int(data['quantity'], 'quantity')
    if 'status' in data:
        p.status = validate_status(data['status'], Product.ALL_STATUSES)
    if 'track_quantity' in data:
        p.track_quantity = parse_bool(data['track_quantity'])
    for field in ('description', 'barcode'):
        if field in data:
            setattr(p, field, data[field] or None)
    if 'category_id' in data:
        p.category_id = _existing_id(Category, data['category_id'], 'category_id')
    if 'brand_id' in data:
        p.brand_id = _existing_id(Brand, data['brand_id'], 'brand_id')
    session.commit()
    return _product_json(p)


@products_bp.delete('/<int:product_id>')
@require_permission('PRODUCTS', 'DELETE')
@audit_log('PRODUCT.DELETE', entity='Product', entity_id_arg='product_id')
def delete_product(product_id: int):
    session = get_db()
    p = _get_or_404(product_id)
    in_orders = session.execute(select(func.count(OrderItem.id)).where(OrderItem.product_id==p.id)).scalar_one()
    if in_orders:
        abort(400, description='Cannot delete product that appears in orders')
    session.delete(p)
    session.commit()
    return {'status': 'deleted'}


def _get_or_404(product_id: int) -> Product:
    p = get_db().execute(select(Product).where(Product.id==product_id)).scalar_one_or_none()
    if not p:
        abort(404)
    return p


def _existing_id(model, raw, field: str):
    if raw in (None, ''):
        return None
    ref_id = parse_int(raw, field, minimum=1)
    if not get_db().get(model, ref_id):
        abort(400, description=f'{field} not found')
    return ref_id


def _unique_slug(name: str) -> str:
    base = f"{slugify(name) or 'product'}-{int(time.time() * 1000)}"
    slug, n = base, 1
    while get_db().execute(select(Product.id).where(Product.slug==slug)).first():
        n += 1
        slug = f"{base}-{n}"
    return slug


def _product_json(p: Product):
    return {
        'id': p.id,
        'name': p.name,
        'slug': p.slug,
        'description': p.description,
        'sku': p.sku,
        'barcode': p.barcode,
        'price': p.price,
        'cost_price': p.cost_price,
        'compare_price': p.compare_price,
        'quantity': p.quantity,
        'track_quantity': p.track_quantity,
        'status': p.status,
        'category_id': p.category_id,
        'brand_id': p.brand_id,
        'created_at': p.created_at.isoformat() if p.created_at else None,
        'updated_at': p.updated_at.isoformat() if p.updated_at else None,
    }


def _prefetch_product(product_id: int):
    p = get_db().get(Product, product_id)
    if not p:
        return {}
    return {'name': p.name, 'sku': p.sku, 'price': p.price, 'quantity': p.quantity, 'status': p.status}
