from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select, func
from shopadmin import get_db
from shopadmin.models.catalog import Brand
from shopadmin.models.product import Product
from shopadmin.decorators.auth import require_permission
from shopadmin.decorators.audit import audit_log
from shopadmin.utils.listing import apply_pagination, build_list_payload
from shopadmin.utils.filters import apply_filters, search_filter, parse_bool
from shopadmin.utils.validation import require_fields, parse_str, slugify

brands_bp = Blueprint('brands', __name__)


@brands_bp.get('')
@require_permission('BRANDS', 'READ')
def list_brands():
    session = get_db()
    q = session.query(Brand)
    if not parse_bool(request.args.get('include_inactive', 'false')):
        q = q.filter(Brand.is_active.is_(True))
    q = apply_filters(q, {'search': {'op': search_filter([Brand.name, Brand.description])}}, request.args)
    q = q.order_by(Brand.name.asc(), Brand.id.asc())
    paged_q, total, page, limit = apply_pagination(q)
    rows = paged_q.all()
    counts = _product_counts([b.id for b in rows])
    data = []
    for b in rows:
        body = _brand_json(b)
        body['product_count'] = counts.get(b.id, 0)
        data.append(body)
    return build_list_payload(data, total, page, limit)


@brands_bp.post('')
@require_permission('BRANDS', 'CREATE')
@audit_log('BRAND.CREATE', entity='Brand', entity_id_key='id', meta_keys=['name', 'slug'])
def create_brand():
    session = get_db()
    data = request.json or {}
    require_fields(data, 'name', 'slug')
    slug = slugify(parse_str(data['slug'], 'slug'))
    if not slug:
        abort(400, description='slug invalid')
    if session.execute(select(Brand).where(Brand.slug==slug)).scalar_one_or_none():
        abort(400, description='slug exists')
    b = Brand(
        name=parse_str(data['name'], 'name'),
        slug=slug,
        description=data.get('description'),
        logo=data.get('logo'),
        website=data.get('website'),
        is_active=parse_bool(data.get('is_active', True)),
    )
    session.add(b)
    session.commit()
    return _brand_json(b), 201


@brands_bp.get('/<int:brand_id>')
@require_permission('BRANDS', 'READ')
def get_brand(brand_id: int):
    b = _get_or_404(brand_id)
    body = _brand_json(b)
    body['product_count'] = _product_counts([b.id]).get(b.id, 0)
    return body


@brands_bp.put('/<int:brand_id>')
@require_permission('BRANDS', 'UPDATE')
@audit_log(
    'BRAND.UPDATE',
    entity='Brand',
    entity_id_key='id',
    diff_keys=['name', 'slug', 'is_active'],
    pre_fetch=lambda a, kw: _prefetch_brand(kw.get('brand_id')),
)
def update_brand(brand_id: int):
    session = get_db()
    b = _get_or_404(brand_id)
    data = request.json or {}
    if 'name' in data:
        name = parse_str(data['name'], 'name', allow_none=True) or ''
        if not name:
            abort(400, description='name cannot be empty')
        if session.execute(select(Brand).where(func.lower(Brand.name)==name.lower(), Brand.id!=b.id)).first():
            abort(400, description='name exists')
        b.name = name
    if 'slug' in data:
        slug = slugify(parse_str(data['slug'], 'slug', allow_none=True) or '')
        if not slug:
            abort(400, description='slug invalid')
        if session.execute(select(Brand).where(Brand.slug==slug, Brand.id!=b.id)).first():
            abort(400, description='slug exists')
        b.slug = slug
    for field in ('description', 'logo', 'website'):
        if field in data:
            setattr(b, field, data[field])
    if 'is_active' in data:
        b.is_active = parse_bool(data['is_active'])
    session.commit()
    return _brand_json(b)


@brands_bp.delete('/<int:brand_id>')
@require_permission('BRANDS', 'DELETE')
@audit_log('BRAND.DELETE', entity='Brand', entity_id_arg='brand_id')
def delete_brand(brand_id: int):
    session = get_db()
    b = _get_or_404(brand_id)
    if _product_counts([b.id]).get(b.id):
        abort(400, description='Cannot delete brand that still has products')
    session.delete(b)
    session.commit()
    return {'status': 'deleted'}


def _get_or_404(brand_id: int) -> Brand:
    b = get_db().get(Brand, brand_id)
    if not b:
        abort(404)
    return b


def _product_counts(ids):
    if not ids:
        return {}
    return dict(get_db().execute(
        select(Product.brand_id, func.count(Product.id)).where(Product.brand_id.in_(ids)).group_by(Product.brand_id)
    ).all())


def _brand_json(b: Brand):
    return {
        'id': b.id,
        'name': b.name,
        'slug': b.slug,
        'description': b.description,
        'logo': b.logo,
        'website': b.website,
        'is_active': b.is_active,
        'created_at': b.created_at.isoformat() if b.created_at else None,
    }


def _prefetch_brand(brand_id: int):
    b = get_db().get(Brand, brand_id)
    if not b:
        return {}
    return {'name': b.name, 'slug': b.slug, 'is_active': b.is_active}
