from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select, func
from shopadmin import get_db
from shopadmin.models.catalog import Category
from shopadmin.models.product import Product
from shopadmin.decorators.auth import require_permission
from shopadmin.decorators.audit import audit_log
from shopadmin.utils.listing import apply_pagination, build_list_payload
from shopadmin.utils.filters import apply_filters, search_filter, parse_bool
from shopadmin.utils.validation import require_fields, parse_int, parse_str, slugify

categories_bp = Blueprint('categories', __name__)


def _parent_filter(query, value):
    if str(value).lower() == 'null':
        return query.filter(Category.parent_id.is_(None))
    try:
        parent_id = int(value)
    except ValueError:
        abort(400, description='parent_id invalid')
    return query.filter(Category.parent_id==parent_id)


@categories_bp.get('')
@require_permission('CATEGORIES', 'READ')
def list_categories():
    session = get_db()
    q = session.query(Category)
    if not parse_bool(request.args.get('include_inactive', 'false')):
        q = q.filter(Category.is_active.is_(True))
    filter_specs = {
        'parent_id': {'op': _parent_filter},
        'search': {'op': search_filter([Category.name, Category.description])},
    }
    q = apply_filters(q, filter_specs, request.args)
    q = q.order_by(Category.name.asc(), Category.id.asc())
    paged_q, total, page, limit = apply_pagination(q)
    rows = paged_q.all()
    product_counts, children_counts = _counts([c.id for c in rows])
    data = []
    for c in rows:
        body = _category_json(c)
        body['product_count'] = product_counts.get(c.id, 0)
        body['children_count'] = children_counts.get(c.id, 0)
        data.append(body)
    return build_list_payload(data, total, page, limit)


@categories_bp.post('')
@require_permission('CATEGORIES', 'CREATE')
@audit_log('CATEGORY.CREATE', entity='Category', entity_id_key='id', meta_keys=['name', 'slug'])
def create_category():
    session = get_db()
    data = request.json or {}
    require_fields(data, 'name', 'slug')
    slug = slugify(parse_str(data['slug'], 'slug'))
    if not slug:
        abort(400, description='slug invalid')
    if session.execute(select(Category).where(Category.slug==slug)).scalar_one_or_none():
        abort(400, description='slug exists')
    c = Category(
        name=parse_str(data['name'], 'name'),
        slug=slug,
        description=data.get('description'),
        image=data.get('image'),
        parent_id=_parent_id(data.get('parent_id')),
        is_active=parse_bool(data.get('is_active', True)),
    )
    session.add(c)
    session.commit()
    return _category_json(c), 201


@categories_bp.get('/<int:category_id>')
@require_permission('CATEGORIES', 'READ')
def get_category(category_id: int):
    session = get_db()
    c = _get_or_404(category_id)
    body = _category_json(c)
    body['parent'] = {'id': c.parent.id, 'name': c.parent.name, 'slug': c.parent.slug} if c.parent else None
    body['children'] = [
        {'id': ch.id, 'name': ch.name, 'slug': ch.slug, 'is_active': ch.is_active}
        for ch in sorted(c.children, key=lambda ch: ch.name)
    ]
    products = session.execute(
        select(Product).where(Product.category_id==c.id).order_by(Product.created_at.desc(), Product.id.desc()).limit(10)
    ).scalars().all()
    body['products'] = [{'id': p.id, 'name': p.name, 'sku': p.sku, 'price': p.price, 'status': p.status} for p in products]
    product_counts, _ = _counts([c.id])
    body['product_count'] = product_counts.get(c.id, 0)
    return body


@categories_bp.put('/<int:category_id>')
@require_permission('CATEGORIES', 'UPDATE')
@audit_log(
    'CATEGORY.UPDATE',
    entity='Category',
    entity_id_key='id',
    diff_keys=['name', 'slug', 'parent_id', 'is_active'],
    pre_fetch=lambda a, kw: _prefetch_category(kw.get('category_id')),
)
def update_category(category_id: int):
    session = get_db()
    c = _get_or_404(category_id)
    data = request.json or {}
    require_fields(data, 'name', 'slug')
    slug = slugify(parse_str(data['slug'], 'slug'))
    if not slug:
        abort(400, description='slug invalid')
    if session.execute(select(Category).where(Category.slug==slug, Category.id!=c.id)).scalar_one_or_none():
        abort(400, description='slug exists')
    c.name = parse_str(data['name'], 'name')
    c.slug = slug
    if 'description' in data:
        c.description = data['description']
    if 'image' in data:
        c.image = data['image']
    if 'parent_id' in data:
        parent_id = _parent_id(data['parent_id'])
        if parent_id is not None and _creates_cycle(c.id, parent_id):
            abort(400, description='category cannot be its own ancestor')
        c.parent_id = parent_id
    if 'is_active' in data:
        c.is_active = parse_bool(data['is_active'])
    session.commit()
    return _category_json(c)


@categories_bp.delete('/<int:category_id>')
@require_permission('CATEGORIES', 'DELETE')
@audit_log('CATEGORY.DELETE', entity='Category', entity_id_arg='category_id')
def delete_category(category_id: int):
    session = get_db()
    c = _get_or_404(category_id)
    product_counts, children_counts = _counts([c.id])
    if product_counts.get(c.id):
        abort(400, description='Cannot delete category that still has products')
    if children_counts.get(c.id):
        abort(400, description='Cannot delete category that still has subcategories')
    session.delete(c)
    session.commit()
    return {'status': 'deleted'}


def _get_or_404(category_id: int) -> Category:
    c = get_db().get(Category, category_id)
    if not c:
        abort(404)
    return c


def _parent_id(raw):
    if raw in (None, ''):
        return None
    parent_id = parse_int(raw, 'parent_id', minimum=1)
    if not get_db().get(Category, parent_id):
        abort(400, description='parent_id not found')
    return parent_id


def _creates_cycle(category_id: int, parent_id: int) -> bool:
    session = get_db()
    seen = set()
    current = parent_id
    while current is not None and current not in seen:
        if current == category_id:
            return True
        seen.add(current)
        current = session.execute(select(Category.parent_id).where(Category.id==current)).scalar_one_or_none()
    return False


def _counts(ids):
    if not ids:
        return {}, {}
    session = get_db()
    product_counts = dict(session.execute(
        select(Product.category_id, func.count(Product.id)).where(Product.category_id.in_(ids)).group_by(Product.category_id)
    ).all())
    children_counts = dict(session.execute(
        select(Category.parent_id, func.count(Category.id)).where(Category.parent_id.in_(ids)).group_by(Category.parent_id)
    ).all())
    return product_counts, children_counts


def _category_json(c: Category):
    return {
        'id': c.id,
        'name': c.name,
        'slug': c.slug,
        'description': c.description,
        'image': c.image,
        'parent_id': c.parent_id,
        'is_active': c.is_active,
        'created_at': c.created_at.isoformat() if c.created_at else None,
    }


def _prefetch_category(category_id: int):
    c = get_db().get(Category, category_id)
    if not c:
        return {}
    return {'name': c.name, 'slug': c.slug, 'parent_id': c.parent_id, 'is_active': c.is_active}
