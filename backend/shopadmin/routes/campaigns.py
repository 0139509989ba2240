from __future__ import annotations
from flask import Blueprint, request, abort
from shopadmin import get_db
from shopadmin.models.marketing import Campaign
from shopadmin.decorators.auth import require_permission
from shopadmin.decorators.audit import audit_log
from shopadmin.utils.listing import apply_pagination, build_list_payload
from shopadmin.utils.filters import apply_filters, search_filter, parse_date
from shopadmin.utils.sorting import apply_multi_sort, sort_params_to_expr
from shopadmin.utils.validation import validate_status, require_fields, parse_number, parse_int, parse_str

campaigns_bp = Blueprint('campaigns', __name__)

SORTABLE = {
    'name': Campaign.name,
    'start_date': Campaign.start_date,
    'end_date': Campaign.end_date,
    'budget': Campaign.budget,
    'revenue': Campaign.revenue,
    'created_at': Campaign.created_at,
}

COUNTERS = ('impressions', 'clicks', 'conversions')


@campaigns_bp.get('')
@require_permission('CAMPAIGNS', 'READ')
def list_campaigns():
    session = get_db()
    q = session.query(Campaign)
    filter_specs = {
        'search': {'op': search_filter([Campaign.name, Campaign.description])},
        'status': {'op': lambda qu, v: qu.filter(Campaign.status==v), 'validate': lambda v: v in Campaign.ALL_STATUSES},
        'type': {'op': lambda qu, v: qu.filter(Campaign.type==v), 'validate': lambda v: v in Campaign.ALL_TYPES},
    }
    q = apply_filters(q, filter_specs, request.args)
    sort_expr = request.args.get('sort') or sort_params_to_expr(request.args.get('sort_by'), request.args.get('sort_order'))
    q = apply_multi_sort(q, sort_expr, SORTABLE, Campaign.id, default=Campaign.created_at.desc())
    paged_q, total, page, limit = apply_pagination(q)
    rows = [_campaign_json(c) for c in paged_q.all()]
    return build_list_payload(rows, total, page, limit)


@campaigns_bp.post('')
@require_permission('CAMPAIGNS', 'CREATE')
@audit_log('CAMPAIGN.CREATE', entity='Campaign', entity_id_key='id', meta_keys=['name', 'type', 'status'])
def create_campaign():
    session = get_db()
    data = request.json or {}
    require_fields(data, 'name', 'type', 'status', 'start_date', 'end_date', 'budget')
    c = Campaign(spent=0, impressions=0, clicks=0, conversions=0, revenue=0)
    _apply_fields(c, data)
    session.add(c)
    session.commit()
    return _campaign_json(c), 201


@campaigns_bp.get('/<int:campaign_id>')
@require_permission('CAMPAIGNS', 'READ')
def get_campaign(campaign_id: int):
    return _campaign_json(_get_or_404(campaign_id))


@campaigns_bp.put('/<int:campaign_id>')
@require_permission('CAMPAIGNS', 'UPDATE')
@audit_log(
    'CAMPAIGN.UPDATE',
    entity='Campaign',
    entity_id_key='id',
    diff_keys=['status', 'budget', 'spent'],
    pre_fetch=lambda a, kw: _prefetch_campaign(kw.get('campaign_id')),
)
def update_campaign(campaign_id: int):
    session = get_db()
    c = _get_or_404(campaign_id)
    _apply_fields(c, request.json or {})
    session.commit()
    return _campaign_json(c)


@campaigns_bp.delete('/<int:campaign_id>')
@require_permission('CAMPAIGNS', 'DELETE')
@audit_log('CAMPAIGN.DELETE', entity='Campaign', entity_id_arg='campaign_id', meta_keys=['status'])
def delete_campaign(campaign_id: int):
    session = get_db()
    c = _get_or_404(campaign_id)
    if c.status == 'ACTIVE':
        # running campaigns are cancelled, not removed
        c.status = 'CANCELLED'
        session.commit()
        return {'status': 'cancelled'}
    session.delete(c)
    session.commit()
    return {'status': 'deleted'}


def _apply_fields(c: Campaign, data: dict):
    if 'name' in data:
        name = parse_str(data['name'], 'name', allow_none=True)
        if not name:
            abort(400, description='name cannot be empty')
        c.name = name
    if 'description' in data:
        c.description = data['description']
    if 'type' in data:
        c.type = validate_status(data['type'], Campaign.ALL_TYPES, 'type')
    if 'status' in data:
        c.status = validate_status(data['status'], Campaign.ALL_STATUSES)
    for field in ('start_date', 'end_date'):
        if field in data:
            dt = parse_date(str(data[field] or ''))
            if dt is None:
                abort(400, description=f'{field} invalid')
            setattr(c, field, dt)
    if c.start_date and c.end_date and c.start_date >= c.end_date:
        abort(400, description='end_date must be after start_date')
    for field in ('budget', 'spent', 'revenue'):
        if field in data:
            setattr(c, field, parse_number(data[field], field))
    for field in COUNTERS:
        if field in data:
            setattr(c, field, parse_int(data[field], field))
    for field in ('target_audience', 'channels', 'products'):
        if field in data:
            setattr(c, field, data[field])


def _get_or_404(campaign_id: int) -> Campaign:
    c = get_db().get(Campaign, campaign_id)
    if not c:
        abort(404)
    return c


def _campaign_json(c: Campaign):
    body = {
        'id': c.id,
        'name': c.name,
        'description': c.description,
        'type': c.type,
        'status': c.status,
        'start_date': c.start_date.isoformat() if c.start_date else None,
        'end_date': c.end_date.isoformat() if c.end_date else None,
        'budget': c.budget,
        'spent': c.spent,
        'impressions': c.impressions,
        'clicks': c.clicks,
        'conversions': c.conversions,
        'revenue': c.revenue,
        'target_audience': c.target_audience,
        'channels': c.channels,
        'products': c.products,
        'created_at': c.created_at.isoformat() if c.created_at else None,
    }
    body.update(c.metrics())
    return body


def _prefetch_campaign(campaign_id: int):
    c = get_db().get(Campaign, campaign_id)
    if not c:
        return {}
    return {'status': c.status, 'budget': c.budget, 'spent': c.spent}
