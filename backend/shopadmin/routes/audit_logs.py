from flask import Blueprint, request
from shopadmin import get_db
from shopadmin.models.audit import AuditLog
from shopadmin.decorators.auth import require_permission
from shopadmin.utils.listing import apply_pagination, build_list_payload
from shopadmin.utils.filters import apply_filters, date_range_specs

audit_bp = Blueprint('audit_logs', __name__)


@audit_bp.get('')
@require_permission('AUDIT_LOGS', 'READ')
def list_audit_logs():
    session = get_db()
    q = session.query(AuditLog)
    filter_specs = {
        'actor_user_id': {'coerce': int, 'op': lambda qu, v: qu.filter(AuditLog.actor_user_id==v)},
        'action': {'coerce': str.upper, 'op': lambda qu, v: qu.filter(AuditLog.action==v)},
        'entity': {'op': lambda qu, v: qu.filter(AuditLog.entity==v)},
        'entity_id': {'op': lambda qu, v: qu.filter(AuditLog.entity_id==v)},
    }
    filter_specs.update(date_range_specs(AuditLog.created_at))
    q = apply_filters(q, filter_specs, request.args)
    q = q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    paged_q, total, page, limit = apply_pagination(q)
    rows = [
        {
            'id': a.id,
            'actor_user_id': a.actor_user_id,
            'action': a.action,
            'entity': a.entity,
            'entity_id': a.entity_id,
            'role_snapshot': a.role_snapshot,
            'meta': a.meta or {},
            'created_at': a.created_at.isoformat() if a.created_at else None,
        }
        for a in paged_q.all()
    ]
    return build_list_payload(rows, total, page, limit)
