from flask import Blueprint, request, abort
from sqlalchemy import select, delete
from shopadmin import get_db
from shopadmin.models.authz import Role, Permission, RolePermission
from shopadmin.decorators.auth import require_permission
from shopadmin.decorators.audit import audit_log
from shopadmin.utils.filters import parse_bool
from shopadmin.utils.validation import parse_str

roles_bp = Blueprint('roles', __name__)


@roles_bp.get('/permissions')
@require_permission('ROLES', 'READ')
def list_permissions():
    session = get_db()
    rows = session.execute(select(Permission).order_by(Permission.resource.asc(), Permission.id.asc())).scalars().all()
    return {'data': [_permission_json(p) for p in rows]}


@roles_bp.get('/roles')
@require_permission('ROLES', 'READ')
def list_roles():
    session = get_db()
    q = select(Role)
    if not parse_bool(request.args.get('include_inactive')):
        q = q.where(Role.is_active.is_(True))
    rows = session.execute(q.order_by(Role.id.asc())).scalars().all()
    return {'data': [_role_json(r) for r in rows]}


@roles_bp.post('/roles')
@require_permission('ROLES', 'CREATE')
@audit_log('ROLE.CREATE', entity='Role', entity_id_key='id', meta_keys=['name', 'permissions'])
def create_role():
    data = request.json or {}
    name = (parse_str(data.get('name'), 'name', allow_none=True) or '').upper()
    display_name = parse_str(data.get('display_name'), 'display_name', allow_none=True) or ''
    if not name or not display_name:
        abort(400, description='name and display_name required')
    session = get_db()
    if session.execute(select(Role).where(Role.name==name)).scalar_one_or_none():
        abort(400, description='role exists')
    permission_ids = set(data.get('permission_ids') or [])
    perms = session.execute(select(Permission).where(Permission.id.in_(permission_ids))).scalars().all() if permission_ids else []
    missing = permission_ids - {p.id for p in perms}
    if missing:
        abort(400, description=f'Unknown permission ids: {sorted(missing)}')
    role = Role(name=name, display_name=display_name, description=data.get('description'), is_system=False, is_active=True)
    role.permissions = [RolePermission(permission_id=p.id) for p in perms]
    session.add(role)
    session.commit()
    return _role_json(role), 201


@roles_bp.put('/roles/<int:role_id>/permissions')
@require_permission('ROLES', 'UPDATE')
@audit_log(
    'ROLE.PERM.REPLACE',
    entity='Role',
    entity_id_key='id',
    meta_builder=lambda data, rv, a, kw: {'count': len(data.get('permissions', []))},
)
def replace_role_permissions(role_id: int):
    session = get_db()
    role = session.get(Role, role_id)
    if not role:
        abort(404)
    data = request.json or {}
    codes = data.get('permissions') or []
    perms = session.execute(select(Permission).where(Permission.code.in_(codes))).scalars().all()
    missing = set(codes) - {p.code for p in perms}
    if missing:
        abort(400, description=f'Unknown permission codes: {sorted(missing)}')
    session.execute(delete(RolePermission).where(RolePermission.role_id==role.id))
    for p in perms:
        session.add(RolePermission(role_id=role.id, permission_id=p.id))
    session.commit()
    return {'id': role.id, 'permissions': sorted(p.code for p in perms)}


def _permission_json(p: Permission):
    return {'id': p.id, 'code': p.code, 'resource': p.resource, 'action': p.action, 'description': p.description}


def _role_json(r: Role):
    return {
        'id': r.id,
        'name': r.name,
        'display_name': r.display_name,
        'description': r.description,
        'is_system': r.is_system,
        'is_active': r.is_active,
        'permissions': [rp.permission.code for rp in r.permissions],
        'users': [{'id': ur.user.id, 'name': ur.user.name, 'email': ur.user.email} for ur in r.user_roles],
    }
