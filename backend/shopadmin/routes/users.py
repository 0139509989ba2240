from __future__ import annotations
from flask import Blueprint, request, abort, current_app
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from sqlalchemy import select, func
from shopadmin import get_db
from shopadmin.models.authz import User
from shopadmin.models.order import Order
from shopadmin.constants.permissions import ROLES, VIEWER, SUPER_ADMIN, ROLE_DISPLAY_NAMES, SUPER_ADMIN_ONLY_MESSAGE
from shopadmin.decorators.auth import require_permission
from shopadmin.decorators.audit import audit_log
from shopadmin.errors import PermissionDenied, NotAuthenticated
from shopadmin.services.policy import (
    check_permission, current_role, can_manage_user_role, assert_not_removing_last_super_admin, sync_system_role,
)
from shopadmin.utils.listing import apply_pagination, build_list_payload
from shopadmin.utils.filters import apply_filters, search_filter
from shopadmin.utils.validation import validate_status, require_fields, is_valid_email, parse_str

users_bp = Blueprint('users', __name__)

MIN_PASSWORD_LENGTH = 6


@users_bp.get('')
@require_permission('USERS', 'READ')
def list_users():
    session = get_db()
    q = session.query(User)
    filter_specs = {
        'search': {'op': search_filter([User.name, User.email])},
        'role': {'op': lambda qu, v: qu.filter(User.role==v), 'validate': lambda v: v in ROLES},
        'status': {'op': lambda qu, v: qu.filter(User.status==v), 'validate': lambda v: v in User.ALL_STATUSES},
    }
    q = apply_filters(q, filter_specs, request.args)
    q = q.order_by(User.created_at.desc(), User.id.desc())
    paged_q, total, page, limit = apply_pagination(q)
    rows = [_user_json(u) for u in paged_q.all()]
    return build_list_payload(rows, total, page, limit)


@users_bp.post('')
@require_permission('USERS', 'CREATE')
@audit_log('USER.CREATE', entity='User', entity_id_key='id', meta_keys=['email', 'role'])
def create_user():
    session = get_db()
    data = request.json or {}
    require_fields(data, 'name', 'email', 'password')
    email = parse_str(data['email'], 'email').lower()
    password = parse_str(data['password'], 'password', strip=False)
    name = parse_str(data['name'], 'name')
    if not is_valid_email(email):
        abort(400, description='email invalid')
    if len(password) < MIN_PASSWORD_LENGTH:
        abort(400, description=f'password must be at least {MIN_PASSWORD_LENGTH} characters')
    role = validate_status(data.get('role') or VIEWER, ROLES, 'role')
    if role != VIEWER:
        _require_role_manager()
    if session.execute(select(User).where(User.email==email)).scalar_one_or_none():
        abort(400, description='email exists')
    u = User(
        name=name,
        email=email,
        password_hash='',
        role=role,
        status=validate_status(data.get('status') or User.STATUS_ACTIVE, User.ALL_STATUSES),
    )
    u.set_password(password)
    session.add(u)
    session.flush()
    sync_system_role(session, u)
    session.commit()
    current_app.logger.info('user %s created with role %s', u.id, u.role)
    return _user_json(u), 201


@users_bp.get('/<int:user_id>')
def get_user(user_id: int):
    _require_self_or(user_id, 'READ')
    return _user_json(_get_or_404(user_id))


@users_bp.put('/<int:user_id>')
@audit_log(
    'USER.UPDATE',
    entity='User',
    entity_id_key='id',
    diff_keys=['name', 'email', 'role', 'status'],
    pre_fetch=lambda a, kw: _prefetch_user(kw.get('user_id')),
)
def update_user(user_id: int):
    is_self = _require_self_or(user_id, 'UPDATE')
    session = get_db()
    u = _get_or_404(user_id)
    role = current_role()
    if u.role == SUPER_ADMIN and role != SUPER_ADMIN:
        raise PermissionDenied(SUPER_ADMIN_ONLY_MESSAGE, 'SUPER_ADMIN', role)
    data = request.json or {}
    privileged = not is_self or check_permission('USERS', 'UPDATE').success
    if 'name' in data:
        name = parse_str(data['name'], 'name')
        if not name:
            abort(400, description='name cannot be empty')
        u.name = name
    if 'email' in data:
        email = (parse_str(data['email'], 'email', allow_none=True) or '').lower()
        if not is_valid_email(email):
            abort(400, description='email invalid')
        if session.execute(select(User).where(User.email==email, User.id!=u.id)).first():
            abort(400, description='email exists')
        u.email = email
    if data.get('password'):
        password = parse_str(data['password'], 'password', strip=False)
        if len(password) < MIN_PASSWORD_LENGTH:
            abort(400, description=f'password must be at least {MIN_PASSWORD_LENGTH} characters')
        u.set_password(password)
    new_role = data.get('role')
    new_status = data.get('status')
    if new_role is not None and new_role != u.role:
        _require_role_manager()
        validate_status(new_role, ROLES, 'role')
    if new_status is not None and new_status != u.status:
        if not privileged:
            raise PermissionDenied('คุณไม่มีสิทธิ์ในการเปลี่ยนสถานะผู้ใช้', 'USERS:UPDATE', role)
        validate_status(new_status, User.ALL_STATUSES)
    assert_not_removing_last_super_admin(u, new_role=new_role, new_status=new_status)
    if new_role is not None and new_role != u.role:
        u.role = new_role
        sync_system_role(session, u)
    if new_status is not None:
        u.status = new_status
    session.commit()
    return _user_json(u)


@users_bp.delete('/<int:user_id>')
@require_permission('USERS', 'DELETE')
@audit_log('USER.DELETE', entity='User', entity_id_arg='user_id')
def delete_user(user_id: int):
    session = get_db()
    u = _get_or_404(user_id)
    if int(get_jwt_identity()) == u.id:
        abort(400, description='Cannot delete your own account')
    role = current_role()
    if u.role == SUPER_ADMIN and role != SUPER_ADMIN:
        raise PermissionDenied(SUPER_ADMIN_ONLY_MESSAGE, 'SUPER_ADMIN', role)
    created_orders = session.execute(select(func.count(Order.id)).where(Order.created_by_id==u.id)).scalar_one()
    if created_orders:
        abort(400, description='Cannot delete a user who created orders; deactivate instead')
    assert_not_removing_last_super_admin(u, deleting=True)
    session.delete(u)
    session.commit()
    return {'status': 'deleted'}


def _require_self_or(user_id: int, action: str) -> bool:
    """Allow the account owner, otherwise require USERS:<action>. Returns True for self access."""
    verify_jwt_in_request()
    ident = get_jwt_identity()
    if ident is None:
        raise NotAuthenticated()
    if int(ident) == user_id:
        return True
    result = check_permission('USERS', action)
    if not result.success:
        raise PermissionDenied(result.message, f'USERS:{action}', result.user_role)
    return False


def _require_role_manager():
    result = can_manage_user_role(current_role())
    if not result.success:
        raise PermissionDenied(result.message, 'USERS:MANAGE_ROLES', result.user_role)


def _get_or_404(user_id: int) -> User:
    u = get_db().get(User, user_id)
    if not u:
        abort(404)
    return u


def _user_json(u: User):
    return {
        'id': u.id,
        'name': u.name,
        'email': u.email,
        'role': u.role,
        'role_display_name': ROLE_DISPLAY_NAMES.get(u.role, u.role),
        'status': u.status,
        'last_login_at': u.last_login_at.isoformat() if u.last_login_at else None,
        'created_at': u.created_at.isoformat() if u.created_at else None,
    }


def _prefetch_user(user_id: int):
    u = get_db().get(User, user_id)
    if not u:
        return {}
    return {'name': u.name, 'email': u.email, 'role': u.role, 'status': u.status}
