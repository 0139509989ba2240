from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple
from flask import abort
from flask_jwt_extended import get_jwt
from sqlalchemy import select, func
from shopadmin.models.authz import User, Role, UserRole
from shopadmin.constants.permissions import (
    ROLE_HIERARCHY, ROLE_PERMISSIONS, ROLES, SUPER_ADMIN, ADMIN,
    PERMISSION_DENIED_MESSAGES, DEFAULT_DENIED_TEMPLATE, LOGIN_REQUIRED_MESSAGE,
    SUPER_ADMIN_ONLY_MESSAGE, PAGE_PERMISSIONS, FEATURE_ACCESS, ALL_PERMISSION_CODES,
)
from shopadmin import get_db


@dataclass
class PermissionCheck:
    success: bool
    message: Optional[str] = None
    user_role: Optional[str] = None


def has_permission(role: Optional[str], resource: str, action: str) -> bool:
    if role == SUPER_ADMIN:
        return True
    perms = ROLE_PERMISSIONS.get(role or '', [])
    if f"{resource}:{action}" in perms:
        return True
    if f"{resource}:*" in perms:
        return True
    return '*:*' in perms


def has_any_permission(role: Optional[str], permissions: Iterable[Tuple[str, str]]) -> bool:
    return any(has_permission(role, res, act) for res, act in permissions)


def has_all_permissions(role: Optional[str], permissions: Iterable[Tuple[str, str]]) -> bool:
    return all(has_permission(role, res, act) for res, act in permissions)


def get_permission_denied_message(resource: str, action: str) -> str:
    msg = PERMISSION_DENIED_MESSAGES.get(resource, {}).get(action)
    if msg:
        return msg
    return DEFAULT_DENIED_TEMPLATE.format(action=action, resource=resource)


def has_role_at_least(role: Optional[str], required_role: str) -> bool:
    """Hierarchy comparison kept for callers that reason in tiers, not permissions."""
    return ROLE_HIERARCHY.get(role or '', 0) >= ROLE_HIERARCHY[required_role]


def can_access_page(role: Optional[str], pathname: str) -> bool:
    required = PAGE_PERMISSIONS.get(pathname.rstrip('/') or '/')
    if not required:
        return True
    return has_permission(role, *required)


def can_access(role: Optional[str], feature: str) -> bool:
    if role == SUPER_ADMIN:
        return True
    allowed = FEATURE_ACCESS.get(feature)
    if not allowed:
        return False
    return role in allowed


def get_available_roles(role: Optional[str]) -> List[str]:
    level = ROLE_HIERARCHY.get(role or '', 0)
    return [r for r in ROLES if ROLE_HIERARCHY[r] <= level]


def can_manage_user_role(current_role: Optional[str]) -> PermissionCheck:
    if current_role != SUPER_ADMIN:
        return PermissionCheck(False, SUPER_ADMIN_ONLY_MESSAGE, current_role)
    return PermissionCheck(True, user_role=current_role)


def effective_permissions(role: Optional[str]) -> List[str]:
    """Expand a role's wildcard entries into concrete RESOURCE:ACTION codes."""
    return [code for code in ALL_PERMISSION_CODES if has_permission(role, *code.split(':', 1))]


def is_admin(role: Optional[str]) -> bool:
    return role in (ADMIN, SUPER_ADMIN)


# --- request bound helpers (need a verified JWT in context) ---

def current_role() -> Optional[str]:
    try:
        claims = get_jwt()
    except RuntimeError:
        return None
    return claims.get('role')


def check_permission(resource: str, action: str) -> PermissionCheck:
    role = current_role()
    if not role:
        return PermissionCheck(False, LOGIN_REQUIRED_MESSAGE)
    if not has_permission(role, resource, action):
        return PermissionCheck(False, get_permission_denied_message(resource, action), role)
    return PermissionCheck(True, user_role=role)


def require_super_admin() -> PermissionCheck:
    role = current_role()
    if not role:
        return PermissionCheck(False, LOGIN_REQUIRED_MESSAGE)
    return can_manage_user_role(role)


def count_active_super_admins(session=None) -> int:
    session = session or get_db()
    return session.execute(
        select(func.count(User.id)).where(User.role == SUPER_ADMIN, User.status == User.STATUS_ACTIVE)
    ).scalar_one()


def assert_not_removing_last_super_admin(target: User, new_role: Optional[str] = None, new_status: Optional[str] = None, deleting: bool = False):
    """Abort 400 when the change leaves no active SUPER_ADMIN behind."""
    if target.role != SUPER_ADMIN or target.status != User.STATUS_ACTIVE:
        return
    stays = not deleting
    if new_role is not None and new_role != SUPER_ADMIN:
        stays = False
    if new_status is not None and new_status != User.STATUS_ACTIVE:
        stays = False
    if stays:
        return
    if count_active_super_admins() <= 1:
        abort(400, description='Cannot remove the last active SUPER_ADMIN')


def sync_system_role(session, user: User):
    """Point the user's role assignment at the Role row matching user.role."""
    role = session.execute(select(Role).where(Role.name == user.role)).scalar_one_or_none()
    user.user_roles[:] = [ur for ur in user.user_roles if role is not None and ur.role_id == role.id]
    if role is not None and not user.user_roles:
        user.user_roles.append(UserRole(role_id=role.id))
