from flask import Blueprint, request, abort, jsonify, current_app
from flask_jwt_extended import (
    create_access_token, jwt_required, get_jwt_identity, set_access_cookies, unset_jwt_cookies,
)
from sqlalchemy import select
from shopadmin import get_db
from shopadmin.models.authz import User, utcnow
from shopadmin.constants.permissions import ROLE_DISPLAY_NAMES
from shopadmin.services.policy import effective_permissions, get_available_roles
from shopadmin.utils.validation import parse_str

auth_bp = Blueprint('auth', __name__)


def user_claims(user: User):
    return {
        'role': user.role,
        'email': user.email,
        'name': user.name,
    }


@auth_bp.post('/login')
def login():
    data = request.json or {}
    email = (parse_str(data.get('email'), 'email', allow_none=True) or '').lower()
    password = parse_str(data.get('password'), 'password', allow_none=True, strip=False)
    if not email or not password:
        abort(400, description='email & password required')
    session = get_db()
    user = session.execute(select(User).where(User.email==email)).scalar_one_or_none()
    if not user or not user.verify_password(password):
        current_app.logger.info('failed login for %s', email)
        abort(401, description='invalid credentials')
    if user.status != User.STATUS_ACTIVE:
        current_app.logger.info('login refused for %s user %s', user.status, email)
        abort(401, description='account is not active')
    user.last_login_at = utcnow()
    session.commit()
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    token = create_access_token(identity=str(user.id), additional_claims=user_claims(user))
    current_app.logger.info('user %s logged in as %s', user.id, user.role)
    resp = jsonify({'access_token': token, 'user': _profile(user)})
    set_access_cookies(resp, token)
    return resp


@auth_bp.post('/logout')
def logout():
    resp = jsonify({'status': 'logged_out'})
    unset_jwt_cookies(resp)
    return resp


@auth_bp.get('/me')
@jwt_required()
def me():
    # Identity stored as string, cast back to int for DB lookup
    user_id = int(get_jwt_identity())
    session = get_db()
    user = session.execute(select(User).where(User.id==user_id)).scalar_one_or_none()
    if not user:
        abort(404)
    body = _profile(user)
    body['permissions'] = effective_permissions(user.role)
    body['assignable_roles'] = get_available_roles(user.role)
    return body


def _profile(user: User):
    return {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'role': user.role,
        'role_display_name': ROLE_DISPLAY_NAMES.get(user.role, user.role),
        'status': user.status,
    }
