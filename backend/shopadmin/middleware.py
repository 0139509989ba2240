"""Session gate for dashboard pages and API routes, plus JWT error callbacks.

/dashboard* without a valid token redirects to /auth/signin?callbackUrl=...,
/api/auth/* is always let through, any other /api/* path without a valid
token gets the 401 JSON envelope. Everything else passes untouched.
"""
from __future__ import annotations
import logging
from urllib.parse import urlencode
from flask import request, redirect
from flask_jwt_extended import verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from shopadmin.constants.permissions import LOGIN_REQUIRED_MESSAGE
from shopadmin.errors import error_payload

logger = logging.getLogger(__name__)

PUBLIC_PREFIXES = ('/static/', '/favicon.ico', '/public/')
SIGNIN_PATH = '/auth/signin'


def signin_redirect():
    return redirect(f"{SIGNIN_PATH}?{urlencode({'callbackUrl': request.url})}")


def unauthorized_response(detail: str = LOGIN_REQUIRED_MESSAGE):
    return error_payload(401, 'Unauthorized', detail), 401


def _has_valid_token() -> bool:
    try:
        return verify_jwt_in_request(optional=True) is not None
    except (JWTExtendedException, PyJWTError) as e:
        logger.info('rejected token on %s: %s', request.path, e)
        return False


def session_gate():
    path = request.path
    if path.startswith(PUBLIC_PREFIXES):
        return None
    if path.startswith('/dashboard'):
        if not _has_valid_token():
            return signin_redirect()
        return None
    if path.startswith('/api/auth'):
        return None
    if path.startswith('/api'):
        if not _has_valid_token():
            return unauthorized_response()
    return None


def register_jwt_callbacks(jwt):
    def _reject(reason: str):
        if request.path.startswith('/dashboard'):
            return signin_redirect()
        logger.info('auth rejected on %s: %s', request.path, reason)
        return unauthorized_response()

    @jwt.unauthorized_loader
    def _missing(reason):
        return _reject(reason)

    @jwt.invalid_token_loader
    def _invalid(reason):
        return _reject(reason)

    @jwt.expired_token_loader
    def _expired(jwt_header, jwt_payload):
        return _reject('token expired')

    @jwt.user_lookup_error_loader
    def _lookup_failed(jwt_header, jwt_payload):
        return _reject('user lookup failed')


def init_app(app):
    app.before_request(session_gate)
