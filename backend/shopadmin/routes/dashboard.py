"""Dashboard page gate.

The session gate has already turned away requests without a token, so these
views only decide whether the signed-in role may open a page and which
sidebar entries it sees.
"""
from flask import Blueprint, redirect
from shopadmin.constants.permissions import NAVIGATION, ROLE_DISPLAY_NAMES
from shopadmin.services.policy import current_role, can_access, can_access_page

dashboard_bp = Blueprint('dashboard', __name__)

UNAUTHORIZED_PATH = '/dashboard/unauthorized'

SIGNIN_PAGE = """<!doctype html>
<html lang="th">
<head><meta charset="utf-8"><title>เข้าสู่ระบบ</title></head>
<body>
<form method="post" action="/api/auth/login">
  <input type="email" name="email" placeholder="Email" required>
  <input type="password" name="password" placeholder="Password" required>
  <button type="submit">เข้าสู่ระบบ</button>
</form>
</body>
</html>
"""


def navigation_for(role):
    items = []
    for label, path, feature in NAVIGATION:
        visible = can_access(role, feature) if feature else can_access_page(role, path)
        if visible:
            items.append({'label': label, 'path': path})
    return items


def _page_response(path: str):
    role = current_role()
    if not can_access_page(role, path):
        return redirect(UNAUTHORIZED_PATH)
    return {
        'page': path,
        'allowed': True,
        'role': role,
        'role_display_name': ROLE_DISPLAY_NAMES.get(role, role),
        'navigation': navigation_for(role),
    }


@dashboard_bp.get('/dashboard')
def dashboard_home():
    return _page_response('/dashboard')


@dashboard_bp.get('/dashboard/unauthorized')
def dashboard_unauthorized():
    role = current_role()
    return {
        'page': UNAUTHORIZED_PATH,
        'allowed': False,
        'role': role,
        'navigation': navigation_for(role),
    }, 403


@dashboard_bp.get('/dashboard/<path:page>')
def dashboard_page(page: str):
    return _page_response(f"/dashboard/{page}")


@dashboard_bp.get('/auth/signin')
def signin():
    return SIGNIN_PAGE, 200, {'Content-Type': 'text/html; charset=utf-8'}
