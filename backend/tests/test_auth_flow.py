from flask_jwt_extended import decode_token
from shopadmin import get_db
from shopadmin.models.authz import User
from tests.test_utils_seed import ensure_user
from tests.test_lifecycle_helpers import login_headers


def test_login_issues_token_with_role_claims(client, app_instance):
    u = ensure_user('login@example.com', role='MANAGER', name='Mana')
    user_id = u.id
    resp = client.post('/api/auth/login', json={'email': 'LOGIN@example.com', 'password': 'pw123456'})
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body['user']['role'] == 'MANAGER'
    assert body['user']['role_display_name'] == 'Manager'
    with app_instance.app_context():
        claims = decode_token(body['access_token'])
    assert claims['sub'] == str(user_id)
    assert claims['role'] == 'MANAGER'
    assert claims['email'] == 'login@example.com'
    assert claims['name'] == 'Mana'
    assert any(c.startswith('access_token_cookie=') for c in resp.headers.getlist('Set-Cookie'))
    assert get_db().get(User, user_id).last_login_at is not None


def test_login_requires_both_fields(client):
    assert client.post('/api/auth/login', json={'email': 7, 'password': 'x'}).status_code == 400
    assert client.post('/api/auth/login', json={'email': 'x@example.com'}).status_code == 400
    assert client.post('/api/auth/login', json={'password': 'x'}).status_code == 400


def test_login_rejects_bad_credentials(client):
    ensure_user('badpw@example.com')
    assert client.post('/api/auth/login', json={'email': 'badpw@example.com', 'password': 'wrong'}).status_code == 401
    assert client.post('/api/auth/login', json={'email': 'nobody@example.com', 'password': 'pw123456'}).status_code == 401


def test_login_rejects_inactive_user(client):
    ensure_user('suspended@example.com', status='SUSPENDED')
    resp = client.post('/api/auth/login', json={'email': 'suspended@example.com', 'password': 'pw123456'})
    assert resp.status_code == 401
    assert resp.get_json()['error']['detail'] == 'account is not active'


def test_me_returns_permissions_and_assignable_roles(client):
    ensure_user('me-staff@example.com', role='STAFF')
    headers = login_headers(client, 'me-staff@example.com')
    resp = client.get('/api/auth/me', headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['email'] == 'me-staff@example.com'
    assert 'PRODUCTS:UPDATE' in body['permissions']
    assert 'PRODUCTS:CREATE' not in body['permissions']
    assert body['assignable_roles'] == ['STAFF', 'VIEWER']


def test_me_requires_token(client):
    assert client.get('/api/auth/me').status_code == 401


def test_logout_clears_cookie(client):
    resp = client.post('/api/auth/logout')
    assert resp.status_code == 200
    assert resp.get_json() == {'status': 'logged_out'}
    assert any(c.startswith('access_token_cookie=;') for c in resp.headers.getlist('Set-Cookie'))
