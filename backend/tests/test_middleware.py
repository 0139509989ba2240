from urllib.parse import urlparse, parse_qs
from shopadmin.constants.permissions import LOGIN_REQUIRED_MESSAGE


def test_dashboard_without_token_redirects_to_signin(client):
    resp = client.get('/dashboard/products')
    assert resp.status_code == 302
    loc = urlparse(resp.headers['Location'])
    assert loc.path == '/auth/signin'
    assert parse_qs(loc.query)['callbackUrl'][0].endswith('/dashboard/products')


def test_dashboard_with_garbage_token_redirects(client):
    resp = client.get('/dashboard', headers={'Authorization': 'Bearer not-a-jwt'})
    assert resp.status_code == 302


def test_api_without_token_gets_401_envelope(client):
    resp = client.get('/api/products')
    assert resp.status_code == 401
    err = resp.get_json()['error']
    assert err['status'] == 401
    assert err['detail'] == LOGIN_REQUIRED_MESSAGE


def test_api_with_invalid_token_gets_401(client):
    resp = client.get('/api/orders', headers={'Authorization': 'Bearer abc.def.ghi'})
    assert resp.status_code == 401
    assert resp.get_json()['error']['detail'] == LOGIN_REQUIRED_MESSAGE


def test_auth_prefix_is_public(client):
    resp = client.post('/api/auth/login', json={})
    # reaches the handler, which rejects the empty body
    assert resp.status_code == 400


def test_signin_page_and_health_are_public(client):
    assert client.get('/auth/signin').status_code == 200
    assert client.get('/healthz').get_json() == {'status': 'ok'}


def test_valid_token_passes_gate(client, headers_for):
    resp = client.get('/api/products', headers=headers_for('VIEWER'))
    assert resp.status_code == 200


def test_access_cookie_is_accepted(client):
    from tests.test_utils_seed import ensure_user
    ensure_user('cookie@example.com', role='VIEWER')
    login = client.post('/api/auth/login', json={'email': 'cookie@example.com', 'password': 'pw123456'})
    assert login.status_code == 200
    # test client keeps the access cookie set by login
    resp = client.get('/dashboard')
    assert resp.status_code == 200
    assert resp.get_json()['allowed'] is True
