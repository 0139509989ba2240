from shopadmin.constants.permissions import PERMISSION_DENIED_MESSAGES


def test_unknown_path_returns_error_json(client):
    resp = client.get('/non-existent-path')
    # Flask default 404 should be wrapped by error handler
    assert resp.status_code == 404
    body = resp.get_json()
    assert body['error']['status'] == 404
    assert body['error']['title'] == 'Not Found'
    assert 'detail' in body['error']


def test_missing_entity_is_404_envelope(client, headers_for):
    resp = client.get('/api/products/987654', headers=headers_for('VIEWER'))
    assert resp.status_code == 404
    assert resp.get_json()['error']['status'] == 404


def test_validation_error_shape(client, headers_for):
    resp = client.post('/api/customers', json={}, headers=headers_for('MANAGER'))
    assert resp.status_code == 400
    err = resp.get_json()['error']
    assert err == {'status': 400, 'title': 'Bad Request', 'detail': 'first_name, last_name, email required'}


def test_forbidden_carries_permission_and_role(client, headers_for):
    resp = client.delete('/api/orders/1', headers=headers_for('VIEWER'))
    assert resp.status_code == 403
    err = resp.get_json()['error']
    assert err['title'] == 'Forbidden'
    assert err['detail'] == PERMISSION_DENIED_MESSAGES['ORDERS']['DELETE']
    assert err['required_permission'] == 'ORDERS:DELETE'
    assert err['user_role'] == 'VIEWER'


def test_internal_error_shape(client, headers_for, monkeypatch):
    headers = headers_for('SUPER_ADMIN')
    import shopadmin.routes.roles as roles_mod

    def boom():
        raise RuntimeError('database exploded')
    # only break roles listing; auth already happened when the headers were built
    monkeypatch.setattr(roles_mod, 'get_db', boom)
    resp = client.get('/api/roles', headers=headers)
    assert resp.status_code == 500
    err = resp.get_json()['error']
    assert err == {'status': 500, 'title': 'Internal Server Error', 'detail': 'Unexpected error'}
