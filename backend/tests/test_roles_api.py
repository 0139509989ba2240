from shopadmin import get_db
from shopadmin.models.authz import Permission
from tests.test_utils_seed import ensure_permissions, ensure_role


def test_role_crud_flow(client, headers_for):
    headers = headers_for('SUPER_ADMIN')
    perms = ensure_permissions(['PRODUCTS:READ', 'ORDERS:READ'])
    perm_ids = [perms['PRODUCTS:READ'].id]
    resp = client.post('/api/roles', json={'name': 'warehouse', 'display_name': 'Warehouse', 'permission_ids': perm_ids},
                       headers=headers)
    assert resp.status_code == 201, resp.get_json()
    role = resp.get_json()
    assert role['name'] == 'WAREHOUSE'
    assert role['is_system'] is False
    assert role['permissions'] == ['PRODUCTS:READ']

    dup = client.post('/api/roles', json={'name': 'Warehouse', 'display_name': 'Again'}, headers=headers)
    assert dup.status_code == 400
    assert dup.get_json()['error']['detail'] == 'role exists'

    bad = client.put(f"/api/roles/{role['id']}/permissions", json={'permissions': ['NOPE:NOPE']}, headers=headers)
    assert bad.status_code == 400
    ok = client.put(f"/api/roles/{role['id']}/permissions", json={'permissions': ['ORDERS:READ', 'PRODUCTS:READ']}, headers=headers)
    assert ok.status_code == 200
    assert ok.get_json() == {'id': role['id'], 'permissions': ['ORDERS:READ', 'PRODUCTS:READ']}

    listed = client.get('/api/roles', headers=headers).get_json()['data']
    mine = next(r for r in listed if r['id'] == role['id'])
    assert sorted(mine['permissions']) == ['ORDERS:READ', 'PRODUCTS:READ']


def test_create_role_validation(client, headers_for):
    headers = headers_for('SUPER_ADMIN')
    assert client.post('/api/roles', json={'name': 'NODISPLAY'}, headers=headers).status_code == 400
    resp = client.post('/api/roles', json={'name': 'GHOST', 'display_name': 'Ghost', 'permission_ids': [987654]}, headers=headers)
    assert resp.status_code == 400
    assert '987654' in resp.get_json()['error']['detail']
    assert client.put('/api/roles/987654/permissions', json={'permissions': []}, headers=headers).status_code == 404


def test_inactive_roles_hidden_unless_requested(client, headers_for):
    headers = headers_for('SUPER_ADMIN')
    role = ensure_role('RETIRED_ROLE')
    role.is_active = False
    get_db().commit()
    names = [r['name'] for r in client.get('/api/roles', headers=headers).get_json()['data']]
    assert 'RETIRED_ROLE' not in names
    names = [r['name'] for r in client.get('/api/roles?include_inactive=true', headers=headers).get_json()['data']]
    assert 'RETIRED_ROLE' in names


def test_permission_catalogue_listing(client, headers_for):
    ensure_permissions(['BRANDS:READ'])
    resp = client.get('/api/permissions', headers=headers_for('SUPER_ADMIN'))
    assert resp.status_code == 200
    codes = {p['code'] for p in resp.get_json()['data']}
    assert 'BRANDS:READ' in codes
    assert get_db().query(Permission).count() == len(codes)


def test_role_management_is_super_admin_only(client, headers_for):
    for role in ('ADMIN', 'MANAGER', 'VIEWER'):
        headers = headers_for(role)
        assert client.get('/api/roles', headers=headers).status_code == 403
        assert client.get('/api/permissions', headers=headers).status_code == 403
        resp = client.post('/api/roles', json={'name': 'X', 'display_name': 'X'}, headers=headers)
        assert resp.status_code == 403
        assert resp.get_json()['error']['required_permission'] == 'ROLES:CREATE'
