from shopadmin.services.audit import add_audit
from shopadmin.models.audit import AuditLog
from shopadmin import get_db
from tests.test_utils_seed import ensure_user


def test_create_is_logged_with_actor_and_role(client, app_instance, headers_for):
    admin = ensure_user('audit-admin@example.com', role='ADMIN')
    admin_id = admin.id
    from tests.test_lifecycle_helpers import jwt_headers
    headers = jwt_headers(app_instance, admin)
    resp = client.post('/api/products', json={'name': 'Audited', 'sku': 'AUDIT-1', 'price': 9}, headers=headers)
    product_id = resp.get_json()['id']
    logs = client.get(f'/api/audit-logs?action=product.create&entity_id={product_id}', headers=headers).get_json()
    assert logs['pagination']['total'] == 1
    entry = logs['data'][0]
    assert entry['actor_user_id'] == admin_id
    assert entry['role_snapshot'] == 'ADMIN'
    assert entry['entity'] == 'Product'
    assert entry['meta'] == {'name': 'Audited', 'sku': 'AUDIT-1', 'price': 9}


def test_failed_requests_are_not_logged(client, headers_for):
    headers = headers_for('ADMIN')
    before = get_db().query(AuditLog).filter_by(action='PRODUCT.CREATE').count()
    client.post('/api/products', json={'name': 'Broken'}, headers=headers)
    assert get_db().query(AuditLog).filter_by(action='PRODUCT.CREATE').count() == before


def test_update_records_changes(client, headers_for):
    headers = headers_for('ADMIN')
    created = client.post('/api/products', json={'name': 'Diffed', 'sku': 'AUDIT-2', 'price': 10}, headers=headers).get_json()
    client.put(f"/api/products/{created['id']}", json={'price': 12}, headers=headers)
    logs = client.get(f"/api/audit-logs?action=PRODUCT.UPDATE&entity=Product&entity_id={created['id']}", headers=headers).get_json()
    assert logs['data'][0]['meta']['changes'] == {'price': {'before': 10, 'after': 12}}


def test_add_audit_without_request_uses_system_actor(app_instance):
    with app_instance.app_context():
        log = add_audit('SEED.RUN', meta={'source': 'test'})
        get_db().commit()
        assert log.actor_user_id == 0
        assert log.role_snapshot is None


def test_audit_log_access(client, headers_for):
    assert client.get('/api/audit-logs', headers=headers_for('ADMIN')).status_code == 200
    assert client.get('/api/audit-logs', headers=headers_for('MANAGER')).status_code == 403
    assert client.get('/api/audit-logs?actor_user_id=abc', headers=headers_for('ADMIN')).status_code == 400
