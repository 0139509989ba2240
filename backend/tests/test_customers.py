from datetime import datetime
from tests.test_utils_seed import ensure_customer, create_order


def test_create_customer_normalises_email(client, headers_for):
    headers = headers_for('MANAGER')
    resp = client.post('/api/customers', json={'first_name': 'Somchai', 'last_name': 'Jaidee', 'email': ' Somchai@Example.COM '},
                       headers=headers)
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    assert body['email'] == 'somchai@example.com'
    assert body['name'] == 'Somchai Jaidee'
    assert body['segment'] == 'REGULAR'
    dup = client.post('/api/customers', json={'first_name': 'A', 'last_name': 'B', 'email': 'somchai@example.com'}, headers=headers)
    assert dup.status_code == 400
    bad = client.post('/api/customers', json={'first_name': 'A', 'last_name': 'B', 'email': 'not-an-email'}, headers=headers)
    assert bad.status_code == 400


def test_customer_order_stats_skip_cancelled(client, headers_for):
    headers = headers_for('VIEWER')
    c = ensure_customer('cust-stats@example.com')
    cid = c.id
    create_order(cid, 100.0, status='COMPLETED', created_at=datetime(2025, 1, 5))
    create_order(cid, 250.0, status='DELIVERED', created_at=datetime(2025, 2, 5))
    create_order(cid, 999.0, status='CANCELLED', created_at=datetime(2025, 3, 5))
    detail = client.get(f'/api/customers/{cid}', headers=headers).get_json()
    assert detail['total_orders'] == 2
    assert detail['total_spent'] == 350
    assert detail['last_order_date'].startswith('2025-02-05')
    # order history still lists every order, newest first
    assert [o['status'] for o in detail['orders']] == ['CANCELLED', 'DELIVERED', 'COMPLETED']
    listed = client.get('/api/customers?search=cust-stats', headers=headers).get_json()
    assert listed['data'][0]['total_spent'] == 350


def test_customer_without_orders_has_empty_stats(client, headers_for):
    c = ensure_customer('cust-empty@example.com')
    body = client.get(f'/api/customers/{c.id}', headers=headers_for('VIEWER')).get_json()
    assert body['total_orders'] == 0
    assert body['total_spent'] == 0
    assert body['last_order_date'] is None
    assert body['orders'] == []


def test_update_customer(client, headers_for):
    headers = headers_for('STAFF')
    c = ensure_customer('cust-update@example.com')
    ensure_customer('cust-taken@example.com')
    resp = client.put(f'/api/customers/{c.id}', json={'segment': 'VIP', 'phone': '0812345678'}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['segment'] == 'VIP'
    assert client.put(f'/api/customers/{c.id}', json={'segment': 'GOLD'}, headers=headers).status_code == 400
    assert client.put(f'/api/customers/{c.id}', json={'email': 'cust-taken@example.com'}, headers=headers).status_code == 400
    assert client.put(f'/api/customers/{c.id}', json={'first_name': ''}, headers=headers).status_code == 400


def test_customer_fields_must_be_strings(client, headers_for):
    headers = headers_for('MANAGER')
    resp = client.post('/api/customers', json={'first_name': 5, 'last_name': 'B', 'email': 'cust-int-name@example.com'}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == 'first_name must be a string'
    assert client.post('/api/customers', json={'first_name': 'A', 'last_name': 'B', 'email': ['x@example.com']},
                       headers=headers).status_code == 400
    c = ensure_customer('cust-int-update@example.com')
    assert client.put(f'/api/customers/{c.id}', json={'last_name': 12}, headers=headers).status_code == 400
    assert client.put(f'/api/customers/{c.id}', json={'email': 12}, headers=headers).status_code == 400


def test_delete_customer_with_orders_blocked(client, headers_for):
    headers = headers_for('ADMIN')
    busy = ensure_customer('cust-busy@example.com')
    create_order(busy.id, 10.0)
    idle = ensure_customer('cust-idle@example.com')
    resp = client.delete(f'/api/customers/{busy.id}', headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == 'Cannot delete customer with existing orders'
    assert client.delete(f'/api/customers/{idle.id}', headers=headers).get_json() == {'status': 'deleted'}
    assert client.delete(f'/api/customers/{busy.id}', headers=headers_for('STAFF')).status_code == 403
