import csv
import io
from datetime import datetime
import pytest
from shopadmin import get_db
from shopadmin.models.order import OrderItem
from shopadmin.services import reports
from tests.test_utils_seed import ensure_customer, ensure_product, create_order


@pytest.mark.parametrize('recency,frequency,monetary,expected', [
    (10, 12, 150000, 'Champion'),
    (45, 7, 30000, 'Loyal Customer'),
    (80, 5, 25000, 'Potential Loyalist'),
    (120, 3, 25000, 'At Risk'),
    (200, 3, 10000, 'Cannot Lose Them'),
    (400, 1, 100, 'Lost Customer'),
])
def test_rfm_score(recency, frequency, monetary, expected):
    assert reports.rfm_score(recency, frequency, monetary) == expected


@pytest.mark.parametrize('spent,orders,expected', [
    (250000, 12, 'VIP'),
    (250000, 3, 'Regular'),
    (500, 6, 'Regular'),
    (500, 2, 'New'),
    (500, 3, 'At Risk'),
])
def test_customer_segment(spent, orders, expected):
    assert reports.customer_segment(spent, orders) == expected


def test_period_start():
    now = datetime(2025, 3, 31, 12, 0)
    assert reports.period_start('30days', now) == datetime(2025, 3, 1, 12, 0)
    assert reports.period_start('12months', now) == datetime(2024, 3, 31, 12, 0)
    # day clamps to the end of a short month
    assert reports._shift_months(datetime(2025, 3, 31), -1) == datetime(2025, 2, 28)


def test_to_csv():
    assert reports.to_csv([]) == ''
    text = reports.to_csv([{'a': 1, 'b': 'x,y'}, {'a': 2, 'b': 'z'}])
    assert list(csv.DictReader(io.StringIO(text))) == [{'a': '1', 'b': 'x,y'}, {'a': '2', 'b': 'z'}]


def test_revenue_counts_completed_orders_in_range(client, headers_for):
    cust = ensure_customer('rev-range@example.com')
    create_order(cust.id, 100.0, status='COMPLETED', created_at=datetime(2019, 6, 1, 10))
    create_order(cust.id, 50.5, status='COMPLETED', created_at=datetime(2019, 6, 30, 23))
    create_order(cust.id, 999.0, status='PENDING', created_at=datetime(2019, 6, 15))
    create_order(cust.id, 777.0, status='COMPLETED', created_at=datetime(2019, 7, 1, 0, 30))
    resp = client.get('/api/revenue?start_date=2019-06-01&end_date=2019-06-30', headers=headers_for('VIEWER'))
    assert resp.status_code == 200
    assert resp.get_json() == {'data': {'total_revenue': 150.5, 'order_count': 2}}
    assert client.get('/api/revenue?start_date=yesterday', headers=headers_for('VIEWER')).status_code == 400


def test_sales_chart_buckets_by_month():
    cust = ensure_customer('chart@example.com')
    create_order(cust.id, 300.0, status='DELIVERED', created_at=datetime(2018, 11, 20))
    create_order(cust.id, 200.0, status='PENDING', created_at=datetime(2018, 12, 2))
    create_order(cust.id, 400.0, status='CANCELLED', created_at=datetime(2018, 12, 3))
    chart = reports.sales_chart(get_db(), now=datetime(2018, 12, 15))
    assert len(chart['labels']) == 12
    assert chart['labels'][0] == '2018-01'
    assert chart['labels'][-1] == '2018-12'
    assert chart['data'][-2:] == [300.0, 200.0]
    assert chart['orders'][-2:] == [1, 1]


def test_analytics_endpoint(client, headers_for):
    headers = headers_for('VIEWER')
    resp = client.get('/api/analytics?period=30days', headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['overview']['period'] == '30days'
    assert set(body['overview']) >= {'total_revenue', 'total_orders', 'average_order_value', 'conversion_rate'}
    assert len(body['sales_chart']['labels']) == 12
    assert client.get('/api/analytics?period=7days', headers=headers).status_code == 400
    assert client.get('/api/analytics', headers=headers_for('STAFF')).status_code == 403


def test_sales_report_json(client, headers_for):
    cust = ensure_customer('sales-report@example.com')
    create_order(cust.id, 120.0, status='COMPLETED', created_at=datetime(2017, 3, 4, 9))
    create_order(cust.id, 80.0, status='COMPLETED', created_at=datetime(2017, 3, 4, 15))
    resp = client.get('/api/reports?type=sales&start_date=2017-03-01&end_date=2017-03-31', headers=headers_for('VIEWER'))
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['type'] == 'sales'
    assert body['parameters'] == {'start_date': '2017-03-01', 'end_date': '2017-03-31', 'format': 'json'}
    assert body['data']['data'] == [
        {'date': '2017-03-04', 'revenue': 200.0, 'orders': 2, 'customers': 1, 'average_order_value': 100.0},
    ]
    assert body['data']['summary']['total_customers'] == 1


def test_products_report_profit_needs_cost():
    cust = ensure_customer('prod-report@example.com')
    costed = ensure_product('RPT-COSTED', price=100.0, cost_price=60.0)
    uncosted = ensure_product('RPT-UNCOSTED', price=50.0)
    order = create_order(cust.id, 250.0, status='COMPLETED')
    session = get_db()
    session.add_all([
        OrderItem(order_id=order.id, product_id=costed.id, product_name=costed.name, product_sku=costed.sku,
                  quantity=2, price=100.0, total_amount=200.0),
        OrderItem(order_id=order.id, product_id=uncosted.id, product_name=uncosted.name, product_sku=uncosted.sku,
                  quantity=1, price=50.0, total_amount=50.0),
    ])
    session.commit()
    rows = {r['id']: r for r in reports.products_report(session)['data']}
    assert rows[costed.id]['gross_profit'] == 80.0
    assert rows[costed.id]['margin_percent'] == 40.0
    assert rows[uncosted.id]['gross_profit'] is None


def test_inventory_report_statuses(client, headers_for):
    ensure_product('RPT-INV-OUT', quantity=0)
    ensure_product('RPT-INV-LOW', quantity=3)
    resp = client.get('/api/reports?type=inventory', headers=headers_for('VIEWER'))
    rows = {r['sku']: r for r in resp.get_json()['data']['data']}
    assert rows['RPT-INV-OUT']['status'] == 'OUT_OF_STOCK'
    assert rows['RPT-INV-LOW']['status'] == 'LOW_STOCK'


def test_customers_report_shape(client, headers_for):
    ensure_customer('cust-report@example.com')
    body = client.get('/api/reports?type=customers', headers=headers_for('VIEWER')).get_json()
    row = next(r for r in body['data']['data'] if r['email'] == 'cust-report@example.com')
    assert row['segment'] == 'New'
    assert row['total_orders'] == 0
    assert body['data']['summary']['total_customers'] >= 1


def test_report_validation(client, headers_for):
    headers = headers_for('VIEWER')
    assert client.get('/api/reports?type=profit', headers=headers).status_code == 400
    assert client.get('/api/reports?type=sales&format=xml', headers=headers).status_code == 400


def test_csv_export_requires_export_permission(client, headers_for):
    denied = client.get('/api/reports?type=inventory&format=csv', headers=headers_for('VIEWER'))
    assert denied.status_code == 403
    assert denied.get_json()['error']['required_permission'] == 'REPORTS:EXPORT'
    ensure_product('RPT-CSV-1')
    resp = client.get('/api/reports?type=inventory&format=csv', headers=headers_for('ADMIN'))
    assert resp.status_code == 200
    assert resp.mimetype == 'text/csv'
    assert resp.headers['Content-Disposition'].startswith('attachment; filename="inventory_report_')
    rows = list(csv.DictReader(io.StringIO(resp.get_data(as_text=True))))
    assert any(r['sku'] == 'RPT-CSV-1' for r in rows)
