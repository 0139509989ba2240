from tests.test_utils_seed import ensure_category, ensure_brand, ensure_product
from shopadmin.utils.validation import slugify


def test_category_create_slugifies_and_rejects_duplicates(client, headers_for):
    headers = headers_for('MANAGER')
    resp = client.post('/api/categories', json={'name': 'Home Decor', 'slug': 'Home Decor!'}, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    assert resp.get_json()['slug'] == 'home-decor'
    dup = client.post('/api/categories', json={'name': 'Again', 'slug': 'home-decor'}, headers=headers)
    assert dup.status_code == 400
    assert dup.get_json()['error']['detail'] == 'slug exists'
    assert client.post('/api/categories', json={'name': 'Bad', 'slug': '!!!'}, headers=headers).status_code == 400


def test_category_slug_keeps_thai_marks_and_rejects_non_strings(client, headers_for):
    headers = headers_for('MANAGER')
    assert slugify('สินค้า ใหม่!') == 'สินค้า-ใหม่'
    resp = client.post('/api/categories', json={'name': 'สินค้าใหม่', 'slug': 'สินค้า ใหม่'}, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    assert resp.get_json()['slug'] == 'สินค้า-ใหม่'
    bad = client.post('/api/categories', json={'name': 'Numeric', 'slug': 404}, headers=headers)
    assert bad.status_code == 400
    assert bad.get_json()['error']['detail'] == 'slug must be a string'
    assert client.post('/api/categories', json={'name': 7, 'slug': 'numeric-name'}, headers=headers).status_code == 400
    assert client.post('/api/brands', json={'name': True, 'slug': 'bool-brand'}, headers=headers_for('ADMIN')).status_code == 400


def test_category_tree_and_cycle_guard(client, headers_for):
    headers = headers_for('MANAGER')
    root = ensure_category('cat-tree-root')
    child = ensure_category('cat-tree-child', parent_id=root.id)
    root_id, child_id = root.id, child.id
    detail = client.get(f'/api/categories/{root_id}', headers=headers).get_json()
    assert [c['id'] for c in detail['children']] == [child_id]
    resp = client.put(f'/api/categories/{root_id}', json={'name': 'Root', 'slug': 'cat-tree-root', 'parent_id': child_id}, headers=headers)
    assert resp.status_code == 400
    assert 'ancestor' in resp.get_json()['error']['detail']
    top = client.get(f'/api/categories?parent_id={root_id}', headers=headers).get_json()
    assert [c['id'] for c in top['data']] == [child_id]
    assert top['data'][0]['children_count'] == 0


def test_category_delete_guards(client, headers_for):
    headers = headers_for('MANAGER')
    parent = ensure_category('cat-del-parent')
    ensure_category('cat-del-child', parent_id=parent.id)
    with_products = ensure_category('cat-del-products')
    ensure_product('CAT-DEL-P1', category_id=with_products.id)
    empty = ensure_category('cat-del-empty')
    assert client.delete(f'/api/categories/{parent.id}', headers=headers).status_code == 400
    assert client.delete(f'/api/categories/{with_products.id}', headers=headers).status_code == 400
    assert client.delete(f'/api/categories/{empty.id}', headers=headers).get_json() == {'status': 'deleted'}


def test_inactive_categories_hidden_by_default(client, headers_for):
    headers = headers_for('VIEWER')
    ensure_category('cat-hidden-zz', name='Hiddenzz', is_active=False)
    visible = client.get('/api/categories?search=hiddenzz', headers=headers).get_json()
    assert visible['pagination']['total'] == 0
    everything = client.get('/api/categories?search=hiddenzz&include_inactive=true', headers=headers).get_json()
    assert everything['pagination']['total'] == 1


def test_staff_reads_but_cannot_write_categories(client, headers_for):
    headers = headers_for('STAFF')
    assert client.get('/api/categories', headers=headers).status_code == 200
    assert client.post('/api/categories', json={'name': 'S', 'slug': 'staff-cat'}, headers=headers).status_code == 403


def test_brand_crud(client, headers_for):
    headers = headers_for('ADMIN')
    resp = client.post('/api/brands', json={'name': 'Acme Tools', 'slug': 'acme-tools', 'website': 'https://acme.test'}, headers=headers)
    assert resp.status_code == 201
    brand_id = resp.get_json()['id']
    assert client.post('/api/brands', json={'name': 'Acme 2', 'slug': 'acme-tools'}, headers=headers).status_code == 400
    upd = client.put(f'/api/brands/{brand_id}', json={'is_active': False}, headers=headers)
    assert upd.get_json()['is_active'] is False
    assert client.get(f'/api/brands/{brand_id}', headers=headers).get_json()['product_count'] == 0
    assert client.delete(f'/api/brands/{brand_id}', headers=headers).get_json() == {'status': 'deleted'}


def test_brand_name_must_stay_unique_on_update(client, headers_for):
    headers = headers_for('ADMIN')
    ensure_brand('brand-uniq-a', name='Uniq A')
    b = ensure_brand('brand-uniq-b', name='Uniq B')
    assert client.put(f'/api/brands/{b.id}', json={'name': 'uniq a'}, headers=headers).status_code == 400


def test_brand_with_products_cannot_be_deleted(client, headers_for):
    headers = headers_for('ADMIN')
    b = ensure_brand('brand-has-products')
    brand_id = b.id
    p = ensure_product('BRAND-DEL-P1')
    client.put(f'/api/products/{p.id}', json={'brand_id': brand_id}, headers=headers)
    resp = client.delete(f'/api/brands/{brand_id}', headers=headers)
    assert resp.status_code == 400
    listed = client.get('/api/brands?search=Brand-Has-Products', headers=headers).get_json()
    assert listed['data'][0]['product_count'] == 1
