from shopadmin.config.settings import DEFAULT_SETTINGS, merged_settings
from shopadmin.constants.permissions import SUPER_ADMIN_ONLY_MESSAGE


def test_merged_settings_overlays_stored_keys():
    merged = merged_settings({'store': {'name': 'Mine'}, 'unknown': {'x': 1}})
    assert merged['store']['name'] == 'Mine'
    assert merged['store']['currency'] == 'THB'
    assert 'unknown' not in merged
    # defaults are never mutated
    assert DEFAULT_SETTINGS['store']['name'] != 'Mine'


def test_get_settings_returns_defaults(client, headers_for):
    resp = client.get('/api/settings', headers=headers_for('SUPER_ADMIN'))
    assert resp.status_code == 200
    body = resp.get_json()
    assert set(body) == set(DEFAULT_SETTINGS)
    assert body['notifications']['low_stock_threshold'] == 10


def test_update_section_merges(client, headers_for):
    headers = headers_for('SUPER_ADMIN')
    resp = client.put('/api/settings', json={'section': 'payment', 'data': {'enable_cod': True}}, headers=headers)
    assert resp.status_code == 200, resp.get_json()
    assert resp.get_json()['payment']['enable_cod'] is True
    resp = client.put('/api/settings', json={'section': 'payment', 'data': {'enable_bank_transfer': False}}, headers=headers)
    payment = resp.get_json()['payment']
    assert payment['enable_cod'] is True
    assert payment['enable_bank_transfer'] is False
    assert payment['enable_credit_card'] is True
    assert client.get('/api/settings', headers=headers).get_json()['payment']['enable_bank_transfer'] is False


def test_update_validation(client, headers_for):
    headers = headers_for('SUPER_ADMIN')
    assert client.put('/api/settings', json={'section': 'secrets', 'data': {}}, headers=headers).status_code == 400
    assert client.put('/api/settings', json={'section': 'store', 'data': ['x']}, headers=headers).status_code == 400


def test_admin_is_refused(client, headers_for):
    for method in ('get', 'put'):
        resp = getattr(client, method)('/api/settings', json={'section': 'store', 'data': {}}, headers=headers_for('ADMIN'))
        assert resp.status_code == 403
        err = resp.get_json()['error']
        assert err['detail'] == SUPER_ADMIN_ONLY_MESSAGE
        assert err['user_role'] == 'ADMIN'
