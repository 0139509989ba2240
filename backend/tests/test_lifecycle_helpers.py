"""Reusable test helpers for auth headers and order lifecycle steps.

Patterns unified:
 - Auth header creation with the same claims the login endpoint issues.
 - Order creation and status transitions with assertion helpers.
"""
from __future__ import annotations
from typing import Dict, List, Tuple
from flask_jwt_extended import create_access_token
from shopadmin.routes.auth import user_claims

# ---------- Generic Auth Helpers ---------- #

def jwt_headers(app, user) -> Dict[str, str]:
    with app.app_context():
        token = create_access_token(identity=str(user.id), additional_claims=user_claims(user))
    return {'Authorization': f'Bearer {token}'}


def login_headers(client, email: str, password: str = 'pw123456') -> Dict[str, str]:
    resp = client.post('/api/auth/login', json={'email': email, 'password': password})
    assert resp.status_code == 200, resp.get_json()
    return {'Authorization': f"Bearer {resp.get_json()['access_token']}"}

# ---------- Assertion Helpers ---------- #

def place_order_and_assert(client, headers: Dict[str, str], customer_id: int, items: List[Tuple[int, int]], **extra) -> dict:
    payload = {'customer_id': customer_id, 'items': [{'product_id': pid, 'quantity': qty} for pid, qty in items]}
    payload.update(extra)
    resp = client.post('/api/orders', json=payload, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    assert body['status'] == 'PENDING'
    return body


def assert_transition(client, order_id: int, headers: Dict[str, str], target: str, expected_status: int = 200):
    resp = client.put(f'/api/orders/{order_id}', json={'status': target}, headers=headers)
    assert resp.status_code == expected_status, resp.get_json()
    if expected_status < 400:
        assert resp.get_json()['status'] == target
    return resp
