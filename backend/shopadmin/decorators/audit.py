from __future__ import annotations
"""Audit logging decorator so route handlers don't call add_audit() by hand.

Usage examples:

@audit_log('PRODUCT.CREATE', entity='Product', entity_id_key='id', meta_keys=['name', 'sku'])
def create_product():
    ... return _product_json(p), 201

@audit_log('INVENTORY.ADJUST', entity='Product', entity_id_key='id',
           diff_keys=['quantity'], pre_fetch=lambda a, kw: _snapshot(kw['product_id']))
def adjust_stock(product_id): ...

Parameters:
  action: audit action code (e.g. ROLE.CREATE)
  entity: optional entity label (Product, Role, User)
  entity_id_key: key of the returned JSON object holding the entity id.
  entity_id_arg: view kwarg used as entity id when entity_id_key is absent.
  meta_keys: keys projected from the returned JSON into meta.
  meta_builder: callable(data, rv, args, kwargs) -> dict; overrides meta_keys.
  diff_keys / pre_fetch: snapshot before the view runs and record
    {'changes': {key: {'before', 'after'}}} for keys whose value changed.

Only successful responses (status < 400) are audited. The view's own
exceptions propagate untouched; failures inside the audit step are logged
and never change the response.
"""

import logging
from functools import wraps
from typing import Any, Callable, Iterable, Optional, Dict

from shopadmin.services.audit import add_audit
from shopadmin import get_db

logger = logging.getLogger(__name__)


def _extract_payload(rv: Any):
    """Return (data, status) from a Flask view return value."""
    if isinstance(rv, tuple) and rv:
        status = rv[1] if len(rv) > 1 and isinstance(rv[1], int) else 200
        return rv[0], status
    return rv, getattr(rv, 'status_code', 200)


def _diff(before: Dict[str, Any], after: Dict[str, Any], keys: Iterable[str]):
    changes = {}
    for k in keys:
        if k in before and k in after and before.get(k) != after.get(k):
            changes[k] = {'before': before.get(k), 'after': after.get(k)}
    return changes


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before = pre_fetch(args, kwargs) if (diff_keys and pre_fetch) else None
            rv = fn(*args, **kwargs)
            data, status = _extract_payload(rv)
            if status >= 400:
                return rv
            try:
                if not isinstance(data, dict):
                    add_audit(action, entity, kwargs.get(entity_id_arg) if entity_id_arg else None, None)
                else:
                    entity_id = None
                    if entity_id_key and entity_id_key in data:
                        entity_id = data.get(entity_id_key)
                    elif entity_id_arg and entity_id_arg in kwargs:
                        entity_id = kwargs.get(entity_id_arg)
                    meta = None
                    if meta_builder:
                        meta = meta_builder(data, rv, args, kwargs)
                    elif meta_keys:
                        meta = {k: data.get(k) for k in meta_keys if k in data}
                    if diff_keys and isinstance(before, dict):
                        changes = _diff(before, data, diff_keys)
                        if changes:
                            meta = dict(meta or {})
                            meta['changes'] = changes
                    add_audit(action, entity, entity_id, meta)
                get_db().commit()
            except Exception:
                logger.exception('audit write failed for %s', action)
                get_db().rollback()
            return rv
        return wrapper
    return outer
