from __future__ import annotations
import logging
from typing import Any, Dict, Optional
from flask_jwt_extended import get_jwt_identity, get_jwt
from shopadmin import get_db
from shopadmin.models.audit import AuditLog

logger = logging.getLogger(__name__)


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[str] = None, meta: Optional[Dict[str, Any]] = None):
    """Persist an audit log entry within the current DB session.

    Parameters:
      action: short action code e.g. PRODUCT.CREATE, ROLE.PERM.REPLACE, INVENTORY.ADJUST
      entity: optional entity name (Product, Role, etc.)
      entity_id: optional primary key string
      meta: additional JSON-safe dictionary (will be shallow copied)
    """
    session = get_db()
    try:
        claims = get_jwt() or {}
        ident = get_jwt_identity()
    except RuntimeError:
        # no JWT context (seed scripts, background jobs)
        claims, ident = {}, None
    actor = int(ident) if ident is not None else 0
    log = AuditLog(
        actor_user_id=actor,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        role_snapshot=claims.get('role'),
        meta=dict(meta or {}),
    )
    session.add(log)
    logger.debug('audit %s %s:%s by %s', action, entity, entity_id, actor)
    # No commit here; caller's transaction boundary controls durability.
    return log
