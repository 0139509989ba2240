from __future__ import annotations
from typing import Any, Dict, Optional
from werkzeug.exceptions import Forbidden, Unauthorized

from shopadmin.constants.permissions import LOGIN_REQUIRED_MESSAGE


class PermissionDenied(Forbidden):
    """403 carrying the permission the caller lacked and the caller's role."""

    def __init__(self, description: Optional[str] = None, required_permission: Optional[str] = None, user_role: Optional[str] = None):
        super().__init__(description=description)
        self.extra = {
            'required_permission': required_permission,
            'user_role': user_role,
        }


class NotAuthenticated(Unauthorized):
    def __init__(self, description: str = LOGIN_REQUIRED_MESSAGE):
        super().__init__(description=description)


def error_payload(status: int, title: str, detail: Any, extra: Optional[Dict[str, Any]] = None):
    err = {
        'status': status,
        'title': title,
        'detail': detail,
    }
    if extra:
        err.update({k: v for k, v in extra.items() if v is not None})
    return {'error': err}
