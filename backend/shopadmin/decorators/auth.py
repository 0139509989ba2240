from functools import wraps
from flask_jwt_extended import verify_jwt_in_request
from shopadmin.errors import PermissionDenied, NotAuthenticated
from shopadmin.services.policy import check_permission, require_super_admin


def require_permission(resource: str, action: str):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            result = check_permission(resource, action)
            if not result.success:
                if not result.user_role:
                    raise NotAuthenticated()
                raise PermissionDenied(result.message, f"{resource}:{action}", result.user_role)
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_super_admin_role():
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            result = require_super_admin()
            if not result.success:
                if not result.user_role:
                    raise NotAuthenticated()
                raise PermissionDenied(result.message, 'SUPER_ADMIN', result.user_role)
            return fn(*args, **kwargs)
        return wrapper
    return outer
