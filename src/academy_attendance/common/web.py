from __future__ import annotations

import logging
from functools import wraps
from typing import Collection

from flask import jsonify, session

from ..core.enums import ADMIN_ROLES, EMPLOYEE_LIKE_ROLES, Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DeviceNotFound,
    DomainError,
    PunchStateError,
)

logger = logging.getLogger(__name__)


def json_error(message: str, status: int, **extra):
    body = {"success": False, "message": message}
    body.update(extra)
    return jsonify(body), status


def current_role() -> Role:
    try:
        return Role(session.get("role"))
    except ValueError:
        raise AuthorizationError("Unknown role")


def current_user_id() -> int:
    return int(session["user_id"])


def roles_required(roles: Collection[Role]):
    """Session must exist (401) and carry one of `roles` (403)."""

    allowed = {r.value for r in roles}

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return json_error("Please log in to continue", 401)
            if session.get("role") not in allowed:
                return json_error("You do not have permission", 403)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def login_required(view):
    return roles_required(list(Role))(view)


employee_required = roles_required(EMPLOYEE_LIKE_ROLES)
admin_required = roles_required(ADMIN_ROLES)


def json_api(view):
    """Map domain exceptions to JSON error responses."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except PunchStateError as e:
            return json_error(str(e), 400, code=e.code)
        except AuthenticationError as e:
            return json_error(str(e), 401)
        except AuthorizationError as e:
            return json_error(str(e), 403)
        except DeviceNotFound as e:
            return json_error(str(e), 404)
        except DomainError as e:
            return json_error(str(e), 400)
        except Exception:
            logger.exception("Unhandled error in %s", view.__name__)
            return json_error("Internal server error", 500)

    return wrapper
