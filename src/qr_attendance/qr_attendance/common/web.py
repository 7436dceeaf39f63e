from __future__ import annotations

import logging
from functools import wraps
from typing import Callable, Iterable

from flask import g, jsonify, request

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, StorageUnavailableError, ValidationError
from ..identity.service import IdentityService

logger = logging.getLogger(__name__)


def json_error(message: str, status: int):
    return jsonify({"success": False, "message": message}), status


def bearer_required(identity: IdentityService, roles: Iterable[Role]) -> Callable:
    """Decorator factory: resolve the bearer credential and enforce a role.

    The resolved principal is available to the view as `flask.g.principal`.
    """
    allowed = frozenset(roles)

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            principal = identity.resolve(request.headers.get("Authorization"))
            if principal is None:
                return json_error("Authentication required", 401)
            if principal.role not in allowed:
                return json_error("You do not have permission to perform this action", 403)
            g.principal = principal
            return view(*args, **kwargs)

        return wrapper

    return decorator


def domain_errors(view):
    """Translate domain exceptions raised by a JSON view into HTTP answers."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except ValidationError as e:
            return json_error(str(e), 400)
        except AuthenticationError as e:
            return json_error(str(e), 401)
        except AuthorizationError as e:
            return json_error(str(e), 403)
        except StorageUnavailableError as e:
            logger.warning(f"Storage unavailable during {request.path}: {e}")
            return json_error("Service temporarily unavailable, please retry", 503)
        except Exception:
            logger.exception(f"Unhandled error during {request.method} {request.path}")
            return json_error("Internal server error", 500)

    return wrapper
