from functools import wraps
from flask import jsonify
from flask_jwt_extended import verify_jwt_in_request, get_jwt


def require_role(*allowed):
    """Require a valid JWT whose "role" claim is one of `allowed`."""

    def deco(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            role = get_jwt().get("role")
            if role is None:
                return jsonify({"error": "role claim required"}), 403
            if allowed and role not in allowed:
                return (
                    jsonify({"error": "forbidden", "required": allowed, "have": role}),
                    403,
                )
            return fn(*args, **kwargs)

        return wrapper

    return deco
