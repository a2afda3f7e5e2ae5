# Overview: Request decorators for API routes; operator identity and elevated access.

from functools import wraps
from flask import request, jsonify, g


OPERATOR_ID_HEADER = "X-Operator-Id"
OPERATOR_ROLE_HEADER = "X-Operator-Role"

ELEVATED_ROLES = {"admin"}


def _is_identified() -> bool:
    return bool(getattr(g, "operator_id", None))


def require_operator(f):
    """
    Require an operator identity on the request.

    The front end picks an operator by name and sends it on every call; the
    engine trusts it as-is (no credentials). Sets:
    - g.operator_id: acting user recorded in audit history and transactions
    - g.operator_role: role name, lower-cased ("cashier" when absent)

    Returns 401 when the header is missing or blank.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        operator_id = (request.headers.get(OPERATOR_ID_HEADER) or "").strip()
        if not operator_id:
            return jsonify({"error": "Operator required", "details": {"header": OPERATOR_ID_HEADER}}), 401

        g.operator_id = operator_id
        g.operator_role = (request.headers.get(OPERATOR_ROLE_HEADER) or "cashier").strip().lower()
        return f(*args, **kwargs)

    return decorated_function


def require_elevated(f):
    """
    Require an elevated (admin) operator.

    Must be applied after @require_operator. Guards inventory mutations and
    exchange rate changes.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_identified():
            return jsonify({"error": "Operator required", "details": {"header": OPERATOR_ID_HEADER}}), 401
        if g.operator_role not in ELEVATED_ROLES:
            return jsonify({
                "error": "Elevated access required",
                "details": {"role": g.operator_role, "required": sorted(ELEVATED_ROLES)},
            }), 403
        return f(*args, **kwargs)

    return decorated_function
