# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .context import CashierContext


CASHIER_HEADER = "X-Cashier-Id"


def require_cashier(f):
    """
    Establish the calling cashier for the request.

    Sets g.cashier to a CashierContext built from the X-Cashier-Id header.
    Identity is asserted by the caller; authentication happens upstream.

    Returns 401 if the header is missing or not a positive ASCII integer.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get(CASHIER_HEADER, "").strip()

        if not (raw.isascii() and raw.isdigit()) or int(raw) <= 0:
            return jsonify({"error": "Cashier identity required", "code": "cashier_required"}), 401

        g.cashier = CashierContext(
            cashier_id=int(raw),
            display_name=request.headers.get("X-Cashier-Name"),
        )

        return f(*args, **kwargs)

    return decorated_function
