# Overview: Flask API routes for shift and cash drawer operations; parses input and returns JSON responses.

"""
Shift API Routes

Shift lifecycle: open -> close (immutable once closed). Manual drawer
movements are add/withdraw only; sales and refunds arrive through checkout.

Amounts are accepted as decimal numbers or strings ("1000.00") and returned
in cents.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import CashdeskError
from ..money import to_cents
from ..services import shift_service
from ..decorators import require_cashier


shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


@shifts_bp.post("/")
@shifts_bp.post("")
@require_cashier
def open_shift_route():
    """
    Open a new shift for the calling cashier.

    Request body:
    {
        "opening_balance": "1000.00",
        "notes": "Morning shift"  (optional)
    }

    Returns 409 if the cashier already has an open shift.
    """
    try:
        data = request.get_json(silent=True) or {}

        opening_balance_cents = to_cents(data.get("opening_balance", 0), field="opening_balance")

        shift = shift_service.open_shift(
            g.cashier,
            opening_balance_cents,
            notes=data.get("notes"),
        )

        return jsonify({"shift": shift.to_dict()}), 201

    except CashdeskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to open shift")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.get("/current")
@require_cashier
def current_shift_route():
    """Get the calling cashier's open shift with its derived balance."""
    shift = shift_service.get_open_shift(g.cashier.cashier_id)

    if not shift:
        return jsonify({"error": "No open shift", "code": "no_open_shift"}), 404

    return jsonify({
        "shift": shift.to_dict(),
        "current_balance_cents": shift_service.current_balance(shift.id),
    }), 200


@shifts_bp.get("/<int:shift_id>")
@require_cashier
def get_shift_route(shift_id: int):
    """Shift summary: totals per transaction type, balance, reconciliation."""
    try:
        return jsonify(shift_service.get_shift_summary(shift_id)), 200
    except CashdeskError as e:
        return jsonify(e.to_dict()), e.status_code


@shifts_bp.get("/<int:shift_id>/transactions")
@require_cashier
def list_transactions_route(shift_id: int):
    """List drawer transactions, newest first (?order=asc for oldest first)."""
    try:
        newest_first = request.args.get("order", "desc").lower() != "asc"
        transactions = shift_service.list_transactions(shift_id, newest_first=newest_first)

        return jsonify({
            "shift_id": shift_id,
            "transactions": [t.to_dict() for t in transactions],
            "current_balance_cents": shift_service.current_balance(shift_id),
        }), 200
    except CashdeskError as e:
        return jsonify(e.to_dict()), e.status_code


@shifts_bp.post("/<int:shift_id>/transactions")
@require_cashier
def record_transaction_route(shift_id: int):
    """
    Record a manual cash movement.

    Request body:
    {
        "type": "add" | "withdraw",
        "amount": "200.00",
        "description": "Float top-up"  (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}

        transaction_type = data.get("type")
        if not transaction_type:
            return jsonify({"error": "type required"}), 400

        amount_cents = to_cents(data.get("amount"), field="amount")

        entry = shift_service.record_transaction(
            g.cashier,
            shift_id,
            transaction_type,
            amount_cents,
            description=data.get("description"),
        )

        return jsonify({
            "transaction": entry.to_dict(),
            "current_balance_cents": shift_service.current_balance(shift_id),
        }), 201

    except CashdeskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record drawer transaction")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.post("/<int:shift_id>/close")
@require_cashier
def close_shift_route(shift_id: int):
    """
    Close a shift and reconcile the counted cash.

    Request body:
    {
        "counted_balance": "1140.00",
        "notes": "Short by 10"  (optional)
    }

    difference = counted - expected. Shift becomes immutable after closing.
    """
    try:
        data = request.get_json(silent=True) or {}

        if data.get("counted_balance") is None:
            return jsonify({"error": "counted_balance required"}), 400

        counted_cents = to_cents(data.get("counted_balance"), field="counted_balance")

        shift = shift_service.close_shift(
            g.cashier,
            shift_id,
            counted_cents,
            notes=data.get("notes"),
        )

        return jsonify({"shift": shift.to_dict()}), 200

    except CashdeskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to close shift")
        return jsonify({"error": "Internal server error"}), 500
