# Overview: Flask API routes for pricing and checkout; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import CashdeskError, EmptyCart
from ..extensions import db
from ..models import Product
from ..money import to_cents
from ..services import checkout_service
from ..services.cart_service import Cart
from ..decorators import require_cashier


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


class ProductUnavailable(CashdeskError):
    code = "product_unavailable"


def _is_id(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _build_cart(raw_items) -> Cart:
    """
    Build a cart from [{"product_id": 1, "quantity": 2}, ...].

    Repeated product ids merge into one line.
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise EmptyCart("Cart is empty")

    cart = Cart()
    for raw in raw_items:
        product_id = raw.get("product_id") if isinstance(raw, dict) else None
        product = db.session.get(Product, product_id) if _is_id(product_id) else None

        if not product or not product.is_active or not product.is_available:
            raise ProductUnavailable("Product not available", {"product_id": product_id})

        cart.add_item(product, raw.get("quantity", 1))
    return cart


def _discount_cents(data: dict) -> int:
    if data.get("discount") in (None, ""):
        return 0
    return to_cents(data.get("discount"), field="discount")


@orders_bp.post("/quote")
@require_cashier
def quote_route():
    """
    Price a cart without committing it.

    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2}],
        "discount": "10.00"  (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        cart = _build_cart(data.get("items"))

        return jsonify(cart.to_dict(_discount_cents(data))), 200

    except CashdeskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to price cart")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/checkout")
@require_cashier
def checkout_route():
    """
    Commit a cart as a completed order.

    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2}],
        "payment_method": "cash" | "credit_card" | "qr_code",
        "discount": "10.00",  (optional)
        "shift_id": 3,  (optional; posts a sale to the drawer)
        "order_type": "dine_in",  (optional)
        "table_number": "A4"  (optional)
    }

    201 with the order; a failed drawer posting is listed under "warnings".
    """
    try:
        data = request.get_json(silent=True) or {}

        shift_id = data.get("shift_id")
        if shift_id is not None and not _is_id(shift_id):
            return jsonify({"error": "shift_id must be a positive integer"}), 400

        cart = _build_cart(data.get("items"))

        result = checkout_service.commit(
            cart,
            g.cashier,
            data.get("payment_method", "cash"),
            discount_cents=_discount_cents(data),
            shift_id=shift_id,
            order_type=data.get("order_type", "dine_in"),
            table_number=data.get("table_number"),
        )

        return jsonify(result.to_dict()), 201

    except CashdeskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to check out order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
@require_cashier
def get_order_route(order_id: int):
    try:
        order = checkout_service.get_order(order_id)
        return jsonify({"order": order.to_dict(include_items=True)}), 200
    except CashdeskError as e:
        return jsonify(e.to_dict()), e.status_code


@orders_bp.post("/<int:order_id>/cancel")
@require_cashier
def cancel_order_route(order_id: int):
    """
    Cancel a completed order.

    Request body:
    {
        "reason": "Customer changed mind",
        "shift_id": 3  (optional; posts a refund to the drawer)
    }
    """
    try:
        data = request.get_json(silent=True) or {}

        reason = (data.get("reason") or "").strip()
        if not reason:
            return jsonify({"error": "reason required"}), 400

        shift_id = data.get("shift_id")
        if shift_id is not None and not _is_id(shift_id):
            return jsonify({"error": "shift_id must be a positive integer"}), 400

        order = checkout_service.cancel_order(
            g.cashier,
            order_id,
            reason=reason,
            shift_id=shift_id,
        )

        return jsonify({"order": order.to_dict(include_items=True)}), 200

    except CashdeskError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500
