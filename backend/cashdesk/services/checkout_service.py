"""
Checkout Service - commits a priced cart as a completed order

WHY: An order must never be visible as completed (or pending) without its
line items. Order row, items and the completed transition are written in
one database transaction; a failure at any of those stages rolls all of it
back and is reported with the stage that failed.

The drawer posting happens after the order is final. If it fails the sale
still stands and the failure is returned as a reconciliation warning.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..context import CashierContext
from ..errors import (
    CashdeskError,
    CheckoutFailed,
    EmptyCart,
    InvalidOrderType,
    InvalidPaymentMethod,
    OrderNotCancellable,
    OrderNotFound,
    ShiftNotOpen,
)
from ..extensions import db
from ..models import CashDrawerTransaction, Order, OrderItem, Shift
from ..models.orders import (
    ORDER_CANCELLED,
    ORDER_COMPLETED,
    ORDER_PENDING,
    ORDER_TYPES,
    PAYMENT_METHODS,
    PAYMENT_PAID,
    PAYMENT_REFUNDED,
    PAYMENT_UNPAID,
)
from ..models.shifts import SHIFT_OPEN, TX_REFUND, TX_SALE
from ..money import format_cents
from cashdesk.time_utils import utcnow
from . import shift_service
from .cart_service import Cart, CartItem, CartPricing
from .concurrency import conflicts_as_errors, lock_for_update


@dataclass
class CheckoutResult:
    order: Order
    drawer_transaction: CashDrawerTransaction | None = None
    warnings: list[CheckoutFailed] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "order": self.order.to_dict(include_items=True),
            "drawer_transaction": self.drawer_transaction.to_dict() if self.drawer_transaction else None,
            "warnings": [w.to_dict() for w in self.warnings],
        }


def _require_cashier_shift(ctx: CashierContext, shift_id: int) -> Shift:
    shift = db.session.get(Shift, shift_id)
    if not shift or shift.status != SHIFT_OPEN:
        raise ShiftNotOpen("Shift is not open", {"shift_id": shift_id})
    if shift.cashier_id != ctx.cashier_id:
        raise ShiftNotOpen("Shift belongs to another cashier", {"shift_id": shift_id})
    return shift


def _create_order(
    ctx: CashierContext,
    pricing: CartPricing,
    payment_method: str,
    order_type: str,
    table_number: str | None,
    shift_id: int | None,
) -> Order:
    order = Order(
        cashier_id=ctx.cashier_id,
        shift_id=shift_id,
        order_type=order_type,
        table_number=table_number,
        status=ORDER_PENDING,
        subtotal_cents=pricing.subtotal_cents,
        tax_amount_cents=pricing.tax_cents,
        discount_amount_cents=pricing.discount_cents,
        total_amount_cents=pricing.total_cents,
        payment_method=payment_method,
        payment_status=PAYMENT_UNPAID,
        created_at=utcnow(),
    )
    db.session.add(order)
    db.session.flush()
    return order


def _create_order_items(order: Order, items: list[CartItem]) -> None:
    # Prices come from the cart, not the catalog
    for item in items:
        db.session.add(OrderItem(
            order_id=order.id,
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price_cents=item.unit_price_cents,
            total_price_cents=item.line_total_cents,
            created_at=utcnow(),
        ))
    db.session.flush()


def _persisted_item_count(order_id: int) -> int:
    return db.session.query(func.count(OrderItem.id)).filter(OrderItem.order_id == order_id).scalar() or 0


def _complete_order(order: Order) -> None:
    order.status = ORDER_COMPLETED
    order.payment_status = PAYMENT_PAID
    order.completed_at = utcnow()
    db.session.flush()


def _compensating_delete(order_id: int) -> None:
    db.session.query(OrderItem).filter_by(order_id=order_id).delete(synchronize_session=False)
    db.session.query(Order).filter_by(id=order_id).delete(synchronize_session=False)
    db.session.commit()


def commit(
    cart: Cart,
    ctx: CashierContext,
    payment_method: str,
    discount_cents: int = 0,
    shift_id: int | None = None,
    order_type: str = "dine_in",
    table_number: str | None = None,
) -> CheckoutResult:
    """
    Commit a cart as a completed order.

    Stages:
        order-create -> items-create -> order-complete (one transaction)
        shift-post (separate; only when shift_id is given)

    Raises:
        EmptyCart, InvalidPaymentMethod, InvalidOrderType, InvalidDiscount,
        ShiftNotOpen: before anything is written
        CheckoutFailed: order-create / items-create / order-complete failed
            and nothing was left behind

    Returns:
        CheckoutResult; a shift-post failure is in result.warnings
    """
    if cart.is_empty:
        raise EmptyCart("Cart is empty")
    if payment_method not in PAYMENT_METHODS:
        raise InvalidPaymentMethod(
            f"Payment method must be one of {', '.join(PAYMENT_METHODS)}",
            {"payment_method": payment_method},
        )
    if order_type not in ORDER_TYPES:
        raise InvalidOrderType(
            f"Order type must be one of {', '.join(ORDER_TYPES)}",
            {"order_type": order_type},
        )

    pricing = cart.price(discount_cents)
    if shift_id is not None:
        _require_cashier_shift(ctx, shift_id)

    items = cart.items
    stage = CheckoutFailed.ORDER_CREATE
    try:
        order = _create_order(ctx, pricing, payment_method, order_type, table_number, shift_id)

        stage = CheckoutFailed.ITEMS_CREATE
        _create_order_items(order, items)
        if _persisted_item_count(order.id) != len(items):
            raise CheckoutFailed(stage, "Order items were not all written")

        stage = CheckoutFailed.ORDER_COMPLETE
        _complete_order(order)
        db.session.commit()
    except CheckoutFailed:
        db.session.rollback()
        current_app.logger.error("Checkout for cashier %s failed at %s", ctx.cashier_id, stage)
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error("Checkout for cashier %s failed at %s: %s", ctx.cashier_id, stage, exc)
        raise CheckoutFailed(stage, details={"reason": exc.__class__.__name__}) from exc

    order_id = order.id
    if _persisted_item_count(order_id) == 0:
        _compensating_delete(order_id)
        current_app.logger.error("Order %s committed without items; deleted", order_id)
        raise CheckoutFailed(CheckoutFailed.ITEMS_CREATE, "Order had no items after commit and was removed")

    current_app.logger.info(
        "Order %s completed by cashier %s: total %s via %s",
        order_id,
        ctx.cashier_id,
        format_cents(order.total_amount_cents),
        payment_method,
    )

    result = CheckoutResult(order=order)
    if shift_id is not None and order.total_amount_cents > 0:
        try:
            result.drawer_transaction = shift_service.append_checkout_transaction(
                ctx,
                shift_id,
                TX_SALE,
                order.total_amount_cents,
                order_id,
            )
        except (CashdeskError, SQLAlchemyError) as exc:
            db.session.rollback()
            warning = CheckoutFailed(
                CheckoutFailed.SHIFT_POST,
                "Sale completed but was not posted to the cash drawer",
                {"order_id": order_id, "shift_id": shift_id, "reason": str(exc)},
            )
            current_app.logger.warning(
                "Order %s not posted to shift %s; drawer will not reconcile: %s", order_id, shift_id, exc
            )
            result.warnings.append(warning)

    return result


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise OrderNotFound("Order not found", {"order_id": order_id})
    return order


def cancel_order(
    ctx: CashierContext,
    order_id: int,
    reason: str | None = None,
    shift_id: int | None = None,
) -> Order:
    """
    Cancel a completed order and refund it through the drawer.

    Only completed orders can be cancelled. When shift_id is given the
    refund is posted in the same transaction as the cancellation.
    """
    order = get_order(order_id)
    if order.status != ORDER_COMPLETED:
        raise OrderNotCancellable(
            f"Cannot cancel order with status {order.status}",
            {"order_id": order_id, "status": order.status},
        )
    if shift_id is not None:
        _require_cashier_shift(ctx, shift_id)

    try:
        with conflicts_as_errors("Order changed while cancelling; nothing was written", {"order_id": order_id}):
            locked = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
            if locked.status != ORDER_COMPLETED:
                raise OrderNotCancellable(
                    f"Cannot cancel order with status {locked.status}",
                    {"order_id": order_id, "status": locked.status},
                )

            locked.status = ORDER_CANCELLED
            locked.payment_status = PAYMENT_REFUNDED
            locked.cancelled_at = utcnow()
            locked.cancelled_by = ctx.cashier_id
            locked.cancel_reason = reason

            if shift_id is not None and locked.total_amount_cents > 0:
                shift_service.append_checkout_transaction(
                    ctx,
                    shift_id,
                    TX_REFUND,
                    locked.total_amount_cents,
                    order_id,
                    commit=False,
                )

            db.session.commit()
    except CashdeskError:
        db.session.rollback()
        raise

    current_app.logger.info("Order %s cancelled by cashier %s", order_id, ctx.cashier_id)
    return locked
