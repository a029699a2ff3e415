"""
Shift Ledger Service

WHY: Cash accountability per cashier. A shift brackets one cashier's time on
a drawer; every cash movement in between is an append-only ledger entry.

DESIGN PRINCIPLES:
- One open shift per cashier at a time (partial unique index backs the check)
- Only the cashier who opened a shift can post to it or close it
- The drawer balance is derived: opening + inflows - outflows, folded from
  the ledger on every read, never kept as a running total
- Closing is terminal; closed shifts and their entries are history
- Every append bumps the shift's sequence, which bumps its version, so a
  close racing an append loses on the version check and fails with
  ConcurrentUpdate; the caller recounts and tries again
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError

from ..context import CashierContext
from ..errors import (
    DuplicateOpenShift,
    InvalidAmount,
    InvalidTransactionType,
    ShiftNotFound,
    ShiftNotOpen,
)
from ..extensions import db
from ..models import CashDrawerTransaction, Shift
from ..models.shifts import (
    INFLOW_TYPES,
    SHIFT_CLOSED,
    SHIFT_OPEN,
    TRANSACTION_TYPES,
    TX_ADD,
    TX_REFUND,
    TX_SALE,
    TX_WITHDRAW,
)
from ..money import format_cents
from cashdesk.time_utils import utcnow
from .concurrency import conflicts_as_errors, lock_for_update


# Types a cashier may post by hand; sale/refund only come from checkout.
MANUAL_TYPES = (TX_ADD, TX_WITHDRAW)
CHECKOUT_TYPES = (TX_SALE, TX_REFUND)

DEFAULT_DESCRIPTIONS = {
    TX_ADD: "Cash added",
    TX_WITHDRAW: "Cash withdrawn",
}


def _require_cents(amount_cents, *, field: str, allow_zero: bool) -> None:
    if not isinstance(amount_cents, int) or isinstance(amount_cents, bool):
        raise InvalidAmount(f"{field} must be an integer number of cents", {"field": field})
    if allow_zero and amount_cents < 0:
        raise InvalidAmount(f"{field} cannot be negative", {"field": field})
    if not allow_zero and amount_cents <= 0:
        raise InvalidAmount(f"{field} must be positive", {"field": field})


def _load_open_shift_locked(ctx: CashierContext, shift_id: int) -> Shift:
    shift = lock_for_update(db.session.query(Shift).filter_by(id=shift_id)).first()
    if not shift or shift.status != SHIFT_OPEN:
        raise ShiftNotOpen("Shift is not open", {"shift_id": shift_id})
    if shift.cashier_id != ctx.cashier_id:
        raise ShiftNotOpen("Shift belongs to another cashier", {"shift_id": shift_id})
    return shift


def _ledger_total(shift_id: int) -> int:
    """Net cash movement for a shift: inflows minus outflows."""
    signed = case(
        (CashDrawerTransaction.transaction_type.in_(INFLOW_TYPES), CashDrawerTransaction.amount_cents),
        else_=-CashDrawerTransaction.amount_cents,
    )
    total = db.session.query(func.coalesce(func.sum(signed), 0)).filter(
        CashDrawerTransaction.shift_id == shift_id
    ).scalar()
    return int(total)


def _append_locked(
    shift: Shift,
    ctx: CashierContext,
    transaction_type: str,
    amount_cents: int,
    description: str | None,
    order_id: int | None = None,
) -> CashDrawerTransaction:
    shift.last_sequence = (shift.last_sequence or 0) + 1

    entry = CashDrawerTransaction(
        shift_id=shift.id,
        sequence=shift.last_sequence,
        transaction_type=transaction_type,
        amount_cents=amount_cents,
        description=description,
        order_id=order_id,
        created_by=ctx.cashier_id,
        created_at=utcnow(),
    )
    db.session.add(entry)
    db.session.flush()
    return entry


# =============================================================================
# SHIFT LIFECYCLE
# =============================================================================

def open_shift(ctx: CashierContext, opening_balance_cents: int, notes: str | None = None) -> Shift:
    """
    Open a new shift for the calling cashier.

    Raises:
        InvalidAmount: opening balance negative or not whole cents
        DuplicateOpenShift: cashier already has an open shift
    """
    _require_cents(opening_balance_cents, field="opening_balance", allow_zero=True)

    existing = get_open_shift(ctx.cashier_id)
    if existing:
        raise DuplicateOpenShift(
            f"Cashier already has an open shift (shift {existing.id})",
            {"shift_id": existing.id},
        )

    shift = Shift(
        cashier_id=ctx.cashier_id,
        status=SHIFT_OPEN,
        opening_balance_cents=opening_balance_cents,
        last_sequence=0,
        notes=notes,
        opened_at=utcnow(),
    )
    db.session.add(shift)

    try:
        db.session.commit()
    except IntegrityError:
        # Another open for this cashier won the race on the partial unique index
        db.session.rollback()
        raise DuplicateOpenShift("Cashier already has an open shift")

    current_app.logger.info(
        "Shift %s opened by cashier %s with %s", shift.id, ctx.cashier_id, format_cents(opening_balance_cents)
    )
    return shift


def close_shift(
    ctx: CashierContext,
    shift_id: int,
    counted_balance_cents: int,
    notes: str | None = None,
) -> Shift:
    """
    Close a shift and reconcile the counted drawer against the ledger.

    expected = current balance at the moment of closing
    difference = counted - expected (negative means cash is missing)

    IMMUTABLE: Once closed, the shift cannot be reopened or appended to.
    """
    _require_cents(counted_balance_cents, field="counted_balance", allow_zero=True)

    with conflicts_as_errors("Shift changed while closing; recount and close again", {"shift_id": shift_id}):
        shift = _load_open_shift_locked(ctx, shift_id)
        expected = shift.opening_balance_cents + _ledger_total(shift.id)

        shift.status = SHIFT_CLOSED
        shift.closed_at = utcnow()
        shift.closing_balance_cents = counted_balance_cents
        shift.expected_balance_cents = expected
        shift.difference_cents = counted_balance_cents - expected
        if notes is not None:
            shift.notes = notes

        db.session.commit()

    log = current_app.logger.warning if shift.difference_cents else current_app.logger.info
    log(
        "Shift %s closed by cashier %s: expected %s, counted %s, difference %s",
        shift.id,
        ctx.cashier_id,
        format_cents(shift.expected_balance_cents),
        format_cents(shift.closing_balance_cents),
        format_cents(shift.difference_cents),
    )
    return shift


def get_shift(shift_id: int) -> Shift:
    shift = db.session.get(Shift, shift_id)
    if not shift:
        raise ShiftNotFound("Shift not found", {"shift_id": shift_id})
    return shift


def get_open_shift(cashier_id: int) -> Shift | None:
    """Get the cashier's open shift, if any."""
    return db.session.query(Shift).filter_by(
        cashier_id=cashier_id,
        status=SHIFT_OPEN,
    ).order_by(Shift.opened_at.desc()).first()


def list_shifts(status: str | None = None, limit: int = 20) -> list[Shift]:
    query = db.session.query(Shift)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(Shift.opened_at.desc(), Shift.id.desc()).limit(limit).all()


# =============================================================================
# CASH DRAWER LEDGER
# =============================================================================

def record_transaction(
    ctx: CashierContext,
    shift_id: int,
    transaction_type: str,
    amount_cents: int,
    description: str | None = None,
) -> CashDrawerTransaction:
    """
    Record a manual cash movement (add or withdraw) on an open shift.

    sale and refund are rejected here; they are posted by checkout.
    """
    if transaction_type not in MANUAL_TYPES:
        raise InvalidTransactionType(
            f"Transaction type must be one of {', '.join(MANUAL_TYPES)}",
            {"transaction_type": transaction_type},
        )
    _require_cents(amount_cents, field="amount", allow_zero=False)

    with conflicts_as_errors("Shift is busy; the cash movement was not recorded", {"shift_id": shift_id}):
        shift = _load_open_shift_locked(ctx, shift_id)
        entry = _append_locked(
            shift,
            ctx,
            transaction_type,
            amount_cents,
            description or DEFAULT_DESCRIPTIONS[transaction_type],
        )
        db.session.commit()
    return entry


def append_checkout_transaction(
    ctx: CashierContext,
    shift_id: int,
    transaction_type: str,
    amount_cents: int,
    order_id: int,
    description: str | None = None,
    *,
    commit: bool = True,
) -> CashDrawerTransaction:
    """
    Post a sale or refund for an order into an open shift.

    With commit=False the entry is only flushed and the caller owns the
    transaction, including conflict handling.
    """
    if transaction_type not in CHECKOUT_TYPES:
        raise InvalidTransactionType(
            f"Transaction type must be one of {', '.join(CHECKOUT_TYPES)}",
            {"transaction_type": transaction_type},
        )
    _require_cents(amount_cents, field="amount", allow_zero=False)

    def _append():
        shift = _load_open_shift_locked(ctx, shift_id)
        return _append_locked(
            shift,
            ctx,
            transaction_type,
            amount_cents,
            description or f"Order {order_id} {transaction_type}",
            order_id=order_id,
        )

    if not commit:
        return _append()

    with conflicts_as_errors("Shift is busy; the order was not posted to the drawer", {"shift_id": shift_id}):
        entry = _append()
        db.session.commit()
    return entry


def current_balance(shift_id: int) -> int:
    """opening + sum(add, sale) - sum(withdraw, refund), read fresh from the ledger."""
    shift = get_shift(shift_id)
    return shift.opening_balance_cents + _ledger_total(shift.id)


def list_transactions(shift_id: int, newest_first: bool = True) -> list[CashDrawerTransaction]:
    get_shift(shift_id)
    order = CashDrawerTransaction.sequence.desc() if newest_first else CashDrawerTransaction.sequence.asc()
    return db.session.query(CashDrawerTransaction).filter_by(shift_id=shift_id).order_by(order).all()


# =============================================================================
# REPORTING
# =============================================================================

def get_shift_summary(shift_id: int) -> dict:
    """
    Get comprehensive shift summary.

    Returns:
        - Shift details
        - Totals per transaction type and entry count
        - Current (derived) balance
        - Reconciliation fields when closed
    """
    shift = get_shift(shift_id)

    rows = db.session.query(
        CashDrawerTransaction.transaction_type,
        func.count(CashDrawerTransaction.id),
        func.coalesce(func.sum(CashDrawerTransaction.amount_cents), 0),
    ).filter(
        CashDrawerTransaction.shift_id == shift_id
    ).group_by(CashDrawerTransaction.transaction_type).all()

    totals = {tx_type: 0 for tx_type in TRANSACTION_TYPES}
    count = 0
    for tx_type, tx_count, tx_sum in rows:
        totals[tx_type] = int(tx_sum)
        count += tx_count

    return {
        "shift": shift.to_dict(),
        "totals_cents": totals,
        "transaction_count": count,
        "current_balance_cents": current_balance(shift_id),
        "is_closed": shift.status == SHIFT_CLOSED,
        "difference_cents": shift.difference_cents,
    }
