from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from cashdesk.time_utils import to_utc_z


SHIFT_OPEN = "open"
SHIFT_CLOSED = "closed"

TX_ADD = "add"
TX_WITHDRAW = "withdraw"
TX_SALE = "sale"
TX_REFUND = "refund"

TRANSACTION_TYPES = (TX_ADD, TX_WITHDRAW, TX_SALE, TX_REFUND)
INFLOW_TYPES = (TX_ADD, TX_SALE)
OUTFLOW_TYPES = (TX_WITHDRAW, TX_REFUND)


class Shift(db.Model):
    """
    Cashier shift over a cash drawer.

    LIFECYCLE:
    - open: drawer is live, transactions may be appended
    - closed: counted, reconciled and immutable

    The drawer balance is never stored while the shift is open; it is folded
    from cash_drawer_transactions. expected/closing/difference are written
    once, at close.

    At most one open shift per cashier, enforced by a partial unique index so
    concurrent opens cannot both insert.
    """
    __tablename__ = "shifts"
    __table_args__ = (
        db.Index(
            "uq_shifts_one_open_per_cashier",
            "cashier_id",
            unique=True,
            sqlite_where=db.text("status = 'open'"),
            postgresql_where=db.text("status = 'open'"),
        ),
        db.CheckConstraint("opening_balance_cents >= 0", name="ck_shifts_opening_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cashier_id = db.Column(db.Integer, nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=SHIFT_OPEN, index=True)  # open, closed

    # Cash tracking (all amounts in cents)
    opening_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    closing_balance_cents = db.Column(db.Integer, nullable=True)  # counted at close
    expected_balance_cents = db.Column(db.Integer, nullable=True)  # folded from the log at close
    difference_cents = db.Column(db.Integer, nullable=True)  # closing - expected

    # Highest transaction sequence appended so far
    last_sequence = db.Column(db.Integer, nullable=False, default=0)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_open(self) -> bool:
        return self.status == SHIFT_OPEN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cashier_id": self.cashier_id,
            "status": self.status,
            "opening_balance_cents": self.opening_balance_cents,
            "closing_balance_cents": self.closing_balance_cents,
            "expected_balance_cents": self.expected_balance_cents,
            "difference_cents": self.difference_cents,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "notes": self.notes,
            "version_id": self.version_id,
        }


class CashDrawerTransaction(db.Model):
    """
    Append-only ledger of cash movements within a shift.

    TRANSACTION TYPES:
    - add: cash put into the drawer (float top-up)
    - withdraw: cash taken out (drop to safe, petty cash)
    - sale: cash received for a completed order (checkout only)
    - refund: cash returned for a cancelled order (checkout only)

    amount_cents is always positive; direction comes from the type.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "cash_drawer_transactions"
    __table_args__ = (
        db.UniqueConstraint("shift_id", "sequence", name="uq_drawer_txns_shift_sequence"),
        db.CheckConstraint("amount_cents > 0", name="ck_drawer_txns_amount_positive"),
        db.Index("ix_drawer_txns_shift_created", "shift_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=False, index=True)
    sequence = db.Column(db.Integer, nullable=False)

    transaction_type = db.Column(db.String(16), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    # Order a sale/refund came from
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)

    created_by = db.Column(db.Integer, nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    shift = db.relationship("Shift", backref=db.backref("transactions", lazy=True))

    @property
    def signed_amount_cents(self) -> int:
        if self.transaction_type in OUTFLOW_TYPES:
            return -self.amount_cents
        return self.amount_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "sequence": self.sequence,
            "transaction_type": self.transaction_type,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "order_id": self.order_id,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(CashDrawerTransaction, "before_update")
def _reject_transaction_update(mapper, connection, target):
    raise ValueError("Cash drawer transactions are append-only and cannot be modified")


@event.listens_for(CashDrawerTransaction, "before_delete")
def _reject_transaction_delete(mapper, connection, target):
    raise ValueError("Cash drawer transactions are append-only and cannot be deleted")
