# Overview: Explicit caller context threaded into ledger and checkout calls.

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CashierContext:
    """
    Who is acting on the drawer.

    Passed explicitly into every ledger and checkout call instead of being
    read from ambient session state.
    """
    cashier_id: int
    display_name: str | None = None
