# Overview: Expense lines written by stock operations that realize a consumption cost.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..extensions import db
from ..models import Expense, Location
from ..time_utils import utcnow


def record_expense(
    *,
    name: str,
    quantity: int,
    unit_cost_cents: int,
    product_id: int | None = None,
    location: Location | None = None,
    operation_id: str | None = None,
    occurred_at: Optional[datetime] = None,
) -> Expense:
    """Append an expense of quantity x unit cost. Caller owns the transaction."""
    expense = Expense(
        name=name,
        quantity=quantity,
        amount_cents=quantity * (unit_cost_cents or 0),
        product_id=product_id,
        location_id=location.id if location is not None else None,
        operation_id=operation_id,
        occurred_at=occurred_at or utcnow(),
    )
    db.session.add(expense)
    db.session.flush()
    return expense


def list_expenses(
    *,
    location_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Expense]:
    query = db.session.query(Expense)
    if location_id is not None:
        query = query.filter(Expense.location_id == location_id)
    if start is not None:
        query = query.filter(Expense.occurred_at >= start)
    if end is not None:
        query = query.filter(Expense.occurred_at <= end)
    return query.order_by(Expense.occurred_at.desc(), Expense.id.desc()).all()
