# Overview: Read-only rollups over committed stock, ledger, sales, shrinkage and expense rows.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from stockflow.errors import ValidationError
from stockflow.extensions import db
from stockflow.models import (
    Expense,
    Location,
    LocationStock,
    Product,
    Sale,
    Shrinkage,
    StockTransaction,
)
from stockflow.time_utils import parse_iso_datetime, to_utc_z


def _parse_range(start, end) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if isinstance(start, str) else start
        end_dt = parse_iso_datetime(end, end_of_day=True) if isinstance(end, str) else end
    except ValueError:
        raise ValidationError("start and end must be ISO-8601 dates")
    if start_dt and end_dt and start_dt > end_dt:
        raise ValidationError("start must be before end")
    return start_dt, end_dt


def _in_range(query, column, start_dt, end_dt):
    if start_dt:
        query = query.filter(column >= start_dt)
    if end_dt:
        query = query.filter(column <= end_dt)
    return query


def stock_by_location() -> list[dict]:
    """Current units and stock value (at cost) per location."""
    rows = (
        db.session.query(
            Location.code.label("location"),
            func.coalesce(func.sum(LocationStock.quantity), 0).label("units"),
            func.coalesce(func.sum(LocationStock.quantity * Product.cost_cents), 0).label("value_cents"),
        )
        .outerjoin(LocationStock, LocationStock.location_id == Location.id)
        .outerjoin(Product, LocationStock.product_id == Product.id)
        .group_by(Location.id, Location.code)
        .order_by(Location.id.asc())
        .all()
    )
    return [
        {"location": row.location, "units": int(row.units), "value_cents": int(row.value_cents)}
        for row in rows
    ]


def transfer_volume(start_dt=None, end_dt=None) -> list[dict]:
    query = db.session.query(
        StockTransaction.kind,
        func.count(StockTransaction.id).label("rows"),
        func.coalesce(func.sum(StockTransaction.quantity), 0).label("units"),
    )
    query = _in_range(query, StockTransaction.occurred_at, start_dt, end_dt)
    rows = query.group_by(StockTransaction.kind).all()
    return sorted(
        ({"kind": row.kind.value, "rows": row.rows, "units": int(row.units)} for row in rows),
        key=lambda item: item["kind"],
    )


def sales_totals(start_dt=None, end_dt=None) -> dict:
    query = db.session.query(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.quantity), 0),
        func.coalesce(func.sum(Sale.total_cents), 0),
    )
    count, units, total = _in_range(query, Sale.sold_at, start_dt, end_dt).one()
    return {"count": count, "units": int(units), "total_cents": int(total)}


def shrinkage_totals(start_dt=None, end_dt=None) -> dict:
    query = db.session.query(
        func.count(Shrinkage.id),
        func.coalesce(func.sum(Shrinkage.quantity), 0),
        func.coalesce(func.sum(Shrinkage.quantity * Product.cost_cents), 0),
    ).join(Product, Shrinkage.product_id == Product.id)
    count, units, value = _in_range(query, Shrinkage.occurred_at, start_dt, end_dt).one()
    return {"count": count, "units": int(units), "value_cents": int(value)}


def expense_totals(start_dt=None, end_dt=None) -> dict:
    query = db.session.query(
        func.count(Expense.id),
        func.coalesce(func.sum(Expense.amount_cents), 0),
    )
    count, total = _in_range(query, Expense.occurred_at, start_dt, end_dt).one()
    return {"count": count, "total_cents": int(total)}


def summary(start=None, end=None) -> dict:
    """
    One-shot overview for a date range (inclusive; either bound optional).

    Stock figures are current balances and ignore the range.
    """
    start_dt, end_dt = _parse_range(start, end)
    return {
        "start": to_utc_z(start_dt) if start_dt else None,
        "end": to_utc_z(end_dt) if end_dt else None,
        "stock": stock_by_location(),
        "transfers": transfer_volume(start_dt, end_dt),
        "sales": sales_totals(start_dt, end_dt),
        "shrinkage": shrinkage_totals(start_dt, end_dt),
        "expenses": expense_totals(start_dt, end_dt),
    }
