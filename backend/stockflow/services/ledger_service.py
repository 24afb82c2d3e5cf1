# Overview: Service-layer operations for the stock transaction ledger; append, query and product cascade.

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import or_, select

from ..errors import ValidationError
from ..extensions import db
from ..models import MovementKind, StockTransaction, StockTransactionVariant
from ..time_utils import utcnow
from ..validation import VariantLine
from .catalog_service import get_product
"""
Stock Ledger Invariants (authoritative)

- Append-only: rows are never updated once written.
- Rows are written inside the same DB transaction as the stock mutation they record.
- A transfer between two locations appends exactly two rows, BAJA then ENTREGA,
  with the same operation_id, quantity and variant breakdown.
- Reads are newest first (occurred_at desc, id desc); date filters are
  inclusive on both ends.
- Deletion happens only through delete_by_product (product removal) and
  delete_transaction (reversal of the shrinkage row that owns it).
"""


def new_operation_id() -> str:
    return str(uuid.uuid4())


def coerce_kind(kind) -> MovementKind:
    """Accept a MovementKind or its string value ('Baja' / 'Entrega', any case)."""
    if isinstance(kind, MovementKind):
        return kind
    if isinstance(kind, str):
        for candidate in MovementKind:
            if candidate.value.lower() == kind.strip().lower() or candidate.name == kind.strip().upper():
                return candidate
    raise ValidationError(
        f"kind must be one of {', '.join(k.value for k in MovementKind)}",
        details={"kind": kind if isinstance(kind, str) else repr(kind)},
    )


def record(
    *,
    product_id: int,
    kind: MovementKind,
    source: str,
    destination: str,
    quantity: int,
    operation_id: str,
    variant_lines: Optional[Iterable[VariantLine]] = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
) -> StockTransaction:
    """
    Append one ledger row (and its variant breakdown).

    - No stock logic here; callers mutate balances.
    - Only referential check: the product must exist.
    """
    get_product(product_id)

    tx = StockTransaction(
        product_id=product_id,
        kind=coerce_kind(kind),
        source=source,
        destination=destination,
        quantity=quantity,
        operation_id=operation_id,
        occurred_at=occurred_at or utcnow(),
        note=note,
    )
    for line in variant_lines or ():
        tx.variants.append(StockTransactionVariant(variant_name=line.name, quantity=line.quantity))

    db.session.add(tx)
    db.session.flush()  # ensures tx.id is assigned without committing
    return tx


def record_transfer_pair(
    *,
    product_id: int,
    source: str,
    destination: str,
    quantity: int,
    operation_id: str,
    variant_lines: Optional[list[VariantLine]] = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
) -> tuple[StockTransaction, StockTransaction]:
    """Append the BAJA (debit) and ENTREGA (credit) legs of one transfer."""
    occurred_at = occurred_at or utcnow()
    legs = []
    for kind in (MovementKind.BAJA, MovementKind.ENTREGA):
        legs.append(
            record(
                product_id=product_id,
                kind=kind,
                source=source,
                destination=destination,
                quantity=quantity,
                operation_id=operation_id,
                variant_lines=variant_lines,
                occurred_at=occurred_at,
                note=note,
            )
        )
    return legs[0], legs[1]


def list_transactions(
    *,
    product_id: int | None = None,
    location: str | None = None,
    kind=None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = None,
) -> list[StockTransaction]:
    """
    Query the ledger, newest first.

    location matches either endpoint ("desde" or "hacia"); kind is checked
    against MovementKind so an unknown value is a ValidationError rather than
    an empty result.
    """
    query = db.session.query(StockTransaction)
    if product_id is not None:
        query = query.filter(StockTransaction.product_id == product_id)
    if location:
        code = location.strip().upper()
        query = query.filter(or_(StockTransaction.source == code, StockTransaction.destination == code))
    if kind is not None:
        query = query.filter(StockTransaction.kind == coerce_kind(kind))
    if start is not None:
        query = query.filter(StockTransaction.occurred_at >= start)
    if end is not None:
        query = query.filter(StockTransaction.occurred_at <= end)

    query = query.order_by(StockTransaction.occurred_at.desc(), StockTransaction.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def list_operation(operation_id: str) -> list[StockTransaction]:
    return (
        db.session.query(StockTransaction)
        .filter_by(operation_id=operation_id)
        .order_by(StockTransaction.id.asc())
        .all()
    )


def delete_transaction(tx: StockTransaction) -> None:
    db.session.delete(tx)


def delete_by_product(product_id: int) -> int:
    """
    Remove every ledger row for a product, variant breakdown first.

    Used only when the product itself is deleted. Returns the number of
    transaction rows removed.
    """
    tx_ids = select(StockTransaction.id).where(StockTransaction.product_id == product_id)
    db.session.query(StockTransactionVariant).filter(
        StockTransactionVariant.transaction_id.in_(tx_ids)
    ).delete(synchronize_session=False)
    removed = db.session.query(StockTransaction).filter(
        StockTransaction.product_id == product_id
    ).delete(synchronize_session=False)
    return removed
