# backend/stockflow/services/shrinkage_service.py
"""
Shrinkage ("merma") service.

WHY: Stock that is lost, spoiled or broken must leave the balances without
pretending it went anywhere. A loss debits one location, appends a single
BAJA row towards the MERMA sink and keeps a Shrinkage record so the loss can
be reported and, if it was entered by mistake, reversed.

OWNERSHIP:
- attributed_to names the location that held the lost units.
- When no owner is given, SHRINKAGE_FALLBACK_LOCATION decides which stock
  is debited (warehouse by default).

REVERSAL:
Deleting a loss re-credits exactly the recorded quantity (or variant lines)
to the same location and removes both the Shrinkage row and its ledger row.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from flask import current_app

from stockflow.errors import ConsistencyError, NotFoundError
from stockflow.extensions import db
from stockflow.models import Location, MovementKind, Shrinkage, ShrinkageVariant
from stockflow.models.catalog import WAREHOUSE
from stockflow.models.ledger import SINK_SHRINKAGE
from stockflow.services import ledger_service
from stockflow.services.catalog_service import get_product, resolve_location
from stockflow.services.concurrency import lock_for_update, run_with_retry
from stockflow.services.stock_service import Movement, credit, debit, resolve_movement
from stockflow.time_utils import utcnow
from stockflow.validation import VariantLine, parse_optional_datetime


logger = logging.getLogger(__name__)


def resolve_shrinkage_location(attributed_to=None) -> Location:
    """Location whose stock a loss debits; falls back to the configured owner."""
    if attributed_to is None or (isinstance(attributed_to, str) and not attributed_to.strip()):
        attributed_to = current_app.config.get("SHRINKAGE_FALLBACK_LOCATION", WAREHOUSE)
    return resolve_location(attributed_to)


def get_loss(loss_id: int, *, lock: bool = False) -> Shrinkage:
    query = db.session.query(Shrinkage).filter_by(id=loss_id)
    if lock:
        query = lock_for_update(query)
    loss = query.first()
    if loss is None:
        raise NotFoundError(f"Shrinkage record {loss_id} not found", details={"loss_id": loss_id})
    return loss


def _recorded_movement(loss: Shrinkage) -> Movement:
    recorded_with_variants = bool(loss.variants)
    if recorded_with_variants != loss.product.has_variants:
        raise ConsistencyError(
            f"Shrinkage record {loss.id} no longer matches the stock mode of product {loss.product_id}",
            details={"loss_id": loss.id, "product_id": loss.product_id},
        )
    if recorded_with_variants:
        lines = [VariantLine(name=v.variant_name, quantity=v.quantity) for v in loss.variants]
        return Movement(quantity=loss.quantity, lines=lines)
    return Movement(quantity=loss.quantity)


def record_loss(
    product_id: int,
    quantity: Any = None,
    attributed_to=None,
    variant_lines: Any = None,
    occurred_at: Optional[datetime] = None,
) -> Shrinkage:
    """
    Write off stock as lost.

    Same validation as a transfer (quantity > 0, variant mode, every variant
    available at the owner) but only the debit side is applied.

    Raises:
        NotFoundError: unknown product or location
        ValidationError: bad quantity or variant mode
        InsufficientStockError: owner balance (or a named variant) too low
    """
    occurred_at = parse_optional_datetime(occurred_at, "occurred_at")

    def _op():
        product = get_product(product_id, lock=True)
        location = resolve_shrinkage_location(attributed_to)
        movement = resolve_movement(product, quantity, variant_lines)
        when = occurred_at or utcnow()

        debit(product, location, movement)
        tx = ledger_service.record(
            product_id=product.id,
            kind=MovementKind.BAJA,
            source=location.code,
            destination=SINK_SHRINKAGE,
            quantity=movement.quantity,
            operation_id=ledger_service.new_operation_id(),
            variant_lines=movement.lines,
            occurred_at=when,
        )

        loss = Shrinkage(
            product_id=product.id,
            location_id=location.id,
            attributed_to=location.code,
            quantity=movement.quantity,
            transaction_id=tx.id,
            occurred_at=when,
        )
        for line in movement.lines or ():
            loss.variants.append(ShrinkageVariant(variant_name=line.name, quantity=line.quantity))
        db.session.add(loss)
        db.session.flush()
        return loss

    loss = run_with_retry(_op)
    logger.info(
        "Recorded loss %s: %s units of product %s at %s",
        loss.id, loss.quantity, product_id, loss.attributed_to,
    )
    return loss


def reverse_loss(loss_id: int) -> dict:
    """
    Undo a recorded loss: re-credit the owner and delete the record.

    Returns the deleted record's data. A second call for the same id raises
    NotFoundError because the record no longer exists.
    """
    def _op():
        loss = get_loss(loss_id, lock=True)
        product = get_product(loss.product_id, lock=True)
        location = loss.location
        snapshot = loss.to_dict()

        credit(product, location, _recorded_movement(loss))

        tx = loss.transaction
        db.session.delete(loss)
        db.session.flush()
        if tx is not None:
            ledger_service.delete_transaction(tx)
        return snapshot

    snapshot = run_with_retry(_op)
    logger.info("Reversed loss %s (%s units back to %s)", loss_id, snapshot["quantity"], snapshot["location"])
    return snapshot


def list_losses(
    *,
    location=None,
    product_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Shrinkage]:
    """Shrinkage records, newest first; date bounds are inclusive."""
    query = db.session.query(Shrinkage)
    if location:
        query = query.filter(Shrinkage.location_id == resolve_location(location, require_active=False).id)
    if product_id is not None:
        query = query.filter(Shrinkage.product_id == product_id)
    if start is not None:
        query = query.filter(Shrinkage.occurred_at >= start)
    if end is not None:
        query = query.filter(Shrinkage.occurred_at <= end)
    return query.order_by(Shrinkage.occurred_at.desc(), Shrinkage.id.desc()).all()
