"""
Sales ledger service.

WHY: A sale debits the seller's stock like the source leg of a transfer, but
it is kept in its own ledger (Sale rows) rather than StockTransaction. Every
sale stores the exact quantity and variant lines it took so that deleting or
editing it puts back precisely what it removed.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from ..errors import ConsistencyError, NotFoundError
from ..extensions import db
from ..models import Location, Product, Sale, SaleVariant
from ..time_utils import utcnow
from ..validation import VariantLine, parse_optional_datetime, parse_price_cents
from .catalog_service import get_product, resolve_location
from .concurrency import lock_for_update, run_with_retry
from .stock_service import Movement, credit, debit, resolve_movement


logger = logging.getLogger(__name__)

# Sentinel for "keep the current value" in update_sale
_UNCHANGED = object()


def get_sale(sale_id: int, *, lock: bool = False) -> Sale:
    query = db.session.query(Sale).filter_by(id=sale_id)
    if lock:
        query = lock_for_update(query)
    sale = query.first()
    if sale is None:
        raise NotFoundError(f"Sale {sale_id} not found", details={"sale_id": sale_id})
    return sale


def _sold_movement(sale: Sale) -> Movement:
    if bool(sale.variants) != sale.product.has_variants:
        raise ConsistencyError(
            f"Sale {sale.id} no longer matches the stock mode of product {sale.product_id}",
            details={"sale_id": sale.id, "product_id": sale.product_id},
        )
    if sale.variants:
        lines = [VariantLine(name=v.variant_name, quantity=v.quantity) for v in sale.variants]
        return Movement(quantity=sale.quantity, lines=lines)
    return Movement(quantity=sale.quantity)


def _apply_sale(
    sale: Sale,
    product: Product,
    location: Location,
    movement: Movement,
    unit_price_cents: int,
    sold_at: datetime,
) -> Sale:
    """Debit the seller and write the sale fields and variant children."""
    debit(product, location, movement)

    sale.product_id = product.id
    sale.location_id = location.id
    sale.quantity = movement.quantity
    sale.unit_price_cents = unit_price_cents
    sale.total_cents = movement.quantity * unit_price_cents
    sale.sold_at = sold_at
    sale.variants = [
        SaleVariant(variant_name=line.name, quantity=line.quantity)
        for line in (movement.lines or [])
    ]
    db.session.add(sale)
    db.session.flush()
    return sale


def _reverse_sale_locked(sale: Sale) -> None:
    """Re-credit exactly what the sale debited. Caller owns the transaction."""
    product = get_product(sale.product_id, lock=True)
    credit(product, sale.location, _sold_movement(sale))


def record_sale(
    product_id: int,
    quantity: Any = None,
    seller_location=None,
    unit_price_cents: Any = None,
    variant_lines: Any = None,
    sold_at: Optional[datetime] = None,
) -> Sale:
    """
    Record a sale at a seller location (the counter or an individual seller).

    The unit price defaults to the product's current price; the snapshot is
    stored on the sale and never follows later catalog edits.
    """
    price = parse_price_cents(unit_price_cents, "unit_price_cents") if unit_price_cents not in (None, "") else None
    sold_at = parse_optional_datetime(sold_at, "sold_at")

    def _op():
        product = get_product(product_id, lock=True)
        location = resolve_location(seller_location)
        movement = resolve_movement(product, quantity, variant_lines)
        return _apply_sale(
            Sale(),
            product,
            location,
            movement,
            price if price is not None else product.price_cents,
            sold_at or utcnow(),
        )

    sale = run_with_retry(_op)
    logger.info(
        "Recorded sale %s: %s units of product %s at %s",
        sale.id, sale.quantity, product_id, sale.location.code,
    )
    return sale


def reverse_sale(sale_id: int) -> dict:
    """
    Delete a sale and put its stock back at the seller location.

    Returns the deleted sale's data. Reversing the same id twice raises
    NotFoundError; stock is never credited twice.
    """
    def _op():
        sale = get_sale(sale_id, lock=True)
        snapshot = sale.to_dict()
        _reverse_sale_locked(sale)
        db.session.delete(sale)
        db.session.flush()
        return snapshot

    snapshot = run_with_retry(_op)
    logger.info("Reversed sale %s (%s units back to %s)", sale_id, snapshot["quantity"], snapshot["location"])
    return snapshot


def update_sale(
    sale_id: int,
    quantity: Any = _UNCHANGED,
    seller_location: Any = _UNCHANGED,
    unit_price_cents: Any = _UNCHANGED,
    variant_lines: Any = _UNCHANGED,
    sold_at: Any = _UNCHANGED,
) -> Sale:
    """
    Edit a sale in place: reverse the old state, then apply the new one.

    Both halves run in one unit of work, so if the new state cannot be applied
    (e.g. insufficient stock) the original sale and balances are untouched.
    Omitted fields keep their recorded values, including the price snapshot.
    """
    price = _UNCHANGED
    if unit_price_cents is not _UNCHANGED:
        price = parse_price_cents(unit_price_cents, "unit_price_cents")
    if sold_at is not _UNCHANGED:
        sold_at = parse_optional_datetime(sold_at, "sold_at")

    def _op():
        sale = get_sale(sale_id, lock=True)
        product = get_product(sale.product_id, lock=True)

        new_location = sale.location if seller_location is _UNCHANGED else resolve_location(seller_location)
        if product.has_variants:
            lines = sale.variant_lines() if variant_lines is _UNCHANGED else variant_lines
            qty = None if quantity is _UNCHANGED else quantity
        else:
            lines = None if variant_lines is _UNCHANGED else variant_lines
            qty = sale.quantity if quantity is _UNCHANGED else quantity
        movement = resolve_movement(product, qty, lines)

        _reverse_sale_locked(sale)
        return _apply_sale(
            sale,
            product,
            new_location,
            movement,
            sale.unit_price_cents if price is _UNCHANGED else price,
            sale.sold_at if sold_at is _UNCHANGED or sold_at is None else sold_at,
        )

    sale = run_with_retry(_op)
    logger.info("Updated sale %s: now %s units at %s", sale.id, sale.quantity, sale.location.code)
    return sale


def list_sales(
    *,
    location=None,
    product_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Sale]:
    """Sales newest first; date bounds are inclusive."""
    query = db.session.query(Sale)
    if location:
        query = query.filter(Sale.location_id == resolve_location(location, require_active=False).id)
    if product_id is not None:
        query = query.filter(Sale.product_id == product_id)
    if start is not None:
        query = query.filter(Sale.sold_at >= start)
    if end is not None:
        query = query.filter(Sale.sold_at <= end)
    return query.order_by(Sale.sold_at.desc(), Sale.id.desc()).all()
