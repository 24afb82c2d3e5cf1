# Overview: Per-location stock balances; flat and per-variant adjustments with aggregate maintenance.

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..errors import ConsistencyError, InsufficientStockError, ValidationError
from ..extensions import db
from ..models import Location, LocationStock, MovementKind, Product, VariantStock
from ..models.catalog import KITCHEN, WAREHOUSE
from ..models.ledger import SINK_CONSUMPTION, SOURCE_PURCHASE
from ..time_utils import utcnow
from ..validation import VariantLine, parse_quantity, parse_variant_lines
from . import expense_service, ledger_service
from .catalog_service import get_product, resolve_location
from .concurrency import lock_for_update, run_with_retry
"""
Location Stock Invariants (authoritative)

- Every balance (flat or per variant) is >= 0 between operations.
- Flat products: LocationStock.quantity is the only source of truth.
- Variant products: LocationStock.quantity == SUM(VariantStock.quantity) for
  that (product, location). The sum is recomputed in the same unit of work as
  every variant write; a pre-existing mismatch is a ConsistencyError, never
  silently repaired.
- Stock rows are read with FOR UPDATE and carry a version column, so a
  concurrent writer makes the flush fail instead of overwriting.
- Nothing in this module commits except the public receive/consume
  operations; adjust_*, debit and credit run inside the caller's unit of work.
"""


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Movement:
    """Validated quantity to move: flat (lines is None) or per variant."""
    quantity: int
    lines: Optional[list[VariantLine]] = None

    @property
    def has_variants(self) -> bool:
        return self.lines is not None


def resolve_movement(product: Product, quantity: Any = None, variant_lines: Any = None) -> Movement:
    """
    Validate a requested quantity against the product's stock mode.

    Variant products need at least one positive line; their quantity is the
    sum of the lines (a differing explicit quantity is rejected). Flat products
    must not name variants.
    """
    lines = parse_variant_lines(variant_lines)

    if product.has_variants:
        if not lines:
            raise ValidationError(
                f"Product {product.id} has variants; variant lines are required",
                details={"product_id": product.id},
            )
        total = sum(line.quantity for line in lines)
        if quantity not in (None, ""):
            requested = parse_quantity(quantity)
            if requested != total:
                raise ValidationError(
                    f"quantity {requested} does not match the sum of variant lines ({total})",
                    details={"product_id": product.id, "quantity": requested, "variant_total": total},
                )
        return Movement(quantity=total, lines=lines)

    if lines:
        raise ValidationError(
            f"Product {product.id} has no variants; variant lines are not allowed",
            details={"product_id": product.id},
        )
    return Movement(quantity=parse_quantity(quantity))


def _load_stock(product_id: int, location_id: int, *, lock: bool = True) -> LocationStock | None:
    query = db.session.query(LocationStock).filter_by(product_id=product_id, location_id=location_id)
    if lock:
        query = lock_for_update(query)
    stock = query.first()
    if stock is not None and lock:
        lock_for_update(db.session.query(VariantStock).filter_by(location_stock_id=stock.id)).all()
    return stock


def _new_stock_row(product: Product, location: Location) -> LocationStock:
    stock = LocationStock(product_id=product.id, location_id=location.id, quantity=0)
    db.session.add(stock)
    return stock


def _find_variant(stock: LocationStock, variant_name: str) -> VariantStock | None:
    for variant in stock.variants:
        if variant.variant_name == variant_name:
            return variant
    return None


def _assert_aggregate(stock: LocationStock, location: Location) -> None:
    variant_total = sum(v.quantity for v in stock.variants)
    if stock.quantity != variant_total:
        raise ConsistencyError(
            f"Aggregate stock for product {stock.product_id} at {location.code} "
            f"is {stock.quantity} but its variants sum to {variant_total}",
            details={
                "product_id": stock.product_id,
                "location": location.code,
                "aggregate": stock.quantity,
                "variant_total": variant_total,
            },
        )


def recompute_aggregate(stock: LocationStock) -> int:
    """Set the cached flat quantity to the sum of the variant rows."""
    total = sum(v.quantity for v in stock.variants)
    stock.quantity = total
    return total


def adjust_flat(product: Product, location: Location, delta: int) -> LocationStock | None:
    """
    Add delta (may be negative) to a flat product's balance at a location.

    Raises InsufficientStockError if the result would be negative. The row is
    created on the first positive write.
    """
    if product.has_variants:
        raise ValidationError(
            f"Product {product.id} has variants; adjust each variant instead",
            details={"product_id": product.id},
        )

    stock = _load_stock(product.id, location.id)
    current = stock.quantity if stock is not None else 0
    new_quantity = current + delta
    if new_quantity < 0:
        raise InsufficientStockError(
            product_id=product.id,
            location=location.code,
            requested=-delta,
            available=current,
        )
    if stock is None:
        if delta == 0:
            return None
        stock = _new_stock_row(product, location)
    stock.quantity = new_quantity
    return stock


def adjust_variant(product: Product, location: Location, variant_name: str, delta: int) -> VariantStock | None:
    """
    Add delta to one variant's balance and recompute the location aggregate.

    A missing variant row counts as 0 and is created on the first positive
    write; the aggregate is recomputed before returning.
    """
    if not product.has_variants:
        raise ValidationError(
            f"Product {product.id} has no variants",
            details={"product_id": product.id, "variant": variant_name},
        )

    stock = _load_stock(product.id, location.id)
    if stock is None:
        if delta < 0:
            raise InsufficientStockError(
                product_id=product.id,
                location=location.code,
                variant=variant_name,
                requested=-delta,
                available=0,
            )
        if delta == 0:
            return None
        stock = _new_stock_row(product, location)

    _assert_aggregate(stock, location)

    variant = _find_variant(stock, variant_name)
    current = variant.quantity if variant is not None else 0
    new_quantity = current + delta
    if new_quantity < 0:
        raise InsufficientStockError(
            product_id=product.id,
            location=location.code,
            variant=variant_name,
            requested=-delta,
            available=current,
        )
    if variant is None:
        variant = VariantStock(variant_name=variant_name, quantity=0)
        stock.variants.append(variant)
    variant.quantity = new_quantity

    recompute_aggregate(stock)
    return variant


def check_available(product: Product, location: Location, movement: Movement) -> None:
    """
    Verify the whole movement can be debited before anything is mutated.

    Every requested variant must already exist at the location with enough
    units; the first short variant is reported.
    """
    stock = _load_stock(product.id, location.id)

    if not movement.has_variants:
        available = stock.quantity if stock is not None else 0
        if available < movement.quantity:
            raise InsufficientStockError(
                product_id=product.id,
                location=location.code,
                requested=movement.quantity,
                available=available,
            )
        return

    on_hand = stock.variant_quantities() if stock is not None else {}
    for line in movement.lines:
        available = on_hand.get(line.name, 0)
        if available < line.quantity:
            raise InsufficientStockError(
                product_id=product.id,
                location=location.code,
                variant=line.name,
                requested=line.quantity,
                available=available,
            )


def debit(product: Product, location: Location, movement: Movement) -> None:
    check_available(product, location, movement)
    if movement.has_variants:
        for line in movement.lines:
            adjust_variant(product, location, line.name, -line.quantity)
    else:
        adjust_flat(product, location, -movement.quantity)


def credit(product: Product, location: Location, movement: Movement) -> None:
    if movement.has_variants:
        for line in movement.lines:
            adjust_variant(product, location, line.name, line.quantity)
    else:
        adjust_flat(product, location, movement.quantity)


def get_balance(product: Product, location: Location) -> dict:
    stock = _load_stock(product.id, location.id, lock=False)
    return {
        "product_id": product.id,
        "location": location.code,
        "quantity": stock.quantity if stock is not None else 0,
        "variants": stock.variant_quantities() if stock is not None else {},
    }


def get_product_balances(product: Product) -> list[dict]:
    """Balances of one product at every location that has held it."""
    rows = (
        db.session.query(LocationStock)
        .filter_by(product_id=product.id)
        .join(Location, LocationStock.location_id == Location.id)
        .order_by(Location.id.asc())
        .all()
    )
    return [row.to_dict() for row in rows]


def list_location_stock(location, *, include_empty: bool = False) -> list[LocationStock]:
    location = resolve_location(location, require_active=False)
    query = (
        db.session.query(LocationStock)
        .filter(LocationStock.location_id == location.id)
        .join(Product, LocationStock.product_id == Product.id)
    )
    if not include_empty:
        query = query.filter(LocationStock.quantity > 0)
    return query.order_by(Product.name.asc()).all()


def verify_consistency() -> list[dict]:
    """
    Scan every variant-bearing stock row and report aggregate mismatches.

    Also reports variant rows left on flat products. An empty list means the
    ledger satisfies its invariants.
    """
    problems = []
    rows = (
        db.session.query(LocationStock)
        .join(Product, LocationStock.product_id == Product.id)
        .order_by(LocationStock.id.asc())
        .all()
    )
    for stock in rows:
        variant_total = sum(v.quantity for v in stock.variants)
        location_code = stock.location.code if stock.location else None
        if stock.product.has_variants and stock.quantity != variant_total:
            problems.append({
                "product_id": stock.product_id,
                "location": location_code,
                "aggregate": stock.quantity,
                "variant_total": variant_total,
            })
        elif not stock.product.has_variants and stock.variants:
            problems.append({
                "product_id": stock.product_id,
                "location": location_code,
                "aggregate": stock.quantity,
                "variant_total": variant_total,
                "reason": "flat product has variant rows",
            })
    return problems


def _receive_stock_locked(
    product: Product,
    location: Location,
    movement: Movement,
    *,
    operation_id: str,
    note: str | None = None,
):
    """Core intake logic without retry or commit; used by product creation too."""
    credit(product, location, movement)
    return ledger_service.record(
        product_id=product.id,
        kind=MovementKind.ENTREGA,
        source=SOURCE_PURCHASE,
        destination=location.code,
        quantity=movement.quantity,
        operation_id=operation_id,
        variant_lines=movement.lines,
        note=note,
    )


def receive_stock(
    product_id: int,
    quantity: Any = None,
    variant_lines: Any = None,
    *,
    location=WAREHOUSE,
    note: str | None = None,
) -> dict:
    """
    Credit purchased stock (default: into the warehouse).

    Appends one ENTREGA ledger row with source COMPRA.
    """
    def _op():
        product = get_product(product_id, lock=True)
        target = resolve_location(location)
        movement = resolve_movement(product, quantity, variant_lines)
        tx = _receive_stock_locked(
            product,
            target,
            movement,
            operation_id=ledger_service.new_operation_id(),
            note=note,
        )
        return {
            "transaction": tx.to_dict(),
            "balance": get_balance(product, target),
        }

    result = run_with_retry(_op)
    logger.info(
        "Received %s units of product %s into %s",
        result["transaction"]["quantity"], product_id, result["balance"]["location"],
    )
    return result


def consume_kitchen_stock(product_id: int, quantity: Any = None, variant_lines: Any = None) -> dict:
    """
    Use up kitchen stock (ingredients consumed while cooking).

    Debits the kitchen, appends one BAJA row towards CONSUMO and records the
    purchase cost of the consumed units as an expense, in one unit of work.
    """
    def _op():
        product = get_product(product_id, lock=True)
        kitchen = resolve_location(KITCHEN)
        movement = resolve_movement(product, quantity, variant_lines)
        operation_id = ledger_service.new_operation_id()
        now = utcnow()

        debit(product, kitchen, movement)
        tx = ledger_service.record(
            product_id=product.id,
            kind=MovementKind.BAJA,
            source=kitchen.code,
            destination=SINK_CONSUMPTION,
            quantity=movement.quantity,
            operation_id=operation_id,
            variant_lines=movement.lines,
            occurred_at=now,
        )
        expense = expense_service.record_expense(
            name=f"Consumo de {product.name} en Cocina",
            quantity=movement.quantity,
            unit_cost_cents=product.cost_cents,
            product_id=product.id,
            location=kitchen,
            operation_id=operation_id,
            occurred_at=now,
        )
        return {
            "transaction": tx.to_dict(),
            "expense": expense.to_dict(),
            "balance": get_balance(product, kitchen),
        }

    result = run_with_retry(_op)
    logger.info("Consumed %s units of product %s in kitchen", result["transaction"]["quantity"], product_id)
    return result
