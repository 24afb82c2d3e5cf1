# backend/stockflow/services/transfer_service.py
"""
Stock transfer service.

WHY: Moves stock between operational locations (warehouse, kitchen, counter,
sellers) as one atomic unit, so balances and the audit ledger can never
disagree about where units are.

FLOW (single unit of work):
1. Load and lock the product; validate the requested quantity against its
   stock mode (flat or per variant).
2. Re-read the source balance under lock; any short variant aborts the whole
   transfer before a single row changes.
3. Debit the source, credit (or create) the destination, recompute the
   aggregate at both ends for variant products.
4. Append the BAJA and ENTREGA ledger legs with the same variant breakdown.
5. Commit. Kitchen -> warehouse returns also record the consumed cost as an
   expense inside the same commit.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from stockflow.errors import ValidationError
from stockflow.models import Expense, Location, Product, StockTransaction
from stockflow.models.catalog import COUNTER, KITCHEN, WAREHOUSE
from stockflow.services import expense_service, ledger_service
from stockflow.services.catalog_service import get_product, resolve_location
from stockflow.services.concurrency import run_with_retry
from stockflow.services.stock_service import Movement, credit, debit, get_balance, resolve_movement
from stockflow.time_utils import utcnow


logger = logging.getLogger(__name__)


@dataclass
class TransferResult:
    """Outcome of a committed transfer: both ledger legs and both new balances."""
    operation_id: str
    product: Product
    source: Location
    destination: Location
    movement: Movement
    baja: StockTransaction
    entrega: StockTransaction
    source_balance: dict
    destination_balance: dict
    expense: Optional[Expense] = None

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "product_id": self.product.id,
            "product_name": self.product.name,
            "source": self.source.code,
            "destination": self.destination.code,
            "quantity": self.movement.quantity,
            "variants": [
                {"name": line.name, "quantity": line.quantity}
                for line in (self.movement.lines or [])
            ],
            "transactions": {
                "baja": self.baja.to_dict(),
                "entrega": self.entrega.to_dict(),
            },
            "balances": {
                "source": self.source_balance,
                "destination": self.destination_balance,
            },
            "expense": self.expense.to_dict() if self.expense is not None else None,
        }


def _transfer_locked(
    product: Product,
    source: Location,
    destination: Location,
    movement: Movement,
    *,
    operation_id: str,
    note: str | None = None,
) -> TransferResult:
    """Core transfer logic without retry or commit."""
    if source.id == destination.id:
        raise ValidationError(
            "Cannot transfer to the same location",
            details={"location": source.code},
        )

    debit(product, source, movement)
    credit(product, destination, movement)

    now = utcnow()
    baja, entrega = ledger_service.record_transfer_pair(
        product_id=product.id,
        source=source.code,
        destination=destination.code,
        quantity=movement.quantity,
        operation_id=operation_id,
        variant_lines=movement.lines,
        occurred_at=now,
        note=note,
    )

    expense = None
    if source.code == KITCHEN and destination.code == WAREHOUSE:
        expense = expense_service.record_expense(
            name=f"Devolución {product.name} a Almacén",
            quantity=movement.quantity,
            unit_cost_cents=product.cost_cents,
            product_id=product.id,
            location=source,
            operation_id=operation_id,
            occurred_at=now,
        )

    return TransferResult(
        operation_id=operation_id,
        product=product,
        source=source,
        destination=destination,
        movement=movement,
        baja=baja,
        entrega=entrega,
        source_balance=get_balance(product, source),
        destination_balance=get_balance(product, destination),
        expense=expense,
    )


def transfer(
    product_id: int,
    quantity: Any = None,
    source=None,
    destination=None,
    variant_lines: Any = None,
    *,
    note: str | None = None,
) -> TransferResult:
    """
    Move stock of one product from source to destination.

    Args:
        product_id: Product to move
        quantity: Units to move (flat products; optional cross-check for variants)
        source: Source location code (or Location)
        destination: Destination location code (or Location)
        variant_lines: [(name, quantity), ...] for variant products
        note: Optional free text stored on both ledger legs

    Returns:
        TransferResult: ledger legs and updated balances

    Raises:
        NotFoundError: unknown product or location
        ValidationError: bad quantity, wrong variant mode, same endpoints
        InsufficientStockError: source balance (or a named variant) too low
    """
    if source is None or destination is None:
        raise ValidationError("source and destination are required")

    def _op():
        product = get_product(product_id, lock=True)
        source_loc = resolve_location(source)
        destination_loc = resolve_location(destination)
        movement = resolve_movement(product, quantity, variant_lines)
        return _transfer_locked(
            product,
            source_loc,
            destination_loc,
            movement,
            operation_id=ledger_service.new_operation_id(),
            note=note,
        )

    result = run_with_retry(_op)
    logger.info(
        "Transferred %s units of product %s from %s to %s (operation %s)",
        result.movement.quantity, product_id, result.source.code, result.destination.code, result.operation_id,
    )
    return result


def send_to_kitchen(product_id: int, quantity: Any = None, variant_lines: Any = None) -> TransferResult:
    """Warehouse -> kitchen."""
    return transfer(product_id, quantity, WAREHOUSE, KITCHEN, variant_lines)


def send_to_counter(product_id: int, quantity: Any = None, variant_lines: Any = None) -> TransferResult:
    """Warehouse -> counter."""
    return transfer(product_id, quantity, WAREHOUSE, COUNTER, variant_lines)


def send_kitchen_to_counter(product_id: int, quantity: Any = None, variant_lines: Any = None) -> TransferResult:
    return transfer(product_id, quantity, KITCHEN, COUNTER, variant_lines)


def send_counter_to_kitchen(product_id: int, quantity: Any = None, variant_lines: Any = None) -> TransferResult:
    return transfer(product_id, quantity, COUNTER, KITCHEN, variant_lines)


def return_counter_to_warehouse(product_id: int, quantity: Any = None, variant_lines: Any = None) -> TransferResult:
    """Counter -> warehouse (unsold stock going back); no expense."""
    return transfer(product_id, quantity, COUNTER, WAREHOUSE, variant_lines)


def return_kitchen_to_warehouse(product_id: int, quantity: Any = None, variant_lines: Any = None) -> TransferResult:
    """Kitchen -> warehouse; books the returned units as an expense."""
    return transfer(product_id, quantity, KITCHEN, WAREHOUSE, variant_lines)


DIRECTIONS = {
    "almacen-cocina": send_to_kitchen,
    "almacen-cafeteria": send_to_counter,
    "cocina-cafeteria": send_kitchen_to_counter,
    "cafeteria-cocina": send_counter_to_kitchen,
    "cafeteria-almacen": return_counter_to_warehouse,
    "cocina-almacen": return_kitchen_to_warehouse,
}


def transfer_by_direction(direction: str, product_id: int, quantity: Any = None, variant_lines: Any = None) -> TransferResult:
    handler = DIRECTIONS.get((direction or "").strip().lower())
    if handler is None:
        raise ValidationError(
            f"Unknown transfer direction {direction!r}",
            details={"allowed": sorted(DIRECTIONS)},
        )
    return handler(product_id, quantity, variant_lines)
