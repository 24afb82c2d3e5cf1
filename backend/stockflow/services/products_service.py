# backend/stockflow/services/products_service.py
"""
Product catalog writes.

- create_product may take initial stock, received into the warehouse in the
  same unit of work (one ENTREGA row from COMPRA).
- update_product only touches catalog fields; stock moves through the stock,
  transfer, sales and shrinkage services.
- delete_product is a hard delete that cascades every row that references
  the product: losses, sales, ledger rows, stock rows, add-ons and product
  expenses.
- Add-ons are priced extras listed with a product; replace_addons swaps the
  whole list at once.
"""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select

from ..errors import ValidationError
from ..extensions import db
from ..models import (
    Expense,
    LocationStock,
    Product,
    ProductAddon,
    Sale,
    SaleVariant,
    Shrinkage,
    ShrinkageVariant,
    VariantStock,
)
from ..models.catalog import WAREHOUSE
from ..validation import parse_price_cents, parse_variant_lines
from . import ledger_service
from .catalog_service import get_product, resolve_location
from .concurrency import run_with_retry
from .stock_service import _receive_stock_locked, resolve_movement


logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {"name", "price_cents", "cost_cents", "has_variants", "section", "is_active"}


def clean_product_patch(patch: dict, *, partial: bool) -> dict:
    """
    Validate and normalize catalog fields.

    Unknown keys are ignored. With partial=False the name is required and
    missing prices default to 0.
    """
    if not isinstance(patch, dict):
        raise ValidationError("JSON body required")

    cleaned: dict[str, Any] = {}
    if "name" in patch or not partial:
        name = patch.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name is required")
        cleaned["name"] = name.strip()

    for field in ("price_cents", "cost_cents"):
        if field in patch:
            cleaned[field] = parse_price_cents(patch[field], field)
        elif not partial:
            cleaned[field] = 0

    for field in ("has_variants", "is_active"):
        if field in patch:
            if not isinstance(patch[field], bool):
                raise ValidationError(f"{field} must be a boolean")
            cleaned[field] = patch[field]

    if "section" in patch:
        section = patch["section"]
        if section is None:
            cleaned["section"] = None
        elif isinstance(section, str):
            cleaned["section"] = section.strip() or None
        else:
            raise ValidationError("section must be a string")

    return cleaned


def apply_product_patch(product: Product, patch: dict) -> None:
    for key, value in patch.items():
        if key not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(product, key, value)


def _has_stock_rows(product_id: int) -> bool:
    return (
        db.session.query(LocationStock.id)
        .filter(LocationStock.product_id == product_id, LocationStock.quantity > 0)
        .first()
        is not None
    )


def _has_recorded_movements(product_id: int) -> bool:
    """Sales or losses that a later reversal would credit back."""
    if db.session.query(Sale.id).filter(Sale.product_id == product_id).first() is not None:
        return True
    return db.session.query(Shrinkage.id).filter(Shrinkage.product_id == product_id).first() is not None


def create_product(
    patch: dict,
    *,
    initial_quantity: Any = None,
    initial_variants: Any = None,
) -> Product:
    """
    Create a product, optionally with opening warehouse stock.

    Args:
        patch: Catalog fields (name, price_cents, cost_cents, has_variants, section)
        initial_quantity: Opening stock for flat products
        initial_variants: Opening variant lines for variant products

    Raises:
        ValidationError: bad fields, or opening stock in the wrong variant mode
        NotFoundError: the warehouse location has not been created
    """
    fields = clean_product_patch(patch, partial=False)
    wants_stock = initial_quantity not in (None, "", 0) or bool(parse_variant_lines(initial_variants))

    def _op():
        product = Product(has_variants=False, is_active=True)
        apply_product_patch(product, fields)
        db.session.add(product)
        db.session.flush()

        if wants_stock:
            quantity = None if initial_quantity in (None, "", 0) else initial_quantity
            movement = resolve_movement(product, quantity, initial_variants)
            _receive_stock_locked(
                product,
                resolve_location(WAREHOUSE),
                movement,
                operation_id=ledger_service.new_operation_id(),
                note="Stock inicial",
            )
        return product

    product = run_with_retry(_op)
    logger.info("Created product %s (%s)", product.id, product.name)
    return product


def update_product(product_id: int, patch: dict) -> Product:
    """
    Update catalog fields.

    has_variants cannot change while the product holds stock anywhere, nor
    while sales or losses still reference it.
    """
    fields = clean_product_patch(patch, partial=True)

    def _op():
        product = get_product(product_id, lock=True)
        if "has_variants" in fields and fields["has_variants"] != product.has_variants:
            if _has_stock_rows(product.id):
                raise ValidationError(
                    "has_variants cannot change while the product has stock",
                    details={"product_id": product.id},
                )
            if _has_recorded_movements(product.id):
                raise ValidationError(
                    "has_variants cannot change while sales or losses reference the product",
                    details={"product_id": product.id},
                )
            # Empty rows of the old mode would violate the new one.
            db.session.query(VariantStock).filter(
                VariantStock.location_stock_id.in_(
                    select(LocationStock.id).where(LocationStock.product_id == product.id)
                )
            ).delete(synchronize_session=False)
            db.session.query(LocationStock).filter(
                LocationStock.product_id == product.id
            ).delete(synchronize_session=False)
        apply_product_patch(product, fields)
        db.session.flush()
        return product

    return run_with_retry(_op)


def delete_product(product_id: int) -> dict:
    """
    Hard-delete a product and everything that references it, in one unit.

    Returns counts of the removed rows.
    """
    def _op():
        product = get_product(product_id, lock=True)

        loss_ids = select(Shrinkage.id).where(Shrinkage.product_id == product.id)
        db.session.query(ShrinkageVariant).filter(
            ShrinkageVariant.shrinkage_id.in_(loss_ids)
        ).delete(synchronize_session=False)
        losses = db.session.query(Shrinkage).filter(
            Shrinkage.product_id == product.id
        ).delete(synchronize_session=False)

        sale_ids = select(Sale.id).where(Sale.product_id == product.id)
        db.session.query(SaleVariant).filter(
            SaleVariant.sale_id.in_(sale_ids)
        ).delete(synchronize_session=False)
        sales = db.session.query(Sale).filter(
            Sale.product_id == product.id
        ).delete(synchronize_session=False)

        transactions = ledger_service.delete_by_product(product.id)

        stock_ids = select(LocationStock.id).where(LocationStock.product_id == product.id)
        db.session.query(VariantStock).filter(
            VariantStock.location_stock_id.in_(stock_ids)
        ).delete(synchronize_session=False)
        stock_rows = db.session.query(LocationStock).filter(
            LocationStock.product_id == product.id
        ).delete(synchronize_session=False)

        addons = db.session.query(ProductAddon).filter(
            ProductAddon.product_id == product.id
        ).delete(synchronize_session=False)

        expenses = db.session.query(Expense).filter(
            Expense.product_id == product.id
        ).delete(synchronize_session=False)

        db.session.delete(product)
        db.session.flush()
        return {
            "product_id": product_id,
            "deleted": {
                "shrinkage": losses,
                "sales": sales,
                "transactions": transactions,
                "stock_rows": stock_rows,
                "expenses": expenses,
                "addons": addons,
            },
        }

    result = run_with_retry(_op)
    logger.info("Deleted product %s and its dependent rows", product_id)
    return result


def list_addons(product_id: int) -> list[ProductAddon]:
    product = get_product(product_id)
    return (
        db.session.query(ProductAddon)
        .filter(ProductAddon.product_id == product.id)
        .order_by(ProductAddon.id.asc())
        .all()
    )


def _clean_addons(raw: Any) -> list[dict]:
    if not isinstance(raw, list):
        raise ValidationError("addons must be a list")
    cleaned = []
    seen = set()
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError("each addon must be an object with name and price_cents")
        name = item.get("name", item.get("nombre"))
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("addon name is required")
        name = name.strip()
        if name in seen:
            raise ValidationError(f"duplicate addon {name!r}", details={"name": name})
        seen.add(name)
        price = item.get("price_cents")
        price_cents = 0 if price is None else parse_price_cents(price, "price_cents")
        cleaned.append({"name": name, "price_cents": price_cents})
    return cleaned


def replace_addons(product_id: int, raw: Any) -> list[ProductAddon]:
    """Replace the product's whole add-on list in one unit; an empty list clears it."""
    addons = _clean_addons(raw)

    def _op():
        product = get_product(product_id, lock=True)
        db.session.query(ProductAddon).filter(
            ProductAddon.product_id == product.id
        ).delete(synchronize_session=False)
        rows = [ProductAddon(product_id=product.id, **addon) for addon in addons]
        db.session.add_all(rows)
        db.session.flush()
        return rows

    rows = run_with_retry(_op)
    logger.info("Replaced add-ons of product %s (%s entries)", product_id, len(rows))
    return rows
