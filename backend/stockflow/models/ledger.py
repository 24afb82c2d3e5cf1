from __future__ import annotations

import enum

from ..extensions import db
from stockflow.time_utils import to_utc_z


class MovementKind(str, enum.Enum):
    """Which leg of a movement a ledger row records."""

    BAJA = "Baja"        # debit leg: stock left `source`
    ENTREGA = "Entrega"  # credit leg: stock arrived at `destination`


# Endpoints that are not stock-holding locations
SINK_SHRINKAGE = "MERMA"
SINK_CONSUMPTION = "CONSUMO"
SOURCE_PURCHASE = "COMPRA"


class StockTransaction(db.Model):
    """
    Append-only audit row for one leg of a stock movement.

    - Rows are never updated. The only deletes are the product-deletion cascade
      and the removal of a shrinkage row when that loss is reversed.
    - A transfer between two locations writes a BAJA and an ENTREGA row that
      share operation_id, quantity and variant breakdown.
    - source/destination hold location codes or the sentinels above.
    """
    __tablename__ = "stock_transactions"
    __table_args__ = (
        db.Index("ix_stock_tx_product_occurred", "product_id", "occurred_at"),
        db.Index("ix_stock_tx_source", "source"),
        db.Index("ix_stock_tx_destination", "destination"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    kind = db.Column(
        db.Enum(
            MovementKind,
            name="movement_kind",
            native_enum=False,
            values_callable=lambda kinds: [k.value for k in kinds],
        ),
        nullable=False,
        index=True,
    )

    source = db.Column(db.String(32), nullable=False)
    destination = db.Column(db.String(32), nullable=False)

    operation_id = db.Column(db.String(36), nullable=False, index=True)
    note = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")
    variants = db.relationship(
        "StockTransactionVariant",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="StockTransactionVariant.id",
    )

    def variant_lines(self) -> list[dict]:
        return [{"name": v.variant_name, "quantity": v.quantity} for v in self.variants]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "kind": self.kind.value,
            "source": self.source,
            "destination": self.destination,
            "operation_id": self.operation_id,
            "note": self.note,
            "variants": self.variant_lines(),
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
        }


class StockTransactionVariant(db.Model):
    __tablename__ = "stock_transaction_variants"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(
        db.Integer,
        db.ForeignKey("stock_transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variant_name = db.Column(db.String(128), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    transaction = db.relationship("StockTransaction", back_populates="variants")
