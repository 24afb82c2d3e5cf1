from __future__ import annotations

from ..extensions import db
from stockflow.time_utils import to_utc_z


class Shrinkage(db.Model):
    """
    Stock written off as lost ("merma").

    location_id is the stock that was debited, so a reversal knows where to
    put the units back. attributed_to is the owner label shown in reports:
    the location code when a caller named one, otherwise the fallback owner.
    """
    __tablename__ = "shrinkage"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    attributed_to = db.Column(db.String(64), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    transaction_id = db.Column(db.Integer, db.ForeignKey("stock_transactions.id"), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")
    location = db.relationship("Location")
    transaction = db.relationship("StockTransaction")
    variants = db.relationship(
        "ShrinkageVariant",
        back_populates="shrinkage",
        cascade="all, delete-orphan",
        order_by="ShrinkageVariant.id",
    )

    def variant_lines(self) -> list[dict]:
        return [{"name": v.variant_name, "quantity": v.quantity} for v in self.variants]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "location": self.location.code if self.location else None,
            "attributed_to": self.attributed_to,
            "quantity": self.quantity,
            "variants": self.variant_lines(),
            "occurred_at": to_utc_z(self.occurred_at),
        }


class ShrinkageVariant(db.Model):
    __tablename__ = "shrinkage_variants"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shrinkage_id = db.Column(
        db.Integer,
        db.ForeignKey("shrinkage.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variant_name = db.Column(db.String(128), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    shrinkage = db.relationship("Shrinkage", back_populates="variants")
