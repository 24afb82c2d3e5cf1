from __future__ import annotations

from ..extensions import db
from stockflow.time_utils import to_utc_z


class Sale(db.Model):
    """
    One sale of a product from a seller location.

    Price and total are snapshots taken when the sale is recorded; later price
    changes on the product do not touch them. Deleting a sale re-credits the
    exact quantity/variant lines it debited.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_location_sold", "location_id", "sold_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    sold_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")
    location = db.relationship("Location")
    variants = db.relationship(
        "SaleVariant",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleVariant.id",
    )

    def variant_lines(self) -> list[dict]:
        return [{"name": v.variant_name, "quantity": v.quantity} for v in self.variants]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "location": self.location.code if self.location else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_cents": self.total_cents,
            "variants": self.variant_lines(),
            "sold_at": to_utc_z(self.sold_at),
            "created_at": to_utc_z(self.created_at),
        }


class SaleVariant(db.Model):
    __tablename__ = "sale_variants"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    variant_name = db.Column(db.String(128), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="variants")
