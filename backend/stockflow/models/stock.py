from __future__ import annotations

from ..extensions import db
from stockflow.time_utils import to_utc_z


class LocationStock(db.Model):
    """
    Current balance of one product at one location.

    INVARIANTS:
    - quantity >= 0 at all times.
    - Flat products: quantity is the only source of truth.
    - Variant products: quantity is a cache equal to SUM(variants.quantity),
      recomputed in the same unit of work as every variant write.

    CONCURRENCY:
    version_id makes every UPDATE conditional on the version that was read,
    so two writers racing on the same row cannot both commit a debit.
    """
    __tablename__ = "location_stock"
    __table_args__ = (
        db.UniqueConstraint("product_id", "location_id", name="uq_location_stock_product_location"),
        db.CheckConstraint("quantity >= 0", name="ck_location_stock_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product")
    location = db.relationship("Location")
    variants = db.relationship(
        "VariantStock",
        back_populates="location_stock",
        cascade="all, delete-orphan",
        order_by="VariantStock.variant_name",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<LocationStock product_id={self.product_id} "
            f"location_id={self.location_id} quantity={self.quantity}>"
        )

    def variant_quantities(self) -> dict[str, int]:
        return {v.variant_name: v.quantity for v in self.variants}

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "location": self.location.code if self.location else None,
            "quantity": self.quantity,
            "variants": self.variant_quantities(),
            "updated_at": to_utc_z(self.updated_at),
        }


class VariantStock(db.Model):
    __tablename__ = "variant_stock"
    __table_args__ = (
        db.UniqueConstraint("location_stock_id", "variant_name", name="uq_variant_stock_name"),
        db.CheckConstraint("quantity >= 0", name="ck_variant_stock_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    location_stock_id = db.Column(
        db.Integer,
        db.ForeignKey("location_stock.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variant_name = db.Column(db.String(128), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    location_stock = db.relationship("LocationStock", back_populates="variants")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<VariantStock {self.variant_name!r} quantity={self.quantity}>"
