from __future__ import annotations

from ..extensions import db
from stockflow.time_utils import to_utc_z


LOCATION_KIND_WAREHOUSE = "WAREHOUSE"
LOCATION_KIND_KITCHEN = "KITCHEN"
LOCATION_KIND_COUNTER = "COUNTER"
LOCATION_KIND_SELLER = "SELLER"

LOCATION_KINDS = (
    LOCATION_KIND_WAREHOUSE,
    LOCATION_KIND_KITCHEN,
    LOCATION_KIND_COUNTER,
    LOCATION_KIND_SELLER,
)

# Codes of the built-in operational locations
WAREHOUSE = "ALMACEN"
KITCHEN = "COCINA"
COUNTER = "CAFETERIA"


class Product(db.Model):
    """
    Product master data.

    STOCK DESIGN DECISION:
    The product row carries no quantity. Stock lives only in LocationStock
    (one row per product per location) and, for variant-bearing products,
    in VariantStock rows beneath it.

    VARIANTS:
    has_variants=True means stock is only meaningful per named variant
    ("parámetro", e.g. a size or flavor). Every stock movement for such a
    product must name its variant lines.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    section = db.Column(db.String(64), nullable=True)  # display grouping only

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_cents = db.Column(db.Integer, nullable=False, default=0)

    has_variants = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} has_variants={self.has_variants}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "section": self.section,
            "price_cents": self.price_cents,
            "cost_cents": self.cost_cents,
            "has_variants": self.has_variants,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductAddon(db.Model):
    """Priced extra offered with a product ("agrego"); carries no stock."""
    __tablename__ = "product_addons"
    __table_args__ = (
        db.CheckConstraint("price_cents >= 0", name="ck_product_addons_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "name": self.name,
            "price_cents": self.price_cents,
        }


class Location(db.Model):
    """A stock-holding context: warehouse, kitchen, counter or an individual seller."""
    __tablename__ = "locations"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True, index=True)
    name = db.Column(db.String(128), nullable=False)
    kind = db.Column(db.String(16), nullable=False, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Location id={self.id} code={self.code!r} kind={self.kind}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "kind": self.kind,
            "is_active": self.is_active,
        }
