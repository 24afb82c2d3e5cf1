from __future__ import annotations

from ..extensions import db
from stockflow.time_utils import to_utc_z


class Expense(db.Model):
    """Realized consumption cost (kitchen usage, kitchen-to-warehouse returns)."""
    __tablename__ = "expenses"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True, index=True)
    operation_id = db.Column(db.String(36), nullable=True, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    location = db.relationship("Location")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "amount_cents": self.amount_cents,
            "product_id": self.product_id,
            "location": self.location.code if self.location else None,
            "operation_id": self.operation_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }
