# Overview: Product and location lookups shared by every stock operation.

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Location, Product
from ..models.catalog import (
    COUNTER,
    KITCHEN,
    LOCATION_KIND_COUNTER,
    LOCATION_KIND_KITCHEN,
    LOCATION_KIND_SELLER,
    LOCATION_KIND_WAREHOUSE,
    LOCATION_KINDS,
    WAREHOUSE,
)
from .concurrency import lock_for_update, run_with_retry


DEFAULT_LOCATIONS = (
    (WAREHOUSE, "Almacén", LOCATION_KIND_WAREHOUSE),
    (KITCHEN, "Cocina", LOCATION_KIND_KITCHEN),
    (COUNTER, "Cafetería", LOCATION_KIND_COUNTER),
)


def get_product(product_id: int, *, lock: bool = False) -> Product:
    """Return the product or raise NotFoundError."""
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFoundError(f"Product {product_id} not found", details={"product_id": product_id})
    return product


def list_products(*, include_inactive: bool = False) -> list[Product]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def get_location(code: str) -> Location:
    if not isinstance(code, str) or not code.strip():
        raise ValidationError("location code is required")
    location = db.session.query(Location).filter_by(code=code.strip().upper()).first()
    if location is None:
        raise NotFoundError(f"Location {code!r} not found", details={"location": code})
    return location


def resolve_location(value, *, require_active: bool = True) -> Location:
    """Accept a Location or a location code; return an (active) Location."""
    location = value if isinstance(value, Location) else get_location(value)
    if require_active and not location.is_active:
        raise ValidationError(f"Location {location.code} is inactive", details={"location": location.code})
    return location


def list_locations(*, include_inactive: bool = False) -> list[Location]:
    query = db.session.query(Location)
    if not include_inactive:
        query = query.filter(Location.is_active.is_(True))
    return query.order_by(Location.id.asc()).all()


def create_location(code: str, name: str, kind: str = LOCATION_KIND_SELLER) -> Location:
    """Register a new stock-holding location (typically an individual seller)."""
    if not isinstance(code, str) or not code.strip():
        raise ValidationError("location code is required")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("location name is required")
    if kind not in LOCATION_KINDS:
        raise ValidationError(f"kind must be one of {', '.join(LOCATION_KINDS)}")

    normalized = code.strip().upper()

    def _op():
        if db.session.query(Location).filter_by(code=normalized).first():
            raise ValidationError(f"Location {normalized} already exists", details={"location": normalized})
        location = Location(code=normalized, name=name.strip(), kind=kind, is_active=True)
        db.session.add(location)
        db.session.flush()
        return location

    return run_with_retry(_op)


def ensure_default_locations() -> list[Location]:
    """
    Ensure warehouse, kitchen and counter exist.

    Safe to call repeatedly (idempotent).
    """
    def _op():
        rows = []
        for code, name, kind in DEFAULT_LOCATIONS:
            location = db.session.query(Location).filter_by(code=code).first()
            if location is None:
                location = Location(code=code, name=name, kind=kind, is_active=True)
                db.session.add(location)
            rows.append(location)
        db.session.flush()
        return rows

    return run_with_retry(_op)
