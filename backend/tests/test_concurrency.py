"""
Unit-of-work tests: conflict retry, rollback on failure, compare-on-write.
"""

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from stockflow.errors import InsufficientStockError, StoreError
from stockflow.extensions import db
from stockflow.models import Location, LocationStock
from stockflow.models.catalog import LOCATION_KIND_SELLER
from stockflow.services.concurrency import run_with_retry


def _add_location(code):
    db.session.add(Location(code=code, name=code.title(), kind=LOCATION_KIND_SELLER))
    db.session.flush()


def test_stale_write_reruns_whole_body_then_commits(db_session, locations):
    calls = []

    def _op():
        calls.append(1)
        _add_location("VEND02")
        if len(calls) == 1:
            raise StaleDataError("row version changed")
        return "done"

    assert run_with_retry(_op) == "done"
    assert len(calls) == 2
    # the first attempt's insert was rolled back; only the rerun's row is committed
    db_session.expire_all()
    assert db_session.query(Location).filter_by(code="VEND02").count() == 1


def test_operational_error_is_retried(db_session, locations):
    calls = []

    def _op():
        calls.append(1)
        if len(calls) < 3:
            raise OperationalError("UPDATE location_stock", {}, Exception("database is locked"))
        return len(calls)

    assert run_with_retry(_op, attempts=3) == 3


def test_exhausted_retries_raise_store_error_and_roll_back(db_session, app, locations):
    calls = []

    def _op():
        calls.append(1)
        _add_location("VEND03")
        raise StaleDataError("row version changed")

    with pytest.raises(StoreError) as exc:
        run_with_retry(_op)

    assert len(calls) == app.config["STORE_RETRY_ATTEMPTS"]
    assert exc.value.details == {"attempts": app.config["STORE_RETRY_ATTEMPTS"]}
    assert db_session.query(Location).filter_by(code="VEND03").count() == 0


def test_other_store_failures_are_not_retried(db_session, locations):
    calls = []

    def _op():
        calls.append(1)
        _add_location("VEND04")
        raise IntegrityError("INSERT INTO location", {}, Exception("UNIQUE constraint failed"))

    with pytest.raises(StoreError):
        run_with_retry(_op)

    assert len(calls) == 1
    assert db_session.query(Location).filter_by(code="VEND04").count() == 0


def test_domain_errors_roll_back_and_propagate(db_session, locations):
    calls = []

    def _op():
        calls.append(1)
        _add_location("VEND05")
        raise InsufficientStockError(product_id=1, location="ALMACEN", requested=2, available=1)

    with pytest.raises(InsufficientStockError):
        run_with_retry(_op)

    assert len(calls) == 1
    assert db_session.query(Location).filter_by(code="VEND05").count() == 0


def test_outdated_stock_version_fails_the_flush(db_session, flat_product, balance):
    stock = db_session.query(LocationStock).filter_by(product_id=flat_product.id).one()
    read_version = stock.version_id

    def _op():
        row = db_session.query(LocationStock).filter_by(product_id=flat_product.id).one()
        # Another writer bumps the version behind the ORM's back.
        db_session.execute(
            update(LocationStock.__table__)
            .where(LocationStock.__table__.c.id == row.id)
            .values(version_id=row.version_id + 1)
        )
        row.quantity -= 1
        db_session.flush()

    with pytest.raises(StoreError):
        run_with_retry(_op, attempts=2)

    db_session.expire_all()
    stock = db_session.query(LocationStock).filter_by(product_id=flat_product.id).one()
    assert stock.version_id == read_version
    assert balance(flat_product, "ALMACEN")["quantity"] == 50


def test_rerun_after_stale_version_reads_fresh_row(db_session, flat_product, balance):
    calls = []

    def _op():
        calls.append(1)
        row = db_session.query(LocationStock).filter_by(product_id=flat_product.id).one()
        if len(calls) == 1:
            db_session.execute(
                update(LocationStock.__table__)
                .where(LocationStock.__table__.c.id == row.id)
                .values(version_id=row.version_id + 1)
            )
        row.quantity -= 1
        db_session.flush()

    run_with_retry(_op)

    assert len(calls) == 2
    assert balance(flat_product, "ALMACEN")["quantity"] == 49
