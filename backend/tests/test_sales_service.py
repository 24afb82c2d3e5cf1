"""
Sales ledger tests: debit at the seller, exact reversal, edit-in-place.
"""

from datetime import datetime

import pytest

from stockflow.errors import ConsistencyError, InsufficientStockError, NotFoundError, ValidationError
from stockflow.models import Product, Sale, SaleVariant, StockTransaction
from stockflow.services import products_service, sales_service, transfer_service


def test_flat_counter_sale_and_reversal(db_session, counter_flat, balance):
    assert balance(counter_flat, "CAFETERIA")["quantity"] == 20
    tx_count = db_session.query(StockTransaction).count()

    sale = sales_service.record_sale(counter_flat.id, 5, "CAFETERIA")

    assert sale.quantity == 5
    assert sale.unit_price_cents == 250
    assert sale.total_cents == 5 * 250
    assert balance(counter_flat, "CAFETERIA")["quantity"] == 15
    # Sales never touch the movement ledger
    assert db_session.query(StockTransaction).count() == tx_count

    sale_id = sale.id
    deleted = sales_service.reverse_sale(sale_id)

    assert deleted["id"] == sale_id
    assert balance(counter_flat, "CAFETERIA")["quantity"] == 20
    assert db_session.query(Sale).count() == 0

    with pytest.raises(NotFoundError):
        sales_service.reverse_sale(sale_id)
    assert balance(counter_flat, "CAFETERIA")["quantity"] == 20


def test_price_snapshot_survives_catalog_change(db_session, counter_flat):
    sale = sales_service.record_sale(counter_flat.id, 2, "CAFETERIA", unit_price_cents=300)
    counter_flat.price_cents = 999
    db_session.commit()

    reloaded = sales_service.get_sale(sale.id)
    assert reloaded.unit_price_cents == 300
    assert reloaded.total_cents == 600


def test_sale_beyond_balance_fails(db_session, counter_flat, balance):
    with pytest.raises(InsufficientStockError):
        sales_service.record_sale(counter_flat.id, 21, "CAFETERIA")
    assert balance(counter_flat, "CAFETERIA")["quantity"] == 20
    assert db_session.query(Sale).count() == 0


def test_variant_sale_reversal_restores_each_variant(db_session, variant_product, seller, balance):
    transfer_service.transfer(
        variant_product.id, None, "ALMACEN", seller.code,
        [{"name": "S", "quantity": 4}, {"name": "M", "quantity": 3}],
    )

    sale = sales_service.record_sale(
        variant_product.id,
        seller_location=seller.code,
        variant_lines=[{"name": "S", "quantity": 2}, {"name": "M", "quantity": 1}],
    )
    assert sale.quantity == 3
    assert sorted((v["name"], v["quantity"]) for v in sale.variant_lines()) == [("M", 1), ("S", 2)]
    assert balance(variant_product, seller.code)["variants"] == {"S": 2, "M": 2}

    sales_service.reverse_sale(sale.id)

    restored = balance(variant_product, seller.code)
    assert restored["variants"] == {"S": 4, "M": 3}
    assert restored["quantity"] == 7
    assert db_session.query(SaleVariant).count() == 0


def test_update_sale_reapplies_new_quantity(db_session, counter_flat, balance):
    sale = sales_service.record_sale(counter_flat.id, 5, "CAFETERIA")

    updated = sales_service.update_sale(sale.id, quantity=8)

    assert updated.id == sale.id
    assert updated.quantity == 8
    assert updated.total_cents == 8 * 250
    assert balance(counter_flat, "CAFETERIA")["quantity"] == 12


def test_failed_update_keeps_original_sale(db_session, counter_flat, balance):
    sale = sales_service.record_sale(counter_flat.id, 5, "CAFETERIA")

    # 15 left + 5 reversed = 20 available; 21 is too many
    with pytest.raises(InsufficientStockError):
        sales_service.update_sale(sale.id, quantity=21)

    assert sales_service.get_sale(sale.id).quantity == 5
    assert balance(counter_flat, "CAFETERIA")["quantity"] == 15


def test_update_sale_can_move_to_another_seller(db_session, counter_flat, seller, balance):
    transfer_service.transfer(counter_flat.id, 5, "ALMACEN", seller.code)
    sale = sales_service.record_sale(counter_flat.id, 3, "CAFETERIA")

    sales_service.update_sale(sale.id, seller_location=seller.code)

    assert balance(counter_flat, "CAFETERIA")["quantity"] == 20
    assert balance(counter_flat, seller.code)["quantity"] == 2


def test_update_variant_sale_lines(db_session, kitchen_variants, balance):
    sale = sales_service.record_sale(
        kitchen_variants.id, seller_location="COCINA", variant_lines=[{"name": "S", "quantity": 2}]
    )

    sales_service.update_sale(sale.id, variant_lines=[{"name": "M", "quantity": 4}])

    assert balance(kitchen_variants, "COCINA")["variants"] == {"S": 10, "M": 1}
    assert [v["name"] for v in sales_service.get_sale(sale.id).variant_lines()] == ["M"]


def test_negative_price_rejected(db_session, counter_flat):
    with pytest.raises(ValidationError):
        sales_service.record_sale(counter_flat.id, 1, "CAFETERIA", unit_price_cents=-5)


def test_list_sales_filters(db_session, counter_flat, seller):
    transfer_service.transfer(counter_flat.id, 5, "ALMACEN", seller.code)
    sales_service.record_sale(counter_flat.id, 1, "CAFETERIA")
    sales_service.record_sale(counter_flat.id, 2, seller.code)

    assert len(sales_service.list_sales()) == 2
    only_seller = sales_service.list_sales(location=seller.code)
    assert [s.quantity for s in only_seller] == [2]
    assert sales_service.list_sales(start=datetime(2000, 1, 1), end=datetime(2000, 1, 2)) == []


def test_variant_mode_flip_blocked_while_sales_exist(db_session, counter_flat, balance):
    transfer_service.return_counter_to_warehouse(counter_flat.id, 20)
    sale = sales_service.record_sale(counter_flat.id, 50, "ALMACEN")
    assert balance(counter_flat, "ALMACEN")["quantity"] == 0

    with pytest.raises(ValidationError):
        products_service.update_product(counter_flat.id, {"has_variants": True})

    sales_service.reverse_sale(sale.id)
    assert balance(counter_flat, "ALMACEN")["quantity"] == 50


def test_reverse_sale_refuses_mode_mismatch(db_session, counter_flat):
    sale = sales_service.record_sale(counter_flat.id, 20, "CAFETERIA")
    db_session.get(Product, counter_flat.id).has_variants = True
    db_session.commit()

    with pytest.raises(ConsistencyError):
        sales_service.reverse_sale(sale.id)

    assert db_session.get(Sale, sale.id) is not None
