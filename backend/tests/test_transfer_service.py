"""
Transfer engine tests: conservation, variant aggregates, atomicity and ledger pairing.
"""

import pytest

from stockflow.errors import InsufficientStockError, NotFoundError, ValidationError
from stockflow.models import Expense, MovementKind, StockTransaction
from stockflow.services import ledger_service, stock_service, transfer_service


def _total_units(db_session, product_id):
    from stockflow.models import LocationStock
    return sum(
        row.quantity
        for row in db_session.query(LocationStock).filter_by(product_id=product_id).all()
    )


class TestFlatTransfers:
    def test_transfer_moves_units_and_conserves_total(self, db_session, flat_product, balance):
        before = _total_units(db_session, flat_product.id)

        result = transfer_service.transfer(flat_product.id, 15, "ALMACEN", "COCINA")

        assert result.movement.quantity == 15
        assert result.source_balance["quantity"] == 35
        assert result.destination_balance["quantity"] == 15
        assert balance(flat_product, "ALMACEN")["quantity"] == 35
        assert balance(flat_product, "COCINA")["quantity"] == 15
        assert _total_units(db_session, flat_product.id) == before

    def test_insufficient_stock_leaves_balances_untouched(self, db_session, flat_product, balance):
        with pytest.raises(InsufficientStockError) as exc:
            transfer_service.transfer(flat_product.id, 51, "ALMACEN", "COCINA")

        assert exc.value.available == 50
        assert exc.value.requested == 51
        assert exc.value.variant is None
        assert balance(flat_product, "ALMACEN")["quantity"] == 50
        assert balance(flat_product, "COCINA")["quantity"] == 0
        assert ledger_service.list_transactions(product_id=flat_product.id, kind=MovementKind.BAJA) == []

    def test_empty_source_is_insufficient(self, db_session, flat_product):
        with pytest.raises(InsufficientStockError):
            transfer_service.transfer(flat_product.id, 1, "COCINA", "CAFETERIA")

    def test_same_location_rejected(self, db_session, flat_product):
        with pytest.raises(ValidationError):
            transfer_service.transfer(flat_product.id, 1, "ALMACEN", "almacen")

    @pytest.mark.parametrize("quantity", [0, -3, None, "2.5", 1.5, True])
    def test_bad_quantity_rejected(self, db_session, flat_product, quantity):
        with pytest.raises(ValidationError):
            transfer_service.transfer(flat_product.id, quantity, "ALMACEN", "COCINA")

    def test_flat_product_rejects_variant_lines(self, db_session, flat_product):
        with pytest.raises(ValidationError):
            transfer_service.transfer(
                flat_product.id, None, "ALMACEN", "COCINA", [{"name": "S", "quantity": 1}]
            )

    def test_unknown_product_and_location(self, db_session, flat_product):
        with pytest.raises(NotFoundError):
            transfer_service.transfer(999999, 1, "ALMACEN", "COCINA")
        with pytest.raises(NotFoundError):
            transfer_service.transfer(flat_product.id, 1, "ALMACEN", "BODEGA")


class TestVariantTransfers:
    def test_kitchen_to_counter_scenario(self, db_session, kitchen_variants, balance):
        product = kitchen_variants
        assert balance(product, "COCINA") == {
            "product_id": product.id,
            "location": "COCINA",
            "quantity": 15,
            "variants": {"M": 5, "S": 10},
        }

        result = transfer_service.send_kitchen_to_counter(
            product.id,
            variant_lines=[{"name": "S", "quantity": 3}, {"name": "M", "quantity": 2}],
        )

        kitchen = balance(product, "COCINA")
        counter = balance(product, "CAFETERIA")
        assert kitchen["variants"] == {"S": 7, "M": 3}
        assert kitchen["quantity"] == 10
        assert counter["variants"] == {"S": 3, "M": 2}
        assert counter["quantity"] == 5

        legs = ledger_service.list_operation(result.operation_id)
        assert [leg.kind for leg in legs] == [MovementKind.BAJA, MovementKind.ENTREGA]
        for leg in legs:
            assert leg.quantity == 5
            assert leg.source == "COCINA"
            assert leg.destination == "CAFETERIA"
            assert sorted((v["name"], v["quantity"]) for v in leg.variant_lines()) == [("M", 2), ("S", 3)]

        # Only 7 S left in the kitchen
        with pytest.raises(InsufficientStockError) as exc:
            transfer_service.send_kitchen_to_counter(product.id, variant_lines=[{"name": "S", "quantity": 8}])
        assert exc.value.variant == "S"
        assert exc.value.available == 7
        assert "'S'" in str(exc.value)
        assert balance(product, "COCINA")["variants"] == {"S": 7, "M": 3}

    def test_partial_variant_shortfall_moves_nothing(self, db_session, kitchen_variants, balance):
        product = kitchen_variants
        tx_count = db_session.query(StockTransaction).count()

        with pytest.raises(InsufficientStockError) as exc:
            transfer_service.send_kitchen_to_counter(
                product.id,
                variant_lines=[{"name": "S", "quantity": 2}, {"name": "M", "quantity": 6}],
            )

        assert exc.value.variant == "M"
        assert balance(product, "COCINA")["variants"] == {"S": 10, "M": 5}
        assert balance(product, "CAFETERIA")["quantity"] == 0
        assert db_session.query(StockTransaction).count() == tx_count

    def test_missing_variant_at_source_is_insufficient(self, db_session, kitchen_variants):
        with pytest.raises(InsufficientStockError) as exc:
            transfer_service.send_kitchen_to_counter(
                kitchen_variants.id, variant_lines=[{"name": "XL", "quantity": 1}]
            )
        assert exc.value.variant == "XL"
        assert exc.value.available == 0

    def test_variant_product_requires_lines(self, db_session, variant_product):
        with pytest.raises(ValidationError):
            transfer_service.send_to_kitchen(variant_product.id, 3)

    def test_quantity_must_match_variant_total(self, db_session, variant_product):
        with pytest.raises(ValidationError):
            transfer_service.send_to_kitchen(
                variant_product.id, 4, [{"name": "S", "quantity": 1}, {"name": "M", "quantity": 2}]
            )

    def test_zero_lines_are_dropped(self, db_session, variant_product, balance):
        transfer_service.send_to_kitchen(
            variant_product.id, None, [{"name": "S", "quantity": 2}, {"name": "M", "quantity": 0}]
        )
        assert balance(variant_product, "COCINA")["variants"] == {"S": 2}

    def test_duplicate_variant_names_rejected(self, db_session, variant_product):
        with pytest.raises(ValidationError):
            transfer_service.send_to_kitchen(
                variant_product.id, None, [{"name": "S", "quantity": 1}, {"name": "S", "quantity": 1}]
            )

    def test_aggregate_always_matches_variants(self, db_session, kitchen_variants):
        transfer_service.send_kitchen_to_counter(kitchen_variants.id, variant_lines=[("S", 4)])
        transfer_service.send_counter_to_kitchen(kitchen_variants.id, variant_lines=[("S", 1)])
        transfer_service.return_counter_to_warehouse(kitchen_variants.id, variant_lines=[("S", 3)])

        assert stock_service.verify_consistency() == []


class TestReturnExpense:
    def test_kitchen_to_warehouse_records_expense(self, db_session, flat_product):
        transfer_service.send_to_kitchen(flat_product.id, 10)

        result = transfer_service.return_kitchen_to_warehouse(flat_product.id, 4)

        assert result.expense is not None
        assert result.expense.amount_cents == 4 * 120
        assert result.expense.name == "Devolución Café molido a Almacén"
        assert result.expense.operation_id == result.operation_id

    def test_generic_transfer_in_same_direction_also_records_expense(self, db_session, flat_product):
        transfer_service.send_to_kitchen(flat_product.id, 10)
        transfer_service.transfer(flat_product.id, 2, "COCINA", "ALMACEN")

        assert db_session.query(Expense).count() == 1

    def test_other_directions_record_no_expense(self, db_session, flat_product):
        transfer_service.send_to_kitchen(flat_product.id, 10)
        transfer_service.send_to_counter(flat_product.id, 10)
        transfer_service.send_kitchen_to_counter(flat_product.id, 2)
        transfer_service.send_counter_to_kitchen(flat_product.id, 1)
        transfer_service.return_counter_to_warehouse(flat_product.id, 3)

        assert db_session.query(Expense).count() == 0


class TestDirections:
    def test_direction_lookup(self, db_session, flat_product, balance):
        result = transfer_service.transfer_by_direction("almacen-cafeteria", flat_product.id, 5)
        assert result.destination.code == "CAFETERIA"
        assert balance(flat_product, "CAFETERIA")["quantity"] == 5

    def test_unknown_direction(self, db_session, flat_product):
        with pytest.raises(ValidationError):
            transfer_service.transfer_by_direction("cocina-luna", flat_product.id, 1)

    def test_result_serializes(self, db_session, flat_product):
        data = transfer_service.send_to_kitchen(flat_product.id, 3).to_dict()
        assert data["transactions"]["baja"]["kind"] == "Baja"
        assert data["transactions"]["entrega"]["kind"] == "Entrega"
        assert data["balances"]["destination"]["quantity"] == 3
        assert data["expense"] is None
