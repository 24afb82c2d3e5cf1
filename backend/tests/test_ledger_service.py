"""
Transaction ledger tests: pairing, queries by endpoint and kind, ordering.
"""

import pytest

from stockflow.errors import NotFoundError, ValidationError
from stockflow.models import MovementKind
from stockflow.services import ledger_service, transfer_service


def test_every_transfer_writes_a_paired_baja_and_entrega(db_session, flat_product):
    results = [
        transfer_service.send_to_kitchen(flat_product.id, 5),
        transfer_service.send_kitchen_to_counter(flat_product.id, 2),
        transfer_service.return_counter_to_warehouse(flat_product.id, 1),
    ]

    for result in results:
        legs = ledger_service.list_operation(result.operation_id)
        assert len(legs) == 2
        baja, entrega = legs
        assert baja.kind == MovementKind.BAJA
        assert entrega.kind == MovementKind.ENTREGA
        assert baja.quantity == entrega.quantity == result.movement.quantity
        assert baja.occurred_at == entrega.occurred_at
        assert (baja.source, baja.destination) == (entrega.source, entrega.destination)


def test_location_filter_matches_either_endpoint(db_session, flat_product):
    transfer_service.send_to_kitchen(flat_product.id, 5)
    transfer_service.send_kitchen_to_counter(flat_product.id, 2)

    kitchen_rows = ledger_service.list_transactions(location="cocina")
    # both legs of both transfers touch the kitchen
    assert len(kitchen_rows) == 4

    counter_rows = ledger_service.list_transactions(location="CAFETERIA", kind="Entrega")
    assert len(counter_rows) == 1
    assert counter_rows[0].destination == "CAFETERIA"


def test_kind_filter_and_newest_first(db_session, flat_product):
    first = transfer_service.send_to_kitchen(flat_product.id, 1)
    second = transfer_service.send_to_kitchen(flat_product.id, 2)

    bajas = ledger_service.list_transactions(product_id=flat_product.id, kind=MovementKind.BAJA)
    assert [tx.operation_id for tx in bajas] == [second.operation_id, first.operation_id]

    limited = ledger_service.list_transactions(product_id=flat_product.id, limit=1)
    assert len(limited) == 1


def test_unknown_kind_is_rejected(db_session, flat_product):
    with pytest.raises(ValidationError):
        ledger_service.list_transactions(kind="Venta")


def test_record_requires_existing_product(db_session, locations):
    with pytest.raises(NotFoundError):
        ledger_service.record(
            product_id=424242,
            kind="Baja",
            source="ALMACEN",
            destination="MERMA",
            quantity=1,
            operation_id=ledger_service.new_operation_id(),
        )


def test_delete_by_product_removes_rows_and_variants(db_session, kitchen_variants):
    assert ledger_service.list_transactions(product_id=kitchen_variants.id)

    removed = ledger_service.delete_by_product(kitchen_variants.id)
    db_session.commit()

    # initial intake + one transfer pair
    assert removed == 3
    assert ledger_service.list_transactions(product_id=kitchen_variants.id) == []
