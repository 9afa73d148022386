import logging
import uuid
from decimal import Decimal

import pytest
from pydantic import ValidationError

from catalog_engine.core.exceptions import EntityNotFoundError, InsufficientStockError
from catalog_engine.models.inventory import StockEntityType, StockMovementType
from catalog_engine.schemas.production import StockAdjustmentCreate
from catalog_engine.services.stock_ledger_service import StockLedgerService


async def test_consume_decrements_and_records_movements(db_session, seeded_bag, caplog) -> None:
    ledger = StockLedgerService(db_session)
    thread, strap = seeded_bag.materials["thread"], seeded_bag.materials["wide_strap"]
    batch_id = uuid.uuid4()

    with caplog.at_level(logging.WARNING, logger="catalog_engine.services.stock_ledger_service"):
        movements = await ledger.consume_materials(
            {thread: Decimal("3.9"), strap: Decimal("1")},
            reference_type="production_batch",
            reference_id=batch_id,
        )
    await db_session.commit()

    assert await ledger.get_material_stock(thread) == Decimal("96.1")
    assert await ledger.get_material_stock(strap) == Decimal("7")
    assert len(movements) == 2
    by_material = {m.entity_id: m for m in movements}
    assert by_material[thread].movement_type == StockMovementType.PRODUCTION_CONSUME.value
    assert by_material[thread].quantity_change == Decimal("-3.9")
    assert by_material[thread].quantity_before == Decimal("100")
    assert by_material[thread].quantity_after == Decimal("96.1")
    assert by_material[strap].unit_cost == Decimal("4")
    assert "Material WIDE_STRAP at or below low-stock threshold" in caplog.text
    assert "THREAD" not in caplog.text


async def test_consume_is_all_or_nothing(db_session, seeded_bag) -> None:
    ledger = StockLedgerService(db_session)
    thread, brown = seeded_bag.materials["thread"], seeded_bag.materials["brown_leather"]

    with pytest.raises(InsufficientStockError) as exc_info:
        await ledger.consume_materials(
            {thread: Decimal("1"), brown: Decimal("5")},
            reference_type="production_batch",
        )

    assert exc_info.value.raw_material_id == brown
    assert await ledger.get_material_stock(thread) == Decimal("100")
    assert await ledger.list_movements() == []


async def test_consume_skips_zero_requirements(db_session, seeded_bag) -> None:
    ledger = StockLedgerService(db_session)
    thread, dye = seeded_bag.materials["thread"], seeded_bag.materials["black_dye"]

    movements = await ledger.consume_materials(
        {thread: Decimal("2"), dye: Decimal("0")},
        reference_type="production_batch",
    )

    assert [m.entity_id for m in movements] == [thread]
    assert await ledger.get_material_stock(dye) == Decimal("15")


async def test_consume_unknown_material(db_session, seeded_bag) -> None:
    with pytest.raises(EntityNotFoundError):
        await StockLedgerService(db_session).consume_materials(
            {uuid.uuid4(): Decimal("1")}, reference_type="production_batch",
        )


async def test_adjust_material_stock(db_session, seeded_bag) -> None:
    ledger = StockLedgerService(db_session)
    strap = seeded_bag.materials["wide_strap"]

    movement = await ledger.adjust_material_stock(StockAdjustmentCreate(
        raw_material_id=strap, quantity_change=Decimal("12"), movement_type="purchase",
        unit_cost=Decimal("3.80"), notes="PO-1042",
    ))

    assert movement.movement_type == "PURCHASE"
    assert movement.reference_type == "manual"
    assert await ledger.get_material_stock(strap) == Decimal("20")

    await ledger.adjust_material_stock(StockAdjustmentCreate(
        raw_material_id=strap, quantity_change=Decimal("-5"), movement_type=StockMovementType.DAMAGE,
    ))
    assert await ledger.get_material_stock(strap) == Decimal("15")


async def test_adjust_cannot_go_negative(db_session, seeded_bag) -> None:
    ledger = StockLedgerService(db_session)
    strap = seeded_bag.materials["wide_strap"]

    with pytest.raises(InsufficientStockError):
        await ledger.adjust_material_stock(
            StockAdjustmentCreate(raw_material_id=strap, quantity_change=Decimal("-9"))
        )

    assert await ledger.get_material_stock(strap) == Decimal("8")


async def test_record_variant_output(db_session, bag_variants) -> None:
    ledger = StockLedgerService(db_session)
    variant = bag_variants["BAG-BLA-LAR"]

    movement = await ledger.record_variant_output(
        variant.id, 4, reference_type="production_batch", unit_cost=Decimal("28.59"),
    )

    assert variant.stock_quantity == 4
    assert movement.entity_type == StockEntityType.PRODUCT_VARIANT.value
    assert movement.quantity_before == Decimal("0")
    assert movement.quantity_after == Decimal("4")
    with pytest.raises(ValueError):
        await ledger.record_variant_output(variant.id, 0, reference_type="production_batch")


async def test_list_movements_filters(db_session, seeded_bag) -> None:
    ledger = StockLedgerService(db_session)
    thread, strap = seeded_bag.materials["thread"], seeded_bag.materials["wide_strap"]
    batch_id = uuid.uuid4()
    await ledger.consume_materials({thread: Decimal("1"), strap: Decimal("1")}, "production_batch", batch_id)
    await ledger.adjust_material_stock(StockAdjustmentCreate(raw_material_id=thread, quantity_change=Decimal("10")))
    await db_session.commit()

    assert len(await ledger.list_movements()) == 3
    assert len(await ledger.list_movements(entity_id=thread)) == 2
    assert len(await ledger.list_movements(reference_id=batch_id)) == 2
    assert len(await ledger.list_movements(entity_type=StockEntityType.PRODUCT_VARIANT)) == 0


def test_adjustments_reject_zero_and_production_types() -> None:
    material_id = uuid.uuid4()

    with pytest.raises(ValidationError):
        StockAdjustmentCreate(raw_material_id=material_id, quantity_change=Decimal("0"))
    with pytest.raises(ValidationError):
        StockAdjustmentCreate(
            raw_material_id=material_id, quantity_change=Decimal("1"), movement_type="production_consume",
        )
