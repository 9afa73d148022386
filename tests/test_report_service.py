from decimal import Decimal

from catalog_engine.models import RawMaterial
from catalog_engine.services.report_service import ReportService


async def test_producibility_report(db_session, bag_variants, seeded_bag) -> None:
    report = await ReportService(db_session).producibility_report(seeded_bag.product_id)

    assert report.product_name == "Leather Bag"
    assert report.errors == ()
    rows = {row.sku: row for row in report.variants}
    assert list(rows) == ["BAG-BLA-SMA", "BAG-BLA-LAR", "BAG-BRO-SMA", "BAG-BRO-LAR"]

    black_large = rows["BAG-BLA-LAR"]
    assert black_large.effective_price == Decimal("120.00")
    assert black_large.effective_weight_grams == 650
    assert black_large.bom[seeded_bag.materials["thread"]] == Decimal("3.9")
    assert black_large.unit_material_cost == Decimal("28.5900")
    assert black_large.producibility.units == 8
    assert black_large.producibility.limiting_material_ids == {seeded_bag.materials["wide_strap"]}

    assert rows["BAG-BRO-SMA"].producibility.units == 2
    assert [row.sku for row in report.below_threshold(5)] == ["BAG-BRO-SMA", "BAG-BRO-LAR"]


async def test_unresolvable_variants_are_reported_separately(db_session, bag_variants, seeded_bag) -> None:
    dye = await db_session.get(RawMaterial, seeded_bag.materials["black_dye"])
    dye.is_active = False
    await db_session.commit()

    report = await ReportService(db_session).producibility_report(seeded_bag.product_id)

    assert sorted(error.sku for error in report.errors) == ["BAG-BLA-LAR", "BAG-BLA-SMA"]
    assert report.errors[0].details["raw_material_id"] == str(seeded_bag.materials["black_dye"])
    assert [row.sku for row in report.variants] == ["BAG-BRO-SMA", "BAG-BRO-LAR"]


async def test_low_stock_materials(db_session, seeded_bag) -> None:
    low_stock = await ReportService(db_session).low_stock_materials()

    assert [m.sku for m in low_stock] == ["BROWN_LEATHER", "WIDE_STRAP"]
    assert low_stock[0].stock_ratio == Decimal("0.5")


async def test_active_product_ids(db_session, seeded_bag) -> None:
    assert await ReportService(db_session).active_product_ids() == [seeded_bag.product_id]
