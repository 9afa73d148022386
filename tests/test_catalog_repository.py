import uuid
from decimal import Decimal

import pytest

from catalog_engine.core.exceptions import EntityNotFoundError, InvalidCatalogSnapshotError
from catalog_engine.models import RawMaterial, VariantBOMOverride
from catalog_engine.schemas.bom import MultiplyModifier, RemoveOverride, ReplaceOverride
from catalog_engine.services.bom_resolver import BOMResolver
from catalog_engine.services.catalog_repository import CatalogRepository


async def test_catalog_snapshot_mirrors_database(db_session, bag_variants, seeded_bag) -> None:
    snapshot = await CatalogRepository(db_session).get_catalog_snapshot(seeded_bag.product_id)

    assert [a.name for a in snapshot.product.ordered_attributes()] == ["Color", "Size"]
    large = snapshot.product.option_index()[seeded_bag.options["Large"]]
    assert isinstance(large.bom_modifiers[0], MultiplyModifier)
    assert large.bom_modifiers[0].factor == Decimal("1.3")
    assert len(snapshot.variants) == 4
    assert snapshot.material_ids() == frozenset(seeded_bag.materials.values())


async def test_variant_overrides_are_loaded_in_position_order(db_session, bag_variants, seeded_bag) -> None:
    vegan = RawMaterial(name="Vegan Leather", sku="VEGAN_LEATHER", unit_of_measure="M2",
                        cost_per_unit=Decimal("25"), stock_quantity=Decimal("3"))
    db_session.add(vegan)
    await db_session.flush()
    variant = bag_variants["BAG-BLA-LAR"]
    db_session.add_all([
        VariantBOMOverride(
            variant_id=variant.id, override_type="replace", position=0,
            raw_material_id=vegan.id, replaces_material_id=seeded_bag.materials["black_leather"],
        ),
        VariantBOMOverride(
            variant_id=variant.id, override_type="REMOVE", position=1,
            raw_material_id=seeded_bag.materials["black_dye"],
        ),
    ])
    await db_session.commit()

    snapshot = await CatalogRepository(db_session).get_catalog_snapshot(seeded_bag.product_id)
    variant_snapshot = snapshot.get_variant(variant.id)

    first, second = variant_snapshot.bom_overrides
    assert isinstance(first, ReplaceOverride) and first.quantity is None
    assert isinstance(second, RemoveOverride)
    resolved = BOMResolver(snapshot).resolve(variant_snapshot)
    assert resolved.quantity_for(vegan.id) == Decimal("0.5")
    assert seeded_bag.materials["black_leather"] not in resolved.quantities
    assert seeded_bag.materials["black_dye"] not in resolved.quantities


async def test_add_override_without_quantity_is_rejected(db_session, bag_variants, seeded_bag) -> None:
    db_session.add(VariantBOMOverride(
        variant_id=bag_variants["BAG-BLA-LAR"].id, override_type="ADD",
        raw_material_id=seeded_bag.materials["thread"],
    ))
    await db_session.commit()

    with pytest.raises(InvalidCatalogSnapshotError):
        await CatalogRepository(db_session).get_catalog_snapshot(seeded_bag.product_id)


async def test_stock_map(db_session, seeded_bag) -> None:
    thread = seeded_bag.materials["thread"]

    stock = await CatalogRepository(db_session).get_stock_map([thread])

    assert stock == {thread: Decimal("100")}


async def test_unknown_product(db_session) -> None:
    with pytest.raises(EntityNotFoundError):
        await CatalogRepository(db_session).get_catalog_snapshot(uuid.uuid4())
