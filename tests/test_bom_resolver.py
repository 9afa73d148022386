import logging
from decimal import Decimal

import pytest

from catalog_engine.core.exceptions import MissingMaterialReferenceError
from catalog_engine.services.bom_resolver import (
    LAYER_OPTION_MODIFIER,
    LAYER_PRODUCT_ENTRY,
    LAYER_VARIANT_OVERRIDE,
    BOMResolver,
    bom_unit_cost,
)


def resolve(builder, product, variant):
    return BOMResolver(builder.catalog(product, variant)).resolve(variant)


def named(builder, resolved) -> dict:
    """Resolved quantities keyed by material name."""
    names = {material.id: name for name, material in builder.materials.items()}
    return {names[material_id]: quantity for material_id, quantity in resolved.quantities.items()}


def single_option_product(builder, base: dict, **option):
    attribute = builder.attribute("Color", 0, {"value": "Black", **option})
    product = builder.product(attribute, bom=base)
    return product, builder.variant(product, Color="Black")


# ==================== WORKED EXAMPLE ====================

def test_black_large_bag(bag) -> None:
    resolved = BOMResolver(bag.catalog).resolve(bag.black_large)

    assert named(bag.builder, resolved) == {
        "brass_buckle": Decimal("1"),
        "thread": Decimal("3.9"),
        "magnetic_clasp": Decimal("1"),
        "black_leather": Decimal("0.5"),
        "black_dye": Decimal("1"),
        "wide_strap": Decimal("1"),
    }
    assert not resolved.has_anomalies


def test_quantities_keep_resolution_order(bag) -> None:
    resolved = BOMResolver(bag.catalog).resolve(bag.black_large)

    assert list(named(bag.builder, resolved)) == [
        "brass_buckle", "thread", "magnetic_clasp", "black_leather", "black_dye", "wide_strap",
    ]


def test_resolution_is_deterministic(bag) -> None:
    first = BOMResolver(bag.catalog).resolve(bag.black_large)
    second = BOMResolver(bag.catalog).resolve(bag.black_large)

    assert first == second
    assert list(first.quantities) == list(second.quantities)


def test_resolve_all_covers_active_variants(bag) -> None:
    black_small = bag.builder.variant(bag.product, Color="Black", Size="Small")
    retired = bag.builder.variant(bag.product, is_active=False, Color="Brown", Size="Small")
    catalog = bag.builder.catalog(bag.product, bag.black_large, black_small, retired)

    resolver = BOMResolver(catalog)

    assert set(resolver.resolve_all()) == {bag.black_large.id, black_small.id}
    assert set(resolver.resolve_all(active_only=False)) == {bag.black_large.id, black_small.id, retired.id}


# ==================== LAYERS 1 AND 2a ====================

def test_duplicate_base_entries_are_summed(builder) -> None:
    product = builder.product(bom=[("thread", "1.5"), ("thread", "2")])
    variant = builder.variant(product, sku="BAG")

    assert named(builder, resolve(builder, product, variant)) == {"thread": Decimal("3.5")}


def test_option_entries_add_to_base(builder) -> None:
    product, variant = single_option_product(builder, {"thread": "2"}, entries={"thread": "0.5", "dye": "1"})

    assert named(builder, resolve(builder, product, variant)) == {"thread": Decimal("2.5"), "dye": Decimal("1")}


def test_zero_quantity_entries_stay_in_bom(builder) -> None:
    product = builder.product(bom={"thread": "0"})
    variant = builder.variant(product, sku="BAG")

    assert named(builder, resolve(builder, product, variant)) == {"thread": Decimal("0")}


# ==================== LAYER 2b ====================

def test_modifiers_apply_in_declared_order(builder) -> None:
    product, variant = single_option_product(
        builder, {"thread": "3"}, modifiers=[("ADD", "thread", "1"), ("MULTIPLY", "thread", "2")],
    )
    assert named(builder, resolve(builder, product, variant)) == {"thread": Decimal("8")}

    product, variant = single_option_product(
        builder, {"thread": "3"}, modifiers=[("MULTIPLY", "thread", "2"), ("ADD", "thread", "1")],
    )
    assert named(builder, resolve(builder, product, variant)) == {"thread": Decimal("7")}


def test_modifiers_follow_attribute_position(builder) -> None:
    color = builder.attribute("Color", 0, {"value": "Black", "modifiers": [("SET", "thread", "5")]})
    size = builder.attribute("Size", 1, {"value": "Large", "modifiers": [("MULTIPLY", "thread", "2")]})
    product = builder.product(size, color, bom={"thread": "1"})
    variant = builder.variant(product, Color="Black", Size="Large")

    assert named(builder, resolve(builder, product, variant)) == {"thread": Decimal("10")}


def test_all_additions_precede_all_modifiers(builder) -> None:
    color = builder.attribute("Color", 0, {"value": "Black", "modifiers": [("MULTIPLY", "leather", "3")]})
    size = builder.attribute("Size", 1, {"value": "Large", "entries": {"leather": "2"}})
    product = builder.product(color, size)
    variant = builder.variant(product, Color="Black", Size="Large")

    assert named(builder, resolve(builder, product, variant)) == {"leather": Decimal("6")}


def test_multiply_and_add_on_absent_material_are_noops(builder) -> None:
    product, variant = single_option_product(
        builder, {"thread": "1"}, modifiers=[("MULTIPLY", "dye", "2"), ("ADD", "glue", "1")],
    )

    assert named(builder, resolve(builder, product, variant)) == {"thread": Decimal("1")}


def test_set_modifier_inserts_absent_material(builder) -> None:
    product, variant = single_option_product(builder, {"thread": "1"}, modifiers=[("SET", "glue", "0.25")])

    assert named(builder, resolve(builder, product, variant)) == {"thread": Decimal("1"), "glue": Decimal("0.25")}


# ==================== LAYER 3 ====================

def test_replace_override_carries_quantity(bag) -> None:
    builder = bag.builder
    variant = builder.variant(
        bag.product,
        overrides=[builder.override("REPLACE", source="black_leather", target="vegan_leather")],
        Color="Black", Size="Large",
    )

    resolved = named(builder, resolve(builder, bag.product, variant))

    assert "black_leather" not in resolved
    assert resolved["vegan_leather"] == Decimal("0.5")


def test_replace_override_with_explicit_quantity(bag) -> None:
    builder = bag.builder
    variant = builder.variant(
        bag.product,
        overrides=[builder.override("REPLACE", source="black_leather", target="vegan_leather", quantity="0.7")],
        Color="Black", Size="Large",
    )

    assert named(builder, resolve(builder, bag.product, variant))["vegan_leather"] == Decimal("0.7")


def test_replace_onto_present_target_sums(builder) -> None:
    product = builder.product(bom={"thread": "2", "cord": "1"})
    variant = builder.variant(
        product, sku="BAG", overrides=[builder.override("REPLACE", source="thread", target="cord")],
    )

    assert named(builder, resolve(builder, product, variant)) == {"cord": Decimal("3")}


def test_replace_absent_source_is_noop(builder) -> None:
    product = builder.product(bom={"thread": "2"})
    variant = builder.variant(
        product, sku="BAG", overrides=[builder.override("REPLACE", source="cord", target="wire")],
    )

    assert named(builder, resolve(builder, product, variant)) == {"thread": Decimal("2")}


def test_add_remove_and_set_quantity_overrides(builder) -> None:
    product = builder.product(bom={"thread": "2", "dye": "1", "buckle": "1"})
    variant = builder.variant(
        product,
        sku="BAG",
        overrides=[
            builder.override("ADD", material="thread", quantity="0.5"),
            builder.override("ADD", material="rivet", quantity="4"),
            builder.override("REMOVE", material="dye"),
            builder.override("REMOVE", material="glue"),
            builder.override("SET_QUANTITY", material="buckle", quantity="2"),
            builder.override("SET_QUANTITY", material="lining", quantity="0.3"),
        ],
    )

    assert named(builder, resolve(builder, product, variant)) == {
        "thread": Decimal("2.5"),
        "buckle": Decimal("2"),
        "rivet": Decimal("4"),
        "lining": Decimal("0.3"),
    }


def test_overrides_apply_after_modifiers(builder) -> None:
    attribute = builder.attribute("Size", 0, {"value": "Large", "modifiers": [("MULTIPLY", "thread", "2")]})
    product = builder.product(attribute, bom={"thread": "3"})
    variant = builder.variant(
        product,
        overrides=[builder.override("SET_QUANTITY", material="thread", quantity="4")],
        Size="Large",
    )

    assert named(builder, resolve(builder, product, variant)) == {"thread": Decimal("4")}


# ==================== LAYER 4 ====================

def test_negative_quantity_is_clamped_and_reported(builder, caplog) -> None:
    product, variant = single_option_product(builder, {"thread": "3"}, modifiers=[("ADD", "thread", "-5")])

    with caplog.at_level(logging.WARNING, logger="catalog_engine.services.bom_resolver"):
        resolved = resolve(builder, product, variant)

    assert resolved.quantity_for(builder.id("thread")) == Decimal("0")
    assert resolved.has_anomalies
    assert resolved.anomalies[0].raw_material_id == builder.id("thread")
    assert resolved.anomalies[0].original_quantity == Decimal("-2")
    assert "Negative BOM quantity clamped" in caplog.text


# ==================== MISSING MATERIALS ====================

def test_missing_material_fails_whole_resolution(bag) -> None:
    materials = {m.id: m for m in bag.builder.materials.values() if m.id != bag.builder.id("thread")}
    catalog = bag.catalog.model_copy(update={"raw_materials": materials})

    with pytest.raises(MissingMaterialReferenceError) as exc_info:
        BOMResolver(catalog).resolve(bag.black_large)

    assert exc_info.value.raw_material_id == bag.builder.id("thread")
    assert exc_info.value.layer == LAYER_PRODUCT_ENTRY
    assert exc_info.value.details["variant_id"] == str(bag.black_large.id)


def test_inactive_material_counts_as_missing(builder) -> None:
    builder.material("old_dye", is_active=False)
    product, variant = single_option_product(builder, {"thread": "1"}, modifiers=[("SET", "old_dye", "1")])

    with pytest.raises(MissingMaterialReferenceError) as exc_info:
        resolve(builder, product, variant)

    assert exc_info.value.layer == LAYER_OPTION_MODIFIER


def test_missing_override_material(builder) -> None:
    product = builder.product(bom={"thread": "1"})
    variant = builder.variant(
        product, sku="BAG", overrides=[builder.override("ADD", material="ghost", quantity="1")],
    )
    catalog = builder.catalog(product, variant)
    catalog = catalog.model_copy(update={
        "raw_materials": {k: v for k, v in catalog.raw_materials.items() if k != builder.id("ghost")},
    })

    with pytest.raises(MissingMaterialReferenceError) as exc_info:
        BOMResolver(catalog).resolve(variant)

    assert exc_info.value.layer == LAYER_VARIANT_OVERRIDE


# ==================== HELPERS ====================

def test_for_units_scales_quantities(bag) -> None:
    resolved = BOMResolver(bag.catalog).resolve(bag.black_large)

    consumption = resolved.for_units(10)

    assert consumption[bag.builder.id("thread")] == Decimal("39.0")
    assert consumption[bag.builder.id("black_leather")] == Decimal("5.0")
    with pytest.raises(ValueError):
        resolved.for_units(-1)


def test_bom_unit_cost(builder) -> None:
    builder.material("thread", cost="0.10")
    builder.material("leather", cost="40.00")
    product = builder.product(bom={"thread": "3.9", "leather": "0.5"})
    variant = builder.variant(product, sku="BAG")

    resolved = resolve(builder, product, variant)

    assert bom_unit_cost(resolved, builder.catalog(product).raw_materials) == Decimal("20.3900")
