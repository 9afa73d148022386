import os

# Must be set before catalog_engine.config is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

import uuid
from decimal import Decimal
from types import SimpleNamespace
from typing import Dict, Iterable, Optional

import pytest

from catalog_engine import models  # noqa: F401
from catalog_engine.database import Base, async_session_factory, engine
from catalog_engine.models import (
    AttributeOptionBOMEntry,
    AttributeOptionBOMModifier,
    Product,
    ProductAttribute,
    ProductAttributeOption,
    ProductBOMEntry,
    RawMaterial,
)
from catalog_engine.schemas.bom import (
    AddModifier,
    AddOverride,
    MultiplyModifier,
    OptionBOMEntrySnapshot,
    ProductBOMEntrySnapshot,
    RemoveOverride,
    ReplaceOverride,
    SetModifier,
    SetQuantityOverride,
)
from catalog_engine.schemas.catalog import (
    AttributeSnapshot,
    CatalogSnapshot,
    OptionSnapshot,
    ProductSnapshot,
    RawMaterialSnapshot,
    VariantOptionRef,
    VariantSnapshot,
)
from catalog_engine.services.variant_service import VariantService


# ==================== SNAPSHOT BUILDER ====================

class SnapshotBuilder:
    """
    Builds catalog snapshots with materials referenced by name.

    Option specs are dicts:
        {"value": "Large", "price": "10.00", "weight": 50,
         "entries": {"wide_strap": "1"}, "modifiers": [("MULTIPLY", "thread", "1.3")]}
    """

    def __init__(self):
        self.materials: Dict[str, RawMaterialSnapshot] = {}

    def material(self, name: str, cost: str = "1.00", is_active: bool = True) -> uuid.UUID:
        if name not in self.materials:
            self.materials[name] = RawMaterialSnapshot(
                id=uuid.uuid4(),
                name=name,
                sku=name.upper(),
                cost_per_unit=Decimal(cost),
                is_active=is_active,
            )
        return self.materials[name].id

    def id(self, name: str) -> uuid.UUID:
        return self.materials[name].id

    def modifier(self, modifier_type: str, material: str, value: str):
        material_id = self.material(material)
        value = Decimal(value)
        if modifier_type == "MULTIPLY":
            return MultiplyModifier(id=uuid.uuid4(), raw_material_id=material_id, factor=value)
        if modifier_type == "ADD":
            return AddModifier(id=uuid.uuid4(), raw_material_id=material_id, delta=value)
        return SetModifier(id=uuid.uuid4(), raw_material_id=material_id, quantity=value)

    def override(
        self,
        override_type: str,
        material: Optional[str] = None,
        quantity: Optional[str] = None,
        source: Optional[str] = None,
        target: Optional[str] = None,
    ):
        qty = Decimal(quantity) if quantity is not None else None
        if override_type == "REPLACE":
            return ReplaceOverride(
                id=uuid.uuid4(),
                source_material_id=self.material(source),
                target_material_id=self.material(target),
                quantity=qty,
            )
        if override_type == "ADD":
            return AddOverride(id=uuid.uuid4(), raw_material_id=self.material(material), quantity=qty)
        if override_type == "REMOVE":
            return RemoveOverride(id=uuid.uuid4(), raw_material_id=self.material(material))
        return SetQuantityOverride(id=uuid.uuid4(), raw_material_id=self.material(material), quantity=qty)

    def attribute(self, name: str, position: int, *options: dict) -> AttributeSnapshot:
        attribute_id = uuid.uuid4()
        built = []
        for index, spec in enumerate(options):
            built.append(OptionSnapshot(
                id=spec.get("id", uuid.uuid4()),
                attribute_id=attribute_id,
                value=spec["value"],
                display_value=spec["value"],
                code=spec.get("code"),
                price_modifier=Decimal(spec.get("price", "0")),
                weight_modifier_grams=spec.get("weight", 0),
                position=spec.get("position", index),
                is_active=spec.get("is_active", True),
                bom_entries=tuple(
                    OptionBOMEntrySnapshot(id=uuid.uuid4(), raw_material_id=self.material(m), quantity=Decimal(q))
                    for m, q in spec.get("entries", {}).items()
                ),
                bom_modifiers=tuple(self.modifier(*m) for m in spec.get("modifiers", ())),
            ))
        return AttributeSnapshot(id=attribute_id, name=name, display_name=name, position=position, options=tuple(built))

    def product(
        self,
        *attributes: AttributeSnapshot,
        bom: Optional[Iterable] = None,
        sku_prefix: Optional[str] = "BAG",
        base_price: str = "100.00",
        base_weight: int = 500,
        product_id: Optional[uuid.UUID] = None,
    ) -> ProductSnapshot:
        bom_items = bom.items() if isinstance(bom, dict) else (bom or ())
        return ProductSnapshot(
            id=product_id or uuid.uuid4(),
            name="Leather Bag",
            slug="leather-bag",
            sku_prefix=sku_prefix,
            base_price=Decimal(base_price),
            base_weight_grams=base_weight,
            attributes=attributes,
            bom_entries=tuple(
                ProductBOMEntrySnapshot(id=uuid.uuid4(), raw_material_id=self.material(m), quantity=Decimal(q))
                for m, q in bom_items
            ),
        )

    def variant(
        self,
        product: ProductSnapshot,
        sku: Optional[str] = None,
        overrides: Iterable = (),
        price: Optional[str] = None,
        weight: Optional[int] = None,
        is_active: bool = True,
        stock: int = 0,
        position: int = 0,
        **selections: str,
    ) -> VariantSnapshot:
        """Select options by attribute name and option value, e.g. Color="Black"."""
        refs = []
        for attribute in product.attributes:
            if attribute.name in selections:
                option = next(o for o in attribute.options if o.value == selections[attribute.name])
                refs.append(VariantOptionRef(attribute_id=attribute.id, option_id=option.id))
        return VariantSnapshot(
            id=uuid.uuid4(),
            product_id=product.id,
            sku=sku or "-".join(["BAG", *selections.values()]).upper(),
            options=tuple(refs),
            price=Decimal(price) if price is not None else None,
            weight_grams=weight,
            stock_quantity=stock,
            position=position,
            is_active=is_active,
            bom_overrides=tuple(overrides),
        )

    def catalog(self, product: ProductSnapshot, *variants: VariantSnapshot) -> CatalogSnapshot:
        return CatalogSnapshot(
            product=product,
            variants=variants,
            raw_materials={m.id: m for m in self.materials.values()},
        )

    def stock(self, **quantities: str) -> Dict[uuid.UUID, Decimal]:
        return {self.id(name): Decimal(q) for name, q in quantities.items()}


@pytest.fixture
def builder() -> SnapshotBuilder:
    return SnapshotBuilder()


@pytest.fixture
def bag(builder):
    """
    Leather bag:
        base BOM     brass_buckle 1, thread 3, magnetic_clasp 1
        Color=Black  + black_leather 0.5, black_dye 1
        Color=Brown  + brown_leather 0.5
        Size=Small   + small_strap 1
        Size=Large   + wide_strap 1, thread x1.3
    """
    color = builder.attribute(
        "Color", 0,
        {"value": "Black", "entries": {"black_leather": "0.5", "black_dye": "1"}},
        {"value": "Brown", "price": "5.00", "entries": {"brown_leather": "0.5"}},
    )
    size = builder.attribute(
        "Size", 1,
        {"value": "Small", "weight": -50, "entries": {"small_strap": "1"}},
        {"value": "Large", "price": "20.00", "weight": 150,
         "entries": {"wide_strap": "1"}, "modifiers": [("MULTIPLY", "thread", "1.3")]},
    )
    product = builder.product(
        color, size,
        bom={"brass_buckle": "1", "thread": "3", "magnetic_clasp": "1"},
    )
    black_large = builder.variant(product, sku="BAG-BLA-LAR", Color="Black", Size="Large")
    return SimpleNamespace(
        builder=builder,
        product=product,
        color=color,
        size=size,
        black_large=black_large,
        catalog=builder.catalog(product, black_large),
    )


# ==================== DATABASE ====================

@pytest.fixture
async def db_session():
    """Fresh in-memory schema per test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as session:
        yield session

    # Dropping the only pooled connection discards the in-memory database
    await engine.dispose()


@pytest.fixture
async def seeded_bag(db_session):
    """The leather bag catalog persisted through the ORM, with stock."""
    materials = {
        name: RawMaterial(
            id=uuid.uuid4(),
            name=name.replace("_", " ").title(),
            sku=name.upper(),
            unit_of_measure=uom,
            cost_per_unit=Decimal(cost),
            stock_quantity=Decimal(stock),
            low_stock_threshold=Decimal(threshold),
        )
        for name, uom, cost, stock, threshold in [
            ("brass_buckle", "UNIT", "2.5000", "50", "10"),
            ("thread", "M", "0.1000", "100", "20"),
            ("magnetic_clasp", "UNIT", "1.2000", "30", "5"),
            ("black_leather", "M2", "40.0000", "10", "2"),
            ("black_dye", "UNIT", "0.5000", "15", "3"),
            ("brown_leather", "M2", "35.0000", "1", "2"),
            ("small_strap", "UNIT", "3.0000", "20", "5"),
            ("wide_strap", "UNIT", "4.0000", "8", "10"),
        ]
    }
    db_session.add_all(materials.values())

    product = Product(
        name="Leather Bag",
        slug="leather-bag",
        status="ACTIVE",
        sku_prefix="BAG",
        base_price=Decimal("100.00"),
        base_weight_grams=500,
    )
    color = ProductAttribute(name="Color", display_name="Color", position=0)
    size = ProductAttribute(name="Size", display_name="Size", position=1)
    product.attributes = [color, size]

    black = ProductAttributeOption(value="Black", display_value="Black", position=0)
    brown = ProductAttributeOption(value="Brown", display_value="Brown", position=1,
                                   price_modifier=Decimal("5.00"))
    small = ProductAttributeOption(value="Small", display_value="Small", position=0,
                                   weight_modifier_grams=-50)
    large = ProductAttributeOption(value="Large", display_value="Large", position=1,
                                   price_modifier=Decimal("20.00"), weight_modifier_grams=150)
    color.options = [black, brown]
    size.options = [small, large]

    product.bom_entries = [
        ProductBOMEntry(raw_material_id=materials["brass_buckle"].id, quantity=Decimal("1"), position=0),
        ProductBOMEntry(raw_material_id=materials["thread"].id, quantity=Decimal("3"), unit_of_measure="M", position=1),
        ProductBOMEntry(raw_material_id=materials["magnetic_clasp"].id, quantity=Decimal("1"), position=2),
    ]
    black.bom_entries = [
        AttributeOptionBOMEntry(raw_material_id=materials["black_leather"].id, quantity=Decimal("0.5"), position=0),
        AttributeOptionBOMEntry(raw_material_id=materials["black_dye"].id, quantity=Decimal("1"), position=1),
    ]
    brown.bom_entries = [
        AttributeOptionBOMEntry(raw_material_id=materials["brown_leather"].id, quantity=Decimal("0.5")),
    ]
    small.bom_entries = [
        AttributeOptionBOMEntry(raw_material_id=materials["small_strap"].id, quantity=Decimal("1")),
    ]
    large.bom_entries = [
        AttributeOptionBOMEntry(raw_material_id=materials["wide_strap"].id, quantity=Decimal("1")),
    ]
    large.bom_modifiers = [
        AttributeOptionBOMModifier(
            raw_material_id=materials["thread"].id,
            modifier_type="MULTIPLY",
            modifier_value=Decimal("1.3"),
        ),
    ]
    db_session.add(product)
    await db_session.commit()

    return SimpleNamespace(
        product_id=product.id,
        color_id=color.id,
        size_id=size.id,
        options={"Black": black.id, "Brown": brown.id, "Small": small.id, "Large": large.id},
        materials={name: material.id for name, material in materials.items()},
    )


@pytest.fixture
async def bag_variants(db_session, seeded_bag):
    """Generated bag variants keyed by SKU."""
    service = VariantService(db_session)
    await service.regenerate_variants(seeded_bag.product_id)
    await db_session.commit()
    return {variant.sku: variant for variant in await service.get_variants(seeded_bag.product_id)}
