"""
Catalog Repository.

Reads the ORM and builds the immutable snapshots the pure components work on:
catalog read (product, attributes, options, BOM layers), existing-variant
read and stock read.
"""
import uuid
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from catalog_engine.core.enum_utils import to_enum
from catalog_engine.core.exceptions import EntityNotFoundError, InvalidCatalogSnapshotError
from catalog_engine.models.bom import (
    AttributeOptionBOMModifier,
    BOMModifierType,
    BOMOverrideType,
    VariantBOMOverride,
)
from catalog_engine.models.inventory import RawMaterial
from catalog_engine.models.product import (
    Product,
    ProductAttribute,
    ProductAttributeOption,
    ProductVariant,
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


def _ordered(rows):
    """Order rows by position with the id as a stable tie-breaker."""
    return sorted(rows, key=lambda row: (row.position, str(row.id)))


class CatalogRepository:
    """Builds catalog snapshots from the database."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== PRODUCT ====================

    async def get_product(self, product_id: uuid.UUID) -> Product:
        query = (
            select(Product)
            .where(Product.id == product_id)
            .options(
                selectinload(Product.attributes)
                .selectinload(ProductAttribute.options)
                .selectinload(ProductAttributeOption.bom_entries),
                selectinload(Product.attributes)
                .selectinload(ProductAttribute.options)
                .selectinload(ProductAttributeOption.bom_modifiers),
                selectinload(Product.bom_entries),
            )
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        product = result.scalar_one_or_none()
        if product is None:
            raise EntityNotFoundError("Product", product_id)
        return product

    async def get_product_snapshot(self, product_id: uuid.UUID) -> ProductSnapshot:
        return self._product_snapshot(await self.get_product(product_id))

    async def get_existing_variants(self, product_id: uuid.UUID) -> List[VariantSnapshot]:
        """All variants of the product, active and inactive."""
        query = (
            select(ProductVariant)
            .where(ProductVariant.product_id == product_id)
            .options(
                selectinload(ProductVariant.options),
                selectinload(ProductVariant.bom_overrides),
            )
            .order_by(ProductVariant.position, ProductVariant.sku)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return [self._variant_snapshot(variant) for variant in result.scalars().all()]

    async def get_catalog_snapshot(self, product_id: uuid.UUID) -> CatalogSnapshot:
        """Product, every variant and every raw material any BOM layer references."""
        product = await self.get_product_snapshot(product_id)
        variants = await self.get_existing_variants(product_id)
        materials = await self.get_raw_materials(self._referenced_material_ids(product, variants))

        return CatalogSnapshot(
            product=product,
            variants=tuple(variants),
            raw_materials=materials,
        )

    # ==================== MATERIALS / STOCK ====================

    async def get_raw_materials(self, material_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, RawMaterialSnapshot]:
        ids = set(material_ids)
        if not ids:
            return {}

        result = await self.db.execute(select(RawMaterial).where(RawMaterial.id.in_(list(ids))))
        return {
            material.id: RawMaterialSnapshot.model_validate(material)
            for material in result.scalars().all()
        }

    async def get_stock_map(self, material_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, Decimal]:
        """Current stock per raw material. Unknown ids are simply absent."""
        ids = set(material_ids)
        if not ids:
            return {}

        result = await self.db.execute(
            select(RawMaterial.id, RawMaterial.stock_quantity).where(RawMaterial.id.in_(list(ids)))
        )
        return {row.id: row.stock_quantity for row in result.all()}

    # ==================== SNAPSHOT BUILDERS ====================

    def _product_snapshot(self, product: Product) -> ProductSnapshot:
        return ProductSnapshot(
            id=product.id,
            name=product.name,
            slug=product.slug,
            sku_prefix=product.sku_prefix,
            base_price=product.base_price,
            base_weight_grams=product.base_weight_grams,
            attributes=tuple(self._attribute_snapshot(a) for a in product.attributes),
            bom_entries=tuple(
                ProductBOMEntrySnapshot(
                    id=entry.id,
                    raw_material_id=entry.raw_material_id,
                    quantity=entry.quantity,
                    unit_of_measure=entry.unit_of_measure,
                )
                for entry in _ordered(product.bom_entries)
            ),
        )

    def _attribute_snapshot(self, attribute: ProductAttribute) -> AttributeSnapshot:
        return AttributeSnapshot(
            id=attribute.id,
            name=attribute.name,
            display_name=attribute.display_name,
            attribute_type=attribute.attribute_type,
            position=attribute.position,
            options=tuple(self._option_snapshot(o) for o in _ordered(attribute.options)),
        )

    def _option_snapshot(self, option: ProductAttributeOption) -> OptionSnapshot:
        return OptionSnapshot(
            id=option.id,
            attribute_id=option.attribute_id,
            value=option.value,
            display_value=option.display_value,
            code=option.code,
            price_modifier=option.price_modifier,
            weight_modifier_grams=option.weight_modifier_grams,
            position=option.position,
            is_active=option.is_active,
            bom_entries=tuple(
                OptionBOMEntrySnapshot(id=e.id, raw_material_id=e.raw_material_id, quantity=e.quantity)
                for e in _ordered(option.bom_entries)
            ),
            bom_modifiers=tuple(self._modifier_snapshot(m) for m in _ordered(option.bom_modifiers)),
        )

    def _variant_snapshot(self, variant: ProductVariant) -> VariantSnapshot:
        return VariantSnapshot(
            id=variant.id,
            product_id=variant.product_id,
            sku=variant.sku,
            options=tuple(
                VariantOptionRef(attribute_id=o.attribute_id, option_id=o.option_id)
                for o in variant.options
            ),
            price=variant.price,
            weight_grams=variant.weight_grams,
            stock_quantity=max(variant.stock_quantity, 0),
            position=variant.position,
            is_active=variant.is_active,
            bom_overrides=tuple(self._override_snapshot(o) for o in _ordered(variant.bom_overrides)),
        )

    @staticmethod
    def _modifier_snapshot(modifier: AttributeOptionBOMModifier):
        modifier_type = to_enum(modifier.modifier_type, BOMModifierType)

        if modifier_type == BOMModifierType.MULTIPLY:
            return MultiplyModifier(
                id=modifier.id, raw_material_id=modifier.raw_material_id, factor=modifier.modifier_value
            )
        if modifier_type == BOMModifierType.ADD:
            return AddModifier(
                id=modifier.id, raw_material_id=modifier.raw_material_id, delta=modifier.modifier_value
            )
        if modifier_type == BOMModifierType.SET:
            return SetModifier(
                id=modifier.id, raw_material_id=modifier.raw_material_id, quantity=modifier.modifier_value
            )
        raise InvalidCatalogSnapshotError(
            f"Unknown BOM modifier type '{modifier.modifier_type}'",
            {"modifier_id": str(modifier.id)},
        )

    @staticmethod
    def _override_snapshot(override: VariantBOMOverride):
        override_type = to_enum(override.override_type, BOMOverrideType)

        if override_type == BOMOverrideType.REMOVE:
            return RemoveOverride(id=override.id, raw_material_id=override.raw_material_id)

        if override_type == BOMOverrideType.REPLACE:
            if override.replaces_material_id is None:
                raise InvalidCatalogSnapshotError(
                    "REPLACE override has no material to replace",
                    {"override_id": str(override.id)},
                )
            return ReplaceOverride(
                id=override.id,
                source_material_id=override.replaces_material_id,
                target_material_id=override.raw_material_id,
                quantity=override.quantity,
            )

        if override_type in (BOMOverrideType.ADD, BOMOverrideType.SET_QUANTITY):
            if override.quantity is None:
                raise InvalidCatalogSnapshotError(
                    f"{override_type.value} override requires a quantity",
                    {"override_id": str(override.id)},
                )
            if override_type == BOMOverrideType.ADD:
                return AddOverride(
                    id=override.id, raw_material_id=override.raw_material_id, quantity=override.quantity
                )
            return SetQuantityOverride(
                id=override.id, raw_material_id=override.raw_material_id, quantity=override.quantity
            )

        raise InvalidCatalogSnapshotError(
            f"Unknown BOM override type '{override.override_type}'",
            {"override_id": str(override.id)},
        )

    @staticmethod
    def _referenced_material_ids(
        product: ProductSnapshot,
        variants: Optional[Iterable[VariantSnapshot]] = None,
    ) -> set:
        ids = {entry.raw_material_id for entry in product.bom_entries}
        for attribute in product.attributes:
            for option in attribute.options:
                ids.update(entry.raw_material_id for entry in option.bom_entries)
                ids.update(modifier.raw_material_id for modifier in option.bom_modifiers)
        for variant in variants or ():
            for override in variant.bom_overrides:
                if isinstance(override, ReplaceOverride):
                    ids.update((override.source_material_id, override.target_material_id))
                else:
                    ids.add(override.raw_material_id)
        return ids
