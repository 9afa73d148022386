"""
Catalog snapshot value objects.

A CatalogSnapshot is a read-only, point-in-time view of one product: its
attributes and options, every BOM layer, its existing variants and the raw
materials those layers reference. The pure components (VariantGenerator,
PricingResolver, BOMResolver) only ever see these objects, never the ORM.
"""
from decimal import Decimal
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple
from uuid import UUID

from pydantic import Field

from catalog_engine.core.exceptions import InvalidCatalogSnapshotError
from catalog_engine.schemas.base import SnapshotSchema
from catalog_engine.schemas.bom import (
    BOMModifier,
    BOMOverride,
    OptionBOMEntrySnapshot,
    ProductBOMEntrySnapshot,
)


OptionKey = Tuple[Tuple[UUID, UUID], ...]


def option_set_key(pairs: Iterable[Tuple[UUID, UUID]]) -> OptionKey:
    """
    Canonical identity of an option-set: (attribute_id, option_id) pairs sorted by attribute.

    Raises InvalidCatalogSnapshotError if one attribute appears twice.
    """
    key = tuple(sorted(pairs, key=lambda pair: pair[0]))
    attribute_ids = [attribute_id for attribute_id, _ in key]
    if len(set(attribute_ids)) != len(attribute_ids):
        raise InvalidCatalogSnapshotError(
            "Option-set selects more than one option for an attribute",
            {"option_set": [f"{a}:{o}" for a, o in key]},
        )
    return key


def format_option_key(key: OptionKey) -> str:
    """Stable string form of an option key, e.g. for logs and variant ids."""
    return ",".join(f"{attribute_id}:{option_id}" for attribute_id, option_id in key)


class RawMaterialSnapshot(SnapshotSchema):
    id: UUID
    name: str
    sku: str
    unit_of_measure: str = "UNIT"
    cost_per_unit: Decimal = Decimal("0")
    is_active: bool = True


class OptionSnapshot(SnapshotSchema):
    """One option of an attribute, with its layer 2a entries and layer 2b modifiers."""
    id: UUID
    attribute_id: UUID
    value: str
    display_value: Optional[str] = None
    code: Optional[str] = None
    price_modifier: Decimal = Decimal("0")
    weight_modifier_grams: int = 0
    position: int = 0
    is_active: bool = True
    bom_entries: Tuple[OptionBOMEntrySnapshot, ...] = ()
    # Applied in tuple order
    bom_modifiers: Tuple[BOMModifier, ...] = ()


class AttributeSnapshot(SnapshotSchema):
    id: UUID
    name: str
    display_name: Optional[str] = None
    attribute_type: str = "SELECT"
    position: int
    options: Tuple[OptionSnapshot, ...] = ()

    def active_options(self) -> List[OptionSnapshot]:
        """Active options ordered by position (id breaks ties)."""
        return sorted(
            (option for option in self.options if option.is_active),
            key=lambda option: (option.position, str(option.id)),
        )


class VariantOptionRef(SnapshotSchema):
    attribute_id: UUID
    option_id: UUID


class VariantSnapshot(SnapshotSchema):
    """An existing variant row, active or not."""
    id: UUID
    product_id: UUID
    sku: str
    options: Tuple[VariantOptionRef, ...] = ()
    price: Optional[Decimal] = None
    weight_grams: Optional[int] = None
    stock_quantity: int = Field(default=0, ge=0)
    position: int = 0
    is_active: bool = True
    # Applied in tuple order
    bom_overrides: Tuple[BOMOverride, ...] = ()

    def option_key(self) -> OptionKey:
        return option_set_key((ref.attribute_id, ref.option_id) for ref in self.options)

    def selected_option_id(self, attribute_id: UUID) -> Optional[UUID]:
        for ref in self.options:
            if ref.attribute_id == attribute_id:
                return ref.option_id
        return None


class ProductSnapshot(SnapshotSchema):
    id: UUID
    name: str
    slug: Optional[str] = None
    sku_prefix: Optional[str] = None
    base_price: Decimal = Decimal("0")
    base_weight_grams: int = 0
    attributes: Tuple[AttributeSnapshot, ...] = ()
    bom_entries: Tuple[ProductBOMEntrySnapshot, ...] = ()

    def ordered_attributes(self) -> List[AttributeSnapshot]:
        """
        Attributes in resolution order.

        Raises InvalidCatalogSnapshotError when two attributes share a
        position or an option is attached to the wrong attribute.
        """
        positions = [attribute.position for attribute in self.attributes]
        if len(set(positions)) != len(positions):
            raise InvalidCatalogSnapshotError(
                f"Product {self.id} has attributes sharing a position",
                {"product_id": str(self.id), "positions": positions},
            )
        for attribute in self.attributes:
            for option in attribute.options:
                if option.attribute_id != attribute.id:
                    raise InvalidCatalogSnapshotError(
                        f"Option {option.id} does not belong to attribute {attribute.id}",
                        {"option_id": str(option.id), "attribute_id": str(attribute.id)},
                    )
        return sorted(self.attributes, key=lambda attribute: attribute.position)

    def option_index(self) -> Dict[UUID, OptionSnapshot]:
        """All options of the product (active or not) by id."""
        return {
            option.id: option
            for attribute in self.attributes
            for option in attribute.options
        }


class CatalogSnapshot(SnapshotSchema):
    """Everything the engine needs about one product, as of one point in time."""
    product: ProductSnapshot
    variants: Tuple[VariantSnapshot, ...] = ()
    raw_materials: Dict[UUID, RawMaterialSnapshot] = Field(default_factory=dict)

    def material_ids(self) -> FrozenSet[UUID]:
        return frozenset(self.raw_materials)

    def is_material_available(self, raw_material_id: UUID) -> bool:
        """Inactive or unknown materials count as missing."""
        material = self.raw_materials.get(raw_material_id)
        return material is not None and material.is_active

    def active_variants(self) -> List[VariantSnapshot]:
        return [variant for variant in self.variants if variant.is_active]

    def get_variant(self, variant_id: UUID) -> Optional[VariantSnapshot]:
        for variant in self.variants:
            if variant.id == variant_id:
                return variant
        return None
