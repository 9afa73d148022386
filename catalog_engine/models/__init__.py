# Import all models so they register with Base.metadata
from catalog_engine.models.product import (
    Product, ProductAttribute, ProductAttributeOption,
    ProductVariant, ProductVariantOption,
    ProductStatus, AttributeType,
)
from catalog_engine.models.bom import (
    ProductBOMEntry, AttributeOptionBOMEntry, AttributeOptionBOMModifier, VariantBOMOverride,
    BOMModifierType, BOMOverrideType,
)
from catalog_engine.models.inventory import (
    RawMaterial, StockMovement,
    UnitOfMeasure, StockEntityType, StockMovementType,
)
from catalog_engine.models.production import (
    ProductionBatch, ProductionBatchMaterial, ProductionBatchStatus,
)

__all__ = [
    "Product", "ProductAttribute", "ProductAttributeOption",
    "ProductVariant", "ProductVariantOption",
    "ProductStatus", "AttributeType",
    "ProductBOMEntry", "AttributeOptionBOMEntry", "AttributeOptionBOMModifier", "VariantBOMOverride",
    "BOMModifierType", "BOMOverrideType",
    "RawMaterial", "StockMovement",
    "UnitOfMeasure", "StockEntityType", "StockMovementType",
    "ProductionBatch", "ProductionBatchMaterial", "ProductionBatchStatus",
]
