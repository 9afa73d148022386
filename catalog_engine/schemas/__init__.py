from catalog_engine.schemas.bom import (
    ProductBOMEntrySnapshot, OptionBOMEntrySnapshot,
    MultiplyModifier, AddModifier, SetModifier, BOMModifier,
    ReplaceOverride, AddOverride, RemoveOverride, SetQuantityOverride, BOMOverride,
    BOMAnomaly, ResolvedBOM,
)
from catalog_engine.schemas.catalog import (
    RawMaterialSnapshot, OptionSnapshot, AttributeSnapshot,
    VariantOptionRef, VariantSnapshot, ProductSnapshot, CatalogSnapshot,
    OptionKey, option_set_key, format_option_key,
)
from catalog_engine.schemas.variant import VariantAction, VariantPlan, SKUFailure, GenerationResult
from catalog_engine.schemas.producibility import MaterialConstraint, ProducibilityResult
from catalog_engine.schemas.report import (
    PriceBreakdown, VariantProducibilityRow, VariantReportError,
    ProductProducibilityReport, LowStockMaterial,
)
