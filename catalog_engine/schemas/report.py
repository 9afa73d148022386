"""Pricing breakdown and reporting schemas."""
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional, Tuple
from uuid import UUID

from catalog_engine.schemas.base import SnapshotSchema
from catalog_engine.schemas.bom import BOMAnomaly
from catalog_engine.schemas.producibility import ProducibilityResult


class PriceBreakdown(SnapshotSchema):
    """
    Unrounded components of a variant price.

    When is_override is set, base and modifiers_total are zero and
    unrounded is the variant's explicit price.
    """
    base: Decimal
    modifiers_total: Decimal
    unrounded: Decimal
    is_override: bool = False


# ==================== PRODUCIBILITY REPORT ====================

class VariantProducibilityRow(SnapshotSchema):
    variant_id: UUID
    sku: str
    effective_price: Decimal
    effective_weight_grams: int
    bom: Dict[UUID, Decimal]
    unit_material_cost: Decimal
    producibility: ProducibilityResult
    anomalies: Tuple[BOMAnomaly, ...] = ()


class VariantReportError(SnapshotSchema):
    """A variant whose BOM could not be resolved."""
    variant_id: UUID
    sku: str
    error: str
    details: Dict[str, Optional[str]] = {}


class ProductProducibilityReport(SnapshotSchema):
    product_id: UUID
    product_name: str
    generated_at: datetime
    variants: Tuple[VariantProducibilityRow, ...] = ()
    errors: Tuple[VariantReportError, ...] = ()

    def below_threshold(self, threshold: int) -> Tuple[VariantProducibilityRow, ...]:
        """Rows whose producible units are below `threshold` (unlimited never is)."""
        return tuple(
            row for row in self.variants
            if not row.producibility.unlimited and row.producibility.units < threshold
        )


# ==================== LOW STOCK ====================

class LowStockMaterial(SnapshotSchema):
    raw_material_id: UUID
    sku: str
    name: str
    unit_of_measure: str
    stock_quantity: Decimal
    low_stock_threshold: Decimal

    @property
    def stock_ratio(self) -> Decimal:
        """Stock relative to threshold; 0 when the threshold is 0."""
        if self.low_stock_threshold <= 0:
            return Decimal("0")
        return self.stock_quantity / self.low_stock_threshold
