"""Variant generation results."""
from enum import Enum
from typing import Tuple
from uuid import UUID

from catalog_engine.schemas.base import SnapshotSchema
from catalog_engine.schemas.catalog import VariantOptionRef


class VariantAction(str, Enum):
    """What the persistence layer has to do with one variant."""
    CREATE = "CREATE"
    REACTIVATE = "REACTIVATE"
    DEACTIVATE = "DEACTIVATE"
    KEEP = "KEEP"


class VariantPlan(SnapshotSchema):
    """Target state of one variant after reconciliation."""
    variant_id: UUID
    sku: str
    options: Tuple[VariantOptionRef, ...] = ()
    position: int = 0
    is_active: bool = True
    stock_quantity: int = 0
    action: VariantAction


class SKUFailure(SnapshotSchema):
    """A target combination that could not be given a free SKU."""
    option_key: str
    candidate_sku: str
    message: str


class GenerationResult(SnapshotSchema):
    """
    Outcome of one VariantGenerator run.

    target_variants is the full target set in generation order; created,
    reactivated and unchanged partition it. deactivated holds existing
    variants that fell out of the target set.
    """
    product_id: UUID
    target_variants: Tuple[VariantPlan, ...] = ()
    created: Tuple[VariantPlan, ...] = ()
    reactivated: Tuple[VariantPlan, ...] = ()
    deactivated: Tuple[VariantPlan, ...] = ()
    unchanged: Tuple[VariantPlan, ...] = ()
    failures: Tuple[SKUFailure, ...] = ()

    @property
    def write_count(self) -> int:
        return len(self.created) + len(self.reactivated) + len(self.deactivated)

    @property
    def is_noop(self) -> bool:
        return self.write_count == 0

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)
