from pydantic import Field, field_validator
from typing import Optional
from datetime import date
from decimal import Decimal
import uuid

from catalog_engine.core.enum_utils import (
    create_uppercase_validator,
    VALID_BATCH_STATUSES,
    VALID_STOCK_MOVEMENT_TYPES,
)
from catalog_engine.models.inventory import StockMovementType
from catalog_engine.models.production import ProductionBatchStatus
from catalog_engine.schemas.base import BaseCreateSchema


# ==================== PRODUCTION BATCH SCHEMAS ====================

class ProductionBatchCreate(BaseCreateSchema):
    """Plan a production batch for one variant."""
    variant_id: uuid.UUID
    planned_quantity: int = Field(..., gt=0)
    status: ProductionBatchStatus = ProductionBatchStatus.DRAFT
    scheduled_date: Optional[date] = None
    notes: Optional[str] = None

    normalize_status = create_uppercase_validator('status', VALID_BATCH_STATUSES)

    @field_validator('status')
    @classmethod
    def initial_status_only(cls, v):
        if v not in (ProductionBatchStatus.DRAFT, ProductionBatchStatus.SCHEDULED):
            raise ValueError("A new batch must be DRAFT or SCHEDULED")
        return v


class ProductionBatchComplete(BaseCreateSchema):
    """Finish a batch with the quantity actually produced."""
    actual_quantity: int = Field(..., gt=0)
    notes: Optional[str] = None


# ==================== STOCK LEDGER SCHEMAS ====================

class StockAdjustmentCreate(BaseCreateSchema):
    """Manual signed stock change for a raw material."""
    raw_material_id: uuid.UUID
    quantity_change: Decimal
    movement_type: StockMovementType = StockMovementType.ADJUSTMENT
    unit_cost: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None

    normalize_movement_type = create_uppercase_validator('movement_type', VALID_STOCK_MOVEMENT_TYPES)

    @field_validator('quantity_change')
    @classmethod
    def non_zero(cls, v):
        if v == 0:
            raise ValueError("quantity_change must not be zero")
        return v

    @field_validator('movement_type')
    @classmethod
    def not_production(cls, v):
        if v in (StockMovementType.PRODUCTION_CONSUME, StockMovementType.PRODUCTION_OUTPUT):
            raise ValueError("Production movements are recorded by production batches only")
        return v
