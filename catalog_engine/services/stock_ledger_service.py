"""
Stock Ledger Service.

The only writer of raw material and variant stock. Every change locks the
affected rows (SELECT ... FOR UPDATE), updates the stock column and appends a
StockMovement in the same transaction. Movements are never updated or deleted.
"""
import logging
import uuid
from decimal import Decimal
from typing import Dict, List, Mapping, Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_engine.core.decimal_utils import ZERO, to_decimal
from catalog_engine.core.enum_utils import get_enum_value
from catalog_engine.core.exceptions import EntityNotFoundError, InsufficientStockError
from catalog_engine.models.inventory import (
    RawMaterial,
    StockEntityType,
    StockMovement,
    StockMovementType,
)
from catalog_engine.models.product import ProductVariant
from catalog_engine.schemas.production import StockAdjustmentCreate


logger = logging.getLogger(__name__)


class StockLedgerService:
    """Row-locked stock changes with an append-only movement ledger."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== RAW MATERIALS ====================

    async def get_material_stock(self, raw_material_id: uuid.UUID) -> Decimal:
        result = await self.db.execute(
            select(RawMaterial.stock_quantity).where(RawMaterial.id == raw_material_id)
        )
        stock = result.scalar_one_or_none()
        if stock is None:
            raise EntityNotFoundError("RawMaterial", raw_material_id)
        return stock

    async def lock_materials(self, material_ids: List[uuid.UUID]) -> Dict[uuid.UUID, RawMaterial]:
        """
        Lock raw material rows for update, in ascending id order.

        A fixed lock order keeps two batches that share materials from deadlocking.
        """
        ordered_ids = sorted(set(material_ids))
        if not ordered_ids:
            return {}

        query = (
            select(RawMaterial)
            .where(RawMaterial.id.in_(ordered_ids))
            .order_by(RawMaterial.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        materials = {material.id: material for material in result.scalars().all()}

        for material_id in ordered_ids:
            if material_id not in materials:
                raise EntityNotFoundError("RawMaterial", material_id)
        return materials

    async def consume_materials(
        self,
        requirements: Mapping[uuid.UUID, Decimal],
        reference_type: str,
        reference_id: Optional[uuid.UUID] = None,
        created_by: Optional[uuid.UUID] = None,
        notes: Optional[str] = None,
    ) -> List[StockMovement]:
        """
        Decrement stock for every material and record PRODUCTION_CONSUME movements.

        All-or-nothing: every material is locked and checked before any is
        decremented. Zero requirements are skipped.

        Raises:
            EntityNotFoundError: if a material does not exist
            InsufficientStockError: if any material would go below zero
        """
        requirements = {
            material_id: to_decimal(quantity)
            for material_id, quantity in requirements.items()
            if to_decimal(quantity) > 0
        }
        materials = await self.lock_materials(list(requirements))

        for material_id in sorted(requirements):
            material = materials[material_id]
            if material.stock_quantity < requirements[material_id]:
                raise InsufficientStockError(material_id, requirements[material_id], material.stock_quantity)

        movements = []
        for material_id in sorted(requirements):
            material = materials[material_id]
            movements.append(self._apply_material_change(
                material,
                -requirements[material_id],
                StockMovementType.PRODUCTION_CONSUME,
                reference_type=reference_type,
                reference_id=reference_id,
                unit_cost=material.cost_per_unit,
                created_by=created_by,
                notes=notes,
            ))

        await self.db.flush()
        logger.info(
            f"Stock consumed for {reference_type} {reference_id}: {len(movements)} materials"
        )
        return movements

    async def adjust_material_stock(
        self,
        data: StockAdjustmentCreate,
        created_by: Optional[uuid.UUID] = None,
    ) -> StockMovement:
        """Signed manual change (purchase, adjustment, damage...). Stock cannot go below zero."""
        quantity_change = to_decimal(data.quantity_change)
        material = (await self.lock_materials([data.raw_material_id]))[data.raw_material_id]

        if material.stock_quantity + quantity_change < 0:
            raise InsufficientStockError(data.raw_material_id, -quantity_change, material.stock_quantity)

        movement = self._apply_material_change(
            material,
            quantity_change,
            data.movement_type,
            reference_type="manual",
            unit_cost=data.unit_cost,
            created_by=created_by,
            notes=data.notes,
        )
        await self.db.flush()
        logger.info(
            f"Stock adjusted for material {material.sku}: {quantity_change} "
            f"({get_enum_value(data.movement_type)}), now {material.stock_quantity}"
        )
        return movement

    # ==================== VARIANTS ====================

    async def record_variant_output(
        self,
        variant_id: uuid.UUID,
        quantity: int,
        reference_type: str,
        reference_id: Optional[uuid.UUID] = None,
        unit_cost: Optional[Decimal] = None,
        created_by: Optional[uuid.UUID] = None,
    ) -> StockMovement:
        """Add produced units to a variant's stock with a PRODUCTION_OUTPUT movement."""
        if quantity <= 0:
            raise ValueError("Output quantity must be positive")

        query = (
            select(ProductVariant)
            .where(ProductVariant.id == variant_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        variant = (await self.db.execute(query)).scalar_one_or_none()
        if variant is None:
            raise EntityNotFoundError("ProductVariant", variant_id)

        before = variant.stock_quantity
        variant.stock_quantity = before + quantity

        movement = StockMovement(
            entity_type=StockEntityType.PRODUCT_VARIANT.value,
            entity_id=variant.id,
            movement_type=StockMovementType.PRODUCTION_OUTPUT.value,
            quantity_change=Decimal(quantity),
            quantity_before=Decimal(before),
            quantity_after=Decimal(variant.stock_quantity),
            reference_type=reference_type,
            reference_id=reference_id,
            unit_cost=unit_cost,
            created_by=created_by,
        )
        self.db.add(movement)
        await self.db.flush()
        return movement

    # ==================== LEDGER ====================

    async def list_movements(
        self,
        entity_type: Optional[StockEntityType] = None,
        entity_id: Optional[uuid.UUID] = None,
        reference_id: Optional[uuid.UUID] = None,
        limit: int = 100,
    ) -> List[StockMovement]:
        """Movement history, newest first."""
        conditions = []
        if entity_type:
            conditions.append(StockMovement.entity_type == get_enum_value(entity_type))
        if entity_id:
            conditions.append(StockMovement.entity_id == entity_id)
        if reference_id:
            conditions.append(StockMovement.reference_id == reference_id)

        query = select(StockMovement)
        if conditions:
            query = query.where(and_(*conditions))
        query = query.order_by(StockMovement.created_at.desc()).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    def _apply_material_change(
        self,
        material: RawMaterial,
        quantity_change: Decimal,
        movement_type: StockMovementType,
        reference_type: Optional[str] = None,
        reference_id: Optional[uuid.UUID] = None,
        unit_cost: Optional[Decimal] = None,
        created_by: Optional[uuid.UUID] = None,
        notes: Optional[str] = None,
    ) -> StockMovement:
        """Update a locked material row and append its movement."""
        before = material.stock_quantity if material.stock_quantity is not None else ZERO
        material.stock_quantity = before + quantity_change
        if quantity_change < 0 and material.is_low_stock:
            logger.warning(
                f"Material {material.sku} at or below low-stock threshold: "
                f"{material.stock_quantity} <= {material.low_stock_threshold}"
            )

        movement = StockMovement(
            entity_type=StockEntityType.RAW_MATERIAL.value,
            entity_id=material.id,
            movement_type=get_enum_value(movement_type),
            quantity_change=quantity_change,
            quantity_before=before,
            quantity_after=material.stock_quantity,
            reference_type=reference_type,
            reference_id=reference_id,
            unit_cost=unit_cost,
            created_by=created_by,
            notes=notes,
        )
        self.db.add(movement)
        return movement
