"""
Production Service.

Batch lifecycle:
    DRAFT / SCHEDULED -> IN_PROGRESS -> COMPLETED
    DRAFT / SCHEDULED -> CANCELLED

Creating a batch captures the variant's resolved BOM in batch material rows,
so later catalog edits do not change what an open batch consumes. Completing
a batch consumes quantity_per_unit x actual_quantity of every material
through the StockLedger and books the produced units onto the variant.
"""
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from catalog_engine.core.decimal_utils import ZERO, quantize_currency, quantize_quantity
from catalog_engine.core.enum_utils import get_enum_value, status_in
from catalog_engine.core.exceptions import EntityNotFoundError, InvalidBatchStatusError
from catalog_engine.database import acquire_advisory_lock
from catalog_engine.models.product import ProductVariant
from catalog_engine.models.production import (
    ProductionBatch,
    ProductionBatchMaterial,
    ProductionBatchStatus,
)
from catalog_engine.schemas.production import ProductionBatchComplete, ProductionBatchCreate
from catalog_engine.services.bom_resolver import BOMResolver
from catalog_engine.services.catalog_repository import CatalogRepository
from catalog_engine.services.stock_ledger_service import StockLedgerService


logger = logging.getLogger(__name__)

BATCH_REFERENCE_TYPE = "production_batch"
BATCH_NUMBER_LOCK_ID = uuid.uuid5(uuid.NAMESPACE_URL, "urn:catalog-engine:production-batch-number")


class ProductionService:
    """Service for production batch operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = CatalogRepository(db)
        self.ledger = StockLedgerService(db)

    # ==================== QUERIES ====================

    async def get_batch(self, batch_id: uuid.UUID, for_update: bool = False) -> ProductionBatch:
        query = (
            select(ProductionBatch)
            .where(ProductionBatch.id == batch_id)
            .options(selectinload(ProductionBatch.materials))
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)

        batch = (await self.db.execute(query)).scalar_one_or_none()
        if batch is None:
            raise EntityNotFoundError("ProductionBatch", batch_id)
        return batch

    async def list_batches(
        self,
        product_id: Optional[uuid.UUID] = None,
        status: Optional[ProductionBatchStatus] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[ProductionBatch]:
        conditions = []
        if product_id:
            conditions.append(ProductionBatch.product_id == product_id)
        if status:
            conditions.append(ProductionBatch.status == get_enum_value(status))

        query = select(ProductionBatch).options(selectinload(ProductionBatch.materials))
        if conditions:
            query = query.where(and_(*conditions))
        query = query.order_by(ProductionBatch.batch_number).offset(skip).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ==================== LIFECYCLE ====================

    async def create_batch(
        self,
        data: ProductionBatchCreate,
        created_by: Optional[uuid.UUID] = None,
    ) -> ProductionBatch:
        """
        Plan a batch and capture the variant's resolved BOM.

        Raises:
            EntityNotFoundError: if the variant does not exist or is inactive
            MissingMaterialReferenceError: if the BOM cannot be resolved
        """
        variant = await self.db.get(ProductVariant, data.variant_id)
        if variant is None or not variant.is_active:
            raise EntityNotFoundError("ProductVariant", data.variant_id)

        snapshot = await self.repository.get_catalog_snapshot(variant.product_id)
        variant_snapshot = snapshot.get_variant(variant.id)
        resolved = BOMResolver(snapshot).resolve(variant_snapshot)

        batch = ProductionBatch(
            batch_number=await self._generate_batch_number(),
            product_id=variant.product_id,
            variant_id=variant.id,
            planned_quantity=data.planned_quantity,
            status=get_enum_value(data.status),
            scheduled_date=data.scheduled_date,
            notes=data.notes,
            created_by=created_by,
            cost_total=ZERO,
        )
        for material_id, quantity in resolved.quantities.items():
            if quantity <= 0:
                continue
            per_unit = quantize_quantity(quantity)
            batch.materials.append(ProductionBatchMaterial(
                raw_material_id=material_id,
                quantity_per_unit=per_unit,
                required_quantity=per_unit * data.planned_quantity,
                consumed_quantity=ZERO,
                unit_cost=snapshot.raw_materials[material_id].cost_per_unit,
            ))

        self.db.add(batch)
        await self.db.flush()

        logger.info(
            f"Production batch {batch.batch_number} created for variant {variant.sku}: "
            f"{data.planned_quantity} units, {len(batch.materials)} materials"
        )
        return batch

    async def start_batch(self, batch_id: uuid.UUID) -> ProductionBatch:
        batch = await self.get_batch(batch_id, for_update=True)
        self._check_transition(
            batch, ProductionBatchStatus.IN_PROGRESS,
            ProductionBatchStatus.DRAFT, ProductionBatchStatus.SCHEDULED,
        )

        batch.status = ProductionBatchStatus.IN_PROGRESS.value
        batch.started_at = datetime.now(timezone.utc)
        await self.db.flush()

        logger.info(f"Production batch {batch.batch_number} started")
        return batch

    async def complete_batch(
        self,
        batch_id: uuid.UUID,
        data: ProductionBatchComplete,
        created_by: Optional[uuid.UUID] = None,
    ) -> ProductionBatch:
        """
        Consume materials for the produced units and add them to variant stock.

        Raises:
            InvalidBatchStatusError: unless the batch is IN_PROGRESS
            InsufficientStockError: if any material is short (nothing is consumed)
        """
        batch = await self.get_batch(batch_id, for_update=True)
        self._check_transition(batch, ProductionBatchStatus.COMPLETED, ProductionBatchStatus.IN_PROGRESS)

        requirements = {
            material.raw_material_id: material.quantity_per_unit * data.actual_quantity
            for material in batch.materials
        }
        await self.ledger.consume_materials(
            requirements,
            reference_type=BATCH_REFERENCE_TYPE,
            reference_id=batch.id,
            created_by=created_by,
            notes=f"Batch {batch.batch_number}",
        )

        cost_total = Decimal("0")
        for material in batch.materials:
            material.consumed_quantity = requirements[material.raw_material_id]
            cost_total += material.consumed_quantity * material.unit_cost

        unit_cost = quantize_quantity(cost_total / data.actual_quantity)
        await self.ledger.record_variant_output(
            batch.variant_id,
            data.actual_quantity,
            reference_type=BATCH_REFERENCE_TYPE,
            reference_id=batch.id,
            unit_cost=unit_cost,
            created_by=created_by,
        )

        batch.actual_quantity = data.actual_quantity
        batch.cost_total = quantize_currency(cost_total)
        batch.status = ProductionBatchStatus.COMPLETED.value
        batch.completed_at = datetime.now(timezone.utc)
        if data.notes:
            batch.notes = data.notes
        await self.db.flush()

        logger.info(
            f"Production batch {batch.batch_number} completed: "
            f"{data.actual_quantity}/{batch.planned_quantity} units, cost {batch.cost_total}"
        )
        return batch

    async def cancel_batch(self, batch_id: uuid.UUID, reason: Optional[str] = None) -> ProductionBatch:
        batch = await self.get_batch(batch_id, for_update=True)
        self._check_transition(
            batch, ProductionBatchStatus.CANCELLED,
            ProductionBatchStatus.DRAFT, ProductionBatchStatus.SCHEDULED,
        )

        batch.status = ProductionBatchStatus.CANCELLED.value
        if reason:
            batch.notes = f"{batch.notes}\n{reason}" if batch.notes else reason
        await self.db.flush()

        logger.info(f"Production batch {batch.batch_number} cancelled")
        return batch

    # ==================== HELPERS ====================

    @staticmethod
    def _check_transition(
        batch: ProductionBatch,
        target: ProductionBatchStatus,
        *allowed_from: ProductionBatchStatus,
    ) -> None:
        if not status_in(batch.status, *allowed_from):
            raise InvalidBatchStatusError(batch.id, batch.status, target.value)

    async def _generate_batch_number(self) -> str:
        """
        Next number after the highest PB-%04d in use.

        The advisory lock is held until the transaction ends, so concurrent
        creates are numbered one after the other.
        """
        await acquire_advisory_lock(self.db, BATCH_NUMBER_LOCK_ID)
        last = await self.db.scalar(
            select(ProductionBatch.batch_number)
            .order_by(func.length(ProductionBatch.batch_number).desc(), ProductionBatch.batch_number.desc())
            .limit(1)
        )
        next_number = int(last.rsplit("-", 1)[1]) + 1 if last else 1
        return f"PB-{next_number:04d}"
