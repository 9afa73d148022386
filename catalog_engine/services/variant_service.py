"""
Variant Service.

Runs one Generate-and-commit cycle for a product:
1. take the per-product advisory lock (held until commit/rollback)
2. read a fresh snapshot of the product and its variants
3. compute the plan with VariantGenerator
4. write created rows and flip is_active on reactivated/deactivated rows

NoActiveOptionsError aborts before anything is written. SKU exhaustion only
skips the affected combination; the rest of the plan is still applied.
"""
import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_engine.database import acquire_advisory_lock, get_db_session, run_with_retry
from catalog_engine.models.product import Product, ProductVariant, ProductVariantOption
from catalog_engine.schemas.variant import GenerationResult, VariantPlan
from catalog_engine.services.catalog_repository import CatalogRepository
from catalog_engine.services.variant_generator import VariantGenerator, describe_attributes


logger = logging.getLogger(__name__)


class VariantService:
    """Persists variant generation results for products."""

    def __init__(self, db: AsyncSession, generator: Optional[VariantGenerator] = None):
        self.db = db
        self.repository = CatalogRepository(db)
        self.generator = generator or VariantGenerator()

    async def regenerate_variants(self, product_id: uuid.UUID) -> GenerationResult:
        """
        Reconcile the product's variants with its current attributes.

        The caller owns the transaction; the lock is released when it ends.
        """
        await acquire_advisory_lock(self.db, product_id)

        product = await self.repository.get_product_snapshot(product_id)
        existing = await self.repository.get_existing_variants(product_id)

        result = self.generator.generate(product, existing)
        await self.apply(result)

        logger.info(
            f"Variants generated for product {product_id} "
            f"[{describe_attributes(product.ordered_attributes())}]: "
            f"created={len(result.created)} reactivated={len(result.reactivated)} "
            f"deactivated={len(result.deactivated)} unchanged={len(result.unchanged)} "
            f"failures={len(result.failures)}"
        )
        return result

    async def preview_variants(self, product_id: uuid.UUID) -> GenerationResult:
        """Compute the plan without writing anything."""
        product = await self.repository.get_product_snapshot(product_id)
        existing = await self.repository.get_existing_variants(product_id)
        return self.generator.generate(product, existing)

    async def apply(self, result: GenerationResult) -> None:
        """Write a generation plan. Does not commit."""
        for plan in result.created:
            self.db.add(self._new_variant(result.product_id, plan))

        status_changes = {plan.variant_id: plan.is_active for plan in result.reactivated + result.deactivated}
        if status_changes:
            query = select(ProductVariant).where(ProductVariant.id.in_(list(status_changes)))
            for variant in (await self.db.execute(query)).scalars().all():
                variant.is_active = status_changes[variant.id]

        await self._sync_has_variants(result)
        await self.db.flush()

    async def get_variants(self, product_id: uuid.UUID, active_only: bool = True) -> List[ProductVariant]:
        query = select(ProductVariant).where(ProductVariant.product_id == product_id)
        if active_only:
            query = query.where(ProductVariant.is_active == True)  # noqa: E712
        query = query.order_by(ProductVariant.position, ProductVariant.sku)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    def _new_variant(product_id: uuid.UUID, plan: VariantPlan) -> ProductVariant:
        return ProductVariant(
            id=plan.variant_id,
            product_id=product_id,
            sku=plan.sku,
            stock_quantity=0,
            is_active=True,
            position=plan.position,
            options=[
                ProductVariantOption(attribute_id=ref.attribute_id, option_id=ref.option_id)
                for ref in plan.options
            ],
        )

    async def _sync_has_variants(self, result: GenerationResult) -> None:
        has_variants = any(plan.options for plan in result.target_variants)
        product = await self.db.get(Product, result.product_id)
        if product is not None and product.has_variants != has_variants:
            product.has_variants = has_variants


async def regenerate_product_variants(product_id: uuid.UUID) -> GenerationResult:
    """
    Run a regeneration in its own transaction.

    Serialization failures and deadlocks re-run the whole cycle.
    """
    async def _run() -> GenerationResult:
        async with get_db_session() as session:
            return await VariantService(session).regenerate_variants(product_id)

    return await run_with_retry(_run)
