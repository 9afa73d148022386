"""Producibility and low-stock reporting."""
import logging
import uuid
from datetime import datetime, timezone
from typing import List

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_engine.core.exceptions import MissingMaterialReferenceError
from catalog_engine.models.inventory import RawMaterial
from catalog_engine.models.product import Product, ProductStatus
from catalog_engine.schemas.report import (
    LowStockMaterial,
    ProductProducibilityReport,
    VariantProducibilityRow,
    VariantReportError,
)
from catalog_engine.services.bom_resolver import BOMResolver, bom_unit_cost
from catalog_engine.services.catalog_repository import CatalogRepository
from catalog_engine.services.pricing_resolver import PricingResolver
from catalog_engine.services.producibility_calculator import ProducibilityCalculator


logger = logging.getLogger(__name__)


class ReportService:
    """Read-only dashboards built on the pure resolvers."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = CatalogRepository(db)
        self.calculator = ProducibilityCalculator()

    async def producibility_report(self, product_id: uuid.UUID) -> ProductProducibilityReport:
        """
        Price, weight, BOM, unit cost and producibility for every active variant.

        A variant whose BOM references a missing material is listed under
        `errors` instead of `variants`; the other variants are still reported.
        """
        snapshot = await self.repository.get_catalog_snapshot(product_id)
        stock = await self.repository.get_stock_map(snapshot.material_ids())
        pricing = PricingResolver(snapshot.product)
        resolver = BOMResolver(snapshot)

        rows = []
        errors = []
        for variant in snapshot.active_variants():
            try:
                resolved = resolver.resolve(variant)
            except MissingMaterialReferenceError as e:
                logger.warning(f"BOM of variant {variant.sku} cannot be resolved: {e.message}")
                errors.append(VariantReportError(
                    variant_id=variant.id,
                    sku=variant.sku,
                    error=e.message,
                    details=e.details,
                ))
                continue

            rows.append(VariantProducibilityRow(
                variant_id=variant.id,
                sku=variant.sku,
                effective_price=pricing.effective_price(variant),
                effective_weight_grams=pricing.effective_weight(variant),
                bom=resolved.quantities,
                unit_material_cost=bom_unit_cost(resolved, snapshot.raw_materials),
                producibility=self.calculator.compute(resolved, stock),
                anomalies=resolved.anomalies,
            ))

        return ProductProducibilityReport(
            product_id=snapshot.product.id,
            product_name=snapshot.product.name,
            generated_at=datetime.now(timezone.utc),
            variants=tuple(rows),
            errors=tuple(errors),
        )

    async def low_stock_materials(self) -> List[LowStockMaterial]:
        """Active materials at or below their threshold, lowest stock ratio first."""
        query = select(RawMaterial).where(
            and_(
                RawMaterial.is_active == True,  # noqa: E712
                RawMaterial.stock_quantity <= RawMaterial.low_stock_threshold,
            )
        )
        result = await self.db.execute(query)

        materials = [
            LowStockMaterial(
                raw_material_id=material.id,
                sku=material.sku,
                name=material.name,
                unit_of_measure=material.unit_of_measure,
                stock_quantity=material.stock_quantity,
                low_stock_threshold=material.low_stock_threshold,
            )
            for material in result.scalars().all()
        ]
        return sorted(materials, key=lambda m: (m.stock_ratio, m.sku))

    async def active_product_ids(self) -> List[uuid.UUID]:
        result = await self.db.execute(
            select(Product.id)
            .where(Product.status == ProductStatus.ACTIVE.value)
            .order_by(Product.name)
        )
        return list(result.scalars().all())
