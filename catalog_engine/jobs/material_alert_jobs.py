"""
Material Alert Jobs

Periodic check of raw material stock:
1. Low-stock materials (stock at or below threshold)
2. Active variants whose producible units fall below PRODUCIBILITY_ALERT_THRESHOLD

Findings are logged as warnings for purchasing to pick up.
"""

import logging
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from catalog_engine.config import settings

logger = logging.getLogger(__name__)


async def check_material_alerts(session: AsyncSession, threshold: int = None) -> Dict[str, Any]:
    """
    Collect low-stock materials and poorly producible variants.

    Returns a summary dict with the counts that were logged.
    """
    from catalog_engine.services.report_service import ReportService

    if threshold is None:
        threshold = settings.PRODUCIBILITY_ALERT_THRESHOLD

    reports = ReportService(session)

    low_stock = await reports.low_stock_materials()
    for material in low_stock:
        logger.warning(
            f"Low stock: {material.sku} ({material.name}) "
            f"{material.stock_quantity} {material.unit_of_measure} "
            f"<= threshold {material.low_stock_threshold}"
        )

    constrained_variants = 0
    unresolvable_variants = 0
    for product_id in await reports.active_product_ids():
        report = await reports.producibility_report(product_id)
        unresolvable_variants += len(report.errors)

        for row in report.below_threshold(threshold):
            constrained_variants += 1
            limiting = ", ".join(sorted(str(m) for m in row.producibility.limiting_material_ids))
            logger.warning(
                f"Low producibility: {row.sku} can produce {row.producibility.units} "
                f"(< {threshold}), limited by {limiting}"
            )

    summary = {
        "low_stock_materials": len(low_stock),
        "constrained_variants": constrained_variants,
        "unresolvable_variants": unresolvable_variants,
    }
    logger.info(f"Material alert check finished: {summary}")
    return summary


async def run_material_alerts() -> None:
    """Scheduler entry point: runs the check in its own session."""
    from catalog_engine.database import get_db_session

    try:
        async with get_db_session() as session:
            await check_material_alerts(session)
    except Exception as e:
        logger.error(f"Job 'check_material_alerts' failed: {e}")
