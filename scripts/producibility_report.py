"""
Print the producibility report of one product.

Usage:
    python scripts/producibility_report.py <product_id>
"""
import argparse
import asyncio
import sys
import uuid

from catalog_engine.core.exceptions import CatalogEngineError
from catalog_engine.database import get_db_session
from catalog_engine.logging_config import setup_logging
from catalog_engine.services.report_service import ReportService


async def main(product_id: uuid.UUID) -> int:
    try:
        async with get_db_session() as session:
            report = await ReportService(session).producibility_report(product_id)
    except CatalogEngineError as e:
        print(f"Error: {e.message} {e.details}")
        return 1

    print(f"{report.product_name} ({report.product_id}) - {report.generated_at:%Y-%m-%d %H:%M} UTC")
    print(f"{'SKU':<30} {'PRICE':>10} {'WEIGHT':>8} {'UNIT COST':>12} {'CAN MAKE':>10}")
    for row in report.variants:
        print(
            f"{row.sku:<30} {row.effective_price:>10} {row.effective_weight_grams:>8} "
            f"{row.unit_material_cost:>12} {str(row.producibility):>10}"
        )
        for material_id in sorted(row.producibility.limiting_material_ids, key=str):
            print(f"{'':<30} limited by {material_id}")
        for anomaly in row.anomalies:
            print(f"{'':<30} clamped {anomaly.raw_material_id} (was {anomaly.original_quantity})")

    for error in report.errors:
        print(f"{error.sku:<30} ERROR {error.error}")

    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Producibility report for a product")
    parser.add_argument("product_id", type=uuid.UUID)
    args = parser.parse_args()

    setup_logging()
    sys.exit(asyncio.run(main(args.product_id)))
