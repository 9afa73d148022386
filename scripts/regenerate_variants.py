"""
Regenerate the variants of one product.

Usage:
    python scripts/regenerate_variants.py <product_id> [--dry-run]
"""
import argparse
import asyncio
import sys
import uuid

from catalog_engine.core.exceptions import CatalogEngineError
from catalog_engine.database import get_db_session
from catalog_engine.logging_config import setup_logging
from catalog_engine.services.variant_service import VariantService, regenerate_product_variants


def print_result(result):
    print(f"Product {result.product_id}: {len(result.target_variants)} target variants")
    for label, plans in (
        ("created", result.created),
        ("reactivated", result.reactivated),
        ("deactivated", result.deactivated),
    ):
        for plan in plans:
            print(f"  {label:<12} {plan.sku}")
    for failure in result.failures:
        print(f"  FAILED       {failure.candidate_sku}: {failure.message}")
    if result.is_noop:
        print("  nothing to do")


async def main(product_id: uuid.UUID, dry_run: bool) -> int:
    try:
        if dry_run:
            async with get_db_session() as session:
                result = await VariantService(session).preview_variants(product_id)
        else:
            result = await regenerate_product_variants(product_id)
    except CatalogEngineError as e:
        print(f"Error: {e.message} {e.details}")
        return 1

    print_result(result)
    return 2 if result.has_failures else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Regenerate product variants")
    parser.add_argument("product_id", type=uuid.UUID)
    parser.add_argument("--dry-run", action="store_true", help="Show the plan without writing")
    args = parser.parse_args()

    setup_logging()
    sys.exit(asyncio.run(main(args.product_id, args.dry_run)))
