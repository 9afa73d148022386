"""
Variant Generator.

Derives the target variant set of a product (Cartesian product of each
attribute's active options) and reconciles it against the existing variants:

- existing variant with a target key   -> KEEP (or REACTIVATE if inactive)
- existing active variant, key dropped -> DEACTIVATE (never deleted)
- target key with no existing variant  -> CREATE with stock 0

Reconciliation is a keyed diff (option-set key -> variant). The generator is
pure: new variant ids are uuid5 of (product id, option key) and SKUs depend
only on the snapshot, so a second run on an unchanged catalog plans no writes.
"""
import itertools
import logging
import uuid
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Set, Tuple

from catalog_engine.core.exceptions import NoActiveOptionsError, SKUExhaustedError
from catalog_engine.schemas.catalog import (
    AttributeSnapshot,
    OptionKey,
    OptionSnapshot,
    ProductSnapshot,
    VariantOptionRef,
    VariantSnapshot,
    format_option_key,
    option_set_key,
)
from catalog_engine.schemas.variant import (
    GenerationResult,
    SKUFailure,
    VariantAction,
    VariantPlan,
)
from catalog_engine.services.sku_builder import SKUBuilder


logger = logging.getLogger(__name__)

VARIANT_ID_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "urn:catalog-engine:product-variant")


def variant_id_for(product_id: uuid.UUID, key: OptionKey) -> uuid.UUID:
    """Stable id for a newly created variant."""
    return uuid.uuid5(VARIANT_ID_NAMESPACE, f"{product_id}:{format_option_key(key)}")


class VariantGenerator:
    """Computes create/reactivate/deactivate instructions for one product."""

    def __init__(self, sku_builder: Optional[SKUBuilder] = None):
        self.sku_builder = sku_builder or SKUBuilder()

    def target_combinations(self, product: ProductSnapshot) -> List[Tuple[OptionSnapshot, ...]]:
        """
        Cartesian product of active options, attribute position order then option position order.

        No attributes, or no attribute with any active option, gives a single
        empty combination (the default variant of a simple product).

        Raises:
            NoActiveOptionsError: if some attributes have active options and another has none
        """
        attributes = product.ordered_attributes()
        option_lists = [(attribute, attribute.active_options()) for attribute in attributes]

        if all(not options for _, options in option_lists):
            return [()]

        for attribute, options in option_lists:
            if not options:
                raise NoActiveOptionsError(attribute.id, attribute.name)

        return list(itertools.product(*(options for _, options in option_lists)))

    def generate(
        self,
        product: ProductSnapshot,
        existing_variants: Sequence[VariantSnapshot],
    ) -> GenerationResult:
        """
        Reconcile the target variant set against the existing variants.

        A combination that cannot be given a free SKU is reported in
        `failures` and skipped; every other combination is still planned.
        """
        combinations = self.target_combinations(product)
        existing_by_key = self._index_existing(existing_variants)

        taken_skus: Set[str] = {variant.sku for variant in existing_variants}
        target: List[VariantPlan] = []
        created: List[VariantPlan] = []
        reactivated: List[VariantPlan] = []
        unchanged: List[VariantPlan] = []
        failures: List[SKUFailure] = []
        target_keys: Set[OptionKey] = set()
        # new variants go after every existing one, active or not
        next_position = max((variant.position for variant in existing_variants), default=-1) + 1

        for combination in combinations:
            refs = tuple(
                VariantOptionRef(attribute_id=option.attribute_id, option_id=option.id)
                for option in combination
            )
            key = option_set_key((ref.attribute_id, ref.option_id) for ref in refs)
            target_keys.add(key)

            keeper = existing_by_key.get(key)
            if keeper is not None:
                action = VariantAction.KEEP if keeper.is_active else VariantAction.REACTIVATE
                plan = VariantPlan(
                    variant_id=keeper.id,
                    sku=keeper.sku,
                    options=keeper.options,
                    position=keeper.position,
                    is_active=True,
                    stock_quantity=keeper.stock_quantity,
                    action=action,
                )
                target.append(plan)
                (unchanged if action == VariantAction.KEEP else reactivated).append(plan)
                continue

            base_sku = self.sku_builder.base_sku(product, combination)
            try:
                sku = self.sku_builder.disambiguate(base_sku, taken_skus)
            except SKUExhaustedError as e:
                logger.warning(
                    f"Skipping variant {format_option_key(key)} of product {product.id}: {e.message}"
                )
                failures.append(SKUFailure(
                    option_key=format_option_key(key),
                    candidate_sku=base_sku,
                    message=e.message,
                ))
                continue

            taken_skus.add(sku)
            plan = VariantPlan(
                variant_id=variant_id_for(product.id, key),
                sku=sku,
                options=refs,
                position=next_position,
                is_active=True,
                stock_quantity=0,
                action=VariantAction.CREATE,
            )
            target.append(plan)
            created.append(plan)
            next_position += 1

        deactivated = [
            self._deactivation_plan(variant)
            for variant in existing_variants
            if variant.is_active and not self._is_kept(variant, existing_by_key, target_keys)
        ]

        return GenerationResult(
            product_id=product.id,
            target_variants=tuple(target),
            created=tuple(created),
            reactivated=tuple(reactivated),
            deactivated=tuple(deactivated),
            unchanged=tuple(unchanged),
            failures=tuple(failures),
        )

    # ==================== HELPERS ====================

    @staticmethod
    def _index_existing(existing_variants: Sequence[VariantSnapshot]) -> Dict[OptionKey, VariantSnapshot]:
        """
        Map each option-set key to the variant that represents it.

        With duplicates the active variant wins, then the lowest position, then the SKU.
        """
        groups: Dict[OptionKey, List[VariantSnapshot]] = defaultdict(list)
        for variant in existing_variants:
            groups[variant.option_key()].append(variant)

        return {
            key: min(variants, key=lambda v: (not v.is_active, v.position, v.sku))
            for key, variants in groups.items()
        }

    @staticmethod
    def _is_kept(
        variant: VariantSnapshot,
        existing_by_key: Dict[OptionKey, VariantSnapshot],
        target_keys: Set[OptionKey],
    ) -> bool:
        key = variant.option_key()
        return key in target_keys and existing_by_key[key].id == variant.id

    @staticmethod
    def _deactivation_plan(variant: VariantSnapshot) -> VariantPlan:
        return VariantPlan(
            variant_id=variant.id,
            sku=variant.sku,
            options=variant.options,
            position=variant.position,
            is_active=False,
            stock_quantity=variant.stock_quantity,
            action=VariantAction.DEACTIVATE,
        )


def describe_attributes(attributes: Sequence[AttributeSnapshot]) -> str:
    """Human readable attribute summary, e.g. "Color(2) x Size(3)"."""
    return " x ".join(f"{a.name}({len(a.active_options())})" for a in attributes) or "no attributes"
