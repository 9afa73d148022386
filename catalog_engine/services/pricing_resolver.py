"""
Pricing Resolver.

Effective price = variant.price if set, else base_price + sum of option
price modifiers. Weight follows the same rule with grams. Sums are kept at
full Decimal precision; rounding (half-up) happens only in effective_price().
"""
import logging
from decimal import Decimal
from typing import List

from catalog_engine.core.decimal_utils import ZERO, quantize_currency
from catalog_engine.schemas.catalog import OptionSnapshot, ProductSnapshot, VariantSnapshot
from catalog_engine.schemas.report import PriceBreakdown


logger = logging.getLogger(__name__)


class PricingResolver:
    """Resolves price and weight of variants of one product."""

    def __init__(self, product: ProductSnapshot):
        self.product = product
        self._options = product.option_index()

    def selected_options(self, variant: VariantSnapshot) -> List[OptionSnapshot]:
        """
        Options the variant selects that still exist in the catalog.

        Inactive options are included: a stale variant still prices successfully.
        """
        selected = []
        for ref in variant.options:
            option = self._options.get(ref.option_id)
            if option is None:
                logger.warning(
                    f"Variant {variant.sku} references option {ref.option_id} "
                    f"missing from product {self.product.id}; ignoring it"
                )
                continue
            selected.append(option)
        return selected

    def price_breakdown(self, variant: VariantSnapshot) -> PriceBreakdown:
        if variant.price is not None:
            return PriceBreakdown(
                base=ZERO,
                modifiers_total=ZERO,
                unrounded=variant.price,
                is_override=True,
            )

        modifiers_total = sum(
            (option.price_modifier for option in self.selected_options(variant)),
            ZERO,
        )
        return PriceBreakdown(
            base=self.product.base_price,
            modifiers_total=modifiers_total,
            unrounded=self.product.base_price + modifiers_total,
        )

    def effective_price(self, variant: VariantSnapshot) -> Decimal:
        """Price rounded half-up to currency precision."""
        return quantize_currency(self.price_breakdown(variant).unrounded)

    def effective_weight(self, variant: VariantSnapshot) -> int:
        """Weight in grams."""
        if variant.weight_grams is not None:
            return variant.weight_grams

        return self.product.base_weight_grams + sum(
            option.weight_modifier_grams for option in self.selected_options(variant)
        )
