"""
SKU Builder.

SKU format: {prefix}{sep}{ABBR1}{sep}{ABBR2}... with one abbreviation per
attribute in position order. Collisions get {sep}{n} appended, n being the
lowest free integer starting at 2, so the result depends only on the set of
SKUs already taken.
"""
import re
from typing import AbstractSet, Optional, Sequence

from catalog_engine.config import settings
from catalog_engine.core.exceptions import SKUExhaustedError
from catalog_engine.schemas.catalog import OptionSnapshot, ProductSnapshot


NON_ALPHANUMERIC = re.compile(r"[^A-Za-z0-9]")


class SKUBuilder:
    """Deterministic SKU construction and disambiguation."""

    def __init__(
        self,
        separator: Optional[str] = None,
        abbreviation_length: Optional[int] = None,
        max_suffix: Optional[int] = None,
    ):
        self.separator = settings.SKU_SEPARATOR if separator is None else separator
        self.abbreviation_length = abbreviation_length or settings.SKU_ABBREVIATION_LENGTH
        self.max_suffix = max_suffix or settings.SKU_MAX_SUFFIX

    def prefix_for(self, product: ProductSnapshot) -> str:
        """sku_prefix, else the first 8 hex chars of the product id."""
        if product.sku_prefix and product.sku_prefix.strip():
            return product.sku_prefix.strip().upper()
        return product.id.hex[:8].upper()

    def abbreviate(self, option: OptionSnapshot) -> str:
        """
        Explicit option code if set, else the option value stripped of
        non-alphanumerics, uppercased and truncated.

        Examples:
            code="BLK"          -> "BLK"
            value="Large"       -> "LAR"
            value="x-l"         -> "XL"
            value="---"         -> "OPT3" (position 3)
        """
        if option.code and option.code.strip():
            return option.code.strip().upper()

        cleaned = NON_ALPHANUMERIC.sub("", option.value).upper()
        abbreviation = cleaned[:self.abbreviation_length]
        if not abbreviation:
            return f"OPT{option.position}"
        return abbreviation

    def base_sku(self, product: ProductSnapshot, options: Sequence[OptionSnapshot]) -> str:
        """SKU before disambiguation. Options must be in attribute position order."""
        parts = [self.prefix_for(product)]
        parts.extend(self.abbreviate(option) for option in options)
        return self.separator.join(parts)

    def disambiguate(self, base_sku: str, taken: AbstractSet[str]) -> str:
        """
        Return base_sku if free, else base_sku + sep + lowest free suffix.

        Raises:
            SKUExhaustedError: if every suffix up to max_suffix is taken
        """
        if base_sku not in taken:
            return base_sku

        for suffix in range(2, self.max_suffix + 1):
            candidate = f"{base_sku}{self.separator}{suffix}"
            if candidate not in taken:
                return candidate

        raise SKUExhaustedError(base_sku, self.max_suffix)

    def build(
        self,
        product: ProductSnapshot,
        options: Sequence[OptionSnapshot],
        taken: AbstractSet[str],
    ) -> str:
        return self.disambiguate(self.base_sku(product, options), taken)
