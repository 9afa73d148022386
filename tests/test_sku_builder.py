import uuid

import pytest

from catalog_engine.core.exceptions import SKUExhaustedError
from catalog_engine.schemas.catalog import OptionSnapshot
from catalog_engine.services.sku_builder import SKUBuilder


def make_option(value: str, code: str = None, position: int = 0) -> OptionSnapshot:
    return OptionSnapshot(
        id=uuid.uuid4(),
        attribute_id=uuid.uuid4(),
        value=value,
        code=code,
        position=position,
    )


def test_abbreviate_prefers_explicit_code() -> None:
    assert SKUBuilder().abbreviate(make_option("Black", code="blk")) == "BLK"


def test_abbreviate_derives_from_value() -> None:
    builder = SKUBuilder(abbreviation_length=3)

    assert builder.abbreviate(make_option("Large")) == "LAR"
    assert builder.abbreviate(make_option("x-l")) == "XL"
    assert builder.abbreviate(make_option("10 cm")) == "10C"


def test_abbreviate_falls_back_to_position() -> None:
    assert SKUBuilder().abbreviate(make_option("---", position=3)) == "OPT3"


def test_prefix_falls_back_to_product_id(builder) -> None:
    product = builder.product(sku_prefix=None)

    assert SKUBuilder().prefix_for(product) == product.id.hex[:8].upper()


def test_base_sku_joins_prefix_and_abbreviations(builder) -> None:
    product = builder.product(sku_prefix="bag")
    options = [make_option("Black"), make_option("Large")]

    assert SKUBuilder(separator="-", abbreviation_length=3).base_sku(product, options) == "BAG-BLA-LAR"
    assert SKUBuilder(separator="_", abbreviation_length=3).base_sku(product, options) == "BAG_BLA_LAR"


def test_base_sku_without_options_is_prefix(builder) -> None:
    product = builder.product(sku_prefix="BAG")

    assert SKUBuilder().base_sku(product, []) == "BAG"


def test_disambiguate_returns_free_base() -> None:
    assert SKUBuilder(separator="-").disambiguate("BAG-BLA", {"BAG-BRO"}) == "BAG-BLA"


def test_disambiguate_uses_lowest_free_suffix() -> None:
    builder = SKUBuilder(separator="-", max_suffix=99)

    assert builder.disambiguate("BAG-BLA", {"BAG-BLA"}) == "BAG-BLA-2"
    assert builder.disambiguate("BAG-BLA", {"BAG-BLA", "BAG-BLA-2"}) == "BAG-BLA-3"
    assert builder.disambiguate("BAG-BLA", {"BAG-BLA", "BAG-BLA-3"}) == "BAG-BLA-2"


def test_disambiguate_exhausted() -> None:
    builder = SKUBuilder(separator="-", max_suffix=3)

    with pytest.raises(SKUExhaustedError) as exc_info:
        builder.disambiguate("BAG", {"BAG", "BAG-2", "BAG-3"})

    assert exc_info.value.base_sku == "BAG"
    assert exc_info.value.details["max_suffix"] == 3
