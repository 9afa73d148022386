from catalog_engine.services.sku_builder import SKUBuilder
from catalog_engine.services.variant_generator import VariantGenerator
from catalog_engine.services.pricing_resolver import PricingResolver
from catalog_engine.services.bom_resolver import BOMResolver, bom_unit_cost
from catalog_engine.services.producibility_calculator import ProducibilityCalculator
