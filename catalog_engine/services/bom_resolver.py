"""
BOM Resolver.

Resolves the materials needed for one unit of a variant. Layers are applied
strictly in order:

1. Product base entries (same material twice -> summed)
2a. Additive entries of each selected option, attribute position order
2b. Modifiers of each selected option, attribute position order, then
    modifier order within the option. multiply/add on an absent material
    is a no-op, set inserts.
3. Variant overrides in override order
4. Negative quantities are clamped to zero and reported as anomalies

Resolution is pure: the same snapshot and variant always give the same map.
Any reference to a missing or inactive raw material fails the whole
resolution; no partial BOM is returned.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, assert_never
from uuid import UUID

from catalog_engine.core.decimal_utils import ZERO, quantize_quantity
from catalog_engine.core.exceptions import MissingMaterialReferenceError
from catalog_engine.schemas.bom import (
    AddModifier,
    AddOverride,
    BOMAnomaly,
    BOMModifier,
    BOMOverride,
    MultiplyModifier,
    RemoveOverride,
    ReplaceOverride,
    ResolvedBOM,
    SetModifier,
    SetQuantityOverride,
)
from catalog_engine.schemas.catalog import CatalogSnapshot, OptionSnapshot, RawMaterialSnapshot, VariantSnapshot


logger = logging.getLogger(__name__)

LAYER_PRODUCT_ENTRY = "product_bom_entry"
LAYER_OPTION_ENTRY = "option_bom_entry"
LAYER_OPTION_MODIFIER = "option_bom_modifier"
LAYER_VARIANT_OVERRIDE = "variant_bom_override"


class BOMResolver:
    """Resolves variant BOMs against one catalog snapshot."""

    def __init__(self, snapshot: CatalogSnapshot):
        self.snapshot = snapshot
        self._attributes = snapshot.product.ordered_attributes()
        self._options = snapshot.product.option_index()

    def resolve(self, variant: VariantSnapshot) -> ResolvedBOM:
        """
        Resolve the BOM of one variant.

        Raises:
            MissingMaterialReferenceError: if any applicable entry, modifier
                or override references a missing or inactive raw material
        """
        quantities: Dict[UUID, Decimal] = {}
        selected = self.selected_options(variant)

        # Layer 1 - product base
        for entry in self.snapshot.product.bom_entries:
            self._require_material(entry.raw_material_id, LAYER_PRODUCT_ENTRY, entry.id, variant)
            quantities[entry.raw_material_id] = quantities.get(entry.raw_material_id, ZERO) + entry.quantity

        # Layer 2a - option additions
        for option in selected:
            for entry in option.bom_entries:
                self._require_material(entry.raw_material_id, LAYER_OPTION_ENTRY, entry.id, variant)
                quantities[entry.raw_material_id] = quantities.get(entry.raw_material_id, ZERO) + entry.quantity

        # Layer 2b - option modifiers
        for option in selected:
            for modifier in option.bom_modifiers:
                self._require_material(modifier.raw_material_id, LAYER_OPTION_MODIFIER, modifier.id, variant)
                self._apply_modifier(quantities, modifier)

        # Layer 3 - variant overrides
        for override in variant.bom_overrides:
            self._check_override_materials(override, variant)
            self._apply_override(quantities, override)

        anomalies = self._clamp_negatives(quantities, variant)
        return ResolvedBOM(variant_id=variant.id, quantities=quantities, anomalies=tuple(anomalies))

    def resolve_all(self, active_only: bool = True) -> Dict[UUID, ResolvedBOM]:
        """Resolve every variant of the snapshot; stops at the first failure."""
        variants = self.snapshot.active_variants() if active_only else self.snapshot.variants
        return {variant.id: self.resolve(variant) for variant in variants}

    def selected_options(self, variant: VariantSnapshot) -> List[OptionSnapshot]:
        """The variant's options in attribute position order."""
        selected = []
        for attribute in self._attributes:
            option_id = variant.selected_option_id(attribute.id)
            if option_id is None:
                logger.debug(f"Variant {variant.sku} has no option for attribute {attribute.name}")
                continue
            option = self._options.get(option_id)
            if option is None:
                logger.warning(
                    f"Variant {variant.sku} references option {option_id} missing from "
                    f"attribute {attribute.name}; it contributes nothing to the BOM"
                )
                continue
            selected.append(option)
        return selected

    # ==================== APPLICATION ====================

    def _apply_modifier(self, quantities: Dict[UUID, Decimal], modifier: BOMModifier) -> None:
        material_id = modifier.raw_material_id

        if isinstance(modifier, MultiplyModifier):
            if material_id not in quantities:
                logger.debug(f"Multiply modifier {modifier.id}: material {material_id} absent, skipped")
                return
            quantities[material_id] = quantities[material_id] * modifier.factor
        elif isinstance(modifier, AddModifier):
            if material_id not in quantities:
                logger.debug(f"Add modifier {modifier.id}: material {material_id} absent, skipped")
                return
            quantities[material_id] = quantities[material_id] + modifier.delta
        elif isinstance(modifier, SetModifier):
            quantities[material_id] = modifier.quantity
        else:
            assert_never(modifier)

    def _apply_override(self, quantities: Dict[UUID, Decimal], override: BOMOverride) -> None:
        if isinstance(override, ReplaceOverride):
            if override.source_material_id not in quantities:
                logger.debug(
                    f"Replace override {override.id}: source {override.source_material_id} absent, skipped"
                )
                return
            replaced = quantities.pop(override.source_material_id)
            quantity = replaced if override.quantity is None else override.quantity
            target = override.target_material_id
            quantities[target] = quantities.get(target, ZERO) + quantity
        elif isinstance(override, AddOverride):
            material_id = override.raw_material_id
            quantities[material_id] = quantities.get(material_id, ZERO) + override.quantity
        elif isinstance(override, RemoveOverride):
            if quantities.pop(override.raw_material_id, None) is None:
                logger.debug(
                    f"Remove override {override.id}: material {override.raw_material_id} absent, skipped"
                )
        elif isinstance(override, SetQuantityOverride):
            quantities[override.raw_material_id] = override.quantity
        else:
            assert_never(override)

    def _clamp_negatives(self, quantities: Dict[UUID, Decimal], variant: VariantSnapshot) -> List[BOMAnomaly]:
        anomalies = []
        for material_id, quantity in quantities.items():
            if quantity < 0:
                logger.warning(
                    f"Negative BOM quantity clamped: variant={variant.id} "
                    f"material={material_id} quantity={quantity}"
                )
                anomalies.append(BOMAnomaly(raw_material_id=material_id, original_quantity=quantity))
                quantities[material_id] = ZERO
        return anomalies

    # ==================== REFERENCE CHECKS ====================

    def _require_material(
        self,
        raw_material_id: UUID,
        layer: str,
        source_id: Optional[UUID],
        variant: VariantSnapshot,
    ) -> None:
        if not self.snapshot.is_material_available(raw_material_id):
            raise MissingMaterialReferenceError(
                raw_material_id, layer, source_id=source_id, variant_id=variant.id
            )

    def _check_override_materials(self, override: BOMOverride, variant: VariantSnapshot) -> None:
        if isinstance(override, ReplaceOverride):
            material_ids = [override.source_material_id, override.target_material_id]
        else:
            material_ids = [override.raw_material_id]
        for material_id in material_ids:
            self._require_material(material_id, LAYER_VARIANT_OVERRIDE, override.id, variant)


def bom_unit_cost(resolved: ResolvedBOM, materials: Mapping[UUID, RawMaterialSnapshot]) -> Decimal:
    """Material cost of one unit: sum of quantity x cost_per_unit, 4 decimal places."""
    total = ZERO
    for material_id, quantity in resolved.quantities.items():
        material = materials.get(material_id)
        if material is None:
            raise MissingMaterialReferenceError(material_id, "cost_rollup", variant_id=resolved.variant_id)
        total += quantity * material.cost_per_unit
    return quantize_quantity(total)
