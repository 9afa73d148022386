"""
Producibility Calculator.

For every material with a positive requirement:
    possible = floor(stock / required)
Producible units is the minimum over those materials; every material that
hits the minimum is reported as limiting. A BOM without any positive
requirement is unlimited.
"""
from decimal import Decimal
from typing import Mapping, Union
from uuid import UUID

from catalog_engine.core.decimal_utils import ZERO
from catalog_engine.schemas.bom import ResolvedBOM
from catalog_engine.schemas.producibility import MaterialConstraint, ProducibilityResult


class ProducibilityCalculator:
    """Combines a resolved BOM with current raw material stock."""

    def compute(
        self,
        bom: Union[ResolvedBOM, Mapping[UUID, Decimal]],
        stock: Mapping[UUID, Decimal],
    ) -> ProducibilityResult:
        """
        Compute producible units and limiting materials.

        Materials missing from `stock` count as zero stock; negative stock
        counts as zero.
        """
        quantities = bom.quantities if isinstance(bom, ResolvedBOM) else bom

        constraints = []
        for material_id, required in quantities.items():
            if required <= 0:
                continue
            available = stock.get(material_id, ZERO)
            # Decimal floor division is exact for non-negative operands
            possible = int(max(available, ZERO) // required)
            constraints.append(MaterialConstraint(
                raw_material_id=material_id,
                required=required,
                available=available,
                possible_units=possible,
            ))

        if not constraints:
            return ProducibilityResult(unlimited=True)

        units = min(constraint.possible_units for constraint in constraints)
        limiting = frozenset(
            constraint.raw_material_id for constraint in constraints
            if constraint.possible_units == units
        )
        return ProducibilityResult(
            units=units,
            limiting_material_ids=limiting,
            constraints=tuple(constraints),
        )
