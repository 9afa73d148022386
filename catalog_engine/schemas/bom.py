"""
Bill of Materials value objects.

Modifiers (layer 2b) and overrides (layer 3) are closed tagged unions: the
`modifier_type` / `override_type` field selects exactly one concrete class,
and the resolver handles every class explicitly.
"""
from decimal import Decimal
from typing import Annotated, Dict, Literal, Optional, Tuple, Union
from uuid import UUID

from pydantic import Field

from catalog_engine.schemas.base import SnapshotSchema


# ==================== LAYER 1 / 2a ENTRIES ====================

class ProductBOMEntrySnapshot(SnapshotSchema):
    """Layer 1 entry: base quantity needed by every variant."""
    id: UUID
    raw_material_id: UUID
    quantity: Decimal = Field(..., ge=0)
    unit_of_measure: str = "UNIT"


class OptionBOMEntrySnapshot(SnapshotSchema):
    """Layer 2a entry: additive quantity when the option is selected."""
    id: UUID
    raw_material_id: UUID
    quantity: Decimal


# ==================== LAYER 2b MODIFIERS ====================

class MultiplyModifier(SnapshotSchema):
    """Scale the running quantity by `factor`. No-op when the material is absent."""
    modifier_type: Literal["MULTIPLY"] = "MULTIPLY"
    id: UUID
    raw_material_id: UUID
    factor: Decimal


class AddModifier(SnapshotSchema):
    """Increment the running quantity by `delta`. No-op when the material is absent."""
    modifier_type: Literal["ADD"] = "ADD"
    id: UUID
    raw_material_id: UUID
    delta: Decimal


class SetModifier(SnapshotSchema):
    """Replace the running quantity. Inserts when the material is absent."""
    modifier_type: Literal["SET"] = "SET"
    id: UUID
    raw_material_id: UUID
    quantity: Decimal


BOMModifier = Annotated[
    Union[MultiplyModifier, AddModifier, SetModifier],
    Field(discriminator="modifier_type"),
]


# ==================== LAYER 3 OVERRIDES ====================

class ReplaceOverride(SnapshotSchema):
    """
    Swap `source_material_id` for `target_material_id`.

    quantity=None carries the replaced quantity over to the target.
    """
    override_type: Literal["REPLACE"] = "REPLACE"
    id: UUID
    source_material_id: UUID
    target_material_id: UUID
    quantity: Optional[Decimal] = None


class AddOverride(SnapshotSchema):
    override_type: Literal["ADD"] = "ADD"
    id: UUID
    raw_material_id: UUID
    quantity: Decimal


class RemoveOverride(SnapshotSchema):
    override_type: Literal["REMOVE"] = "REMOVE"
    id: UUID
    raw_material_id: UUID


class SetQuantityOverride(SnapshotSchema):
    override_type: Literal["SET_QUANTITY"] = "SET_QUANTITY"
    id: UUID
    raw_material_id: UUID
    quantity: Decimal


BOMOverride = Annotated[
    Union[ReplaceOverride, AddOverride, RemoveOverride, SetQuantityOverride],
    Field(discriminator="override_type"),
]


# ==================== RESOLUTION RESULT ====================

class BOMAnomaly(SnapshotSchema):
    """A resolved quantity that went negative and was clamped to zero."""
    raw_material_id: UUID
    original_quantity: Decimal
    kind: Literal["NEGATIVE_QUANTITY_CLAMPED"] = "NEGATIVE_QUANTITY_CLAMPED"


class ResolvedBOM(SnapshotSchema):
    """
    Materials and quantities needed to produce one unit of a variant.

    `quantities` preserves resolution order: layer 1 materials first, then
    materials inserted by later layers in the order they were introduced.
    """
    variant_id: UUID
    quantities: Dict[UUID, Decimal]
    anomalies: Tuple[BOMAnomaly, ...] = ()

    def quantity_for(self, raw_material_id: UUID) -> Decimal:
        return self.quantities.get(raw_material_id, Decimal("0"))

    def for_units(self, units: int) -> Dict[UUID, Decimal]:
        """Per-material consumption for producing `units` units."""
        if units < 0:
            raise ValueError("units must be non-negative")
        return {
            material_id: quantity * units
            for material_id, quantity in self.quantities.items()
        }

    @property
    def has_anomalies(self) -> bool:
        return bool(self.anomalies)
