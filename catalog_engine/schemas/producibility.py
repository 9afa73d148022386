"""Producibility results."""
from decimal import Decimal
from typing import FrozenSet, Optional, Tuple
from uuid import UUID

from pydantic import model_validator

from catalog_engine.schemas.base import SnapshotSchema


class MaterialConstraint(SnapshotSchema):
    """How many units one material allows on its own."""
    raw_material_id: UUID
    required: Decimal
    available: Decimal
    possible_units: int


class ProducibilityResult(SnapshotSchema):
    """
    Units of a variant that current stock allows.

    Unlimited (no material with a positive requirement) is its own outcome:
    unlimited=True and units=None. Otherwise units is a non-negative integer.
    """
    unlimited: bool = False
    units: Optional[int] = None
    limiting_material_ids: FrozenSet[UUID] = frozenset()
    constraints: Tuple[MaterialConstraint, ...] = ()

    @model_validator(mode="after")
    def check_outcome(self):
        if self.unlimited == (self.units is not None):
            raise ValueError("exactly one of unlimited or units must be set")
        if self.units is not None and self.units < 0:
            raise ValueError("units must be non-negative")
        return self

    def can_produce(self, quantity: int) -> bool:
        if self.unlimited:
            return True
        return quantity <= self.units

    def __str__(self) -> str:
        return "unlimited" if self.unlimited else str(self.units)
