"""
Catalog Engine Exceptions.

Every engine error carries a human readable message and a details dict
so that admin tooling can show which attribute, material or variant is
at fault. None of these are retried: the computations are deterministic,
and the same inputs reproduce the same failure.
"""
from typing import Dict, Optional
from uuid import UUID


class CatalogEngineError(Exception):
    """Base exception for variant and BOM resolution errors."""
    def __init__(self, message: str, details: Dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NoActiveOptionsError(CatalogEngineError):
    """An attribute exists but has no active options, so no complete option-set can be formed."""
    def __init__(self, attribute_id: UUID, attribute_name: str):
        super().__init__(
            f"Attribute '{attribute_name}' has no active options",
            {"attribute_id": str(attribute_id), "attribute_name": attribute_name},
        )
        self.attribute_id = attribute_id


class SKUExhaustedError(CatalogEngineError):
    """Every disambiguation suffix for a generated SKU is already taken."""
    def __init__(self, base_sku: str, max_suffix: int):
        super().__init__(
            f"No free SKU for '{base_sku}' (suffixes up to {max_suffix} are taken)",
            {"base_sku": base_sku, "max_suffix": max_suffix},
        )
        self.base_sku = base_sku


class MissingMaterialReferenceError(CatalogEngineError):
    """A BOM entry, modifier or override references a raw material that no longer exists."""
    def __init__(
        self,
        raw_material_id: UUID,
        layer: str,
        source_id: Optional[UUID] = None,
        variant_id: Optional[UUID] = None,
    ):
        super().__init__(
            f"Raw material {raw_material_id} referenced by {layer} does not exist",
            {
                "raw_material_id": str(raw_material_id),
                "layer": layer,
                "source_id": str(source_id) if source_id else None,
                "variant_id": str(variant_id) if variant_id else None,
            },
        )
        self.raw_material_id = raw_material_id
        self.layer = layer


class InvalidCatalogSnapshotError(CatalogEngineError):
    """The catalog snapshot violates a structural invariant."""
    pass


class EntityNotFoundError(CatalogEngineError):
    """A product, variant, raw material or batch could not be found."""
    def __init__(self, entity_type: str, entity_id: UUID):
        super().__init__(
            f"{entity_type} {entity_id} not found",
            {"entity_type": entity_type, "entity_id": str(entity_id)},
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class InsufficientStockError(CatalogEngineError):
    """A stock decrement would take a raw material below zero."""
    def __init__(self, raw_material_id: UUID, required, available):
        super().__init__(
            f"Insufficient stock for raw material {raw_material_id}: "
            f"required {required}, available {available}",
            {
                "raw_material_id": str(raw_material_id),
                "required": str(required),
                "available": str(available),
            },
        )
        self.raw_material_id = raw_material_id


class InvalidBatchStatusError(CatalogEngineError):
    """A production batch status transition is not allowed."""
    def __init__(self, batch_id: UUID, current_status: str, target_status: str):
        super().__init__(
            f"Cannot move batch {batch_id} from {current_status} to {target_status}",
            {
                "batch_id": str(batch_id),
                "current_status": current_status,
                "target_status": target_status,
            },
        )
