"""
Layered Bill of Materials (BOM) Models.

The BOM of a variant is resolved from four layers, applied in order:
- ProductBOMEntry (Layer 1): materials common to all variants of a product
- AttributeOptionBOMEntry (Layer 2a): extra materials when an option is selected
- AttributeOptionBOMModifier (Layer 2b): multiply/add/set on the running quantity
- VariantBOMOverride (Layer 3): replace/add/remove/set_quantity for one variant

`position` orders modifiers within one option and overrides within one variant.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog_engine.core.enum_utils import enum_comment
from catalog_engine.database import Base
from catalog_engine.db_types import UUIDType, QuantityType

if TYPE_CHECKING:
    from catalog_engine.models.product import Product, ProductAttributeOption, ProductVariant
    from catalog_engine.models.inventory import RawMaterial


# ============================================================================
# ENUMS
# ============================================================================

class BOMModifierType(str, Enum):
    """Layer 2b modifier operations."""
    MULTIPLY = "MULTIPLY"   # Scale the running quantity by a factor
    ADD = "ADD"             # Increment the running quantity by a delta
    SET = "SET"             # Replace the running quantity outright


class BOMOverrideType(str, Enum):
    """Layer 3 variant override operations."""
    REPLACE = "REPLACE"             # Swap one material for another
    ADD = "ADD"                     # Insert or sum a material
    REMOVE = "REMOVE"               # Drop a material
    SET_QUANTITY = "SET_QUANTITY"   # Force the final quantity


# ============================================================================
# MODELS
# ============================================================================

class ProductBOMEntry(Base):
    """Layer 1: material needed by every variant of a product."""
    __tablename__ = "product_bom_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    raw_material_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("raw_materials.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    quantity: Mapped[Decimal] = mapped_column(QuantityType, nullable=False)
    unit_of_measure: Mapped[str] = mapped_column(String(20), default="UNIT", nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    product: Mapped["Product"] = relationship("Product", back_populates="bom_entries")
    raw_material: Mapped["RawMaterial"] = relationship("RawMaterial")

    def __repr__(self) -> str:
        return f"<ProductBOMEntry(material={self.raw_material_id}, qty={self.quantity})>"


class AttributeOptionBOMEntry(Base):
    """Layer 2a: additional material when a specific option is selected."""
    __tablename__ = "attribute_option_bom_entries"
    __table_args__ = (
        UniqueConstraint('option_id', 'raw_material_id', name='uq_option_bom_entry_material'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    option_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("product_attribute_options.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    raw_material_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("raw_materials.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    quantity: Mapped[Decimal] = mapped_column(QuantityType, nullable=False)
    unit_of_measure: Mapped[str] = mapped_column(String(20), default="UNIT", nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    option: Mapped["ProductAttributeOption"] = relationship(
        "ProductAttributeOption", back_populates="bom_entries"
    )

    def __repr__(self) -> str:
        return f"<AttributeOptionBOMEntry(option={self.option_id}, material={self.raw_material_id})>"


class AttributeOptionBOMModifier(Base):
    """Layer 2b: adjusts the running quantity of a material when an option is selected."""
    __tablename__ = "attribute_option_bom_modifiers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    option_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("product_attribute_options.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    raw_material_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("raw_materials.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Target material whose quantity is modified"
    )

    modifier_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment=enum_comment(BOMModifierType)
    )
    modifier_value: Mapped[Decimal] = mapped_column(QuantityType, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    option: Mapped["ProductAttributeOption"] = relationship(
        "ProductAttributeOption", back_populates="bom_modifiers"
    )

    def __repr__(self) -> str:
        return f"<AttributeOptionBOMModifier({self.modifier_type} {self.modifier_value})>"


class VariantBOMOverride(Base):
    """
    Layer 3: per-variant adjustment, applied last.

    raw_material_id is the material inserted/removed/set; for REPLACE it is
    the replacement and replaces_material_id is the material being swapped out.
    """
    __tablename__ = "variant_bom_overrides"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    variant_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("product_variants.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    override_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment=enum_comment(BOMOverrideType)
    )
    raw_material_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("raw_materials.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    replaces_material_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("raw_materials.id", ondelete="RESTRICT"),
        nullable=True
    )

    # NULL for REMOVE, and for REPLACE meaning "keep the replaced quantity"
    quantity: Mapped[Optional[Decimal]] = mapped_column(QuantityType, nullable=True)
    unit_of_measure: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    variant: Mapped["ProductVariant"] = relationship("ProductVariant", back_populates="bom_overrides")

    def __repr__(self) -> str:
        return f"<VariantBOMOverride({self.override_type} material={self.raw_material_id})>"
