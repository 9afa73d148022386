"""
Production Batch Models.

- ProductionBatch: a run producing N units of one product variant
- ProductionBatchMaterial: the resolved BOM captured when the batch was planned
"""
import uuid
from datetime import datetime, timezone, date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import (
    String, DateTime, ForeignKey, Integer, Text, Date, Index, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog_engine.core.enum_utils import enum_comment
from catalog_engine.database import Base
from catalog_engine.db_types import UUIDType, MoneyType, QuantityType

if TYPE_CHECKING:
    from catalog_engine.models.inventory import RawMaterial


class ProductionBatchStatus(str, Enum):
    """Production batch status."""
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ProductionBatch(Base):
    """Production run for one product variant."""
    __tablename__ = "production_batches"
    __table_args__ = (
        Index('ix_production_batches_status', 'status'),
        Index('ix_production_batches_product', 'product_id'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    batch_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)

    product_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False
    )
    variant_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("product_variants.id", ondelete="RESTRICT"),
        nullable=False
    )

    planned_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    actual_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    status: Mapped[str] = mapped_column(
        String(50),
        default=ProductionBatchStatus.DRAFT.value,
        nullable=False,
        comment=enum_comment(ProductionBatchStatus)
    )
    scheduled_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    cost_total: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    materials: Mapped[List["ProductionBatchMaterial"]] = relationship(
        "ProductionBatchMaterial",
        back_populates="batch",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<ProductionBatch(number='{self.batch_number}', status='{self.status}')>"


class ProductionBatchMaterial(Base):
    """Resolved BOM line captured on a production batch."""
    __tablename__ = "production_batch_materials"
    __table_args__ = (
        UniqueConstraint('batch_id', 'raw_material_id', name='uq_batch_material'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    batch_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("production_batches.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    raw_material_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("raw_materials.id", ondelete="RESTRICT"),
        nullable=False
    )

    quantity_per_unit: Mapped[Decimal] = mapped_column(QuantityType, nullable=False)
    required_quantity: Mapped[Decimal] = mapped_column(QuantityType, nullable=False)
    consumed_quantity: Mapped[Decimal] = mapped_column(QuantityType, default=Decimal("0"), nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(QuantityType, default=Decimal("0"), nullable=False)

    # Relationships
    batch: Mapped["ProductionBatch"] = relationship("ProductionBatch", back_populates="materials")
    raw_material: Mapped["RawMaterial"] = relationship("RawMaterial")

    def __repr__(self) -> str:
        return f"<ProductionBatchMaterial(material={self.raw_material_id}, required={self.required_quantity})>"
