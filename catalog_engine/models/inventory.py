import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, Text, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from catalog_engine.core.enum_utils import enum_comment
from catalog_engine.database import Base
from catalog_engine.db_types import UUIDType, QuantityType


class UnitOfMeasure(str, Enum):
    """Unit of measure for raw materials."""
    UNIT = "UNIT"
    KG = "KG"
    G = "G"
    M = "M"
    M2 = "M2"
    M3 = "M3"
    L = "L"
    ML = "ML"


class StockEntityType(str, Enum):
    """What a stock movement row refers to."""
    PRODUCT_VARIANT = "PRODUCT_VARIANT"
    RAW_MATERIAL = "RAW_MATERIAL"


class StockMovementType(str, Enum):
    """Stock movement type enum."""
    PURCHASE = "PURCHASE"
    SALE = "SALE"
    ADJUSTMENT = "ADJUSTMENT"
    PRODUCTION_CONSUME = "PRODUCTION_CONSUME"  # Raw material used by a production batch
    PRODUCTION_OUTPUT = "PRODUCTION_OUTPUT"    # Finished variant units from a batch
    RETURN = "RETURN"
    DAMAGE = "DAMAGE"


class RawMaterial(Base):
    """
    Raw material inventory.
    stock_quantity is only mutated through stock movements.
    """
    __tablename__ = "raw_materials"
    __table_args__ = (
        Index('ix_raw_materials_is_active', 'is_active'),
        CheckConstraint('stock_quantity >= 0', name='ck_raw_materials_stock_non_negative'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    unit_of_measure: Mapped[str] = mapped_column(
        String(20),
        default=UnitOfMeasure.UNIT.value,
        nullable=False,
        comment=enum_comment(UnitOfMeasure)
    )

    cost_per_unit: Mapped[Decimal] = mapped_column(QuantityType, default=Decimal("0"), nullable=False)
    stock_quantity: Mapped[Decimal] = mapped_column(QuantityType, default=Decimal("0"), nullable=False)
    low_stock_threshold: Mapped[Decimal] = mapped_column(QuantityType, default=Decimal("0"), nullable=False)

    supplier_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    lead_time_days: Mapped[Optional[int]] = mapped_column(nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

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

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.low_stock_threshold

    def __repr__(self) -> str:
        return f"<RawMaterial(sku='{self.sku}', stock={self.stock_quantity})>"


class StockMovement(Base):
    """
    Stock movement history/ledger for variants and raw materials.
    Rows are insert-only: never updated or deleted.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        Index('ix_stock_movements_entity', 'entity_type', 'entity_id'),
        Index('ix_stock_movements_movement_type', 'movement_type'),
        Index('ix_stock_movements_created_at', 'created_at'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    entity_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment=enum_comment(StockEntityType)
    )
    entity_id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), nullable=False)
    movement_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment=enum_comment(StockMovementType)
    )

    # Positive for in, negative for out
    quantity_change: Mapped[Decimal] = mapped_column(QuantityType, nullable=False)
    quantity_before: Mapped[Decimal] = mapped_column(QuantityType, nullable=False)
    quantity_after: Mapped[Decimal] = mapped_column(QuantityType, nullable=False)

    # Related documents
    reference_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # production_batch, order, manual
    reference_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), nullable=True)

    unit_cost: Mapped[Optional[Decimal]] = mapped_column(QuantityType, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<StockMovement({self.movement_type} {self.entity_type}:{self.entity_id} {self.quantity_change})>"
