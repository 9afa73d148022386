import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional, List
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Text, Index, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog_engine.core.enum_utils import enum_comment
from catalog_engine.database import Base
from catalog_engine.db_types import UUIDType, MoneyType

if TYPE_CHECKING:
    from catalog_engine.models.bom import (
        ProductBOMEntry, AttributeOptionBOMEntry, AttributeOptionBOMModifier, VariantBOMOverride,
    )


class ProductStatus(str, Enum):
    """Product status enumeration."""
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class AttributeType(str, Enum):
    """How an attribute is rendered on the storefront."""
    SELECT = "SELECT"
    COLOR_SWATCH = "COLOR_SWATCH"
    BUTTON_GROUP = "BUTTON_GROUP"
    IMAGE_SWATCH = "IMAGE_SWATCH"


class Product(Base):
    """
    Configurable product.
    Base price/weight apply to every variant unless the variant overrides them.
    """
    __tablename__ = "products"
    __table_args__ = (
        Index('ix_products_status', 'status'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(280), unique=True, nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(50),
        default=ProductStatus.DRAFT.value,
        nullable=False,
        comment=enum_comment(ProductStatus)
    )
    sku_prefix: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="Prefix for generated variant SKUs e.g., BAG"
    )

    # Pricing and shipping baseline
    base_price: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"), nullable=False)
    base_weight_grams: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    has_variants: Mapped[bool] = mapped_column(Boolean, default=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

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
    attributes: Mapped[List["ProductAttribute"]] = relationship(
        "ProductAttribute",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductAttribute.position"
    )
    variants: Mapped[List["ProductVariant"]] = relationship(
        "ProductVariant",
        back_populates="product",
        order_by="ProductVariant.position"
    )
    bom_entries: Mapped[List["ProductBOMEntry"]] = relationship(
        "ProductBOMEntry",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductBOMEntry.position"
    )

    def __repr__(self) -> str:
        return f"<Product(name='{self.name}', slug='{self.slug}')>"


class ProductAttribute(Base):
    """
    A configurable axis of a product, e.g. Color or Size.
    Position defines resolution order and is unique per product.
    """
    __tablename__ = "product_attributes"
    __table_args__ = (
        UniqueConstraint('product_id', 'position', name='uq_product_attribute_position'),
        UniqueConstraint('product_id', 'name', name='uq_product_attribute_name'),
    )

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

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    attribute_type: Mapped[str] = mapped_column(
        String(50),
        default=AttributeType.SELECT.value,
        nullable=False,
        comment=enum_comment(AttributeType)
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    product: Mapped["Product"] = relationship("Product", back_populates="attributes")
    options: Mapped[List["ProductAttributeOption"]] = relationship(
        "ProductAttributeOption",
        back_populates="attribute",
        cascade="all, delete-orphan",
        order_by="ProductAttributeOption.position"
    )

    def __repr__(self) -> str:
        return f"<ProductAttribute(name='{self.name}', position={self.position})>"


class ProductAttributeOption(Base):
    """One concrete value of an attribute, e.g. Black, with price/weight modifiers."""
    __tablename__ = "product_attribute_options"
    __table_args__ = (
        UniqueConstraint('attribute_id', 'value', name='uq_attribute_option_value'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    attribute_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("product_attributes.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    value: Mapped[str] = mapped_column(String(100), nullable=False)
    display_value: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="Explicit SKU code, used instead of the derived abbreviation"
    )
    color_hex: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)

    price_modifier: Mapped[Decimal] = mapped_column(MoneyType, default=Decimal("0"), nullable=False)
    weight_modifier_grams: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    attribute: Mapped["ProductAttribute"] = relationship("ProductAttribute", back_populates="options")
    bom_entries: Mapped[List["AttributeOptionBOMEntry"]] = relationship(
        "AttributeOptionBOMEntry",
        back_populates="option",
        cascade="all, delete-orphan",
        order_by="AttributeOptionBOMEntry.position"
    )
    bom_modifiers: Mapped[List["AttributeOptionBOMModifier"]] = relationship(
        "AttributeOptionBOMModifier",
        back_populates="option",
        cascade="all, delete-orphan",
        order_by="AttributeOptionBOMModifier.position"
    )

    def __repr__(self) -> str:
        return f"<ProductAttributeOption(value='{self.value}', active={self.is_active})>"


class ProductVariant(Base):
    """
    One purchasable combination of attribute options.
    Variants are deactivated, never deleted, once generated.
    """
    __tablename__ = "product_variants"
    __table_args__ = (
        UniqueConstraint('product_id', 'sku', name='uq_product_variant_sku'),
        Index('ix_product_variants_product_active', 'product_id', 'is_active'),
        CheckConstraint('stock_quantity >= 0', name='ck_product_variants_stock_non_negative'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False
    )

    sku: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # NULL = calculated from base price/weight + option modifiers
    price: Mapped[Optional[Decimal]] = mapped_column(MoneyType, nullable=True)
    weight_grams: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Inventory
    stock_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    low_stock_threshold: Mapped[int] = mapped_column(Integer, default=5, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

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
    product: Mapped["Product"] = relationship("Product", back_populates="variants")
    options: Mapped[List["ProductVariantOption"]] = relationship(
        "ProductVariantOption",
        back_populates="variant",
        cascade="all, delete-orphan"
    )
    bom_overrides: Mapped[List["VariantBOMOverride"]] = relationship(
        "VariantBOMOverride",
        back_populates="variant",
        cascade="all, delete-orphan",
        order_by="VariantBOMOverride.position"
    )

    def __repr__(self) -> str:
        return f"<ProductVariant(sku='{self.sku}', active={self.is_active})>"


class ProductVariantOption(Base):
    """Junction: which option a variant selects for each attribute."""
    __tablename__ = "product_variant_options"

    variant_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("product_variants.id", ondelete="CASCADE"),
        primary_key=True
    )
    attribute_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("product_attributes.id", ondelete="CASCADE"),
        primary_key=True
    )
    option_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("product_attribute_options.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Relationships
    variant: Mapped["ProductVariant"] = relationship("ProductVariant", back_populates="options")

    def __repr__(self) -> str:
        return f"<ProductVariantOption(variant={self.variant_id}, option={self.option_id})>"
