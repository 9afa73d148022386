"""Create catalog engine schema

Products with attributes/options/variants, the four BOM layers, raw materials,
the stock movement ledger and production batches.

Revision ID: 001_catalog_engine
Revises:
Create Date: 2026-10-15
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers
revision = '001_catalog_engine'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated: bool = True):
    columns = [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    ]
    if updated:
        columns.append(
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False)
        )
    return columns


def upgrade():
    """Create catalog, BOM, stock and production tables"""

    # ====================
    # PRODUCTS
    # ====================
    op.create_table(
        'products',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(280), unique=True, nullable=False),
        sa.Column('status', sa.String(50), server_default='DRAFT', nullable=False,
                  comment='DRAFT, ACTIVE, ARCHIVED'),
        sa.Column('sku_prefix', sa.String(50), nullable=True),
        sa.Column('base_price', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('base_weight_grams', sa.Integer, server_default='0', nullable=False),
        sa.Column('has_variants', sa.Boolean, server_default='false'),
        sa.Column('description', sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_products_slug', 'products', ['slug'])
    op.create_index('ix_products_status', 'products', ['status'])

    op.create_table(
        'product_attributes',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('product_id', UUID(as_uuid=True), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('attribute_type', sa.String(50), server_default='SELECT', nullable=False,
                  comment='SELECT, COLOR_SWATCH, BUTTON_GROUP, IMAGE_SWATCH'),
        sa.Column('position', sa.Integer, server_default='0', nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint('product_id', 'position', name='uq_product_attribute_position'),
        sa.UniqueConstraint('product_id', 'name', name='uq_product_attribute_name'),
    )
    op.create_index('ix_product_attributes_product_id', 'product_attributes', ['product_id'])

    op.create_table(
        'product_attribute_options',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('attribute_id', UUID(as_uuid=True),
                  sa.ForeignKey('product_attributes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('value', sa.String(100), nullable=False),
        sa.Column('display_value', sa.String(255), nullable=False),
        sa.Column('code', sa.String(20), nullable=True),
        sa.Column('color_hex', sa.String(7), nullable=True),
        sa.Column('price_modifier', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('weight_modifier_grams', sa.Integer, server_default='0', nullable=False),
        sa.Column('position', sa.Integer, server_default='0', nullable=False),
        sa.Column('is_active', sa.Boolean, server_default='true', nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint('attribute_id', 'value', name='uq_attribute_option_value'),
    )
    op.create_index('ix_product_attribute_options_attribute_id', 'product_attribute_options', ['attribute_id'])

    op.create_table(
        'product_variants',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('product_id', UUID(as_uuid=True), sa.ForeignKey('products.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('sku', sa.String(100), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=True),
        sa.Column('weight_grams', sa.Integer, nullable=True),
        sa.Column('stock_quantity', sa.Integer, server_default='0', nullable=False),
        sa.Column('low_stock_threshold', sa.Integer, server_default='5', nullable=False),
        sa.Column('is_active', sa.Boolean, server_default='true', nullable=False),
        sa.Column('position', sa.Integer, server_default='0', nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('product_id', 'sku', name='uq_product_variant_sku'),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_product_variants_stock_non_negative'),
    )
    op.create_index('ix_product_variants_sku', 'product_variants', ['sku'])
    op.create_index('ix_product_variants_product_active', 'product_variants', ['product_id', 'is_active'])

    op.create_table(
        'product_variant_options',
        sa.Column('variant_id', UUID(as_uuid=True),
                  sa.ForeignKey('product_variants.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('attribute_id', UUID(as_uuid=True),
                  sa.ForeignKey('product_attributes.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('option_id', UUID(as_uuid=True),
                  sa.ForeignKey('product_attribute_options.id', ondelete='CASCADE'), nullable=False),
    )
    op.create_index('ix_product_variant_options_option_id', 'product_variant_options', ['option_id'])

    # ====================
    # RAW MATERIALS
    # ====================
    op.create_table(
        'raw_materials',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('sku', sa.String(100), unique=True, nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('unit_of_measure', sa.String(20), server_default='UNIT', nullable=False,
                  comment='UNIT, KG, G, M, M2, M3, L, ML'),
        sa.Column('cost_per_unit', sa.Numeric(12, 4), server_default='0', nullable=False),
        sa.Column('stock_quantity', sa.Numeric(12, 4), server_default='0', nullable=False),
        sa.Column('low_stock_threshold', sa.Numeric(12, 4), server_default='0', nullable=False),
        sa.Column('supplier_name', sa.String(255), nullable=True),
        sa.Column('lead_time_days', sa.Integer, nullable=True),
        sa.Column('is_active', sa.Boolean, server_default='true', nullable=False),
        *_timestamps(),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_raw_materials_stock_non_negative'),
    )
    op.create_index('ix_raw_materials_sku', 'raw_materials', ['sku'])
    op.create_index('ix_raw_materials_is_active', 'raw_materials', ['is_active'])

    # ====================
    # BOM LAYERS
    # ====================
    op.create_table(
        'product_bom_entries',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('product_id', UUID(as_uuid=True), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('raw_material_id', UUID(as_uuid=True),
                  sa.ForeignKey('raw_materials.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('quantity', sa.Numeric(12, 4), nullable=False),
        sa.Column('unit_of_measure', sa.String(20), server_default='UNIT', nullable=False),
        sa.Column('is_required', sa.Boolean, server_default='true', nullable=False),
        sa.Column('position', sa.Integer, server_default='0', nullable=False),
        sa.Column('notes', sa.Text, nullable=True),
        *_timestamps(updated=False),
        sa.CheckConstraint('quantity >= 0', name='ck_product_bom_entries_quantity_non_negative'),
    )
    op.create_index('ix_product_bom_entries_product_id', 'product_bom_entries', ['product_id'])
    op.create_index('ix_product_bom_entries_raw_material_id', 'product_bom_entries', ['raw_material_id'])

    op.create_table(
        'attribute_option_bom_entries',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('option_id', UUID(as_uuid=True),
                  sa.ForeignKey('product_attribute_options.id', ondelete='CASCADE'), nullable=False),
        sa.Column('raw_material_id', UUID(as_uuid=True),
                  sa.ForeignKey('raw_materials.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('quantity', sa.Numeric(12, 4), nullable=False),
        sa.Column('unit_of_measure', sa.String(20), server_default='UNIT', nullable=False),
        sa.Column('position', sa.Integer, server_default='0', nullable=False),
        sa.Column('notes', sa.Text, nullable=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint('option_id', 'raw_material_id', name='uq_option_bom_entry_material'),
    )
    op.create_index('ix_attribute_option_bom_entries_option_id', 'attribute_option_bom_entries', ['option_id'])
    op.create_index(
        'ix_attribute_option_bom_entries_raw_material_id', 'attribute_option_bom_entries', ['raw_material_id']
    )

    op.create_table(
        'attribute_option_bom_modifiers',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('option_id', UUID(as_uuid=True),
                  sa.ForeignKey('product_attribute_options.id', ondelete='CASCADE'), nullable=False),
        sa.Column('raw_material_id', UUID(as_uuid=True),
                  sa.ForeignKey('raw_materials.id', ondelete='RESTRICT'), nullable=False,
                  comment='Target material whose quantity is modified'),
        sa.Column('modifier_type', sa.String(50), nullable=False, comment='MULTIPLY, ADD, SET'),
        sa.Column('modifier_value', sa.Numeric(12, 4), nullable=False),
        sa.Column('position', sa.Integer, server_default='0', nullable=False),
        sa.Column('notes', sa.Text, nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index('ix_attribute_option_bom_modifiers_option_id', 'attribute_option_bom_modifiers', ['option_id'])
    op.create_index(
        'ix_attribute_option_bom_modifiers_raw_material_id', 'attribute_option_bom_modifiers', ['raw_material_id']
    )

    op.create_table(
        'variant_bom_overrides',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('variant_id', UUID(as_uuid=True),
                  sa.ForeignKey('product_variants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('override_type', sa.String(50), nullable=False, comment='REPLACE, ADD, REMOVE, SET_QUANTITY'),
        sa.Column('raw_material_id', UUID(as_uuid=True),
                  sa.ForeignKey('raw_materials.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('replaces_material_id', UUID(as_uuid=True),
                  sa.ForeignKey('raw_materials.id', ondelete='RESTRICT'), nullable=True),
        sa.Column('quantity', sa.Numeric(12, 4), nullable=True),
        sa.Column('unit_of_measure', sa.String(20), nullable=True),
        sa.Column('position', sa.Integer, server_default='0', nullable=False),
        sa.Column('notes', sa.Text, nullable=True),
        *_timestamps(updated=False),
        sa.CheckConstraint(
            "override_type <> 'REPLACE' OR replaces_material_id IS NOT NULL",
            name='ck_variant_bom_overrides_replace_source',
        ),
    )
    op.create_index('ix_variant_bom_overrides_variant_id', 'variant_bom_overrides', ['variant_id'])
    op.create_index('ix_variant_bom_overrides_raw_material_id', 'variant_bom_overrides', ['raw_material_id'])

    # ====================
    # STOCK MOVEMENTS (insert-only ledger)
    # ====================
    op.create_table(
        'stock_movements',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('entity_type', sa.String(50), nullable=False, comment='PRODUCT_VARIANT, RAW_MATERIAL'),
        sa.Column('entity_id', UUID(as_uuid=True), nullable=False),
        sa.Column('movement_type', sa.String(50), nullable=False,
                  comment='PURCHASE, SALE, ADJUSTMENT, PRODUCTION_CONSUME, PRODUCTION_OUTPUT, RETURN, DAMAGE'),
        sa.Column('quantity_change', sa.Numeric(12, 4), nullable=False),
        sa.Column('quantity_before', sa.Numeric(12, 4), nullable=False),
        sa.Column('quantity_after', sa.Numeric(12, 4), nullable=False),
        sa.Column('reference_type', sa.String(50), nullable=True),
        sa.Column('reference_id', UUID(as_uuid=True), nullable=True),
        sa.Column('unit_cost', sa.Numeric(12, 4), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('created_by', UUID(as_uuid=True), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index('ix_stock_movements_entity', 'stock_movements', ['entity_type', 'entity_id'])
    op.create_index('ix_stock_movements_movement_type', 'stock_movements', ['movement_type'])
    op.create_index('ix_stock_movements_created_at', 'stock_movements', ['created_at'])

    # ====================
    # PRODUCTION BATCHES
    # ====================
    op.create_table(
        'production_batches',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('batch_number', sa.String(30), unique=True, nullable=False),
        sa.Column('product_id', UUID(as_uuid=True), sa.ForeignKey('products.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('variant_id', UUID(as_uuid=True),
                  sa.ForeignKey('product_variants.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('planned_quantity', sa.Integer, nullable=False),
        sa.Column('actual_quantity', sa.Integer, server_default='0', nullable=False),
        sa.Column('status', sa.String(50), server_default='DRAFT', nullable=False,
                  comment='DRAFT, SCHEDULED, IN_PROGRESS, COMPLETED, CANCELLED'),
        sa.Column('scheduled_date', sa.Date, nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cost_total', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('created_by', UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('planned_quantity > 0', name='ck_production_batches_planned_positive'),
    )
    op.create_index('ix_production_batches_batch_number', 'production_batches', ['batch_number'])
    op.create_index('ix_production_batches_status', 'production_batches', ['status'])
    op.create_index('ix_production_batches_product', 'production_batches', ['product_id'])

    op.create_table(
        'production_batch_materials',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('batch_id', UUID(as_uuid=True),
                  sa.ForeignKey('production_batches.id', ondelete='CASCADE'), nullable=False),
        sa.Column('raw_material_id', UUID(as_uuid=True),
                  sa.ForeignKey('raw_materials.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('quantity_per_unit', sa.Numeric(12, 4), nullable=False),
        sa.Column('required_quantity', sa.Numeric(12, 4), nullable=False),
        sa.Column('consumed_quantity', sa.Numeric(12, 4), server_default='0', nullable=False),
        sa.Column('unit_cost', sa.Numeric(12, 4), server_default='0', nullable=False),
        sa.UniqueConstraint('batch_id', 'raw_material_id', name='uq_batch_material'),
    )
    op.create_index('ix_production_batch_materials_batch_id', 'production_batch_materials', ['batch_id'])


def downgrade():
    """Drop all catalog engine tables"""
    op.drop_table('production_batch_materials')
    op.drop_table('production_batches')
    op.drop_table('stock_movements')
    op.drop_table('variant_bom_overrides')
    op.drop_table('attribute_option_bom_modifiers')
    op.drop_table('attribute_option_bom_entries')
    op.drop_table('product_bom_entries')
    op.drop_table('raw_materials')
    op.drop_table('product_variant_options')
    op.drop_table('product_variants')
    op.drop_table('product_attribute_options')
    op.drop_table('product_attributes')
    op.drop_table('products')
