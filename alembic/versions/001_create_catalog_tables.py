"""Create catalog tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create categories, option types, products, variants and images."""
    for table in ('tax_categories', 'shipping_categories'):
        op.create_table(
            table,
            sa.Column('id', sa.String(36), primary_key=True),
            sa.Column('name', sa.String(100), nullable=False, unique=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        )

    op.create_table(
        'option_types',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False, unique=True),
        sa.Column('presentation', sa.String(100), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )

    op.create_table(
        'option_values',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('option_type_id', sa.String(36),
                  sa.ForeignKey('option_types.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('presentation', sa.String(100), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.UniqueConstraint('option_type_id', 'position', name='uq_option_values_type_position'),
        sa.UniqueConstraint('option_type_id', 'name', name='uq_option_values_type_name'),
    )

    op.create_table(
        'products',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('available_on', sa.DateTime(timezone=True), nullable=True, index=True),
        sa.Column('tax_category_id', sa.String(36),
                  sa.ForeignKey('tax_categories.id'), nullable=False, index=True),
        sa.Column('shipping_category_id', sa.String(36),
                  sa.ForeignKey('shipping_categories.id'), nullable=False, index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )

    op.create_table(
        'product_option_types',
        sa.Column('product_id', sa.String(36),
                  sa.ForeignKey('products.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('option_type_id', sa.String(36),
                  sa.ForeignKey('option_types.id', ondelete='RESTRICT'), primary_key=True),
    )

    op.create_table(
        'variants',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('product_id', sa.String(36),
                  sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('sku', sa.String(100), nullable=False),
        sa.Column('is_master', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('stock_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('deactivated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.UniqueConstraint('sku', name='uq_variants_sku'),
    )

    op.create_table(
        'variant_option_values',
        sa.Column('variant_id', sa.String(36),
                  sa.ForeignKey('variants.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('option_value_id', sa.String(36),
                  sa.ForeignKey('option_values.id', ondelete='RESTRICT'), primary_key=True),
    )

    op.create_table(
        'images',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('variant_id', sa.String(36),
                  sa.ForeignKey('variants.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('filename', sa.String(255), nullable=False),
        sa.Column('storage_key', sa.String(500), nullable=False, unique=True),
        sa.Column('content_type', sa.String(100), nullable=False),
        sa.Column('byte_size', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )


def downgrade() -> None:
    """Drop catalog tables."""
    op.drop_table('images')
    op.drop_table('variant_option_values')
    op.drop_table('variants')
    op.drop_table('product_option_types')
    op.drop_table('products')
    op.drop_table('option_values')
    op.drop_table('option_types')
    op.drop_table('shipping_categories')
    op.drop_table('tax_categories')
