"""Material lifecycle and batch allocation ledger

Revision ID: material_lifecycle
Revises:
Create Date: 2026-10-19

Creates the lifecycle tables:
- containers, material_inputs, processing_steps
- samples, sample_results
- output_materials, orders, batch_allocations
- delivery_notes, material_flow_history, id_sequences

and the conservation trigger on batch_allocations that rejects any write
pushing the allocated sum of an output above its weight.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from recytrack.models.allocation import (
    CONSERVATION_FUNCTION, CONSERVATION_TRIGGER, CONSERVATION_UPDATE_TRIGGER,
    DUPLICATE_ALLOCATION_CONSTRAINT, PG_CONSERVATION_FUNCTION, PG_CONSERVATION_TRIGGER,
    SQLITE_CONSERVATION_TRIGGER, SQLITE_CONSERVATION_UPDATE_TRIGGER,
)


# revision identifiers, used by Alembic.
revision: str = 'material_lifecycle'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

WEIGHT = sa.Numeric(12, 3)


def _timestamps(*names):
    return [sa.Column(name, sa.DateTime(timezone=True), nullable=True) for name in names]


def upgrade() -> None:
    # ==================== containers ====================
    op.create_table(
        'containers',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('container_id', sa.String(50), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='empty'),
        sa.Column('volume_liters', sa.Integer(), nullable=True),
        sa.Column('weight_kg', WEIGHT, nullable=True),
        sa.Column('location', sa.String(100), nullable=True),
        sa.Column('created_by', sa.String(100), nullable=True),
        *_timestamps('created_at', 'updated_at'),
    )
    op.create_index('ix_containers_container_id', 'containers', ['container_id'], unique=True)
    op.create_index('ix_containers_status', 'containers', ['status'])

    # ==================== material_inputs ====================
    op.create_table(
        'material_inputs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('input_id', sa.String(50), nullable=False),
        sa.Column('supplier', sa.String(200), nullable=False),
        sa.Column('material_type', sa.String(50), nullable=False),
        sa.Column('material_subtype', sa.String(50), nullable=True),
        sa.Column('weight_kg', WEIGHT, nullable=False),
        sa.Column('waste_code', sa.String(20), nullable=True),
        sa.Column('container_id', sa.Uuid(), sa.ForeignKey('containers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='received'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(100), nullable=True),
        *_timestamps('received_at', 'created_at', 'updated_at'),
    )
    op.create_index('ix_material_inputs_input_id', 'material_inputs', ['input_id'], unique=True)
    op.create_index('ix_material_inputs_status', 'material_inputs', ['status'])

    # ==================== processing_steps ====================
    op.create_table(
        'processing_steps',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('processing_id', sa.String(50), nullable=False),
        sa.Column('material_input_id', sa.Uuid(), sa.ForeignKey('material_inputs.id'), nullable=False),
        sa.Column('step_type', sa.String(50), nullable=False),
        sa.Column('step_order', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('progress', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('operator_id', sa.String(100), nullable=True),
        *_timestamps('started_at', 'completed_at', 'created_at', 'updated_at'),
    )
    op.create_index('idx_ps_input_status', 'processing_steps', ['material_input_id', 'status'])
    op.create_index('idx_ps_processing_order', 'processing_steps', ['processing_id', 'step_order'])

    # ==================== samples ====================
    op.create_table(
        'samples',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('sample_id', sa.String(50), nullable=False),
        sa.Column('sampler_name', sa.String(200), nullable=False),
        sa.Column('material_input_id', sa.Uuid(), sa.ForeignKey('material_inputs.id', ondelete='SET NULL'), nullable=True),
        sa.Column('processing_step_id', sa.Uuid(), sa.ForeignKey('processing_steps.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('is_retention_sample', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('approved_by', sa.String(100), nullable=True),
        *_timestamps('sampled_at', 'analyzed_at', 'approved_at', 'created_at', 'updated_at'),
    )
    op.create_index('ix_samples_sample_id', 'samples', ['sample_id'], unique=True)
    op.create_index('ix_samples_status', 'samples', ['status'])

    op.create_table(
        'sample_results',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('sample_id', sa.Uuid(), sa.ForeignKey('samples.id', ondelete='CASCADE'), nullable=False),
        sa.Column('parameter_name', sa.String(100), nullable=False),
        sa.Column('parameter_value', sa.String(100), nullable=False),
        sa.Column('unit', sa.String(20), nullable=True),
        *_timestamps('created_at'),
    )
    op.create_index('ix_sample_results_sample_id', 'sample_results', ['sample_id'])

    # ==================== output_materials ====================
    op.create_table(
        'output_materials',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('output_id', sa.String(50), nullable=False),
        sa.Column('batch_id', sa.String(100), nullable=False),
        sa.Column('output_type', sa.String(50), nullable=False),
        sa.Column('weight_kg', WEIGHT, nullable=False),
        sa.Column('quality_grade', sa.String(10), nullable=True),
        sa.Column('container_id', sa.Uuid(), sa.ForeignKey('containers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('sample_id', sa.Uuid(), sa.ForeignKey('samples.id', ondelete='SET NULL'), nullable=True),
        sa.Column('processing_step_id', sa.Uuid(), sa.ForeignKey('processing_steps.id', ondelete='SET NULL'), nullable=True),
        sa.Column('destination', sa.String(200), nullable=True),
        sa.Column('fiber_size', sa.String(50), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='in_stock'),
        sa.Column('attributes', sa.JSON(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(100), nullable=True),
        *_timestamps('created_at', 'updated_at'),
    )
    op.create_index('ix_output_materials_output_id', 'output_materials', ['output_id'], unique=True)
    op.create_index('ix_output_materials_batch_id', 'output_materials', ['batch_id'])
    op.create_index('ix_output_materials_status', 'output_materials', ['status'])

    # ==================== orders ====================
    op.create_table(
        'orders',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('order_id', sa.String(50), nullable=False),
        sa.Column('customer_name', sa.String(200), nullable=False),
        sa.Column('customer_email', sa.String(200), nullable=True),
        sa.Column('customer_phone', sa.String(50), nullable=True),
        sa.Column('product_category', sa.String(50), nullable=False),
        sa.Column('product_grain_size', sa.String(50), nullable=False),
        sa.Column('product_subcategory', sa.String(50), nullable=False),
        sa.Column('product_name', sa.String(200), nullable=True),
        sa.Column('quantity_kg', WEIGHT, nullable=False),
        sa.Column('production_deadline', sa.Date(), nullable=False),
        sa.Column('delivery_deadline', sa.Date(), nullable=False),
        sa.Column('delivery_partner', sa.String(200), nullable=True),
        sa.Column('delivery_address', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(100), nullable=True),
        *_timestamps('created_at', 'updated_at'),
    )
    op.create_index('ix_orders_order_id', 'orders', ['order_id'], unique=True)
    op.create_index('ix_orders_status', 'orders', ['status'])

    # ==================== batch_allocations ====================
    op.create_table(
        'batch_allocations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('output_material_id', sa.Uuid(), sa.ForeignKey('output_materials.id'), nullable=False),
        sa.Column('order_id', sa.Uuid(), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('allocated_weight_kg', WEIGHT, nullable=False),
        sa.Column('allocated_by', sa.String(100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps('allocated_at', 'created_at'),
        sa.UniqueConstraint('output_material_id', 'order_id', name=DUPLICATE_ALLOCATION_CONSTRAINT),
    )
    op.create_index('ix_batch_allocations_output_material_id', 'batch_allocations', ['output_material_id'])
    op.create_index('ix_batch_allocations_order_id', 'batch_allocations', ['order_id'])

    # ==================== delivery_notes ====================
    op.create_table(
        'delivery_notes',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('note_id', sa.String(50), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('partner_name', sa.String(200), nullable=False),
        sa.Column('material_description', sa.String(200), nullable=False),
        sa.Column('weight_kg', WEIGHT, nullable=False),
        sa.Column('waste_code', sa.String(20), nullable=True),
        sa.Column('batch_reference', sa.String(100), nullable=True),
        sa.Column('material_input_id', sa.Uuid(), sa.ForeignKey('material_inputs.id', ondelete='SET NULL'), nullable=True),
        sa.Column('output_material_id', sa.Uuid(), sa.ForeignKey('output_materials.id', ondelete='SET NULL'), nullable=True),
        sa.Column('pdf_url', sa.String(500), nullable=True),
        sa.Column('created_by', sa.String(100), nullable=True),
        *_timestamps('created_at'),
    )
    op.create_index('ix_delivery_notes_note_id', 'delivery_notes', ['note_id'], unique=True)

    # ==================== material_flow_history ====================
    op.create_table(
        'material_flow_history',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('event_description', sa.Text(), nullable=False),
        sa.Column('event_details', sa.JSON(), nullable=True),
        sa.Column('material_input_id', sa.Uuid(), sa.ForeignKey('material_inputs.id', ondelete='SET NULL'), nullable=True),
        sa.Column('processing_step_id', sa.Uuid(), sa.ForeignKey('processing_steps.id', ondelete='SET NULL'), nullable=True),
        sa.Column('sample_id', sa.Uuid(), sa.ForeignKey('samples.id', ondelete='SET NULL'), nullable=True),
        sa.Column('container_id', sa.Uuid(), sa.ForeignKey('containers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('output_material_id', sa.Uuid(), sa.ForeignKey('output_materials.id', ondelete='SET NULL'), nullable=True),
        sa.Column('delivery_note_id', sa.Uuid(), sa.ForeignKey('delivery_notes.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_by', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_material_flow_history_event_type', 'material_flow_history', ['event_type'])
    op.create_index('ix_material_flow_history_material_input_id', 'material_flow_history', ['material_input_id'])
    op.create_index('ix_material_flow_history_output_material_id', 'material_flow_history', ['output_material_id'])
    op.create_index('ix_material_flow_history_created_at', 'material_flow_history', ['created_at'])

    # ==================== id_sequences ====================
    op.create_table(
        'id_sequences',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('prefix', sa.String(10), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('current_number', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('padding_length', sa.Integer(), nullable=True),
        *_timestamps('updated_at'),
        sa.UniqueConstraint('prefix', 'year', name='uq_id_sequence_prefix_year'),
    )
    op.create_index('ix_id_sequences_prefix', 'id_sequences', ['prefix'])

    # ==================== conservation trigger ====================
    dialect = op.get_bind().dialect.name
    if dialect == 'postgresql':
        op.execute(PG_CONSERVATION_FUNCTION)
        op.execute(PG_CONSERVATION_TRIGGER)
    elif dialect == 'sqlite':
        op.execute(SQLITE_CONSERVATION_TRIGGER)
        op.execute(SQLITE_CONSERVATION_UPDATE_TRIGGER)


def downgrade() -> None:
    dialect = op.get_bind().dialect.name
    if dialect == 'postgresql':
        op.execute(f"DROP TRIGGER IF EXISTS {CONSERVATION_TRIGGER} ON batch_allocations")
        op.execute(f"DROP FUNCTION IF EXISTS {CONSERVATION_FUNCTION}()")
    elif dialect == 'sqlite':
        op.execute(f"DROP TRIGGER IF EXISTS {CONSERVATION_UPDATE_TRIGGER}")
        op.execute(f"DROP TRIGGER IF EXISTS {CONSERVATION_TRIGGER}")

    op.drop_table('id_sequences')
    op.drop_table('material_flow_history')
    op.drop_table('delivery_notes')
    op.drop_table('batch_allocations')
    op.drop_table('orders')
    op.drop_table('output_materials')
    op.drop_table('sample_results')
    op.drop_table('samples')
    op.drop_table('processing_steps')
    op.drop_table('material_inputs')
    op.drop_table('containers')
