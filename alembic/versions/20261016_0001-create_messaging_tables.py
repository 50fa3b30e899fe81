"""Create users, contacts and messages tables

Revision ID: 0001_messaging
Revises:
Create Date: 2026-10-16

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_messaging'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True, unique=True),
        sa.Column('avatar', sa.String(length=500), nullable=True),
        sa.Column('status', sa.String(length=139), nullable=True),
        sa.Column('is_online', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_seen', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(op.f('ix_users_is_online'), 'users', ['is_online'], unique=False)

    op.create_table(
        'contacts',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('owner_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('contact_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('owner_id', 'contact_id', name='uq_contact_owner_contact'),
    )
    op.create_index('idx_contacts_owner', 'contacts', ['owner_id'], unique=False)
    op.create_index(op.f('ix_contacts_contact_id'), 'contacts', ['contact_id'], unique=False)

    op.create_table(
        'messages',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('sender_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('receiver_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('message_type', sa.String(length=20), nullable=False, server_default='text'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='sent'),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('edited_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reply_to_id', sa.String(length=36), sa.ForeignKey('messages.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_messages_pair_created', 'messages', ['sender_id', 'receiver_id', 'created_at'], unique=False)
    op.create_index('idx_messages_receiver_status', 'messages', ['receiver_id', 'status'], unique=False)
    op.create_index('idx_messages_created', 'messages', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_messages_created', table_name='messages')
    op.drop_index('idx_messages_receiver_status', table_name='messages')
    op.drop_index('idx_messages_pair_created', table_name='messages')
    op.drop_table('messages')

    op.drop_index(op.f('ix_contacts_contact_id'), table_name='contacts')
    op.drop_index('idx_contacts_owner', table_name='contacts')
    op.drop_table('contacts')

    op.drop_index(op.f('ix_users_is_online'), table_name='users')
    op.drop_table('users')
