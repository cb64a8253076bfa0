"""Initial schema: users, leads, contact logs, email templates, tasks

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

LEAD_STATUS = ('new', 'contacted', 'follow_up_1', 'follow_up_2', 'engaged', 'interested', 'human_handoff', 'lost')
LEAD_SOURCE = ('manual', 'csv_import', 'google_maps', 'social_search')
SITE_CLASSIFICATION = ('no_site', 'weak_site', 'site_without_seo', 'site_ok', 'pending')
CONTACT_CHANNEL = ('email', 'whatsapp')
CONTACT_DIRECTION = ('outbound', 'inbound')
MESSAGE_TYPE = ('initial', 'follow_up_1', 'follow_up_2', 'response')
TASK_PRIORITY = ('low', 'normal', 'high', 'urgent')
TASK_STATUS = ('pending', 'in_progress', 'done')

ENUMS = {
    'lead_status': LEAD_STATUS,
    'lead_source': LEAD_SOURCE,
    'site_classification': SITE_CLASSIFICATION,
    'contact_channel': CONTACT_CHANNEL,
    'contact_direction': CONTACT_DIRECTION,
    'message_type': MESSAGE_TYPE,
    'task_priority': TASK_PRIORITY,
    'task_status': TASK_STATUS,
}


def _enum(name):
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def upgrade():
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name, create_type=False).create(op.get_bind(), checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true')),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'leads',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('company_name', sa.String(length=255), nullable=False),
        sa.Column('segment', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=255), nullable=True),
        sa.Column('state', sa.String(length=100), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('whatsapp', sa.String(length=50), nullable=True),
        sa.Column('website', sa.String(length=500), nullable=True),
        sa.Column('site_classification', _enum('site_classification'), nullable=True),
        sa.Column('site_active', sa.Boolean(), nullable=True),
        sa.Column('site_performance_score', sa.Integer(), nullable=True),
        sa.Column('site_indexed', sa.Boolean(), nullable=True),
        sa.Column('site_analysis_date', sa.DateTime(), nullable=True),
        sa.Column('status', _enum('lead_status'), nullable=False, server_default='new'),
        sa.Column('source', _enum('lead_source'), nullable=False, server_default='manual'),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('automation_paused', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('opted_out', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('opted_out_date', sa.DateTime(), nullable=True),
        sa.Column('contact_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_contact_date', sa.DateTime(), nullable=True),
        sa.Column('position', sa.Float(), nullable=False, server_default='0'),
        sa.Column('tags', sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("length(trim(company_name)) > 0", name='ck_leads_company_name_not_empty'),
        sa.CheckConstraint("NOT opted_out OR automation_paused", name='ck_leads_opted_out_paused'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_leads_tenant_id'), 'leads', ['tenant_id'], unique=False)
    op.create_index(op.f('ix_leads_email'), 'leads', ['email'], unique=False)
    op.create_index(op.f('ix_leads_website'), 'leads', ['website'], unique=False)
    op.create_index(op.f('ix_leads_status'), 'leads', ['status'], unique=False)
    op.create_index(op.f('ix_leads_site_classification'), 'leads', ['site_classification'], unique=False)

    op.create_table(
        'contact_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('lead_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('channel', _enum('contact_channel'), nullable=False),
        sa.Column('direction', _enum('contact_direction'), nullable=False),
        sa.Column('message_type', _enum('message_type'), nullable=False),
        sa.Column('subject', sa.String(length=500), nullable=True),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('response_content', sa.Text(), nullable=True),
        sa.Column('email_address', sa.String(length=255), nullable=True),
        sa.Column('provider_message_id', sa.String(length=255), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('opened_at', sa.DateTime(), nullable=True),
        sa.Column('responded_at', sa.DateTime(), nullable=True),
        sa.Column('interest_detected', sa.Boolean(), nullable=True),
        sa.Column('interest_keywords', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_contact_logs_tenant_id'), 'contact_logs', ['tenant_id'], unique=False)
    op.create_index(op.f('ix_contact_logs_lead_id'), 'contact_logs', ['lead_id'], unique=False)
    op.create_index(op.f('ix_contact_logs_email_address'), 'contact_logs', ['email_address'], unique=False)

    op.create_table(
        'email_templates',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('site_classification', _enum('site_classification'), nullable=True),
        sa.Column('message_type', _enum('message_type'), nullable=False),
        sa.Column('subject', sa.String(length=500), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('variables', sa.JSON(), nullable=True),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_email_templates_tenant_id'), 'email_templates', ['tenant_id'], unique=False)

    op.create_table(
        'tasks',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('lead_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('task_type', sa.String(length=50), nullable=False, server_default='follow_up'),
        sa.Column('priority', _enum('task_priority'), nullable=False, server_default='normal'),
        sa.Column('status', _enum('task_status'), nullable=False, server_default='pending'),
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_tasks_tenant_id'), 'tasks', ['tenant_id'], unique=False)
    op.create_index(op.f('ix_tasks_lead_id'), 'tasks', ['lead_id'], unique=False)
    op.create_index(op.f('ix_tasks_status'), 'tasks', ['status'], unique=False)


def downgrade():
    op.drop_table('tasks')
    op.drop_table('email_templates')
    op.drop_table('contact_logs')
    op.drop_table('leads')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')

    for name, values in reversed(list(ENUMS.items())):
        postgresql.ENUM(*values, name=name).drop(op.get_bind(), checkfirst=True)
