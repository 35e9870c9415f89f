"""Initial schema - profiles, funding opportunities and matches

Revision ID: 001_initial
Revises:
Create Date: 2026-01-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create profiles table (owned by the surrounding application)
    op.create_table(
        'profiles',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('profile_type', sa.String(50), nullable=True, comment='individual, college, high_school, nonprofit, ...'),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('state', sa.String(50), nullable=True),
        sa.Column('zip', sa.String(20), nullable=True),
        sa.Column('ein', sa.String(20), nullable=True),
        sa.Column('mission', sa.Text, nullable=True),
        sa.Column('focus_areas', sa.JSON, nullable=True, comment='List of focus areas, or a JSON/comma-separated string'),
        sa.Column('keywords', sa.Text, nullable=True),
        sa.Column('profile_data', sa.JSON, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # Create funding_opportunities table
    op.create_table(
        'funding_opportunities',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('source', sa.String(50), nullable=False),
        sa.Column('source_id', sa.String(255), nullable=False, comment='Identifier assigned by the originating crawler'),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('sponsor', sa.String(500), nullable=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('amount_min', sa.Float, nullable=True),
        sa.Column('amount_max', sa.Float, nullable=True),
        sa.Column('deadline', sa.Date, nullable=True),
        sa.Column('eligibility', sa.Text, nullable=True),
        sa.Column('focus_areas', sa.JSON, nullable=False),
        sa.Column('url', sa.String(1000), nullable=True),
        sa.Column('raw_data', sa.JSON, nullable=True, comment='Original scraped data for debugging'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('source', 'source_id', name='uq_funding_opportunities_source'),
    )
    op.create_index('ix_funding_opportunities_source', 'funding_opportunities', ['source'])
    op.create_index('ix_funding_opportunities_deadline', 'funding_opportunities', ['deadline'])

    # Create matches table
    op.create_table(
        'matches',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('profile_id', sa.Uuid(as_uuid=True), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('opportunity_id', sa.Uuid(as_uuid=True), sa.ForeignKey('funding_opportunities.id', ondelete='CASCADE'), nullable=False),
        sa.Column('score', sa.Integer, nullable=False),
        sa.Column('reasons', sa.JSON, nullable=False),
        sa.Column('category', sa.String(50), nullable=True, comment='Source family tag: federal, benefits, energy, foundation, local, scholarship, custom'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('profile_id', 'opportunity_id', name='uq_matches_profile_opportunity'),
    )
    op.create_index('ix_matches_profile_id', 'matches', ['profile_id'])
    op.create_index('ix_matches_opportunity_id', 'matches', ['opportunity_id'])


def downgrade() -> None:
    op.drop_table('matches')
    op.drop_table('funding_opportunities')
    op.drop_table('profiles')
