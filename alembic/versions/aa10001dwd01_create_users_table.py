"""create users table

Revision ID: aa10001dwd01
Revises:
Create Date: 2026-10-19 09:00:00.000000

Hey future me - this is the ONLY table. One row per Spotify account:

- id: Spotify user id (stable external identity, primary key)
- access_token / refresh_token / token_type / expires_in / scope: latest credentials
- discover_weekly_id: set on first sign-in, never changed afterwards
- dw_dedupe_id: the managed playlist (re-resolved by the sync when stale)
- track_ids / repeat_ids / latest_repeat_ids: JSON arrays, stored sorted
- created_at / updated_at / last_synced_at: UTC timestamps
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'aa10001dwd01'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(255), primary_key=True),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('access_token', sa.Text, nullable=False),
        sa.Column('refresh_token', sa.Text, nullable=False),
        sa.Column('token_type', sa.String(32), nullable=False, server_default='Bearer'),
        sa.Column('expires_in', sa.Integer, nullable=True),
        sa.Column('scope', sa.Text, nullable=True),
        sa.Column('discover_weekly_id', sa.String(64), nullable=True),
        sa.Column('dw_dedupe_id', sa.String(64), nullable=True),
        sa.Column('track_ids', sa.JSON, nullable=False, server_default='[]'),
        sa.Column('repeat_ids', sa.JSON, nullable=False, server_default='[]'),
        sa.Column('latest_repeat_ids', sa.JSON, nullable=False, server_default='[]'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    op.drop_table('users')
