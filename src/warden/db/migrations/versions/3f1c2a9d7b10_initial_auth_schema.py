"""Initial auth schema: users, two-factor challenges, revoked refresh tokens

Learn: two_factor_challenges.user_id cascades on delete so the reaper's
single DELETE of expired PENDING users also clears their challenges.
revoked_refresh_tokens.token is UNIQUE; refresh-token rotation relies on
that constraint to let exactly one of two concurrent rotations through.

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


user_status = sa.Enum('pending', 'active', 'blocked', name='user_status')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(100), nullable=False, unique=True),
        sa.Column('username', sa.String(20), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('status', user_status, nullable=False),
        sa.Column('confirmation_code', sa.String(255), nullable=False, unique=True),
        sa.Column('password_reset_token', sa.String(255), nullable=True, unique=True),
        sa.Column('password_reset_token_issued_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'two_factor_challenges',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'user_id',
            sa.Uuid(),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('code', sa.String(12), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        'ix_two_factor_challenges_code_created',
        'two_factor_challenges',
        ['code', 'created_at'],
    )
    op.create_index(
        'ix_two_factor_challenges_created_at', 'two_factor_challenges', ['created_at']
    )

    op.create_table(
        'revoked_refresh_tokens',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('token', sa.String(64), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        'ix_revoked_refresh_tokens_created_at', 'revoked_refresh_tokens', ['created_at']
    )


def downgrade() -> None:
    op.drop_table('revoked_refresh_tokens')
    op.drop_table('two_factor_challenges')
    op.drop_table('users')
    user_status.drop(op.get_bind(), checkfirst=True)
