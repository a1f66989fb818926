"""Create cards, merchant intelligence, user and ask tables

Revision ID: 4c1d2e3f5a6b
Revises:
Create Date: 2026-03-02 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4c1d2e3f5a6b'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'cards',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('issuer', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('network', sa.String(), nullable=False),
        sa.Column('annual_fee_cents', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('foreign_tx_fee_percent', sa.Float(), nullable=True),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_verified_at', sa.DateTime(), nullable=True),
        sa.Column('created_date', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_cards_id'), 'cards', ['id'], unique=False)

    op.create_table(
        'card_reward_rules',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('card_id', sa.String(), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('multiplier', sa.Float(), nullable=False),
        sa.Column('cap_amount_cents', sa.Integer(), nullable=True),
        sa.Column('cap_period', sa.String(), nullable=True),
        sa.Column('conditions', sa.Text(), nullable=True),
        sa.Column('exclusions', sa.JSON(), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.CheckConstraint('multiplier >= 0', name='ck_card_reward_rules_multiplier_non_negative'),
        sa.CheckConstraint(
            "cap_period IS NULL OR cap_period IN ('month', 'quarter', 'year')",
            name='ck_card_reward_rules_cap_period',
        ),
        sa.ForeignKeyConstraint(['card_id'], ['cards.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_card_reward_rules_id'), 'card_reward_rules', ['id'], unique=False)
    op.create_index(op.f('ix_card_reward_rules_card_id'), 'card_reward_rules', ['card_id'], unique=False)

    op.create_table(
        'merchant_exclusions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('card_id', sa.String(), nullable=False),
        sa.Column('merchant_pattern', sa.String(), nullable=False),
        sa.Column('reason', sa.String(), nullable=False),
        sa.ForeignKeyConstraint(['card_id'], ['cards.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_merchant_exclusions_id'), 'merchant_exclusions', ['id'], unique=False)
    op.create_index(op.f('ix_merchant_exclusions_card_id'), 'merchant_exclusions', ['card_id'], unique=False)

    op.create_table(
        'merchant_overrides',
        sa.Column('domain', sa.String(), nullable=False),
        sa.Column('display_name', sa.String(), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('rationale', sa.Text(), nullable=True),
        sa.Column('approved_by', sa.String(), nullable=False),
        sa.Column('approved_at', sa.DateTime(), nullable=False),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint('domain'),
    )

    # No unique index on (domain, status): pending de-duplication is best-effort
    op.create_table(
        'merchant_suggestions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('domain', sa.String(), nullable=False),
        sa.Column('suggested_category', sa.String(), nullable=False),
        sa.Column('confidence', sa.String(), nullable=False),
        sa.Column('rationale', sa.Text(), nullable=False),
        sa.Column('source', sa.String(), nullable=False),
        sa.Column('merchant_name', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('reviewer_notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_merchant_suggestions_domain'), 'merchant_suggestions', ['domain'], unique=False)
    op.create_index(op.f('ix_merchant_suggestions_status'), 'merchant_suggestions', ['status'], unique=False)

    op.create_table(
        'user_profile',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('created_date', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
        sa.UniqueConstraint('email'),
    )
    op.create_index(op.f('ix_user_profile_id'), 'user_profile', ['id'], unique=False)

    op.create_table(
        'credit_profiles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('experience_level', sa.String(), nullable=False),
        sa.Column('intent', sa.String(), nullable=False),
        sa.Column('carry_balance', sa.Boolean(), nullable=False),
        sa.Column('bnpl_usage', sa.String(), nullable=True),
        sa.Column('age_bucket', sa.String(), nullable=True),
        sa.Column('income_bucket', sa.String(), nullable=True),
        sa.Column('credit_history', sa.String(), nullable=True),
        sa.Column('has_derogatories', sa.Boolean(), nullable=False),
        sa.Column('confidence_level', sa.String(), nullable=True),
        sa.Column('onboarding_completed', sa.Boolean(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user_profile.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )
    op.create_index(op.f('ix_credit_profiles_id'), 'credit_profiles', ['id'], unique=False)

    op.create_table(
        'user_owned_cards',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('card_id', sa.String(), nullable=False),
        sa.Column('status', sa.Enum('active', 'closed', name='userownedcardstatus'), nullable=False),
        sa.Column('added_date', sa.Date(), nullable=False),
        sa.ForeignKeyConstraint(['card_id'], ['cards.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['user_profile.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'card_id', name='uq_user_owned_cards_user_card'),
    )
    op.create_index(op.f('ix_user_owned_cards_id'), 'user_owned_cards', ['id'], unique=False)

    op.create_table(
        'user_ai_preferences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('answer_depth', sa.String(), nullable=True),
        sa.Column('calibration', sa.JSON(), nullable=True),
        sa.Column('ai_credits', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user_profile.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )
    op.create_index(op.f('ix_user_ai_preferences_id'), 'user_ai_preferences', ['id'], unique=False)

    op.create_table(
        'user_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('card_id', sa.String(), nullable=True),
        sa.Column('merchant', sa.String(), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('is_bnpl', sa.Boolean(), nullable=True),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        sa.Column('created_date', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['card_id'], ['cards.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['user_id'], ['user_profile.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_user_transactions_id'), 'user_transactions', ['id'], unique=False)
    op.create_index(op.f('ix_user_transactions_user_id'), 'user_transactions', ['user_id'], unique=False)

    op.create_table(
        'ask_audit_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('request_id', sa.String(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('question_redacted', sa.Text(), nullable=False),
        sa.Column('redaction_types', sa.JSON(), nullable=False),
        sa.Column('question_type', sa.String(), nullable=False),
        sa.Column('answer_depth', sa.String(), nullable=False),
        sa.Column('outcome', sa.String(), nullable=False),
        sa.Column('llm_called', sa.Boolean(), nullable=False),
        sa.Column('answer', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user_profile.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('request_id'),
    )
    op.create_index(op.f('ix_ask_audit_log_id'), 'ask_audit_log', ['id'], unique=False)
    op.create_index(op.f('ix_ask_audit_log_user_id'), 'ask_audit_log', ['user_id'], unique=False)

    op.create_table(
        'rate_limits',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('bucket', sa.String(), nullable=False),
        sa.Column('window_start', sa.DateTime(), nullable=False),
        sa.Column('request_count', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user_profile.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'bucket', name='uq_rate_limits_user_bucket'),
    )
    op.create_index(op.f('ix_rate_limits_id'), 'rate_limits', ['id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_rate_limits_id'), table_name='rate_limits')
    op.drop_table('rate_limits')
    op.drop_index(op.f('ix_ask_audit_log_user_id'), table_name='ask_audit_log')
    op.drop_index(op.f('ix_ask_audit_log_id'), table_name='ask_audit_log')
    op.drop_table('ask_audit_log')
    op.drop_index(op.f('ix_user_transactions_user_id'), table_name='user_transactions')
    op.drop_index(op.f('ix_user_transactions_id'), table_name='user_transactions')
    op.drop_table('user_transactions')
    op.drop_index(op.f('ix_user_ai_preferences_id'), table_name='user_ai_preferences')
    op.drop_table('user_ai_preferences')
    op.drop_index(op.f('ix_user_owned_cards_id'), table_name='user_owned_cards')
    op.drop_table('user_owned_cards')
    op.drop_index(op.f('ix_credit_profiles_id'), table_name='credit_profiles')
    op.drop_table('credit_profiles')
    op.drop_index(op.f('ix_user_profile_id'), table_name='user_profile')
    op.drop_table('user_profile')
    op.drop_index(op.f('ix_merchant_suggestions_status'), table_name='merchant_suggestions')
    op.drop_index(op.f('ix_merchant_suggestions_domain'), table_name='merchant_suggestions')
    op.drop_table('merchant_suggestions')
    op.drop_table('merchant_overrides')
    op.drop_index(op.f('ix_merchant_exclusions_card_id'), table_name='merchant_exclusions')
    op.drop_index(op.f('ix_merchant_exclusions_id'), table_name='merchant_exclusions')
    op.drop_table('merchant_exclusions')
    op.drop_index(op.f('ix_card_reward_rules_card_id'), table_name='card_reward_rules')
    op.drop_index(op.f('ix_card_reward_rules_id'), table_name='card_reward_rules')
    op.drop_table('card_reward_rules')
    op.drop_index(op.f('ix_cards_id'), table_name='cards')
    op.drop_table('cards')
