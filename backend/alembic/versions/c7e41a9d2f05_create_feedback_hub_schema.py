"""create feedback hub schema

Revision ID: c7e41a9d2f05
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "c7e41a9d2f05"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


user_role = postgresql.ENUM("user", "admin", name="user_role", create_type=False)
survey_status = postgresql.ENUM(
    "draft", "active", "paused", "completed", name="survey_status", create_type=False
)
token_status = postgresql.ENUM("active", "paused", name="token_status", create_type=False)
answer_type = postgresql.ENUM(
    "emoji-rating", "single-choice", "multi-select", "text", name="answer_type", create_type=False
)


def upgrade() -> None:
    bind = op.get_bind()
    for enum in (user_role, survey_status, token_status, answer_type):
        enum.create(bind, checkfirst=True)

    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("username", sa.String(length=150), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, server_default="user", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # --- surveys ---
    op.create_table(
        "surveys",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", survey_status, server_default="draft", nullable=False),
        sa.Column("config", postgresql.JSONB(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_surveys_user_id", "surveys", ["user_id"])
    op.create_index("ix_surveys_status", "surveys", ["status"])

    # --- survey_tokens ---
    op.create_table(
        "survey_tokens",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("token_id", sa.String(length=64), nullable=False),
        sa.Column("survey_id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("allowed_domains", postgresql.JSONB(), nullable=True),
        sa.Column("valid_from", sa.DateTime(), nullable=True),
        sa.Column("valid_until", sa.DateTime(), nullable=True),
        sa.Column("status", token_status, server_default="active", nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["survey_id"], ["surveys.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_survey_tokens_token_id", "survey_tokens", ["token_id"], unique=True)
    op.create_index("ix_survey_tokens_survey_id", "survey_tokens", ["survey_id"])
    op.create_index("ix_survey_tokens_user_id", "survey_tokens", ["user_id"])
    op.create_index("ix_survey_tokens_status", "survey_tokens", ["status"])

    # --- survey_responses ---
    op.create_table(
        "survey_responses",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("survey_id", sa.UUID(), nullable=False),
        sa.Column("token_id", sa.String(length=64), nullable=True),
        sa.Column("form_type", sa.String(length=50), nullable=True),
        sa.Column("response_data", postgresql.JSONB(), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["survey_id"], ["surveys.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_survey_responses_survey_id", "survey_responses", ["survey_id"])
    op.create_index("ix_survey_responses_token_id", "survey_responses", ["token_id"])

    # --- response_answers ---
    op.create_table(
        "response_answers",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("response_id", sa.UUID(), nullable=False),
        sa.Column("step_id", sa.String(length=255), nullable=False),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("question_type", answer_type, nullable=False),
        sa.Column("answer_value", sa.Text(), nullable=True),
        sa.Column("answer_index", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["response_id"], ["survey_responses.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_response_answers_response_id", "response_answers", ["response_id"])
    op.create_index("ix_response_answers_step_id", "response_answers", ["step_id"])

    # --- audit_logs ---
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("resource_type", sa.String(length=64), nullable=False),
        sa.Column("resource_id", sa.String(length=255), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("details", postgresql.JSONB(), nullable=True),
        sa.Column("timestamp", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_resource_type", "audit_logs", ["resource_type"])
    op.create_index("ix_audit_logs_timestamp", "audit_logs", ["timestamp"])

    # --- email_confirmations ---
    op.create_table(
        "email_confirmations",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("confirmation_code", sa.String(length=16), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("used_at", sa.DateTime(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_email_confirmations_user_id", "email_confirmations", ["user_id"])
    op.create_index("ix_email_confirmations_created_at", "email_confirmations", ["created_at"])

    # --- global_sections (singleton row id=1) ---
    op.create_table(
        "global_sections",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("intro_section", postgresql.JSONB(), nullable=False),
        sa.Column("outro_section", postgresql.JSONB(), nullable=False),
        sa.Column("version", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_updated", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("global_sections")

    op.drop_index("ix_email_confirmations_created_at", table_name="email_confirmations")
    op.drop_index("ix_email_confirmations_user_id", table_name="email_confirmations")
    op.drop_table("email_confirmations")

    op.drop_index("ix_audit_logs_timestamp", table_name="audit_logs")
    op.drop_index("ix_audit_logs_resource_type", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_index("ix_audit_logs_user_id", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_response_answers_step_id", table_name="response_answers")
    op.drop_index("ix_response_answers_response_id", table_name="response_answers")
    op.drop_table("response_answers")

    op.drop_index("ix_survey_responses_token_id", table_name="survey_responses")
    op.drop_index("ix_survey_responses_survey_id", table_name="survey_responses")
    op.drop_table("survey_responses")

    op.drop_index("ix_survey_tokens_status", table_name="survey_tokens")
    op.drop_index("ix_survey_tokens_user_id", table_name="survey_tokens")
    op.drop_index("ix_survey_tokens_survey_id", table_name="survey_tokens")
    op.drop_index("ix_survey_tokens_token_id", table_name="survey_tokens")
    op.drop_table("survey_tokens")

    op.drop_index("ix_surveys_status", table_name="surveys")
    op.drop_index("ix_surveys_user_id", table_name="surveys")
    op.drop_table("surveys")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum in (answer_type, token_status, survey_status, user_role):
        enum.drop(bind, checkfirst=True)
