"""Initial schema for reports and report types

Revision ID: 001
Revises:
Create Date: 2025-07-01 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(JSONB(), "postgresql")


def upgrade() -> None:
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = inspector.get_table_names()

    if "reports" in existing_tables:
        # Tables already exist, skip migration
        return

    # Create report_types table
    op.create_table(
        "report_types",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("title", sa.Text, nullable=False, unique=True),
        sa.Column("prompt", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )

    # Create reports table
    op.create_table(
        "reports",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.Text),
        sa.Column("report_name", sa.Text, nullable=False),
        sa.Column("client_name", sa.Text, nullable=False),
        sa.Column("type_of_report", sa.Text, nullable=False),
        sa.Column("meeting_transcript", sa.Text),
        sa.Column("client_urls", JSONType),
        sa.Column("file_urls", JSONType),
        sa.Column("status", sa.Text, nullable=False, server_default="draft"),
        sa.Column("openai_job_id", sa.Text),
        sa.Column("generated_report", sa.Text),
        sa.Column("research_sources", JSONType),
        sa.Column("error_message", sa.Text),
        sa.Column("google_docs_url", sa.Text),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("idx_reports_status", "reports", ["status"])
    op.create_index("idx_reports_user_id", "reports", ["user_id"])


def downgrade() -> None:
    op.drop_index("idx_reports_user_id", table_name="reports")
    op.drop_index("idx_reports_status", table_name="reports")
    op.drop_table("reports")
    op.drop_table("report_types")
