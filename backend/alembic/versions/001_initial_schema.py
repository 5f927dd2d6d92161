"""initial schema - clients, contract_periods, support_workers, submissions, payment_items, retroactive_checks, access_logs, app_settings

Revision ID: 001
Revises:
Create Date: 2025-05-02

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "clients",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("dob", sa.String(20), nullable=False),
        sa.Column("family_support", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_clients_name"), "clients", ["name"], unique=False)

    op.create_table(
        "contract_periods",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("client_id", sa.String(64), nullable=False),
        sa.Column("start", sa.Date(), nullable=False),
        sa.Column("end", sa.Date(), nullable=False),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_contract_periods_client_id"), "contract_periods", ["client_id"], unique=False)

    op.create_table(
        "support_workers",
        sa.Column("pk", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("client_id", sa.String(64), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("dob", sa.String(20), nullable=False),
        sa.Column("service_start", sa.Date(), nullable=True),
        sa.Column("service_end", sa.Date(), nullable=True),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("pk"),
    )
    op.create_index(op.f("ix_support_workers_id"), "support_workers", ["id"], unique=False)
    op.create_index(op.f("ix_support_workers_client_id"), "support_workers", ["client_id"], unique=False)

    op.create_table(
        "monthly_submissions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("client_id", sa.String(64), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("no_work", sa.Boolean(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("client_id", "year", "month", name="uq_monthly_submission"),
    )
    op.create_index(op.f("ix_monthly_submissions_client_id"), "monthly_submissions", ["client_id"], unique=False)

    op.create_table(
        "worker_submissions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("monthly_submission_id", sa.Integer(), nullable=False),
        sa.Column("worker_id", sa.String(64), nullable=False),
        sa.Column("schedule", sa.Boolean(), nullable=False),
        sa.Column("weekly_report", sa.Boolean(), nullable=False),
        sa.Column("retroactive_payment", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["monthly_submission_id"], ["monthly_submissions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("monthly_submission_id", "worker_id", name="uq_worker_submission"),
    )
    op.create_index(
        op.f("ix_worker_submissions_monthly_submission_id"), "worker_submissions", ["monthly_submission_id"], unique=False
    )

    op.create_table(
        "payment_items",
        sa.Column("id", sa.String(80), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("client_name", sa.String(50), nullable=False),
        sa.Column("client_dob", sa.String(20), nullable=False),
        sa.Column("service_start", sa.DateTime(), nullable=False),
        sa.Column("service_end", sa.DateTime(), nullable=True),
        sa.Column("worker_name", sa.String(50), nullable=False),
        sa.Column("worker_dob", sa.String(20), nullable=False),
        sa.Column("payment_type", sa.String(50), nullable=False),
        sa.Column("return_type", sa.String(50), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_payment_items_year"), "payment_items", ["year"], unique=False)

    op.create_table(
        "retroactive_checks",
        sa.Column("payment_item_id", sa.String(80), nullable=False),
        sa.Column("checked", sa.Boolean(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["payment_item_id"], ["payment_items.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("payment_item_id"),
    )

    op.create_table(
        "access_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_name", sa.String(50), nullable=False),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_access_logs_user_name"), "access_logs", ["user_name"], unique=False)

    op.create_table(
        "app_settings",
        sa.Column("key", sa.String(50), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    op.drop_table("app_settings")
    op.drop_index(op.f("ix_access_logs_user_name"), table_name="access_logs")
    op.drop_table("access_logs")
    op.drop_table("retroactive_checks")
    op.drop_index(op.f("ix_payment_items_year"), table_name="payment_items")
    op.drop_table("payment_items")
    op.drop_index(op.f("ix_worker_submissions_monthly_submission_id"), table_name="worker_submissions")
    op.drop_table("worker_submissions")
    op.drop_index(op.f("ix_monthly_submissions_client_id"), table_name="monthly_submissions")
    op.drop_table("monthly_submissions")
    op.drop_index(op.f("ix_support_workers_client_id"), table_name="support_workers")
    op.drop_index(op.f("ix_support_workers_id"), table_name="support_workers")
    op.drop_table("support_workers")
    op.drop_index(op.f("ix_contract_periods_client_id"), table_name="contract_periods")
    op.drop_table("contract_periods")
    op.drop_table("clients")
