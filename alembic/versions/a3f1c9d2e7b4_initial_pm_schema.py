"""initial preventive-maintenance schema

Revision ID: a3f1c9d2e7b4
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "a3f1c9d2e7b4"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "buildings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("fmx_building_name", sa.String(length=200), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("fmx_building_name", name="uq_buildings_fmx_building_name"),
    )
    op.create_index("ix_buildings_name", "buildings", ["name"], unique=True)

    op.create_table(
        "equipment",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("building_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("type", sa.String(length=100), nullable=False),
        sa.Column("fmx_equipment_name", sa.String(length=200), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["building_id"], ["buildings.id"], name="fk_equipment_building_id_buildings", ondelete="RESTRICT"
        ),
        sa.UniqueConstraint("fmx_equipment_name", name="uq_equipment_fmx_equipment_name"),
    )
    op.create_index("ix_equipment_building_id", "equipment", ["building_id"], unique=False)
    op.create_index("ix_equipment_name", "equipment", ["name"], unique=False)
    op.create_index("ix_equipment_type", "equipment", ["type"], unique=False)

    op.create_table(
        "instruction_sets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_instruction_sets_name", "instruction_sets", ["name"], unique=True)

    op.create_table(
        "instruction_steps",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("instruction_set_id", sa.Integer(), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(
            ["instruction_set_id"],
            ["instruction_sets.id"],
            name="fk_instruction_steps_instruction_set_id_instruction_sets",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("instruction_set_id", "order_index", name="uq_instruction_steps_set_order"),
    )
    op.create_index(
        "ix_instruction_steps_instruction_set_id", "instruction_steps", ["instruction_set_id"], unique=False
    )

    op.create_table(
        "request_types",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_request_types_name", "request_types", ["name"], unique=True)

    op.create_table(
        "task_templates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("instruction_id", sa.Integer(), nullable=False),
        sa.Column("request_type_id", sa.Integer(), nullable=False),
        sa.Column("location", sa.String(length=200), nullable=True),
        sa.Column("first_due_date", sa.Date(), nullable=True),
        sa.Column("repeat_enum", sa.String(length=20), nullable=True),
        sa.Column("daily_every_x_days", sa.Integer(), nullable=True),
        sa.Column("weekly_sun", sa.Boolean(), nullable=True),
        sa.Column("weekly_mon", sa.Boolean(), nullable=True),
        sa.Column("weekly_tues", sa.Boolean(), nullable=True),
        sa.Column("weekly_wed", sa.Boolean(), nullable=True),
        sa.Column("weekly_thur", sa.Boolean(), nullable=True),
        sa.Column("weekly_fri", sa.Boolean(), nullable=True),
        sa.Column("weekly_sat", sa.Boolean(), nullable=True),
        sa.Column("weekly_every_x_weeks", sa.Integer(), nullable=True),
        sa.Column("monthly_mode", sa.String(length=30), nullable=True),
        sa.Column("monthly_every_x_months", sa.Integer(), nullable=True),
        sa.Column("yearly_every_x_years", sa.Integer(), nullable=True),
        sa.Column("exclude_from", sa.Date(), nullable=True),
        sa.Column("exclude_thru", sa.Date(), nullable=True),
        sa.Column("next_due_mode", sa.String(length=20), nullable=False, server_default=sa.text("'FIXED'")),
        sa.Column("inventory_names", sa.Text(), nullable=True),
        sa.Column("inventory_quantities", sa.Text(), nullable=True),
        sa.Column("est_time_hours", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["instruction_id"],
            ["instruction_sets.id"],
            name="fk_task_templates_instruction_id_instruction_sets",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["request_type_id"],
            ["request_types.id"],
            name="fk_task_templates_request_type_id_request_types",
            ondelete="RESTRICT",
        ),
    )
    op.create_index("ix_task_templates_name", "task_templates", ["name"], unique=True)
    op.create_index("ix_task_templates_instruction_id", "task_templates", ["instruction_id"], unique=False)
    op.create_index("ix_task_templates_request_type_id", "task_templates", ["request_type_id"], unique=False)

    op.create_table(
        "pm_templates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_pm_templates_name", "pm_templates", ["name"], unique=True)

    op.create_table(
        "pm_template_tasks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("pm_template_id", sa.Integer(), nullable=False),
        sa.Column("task_template_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["pm_template_id"],
            ["pm_templates.id"],
            name="fk_pm_template_tasks_pm_template_id_pm_templates",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["task_template_id"],
            ["task_templates.id"],
            name="fk_pm_template_tasks_task_template_id_task_templates",
            ondelete="RESTRICT",
        ),
        sa.UniqueConstraint("pm_template_id", "task_template_id", name="uq_pm_template_tasks_pair"),
    )
    op.create_index("ix_pm_template_tasks_pm_template_id", "pm_template_tasks", ["pm_template_id"], unique=False)
    op.create_index("ix_pm_template_tasks_task_template_id", "pm_template_tasks", ["task_template_id"], unique=False)

    op.create_table(
        "pm_template_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("pm_template_id", sa.Integer(), nullable=False),
        sa.Column("equipment_id", sa.Integer(), nullable=False),
        sa.Column("building_id", sa.Integer(), nullable=False),
        sa.Column("assigned_users", sa.Text(), nullable=True),
        sa.Column("outsourced", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("remind_before_days_primary", sa.Integer(), nullable=True),
        sa.Column("remind_before_days_secondary", sa.Integer(), nullable=True),
        sa.Column("remind_after_days", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["pm_template_id"],
            ["pm_templates.id"],
            name="fk_pm_template_assignments_pm_template_id_pm_templates",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["equipment_id"],
            ["equipment.id"],
            name="fk_pm_template_assignments_equipment_id_equipment",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["building_id"],
            ["buildings.id"],
            name="fk_pm_template_assignments_building_id_buildings",
            ondelete="RESTRICT",
        ),
        sa.UniqueConstraint("pm_template_id", "equipment_id", name="uq_pm_template_assignments_pair"),
    )
    op.create_index(
        "ix_pm_template_assignments_pm_template_id", "pm_template_assignments", ["pm_template_id"], unique=False
    )
    op.create_index(
        "ix_pm_template_assignments_equipment_id", "pm_template_assignments", ["equipment_id"], unique=False
    )
    op.create_index(
        "ix_pm_template_assignments_building_id", "pm_template_assignments", ["building_id"], unique=False
    )

    op.create_table(
        "server_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column("level", sa.String(length=20), nullable=False),
        sa.Column("logger", sa.String(length=200), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("source", sa.String(length=20), nullable=False, server_default=sa.text("'backend'")),
        sa.Column("client_ip", sa.String(length=64), nullable=True),
        sa.Column("meta", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
    )
    op.create_index("ix_server_logs_ts", "server_logs", ["ts"], unique=False)
    op.create_index("ix_server_logs_level", "server_logs", ["level"], unique=False)
    op.create_index("ix_server_logs_source", "server_logs", ["source"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_server_logs_source", table_name="server_logs")
    op.drop_index("ix_server_logs_level", table_name="server_logs")
    op.drop_index("ix_server_logs_ts", table_name="server_logs")
    op.drop_table("server_logs")

    op.drop_index("ix_pm_template_assignments_building_id", table_name="pm_template_assignments")
    op.drop_index("ix_pm_template_assignments_equipment_id", table_name="pm_template_assignments")
    op.drop_index("ix_pm_template_assignments_pm_template_id", table_name="pm_template_assignments")
    op.drop_table("pm_template_assignments")

    op.drop_index("ix_pm_template_tasks_task_template_id", table_name="pm_template_tasks")
    op.drop_index("ix_pm_template_tasks_pm_template_id", table_name="pm_template_tasks")
    op.drop_table("pm_template_tasks")

    op.drop_index("ix_pm_templates_name", table_name="pm_templates")
    op.drop_table("pm_templates")

    op.drop_index("ix_task_templates_request_type_id", table_name="task_templates")
    op.drop_index("ix_task_templates_instruction_id", table_name="task_templates")
    op.drop_index("ix_task_templates_name", table_name="task_templates")
    op.drop_table("task_templates")

    op.drop_index("ix_request_types_name", table_name="request_types")
    op.drop_table("request_types")

    op.drop_index("ix_instruction_steps_instruction_set_id", table_name="instruction_steps")
    op.drop_table("instruction_steps")

    op.drop_index("ix_instruction_sets_name", table_name="instruction_sets")
    op.drop_table("instruction_sets")

    op.drop_index("ix_equipment_type", table_name="equipment")
    op.drop_index("ix_equipment_name", table_name="equipment")
    op.drop_index("ix_equipment_building_id", table_name="equipment")
    op.drop_table("equipment")

    op.drop_index("ix_buildings_name", table_name="buildings")
    op.drop_table("buildings")
