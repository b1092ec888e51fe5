from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fmx_pm.db.base import Base


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class TimestampMixin:
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


# ---------- Sites ----------


class Building(TimestampMixin, Base):
    __tablename__ = "buildings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    fmx_building_name: Mapped[str] = mapped_column(String(200), unique=True)

    equipment: Mapped[List["Equipment"]] = relationship(
        "Equipment",
        back_populates="building",
        order_by="Equipment.name",
        lazy="selectin",
        passive_deletes="all",
    )


class Equipment(TimestampMixin, Base):
    __tablename__ = "equipment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    building_id: Mapped[int] = mapped_column(ForeignKey("buildings.id", ondelete="RESTRICT"), index=True)
    name: Mapped[str] = mapped_column(String(200), index=True)
    type: Mapped[str] = mapped_column(String(100), index=True)
    fmx_equipment_name: Mapped[str] = mapped_column(String(200), unique=True)

    building: Mapped[Building] = relationship("Building", back_populates="equipment", lazy="selectin")
    assignments: Mapped[List["PMTemplateAssignment"]] = relationship(
        "PMTemplateAssignment",
        back_populates="equipment",
        passive_deletes="all",
    )


# ---------- Instructions ----------


class InstructionSet(TimestampMixin, Base):
    __tablename__ = "instruction_sets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    steps: Mapped[List["InstructionStep"]] = relationship(
        "InstructionStep",
        back_populates="instruction_set",
        order_by="InstructionStep.order_index",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    task_templates: Mapped[List["TaskTemplate"]] = relationship(
        "TaskTemplate",
        back_populates="instruction",
        passive_deletes="all",
    )


class InstructionStep(Base):
    __tablename__ = "instruction_steps"
    __table_args__ = (
        UniqueConstraint("instruction_set_id", "order_index", name="uq_instruction_steps_set_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    instruction_set_id: Mapped[int] = mapped_column(
        ForeignKey("instruction_sets.id", ondelete="CASCADE"), index=True
    )
    order_index: Mapped[int] = mapped_column(Integer)
    text: Mapped[str] = mapped_column(Text)

    instruction_set: Mapped[InstructionSet] = relationship("InstructionSet", back_populates="steps")


# ---------- Task templates ----------


class RequestType(TimestampMixin, Base):
    __tablename__ = "request_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, index=True)

    task_templates: Mapped[List["TaskTemplate"]] = relationship(
        "TaskTemplate",
        back_populates="request_type",
        passive_deletes="all",
    )


class TaskTemplate(TimestampMixin, Base):
    """Recurring task definition.

    The recurrence is stored flattened: `repeat_enum` names the active variant
    and only that variant's frequency columns are non-null. See
    `fmx_pm.services.recurrence` for the in-memory form.
    """

    __tablename__ = "task_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    instruction_id: Mapped[int] = mapped_column(ForeignKey("instruction_sets.id", ondelete="RESTRICT"), index=True)
    request_type_id: Mapped[int] = mapped_column(ForeignKey("request_types.id", ondelete="RESTRICT"), index=True)
    location: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    first_due_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    repeat_enum: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # NEVER|DAILY|WEEKLY|MONTHLY|YEARLY

    daily_every_x_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    weekly_sun: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    weekly_mon: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    weekly_tues: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    weekly_wed: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    weekly_thur: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    weekly_fri: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    weekly_sat: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    weekly_every_x_weeks: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    monthly_mode: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    monthly_every_x_months: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    yearly_every_x_years: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    exclude_from: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    exclude_thru: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    next_due_mode: Mapped[str] = mapped_column(String(20), default="FIXED")  # FIXED|VARIABLE
    inventory_names: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    inventory_quantities: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    est_time_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    instruction: Mapped[Optional[InstructionSet]] = relationship(
        "InstructionSet", back_populates="task_templates", lazy="selectin"
    )
    request_type: Mapped[Optional[RequestType]] = relationship(
        "RequestType", back_populates="task_templates", lazy="selectin"
    )
    pm_template_links: Mapped[List["PMTemplateTask"]] = relationship(
        "PMTemplateTask",
        back_populates="task_template",
        passive_deletes="all",
    )


# ---------- PM templates ----------


class PMTemplate(TimestampMixin, Base):
    __tablename__ = "pm_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    tasks: Mapped[List["PMTemplateTask"]] = relationship(
        "PMTemplateTask",
        back_populates="pm_template",
        order_by="PMTemplateTask.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    assignments: Mapped[List["PMTemplateAssignment"]] = relationship(
        "PMTemplateAssignment",
        back_populates="pm_template",
        passive_deletes="all",
    )


class PMTemplateTask(Base):
    __tablename__ = "pm_template_tasks"
    __table_args__ = (
        UniqueConstraint("pm_template_id", "task_template_id", name="uq_pm_template_tasks_pair"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pm_template_id: Mapped[int] = mapped_column(ForeignKey("pm_templates.id", ondelete="CASCADE"), index=True)
    task_template_id: Mapped[int] = mapped_column(
        ForeignKey("task_templates.id", ondelete="RESTRICT"), index=True
    )

    pm_template: Mapped[PMTemplate] = relationship("PMTemplate", back_populates="tasks")
    task_template: Mapped[TaskTemplate] = relationship(
        "TaskTemplate", back_populates="pm_template_links", lazy="selectin"
    )


class PMTemplateAssignment(TimestampMixin, Base):
    __tablename__ = "pm_template_assignments"
    __table_args__ = (
        UniqueConstraint("pm_template_id", "equipment_id", name="uq_pm_template_assignments_pair"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pm_template_id: Mapped[int] = mapped_column(ForeignKey("pm_templates.id", ondelete="RESTRICT"), index=True)
    equipment_id: Mapped[int] = mapped_column(ForeignKey("equipment.id", ondelete="RESTRICT"), index=True)
    # Copied from the equipment when the assignment is created.
    building_id: Mapped[int] = mapped_column(ForeignKey("buildings.id", ondelete="RESTRICT"), index=True)

    assigned_users: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    outsourced: Mapped[bool] = mapped_column(Boolean, default=False)
    remind_before_days_primary: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    remind_before_days_secondary: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    remind_after_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    pm_template: Mapped[PMTemplate] = relationship("PMTemplate", back_populates="assignments", lazy="selectin")
    equipment: Mapped[Equipment] = relationship("Equipment", back_populates="assignments", lazy="selectin")
    building: Mapped[Building] = relationship("Building", lazy="selectin")


# ---------- Logs ----------


class ServerLog(Base):
    __tablename__ = "server_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ts: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)

    level: Mapped[str] = mapped_column(String(20), index=True)
    logger: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    message: Mapped[str] = mapped_column(Text)

    source: Mapped[str] = mapped_column(String(20), default="backend", index=True)
    client_ip: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    meta: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
