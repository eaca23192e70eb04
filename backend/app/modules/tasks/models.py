from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from app.db import Base


class Project(Base):
    __tablename__ = "projects"
    __table_args__ = (
        Index("ix_tasks_projects_importance", "Importance"),
        {"schema": "tasks"},
    )

    Id = Column(Integer, primary_key=True, index=True)
    Name = Column(String(200), nullable=False)
    World = Column(String(80))
    Importance = Column(String(40), nullable=False, default="normal")
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class Task(Base):
    __tablename__ = "todos"
    __table_args__ = (
        Index("ix_tasks_todos_project_id", "ProjectId"),
        Index("ix_tasks_todos_completed_display", "IsCompleted", "DisplayDate"),
        Index("ix_tasks_todos_soon", "IsSoon"),
        {"schema": "tasks"},
    )

    Id = Column(Integer, primary_key=True, index=True)
    Title = Column(String(200), nullable=False)
    Description = Column(Text)
    Category = Column(String(80))
    ProjectId = Column(Integer)
    IsLong = Column(Boolean, nullable=False, default=False)
    IsSoon = Column(Boolean, nullable=False, default=False)
    TrackingUrl = Column(String(500))
    PurchaseUrl = Column(String(500))
    Price = Column(Float)
    WishListCategory = Column(String(80))
    DueDate = Column(Date)
    DisplayDate = Column(Date)
    DisplayDateOffset = Column(Integer)
    IsCompleted = Column(Boolean, nullable=False, default=False)
    CompletedAt = Column(DateTime(timezone=True))
    IsRecurring = Column(Boolean, nullable=False, default=False)
    RecurrenceType = Column(String(30), nullable=False, default="none")
    RecurrenceInterval = Column(Integer)
    RecurrenceDayOfWeek = Column(Integer)
    RecurrenceDayOfMonth = Column(Integer)
    RecurrenceWeekOfMonth = Column(Integer)
    RecurrenceDayOfWeekMonthly = Column(Integer)
    RecurrenceMonth = Column(Integer)
    WorkSessions = Column(Text)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class SystemSetting(Base):
    __tablename__ = "system_settings"
    __table_args__ = (
        UniqueConstraint("Title", name="uq_tasks_system_settings_title"),
        {"schema": "tasks"},
    )

    Id = Column(Integer, primary_key=True, index=True)
    Title = Column(String(120), nullable=False)
    Value = Column(String(500))
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
