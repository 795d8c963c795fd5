from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from studyplanner.db.base import Base


class TaskType(str, PyEnum):
    EXAM = "exam"
    QUIZ = "quiz"
    PROJECT = "project"
    ASSIGNMENT = "assignment"
    READING = "reading"
    STUDY = "study"
    BREAK = "break"


class TaskStatus(str, PyEnum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    course_id = Column(String(64), nullable=True)
    title = Column(String(255), nullable=False)
    # Free-form type as imported (e.g. "midterm", "discussion"); the adapter
    # folds it into TaskType
    type = Column(String(32), nullable=False, default=TaskType.ASSIGNMENT.value)
    due_date = Column(DateTime, nullable=True)
    estimated_hours = Column(Float, nullable=True)
    points = Column(Float, nullable=True)
    priority = Column(Integer, nullable=True)  # 0-100, NULL means "use default"
    difficulty = Column(Integer, nullable=True)  # 0-100
    # Use String for SQLite compatibility - enum values are stored as lowercase strings
    status = Column(String(20), nullable=False, default=TaskStatus.TODO.value)
    can_split = Column(Boolean, nullable=False, default=True)
    minimum_block_size = Column(Integer, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    user = relationship("User", back_populates="tasks")
    time_blocks = relationship(
        "TimeBlock", back_populates="task", cascade="all, delete-orphan"
    )

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED.value
