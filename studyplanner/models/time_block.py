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


class BlockType(str, PyEnum):
    REVIEW = "review"
    STUDY = "study"
    WORK = "work"


class TimeBlock(Base):
    __tablename__ = "time_blocks"

    # Scheduler-assigned ids ("block-<task>-<start>") or client ids for manual blocks
    id = Column(String(96), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    block_type = Column(String(16), nullable=False, default=BlockType.WORK.value)
    is_manual = Column(Boolean, nullable=False, default=False)
    completed = Column(Boolean, nullable=False, default=False)
    energy_required = Column(Float, nullable=True)
    is_optimal = Column(Boolean, nullable=False, default=False)
    confidence = Column(Float, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    user = relationship("User", back_populates="time_blocks")
    task = relationship("Task", back_populates="time_blocks")
