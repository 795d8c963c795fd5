from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, UniqueConstraint
from sqlalchemy import JSON
from sqlalchemy.orm import relationship

from studyplanner.db.base import Base

CASCADE_ALL_DELETE_ORPHAN = "all, delete-orphan"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)
    # "HH:MM" strings, parsed defensively by the conversion adapter
    study_start = Column(String(5), nullable=False, default="07:00")
    study_end = Column(String(5), nullable=False, default="23:00")
    # {"morning": bool, "afternoon": bool, "evening": bool, "night": bool}
    preferred_study_times = Column(JSON, nullable=True)
    # {"monday": bool, ..., "sunday": bool}
    study_days = Column(JSON, nullable=True)
    allow_weekend_study = Column(Boolean, nullable=False, default=True)
    capacity_limit_percent = Column(Float, nullable=False, default=1.0)
    session_min_minutes = Column(Integer, nullable=False, default=25)
    session_max_minutes = Column(Integer, nullable=False, default=90)
    session_preferred_minutes = Column(Integer, nullable=False, default=50)
    buffer_minutes = Column(Integer, nullable=False, default=10)
    # {"exam": 6, "reading": 1.5, ...}
    default_hours_per_type = Column(JSON, nullable=True)
    # [{"hour": 9, "energy_level": 70, "productivity": 63}, ...]
    energy_patterns = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    tasks = relationship(
        "Task", back_populates="user", cascade=CASCADE_ALL_DELETE_ORPHAN
    )
    events = relationship(
        "CalendarEvent", back_populates="user", cascade=CASCADE_ALL_DELETE_ORPHAN
    )
    time_blocks = relationship(
        "TimeBlock", back_populates="user", cascade=CASCADE_ALL_DELETE_ORPHAN
    )
