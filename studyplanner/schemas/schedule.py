from datetime import datetime

from pydantic import BaseModel, validator

from studyplanner.models.task import TaskType


class TimeSlot(BaseModel):
    """A start/end pair; used both for busy intervals and for free slots."""
    start: datetime
    end: datetime

    @property
    def duration_minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60


class StudyBlock(BaseModel):
    id: str
    task_id: str
    task_title: str
    task_type: TaskType
    start_time: datetime
    end_time: datetime
    energy_required: float
    is_optimal: bool
    confidence: float

    @validator("end_time")
    def end_after_start(cls, v, values):
        start = values.get("start_time")
        if start is not None and v <= start:
            raise ValueError("end_time must be after start_time")
        return v

    @property
    def duration_minutes(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 60

    def as_slot(self) -> TimeSlot:
        return TimeSlot(start=self.start_time, end=self.end_time)


class UnscheduledTaskDetail(BaseModel):
    task_id: str
    title: str
    remaining_minutes: float
    due_date: datetime | None = None


class ScheduleWarnings(BaseModel):
    unscheduled_task_ids: list[str] = []
    message: str = ""
    details: list[UnscheduledTaskDetail] = []


class ScheduleResult(BaseModel):
    generated_at: datetime
    blocks: list[StudyBlock]
    warnings: ScheduleWarnings
    overdue_task_ids: list[str] = []
