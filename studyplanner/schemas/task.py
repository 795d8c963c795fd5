from datetime import datetime

from pydantic import BaseModel, Field

from studyplanner.models.task import TaskType


class ScheduleTask(BaseModel):
    """A task as the scheduler sees it: a snapshot, never written back."""
    id: str
    title: str
    course_id: str | None = None
    type: TaskType = TaskType.ASSIGNMENT
    due_date: datetime
    estimated_duration: float = Field(..., ge=0, description="Remaining minutes")
    priority: float = Field(default=50, ge=0, le=100)
    difficulty: float = Field(default=50, ge=0, le=100)
    completed: bool = False
    can_split: bool = True
    minimum_block_size: float = Field(default=25, ge=0)
