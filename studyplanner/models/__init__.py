from studyplanner.models.user import User
from studyplanner.models.task import Task
from studyplanner.models.calendar_event import CalendarEvent
from studyplanner.models.time_block import TimeBlock

__all__ = [
    "User",
    "Task",
    "CalendarEvent",
    "TimeBlock",
]
