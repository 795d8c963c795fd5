from pydantic import BaseModel, Field

# Numeric fields accept zero and NaN as stored; the scheduler clamps them
# (see services.slots.session_limits).


class DailyStudyHours(BaseModel):
    min: float = 2
    max: float = 8
    preferred: float = 4


class BreakDuration(BaseModel):
    short: float = 5
    long: float = 20


class SessionDuration(BaseModel):
    min: float = 25
    max: float = 90
    preferred: float = 50


class EnergyThreshold(BaseModel):
    high: float = 70
    medium: float = 40
    low: float = 20


class SleepSchedule(BaseModel):
    wake_time: int = 7
    bedtime: int = 23


class PreferredStudyTimes(BaseModel):
    morning: bool = False  # 6am-12pm
    afternoon: bool = False  # 12pm-5pm
    evening: bool = False  # 5pm-9pm
    night: bool = False  # 9pm-midnight

    def any_selected(self) -> bool:
        return self.morning or self.afternoon or self.evening or self.night


class StudyDays(BaseModel):
    sunday: bool = True
    monday: bool = True
    tuesday: bool = True
    wednesday: bool = True
    thursday: bool = True
    friday: bool = True
    saturday: bool = True


class SchedulerConfig(BaseModel):
    daily_study_hours: DailyStudyHours = Field(default_factory=DailyStudyHours)
    break_duration: BreakDuration = Field(default_factory=BreakDuration)
    session_duration: SessionDuration = Field(default_factory=SessionDuration)
    buffer_time: float = 10
    energy_threshold: EnergyThreshold = Field(default_factory=EnergyThreshold)
    sleep_schedule: SleepSchedule = Field(default_factory=SleepSchedule)
    preferred_study_times: PreferredStudyTimes | None = None
    study_days: StudyDays | None = None
    allow_weekend_study: bool = True
    capacity_limit_percent: float = 1.0
    default_hours_per_type: dict[str, float] = Field(default_factory=dict)
