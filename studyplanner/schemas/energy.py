from pydantic import BaseModel, Field


class EnergyPattern(BaseModel):
    hour: int = Field(..., ge=0, le=23)
    energy_level: float = Field(..., ge=0, le=100)
    productivity: float | None = Field(default=None, ge=0, le=100)
