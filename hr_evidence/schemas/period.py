from pydantic import BaseModel, ConfigDict, model_validator
from datetime import date, datetime
from typing import Any, Dict, Literal, Optional

PeriodTypeName = Literal["quarterly", "semi_annual", "annual", "custom"]

class PeriodWindow(BaseModel):
    """Inclusive date window evidence is aggregated over."""
    start_date: date
    end_date: date

class PeriodCreate(BaseModel):
    period_name: str
    period_type: PeriodTypeName = "custom"
    start_date: date
    end_date: date
    status: Literal["draft", "active"] = "draft"
    description: Optional[str] = None

class PeriodUpdate(BaseModel):
    period_name: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: Optional[str] = None

    @model_validator(mode="after")
    def dates_together(self) -> "PeriodUpdate":
        if (self.start_date is None) != (self.end_date is None):
            raise ValueError("start_date and end_date must be updated together")
        return self

class PeriodResponse(BaseModel):
    id: int
    period_name: str
    period_type: str
    start_date: date
    end_date: date
    status: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class GeneratePeriodsRequest(BaseModel):
    year: int
    period_type: Literal["quarterly", "semi_annual", "annual"] = "quarterly"

class PeriodStats(BaseModel):
    total_evaluations: int
    by_status: Dict[str, int]
    completion_percentage: float
    average_rating: float
    evidence_metrics: Dict[str, Any]
