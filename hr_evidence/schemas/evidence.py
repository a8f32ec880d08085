from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import Literal, Optional

Dimension = Literal["responsibilities", "kpis", "competencies", "values"]

class EvidenceEntryCreate(BaseModel):
    employee_id: int
    manager_id: int
    content: str = Field(min_length=1)
    star_rating: int = Field(ge=1, le=5)
    dimension: Dimension
    entry_date: date

class EvidenceEntryUpdate(BaseModel):
    content: Optional[str] = Field(default=None, min_length=1)
    star_rating: Optional[int] = Field(default=None, ge=1, le=5)
    dimension: Optional[Dimension] = None
    entry_date: Optional[date] = None

class EvidenceEntryResponse(BaseModel):
    id: int
    employee_id: int
    manager_id: int
    content: str
    star_rating: int
    dimension: str
    entry_date: date
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class DimensionStatistics(BaseModel):
    dimension: str
    entry_count: int
    avg_rating: float
    positive_count: int
    negative_count: int

class EvidenceSummary(BaseModel):
    total_entries: int
    overall_avg_rating: float
    positive_entries: int
    neutral_entries: int
    negative_entries: int
    first_entry_date: Optional[date] = None
    last_entry_date: Optional[date] = None
