from pydantic import BaseModel, ConfigDict, computed_field
from datetime import datetime
from typing import List, Optional

from hr_evidence.services.evidence_aggregation import performance_indicator

class EvaluationCreate(BaseModel):
    employee_id: int
    period_id: int
    evaluator_id: Optional[int] = None

class EvidenceResultResponse(BaseModel):
    dimension: str
    evidence_count: int
    avg_star_rating: float
    total_positive_entries: int
    total_negative_entries: int
    calculated_score: float

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def performance_indicator(self) -> str:
        return performance_indicator(self.calculated_score)

class EvaluationResponse(BaseModel):
    id: int
    employee_id: int
    evaluator_id: Optional[int] = None
    period_id: int
    status: str
    evidence_rating: Optional[float] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class EvaluationDetailResponse(EvaluationResponse):
    evidence_results: List[EvidenceResultResponse] = []
    performance_indicator: Optional[str] = None

class AggregationResult(BaseModel):
    success: bool
    evaluation: EvaluationDetailResponse

class AutoGenerateResult(BaseModel):
    created: int
    skipped: int
    errors: List[str]

class AggregationStats(BaseModel):
    total_evaluations: int
    evaluations_with_evidence: int
    coverage_percentage: float
    avg_evidence_rating: float
