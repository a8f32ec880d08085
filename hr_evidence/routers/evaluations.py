from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional

from hr_evidence.database import get_db
from hr_evidence.models.evaluation import Evaluation
from hr_evidence.schemas.evaluation import (
    AggregationResult,
    AggregationStats,
    EvaluationCreate,
    EvaluationDetailResponse,
    EvaluationResponse,
    EvidenceResultResponse,
)
from hr_evidence.services.evaluation_service import EvaluationService
from hr_evidence.services.evidence_aggregation import (
    EvidenceAggregator,
    aggregation_statistics,
    performance_indicator,
)

router = APIRouter(prefix="/evaluations", tags=["Evaluations"])

def _detail(service: EvaluationService, evaluation: Evaluation) -> EvaluationDetailResponse:
    results = service.get_evidence_results(evaluation.id)
    return EvaluationDetailResponse(
        id=evaluation.id,
        employee_id=evaluation.employee_id,
        evaluator_id=evaluation.evaluator_id,
        period_id=evaluation.period_id,
        status=evaluation.status,
        evidence_rating=evaluation.evidence_rating,
        created_at=evaluation.created_at,
        evidence_results=[EvidenceResultResponse.model_validate(row) for row in results],
        performance_indicator=(
            performance_indicator(evaluation.evidence_rating) if evaluation.evidence_rating is not None else None
        ),
    )

@router.post("/", response_model=EvaluationResponse, status_code=status.HTTP_201_CREATED)
def create_evaluation(data: EvaluationCreate, db: Session = Depends(get_db)):
    return EvaluationService(db).create_evaluation(data.employee_id, data.period_id, data.evaluator_id)

@router.post("/from-journal", response_model=EvaluationDetailResponse, status_code=status.HTTP_201_CREATED)
def create_from_journal(data: EvaluationCreate, db: Session = Depends(get_db)):
    service = EvaluationService(db)
    evaluation = service.create_from_evidence_journal(data.employee_id, data.period_id, data.evaluator_id)
    return _detail(service, evaluation)

@router.get("/", response_model=List[EvaluationResponse])
def list_evaluations(
    employee_id: Optional[int] = None,
    period_id: Optional[int] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return EvaluationService(db).list_evaluations(employee_id=employee_id, period_id=period_id, status=status)

@router.get("/aggregation-stats", response_model=AggregationStats)
def get_aggregation_stats(db: Session = Depends(get_db)):
    return aggregation_statistics(db)

@router.get("/{evaluation_id}", response_model=EvaluationDetailResponse)
def get_evaluation(evaluation_id: int, db: Session = Depends(get_db)):
    service = EvaluationService(db)
    return _detail(service, service.get_evaluation(evaluation_id))

@router.post("/{evaluation_id}/aggregate", response_model=AggregationResult)
def aggregate_evidence(evaluation_id: int, db: Session = Depends(get_db)):
    """Re-runs evidence aggregation over the evaluation's period. Safe to repeat."""
    success = EvidenceAggregator(db).aggregate_evaluation(evaluation_id)
    service = EvaluationService(db)
    return AggregationResult(success=success, evaluation=_detail(service, service.get_evaluation(evaluation_id)))

@router.delete("/{evaluation_id}")
def delete_evaluation(evaluation_id: int, db: Session = Depends(get_db)):
    EvaluationService(db).delete_evaluation(evaluation_id)
    return {"message": "Evaluation deleted"}
