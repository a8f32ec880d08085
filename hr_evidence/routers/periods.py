from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional

from hr_evidence.database import get_db
from hr_evidence.schemas.evaluation import AutoGenerateResult
from hr_evidence.schemas.period import (
    GeneratePeriodsRequest,
    PeriodCreate,
    PeriodResponse,
    PeriodStats,
    PeriodUpdate,
)
from hr_evidence.services.evaluation_service import EvaluationService
from hr_evidence.services.period_service import EvaluationPeriodService

router = APIRouter(prefix="/periods", tags=["Evaluation Periods"])

@router.post("/", response_model=PeriodResponse, status_code=status.HTTP_201_CREATED)
def create_period(data: PeriodCreate, db: Session = Depends(get_db)):
    return EvaluationPeriodService(db).create_period(data)

@router.get("/", response_model=List[PeriodResponse])
def list_periods(status: Optional[str] = None, year: Optional[int] = None, db: Session = Depends(get_db)):
    return EvaluationPeriodService(db).list_periods(status=status, year=year)

@router.get("/current", response_model=Optional[PeriodResponse])
def current_period(db: Session = Depends(get_db)):
    return EvaluationPeriodService(db).get_current_period()

@router.get("/active", response_model=List[PeriodResponse])
def active_periods(db: Session = Depends(get_db)):
    return EvaluationPeriodService(db).list_active_periods()

@router.get("/years", response_model=List[int])
def available_years(db: Session = Depends(get_db)):
    return EvaluationPeriodService(db).get_available_years()

@router.get("/employee/{employee_id}/active", response_model=Optional[PeriodResponse])
def active_period_for_employee(employee_id: int, db: Session = Depends(get_db)):
    return EvaluationPeriodService(db).get_active_period_for_employee(employee_id)

@router.get("/upcoming", response_model=List[PeriodResponse])
def upcoming_periods(limit: int = 5, db: Session = Depends(get_db)):
    return EvaluationPeriodService(db).get_upcoming_periods(limit=limit)

@router.post("/generate", response_model=List[PeriodResponse], status_code=status.HTTP_201_CREATED)
def generate_periods(data: GeneratePeriodsRequest, db: Session = Depends(get_db)):
    return EvaluationPeriodService(db).generate_periods_for_year(data.year, data.period_type)

@router.get("/{period_id}", response_model=PeriodResponse)
def get_period(period_id: int, db: Session = Depends(get_db)):
    return EvaluationPeriodService(db).get_period(period_id)

@router.patch("/{period_id}", response_model=PeriodResponse)
def update_period(period_id: int, data: PeriodUpdate, db: Session = Depends(get_db)):
    return EvaluationPeriodService(db).update_period(period_id, data)

@router.delete("/{period_id}")
def delete_period(period_id: int, db: Session = Depends(get_db)):
    EvaluationPeriodService(db).delete_period(period_id)
    return {"message": "Evaluation period deleted"}

@router.post("/{period_id}/activate", response_model=PeriodResponse)
def activate_period(period_id: int, db: Session = Depends(get_db)):
    return EvaluationPeriodService(db).activate_period(period_id)

@router.post("/{period_id}/complete", response_model=PeriodResponse)
def complete_period(period_id: int, db: Session = Depends(get_db)):
    return EvaluationPeriodService(db).complete_period(period_id)

@router.post("/{period_id}/archive", response_model=PeriodResponse)
def archive_period(period_id: int, db: Session = Depends(get_db)):
    return EvaluationPeriodService(db).archive_period(period_id)

@router.get("/{period_id}/stats", response_model=PeriodStats)
def period_stats(period_id: int, db: Session = Depends(get_db)):
    return EvaluationPeriodService(db).get_period_stats(period_id)

@router.post("/{period_id}/auto-generate", response_model=AutoGenerateResult)
def auto_generate_evaluations(period_id: int, evaluator_id: Optional[int] = None, db: Session = Depends(get_db)):
    return EvaluationService(db).auto_generate_evaluations(period_id, evaluator_id)
