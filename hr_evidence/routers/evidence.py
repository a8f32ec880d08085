from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from hr_evidence.database import get_db
from hr_evidence.schemas.evidence import (
    DimensionStatistics,
    EvidenceEntryCreate,
    EvidenceEntryResponse,
    EvidenceEntryUpdate,
    EvidenceSummary,
)
from hr_evidence.services.evidence_journal import EvidenceJournalService

router = APIRouter(prefix="/evidence", tags=["Evidence Journal"])

@router.post("/", response_model=EvidenceEntryResponse, status_code=status.HTTP_201_CREATED)
def create_entry(data: EvidenceEntryCreate, db: Session = Depends(get_db)):
    return EvidenceJournalService(db).create_entry(data)

@router.get("/statistics", response_model=List[DimensionStatistics])
def dimension_statistics(start_date: Optional[date] = None, end_date: Optional[date] = None, db: Session = Depends(get_db)):
    return EvidenceJournalService(db).get_dimension_statistics(start_date, end_date)

@router.get("/recent", response_model=List[EvidenceEntryResponse])
def recent_entries(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    return EvidenceJournalService(db).get_recent_entries(limit)

@router.get("/range", response_model=List[EvidenceEntryResponse])
def entries_by_date_range(
    start_date: date,
    end_date: date,
    employee_id: Optional[int] = None,
    manager_id: Optional[int] = None,
    dimension: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return EvidenceJournalService(db).get_entries_by_date_range(
        start_date, end_date, employee_id=employee_id, manager_id=manager_id, dimension=dimension
    )

@router.get("/employee/{employee_id}", response_model=List[EvidenceEntryResponse])
def employee_journal(
    employee_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    dimension: Optional[str] = None,
    min_rating: Optional[int] = None,
    max_rating: Optional[int] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return EvidenceJournalService(db).get_employee_journal(
        employee_id, start_date, end_date,
        dimension=dimension, min_rating=min_rating, max_rating=max_rating, search=search,
    )

@router.get("/employee/{employee_id}/by-dimension", response_model=List[DimensionStatistics])
def evidence_by_dimension(employee_id: int, start_date: Optional[date] = None, end_date: Optional[date] = None, db: Session = Depends(get_db)):
    return EvidenceJournalService(db).get_evidence_by_dimension(employee_id, start_date, end_date)

@router.get("/employee/{employee_id}/summary", response_model=EvidenceSummary)
def evidence_summary(employee_id: int, start_date: Optional[date] = None, end_date: Optional[date] = None, db: Session = Depends(get_db)):
    return EvidenceJournalService(db).get_evidence_summary(employee_id, start_date, end_date)

@router.get("/manager/{manager_id}", response_model=List[EvidenceEntryResponse])
def manager_entries(
    manager_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    employee_id: Optional[int] = None,
    dimension: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return EvidenceJournalService(db).get_manager_entries(
        manager_id, start_date, end_date, employee_id=employee_id, dimension=dimension
    )

@router.get("/{entry_id}", response_model=EvidenceEntryResponse)
def get_entry(entry_id: int, db: Session = Depends(get_db)):
    return EvidenceJournalService(db).get_entry(entry_id)

@router.patch("/{entry_id}", response_model=EvidenceEntryResponse)
def update_entry(entry_id: int, data: EvidenceEntryUpdate, db: Session = Depends(get_db)):
    return EvidenceJournalService(db).update_entry(entry_id, data)

@router.delete("/{entry_id}")
def delete_entry(entry_id: int, db: Session = Depends(get_db)):
    EvidenceJournalService(db).delete_entry(entry_id)
    return {"message": "Evidence entry deleted"}
