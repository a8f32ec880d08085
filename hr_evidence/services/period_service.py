"""
Evaluation Period Service Layer

Lifecycle of the date windows evidence is evaluated over:
draft -> active -> completed -> archived.

Business rules:
- start_date must be strictly before end_date
- periods never overlap (bounds are inclusive)
- a period with evaluations cannot be deleted
- dates can only change while the period is editable
"""

from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import extract, func, or_

from hr_evidence.core.exceptions import ConflictError, InvalidInputError
from hr_evidence.models.employee import Employee
from hr_evidence.models.evaluation import Evaluation, EvaluationStatus
from hr_evidence.models.evaluation_period import EvaluationPeriod, PeriodStatus, PeriodType
from hr_evidence.models.evidence_entry import EvidenceEntry
from hr_evidence.schemas.period import PeriodCreate, PeriodUpdate
from hr_evidence.services.base import BaseService

# (label, first day MM-DD, last day MM-DD)
_PERIOD_LAYOUTS = {
    PeriodType.QUARTERLY: [
        ("Q1", (1, 1), (3, 31)),
        ("Q2", (4, 1), (6, 30)),
        ("Q3", (7, 1), (9, 30)),
        ("Q4", (10, 1), (12, 31)),
    ],
    PeriodType.SEMI_ANNUAL: [
        ("H1", (1, 1), (6, 30)),
        ("H2", (7, 1), (12, 31)),
    ],
    PeriodType.ANNUAL: [
        ("Annual", (1, 1), (12, 31)),
    ],
}

_DESCRIPTIONS = {
    PeriodType.QUARTERLY: "Quarterly evaluation period for {label} {year}",
    PeriodType.SEMI_ANNUAL: "Semi-annual evaluation period for {label} {year}",
    PeriodType.ANNUAL: "Annual evaluation period for {year}",
}


class EvaluationPeriodService(BaseService):

    def _check_dates(self, start_date: date, end_date: date, exclude_period_id: Optional[int] = None):
        if start_date >= end_date:
            raise InvalidInputError(
                "End date must be after start date",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )
        if self.has_overlapping_period(start_date, end_date, exclude_period_id):
            raise ConflictError("Period overlaps with existing evaluation period")

    def has_overlapping_period(self, start_date: date, end_date: date, exclude_period_id: Optional[int] = None) -> bool:
        query = self.db.query(EvaluationPeriod).filter(
            EvaluationPeriod.start_date <= end_date,
            EvaluationPeriod.end_date >= start_date,
        )
        if exclude_period_id:
            query = query.filter(EvaluationPeriod.id != exclude_period_id)
        return self.db.query(query.exists()).scalar()

    def create_period(self, data: PeriodCreate) -> EvaluationPeriod:
        self._check_dates(data.start_date, data.end_date)
        period = EvaluationPeriod(**data.model_dump())

        def _create():
            self.db.add(period)
            self.db.flush()
            return period

        self.run_in_transaction(_create, "Create evaluation period")
        self.db.refresh(period)
        self.log_info(f"Evaluation period {period.id} '{period.period_name}' created", period_id=period.id)
        return period

    def update_period(self, period_id: int, data: PeriodUpdate, today: Optional[date] = None) -> EvaluationPeriod:
        period = self.get_period(period_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return period

        if "start_date" in changes:
            if not self.is_period_editable(period_id, today=today):
                raise ConflictError(f"Period {period_id} is {period.status}; its dates can no longer change")
            self._check_dates(changes["start_date"], changes["end_date"], exclude_period_id=period_id)

        def _update():
            for field, value in changes.items():
                setattr(period, field, value)
            return period

        self.run_in_transaction(_update, f"Update evaluation period {period_id}")
        self.db.refresh(period)
        return period

    def get_period(self, period_id: int) -> EvaluationPeriod:
        return self.get_or_404(EvaluationPeriod, period_id, "Evaluation period")

    def list_periods(self, status: Optional[str] = None, year: Optional[int] = None) -> List[EvaluationPeriod]:
        query = self.db.query(EvaluationPeriod)
        if status:
            query = query.filter(EvaluationPeriod.status == status)
        if year:
            query = query.filter(or_(
                extract("year", EvaluationPeriod.start_date) == year,
                extract("year", EvaluationPeriod.end_date) == year,
            ))
        return query.order_by(EvaluationPeriod.start_date.desc()).all()

    def list_active_periods(self) -> List[EvaluationPeriod]:
        return (
            self.db.query(EvaluationPeriod)
            .filter(EvaluationPeriod.status == PeriodStatus.ACTIVE.value)
            .order_by(EvaluationPeriod.start_date.desc())
            .all()
        )

    def get_available_years(self) -> List[int]:
        """Distinct start years across all periods, newest first."""
        year = extract("year", EvaluationPeriod.start_date)
        rows = self.db.query(year.label("year")).distinct().order_by(year.desc()).all()
        return [int(row.year) for row in rows]

    def get_current_period(self, today: Optional[date] = None) -> Optional[EvaluationPeriod]:
        today = today or date.today()
        return (
            self.db.query(EvaluationPeriod)
            .filter(
                EvaluationPeriod.status == PeriodStatus.ACTIVE.value,
                EvaluationPeriod.start_date <= today,
                EvaluationPeriod.end_date >= today,
            )
            .order_by(EvaluationPeriod.start_date.desc())
            .first()
        )

    def get_active_period_for_employee(self, employee_id: int, today: Optional[date] = None) -> Optional[EvaluationPeriod]:
        # Periods are organisation-wide, so every employee shares the current one
        self.get_or_404(Employee, employee_id, "Employee")
        return self.get_current_period(today=today)

    def get_upcoming_periods(self, limit: int = 5, today: Optional[date] = None) -> List[EvaluationPeriod]:
        today = today or date.today()
        return (
            self.db.query(EvaluationPeriod)
            .filter(EvaluationPeriod.start_date > today)
            .order_by(EvaluationPeriod.start_date.asc())
            .limit(limit)
            .all()
        )

    def _set_status(self, period_id: int, status: PeriodStatus) -> EvaluationPeriod:
        period = self.get_period(period_id)

        def _update():
            period.status = status.value
            return period

        self.run_in_transaction(_update, f"Set period {period_id} to {status.value}")
        self.log_info(f"Evaluation period {period_id} is now {status.value}", period_id=period_id)
        return period

    def activate_period(self, period_id: int) -> EvaluationPeriod:
        return self._set_status(period_id, PeriodStatus.ACTIVE)

    def complete_period(self, period_id: int) -> EvaluationPeriod:
        return self._set_status(period_id, PeriodStatus.COMPLETED)

    def archive_period(self, period_id: int) -> EvaluationPeriod:
        return self._set_status(period_id, PeriodStatus.ARCHIVED)

    def delete_period(self, period_id: int) -> bool:
        period = self.get_period(period_id)
        evaluation_count = self.db.query(func.count(Evaluation.id)).filter(Evaluation.period_id == period_id).scalar()
        if evaluation_count:
            raise ConflictError("Cannot delete period with existing evaluations", details={"evaluations": evaluation_count})
        self.run_in_transaction(lambda: self.db.delete(period), f"Delete evaluation period {period_id}")
        self.log_info(f"Evaluation period {period_id} deleted", period_id=period_id)
        return True

    def is_period_editable(self, period_id: int, today: Optional[date] = None) -> bool:
        period = self.db.get(EvaluationPeriod, period_id)
        if period is None:
            return False
        if period.status == PeriodStatus.DRAFT.value:
            return True
        # Active periods stay editable until they start
        if period.status == PeriodStatus.ACTIVE.value:
            return period.start_date > (today or date.today())
        return False

    def generate_periods_for_year(self, year: int, period_type: str = PeriodType.QUARTERLY.value) -> List[EvaluationPeriod]:
        try:
            kind = PeriodType(period_type)
            layout = _PERIOD_LAYOUTS[kind]
        except (ValueError, KeyError):
            raise InvalidInputError(f"Invalid period type: {period_type}") from None

        periods = []
        for label, (start_month, start_day), (end_month, end_day) in layout:
            name = f"{year} Annual Evaluation" if kind is PeriodType.ANNUAL else f"{year} {label} Evaluation"
            periods.append(self.create_period(PeriodCreate(
                period_name=name,
                period_type=kind.value,
                start_date=date(year, start_month, start_day),
                end_date=date(year, end_month, end_day),
                description=_DESCRIPTIONS[kind].format(label=label, year=year),
            )))
        return periods

    def get_period_stats(self, period_id: int) -> Dict[str, Any]:
        period = self.get_period(period_id)

        by_status = dict(
            self.db.query(Evaluation.status, func.count(Evaluation.id))
            .filter(Evaluation.period_id == period_id)
            .group_by(Evaluation.status)
            .all()
        )
        total = sum(by_status.values())
        approved = by_status.get(EvaluationStatus.APPROVED.value, 0)

        avg_rating = (
            self.db.query(func.avg(Evaluation.evidence_rating))
            .filter(Evaluation.period_id == period_id, Evaluation.evidence_rating.isnot(None))
            .scalar()
        )

        evaluated_employees = self.db.query(Evaluation.employee_id).filter(Evaluation.period_id == period_id)
        metrics = (
            self.db.query(
                func.count(func.distinct(EvidenceEntry.employee_id)),
                func.count(EvidenceEntry.id),
                func.avg(EvidenceEntry.star_rating),
            )
            .filter(
                EvidenceEntry.employee_id.in_(evaluated_employees),
                EvidenceEntry.entry_date.between(period.start_date, period.end_date),
            )
            .one()
        )

        return {
            "total_evaluations": total,
            "by_status": by_status,
            "completion_percentage": round(approved / total * 100, 1) if total else 0.0,
            "average_rating": round(float(avg_rating), 2) if avg_rating is not None else 0.0,
            "evidence_metrics": {
                "employees_with_evidence": metrics[0] or 0,
                "total_evidence_entries": metrics[1] or 0,
                "avg_evidence_rating": round(float(metrics[2]), 2) if metrics[2] is not None else 0.0,
            },
        }
