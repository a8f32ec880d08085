from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func

from hr_evidence.core.config import DIMENSIONS
from hr_evidence.core.exceptions import InvalidInputError, ResourceNotFoundError
from hr_evidence.models.employee import Employee
from hr_evidence.models.evidence_entry import EvidenceEntry
from hr_evidence.schemas.evidence import EvidenceEntryCreate, EvidenceEntryUpdate
from hr_evidence.services.base import BaseService

_positive = func.sum(case((EvidenceEntry.star_rating >= 4, 1), else_=0))
_neutral = func.sum(case((EvidenceEntry.star_rating == 3, 1), else_=0))
_negative = func.sum(case((EvidenceEntry.star_rating <= 2, 1), else_=0))


def _validate_rating(star_rating: int):
    if star_rating is None or not 1 <= star_rating <= 5:
        raise InvalidInputError("Star rating must be between 1 and 5", details={"star_rating": star_rating})


def _validate_dimension(dimension: str):
    if dimension not in DIMENSIONS:
        raise InvalidInputError(
            f"Invalid dimension. Must be one of: {', '.join(DIMENSIONS)}",
            details={"dimension": dimension},
        )


def _in_window(query, start_date: Optional[date], end_date: Optional[date]):
    if start_date:
        query = query.filter(EvidenceEntry.entry_date >= start_date)
    if end_date:
        query = query.filter(EvidenceEntry.entry_date <= end_date)
    return query


def _dimension_rows(query) -> List[Dict[str, Any]]:
    return [
        {
            "dimension": row.dimension,
            "entry_count": row.entry_count,
            "avg_rating": round(float(row.avg_rating or 0), 2),
            "positive_count": int(row.positive_count or 0),
            "negative_count": int(row.negative_count or 0),
        }
        for row in query
    ]


class EvidenceJournalService(BaseService):
    """Growth evidence journal: the manager-authored entries aggregation reads from."""

    def create_entry(self, data: EvidenceEntryCreate) -> EvidenceEntry:
        _validate_rating(data.star_rating)
        _validate_dimension(data.dimension)
        self.get_or_404(Employee, data.employee_id, "Employee")
        self.get_or_404(Employee, data.manager_id, "Manager")

        entry = EvidenceEntry(**data.model_dump())

        def _create():
            self.db.add(entry)
            self.db.flush()
            return entry

        self.run_in_transaction(_create, "Create evidence entry")
        self.db.refresh(entry)
        self.log_info(
            f"Evidence entry {entry.id} created",
            entry_id=entry.id, employee_id=entry.employee_id, dimension=entry.dimension,
        )
        return entry

    def update_entry(self, entry_id: int, data: EvidenceEntryUpdate) -> EvidenceEntry:
        entry = self.get_entry(entry_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return entry
        if "star_rating" in changes:
            _validate_rating(changes["star_rating"])
        if "dimension" in changes:
            _validate_dimension(changes["dimension"])

        def _update():
            for field, value in changes.items():
                setattr(entry, field, value)
            return entry

        self.run_in_transaction(_update, f"Update evidence entry {entry_id}")
        self.db.refresh(entry)
        self.log_info(f"Evidence entry {entry_id} updated", entry_id=entry_id, fields=sorted(changes))
        return entry

    def delete_entry(self, entry_id: int) -> bool:
        entry = self.get_entry(entry_id)
        self.run_in_transaction(lambda: self.db.delete(entry), f"Delete evidence entry {entry_id}")
        self.log_info(f"Evidence entry {entry_id} deleted", entry_id=entry_id)
        return True

    def get_entry(self, entry_id: int) -> EvidenceEntry:
        entry = self.db.get(EvidenceEntry, entry_id)
        if entry is None:
            raise ResourceNotFoundError("Evidence entry", entry_id)
        return entry

    def get_employee_journal(
        self,
        employee_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        dimension: Optional[str] = None,
        min_rating: Optional[int] = None,
        max_rating: Optional[int] = None,
        search: Optional[str] = None,
    ) -> List[EvidenceEntry]:
        query = _in_window(
            self.db.query(EvidenceEntry).filter(EvidenceEntry.employee_id == employee_id),
            start_date, end_date,
        )
        if dimension:
            _validate_dimension(dimension)
            query = query.filter(EvidenceEntry.dimension == dimension)
        if min_rating:
            query = query.filter(EvidenceEntry.star_rating >= min_rating)
        if max_rating:
            query = query.filter(EvidenceEntry.star_rating <= max_rating)
        if search:
            query = query.filter(EvidenceEntry.content.ilike(f"%{search}%"))
        return query.order_by(EvidenceEntry.entry_date.desc(), EvidenceEntry.created_at.desc(), EvidenceEntry.id.desc()).all()

    def get_manager_entries(
        self,
        manager_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        employee_id: Optional[int] = None,
        dimension: Optional[str] = None,
    ) -> List[EvidenceEntry]:
        query = _in_window(
            self.db.query(EvidenceEntry).filter(EvidenceEntry.manager_id == manager_id),
            start_date, end_date,
        )
        if employee_id:
            query = query.filter(EvidenceEntry.employee_id == employee_id)
        if dimension:
            _validate_dimension(dimension)
            query = query.filter(EvidenceEntry.dimension == dimension)
        return query.order_by(EvidenceEntry.entry_date.desc(), EvidenceEntry.created_at.desc(), EvidenceEntry.id.desc()).all()

    def get_evidence_by_dimension(
        self, employee_id: int, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> List[Dict[str, Any]]:
        """Per-dimension statistics for one employee, best average first."""
        avg_rating = func.avg(EvidenceEntry.star_rating).label("avg_rating")
        query = _in_window(
            self.db.query(
                EvidenceEntry.dimension,
                func.count(EvidenceEntry.id).label("entry_count"),
                avg_rating,
                _positive.label("positive_count"),
                _negative.label("negative_count"),
            ).filter(EvidenceEntry.employee_id == employee_id),
            start_date, end_date,
        )
        return _dimension_rows(query.group_by(EvidenceEntry.dimension).order_by(avg_rating.desc()))

    def get_evidence_summary(
        self, employee_id: int, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> Dict[str, Any]:
        query = _in_window(
            self.db.query(
                func.count(EvidenceEntry.id).label("total_entries"),
                func.avg(EvidenceEntry.star_rating).label("overall_avg_rating"),
                _positive.label("positive_entries"),
                _neutral.label("neutral_entries"),
                _negative.label("negative_entries"),
                func.min(EvidenceEntry.entry_date).label("first_entry_date"),
                func.max(EvidenceEntry.entry_date).label("last_entry_date"),
            ).filter(EvidenceEntry.employee_id == employee_id),
            start_date, end_date,
        )
        row = query.one()
        return {
            "total_entries": row.total_entries or 0,
            "overall_avg_rating": round(float(row.overall_avg_rating or 0), 2),
            "positive_entries": int(row.positive_entries or 0),
            "neutral_entries": int(row.neutral_entries or 0),
            "negative_entries": int(row.negative_entries or 0),
            "first_entry_date": row.first_entry_date,
            "last_entry_date": row.last_entry_date,
        }

    def get_dimension_statistics(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> List[Dict[str, Any]]:
        """Organisation-wide per-dimension statistics, busiest dimension first."""
        entry_count = func.count(EvidenceEntry.id).label("entry_count")
        query = self.db.query(
            EvidenceEntry.dimension,
            entry_count,
            func.avg(EvidenceEntry.star_rating).label("avg_rating"),
            _positive.label("positive_count"),
            _negative.label("negative_count"),
        )
        if start_date and end_date:
            query = query.filter(EvidenceEntry.entry_date.between(start_date, end_date))
        return _dimension_rows(query.group_by(EvidenceEntry.dimension).order_by(entry_count.desc()))

    def get_recent_entries(self, limit: int = 10) -> List[EvidenceEntry]:
        """Newest entries across the organisation, for dashboards."""
        return (
            self.db.query(EvidenceEntry)
            .order_by(EvidenceEntry.created_at.desc(), EvidenceEntry.id.desc())
            .limit(limit)
            .all()
        )

    def get_entries_by_date_range(
        self,
        start_date: date,
        end_date: date,
        employee_id: Optional[int] = None,
        manager_id: Optional[int] = None,
        dimension: Optional[str] = None,
    ) -> List[EvidenceEntry]:
        """Reporting view: every entry in the inclusive window, oldest first."""
        if start_date > end_date:
            raise InvalidInputError(
                "start_date must not be after end_date",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )
        query = self.db.query(EvidenceEntry).filter(EvidenceEntry.entry_date.between(start_date, end_date))
        if employee_id:
            query = query.filter(EvidenceEntry.employee_id == employee_id)
        if manager_id:
            query = query.filter(EvidenceEntry.manager_id == manager_id)
        if dimension:
            _validate_dimension(dimension)
            query = query.filter(EvidenceEntry.dimension == dimension)
        return query.order_by(EvidenceEntry.entry_date.asc(), EvidenceEntry.id.asc()).all()
