"""
Evidence Aggregation Service

Turns the raw evidence journal of an employee into one summary row per
performance dimension for a given evaluation.

Architecture:
- Router / script -> EvidenceAggregator (this module) -> Models
- The per-dimension arithmetic lives in pure functions so it can be
  exercised without a database
- Persistence is a single transaction: all four dimension rows and the
  evaluation's overall evidence rating are written together or not at all

Scoring:
- confidence_factor(n) = min(1, n / threshold), threshold from settings (10)
- calculated_score     = avg_star_rating * confidence_factor, capped at 5
- evidence_rating      = sum(dimension_weight(d) * calculated_score(d))
"""

import logging
import math
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hr_evidence.core.config import DIMENSIONS, settings
from hr_evidence.core.exceptions import InvalidInputError, PersistenceError, ResourceNotFoundError
from hr_evidence.models.employee import Employee
from hr_evidence.models.evaluation import Evaluation
from hr_evidence.models.evidence_entry import EvidenceEntry
from hr_evidence.models.evidence_result import EvidenceEvaluationResult
from hr_evidence.services.base import BaseService

logger = logging.getLogger(__name__)

MAX_RATING = 5.0
POSITIVE_THRESHOLD = 4
NEGATIVE_THRESHOLD = 2

# Lower bounds, checked from the top down
PERFORMANCE_BANDS = (
    (4.5, "Excellent"),
    (3.5, "Good"),
    (2.5, "Satisfactory"),
    (1.5, "Needs Improvement"),
)
LOWEST_BAND = "Unsatisfactory"

RESULT_COLUMNS = (
    "evidence_count",
    "avg_star_rating",
    "total_positive_entries",
    "total_negative_entries",
    "calculated_score",
)


class DimensionSummary(BaseModel):
    dimension: str
    evidence_count: int = 0
    avg_star_rating: float = 0.0
    total_positive_entries: int = 0
    total_negative_entries: int = 0
    confidence_factor: float = 0.0
    dimension_weight: float = 0.0
    calculated_score: float = 0.0


def confidence_factor(evidence_count: int, threshold: Optional[int] = None) -> float:
    """
    Saturating trust in an aggregate: 0 with no entries, rising linearly
    to 1.0 once `threshold` entries exist.
    """
    if threshold is None:
        threshold = settings.evidence.confidence_threshold
    if threshold < 1:
        raise ValueError(f"Confidence threshold must be at least 1, got {threshold!r}")
    if evidence_count <= 0:
        return 0.0
    return min(1.0, evidence_count / threshold)


def dimension_weight(dimension: str) -> float:
    try:
        return settings.evidence.dimension_weights[dimension]
    except KeyError:
        raise InvalidInputError(
            f"Invalid dimension '{dimension}'. Must be one of: {', '.join(DIMENSIONS)}",
            details={"dimension": dimension},
        ) from None


def performance_indicator(score: float) -> str:
    """Maps a 0-5 score onto its human label."""
    if score is None or math.isnan(score) or score < 0 or score > MAX_RATING:
        raise ValueError(f"Score must be within 0-{MAX_RATING:g}, got {score!r}")
    for lower_bound, label in PERFORMANCE_BANDS:
        if score >= lower_bound:
            return label
    return LOWEST_BAND


def summarize_ratings(dimension: str, ratings: Iterable[int], threshold: Optional[int] = None) -> DimensionSummary:
    """Pure per-dimension summary over the star ratings that fall in the window."""
    ratings = list(ratings)
    weight = dimension_weight(dimension)
    if not ratings:
        return DimensionSummary(dimension=dimension, dimension_weight=weight)

    count = len(ratings)
    average = sum(ratings) / count
    confidence = confidence_factor(count, threshold)
    return DimensionSummary(
        dimension=dimension,
        evidence_count=count,
        avg_star_rating=round(average, 2),
        total_positive_entries=sum(1 for r in ratings if r >= POSITIVE_THRESHOLD),
        total_negative_entries=sum(1 for r in ratings if r <= NEGATIVE_THRESHOLD),
        confidence_factor=round(confidence, 4),
        dimension_weight=weight,
        calculated_score=round(min(MAX_RATING, average * confidence), 2),
    )


def overall_evidence_rating(summaries: Iterable[DimensionSummary]) -> float:
    return round(sum(s.dimension_weight * s.calculated_score for s in summaries), 2)


def _validate_window(period: Any) -> tuple:
    start_date = getattr(period, "start_date", None)
    end_date = getattr(period, "end_date", None)
    if not isinstance(start_date, date) or not isinstance(end_date, date):
        raise InvalidInputError("Period must define start_date and end_date as dates")
    if start_date > end_date:
        raise InvalidInputError(
            "Period start_date must not be after end_date",
            details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )
    return start_date, end_date


class EvidenceAggregator(BaseService):
    """
    Aggregates evidence entries into EvidenceEvaluationResult rows.
    Idempotent: re-running with unchanged evidence rewrites identical values
    into the same rows.
    """

    def collect_ratings(self, employee_id: int, start_date: date, end_date: date) -> Dict[str, List[int]]:
        """Star ratings of the employee inside [start_date, end_date], keyed by dimension."""
        rows = (
            self.db.query(EvidenceEntry.dimension, EvidenceEntry.star_rating)
            .filter(
                EvidenceEntry.employee_id == employee_id,
                EvidenceEntry.entry_date >= start_date,
                EvidenceEntry.entry_date <= end_date,
            )
            .order_by(EvidenceEntry.id)
            .all()
        )
        ratings: Dict[str, List[int]] = {dimension: [] for dimension in DIMENSIONS}
        for dimension, star_rating in rows:
            if dimension in ratings:
                ratings[dimension].append(star_rating)
        return ratings

    def compute(self, employee_id: int, period: Any) -> List[DimensionSummary]:
        """Summaries for all four dimensions, in fixed order, without writing anything."""
        start_date, end_date = _validate_window(period)
        ratings = self.collect_ratings(employee_id, start_date, end_date)
        return [summarize_ratings(dimension, ratings[dimension]) for dimension in DIMENSIONS]

    def aggregate(self, employee_id: int, evaluation_id: int, period: Any) -> bool:
        """
        Computes and upserts one result row per dimension for the evaluation.

        Raises:
            InvalidInputError: bad window or evaluation/employee mismatch
            ResourceNotFoundError: unknown employee or evaluation
            PersistenceError: database failure; nothing is left written
        """
        # Reject a bad window before touching the database
        _validate_window(period)

        try:
            if self.db.get(Employee, employee_id) is None:
                raise ResourceNotFoundError("Employee", employee_id)
            evaluation = self.db.get(Evaluation, evaluation_id)
            if evaluation is None:
                raise ResourceNotFoundError("Evaluation", evaluation_id)
            if evaluation.employee_id != employee_id:
                raise InvalidInputError(
                    f"Evaluation {evaluation_id} does not belong to employee {employee_id}",
                    details={"evaluation_id": evaluation_id, "employee_id": employee_id},
                )

            summaries = self.compute(employee_id, period)
            evidence_rating = self._upsert_results(evaluation, summaries)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(
                f"Evidence aggregation failed for evaluation {evaluation_id}: {exc}",
                extra={"evaluation_id": evaluation_id, "employee_id": employee_id},
                exc_info=True,
            )
            raise PersistenceError(f"Evidence aggregation for evaluation {evaluation_id} failed") from exc
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Aggregated evidence for evaluation {evaluation_id}",
            extra={
                "evaluation_id": evaluation_id,
                "employee_id": employee_id,
                "entries": sum(s.evidence_count for s in summaries),
                "evidence_rating": evidence_rating,
            },
        )
        return True

    def aggregate_evaluation(self, evaluation_id: int) -> bool:
        """Aggregates an evaluation over the window of its own period."""
        evaluation = self.get_or_404(Evaluation, evaluation_id, "Evaluation")
        return self.aggregate(evaluation.employee_id, evaluation.id, evaluation.period)

    def _upsert_results(self, evaluation: Evaluation, summaries: List[DimensionSummary]) -> float:
        """
        Writes all four rows with INSERT ... ON CONFLICT DO UPDATE on the
        (evaluation_id, dimension) key, so a concurrent writer that inserted
        first is overwritten instead of failing this transaction.
        """
        dialect = postgresql if self.db.get_bind().dialect.name == "postgresql" else sqlite

        stmt = dialect.insert(EvidenceEvaluationResult).values([
            {"evaluation_id": evaluation.id, "dimension": s.dimension, **{c: getattr(s, c) for c in RESULT_COLUMNS}}
            for s in summaries
        ])
        stmt = stmt.on_conflict_do_update(
            index_elements=["evaluation_id", "dimension"],
            set_={column: stmt.excluded[column] for column in RESULT_COLUMNS},
        )
        self.db.execute(stmt)

        # Rows outside the fixed dimension set cannot be produced here; drop any legacy ones
        (
            self.db.query(EvidenceEvaluationResult)
            .filter(
                EvidenceEvaluationResult.evaluation_id == evaluation.id,
                EvidenceEvaluationResult.dimension.notin_(DIMENSIONS),
            )
            .delete(synchronize_session=False)
        )

        evaluation.evidence_rating = overall_evidence_rating(summaries)
        self.db.flush()
        return evaluation.evidence_rating


def aggregation_statistics(db: Session) -> Dict[str, Any]:
    """
    Coverage of evidence aggregation across all evaluations.

    Returns:
        Dict with total_evaluations, evaluations_with_evidence,
        coverage_percentage and avg_evidence_rating
    """
    total = db.query(func.count(Evaluation.id)).scalar() or 0
    with_evidence = (
        db.query(func.count(func.distinct(EvidenceEvaluationResult.evaluation_id)))
        .filter(EvidenceEvaluationResult.evidence_count > 0)
        .scalar()
        or 0
    )
    avg_rating = (
        db.query(func.avg(Evaluation.evidence_rating))
        .filter(Evaluation.evidence_rating.isnot(None))
        .scalar()
    )
    return {
        "total_evaluations": total,
        "evaluations_with_evidence": with_evidence,
        "coverage_percentage": round(with_evidence / total * 100, 1) if total else 0.0,
        "avg_evidence_rating": round(float(avg_rating), 2) if avg_rating is not None else 0.0,
    }
