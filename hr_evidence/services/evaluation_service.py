from typing import Any, Dict, List, Optional

from hr_evidence.core.config import DIMENSIONS
from hr_evidence.core.exceptions import AppException, ConflictError
from hr_evidence.models.employee import Employee
from hr_evidence.models.evaluation import Evaluation
from hr_evidence.models.evaluation_period import EvaluationPeriod
from hr_evidence.models.evidence_entry import EvidenceEntry
from hr_evidence.models.evidence_result import EvidenceEvaluationResult
from hr_evidence.services.base import BaseService
from hr_evidence.services.evidence_aggregation import EvidenceAggregator

_DIMENSION_ORDER = {dimension: position for position, dimension in enumerate(DIMENSIONS)}


class EvaluationService(BaseService):
    """Domain service for evaluations and the evidence results attached to them."""

    def create_evaluation(self, employee_id: int, period_id: int, evaluator_id: Optional[int] = None) -> Evaluation:
        self.get_or_404(Employee, employee_id, "Employee")
        self.get_or_404(EvaluationPeriod, period_id, "Evaluation period")
        if evaluator_id is not None:
            self.get_or_404(Employee, evaluator_id, "Evaluator")
        if self.evaluation_exists(employee_id, period_id):
            raise ConflictError(
                "Evaluation already exists for this employee and period",
                details={"employee_id": employee_id, "period_id": period_id},
            )

        evaluation = Evaluation(employee_id=employee_id, period_id=period_id, evaluator_id=evaluator_id)

        def _create():
            self.db.add(evaluation)
            self.db.flush()
            return evaluation

        self.run_in_transaction(_create, "Create evaluation")
        self.db.refresh(evaluation)
        self.log_info(f"Evaluation {evaluation.id} created", evaluation_id=evaluation.id, employee_id=employee_id)
        return evaluation

    def evaluation_exists(self, employee_id: int, period_id: int) -> bool:
        query = self.db.query(Evaluation).filter(
            Evaluation.employee_id == employee_id,
            Evaluation.period_id == period_id,
        )
        return self.db.query(query.exists()).scalar()

    def get_evaluation(self, evaluation_id: int) -> Evaluation:
        return self.get_or_404(Evaluation, evaluation_id, "Evaluation")

    def get_evidence_results(self, evaluation_id: int) -> List[EvidenceEvaluationResult]:
        self.get_evaluation(evaluation_id)
        rows = (
            self.db.query(EvidenceEvaluationResult)
            .filter(EvidenceEvaluationResult.evaluation_id == evaluation_id)
            .all()
        )
        return sorted(rows, key=lambda row: _DIMENSION_ORDER.get(row.dimension, len(DIMENSIONS)))

    def list_evaluations(
        self,
        employee_id: Optional[int] = None,
        period_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> List[Evaluation]:
        query = self.db.query(Evaluation)
        if employee_id:
            query = query.filter(Evaluation.employee_id == employee_id)
        if period_id:
            query = query.filter(Evaluation.period_id == period_id)
        if status:
            query = query.filter(Evaluation.status == status)
        return query.order_by(Evaluation.id.desc()).all()

    def delete_evaluation(self, evaluation_id: int) -> bool:
        evaluation = self.get_evaluation(evaluation_id)
        self.run_in_transaction(lambda: self.db.delete(evaluation), f"Delete evaluation {evaluation_id}")
        self.log_info(f"Evaluation {evaluation_id} deleted", evaluation_id=evaluation_id)
        return True

    def find_evaluations_missing_evidence(self) -> List[Evaluation]:
        """Evaluations whose employee has journal entries but no aggregated evidence yet."""
        employees_with_evidence = self.db.query(EvidenceEntry.employee_id).distinct()
        aggregated = (
            self.db.query(EvidenceEvaluationResult.evaluation_id)
            .filter(EvidenceEvaluationResult.evidence_count > 0)
            .distinct()
        )
        return (
            self.db.query(Evaluation)
            .filter(
                Evaluation.employee_id.in_(employees_with_evidence),
                Evaluation.id.notin_(aggregated),
            )
            .order_by(Evaluation.id)
            .all()
        )

    def create_from_evidence_journal(
        self, employee_id: int, period_id: int, evaluator_id: Optional[int] = None
    ) -> Evaluation:
        """Creates the evaluation and immediately aggregates the journal into it."""
        evaluation = self.create_evaluation(employee_id, period_id, evaluator_id)
        EvidenceAggregator(self.db).aggregate_evaluation(evaluation.id)
        self.db.refresh(evaluation)
        return evaluation

    def auto_generate_evaluations(self, period_id: int, evaluator_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Creates an evidence-based evaluation for every active employee that
        has none in the period yet. A failure for one employee is recorded and
        the run continues with the next one.
        """
        self.get_or_404(EvaluationPeriod, period_id, "Evaluation period")
        results = {"created": 0, "skipped": 0, "errors": []}

        employee_ids = [
            row.id
            for row in self.db.query(Employee.id).filter(Employee.active.is_(True)).order_by(Employee.id).all()
        ]
        for employee_id in employee_ids:
            if self.evaluation_exists(employee_id, period_id):
                results["skipped"] += 1
                continue
            try:
                self.create_from_evidence_journal(employee_id, period_id, evaluator_id)
                results["created"] += 1
            except AppException as exc:
                results["errors"].append(f"Employee ID {employee_id}: {exc.message}")
                self.log_error(
                    f"Auto-generate evaluation failed for employee {employee_id}: {exc.message}",
                    employee_id=employee_id, period_id=period_id,
                )

        self.log_info(
            f"Auto-generated evaluations for period {period_id}",
            period_id=period_id, created_count=results["created"], skipped_count=results["skipped"],
            failed_count=len(results["errors"]),
        )
        return results
