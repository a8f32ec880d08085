"""
Aggregate evidence for every evaluation that is missing it.

Picks evaluations whose employee has journal entries but which have no
result row with evidence yet, and runs the aggregator over each
evaluation's own period. Exits non-zero if any evaluation failed.

Usage: python -m scripts.aggregate_all_evidence
"""
import logging
import sys

from hr_evidence.core.exceptions import AppException
from hr_evidence.core.logging import setup_logging
from hr_evidence.database import SessionLocal, init_db
from hr_evidence.services.evaluation_service import EvaluationService
from hr_evidence.services.evidence_aggregation import EvidenceAggregator

logger = logging.getLogger("scripts.aggregate_all_evidence")


def aggregate_all(db) -> dict:
    evaluations = EvaluationService(db).find_evaluations_missing_evidence()
    summary = {"processed": len(evaluations), "succeeded": 0, "failed": 0}
    if not evaluations:
        print("No evaluations need evidence aggregation.")
        return summary

    print(f"Found {len(evaluations)} evaluations that need evidence aggregation:")
    aggregator = EvidenceAggregator(db)
    for evaluation in evaluations:
        name = evaluation.employee.full_name
        try:
            aggregator.aggregate_evaluation(evaluation.id)
        except AppException as exc:
            summary["failed"] += 1
            logger.error(f"Evaluation {evaluation.id} ({name}) failed: {exc.message}")
            print(f"  ✗ Evaluation {evaluation.id} - {name}: {exc.message}")
            continue

        summary["succeeded"] += 1
        scores = ", ".join(
            f"{row.dimension}({row.evidence_count} entries, score: {row.calculated_score})"
            for row in EvaluationService(db).get_evidence_results(evaluation.id)
            if row.evidence_count > 0
        )
        print(f"  ✓ Evaluation {evaluation.id} - {name}: {scores}")

    return summary


def main() -> int:
    setup_logging()
    init_db()
    db = SessionLocal()
    try:
        summary = aggregate_all(db)
    finally:
        db.close()

    print(
        f"Processed {summary['processed']} evaluations: "
        f"{summary['succeeded']} succeeded, {summary['failed']} failed"
    )
    return 1 if summary["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
