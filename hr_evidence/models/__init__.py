# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    employee, evaluation_period, evaluation, evidence_entry, evidence_result
)

# Explicit class exports for cleaner imports
from .employee import Employee
from .evaluation_period import EvaluationPeriod, PeriodStatus, PeriodType
from .evaluation import Evaluation, EvaluationStatus
from .evidence_entry import EvidenceEntry
from .evidence_result import EvidenceEvaluationResult

__all__ = [
    "Employee",
    "EvaluationPeriod",
    "PeriodStatus",
    "PeriodType",
    "Evaluation",
    "EvaluationStatus",
    "EvidenceEntry",
    "EvidenceEvaluationResult",
]
