from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from hr_evidence.database import Base
import enum


class EvaluationStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    REJECTED = "rejected"


class Evaluation(Base):
    __tablename__ = "evaluations"
    __table_args__ = (
        UniqueConstraint("employee_id", "period_id", name="uq_evaluation_employee_period"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    evaluator_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    period_id = Column(Integer, ForeignKey("evaluation_periods.id"), nullable=False, index=True)
    status = Column(String(20), default=EvaluationStatus.DRAFT.value, nullable=False)
    # Weighted overall of the per-dimension calculated scores, set by aggregation
    evidence_rating = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    employee = relationship("Employee", foreign_keys=[employee_id], back_populates="evaluations")
    evaluator = relationship("Employee", foreign_keys=[evaluator_id])
    period = relationship("EvaluationPeriod", back_populates="evaluations")
    evidence_results = relationship(
        "EvidenceEvaluationResult",
        back_populates="evaluation",
        cascade="all, delete-orphan",
    )
