from sqlalchemy import Column, Integer, String, Float, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from hr_evidence.database import Base


class EvidenceEvaluationResult(Base):
    __tablename__ = "evidence_evaluation_results"
    __table_args__ = (
        # Upsert key: one row per evaluation and dimension
        UniqueConstraint("evaluation_id", "dimension", name="uq_evidence_result_evaluation_dimension"),
    )

    id = Column(Integer, primary_key=True, index=True)
    evaluation_id = Column(Integer, ForeignKey("evaluations.id", ondelete="CASCADE"), nullable=False, index=True)
    dimension = Column(String(20), nullable=False)
    evidence_count = Column(Integer, nullable=False, default=0)
    avg_star_rating = Column(Float, nullable=False, default=0.0)
    total_positive_entries = Column(Integer, nullable=False, default=0)
    total_negative_entries = Column(Integer, nullable=False, default=0)
    calculated_score = Column(Float, nullable=False, default=0.0)

    evaluation = relationship("Evaluation", back_populates="evidence_results")

    def __repr__(self):
        return f"<EvidenceEvaluationResult eval={self.evaluation_id} {self.dimension}: {self.calculated_score}>"
