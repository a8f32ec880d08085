from sqlalchemy import Column, Integer, String, Date, DateTime, Text, ForeignKey, CheckConstraint, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from hr_evidence.database import Base


class EvidenceEntry(Base):
    """
    A manager-authored, star-rated note about an employee, tagged to one dimension.
    Aggregation only ever reads these rows.
    """
    __tablename__ = "growth_evidence_entries"
    __table_args__ = (
        CheckConstraint("star_rating BETWEEN 1 AND 5", name="ck_evidence_star_rating"),
        CheckConstraint(
            "dimension IN ('responsibilities', 'kpis', 'competencies', 'values')",
            name="ck_evidence_dimension",
        ),
        Index("idx_evidence_employee_date", "employee_id", "entry_date"),
        Index("idx_evidence_manager_date", "manager_id", "entry_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    manager_id = Column(Integer, ForeignKey("employees.id"), nullable=False)
    content = Column(Text, nullable=False)
    star_rating = Column(Integer, nullable=False)
    dimension = Column(String(20), nullable=False, index=True)
    entry_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    employee = relationship("Employee", foreign_keys=[employee_id])
    manager = relationship("Employee", foreign_keys=[manager_id])
