from sqlalchemy import Column, Integer, String, Date, DateTime, Text, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from hr_evidence.database import Base
import enum


class PeriodStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class PeriodType(str, enum.Enum):
    QUARTERLY = "quarterly"
    SEMI_ANNUAL = "semi_annual"
    ANNUAL = "annual"
    CUSTOM = "custom"


class EvaluationPeriod(Base):
    __tablename__ = "evaluation_periods"
    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_period_date_order"),
    )

    id = Column(Integer, primary_key=True, index=True)
    period_name = Column(String(150), nullable=False)
    period_type = Column(String(20), default=PeriodType.CUSTOM.value, nullable=False)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False, index=True)
    status = Column(String(20), default=PeriodStatus.DRAFT.value, nullable=False)  # String storage keeps SQLite simple
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    evaluations = relationship("Evaluation", back_populates="period")

    def __repr__(self):
        return f"<EvaluationPeriod {self.period_name} [{self.start_date}..{self.end_date}]>"
