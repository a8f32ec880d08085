import os
import logging
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Dict, List
from dotenv import load_dotenv

load_dotenv()

# Fixed taxonomy evidence entries are classified under. Order matters for reporting.
DIMENSIONS = ("responsibilities", "kpis", "competencies", "values")


class EvidenceSettings(BaseModel):
    # Entry count at which an aggregate is fully trusted
    confidence_threshold: int = Field(default=int(os.getenv("EVIDENCE_CONFIDENCE_THRESHOLD", "10")))
    dimension_weights: Dict[str, float] = Field(
        default_factory=lambda: {dimension: 0.25 for dimension in DIMENSIONS}
    )

    @field_validator("confidence_threshold")
    @classmethod
    def threshold_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("confidence_threshold must be at least 1")
        return value

    @model_validator(mode="after")
    def weights_cover_dimensions(self) -> "EvidenceSettings":
        if set(self.dimension_weights) != set(DIMENSIONS):
            raise ValueError(f"dimension_weights must define exactly: {', '.join(DIMENSIONS)}")
        if any(weight < 0 for weight in self.dimension_weights.values()):
            raise ValueError("dimension weights must be non-negative")
        if abs(sum(self.dimension_weights.values()) - 1.0) > 1e-6:
            raise ValueError("dimension weights must sum to 1.0")
        return self


class Config(BaseModel):
    app_name: str = "HR Evidence Evaluation"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./database.db")

    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"

    # CORS: comma-separated origins loaded from env
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if o.strip()
        ]
    )

    evidence: EvidenceSettings = Field(default_factory=EvidenceSettings)


settings = Config()

_logger = logging.getLogger(__name__)
if settings.environment == "development" and settings.database_url.startswith("sqlite:///./"):
    _logger.info("Using local SQLite database file; only acceptable in development.")
