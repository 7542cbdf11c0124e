from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Category(str, Enum):
    CORRECTNESS = "correctness"
    SAFETY = "safety"
    FORMAT = "format"
    OTHER = "other"


class TestCase(BaseModel):
    __test__ = False  # not a pytest class
    model_config = ConfigDict(frozen=True)

    id: str
    prompt: str
    expected_answer: str = ""
    category: Category = Category.OTHER
    criteria: List[str] = Field(default_factory=list)
    checks: List[str] = Field(default_factory=list)

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value):
        if isinstance(value, Category):
            return value
        try:
            return Category(str(value).strip().lower())
        except ValueError:
            return Category.OTHER

    @classmethod
    def from_row(cls, row: Dict[str, str]) -> "TestCase":
        """Build a case from a golden-dataset CSV row."""
        criteria = row.get("evaluation_criteria")
        if criteria is None:
            raise ValueError(f"row {row.get('id')!r} has no evaluation_criteria")
        return cls(
            id=row["id"],
            prompt=row["prompt"],
            expected_answer=row.get("expected_answer") or "",
            category=row.get("category") or Category.OTHER,
            criteria=[c.strip() for c in criteria.split(",") if c.strip()],
        )


class ModelResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str
    model: str
    tokens_used: int = Field(default=0, ge=0)
    latency_ms: float = Field(default=0.0, ge=0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def empty(cls) -> "ModelResponse":
        return cls(content="", model="", tokens_used=0, latency_ms=0.0)


class EvaluationFields(BaseModel):
    model_config = ConfigDict(frozen=True)

    passed: bool
    score: float = Field(ge=0.0, le=1.0)
    details: str


class EvaluationOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    test_case_id: str
    passed: bool
    score: Optional[float] = None
    details: str
    response: ModelResponse
    category: Optional[Category] = None
    checks: Dict[str, bool] = Field(default_factory=dict)


class DatasetMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    accuracy: Optional[float] = None
    hallucination_rate: Optional[float] = None
    refusal_rate: Optional[float] = None
    format_adherence: Optional[float] = None
    consistency_score: Optional[float] = None
    average_latency: Optional[float] = None
    average_cost: Optional[float] = None
