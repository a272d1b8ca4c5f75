"""
Pydantic models for quiz quality metrics.
"""
from pydantic import BaseModel, Field


class DifficultyDistribution(BaseModel):
    low: int = 0
    medium: int = 0
    high: int = 0


class TypeDistribution(BaseModel):
    multiple_choice: int = 0
    short_answer: int = 0
    true_false: int = 0


class QualityMetrics(BaseModel):
    """Descriptive metrics computed over an accepted quiz."""
    total_questions: int = Field(description="Number of questions in the quiz")
    completeness: float = Field(
        ge=0.0,
        description="Generated count divided by requested count; may exceed 1.0"
    )
    difficulty_distribution: DifficultyDistribution
    type_distribution: TypeDistribution
    average_citations_per_question: float = Field(ge=0.0)
    average_statement_length: int = Field(ge=0, description="Mean statement length in characters, rounded")
    insufficient_evidence: bool = False
