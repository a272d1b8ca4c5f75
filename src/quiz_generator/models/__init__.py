"""
Data models for quiz generation requests, responses and quality metrics.
"""

from quiz_generator.models.request_models import (
    AIProviderConfig,
    Difficulty,
    Document,
    DocumentType,
    GenerationRequest,
    Page,
    ProviderName,
    ProviderSettings,
    QuestionType,
    StudyLevel,
    TypeProportions,
)
from quiz_generator.models.quiz_models import (
    Citation,
    ErrorInfo,
    GenerationResponse,
    Metadata,
    Notes,
    Question,
    QuestionOption,
    Quiz,
    QuizResult,
    Summary,
    ValidatedQuiz,
)
from quiz_generator.models.quality_models import (
    DifficultyDistribution,
    QualityMetrics,
    TypeDistribution,
)

__all__ = [
    "AIProviderConfig",
    "Difficulty",
    "Document",
    "DocumentType",
    "GenerationRequest",
    "Page",
    "ProviderName",
    "ProviderSettings",
    "QuestionType",
    "StudyLevel",
    "TypeProportions",
    "Citation",
    "ErrorInfo",
    "GenerationResponse",
    "Metadata",
    "Notes",
    "Question",
    "QuestionOption",
    "Quiz",
    "QuizResult",
    "Summary",
    "ValidatedQuiz",
    "DifficultyDistribution",
    "QualityMetrics",
    "TypeDistribution",
]
