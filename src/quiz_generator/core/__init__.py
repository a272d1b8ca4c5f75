"""
Core functionality: prompts, provider adapters, resilience, validation,
quality scoring and orchestration.
"""

from quiz_generator.core.generator import QuizGenerator, generate_validated_quiz
from quiz_generator.core.prompts import PromptPair, build_prompt
from quiz_generator.core.providers import ProviderAdapter, build_adapter_registry
from quiz_generator.core.quality import score_quiz
from quiz_generator.core.resilience import retry_with_backoff, with_timeout
from quiz_generator.core.validator import validate_quiz_response

__all__ = [
    "QuizGenerator",
    "generate_validated_quiz",
    "PromptPair",
    "build_prompt",
    "ProviderAdapter",
    "build_adapter_registry",
    "score_quiz",
    "retry_with_backoff",
    "with_timeout",
    "validate_quiz_response",
]
