"""
Study Quiz Generator.

A Python package that turns extracted document text into a validated study
quiz by orchestrating LLM providers with retry, timeout and fallback.
"""

__version__ = "1.0.0"
__author__ = "Study Quiz Development Team"

from quiz_generator.core.generator import QuizGenerator, generate_validated_quiz
from quiz_generator.core.validator import validate_quiz_response

__all__ = [
    "QuizGenerator",
    "generate_validated_quiz",
    "validate_quiz_response",
]
