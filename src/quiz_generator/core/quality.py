"""
Quality metrics for accepted quizzes.
"""
import math
from typing import Optional

from quiz_generator.models.quality_models import DifficultyDistribution, QualityMetrics, TypeDistribution
from quiz_generator.models.quiz_models import GenerationResponse, QuizResult
from quiz_generator.models.request_models import Difficulty, QuestionType


def score_quiz(response: GenerationResponse) -> Optional[QualityMetrics]:
    """
    Compute descriptive metrics for a validated response.

    Returns None when the envelope carries an error or no result. Assumes the
    result has already been through validate_quiz_response.
    """
    if response.error is not None or response.result is None:
        return None

    result = QuizResult.model_validate(response.result)
    quiz = result.quiz
    questions = quiz.questions
    total = len(questions)

    difficulties = [question.difficulty for question in questions]
    question_types = [question.question_type for question in questions]
    total_citations = sum(len(question.citations) for question in questions)
    total_length = sum(len(question.statement) for question in questions)

    return QualityMetrics(
        total_questions=total,
        completeness=quiz.generated_count / quiz.requested_count if quiz.requested_count > 0 else 0.0,
        difficulty_distribution=DifficultyDistribution(
            low=difficulties.count(Difficulty.LOW),
            medium=difficulties.count(Difficulty.MEDIUM),
            high=difficulties.count(Difficulty.HIGH),
        ),
        type_distribution=TypeDistribution(
            multiple_choice=question_types.count(QuestionType.MULTIPLE_CHOICE),
            short_answer=question_types.count(QuestionType.SHORT_ANSWER),
            true_false=question_types.count(QuestionType.TRUE_FALSE),
        ),
        average_citations_per_question=total_citations / total if total else 0.0,
        average_statement_length=math.floor(total_length / total + 0.5) if total else 0,
        insufficient_evidence=result.notes.insufficient_evidence,
    )
