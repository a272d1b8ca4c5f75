"""
Structural validation and repair of quiz generation responses.

The validator never touches the network and never mutates its input: it
works on a deep copy and returns a new envelope, either the repaired result
or a VALIDATION_ERROR rejection.

Repairs applied:
- duplicate questions (same normalized statement) are dropped
- quiz.n_generadas is reset to the actual number of questions
- true/false answers given as words are coerced to booleans
"""
import copy
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from quiz_generator.models.quiz_models import ErrorInfo, GenerationResponse, QuizResult
from quiz_generator.models.request_models import QuestionType

WHERE = "validate_quiz_response"

TRUE_WORDS = frozenset({"true", "yes", "verdadero", "sí", "si"})
FALSE_WORDS = frozenset({"false", "no", "falso"})

REQUIRED_SECTIONS = ("metadata", "summary", "quiz")


def reject(message: str, **context: Any) -> GenerationResponse:
    return GenerationResponse(error=ErrorInfo(
        message=message,
        where=WHERE,
        code="VALIDATION_ERROR",
        context=context,
    ))


def coerce_true_false(value: Any) -> Optional[bool]:
    """Map a true/false answer to a boolean, or None if it is not recognisable."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in TRUE_WORDS:
            return True
        if word in FALSE_WORDS:
            return False
    return None


def normalize_statement(statement: Any) -> str:
    return re.sub(r"\s+", " ", str(statement or "")).strip().lower()


def _deduplicate(questions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    seen = set()
    unique = []
    for question in questions:
        if not isinstance(question, dict):
            unique.append(question)
            continue
        key = normalize_statement(question.get("enunciado"))
        if key in seen:
            continue
        seen.add(key)
        unique.append(question)
    return unique


def _check_question(question: Any, index: int) -> Optional[GenerationResponse]:
    """Validate one question in place; return a rejection on the first violation."""
    number = index + 1
    if not isinstance(question, dict):
        return reject(f"Question {number}: not an object", question=number)

    question_type = question.get("tipo")

    if question_type == QuestionType.MULTIPLE_CHOICE.value:
        options = question.get("opciones")
        if not isinstance(options, list) or len(options) < 2:
            return reject(
                f"Question {number}: missing options for a multiple-choice question",
                question=number
            )

    if question_type == QuestionType.TRUE_FALSE.value:
        coerced = coerce_true_false(question.get("respuesta_correcta"))
        if coerced is None:
            return reject(
                f"Question {number}: true/false answer is not a boolean "
                f"({question.get('respuesta_correcta')!r})",
                question=number
            )
        question["respuesta_correcta"] = coerced

    citations = question.get("citas")
    if not isinstance(citations, list) or not citations:
        return reject(f"Question {number}: no citations", question=number)

    return None


def _first_model_error(error: PydanticValidationError) -> str:
    issue = error.errors()[0]
    location = ".".join(str(part) for part in issue["loc"])
    return f"{location}: {issue['msg']}" if location else issue["msg"]


def validate_quiz_response(response: GenerationResponse) -> GenerationResponse:
    """
    Check and repair a generation envelope.

    Args:
        response: Envelope returned by a provider adapter.

    Returns:
        The input unchanged if it already carries an error, a repaired copy if
        the result is acceptable, or a VALIDATION_ERROR envelope otherwise.
    """
    if response.error is not None:
        return response

    if response.result is None:
        return reject("missing result")

    result = copy.deepcopy(response.result)

    missing = [section for section in REQUIRED_SECTIONS if not result.get(section)]
    if missing:
        return reject(f"incomplete structure: missing {', '.join(missing)}", missing=missing)

    quiz = result["quiz"]
    if not isinstance(quiz, dict) or not isinstance(quiz.get("preguntas"), list):
        return reject("incomplete structure: quiz.preguntas is missing or not a list")
    if not quiz["preguntas"]:
        return reject("quiz has no questions")

    questions = _deduplicate(quiz["preguntas"])
    removed = len(quiz["preguntas"]) - len(questions)
    quiz["preguntas"] = questions
    quiz["n_generadas"] = len(questions)

    for index, question in enumerate(questions):
        rejection = _check_question(question, index)
        if rejection is not None:
            return rejection

    if removed:
        notes = result.get("notes") if isinstance(result.get("notes"), dict) else {}
        detail = f"Removed {removed} duplicate question(s)"
        notes["detalle"] = ". ".join(part for part in (notes.get("detalle"), detail) if part)
        notes.setdefault("insuficiente_evidencia", False)
        result["notes"] = notes

    try:
        quiz_result = QuizResult.model_validate(result)
    except PydanticValidationError as e:
        return reject(f"invalid quiz result: {_first_model_error(e)}", issues=len(e.errors()))

    return GenerationResponse(result=quiz_result.to_wire())
