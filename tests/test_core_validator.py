"""
Unit tests for response validation and repair (validator.py).

Tests cover:
- Error pass-through and structural rejections
- Generated-count repair and duplicate removal
- True/false answer coercion
- Per-question option and citation checks
- Input immutability and idempotence
"""
import copy

import pytest

from quiz_generator.core.validator import coerce_true_false, normalize_statement, validate_quiz_response
from quiz_generator.models.quiz_models import ErrorInfo, GenerationResponse


def _validate(result):
    return validate_quiz_response(GenerationResponse(result=result))


# ============================================================================
# STRUCTURE TESTS
# ============================================================================

@pytest.mark.unit
class TestStructure:
    """Test structural acceptance and rejection."""

    def test_valid_result_accepted(self, sample_response):
        validated = validate_quiz_response(sample_response)

        assert validated.error is None
        assert validated.result["quiz"]["n_generadas"] == 3

    def test_error_passed_through_unchanged(self, rate_limit_response):
        validated = validate_quiz_response(rate_limit_response)

        assert validated is rate_limit_response

    def test_missing_result(self):
        response = GenerationResponse.model_construct(result=None, error=None)

        validated = validate_quiz_response(response)

        assert validated.error.message == "missing result"
        assert validated.error.code == "VALIDATION_ERROR"
        assert validated.error.where == "validate_quiz_response"

    @pytest.mark.parametrize("section", ["metadata", "summary", "quiz"])
    def test_missing_section(self, sample_result, section):
        del sample_result[section]

        validated = _validate(sample_result)

        assert validated.error.message.startswith("incomplete structure")
        assert section in validated.error.message

    def test_questions_not_a_list(self, sample_result):
        sample_result["quiz"]["preguntas"] = {"q1": "not a list"}

        validated = _validate(sample_result)

        assert "incomplete structure" in validated.error.message

    def test_empty_quiz_rejected(self, result_factory):
        validated = _validate(result_factory([]))

        assert validated.error.message == "quiz has no questions"

    def test_schema_violation_rejected(self, sample_result):
        sample_result["quiz"]["preguntas"][1]["dificultad"] = "extrema"

        validated = _validate(sample_result)

        assert validated.error.message.startswith("invalid quiz result")


# ============================================================================
# REPAIR TESTS
# ============================================================================

@pytest.mark.unit
class TestRepairs:
    """Test count repair, deduplication and coercion."""

    def test_generated_count_repaired(self, result_factory, question_factory):
        questions = [
            question_factory("q1"),
            question_factory("q2", statement="Which pigment absorbs light energy?"),
        ]

        validated = _validate(result_factory(questions, requested=5, generated=7))

        assert validated.result["quiz"]["n_generadas"] == 2
        assert validated.result["quiz"]["n_solicitadas"] == 5

    def test_duplicates_removed(self, result_factory, question_factory):
        questions = [
            question_factory("q1", statement="Where does the Calvin cycle take place?"),
            question_factory("q2", statement="  where does the   Calvin cycle take place?  "),
            question_factory("q3", statement="Which pigment absorbs light energy?"),
        ]

        validated = _validate(result_factory(questions))

        ids = [question["id"] for question in validated.result["quiz"]["preguntas"]]
        assert ids == ["q1", "q3"]
        assert validated.result["quiz"]["n_generadas"] == 2
        assert "Removed 1 duplicate question(s)" in validated.result["notes"]["detalle"]

    @pytest.mark.parametrize("answer,expected", [
        ("Verdadero", True),
        ("VERDADERO", True),
        ("true", True),
        ("True", True),
        ("Falso", False),
        ("falso", False),
        ("FALSE", False),
        (True, True),
        (False, False),
    ])
    def test_true_false_coerced(self, result_factory, question_factory, answer, expected):
        question = question_factory("q1", "verdadero_falso", answer=answer)

        validated = _validate(result_factory([question]))

        assert validated.error is None
        assert validated.result["quiz"]["preguntas"][0]["respuesta_correcta"] is expected

    @pytest.mark.parametrize("answer", ["maybe", "A", 1, None])
    def test_unrecognised_true_false_rejected(self, result_factory, question_factory, answer):
        question = question_factory("q1", "verdadero_falso")
        question["respuesta_correcta"] = answer

        validated = _validate(result_factory([question]))

        assert validated.error is not None
        assert "Question 1" in validated.error.message

    def test_coerce_helpers(self):
        assert coerce_true_false(" Sí ") is True
        assert coerce_true_false("no") is False
        assert coerce_true_false(0) is None
        assert normalize_statement("  A\n  b ") == "a b"


# ============================================================================
# PER-QUESTION CHECKS
# ============================================================================

@pytest.mark.unit
class TestQuestionChecks:
    """Test per-question rejection rules."""

    def test_multiple_choice_without_options(self, result_factory, question_factory):
        question = question_factory("q1")
        del question["opciones"]

        validated = _validate(result_factory([question]))

        assert "Question 1" in validated.error.message
        assert "options" in validated.error.message
        assert validated.error.context["question"] == 1

    def test_multiple_choice_with_one_option(self, result_factory, question_factory):
        question = question_factory("q1")
        question["opciones"] = question["opciones"][:1]

        validated = _validate(result_factory([question]))

        assert validated.error is not None

    def test_question_without_citations(self, result_factory, question_factory):
        questions = [
            question_factory("q1"),
            question_factory("q2", "respuesta_corta", citations=0, statement="Which pigment absorbs light?"),
        ]

        validated = _validate(result_factory(questions))

        assert validated.error.message == "Question 2: no citations"

    def test_question_not_an_object(self, result_factory):
        validated = _validate(result_factory(["not a question"]))

        assert "not an object" in validated.error.message


# ============================================================================
# PURITY TESTS
# ============================================================================

@pytest.mark.unit
class TestPurity:
    """Test immutability and idempotence."""

    def test_input_not_mutated(self, result_factory, question_factory):
        result = result_factory(
            [question_factory("q1", "verdadero_falso", answer="Verdadero")],
            generated=9
        )
        response = GenerationResponse(result=result)
        snapshot = copy.deepcopy(response.result)

        validate_quiz_response(response)

        assert response.result == snapshot

    def test_idempotent(self, sample_response):
        once = validate_quiz_response(sample_response)
        twice = validate_quiz_response(once)

        assert twice.result == once.result

    def test_error_envelope_untouched(self):
        response = GenerationResponse(error=ErrorInfo(message="boom", where="groq.invoke", provider="groq"))

        assert validate_quiz_response(response).error.provider == "groq"


# ============================================================================
# OPTIONAL FIELD TESTS
# ============================================================================

@pytest.mark.unit
class TestOptionalFields:
    """Fields outside the rejection rules are filled with defaults."""

    def test_null_notes(self, sample_result):
        sample_result["notes"] = None

        validated = _validate(sample_result)

        assert validated.error is None
        assert validated.result["notes"] == {"insuficiente_evidencia": False, "detalle": ""}

    def test_missing_notes(self, sample_result):
        del sample_result["notes"]

        assert _validate(sample_result).error is None

    @pytest.mark.parametrize("field", ["generado_en", "idioma", "nivel", "titulo"])
    def test_missing_metadata_field(self, sample_result, field):
        del sample_result["metadata"][field]

        validated = _validate(sample_result)

        assert validated.error is None
        assert validated.result["metadata"][field] == ""

    def test_missing_summary_overview(self, sample_result):
        del sample_result["summary"]["overview"]

        validated = _validate(sample_result)

        assert validated.error is None
        assert validated.result["summary"]["overview"] == ""

    def test_null_tags(self, sample_result):
        sample_result["quiz"]["preguntas"][0]["etiquetas"] = None

        validated = _validate(sample_result)

        assert validated.error is None
        assert validated.result["quiz"]["preguntas"][0]["etiquetas"] == []

    def test_null_summary_lists(self, sample_result):
        sample_result["summary"]["key_points"] = None
        sample_result["summary"]["sections"] = None

        validated = _validate(sample_result)

        assert validated.error is None
        assert validated.result["summary"]["sections"] == []

    def test_null_citations_still_rejected(self, sample_result):
        sample_result["quiz"]["preguntas"][0]["citas"] = None

        assert _validate(sample_result).error.message == "Question 1: no citations"
