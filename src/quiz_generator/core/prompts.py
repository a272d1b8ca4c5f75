"""
Prompt construction for quiz generation.

The user prompt embeds a literal example of the JSON the model must return.
That example is built from the same field names the validator checks, and
the validator accepts it unchanged (see tests/test_core_prompts.py).
"""
import json
from datetime import datetime
from typing import Any, Dict, List, NamedTuple, Union

from quiz_generator import config
from quiz_generator.models.request_models import GenerationRequest, QuestionType


class PromptPair(NamedTuple):
    """System and user messages sent to a provider."""
    system: str
    user: str


def _timestamp(generated_at: Union[datetime, str]) -> str:
    if isinstance(generated_at, datetime):
        return generated_at.isoformat()
    return generated_at


def _to_json(value: Any, indent: int = 2) -> str:
    return json.dumps(value, indent=indent, ensure_ascii=False)


def serialize_documents(request: GenerationRequest) -> List[Dict[str, Any]]:
    """Documents as they are embedded in the prompt context."""
    return [
        document.model_dump(mode="json", exclude_none=True)
        for document in request.documents
    ]


def build_output_example(request: GenerationRequest, generated_at: Union[datetime, str]) -> Dict[str, Any]:
    """
    Literal example of the response envelope the model must produce.

    Contains one question of each type so the expected option list and the
    boolean true/false answer are both shown.
    """
    citation = {"chunk_id": "c2", "page": 2, "evidencia": "short quote (30 words or fewer)"}
    questions = [
        {
            "id": "q1",
            "tipo": QuestionType.MULTIPLE_CHOICE.value,
            "dificultad": "baja",
            "etiquetas": ["topic1", "topic2"],
            "enunciado": "Clear, unambiguous question text",
            "opciones": [
                {"id": "A", "texto": "..."},
                {"id": "B", "texto": "..."},
                {"id": "C", "texto": "..."},
                {"id": "D", "texto": "..."},
            ],
            "respuesta_correcta": "A",
            "explicacion": "Brief justification (1-3 sentences) based on the context.",
            "citas": [citation],
        },
        {
            "id": "q2",
            "tipo": QuestionType.SHORT_ANSWER.value,
            "dificultad": "media",
            "etiquetas": ["topic1"],
            "enunciado": "Question answered with a short phrase",
            "respuesta_correcta": "Expected short answer",
            "explicacion": "Brief justification (1-3 sentences) based on the context.",
            "citas": [citation],
        },
        {
            "id": "q3",
            "tipo": QuestionType.TRUE_FALSE.value,
            "dificultad": "alta",
            "etiquetas": ["topic2"],
            "enunciado": "Statement to judge as true or false",
            "respuesta_correcta": True,
            "explicacion": "Brief justification (1-3 sentences) based on the context.",
            "citas": [citation],
        },
    ]
    return {
        "result": {
            "metadata": {
                "titulo": request.title,
                "idioma": request.language,
                "nivel": request.level.value,
                "generado_en": _timestamp(generated_at),
                "fuentes": [
                    {"doc_id": document.doc_id, "source_name": document.source_name}
                    for document in request.documents
                ],
            },
            "summary": {
                "overview": "3-6 sentences capturing the central topic and purpose.",
                "key_points": ["Key point 1...", "Key point 2..."],
                "sections": [
                    {
                        "titulo": "Section or topic name",
                        "ideas": ["idea 1", "idea 2", "idea 3"],
                        "citas": [citation],
                    }
                ],
                "glosario": [
                    {"termino": "...", "definicion": "...", "citas": [{"chunk_id": "c1", "page": 1}]}
                ],
                "formulas_o_tablas": [
                    {"nombre": "...", "explicacion_breve": "...", "citas": [{"chunk_id": "c2", "page": 2}]}
                ],
                "ejemplos_clave": [
                    {"descripcion": "...", "citas": [{"chunk_id": "c3", "page": 3}]}
                ],
            },
            "quiz": {
                "n_solicitadas": request.num_questions,
                "n_generadas": len(questions),
                "preguntas": questions,
            },
            "study_tips": {
                "tecnicas_recomendadas": [
                    {
                        "tecnica": "Technique name (e.g. concept maps, flashcards, spaced practice)",
                        "descripcion": "How to apply it to this content",
                        "por_que": "Why it works for this material",
                        "ejemplo": "Concrete example using a concept from the document",
                    }
                ],
                "puntos_criticos": ["Concept that needs special attention"],
                "conexiones_clave": ["Important relationship between concepts"],
                "errores_comunes": [
                    {"error": "Typical misconception", "correccion": "How to avoid it"}
                ],
                "recursos_extra": [
                    {"tipo": "exercises|reading|video|practice", "sugerencia": "Kind of resource (no URLs)"}
                ],
                "plan_repaso": {
                    "primera_revision": "What to review in the next 24 hours",
                    "revision_semanal": "What to practise during the week",
                    "antes_examen": "What to go over right before an exam",
                },
            },
            "notes": {
                "insuficiente_evidencia": False,
                "detalle": "",
            },
        }
    }


def build_user_prompt(request: GenerationRequest, generated_at: Union[datetime, str]) -> str:
    """Per-call user directive with parameters, documents and the output schema."""
    counts = request.type_proportions.counts_for(request.num_questions)
    proportions = request.type_proportions.model_dump(by_alias=True)
    n = request.num_questions
    mcq = counts[QuestionType.MULTIPLE_CHOICE]
    short = counts[QuestionType.SHORT_ANSWER]
    true_false = counts[QuestionType.TRUE_FALSE]

    return f"""# INSTRUCTIONS
Process the documents and return a SUMMARY and a QUIZ in the requested language, following the JSON schema below.
Do not use outside knowledge. Cite the fragments you use.

# PARAMETERS
output_language: "{request.language}"
target_level: "{request.level.value}"
n_preguntas: {n}
allowed_types: {_to_json([t.value for t in request.allowed_types], indent=None)}
type_proportions: {_to_json(proportions, indent=None)}

REQUIRED DISTRIBUTION (MUST BE MET EXACTLY):
- Multiple-choice questions: {mcq} of {n}
- Short-answer questions: {short} of {n}
- True/false questions: {true_false} of {n}

priority_topics: {_to_json(request.priority_topics, indent=None)}
max_citations_per_question: {request.max_citations_per_question}

# AUTHORIZED CONTEXT (DOCUMENTS)
documents: {_to_json(serialize_documents(request))}

# OUTPUT SCHEMA (RETURN ONLY THIS JSON)
{_to_json(build_output_example(request, generated_at))}

# ADDITIONAL RULES
Coverage: spread the questions over the priority topics and the most relevant summary sections.
Type distribution: generate exactly {mcq} "opcion_multiple", {short} "respuesta_corta" and {true_false} "verdadero_falso" questions. Do not adjust these proportions yourself.
Clarity: avoid statements that depend on outside context ("as seen in class...").
Verifiability: every explanation must be traceable to the included citations.
Consistency: set quiz.n_generadas to the number of questions you actually return.
Study tips: make them SPECIFIC to this content and adapted to the "{request.level.value}" level; suggest at least 3 different techniques and at least 2 common mistakes.
"""


def build_prompt(request: GenerationRequest, generated_at: Union[datetime, str]) -> PromptPair:
    """Build the (system, user) prompt pair for a request."""
    return PromptPair(system=config.SYSTEM_PROMPT, user=build_user_prompt(request, generated_at))
