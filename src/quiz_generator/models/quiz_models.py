"""
Pydantic models for the structured quiz returned by the LLM.

Field aliases carry the JSON keys requested in the prompt, so
``model_dump(by_alias=True)`` reproduces the wire format. Unknown keys are
kept (``extra="allow"``) so nothing the model returns is silently dropped.
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, model_validator

from quiz_generator.models.quality_models import QualityMetrics
from quiz_generator.models.request_models import Difficulty, QuestionType


class WireModel(BaseModel):
    """Base for models parsed from LLM output."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @model_validator(mode="before")
    @classmethod
    def drop_nulls_with_defaults(cls, data: Any) -> Any:
        """Treat null values as absent for fields that have a default."""
        if not isinstance(data, dict):
            return data
        optional = set()
        for name, field in cls.model_fields.items():
            if not field.is_required():
                optional.add(name)
                if field.alias:
                    optional.add(field.alias)
        return {key: value for key, value in data.items() if value is not None or key not in optional}

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Citation(WireModel):
    """Reference from a question or summary item back to a source chunk."""
    chunk_id: str = Field(description="Chunk identifier of the cited fragment")
    page: Optional[int] = Field(default=None, description="Page number, if any")
    evidence: Optional[str] = Field(
        default=None,
        alias="evidencia",
        description="Short quote (30 words or fewer) justifying the answer"
    )


class Source(WireModel):
    doc_id: str
    source_name: str


class Metadata(WireModel):
    title: str = Field(default="", alias="titulo")
    language: str = Field(default="", alias="idioma")
    level: str = Field(default="", alias="nivel")
    generated_at: str = Field(default="", alias="generado_en")
    sources: List[Source] = Field(default_factory=list, alias="fuentes")


class SummarySection(WireModel):
    title: str = Field(alias="titulo")
    ideas: List[str] = Field(default_factory=list)
    citations: List[Citation] = Field(default_factory=list, alias="citas")


class GlossaryTerm(WireModel):
    term: str = Field(alias="termino")
    definition: str = Field(alias="definicion")
    citations: List[Citation] = Field(default_factory=list, alias="citas")


class FormulaOrTable(WireModel):
    name: str = Field(alias="nombre")
    short_explanation: str = Field(alias="explicacion_breve")
    citations: List[Citation] = Field(default_factory=list, alias="citas")


class KeyExample(WireModel):
    description: str = Field(alias="descripcion")
    citations: List[Citation] = Field(default_factory=list, alias="citas")


class Summary(WireModel):
    """Structured content summary of the source documents."""
    overview: str = ""
    key_points: List[str] = Field(default_factory=list)
    sections: List[SummarySection] = Field(default_factory=list)
    glossary: List[GlossaryTerm] = Field(default_factory=list, alias="glosario")
    formulas_or_tables: List[FormulaOrTable] = Field(default_factory=list, alias="formulas_o_tablas")
    key_examples: List[KeyExample] = Field(default_factory=list, alias="ejemplos_clave")


class QuestionOption(WireModel):
    id: str
    text: str = Field(alias="texto")


class Question(WireModel):
    """A single quiz question with its answer and supporting citations."""
    id: str
    question_type: QuestionType = Field(alias="tipo")
    difficulty: Difficulty = Field(alias="dificultad")
    tags: List[str] = Field(default_factory=list, alias="etiquetas")
    statement: str = Field(min_length=10, alias="enunciado")
    options: Optional[List[QuestionOption]] = Field(default=None, alias="opciones")
    correct_answer: Union[StrictBool, StrictStr] = Field(alias="respuesta_correcta")
    explanation: str = Field(min_length=10, alias="explicacion")
    citations: List[Citation] = Field(min_length=1, alias="citas")

    @model_validator(mode="after")
    def check_answer_matches_type(self) -> "Question":
        if self.question_type == QuestionType.MULTIPLE_CHOICE:
            if not self.options or len(self.options) < 2:
                raise ValueError("multiple-choice questions need at least 2 options")
        if self.question_type == QuestionType.TRUE_FALSE:
            if not isinstance(self.correct_answer, bool):
                raise ValueError("true/false questions need a boolean answer")
        elif not isinstance(self.correct_answer, str):
            raise ValueError(f"{self.question_type.value} questions need a string answer")
        return self


class Quiz(WireModel):
    requested_count: int = Field(alias="n_solicitadas")
    generated_count: int = Field(alias="n_generadas")
    questions: List[Question] = Field(alias="preguntas")

    @model_validator(mode="after")
    def check_generated_count(self) -> "Quiz":
        if self.generated_count != len(self.questions):
            raise ValueError("n_generadas must match the number of questions")
        return self


class StudyTechnique(WireModel):
    technique: str = Field(alias="tecnica")
    description: Optional[str] = Field(default=None, alias="descripcion")
    why: Optional[str] = Field(default=None, alias="por_que")
    example: Optional[str] = Field(default=None, alias="ejemplo")


class CommonMistake(WireModel):
    mistake: str = Field(alias="error")
    correction: Optional[str] = Field(default=None, alias="correccion")


class ExtraResource(WireModel):
    kind: str = Field(alias="tipo")
    suggestion: str = Field(alias="sugerencia")


class ReviewPlan(WireModel):
    first_review: Optional[str] = Field(default=None, alias="primera_revision")
    weekly_review: Optional[str] = Field(default=None, alias="revision_semanal")
    before_exam: Optional[str] = Field(default=None, alias="antes_examen")


class StudyTips(WireModel):
    """Study advice tailored to the source material."""
    recommended_techniques: List[StudyTechnique] = Field(default_factory=list, alias="tecnicas_recomendadas")
    critical_points: List[str] = Field(default_factory=list, alias="puntos_criticos")
    key_connections: List[str] = Field(default_factory=list, alias="conexiones_clave")
    common_mistakes: List[CommonMistake] = Field(default_factory=list, alias="errores_comunes")
    extra_resources: List[ExtraResource] = Field(default_factory=list, alias="recursos_extra")
    review_plan: Optional[ReviewPlan] = Field(default=None, alias="plan_repaso")


class Notes(WireModel):
    insufficient_evidence: bool = Field(default=False, alias="insuficiente_evidencia")
    detail: str = Field(default="", alias="detalle")


class QuizResult(WireModel):
    """Accepted result payload: summary, quiz and study material."""
    metadata: Metadata
    summary: Summary
    quiz: Quiz
    study_tips: Optional[Union[StudyTips, List[str]]] = None
    notes: Notes = Field(default_factory=Notes)


class ErrorInfo(BaseModel):
    """Structured error reported in an envelope."""
    message: str
    where: str
    code: Optional[str] = None
    provider: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)


class GenerationResponse(BaseModel):
    """
    Envelope returned by every generation attempt.

    Exactly one of result or error is populated. The result stays a plain
    dict until the validator has checked and repaired it.
    """
    result: Optional[Dict[str, Any]] = None
    error: Optional[ErrorInfo] = None

    @model_validator(mode="after")
    def check_exactly_one(self) -> "GenerationResponse":
        if self.result is None and self.error is None:
            raise ValueError("response must have a result or an error")
        if self.result is not None and self.error is not None:
            raise ValueError("response cannot have both a result and an error")
        return self

    @property
    def ok(self) -> bool:
        return self.error is None


class ValidatedQuiz(BaseModel):
    """Final output of the generation pipeline."""
    result: Optional[QuizResult] = None
    error: Optional[ErrorInfo] = None
    quality_metrics: Optional[QualityMetrics] = None
    provider: Optional[str] = Field(default=None, description="Provider whose response was accepted")
