"""
Pydantic models for quiz generation requests and provider configuration.

Wire names follow the JSON contract shared with the request handler
(Spanish keys); attributes use English names through field aliases.
"""
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class StudyLevel(str, Enum):
    """Target study level of the generated material."""
    SECONDARY = "secundaria"
    UNIVERSITY = "universidad"
    PROFESSIONAL = "profesional"


class QuestionType(str, Enum):
    """Supported question types."""
    MULTIPLE_CHOICE = "opcion_multiple"
    SHORT_ANSWER = "respuesta_corta"
    TRUE_FALSE = "verdadero_falso"


class Difficulty(str, Enum):
    """Question difficulty tags."""
    LOW = "baja"
    MEDIUM = "media"
    HIGH = "alta"


class DocumentType(str, Enum):
    PDF = "pdf"
    NOTES = "notes"


class ProviderName(str, Enum):
    """LLM backends with an adapter implementation."""
    OPENAI = "openai"
    GROQ = "groq"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


class Page(BaseModel):
    """A page-scoped chunk of extracted document text."""
    model_config = ConfigDict(frozen=True)

    page: int = Field(ge=1, description="Page number (1-based)")
    chunk_id: str = Field(min_length=1, description="Stable chunk identifier used for citations")
    text: str = Field(min_length=1, description="Extracted text of the chunk")


class Document(BaseModel):
    """Source document, either page-chunked (pdf) or a raw notes blob."""
    model_config = ConfigDict(frozen=True)

    doc_id: str = Field(min_length=1, description="Document identifier")
    source_name: str = Field(min_length=1, description="Display name of the source")
    type: DocumentType = Field(description="'pdf' or 'notes'")
    pages: Optional[List[Page]] = Field(default=None, description="Pages of a pdf document")
    text: Optional[str] = Field(default=None, description="Raw text of a notes document")

    @model_validator(mode="after")
    def check_content(self) -> "Document":
        if self.type == DocumentType.PDF and not self.pages:
            raise ValueError("pdf documents must have pages")
        if self.type == DocumentType.NOTES and not self.text:
            raise ValueError("notes documents must have text")
        return self

    def text_length(self) -> int:
        if self.text:
            return len(self.text)
        return sum(len(page.text) for page in self.pages or [])


class TypeProportions(BaseModel):
    """Fraction of questions per type; fractions must sum to 1.0."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    multiple_choice: float = Field(ge=0.0, le=1.0, alias="opcion_multiple")
    short_answer: float = Field(ge=0.0, le=1.0, alias="respuesta_corta")
    true_false: float = Field(ge=0.0, le=1.0, alias="verdadero_falso")

    @model_validator(mode="after")
    def check_sum(self) -> "TypeProportions":
        total = self.multiple_choice + self.short_answer + self.true_false
        if abs(total - 1.0) >= 0.01:
            raise ValueError(f"type proportions must sum to 1.0 (got {total:.3f})")
        return self

    def counts_for(self, num_questions: int) -> Dict[QuestionType, int]:
        """Per-type question counts requested from the model."""
        return {
            QuestionType.MULTIPLE_CHOICE: round(self.multiple_choice * num_questions),
            QuestionType.SHORT_ANSWER: round(self.short_answer * num_questions),
            QuestionType.TRUE_FALSE: round(self.true_false * num_questions),
        }


class GenerationRequest(BaseModel):
    """Parameters of a single quiz generation request."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    language: str = Field(min_length=1, alias="idioma", description="Output language code")
    level: StudyLevel = Field(alias="nivel")
    num_questions: int = Field(ge=1, le=50, alias="n_preguntas")
    allowed_types: List[QuestionType] = Field(
        default_factory=lambda: list(QuestionType),
        min_length=1,
        alias="tipos_permitidos"
    )
    type_proportions: TypeProportions = Field(alias="proporcion_tipos")
    priority_topics: List[str] = Field(default_factory=list, alias="temas_prioritarios")
    documents: List[Document] = Field(min_length=1)
    title: str = Field(min_length=1, alias="titulo_quiz_o_tema")
    max_citations_per_question: int = Field(default=2, ge=1, le=5, alias="max_citas_por_pregunta")

    def total_text_length(self) -> int:
        return sum(document.text_length() for document in self.documents)


class AIProviderConfig(BaseModel):
    """Credentials and model for one LLM backend."""
    model_config = ConfigDict(frozen=True)

    name: ProviderName
    model: Optional[str] = Field(default=None, description="Model identifier; provider default when omitted")
    api_key: str = Field(default="", repr=False)

    @field_validator("api_key")
    @classmethod
    def strip_api_key(cls, value: str) -> str:
        return value.strip()

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)


class ProviderSettings(BaseModel):
    """Primary provider plus the ordered fallback candidates for one request."""
    model_config = ConfigDict(frozen=True)

    primary: AIProviderConfig
    fallbacks: List[AIProviderConfig] = Field(default_factory=list)
