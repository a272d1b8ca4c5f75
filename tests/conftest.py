"""
Pytest configuration and shared fixtures for Study Quiz Generator tests.

This module provides reusable request, response and provider fixtures so
individual test modules stay focused on behaviour.
"""
import copy
import json
import logging
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List
from unittest.mock import MagicMock, Mock

import httpx
import pytest

from quiz_generator.core.prompts import PromptPair
from quiz_generator.core.providers import ProviderAdapter
from quiz_generator.models.quiz_models import ErrorInfo, GenerationResponse
from quiz_generator.models.request_models import (
    AIProviderConfig,
    GenerationRequest,
    ProviderName,
    ProviderSettings,
)
from quiz_generator.utils.observability import Observability


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow running tests")
    config.addinivalue_line("markers", "api: Tests requiring API access")


# ============================================================================
# ENVIRONMENT FIXTURES
# ============================================================================

PROVIDER_ENV_VARS = (
    "AI_PROVIDER", "AI_MODEL", "OPENAI_API_KEY", "ANTHROPIC_API_KEY",
    "GROQ_API_KEY", "GROQ_MODEL", "GEMINI_API_KEY", "GEMINI_MODEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Environment with no provider variables set."""
    for name in PROVIDER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_env_vars(clean_env, monkeypatch):
    """Mock provider credentials in the environment."""
    values = {
        "OPENAI_API_KEY": "test-openai-key-12345",
        "GROQ_API_KEY": "test-groq-key-12345",
        "GEMINI_API_KEY": "test-gemini-key-12345",
    }
    for name, value in values.items():
        monkeypatch.setenv(name, value)
    return values


# ============================================================================
# FILE SYSTEM FIXTURES
# ============================================================================

@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ============================================================================
# REQUEST FIXTURES
# ============================================================================

PHOTOSYNTHESIS_TEXT = (
    "Photosynthesis is the process by which green plants use sunlight, water and carbon "
    "dioxide to produce glucose and oxygen. It takes place mainly in the chloroplasts of "
    "leaf cells, which contain the pigment chlorophyll. The light-dependent reactions occur "
    "in the thylakoid membranes and produce ATP and NADPH. The Calvin cycle, which happens "
    "in the stroma, uses that chemical energy to fix carbon dioxide into sugars. "
)


@pytest.fixture
def sample_request_data() -> Dict[str, Any]:
    """Wire-format generation request with a pdf and a notes document."""
    return {
        "idioma": "es",
        "nivel": "universidad",
        "n_preguntas": 5,
        "tipos_permitidos": ["opcion_multiple", "respuesta_corta", "verdadero_falso"],
        "proporcion_tipos": {
            "opcion_multiple": 0.6,
            "respuesta_corta": 0.2,
            "verdadero_falso": 0.2,
        },
        "temas_prioritarios": ["fotosíntesis", "ciclo de Calvin"],
        "documents": [
            {
                "doc_id": "doc-bio-01",
                "source_name": "Biologia_Capitulo_3.pdf",
                "type": "pdf",
                "pages": [
                    {"page": 1, "chunk_id": "c1", "text": PHOTOSYNTHESIS_TEXT * 4},
                    {"page": 2, "chunk_id": "c2", "text": PHOTOSYNTHESIS_TEXT * 4},
                ],
            },
            {
                "doc_id": "notes-7",
                "source_name": "Apuntes de clase",
                "type": "notes",
                "text": PHOTOSYNTHESIS_TEXT * 2,
            },
        ],
        "titulo_quiz_o_tema": "Fotosíntesis",
    }


@pytest.fixture
def sample_request(sample_request_data) -> GenerationRequest:
    return GenerationRequest.model_validate(sample_request_data)


# ============================================================================
# QUIZ RESULT FIXTURES
# ============================================================================

def make_question(
    question_id: str = "q1",
    question_type: str = "opcion_multiple",
    difficulty: str = "baja",
    citations: int = 1,
    statement: str = "Where does the Calvin cycle take place?",
    answer: Any = None
) -> Dict[str, Any]:
    """Build a well-formed question dict of the given type."""
    question: Dict[str, Any] = {
        "id": question_id,
        "tipo": question_type,
        "dificultad": difficulty,
        "etiquetas": ["calvin"],
        "enunciado": statement,
        "explicacion": "The text states the Calvin cycle happens in the stroma.",
        "citas": [
            {"chunk_id": f"c{i + 1}", "page": i + 1, "evidencia": "happens in the stroma"}
            for i in range(citations)
        ],
    }
    if question_type == "opcion_multiple":
        question["opciones"] = [
            {"id": "A", "texto": "Stroma"},
            {"id": "B", "texto": "Thylakoid"},
            {"id": "C", "texto": "Nucleus"},
            {"id": "D", "texto": "Cell wall"},
        ]
        question["respuesta_correcta"] = "A" if answer is None else answer
    elif question_type == "verdadero_falso":
        question["respuesta_correcta"] = True if answer is None else answer
    else:
        question["respuesta_correcta"] = "In the stroma" if answer is None else answer
    return question


def make_result(questions: List[Dict[str, Any]], requested: int = None, generated: int = None) -> Dict[str, Any]:
    """Build a complete result payload around the given questions."""
    return {
        "metadata": {
            "titulo": "Fotosíntesis",
            "idioma": "es",
            "nivel": "universidad",
            "generado_en": "2025-01-15T10:30:00+00:00",
            "fuentes": [{"doc_id": "doc-bio-01", "source_name": "Biologia_Capitulo_3.pdf"}],
        },
        "summary": {
            "overview": "Photosynthesis converts light energy into chemical energy.",
            "key_points": ["Light reactions make ATP", "The Calvin cycle fixes carbon"],
            "sections": [
                {
                    "titulo": "Calvin cycle",
                    "ideas": ["Occurs in the stroma"],
                    "citas": [{"chunk_id": "c2", "page": 2}],
                }
            ],
        },
        "quiz": {
            "n_solicitadas": len(questions) if requested is None else requested,
            "n_generadas": len(questions) if generated is None else generated,
            "preguntas": questions,
        },
        "study_tips": ["Draw the Calvin cycle from memory"],
        "notes": {"insuficiente_evidencia": False, "detalle": ""},
    }


@pytest.fixture
def question_factory() -> Callable[..., Dict[str, Any]]:
    return make_question


@pytest.fixture
def result_factory() -> Callable[..., Dict[str, Any]]:
    return make_result


@pytest.fixture
def sample_result() -> Dict[str, Any]:
    """A valid result with one question of each type."""
    return make_result([
        make_question("q1", "opcion_multiple", "baja"),
        make_question("q2", "respuesta_corta", "media", statement="Which pigment absorbs light energy?"),
        make_question("q3", "verdadero_falso", "alta", statement="The Calvin cycle happens in the thylakoids."),
    ])


@pytest.fixture
def sample_response(sample_result) -> GenerationResponse:
    return GenerationResponse(result=copy.deepcopy(sample_result))


@pytest.fixture
def rate_limit_response() -> GenerationResponse:
    return GenerationResponse(error=ErrorInfo(
        message="Rate limit exceeded for requests",
        where="openai.invoke",
        code="AI_PROVIDER_ERROR",
        provider="openai",
    ))


# ============================================================================
# PROVIDER FIXTURES
# ============================================================================

@pytest.fixture
def openai_config() -> AIProviderConfig:
    return AIProviderConfig(name=ProviderName.OPENAI, model="gpt-4o-mini", api_key="sk-test")


@pytest.fixture
def provider_settings(openai_config) -> ProviderSettings:
    return ProviderSettings(
        primary=openai_config,
        fallbacks=[
            AIProviderConfig(name=ProviderName.GROQ, api_key="gsk-test"),
            AIProviderConfig(name=ProviderName.GEMINI, api_key="gem-test"),
        ],
    )


@pytest.fixture
def sample_prompt() -> PromptPair:
    return PromptPair(system="system directive", user="user directive")


class FakeAdapter(ProviderAdapter):
    """Scripted adapter: each call pops the next outcome (response or exception)."""

    def __init__(self, name: ProviderName, outcomes: List[Any]):
        self.name = name
        self.outcomes = list(outcomes)
        self.calls: List[AIProviderConfig] = []

    async def invoke(self, prompt, provider_config):
        self.calls.append(provider_config)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def fake_adapter_factory() -> Callable[[ProviderName, List[Any]], FakeAdapter]:
    return FakeAdapter


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def observability() -> Observability:
    return Observability(logging.getLogger("quiz_generator.tests"))


# ============================================================================
# MOCK HTTP / SDK FIXTURES
# ============================================================================

def chat_completion_body(content: str) -> Dict[str, Any]:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def mock_http_client_factory():
    """
    Build an httpx.AsyncClient whose requests are answered by a handler.

    The returned client records every request in `client.requests`.
    """
    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        requests: List[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
        client.requests = requests
        return client

    return factory


@pytest.fixture
def mock_genai_client():
    """Create a mock Google GenAI client with an async models API."""
    client = MagicMock()
    client.aio = MagicMock()
    client.aio.models = MagicMock()
    return client


@pytest.fixture
def mock_genai_response(sample_result):
    """Mock Gemini response carrying a valid result envelope."""
    mock_response = Mock()
    mock_response.text = json.dumps({"result": sample_result})
    return mock_response
