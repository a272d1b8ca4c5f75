"""
Configuration file for the Study Quiz Generator.

Modify these values to customize provider defaults, the retry/timeout
policy and the instructions sent to the model.
"""
import os
from typing import List, Mapping, Optional

from quiz_generator.models.request_models import AIProviderConfig, ProviderName, ProviderSettings
from quiz_generator.utils.errors import ConfigurationError

# Model Configuration
DEFAULT_MODELS = {
    ProviderName.OPENAI: "gpt-4o-mini",
    ProviderName.GROQ: "llama-3.1-8b-instant",
    ProviderName.ANTHROPIC: "claude-3-5-sonnet-20241022",
    ProviderName.GEMINI: "gemini-2.5-flash",
}

PROVIDER_LABELS = {
    ProviderName.OPENAI: "OpenAI",
    ProviderName.GROQ: "Groq",
    ProviderName.ANTHROPIC: "Claude",
    ProviderName.GEMINI: "Gemini",
}

OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
GROQ_API_URL = "https://api.groq.com/openai/v1/chat/completions"
ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_API_VERSION = "2023-06-01"

# Sampling Configuration
TEMPERATURE = 0.3
MAX_OUTPUT_TOKENS = 3000
HTTP_TIMEOUT_SECONDS = 90.0

# Resilience Configuration
PRIMARY_MAX_ATTEMPTS = 3
PRIMARY_TIMEOUT_SECONDS = 60.0
FALLBACK_MAX_ATTEMPTS = 2
FALLBACK_TIMEOUT_SECONDS = 45.0
RETRY_BASE_DELAY_SECONDS = 1.0

# Fallback Configuration
FALLBACK_ELIGIBLE_PROVIDER = ProviderName.OPENAI
FALLBACK_ORDER = [ProviderName.GROQ, ProviderName.GEMINI]
RATE_LIMIT_KEYWORDS = (
    "rate limit",
    "rate_limit",
    "ratelimit",
    "quota",
    "usage",
    "too many requests",
    "resource_exhausted",
)

# Content Checks
MIN_CONTENT_CHARACTERS = 500
CHARACTERS_PER_WORD = 5
WORDS_PER_QUESTION = 50

# Output Configuration
OUTPUT_DIR = "output"
QUIZ_OUTPUT_FILE = "quiz.json"

# Environment variables holding credentials and model overrides
API_KEY_ENV_VARS = {
    ProviderName.OPENAI: "OPENAI_API_KEY",
    ProviderName.GROQ: "GROQ_API_KEY",
    ProviderName.ANTHROPIC: "ANTHROPIC_API_KEY",
    ProviderName.GEMINI: "GEMINI_API_KEY",
}
MODEL_ENV_VARS = {
    ProviderName.GROQ: "GROQ_MODEL",
    ProviderName.GEMINI: "GEMINI_MODEL",
}

# System Instruction
SYSTEM_PROMPT = """You are a study material generator. From the content supplied by the user you produce:
(1) a structured SUMMARY faithful to the text, and
(2) a QUIZ of high-quality questions, citing the exact origin of every item.

Strict rules:
- Use ONLY the content of the supplied context (chunks/pages). Do not invent or add outside knowledge.
- Keep factual precision. If there is not enough evidence to cover a point or a question, leave it out.
- If the content is insufficient for the requested number of questions, generate as many as you can with quality and set "n_generadas" accordingly.
- Always cite the source fragment(s) by chunk id and page number (when available).
- Multiple-choice questions must have EXACTLY one correct answer and plausible distractors (avoid "All/None of the above").
- For true/false questions, "respuesta_correcta" must be EXACTLY true or false (booleans, not strings).
- For multiple-choice and short-answer questions, "respuesta_correcta" must be a string.
- Balance difficulty: ~40% "baja", ~40% "media", ~20% "alta" (adjust if the level requires it).
- Language: write in the language requested by the user.
- Output format: return **only** valid JSON matching the SCHEMA given by the user. No text outside the JSON, no comments.
- IMPORTANT: If the content is very limited, set "insuficiente_evidencia": true in notes and explain why in "detalle".

Citation policy:
- Every question must include at least one citation with {"chunk_id","page","evidencia"}.
- "evidencia" is a short quote (30 words or fewer) taken from the context that justifies the answer.

Quality control:
- Avoid ambiguity, double negatives and confusing wording.
- Check that every question has an answer verifiable in the cited fragment(s).
- If you cannot generate the requested number of questions with evidence, generate fewer and explain why in `result.notes`.

Mandatory output (JSON):
- Return a root object with the EXACT shape described in the user's SCHEMA.
- If for any reason you cannot follow the format, return an object {"error":{"message":"...","where":"..."}}.
"""


def _build_config(
    name: ProviderName,
    environ: Mapping[str, str],
    model: Optional[str] = None
) -> AIProviderConfig:
    env_model = environ.get(MODEL_ENV_VARS[name]) if name in MODEL_ENV_VARS else None
    return AIProviderConfig(
        name=name,
        model=model or env_model or DEFAULT_MODELS[name],
        api_key=environ.get(API_KEY_ENV_VARS[name], "")
    )


def load_provider_settings(environ: Optional[Mapping[str, str]] = None) -> ProviderSettings:
    """
    Build the provider chain from environment variables.

    AI_PROVIDER selects the primary (default: openai) and AI_MODEL overrides
    its model. Fallback candidates follow FALLBACK_ORDER; those without a key
    are still listed so the orchestrator can log that they were skipped.

    Raises:
        ConfigurationError: If AI_PROVIDER is unknown or has no API key.
    """
    environ = os.environ if environ is None else environ

    provider_value = (environ.get("AI_PROVIDER") or FALLBACK_ELIGIBLE_PROVIDER.value).strip().lower()
    try:
        primary_name = ProviderName(provider_value)
    except ValueError:
        raise ConfigurationError(
            f"Unsupported AI provider: {provider_value}",
            {"supported": [name.value for name in ProviderName]}
        )

    primary = _build_config(primary_name, environ, model=environ.get("AI_MODEL"))
    if not primary.has_credentials:
        env_var = API_KEY_ENV_VARS[primary_name]
        raise ConfigurationError(
            f"Missing configuration: {env_var}",
            {"missing_fields": [env_var], "provider": primary_name.value}
        )

    fallbacks: List[AIProviderConfig] = [
        _build_config(name, environ) for name in FALLBACK_ORDER if name != primary_name
    ]
    return ProviderSettings(primary=primary, fallbacks=fallbacks)
