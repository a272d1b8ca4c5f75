"""
LLM provider adapters.

Each adapter turns a PromptPair into one outbound request and returns a
GenerationResponse envelope. HTTP errors and unusable payloads come back as
error envelopes; only transport failures are raised, so the retry layer in
the orchestrator can back off on them.

Adapters:
- OpenAIAdapter / GroqAdapter: OpenAI-compatible chat completions over httpx
- AnthropicAdapter: Anthropic messages API over httpx
- GeminiAdapter: Google Gemini through the google-genai SDK
"""
import json
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import ValidationError as PydanticValidationError

from quiz_generator import config
from quiz_generator.core.prompts import PromptPair
from quiz_generator.models.quiz_models import ErrorInfo, GenerationResponse
from quiz_generator.models.request_models import AIProviderConfig, ProviderName
from quiz_generator.utils.errors import AIProviderError


def provider_error(
    message: str,
    provider: ProviderName,
    where: str,
    **context: Any
) -> GenerationResponse:
    """Error envelope tagged as an AI provider failure."""
    return GenerationResponse(error=ErrorInfo(
        message=message,
        where=where,
        code="AI_PROVIDER_ERROR",
        provider=provider.value,
        context=context,
    ))


def describe_http_error(status_code: int, reason: str, body: str) -> str:
    """Human-readable description of a non-success HTTP response."""
    if "<!DOCTYPE" in body or "<html" in body:
        return f"API Error ({status_code}): HTML response received instead of JSON"
    try:
        payload = json.loads(body)
    except ValueError:
        return body.strip() or f"HTTP {status_code}: {reason}"
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return body.strip() or f"HTTP {status_code}: {reason}"


def parse_model_output(content: Optional[str], provider: ProviderName, where: str) -> GenerationResponse:
    """
    Parse the model's textual payload into an envelope.

    Accepts either the full {"result": ...} / {"error": ...} envelope or a bare
    result object (one with a "quiz" key).
    """
    label = config.PROVIDER_LABELS[provider]
    if not content or not content.strip():
        return provider_error(f"Empty response from {label}", provider, where, reason="empty_response")

    text = content.strip()
    if not (text.endswith("}") or text.endswith("]")):
        return provider_error(
            "The response looks truncated (does not end with } or ])",
            provider, where, reason="truncated_response", length=len(text)
        )

    try:
        payload = json.loads(text)
    except ValueError as e:
        return provider_error(f"Error parsing JSON: {e}", provider, where, reason="json_parse_failure")

    if isinstance(payload, dict) and "result" not in payload and "error" not in payload and "quiz" in payload:
        payload = {"result": payload}

    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        payload["error"].setdefault("where", where)

    try:
        response = GenerationResponse.model_validate(payload)
    except PydanticValidationError as e:
        return provider_error(
            f"Malformed response envelope from {label}",
            provider, where, reason="invalid_envelope", issues=len(e.errors())
        )

    if response.error is not None and not response.error.provider:
        response = GenerationResponse(error=response.error.model_copy(update={"provider": provider.value}))
    return response


class ProviderAdapter(ABC):
    """Uniform interface over one LLM backend."""

    name: ProviderName

    @property
    def label(self) -> str:
        return config.PROVIDER_LABELS[self.name]

    @property
    def where(self) -> str:
        return f"{self.name.value}.invoke"

    def resolve_model(self, provider_config: AIProviderConfig) -> str:
        return provider_config.model or config.DEFAULT_MODELS[self.name]

    @abstractmethod
    async def invoke(self, prompt: PromptPair, provider_config: AIProviderConfig) -> GenerationResponse:
        """Send the prompt to the provider and return the parsed envelope."""


class HTTPProviderAdapter(ProviderAdapter):
    """Adapter for providers reached with a single JSON POST."""

    endpoint: str

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.client = client

    @abstractmethod
    def build_request(self, prompt: PromptPair, provider_config: AIProviderConfig) -> Tuple[Dict[str, str], Dict[str, Any]]:
        """Return (headers, json_body) for the provider request."""

    @abstractmethod
    def extract_content(self, data: Mapping[str, Any]) -> Optional[str]:
        """Pull the textual payload out of the provider's response body."""

    async def _post(self, headers: Dict[str, str], body: Dict[str, Any]) -> httpx.Response:
        if self.client is not None:
            return await self.client.post(self.endpoint, headers=headers, json=body)
        async with httpx.AsyncClient(timeout=config.HTTP_TIMEOUT_SECONDS) as client:
            return await client.post(self.endpoint, headers=headers, json=body)

    async def invoke(self, prompt: PromptPair, provider_config: AIProviderConfig) -> GenerationResponse:
        headers, body = self.build_request(prompt, provider_config)
        try:
            response = await self._post(headers, body)
        except httpx.TransportError as e:
            raise AIProviderError(
                f"Connection error with {self.label}: {e}",
                self.name.value,
                {"network_error": True}
            ) from e

        if response.is_error:
            message = describe_http_error(response.status_code, response.reason_phrase, response.text)
            return provider_error(
                f"{self.label} error: {message}",
                self.name, self.where, status=response.status_code
            )

        try:
            data = response.json()
        except ValueError:
            return provider_error(
                f"{self.label} returned a non-JSON body",
                self.name, self.where, reason="json_parse_failure"
            )

        try:
            content = self.extract_content(data)
        except (KeyError, IndexError, TypeError):
            content = None
        return parse_model_output(content, self.name, self.where)


class OpenAIAdapter(HTTPProviderAdapter):
    """OpenAI chat completions."""

    name = ProviderName.OPENAI
    endpoint = config.OPENAI_API_URL

    def build_request(self, prompt, provider_config):
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {provider_config.api_key}",
        }
        body = {
            "model": self.resolve_model(provider_config),
            "messages": [
                {"role": "system", "content": prompt.system},
                {"role": "user", "content": prompt.user},
            ],
            "temperature": config.TEMPERATURE,
            "max_tokens": config.MAX_OUTPUT_TOKENS,
            "response_format": {"type": "json_object"},
        }
        return headers, body

    def extract_content(self, data):
        return data["choices"][0]["message"]["content"]


class GroqAdapter(OpenAIAdapter):
    """Groq's OpenAI-compatible endpoint (free tier)."""

    name = ProviderName.GROQ
    endpoint = config.GROQ_API_URL


class AnthropicAdapter(HTTPProviderAdapter):
    """Anthropic messages API."""

    name = ProviderName.ANTHROPIC
    endpoint = config.ANTHROPIC_API_URL

    def build_request(self, prompt, provider_config):
        headers = {
            "Content-Type": "application/json",
            "x-api-key": provider_config.api_key,
            "anthropic-version": config.ANTHROPIC_API_VERSION,
        }
        body = {
            "model": self.resolve_model(provider_config),
            "max_tokens": config.MAX_OUTPUT_TOKENS,
            "system": prompt.system,
            "messages": [{"role": "user", "content": prompt.user}],
            "temperature": config.TEMPERATURE,
        }
        return headers, body

    def extract_content(self, data):
        return data["content"][0]["text"]


class GeminiAdapter(ProviderAdapter):
    """Google Gemini via the google-genai SDK."""

    name = ProviderName.GEMINI

    def __init__(self, client_factory: Optional[Callable[[str], Any]] = None):
        self.client_factory = client_factory or (lambda api_key: genai.Client(api_key=api_key))
        self._clients: Dict[str, Any] = {}

    def client_for(self, api_key: str) -> Any:
        """One SDK client per API key, reused across attempts."""
        if api_key not in self._clients:
            self._clients[api_key] = self.client_factory(api_key)
        return self._clients[api_key]

    async def invoke(self, prompt: PromptPair, provider_config: AIProviderConfig) -> GenerationResponse:
        client = self.client_for(provider_config.api_key)
        generation_config = types.GenerateContentConfig(
            system_instruction=prompt.system,
            temperature=config.TEMPERATURE,
            max_output_tokens=config.MAX_OUTPUT_TOKENS,
            response_mime_type="application/json",
        )

        try:
            response = await client.aio.models.generate_content(
                model=self.resolve_model(provider_config),
                contents=prompt.user,
                config=generation_config
            )
        except genai_errors.APIError as e:
            return provider_error(
                f"{self.label} error: {e.message or e.status or e.code}",
                self.name, self.where, status=e.code
            )

        return parse_model_output(response.text, self.name, self.where)


ADAPTER_CLASSES = {
    ProviderName.OPENAI: OpenAIAdapter,
    ProviderName.GROQ: GroqAdapter,
    ProviderName.ANTHROPIC: AnthropicAdapter,
}


def build_adapter_registry(
    http_client: Optional[httpx.AsyncClient] = None,
    genai_client_factory: Optional[Callable[[str], Any]] = None
) -> Dict[ProviderName, ProviderAdapter]:
    """One adapter instance per supported provider."""
    registry: Dict[ProviderName, ProviderAdapter] = {
        name: adapter_class(client=http_client) for name, adapter_class in ADAPTER_CLASSES.items()
    }
    registry[ProviderName.GEMINI] = GeminiAdapter(client_factory=genai_client_factory)
    return registry
