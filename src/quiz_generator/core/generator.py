"""
Study Quiz Generator orchestration.

Runs one generation request end to end:

    prompt -> primary provider (retry + timeout)
           -> fallback providers on a rate-limit/quota error from the primary
           -> structural validation and repair
           -> quality metrics

Retries happen before fallback: a rate-limited primary is only abandoned
after its own retry cycle has returned an error envelope. If the whole retry
cycle raises (timeout, exhausted retries) the request fails without
fallback.
"""
import argparse
import asyncio
import json
import math
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from quiz_generator import config
from quiz_generator.core.prompts import PromptPair, build_prompt
from quiz_generator.core.providers import ProviderAdapter, build_adapter_registry
from quiz_generator.core.quality import score_quiz
from quiz_generator.core.resilience import Sleep, retry_with_backoff, with_timeout
from quiz_generator.core.validator import validate_quiz_response
from quiz_generator.models.quiz_models import ErrorInfo, GenerationResponse, QuizResult, ValidatedQuiz
from quiz_generator.models.request_models import (
    AIProviderConfig,
    GenerationRequest,
    ProviderName,
    ProviderSettings,
)
from quiz_generator.utils.env_loader import load_env
from quiz_generator.utils.errors import (
    AppError,
    ConfigurationError,
    ValidationError,
    from_pydantic_error,
    to_error_info,
    validate_required_config,
)
from quiz_generator.utils.observability import Observability, configure_logging

WHERE = "generate_validated_quiz"


def is_rate_limit_error(error: Optional[ErrorInfo]) -> bool:
    """True if the error message mentions a rate limit, quota or usage cap."""
    if error is None:
        return False
    message = error.message.lower()
    return any(keyword in message for keyword in config.RATE_LIMIT_KEYWORDS)


def ensure_sufficient_content(request: GenerationRequest) -> None:
    """
    Reject requests whose documents are too short for the questions asked.

    Raises:
        ValidationError: If there is under MIN_CONTENT_CHARACTERS of text, or
            more questions than roughly one per WORDS_PER_QUESTION words.
    """
    total_length = request.total_text_length()
    if total_length < config.MIN_CONTENT_CHARACTERS:
        raise ValidationError(
            "The documents contain too little text to generate a quiz.",
            {"text_length": total_length, "minimum": config.MIN_CONTENT_CHARACTERS}
        )

    words = total_length / config.CHARACTERS_PER_WORD
    max_questions = math.floor(words / config.WORDS_PER_QUESTION)
    if request.num_questions > max_questions:
        raise ValidationError(
            f"The documents are too short for {request.num_questions} questions. "
            f"At most {max_questions} questions are recommended for this content.",
            {"text_length": total_length, "max_recommended": max_questions}
        )


class QuizGenerator:
    """Generate validated quizzes with multi-provider fallback."""

    def __init__(
        self,
        adapters: Optional[Mapping[ProviderName, ProviderAdapter]] = None,
        observability: Optional[Observability] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Optional[Callable[[], datetime]] = None,
        primary_max_attempts: int = config.PRIMARY_MAX_ATTEMPTS,
        primary_timeout: float = config.PRIMARY_TIMEOUT_SECONDS,
        fallback_max_attempts: int = config.FALLBACK_MAX_ATTEMPTS,
        fallback_timeout: float = config.FALLBACK_TIMEOUT_SECONDS,
        base_delay: float = config.RETRY_BASE_DELAY_SECONDS
    ):
        """
        Initialize the generator.

        Args:
            adapters: Provider registry. Built with build_adapter_registry() if not provided.
            observability: Logging/timing capability. A default Observability if not provided.
            sleep: Awaitable sleep used between retries.
            clock: Returns the generation timestamp embedded in the prompt.
            primary_max_attempts: Attempts against the primary provider.
            primary_timeout: Seconds allowed for the whole primary retry cycle.
            fallback_max_attempts: Attempts against each fallback provider.
            fallback_timeout: Seconds allowed for each fallback retry cycle.
            base_delay: First backoff delay in seconds.
        """
        self.adapters = dict(adapters) if adapters is not None else build_adapter_registry()
        self.observability = observability or Observability()
        self.sleep = sleep
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.primary_max_attempts = primary_max_attempts
        self.primary_timeout = primary_timeout
        self.fallback_max_attempts = fallback_max_attempts
        self.fallback_timeout = fallback_timeout
        self.base_delay = base_delay

    def _resolve_adapter(self, provider_config: AIProviderConfig) -> ProviderAdapter:
        adapter = self.adapters.get(provider_config.name)
        if adapter is None:
            raise ConfigurationError(
                f"Unsupported AI provider: {provider_config.name.value}",
                {"available": [name.value for name in self.adapters]}
            )
        return adapter

    async def _call_provider(
        self,
        adapter: ProviderAdapter,
        provider_config: AIProviderConfig,
        prompt: PromptPair,
        max_attempts: int,
        timeout: float
    ) -> GenerationResponse:
        operation_name = f"generate_quiz:{provider_config.name.value}"
        return await with_timeout(
            retry_with_backoff(
                lambda: adapter.invoke(prompt, provider_config),
                max_attempts=max_attempts,
                base_delay=self.base_delay,
                operation_name=operation_name,
                observability=self.observability,
                sleep=self.sleep
            ),
            timeout,
            f"Quiz generation timed out ({adapter.label})"
        )

    def should_fall_back(self, provider_config: AIProviderConfig, response: GenerationResponse) -> bool:
        """Fallback applies only to rate-limit errors returned by the designated primary."""
        return (
            provider_config.name == config.FALLBACK_ELIGIBLE_PROVIDER
            and is_rate_limit_error(response.error)
        )

    async def _run_fallbacks(
        self,
        prompt: PromptPair,
        primary: AIProviderConfig,
        candidates: Sequence[AIProviderConfig],
        request_id: str
    ) -> Optional[Tuple[GenerationResponse, ProviderName]]:
        """Try each fallback in order; return the first successful response."""
        for candidate in candidates:
            if candidate.name == primary.name:
                continue
            if not candidate.has_credentials:
                self.observability.info(
                    "Fallback provider skipped: no credentials",
                    request_id=request_id, provider=candidate.name.value
                )
                continue
            adapter = self.adapters.get(candidate.name)
            if adapter is None:
                self.observability.warning(
                    "Fallback provider skipped: no adapter",
                    request_id=request_id, provider=candidate.name.value
                )
                continue

            self.observability.info(
                "Trying fallback provider",
                request_id=request_id, provider=candidate.name.value, model=adapter.resolve_model(candidate)
            )
            try:
                response = await self._call_provider(
                    adapter, candidate, prompt, self.fallback_max_attempts, self.fallback_timeout
                )
            except Exception as e:
                self.observability.warning(
                    "Fallback provider failed",
                    request_id=request_id, provider=candidate.name.value, error=str(e)
                )
                continue

            if response.ok:
                self.observability.info(
                    "Fallback provider succeeded",
                    request_id=request_id, provider=candidate.name.value
                )
                return response, candidate.name

            self.observability.warning(
                "Fallback provider returned an error",
                request_id=request_id, provider=candidate.name.value, error=response.error.message
            )
        return None

    async def _generate(
        self,
        request: GenerationRequest,
        providers: ProviderSettings,
        request_id: str
    ) -> ValidatedQuiz:
        primary = providers.primary
        adapter = self._resolve_adapter(primary)
        validate_required_config({"api_key": primary.api_key}, ["api_key"])

        self.observability.info(
            "Quiz generation started",
            request_id=request_id,
            provider=primary.name.value,
            model=adapter.resolve_model(primary),
            question_count=request.num_questions,
            documents_count=len(request.documents)
        )

        prompt = build_prompt(request, self.clock())
        response = await self._call_provider(
            adapter, primary, prompt, self.primary_max_attempts, self.primary_timeout
        )
        accepted_provider = primary.name

        self.observability.info(
            "Raw AI response structure",
            request_id=request_id,
            has_result=response.result is not None,
            has_error=response.error is not None,
            result_keys=sorted(response.result) if response.result else [],
            error_message=response.error.message if response.error else None
        )

        if self.should_fall_back(primary, response):
            self.observability.warning(
                "Primary provider rate limited, trying fallbacks",
                request_id=request_id, provider=primary.name.value, error=response.error.message
            )
            fallback = await self._run_fallbacks(prompt, primary, providers.fallbacks, request_id)
            if fallback is not None:
                response, accepted_provider = fallback
            else:
                self.observability.error(
                    "All fallback providers failed, keeping primary error",
                    request_id=request_id, provider=primary.name.value
                )

        validated = validate_quiz_response(response)
        if validated.error is not None:
            self.observability.error(
                "Quiz response validation failed",
                request_id=request_id,
                provider=accepted_provider.value,
                error=validated.error.model_dump()
            )
            return ValidatedQuiz(error=validated.error)

        metrics = score_quiz(validated)
        result = QuizResult.model_validate(validated.result)
        self.observability.info(
            "Quiz generation completed successfully",
            request_id=request_id,
            provider=accepted_provider.value,
            question_count=len(result.quiz.questions),
            completeness=metrics.completeness if metrics else None
        )
        return ValidatedQuiz(result=result, quality_metrics=metrics, provider=accepted_provider.value)

    async def generate_validated_quiz(
        self,
        request: GenerationRequest,
        providers: ProviderSettings
    ) -> ValidatedQuiz:
        """
        Generate, validate and score a quiz.

        Args:
            request: Validated generation parameters and source documents.
            providers: Primary provider and ordered fallback candidates.

        Returns:
            ValidatedQuiz with either result + quality_metrics, or a structured error.
        """
        request_id = uuid.uuid4().hex
        with self.observability.timer("quiz_generation", request_id=request_id) as timing:
            try:
                validated = await self._generate(request, providers, request_id)
            except AppError as e:
                log = self.observability.error if e.status_code >= 500 else self.observability.warning
                log("Quiz generation failed", request_id=request_id, code=e.code, error=e.message, context=e.context)
                validated = ValidatedQuiz(error=to_error_info(e, WHERE))
            except Exception as e:
                self.observability.logger.exception("Unexpected error during quiz generation")
                validated = ValidatedQuiz(error=to_error_info(e, WHERE))
            timing["success"] = validated.error is None
        return validated


async def generate_validated_quiz(
    request: GenerationRequest,
    providers: ProviderSettings,
    **kwargs
) -> ValidatedQuiz:
    """Convenience entry point; kwargs are passed to QuizGenerator."""
    return await QuizGenerator(**kwargs).generate_validated_quiz(request, providers)


def save_to_file(validated: ValidatedQuiz, output_file: Optional[str] = None) -> Path:
    """
    Save a pipeline result to a JSON file.

    Args:
        validated: Output of generate_validated_quiz
        output_file: Output file path (defaults to output/quiz.json)

    Returns:
        Path of the written file
    """
    if output_file is None:
        output_file = Path(config.OUTPUT_DIR) / config.QUIZ_OUTPUT_FILE

    output_path = Path(output_file)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(validated.model_dump(mode="json", by_alias=True, exclude_none=True), f,
                  indent=2, ensure_ascii=False)

    print(f"✓ Quiz saved to: {output_path}")
    return output_path


def display_summary(validated: ValidatedQuiz) -> None:
    """Print a summary of a pipeline result."""
    print("\n" + "="*70)
    print("QUIZ SUMMARY")
    print("="*70)

    if validated.error is not None:
        print(f"\n✗ ERROR ({validated.error.code}): {validated.error.message}")
        print("\n" + "="*70 + "\n")
        return

    result = validated.result
    metrics = validated.quality_metrics
    print(f"\nTitle: {result.metadata.title}")
    print(f"Provider: {validated.provider}")
    print(f"Questions: {result.quiz.generated_count} of {result.quiz.requested_count} requested")

    if metrics is not None:
        print(f"Completeness: {metrics.completeness:.0%}")
        difficulty = metrics.difficulty_distribution
        print(f"Difficulty: low={difficulty.low} medium={difficulty.medium} high={difficulty.high}")
        types = metrics.type_distribution
        print(f"Types: multiple_choice={types.multiple_choice} "
              f"short_answer={types.short_answer} true_false={types.true_false}")
        print(f"Citations per question: {metrics.average_citations_per_question:.2f}")
        if metrics.insufficient_evidence:
            print("⚠️ The model reported insufficient evidence in the sources")

    if result.quiz.questions:
        question = result.quiz.questions[0]
        print("\n" + "-"*70)
        print("SAMPLE QUESTION")
        print("-"*70)
        print(f"\n[{question.question_type.value} / {question.difficulty.value}] {question.statement}")
        for option in question.options or []:
            marker = "✓" if option.id == question.correct_answer else " "
            print(f"  {marker} {option.id}. {option.text}")
        print(f"\nAnswer: {question.correct_answer}")
        print(f"Explanation: {question.explanation}")

    print("\n" + "="*70 + "\n")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a validated study quiz from documents.")
    parser.add_argument("request_file", help="JSON file with the generation request")
    parser.add_argument("-o", "--output", default=None, help="Output JSON file")
    parser.add_argument("--log-level", default=None, help="Logging level (default: LOG_LEVEL or INFO)")
    parser.add_argument("--skip-content-check", action="store_true",
                        help="Do not reject requests with little source text")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command-line entry point."""
    args = parse_args(argv)

    load_env()
    configure_logging(args.log_level)

    try:
        providers = config.load_provider_settings()

        with open(args.request_file, 'r', encoding='utf-8') as f:
            request_data = json.load(f)
        try:
            request = GenerationRequest.model_validate(request_data)
        except PydanticValidationError as e:
            raise from_pydantic_error(e)

        if not args.skip_content_check:
            ensure_sufficient_content(request)

    except AppError as e:
        print(f"\n✗ ERROR ({e.code}): {e.message}")
        for issue in e.context.get("issues", []):
            print(f"  • {issue['field']}: {issue['message']}")
        return 1
    except (OSError, json.JSONDecodeError) as e:
        print(f"\n✗ ERROR reading request file: {e}")
        return 1

    generator = QuizGenerator()
    validated = asyncio.run(generator.generate_validated_quiz(request, providers))

    display_summary(validated)
    save_to_file(validated, args.output)
    return 0 if validated.error is None else 1


if __name__ == "__main__":
    sys.exit(main())
