"""Explainer client for the general-knowledge part of an answer.

Security: Reads API keys from settings (environment) only, never hardcoded.
Provides a deterministic generator when no key is present for testing.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import httpx
from openai import AsyncOpenAI, OpenAIError

from backend.app.cache.ttl import TTLCache, make_prompt_key
from backend.app.config import Settings
from backend.app.models.chat import Explanation
from backend.app.models.query import QuestionType
from backend.app.utils.logging import ExplainerAttemptLogger
from backend.app.utils.metrics import PrometheusExplainerMetrics

logger = logging.getLogger(__name__)

EXPLAINER_FALLBACK_TEXT = (
    "Xin lỗi, tôi gặp sự cố khi xử lý câu hỏi. "
    "Vui lòng tham khảo các điều khoản liên quan bên dưới."
)

QUESTION_TYPE_INSTRUCTIONS: dict[QuestionType, str] = {
    QuestionType.DEFINITION: "Định nghĩa rõ ràng và chính xác khái niệm được hỏi.",
    QuestionType.PROCEDURE: "Mô tả tổng quan các bước thực hiện theo thông lệ pháp luật.",
    QuestionType.PENALTY: "Giải thích khái quát về các hình thức xử phạt thường áp dụng.",
    QuestionType.RIGHTS: "Nêu tổng quan về các quyền và quyền lợi liên quan.",
    QuestionType.OBLIGATIONS: "Giải thích về các nghĩa vụ và trách nhiệm chung.",
    QuestionType.CONDITIONS: "Mô tả khái quát các điều kiện và yêu cầu thông thường.",
    QuestionType.GENERAL: "Giải thích tổng quan về vấn đề pháp lý được đặt ra.",
}


def build_explainer_prompt(question: str, question_type: QuestionType) -> str:
    """Prompt asking for a short general explanation without citing clauses."""
    instruction = QUESTION_TYPE_INSTRUCTIONS.get(
        question_type, QUESTION_TYPE_INSTRUCTIONS[QuestionType.GENERAL]
    )
    return (
        "Bạn là chuyên gia pháp lý với kiến thức tổng quát về pháp luật Việt Nam.\n\n"
        f'Câu hỏi: "{question}"\n'
        f"Loại câu hỏi: {question_type.value}\n\n"
        "Yêu cầu trả lời:\n"
        f"- {instruction}\n"
        "- Trả lời ngắn gọn 1-2 câu dựa trên kiến thức pháp lý tổng quát\n"
        "- KHÔNG trích dẫn điều khoản cụ thể, chỉ giải thích khái niệm\n"
        "- Sử dụng ngôn ngữ dễ hiểu, không quá chuyên môn\n"
        '- Kết thúc bằng: "Các điều khoản pháp lý cụ thể được liệt kê bên dưới."'
    )


class GeneratorError(Exception):
    """External model call failed (transport, non-2xx or malformed payload)."""

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class TextGenerator(Protocol):
    """Protocol for external text generation backends."""

    async def generate(self, prompt: str, timeout: float) -> str:
        """Generate text for a prompt.

        Raises:
            GeneratorError: On transport failure, non-2xx status or malformed payload
        """
        ...


class DeterministicStubGenerator:
    """Deterministic stub generator for testing (no API key required)."""

    async def generate(self, prompt: str, timeout: float) -> str:
        return (
            "Đây là giải thích tổng quát được tạo tự động khi chưa cấu hình mô hình ngôn ngữ. "
            "Các điều khoản pháp lý cụ thể được liệt kê bên dưới."
        )


class GeminiGenerator:
    """Gemini generateContent backend over httpx."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize Gemini generator.

        Args:
            api_key: Gemini API key (read from environment)
            model: Model name
            api_base: API root URL
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self._api_key = api_key
        self._url = f"{api_base.rstrip('/')}/models/{model}:generateContent"
        self._transport = transport

    def _payload(self, prompt: str) -> dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.3,
                "topK": 40,
                "topP": 0.8,
                "maxOutputTokens": 1024,
            },
        }

    async def generate(self, prompt: str, timeout: float) -> str:
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.post(
                    self._url,
                    params={"key": self._api_key},
                    json=self._payload(prompt),
                )
        except httpx.TimeoutException as e:
            raise GeneratorError("timeout", f"Gemini request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise GeneratorError("transport", f"Gemini request failed: {e}") from e

        if response.status_code >= 400:
            raise GeneratorError("http_status", f"Gemini returned HTTP {response.status_code}")

        try:
            data = response.json()
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GeneratorError("malformed", f"Unexpected Gemini payload: {e}") from e

        if not isinstance(text, str) or not text.strip():
            raise GeneratorError("malformed", "Gemini returned empty text")
        return text.strip()


class OpenAIGenerator:
    """OpenAI chat-completions backend."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        """Initialize OpenAI generator.

        Args:
            api_key: OpenAI API key (read from environment)
            model: Model name to use (default: gpt-4o-mini for cost efficiency)
        """
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model

    async def generate(self, prompt: str, timeout: float) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.3,
                max_tokens=1024,
                timeout=timeout,
            )
        except OpenAIError as e:
            raise GeneratorError("transport", f"OpenAI API call failed: {e}") from e

        text = response.choices[0].message.content if response.choices else None
        if not text or not text.strip():
            raise GeneratorError("malformed", "OpenAI returned empty response")
        return text.strip()


def get_text_generator(settings: Settings) -> TextGenerator:
    """Factory function to get appropriate generator based on config.

    Returns:
        GeminiGenerator if a Gemini key is configured, OpenAIGenerator if an
        OpenAI key is configured, DeterministicStubGenerator otherwise
    """
    if settings.gemini_api_key:
        logger.info("Using Gemini generator for explanations")
        return GeminiGenerator(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            api_base=settings.gemini_api_base,
        )
    if settings.openai_api_key:
        logger.info("Using OpenAI generator for explanations")
        return OpenAIGenerator(api_key=settings.openai_api_key, model=settings.openai_model)

    logger.warning("No model API key configured, using deterministic stub generator")
    return DeterministicStubGenerator()


class ExplainerClient:
    """Calls the external model with timeout, bounded retries and caching.

    Attempt N+1 waits N * retry_backoff_seconds before starting. After
    1 + max_retry_attempts failures the fixed fallback text is returned;
    explain() never raises. Only successful responses are cached.
    """

    def __init__(
        self,
        generator: TextGenerator,
        cache: TTLCache,
        settings: Settings,
        *,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
        metrics: PrometheusExplainerMetrics | None = None,
        attempt_logger: ExplainerAttemptLogger | None = None,
    ) -> None:
        self._generator = generator
        self._cache = cache
        self._timeout = settings.ai_timeout_seconds
        self._max_retries = settings.max_retry_attempts
        self._backoff = settings.retry_backoff_seconds
        self._cache_ttl = settings.cache_ttl_seconds
        self._sleep = sleep_fn or asyncio.sleep
        self._metrics = metrics or PrometheusExplainerMetrics()
        self._attempt_logger = attempt_logger or ExplainerAttemptLogger()

    async def explain(self, question: str, question_type: QuestionType) -> Explanation:
        """Get a general explanation for a question."""
        prompt = build_explainer_prompt(question, question_type)
        key = make_prompt_key(prompt)
        digest = str(key[1])

        cached = self._cache.get(key)
        if cached is not None:
            self._attempt_logger.log_attempt(0, "cache_hit", 0.0, digest, cache_hit=True)
            return Explanation(text=cached, source="cache")

        async with self._cache.lock_for(key):
            cached = self._cache.get(key)
            if cached is not None:
                self._attempt_logger.log_attempt(0, "cache_hit", 0.0, digest, cache_hit=True)
                return Explanation(text=cached, source="cache")

            text = await self._generate_with_retry(prompt, digest)
            if text is None:
                return Explanation(text=EXPLAINER_FALLBACK_TEXT, source="fallback")

            self._cache.set(key, text, ttl_seconds=self._cache_ttl)
            return Explanation(text=text, source="model")

    async def _generate_with_retry(self, prompt: str, digest: str) -> str | None:
        total_attempts = 1 + self._max_retries

        for attempt in range(1, total_attempts + 1):
            if attempt > 1:
                await self._sleep((attempt - 1) * self._backoff)

            start = time.perf_counter()
            try:
                text = await asyncio.wait_for(
                    self._generator.generate(prompt, self._timeout), timeout=self._timeout
                )
            except asyncio.TimeoutError:
                reason = "timeout"
            except GeneratorError as e:
                reason = e.reason
                logger.warning(f"Explainer attempt {attempt} failed: {e}")
            except Exception as e:
                reason = "unexpected"
                logger.exception(f"Explainer attempt {attempt} raised {type(e).__name__}")
            else:
                latency_ms = (time.perf_counter() - start) * 1000
                self._metrics.record_latency("success", latency_ms)
                self._attempt_logger.log_attempt(attempt, "success", latency_ms, digest)
                return text

            latency_ms = (time.perf_counter() - start) * 1000
            self._metrics.record_latency("error", latency_ms)
            self._metrics.inc_error(reason)
            self._attempt_logger.log_attempt(
                attempt, "error", latency_ms, digest, error_reason=reason
            )

        logger.error(f"Explainer failed after {total_attempts} attempts, using fallback text")
        return None
