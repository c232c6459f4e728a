# storefront/services/ai/deepseek_client.py
"""Chat completion client for DeepSeek (OpenAI-compatible API)"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx
from openai import OpenAI, OpenAIError

from storefront.config.redis import RedisKeys
from storefront.config.settings import Settings, get_settings
from storefront.core.exceptions import AIServiceError, RateLimitExceeded
from storefront.utils.rate_limiter import RedisRateLimiter

logger = logging.getLogger(__name__)

REPLY_TEMPERATURE = 0.4
SUMMARY_TEMPERATURE = 0.2
TRANSLATION_TEMPERATURE = 0.1

LOCALE_LANGUAGES = {
    "en": "English",
    "fr": "French",
    "es": "Spanish",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "nl": "Dutch",
    "pl": "Polish",
    "sv": "Swedish",
    "fi": "Finnish",
    "no": "Norwegian",
    "da": "Danish",
    "ru": "Russian",
    "zh": "Chinese",
    "zh-cn": "Chinese (Simplified)",
    "zh-tw": "Chinese (Traditional)",
    "ja": "Japanese",
    "ko": "Korean",
    "ar": "Arabic",
}


@dataclass(frozen=True)
class ChatResult:
    """Outcome of a chat call: either content or the reason it failed"""
    ok: bool
    content: str = ""
    error: Optional[str] = None

    @classmethod
    def success(cls, content: str) -> "ChatResult":
        return cls(ok=True, content=content)

    @classmethod
    def failure(cls, error: str) -> "ChatResult":
        return cls(ok=False, error=error)


class DeepSeekClient:
    """Handles chat completion and translation calls"""

    def __init__(
            self,
            settings: Optional[Settings] = None,
            client=None,
            rate_limiter=None,
            http_client: Optional[httpx.Client] = None,
    ):
        self.settings = settings or get_settings()
        self.api_key = self.settings.DEEPSEEK_API_KEY
        self.model = self.settings.DEEPSEEK_MODEL
        self.rate_limiter = rate_limiter
        self._client = client
        self._http_client = http_client

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.settings.DEEPSEEK_BASE_URL.rstrip("/"),
                timeout=httpx.Timeout(
                    self.settings.DEEPSEEK_TIMEOUT,
                    connect=self.settings.DEEPSEEK_CONNECT_TIMEOUT,
                ),
                # SDK counts retries after the first attempt
                max_retries=max(0, self.settings.DEEPSEEK_RETRY_TIMES - 1),
                http_client=self._http_client,
            )
        return self._client

    def chat(self, messages: List[Dict[str, str]], temperature: float = REPLY_TEMPERATURE) -> str:
        """Send a chat completion request and return the trimmed reply text"""
        if not self.is_configured:
            raise AIServiceError("DeepSeek API key is not configured.")

        if self.rate_limiter is not None and self.rate_limiter.too_many_attempts():
            raise RateLimitExceeded("DeepSeek rate limit exceeded.")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
            )
        except OpenAIError as e:
            raise AIServiceError(f"DeepSeek request failed: {e}") from e

        if self.rate_limiter is not None:
            self.rate_limiter.hit()

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not isinstance(content, str):
            raise AIServiceError("DeepSeek response missing content.")

        return content.strip()

    def try_chat(self, messages: List[Dict[str, str]], temperature: float = REPLY_TEMPERATURE) -> ChatResult:
        """Like chat() but returns a ChatResult instead of raising"""
        try:
            return ChatResult.success(self.chat(messages, temperature))
        except AIServiceError as e:
            return ChatResult.failure(str(e))

    def translate(self, text: str, source: str, target: str) -> str:
        if not self.is_configured:
            raise AIServiceError("DeepSeek API key is not configured.")

        if text == "":
            return ""

        target_name = self.locale_to_language(target)
        result = self.chat([
            {
                "role": "system",
                "content": f"You are a translator. Output ONLY the translation in {target_name}. "
                           f"No explanations or anything else.",
            },
            {"role": "user", "content": f"Translate to {target_name}: {text}"},
        ], TRANSLATION_TEMPERATURE)

        logger.info(f"Translation result {source}->{target}: {text[:100]!r} -> {result[:100]!r}")
        return result

    @staticmethod
    def locale_to_language(locale: str) -> str:
        key = locale.strip().lower()
        return LOCALE_LANGUAGES.get(key, locale)


def create_deepseek_client(settings: Optional[Settings] = None, redis_client=None) -> DeepSeekClient:
    """DeepSeekClient with the shared Redis rate limiter attached"""
    settings = settings or get_settings()
    rate_limiter = None
    if redis_client is not None:
        rate_limiter = RedisRateLimiter(
            redis_client,
            RedisKeys.RATE_LIMIT_DEEPSEEK,
            settings.DEEPSEEK_RATE_LIMIT,
            settings.DEEPSEEK_RATE_LIMIT_PERIOD,
        )
    return DeepSeekClient(settings=settings, rate_limiter=rate_limiter)
