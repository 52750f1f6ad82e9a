# src/remindly/llm/client.py

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..core.errors import LLMAuthError, LLMNetworkError, LLMRateLimitedError, LanguageModelError

logger = logging.getLogger(__name__)


def _is_auth_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError))


def _is_rate_limit_error(exc: Exception) -> bool:
    return isinstance(exc, openai.RateLimitError)


def _is_connection_error(exc: Exception) -> bool:
    # APITimeoutError is a subclass of APIConnectionError.
    return isinstance(exc, (openai.APIConnectionError, httpx.TransportError))


def translate_llm_error(exc: Exception) -> LanguageModelError:
    """Map SDK/transport exceptions onto the LanguageModelError taxonomy."""
    if isinstance(exc, LanguageModelError):
        return exc
    if _is_auth_error(exc):
        return LLMAuthError("LLM authentication failed. Check REMINDLY_LLM_API_KEY.")
    if _is_rate_limit_error(exc):
        return LLMRateLimitedError("LLM is rate-limited. Try again later.")
    if _is_connection_error(exc):
        return LLMNetworkError("LLM network/timeout error.")
    if isinstance(exc, openai.APIStatusError):
        return LLMNetworkError(f"LLM returned HTTP {exc.status_code}.")
    return LLMNetworkError(f"LLM call failed ({exc.__class__.__name__}).")


class OpenRouterLLMClient:
    """
    Single-shot completion client for an OpenAI-compatible endpoint.

    - No secrets required at import time; the constructor raises if the key
      is missing (bootstrap then falls back to OfflineLLMClient).
    - Automatic retries are disabled: one attempt per call.
    - The request timeout comes from settings.llm_timeout_seconds, so a slow
      endpoint surfaces as LLMNetworkError instead of blocking.
    """

    def __init__(self, settings: Any, *, client: OpenAI | None = None) -> None:
        api_key = getattr(settings, "llm_api_key", None)
        base_url = str(getattr(settings, "llm_base_url", "") or "")
        self.model = str(getattr(settings, "llm_model", "") or "").strip()
        self._headers: dict[str, str] = dict(getattr(settings, "extra_headers", {}) or {})

        if client is None:
            if not api_key or not str(api_key).strip():
                raise RuntimeError("LLM API key is not set. Set REMINDLY_LLM_API_KEY in your .env.")
            if not base_url.strip():
                raise RuntimeError("LLM base URL is not set. Set REMINDLY_LLM_BASE_URL in your .env.")

            read_s = float(getattr(settings, "llm_timeout_seconds", 20.0))
            client = OpenAI(
                base_url=base_url,
                api_key=str(api_key),
                timeout=httpx.Timeout(connect=min(5.0, read_s), read=read_s, write=10.0, pool=5.0),
                max_retries=0,
            )

        if not self.model:
            raise RuntimeError("LLM model is not set. Set REMINDLY_LLM_MODEL in your .env.")

        self._client = client

    def complete(self, prompt: str) -> str:
        t0 = time.monotonic()
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.1,
                max_tokens=16,
                extra_headers=self._headers or None,
            )
        except Exception as e:
            err = translate_llm_error(e)
            logger.info("LLM: %s on model=%s (%s)", err.kind, self.model, e.__class__.__name__)
            raise err from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError):
            content = None

        logger.debug("LLM: model=%s answered in %.2fs", self.model, time.monotonic() - t0)
        return content or ""
