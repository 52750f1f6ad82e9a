# src/remindly/llm/offline.py

from __future__ import annotations

from ..core.errors import LLMNetworkError


class OfflineLLMClient:
    """
    Stand-in used when no external LLM is configured.

    Every call reports the model tier as unavailable, so priority
    classification runs on the deterministic due-date rule.
    """

    def complete(self, prompt: str) -> str:
        raise LLMNetworkError(
            "Offline mode: no external LLM is configured. "
            "Set REMINDLY_LLM_API_KEY to enable model-based priorities."
        )
