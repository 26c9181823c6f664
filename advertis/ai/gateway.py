"""
ADVERTIS Strategy Platform
LLM Gateway.

Narrow generation interface: chat messages in, text out, classified error
out. Providers are swappable without touching merge or phase logic.

    - Anthropic Claude provider (production)
    - Local stub provider (dev/test without API keys)
    - Token tracking & cost logging to AIUsageLog
    - Upstream failures classified transient (503) or fatal (500)

The gateway never retries. Whether to try again is the caller's decision,
surfaced through the ``retryable`` flag on the raised error.

Usage:
    from advertis.ai.gateway import LLMGateway, LocalStubProvider
    gw = LLMGateway(LocalStubProvider(), model="local-stub", pricing={})
    result = gw.chat(messages, purpose="fill_interview", user="u-1")
"""

import json
import logging
import os
import re
import time
from abc import ABC, abstractmethod

import anthropic

from advertis.ai.extraction import DEFAULT_TRANSIENT_MARKERS, classify_upstream_error
from advertis.models import db
from advertis.models.ai import AIUsageLog, calculate_cost

logger = logging.getLogger(__name__)


# ── Provider Abstract Base ────────────────────────────────────────────────────

class LLMProvider(ABC):
    """Abstract interface for generation providers."""

    name = "abstract"

    @abstractmethod
    def chat(self, messages: list, model: str, **kwargs) -> dict:
        """
        Send a chat completion request.

        Args:
            messages: List of {"role": "...", "content": "..."} dicts.
            model: Model identifier string.
            **kwargs: max_tokens, temperature, timeout.

        Returns:
            dict with keys: content, prompt_tokens, completion_tokens, model
        """
        ...


# ── Anthropic Provider ────────────────────────────────────────────────────────

class AnthropicProvider(LLMProvider):
    """Claude API (Anthropic) provider. SDK retries are disabled."""

    name = "anthropic"

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY", "")
        self._client = None

    def _get_client(self):
        if self._client is None:
            self._client = anthropic.Anthropic(api_key=self.api_key, max_retries=0)
        return self._client

    def chat(self, messages: list, model: str, **kwargs) -> dict:
        client = self._get_client()

        # Separate system message
        system_msg = ""
        chat_messages = []
        for m in messages:
            if m["role"] == "system":
                system_msg = m["content"]
            else:
                chat_messages.append(m)

        params = {
            "model": model,
            "messages": chat_messages,
            "max_tokens": kwargs.get("max_tokens", 4096),
            "temperature": kwargs.get("temperature", 0.3),
        }
        if system_msg:
            params["system"] = system_msg
        if kwargs.get("timeout"):
            params["timeout"] = kwargs["timeout"]

        response = client.messages.create(**params)

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        return {
            "content": text,
            "prompt_tokens": response.usage.input_tokens,
            "completion_tokens": response.usage.output_tokens,
            "model": model,
        }


# ── Local Stub Provider (for dev/test without API keys) ──────────────────────

_VARIABLE_HEADING_RE = re.compile(r"^###\s+([A-Z]\d+)\b", re.MULTILINE)


class LocalStubProvider(LLMProvider):
    """
    Deterministic stub. Answers with a JSON object holding a short
    placeholder for every variable heading (``### A2 — ...``) in the prompt.
    """

    name = "local"

    def chat(self, messages: list, model: str = "local-stub", **kwargs) -> dict:
        user_msg = ""
        for m in reversed(messages):
            if m["role"] == "user":
                user_msg = m["content"]
                break

        ids = list(dict.fromkeys(_VARIABLE_HEADING_RE.findall(user_msg)))
        content = json.dumps(
            {vid: f"[stub] Proposition générée pour {vid}." for vid in ids},
            ensure_ascii=False,
        )
        return {
            "content": content,
            "prompt_tokens": len(user_msg.split()) * 2,  # rough estimate
            "completion_tokens": len(content.split()) * 2,
            "model": "local-stub",
        }


# ── LLM Gateway (Main Interface) ─────────────────────────────────────────────

class LLMGateway:
    """
    Single entry point for generation calls.

    One attempt per call. Every attempt, successful or not, is recorded as
    an AIUsageLog row with its cost from the injected pricing table.
    """

    def __init__(
        self,
        provider: LLMProvider,
        *,
        model: str,
        pricing: dict | None = None,
        transient_markers=DEFAULT_TRANSIENT_MARKERS,
        max_output_tokens: int = 4000,
    ):
        self.provider = provider
        self.model = model
        self.pricing = pricing or {}
        self.transient_markers = tuple(transient_markers)
        self.max_output_tokens = max_output_tokens

    @classmethod
    def from_config(cls, config, pricing: dict) -> "LLMGateway":
        """Build from Flask config. Falls back to the local stub without an API key."""
        wanted = config.get("AI_PROVIDER", "anthropic")
        model = config.get("AI_DEFAULT_MODEL")
        if wanted == "anthropic" and os.getenv("ANTHROPIC_API_KEY"):
            provider = AnthropicProvider()
        else:
            if wanted != "local":
                logger.warning(
                    "Provider '%s' not available (no API key?). Falling back to local stub.", wanted,
                )
            provider = LocalStubProvider()
            model = "local-stub"
        return cls(
            provider,
            model=model,
            pricing=pricing,
            transient_markers=config.get("AI_TRANSIENT_MARKERS") or DEFAULT_TRANSIENT_MARKERS,
            max_output_tokens=config.get("AI_MAX_OUTPUT_TOKENS", 4000),
        )

    def chat(
        self,
        messages: list,
        *,
        purpose: str = "",
        user: str = "system",
        strategy_id: str | None = None,
        timeout: float | None = None,
        **kwargs,
    ) -> dict:
        """
        Send one chat completion request.

        Returns:
            dict: {content, prompt_tokens, completion_tokens, model, cost_usd,
                   latency_ms, provider}

        Raises:
            UpstreamTransientError: overloaded / rate limited, caller may retry.
            UpstreamFatalError: any other provider failure, timeouts included.
        """
        kwargs.setdefault("max_tokens", self.max_output_tokens)
        provider_name = self.provider.name
        start_time = time.time()
        try:
            result = self.provider.chat(messages, self.model, timeout=timeout, **kwargs)
        except Exception as e:
            latency_ms = int((time.time() - start_time) * 1000)
            classified = classify_upstream_error(e, self.transient_markers)
            logger.warning(
                "LLM call failed purpose=%s provider=%s retryable=%s: %s",
                purpose, provider_name, classified.retryable, e,
                extra={"purpose": purpose, "strategy_id": strategy_id},
            )
            self._log_usage(
                provider=provider_name, model=self.model,
                prompt_tokens=0, completion_tokens=0,
                cost_usd=0.0, latency_ms=latency_ms,
                user=user, purpose=purpose, strategy_id=strategy_id,
                success=False, retryable=classified.retryable, error_message=str(e)[:1000],
            )
            raise classified from e

        latency_ms = int((time.time() - start_time) * 1000)
        model = result.get("model") or self.model
        cost = calculate_cost(self.pricing, model, result["prompt_tokens"], result["completion_tokens"])
        result["cost_usd"] = cost
        result["latency_ms"] = latency_ms
        result["provider"] = provider_name

        self._log_usage(
            provider=provider_name, model=model,
            prompt_tokens=result["prompt_tokens"],
            completion_tokens=result["completion_tokens"],
            cost_usd=cost, latency_ms=latency_ms,
            user=user, purpose=purpose, strategy_id=strategy_id,
            success=True,
        )
        logger.info(
            "LLM call ok purpose=%s model=%s tokens=%d cost=$%.4f latency=%dms",
            purpose, model, result["prompt_tokens"] + result["completion_tokens"], cost, latency_ms,
            extra={"purpose": purpose, "strategy_id": strategy_id},
        )
        return result

    # ── Internal Logging ──────────────────────────────────────────────────

    @staticmethod
    def _log_usage(*, provider, model, prompt_tokens, completion_tokens,
                   cost_usd, latency_ms, user, purpose, strategy_id,
                   success, retryable=False, error_message=None):
        """Persist a usage record. A logging failure never reaches the caller."""
        try:
            log = AIUsageLog(
                provider=provider, model=model,
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
                cost_usd=cost_usd, latency_ms=latency_ms,
                user=user, purpose=purpose, strategy_id=strategy_id,
                success=success, retryable=retryable, error_message=error_message,
            )
            db.session.add(log)
            db.session.commit()
        except Exception as e:
            logger.error("Failed to log AI usage: %s", e)
            db.session.rollback()
