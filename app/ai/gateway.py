"""
Renovation Back Office
LLM Gateway — chat-completion calls for offer generation and price estimation.

Provider-agnostic router with:
    - OpenAI-compatible chat-completions endpoint over httpx
    - Local stub provider for dev/test without API keys
    - Configurable retry policy (attempt count + delay function)
    - Token tracking & cost logging (AIUsageLog, one row per call)

Usage:
    from app.ai.gateway import LLMGateway, RetryPolicy
    gw = LLMGateway()
    result = gw.chat(messages, model="gpt-4o", purpose="offer_generation",
                     retry_policy=RetryPolicy.fixed(2, 120.0))
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable

import httpx
from flask import current_app, has_app_context

from app.core.exceptions import ConfigurationError, LLMProviderError, RateLimitedError
from app.models import db
from app.models.ai import AIUsageLog, calculate_cost

logger = logging.getLogger(__name__)


# ── Retry policy ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RetryPolicy:
    """
    How many times a call is attempted and how long to wait in between.

    Attributes:
        max_attempts: Total attempts, including the first one.
        delay: attempt number (1-based, the one that just failed) → seconds to wait.
        retry_on: Exception types worth another attempt. Anything else propagates.
    """

    max_attempts: int = 1
    delay: Callable[[int], float] = field(default=lambda attempt: 0.0)
    retry_on: tuple = (RateLimitedError,)

    @classmethod
    def fixed(cls, max_attempts: int, wait_seconds: float,
              retry_on: tuple = (RateLimitedError,)) -> "RetryPolicy":
        """Retry with the same wait before every further attempt."""
        return cls(max_attempts=max_attempts, delay=lambda attempt: wait_seconds, retry_on=retry_on)

    @classmethod
    def single(cls) -> "RetryPolicy":
        return cls(max_attempts=1)


# ── Provider Abstract Base ────────────────────────────────────────────────────

class LLMProvider(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    def chat(self, messages: list, model: str, **kwargs) -> dict:
        """
        Send a chat completion request.

        Args:
            messages: List of {"role": "...", "content": "..."} dicts.
            model: Model identifier string.
            **kwargs: temperature, max_tokens.

        Returns:
            dict with keys: content, prompt_tokens, completion_tokens, model
        """
        ...


# ── OpenAI-compatible Provider ───────────────────────────────────────────────

class OpenAIProvider(LLMProvider):
    """POST {base_url}/chat/completions, read choices[0].message.content."""

    def __init__(self, api_key: str, base_url: str = "https://api.openai.com/v1",
                 timeout: float | None = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def chat(self, messages: list, model: str = "gpt-4o", **kwargs) -> dict:
        payload = {
            "model": model,
            "messages": messages,
            "max_tokens": kwargs.get("max_tokens", 4000),
            "temperature": kwargs.get("temperature", 0.1),
        }
        try:
            response = httpx.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                },
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            raise LLMProviderError(f"Chat completion transport error: {exc}") from exc

        if response.status_code == 429:
            raise RateLimitedError(f"Chat completion rate limited: {response.text[:500]}")
        if response.status_code < 200 or response.status_code >= 300:
            raise LLMProviderError(
                f"Chat completion error: {response.status_code} - {response.text[:500]}",
                status_code=response.status_code,
            )

        data = response.json()
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not content:
            raise LLMProviderError("AI returned no result", status_code=response.status_code)

        usage = data.get("usage") or {}
        return {
            "content": content,
            "prompt_tokens": usage.get("prompt_tokens", 0) or 0,
            "completion_tokens": usage.get("completion_tokens", 0) or 0,
            "model": data.get("model") or model,
        }


# ── Local Stub Provider (for dev/test without API keys) ──────────────────────

class LocalStubProvider(LLMProvider):
    """
    Local stub that returns deterministic responses for dev/testing.
    No API key required.
    """

    def chat(self, messages: list, model: str = "local-stub", **kwargs) -> dict:
        # Extract last user message
        user_msg = ""
        for m in reversed(messages):
            if m["role"] == "user":
                user_msg = m["content"]
                break

        content = self._generate_stub_response(user_msg)

        return {
            "content": content,
            "prompt_tokens": len(user_msg.split()) * 2,  # rough estimate
            "completion_tokens": len(content.split()) * 2,
            "model": "local-stub",
        }

    @staticmethod
    def _generate_stub_response(user_msg: str) -> str:
        """Price-estimation prompts get a prices list, everything else an offer."""
        if '"prices"' in user_msg:
            tasks = []
            start = user_msg.find("[")
            end = user_msg.find("]", start)
            if start != -1 and end != -1:
                try:
                    tasks = [item.get("task", "") for item in json.loads(user_msg[start:end + 1])]
                except (ValueError, AttributeError):
                    tasks = []
            return json.dumps({
                "prices": [{"task": t, "laborCost": 5000, "materialCost": 2000} for t in tasks],
            }, ensure_ascii=False)

        return "```json\n" + json.dumps({
            "offer": {
                "title": "Fürdőszoba felújítás",
                "location": "Budapest",
                "customerName": "Minta Ügyfél",
                "estimatedTime": "3-5 nap",
                "offerSummary": "A fürdőszoba teljes felújítását vállaljuk. "
                                "A munka a régi burkolat bontásával kezdődik. "
                                "Ezt követi az új csempe felrakása és a fugázás. "
                                "A befejezés után a helyszínt takarítva adjuk át.",
                "items": [
                    {"task": "Csempézés", "category": "Burkolás", "unit": "m2",
                     "quantity": 10, "source": "custom", "customTask": True,
                     "customReason": "Nincs a katalógusban"},
                ],
                "questions": ["Ki biztosítja a csempét?"],
            },
        }, ensure_ascii=False) + "\n```"


# ── LLM Gateway (Main Interface) ─────────────────────────────────────────────

class LLMGateway:
    """
    Central gateway for all LLM calls.

    Features:
        - Provider selection from LLM_PROVIDER (openai | local)
        - Retry per RetryPolicy (rate limiting only, by default)
        - Token/cost tracking (persisted to DB)

    Usage:
        gw = LLMGateway()
        result = gw.chat(
            messages=[{"role": "user", "content": "..."}],
            model="gpt-4o",
            purpose="offer_generation",
        )
    """

    def __init__(self, provider: LLMProvider | None = None, *,
                 provider_name: str | None = None,
                 api_key: str | None = None,
                 base_url: str | None = None,
                 timeout: float | None = None,
                 sleep: Callable[[float], None] = time.sleep):
        cfg = current_app.config if has_app_context() else {}
        self._provider = provider
        self.provider_name = provider_name or cfg.get("LLM_PROVIDER", "openai")
        self.api_key = api_key if api_key is not None else cfg.get("OPENAI_API_KEY", "")
        self.base_url = base_url or cfg.get("OPENAI_BASE_URL", "https://api.openai.com/v1")
        self.timeout = timeout if timeout is not None else cfg.get("LLM_TIMEOUT_SECONDS")
        self._sleep = sleep

    def _get_provider(self) -> LLMProvider:
        """Resolve the configured provider. Raises ConfigurationError before any call."""
        if self._provider is not None:
            return self._provider
        if self.provider_name == "local":
            self._provider = LocalStubProvider()
            return self._provider
        if not self.api_key:
            raise ConfigurationError("OPENAI_API_KEY not configured")
        self._provider = OpenAIProvider(self.api_key, self.base_url, timeout=self.timeout)
        return self._provider

    def ensure_configured(self) -> None:
        """Fail fast (ConfigurationError) when the credential is missing."""
        self._get_provider()

    def chat(
        self,
        messages: list,
        model: str,
        *,
        purpose: str = "",
        user: str = "system",
        tenant_email: str | None = None,
        retry_policy: RetryPolicy | None = None,
        **kwargs,
    ) -> dict:
        """
        Send a chat completion request with retry and usage logging.

        Args:
            messages: Chat messages.
            model: Model identifier.
            purpose: What the call is for (e.g. "offer_generation").
            user: Who triggered the call.
            tenant_email: Tenant scope, recorded on the usage log.
            retry_policy: Defaults to a single attempt.
            **kwargs: temperature, max_tokens passed to provider.

        Returns:
            dict: {content, prompt_tokens, completion_tokens, model, cost_usd,
                   latency_ms, provider, attempts}
        """
        policy = retry_policy or RetryPolicy.single()
        provider = self._get_provider()

        last_error = None
        started = time.time()
        for attempt in range(1, policy.max_attempts + 1):
            try:
                result = provider.chat(messages, model, **kwargs)
            except Exception as e:
                last_error = e
                logger.warning("LLM call attempt %d/%d failed: %s", attempt, policy.max_attempts, e,
                               extra={"purpose": purpose, "model": model, "attempt": attempt})
                if attempt < policy.max_attempts and isinstance(e, policy.retry_on):
                    wait = policy.delay(attempt)
                    logger.info("Rate limited, waiting %.0fs before retry", wait,
                                extra={"purpose": purpose, "model": model})
                    self._sleep(wait)
                    continue
                break

            latency_ms = int((time.time() - started) * 1000)
            cost = calculate_cost(model, result["prompt_tokens"], result["completion_tokens"])
            result["cost_usd"] = cost
            result["latency_ms"] = latency_ms
            result["provider"] = self.provider_name
            result["attempts"] = attempt

            self._log_usage(
                provider=self.provider_name, model=model,
                prompt_tokens=result["prompt_tokens"],
                completion_tokens=result["completion_tokens"],
                cost_usd=cost, latency_ms=latency_ms, attempts=attempt,
                user=user, purpose=purpose, tenant_email=tenant_email,
                success=True,
            )
            logger.info("LLM call ok: %s (%d+%d tokens, %dms)", model,
                        result["prompt_tokens"], result["completion_tokens"], latency_ms,
                        extra={"purpose": purpose, "model": model, "attempt": attempt})
            return result

        self._log_usage(
            provider=self.provider_name, model=model,
            prompt_tokens=0, completion_tokens=0,
            cost_usd=0.0, latency_ms=int((time.time() - started) * 1000),
            attempts=attempt, user=user, purpose=purpose, tenant_email=tenant_email,
            success=False, error_message=str(last_error),
        )
        raise last_error

    # ── Internal Logging ──────────────────────────────────────────────────

    @staticmethod
    def _log_usage(*, provider, model, prompt_tokens, completion_tokens,
                   cost_usd, latency_ms, attempts, user, purpose, tenant_email,
                   success, error_message=None):
        """Persist a usage log record inside a savepoint so the caller's transaction is untouched."""
        if not has_app_context():
            return
        try:
            with db.session.begin_nested():
                db.session.add(AIUsageLog(
                    provider=provider, model=model,
                    prompt_tokens=prompt_tokens,
                    completion_tokens=completion_tokens,
                    total_tokens=prompt_tokens + completion_tokens,
                    cost_usd=cost_usd, latency_ms=latency_ms, attempts=attempts,
                    user=user, purpose=purpose, tenant_email=tenant_email,
                    success=success, error_message=error_message,
                ))
        except Exception as e:
            logger.error("Failed to log AI usage: %s", e)
