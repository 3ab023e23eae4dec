"""
Renovation Back Office
Offer Generator Assistant — free-text requirement → priced line items.

Pipeline:
    1. Build input (requirement + items already on the offer)
    2. Optional retrieval augmentation (RAG_ENABLED)
    3. Append the priority-ordered task catalog (no prices)
    4. Main LLM call (retried on rate limiting), parse JSON
    5. Load prices for the categories the model used, reconcile
    6. Estimate prices for unmatched items with the cheaper model (non-fatal)

Persistence is not done here; see app.services.offer_service.
"""

import logging
from dataclasses import dataclass, field

from flask import current_app, has_app_context

from app.ai.gateway import LLMGateway, RetryPolicy
from app.ai.prompts import (
    build_base_input,
    build_catalog_section,
    build_offer_messages,
    build_price_estimation_messages,
)
from app.ai.rag import enhance_prompt_with_context
from app.ai.schemas import OfferDraft, parse_json_response, parse_price_estimates
from app.services.item_reconciler import apply_estimated_prices, reconcile_items
from app.services.price_catalog_service import load_split_catalog, load_task_catalog

logger = logging.getLogger(__name__)

OFFER_MAX_TOKENS = 4000
ESTIMATION_MAX_TOKENS = 1000
TEMPERATURE = 0.1


@dataclass
class GeneratedOffer:
    """Result of the model round-trips, ready to be persisted."""

    draft: OfferDraft
    items: list = field(default_factory=list)          # ReconciledLineItem, persisted order
    custom_items: list = field(default_factory=list)   # ProposedItem sent to estimation


class OfferGenerator:
    """
    AI-powered offer drafting.

    The gateway and the price catalog cache are injected; settings default
    to the current app's config.
    """

    def __init__(self, gateway=None, cache=None, *,
                 offer_model: str | None = None,
                 estimation_model: str | None = None,
                 rate_limit_wait: float | None = None,
                 max_attempts: int | None = None,
                 rag_enabled: bool | None = None):
        cfg = current_app.config if has_app_context() else {}
        self.gateway = gateway or LLMGateway()
        self.cache = cache
        self.offer_model = offer_model or cfg.get("OFFER_MODEL", "gpt-4o")
        self.estimation_model = estimation_model or cfg.get("PRICE_ESTIMATION_MODEL", "gpt-4o-mini")
        wait = rate_limit_wait if rate_limit_wait is not None else cfg.get("LLM_RATE_LIMIT_WAIT_SECONDS", 120.0)
        attempts = max_attempts if max_attempts is not None else cfg.get("LLM_MAX_ATTEMPTS", 2)
        self.retry_policy = RetryPolicy.fixed(attempts, wait)
        self.rag_enabled = rag_enabled if rag_enabled is not None else bool(cfg.get("RAG_ENABLED", False))

    # ── Main Flow ─────────────────────────────────────────────────────────

    def generate(self, user_input: str, *, tenant_email: str, user: str = "system",
                 existing_items: list | None = None) -> GeneratedOffer:
        """
        Run the model side of offer generation.

        Raises:
            ConfigurationError: credential missing (before any call).
            LLMProviderError / RateLimitedError: main call failed.
            AIResponseParseError: main completion is not JSON.
        """
        self.gateway.ensure_configured()

        final_input = self.build_prompt(user_input, tenant_email=tenant_email,
                                        existing_items=existing_items)
        draft = self.request_offer(final_input, tenant_email=tenant_email, user=user)

        tenant_prices, global_prices = load_split_catalog(
            tenant_email, draft.categories, cache=self.cache,
        )
        reconciled = reconcile_items(draft.items, tenant_prices, global_prices)

        items = list(reconciled.items)
        if reconciled.pending_custom:
            items.extend(self.estimate_prices(reconciled.pending_custom,
                                              tenant_email=tenant_email, user=user))

        return GeneratedOffer(draft=draft, items=items, custom_items=reconciled.pending_custom)

    def build_prompt(self, user_input: str, *, tenant_email: str,
                     existing_items: list | None = None) -> str:
        base_input = build_base_input(user_input, existing_items)

        final_input = base_input
        if self.rag_enabled:
            try:
                final_input = enhance_prompt_with_context(
                    base_input, user_input, True, tenant_email=tenant_email,
                )
            except Exception as e:
                logger.warning("RAG enhancement failed, using plain input: %s", e)
                final_input = base_input

        tenant_tasks, global_tasks = load_task_catalog(tenant_email, cache=self.cache)
        logger.info("Task catalog for prompt: %d tenant + %d global tasks",
                    len(tenant_tasks), len(global_tasks))
        return final_input + build_catalog_section(tenant_tasks, global_tasks)

    def request_offer(self, final_input: str, *, tenant_email: str, user: str = "system") -> OfferDraft:
        llm_response = self.gateway.chat(
            build_offer_messages(final_input),
            self.offer_model,
            purpose="offer_generation",
            user=user,
            tenant_email=tenant_email,
            retry_policy=self.retry_policy,
            max_tokens=OFFER_MAX_TOKENS,
            temperature=TEMPERATURE,
        )
        draft = OfferDraft.from_response(parse_json_response(llm_response["content"]))
        logger.info("Offer draft parsed: %d items, %d questions, summary=%s",
                    len(draft.items), len(draft.questions), bool(draft.offer_summary))
        return draft

    def estimate_prices(self, pending: list, *, tenant_email: str, user: str = "system") -> list:
        """Price custom items with the cheaper model. Any failure drops them all."""
        try:
            llm_response = self.gateway.chat(
                build_price_estimation_messages(pending),
                self.estimation_model,
                purpose="price_estimation",
                user=user,
                tenant_email=tenant_email,
                retry_policy=RetryPolicy.single(),
                max_tokens=ESTIMATION_MAX_TOKENS,
                temperature=TEMPERATURE,
            )
            prices = parse_price_estimates(parse_json_response(llm_response["content"]))
        except Exception as e:
            logger.warning("Price estimation failed, %d custom items dropped: %s", len(pending), e)
            return []

        priced = apply_estimated_prices(pending, prices)
        logger.info("Price estimation: %d/%d custom items priced", len(priced), len(pending))
        return priced
