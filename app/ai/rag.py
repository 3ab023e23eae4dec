"""
Renovation Back Office
Retrieval augmentation for the offer prompt.

Keyword (BM25) search over the tenant's earlier offers; the best matches
are appended to the composed prompt as reference material so the model
reuses the contractor's usual task names and quantities.

Usage:
    from app.ai.rag import enhance_prompt_with_context
    final_input = enhance_prompt_with_context(base_input, user_input, True,
                                              tenant_email="a@b.hu")
"""

import logging
import math
import re
from collections import defaultdict

from flask import current_app, has_app_context

from app.models import db
from app.models.work import Offer

logger = logging.getLogger(__name__)

CONTEXT_HEADER = "===KORÁBBI HASONLÓ AJÁNLATOK (referencia)==="
DEFAULT_TOP_K = 3
MAX_CANDIDATES = 200
MAX_ITEMS_PER_OFFER = 15


def _tokenize(text: str) -> list[str]:
    """Simple whitespace + punctuation tokenizer, lowercased."""
    return re.findall(r'\b\w+\b', text.lower())


def _offer_text(offer: Offer) -> str:
    parts = [offer.title or "", offer.offer_summary or "", offer.description or ""]
    for item in offer.items or []:
        if isinstance(item, dict):
            parts.append(str(item.get("name", "")))
    return " ".join(parts)


def _keyword_search(query: str, documents: dict[int, str]) -> dict[int, float]:
    """
    BM25-like keyword scoring.

    Args:
        query: Free text.
        documents: id → text.

    Returns:
        id → score normalised to [0, 1]; documents without a hit are absent.
    """
    query_tokens = set(_tokenize(query))
    if not query_tokens or not documents:
        return {}

    # Document frequency
    df = defaultdict(int)
    doc_tokens_map = {}
    for doc_id, text in documents.items():
        tokens = _tokenize(text)
        doc_tokens_map[doc_id] = tokens
        for t in set(tokens):
            df[t] += 1

    n = len(documents)
    avg_dl = sum(len(t) for t in doc_tokens_map.values()) / max(n, 1)
    k1 = 1.2
    b = 0.75

    scores = {}
    for doc_id, tokens in doc_tokens_map.items():
        if not tokens:
            continue

        tf_map = defaultdict(int)
        for t in tokens:
            tf_map[t] += 1
        dl = len(tokens)

        score = 0.0
        for qt in query_tokens:
            if qt in tf_map:
                tf = tf_map[qt]
                idf = math.log((n - df[qt] + 0.5) / (df[qt] + 0.5) + 1)
                tf_norm = (tf * (k1 + 1)) / (tf + k1 * (1 - b + b * dl / max(avg_dl, 1)))
                score += idf * tf_norm

        if score > 0:
            scores[doc_id] = score

    max_score = max(scores.values()) if scores else 1.0
    return {k: v / max_score for k, v in scores.items()}


def search_similar_offers(query: str, tenant_email: str, top_k: int = DEFAULT_TOP_K) -> list[Offer]:
    """Return the tenant's offers that best match the query, best first."""
    candidates = db.session.execute(
        db.select(Offer)
        .where(Offer.tenant_email == tenant_email)
        .order_by(Offer.created_at.desc())
        .limit(MAX_CANDIDATES)
    ).scalars().all()
    if not candidates:
        return []

    by_id = {o.id: o for o in candidates}
    scores = _keyword_search(query, {o.id: _offer_text(o) for o in candidates})
    ranked = sorted(scores.items(), key=lambda kv: kv[1], reverse=True)[:top_k]
    return [by_id[doc_id] for doc_id, _ in ranked]


def _render_context(offers: list[Offer]) -> str:
    blocks = []
    for i, offer in enumerate(offers, 1):
        names = [
            f"- {item.get('name')} ({item.get('quantity')} {item.get('unit') or ''})".rstrip()
            for item in (offer.items or [])[:MAX_ITEMS_PER_OFFER]
            if isinstance(item, dict) and item.get("name")
        ]
        block = f"{i}. {offer.title} (összesen: {round(offer.total_price or 0)} Ft)"
        if names:
            block += "\n" + "\n".join(names)
        blocks.append(block)
    return "\n\n".join(blocks)


def enhance_prompt_with_context(composed_input: str, raw_user_input: str, enabled: bool, *,
                                tenant_email: str, top_k: int | None = None) -> str:
    """
    Append similar earlier offers to the composed prompt.

    The search runs on the raw user input (not the composed prompt, which
    may carry existing items). Returns composed_input unchanged when
    disabled or when nothing matches.
    """
    if not enabled:
        return composed_input

    if top_k is None:
        top_k = current_app.config.get("RAG_TOP_K", DEFAULT_TOP_K) if has_app_context() else DEFAULT_TOP_K

    offers = search_similar_offers(raw_user_input, tenant_email, top_k=top_k)
    if not offers:
        logger.info("RAG: no similar offers found", extra={"tenant_email": tenant_email})
        return composed_input

    logger.info("RAG: %d similar offers appended", len(offers), extra={"tenant_email": tenant_email})
    return f"{composed_input}\n\n{CONTEXT_HEADER}\n{_render_context(offers)}"
