"""
Tests — AI offer generation pipeline and persistence.

Covers:
    - prompt: existing items, catalog section, RAG fallback
    - end-to-end pricing: tenant / global / estimated custom items
    - failed estimation drops custom items from items and totals
    - fatal errors (missing key, unparseable completion) → structured failure, nothing saved
    - a failing Requirement insert leaves no Work behind
    - AI usage rows are committed even when no offer is saved
    - notes text
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.ai.assistants.offer_generator import OfferGenerator
from app.ai.gateway import LLMGateway
from app.ai.schemas import ProposedItem
from app.core.exceptions import LLMProviderError, RateLimitedError
from app.models import db
from app.models.ai import AIUsageLog
from app.models.work import MyWork, Offer, Requirement
from app.services.offer_service import build_offer_notes, create_offer_from_text

pytestmark = pytest.mark.integration

USER_INPUT = "Fürdőszoba felújítás a XI. kerületben, 8.5 m2 csempe, 20 m2 festés, új zuhanyzó."

OFFER = {
    "title": "Fürdőszoba felújítás",
    "location": "Budapest XI.",
    "customerName": "Nagy Anna",
    "estimatedTime": "5 nap",
    "offerSummary": "Teljes fürdőszoba felújítás.",
    "items": [
        {"task": "Zuhanyzó", "category": "Szaniter", "unit": "db", "quantity": 1,
         "source": "custom", "customTask": True, "customReason": "Nincs a katalógusban"},
        {"task": "Falfestés", "category": "Festés", "unit": "m2", "quantity": 20, "source": "tenant"},
        {"task": "Csempézés", "category": "Burkolás", "unit": "m2", "quantity": 8.5, "source": "global"},
    ],
    "questions": ["Ki biztosítja a csempét?"],
}

PRICES = {"prices": [{"task": "Zuhanyzó", "laborCost": 20000, "materialCost": 150000}]}


def _completion(payload, fenced=True):
    text = json.dumps(payload, ensure_ascii=False)
    if fenced:
        text = f"```json\n{text}\n```"
    return {"content": text, "prompt_tokens": 100, "completion_tokens": 50, "model": "gpt-4o"}


class _ScriptedProvider:
    """Answers chat calls from a queue; records every request."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    def chat(self, messages, model, **kwargs):
        self.requests.append({"messages": messages, "model": model, **kwargs})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _gateway(*outcomes):
    provider = _ScriptedProvider(*outcomes)
    return LLMGateway(provider, provider_name="openai", sleep=lambda s: None), provider


@pytest.fixture
def catalog(seed_prices):
    seed_prices(
        tenant=[("Festés", "Falfestés", "m2", 1500, 0)],
        global_=[
            ("Festés", "Falfestés", "m2", 1200, 300),
            ("Burkolás", "Csempézés", "m2", 8000, 4000),
        ],
    )


def _count(model):
    return db.session.execute(db.select(db.func.count(model.id))).scalar_one()


# ═════════════════════════════════════════════════════════════════════════════
# PROMPT
# ═════════════════════════════════════════════════════════════════════════════

class TestBuildPrompt:

    def test_existing_items_and_catalog(self, tenant_user, catalog):
        gen = OfferGenerator(gateway=_gateway()[0])
        prompt = gen.build_prompt(USER_INPUT, tenant_email=tenant_user.email,
                                  existing_items=[{"name": "Bontás"}])
        assert prompt.startswith(USER_INPUT)
        assert "Meglévő tételek" in prompt
        assert "TASK KATALÓGUS" in prompt
        assert prompt.index('"source": "tenant"') < prompt.index('"source": "global"')
        assert "8000" not in prompt

    def test_rag_failure_falls_back(self, tenant_user):
        gen = OfferGenerator(gateway=_gateway()[0], rag_enabled=True)
        with patch("app.ai.assistants.offer_generator.enhance_prompt_with_context",
                   side_effect=RuntimeError("index down")):
            prompt = gen.build_prompt(USER_INPUT, tenant_email=tenant_user.email)
        assert prompt.startswith(USER_INPUT)
        assert "NINCS TASK KATALÓGUS" in prompt

    def test_rag_not_called_when_disabled(self, tenant_user):
        gen = OfferGenerator(gateway=_gateway()[0], rag_enabled=False)
        with patch("app.ai.assistants.offer_generator.enhance_prompt_with_context") as mock_rag:
            gen.build_prompt(USER_INPUT, tenant_email=tenant_user.email)
        mock_rag.assert_not_called()


# ═════════════════════════════════════════════════════════════════════════════
# FULL PIPELINE
# ═════════════════════════════════════════════════════════════════════════════

class TestCreateOfferFromText:

    def test_priced_offer_saved(self, tenant_principal, catalog):
        gw, provider = _gateway(_completion({"offer": OFFER}), _completion(PRICES, fenced=False))

        result = create_offer_from_text(USER_INPUT, principal=tenant_principal, gateway=gw)

        assert result["success"] is True
        assert result["offer"] == OFFER

        offer = db.session.get(Offer, result["offer_id"])
        assert [i["name"] for i in offer.items] == ["Falfestés", "Csempézés", "Zuhanyzó"]
        falfestes, csempe, zuhany = offer.items
        assert (falfestes["source"], falfestes["unitPrice"], falfestes["workTotal"]) == ("tenant", 1500, 30000)
        assert falfestes["materialTotal"] == 0
        assert (csempe["source"], csempe["workTotal"], csempe["materialTotal"]) == ("global", 68000, 34000)
        assert (zuhany["source"], zuhany["new"], zuhany["totalPrice"]) == ("custom", True, 170000)

        assert offer.work_total == 118000
        assert offer.material_total == 184000
        assert offer.total_price == 302000
        assert offer.status == "draft"
        assert offer.tenant_email == tenant_principal.tenant_email
        assert offer.estimated_duration == "5 nap"

        work = db.session.get(MyWork, result["work_id"])
        assert work.total_price == 302000
        assert work.customer_name == "Nagy Anna"
        assert work.time == "5 nap"

        requirement = db.session.get(Requirement, result["requirement_id"])
        assert requirement.title == "Követelmény - Fürdőszoba felújítás"
        assert requirement.description == USER_INPUT
        assert requirement.my_work_id == work.id
        assert requirement.question_count == 1
        assert offer.requirement_id == requirement.id

        # main call on the offer model, estimation on the cheaper one
        assert [r["model"] for r in provider.requests] == ["gpt-4o", "gpt-4o-mini"]
        assert provider.requests[0]["max_tokens"] == 4000
        assert provider.requests[1]["max_tokens"] == 1000
        assert "Zuhanyzó" in provider.requests[1]["messages"][1]["content"]

    def test_validity_window(self, tenant_principal, catalog):
        gw, _ = _gateway(_completion({"offer": OFFER}), _completion(PRICES))
        result = create_offer_from_text(USER_INPUT, principal=tenant_principal, gateway=gw)

        offer = db.session.get(Offer, result["offer_id"])
        valid_until = offer.valid_until
        if valid_until.tzinfo is None:
            valid_until = valid_until.replace(tzinfo=timezone.utc)
        expected = datetime.now(timezone.utc) + timedelta(days=30)
        assert abs((valid_until - expected).total_seconds()) < 60

    def test_failed_estimation_drops_custom_items(self, tenant_principal, catalog):
        gw, _ = _gateway(_completion({"offer": OFFER}), LLMProviderError("estimation down"))

        result = create_offer_from_text(USER_INPUT, principal=tenant_principal, gateway=gw)

        assert result["success"] is True
        offer = db.session.get(Offer, result["offer_id"])
        assert [i["name"] for i in offer.items] == ["Falfestés", "Csempézés"]
        assert offer.total_price == 132000
        assert offer.work_total == 98000
        assert offer.material_total == 34000

    def test_estimation_not_called_without_custom_items(self, tenant_principal, catalog):
        offer = dict(OFFER, items=OFFER["items"][1:])
        gw, provider = _gateway(_completion({"offer": offer}))

        result = create_offer_from_text(USER_INPUT, principal=tenant_principal, gateway=gw)

        assert result["success"] is True
        assert len(provider.requests) == 1

    def test_rate_limited_main_call_retried(self, tenant_principal, catalog):
        gw, provider = _gateway(RateLimitedError(), _completion({"offer": OFFER}), _completion(PRICES))

        result = create_offer_from_text(USER_INPUT, principal=tenant_principal, gateway=gw)

        assert result["success"] is True
        assert len(provider.requests) == 3

    def test_missing_key_fails_before_call(self, tenant_principal):
        gw = LLMGateway(provider_name="openai", api_key="")
        with patch("app.ai.gateway.httpx.post") as mock_post:
            result = create_offer_from_text(USER_INPUT, principal=tenant_principal, gateway=gw)
        assert result["success"] is False
        assert "OPENAI_API_KEY" in result["error"]
        mock_post.assert_not_called()
        assert _count(MyWork) == 0

    def test_unparseable_completion(self, tenant_principal):
        gw, _ = _gateway({"content": "Sajnos nem értem.", "prompt_tokens": 1,
                          "completion_tokens": 1, "model": "gpt-4o"})
        result = create_offer_from_text(USER_INPUT, principal=tenant_principal, gateway=gw)
        assert result == {"success": False, "error": "Failed to parse AI response"}
        assert _count(Offer) == 0

    def test_empty_input(self, tenant_principal):
        gw, provider = _gateway()
        result = create_offer_from_text("   ", principal=tenant_principal, gateway=gw)
        assert result["success"] is False
        assert provider.requests == []

    def test_failing_requirement_insert_leaves_nothing(self, tenant_principal, catalog):
        gw, _ = _gateway(_completion({"offer": OFFER}), _completion(PRICES))
        with patch("app.services.offer_service.Requirement",
                   side_effect=SQLAlchemyError("insert failed")):
            result = create_offer_from_text(USER_INPUT, principal=tenant_principal, gateway=gw)

        assert result["success"] is False
        assert "insert failed" in result["error"]
        assert _count(MyWork) == 0
        assert _count(Requirement) == 0
        assert _count(Offer) == 0

    def test_non_finite_quantity_priced_as_zero(self, tenant_principal, catalog):
        offer = {**OFFER, "items": [{"task": "Csempézés", "category": "Burkolás", "unit": "m2",
                                     "quantity": "NaN", "source": "global"}]}
        gw, provider = _gateway(_completion({"offer": offer}))

        result = create_offer_from_text(USER_INPUT, principal=tenant_principal, gateway=gw)

        assert result["success"] is True
        saved = db.session.get(Offer, result["offer_id"])
        assert saved.items[0]["quantity"] == 0
        assert saved.items[0]["totalPrice"] == 0
        assert saved.total_price == 0
        assert len(provider.requests) == 1

    def test_local_stub_end_to_end(self, tenant_principal):
        result = create_offer_from_text(USER_INPUT, principal=tenant_principal)

        assert result["success"] is True
        offer = db.session.get(Offer, result["offer_id"])
        assert offer.items == [{
            "name": "Csempézés", "unit": "m2", "quantity": 10,
            "unitPrice": 5000, "materialUnitPrice": 2000,
            "workTotal": 50000, "materialTotal": 20000, "totalPrice": 70000,
            "source": "custom", "new": True,
        }]
        assert offer.total_price == 70000


# ═════════════════════════════════════════════════════════════════════════════
# AI USAGE LOGS
# ═════════════════════════════════════════════════════════════════════════════

class TestUsageLogsKept:
    """Usage rows are committed even when no offer is saved."""

    @staticmethod
    def _logs():
        db.session.remove()
        return db.session.execute(db.select(AIUsageLog).order_by(AIUsageLog.id)).scalars().all()

    def test_failed_main_call(self, tenant_principal):
        gw, _ = _gateway(LLMProviderError("Chat completion error: 500", status_code=500))
        result = create_offer_from_text(USER_INPUT, principal=tenant_principal, gateway=gw)

        assert result["success"] is False
        [log] = self._logs()
        assert log.success is False
        assert log.tenant_email == tenant_principal.tenant_email

    def test_rate_limit_exhausted(self, tenant_principal):
        gw, _ = _gateway(RateLimitedError(), RateLimitedError())
        create_offer_from_text(USER_INPUT, principal=tenant_principal, gateway=gw)

        [log] = self._logs()
        assert (log.success, log.attempts) == (False, 2)

    def test_successful_call_then_parse_failure(self, tenant_principal):
        gw, _ = _gateway({"content": "nem JSON", "prompt_tokens": 7,
                          "completion_tokens": 3, "model": "gpt-4o"})
        create_offer_from_text(USER_INPUT, principal=tenant_principal, gateway=gw)

        [log] = self._logs()
        assert (log.success, log.total_tokens) == (True, 10)

    def test_rolled_back_offer_chain(self, tenant_principal, catalog):
        gw, _ = _gateway(_completion({"offer": OFFER}), _completion(PRICES))
        with patch("app.services.offer_service.Requirement",
                   side_effect=SQLAlchemyError("insert failed")):
            create_offer_from_text(USER_INPUT, principal=tenant_principal, gateway=gw)

        assert [log.success for log in self._logs()] == [True, True]
        assert _count(MyWork) == 0


# ═════════════════════════════════════════════════════════════════════════════
# NOTES
# ═════════════════════════════════════════════════════════════════════════════

@pytest.mark.unit
class TestBuildOfferNotes:

    def test_full_notes(self):
        custom = [
            ProposedItem(task="Zuhanyzó", custom_reason="Nincs a katalógusban"),
            ProposedItem(task="WC"),
        ]
        notes = build_offer_notes("Budapest", "Fürdő", custom, ["Ki hozza a csempét?", "Mikor kezdhetünk?"])
        assert notes == (
            "Budapest\n\nFürdő\n\n"
            "További információ:\n\n"
            "A következő tétel nem volt az adatbázisban: 'Zuhanyzó (egyedi tétel)'.\n\n"
            "Indoklás: Nincs a katalógusban\n\n"
            "A következő tétel nem volt az adatbázisban: 'WC (egyedi tétel)'.\n\n"
            "Indoklás: Egyedi tétel\n\n"
            "Tisztázandó kérdések:\n\n"
            "1. Ki hozza a csempét?\n\n"
            "2. Mikor kezdhetünk?\n\n"
        )

    def test_minimal_notes(self):
        assert build_offer_notes("Budapest", "Fürdő", [], []) == "Budapest\n\nFürdő\n\n"
