"""Tests — model output parsing (fence stripping, OfferDraft defaults, price estimates)."""

import pytest

from app.ai.schemas import (
    DEFAULT_CUSTOMER_NAME,
    DEFAULT_ESTIMATED_TIME,
    DEFAULT_LOCATION,
    DEFAULT_TITLE,
    OfferDraft,
    ProposedItem,
    parse_json_response,
    parse_price_estimates,
    strip_code_fences,
)
from app.core.exceptions import AIResponseParseError

pytestmark = pytest.mark.unit


class TestStripCodeFences:

    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence_untouched(self):
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'

    def test_crlf(self):
        assert strip_code_fences('```json\r\n{"a": 1}\r\n```') == '{"a": 1}'


class TestParseJsonResponse:

    def test_fenced_object(self):
        assert parse_json_response('```json\n{"offer": {"title": "X"}}\n```') == {"offer": {"title": "X"}}

    def test_invalid_json(self):
        with pytest.raises(AIResponseParseError):
            parse_json_response("Sajnos nem tudok ajánlatot adni.")

    def test_non_object(self):
        with pytest.raises(AIResponseParseError):
            parse_json_response("[1, 2]")


class TestOfferDraft:

    def test_defaults_for_missing_fields(self):
        draft = OfferDraft.from_response({"offer": {}})
        assert draft.title == DEFAULT_TITLE
        assert draft.location == DEFAULT_LOCATION
        assert draft.customer_name == DEFAULT_CUSTOMER_NAME
        assert draft.estimated_time == DEFAULT_ESTIMATED_TIME
        assert draft.offer_summary is None
        assert draft.items == []
        assert draft.questions == []

    def test_bare_offer_object_accepted(self):
        draft = OfferDraft.from_response({"title": "Konyha", "items": []})
        assert draft.title == "Konyha"

    def test_numeric_estimated_time(self):
        draft = OfferDraft.from_response({"offer": {"estimatedTime": 4}})
        assert draft.estimated_time == "4 nap"

    def test_raw_kept_as_returned(self):
        offer = {"title": "Konyha", "extra": "megmarad"}
        draft = OfferDraft.from_response({"offer": offer})
        assert draft.raw == offer

    def test_items_and_categories(self):
        draft = OfferDraft.from_response({"offer": {"items": [
            {"task": "Csempézés", "category": "Burkolás", "unit": "m2", "quantity": "12,5",
             "source": "tenant"},
            {"task": "Fugázás", "category": "Burkolás", "unit": "m2", "quantity": 12},
            {"task": "Falfestés", "category": "Festés", "unit": "m2", "quantity": 30,
             "source": "mystery"},
            "not an item",
        ], "questions": ["Ki hozza a csempét?", ""]}})

        assert [i.task for i in draft.items] == ["Csempézés", "Fugázás", "Falfestés"]
        assert draft.items[0].quantity == 12.5
        assert draft.items[1].source == "custom"
        assert draft.items[2].source == "custom"
        assert draft.categories == ["Burkolás", "Festés"]
        assert draft.questions == ["Ki hozza a csempét?"]


class TestProposedItem:

    def test_custom_reason(self):
        item = ProposedItem.from_dict({
            "task": "Zuhanyzó 150000", "source": "custom",
            "customTask": True, "customReason": "Nincs a katalógusban",
        })
        assert item.custom_task is True
        assert item.custom_reason == "Nincs a katalógusban"

    def test_garbage_quantity_is_zero(self):
        assert ProposedItem.from_dict({"task": "X", "quantity": "sok"}).quantity == 0

    @pytest.mark.parametrize("quantity", ["NaN", "Infinity", "-inf", float("nan"), float("inf")])
    def test_non_finite_quantity_is_zero(self, quantity):
        assert ProposedItem.from_dict({"task": "X", "quantity": quantity}).quantity == 0

    def test_bare_nan_literal_in_completion(self):
        parsed = parse_json_response('{"offer": {"items": [{"task": "X", "quantity": NaN}]}}')
        assert OfferDraft.from_response(parsed).items[0].quantity == 0

    def test_catalog_keys_taken_verbatim(self):
        item = ProposedItem.from_dict({"task": "Falfestés ", "category": " Festés", "source": "Tenant"})
        assert item.task == "Falfestés "
        assert item.category == " Festés"
        assert item.source == "custom"


class TestPriceEstimates:

    def test_parse(self):
        prices = parse_price_estimates({"prices": [
            {"task": "Zuhanyzó", "laborCost": 0, "materialCost": 150000},
            "junk",
        ]})
        assert len(prices) == 1
        assert prices[0].material_cost == 150000

    def test_missing_prices_key(self):
        assert parse_price_estimates({"offer": {}}) == []
