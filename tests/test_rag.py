"""Tests — keyword retrieval over earlier offers and prompt augmentation."""

import pytest

from app.ai.rag import (
    CONTEXT_HEADER,
    _keyword_search,
    _tokenize,
    enhance_prompt_with_context,
    search_similar_offers,
)
from app.models import db
from app.models.work import MyWork, Offer, Requirement


def _offer(title, tenant_email, items=(), total=0):
    work = MyWork(title=title, tenant_email=tenant_email)
    db.session.add(work)
    db.session.flush()
    requirement = Requirement(title=f"Követelmény - {title}", my_work_id=work.id)
    db.session.add(requirement)
    db.session.flush()
    offer = Offer(title=title, requirement_id=requirement.id, tenant_email=tenant_email,
                  items=list(items), total_price=total)
    db.session.add(offer)
    db.session.commit()
    return offer


@pytest.mark.unit
class TestKeywordSearch:

    def test_tokenize(self):
        assert _tokenize("Fürdőszoba, 10 m2!") == ["fürdőszoba", "10", "m2"]

    def test_scores_normalised(self):
        scores = _keyword_search("fürdőszoba csempe", {
            1: "fürdőszoba csempe burkolás",
            2: "konyha festés",
            3: "fürdőszoba festés",
        })
        assert scores[1] == 1.0
        assert 0 < scores[3] < 1.0
        assert 2 not in scores

    def test_empty_query(self):
        assert _keyword_search("", {1: "x"}) == {}


@pytest.mark.integration
class TestSearchSimilarOffers:

    def test_tenant_scoped_and_ranked(self, tenant_user):
        _offer("Konyha festés", tenant_user.email)
        bath = _offer("Fürdőszoba felújítás", tenant_user.email,
                      items=[{"name": "Csempézés", "quantity": 12, "unit": "m2"}])
        _offer("Fürdőszoba csempézés", "masik@example.hu")

        found = search_similar_offers("fürdőszoba csempézés", tenant_user.email, top_k=3)
        assert [o.id for o in found] == [bath.id]


@pytest.mark.integration
class TestEnhancePrompt:

    def test_disabled_returns_input(self, tenant_user):
        _offer("Fürdőszoba felújítás", tenant_user.email)
        assert enhance_prompt_with_context("base", "fürdőszoba", False,
                                           tenant_email=tenant_user.email) == "base"

    def test_no_match_returns_input(self, tenant_user):
        assert enhance_prompt_with_context("base", "fürdőszoba", True,
                                           tenant_email=tenant_user.email) == "base"

    def test_context_appended(self, tenant_user):
        _offer("Fürdőszoba felújítás", tenant_user.email,
               items=[{"name": "Csempézés", "quantity": 12, "unit": "m2"}], total=250000)
        result = enhance_prompt_with_context("base", "fürdőszoba", True,
                                             tenant_email=tenant_user.email)
        assert result.startswith(f"base\n\n{CONTEXT_HEADER}\n")
        assert "1. Fürdőszoba felújítás (összesen: 250000 Ft)" in result
        assert "- Csempézés (12 m2)" in result
