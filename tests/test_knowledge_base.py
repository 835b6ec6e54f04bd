"""Tests for the support knowledge base lookups."""
from support_triage.knowledge_base import DEFAULT_KNOWLEDGE, KnowledgeBase


def test_categories_listed():
    kb = KnowledgeBase()
    assert kb.categories() == [
        "account_access", "api_integration", "billing_subscription",
        "technical_issues", "general_support",
    ]


def test_find_relevant_ranks_by_keyword_hits():
    kb = KnowledgeBase()
    relevant = kb.find_relevant("Login problem", "My password and login do not work for my account")
    assert relevant[0]["category"] == "account_access"
    assert relevant[0]["match_score"] >= 3
    scores = [r["match_score"] for r in relevant]
    assert scores == sorted(scores, reverse=True)


def test_find_relevant_no_match():
    assert KnowledgeBase().find_relevant("Hi", "Lovely weather") == []


def test_get_context_includes_numbered_solutions():
    context = KnowledgeBase().get_context("Webhook", "Our webhook endpoint rejects the oauth token")
    assert context.startswith("API integration support")
    assert "Suggested solutions:" in context
    assert "1. Verify API key is correct and active" in context


def test_get_context_falls_back_to_general_support():
    kb = KnowledgeBase()
    assert kb.get_context("Hi", "Lovely weather") == DEFAULT_KNOWLEDGE["general_support"]["context"]


def test_suggested_solutions_fallback():
    kb = KnowledgeBase()
    assert kb.get_suggested_solutions("Hi", "Lovely weather") == DEFAULT_KNOWLEDGE["general_support"]["solutions"]


def test_search_prefers_context_matches():
    results = KnowledgeBase().search("refund")
    assert results[0]["category"] == "billing_subscription"
    assert results[0]["relevance"] == 2


def test_search_keyword_match():
    results = KnowledgeBase().search("oauth")
    categories = [r["category"] for r in results]
    assert "api_integration" in categories


def test_add_and_update_category():
    kb = KnowledgeBase()
    kb.add("shipping", ["delivery", "parcel"], "Parcels ship within 2 days.", ["Track the parcel"])
    assert kb.find_relevant("Delivery", "where is my parcel")[0]["category"] == "shipping"
    assert kb.update("shipping", context="Parcels ship within 1 day.") is True
    assert kb.get("shipping")["context"] == "Parcels ship within 1 day."
    assert kb.update("unknown", context="x") is False


def test_instances_do_not_share_state():
    first = KnowledgeBase()
    first.update("general_support", solutions=[])
    assert KnowledgeBase().get("general_support")["solutions"] != []
