"""Tests for the FastAPI service."""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from support_triage.errors import GenerationError
from support_triage.gmail_sender import ReplySender
from support_triage.knowledge_base import KnowledgeBase
from support_triage.priority_queue import PriorityQueue
from support_triage.store import EmailRecord, EmailStore
from support_triage.utils import utcnow
from support_triage.web import app, create_app


class FakeGenerator:
    def __init__(self, reply="Drafted reply", error=None):
        self.reply = reply
        self.error = error
        self.contexts = []

    async def generate(self, email_data, context=None):
        self.contexts.append(context)
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture()
def store(tmp_path):
    return EmailStore(tmp_path)


@pytest.fixture()
def generator():
    return FakeGenerator()


@pytest.fixture()
def queue(store, generator):
    sender = ReplySender(store)
    return PriorityQueue(store, generator, sender, logs_dir=store.vault_path / "Logs")


@pytest.fixture()
def client(store, queue, generator):
    create_app(store, queue, KnowledgeBase(), generator, queue.sender)
    return TestClient(app)


def add_email(store, **overrides):
    values = {"sender_email": "bob@test.com", "subject": "Login help", "body": "I cannot log in."}
    values.update(overrides)
    return store.save(EmailRecord(**values))


# --- health & stats ---

def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["vault_exists"] is True
    assert data["gmail_connected"] is False


def test_stats_includes_breakdowns(client, store):
    add_email(store, priority="urgent")
    data = client.get("/api/stats").json()["data"]
    assert data["total_emails"] == 1
    assert data["priority_breakdown"]["urgent"] == {"total": 1, "pending": 1}
    assert data["category_breakdown"]["support"] == 1


def test_stats_timeline(client, store):
    add_email(store, priority="urgent")
    data = client.get("/api/stats/timeline/week").json()["data"]
    assert data["period"] == "week"
    assert data["timeline"][0]["total_emails"] == 1
    assert data["timeline"][0]["urgent_emails"] == 1


def test_stats_timeline_rejects_unknown_period(client):
    resp = client.get("/api/stats/timeline/year")
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_stats_performance(client, store):
    add_email(store, status="resolved")
    add_email(store, subject="open one")
    data = client.get("/api/stats/performance").json()["data"]
    assert data["total_emails"] == 2
    assert data["emails_last_24h"] == 2
    assert data["resolution_rate"] == 50.0


def test_stats_top_senders(client, store):
    add_email(store)
    add_email(store, subject="again")
    add_email(store, sender_email="amy@test.com")
    data = client.get("/api/stats/top-senders", params={"limit": 1}).json()["data"]
    assert data == [{
        "sender_email": "bob@test.com",
        "email_count": 2,
        "urgent_count": 0,
        "last_email_date": data[0]["last_email_date"],
        "avg_sentiment": 0.0,
    }]


# --- emails ---

def test_list_emails_filters(client, store):
    add_email(store, subject="a", priority="urgent")
    add_email(store, subject="b")
    resp = client.get("/api/emails", params={"priority": "normal"})
    body = resp.json()
    assert body["count"] == 1
    assert body["data"][0]["subject"] == "b"


def test_urgent_emails_excludes_resolved(client, store):
    add_email(store, subject="open", priority="urgent")
    add_email(store, subject="done", priority="urgent", status="resolved")
    data = client.get("/api/emails/urgent").json()["data"]
    assert [e["subject"] for e in data] == ["open"]


def test_recent_emails(client, store):
    add_email(store, subject="new")
    add_email(store, subject="old", received_date=utcnow() - timedelta(hours=30))
    body = client.get("/api/emails/recent/24").json()
    assert [e["subject"] for e in body["data"]] == ["new"]
    assert body["timeframe"] == "24 hours"
    assert client.get("/api/emails/recent/48").json()["count"] == 2
    assert client.get("/api/emails/recent/0").status_code == 400


def test_get_email_not_found(client):
    resp = client.get("/api/emails/missing")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Email not found"}


def test_get_email(client, store):
    record = add_email(store)
    data = client.get(f"/api/emails/{record.id}").json()["data"]
    assert data["id"] == record.id
    assert data["sender_email"] == "bob@test.com"


def test_generate_response_stores_reply(client, store, generator):
    record = add_email(store)
    resp = client.post(f"/api/emails/{record.id}/generate-response", json={"custom_context": "VIP"})
    assert resp.status_code == 200
    assert resp.json()["data"]["ai_response"] == "Drafted reply"
    assert store.find_by_id(record.id).ai_response == "Drafted reply"
    assert generator.contexts == ["VIP"]


def test_generate_response_failure(client, store, generator):
    generator.error = GenerationError("Claude error: boom")
    record = add_email(store)
    resp = client.post(f"/api/emails/{record.id}/generate-response")
    assert resp.status_code == 502
    assert resp.json()["success"] is False


def test_update_status(client, store):
    record = add_email(store)
    resp = client.put(f"/api/emails/{record.id}/status", json={"status": "resolved"})
    assert resp.status_code == 200
    assert store.find_by_id(record.id).status == "resolved"


def test_update_status_rejects_unknown_value(client, store):
    record = add_email(store)
    resp = client.put(f"/api/emails/{record.id}/status", json={"status": "archived"})
    assert resp.status_code == 400


def test_delete_email(client, store):
    record = add_email(store)
    assert client.delete(f"/api/emails/{record.id}").status_code == 200
    assert client.delete(f"/api/emails/{record.id}").status_code == 404


def test_bulk_update_status(client, store):
    first = add_email(store)
    second = add_email(store, subject="already done", status="resolved")
    body = client.post("/api/emails/bulk/update-status", json={
        "email_ids": [first.id, second.id, "missing"], "status": "resolved",
    }).json()
    assert body["data"] == {"modified_count": 1, "matched_count": 2}
    assert body["message"] == "Updated 1 emails to resolved"
    assert store.find_by_id(first.id).status == "resolved"


def test_bulk_update_status_validation(client, store):
    record = add_email(store)
    assert client.post("/api/emails/bulk/update-status", json={"status": "resolved"}).status_code == 400
    resp = client.post("/api/emails/bulk/update-status", json={"email_ids": [record.id], "status": "archived"})
    assert resp.status_code == 400
    assert store.find_by_id(record.id).status == "pending"


def test_fetch_without_gmail_loads_samples(client, queue):
    data = client.post("/api/emails/fetch").json()["data"]
    assert data == {"fetched": 5, "source": "samples"}
    assert queue.get_queue_status()["total_items"] == 5


# --- analysis ---

def test_analyze_sentiment(client):
    resp = client.post("/api/ai/analyze-sentiment", json={"text": "Thanks, excellent work"})
    assert resp.json()["data"]["sentiment"] == "positive"


def test_analyze_sentiment_requires_text(client):
    assert client.post("/api/ai/analyze-sentiment", json={}).status_code == 400


def test_determine_priority(client):
    resp = client.post("/api/ai/determine-priority", json={"subject": "Help", "body": "Production down!"})
    data = resp.json()["data"]
    assert data["priority"] == "urgent"
    assert data["category"] == "help"


def test_determine_priority_requires_both_fields(client):
    assert client.post("/api/ai/determine-priority", json={"subject": "Help"}).status_code == 400


def test_extract_info(client):
    resp = client.post("/api/ai/extract-info", json={"body": "Call 555-123-4567 about billing."})
    data = resp.json()["data"]
    assert data["phone_numbers"] == ["555-123-4567"]
    assert "billing" in data["mentioned_products"]


# --- knowledge base ---

def test_kb_categories(client):
    assert "account_access" in client.get("/api/knowledge-base/categories").json()["data"]


def test_kb_search(client):
    assert client.get("/api/knowledge-base/search").status_code == 400
    body = client.get("/api/knowledge-base/search", params={"q": "oauth"}).json()
    assert body["count"] >= 1


def test_kb_find_relevant(client):
    resp = client.post("/api/knowledge-base/find-relevant", json={"subject": "Login", "body": "password reset"})
    data = resp.json()["data"]
    assert data["relevant"][0]["category"] == "account_access"
    assert data["solutions"]


def test_kb_add_then_read_back(client):
    resp = client.post("/api/knowledge-base/add", json={
        "category": "shipping", "keywords": ["delivery", "tracking"], "context": "Orders ship in 2 days.",
    })
    assert resp.status_code == 200
    entry = client.get("/api/knowledge-base/category/shipping").json()["data"]
    assert entry == {
        "category": "shipping",
        "keywords": ["delivery", "tracking"],
        "context": "Orders ship in 2 days.",
        "solutions": [],
    }
    body = client.get("/api/knowledge-base/all").json()
    assert "shipping" in body["data"]
    assert body["categories"] == len(body["data"])


def test_kb_add_requires_fields(client):
    assert client.post("/api/knowledge-base/add", json={"category": "shipping"}).status_code == 400


def test_kb_update(client):
    resp = client.put("/api/knowledge-base/update/billing_subscription",
                      json={"context": "Invoices go out monthly."})
    assert resp.json()["data"] == {
        "category": "billing_subscription",
        "updates": {"context": "Invoices go out monthly."},
    }
    entry = client.get("/api/knowledge-base/category/billing_subscription").json()["data"]
    assert entry["context"] == "Invoices go out monthly."
    assert entry["keywords"]


def test_kb_update_and_get_unknown_category(client):
    assert client.put("/api/knowledge-base/update/nope", json={"context": "x"}).status_code == 404
    assert client.put("/api/knowledge-base/update/billing_subscription", json={}).status_code == 400
    assert client.get("/api/knowledge-base/category/nope").status_code == 404


# --- sending ---

def test_send_response(client, store):
    record = add_email(store)
    resp = client.post("/api/sender/send-response", json={"email_id": record.id, "response_text": "Hi"})
    assert resp.status_code == 200
    assert resp.json()["data"]["success"] is True
    assert store.find_by_id(record.id).status == "responded"


def test_send_response_unknown_email(client):
    resp = client.post("/api/sender/send-response", json={"email_id": "missing", "response_text": "Hi"})
    assert resp.status_code == 404


def test_bulk_send(client, store):
    record = add_email(store)
    resp = client.post("/api/sender/bulk-send", json={"responses": [
        {"email_id": record.id, "response_text": "Hi"},
        {"email_id": "missing", "response_text": "Hi"},
    ]})
    assert resp.json()["message"] == "Sent 1 out of 2 responses"


def test_auto_respond_urgent(client, store, generator):
    urgent = add_email(store, priority="urgent")
    normal = add_email(store, subject="normal one")
    body = client.post("/api/sender/auto-respond-urgent").json()
    assert body["message"] == "Auto-responded to 1 urgent emails"
    assert [r["email_id"] for r in body["data"]] == [urgent.id]
    assert store.find_by_id(urgent.id).status == "responded"
    assert store.find_by_id(urgent.id).ai_response == "Drafted reply"
    assert store.find_by_id(normal.id).status == "pending"


# --- queue ---

def test_queue_status_and_items(client, store, queue):
    record = add_email(store, priority="urgent")
    queue.enqueue(record.id, "urgent")
    status = client.get("/api/queue/status").json()["data"]
    assert status["total_items"] == 1
    assert status["urgent_items"] == 1
    items = client.get("/api/queue/items").json()
    assert items["count"] == 1
    assert items["data"][0]["email_id"] == record.id


def test_process_urgent(client, store):
    record = add_email(store, priority="urgent")
    add_email(store, subject="normal one")
    body = client.post("/api/queue/process-urgent").json()
    assert body["data"]["processed"] == 1
    assert body["message"] == "Processed 1 urgent emails"
    updated = store.find_by_id(record.id)
    assert updated.ai_response == "Drafted reply"
    assert updated.status == "responded"


def test_force_process(client, store):
    record = add_email(store)
    body = client.post("/api/queue/force-process", json={"email_id": record.id}).json()
    assert body["success"] is True
    assert body["data"]["status"] == "completed"
    assert store.find_by_id(record.id).ai_response == "Drafted reply"


def test_force_process_validation(client):
    assert client.post("/api/queue/force-process", json={}).status_code == 400
    assert client.post("/api/queue/force-process", json={"email_id": "missing"}).status_code == 404
