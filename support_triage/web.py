"""FastAPI service for the support triage assistant — emails, analysis, knowledge base and queue."""
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from support_triage.errors import EmailNotFoundError, GenerationError, SendError
from support_triage.extractors import analyze_sentiment, extract_information
from support_triage.gmail_sender import ReplySender
from support_triage.knowledge_base import KnowledgeBase
from support_triage.priority import classify_category, classify_priority
from support_triage.priority_queue import PriorityQueue
from support_triage.responder import ResponseGenerator
from support_triage.samples import load_sample_emails
from support_triage.stats import (
    get_category_breakdown,
    get_email_stats,
    get_performance,
    get_priority_breakdown,
    get_recent_emails,
    get_timeline,
    get_top_senders,
)
from support_triage.store import EMAIL_STATUSES, EmailStore
from support_triage.utils import log_action, utcnow

logger = logging.getLogger("support_triage.web")


@dataclass
class Services:
    store: EmailStore
    queue: PriorityQueue
    knowledge_base: KnowledgeBase
    generator: ResponseGenerator
    sender: ReplySender
    watcher: object | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    services = getattr(app.state, "services", None)
    poller = None
    if services is not None:
        services.queue.start()
        if services.watcher is not None:
            poller = asyncio.create_task(_poll_inbox(services.watcher))
    yield
    if poller is not None:
        poller.cancel()
    if services is not None:
        await services.queue.stop()


async def _poll_inbox(watcher) -> None:
    while True:
        try:
            count = await asyncio.to_thread(watcher.run_once)
            if count > 0:
                logger.info(f"Gmail: {count} new support email(s) ingested")
        except Exception as e:
            logger.error(f"Inbox poll failed: {e}", exc_info=True)
        await asyncio.sleep(watcher.check_interval)


app = FastAPI(title="Support Triage Assistant", version="1.0.0", lifespan=lifespan)


def create_app(store: EmailStore, queue: PriorityQueue, knowledge_base: KnowledgeBase,
               generator: ResponseGenerator, sender: ReplySender, watcher=None) -> FastAPI:
    """Attach the service graph to the app."""
    app.state.services = Services(
        store=store, queue=queue, knowledge_base=knowledge_base,
        generator=generator, sender=sender, watcher=watcher,
    )
    return app


def _get_services() -> Services:
    services = getattr(app.state, "services", None)
    if services is None:
        raise RuntimeError("Services not configured. Call create_app() first.")
    return services


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@app.exception_handler(EmailNotFoundError)
async def email_not_found_handler(request: Request, exc: EmailNotFoundError):
    return _error(404, "Email not found")


@app.exception_handler(SendError)
async def send_error_handler(request: Request, exc: SendError):
    return _error(502, str(exc))


# --- request bodies ---

class TextBody(BaseModel):
    text: str = ""


class PriorityBody(BaseModel):
    subject: str = ""
    body: str = ""


class ExtractBody(BaseModel):
    body: str = ""


class StatusBody(BaseModel):
    status: str


class GenerateBody(BaseModel):
    custom_context: str | None = None


class RelevantBody(BaseModel):
    subject: str = ""
    body: str = ""


class SendBody(BaseModel):
    email_id: str = ""
    response_text: str = ""
    subject: str | None = None


class BulkSendBody(BaseModel):
    responses: list[SendBody] = Field(default_factory=list)


class ForceBody(BaseModel):
    email_id: str = ""


class BulkStatusBody(BaseModel):
    email_ids: list[str] = Field(default_factory=list)
    status: str = ""


class KnowledgeBody(BaseModel):
    category: str = ""
    keywords: list[str] = Field(default_factory=list)
    context: str = ""
    solutions: list[str] = Field(default_factory=list)


class KnowledgeUpdateBody(BaseModel):
    keywords: list[str] | None = None
    context: str | None = None
    solutions: list[str] | None = None


# --- health & stats ---

@app.get("/health")
async def health_check():
    services = _get_services()
    return {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "vault_exists": services.store.vault_path.is_dir(),
        "queue_running": services.queue.running,
        "gmail_connected": services.watcher is not None,
    }


@app.get("/api/stats")
async def api_stats():
    store = _get_services().store
    data = get_email_stats(store)
    data["priority_breakdown"] = get_priority_breakdown(store)
    data["category_breakdown"] = get_category_breakdown(store)
    return {"success": True, "data": data}


@app.get("/api/stats/timeline/{period}")
async def stats_timeline(period: str):
    try:
        data = get_timeline(_get_services().store, period)
    except ValueError as e:
        return _error(400, str(e))
    return {"success": True, "data": data}


@app.get("/api/stats/performance")
async def stats_performance():
    return {"success": True, "data": get_performance(_get_services().store)}


@app.get("/api/stats/top-senders")
async def stats_top_senders(limit: int = Query(10, ge=1, le=100)):
    return {"success": True, "data": get_top_senders(_get_services().store, limit)}


# --- emails ---

@app.get("/api/emails")
async def list_emails(
    priority: str | None = None,
    sentiment: str | None = None,
    status: str | None = None,
    category: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    skip: int = Query(0, ge=0),
    sort_by: str = "received_date",
    sort_order: str = "desc",
):
    records = _get_services().store.find(
        priority=priority, status=status, sentiment=sentiment, category=category,
        sort_by=sort_by, descending=sort_order != "asc", limit=limit, skip=skip,
    )
    return {"success": True, "data": [r.to_dict() for r in records], "count": len(records)}


@app.get("/api/emails/urgent")
async def urgent_emails():
    records = [r for r in _get_services().store.find(priority="urgent") if r.status != "resolved"]
    return {"success": True, "data": [r.to_dict() for r in records], "count": len(records)}


@app.get("/api/emails/recent/{hours}")
async def recent_emails(hours: int):
    if hours < 1:
        return _error(400, "hours must be a positive number")
    records = get_recent_emails(_get_services().store, hours)
    return {
        "success": True,
        "data": [r.to_dict() for r in records],
        "count": len(records),
        "timeframe": f"{hours} hours",
    }


@app.post("/api/emails/fetch")
async def fetch_emails():
    """Pull new mail from Gmail, or seed the sample inbox when Gmail is not connected."""
    services = _get_services()
    if services.watcher is not None:
        count = await asyncio.to_thread(services.watcher.run_once)
        return {"success": True, "data": {"fetched": count, "source": "gmail"}}
    created = load_sample_emails(services.store, services.queue, services.store.vault_path / "Logs")
    return {"success": True, "data": {"fetched": len(created), "source": "samples"}}


@app.get("/api/emails/{email_id}")
async def get_email(email_id: str):
    record = _get_services().store.find_by_id(email_id)
    if record is None:
        raise EmailNotFoundError(email_id)
    return {"success": True, "data": record.to_dict()}


@app.post("/api/emails/{email_id}/generate-response")
async def generate_response(email_id: str, payload: GenerateBody | None = None):
    services = _get_services()
    record = services.store.find_by_id(email_id)
    if record is None:
        raise EmailNotFoundError(email_id)
    context = payload.custom_context if payload else None
    try:
        record.ai_response = await services.generator.generate(record.email_data(), context)
    except GenerationError as e:
        return _error(502, str(e))
    services.store.save(record)
    return {"success": True, "data": {"email_id": record.id, "ai_response": record.ai_response}}


@app.put("/api/emails/{email_id}/status")
async def update_status(email_id: str, payload: StatusBody):
    if payload.status not in EMAIL_STATUSES:
        return _error(400, f"Invalid status. Expected one of: {', '.join(EMAIL_STATUSES)}")
    store = _get_services().store
    record = store.find_by_id(email_id)
    if record is None:
        raise EmailNotFoundError(email_id)
    previous = record.status
    record.status = payload.status
    store.save(record)
    log_action(
        logs_dir=store.vault_path / "Logs",
        actor="web_api",
        action="status_changed",
        source=email_id,
        result=f"{previous}->{payload.status}",
    )
    return {"success": True, "data": record.to_dict()}


@app.delete("/api/emails/{email_id}")
async def delete_email(email_id: str):
    if not _get_services().store.delete(email_id):
        raise EmailNotFoundError(email_id)
    return {"success": True, "data": {"deleted": email_id}}


@app.post("/api/emails/bulk/update-status")
async def bulk_update_status(payload: BulkStatusBody):
    if not payload.email_ids:
        return _error(400, "email_ids list is required")
    if payload.status not in EMAIL_STATUSES:
        return _error(400, f"Invalid status. Expected one of: {', '.join(EMAIL_STATUSES)}")
    store = _get_services().store
    matched = modified = 0
    for email_id in payload.email_ids:
        record = store.find_by_id(email_id)
        if record is None:
            continue
        matched += 1
        if record.status == payload.status:
            continue
        record.status = payload.status
        store.save(record)
        modified += 1
    log_action(
        logs_dir=store.vault_path / "Logs",
        actor="web_api",
        action="bulk_status_changed",
        source=",".join(payload.email_ids),
        result=f"{modified}->{payload.status}",
    )
    return {
        "success": True,
        "data": {"modified_count": modified, "matched_count": matched},
        "message": f"Updated {modified} emails to {payload.status}",
    }


# --- analysis ---

@app.post("/api/ai/analyze-sentiment")
async def api_analyze_sentiment(payload: TextBody):
    if not payload.text:
        return _error(400, "Text is required for sentiment analysis")
    return {"success": True, "data": {"sentiment": analyze_sentiment(payload.text)}}


@app.post("/api/ai/determine-priority")
async def api_determine_priority(payload: PriorityBody):
    if not payload.subject or not payload.body:
        return _error(400, "Subject and body are required for priority determination")
    return {
        "success": True,
        "data": {
            "subject": payload.subject,
            "priority": classify_priority(payload.subject, payload.body),
            "category": classify_category(payload.subject),
        },
    }


@app.post("/api/ai/extract-info")
async def api_extract_info(payload: ExtractBody):
    if not payload.body:
        return _error(400, "Email body is required for information extraction")
    return {"success": True, "data": extract_information(payload.body)}


# --- knowledge base ---

@app.get("/api/knowledge-base/categories")
async def kb_categories():
    return {"success": True, "data": _get_services().knowledge_base.categories()}


@app.get("/api/knowledge-base/search")
async def kb_search(q: str = ""):
    if not q:
        return _error(400, "Query parameter 'q' is required")
    results = _get_services().knowledge_base.search(q)
    return {"success": True, "data": results, "count": len(results)}


@app.post("/api/knowledge-base/find-relevant")
async def kb_find_relevant(payload: RelevantBody):
    kb = _get_services().knowledge_base
    return {
        "success": True,
        "data": {
            "relevant": kb.find_relevant(payload.subject, payload.body),
            "context": kb.get_context(payload.subject, payload.body),
            "solutions": kb.get_suggested_solutions(payload.subject, payload.body),
        },
    }


@app.post("/api/knowledge-base/add")
async def kb_add(payload: KnowledgeBody):
    if not payload.category or not payload.keywords or not payload.context:
        return _error(400, "category, keywords and context are required")
    _get_services().knowledge_base.add(payload.category, payload.keywords, payload.context, payload.solutions)
    return {
        "success": True,
        "data": payload.model_dump(),
        "message": f"Knowledge added for category: {payload.category}",
    }


@app.put("/api/knowledge-base/update/{category}")
async def kb_update(category: str, payload: KnowledgeUpdateBody):
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        return _error(400, "Update data is required")
    if not _get_services().knowledge_base.update(category, **changes):
        return _error(404, "Category not found")
    return {"success": True, "data": {"category": category, "updates": changes}}


@app.get("/api/knowledge-base/category/{category}")
async def kb_category(category: str):
    entry = _get_services().knowledge_base.get(category)
    if entry is None:
        return _error(404, "Category not found")
    return {"success": True, "data": entry}


@app.get("/api/knowledge-base/all")
async def kb_all():
    entries = _get_services().knowledge_base.entries
    return {"success": True, "data": entries, "categories": len(entries)}


# --- sending ---

@app.post("/api/sender/send-response")
async def send_response(payload: SendBody):
    if not payload.email_id or not payload.response_text:
        return _error(400, "email_id and response_text are required")
    result = await _get_services().sender.send(payload.email_id, payload.response_text, payload.subject)
    return {"success": True, "data": result}


@app.post("/api/sender/bulk-send")
async def bulk_send(payload: BulkSendBody):
    if not payload.responses:
        return _error(400, "responses list is required")
    results = await _get_services().sender.send_bulk([r.model_dump() for r in payload.responses])
    sent = sum(1 for r in results if r["success"])
    return {"success": True, "data": results, "message": f"Sent {sent} out of {len(results)} responses"}


@app.post("/api/sender/auto-respond-urgent")
async def auto_respond_urgent():
    services = _get_services()
    results = await services.sender.auto_respond_urgent(services.generator)
    sent = sum(1 for r in results if r["success"])
    return {"success": True, "data": results, "message": f"Auto-responded to {sent} urgent emails"}


# --- queue ---

@app.get("/api/queue/status")
async def queue_status():
    return {"success": True, "data": _get_services().queue.get_queue_status()}


@app.get("/api/queue/items")
async def queue_items(limit: int = Query(50, ge=1, le=500)):
    items = _get_services().queue.get_queue_items(limit)
    return {"success": True, "data": items, "count": len(items)}


@app.post("/api/queue/process-urgent")
async def process_urgent():
    result = await _get_services().queue.process_urgent_now()
    return {"success": True, "data": result, "message": f"Processed {result['processed']} urgent emails"}


@app.post("/api/queue/force-process")
async def force_process(payload: ForceBody):
    if not payload.email_id:
        return _error(400, "email_id is required")
    result = await _get_services().queue.force_process_email(payload.email_id)
    return {"success": result["success"], "data": result}


@app.post("/api/samples")
async def create_samples():
    services = _get_services()
    created = load_sample_emails(services.store, services.queue, services.store.vault_path / "Logs")
    return {"success": True, "data": [r.to_dict() for r in created], "count": len(created)}


def build_services(cfg, gmail_service=None) -> Services:
    """Construct the service graph from a Config."""
    from support_triage.watchers.gmail_watcher import GmailWatcher

    store = EmailStore(cfg.vault_path)
    logs_dir = cfg.vault_path / "Logs"
    knowledge_base = KnowledgeBase()
    generator = ResponseGenerator(
        knowledge_base=knowledge_base,
        claude_model=cfg.claude_model,
        timeout=cfg.response_timeout,
        handbook_path=cfg.vault_path / "Support_Handbook.md",
    )
    sender = ReplySender(
        store,
        gmail_service=gmail_service,
        daily_send_limit=cfg.daily_send_limit,
        dry_run=cfg.send_dry_run,
        logs_dir=logs_dir,
    )
    queue = PriorityQueue(
        store, generator, sender,
        max_concurrent=cfg.queue_max_concurrent,
        max_attempts=cfg.queue_max_attempts,
        interval=cfg.queue_interval,
        call_timeout=None,  # ResponseGenerator enforces RESPONSE_TIMEOUT on the CLI itself
        dedupe=cfg.queue_dedupe,
        logs_dir=logs_dir,
    )
    watcher = None
    if gmail_service is not None:
        watcher = GmailWatcher(
            store, gmail_service, queue=queue,
            gmail_filter=cfg.gmail_filter, check_interval=cfg.gmail_check_interval,
        )
    return Services(store=store, queue=queue, knowledge_base=knowledge_base,
                    generator=generator, sender=sender, watcher=watcher)
