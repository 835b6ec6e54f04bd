"""Reply delivery — threaded Gmail replies with a daily send budget."""
import asyncio
import base64
import json
import logging
from email.mime.text import MIMEText
from pathlib import Path

from support_triage.errors import EmailNotFoundError, GenerationError, SendError
from support_triage.store import EmailStore
from support_triage.utils import log_action, utcnow

logger = logging.getLogger("support_triage.gmail_sender")
URGENT_SUBJECT_PREFIX = "[URGENT] Re: "


def _thread_context(gmail_service, gmail_id: str) -> tuple[str | None, str]:
    """(threadId, Message-ID header) of the customer's original message."""
    original = gmail_service.users().messages().get(
        userId="me", id=gmail_id, format="metadata", metadataHeaders=["Message-ID"],
    ).execute()
    for header in original.get("payload", {}).get("headers", []):
        if header["name"].lower() == "message-id":
            return original.get("threadId"), header["value"]
    return original.get("threadId"), ""


def send_reply(gmail_service, to: str, subject: str, body: str, gmail_id: str | None = None) -> dict:
    """Send a reply, threaded onto the original Gmail message when its id is known."""
    thread_id, parent_id = _thread_context(gmail_service, gmail_id) if gmail_id else (None, "")

    mime = MIMEText(body)
    mime["To"] = to
    mime["Subject"] = subject
    if parent_id:
        mime["In-Reply-To"] = parent_id
        mime["References"] = parent_id

    message = {"raw": base64.urlsafe_b64encode(mime.as_bytes()).decode("utf-8")}
    if thread_id:
        message["threadId"] = thread_id
    result = gmail_service.users().messages().send(userId="me", body=message).execute()
    logger.info(f"Reply to {to} delivered as {result['id']} (thread {thread_id or 'new'})")
    return result


def _counter_file(logs_dir: Path) -> Path:
    return logs_dir / f".send_count_{utcnow():%Y-%m-%d}.json"


def _sent_today(logs_dir: Path) -> int:
    counter = _counter_file(logs_dir)
    if not counter.exists():
        return 0
    return json.loads(counter.read_text()).get("count", 0)


def check_send_limit(logs_dir: Path, limit: int) -> bool:
    """True while today's sends are below ``limit``."""
    return _sent_today(logs_dir) < limit


def increment_send_count(logs_dir: Path) -> int:
    logs_dir.mkdir(parents=True, exist_ok=True)
    count = _sent_today(logs_dir) + 1
    _counter_file(logs_dir).write_text(json.dumps({"count": count}))
    return count


class ReplySender:
    """Delivers drafted replies and records the outcome on the email."""

    def __init__(self, store: EmailStore, gmail_service=None, daily_send_limit: int = 20,
                 dry_run: bool = False, logs_dir: Path | None = None):
        self.store = store
        self.gmail_service = gmail_service
        self.daily_send_limit = daily_send_limit
        self.dry_run = dry_run or gmail_service is None
        self.logs = logs_dir or store.vault_path / "Logs"

    async def send(self, email_id: str, text: str, subject: str | None = None) -> dict:
        email = self.store.find_by_id(email_id)
        if email is None:
            raise EmailNotFoundError(email_id)
        if not text:
            raise SendError("No response text to send")
        if not check_send_limit(self.logs, self.daily_send_limit):
            raise SendError(f"Daily send limit ({self.daily_send_limit}) reached")

        subject = subject or f"Re: {email.subject}"
        if self.dry_run:
            message_id = f"dry-run-{email.id}"
            logger.info(f"[dry-run] Would send reply to {email.sender_email}: {subject}")
        else:
            try:
                result = await asyncio.to_thread(
                    send_reply, self.gmail_service, email.sender_email, subject, text, email.gmail_id,
                )
            except Exception as e:
                raise SendError(f"Gmail send failed: {e}") from e
            message_id = result.get("id")
        increment_send_count(self.logs)

        sent_at = utcnow()
        email.status = "responded"
        email.sent_response = {
            "message_id": message_id,
            "sent_at": sent_at.isoformat(),
            "response_text": text,
        }
        email.response_time = int((sent_at - email.received_date).total_seconds() * 1000)
        self.store.save(email)
        log_action(
            logs_dir=self.logs,
            actor="sender",
            action="email_sent",
            source=email.id,
            result=f"reply_to:{email.sender_email}",
        )
        return {"success": True, "message_id": message_id}

    async def send_bulk(self, responses: list[dict]) -> list[dict]:
        """Send several replies one after another; failures are reported, not raised."""
        results = []
        for item in responses:
            email_id = item.get("email_id", "")
            try:
                outcome = await self.send(email_id, item.get("response_text", ""), item.get("subject"))
                results.append({"email_id": email_id, **outcome})
            except (EmailNotFoundError, SendError) as e:
                logger.error(f"Bulk send failed for {email_id}: {e}")
                results.append({"email_id": email_id, "success": False, "error": str(e)})
        return results

    async def auto_respond_urgent(self, generator) -> list[dict]:
        """Reply to every pending urgent email, drafting a reply first where none exists."""
        results = []
        for email in self.store.find(priority="urgent", status="pending"):
            try:
                if not email.ai_response:
                    email.ai_response = await generator.generate(email.email_data())
                    self.store.save(email)
                outcome = await self.send(email.id, email.ai_response, f"{URGENT_SUBJECT_PREFIX}{email.subject}")
                results.append({"email_id": email.id, **outcome})
            except (EmailNotFoundError, GenerationError, SendError) as e:
                logger.error(f"Auto-response failed for urgent email {email.id}: {e}")
                results.append({"email_id": email.id, "success": False, "error": str(e)})
        return results
