"""Priority queue: sequences reply generation and urgent auto-send for ingested emails.

The live list is ordered by insertion discipline only: urgent items go to
the front (so repeated urgent enqueues are LIFO among themselves), normal
items go to the back. A sweep takes the first ``max_concurrent`` queued
items in list order, processes them concurrently, then drops every item
that reached a terminal state.

Sweeps run on one asyncio loop, but ingestion can call ``enqueue`` from a
worker thread (the inbox poller), so every change to the list topology
(enqueue, batch selection, cleanup) happens under ``_lock``. Per-item
fields are only written by the task processing that item.
"""
import asyncio
import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from support_triage.errors import EmailNotFoundError, GenerationError, PermanentError, SendError
from support_triage.gmail_sender import URGENT_SUBJECT_PREFIX
from support_triage.priority import URGENT, NORMAL
from support_triage.store import EmailStore
from support_triage.utils import log_action, utcnow

logger = logging.getLogger("support_triage.priority_queue")

QUEUED = "queued"
PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"
TERMINAL_STATES = (COMPLETED, FAILED)


@dataclass
class QueueItem:
    email_id: str
    priority: str = NORMAL
    status: str = QUEUED
    attempts: int = 0
    max_attempts: int = 3
    added_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def to_dict(self) -> dict:
        return {
            "email_id": self.email_id,
            "priority": self.priority,
            "status": self.status,
            "attempts": self.attempts,
            "max_attempts": self.max_attempts,
            "added_at": self.added_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error": self.error,
        }


class PriorityQueue:
    def __init__(self, store: EmailStore, generator, sender, max_concurrent: int = 5,
                 max_attempts: int = 3, interval: float = 30.0, call_timeout: float | None = None,
                 dedupe: bool = False, logs_dir: Path | None = None):
        self.store = store
        self.generator = generator
        self.sender = sender
        self.max_concurrent = max_concurrent
        self.max_attempts = max_attempts
        self.interval = interval
        # Bounds generation only; a send cannot be recalled once started
        self.call_timeout = call_timeout
        self.dedupe = dedupe
        self.logs = logs_dir
        self.items: list[QueueItem] = []
        self.is_processing = False
        self._lock = threading.Lock()
        self._task: asyncio.Task | None = None

    # --- lifecycle ---

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Begin periodic sweeps on the running event loop."""
        if self.running:
            logger.warning("Queue processor is already running")
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Priority queue processor started (interval: {self.interval}s)")

    async def stop(self) -> None:
        if not self.running:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Priority queue processor stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.sweep()
            except Exception as e:
                logger.error(f"Queue sweep error: {e}", exc_info=True)

    # --- intake ---

    def enqueue(self, email_id: str, priority: str = NORMAL) -> QueueItem:
        """Add an email to the live list. Raises EmailNotFoundError for unknown ids.

        Safe to call from a worker thread.
        """
        if self.store.find_by_id(email_id) is None:
            raise EmailNotFoundError(email_id)

        with self._lock:
            if self.dedupe:
                for existing in self.items:
                    if existing.email_id == email_id and existing.status in (QUEUED, PROCESSING):
                        logger.debug(f"Email {email_id} already in queue ({existing.status})")
                        return existing

            item = QueueItem(email_id=email_id, priority=priority, max_attempts=self.max_attempts)
            if priority == URGENT:
                self.items.insert(0, item)
            else:
                self.items.append(item)
        logger.info(f"Added email {email_id} to priority queue ({priority})")
        return item

    def snapshot(self) -> list[QueueItem]:
        """Copy of the live list, in storage order."""
        with self._lock:
            return list(self.items)

    # --- processing ---

    async def sweep(self) -> None:
        """One batch pass. Skipped while another sweep is in flight."""
        if self.is_processing or not self.items:
            return
        self.is_processing = True
        try:
            with self._lock:
                batch = [item for item in self.items if item.status == QUEUED][:self.max_concurrent]
                for item in batch:
                    item.status = PROCESSING
                total = len(self.items)
            if batch:
                logger.info(f"Processing {len(batch)} of {total} queued item(s)")
                await asyncio.gather(*(self.process_item(item) for item in batch), return_exceptions=True)
        finally:
            with self._lock:
                self.items = [item for item in self.items if not item.is_terminal]
            self.is_processing = False

    async def process_item(self, item: QueueItem) -> None:
        """Run one attempt for an item. Never raises; outcome lands on the item."""
        item.status = PROCESSING
        item.attempts += 1
        try:
            email = self.store.find_by_id(item.email_id)
            if email is None:
                raise EmailNotFoundError(item.email_id)

            if not email.ai_response:
                reply = await self._generate(email.email_data())
                # Re-read so changes saved while the draft was generated survive
                email = self.store.find_by_id(item.email_id)
                if email is None:
                    raise EmailNotFoundError(item.email_id)
                email.ai_response = reply
                self.store.save(email)

            if email.priority == URGENT and email.status == "pending":
                await self._send(email.id, email.ai_response, f"{URGENT_SUBJECT_PREFIX}{email.subject}")
                logger.info(f"Auto-sent urgent response for: {email.subject}")
                self._audit("auto_sent", item, f"subject:{email.subject}")

            item.status = COMPLETED
            item.completed_at = utcnow()
            item.error = None
            self._audit("queue_completed", item, f"attempts:{item.attempts}")
        except Exception as e:
            item.error = str(e)
            if isinstance(e, PermanentError) or item.attempts >= item.max_attempts:
                item.status = FAILED
                logger.error(f"Queue item {item.email_id} failed after {item.attempts} attempt(s): {e}")
                self._audit("queue_failed", item, item.error)
            else:
                item.status = QUEUED
                logger.warning(
                    f"Retrying queue item {item.email_id} "
                    f"(attempt {item.attempts}/{item.max_attempts}): {e}"
                )

    async def _generate(self, email_data: dict) -> str:
        try:
            if self.call_timeout:
                return await asyncio.wait_for(self.generator.generate(email_data), timeout=self.call_timeout)
            return await self.generator.generate(email_data)
        except (PermanentError, GenerationError):
            raise
        except asyncio.TimeoutError as e:
            if self.call_timeout:
                raise GenerationError(f"Response generation timed out after {self.call_timeout}s") from e
            raise GenerationError(str(e) or "Response generation timed out") from e
        except Exception as e:
            raise GenerationError(str(e)) from e

    async def _send(self, email_id: str, text: str, subject: str) -> dict:
        # No outer timeout: the sender bounds its own HTTP calls, and
        # cancelling the await would not stop a delivery already in flight
        try:
            return await self.sender.send(email_id, text, subject)
        except (PermanentError, SendError):
            raise
        except Exception as e:
            raise SendError(str(e)) from e

    def _audit(self, action: str, item: QueueItem, result: str) -> None:
        if self.logs is None:
            return
        log_action(logs_dir=self.logs, actor="priority_queue", action=action,
                   source=item.email_id, result=result)

    # --- operator triggers ---

    async def process_urgent_now(self) -> dict:
        """Queue every pending urgent email (oldest first) and sweep once.

        ``processed`` is the number of urgent emails found, not the number
        the concurrency cap let through in this sweep.
        """
        urgent = self.store.find(priority=URGENT, status="pending", sort_by="received_date", descending=False)
        logger.info(f"Found {len(urgent)} urgent email(s) to process")
        for email in urgent:
            self.enqueue(email.id, URGENT)
        await self.sweep()
        return {
            "processed": len(urgent),
            "emails": [
                {
                    "id": email.id,
                    "subject": email.subject,
                    "sender": email.sender_email,
                    "received_date": email.received_date.isoformat(),
                }
                for email in urgent
            ],
        }

    async def force_process_email(self, email_id: str) -> dict:
        """Single attempt outside the live list. Raises EmailNotFoundError for unknown ids."""
        email = self.store.find_by_id(email_id)
        if email is None:
            raise EmailNotFoundError(email_id)
        item = QueueItem(email_id=email_id, priority=email.priority, max_attempts=1)
        await self.process_item(item)
        return {
            "success": item.status == COMPLETED,
            "status": item.status,
            "error": item.error,
        }

    # --- observability ---

    def get_queue_status(self) -> dict:
        items = self.snapshot()
        oldest = min((item.added_at for item in items), default=None)
        return {
            "total_items": len(items),
            "status_breakdown": dict(Counter(item.status for item in items)),
            "is_processing": self.is_processing,
            "urgent_items": sum(1 for item in items if item.priority == URGENT),
            "oldest_item": oldest.isoformat() if oldest else None,
        }

    def get_queue_items(self, limit: int = 50) -> list[dict]:
        """Urgent first, then oldest first. Does not reorder the live list."""
        ordered = sorted(self.snapshot(), key=lambda item: (item.priority != URGENT, item.added_at))
        return [item.to_dict() for item in ordered[:limit]]

    def clear_completed_items(self) -> int:
        with self._lock:
            before = len(self.items)
            self.items = [item for item in self.items if item.status != COMPLETED]
            cleared = before - len(self.items)
        logger.info(f"Cleared {cleared} completed item(s) from queue")
        return cleared
