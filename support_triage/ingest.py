"""Turn a raw inbound message into a classified, stored and queued email."""
import logging
from email.utils import parsedate_to_datetime
from datetime import datetime, timezone
from pathlib import Path

from support_triage.extractors import (
    analyze_sentiment,
    extract_information,
    extract_sender_address,
    is_support_email,
)
from support_triage.priority import classify_category, classify_priority
from support_triage.store import EmailRecord, EmailStore
from support_triage.utils import log_action, parse_timestamp, utcnow

logger = logging.getLogger("support_triage.ingest")


def parse_email_date(value) -> datetime:
    """Parse an RFC 2822 Date header or ISO timestamp; fall back to now."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if value:
        try:
            dt = parsedate_to_datetime(str(value))
            return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
        except (TypeError, ValueError):
            pass
    return parse_timestamp(value) or utcnow()


def ingest_email(raw: dict, store: EmailStore, queue=None, logs_dir: Path | None = None) -> EmailRecord | None:
    """Classify and persist one message, then enqueue it.

    ``raw`` carries ``from``, ``subject``, ``body`` and optionally ``date``,
    ``id`` (Gmail message id) and ``thread_id``. Returns None when the
    message is not support-related or was already ingested.
    """
    subject = (raw.get("subject") or "").strip()
    body = raw.get("body") or ""
    if not is_support_email(subject, body):
        logger.debug(f"Skipping non-support email: {subject}")
        return None

    sender = extract_sender_address(raw.get("from"))
    if store.find_duplicate(sender, subject) is not None:
        logger.debug(f"Skipping already ingested email: {subject}")
        return None

    record = EmailRecord(
        sender_email=sender,
        subject=subject,
        body=body,
        received_date=parse_email_date(raw.get("date")),
        sentiment=analyze_sentiment(body),
        priority=classify_priority(subject, body),
        category=classify_category(subject),
        extracted_info=extract_information(body),
        gmail_id=raw.get("id"),
        thread_id=raw.get("thread_id"),
    )
    store.save(record)
    if queue is not None:
        queue.enqueue(record.id, record.priority)
    if logs_dir is not None:
        log_action(
            logs_dir=logs_dir,
            actor="ingest",
            action="email_ingested",
            source=raw.get("id") or record.id,
            result=f"{record.priority}:{record.id}",
        )
    logger.info(f"Processed email: {subject} ({record.priority}, {record.sentiment})")
    return record
