"""File-backed email repository.

Each email lives in ``vault/Emails/<id>.md``: YAML frontmatter for the
metadata, the original body underneath, and the drafted reply (if any)
between ``---BEGIN REPLY---`` / ``---END REPLY---`` markers, so a record
can be read and edited by hand like any other vault note. The frontmatter
records the reply's length; without it the whole text below is the body,
markers and all.
"""
import logging
import re
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path

import yaml

from support_triage.utils import REPLY_BEGIN, REPLY_END, parse_timestamp, utcnow

logger = logging.getLogger("support_triage.store")

EMAILS_FOLDER = "Emails"
EMAIL_STATUSES = ("pending", "responded", "resolved")
SORT_FIELDS = ("received_date", "created_at", "updated_at", "subject", "sender_email", "sentiment", "status")
_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
_DATETIME_FIELDS = ("received_date", "created_at", "updated_at")
_REPLY_HEAD = f"\n{REPLY_BEGIN}\n"
_REPLY_TAIL = f"\n{REPLY_END}\n"


@dataclass
class EmailRecord:
    sender_email: str
    subject: str
    body: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    received_date: datetime = field(default_factory=utcnow)
    sentiment: str = "neutral"
    priority: str = "normal"
    category: str = "support"
    status: str = "pending"
    ai_response: str | None = None
    extracted_info: dict = field(default_factory=dict)
    response_time: int | None = None
    sent_response: dict | None = None
    gmail_id: str | None = None
    thread_id: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def email_data(self) -> dict:
        """Fields handed to the response generator."""
        return {
            "subject": self.subject,
            "sender_email": self.sender_email,
            "body": self.body,
            "sentiment": self.sentiment,
            "priority": self.priority,
            "extracted_info": self.extracted_info or {},
        }

    def to_dict(self) -> dict:
        data = asdict(self)
        for key in _DATETIME_FIELDS:
            data[key] = data[key].isoformat() if data[key] else None
        return data


class EmailStore:
    def __init__(self, vault_path: Path):
        self.vault_path = vault_path
        self.emails_dir = vault_path / EMAILS_FOLDER
        self.emails_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, email_id: str) -> Path | None:
        if not email_id or not _ID_PATTERN.match(str(email_id)):
            return None
        return self.emails_dir / f"{email_id}.md"

    def find_by_id(self, email_id: str) -> EmailRecord | None:
        path = self._path(email_id)
        if path is None or not path.exists():
            return None
        return self._read(path)

    def save(self, record: EmailRecord) -> EmailRecord:
        record.updated_at = utcnow()
        path = self._path(record.id)
        if path is None:
            raise ValueError(f"Invalid email id: {record.id!r}")
        path.write_text(self._render(record), encoding="utf-8")
        return record

    def delete(self, email_id: str) -> bool:
        path = self._path(email_id)
        if path is None or not path.exists():
            return False
        path.unlink()
        logger.info(f"Deleted email {email_id}")
        return True

    def all(self) -> list[EmailRecord]:
        records = []
        for path in sorted(self.emails_dir.glob("*.md")):
            try:
                records.append(self._read(path))
            except (ValueError, KeyError, yaml.YAMLError) as e:
                logger.warning(f"Skipping unreadable email file {path.name}: {e}")
        return records

    def find(
        self,
        priority: str | None = None,
        status: str | None = None,
        sentiment: str | None = None,
        category: str | None = None,
        sort_by: str = "received_date",
        descending: bool = True,
        limit: int | None = None,
        skip: int = 0,
    ) -> list[EmailRecord]:
        """Filter and sort stored emails.

        Without a priority filter, urgent emails always come first and the
        requested ordering applies within each priority.
        """
        if sort_by not in SORT_FIELDS:
            sort_by = "received_date"
        records = [
            r for r in self.all()
            if (priority is None or r.priority == priority)
            and (status is None or r.status == status)
            and (sentiment is None or r.sentiment == sentiment)
            and (category is None or r.category == category)
        ]
        records.sort(key=lambda r: getattr(r, sort_by), reverse=descending)
        if priority is None:
            records.sort(key=lambda r: 0 if r.priority == "urgent" else 1)
        records = records[skip:]
        if limit is not None:
            records = records[:limit]
        return records

    def find_duplicate(self, sender_email: str, subject: str) -> EmailRecord | None:
        for record in self.all():
            if record.sender_email == sender_email and record.subject == subject:
                return record
        return None

    @staticmethod
    def _render(record: EmailRecord) -> str:
        meta = record.to_dict()
        body = meta.pop("body")
        reply = meta.pop("ai_response")
        if reply:
            # Locates the reply block exactly, even when the body quotes the markers
            meta["reply_length"] = len(reply)
        frontmatter = yaml.safe_dump(meta, sort_keys=False, allow_unicode=True)
        content = f"---\n{frontmatter}---\n{body}\n"
        if reply:
            content += f"{_REPLY_HEAD}{reply}{_REPLY_TAIL}"
        return content

    @staticmethod
    def _split_reply(rest: str, reply_length) -> tuple[str, str | None]:
        """(body, reply) from everything below the frontmatter."""
        if reply_length is None:
            return (rest[:-1] if rest.endswith("\n") else rest), None
        size = len(_REPLY_HEAD) + int(reply_length) + len(_REPLY_TAIL)
        block = rest[-size:]
        if len(rest) >= size + 1 and block.startswith(_REPLY_HEAD) and block.endswith(_REPLY_TAIL):
            return rest[:-size - 1], block[len(_REPLY_HEAD):-len(_REPLY_TAIL)]
        # reply edited by hand: fall back to the last marker pair
        start = rest.rfind(REPLY_BEGIN)
        end = rest.rfind(REPLY_END)
        if start == -1 or end < start:
            return rest.rstrip("\n"), None
        return rest[:start].rstrip("\n"), rest[start + len(REPLY_BEGIN):end].strip("\n")

    @classmethod
    def _read(cls, path: Path) -> EmailRecord:
        text = path.read_text(encoding="utf-8")
        if not text.startswith("---\n"):
            raise ValueError("missing frontmatter")
        end = text.index("\n---\n", 3)
        meta = yaml.safe_load(text[4:end]) or {}
        body, reply = cls._split_reply(text[end + 5:], meta.pop("reply_length", None))

        for key in _DATETIME_FIELDS:
            meta[key] = parse_timestamp(meta.get(key)) or utcnow()
        known = set(EmailRecord.__dataclass_fields__)
        values = {k: v for k, v in meta.items() if k in known}
        values["extracted_info"] = values.get("extracted_info") or {}
        return EmailRecord(body=body, ai_response=reply, **values)
