"""Gmail watcher — polls the Gmail API for unread support mail."""
import base64
import logging

from support_triage.store import EmailStore
from support_triage.utils import utcnow
from support_triage.watchers.base_watcher import BaseWatcher

logger = logging.getLogger("support_triage.gmail_watcher")
PROCESSED_LABEL = "Triaged-by-Support"


class GmailWatcher(BaseWatcher):
    """Feeds unread Gmail messages through ingestion and labels them once handled."""

    def __init__(self, store: EmailStore, gmail_service, queue=None,
                 gmail_filter: str = "is:unread", check_interval: int = 60, max_results: int = 10):
        super().__init__(store, queue, check_interval)
        self.service = gmail_service
        self.gmail_filter = gmail_filter
        self.max_results = max_results
        self._label_id: str | None = None

    @property
    def _messages(self):
        return self.service.users().messages()

    def check_for_updates(self) -> list:
        try:
            listing = self._messages.list(
                userId="me", q=self.gmail_filter, maxResults=self.max_results,
            ).execute()
        except Exception as e:
            logger.error(f"Gmail list failed for '{self.gmail_filter}': {e}")
            return []

        fetched = []
        for ref in listing.get("messages", []):
            try:
                full = self._messages.get(userId="me", id=ref["id"], format="full").execute()
            except Exception as e:
                logger.error(f"Skipping Gmail message {ref['id']}: {e}")
                continue
            fetched.append(self._to_raw_email(full))
        if fetched:
            logger.debug(f"Gmail returned {len(fetched)} message(s)")
        return fetched

    def mark_as_processed(self, message_id: str) -> None:
        """Tag the message as triaged and take it out of the unread filter."""
        label_id = self._label_id or self._resolve_label()
        if label_id is None:
            return
        change = {"addLabelIds": [label_id], "removeLabelIds": ["UNREAD"]}
        try:
            self._messages.modify(userId="me", id=message_id, body=change).execute()
        except Exception as e:
            logger.error(f"Could not label Gmail message {message_id}: {e}")

    def _resolve_label(self) -> str | None:
        labels_api = self.service.users().labels()
        try:
            existing = labels_api.list(userId="me").execute().get("labels", [])
            match = next((lb["id"] for lb in existing if lb["name"] == PROCESSED_LABEL), None)
            if match is None:
                match = labels_api.create(userId="me", body={"name": PROCESSED_LABEL}).execute()["id"]
                logger.info(f"Created Gmail label {PROCESSED_LABEL}")
        except Exception as e:
            logger.error(f"Gmail label lookup failed: {e}")
            return None
        self._label_id = match
        return match

    @classmethod
    def _plain_text(cls, part: dict) -> str:
        # Depth-first: the first text/plain leaf wins, nested multiparts included
        data = part.get("body", {}).get("data")
        if data and part.get("mimeType", "text/plain") == "text/plain":
            return base64.urlsafe_b64decode(data).decode("utf-8", errors="replace")
        for child in part.get("parts", []):
            text = cls._plain_text(child)
            if text:
                return text
        return ""

    @classmethod
    def _to_raw_email(cls, msg: dict) -> dict:
        payload = msg.get("payload", {})
        headers = {h["name"].lower(): h["value"] for h in payload.get("headers", [])}
        return {
            "id": msg["id"],
            "thread_id": msg.get("threadId"),
            "from": headers.get("from", "unknown"),
            "subject": headers.get("subject", "(no subject)"),
            "date": headers.get("date") or utcnow().isoformat(),
            "body": cls._plain_text(payload),
            "labels": msg.get("labelIds", []),
        }
