"""Abstract base class for all inbound-mail watchers."""
import logging
from abc import ABC, abstractmethod

from support_triage.ingest import ingest_email
from support_triage.store import EmailStore

logger = logging.getLogger("support_triage.watcher")


class BaseWatcher(ABC):
    def __init__(self, store: EmailStore, queue=None, check_interval: int = 60):
        self.store = store
        self.queue = queue
        self.check_interval = check_interval
        self.logs_dir = store.vault_path / "Logs"

    @abstractmethod
    def check_for_updates(self) -> list:
        ...

    def mark_as_processed(self, message_id: str) -> None:
        """Hook for sources that need to acknowledge a message."""

    def run_once(self) -> int:
        items = self.check_for_updates()
        count = 0
        for item in items:
            try:
                if ingest_email(item, self.store, self.queue, self.logs_dir) is not None:
                    count += 1
                self.mark_as_processed(item["id"])
            except Exception as e:
                logger.error(f"Failed to ingest email {item.get('id')}: {e}")
        return count
