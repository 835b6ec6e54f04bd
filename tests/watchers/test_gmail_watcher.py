"""Tests for the Gmail inbox watcher."""
import base64
from unittest.mock import MagicMock

import pytest

from support_triage.store import EmailStore
from support_triage.watchers.gmail_watcher import GmailWatcher, PROCESSED_LABEL


def _encode(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode()).decode()


@pytest.fixture
def gmail_service():
    service = MagicMock()
    service.users().messages().list.return_value.execute.return_value = {
        "messages": [{"id": "msg_001"}],
    }
    service.users().messages().get.return_value.execute.return_value = {
        "id": "msg_001",
        "threadId": "thread_001",
        "labelIds": ["INBOX", "UNREAD"],
        "payload": {
            "headers": [
                {"name": "From", "value": "Bob <bob@test.com>"},
                {"name": "Subject", "value": "Urgent: cannot access account"},
                {"name": "Date", "value": "Mon, 10 Feb 2026 10:00:00 +0000"},
            ],
            "mimeType": "multipart/alternative",
            "parts": [
                {"mimeType": "text/html", "body": {"data": _encode("<p>html</p>")}},
                {"mimeType": "text/plain", "body": {"data": _encode("Please help, I am locked out.")}},
            ],
        },
    }
    service.users().labels().list.return_value.execute.return_value = {
        "labels": [{"id": "Label_1", "name": PROCESSED_LABEL}],
    }
    return service


@pytest.fixture
def watcher(tmp_path, gmail_service):
    return GmailWatcher(EmailStore(tmp_path), gmail_service)


def test_check_for_updates_parses_messages(watcher):
    messages = watcher.check_for_updates()
    assert len(messages) == 1
    msg = messages[0]
    assert msg["id"] == "msg_001"
    assert msg["thread_id"] == "thread_001"
    assert msg["from"] == "Bob <bob@test.com>"
    assert msg["subject"] == "Urgent: cannot access account"
    assert msg["body"] == "Please help, I am locked out."


def test_check_for_updates_uses_filter(watcher, gmail_service):
    watcher.check_for_updates()
    gmail_service.users().messages().list.assert_called_with(userId="me", q="is:unread", maxResults=10)


def test_check_for_updates_api_error(watcher, gmail_service):
    gmail_service.users().messages().list.return_value.execute.side_effect = RuntimeError("401")
    assert watcher.check_for_updates() == []


def test_mark_as_processed_labels_and_marks_read(watcher, gmail_service):
    watcher.mark_as_processed("msg_001")
    gmail_service.users().messages().modify.assert_called_with(
        userId="me", id="msg_001",
        body={"addLabelIds": ["Label_1"], "removeLabelIds": ["UNREAD"]},
    )


def test_label_created_when_missing(watcher, gmail_service):
    gmail_service.users().labels().list.return_value.execute.return_value = {"labels": []}
    gmail_service.users().labels().create.return_value.execute.return_value = {"id": "Label_new"}
    watcher.mark_as_processed("msg_001")
    gmail_service.users().labels().create.assert_called_with(userId="me", body={"name": PROCESSED_LABEL})


def test_run_once_ingests_and_enqueues(tmp_path, gmail_service):
    store = EmailStore(tmp_path)
    queue = MagicMock()
    watcher = GmailWatcher(store, gmail_service, queue=queue)
    assert watcher.run_once() == 1
    record = store.all()[0]
    assert record.gmail_id == "msg_001"
    assert record.priority == "urgent"
    queue.enqueue.assert_called_once_with(record.id, "urgent")
