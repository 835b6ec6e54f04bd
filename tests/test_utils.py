import json
from datetime import datetime, timezone


def test_log_action_creates_daily_log_file(tmp_path):
    """log_action should create a JSON log file named YYYY-MM-DD.json."""
    from support_triage.utils import log_action
    log_action(
        logs_dir=tmp_path,
        actor="priority_queue",
        action="queue_completed",
        source="abc123",
        result="attempts:1",
    )
    today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    log_file = tmp_path / f"{today}.json"
    assert log_file.exists()
    entries = json.loads(log_file.read_text())
    assert len(entries) == 1
    assert entries[0]["actor"] == "priority_queue"
    assert entries[0]["action"] == "queue_completed"


def test_log_action_appends_to_existing(tmp_path):
    """log_action should append to existing daily log, not overwrite."""
    from support_triage.utils import log_action
    log_action(logs_dir=tmp_path, actor="a", action="first", source="s", result="r")
    log_action(logs_dir=tmp_path, actor="b", action="second", source="s", result="r")
    today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    entries = json.loads((tmp_path / f"{today}.json").read_text())
    assert len(entries) == 2


def test_parse_timestamp():
    from support_triage.utils import parse_timestamp
    assert parse_timestamp("2026-02-10T10:00:00Z") == datetime(2026, 2, 10, 10, 0, tzinfo=timezone.utc)
    naive = parse_timestamp(datetime(2026, 2, 10, 10, 0))
    assert naive.tzinfo == timezone.utc
    assert parse_timestamp("") is None
    assert parse_timestamp("yesterday") is None


def test_setup_logging_is_idempotent():
    from support_triage.utils import setup_logging
    logger = setup_logging("debug")
    setup_logging("debug")
    assert logger.name == "support_triage"
    assert len(logger.handlers) == 1
