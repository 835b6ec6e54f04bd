import json
import logging
from datetime import datetime, timezone
from pathlib import Path

REPLY_BEGIN = "---BEGIN REPLY---"
REPLY_END = "---END REPLY---"


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("googleapiclient.discovery_cache", "httpx")


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure the ``support_triage`` logger tree and return its root."""
    app_logger = logging.getLogger("support_triage")
    app_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not app_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        app_logger.addHandler(handler)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return app_logger


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def log_action(logs_dir: Path, actor: str, action: str, source: str, result: str) -> None:
    """Record one audit event in ``logs_dir/YYYY-MM-DD.json`` (a JSON array per day)."""
    now = utcnow()
    logs_dir.mkdir(parents=True, exist_ok=True)
    day_file = logs_dir / f"{now:%Y-%m-%d}.json"
    entries = json.loads(day_file.read_text()) if day_file.exists() else []
    entries.append(
        {"timestamp": now.isoformat(), "actor": actor, "action": action, "source": source, "result": result}
    )
    day_file.write_text(json.dumps(entries, indent=2))


def parse_timestamp(value) -> datetime | None:
    """Coerce an ISO string (or datetime) into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
