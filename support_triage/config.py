from dataclasses import dataclass
from pathlib import Path
import os

from dotenv import load_dotenv


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def _number(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


@dataclass
class Config:
    vault_path: Path
    credentials_dir: Path
    log_level: str
    # inbox
    gmail_check_interval: int
    gmail_filter: str
    # replies
    claude_model: str
    response_timeout: int
    daily_send_limit: int
    send_dry_run: bool
    # queue
    queue_interval: int
    queue_max_concurrent: int
    queue_max_attempts: int
    queue_dedupe: bool
    # api
    web_enabled: bool
    web_port: int


def load_config() -> Config:
    """Build a Config from the environment (and .env, if present)."""
    load_dotenv()
    return Config(
        vault_path=Path(os.getenv("VAULT_PATH", "./vault")).resolve(),
        credentials_dir=Path(os.getenv("CREDENTIALS_DIR", "./credentials")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        gmail_check_interval=_number("GMAIL_CHECK_INTERVAL", 60),
        gmail_filter=os.getenv("GMAIL_FILTER", "is:unread"),
        claude_model=os.getenv("CLAUDE_MODEL", "claude-sonnet-4-5-20250929"),
        response_timeout=_number("RESPONSE_TIMEOUT", 120),
        daily_send_limit=_number("DAILY_SEND_LIMIT", 20),
        send_dry_run=_flag("SEND_DRY_RUN"),
        queue_interval=_number("QUEUE_INTERVAL", 30),
        queue_max_concurrent=_number("QUEUE_MAX_CONCURRENT", 5),
        queue_max_attempts=_number("QUEUE_MAX_ATTEMPTS", 3),
        queue_dedupe=_flag("QUEUE_DEDUPE"),
        web_enabled=_flag("WEB_ENABLED", "true"),
        web_port=_number("WEB_PORT", 8000),
    )
