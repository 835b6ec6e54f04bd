from pathlib import Path


def test_config_loads_vault_path(tmp_path, monkeypatch):
    """Config should read VAULT_PATH from environment."""
    monkeypatch.setenv("VAULT_PATH", str(tmp_path))
    from support_triage.config import load_config
    cfg = load_config()
    assert cfg.vault_path == tmp_path.resolve()


def test_config_defaults(monkeypatch):
    """Config should provide sensible defaults when env vars missing."""
    for name in [
        "VAULT_PATH", "LOG_LEVEL", "RESPONSE_TIMEOUT", "QUEUE_INTERVAL",
        "QUEUE_MAX_CONCURRENT", "QUEUE_MAX_ATTEMPTS", "QUEUE_DEDUPE", "SEND_DRY_RUN",
    ]:
        monkeypatch.delenv(name, raising=False)
    from support_triage.config import load_config
    cfg = load_config()
    assert cfg.vault_path.name == "vault"
    assert cfg.log_level == "INFO"
    assert cfg.response_timeout == 120
    assert cfg.queue_interval == 30
    assert cfg.queue_max_concurrent == 5
    assert cfg.queue_max_attempts == 3
    assert cfg.queue_dedupe is False
    assert cfg.send_dry_run is False


def test_config_queue_settings_from_env(monkeypatch):
    """Queue tuning should be parsed from the environment."""
    monkeypatch.setenv("QUEUE_INTERVAL", "10")
    monkeypatch.setenv("QUEUE_MAX_CONCURRENT", "2")
    monkeypatch.setenv("QUEUE_DEDUPE", "true")
    from support_triage.config import load_config
    cfg = load_config()
    assert cfg.queue_interval == 10
    assert cfg.queue_max_concurrent == 2
    assert cfg.queue_dedupe is True


def test_config_loads_daily_send_limit(monkeypatch):
    """Config should read DAILY_SEND_LIMIT from environment."""
    monkeypatch.setenv("DAILY_SEND_LIMIT", "50")
    from support_triage.config import load_config
    assert load_config().daily_send_limit == 50


def test_config_credentials_dir(monkeypatch):
    monkeypatch.setenv("CREDENTIALS_DIR", "/tmp/creds")
    from support_triage.config import load_config
    assert load_config().credentials_dir == Path("/tmp/creds")
