"""Support Triage Assistant — main entry point."""
import asyncio
import logging
import sys

from setup_vault import setup_vault
from support_triage.auth import get_gmail_service
from support_triage.config import load_config
from support_triage.samples import load_sample_emails
from support_triage.utils import setup_logging
from support_triage.web import build_services, create_app


def start_api(app, port: int, logger: logging.Logger):
    """Serve the API; its lifespan starts the queue timer and inbox polling."""
    import uvicorn

    logger.info(f"API starting at http://localhost:{port}")
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="warning")


async def run_headless(services, logger: logging.Logger):
    """Queue timer plus inbox polling without the HTTP surface."""
    services.queue.start()
    try:
        while True:
            if services.watcher is not None:
                count = await asyncio.to_thread(services.watcher.run_once)
                if count > 0:
                    logger.info(f"Gmail: {count} new support email(s) ingested")
            await asyncio.sleep(services.watcher.check_interval if services.watcher else 60)
    finally:
        await services.queue.stop()


def main():
    cfg = load_config()
    logger = setup_logging(cfg.log_level)
    setup_vault(cfg.vault_path)
    logger.info(f"Vault ready at: {cfg.vault_path}")

    try:
        gmail_service = get_gmail_service(cfg.credentials_dir, timeout=cfg.response_timeout)
        logger.info("Gmail authenticated successfully")
    except FileNotFoundError as e:
        logger.warning(str(e))
        logger.warning(
            "\n=== GMAIL NOT CONNECTED ===\n"
            "Replies will be recorded as dry-run sends and no inbox is polled.\n"
            "1. Enable the Gmail API in Google Cloud Console\n"
            "2. Create OAuth 2.0 credentials (Desktop app)\n"
            f"3. Save the JSON as {cfg.credentials_dir / 'client_secret.json'}\n"
            "\nTIP: Run 'python main.py --demo' to seed a sample inbox.\n"
        )
        gmail_service = None

    services = build_services(cfg, gmail_service)
    if "--demo" in sys.argv:
        created = load_sample_emails(services.store, services.queue, cfg.vault_path / "Logs")
        logger.info(f"Seeded {len(created)} sample email(s)")

    logger.info(
        f"Support triage started — sweeping queue every {cfg.queue_interval}s "
        f"(concurrency: {cfg.queue_max_concurrent}, attempts: {cfg.queue_max_attempts}, "
        f"send_limit: {cfg.daily_send_limit}/day)"
    )
    logger.info("Press Ctrl+C to stop")
    try:
        if cfg.web_enabled:
            app = create_app(
                store=services.store,
                queue=services.queue,
                knowledge_base=services.knowledge_base,
                generator=services.generator,
                sender=services.sender,
                watcher=services.watcher,
            )
            start_api(app, cfg.web_port, logger)
        else:
            asyncio.run(run_headless(services, logger))
    except KeyboardInterrupt:
        logger.info("Support triage shutting down. Goodbye!")


if __name__ == "__main__":
    main()
