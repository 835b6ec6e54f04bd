"""Scheduler — one-shot triage cycles for cron or Task Scheduler.

The long-running service sweeps the queue on its own timer (see main.py).
This module is for hosts that prefer an external scheduler:

Usage:
    # One-shot run (for cron/Task Scheduler)
    python -m support_triage.scheduler --once
"""
import asyncio
import logging
import sys
import time

from support_triage.priority_queue import COMPLETED, FAILED, QUEUED

logger = logging.getLogger("support_triage.scheduler")


def requeue_pending(services) -> int:
    """Queue stored emails that still need work.

    The live queue does not survive restarts, so a fresh process picks up
    pending emails without a drafted reply, plus pending urgent emails that
    still need their auto-send.
    """
    count = 0
    for email in services.store.find(status="pending", sort_by="received_date", descending=False):
        if not email.ai_response or email.priority == "urgent":
            services.queue.enqueue(email.id, email.priority)
            count += 1
    return count


async def drain(queue) -> None:
    """Sweep until no item is left waiting."""
    while any(item.status == QUEUED for item in queue.items):
        await queue.sweep()


async def run_cycle(services) -> dict:
    """Execute one ingestion pass and drain the queue.

    Returns a dict with counts of actions taken.
    """
    results = {
        "emails_detected": 0,
        "requeued": requeue_pending(services),
        "completed": 0,
        "failed": 0,
    }
    if services.watcher is not None:
        results["emails_detected"] = await asyncio.to_thread(services.watcher.run_once)

    tracked = list(services.queue.items)
    await drain(services.queue)
    results["completed"] = sum(1 for item in tracked if item.status == COMPLETED)
    results["failed"] = sum(1 for item in tracked if item.status == FAILED)
    return results


def run_once(cfg, gmail_service=None) -> dict:
    from support_triage.web import build_services

    services = build_services(cfg, gmail_service)
    return asyncio.run(run_cycle(services))


if __name__ == "__main__":
    from setup_vault import setup_vault
    from support_triage.auth import get_gmail_service
    from support_triage.config import load_config
    from support_triage.utils import setup_logging

    cfg = load_config()
    setup_logging(cfg.log_level)
    setup_vault(cfg.vault_path)

    try:
        gmail_service = get_gmail_service(cfg.credentials_dir, timeout=cfg.response_timeout)
    except FileNotFoundError:
        logger.warning("Gmail credentials not found. Running without Gmail.")
        gmail_service = None

    if "--once" in sys.argv:
        logger.info("Running one-shot cycle...")
        logger.info(f"Cycle complete: {run_once(cfg, gmail_service)}")
    else:
        logger.info(f"Starting scheduler (interval: {cfg.gmail_check_interval}s)")
        logger.info("Press Ctrl+C to stop")
        try:
            while True:
                results = run_once(cfg, gmail_service)
                if sum(results.values()) > 0:
                    logger.info(f"Cycle: {results}")
                time.sleep(cfg.gmail_check_interval)
        except KeyboardInterrupt:
            logger.info("Scheduler stopped.")
