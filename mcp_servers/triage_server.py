"""Triage MCP Server — exposes queue operator actions as tools for Claude Code.

The priority queue lives in the memory of the running API process, so queue
tools go through its HTTP API. Classification runs locally and reads the
vault directly.

This MCP server provides:
- queue_status: Snapshot of the live queue
- list_queue_items: Queue items, urgent first then oldest first
- process_urgent_now: Queue and sweep every pending urgent email
- force_process_email: One-off processing attempt for one email
- classify_email: Priority, category, sentiment and extracted facts for text

Usage:
    python mcp_servers/triage_server.py
"""
import json
import logging
import os
import sys
from pathlib import Path

import httpx
from mcp.server.fastmcp import FastMCP

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from support_triage.extractors import analyze_sentiment, extract_information
from support_triage.priority import classify_category, classify_priority
from support_triage.utils import log_action

logger = logging.getLogger("mcp.triage_server")

mcp = FastMCP("Support Triage Server")

API_URL = os.getenv("TRIAGE_API_URL", "http://localhost:8000")
VAULT_PATH = Path(os.getenv("VAULT_PATH", "./vault")).resolve()
REQUEST_TIMEOUT = 300.0


def _request(method: str, path: str, **kwargs) -> str:
    """Call the triage API and return its JSON body as a string."""
    try:
        resp = httpx.request(method, f"{API_URL}{path}", timeout=REQUEST_TIMEOUT, **kwargs)
        return json.dumps(resp.json())
    except (httpx.HTTPError, ValueError) as e:
        return json.dumps({"success": False, "error": str(e)})


@mcp.tool()
def queue_status() -> str:
    """Get the live queue size, per-status counts and whether a sweep is running."""
    return _request("GET", "/api/queue/status")


@mcp.tool()
def list_queue_items(limit: int = 50) -> str:
    """List queue items, urgent first then oldest first.

    Args:
        limit: Maximum number of items to return (default 50)
    """
    return _request("GET", "/api/queue/items", params={"limit": limit})


@mcp.tool()
def process_urgent_now() -> str:
    """Queue every pending urgent email and run one sweep immediately."""
    result = _request("POST", "/api/queue/process-urgent")
    log_action(
        logs_dir=VAULT_PATH / "Logs",
        actor="mcp_triage_server",
        action="process_urgent",
        source="mcp_tool",
        result=result[:200],
    )
    return result


@mcp.tool()
def force_process_email(email_id: str) -> str:
    """Make a single processing attempt for one email, outside the queue.

    Args:
        email_id: Identifier of the stored email
    """
    result = _request("POST", "/api/queue/force-process", json={"email_id": email_id})
    log_action(
        logs_dir=VAULT_PATH / "Logs",
        actor="mcp_triage_server",
        action="force_process",
        source=email_id,
        result=result[:200],
    )
    return result


@mcp.tool()
def classify_email(subject: str, body: str) -> str:
    """Classify an email without storing it.

    Args:
        subject: Email subject line
        body: Email body text
    """
    return json.dumps({
        "success": True,
        "priority": classify_priority(subject, body),
        "category": classify_category(subject),
        "sentiment": analyze_sentiment(body),
        "extracted_info": extract_information(body),
    })


if __name__ == "__main__":
    mcp.run()
