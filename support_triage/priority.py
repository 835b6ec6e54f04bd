"""Email priority and category classification based on rules."""
import logging
import re

logger = logging.getLogger("support_triage.priority")

URGENT = "urgent"
NORMAL = "normal"

URGENCY_KEYWORDS = [
    "urgent", "critical", "immediately", "asap", "emergency",
    "cannot access", "down", "broken", "critical issue", "production down",
    "losing money", "business impact", "escalate", "priority", "crisis",
]

TIME_SENSITIVE_PATTERNS = [
    re.compile(r"asap", re.IGNORECASE),
    re.compile(r"as soon as possible", re.IGNORECASE),
    re.compile(r"immediately", re.IGNORECASE),
    re.compile(r"right away", re.IGNORECASE),
    re.compile(r"urgent", re.IGNORECASE),
    re.compile(r"critical", re.IGNORECASE),
    re.compile(r"emergency", re.IGNORECASE),
    re.compile(r"production.*down", re.IGNORECASE),
    re.compile(r"cannot.*access", re.IGNORECASE),
    re.compile(r"system.*down", re.IGNORECASE),
]

# Checked in order, first match wins
CATEGORY_RULES = [
    (("query", "question"), "query"),
    (("request",), "request"),
    (("help",), "help"),
]
DEFAULT_CATEGORY = "support"


def classify_priority(subject: str = "", body: str = "") -> str:
    """Classify email priority as 'urgent' or 'normal'.

    Urgent when ANY urgency keyword appears as a substring of the combined
    subject and body, or ANY time-sensitive pattern matches. There is no
    weighting: a single hit is enough. Never raises.
    """
    try:
        text = f"{subject or ''} {body or ''}".lower()
        if any(keyword in text for keyword in URGENCY_KEYWORDS):
            return URGENT
        if any(pattern.search(text) for pattern in TIME_SENSITIVE_PATTERNS):
            return URGENT
    except Exception as e:
        logger.warning(f"Priority classification failed, defaulting to normal: {e}")
    return NORMAL


def classify_category(subject: str = "") -> str:
    """Return 'query', 'request', 'help' or 'support' from the subject line."""
    subject_lower = (subject or "").lower()
    for keywords, category in CATEGORY_RULES:
        if any(keyword in subject_lower for keyword in keywords):
            return category
    return DEFAULT_CATEGORY
