"""Content analysis for incoming support email: sentiment and key facts."""
import logging
import re

from support_triage.priority import URGENCY_KEYWORDS

logger = logging.getLogger("support_triage.extractors")

POSITIVE = "positive"
NEGATIVE = "negative"
NEUTRAL = "neutral"

# Small valence lexicon in the AFINN style (-5..+5)
LEXICON = {
    "good": 3, "great": 3, "excellent": 3, "amazing": 4, "awesome": 4,
    "wonderful": 4, "outstanding": 5, "perfect": 3, "love": 3, "happy": 3,
    "glad": 3, "pleased": 3, "thank": 2, "thanks": 2, "appreciate": 2,
    "grateful": 3, "helpful": 2, "quickly": 1, "resolved": 2, "recommend": 2,
    "bad": -3, "terrible": -3, "awful": -3, "horrible": -3, "hate": -3,
    "angry": -3, "frustrated": -2, "frustrating": -2, "disappointed": -2,
    "annoyed": -2, "upset": -2, "broken": -1, "error": -2, "fail": -2,
    "failed": -2, "failure": -2, "problem": -2, "issue": -1, "bug": -2,
    "trouble": -2, "unacceptable": -3, "worst": -3, "losing": -3,
    "cannot": -1, "unable": -2, "down": -1, "crash": -2, "urgent": -1,
}

POSITIVE_WORDS = [
    "thank", "thanks", "grateful", "appreciate", "excellent", "great",
    "outstanding", "wonderful", "amazing", "perfect", "love", "happy",
]

NEGATIVE_WORDS = [
    "problem", "issue", "error", "bug", "broken", "failed", "trouble",
    "frustrated", "angry", "disappointed", "terrible", "awful", "hate",
]

PRODUCT_KEYWORDS = [
    "account", "subscription", "billing", "payment", "login", "password",
    "api", "integration", "webhook", "authentication", "oauth", "token",
    "database", "server", "service", "platform", "dashboard", "analytics",
]

SUPPORT_KEYWORDS = [
    "support", "query", "request", "help", "issue", "problem", "bug", "error", "assistance",
]

PHONE_PATTERN = re.compile(r"(?:\+?1[-.\s]?)?\(?[0-9]{3}\)?[-.\s]?[0-9]{3}[-.\s]?[0-9]{4}")
EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
SENTENCE_SPLIT = re.compile(r"[.!?]+")
WORD_PATTERN = re.compile(r"[a-z']+")
REQUIREMENT_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (r"need to", r"want to", r"would like to", r"can you", r"please", r"help me", r"assist with")
]
MAX_REQUIREMENTS = 3
UNKNOWN_SENDER = "unknown@example.com"


def _tokenize(text: str) -> list[str]:
    return [w.strip("'") for w in WORD_PATTERN.findall(text.lower()) if w.strip("'")]


def analyze_sentiment(text: str) -> str:
    """Classify text as 'positive', 'negative' or 'neutral'.

    Combines a lexicon score with custom support-vocabulary counts (each
    custom hit weighs 2). Scores above 1 are positive, below -1 negative.
    Returns 'neutral' if analysis fails.
    """
    try:
        words = _tokenize(text)
        score = sum(LEXICON.get(word, 0) for word in words)
        positive = sum(1 for word in words if word in POSITIVE_WORDS)
        negative = sum(1 for word in words if word in NEGATIVE_WORDS)
        total = score + positive * 2 - negative * 2
    except Exception as e:
        logger.warning(f"Sentiment analysis failed: {e}")
        return NEUTRAL
    if total > 1:
        return POSITIVE
    if total < -1:
        return NEGATIVE
    return NEUTRAL


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def extract_information(body: str) -> dict:
    """Pull phone numbers, addresses, products, urgency words and requests out of a body."""
    info = {
        "phone_numbers": [],
        "email_addresses": [],
        "mentioned_products": [],
        "urgency_indicators": [],
        "customer_requirements": [],
    }
    if not body:
        return info
    body_lower = body.lower()
    info["phone_numbers"] = _unique(m.group(0).strip() for m in PHONE_PATTERN.finditer(body))
    info["email_addresses"] = _unique(EMAIL_PATTERN.findall(body))
    info["mentioned_products"] = [k for k in PRODUCT_KEYWORDS if k in body_lower]
    info["urgency_indicators"] = [k for k in URGENCY_KEYWORDS if k in body_lower]

    requirements = []
    for sentence in SENTENCE_SPLIT.split(body):
        sentence = sentence.strip()
        if len(sentence) <= 10:
            continue
        if any(p.search(sentence) for p in REQUIREMENT_PATTERNS):
            requirements.append(sentence)
        if len(requirements) == MAX_REQUIREMENTS:
            break
    info["customer_requirements"] = requirements
    return info


def is_support_email(subject: str, body: str) -> bool:
    """True when subject or body mentions any support vocabulary."""
    text = f"{subject} {body}".lower()
    return any(keyword in text for keyword in SUPPORT_KEYWORDS)


def extract_sender_address(from_field: str | None) -> str:
    """Return the bare address from a From header like 'Jane <jane@x.com>'."""
    if not from_field or not isinstance(from_field, str):
        return UNKNOWN_SENDER
    match = re.search(r"<(.+?)>", from_field)
    address = match.group(1) if match else from_field
    return address.strip().lower()
