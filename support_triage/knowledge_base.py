"""Static support knowledge used to ground generated replies."""
import copy
import logging
import re

logger = logging.getLogger("support_triage.knowledge_base")

DEFAULT_CATEGORY = "general_support"

DEFAULT_KNOWLEDGE = {
    "account_access": {
        "keywords": ["login", "password", "access", "account", "credentials", "sign in"],
        "context": (
            "Common account access solutions:\n"
            "1. Password reset: users can reset passwords via the \"Forgot Password\" link\n"
            "2. Account lockout: accounts lock for 30 minutes after 5 failed attempts\n"
            "3. Two-factor authentication: users need both password and 2FA code\n"
            "4. Browser issues: clear cache/cookies or try a private window\n"
            "5. Account suspension: check for policy violations\n"
            "Escalation: for persistent issues, escalate to the technical support team."
        ),
        "solutions": [
            "Try password reset using the \"Forgot Password\" link",
            "Clear browser cache and cookies",
            "Try accessing from an incognito/private browser window",
            "Check if two-factor authentication is enabled",
            "Wait 30 minutes if account is temporarily locked",
        ],
    },
    "api_integration": {
        "keywords": ["api", "integration", "webhook", "authentication", "oauth", "token", "endpoint"],
        "context": (
            "API integration support:\n"
            "1. Authentication: OAuth 2.0 with client credentials flow\n"
            "2. Rate limits: 1000 requests/hour standard, 10000 enterprise\n"
            "3. Webhooks: configure URLs in dashboard settings\n"
            "4. Documentation: https://docs.example.com/api\n"
            "5. Test environment: sandbox.example.com\n"
            "Common issues: invalid keys (regenerate in dashboard), rate limiting "
            "(exponential backoff), webhook failures (check reachability and TLS)."
        ),
        "solutions": [
            "Verify API key is correct and active",
            "Check rate limiting and implement proper backoff",
            "Ensure webhook endpoints are accessible and use HTTPS",
            "Review API documentation for correct request format",
            "Test in sandbox environment first",
        ],
    },
    "billing_subscription": {
        "keywords": ["billing", "payment", "subscription", "invoice", "charge", "plan", "upgrade"],
        "context": (
            "Billing and subscription information:\n"
            "1. Billing cycles: monthly or annual\n"
            "2. Payment methods: credit card, PayPal, bank transfer (enterprise)\n"
            "3. Plan changes: upgrades apply immediately, downgrades next cycle\n"
            "4. Refunds: within 30 days for annual plans\n"
            "5. Invoices: account dashboard under \"Billing\"\n"
            "Plans: Basic (1000 calls/month), Pro (10000 calls/month, webhooks), "
            "Enterprise (unlimited, dedicated support, SLA)."
        ),
        "solutions": [
            "Check billing section in account dashboard",
            "Update payment method if card expired",
            "Contact billing team for refund requests",
            "Review plan features and upgrade if needed",
            "Download invoices from dashboard for accounting",
        ],
    },
    "technical_issues": {
        "keywords": ["error", "bug", "broken", "not working", "issue", "problem", "down", "outage"],
        "context": (
            "Technical issue resolution:\n"
            "1. System status: status.example.com lists known incidents\n"
            "2. Error codes: see the error code reference\n"
            "3. Logs: enable debug logging for details\n"
            "4. Browsers: Chrome 90+, Firefox 88+, Safari 14+\n"
            "5. Mobile apps: iOS 14+ and Android 10+"
        ),
        "solutions": [
            "Check system status page for known issues",
            "Clear browser cache and application data",
            "Try accessing from different browser or device",
            "Review error logs for specific error codes",
            "Test basic connectivity and DNS resolution",
        ],
    },
    "general_support": {
        "keywords": ["help", "support", "question", "how to", "guide", "tutorial"],
        "context": (
            "General support resources:\n"
            "1. Documentation: docs.example.com\n"
            "2. Video tutorials on our YouTube channel\n"
            "3. Community forum: community.example.com\n"
            "4. Support hours: Monday-Friday 9AM-6PM EST\n"
            "5. Response times: 24h standard, 4h priority, 1h enterprise"
        ),
        "solutions": [
            "Check our comprehensive documentation",
            "Watch video tutorials for step-by-step guidance",
            "Search the knowledge base for similar issues",
            "Join our community forum for peer support",
            "Contact support team for personalized assistance",
        ],
    },
}


class KnowledgeBase:
    def __init__(self, entries: dict | None = None):
        self.entries = copy.deepcopy(entries if entries is not None else DEFAULT_KNOWLEDGE)

    def categories(self) -> list[str]:
        return list(self.entries)

    def get(self, category: str) -> dict | None:
        entry = self.entries.get(category)
        return {"category": category, **entry} if entry else None

    def find_relevant(self, subject: str, body: str) -> list[dict]:
        """Rank categories by how often their keywords occur in the email."""
        text = f"{subject} {body}".lower()
        relevant = []
        for category, entry in self.entries.items():
            score = sum(len(re.findall(re.escape(k.lower()), text)) for k in entry["keywords"])
            if score > 0:
                relevant.append({"category": category, "match_score": score, **entry})
        relevant.sort(key=lambda r: r["match_score"], reverse=True)
        return relevant

    def get_context(self, subject: str, body: str) -> str:
        """Context block for the best matching category, with numbered solutions."""
        relevant = self.find_relevant(subject, body)
        if not relevant:
            return self.entries[DEFAULT_CATEGORY]["context"]
        best = relevant[0]
        context = best["context"]
        if best.get("solutions"):
            lines = [f"{i}. {s}" for i, s in enumerate(best["solutions"], start=1)]
            context += "\n\nSuggested solutions:\n" + "\n".join(lines)
        return context

    def get_suggested_solutions(self, subject: str, body: str) -> list[str]:
        relevant = self.find_relevant(subject, body)
        if not relevant:
            return list(self.entries[DEFAULT_CATEGORY]["solutions"])
        return list(relevant[0].get("solutions", []))

    def search(self, query: str) -> list[dict]:
        """Categories whose context or keywords match the query; context hits rank first."""
        query_lower = query.lower()
        results = []
        for category, entry in self.entries.items():
            context_match = query_lower in entry["context"].lower()
            keyword_match = any(
                k.lower() in query_lower or query_lower in k.lower() for k in entry["keywords"]
            )
            if context_match or keyword_match:
                results.append({"category": category, "relevance": 2 if context_match else 1, **entry})
        results.sort(key=lambda r: r["relevance"], reverse=True)
        return results

    def add(self, category: str, keywords: list[str], context: str, solutions: list[str] | None = None) -> None:
        self.entries[category] = {
            "keywords": list(keywords),
            "context": context,
            "solutions": list(solutions or []),
        }
        logger.info(f"Knowledge category added: {category}")

    def update(self, category: str, **changes) -> bool:
        if category not in self.entries:
            return False
        allowed = {k: v for k, v in changes.items() if k in ("keywords", "context", "solutions")}
        self.entries[category].update(allowed)
        return True
