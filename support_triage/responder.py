"""Response generator — drafts customer replies with Claude, grounded in the knowledge base."""
import asyncio
import logging
import subprocess
from pathlib import Path

from support_triage.errors import GenerationError
from support_triage.knowledge_base import KnowledgeBase

logger = logging.getLogger("support_triage.responder")


def fallback_response(email_data: dict) -> str:
    """Template reply used when the Claude CLI is not available."""
    sentiment = email_data.get("sentiment", "neutral")
    priority = email_data.get("priority", "normal")
    sender = email_data.get("sender_email") or "customer"
    name = sender.split("@")[0]

    parts = [f"Dear {name},\n\n"]
    if sentiment == "negative":
        parts.append("Thank you for reaching out to us, and I sincerely apologize for any inconvenience you've experienced. ")
    elif sentiment == "positive":
        parts.append("Thank you so much for your kind words and for taking the time to contact us. ")
    else:
        parts.append("Thank you for contacting our support team. ")
    if priority == "urgent":
        parts.append("I understand this is an urgent matter, and we're treating it with the highest priority. ")
    parts.append("We have received your message and our team is reviewing your request carefully. ")
    if priority == "urgent":
        parts.append("Given the urgent nature of your inquiry, you can expect a detailed response within 2-4 hours. ")
    else:
        parts.append("You can expect a detailed response within 24 hours. ")
    parts.append(
        "If you have any additional information that might help us assist you better, "
        "please don't hesitate to reply to this email.\n\n"
        "Best regards,\nCustomer Support Team"
    )
    return "".join(parts)


class ResponseGenerator:
    def __init__(self, knowledge_base: KnowledgeBase | None = None,
                 claude_model: str = "claude-sonnet-4-5-20250929",
                 timeout: int = 120, handbook_path: Path | None = None):
        self.knowledge_base = knowledge_base or KnowledgeBase()
        self.claude_model = claude_model
        self.timeout = timeout
        self.handbook_path = handbook_path

    async def generate(self, email_data: dict, context: str | None = None) -> str:
        """Draft a reply for one email. Raises GenerationError on CLI failure."""
        prompt = self.build_prompt(email_data, context)
        return await asyncio.to_thread(self._invoke_claude, prompt, email_data)

    def build_prompt(self, email_data: dict, context: str | None = None) -> str:
        subject = email_data.get("subject", "")
        body = email_data.get("body", "")
        info = email_data.get("extracted_info") or {}
        kb_context = self.knowledge_base.get_context(subject, body)
        solutions = self.knowledge_base.get_suggested_solutions(subject, body)
        solution_lines = "\n".join(f"{i}. {s}" for i, s in enumerate(solutions, start=1))

        handbook = ""
        if self.handbook_path and self.handbook_path.exists():
            handbook = self.handbook_path.read_text(encoding="utf-8")

        extracted = []
        if info.get("phone_numbers"):
            extracted.append(f"- Phone Numbers: {', '.join(info['phone_numbers'])}")
        if info.get("mentioned_products"):
            extracted.append(f"- Mentioned Products/Services: {', '.join(info['mentioned_products'])}")
        if info.get("urgency_indicators"):
            extracted.append(f"- Urgency Indicators: {', '.join(info['urgency_indicators'])}")
        if info.get("customer_requirements"):
            extracted.append(f"- Customer Requirements: {'; '.join(info['customer_requirements'])}")
        extracted_block = "\n".join(extracted) or "- None"
        extra = f"\n## Additional Context\n{context}\n" if context else ""

        return f"""You are a professional customer support representative. Write a helpful, empathetic reply to the customer email below.

## Support Handbook
{handbook}

## Knowledge Base Context
{kb_context}

## Available Solutions
{solution_lines}

## Email
- From: {email_data.get("sender_email", "")}
- Subject: {subject}
- Priority: {email_data.get("priority", "normal")}
- Sentiment: {email_data.get("sentiment", "neutral")}

{body}

## Extracted Information
{extracted_block}
{extra}
## Instructions
1. Address the customer's specific concerns
2. If the sentiment is negative, acknowledge their frustration
3. Use the knowledge base context and reference concrete solutions
4. If urgent, acknowledge the priority and give a timeline
5. Keep it between 150 and 300 words

Respond with the reply text only.
"""

    def _invoke_claude(self, prompt: str, email_data: dict) -> str:
        try:
            result = subprocess.run(
                ["claude", "--print", "--model", self.claude_model, prompt],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            logger.warning("Claude CLI not found. Using template reply.")
            return fallback_response(email_data)
        except subprocess.TimeoutExpired:
            raise GenerationError(f"Claude timed out after {self.timeout} seconds")
        if result.returncode != 0:
            raise GenerationError(f"Claude error: {result.stderr.strip() or result.returncode}")
        reply = result.stdout.strip()
        if not reply:
            raise GenerationError("Claude returned an empty reply")
        return reply
