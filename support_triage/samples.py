"""Demo inbox used when no Gmail account is connected."""
from datetime import timedelta
from pathlib import Path

from support_triage.ingest import ingest_email
from support_triage.store import EmailRecord, EmailStore
from support_triage.utils import utcnow

SAMPLE_EMAILS = [
    {
        "from": "John Doe <john.doe@customer.com>",
        "subject": "Urgent: Cannot access my account",
        "age_minutes": 120,
        "body": (
            "Hi Support Team,\n\n"
            "I'm having trouble logging into my account. I keep getting an error message "
            "saying \"Invalid credentials\" even though my password is correct.\n\n"
            "This is urgent as I need to access my billing information immediately for a "
            "client meeting tomorrow morning.\n\n"
            "My phone number is 555-123-4567 if you need to call me directly. "
            "Please help me resolve this as soon as possible.\n\n"
            "Best regards,\nJohn Doe"
        ),
    },
    {
        "from": "Sarah Wilson <sarah.wilson@company.com>",
        "subject": "Help with API integration",
        "age_minutes": 240,
        "body": (
            "Hello,\n\n"
            "I'm trying to integrate your API into our system but I'm having some issues with "
            "authentication. The documentation mentions OAuth 2.0 but I'm not getting the expected "
            "response when I make the token request.\n\n"
            "Could you please provide some guidance on the proper authentication flow? Our "
            "development team email is dev@company.com.\n\n"
            "Thanks,\nSarah Wilson"
        ),
    },
    {
        "from": "Mike Johnson <mike.johnson@startup.io>",
        "subject": "Thank you for the great support!",
        "age_minutes": 360,
        "body": (
            "Hi there,\n\n"
            "I wanted to thank your support team for the excellent help I received yesterday. "
            "The issue with our webhook integration was resolved quickly and professionally.\n\n"
            "Your customer service is outstanding. Keep up the great work!\n\n"
            "Best regards,\nMike Johnson"
        ),
    },
    {
        "from": "Lisa Chen <lisa.chen@enterprise.com>",
        "subject": "Critical: System down for production",
        "age_minutes": 30,
        "body": (
            "URGENT - PRODUCTION DOWN\n\n"
            "Our production system is completely down and we cannot access any of your services. "
            "We're losing money every minute this continues.\n\n"
            "Error message: \"Service Unavailable - 503\"\n"
            "Affected systems: All API endpoints\n\n"
            "Please escalate this immediately! Contact me at 555-987-6543 or lisa.chen@enterprise.com\n\n"
            "Lisa Chen\nOperations Manager"
        ),
    },
    {
        "from": "David Brown <david.brown@client.org>",
        "subject": "Query about subscription pricing",
        "age_minutes": 480,
        "body": (
            "Hi,\n\n"
            "I'm interested in upgrading our subscription plan. We're on the Basic plan but "
            "we're hitting the API rate limits more frequently.\n\n"
            "Could you provide information about enterprise pricing, custom rate limits and "
            "priority support options?\n\n"
            "Please let me know the best time to schedule a call.\n\n"
            "Thanks,\nDavid Brown"
        ),
    },
]


def load_sample_emails(store: EmailStore, queue=None, logs_dir: Path | None = None) -> list[EmailRecord]:
    """Ingest the sample inbox. Already ingested samples are skipped."""
    now = utcnow()
    created = []
    for sample in SAMPLE_EMAILS:
        raw = {
            "from": sample["from"],
            "subject": sample["subject"],
            "body": sample["body"],
            "date": now - timedelta(minutes=sample["age_minutes"]),
        }
        record = ingest_email(raw, store, queue, logs_dir)
        if record is not None:
            created.append(record)
    return created
