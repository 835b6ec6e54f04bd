"""Error taxonomy for the triage pipeline."""


class TransientError(Exception):
    """Errors that may resolve on retry (network, API rate limit, timeout)."""
    pass


class PermanentError(Exception):
    """Errors that won't resolve on retry (missing record, bad data)."""
    pass


class EmailNotFoundError(PermanentError):
    """The referenced email record does not exist in the store."""

    def __init__(self, email_id: str = ""):
        self.email_id = email_id
        super().__init__("Email not found")


class GenerationError(TransientError):
    """The response generator failed or timed out."""
    pass


class SendError(TransientError):
    """Delivering a reply failed (Gmail error, send limit, timeout)."""
    pass
