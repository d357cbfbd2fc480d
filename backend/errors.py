"""Failure kinds raised by the page analyzer.

Every analyzer failure is one of three kinds; callers translate them into
user-facing messages and decide on any retry policy.
"""


class AuditError(Exception):
    """Base class for analyzer failures."""

    code = "AUDIT_ERROR"
    default_message = "Audit failed."

    def __init__(self, message: str = "", url: str = "") -> None:
        self.message = message or self.default_message
        self.url = url
        super().__init__(self.message)


class BotProtectionDetected(AuditError):
    """The origin answered 403 or 429: it blocks automated fetches."""

    code = "BOT_PROTECTION"
    default_message = (
        "The site blocked our audit bot. Paste the page HTML to run a manual audit."
    )

    def __init__(self, message: str = "", url: str = "", status_code: int = 0) -> None:
        self.status_code = status_code
        super().__init__(message, url)


class InvalidUrl(AuditError):
    code = "INVALID_URL"
    default_message = "The URL host could not be resolved."


class AnalysisFailed(AuditError):
    code = "ANALYSIS_FAILED"
    default_message = "Failed to analyze URL."
