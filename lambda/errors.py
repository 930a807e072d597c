"""
Error taxonomy for the verification engine.

Judge adapters, the problem catalog and the DynamoDB layer raise these;
the verification service catches them at its boundary and turns them into
an Outcome for the command layer to render.
"""


class VerificationError(Exception):
    """Base class for every error raised by the verification engine."""


class NotFound(VerificationError):
    """The claimed username does not exist on the judge. Never retried."""

    def __init__(self, platform: str, username: str):
        self.platform = platform
        self.username = username
        super().__init__(f"{platform} user \"{username}\" not found")


class BackendUnavailable(VerificationError):
    """Network failure, timeout or non-2xx answer from a judge. Retryable by the caller."""

    def __init__(self, platform: str, detail: str):
        self.platform = platform
        self.detail = detail
        super().__init__(f"{platform} is unavailable: {detail}")


class DuplicateLink(VerificationError):
    """The judge account is already linked to another user in the guild."""

    def __init__(self, platform: str, username: str):
        self.platform = platform
        self.username = username
        super().__init__(f"{platform} account \"{username}\" is already linked to another user")


class PersistenceError(VerificationError):
    """A DynamoDB read or write failed."""


class ConfigurationError(VerificationError):
    """An environment setting is missing or out of range."""
