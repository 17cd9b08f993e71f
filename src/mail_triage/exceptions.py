"""Unified exception hierarchy for mail-triage."""


class TriageError(Exception):
    """Base exception for all mail-triage errors."""


# Accounts
class AuthExpiredError(TriageError):
    """Account credential has passed its expiry. Re-authorize, never retried."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(
            f"Credential for account '{account_id}' has expired. "
            "Re-authorize the account."
        )


class RegistryError(TriageError):
    """Base exception for account registry operations."""


class RegistryFullError(RegistryError):
    """The registry already holds the maximum number of accounts."""


class UnknownAccountError(RegistryError):
    """No account with the given id is registered."""


class NoActiveAccountError(RegistryError):
    """An operation needed an active account and none is selected."""


class SessionStoreError(TriageError):
    """Failed to load or save the persisted account list."""


# Mailbox
class ProviderError(TriageError):
    """Mailbox provider failure. Carries an HTTP-like status when known."""

    def __init__(self, message: str, status: int | None = None):
        self.status = status
        self.message = message
        prefix = f"[{status}] " if status is not None else ""
        super().__init__(f"{prefix}{message}")


# Drafts
class GeneratorError(TriageError):
    """Draft generation failed. No partial draft is kept."""


class SessionStateError(TriageError):
    """Operation not allowed in the draft session's current state."""


# Learning
class LedgerWriteError(TriageError):
    """Learning record could not be persisted. Logged, never surfaced."""


# LLM
class LLMError(TriageError):
    """Base exception for LLM client operations."""
