"""Gmail collaborators: OAuth tokens, payload parsing, mailbox provider.

Heavy imports are deferred. Use explicit imports:
    from mail_triage.gmail.provider import GmailProvider
    from mail_triage.gmail.auth import AuthManager
"""

# Light imports only
from mail_triage.gmail.query import build_query


def __getattr__(name):
    """Lazy imports for classes that pull in the Google client libraries."""
    if name == "GmailProvider":
        from mail_triage.gmail.provider import GmailProvider
        return GmailProvider
    if name == "AuthManager":
        from mail_triage.gmail.auth import AuthManager
        return AuthManager
    if name == "parse_message":
        from mail_triage.gmail.parser import parse_message
        return parse_message
    raise AttributeError(f"module 'mail_triage.gmail' has no attribute {name!r}")


__all__ = [
    "GmailProvider",
    "AuthManager",
    "build_query",
    "parse_message",
]
