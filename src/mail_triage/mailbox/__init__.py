"""Mailbox provider interface."""

from mail_triage.mailbox.base import INBOX_LABEL, MailboxProvider

__all__ = ["INBOX_LABEL", "MailboxProvider"]
